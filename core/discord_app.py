"""
Discord runtime entrypoint.

This module launches the attendance bot as an independent process.
It owns:

- event loop creation
- lifecycle wiring
- orderly startup and shutdown
- logging scope
"""

import asyncio
import signal
import sys

from dotenv import load_dotenv

from shared.logging.logger import get_logger
from services.discord.client import DiscordClient

log = get_logger("core.discord_app")


# ----------------------------------------------------------------------
# MAIN ASYNC ENTRYPOINT
# ----------------------------------------------------------------------

async def main(stop_event: asyncio.Event):
    load_dotenv()

    log.info("Discord runtime booting")

    client = DiscordClient()

    # --------------------------------------------------
    # START DISCORD RUNTIME
    # --------------------------------------------------
    client_task = asyncio.create_task(client.run(), name="discord-client")
    stop_task = asyncio.create_task(stop_event.wait(), name="stop-event")

    # --------------------------------------------------
    # BLOCK UNTIL SHUTDOWN SIGNAL (OR CLIENT EXIT)
    # --------------------------------------------------
    done, _ = await asyncio.wait(
        {client_task, stop_task},
        return_when=asyncio.FIRST_COMPLETED,
    )

    log.info("Discord shutdown initiated")

    # --------------------------------------------------
    # ORDERLY SHUTDOWN
    # --------------------------------------------------
    try:
        await client.shutdown()
    except Exception as e:
        log.warning(f"Discord client shutdown error ignored: {e}")

    stop_task.cancel()

    if client_task in done:
        # Surface crashes from the client instead of exiting quietly.
        client_task.result()

    log.info("Discord runtime stopped")


# ----------------------------------------------------------------------
# SIGNAL HANDLING (WINDOWS-SAFE)
# ----------------------------------------------------------------------

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
):
    """
    Windows-safe Ctrl+C handler.
    Uses signal.signal + asyncio.Event to unwind cleanly.
    """

    def _handler(signum, frame):
        try:
            loop.call_soon_threadsafe(stop_event.set)
        except RuntimeError:
            stop_event.set()

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except (ValueError, OSError):
        pass


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run():
    stop_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    _install_signal_handlers(loop, stop_event)

    try:
        loop.run_until_complete(main(stop_event))

    except KeyboardInterrupt:
        log.info("KeyboardInterrupt received — shutdown initiated")
        stop_event.set()

    finally:
        # --------------------------------------------------
        # CANCEL REMAINING TASKS (CLEANLY)
        # --------------------------------------------------
        pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
        for task in pending:
            task.cancel()

        if pending:
            loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )

        loop.run_until_complete(loop.shutdown_asyncgens())

        asyncio.set_event_loop(None)
        loop.close()


if __name__ == "__main__":
    run()
    sys.exit(0)
