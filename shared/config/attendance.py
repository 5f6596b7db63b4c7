"""
Attendance runtime configuration.

Sources, later ones winning:
- dataclass defaults
- shared/config/attendance.json (optional)
- environment variables (a local .env is loaded via python-dotenv)

Invalid values are logged and replaced by the default.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from shared.attendance.errors import InvalidInput
from shared.attendance.periods import DEFAULT_TIMEZONE, resolve_zone
from shared.logging.logger import get_logger

log = get_logger("shared.config.attendance")

_CONFIG_PATH = Path(__file__).parent / "attendance.json"

ENV_KEYS: Dict[str, str] = {
    "guild_id": "GUILD_ID",
    "log_channel_id": "LOG_CHANNEL_ID",
    "min_percent": "MIN_PERCENT",
    "timezone": "ATTENDANCE_TIMEZONE",
    "leaderboard_limit": "LEADERBOARD_LIMIT",
    "data_path": "ATTENDANCE_DATA_PATH",
}


@dataclass
class AttendanceConfig:
    guild_id: Optional[str] = None
    log_channel_id: Optional[str] = None
    min_percent: float = 40.0
    timezone: str = DEFAULT_TIMEZONE
    leaderboard_limit: int = 25
    data_path: str = "data/attendance.json"

    def missing_discord_settings(self) -> list[str]:
        missing = []
        if not self.guild_id:
            missing.append(ENV_KEYS["guild_id"])
        if not self.log_channel_id:
            missing.append(ENV_KEYS["log_channel_id"])
        return missing


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except Exception as e:  # pragma: no cover - defensive
        log.warning(f"Failed to load {path.name} ({e}); using defaults")
        return {}


def _normalize_snowflake(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        raw = value.strip()
        if raw.isdigit():
            return raw
    return None


def _coerce_percent(value: Any) -> float:
    default = AttendanceConfig.min_percent
    try:
        pct = float(value)
    except (TypeError, ValueError):
        log.warning(f"min_percent must be numeric (got {value!r}); defaulting to {default}")
        return default
    if not 0 <= pct <= 100:
        log.warning(f"min_percent must be within 0-100 (got {pct}); defaulting to {default}")
        return default
    return pct


def _coerce_limit(value: Any) -> int:
    default = AttendanceConfig.leaderboard_limit
    try:
        limit = int(value)
    except (TypeError, ValueError):
        log.warning(f"leaderboard_limit must be an integer (got {value!r}); defaulting to {default}")
        return default
    if limit < 1:
        log.warning(f"leaderboard_limit must be positive (got {limit}); defaulting to {default}")
        return default
    return limit


def _coerce_timezone(value: Any) -> str:
    name = str(value).strip() if value is not None else ""
    try:
        resolve_zone(name)
    except InvalidInput:
        log.warning(f"Unknown timezone {value!r}; defaulting to {DEFAULT_TIMEZONE}")
        return DEFAULT_TIMEZONE
    return name


def load_attendance_config(
    raw: Optional[Dict[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> AttendanceConfig:
    if env is None:
        load_dotenv()
        env = os.environ

    merged: Dict[str, Any] = dict(raw if raw is not None else _load_json(_CONFIG_PATH))
    for field_name, env_key in ENV_KEYS.items():
        value = env.get(env_key)
        if value not in (None, ""):
            merged[field_name] = value

    config = AttendanceConfig()

    if "guild_id" in merged:
        config.guild_id = _normalize_snowflake(merged["guild_id"])
    if "log_channel_id" in merged:
        config.log_channel_id = _normalize_snowflake(merged["log_channel_id"])
    if "min_percent" in merged:
        config.min_percent = _coerce_percent(merged["min_percent"])
    if "timezone" in merged:
        config.timezone = _coerce_timezone(merged["timezone"])
    if "leaderboard_limit" in merged:
        config.leaderboard_limit = _coerce_limit(merged["leaderboard_limit"])
    if merged.get("data_path"):
        config.data_path = str(merged["data_path"])

    return config
