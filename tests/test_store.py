import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from conftest import FIXED_NOW
from shared.attendance.errors import EventNotFound, InvalidInput, StorageFailure
from shared.attendance.models import ResponseState
from shared.attendance.periods import in_month, in_quarter
from shared.attendance.scoring import score
from shared.storage.attendance import EventStore, JsonFileBackend, MemoryBackend


class FailingSaveBackend(MemoryBackend):
    def save(self, document):
        raise StorageFailure("disk full")


# --------------------------------------------------
# create_event
# --------------------------------------------------

def test_create_event_stamps_and_persists(store, backend):
    event = store.create_event(1, True, metadata={"type": "MVA"})

    assert event.id == 1
    assert event.created_at == FIXED_NOW
    assert event.occurs_at == FIXED_NOW
    assert event.attendance == {}
    assert event.period_keys.month == "2026-03"
    assert event.period_keys.quarter == "2026-Q1"
    assert event.metadata == {"type": "MVA"}

    document = backend.load()
    assert document["nextId"] == 2
    assert document["events"][0]["pointValue"] == 1.0
    assert document["events"][0]["attendance"] == {}


def test_occurs_at_drives_period_keys(store):
    event = store.create_event(0.5, False, occurs_at=datetime(2026, 4, 1, 4, 0, tzinfo=timezone.utc))
    assert event.period_keys.month == "2026-04"
    assert event.period_keys.quarter == "2026-Q2"
    assert event.created_at == FIXED_NOW


def test_ids_strictly_increase(store):
    ids = [store.create_event(1, True).id for _ in range(4)]
    assert ids == [1, 2, 3, 4]


@pytest.mark.parametrize("points", [2, -1, 0.25, "one", None, True])
def test_invalid_point_values_rejected(store, backend, points):
    with pytest.raises(InvalidInput):
        store.create_event(points, True)
    assert backend.saves == 0


def test_penalizes_absence_must_be_bool(store):
    with pytest.raises(InvalidInput):
        store.create_event(1, "yes")


def test_metadata_must_be_mapping(store):
    with pytest.raises(InvalidInput):
        store.create_event(1, True, metadata=["not", "a", "dict"])


def test_failed_save_does_not_create_event(clock):
    store = EventStore(FailingSaveBackend(), clock=clock)
    with pytest.raises(StorageFailure):
        store.create_event(1, True)
    assert store.list_events() == []


# --------------------------------------------------
# record_response
# --------------------------------------------------

def test_record_response_upserts(store):
    event = store.create_event(1, True)

    store.record_response(event.id, "u1", "MADE")
    updated = store.record_response(event.id, "u1", ResponseState.SILENT)

    assert updated.attendance == {"u1": ResponseState.SILENT}
    assert store.get_event(event.id).response_for("u1") is ResponseState.SILENT


def test_record_response_is_idempotent(store, backend):
    event = store.create_event(1, True)

    store.record_response(event.id, "u1", "MADE")
    once = score("u1", store.list_events())
    saves = backend.saves

    store.record_response(event.id, "u1", "MADE")

    assert score("u1", store.list_events()) == once
    assert backend.saves == saves


def test_record_response_unknown_event(store):
    with pytest.raises(EventNotFound):
        store.record_response(99, "u1", "MADE")


@pytest.mark.parametrize("state", ["NO_RESPONSE", "maybe", ""])
def test_record_response_rejects_bad_state(store, state):
    event = store.create_event(1, True)
    with pytest.raises(InvalidInput):
        store.record_response(event.id, "u1", state)
    assert store.get_event(event.id).attendance == {}


def test_record_response_requires_user(store):
    event = store.create_event(1, True)
    with pytest.raises(InvalidInput):
        store.record_response(event.id, "  ", "MADE")


def test_state_parsing_is_case_insensitive(store):
    event = store.create_event(1, True)
    assert store.record_response(event.id, 42, "made").response_for("42") is ResponseState.MADE


def test_concurrent_responses_are_not_lost(store):
    event = store.create_event(1, True)
    users = [f"user-{n}" for n in range(25)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda uid: store.record_response(event.id, uid, "MADE"), users))

    assert sorted(store.get_event(event.id).attendance) == sorted(users)


def test_returned_events_are_detached(store):
    event = store.create_event(1, True)
    event.attendance["intruder"] = ResponseState.MADE
    assert store.get_event(event.id).attendance == {}


# --------------------------------------------------
# reset / reads
# --------------------------------------------------

def test_reset_user_responses(store):
    first = store.create_event(1, True)
    second = store.create_event(1, True)
    store.record_response(first.id, "u1", "MADE")
    store.record_response(second.id, "u1", "MISSED")
    store.record_response(second.id, "u2", "MADE")

    assert store.reset_user_responses("u1") == 2

    assert store.get_event(first.id).attendance == {}
    assert store.get_event(second.id).attendance == {"u2": ResponseState.MADE}
    assert store.get_event(second.id).point_value == 1.0


def test_reset_unknown_user_is_noop(store, backend):
    store.create_event(1, True)
    saves = backend.saves
    assert store.reset_user_responses("ghost") == 0
    assert backend.saves == saves


def test_get_event_not_found(store):
    with pytest.raises(EventNotFound):
        store.get_event(7)


def test_list_events_by_period(store):
    march = store.create_event(1, True)
    april = store.create_event(1, True, occurs_at=datetime(2026, 4, 10, 12, 0, tzinfo=timezone.utc))

    assert [e.id for e in store.list_events(in_month("2026-03"))] == [march.id]
    assert [e.id for e in store.events_for_period(month="2026-04")] == [april.id]
    assert [e.id for e in store.list_events(in_quarter("2026-Q1"))] == [march.id]
    assert len(store.list_events()) == 2

    with pytest.raises(InvalidInput):
        store.events_for_period()


# --------------------------------------------------
# JSON file backend
# --------------------------------------------------

def test_ids_survive_restart(tmp_path, clock):
    path = tmp_path / "attendance.json"

    first = EventStore(JsonFileBackend(path), clock=clock)
    first.create_event(1, True)
    event = first.create_event(0.5, False)
    first.record_response(event.id, "u1", "SILENT")

    second = EventStore(JsonFileBackend(path), clock=clock)
    assert second.get_event(event.id).response_for("u1") is ResponseState.SILENT
    assert second.create_event(1, True).id == 3


def test_next_id_never_reuses_stored_ids(tmp_path, clock):
    path = tmp_path / "attendance.json"
    store = EventStore(JsonFileBackend(path), clock=clock)
    store.create_event(1, True)
    store.create_event(1, True)

    document = json.loads(path.read_text(encoding="utf-8"))
    document["nextId"] = 1
    path.write_text(json.dumps(document), encoding="utf-8")

    assert store.create_event(1, True).id == 3


def test_missing_file_is_empty_store(tmp_path, clock):
    store = EventStore(JsonFileBackend(tmp_path / "nested" / "attendance.json"), clock=clock)
    assert store.list_events() == []
    assert store.create_event(1, True).id == 1
    assert (tmp_path / "nested" / "attendance.json").exists()


def test_corrupt_file_raises_and_is_left_alone(tmp_path, clock):
    path = tmp_path / "attendance.json"
    path.write_text("{not json", encoding="utf-8")
    store = EventStore(JsonFileBackend(path), clock=clock)

    with pytest.raises(StorageFailure):
        store.list_events()
    with pytest.raises(StorageFailure):
        store.create_event(1, True)

    assert path.read_text(encoding="utf-8") == "{not json"


def test_non_object_document_raises(tmp_path, clock):
    path = tmp_path / "attendance.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(StorageFailure):
        EventStore(JsonFileBackend(path), clock=clock).list_events()


def test_legacy_document_is_upgraded(tmp_path, clock):
    path = tmp_path / "data.json"
    path.write_text(json.dumps({
        "nextId": 2,
        "calls": [{
            "id": 1,
            "cad": 1,
            "typeShort": "MVA",
            "type": "MVA",
            "location": "Main St",
            "details": "",
            "points": 1,
            "countsAgainst": True,
            "createdAt": "2026-03-02T12:00:00.000Z",
            "ridgeDate": "Monday, March 2, 2026 at 7:00 AM",
            "countTowards": "03 / 2026",
            "monthSort": "2026-03",
            "quarter": "2026-Q1",
            "attendance": {"111": "MADE", "222": "SILENT"},
        }],
    }), encoding="utf-8")

    store = EventStore(JsonFileBackend(path), clock=clock)
    event = store.get_event(1)

    assert event.point_value == 1.0
    assert event.penalizes_absence is True
    assert event.period_keys.month == "2026-03"
    assert event.response_for("111") is ResponseState.MADE
    assert event.metadata["displayDate"] == "Monday, March 2, 2026 at 7:00 AM"

    store.record_response(1, "333", "MISSED")
    document = json.loads(path.read_text(encoding="utf-8"))
    assert "calls" not in document
    assert document["events"][0]["attendance"] == {"111": "MADE", "222": "SILENT", "333": "MISSED"}


@pytest.mark.parametrize(
    "document",
    [
        {"nextId": 2, "events": [{"id": 1, "pointValue": 1}]},
        {"nextId": "abc", "events": []},
        {"nextId": 2, "calls": [{"id": 1, "points": "lots", "createdAt": "2026-03-02T12:00:00.000Z"}]},
        {"nextId": 2, "events": ["not an event"]},
    ],
)
def test_malformed_document_raises_storage_failure(clock, document):
    backend = MemoryBackend(document)
    store = EventStore(backend, clock=clock)

    with pytest.raises(StorageFailure):
        store.list_events()
    with pytest.raises(StorageFailure):
        store.create_event(1, True)
    assert backend.load() == document


def test_padded_user_id_scores_its_own_response(store):
    event = store.create_event(1, True)
    store.record_response(event.id, " 42", "MADE")

    result = score(" 42", store.list_events())

    assert result.made == 1
    assert result.percentage == 100.0
