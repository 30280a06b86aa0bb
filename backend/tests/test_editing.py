from __future__ import annotations

import pytest

from officetrack.editing import EditSession
from officetrack.entries import EntryStore
from officetrack.exceptions import EntryNotFound, InvalidDraft, InvalidTransition, SessionAlreadyOpen
from officetrack.schemas import TimeEntry
from officetrack.storage import MemoryStorage
from officetrack.tracking import TrackingStatus


IMMUTABLE_FIELDS = (
    "id",
    "date",
    "start_time",
    "end_time",
    "total_time_ms",
    "created_at",
    "employee_id",
    "employee_name",
)


@pytest.fixture()
def recorded(tracker, clock, fill_draft) -> TimeEntry:
    fill_draft(tracker)
    tracker.tracking.start()
    clock.advance(minutes=42, seconds=7)
    return tracker.tracking.pause()


def test_open_snapshots_editable_fields(tracker, recorded) -> None:
    draft = tracker.editing.open(recorded)
    assert draft == {
        "shift_time": "11:00 AM - 08:00 PM",
        "task_details": "Fix bug",
        "project_name": "Alpha",
        "client_name": "Acme",
    }
    assert tracker.editing.is_open
    assert tracker.editing.is_valid


def test_save_changes_only_editable_fields(tracker, recorded) -> None:
    tracker.editing.open(recorded)
    tracker.editing.update_field("shift_time", "09:00 AM - 06:00 PM")
    tracker.editing.update_field("task_details", "Fix login bug")
    tracker.editing.update_field("project_name", "Alpha 2")
    tracker.editing.update_field("client_name", "Acme Corp")

    saved = tracker.editing.save()

    assert saved.shift_time == "09:00 AM - 06:00 PM"
    assert saved.task_details == "Fix login bug"
    assert saved.project_name == "Alpha 2"
    assert saved.client_name == "Acme Corp"
    for field in IMMUTABLE_FIELDS:
        assert getattr(saved, field) == getattr(recorded, field)
    assert saved.total_time_display == recorded.total_time_display
    assert tracker.entries.get(recorded.id) == saved
    assert not tracker.editing.is_open


def test_edit_does_not_touch_tracking_state(tracker, recorded) -> None:
    tracker.editing.open(recorded)
    tracker.editing.update_field("task_details", "Other")
    tracker.editing.save()
    assert tracker.tracking.status is TrackingStatus.READY_FOR_SECOND_ENTRY
    assert tracker.tracking.current_task.task_details == ""


def test_blank_field_blocks_save(tracker, recorded) -> None:
    tracker.editing.open(recorded)
    tracker.editing.update_field("shift_time", "  ")
    assert tracker.editing.is_valid is False

    with pytest.raises(InvalidDraft):
        tracker.editing.save()

    assert tracker.entries.get(recorded.id) == recorded
    assert tracker.editing.is_open


def test_close_discards_draft(tracker, recorded) -> None:
    tracker.editing.open(recorded)
    tracker.editing.update_field("client_name", "Discarded")
    tracker.editing.close()

    assert not tracker.editing.is_open
    assert tracker.editing.draft == {}
    assert tracker.entries.get(recorded.id).client_name == "Acme"


def test_opening_second_session_replaces_first(tracker, recorded) -> None:
    other = recorded.model_copy(update={"id": "other", "task_details": "Other"})
    tracker.editing.open(recorded)
    tracker.editing.update_field("task_details", "Draft")

    tracker.editing.open(other)

    assert tracker.editing.entry == other
    assert tracker.editing.draft["task_details"] == "Other"


def test_opening_without_replace_fails_when_open(tracker, recorded) -> None:
    tracker.editing.open(recorded)
    with pytest.raises(SessionAlreadyOpen):
        tracker.editing.open(recorded, replace=False)
    assert tracker.editing.entry == recorded


def test_save_without_open_session_is_rejected(tracker) -> None:
    with pytest.raises(InvalidTransition):
        tracker.editing.save()
    with pytest.raises(InvalidTransition):
        tracker.editing.update_field("task_details", "x")


def test_update_field_rejects_immutable_fields(tracker, recorded) -> None:
    tracker.editing.open(recorded)
    with pytest.raises(ValueError):
        tracker.editing.update_field("total_time_ms", "1")


def test_save_for_missing_entry_keeps_store_intact(recorded) -> None:
    store = EntryStore(MemoryStorage())
    session = EditSession(store)
    session.open(recorded)

    with pytest.raises(EntryNotFound):
        session.save()

    assert store.all() == []
