from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from dataclasses import dataclass
from enum import Enum
from threading import RLock
from typing import Any, Callable, Dict, Optional

from .entries import EntryStore
from .exceptions import InvalidTransition
from .schemas import TASK_FIELDS, TimeEntry
from .state import UserProfile
from .ticker import SegmentTicker
from .utils import Clock, day_key, elapsed_ms, epoch_ms, format_clock_time, format_duration, is_blank, new_identifier, today_key


logger = logging.getLogger(__name__)


class TrackingStatus(str, Enum):
    READY = "Ready"
    FIRST_ENTRY_TRACKING = "FirstEntryTracking"
    READY_FOR_SECOND_ENTRY = "ReadyForSecondEntry"
    SECOND_ENTRY_TRACKING = "SecondEntryTracking"

    @property
    def is_tracking(self) -> bool:
        return self in (TrackingStatus.FIRST_ENTRY_TRACKING, TrackingStatus.SECOND_ENTRY_TRACKING)


@dataclass(slots=True)
class CurrentTask:
    """Draft task and timing data of the open session."""

    initial_start_time: Optional[dt.datetime] = None
    last_segment_start_time: Optional[dt.datetime] = None
    accumulated_time_ms: int = 0
    task_details: str = ""
    project_name: str = ""
    client_name: str = ""

    @property
    def is_valid(self) -> bool:
        return not any(is_blank(getattr(self, field)) for field in TASK_FIELDS)


def initial_status(entry_count_today: int) -> TrackingStatus:
    if entry_count_today == 1:
        return TrackingStatus.READY_FOR_SECOND_ENTRY
    return TrackingStatus.READY


class TrackingSession:
    """State machine for the two tracked entries of a day.

    ``Ready -> FirstEntryTracking`` via :meth:`start`, ``-> ReadyForSecondEntry``
    via :meth:`pause`, ``-> SecondEntryTracking`` via :meth:`resume` and back to
    ``Ready`` via :meth:`end`. A transition whose guard is unmet leaves the
    state untouched and returns ``False``/``None``.
    """

    def __init__(
        self,
        store: EntryStore,
        profile: UserProfile,
        clock: Clock,
        ticker: SegmentTicker,
        *,
        max_entries_per_day: int = 2,
        id_factory: Callable[[], str] = new_identifier,
    ) -> None:
        self._lock = RLock()
        self._store = store
        self._profile = profile
        self._clock = clock
        self._ticker = ticker
        self._id_factory = id_factory
        self.max_entries_per_day = max_entries_per_day
        self._task = CurrentTask()
        self._status = initial_status(self.today_entry_count)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    @property
    def status(self) -> TrackingStatus:
        with self._lock:
            return self._status

    @property
    def current_task(self) -> CurrentTask:
        with self._lock:
            return dataclasses.replace(self._task)

    @property
    def current_segment_elapsed_ms(self) -> int:
        return self._ticker.elapsed_ms

    @property
    def total_time_elapsed(self) -> int:
        with self._lock:
            return self._task.accumulated_time_ms + self.current_segment_elapsed_ms

    @property
    def timer_display(self) -> str:
        return format_duration(self.total_time_elapsed)

    @property
    def today_entry_count(self) -> int:
        return self._store.count_for_day(today_key(self._clock))

    @property
    def is_form_valid(self) -> bool:
        with self._lock:
            return self._task.is_valid

    @property
    def is_start_allowed(self) -> bool:
        return self.is_form_valid and self.today_entry_count < self.max_entries_per_day

    # ------------------------------------------------------------------
    # Draft
    # ------------------------------------------------------------------
    def update_task_field(self, field: str, value: str) -> None:
        if field not in TASK_FIELDS:
            raise ValueError(f"Unknown task field: {field}")
        with self._lock:
            setattr(self._task, field, value)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(self) -> bool:
        with self._lock:
            if self._status is not TrackingStatus.READY or not self.is_start_allowed:
                self._reject("start")
                return False
            self._begin(TrackingStatus.FIRST_ENTRY_TRACKING)
            return True

    def pause(self) -> Optional[TimeEntry]:
        with self._lock:
            if self._status is not TrackingStatus.FIRST_ENTRY_TRACKING:
                self._reject("pause")
                return None
            return self._finalize(TrackingStatus.READY_FOR_SECOND_ENTRY)

    def resume(self) -> bool:
        with self._lock:
            if self._status is not TrackingStatus.READY_FOR_SECOND_ENTRY or not self._task.is_valid:
                self._reject("resume")
                return False
            self._begin(TrackingStatus.SECOND_ENTRY_TRACKING)
            return True

    def end(self) -> Optional[TimeEntry]:
        with self._lock:
            if self._status is not TrackingStatus.SECOND_ENTRY_TRACKING:
                self._reject("end")
                return None
            return self._finalize(TrackingStatus.READY)

    def snapshot(self) -> Dict[str, Any]:
        """Status, draft and timing read under one lock acquisition."""
        with self._lock:
            task = self._task
            today = today_key(self._clock)
            count = self._store.count_for_day(today)
            elapsed = task.accumulated_time_ms + self._ticker.elapsed_ms
            return {
                "status": self._status.value,
                "today": today,
                "today_entry_count": count,
                "is_form_valid": task.is_valid,
                "is_start_allowed": task.is_valid and count < self.max_entries_per_day,
                "total_time_elapsed_ms": elapsed,
                "timer_display": format_duration(elapsed),
                "current_task": {
                    "task_details": task.task_details,
                    "project_name": task.project_name,
                    "client_name": task.client_name,
                    "initial_start_time": task.initial_start_time,
                    "last_segment_start_time": task.last_segment_start_time,
                    "accumulated_time_ms": task.accumulated_time_ms,
                },
            }

    def close(self) -> None:
        """Cancel the display tick on teardown."""
        self._ticker.stop()

    # ------------------------------------------------------------------
    def _begin(self, next_status: TrackingStatus) -> None:
        now = self._clock.now()
        self._task.initial_start_time = now
        self._task.last_segment_start_time = now
        self._task.accumulated_time_ms = 0
        self._status = next_status
        self._ticker.start()
        logger.info("Tracking started (%s)", next_status.value)

    def _finalize(self, next_status: TrackingStatus) -> TimeEntry:
        self._ticker.stop()
        now = self._clock.now()
        task = self._task
        if task.last_segment_start_time is not None:
            task.accumulated_time_ms += elapsed_ms(task.last_segment_start_time, now)
            task.last_segment_start_time = None
        started = task.initial_start_time or now
        profile = self._profile.snapshot()
        entry = TimeEntry(
            id=self._id_factory(),
            date=day_key(started),
            employee_id=profile["employee_id"],
            employee_name=profile["user_name"],
            shift_time=profile["shift_time"],
            start_time=format_clock_time(started),
            end_time=format_clock_time(now),
            total_time_ms=task.accumulated_time_ms,
            task_details=task.task_details,
            project_name=task.project_name,
            client_name=task.client_name,
            created_at=epoch_ms(now),
        )
        self._store.insert(entry)
        self._task = CurrentTask()
        self._status = next_status
        logger.info(
            "Finalized entry %s (%s) -> %s", entry.id, entry.total_time_display, next_status.value
        )
        return entry

    def _reject(self, action: str) -> None:
        logger.info("Ignored: %s", InvalidTransition(action, self._status.value))
