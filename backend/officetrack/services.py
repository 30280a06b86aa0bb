from __future__ import annotations

import logging
from concurrent.futures import Executor
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .clipboard import ClipboardSink, CopyService, MemoryClipboard
from .config import Settings, settings
from .database import SessionLocal
from .editing import EditSession
from .entries import EntryStore
from .exports import export_day
from .schemas import EntryOrder, TimeEntry
from .state import UserProfile, load_profile
from .storage import KeyValueStorage, SqlStorage
from .ticker import Scheduler, SegmentTicker, ThreadScheduler
from .tracking import CurrentTask, TrackingSession
from .utils import Clock, SystemClock, new_identifier, today_key


logger = logging.getLogger(__name__)


class OfficeTracker:
    """One tracking process: profile, entry store, state machine, edit and copy."""

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Clock,
        scheduler: Scheduler,
        clipboard: ClipboardSink,
        *,
        base_settings: Settings = settings,
        id_factory: Callable[[], str] = new_identifier,
        executor: Optional[Executor] = None,
    ) -> None:
        self.settings = base_settings
        self.storage = storage
        self.clock = clock
        self.clipboard = clipboard
        self.profile: UserProfile = load_profile(base_settings, storage, id_factory)
        self.entries = EntryStore.load(storage)
        self.ticker = SegmentTicker(scheduler, base_settings.tick_interval_seconds)
        self.tracking = TrackingSession(
            self.entries,
            self.profile,
            clock,
            self.ticker,
            max_entries_per_day=base_settings.max_entries_per_day,
            id_factory=id_factory,
        )
        self.editing = EditSession(self.entries)
        self.copies = CopyService(
            self.entries,
            clipboard,
            clock,
            acknowledgment_seconds=base_settings.acknowledgment_seconds,
            executor=executor,
        )
        logger.info(
            "Loaded %d time entries, status %s", len(self.entries), self.tracking.status.value
        )

    def today(self) -> str:
        return today_key(self.clock)

    def update_profile(self, updates: Dict[str, Any]) -> Dict[str, str]:
        return self.profile.update(self.storage, updates)

    def update_task(self, updates: Dict[str, Optional[str]]) -> CurrentTask:
        for field, value in updates.items():
            if value is not None:
                self.tracking.update_task_field(field, value)
        return self.tracking.current_task

    def list_entries(self, day: Optional[str] = None, order: EntryOrder = "desc") -> List[TimeEntry]:
        return self.entries.entries_for_day(day or self.today(), order)

    def open_edit(self, entry_id: str) -> Dict[str, str]:
        return self.editing.open(self.entries.get(entry_id))

    def update_edit(self, updates: Dict[str, Optional[str]]) -> Dict[str, str]:
        for field, value in updates.items():
            if value is not None:
                self.editing.update_field(field, value)
        return self.editing.draft

    def copy_entry(self, entry_id: str) -> Tuple[str, bool]:
        text, future = self.copies.copy_entry(self.entries.get(entry_id))
        return text, future.result()

    def copy_all_entries(self) -> Optional[Tuple[str, bool]]:
        result = self.copies.copy_all_entries()
        if result is None:
            return None
        text, future = result
        return text, future.result()

    def export_day(self, day: Optional[str] = None) -> Path:
        return export_day(self.entries, day or self.today(), self.settings.export_dir)

    def status_snapshot(self) -> Dict[str, Any]:
        snapshot = self.tracking.snapshot()
        return {
            **snapshot,
            "copied_entry_id": self.copies.copied_entry_id,
            "copied_all": self.copies.copied_all,
        }

    def close(self) -> None:
        self.tracking.close()
        self.editing.close()
        self.copies.shutdown()


def build_tracker(base_settings: Settings = settings) -> OfficeTracker:
    return OfficeTracker(
        SqlStorage(SessionLocal),
        SystemClock(),
        ThreadScheduler(),
        MemoryClipboard(),
        base_settings=base_settings,
    )
