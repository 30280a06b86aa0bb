from __future__ import annotations

import logging
from threading import RLock
from typing import Dict, List

from pydantic import ValidationError

from .exceptions import EntryNotFound, PersistenceFailure
from .schemas import EntryOrder, TimeEntry, TimeEntryList
from .storage import TIME_ENTRIES_KEY, KeyValueStorage


logger = logging.getLogger(__name__)


class EntryStore:
    """Ordered collection of finalized time entries.

    Entries are kept sorted by ``created_at`` descending. Every mutation is
    written through to the storage collaborator; storage failures are logged
    and the in-memory collection stays authoritative.
    """

    def __init__(self, storage: KeyValueStorage, key: str = TIME_ENTRIES_KEY) -> None:
        self._storage = storage
        self._key = key
        self._lock = RLock()
        self._entries: List[TimeEntry] = []

    @classmethod
    def load(cls, storage: KeyValueStorage, key: str = TIME_ENTRIES_KEY) -> "EntryStore":
        store = cls(storage, key)
        store.reload()
        return store

    def reload(self) -> None:
        with self._lock:
            self._entries = self._read()

    def _read(self) -> List[TimeEntry]:
        try:
            raw = self._storage.get_item(self._key)
        except Exception:
            logger.exception("%s", PersistenceFailure(self._key, "Could not read time entries"))
            return []
        if not raw:
            return []
        try:
            entries = TimeEntryList.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding malformed time entries under '%s': %s", self._key, exc)
            return []
        return sorted(entries, key=lambda entry: entry.created_at, reverse=True)

    def _persist(self) -> None:
        payload = TimeEntryList.dump_json(self._entries, by_alias=True).decode("utf-8")
        try:
            self._storage.set_item(self._key, payload)
        except Exception:
            logger.exception("%s", PersistenceFailure(self._key, "Could not write time entries"))

    def _sort(self) -> None:
        self._entries.sort(key=lambda entry: entry.created_at, reverse=True)

    def insert(self, entry: TimeEntry) -> TimeEntry:
        with self._lock:
            self._entries.insert(0, entry)
            self._sort()
            self._persist()
        logger.debug("Stored time entry %s for %s", entry.id, entry.date)
        return entry

    def update(self, entry_id: str, patch: Dict[str, str]) -> TimeEntry:
        with self._lock:
            for index, entry in enumerate(self._entries):
                if entry.id == entry_id:
                    updated = entry.with_changes(patch)
                    self._entries[index] = updated
                    self._sort()
                    self._persist()
                    return updated
        raise EntryNotFound(entry_id)

    def get(self, entry_id: str) -> TimeEntry:
        with self._lock:
            for entry in self._entries:
                if entry.id == entry_id:
                    return entry
        raise EntryNotFound(entry_id)

    def all(self) -> List[TimeEntry]:
        with self._lock:
            return list(self._entries)

    def count_for_day(self, day: str) -> int:
        with self._lock:
            return sum(1 for entry in self._entries if entry.date == day)

    def entries_for_day(self, day: str, order: EntryOrder = "desc") -> List[TimeEntry]:
        with self._lock:
            matching = [entry for entry in self._entries if entry.date == day]
        if order == "asc":
            matching.reverse()
        return matching

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
