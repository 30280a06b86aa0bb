from __future__ import annotations

import logging
from threading import RLock
from typing import Dict, Optional

from .entries import EntryStore
from .exceptions import InvalidDraft, InvalidTransition, SessionAlreadyOpen
from .schemas import EDITABLE_FIELDS, TimeEntry
from .utils import is_blank


logger = logging.getLogger(__name__)


class EditSession:
    """Draft for changing the descriptive fields of a finalized entry.

    Only one entry is edited at a time. The tracking state is never touched.
    """

    def __init__(self, store: EntryStore) -> None:
        self._store = store
        self._lock = RLock()
        self._entry: Optional[TimeEntry] = None
        self._draft: Dict[str, str] = {}

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._entry is not None

    @property
    def entry(self) -> Optional[TimeEntry]:
        with self._lock:
            return self._entry

    @property
    def draft(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._draft)

    @property
    def is_valid(self) -> bool:
        with self._lock:
            if self._entry is None:
                return False
            return not any(is_blank(self._draft.get(field)) for field in EDITABLE_FIELDS)

    def open(self, entry: TimeEntry, *, replace: bool = True) -> Dict[str, str]:
        with self._lock:
            if self._entry is not None:
                if not replace:
                    raise SessionAlreadyOpen(f"Entry {self._entry.id} is already being edited")
                logger.debug("Closing edit of %s to edit %s", self._entry.id, entry.id)
            self._entry = entry
            self._draft = {field: getattr(entry, field) for field in EDITABLE_FIELDS}
            return dict(self._draft)

    def update_field(self, field: str, value: str) -> None:
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Field cannot be edited: {field}")
        with self._lock:
            if self._entry is None:
                raise InvalidTransition("update an edit draft", "closed")
            self._draft[field] = value

    def save(self) -> TimeEntry:
        with self._lock:
            if self._entry is None:
                raise InvalidTransition("save an edit", "closed")
            if not self.is_valid:
                raise InvalidDraft("Shift time, task details, project and client are required")
            updated = self._store.update(self._entry.id, dict(self._draft))
            logger.info("Saved edit of entry %s", updated.id)
            self.close()
            return updated

    def close(self) -> None:
        with self._lock:
            self._entry = None
            self._draft = {}
