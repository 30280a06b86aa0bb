"""Durable key-value storage used by the entry store and the user profile."""

from __future__ import annotations

from threading import RLock
from typing import Dict, Optional, Protocol

from sqlalchemy.orm import sessionmaker

from .database import db_session
from .models import StorageItem


USER_ID_KEY = "officetrack.user_id"
USER_NAME_KEY = "officetrack.user_name"
EMPLOYEE_ID_KEY = "officetrack.employee_id"
TIME_ENTRIES_KEY = "officetrack.time_entries"


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...


class SqlStorage:
    """Key-value storage backed by the ``storage_items`` table."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def get_item(self, key: str) -> Optional[str]:
        with db_session(self._session_factory) as session:
            record = session.get(StorageItem, key)
            return record.value if record is not None else None

    def set_item(self, key: str, value: str) -> None:
        with db_session(self._session_factory) as session:
            record = session.get(StorageItem, key)
            if record:
                record.value = value
            else:
                session.add(StorageItem(key=key, value=value))


class MemoryStorage:
    """Process-local storage, used when nothing has to survive a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._lock = RLock()
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value


__all__ = [
    "EMPLOYEE_ID_KEY",
    "KeyValueStorage",
    "MemoryStorage",
    "SqlStorage",
    "TIME_ENTRIES_KEY",
    "USER_ID_KEY",
    "USER_NAME_KEY",
]
