from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Callable, Dict, Optional

from .config import Settings
from .exceptions import PersistenceFailure
from .storage import EMPLOYEE_ID_KEY, USER_ID_KEY, USER_NAME_KEY, KeyValueStorage
from .utils import new_identifier


logger = logging.getLogger(__name__)


PROFILE_KEYS = {
    "user_name": USER_NAME_KEY,
    "employee_id": EMPLOYEE_ID_KEY,
}


class UserProfile:
    """Mutable user profile that can be adjusted at runtime."""

    def __init__(self, base_settings: Settings, user_id: str = "") -> None:
        self._lock = RLock()
        self.user_id: str = user_id
        self.user_name: str = base_settings.default_user_name
        self.employee_id: str = base_settings.default_employee_id
        self.shift_time: str = base_settings.default_shift_time

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return {
                "user_id": self.user_id,
                "user_name": self.user_name,
                "employee_id": self.employee_id,
                "shift_time": self.shift_time,
            }

    def apply(self, updates: Dict[str, Any]) -> None:
        with self._lock:
            if "user_name" in updates and updates["user_name"] is not None:
                self.user_name = str(updates["user_name"])
            if "employee_id" in updates and updates["employee_id"] is not None:
                self.employee_id = str(updates["employee_id"])

    def load(self, storage: KeyValueStorage, id_factory: Callable[[], str] = new_identifier) -> None:
        decoded: Dict[str, Any] = {}
        try:
            user_id = storage.get_item(USER_ID_KEY)
            for field, key in PROFILE_KEYS.items():
                value = storage.get_item(key)
                if value:
                    decoded[field] = value
        except Exception:
            logger.exception("%s", PersistenceFailure(USER_ID_KEY, "Could not read user profile"))
            user_id = None
        if not user_id:
            user_id = id_factory()
            self._write(storage, USER_ID_KEY, user_id)
        with self._lock:
            self.user_id = user_id
        if decoded:
            self.apply(decoded)

    def persist(self, storage: KeyValueStorage, updates: Dict[str, Any]) -> None:
        for field, value in updates.items():
            key = PROFILE_KEYS.get(field)
            if key is None or value is None:
                continue
            self._write(storage, key, str(value))

    def update(self, storage: KeyValueStorage, updates: Dict[str, Any]) -> Dict[str, str]:
        self.apply(updates)
        self.persist(storage, updates)
        return self.snapshot()

    @staticmethod
    def _write(storage: KeyValueStorage, key: str, value: str) -> None:
        try:
            storage.set_item(key, value)
        except Exception:
            logger.exception("%s", PersistenceFailure(key, "Could not write user profile"))


def load_profile(
    base_settings: Settings,
    storage: KeyValueStorage,
    id_factory: Optional[Callable[[], str]] = None,
) -> UserProfile:
    profile = UserProfile(base_settings)
    profile.load(storage, id_factory or new_identifier)
    return profile
