from __future__ import annotations

import datetime as dt
import logging
import re
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from threading import RLock
from typing import Callable, Iterable, List, Optional, Protocol, Tuple

from .entries import EntryStore
from .exceptions import ClipboardFailure
from .schemas import TimeEntry
from .utils import Clock, today_key


logger = logging.getLogger(__name__)


TABLE_HEADERS = (
    "Date",
    "Employee ID",
    "Employee Name",
    "Shift Time",
    "Start Time",
    "End Time",
    "Total Time",
    "Task Details",
    "Project Name",
    "Client Name",
)

_CONTROL_WHITESPACE = re.compile(r"[\t\n\r]")


class ClipboardSink(Protocol):
    def write_text(self, text: str) -> None: ...


class MemoryClipboard:
    """Keeps the last written text; the HTTP client places it on the system clipboard."""

    def __init__(self) -> None:
        self._lock = RLock()
        self.text: Optional[str] = None

    def write_text(self, text: str) -> None:
        with self._lock:
            self.text = text


def _single_line(value: str) -> str:
    return _CONTROL_WHITESPACE.sub(" ", value)


def format_entry_block(entry: TimeEntry) -> str:
    return "\n".join(
        [
            f"Date: {entry.date}",
            f"Employee ID: {entry.employee_id}",
            f"Employee Name: {entry.employee_name}",
            f"Shift Time: {entry.shift_time}",
            f"Start Time: {entry.start_time}",
            f"End Time: {entry.end_time}",
            f"Total Time: {entry.total_time_display}",
            f"Project: {entry.project_name}",
            f"Client: {entry.client_name}",
            f"Task: {entry.task_details}",
        ]
    )


def format_entries_table(entries: Iterable[TimeEntry]) -> str:
    rows: List[str] = ["\t".join(TABLE_HEADERS)]
    for entry in entries:
        rows.append(
            "\t".join(
                [
                    entry.date,
                    entry.employee_id,
                    entry.employee_name,
                    entry.shift_time,
                    entry.start_time,
                    entry.end_time,
                    entry.total_time_display,
                    _single_line(entry.task_details),
                    _single_line(entry.project_name),
                    _single_line(entry.client_name),
                ]
            )
        )
    return "\n".join(rows)


class _Acknowledgment:
    def __init__(self, clock: Clock, ttl_seconds: float) -> None:
        self._clock = clock
        self._ttl = dt.timedelta(seconds=ttl_seconds)
        self._lock = RLock()
        self._value: Optional[object] = None
        self._expires_at: Optional[dt.datetime] = None

    def set(self, value: object) -> None:
        with self._lock:
            self._value = value
            self._expires_at = self._clock.now() + self._ttl

    def get(self) -> Optional[object]:
        with self._lock:
            if self._expires_at is None or self._clock.now() >= self._expires_at:
                return None
            return self._value


class CopyService:
    """Copies entries to a clipboard sink without blocking the caller.

    Writes run on an executor and return a ``Future[bool]``. Success only
    sets a short-lived acknowledgment flag; failures are logged.
    """

    def __init__(
        self,
        store: EntryStore,
        sink: ClipboardSink,
        clock: Clock,
        *,
        acknowledgment_seconds: float = 2.0,
        executor: Optional[Executor] = None,
    ) -> None:
        self._store = store
        self._sink = sink
        self._clock = clock
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="officetrack-clipboard")
        self._owns_executor = executor is None
        self._copied_entry = _Acknowledgment(clock, acknowledgment_seconds)
        self._copied_all = _Acknowledgment(clock, acknowledgment_seconds)

    @property
    def copied_entry_id(self) -> Optional[str]:
        value = self._copied_entry.get()
        return str(value) if value is not None else None

    @property
    def copied_all(self) -> bool:
        return bool(self._copied_all.get())

    def copy_entry(self, entry: TimeEntry) -> Tuple[str, "Future[bool]"]:
        text = format_entry_block(entry)
        return text, self._submit(text, lambda: self._copied_entry.set(entry.id))

    def copy_all_entries(self) -> Optional[Tuple[str, "Future[bool]"]]:
        entries = self._store.entries_for_day(today_key(self._clock), order="asc")
        if not entries:
            logger.debug("No entries today, nothing to copy")
            return None
        text = format_entries_table(entries)
        return text, self._submit(text, lambda: self._copied_all.set(True))

    def _submit(self, text: str, on_success: Callable[[], None]) -> "Future[bool]":
        return self._executor.submit(self._write, text, on_success)

    def _write(self, text: str, on_success: Callable[[], None]) -> bool:
        try:
            self._sink.write_text(text)
        except ClipboardFailure as exc:
            logger.warning("Failed to copy to clipboard: %s", exc)
            return False
        except Exception:
            logger.exception("Clipboard sink raised unexpectedly")
            return False
        on_success()
        return True

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
