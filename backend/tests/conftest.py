from __future__ import annotations

import datetime as dt
import os
from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Callable, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("OT_TIMEZONE", "Europe/Berlin")

from officetrack.config import Settings, settings
from officetrack.exceptions import ClipboardFailure
from officetrack.main import create_app
from officetrack.services import OfficeTracker
from officetrack.storage import MemoryStorage
from officetrack.utils import LOCAL_TZ


class FakeClock:
    def __init__(self, current: dt.datetime) -> None:
        self.current = current

    def now(self) -> dt.datetime:
        return self.current

    def advance(self, **kwargs: float) -> dt.datetime:
        self.current += dt.timedelta(**kwargs)
        return self.current

    def set(self, value: dt.datetime) -> None:
        self.current = value


class ManualHandle:
    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self.callback = callback
        self.cancel_count = 0

    @property
    def cancelled(self) -> bool:
        return self.cancel_count > 0

    def cancel(self) -> None:
        self.cancel_count += 1


class ManualScheduler:
    def __init__(self) -> None:
        self.handles: List[ManualHandle] = []

    def call_every(self, interval: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(interval, callback)
        self.handles.append(handle)
        return handle

    @property
    def live(self) -> List[ManualHandle]:
        return [handle for handle in self.handles if not handle.cancelled]

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            for handle in self.live:
                handle.callback()


class RecordingClipboard:
    def __init__(self) -> None:
        self.writes: List[str] = []
        self.fail = False
        self.error: Optional[Exception] = None

    def write_text(self, text: str) -> None:
        if self.error is not None:
            raise self.error
        if self.fail:
            raise ClipboardFailure("Clipboard access denied")
        self.writes.append(text)


class ImmediateExecutor(Executor):
    def submit(self, fn, /, *args, **kwargs):  # type: ignore[override]
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:  # pragma: no cover - surfaced through the future
            future.set_exception(exc)
        return future


class SequentialIds:
    def __init__(self, prefix: str = "id") -> None:
        self.prefix = prefix
        self.count = 0

    def __call__(self) -> str:
        self.count += 1
        return f"{self.prefix}-{self.count}"


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(dt.datetime(2024, 3, 4, 9, 0, 0, tzinfo=LOCAL_TZ))


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def clipboard() -> RecordingClipboard:
    return RecordingClipboard()


@pytest.fixture()
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture()
def test_settings(tmp_path: Path) -> Settings:
    return settings.model_copy(
        update={
            "export_dir": tmp_path / "exports",
            "default_user_name": "Dana Example",
            "default_employee_id": "EMP0042",
            "default_shift_time": "11:00 AM - 08:00 PM",
        }
    )


@pytest.fixture()
def make_tracker(
    storage: MemoryStorage,
    clock: FakeClock,
    scheduler: ManualScheduler,
    clipboard: RecordingClipboard,
    ids: SequentialIds,
    test_settings: Settings,
) -> Generator[Callable[[], OfficeTracker], None, None]:
    created: List[OfficeTracker] = []

    def factory() -> OfficeTracker:
        tracker = OfficeTracker(
            storage,
            clock,
            scheduler,
            clipboard,
            base_settings=test_settings,
            id_factory=ids,
            executor=ImmediateExecutor(),
        )
        created.append(tracker)
        return tracker

    yield factory
    for tracker in created:
        tracker.close()


@pytest.fixture()
def tracker(make_tracker: Callable[[], OfficeTracker]) -> OfficeTracker:
    return make_tracker()


@pytest.fixture()
def client(tracker: OfficeTracker) -> Generator[TestClient, None, None]:
    app = create_app(tracker)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def fill_draft() -> Callable[..., None]:
    def _fill(tracker: OfficeTracker, details: str = "Fix bug", project: str = "Alpha", client: str = "Acme") -> None:
        tracker.update_task({"task_details": details, "project_name": project, "client_name": client})

    return _fill
