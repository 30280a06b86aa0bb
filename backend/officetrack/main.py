from __future__ import annotations

import datetime as dt
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from .config import settings
from .exceptions import EntryNotFound, InvalidDraft, InvalidTransition
from .exports import XLSX_MEDIA_TYPE
from .schemas import (
    CopyResponse,
    EditDraftUpdateRequest,
    EditSessionResponse,
    EntryOrder,
    ProfileResponse,
    ProfileUpdateRequest,
    StatusResponse,
    TaskDraftUpdateRequest,
    TimeEntry,
)
from .services import OfficeTracker, build_tracker


router = APIRouter()


def _tracker(request: Request) -> OfficeTracker:
    return request.app.state.tracker


def _status(tracker: OfficeTracker) -> StatusResponse:
    return StatusResponse(**tracker.status_snapshot())


def _edit_state(tracker: OfficeTracker) -> EditSessionResponse:
    editing = tracker.editing
    entry = editing.entry
    return EditSessionResponse(
        entry_id=entry.id if entry else None,
        is_valid=editing.is_valid,
        **editing.draft,
    )


def _day(day: Optional[dt.date]) -> Optional[str]:
    return day.isoformat() if day else None


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/status", response_model=StatusResponse)
def get_status(request: Request) -> StatusResponse:
    return _status(_tracker(request))


@router.get("/profile", response_model=ProfileResponse)
def get_profile(request: Request) -> ProfileResponse:
    return ProfileResponse(**_tracker(request).profile.snapshot())


@router.put("/profile", response_model=ProfileResponse)
def update_profile(payload: ProfileUpdateRequest, request: Request) -> ProfileResponse:
    profile = _tracker(request).update_profile(payload.model_dump(exclude_unset=True))
    return ProfileResponse(**profile)


@router.patch("/task", response_model=StatusResponse)
def update_task(payload: TaskDraftUpdateRequest, request: Request) -> StatusResponse:
    tracker = _tracker(request)
    tracker.update_task(payload.model_dump(exclude_unset=True))
    return _status(tracker)


@router.post("/tracking/start", response_model=StatusResponse)
def tracking_start(request: Request) -> StatusResponse:
    tracker = _tracker(request)
    if not tracker.tracking.start():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(InvalidTransition("start", tracker.tracking.status.value)),
        )
    return _status(tracker)


@router.post("/tracking/pause", response_model=TimeEntry, status_code=status.HTTP_201_CREATED)
def tracking_pause(request: Request) -> TimeEntry:
    tracker = _tracker(request)
    entry = tracker.tracking.pause()
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(InvalidTransition("pause", tracker.tracking.status.value)),
        )
    return entry


@router.post("/tracking/resume", response_model=StatusResponse)
def tracking_resume(request: Request) -> StatusResponse:
    tracker = _tracker(request)
    if not tracker.tracking.resume():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(InvalidTransition("resume", tracker.tracking.status.value)),
        )
    return _status(tracker)


@router.post("/tracking/end", response_model=TimeEntry, status_code=status.HTTP_201_CREATED)
def tracking_end(request: Request) -> TimeEntry:
    tracker = _tracker(request)
    entry = tracker.tracking.end()
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(InvalidTransition("end", tracker.tracking.status.value)),
        )
    return entry


@router.get("/entries", response_model=list[TimeEntry])
def list_entries(
    request: Request,
    day: Optional[dt.date] = None,
    order: EntryOrder = "desc",
) -> list[TimeEntry]:
    return _tracker(request).list_entries(_day(day), order)


@router.get("/entries/export")
def export_entries(request: Request, day: Optional[dt.date] = None) -> FileResponse:
    path = _tracker(request).export_day(_day(day))
    return FileResponse(path, media_type=XLSX_MEDIA_TYPE, filename=path.name)


@router.post("/entries/copy", response_model=CopyResponse)
def copy_all_entries(request: Request) -> CopyResponse:
    result = _tracker(request).copy_all_entries()
    if result is None:
        return CopyResponse(text="", copied=False)
    text, copied = result
    return CopyResponse(text=text, copied=copied)


@router.post("/entries/{entry_id}/copy", response_model=CopyResponse)
def copy_entry(entry_id: str, request: Request) -> CopyResponse:
    try:
        text, copied = _tracker(request).copy_entry(entry_id)
    except EntryNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CopyResponse(text=text, copied=copied)


@router.post("/entries/{entry_id}/edit", response_model=EditSessionResponse)
def open_edit(entry_id: str, request: Request) -> EditSessionResponse:
    tracker = _tracker(request)
    try:
        tracker.open_edit(entry_id)
    except EntryNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _edit_state(tracker)


@router.get("/edit", response_model=EditSessionResponse)
def get_edit(request: Request) -> EditSessionResponse:
    return _edit_state(_tracker(request))


@router.patch("/edit", response_model=EditSessionResponse)
def update_edit(payload: EditDraftUpdateRequest, request: Request) -> EditSessionResponse:
    tracker = _tracker(request)
    try:
        tracker.update_edit(payload.model_dump(exclude_unset=True))
    except InvalidTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _edit_state(tracker)


@router.post("/edit/save", response_model=TimeEntry)
def save_edit(request: Request) -> TimeEntry:
    try:
        return _tracker(request).editing.save()
    except InvalidTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except InvalidDraft as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except EntryNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.delete("/edit", status_code=status.HTTP_204_NO_CONTENT)
def close_edit(request: Request) -> Response:
    _tracker(request).editing.close()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def create_app(tracker: Optional[OfficeTracker] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "tracker", None) is None:
            app.state.tracker = build_tracker()
        try:
            yield
        finally:
            app.state.tracker.close()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.tracker = tracker
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://127.0.0.1:5173", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()
