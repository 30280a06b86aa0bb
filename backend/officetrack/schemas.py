from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional

from typing_extensions import Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, computed_field, field_validator
from pydantic.alias_generators import to_camel

from .utils import DAY_KEY_FORMAT, format_duration


EDITABLE_FIELDS = ("shift_time", "task_details", "project_name", "client_name")
TASK_FIELDS = ("task_details", "project_name", "client_name")


class TimeEntry(BaseModel):
    """A finalized tracking session.

    Serialized with the camelCase record names used by the storage blob.
    ``totalTimeDisplay`` is always derived from ``totalTimeMs``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str
    date: str
    employee_id: str = ""
    employee_name: str = ""
    shift_time: str = ""
    start_time: str = ""
    end_time: str = ""
    total_time_ms: int = Field(ge=0)
    task_details: str = ""
    project_name: str = ""
    client_name: str = ""
    created_at: int

    @field_validator("date")
    @classmethod
    def _validate_day_key(cls, value: str) -> str:
        dt.datetime.strptime(value, DAY_KEY_FORMAT)
        return value

    @computed_field(alias="totalTimeDisplay")  # type: ignore[misc]
    @property
    def total_time_display(self) -> str:
        return format_duration(self.total_time_ms)

    def with_changes(self, patch: Dict[str, str]) -> "TimeEntry":
        unknown = set(patch) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        return self.model_copy(update=patch)


TimeEntryList = TypeAdapter(List[TimeEntry])


class ProfileResponse(BaseModel):
    user_id: str
    user_name: str
    employee_id: str
    shift_time: str


class ProfileUpdateRequest(BaseModel):
    user_name: Optional[str] = None
    employee_id: Optional[str] = None


class TaskDraftUpdateRequest(BaseModel):
    task_details: Optional[str] = None
    project_name: Optional[str] = None
    client_name: Optional[str] = None


class EditDraftUpdateRequest(TaskDraftUpdateRequest):
    shift_time: Optional[str] = None


class TaskDraftResponse(BaseModel):
    task_details: str
    project_name: str
    client_name: str
    initial_start_time: Optional[dt.datetime]
    last_segment_start_time: Optional[dt.datetime]
    accumulated_time_ms: int


class EditSessionResponse(BaseModel):
    entry_id: Optional[str]
    shift_time: str = ""
    task_details: str = ""
    project_name: str = ""
    client_name: str = ""
    is_valid: bool = False


class StatusResponse(BaseModel):
    status: str
    today: str
    today_entry_count: int
    is_form_valid: bool
    is_start_allowed: bool
    total_time_elapsed_ms: int
    timer_display: str
    current_task: TaskDraftResponse
    copied_entry_id: Optional[str] = None
    copied_all: bool = False


class CopyResponse(BaseModel):
    text: str
    copied: bool


EntryOrder = Literal["asc", "desc"]
