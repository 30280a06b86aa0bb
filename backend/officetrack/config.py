from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")
    """Application runtime configuration."""

    app_name: str = "OfficeTrack"
    environment: str = "development"
    host: str = os.getenv("OT_HOST", "127.0.0.1")
    port: int = int(os.getenv("OT_PORT", "8080"))

    sqlite_path: Path = Path(os.getenv("OT_SQLITE_PATH", "./data/officetrack.db"))
    export_dir: Path = Path(os.getenv("OT_EXPORT_DIR", "./data/exports"))

    # unset means the system local time
    timezone: Optional[str] = os.getenv("OT_TIMEZONE") or os.getenv("TZ") or None

    default_user_name: str = os.getenv("OT_USER_NAME", "Employee Name Here")
    default_employee_id: str = os.getenv("OT_EMPLOYEE_ID", "EMP0001")
    default_shift_time: str = os.getenv("OT_SHIFT_TIME", "11:00 AM - 08:00 PM")

    max_entries_per_day: int = int(os.getenv("OT_MAX_ENTRIES_PER_DAY", "2"))
    tick_interval_seconds: float = float(os.getenv("OT_TICK_INTERVAL", "1.0"))
    acknowledgment_seconds: float = float(os.getenv("OT_ACK_SECONDS", "2.0"))

    log_level: str = os.getenv("OT_LOG_LEVEL", "INFO")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return str(value or "INFO").upper()

    @field_validator("max_entries_per_day")
    @classmethod
    def _positive_limit(cls, value: int) -> int:
        return max(1, int(value))


settings = Settings()

# Ensure essential directories exist
settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
settings.export_dir.mkdir(parents=True, exist_ok=True)
