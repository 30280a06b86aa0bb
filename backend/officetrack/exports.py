from __future__ import annotations

from pathlib import Path
from typing import Iterable

from openpyxl import Workbook

from .clipboard import TABLE_HEADERS
from .entries import EntryStore
from .schemas import TimeEntry


XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def export_entries_xlsx(entries: Iterable[TimeEntry], path: Path) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.title = "Entries"
    ws.append(list(TABLE_HEADERS))
    for entry in entries:
        ws.append(
            [
                entry.date,
                entry.employee_id,
                entry.employee_name,
                entry.shift_time,
                entry.start_time,
                entry.end_time,
                entry.total_time_display,
                entry.task_details,
                entry.project_name,
                entry.client_name,
            ]
        )
    wb.save(path)
    return path


def export_day(store: EntryStore, day: str, export_dir: Path) -> Path:
    """Write the day's entries to ``entries_<day>.xlsx``, replacing any earlier export."""
    export_dir.mkdir(parents=True, exist_ok=True)
    filename = f"entries_{day}.xlsx"
    return export_entries_xlsx(store.entries_for_day(day, order="asc"), export_dir / filename)
