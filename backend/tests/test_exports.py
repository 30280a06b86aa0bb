from __future__ import annotations

from openpyxl import load_workbook

from officetrack.clipboard import TABLE_HEADERS


def test_export_day_writes_todays_entries_in_order(tracker, clock, fill_draft, test_settings) -> None:
    fill_draft(tracker, details="Morning")
    tracker.tracking.start()
    clock.advance(minutes=30)
    tracker.tracking.pause()

    fill_draft(tracker, details="Afternoon")
    tracker.tracking.resume()
    clock.advance(hours=1, seconds=5)
    tracker.tracking.end()

    path = tracker.export_day()

    assert path.parent == test_settings.export_dir
    assert path.name == "entries_2024-03-04.xlsx"
    ws = load_workbook(path)["Entries"]
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0] == TABLE_HEADERS
    assert [row[7] for row in rows[1:]] == ["Morning", "Afternoon"]
    assert [row[6] for row in rows[1:]] == ["00:30:00", "01:00:05"]
    assert rows[1][1] == "EMP0042"


def test_export_other_day_is_empty(tracker) -> None:
    path = tracker.export_day("2024-01-01")
    rows = list(load_workbook(path)["Entries"].iter_rows(values_only=True))
    assert len(rows) == 1


def test_repeated_export_replaces_the_day_file(tracker, clock, fill_draft, test_settings) -> None:
    first = tracker.export_day()
    fill_draft(tracker)
    tracker.tracking.start()
    clock.advance(minutes=5)
    tracker.tracking.pause()

    second = tracker.export_day()

    assert second == first
    assert sorted(p.name for p in test_settings.export_dir.iterdir()) == ["entries_2024-03-04.xlsx"]
    rows = list(load_workbook(second)["Entries"].iter_rows(values_only=True))
    assert len(rows) == 2
