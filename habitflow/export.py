import csv
import io
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from fncli import cli

from .achievements import get_achievements
from .core.errors import StorageError, ValidationError
from .habits import get_completions, get_habits
from .lib.converters import (
    achievement_to_payload,
    completion_to_payload,
    format_datetime,
    habit_to_payload,
    mood_entry_to_payload,
    session_to_payload,
)
from .lib.format import emit
from .mood import get_mood_entries
from .pomodoro import get_pomodoro_sessions
from .settings import get_settings

CSV_HEADERS = ("Name", "Description", "Icon", "Frequency", "Target", "Created")


def export_data() -> dict[str, Any]:
    """Every record kind in the shape the UI's JSON backup uses."""
    return {
        "exportDate": datetime.now(UTC).isoformat(),
        "habits": [habit_to_payload(h) for h in get_habits()],
        "completions": [completion_to_payload(c) for c in get_completions()],
        "moodEntries": [mood_entry_to_payload(e) for e in get_mood_entries()],
        "pomodoroSessions": [session_to_payload(s) for s in get_pomodoro_sessions()],
        "achievements": [achievement_to_payload(a) for a in get_achievements()],
        "settings": get_settings(),
    }


def export_habits_csv() -> str:
    """Habits only, one row each, newest first."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for h in get_habits():
        writer.writerow(
            [h.name, h.description or "", h.icon, h.frequency, h.target_count, format_datetime(h.created_at)]
        )
    return buf.getvalue()


@cli("habitflow", name="export")
def export(path: str | None = None, format: str = "json") -> None:  # noqa: A002
    """Export all data as JSON, or habits as CSV (stdout, or --path FILE)"""
    if format == "json":
        text = json.dumps(export_data(), ensure_ascii=False, indent=2)
    elif format == "csv":
        text = export_habits_csv()
    else:
        raise ValidationError(f"unknown export format '{format}' (expected json, csv)")
    if path is None:
        print(text.rstrip("\n"))
        return
    target = Path(path).expanduser()
    try:
        target.write_text(text, encoding="utf-8")
    except OSError as e:
        raise StorageError(f"cannot write export to {target}: {e}") from e
    emit({"path": str(target), "format": format})
