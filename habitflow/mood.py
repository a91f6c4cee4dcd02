from fncli import cli

from . import db
from .core.errors import StorageError, ValidationError
from .core.models import MoodEntry, MoodUpdate, present_fields
from .core.types import MOOD_LEVELS
from .lib.converters import (
    encode_tags,
    format_datetime,
    mood_entry_to_payload,
    parse_json_payload,
    payload_to_mood_entry,
    payload_to_mood_update,
    row_to_mood_entry,
)
from .lib.format import emit
from .lib.updates import set_clause

_MOOD_COLS = "id, mood_level, emoji, journal, tags, created_at"


def _check_level(level: int) -> None:
    if level not in MOOD_LEVELS:
        raise ValidationError(f"mood level must be {MOOD_LEVELS.start}-{MOOD_LEVELS.stop - 1}")


def get_mood_entries() -> list[MoodEntry]:
    with db.get_db() as conn:
        rows = conn.execute(
            f"SELECT {_MOOD_COLS} FROM mood_entries ORDER BY created_at DESC"  # noqa: S608
        ).fetchall()
    try:
        return [row_to_mood_entry(row) for row in rows]
    except (TypeError, ValueError) as e:
        raise StorageError(f"malformed mood row: {e}") from e


def add_mood_entry(entry: MoodEntry) -> None:
    if not entry.id:
        raise ValidationError("mood entry id cannot be empty")
    if not entry.emoji:
        raise ValidationError("mood emoji cannot be empty")
    _check_level(entry.mood_level)
    with db.get_db() as conn:
        conn.execute(
            f"INSERT INTO mood_entries ({_MOOD_COLS}) VALUES (?, ?, ?, ?, ?, ?)",  # noqa: S608
            (
                entry.id,
                entry.mood_level,
                entry.emoji,
                entry.journal,
                encode_tags(entry.tags),
                format_datetime(entry.created_at),
            ),
        )


def update_mood_entry(entry_id: str, update: MoodUpdate) -> bool:
    fields = present_fields(update)
    if not fields:
        return False
    if "emoji" in fields and not fields["emoji"]:
        raise ValidationError("mood emoji cannot be empty")
    if "mood_level" in fields:
        _check_level(fields["mood_level"])  # type: ignore[arg-type]
    if "tags" in fields:
        fields["tags"] = encode_tags(fields["tags"])  # type: ignore[arg-type]
    clause, params = set_clause(fields)
    with db.get_db() as conn:
        cursor = conn.execute(
            f"UPDATE mood_entries SET {clause} WHERE id = ?",  # noqa: S608
            (*params, entry_id),
        )
        return cursor.rowcount > 0


def delete_mood_entry(entry_id: str) -> bool:
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM mood_entries WHERE id = ?", (entry_id,))
        return cursor.rowcount > 0


@cli("habitflow mood", name="ls")
def ls():
    """List mood entries, newest first"""
    emit([mood_entry_to_payload(e) for e in get_mood_entries()])


@cli("habitflow mood", name="add")
def add(payload: str):
    """Log a mood entry from a JSON object"""
    entry = payload_to_mood_entry(parse_json_payload(payload))
    add_mood_entry(entry)
    emit(mood_entry_to_payload(entry))


@cli("habitflow mood", name="update")
def update(entry_id: str, payload: str):
    """Update moodLevel, emoji, journal or tags from a JSON object"""
    updated = update_mood_entry(entry_id, payload_to_mood_update(parse_json_payload(payload)))
    emit({"id": entry_id, "updated": updated})


@cli("habitflow mood", name="rm")
def rm(entry_id: str):
    """Delete a mood entry"""
    emit({"id": entry_id, "deleted": delete_mood_entry(entry_id)})
