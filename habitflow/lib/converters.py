import json
from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any, cast

from habitflow.core.errors import ValidationError
from habitflow.core.models import (
    Achievement,
    Habit,
    HabitCompletion,
    HabitUpdate,
    MoodEntry,
    MoodUpdate,
    PomodoroSession,
)

Row = tuple[object, ...]
Payload = Mapping[str, Any]


# ── column codecs ────────────────────────────────────────────────────────────


def _parse_datetime(val) -> datetime:
    """Parse a datetime value that may be str or numeric timestamp."""
    if isinstance(val, (int, float)):
        return datetime.fromtimestamp(val)
    if isinstance(val, str) and val:
        try:
            return datetime.fromisoformat(val)
        except ValueError:
            return datetime.combine(date.fromisoformat(val), datetime.min.time())
    return datetime.min


def _parse_datetime_optional(val) -> datetime | None:
    if val is None or val == "":
        return None
    return _parse_datetime(val)


def format_datetime(val: datetime | None) -> str | None:
    """Stored timestamps are UTC so the text sorts chronologically; naive values count as UTC."""
    if val is None:
        return None
    if val.tzinfo is None:
        return val.replace(tzinfo=UTC).isoformat()
    return val.astimezone(UTC).isoformat()


def decode_bool(val: object) -> bool:
    """Two-state integer column; any nonzero value is true."""
    return bool(val)


def encode_tags(tags: list[str]) -> str:
    return json.dumps(list(tags))


def decode_tags(val: object) -> list[str]:
    """Missing or unreadable tag columns decode to an empty list."""
    if not isinstance(val, str) or not val:
        return []
    try:
        decoded = json.loads(val)
    except ValueError:
        return []
    if not isinstance(decoded, list) or not all(isinstance(t, str) for t in decoded):
        return []
    return decoded


def encode_data(data: Any) -> str | None:
    return json.dumps(data) if data is not None else None


def decode_data(val: object) -> Any:
    """Unreadable achievement payloads decode to None instead of failing the row."""
    if not isinstance(val, str) or not val:
        return None
    try:
        return json.loads(val)
    except ValueError:
        return None


# ── rows ─────────────────────────────────────────────────────────────────────


def row_to_habit(row: Row) -> Habit:
    """
    Converts a raw database row from habits table into a Habit object.
    Expected row format: (id, name, description, icon, color, frequency, target_count, created_at, archived)
    """
    return Habit(
        id=cast(str, row[0]),
        name=cast(str, row[1]),
        description=cast(str, row[2]) if row[2] is not None else None,
        icon=cast(str, row[3]),
        color=cast(str, row[4]),
        frequency=cast(str, row[5]),
        target_count=cast(int, row[6]),
        created_at=_parse_datetime(row[7]),
        archived=decode_bool(row[8]),
    )


def row_to_completion(row: Row) -> HabitCompletion:
    """Expected row format: (id, habit_id, completed_at, count, notes)"""
    return HabitCompletion(
        id=cast(str, row[0]),
        habit_id=cast(str, row[1]),
        completed_at=_parse_datetime(row[2]),
        count=cast(int, row[3]),
        notes=cast(str, row[4]) if row[4] is not None else None,
    )


def row_to_mood_entry(row: Row) -> MoodEntry:
    """Expected row format: (id, mood_level, emoji, journal, tags, created_at)"""
    return MoodEntry(
        id=cast(str, row[0]),
        mood_level=cast(int, row[1]),
        emoji=cast(str, row[2]),
        journal=cast(str, row[3]) if row[3] is not None else None,
        tags=decode_tags(row[4]),
        created_at=_parse_datetime(row[5]),
    )


def row_to_session(row: Row) -> PomodoroSession:
    """Expected row format: (id, habit_id, duration, type, completed, started_at, ended_at)"""
    return PomodoroSession(
        id=cast(str, row[0]),
        habit_id=cast(str, row[1]) if row[1] is not None else None,
        duration=cast(int, row[2]),
        session_type=cast(str, row[3]),
        completed=decode_bool(row[4]),
        started_at=_parse_datetime(row[5]),
        ended_at=_parse_datetime_optional(row[6]),
    )


def row_to_achievement(row: Row) -> Achievement:
    """Expected row format: (id, type, unlocked_at, data)"""
    return Achievement(
        id=cast(str, row[0]),
        achievement_type=cast(str, row[1]),
        unlocked_at=_parse_datetime(row[2]),
        data=decode_data(row[3]),
    )


# ── payloads ─────────────────────────────────────────────────────────────────
# The UI shell speaks camelCase JSON; snake_case keys are accepted as well.

_MISSING = object()


def _lookup(payload: Payload, name: str, alias: str | None = None) -> Any:
    if name in payload:
        return payload[name]
    if alias is not None and alias in payload:
        return payload[alias]
    return _MISSING


def _str(payload: Payload, name: str, alias: str | None = None, *, optional=False) -> Any:
    val = _lookup(payload, name, alias)
    if val is _MISSING or val is None:
        if optional:
            return None if val is None else _MISSING
        raise ValidationError(f"missing field '{alias or name}'")
    if not isinstance(val, str):
        raise ValidationError(f"field '{alias or name}' must be a string")
    return val


def _int(payload: Payload, name: str, alias: str | None = None, *, optional=False) -> Any:
    val = _lookup(payload, name, alias)
    if val is _MISSING:
        if optional:
            return _MISSING
        raise ValidationError(f"missing field '{alias or name}'")
    if isinstance(val, bool) or not isinstance(val, int):
        raise ValidationError(f"field '{alias or name}' must be an integer")
    return val


def _bool(payload: Payload, name: str, alias: str | None = None) -> Any:
    val = _lookup(payload, name, alias)
    if val is _MISSING:
        return _MISSING
    if not isinstance(val, bool):
        raise ValidationError(f"field '{alias or name}' must be a boolean")
    return val


def _datetime(payload: Payload, name: str, alias: str | None = None, *, nullable=False) -> Any:
    val = _str(payload, name, alias, optional=True)
    if val is None:
        return None if nullable else _MISSING
    if val is _MISSING:
        return val
    try:
        return datetime.fromisoformat(val)
    except ValueError as e:
        raise ValidationError(f"field '{alias or name}' is not an ISO timestamp: {val}") from e


def _tags(payload: Payload) -> Any:
    val = _lookup(payload, "tags")
    if val is _MISSING or val is None:
        return _MISSING if val is _MISSING else []
    if not isinstance(val, list) or not all(isinstance(t, str) for t in val):
        raise ValidationError("field 'tags' must be a list of strings")
    return list(val)


def _present(**kwargs: Any) -> dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not _MISSING}


def payload_to_habit(payload: Payload) -> Habit:
    return Habit(
        id=_str(payload, "id"),
        name=_str(payload, "name"),
        icon=_str(payload, "icon"),
        color=_str(payload, "color"),
        frequency=_str(payload, "frequency"),
        **_present(
            target_count=_int(payload, "target_count", "targetCount", optional=True),
            description=_str(payload, "description", optional=True),
            created_at=_datetime(payload, "created_at", "createdAt"),
            archived=_bool(payload, "archived"),
        ),
    )


def payload_to_completion(payload: Payload) -> HabitCompletion:
    return HabitCompletion(
        id=_str(payload, "id"),
        habit_id=_str(payload, "habit_id", "habitId"),
        **_present(
            count=_int(payload, "count", optional=True),
            completed_at=_datetime(payload, "completed_at", "completedAt"),
            notes=_str(payload, "notes", optional=True),
        ),
    )


def payload_to_mood_entry(payload: Payload) -> MoodEntry:
    return MoodEntry(
        id=_str(payload, "id"),
        mood_level=_int(payload, "mood_level", "moodLevel"),
        emoji=_str(payload, "emoji"),
        **_present(
            journal=_str(payload, "journal", optional=True),
            tags=_tags(payload),
            created_at=_datetime(payload, "created_at", "createdAt"),
        ),
    )


def payload_to_session(payload: Payload) -> PomodoroSession:
    return PomodoroSession(
        id=_str(payload, "id"),
        duration=_int(payload, "duration"),
        session_type=_str(payload, "type", "session_type"),
        **_present(
            habit_id=_str(payload, "habit_id", "habitId", optional=True),
            completed=_bool(payload, "completed"),
            started_at=_datetime(payload, "started_at", "startedAt"),
            ended_at=_datetime(payload, "ended_at", "endedAt", nullable=True),
        ),
    )


def payload_to_achievement(payload: Payload) -> Achievement:
    data = _lookup(payload, "data")
    return Achievement(
        id=_str(payload, "id"),
        achievement_type=_str(payload, "type", "achievement_type"),
        **_present(
            unlocked_at=_datetime(payload, "unlocked_at", "unlockedAt"),
            data=data,
        ),
    )


def payload_to_habit_update(payload: Payload) -> HabitUpdate:
    """Recognized keys only; anything else in the payload is ignored."""
    fields = _present(
        name=_str(payload, "name", optional=True),
        description=_str(payload, "description", optional=True),
        icon=_str(payload, "icon", optional=True),
        color=_str(payload, "color", optional=True),
        archived=_bool(payload, "archived"),
    )
    for required in ("name", "icon", "color"):
        if required in fields and fields[required] is None:
            raise ValidationError(f"field '{required}' cannot be null")
    return HabitUpdate(**fields)


def payload_to_mood_update(payload: Payload) -> MoodUpdate:
    fields = _present(
        mood_level=_int(payload, "mood_level", "moodLevel", optional=True),
        emoji=_str(payload, "emoji", optional=True),
        journal=_str(payload, "journal", optional=True),
        tags=_tags(payload),
    )
    if "emoji" in fields and fields["emoji"] is None:
        raise ValidationError("field 'emoji' cannot be null")
    return MoodUpdate(**fields)


def habit_to_payload(h: Habit) -> dict[str, Any]:
    return {
        "id": h.id,
        "name": h.name,
        "description": h.description,
        "icon": h.icon,
        "color": h.color,
        "frequency": h.frequency,
        "targetCount": h.target_count,
        "createdAt": format_datetime(h.created_at),
        "archived": h.archived,
    }


def completion_to_payload(c: HabitCompletion) -> dict[str, Any]:
    return {
        "id": c.id,
        "habitId": c.habit_id,
        "completedAt": format_datetime(c.completed_at),
        "count": c.count,
        "notes": c.notes,
    }


def mood_entry_to_payload(e: MoodEntry) -> dict[str, Any]:
    return {
        "id": e.id,
        "moodLevel": e.mood_level,
        "emoji": e.emoji,
        "journal": e.journal,
        "tags": list(e.tags),
        "createdAt": format_datetime(e.created_at),
    }


def session_to_payload(s: PomodoroSession) -> dict[str, Any]:
    return {
        "id": s.id,
        "habitId": s.habit_id,
        "duration": s.duration,
        "type": s.session_type,
        "completed": s.completed,
        "startedAt": format_datetime(s.started_at),
        "endedAt": format_datetime(s.ended_at),
    }


def achievement_to_payload(a: Achievement) -> dict[str, Any]:
    return {
        "id": a.id,
        "type": a.achievement_type,
        "unlockedAt": format_datetime(a.unlocked_at),
        "data": a.data,
    }


def parse_json_payload(raw: str) -> dict[str, Any]:
    """Decode a JSON object passed on the command line."""
    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise ValidationError(f"invalid JSON payload: {e}") from e
    if not isinstance(payload, dict):
        raise ValidationError("payload must be a JSON object")
    return payload
