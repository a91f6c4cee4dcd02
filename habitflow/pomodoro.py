from fncli import cli

from . import db
from .core.errors import StorageError, ValidationError
from .core.models import PomodoroSession
from .core.types import SESSION_TYPES
from .lib.converters import (
    format_datetime,
    parse_json_payload,
    payload_to_session,
    row_to_session,
    session_to_payload,
)
from .lib.format import emit

_SESSION_COLS = "id, habit_id, duration, type, completed, started_at, ended_at"


def get_pomodoro_sessions() -> list[PomodoroSession]:
    with db.get_db() as conn:
        rows = conn.execute(
            f"SELECT {_SESSION_COLS} FROM pomodoro_sessions ORDER BY started_at DESC"  # noqa: S608
        ).fetchall()
    try:
        return [row_to_session(row) for row in rows]
    except (TypeError, ValueError) as e:
        raise StorageError(f"malformed pomodoro row: {e}") from e


def add_pomodoro_session(session: PomodoroSession) -> None:
    """Sessions are append-only; there is no update or delete."""
    if not session.id:
        raise ValidationError("session id cannot be empty")
    if session.session_type not in SESSION_TYPES:
        raise ValidationError(
            f"unknown session type '{session.session_type}' (expected {', '.join(SESSION_TYPES)})"
        )
    if session.duration < 0:
        raise ValidationError("session duration cannot be negative")
    with db.get_db() as conn:
        conn.execute(
            f"INSERT INTO pomodoro_sessions ({_SESSION_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
            (
                session.id,
                session.habit_id,
                session.duration,
                session.session_type,
                int(session.completed),
                format_datetime(session.started_at),
                format_datetime(session.ended_at),
            ),
        )


@cli("habitflow pomodoro", name="ls")
def ls():
    """List pomodoro sessions, newest first"""
    emit([session_to_payload(s) for s in get_pomodoro_sessions()])


@cli("habitflow pomodoro", name="add")
def add(payload: str):
    """Record a pomodoro session from a JSON object"""
    session = payload_to_session(parse_json_payload(payload))
    add_pomodoro_session(session)
    emit(session_to_payload(session))
