from fncli import cli

from . import db
from .core.errors import StorageError, ValidationError
from .core.models import Achievement
from .lib.converters import (
    achievement_to_payload,
    encode_data,
    format_datetime,
    parse_json_payload,
    payload_to_achievement,
    row_to_achievement,
)
from .lib.format import emit


def add_achievement(achievement: Achievement) -> None:
    if not achievement.id:
        raise ValidationError("achievement id cannot be empty")
    if not achievement.achievement_type:
        raise ValidationError("achievement type cannot be empty")
    try:
        data = encode_data(achievement.data)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"achievement data is not JSON serializable: {e}") from e
    with db.get_db() as conn:
        conn.execute(
            "INSERT INTO achievements (id, type, unlocked_at, data) VALUES (?, ?, ?, ?)",
            (
                achievement.id,
                achievement.achievement_type,
                format_datetime(achievement.unlocked_at),
                data,
            ),
        )


def get_achievements() -> list[Achievement]:
    with db.get_db() as conn:
        rows = conn.execute(
            "SELECT id, type, unlocked_at, data FROM achievements ORDER BY unlocked_at DESC"
        ).fetchall()
    try:
        return [row_to_achievement(row) for row in rows]
    except (TypeError, ValueError) as e:
        raise StorageError(f"malformed achievement row: {e}") from e


@cli("habitflow achievements", name="ls")
def ls() -> None:
    """List unlocked achievements, newest first"""
    emit([achievement_to_payload(a) for a in get_achievements()])


@cli("habitflow achievements", name="add")
def add(payload: str) -> None:
    """Unlock an achievement from a JSON object"""
    achievement = payload_to_achievement(parse_json_payload(payload))
    add_achievement(achievement)
    emit(achievement_to_payload(achievement))
