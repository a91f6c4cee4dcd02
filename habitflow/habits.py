from fncli import cli

from . import db
from .core.errors import StorageError, ValidationError
from .core.models import Habit, HabitCompletion, HabitUpdate, present_fields
from .core.types import FREQUENCIES
from .lib.converters import (
    format_datetime,
    completion_to_payload,
    habit_to_payload,
    parse_json_payload,
    payload_to_completion,
    payload_to_habit,
    payload_to_habit_update,
    row_to_completion,
    row_to_habit,
)
from .lib.format import emit
from .lib.updates import set_clause

__all__ = [
    "add_completion",
    "add_habit",
    "delete_completion",
    "delete_habit",
    "get_completions",
    "get_habits",
    "update_habit",
]


# ── domain ───────────────────────────────────────────────────────────────────


_HABIT_COLS = "id, name, description, icon, color, frequency, target_count, created_at, archived"
_COMPLETION_COLS = "id, habit_id, completed_at, count, notes"
_REQUIRED_TEXT = ("name", "icon", "color")


def _check_required_text(values: dict) -> None:
    for field in _REQUIRED_TEXT:
        if field in values and not values[field]:
            raise ValidationError(f"habit {field} cannot be empty")


def _validate_habit(habit: Habit) -> None:
    if not habit.id:
        raise ValidationError("habit id cannot be empty")
    _check_required_text({f: getattr(habit, f) for f in _REQUIRED_TEXT})
    if habit.frequency not in FREQUENCIES:
        raise ValidationError(
            f"unknown frequency '{habit.frequency}' (expected {', '.join(FREQUENCIES)})"
        )
    if habit.target_count < 1:
        raise ValidationError("target count must be at least 1")


def get_habits() -> list[Habit]:
    with db.get_db() as conn:
        rows = conn.execute(
            f"SELECT {_HABIT_COLS} FROM habits ORDER BY created_at DESC"  # noqa: S608
        ).fetchall()
    try:
        return [row_to_habit(row) for row in rows]
    except (TypeError, ValueError) as e:
        raise StorageError(f"malformed habit row: {e}") from e


def add_habit(habit: Habit) -> None:
    _validate_habit(habit)
    with db.get_db() as conn:
        conn.execute(
            f"INSERT INTO habits ({_HABIT_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
            (
                habit.id,
                habit.name,
                habit.description,
                habit.icon,
                habit.color,
                habit.frequency,
                habit.target_count,
                format_datetime(habit.created_at),
                int(habit.archived),
            ),
        )


def update_habit(habit_id: str, update: HabitUpdate) -> bool:
    """Apply the present slots of `update`. Returns False if no row matched."""
    fields = present_fields(update)
    if not fields:
        return False
    _check_required_text(fields)
    if "archived" in fields:
        fields["archived"] = int(bool(fields["archived"]))
    clause, params = set_clause(fields)
    with db.get_db() as conn:
        cursor = conn.execute(
            f"UPDATE habits SET {clause} WHERE id = ?",  # noqa: S608
            (*params, habit_id),
        )
        return cursor.rowcount > 0


def delete_habit(habit_id: str) -> bool:
    """Completions go with the habit; pomodoro sessions keep running with no habit."""
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM habits WHERE id = ?", (habit_id,))
        return cursor.rowcount > 0


def get_completions() -> list[HabitCompletion]:
    with db.get_db() as conn:
        rows = conn.execute(
            f"SELECT {_COMPLETION_COLS} FROM habit_completions ORDER BY completed_at DESC"  # noqa: S608
        ).fetchall()
    try:
        return [row_to_completion(row) for row in rows]
    except (TypeError, ValueError) as e:
        raise StorageError(f"malformed completion row: {e}") from e


def add_completion(completion: HabitCompletion) -> None:
    if not completion.id or not completion.habit_id:
        raise ValidationError("completion id and habit id cannot be empty")
    if completion.count < 1:
        raise ValidationError("completion count must be at least 1")
    with db.get_db() as conn:
        conn.execute(
            f"INSERT INTO habit_completions ({_COMPLETION_COLS}) VALUES (?, ?, ?, ?, ?)",  # noqa: S608
            (
                completion.id,
                completion.habit_id,
                format_datetime(completion.completed_at),
                completion.count,
                completion.notes,
            ),
        )


def delete_completion(completion_id: str) -> bool:
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM habit_completions WHERE id = ?", (completion_id,))
        return cursor.rowcount > 0


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("habitflow habits", name="ls")
def habits_ls() -> None:
    """List habits, newest first"""
    emit([habit_to_payload(h) for h in get_habits()])


@cli("habitflow habits", name="add")
def habits_add(payload: str) -> None:
    """Add a habit from a JSON object"""
    habit = payload_to_habit(parse_json_payload(payload))
    add_habit(habit)
    emit(habit_to_payload(habit))


@cli("habitflow habits", name="update")
def habits_update(habit_id: str, payload: str) -> None:
    """Update name, description, icon, color or archived from a JSON object"""
    updated = update_habit(habit_id, payload_to_habit_update(parse_json_payload(payload)))
    emit({"id": habit_id, "updated": updated})


@cli("habitflow habits", name="rm")
def habits_rm(habit_id: str) -> None:
    """Delete a habit and its completions"""
    emit({"id": habit_id, "deleted": delete_habit(habit_id)})


@cli("habitflow checks", name="ls")
def completions_ls() -> None:
    """List habit completions, newest first"""
    emit([completion_to_payload(c) for c in get_completions()])


@cli("habitflow checks", name="add")
def completions_add(payload: str) -> None:
    """Record a habit completion from a JSON object"""
    completion = payload_to_completion(parse_json_payload(payload))
    add_completion(completion)
    emit(completion_to_payload(completion))


@cli("habitflow checks", name="rm")
def completions_rm(completion_id: str) -> None:
    """Delete a habit completion"""
    emit({"id": completion_id, "deleted": delete_completion(completion_id)})
