from fncli import cli

from . import db
from .core.errors import ValidationError
from .lib.format import emit


def get_settings() -> dict[str, str]:
    with db.get_db() as conn:
        rows = conn.execute("SELECT key, value FROM settings ORDER BY key").fetchall()
    return {row[0]: row[1] for row in rows}


def get_setting(key: str) -> str | None:
    with db.get_db() as conn:
        row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    return row[0] if row else None


def set_setting(key: str, value: str) -> None:
    if not key:
        raise ValidationError("setting key cannot be empty")
    with db.get_db() as conn:
        conn.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )


def delete_setting(key: str) -> bool:
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM settings WHERE key = ?", (key,))
        return cursor.rowcount > 0


@cli("habitflow settings", name="ls")
def ls() -> None:
    """List stored settings"""
    emit(get_settings())


@cli("habitflow settings", name="get")
def get(key: str) -> None:
    """Show one setting (null if unset)"""
    emit({"key": key, "value": get_setting(key)})


@cli("habitflow settings", name="set")
def set_(key: str, value: str) -> None:
    """Store a setting"""
    set_setting(key, value)
    emit({"key": key, "value": value})


@cli("habitflow settings", name="rm")
def rm(key: str) -> None:
    """Remove a setting"""
    emit({"key": key, "deleted": delete_setting(key)})
