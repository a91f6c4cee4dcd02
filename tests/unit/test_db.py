import sqlite3
import threading

import pytest

from habitflow import config, db
from habitflow.core.errors import ConflictError, LockError, StorageError
from habitflow.db import Store


def test_init_creates_schema(tmp_habitflow_dir):
    """Verify that db.init() creates the database and the expected tables."""
    with db.get_db() as conn:
        tables = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        table_names = {t[0] for t in tables}
    assert set(db.TABLES) <= table_names


def test_init_creates_indexes(tmp_habitflow_dir):
    with db.get_db() as conn:
        indexes = conn.execute("SELECT name FROM sqlite_master WHERE type='index'").fetchall()
        index_names = {i[0] for i in indexes}
    assert {
        "idx_completions_habit_id",
        "idx_completions_date",
        "idx_mood_date",
        "idx_pomodoro_date",
    } <= index_names


def test_db_file_in_app_dir(tmp_habitflow_dir):
    assert (tmp_habitflow_dir / "habitflow.db").exists()
    assert db.get_store().path == tmp_habitflow_dir / "habitflow.db"


def test_open_creates_missing_parents(tmp_path):
    path = tmp_path / "a" / "b" / "store.db"
    store = Store.open(path)
    try:
        assert path.exists()
    finally:
        store.close()


def test_open_is_idempotent_and_keeps_data(tmp_path):
    path = tmp_path / "store.db"
    store = Store.open(path)
    with store.connection() as conn:
        conn.execute("INSERT INTO settings (key, value) VALUES ('theme', 'dark')")
    store.close()

    store = Store.open(path)
    try:
        with store.connection() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = 'theme'").fetchone()
        assert row[0] == "dark"
    finally:
        store.close()


def test_open_fails_when_directory_cannot_be_created(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(StorageError, match="cannot create data directory"):
        Store.open(blocker / "sub" / "store.db")


def test_foreign_keys_enabled(tmp_habitflow_dir):
    with db.get_db() as conn:
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1


def test_get_db_auto_commit(tmp_habitflow_dir):
    with db.get_db() as conn:
        conn.execute("INSERT INTO settings (key, value) VALUES (?, ?)", ("k", "v"))

    with db.get_db() as conn:
        result = conn.execute("SELECT value FROM settings WHERE key = ?", ("k",)).fetchone()
    assert result[0] == "v"


def test_get_db_rolls_back_and_wraps_errors(tmp_habitflow_dir):
    with pytest.raises(StorageError):
        with db.get_db() as conn:
            conn.execute("INSERT INTO settings (key, value) VALUES (?, ?)", ("k", None))

    with db.get_db() as conn:
        assert conn.execute("SELECT * FROM settings WHERE key = 'k'").fetchone() is None


def test_duplicate_key_maps_to_conflict(tmp_habitflow_dir):
    with db.get_db() as conn:
        conn.execute("INSERT INTO settings (key, value) VALUES ('k', 'v')")
    with pytest.raises(ConflictError):
        with db.get_db() as conn:
            conn.execute("INSERT INTO settings (key, value) VALUES ('k', 'w')")


def test_storage_error_mapping():
    assert isinstance(
        db.storage_error(sqlite3.IntegrityError("UNIQUE constraint failed: habits.id")),
        ConflictError,
    )
    err = db.storage_error(sqlite3.IntegrityError("FOREIGN KEY constraint failed"))
    assert type(err) is StorageError
    assert type(db.storage_error(sqlite3.OperationalError("disk I/O error"))) is StorageError


class _BrokenConn:
    def __init__(self, real: sqlite3.Connection):
        self._real = real

    def execute(self, *args):
        return self._real.execute(*args)

    def commit(self):
        raise sqlite3.OperationalError("disk I/O error")

    def rollback(self):
        raise sqlite3.OperationalError("cannot rollback")

    def close(self):
        self._real.close()


def test_failed_rollback_poisons_store(tmp_path):
    store = Store.open(tmp_path / "store.db")
    store._conn = _BrokenConn(store._conn)  # type: ignore[assignment]

    with pytest.raises(sqlite3.OperationalError):
        with store.connection() as conn:
            conn.execute("SELECT 1")
    assert store.poisoned

    with pytest.raises(LockError):
        with store.connection():
            pass
    store.close()


def test_access_is_serialized(tmp_habitflow_dir):
    def worker(n: int) -> None:
        for i in range(20):
            with db.get_db() as conn:
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?)", (f"{n}-{i}", str(i))
                )

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    with db.get_db() as conn:
        assert conn.execute("SELECT COUNT(*) FROM settings").fetchone()[0] == 80


def test_db_path_override_from_config(tmp_habitflow_dir):
    target = tmp_habitflow_dir / "elsewhere" / "custom.db"
    config.Config().set("db_path", str(target))
    db.reset_store()

    db.init()
    assert db.get_store().path == target
    assert target.exists()
