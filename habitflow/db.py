import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from . import config
from .core.errors import ConflictError, LockError, StorageError

logger = logging.getLogger(__name__)

TABLES = (
    "habits",
    "habit_completions",
    "mood_entries",
    "pomodoro_sessions",
    "achievements",
    "settings",
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS habits (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    icon TEXT NOT NULL,
    color TEXT NOT NULL,
    frequency TEXT NOT NULL,
    target_count INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    archived INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS habit_completions (
    id TEXT PRIMARY KEY,
    habit_id TEXT NOT NULL,
    completed_at TEXT NOT NULL,
    count INTEGER NOT NULL DEFAULT 1,
    notes TEXT,
    FOREIGN KEY (habit_id) REFERENCES habits(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS mood_entries (
    id TEXT PRIMARY KEY,
    mood_level INTEGER NOT NULL,
    emoji TEXT NOT NULL,
    journal TEXT,
    tags TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS pomodoro_sessions (
    id TEXT PRIMARY KEY,
    habit_id TEXT,
    duration INTEGER NOT NULL,
    type TEXT NOT NULL,
    completed INTEGER NOT NULL,
    started_at TEXT NOT NULL,
    ended_at TEXT,
    FOREIGN KEY (habit_id) REFERENCES habits(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS achievements (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    unlocked_at TEXT NOT NULL,
    data TEXT
);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_completions_habit_id ON habit_completions(habit_id);
CREATE INDEX IF NOT EXISTS idx_completions_date ON habit_completions(completed_at);
CREATE INDEX IF NOT EXISTS idx_mood_date ON mood_entries(created_at);
CREATE INDEX IF NOT EXISTS idx_pomodoro_date ON pomodoro_sessions(started_at);
"""


def storage_error(e: sqlite3.Error) -> StorageError:
    """Map a sqlite failure onto the store's error kinds."""
    msg = str(e)
    if isinstance(e, sqlite3.IntegrityError) and (
        "UNIQUE constraint failed" in msg or "PRIMARY KEY" in msg
    ):
        return ConflictError(msg)
    return StorageError(msg)


class Store:
    """
    One sqlite connection behind one lock. Every operation holds the lock for
    exactly one statement; there is no pooling and no read concurrency.
    """

    def __init__(self, conn: sqlite3.Connection, path: Path):
        self.path = path
        self._conn = conn
        self._lock = threading.Lock()
        self._poisoned = False

    @classmethod
    def open(cls, path: Path) -> "Store":
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"cannot create data directory {path.parent}: {e}") from e
        try:
            conn = sqlite3.connect(path, check_same_thread=False)
        except sqlite3.Error as e:
            raise StorageError(f"cannot open database {path}: {e}") from e
        try:
            conn.execute("PRAGMA foreign_keys = ON;")
            conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            conn.close()
            raise StorageError(f"schema setup failed for {path}: {e}") from e
        logger.debug("opened store at %s", path)
        return cls(conn, path)

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        self._lock.acquire()
        try:
            if self._poisoned:
                raise LockError("store is poisoned by an earlier failure")
            try:
                yield self._conn
                self._conn.commit()
            except BaseException:
                try:
                    self._conn.rollback()
                except sqlite3.Error:
                    self._poisoned = True
                    logger.exception("rollback failed; store poisoned")
                raise
        finally:
            self._lock.release()

    def close(self) -> None:
        with self._lock:
            self._conn.close()


_store: Store | None = None
_store_lock = threading.Lock()


def get_store() -> Store:
    """Process-wide store, opened on first use."""
    global _store
    with _store_lock:
        if _store is None:
            _store = Store.open(config.get_db_path())
        return _store


def reset_store() -> None:
    global _store
    with _store_lock:
        if _store is not None:
            _store.close()
        _store = None


def init() -> Store:
    return get_store()


@contextmanager
def get_db() -> Iterator[sqlite3.Connection]:
    """
    Exclusive access to the shared connection for a single statement.
    sqlite failures raised inside the block surface as StorageError/ConflictError.
    """
    try:
        with get_store().connection() as conn:
            yield conn
    except sqlite3.Error as e:
        raise storage_error(e) from e
