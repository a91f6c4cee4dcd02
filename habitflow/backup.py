import contextlib
import logging
import shutil
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from fncli import cli

from . import config, db
from .core.errors import HabitflowError, StorageError
from .lib.format import emit

logger = logging.getLogger(__name__)


def _is_snapshot_dir(p: Path) -> bool:
    return p.is_dir() and p.name[:8].isdigit() and "_" in p.name


def _snapshots() -> list[Path]:
    backup_dir = config.BACKUP_DIR
    if not backup_dir.exists():
        return []
    return sorted((s for s in backup_dir.iterdir() if _is_snapshot_dir(s)), reverse=True)


def _row_counts(db_path: Path) -> dict[str, int]:
    try:
        conn = sqlite3.connect(str(db_path), timeout=2)
        try:
            counts = {}
            for table in db.TABLES:
                with contextlib.suppress(sqlite3.OperationalError):
                    counts[table] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]  # noqa: S608
            return counts
        finally:
            conn.close()
    except sqlite3.DatabaseError:
        return {}


def _integrity_ok(db_path: Path) -> bool:
    try:
        conn = sqlite3.connect(str(db_path), timeout=2)
        try:
            return conn.execute("PRAGMA integrity_check").fetchone()[0] == "ok"
        finally:
            conn.close()
    except sqlite3.DatabaseError:
        return False


def run_backup() -> dict[str, Any]:
    """Snapshot the live database with the sqlite online backup API."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    backup_path = config.BACKUP_DIR / timestamp
    try:
        backup_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"cannot create backup directory {backup_path}: {e}") from e
    dst = backup_path / config.DB_FILENAME

    try:
        dst_conn = sqlite3.connect(dst)
    except sqlite3.Error as e:
        raise StorageError(f"cannot open backup database {dst}: {e}") from e
    try:
        with db.get_db() as conn:
            conn.backup(dst_conn)
    finally:
        dst_conn.close()

    if not _integrity_ok(dst):
        shutil.rmtree(backup_path, ignore_errors=True)
        logger.error("backup %s failed integrity check", backup_path)
        return {"path": None, "integrity_ok": False, "rows": 0, "error": "backup failed integrity check"}

    counts = _row_counts(dst)
    logger.info("backup written to %s", backup_path)
    return {
        "path": backup_path,
        "integrity_ok": True,
        "rows": sum(counts.values()),
        "tables": counts,
    }


def run_prune(keep: int | None = None) -> int:
    """Remove all but the newest `keep` snapshots. Returns the number removed."""
    keep = keep if keep is not None else config.get_backup_keep()
    removed = 0
    for s in _snapshots()[max(keep, 1) :]:
        shutil.rmtree(s, ignore_errors=True)
        removed += 1
    if removed:
        logger.info("pruned %d backup(s)", removed)
    return removed


@cli("habitflow", name="backup")
def backup(prune: bool = False) -> None:
    """Create verified database backup"""
    result = run_backup()
    if result.get("error"):
        raise HabitflowError(f"backup failed: {result['error']}")
    out: dict[str, Any] = {"path": str(result["path"]), "rows": result["rows"]}
    if prune:
        out["pruned"] = run_prune()
    emit(out)
