import sqlite3

import pytest

from habitflow import config
from habitflow.backup import _is_snapshot_dir, run_backup, run_prune
from habitflow.core.errors import StorageError
from habitflow.core.models import Habit
from habitflow.habits import add_habit


def test_backup_creates_snapshot(tmp_habitflow_dir):
    result = run_backup()
    assert result["integrity_ok"] is True
    assert result["path"].is_dir()
    assert _is_snapshot_dir(result["path"])
    assert (result["path"] / "habitflow.db").exists()
    assert str(result["path"]).startswith(str(tmp_habitflow_dir / "backups"))


def test_backup_contains_rows(tmp_habitflow_dir):
    add_habit(Habit(id="h1", name="Read", icon="book", color="#fff", frequency="daily"))
    result = run_backup()
    assert result["rows"] == 1
    assert result["tables"]["habits"] == 1

    conn = sqlite3.connect(result["path"] / "habitflow.db")
    try:
        assert conn.execute("SELECT name FROM habits").fetchone()[0] == "Read"
    finally:
        conn.close()


def test_prune_keeps_newest(tmp_habitflow_dir):
    paths = [run_backup()["path"] for _ in range(4)]
    assert run_prune(keep=2) == 2
    remaining = sorted(p for p in (tmp_habitflow_dir / "backups").iterdir())
    assert remaining == sorted(paths[-2:])


def test_prune_nothing_to_do(tmp_habitflow_dir):
    assert run_prune(keep=5) == 0


def test_unwritable_backup_dir_raises_storage_error(tmp_habitflow_dir, monkeypatch):
    blocker = tmp_habitflow_dir / "not-a-dir"
    blocker.write_text("")
    monkeypatch.setattr(config, "BACKUP_DIR", blocker / "backups")
    with pytest.raises(StorageError, match="cannot create backup directory"):
        run_backup()
