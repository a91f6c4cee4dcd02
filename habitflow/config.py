import logging
import os
import sys
from pathlib import Path

import yaml

APP_NAME = "habitflow"
DB_FILENAME = "habitflow.db"


def data_dir() -> Path:
    """Per-user persistent data directory for the current platform."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA")
        return Path(base) if base else Path.home() / "AppData" / "Roaming"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    xdg = os.environ.get("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def app_dir() -> Path:
    override = os.environ.get("HABITFLOW_HOME")
    return Path(override).expanduser() if override else data_dir() / APP_NAME


APP_DIR = app_dir()
DB_PATH = APP_DIR / DB_FILENAME
CONFIG_PATH = APP_DIR / "config.yaml"
BACKUP_DIR = APP_DIR / "backups"


class Config:
    """Single-instance config manager. Load once, cache in memory."""

    _instance: "Config | None" = None
    _data: dict[str, object]

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = {}
            cls._instance._load()
        return cls._instance

    def _load(self) -> None:
        """Load config from disk."""
        if not CONFIG_PATH.exists():
            self._data = {}
            return
        try:
            with CONFIG_PATH.open() as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError):
            loaded = None
        self._data = loaded if isinstance(loaded, dict) else {}

    def _save(self) -> None:
        """Persist config to disk."""
        APP_DIR.mkdir(parents=True, exist_ok=True)
        with CONFIG_PATH.open("w") as f:
            yaml.dump(self._data, f, default_flow_style=False, allow_unicode=True)

    def get(self, key: str, default: object = None) -> object:
        """Get config value."""
        return self._data.get(key, default)

    def set(self, key: str, value: object) -> None:
        """Set config value and persist."""
        self._data[key] = value
        self._save()


def reload() -> None:
    """Re-resolve paths from the environment and drop the cached config."""
    global APP_DIR, DB_PATH, CONFIG_PATH, BACKUP_DIR
    APP_DIR = app_dir()
    DB_PATH = APP_DIR / DB_FILENAME
    CONFIG_PATH = APP_DIR / "config.yaml"
    BACKUP_DIR = APP_DIR / "backups"
    Config._instance = None


def get_db_path() -> Path:
    """Database file, honoring a `db_path` override in config.yaml."""
    val = Config().get("db_path")
    return Path(str(val)).expanduser() if val else DB_PATH


def get_log_level() -> str:
    val = str(Config().get("log_level") or "").upper()
    return val if val in logging.getLevelNamesMapping() else "WARNING"


def get_backup_keep() -> int:
    """Number of backup snapshots to keep when pruning."""
    val = Config().get("backup_keep")
    try:
        keep = int(val) if val is not None else 10  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return 10
    return max(keep, 1)
