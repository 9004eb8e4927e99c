"""Salon settings file: ``config.json`` in the data directory, merged over defaults."""

from __future__ import annotations

import json
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

_instance: "Config | None" = None

_DEFAULT_DATA_DIR = Path.home() / "Documents" / "SistersSalon"

DATA_DIR_ENV_VAR = "SALON_DATA_DIR"
# Remote credentials may come from the environment instead of the file
REMOTE_URL_ENV_VAR = "SALON_REMOTE_URL"
REMOTE_TOKEN_ENV_VAR = "SALON_REMOTE_TOKEN"

CONFIG_FILENAME = "config.json"


def get_config() -> Config:
    """Process-wide Config, created on first use."""
    global _instance
    if _instance is None:
        _instance = Config()
    return _instance


def reset_config() -> None:
    """Forget the process-wide Config (for testing)."""
    global _instance
    _instance = None


def _resolve_data_dir(data_dir: Path | None) -> Path:
    if data_dir is not None:
        return Path(data_dir).expanduser()
    env_dir = os.environ.get(DATA_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser()
    return _DEFAULT_DATA_DIR


def _merge_into(base: dict[str, Any], override: dict[str, Any]) -> None:
    """Overlay ``override`` onto ``base``; nested sections merge key by key."""
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _merge_into(current, value)
        else:
            base[key] = value


class Config:
    """
    Backend settings stored as JSON next to the database.

    Missing keys fall back to ``DEFAULTS``; a corrupt file is ignored with a
    warning. Writes go to ``config.tmp`` first and are renamed into place,
    and the file is kept owner-readable only since it may hold the remote
    store token.
    """

    DEFAULTS: dict[str, Any] = {
        "database_name": "database.db",
        "default_backend": "local",
        "max_backups": 10,
        "auto_cleanup": False,
        "log_level": "INFO",
        # Remote snapshot store (empty url = unavailable)
        "remote": {
            "url": "",
            "token": "",
            "timeout": 30,
        },
    }

    def __init__(self, data_dir: Path | None = None) -> None:
        self._dir = _resolve_data_dir(data_dir)
        self._path = self._dir / CONFIG_FILENAME
        self._lock = threading.Lock()
        self._batch_depth = 0
        self._values: dict[str, Any] = {}
        self.reload()

    @property
    def path(self) -> Path:
        return self._path

    def reload(self) -> None:
        """Re-read the file over a fresh copy of the defaults."""
        values = json.loads(json.dumps(self.DEFAULTS))
        if self._path.is_file():
            try:
                stored = json.loads(self._path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning(f"Ignoring unreadable {self._path.name}: {e}")
            else:
                if isinstance(stored, dict):
                    _merge_into(values, stored)
                else:
                    logger.warning(f"Ignoring {self._path.name}: top level is not an object")
        self._values = values

    def _write(self) -> None:
        if self._batch_depth:
            return
        with self._lock:
            tmp_path = self._path.with_suffix(".tmp")
            try:
                self._dir.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(json.dumps(self._values, ensure_ascii=False, indent=2), encoding="utf-8")
                os.chmod(tmp_path, 0o600)
                tmp_path.replace(self._path)
            except OSError as e:
                logger.error(f"Could not write {self._path}: {e}")
                tmp_path.unlink(missing_ok=True)

    @contextmanager
    def batch_update(self) -> Iterator[None]:
        """Group several ``set`` calls into one write."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            self._write()

    # ── Dotted-key access ──

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._values
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        *parents, leaf = key.split(".")
        node = self._values
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = value
        self._write()

    # ── Paths ──

    @property
    def data_dir(self) -> Path:
        return self._dir

    @property
    def db_path(self) -> Path:
        return self._dir / str(self.get("database_name") or "database.db")

    @property
    def log_dir(self) -> Path:
        return self._dir / "logs"

    @property
    def log_level(self) -> str:
        return str(self.get("log_level", "INFO")).upper()

    # ── Backups ──

    @property
    def default_backend(self) -> str:
        return str(self.get("default_backend") or "local")

    @default_backend.setter
    def default_backend(self, value: str) -> None:
        self.set("default_backend", value)

    @property
    def max_backups(self) -> int:
        try:
            return max(0, int(self.get("max_backups", 10)))
        except (TypeError, ValueError):
            logger.warning("max_backups is not a number, using 10")
            return 10

    @max_backups.setter
    def max_backups(self, value: int) -> None:
        self.set("max_backups", int(value))

    @property
    def auto_cleanup(self) -> bool:
        return bool(self.get("auto_cleanup", False))

    @auto_cleanup.setter
    def auto_cleanup(self, value: bool) -> None:
        self.set("auto_cleanup", bool(value))

    # ── Remote store ──

    @property
    def remote_url(self) -> str:
        return os.environ.get(REMOTE_URL_ENV_VAR) or str(self.get("remote.url") or "")

    @property
    def remote_token(self) -> str:
        return os.environ.get(REMOTE_TOKEN_ENV_VAR) or str(self.get("remote.token") or "")

    @property
    def remote_timeout(self) -> float:
        try:
            return float(self.get("remote.timeout", 30))
        except (TypeError, ValueError):
            return 30.0
