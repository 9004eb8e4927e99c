"""Backup directory resolver: map a backend to a concrete, existing directory."""

from __future__ import annotations

import platform
from pathlib import Path

from loguru import logger

from salon.errors import BackendUnavailableError, IOFailureError
from salon.models.backup_record import Backend

APP_FOLDER = "SistersSalon"


def icloud_drive_root(home: Path | None = None) -> Path:
    """iCloud Drive mount point on macOS."""
    home = home or Path.home()
    return home / "Library" / "Mobile Documents" / "com~apple~CloudDocs"


def is_icloud_drive_present(system: str | None = None, home: Path | None = None) -> bool:
    """Whether a synced iCloud Drive folder exists on this machine. Never raises."""
    system = system or platform.system()
    if system != "Darwin":
        return False
    try:
        return icloud_drive_root(home).is_dir()
    except OSError:
        return False


def _cloud_backup_dir(app_data_dir: Path, system: str, home: Path) -> Path:
    if system == "Darwin":
        return icloud_drive_root(home) / APP_FOLDER / "backups"
    if system == "iOS":
        # Exposed through the Files app when file sharing is enabled
        return home / "Documents" / "Backups"
    return app_data_dir / "backups"


def resolve_backup_dir(
    app_data_dir: Path,
    backend: Backend,
    system: str | None = None,
    home: Path | None = None,
) -> Path:
    """
    Return the backup directory for ``backend``, creating it if missing.

    Raises BackendUnavailableError for backends without an implementation and
    IOFailureError when the directory cannot be created.
    """
    system = system or platform.system()
    home = home or Path.home()

    if backend == Backend.LOCAL:
        backup_dir = Path(app_data_dir) / "backups"
    elif backend == Backend.ICLOUD:
        backup_dir = _cloud_backup_dir(Path(app_data_dir), system, home)
    elif backend == Backend.GOOGLE_DRIVE:
        raise BackendUnavailableError(
            "Google Drive backup is not supported yet. Please wait for a future update."
        )
    else:
        raise BackendUnavailableError(f"Unknown backup backend: {backend}")

    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IOFailureError(f"Failed to create backup directory {backup_dir}: {e}") from e

    logger.debug(f"Backup directory for {backend}: {backup_dir}")
    return backup_dir
