"""Backup manager: timestamped byte copies of the database file."""

from __future__ import annotations

import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from salon.errors import IOFailureError, NotFoundError, ValidationError
from salon.models.backup_record import Backend, BackupRecord

BACKUP_PREFIX = "salon_backup_"
BACKUP_SUFFIX = ".db"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def backup_id_from_filename(filename: str) -> str:
    """Strip the fixed prefix/suffix, leaving the embedded timestamp."""
    name = filename
    if name.startswith(BACKUP_PREFIX):
        name = name[len(BACKUP_PREFIX) :]
    if name.endswith(BACKUP_SUFFIX):
        name = name[: -len(BACKUP_SUFFIX)]
    return name


def _check_plain_name(filename: str) -> None:
    if not filename or Path(filename).name != filename or filename in (".", ".."):
        raise ValidationError(f"Invalid backup filename: {filename!r}")


class BackupManager:
    """Create, list, delete and rotate snapshots inside a backup directory."""

    def _unique_filename(self, backup_dir: Path, now: datetime) -> str:
        stem = f"{BACKUP_PREFIX}{now.strftime(TIMESTAMP_FORMAT)}"
        filename = f"{stem}{BACKUP_SUFFIX}"
        counter = 1
        # Same-second snapshots get a zero-padded counter so names stay unique and sort in order
        while (backup_dir / filename).exists():
            filename = f"{stem}_{counter:03d}{BACKUP_SUFFIX}"
            counter += 1
        return filename

    def create_backup(self, db_path: Path, backup_dir: Path, backend: Backend) -> BackupRecord:
        """Copy the live database file into ``backup_dir`` under a timestamped name."""
        db_path = Path(db_path)
        backup_dir = Path(backup_dir)
        if not db_path.exists():
            raise NotFoundError(f"Source database does not exist: {db_path}")

        now = datetime.now(tz=timezone.utc)
        filename = self._unique_filename(backup_dir, now)
        dest_path = backup_dir / filename

        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
            # Plain copy: listing reads creation time from the snapshot mtime
            shutil.copyfile(db_path, dest_path)
            size = dest_path.stat().st_size
        except OSError as e:
            raise IOFailureError(
                f"Failed to copy database: {e} (from {db_path} to {dest_path})"
            ) from e

        logger.info(f"Created backup: {filename} ({size} bytes)")
        return BackupRecord(
            id=str(uuid.uuid4()),
            backend=backend,
            filename=filename,
            size=size,
            created_at=now,
        )

    def list_backups(self, backup_dir: Path, backend: Backend) -> list[BackupRecord]:
        """List snapshots, newest first. A missing directory yields an empty list."""
        backup_dir = Path(backup_dir)
        if not backup_dir.exists():
            return []

        records: list[BackupRecord] = []
        try:
            for path in backup_dir.iterdir():
                if path.suffix != BACKUP_SUFFIX or not path.is_file():
                    continue
                stat = path.stat()
                records.append(
                    BackupRecord(
                        id=backup_id_from_filename(path.name),
                        backend=backend,
                        filename=path.name,
                        size=stat.st_size,
                        created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    )
                )
        except OSError as e:
            raise IOFailureError(f"Failed to read backup directory {backup_dir}: {e}") from e

        # Timestamps have one-second granularity; filename breaks ties
        records.sort(key=lambda r: (r.created_at, r.filename), reverse=True)
        return records

    def delete_backup(self, filename: str, backup_dir: Path) -> None:
        _check_plain_name(filename)
        backup_path = Path(backup_dir) / filename
        if not backup_path.is_file():
            raise NotFoundError(f"Backup file not found: {filename}")
        try:
            backup_path.unlink()
        except OSError as e:
            raise IOFailureError(f"Failed to delete backup {filename}: {e}") from e
        logger.info(f"Deleted backup: {filename}")

    def cleanup_old_backups(self, backup_dir: Path, keep_count: int) -> list[str]:
        """
        Keep only the ``keep_count`` most recent snapshots.

        Deletes oldest first and stops at the first failure, which propagates.
        Deletions already done are not undone.
        """
        if keep_count < 0:
            raise ValidationError(f"keep_count must not be negative: {keep_count}")

        records = self.list_backups(backup_dir, Backend.LOCAL)
        if len(records) <= keep_count:
            return []

        oldest_first = list(reversed(records))
        to_delete = oldest_first[: len(records) - keep_count]

        deleted: list[str] = []
        for record in to_delete:
            self.delete_backup(record.filename, backup_dir)
            deleted.append(record.filename)

        logger.info(f"Cleaned up {len(deleted)} old backup(s), kept {keep_count}")
        return deleted
