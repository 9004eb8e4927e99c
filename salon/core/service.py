"""Backup service: the operation surface the application calls into."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from salon.core.backup import BackupManager
from salon.core.path_resolver import resolve_backup_dir
from salon.core.restore import RestoreExecutor, RestoreResult
from salon.core.sync import RemoteSync
from salon.data.database import check_snapshot
from salon.errors import SalonError
from salon.models.backup_record import Backend, BackupRecord, CreateResult, parse_backend

if TYPE_CHECKING:
    from salon.config import Config
    from salon.data.database import Database


class BackupService:
    """
    Routes each operation to the right backend.

    Local and synced-drive backups live in a directory from the resolver. For
    the cloud backend, when the remote store is reachable, listing, deletion
    and restore go through it too. A failed upload only adds a warning to the
    create result, while a failed download aborts the restore, since there is
    no local copy to fall back on.
    """

    def __init__(
        self,
        config: Config,
        database: Database,
        remote: RemoteSync,
        manager: BackupManager | None = None,
        executor: RestoreExecutor | None = None,
        system: str | None = None,
        home: Path | None = None,
    ) -> None:
        self._config = config
        self._db = database
        self._remote = remote
        self._manager = manager or BackupManager()
        self._executor = executor or RestoreExecutor(verify=check_snapshot)
        self._system = system
        self._home = home

    def backup_dir(self, backend: Backend | str) -> Path:
        return resolve_backup_dir(
            self._config.data_dir,
            parse_backend(backend),
            system=self._system,
            home=self._home,
        )

    def _uses_remote(self, backend: Backend) -> bool:
        return backend == Backend.ICLOUD and self._remote.is_available()

    def is_remote_backend_available(self) -> bool:
        return self._remote.is_available()

    def close(self) -> None:
        self._remote.close()

    def list_backups(self, backend: Backend | str) -> list[BackupRecord]:
        backend = parse_backend(backend)
        if self._uses_remote(backend):
            return self._remote.records()
        return self._manager.list_backups(self.backup_dir(backend), backend)

    def create_backup(self, backend: Backend | str) -> CreateResult:
        backend = parse_backend(backend)
        backup_dir = self.backup_dir(backend)

        with self._db.detached() as db_path:
            record = self._manager.create_backup(db_path, backup_dir, backend)
        result = CreateResult(record=record)

        if self._uses_remote(backend):
            try:
                remote_id = self._remote.push(backup_dir / record.filename)
                logger.info(f"Backup {record.filename} mirrored to remote store ({remote_id})")
            except SalonError as e:
                message = f"Remote upload failed, backup kept locally only: {e}"
                logger.warning(message)
                result.warnings.append(message)

        if self._config.auto_cleanup:
            try:
                self._manager.cleanup_old_backups(backup_dir, self._config.max_backups)
            except SalonError as e:
                message = f"Automatic cleanup of old backups failed: {e}"
                logger.warning(message)
                result.warnings.append(message)

        return result

    def restore_backup(self, name: str, backend: Backend | str) -> RestoreResult:
        backend = parse_backend(backend)
        backup_dir = self.backup_dir(backend)

        if self._uses_remote(backend) and not (backup_dir / name).is_file():
            logger.info(f"Backup {name} not present locally, downloading from remote store")
            name = self._remote.fetch(name, backup_dir).name

        with self._db.detached() as db_path:
            return self._executor.restore(name, backup_dir, db_path)

    def delete_backup(self, name: str, backend: Backend | str) -> None:
        backend = parse_backend(backend)
        if self._uses_remote(backend):
            self._remote.delete(name)
            return
        self._manager.delete_backup(name, self.backup_dir(backend))

    def cleanup_old_backups(self, keep_count: int) -> list[str]:
        return self._manager.cleanup_old_backups(self.backup_dir(Backend.LOCAL), keep_count)
