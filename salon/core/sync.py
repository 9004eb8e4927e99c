"""Remote sync: mirror snapshots to a remote store and keep its size bounded."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from salon.errors import NotFoundError, SalonError
from salon.models.backup_record import Backend, BackupRecord, RemoteBackup
from salon.remotes.base import RemoteSyncAdapter, UnavailableRemote

if TYPE_CHECKING:
    from salon.config import Config

# Snapshots kept server-side after each upload
REMOTE_KEEP_COUNT = 10


def create_remote_adapter(config: Config) -> RemoteSyncAdapter:
    """Pick the remote store for this installation from config."""
    if config.remote_url:
        from salon.remotes.http_store import HttpRemoteStore

        return HttpRemoteStore(
            base_url=config.remote_url,
            token=config.remote_token,
            timeout=config.remote_timeout,
        )
    return UnavailableRemote("No remote backup store is configured on this device.")


class RemoteSync:
    """
    Remote half of the cloud backend.

    ``push`` uploads and then trims the remote store to ``keep_count``
    snapshots. Trimming is best-effort: a record that fails to delete is
    logged and left for the next run.
    """

    def __init__(self, adapter: RemoteSyncAdapter, keep_count: int = REMOTE_KEEP_COUNT) -> None:
        self._adapter = adapter
        self._keep_count = keep_count

    @property
    def adapter(self) -> RemoteSyncAdapter:
        return self._adapter

    def is_available(self) -> bool:
        return self._adapter.availability()

    def close(self) -> None:
        self._adapter.close()

    def push(self, local_path: Path) -> str:
        remote_id = self._adapter.upload(local_path)
        self.cleanup()
        return remote_id

    def cleanup(self) -> int:
        """Delete remote snapshots beyond the newest ``keep_count``. Returns the number removed."""
        try:
            records = self._adapter.list()
        except SalonError as e:
            logger.warning(f"Remote cleanup skipped, listing failed: {e}")
            return 0

        removed = 0
        for record in records[self._keep_count :]:
            try:
                self._adapter.delete(record.id)
                removed += 1
            except SalonError as e:
                logger.warning(f"Failed to delete old remote backup {record.id}: {e}")
        if removed:
            logger.info(f"Removed {removed} old remote backup(s)")
        return removed

    def records(self) -> list[BackupRecord]:
        return [r.to_record(Backend.ICLOUD) for r in self._adapter.list()]

    def find(self, name: str) -> RemoteBackup:
        """Look a remote snapshot up by record id or filename."""
        for record in self._adapter.list():
            if record.id == name or record.filename == name:
                return record
        raise NotFoundError(f"Remote backup not found: {name}")

    def delete(self, name: str) -> None:
        self._adapter.delete(self.find(name).id)

    def fetch(self, name: str, dest_dir: Path) -> Path:
        """Download a remote snapshot into ``dest_dir`` and return its local path."""
        record = self.find(name)
        dest_path = Path(dest_dir) / Path(record.filename).name
        self._adapter.download(record.id, dest_path)
        return dest_path
