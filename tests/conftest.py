"""Shared fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from salon.errors import IOFailureError, NotFoundError
from salon.models.backup_record import RemoteBackup
from salon.remotes.base import RemoteSyncAdapter

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeRemote(RemoteSyncAdapter):
    """In-memory remote store keyed by filename."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.blobs: dict[str, bytes] = {}
        self.created: dict[str, datetime] = {}
        self.fail_upload = False
        self.fail_download = False
        self.fail_delete: set[str] = set()
        self._clock = T0

    @property
    def name(self) -> str:
        return "fake"

    def availability(self) -> bool:
        return self.available

    def add(self, filename: str, data: bytes = b"remote") -> None:
        self._clock += timedelta(minutes=1)
        self.blobs[filename] = data
        self.created[filename] = self._clock

    def upload(self, local_path: Path) -> str:
        if self.fail_upload:
            raise IOFailureError("upload timed out")
        self.add(local_path.name, local_path.read_bytes())
        return local_path.name

    def list(self) -> list[RemoteBackup]:
        records = [
            RemoteBackup(id=name, filename=name, size=len(data), created_at=self.created[name])
            for name, data in self.blobs.items()
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def delete(self, remote_id: str) -> None:
        if remote_id in self.fail_delete:
            raise IOFailureError("server error")
        if remote_id not in self.blobs:
            raise NotFoundError(remote_id)
        del self.blobs[remote_id]
        del self.created[remote_id]

    def download(self, remote_id: str, dest_path: Path) -> None:
        if self.fail_download:
            raise IOFailureError("network unreachable")
        dest_path.write_bytes(self.blobs[remote_id])


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()
