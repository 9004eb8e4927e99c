"""Abstract base class for remote snapshot stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from salon.errors import BackendUnavailableError
from salon.models.backup_record import RemoteBackup


class RemoteSyncAdapter(ABC):
    """
    Capability interface over a remote snapshot store.

    Implementations only deal in opaque record ids and raw file paths; they
    know nothing about backends or the local backup directory layout.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this store (e.g. 'http', 'unavailable')."""
        ...

    @abstractmethod
    def availability(self) -> bool:
        """Cheap capability probe. Must never raise; failures read as unavailable."""
        ...

    @abstractmethod
    def upload(self, local_path: Path) -> str:
        """Send a snapshot and return the remote record id."""
        ...

    @abstractmethod
    def list(self) -> list[RemoteBackup]:
        """All remote snapshots, newest first."""
        ...

    @abstractmethod
    def delete(self, remote_id: str) -> None:
        ...

    @abstractmethod
    def download(self, remote_id: str, dest_path: Path) -> None:
        """Write the snapshot's bytes to ``dest_path``."""
        ...

    def close(self) -> None:
        """Release connections held by the store. Safe to call more than once."""


class UnavailableRemote(RemoteSyncAdapter):
    """Stand-in for platforms without a remote store. Every operation fails explicitly."""

    def __init__(self, reason: str = "Remote backup is not available on this platform.") -> None:
        self._reason = reason

    @property
    def name(self) -> str:
        return "unavailable"

    def availability(self) -> bool:
        return False

    def upload(self, local_path: Path) -> str:
        raise BackendUnavailableError(self._reason)

    def list(self) -> list[RemoteBackup]:
        raise BackendUnavailableError(self._reason)

    def delete(self, remote_id: str) -> None:
        raise BackendUnavailableError(self._reason)

    def download(self, remote_id: str, dest_path: Path) -> None:
        raise BackendUnavailableError(self._reason)
