"""Backup record models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from salon.errors import ValidationError

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Backend(StrEnum):
    """Storage destination for backups."""

    LOCAL = "local"
    ICLOUD = "icloud"  # synced drive folder + remote snapshot store
    GOOGLE_DRIVE = "google_drive"  # not implemented yet


_BACKEND_ALIASES: dict[str, Backend] = {
    "local": Backend.LOCAL,
    "icloud": Backend.ICLOUD,
    "google_drive": Backend.GOOGLE_DRIVE,
    "googledrive": Backend.GOOGLE_DRIVE,
}


def parse_backend(value: str | Backend) -> Backend:
    """Map a selector string (case-insensitive) to a Backend."""
    if isinstance(value, Backend):
        return value
    backend = _BACKEND_ALIASES.get(str(value).strip().lower())
    if backend is None:
        raise ValidationError(f"Invalid cloud service: {value}")
    return backend


@dataclass
class BackupRecord:
    """One snapshot of the data store, owned by exactly one backend."""

    id: str
    backend: Backend
    filename: str
    size: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "service": str(self.backend),
            "filename": self.filename,
            "size": self.size,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class CreateResult:
    """Result of a create operation. Warnings cover best-effort remote steps."""

    record: BackupRecord
    warnings: list[str] = field(default_factory=list)


@dataclass
class RemoteBackup:
    """Record shape reported by a remote snapshot store."""

    id: str
    filename: str
    size: int = 0
    created_at: datetime = _EPOCH

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteBackup:
        """Build from the ``{id, filename, size, createdAt}`` wire shape."""
        created_at = _EPOCH
        raw = data.get("createdAt")
        if raw:
            try:
                created_at = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
            except ValueError:
                created_at = _EPOCH
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
        record_id = str(data["id"])
        return cls(
            id=record_id,
            filename=str(data.get("filename") or record_id),
            size=int(data.get("size") or 0),
            created_at=created_at,
        )

    def to_record(self, backend: Backend) -> BackupRecord:
        return BackupRecord(
            id=self.id,
            backend=backend,
            filename=self.filename,
            size=self.size,
            created_at=self.created_at,
        )
