"""Application context: service container for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from salon.config import Config
    from salon.core.security import LockService
    from salon.core.service import BackupService
    from salon.data.database import Database


@dataclass
class AppContext:
    """
    Central service container.

    Command handlers receive this instead of reaching for globals; the
    database handle in here is the only one the process opens.
    """

    config: Config
    database: Database
    backup_service: BackupService
    lock_service: LockService

    def close(self) -> None:
        self.backup_service.close()
        self.database.close()
