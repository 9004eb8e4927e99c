"""Restore executor: overwrite the database from a snapshot with checkpoint rollback."""

from __future__ import annotations

import contextlib
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from salon.errors import IOFailureError, NotFoundError, RestoreError, ValidationError

CHECKPOINT_SUFFIX = ".bak"


@dataclass
class RestoreResult:
    """Result of a restore operation."""

    success: bool = True
    restored_from: str = ""
    checkpoint_used: bool = False
    warnings: list[str] = field(default_factory=list)


def checkpoint_path_for(db_path: Path) -> Path:
    """Sibling path holding the pre-restore copy (``database.db`` → ``database.db.bak``)."""
    return db_path.with_name(db_path.name + CHECKPOINT_SUFFIX)


class RestoreExecutor:
    """
    Restore a snapshot over the live database file.

    Steps: verify the snapshot, checkpoint the live file, apply, then either
    drop the checkpoint or copy it back. A failed restore leaves the
    pre-restore file in place.

    ``verify`` is called with the snapshot path before anything is touched
    and raises when the file is not something the store can open.
    """

    def __init__(self, verify: Callable[[Path], None] | None = None) -> None:
        self._verify = verify

    def _apply(self, snapshot: Path, db_path: Path) -> None:
        shutil.copyfile(snapshot, db_path)

    def restore(self, backup_filename: str, backup_dir: Path, db_path: Path) -> RestoreResult:
        if not backup_filename or Path(backup_filename).name != backup_filename:
            raise ValidationError(f"Invalid backup filename: {backup_filename!r}")

        db_path = Path(db_path)
        snapshot = Path(backup_dir) / backup_filename
        if not snapshot.is_file():
            raise NotFoundError(f"Backup file not found: {snapshot}")
        if self._verify is not None:
            self._verify(snapshot)

        result = RestoreResult(restored_from=backup_filename)
        checkpoint = checkpoint_path_for(db_path)

        if db_path.exists():
            try:
                shutil.copy2(db_path, checkpoint)
            except OSError as e:
                with contextlib.suppress(OSError):
                    checkpoint.unlink(missing_ok=True)
                raise IOFailureError(f"Failed to create temp backup: {e}") from e
            result.checkpoint_used = True
            logger.debug(f"Checkpoint written: {checkpoint.name}")

        try:
            self._apply(snapshot, db_path)
        except OSError as e:
            logger.error(f"Restore from {backup_filename} failed: {e}")
            self._rollback(db_path, checkpoint, result.checkpoint_used, e)
            raise RestoreError(e) from e

        if result.checkpoint_used:
            try:
                checkpoint.unlink()
            except OSError as e:
                result.warnings.append(f"Could not remove checkpoint {checkpoint.name}: {e}")
                logger.warning(f"Could not remove checkpoint {checkpoint}: {e}")

        logger.info(f"Restored database from {backup_filename}")
        return result

    def _rollback(
        self,
        db_path: Path,
        checkpoint: Path,
        had_checkpoint: bool,
        original: OSError,
    ) -> None:
        """Put the pre-restore state back. Raises RestoreError if that fails too."""
        if not had_checkpoint:
            # Nothing existed before; drop whatever partial file the copy left
            try:
                db_path.unlink(missing_ok=True)
            except OSError as e:
                raise RestoreError(original, e) from original
            return

        try:
            shutil.copyfile(checkpoint, db_path)
        except OSError as e:
            # Keep the checkpoint so the pre-restore data survives on disk
            logger.error(f"Rollback failed, checkpoint kept at {checkpoint}: {e}")
            raise RestoreError(original, e) from original

        try:
            checkpoint.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove checkpoint {checkpoint}: {e}")
        logger.info("Rolled back to pre-restore database")
