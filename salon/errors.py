"""Error taxonomy shared by the data store, backup and lock services."""

from __future__ import annotations


class SalonError(Exception):
    """Base class for all salon backend errors."""


class NotFoundError(SalonError):
    """A source file, backup snapshot or remote record does not exist."""


class IOFailureError(SalonError):
    """A copy, create or delete on disk (or over the wire) failed."""


class BackendUnavailableError(SalonError):
    """The requested backend is not supported on this platform or not implemented."""


class ValidationError(SalonError):
    """Caller input was rejected (backend selector, PIN format, ...)."""


class RestoreError(IOFailureError):
    """Applying a snapshot failed.

    ``original`` is the failure raised while overwriting the live file.
    ``rollback_error`` is set only when putting the checkpoint back failed too,
    in which case the checkpoint file is left on disk.
    """

    def __init__(self, original: BaseException, rollback_error: BaseException | None = None) -> None:
        self.original = original
        self.rollback_error = rollback_error
        if rollback_error is None:
            message = f"Failed to restore backup: {original}"
        else:
            message = (
                f"Failed to restore backup: {original}; "
                f"rollback also failed: {rollback_error}"
            )
        super().__init__(message)
