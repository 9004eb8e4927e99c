"""App lock: PIN storage in the OS keyring with a database fallback."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import bcrypt
import keyring
from keyring.errors import PasswordDeleteError
from loguru import logger

from salon.errors import ValidationError
from salon.models.lock_settings import LockSettings

if TYPE_CHECKING:
    from salon.data.database import Database

KEYRING_SERVICE = "com.sisters-salon.app"
KEYRING_USERNAME = "lock_pin"
SETTINGS_KEY = "lock_settings"


def validate_pin(pin: str) -> None:
    """A PIN is 4-6 ASCII digits."""
    if not (4 <= len(pin) <= 6) or not all(c in "0123456789" for c in pin):
        raise ValidationError("PIN must be 4-6 digits")


def _check(pin: str, pin_hash: str) -> bool:
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored PIN hash is malformed")
        return False


class LockService:
    """
    PIN lock backed by the OS keyring.

    The keyring is tried first but may be missing (headless Linux, some
    mobile targets), so the bcrypt hash is always mirrored into the
    ``lock_settings`` row as well.
    """

    def __init__(self, database: Database, rounds: int = 12) -> None:
        self._db = database
        self._rounds = rounds

    # ── Settings row ──

    def _load(self) -> LockSettings:
        raw = self._db.get_setting(SETTINGS_KEY)
        if raw is None:
            return LockSettings()
        try:
            return LockSettings.from_dict(json.loads(raw))
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning(f"Lock settings unreadable, using defaults: {e}")
            return LockSettings()

    def _save(self, settings: LockSettings) -> None:
        self._db.set_setting(SETTINGS_KEY, json.dumps(settings.to_dict()))

    # ── Keyring (best-effort) ──

    def _keyring_get(self) -> str | None:
        try:
            return keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME)
        except Exception:  # noqa: BLE001
            logger.debug("Keyring access failed")
            return None

    def _keyring_set(self, pin_hash: str) -> None:
        try:
            keyring.set_password(KEYRING_SERVICE, KEYRING_USERNAME, pin_hash)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Keyring storage failed (using DB fallback): {e}")

    def _keyring_delete(self) -> None:
        try:
            keyring.delete_password(KEYRING_SERVICE, KEYRING_USERNAME)
        except PasswordDeleteError:
            logger.debug("No PIN found in keyring to delete")
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Failed to remove PIN from keyring: {e}")

    # ── Public API ──

    def _hash(self, pin: str) -> str:
        return bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def set_pin(self, pin: str) -> None:
        validate_pin(pin)
        pin_hash = self._hash(pin)
        self._keyring_set(pin_hash)

        settings = self._load()
        settings.is_enabled = True
        settings.pin_hash = pin_hash
        self._save(settings)
        logger.info("Lock PIN set")

    def verify_pin(self, pin: str) -> bool:
        stored = self._keyring_get()
        if stored and _check(pin, stored):
            return True
        settings = self._load()
        if settings.pin_hash:
            return _check(pin, settings.pin_hash)
        return False

    def change_pin(self, old_pin: str, new_pin: str) -> None:
        if not self.verify_pin(old_pin):
            raise ValidationError("Current PIN is incorrect")
        validate_pin(new_pin)
        pin_hash = self._hash(new_pin)
        self._keyring_set(pin_hash)

        settings = self._load()
        settings.pin_hash = pin_hash
        self._save(settings)
        logger.info("Lock PIN changed")

    def remove_pin(self) -> None:
        self._keyring_delete()
        settings = self._load()
        settings.is_enabled = False
        settings.pin_hash = None
        self._save(settings)
        logger.info("Lock PIN removed")

    def is_lock_enabled(self) -> bool:
        settings = self._load()
        if not settings.is_enabled:
            return False
        return bool(self._keyring_get()) or settings.pin_hash is not None

    def get_lock_settings(self) -> LockSettings:
        """Current settings, without the PIN hash."""
        settings = self._load()
        settings.pin_hash = None
        return settings

    def update_lock_settings(self, settings: LockSettings) -> None:
        """Apply user-editable fields only; ``is_enabled`` and the hash follow the PIN calls."""
        existing = self._load()
        existing.use_biometric = settings.use_biometric
        existing.auto_lock_timeout = settings.auto_lock_timeout
        existing.lock_on_background = settings.lock_on_background
        self._save(existing)
