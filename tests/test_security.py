"""Tests for the PIN lock service."""

from __future__ import annotations

import json
from pathlib import Path

import keyring
import pytest
from keyring.errors import KeyringError, PasswordDeleteError

from salon.core.security import KEYRING_SERVICE, KEYRING_USERNAME, SETTINGS_KEY, LockService, validate_pin
from salon.data.database import Database
from salon.errors import ValidationError
from salon.models.lock_settings import LockSettings


class MemoryKeyring:
    """Stand-in for the OS credential store."""

    def __init__(self) -> None:
        self.store: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self.store.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.store[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        if (service, username) not in self.store:
            raise PasswordDeleteError("not found")
        del self.store[(service, username)]


def _broken(*args, **kwargs):
    raise KeyringError("no backend available")


@pytest.fixture
def memory_keyring(monkeypatch: pytest.MonkeyPatch) -> MemoryKeyring:
    fake = MemoryKeyring()
    monkeypatch.setattr(keyring, "get_password", fake.get_password)
    monkeypatch.setattr(keyring, "set_password", fake.set_password)
    monkeypatch.setattr(keyring, "delete_password", fake.delete_password)
    return fake


@pytest.fixture
def broken_keyring(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("get_password", "set_password", "delete_password"):
        monkeypatch.setattr(keyring, name, _broken)


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "database.db")
    database.open()
    yield database
    database.close()


@pytest.fixture
def lock(db: Database) -> LockService:
    # Low bcrypt cost keeps the suite fast
    return LockService(db, rounds=4)


class TestPinValidation:
    @pytest.mark.parametrize("pin", ["1234", "12345", "123456"])
    def test_accepts(self, pin: str) -> None:
        validate_pin(pin)

    @pytest.mark.parametrize("pin", ["", "123", "1234567", "12a4", "١٢٣٤"])
    def test_rejects(self, pin: str) -> None:
        with pytest.raises(ValidationError):
            validate_pin(pin)


class TestWithKeyring:
    def test_set_and_verify(self, lock: LockService, memory_keyring: MemoryKeyring) -> None:
        lock.set_pin("1234")
        assert lock.verify_pin("1234")
        assert not lock.verify_pin("4321")
        assert (KEYRING_SERVICE, KEYRING_USERNAME) in memory_keyring.store

    def test_hash_not_plaintext(self, lock: LockService, memory_keyring: MemoryKeyring) -> None:
        lock.set_pin("1234")
        stored = memory_keyring.store[(KEYRING_SERVICE, KEYRING_USERNAME)]
        assert stored != "1234"
        assert stored.startswith("$2")

    def test_lock_enabled(self, lock: LockService, memory_keyring: MemoryKeyring) -> None:
        assert not lock.is_lock_enabled()
        lock.set_pin("1234")
        assert lock.is_lock_enabled()

    def test_change_pin(self, lock: LockService, memory_keyring: MemoryKeyring) -> None:
        lock.set_pin("1234")
        lock.change_pin("1234", "567890")
        assert lock.verify_pin("567890")
        assert not lock.verify_pin("1234")

    def test_change_pin_wrong_current(self, lock: LockService, memory_keyring: MemoryKeyring) -> None:
        lock.set_pin("1234")
        with pytest.raises(ValidationError, match="Current PIN is incorrect"):
            lock.change_pin("0000", "5678")
        assert lock.verify_pin("1234")

    def test_remove_pin(self, lock: LockService, memory_keyring: MemoryKeyring) -> None:
        lock.set_pin("1234")
        lock.remove_pin()
        assert not lock.is_lock_enabled()
        assert not lock.verify_pin("1234")
        assert memory_keyring.store == {}

    def test_remove_without_pin(self, lock: LockService, memory_keyring: MemoryKeyring) -> None:
        lock.remove_pin()
        assert not lock.is_lock_enabled()


class TestDatabaseFallback:
    def test_verify_without_keyring(self, lock: LockService, broken_keyring: None) -> None:
        lock.set_pin("2468")
        assert lock.verify_pin("2468")
        assert not lock.verify_pin("1357")
        assert lock.is_lock_enabled()

    def test_remove_without_keyring(self, lock: LockService, broken_keyring: None) -> None:
        lock.set_pin("2468")
        lock.remove_pin()
        assert not lock.is_lock_enabled()

    def test_stale_keyring_entry_falls_through(
        self, lock: LockService, db: Database, memory_keyring: MemoryKeyring
    ) -> None:
        lock.set_pin("1111")
        memory_keyring.store[(KEYRING_SERVICE, KEYRING_USERNAME)] = "not-a-bcrypt-hash"
        assert lock.verify_pin("1111")

    def test_unreadable_settings_row(self, lock: LockService, db: Database, memory_keyring: MemoryKeyring) -> None:
        db.set_setting(SETTINGS_KEY, "{not json")
        assert lock.get_lock_settings() == LockSettings()
        assert not lock.is_lock_enabled()


class TestLockSettings:
    def test_defaults(self, lock: LockService, memory_keyring: MemoryKeyring) -> None:
        settings = lock.get_lock_settings()
        assert not settings.is_enabled
        assert settings.auto_lock_timeout == 5
        assert settings.lock_on_background

    def test_hash_never_exposed(self, lock: LockService, memory_keyring: MemoryKeyring) -> None:
        lock.set_pin("1234")
        settings = lock.get_lock_settings()
        assert settings.is_enabled
        assert settings.pin_hash is None

    def test_update_only_user_fields(self, lock: LockService, db: Database, memory_keyring: MemoryKeyring) -> None:
        lock.set_pin("1234")
        lock.update_lock_settings(
            LockSettings(is_enabled=False, use_biometric=True, auto_lock_timeout=15, lock_on_background=False)
        )
        settings = lock.get_lock_settings()
        assert settings.is_enabled
        assert settings.use_biometric
        assert settings.auto_lock_timeout == 15
        assert not settings.lock_on_background
        assert lock.verify_pin("1234")

    def test_stored_as_camel_case_json(self, lock: LockService, db: Database, memory_keyring: MemoryKeyring) -> None:
        lock.update_lock_settings(LockSettings(auto_lock_timeout=10))
        stored = json.loads(db.get_setting(SETTINGS_KEY))
        assert stored["autoLockTimeout"] == 10
        assert "isEnabled" in stored
