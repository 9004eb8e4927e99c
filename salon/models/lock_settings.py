"""App-lock settings model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class LockSettings:
    """App-lock configuration, stored as JSON in ``app_settings``."""

    is_enabled: bool = False
    use_biometric: bool = False
    auto_lock_timeout: int = 5  # minutes, 0 = immediate
    lock_on_background: bool = True
    pin_hash: str | None = None  # fallback when the OS keyring is unavailable

    def to_dict(self) -> dict[str, Any]:
        return {
            "isEnabled": self.is_enabled,
            "useBiometric": self.use_biometric,
            "autoLockTimeout": self.auto_lock_timeout,
            "lockOnBackground": self.lock_on_background,
            "pinHash": self.pin_hash,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LockSettings:
        defaults = cls()
        return cls(
            is_enabled=bool(data.get("isEnabled", defaults.is_enabled)),
            use_biometric=bool(data.get("useBiometric", defaults.use_biometric)),
            auto_lock_timeout=int(data.get("autoLockTimeout", defaults.auto_lock_timeout)),
            lock_on_background=bool(data.get("lockOnBackground", defaults.lock_on_background)),
            pin_hash=data.get("pinHash"),
        )
