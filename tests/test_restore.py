"""Tests for the RestoreExecutor."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from salon.core.restore import RestoreExecutor, checkpoint_path_for
from salon.errors import IOFailureError, NotFoundError, RestoreError, ValidationError

LIVE = b"live database contents" * 32
SNAPSHOT = b"snapshot contents" * 16


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "database.db"
    path.write_bytes(LIVE)
    return path


@pytest.fixture
def backup_dir(tmp_path: Path) -> Path:
    d = tmp_path / "backups"
    d.mkdir()
    (d / "salon_backup_20240101_100000.db").write_bytes(SNAPSHOT)
    return d


class TestRestoreSuccess:
    def test_live_file_matches_snapshot(self, db_path: Path, backup_dir: Path) -> None:
        result = RestoreExecutor().restore("salon_backup_20240101_100000.db", backup_dir, db_path)
        assert result.success
        assert result.checkpoint_used
        assert db_path.read_bytes() == SNAPSHOT

    def test_no_checkpoint_left_behind(self, db_path: Path, backup_dir: Path) -> None:
        RestoreExecutor().restore("salon_backup_20240101_100000.db", backup_dir, db_path)
        assert not checkpoint_path_for(db_path).exists()

    def test_restore_without_live_file(self, tmp_path: Path, backup_dir: Path) -> None:
        db_path = tmp_path / "fresh" / "database.db"
        db_path.parent.mkdir()
        result = RestoreExecutor().restore("salon_backup_20240101_100000.db", backup_dir, db_path)
        assert not result.checkpoint_used
        assert db_path.read_bytes() == SNAPSHOT

    def test_snapshot_is_untouched(self, db_path: Path, backup_dir: Path) -> None:
        RestoreExecutor().restore("salon_backup_20240101_100000.db", backup_dir, db_path)
        assert (backup_dir / "salon_backup_20240101_100000.db").read_bytes() == SNAPSHOT


class TestRestoreFailures:
    def test_missing_snapshot(self, db_path: Path, backup_dir: Path) -> None:
        with pytest.raises(NotFoundError):
            RestoreExecutor().restore("salon_backup_19990101_000000.db", backup_dir, db_path)
        assert db_path.read_bytes() == LIVE

    def test_rejects_path_components(self, db_path: Path, backup_dir: Path) -> None:
        with pytest.raises(ValidationError):
            RestoreExecutor().restore("../database.db", backup_dir, db_path)

    def test_apply_failure_rolls_back(self, db_path: Path, backup_dir: Path) -> None:
        class TornWrite(RestoreExecutor):
            def _apply(self, snapshot: Path, dest: Path) -> None:
                dest.write_bytes(b"half")
                raise OSError("No space left on device")

        with pytest.raises(RestoreError) as exc_info:
            TornWrite().restore("salon_backup_20240101_100000.db", backup_dir, db_path)

        assert db_path.read_bytes() == LIVE
        assert not checkpoint_path_for(db_path).exists()
        assert "No space left on device" in str(exc_info.value)
        assert exc_info.value.rollback_error is None
        assert isinstance(exc_info.value, IOFailureError)

    def test_apply_failure_without_live_file_leaves_nothing(self, tmp_path: Path, backup_dir: Path) -> None:
        db_path = tmp_path / "database.db"

        class TornWrite(RestoreExecutor):
            def _apply(self, snapshot: Path, dest: Path) -> None:
                dest.write_bytes(b"half")
                raise OSError("I/O error")

        with pytest.raises(RestoreError):
            TornWrite().restore("salon_backup_20240101_100000.db", backup_dir, db_path)
        assert not db_path.exists()

    def test_rollback_failure_reports_both(
        self, db_path: Path, backup_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken_copy(*args, **kwargs):
            raise OSError("device unplugged")

        class TornWrite(RestoreExecutor):
            def _apply(self, snapshot: Path, dest: Path) -> None:
                dest.write_bytes(b"half")
                monkeypatch.setattr(shutil, "copyfile", broken_copy)
                raise OSError("write failed")

        with pytest.raises(RestoreError) as exc_info:
            TornWrite().restore("salon_backup_20240101_100000.db", backup_dir, db_path)

        err = exc_info.value
        assert "write failed" in str(err)
        assert "device unplugged" in str(err)
        assert err.rollback_error is not None
        # Pre-restore data survives in the checkpoint
        assert checkpoint_path_for(db_path).read_bytes() == LIVE

    def test_checkpoint_failure_leaves_live_file(
        self, db_path: Path, backup_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken_copy2(*args, **kwargs):
            raise OSError("read-only file system")

        monkeypatch.setattr(shutil, "copy2", broken_copy2)
        with pytest.raises(IOFailureError):
            RestoreExecutor().restore("salon_backup_20240101_100000.db", backup_dir, db_path)
        assert db_path.read_bytes() == LIVE

    def test_partial_checkpoint_is_removed(
        self, db_path: Path, backup_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def short_copy2(src, dst, *args, **kwargs):
            Path(dst).write_bytes(Path(src).read_bytes()[:10])
            raise OSError("No space left on device")

        monkeypatch.setattr(shutil, "copy2", short_copy2)
        with pytest.raises(IOFailureError):
            RestoreExecutor().restore("salon_backup_20240101_100000.db", backup_dir, db_path)
        assert not checkpoint_path_for(db_path).exists()
        assert db_path.read_bytes() == LIVE


class TestSnapshotVerification:
    def test_rejected_snapshot_touches_nothing(self, db_path: Path, backup_dir: Path) -> None:
        def reject(snapshot: Path) -> None:
            raise ValidationError(f"{snapshot.name} is not a database")

        with pytest.raises(ValidationError):
            RestoreExecutor(verify=reject).restore("salon_backup_20240101_100000.db", backup_dir, db_path)
        assert db_path.read_bytes() == LIVE
        assert not checkpoint_path_for(db_path).exists()

    def test_verify_sees_snapshot_path(self, db_path: Path, backup_dir: Path) -> None:
        seen: list[Path] = []
        RestoreExecutor(verify=seen.append).restore("salon_backup_20240101_100000.db", backup_dir, db_path)
        assert seen == [backup_dir / "salon_backup_20240101_100000.db"]
