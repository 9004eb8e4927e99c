"""Embedded SQLite store: versioned migrations and a guarded connection handle."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from salon.errors import IOFailureError, SalonError, ValidationError

_BASE_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS designers (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        specialty TEXT,
        is_active INTEGER DEFAULT 1,
        created_at TEXT DEFAULT (datetime('now')),
        updated_at TEXT DEFAULT (datetime('now'))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS reservations (
        id TEXT PRIMARY KEY,
        customer_name TEXT NOT NULL,
        customer_phone TEXT,
        date TEXT NOT NULL,
        time TEXT NOT NULL,
        designer_id TEXT,
        service_type TEXT,
        status TEXT DEFAULT 'pending',
        notes TEXT,
        created_at TEXT DEFAULT (datetime('now')),
        updated_at TEXT DEFAULT (datetime('now')),
        FOREIGN KEY (designer_id) REFERENCES designers(id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_reservations_date ON reservations(date)",
    "CREATE INDEX IF NOT EXISTS idx_reservations_status ON reservations(status)",
    "CREATE INDEX IF NOT EXISTS idx_reservations_designer ON reservations(designer_id)",
    """
    CREATE TABLE IF NOT EXISTS business_hours (
        id INTEGER PRIMARY KEY,
        day_of_week INTEGER NOT NULL UNIQUE,
        open_time TEXT,
        close_time TEXT,
        break_start TEXT,
        break_end TEXT,
        is_closed INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS holidays (
        id TEXT PRIMARY KEY,
        date TEXT NOT NULL UNIQUE,
        description TEXT,
        is_recurring INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS customers (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        phone TEXT UNIQUE,
        email TEXT,
        notes TEXT,
        created_at TEXT DEFAULT (datetime('now'))
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_customers_phone ON customers(phone)",
    "CREATE INDEX IF NOT EXISTS idx_customers_name ON customers(name)",
    """
    CREATE TABLE IF NOT EXISTS reservation_status_history (
        id TEXT PRIMARY KEY,
        reservation_id TEXT NOT NULL,
        old_status TEXT,
        new_status TEXT NOT NULL,
        changed_at TEXT DEFAULT (datetime('now')),
        FOREIGN KEY (reservation_id) REFERENCES reservations(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS app_settings (
        key TEXT PRIMARY KEY,
        value TEXT,
        updated_at TEXT DEFAULT (datetime('now'))
    )
    """,
    # Sunday closed, weekdays 10-20, Saturday 10-18
    """
    INSERT OR IGNORE INTO business_hours (id, day_of_week, open_time, close_time, is_closed) VALUES
        (0, 0, NULL, NULL, 1),
        (1, 1, '10:00', '20:00', 0),
        (2, 2, '10:00', '20:00', 0),
        (3, 3, '10:00', '20:00', 0),
        (4, 4, '10:00', '20:00', 0),
        (5, 5, '10:00', '20:00', 0),
        (6, 6, '10:00', '18:00', 0)
    """,
]

_CUSTOMER_PROFILE = [
    "ALTER TABLE customers ADD COLUMN birthdate TEXT",
    "ALTER TABLE customers ADD COLUMN gender TEXT "
    "CHECK(gender IN ('male', 'female', 'other') OR gender IS NULL)",
    "ALTER TABLE customers ADD COLUMN preferred_designer_id TEXT REFERENCES designers(id)",
    "ALTER TABLE customers ADD COLUMN preferred_service TEXT",
    "ALTER TABLE customers ADD COLUMN allergies TEXT",
    "ALTER TABLE customers ADD COLUMN total_visits INTEGER DEFAULT 0",
    "ALTER TABLE customers ADD COLUMN last_visit_date TEXT",
    "ALTER TABLE customers ADD COLUMN updated_at TEXT",
]

_RESERVATION_CUSTOMER = [
    "ALTER TABLE reservations ADD COLUMN customer_id TEXT REFERENCES customers(id)",
    "CREATE INDEX IF NOT EXISTS idx_reservations_customer ON reservations(customer_id)",
]

# (version, statements), applied in order while PRAGMA user_version < version
MIGRATIONS: list[tuple[int, list[str]]] = [
    (1, _BASE_SCHEMA),
    (2, _CUSTOMER_PROFILE),
    (3, _RESERVATION_CUSTOMER),
]

LATEST_VERSION = MIGRATIONS[-1][0]


def check_snapshot(path: Path) -> None:
    """
    Raise ValidationError unless ``path`` is a salon database this build can open.

    The file is opened read-only and immutable, so checking never changes it.
    """
    path = Path(path)
    uri = f"{path.resolve().as_uri()}?mode=ro&immutable=1"
    try:
        conn = sqlite3.connect(uri, uri=True)
        try:
            integrity = conn.execute("PRAGMA quick_check").fetchone()[0]
            version = conn.execute("PRAGMA user_version").fetchone()[0]
        finally:
            conn.close()
    except sqlite3.Error as e:
        raise ValidationError(f"Backup {path.name} is not a valid database: {e}") from e

    if integrity != "ok":
        raise ValidationError(f"Backup {path.name} failed the integrity check: {integrity}")
    if not 1 <= version <= LATEST_VERSION:
        raise ValidationError(f"Backup {path.name} has unsupported schema version {version}")


class Database:
    """
    Single-writer SQLite store guarded by one re-entrant lock.

    All reads and writes go through ``connection()``. Raw file work on the
    database (backup copy, restore overwrite) goes through ``detached()``,
    which holds the same lock with the connection closed, so it can never
    interleave with a write.

    Usage::

        db = Database(data_dir / "database.db")
        db.open()
        with db.connection() as conn:
            conn.execute("SELECT * FROM designers")
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Open the database file (creating it if needed) and apply pending migrations."""
        with self._lock:
            if self._conn is not None:
                return
            self._connect()

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _connect(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailureError(f"Failed to create data directory {self._path.parent}: {e}") from e
        conn: sqlite3.Connection | None = None
        try:
            conn = sqlite3.connect(str(self._path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
            self._migrate(conn)
        except sqlite3.Error as e:
            if conn is not None:
                conn.close()
            raise IOFailureError(f"Failed to open database {self._path}: {e}") from e
        self._conn = conn

    @staticmethod
    def _migrate(conn: sqlite3.Connection) -> None:
        current = conn.execute("PRAGMA user_version").fetchone()[0]
        for version, statements in MIGRATIONS:
            if version <= current:
                continue
            try:
                conn.execute("BEGIN")
                for statement in statements:
                    conn.execute(statement)
                conn.execute(f"PRAGMA user_version = {version}")
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                logger.error(f"Schema migration to version {version} failed")
                raise
            logger.debug(f"Applied schema migration {version}")

    @property
    def schema_version(self) -> int:
        with self.connection() as conn:
            return conn.execute("PRAGMA user_version").fetchone()[0]

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Scoped, exclusive access to the connection.

        Commits on success, rolls back and re-raises on error, and always
        releases the lock.
        """
        with self._lock:
            if self._conn is None:
                raise SalonError("Database is not open")
            conn = self._conn
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    @contextmanager
    def detached(self) -> Iterator[Path]:
        """
        Hold the lock with the connection closed and the WAL folded into the file.

        Yields the database file path. The connection is reopened (and
        migrated, in case a restored snapshot carries an older schema) on exit.
        """
        with self._lock:
            was_open = self._conn is not None
            if self._conn is not None:
                self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
                self._conn.close()
                self._conn = None
            try:
                yield self._path
            finally:
                if was_open:
                    self._connect()

    # ── Key/value settings ──

    def get_setting(self, key: str) -> str | None:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT value FROM app_settings WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        now = datetime.now(tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO app_settings (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, now),
            )
