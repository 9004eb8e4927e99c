"""Application entry point: wires services and runs a backup command.

Usage:
    salon-backup list [--backend local|icloud|google_drive]
    salon-backup create [--backend ...]
    salon-backup restore <filename> [--backend ...]
    salon-backup delete <filename> [--backend ...]
    salon-backup cleanup [--keep N]
    salon-backup status
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from salon.config import Config, get_config
from salon.context import AppContext
from salon.core.path_resolver import is_icloud_drive_present
from salon.core.security import LockService
from salon.core.service import BackupService
from salon.core.sync import RemoteSync, create_remote_adapter
from salon.data.database import Database
from salon.errors import SalonError
from salon.logger import setup_logger


def create_context(config: Config | None = None) -> AppContext:
    """Wire all services and return an AppContext."""
    config = config or get_config()

    # Logger
    setup_logger(config.log_dir, level=config.log_level)

    # Data store
    database = Database(config.db_path)
    database.open()

    # Core services
    remote = RemoteSync(create_remote_adapter(config))
    backup_service = BackupService(config, database, remote)
    lock_service = LockService(database)

    return AppContext(
        config=config,
        database=database,
        backup_service=backup_service,
        lock_service=lock_service,
    )


def _build_parser(default_backend: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="salon-backup", description="Salon database backups")
    parser.add_argument("--data-dir", type=Path, default=None, help="application data directory")
    sub = parser.add_subparsers(dest="command", required=True)

    def with_backend(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
        p.add_argument("--backend", default=default_backend, help="local, icloud or google_drive")
        return p

    with_backend(sub.add_parser("list", help="list backups, newest first"))
    with_backend(sub.add_parser("create", help="snapshot the database"))
    with_backend(sub.add_parser("restore", help="restore a snapshot")).add_argument("name")
    with_backend(sub.add_parser("delete", help="delete a snapshot")).add_argument("name")
    sub.add_parser("cleanup", help="keep only the newest local backups").add_argument(
        "--keep", type=int, default=None
    )
    sub.add_parser("status", help="show data paths and remote availability")
    return parser


def run(ctx: AppContext, args: argparse.Namespace) -> int:
    service = ctx.backup_service

    if args.command == "list":
        records = service.list_backups(args.backend)
        print(json.dumps([r.to_dict() for r in records], ensure_ascii=False, indent=2))
    elif args.command == "create":
        result = service.create_backup(args.backend)
        print(json.dumps(result.record.to_dict(), ensure_ascii=False, indent=2))
        for warning in result.warnings:
            print(f"Warning: {warning}", file=sys.stderr)
    elif args.command == "restore":
        result = service.restore_backup(args.name, args.backend)
        print(f"Restored from {result.restored_from}")
        for warning in result.warnings:
            print(f"Warning: {warning}", file=sys.stderr)
    elif args.command == "delete":
        service.delete_backup(args.name, args.backend)
        print(f"Deleted {args.name}")
    elif args.command == "cleanup":
        keep = args.keep if args.keep is not None else ctx.config.max_backups
        deleted = service.cleanup_old_backups(keep)
        print(f"Removed {len(deleted)} backup(s)")
    elif args.command == "status":
        status = {
            "dataDir": str(ctx.config.data_dir),
            "database": str(ctx.database.path),
            "schemaVersion": ctx.database.schema_version,
            "remoteAvailable": service.is_remote_backend_available(),
            "icloudDrivePresent": is_icloud_drive_present(),
            "lockEnabled": ctx.lock_service.is_lock_enabled(),
        }
        print(json.dumps(status, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--data-dir", type=Path, default=None)
    known, _ = pre.parse_known_args(argv)

    config = Config(known.data_dir) if known.data_dir else get_config()
    args = _build_parser(config.default_backend).parse_args(argv)

    ctx: AppContext | None = None
    try:
        ctx = create_context(config)
        return run(ctx, args)
    except SalonError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if ctx is not None:
            ctx.close()


if __name__ == "__main__":
    sys.exit(main())
