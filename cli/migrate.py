#!/usr/bin/env python3

from logger import get_logger

logger = get_logger("cli")


def cmd_status(args, db_manager):
    """Show which migrations have been applied."""
    if not db_manager.get_db_path().exists():
        logger.info("Database does not exist. Run 'python -m cli migrate apply' to create it.")
        return

    available, applied = db_manager.migration_status()
    if not available:
        logger.info("No migrations found.")
        return

    logger.info("Migration Status:")
    for migration in available:
        logger.info(f"  {migration}: {'APPLIED' if migration in applied else 'PENDING'}")
    pending = [m for m in available if m not in applied]
    logger.info(f"\n{len(applied)} applied, {len(pending)} pending")


def cmd_apply(args, db_manager):
    """Apply pending migrations in file name order."""
    applied = db_manager.apply_pending()
    if not applied:
        logger.info("No pending migrations.")
        return
    logger.info(f"Successfully applied {len(applied)} migration(s).")


def setup_parser(subparsers):
    """Setup migrate subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "migrate",
        help="Database migrations",
        description="Create or upgrade the Chartwell database schema",
    )

    migrate_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available migration commands",
        dest="subcommand",
        required=True,
    )

    status_parser = migrate_subparsers.add_parser("status", help="Show migration status")
    status_parser.set_defaults(func=cmd_status)

    apply_parser = migrate_subparsers.add_parser("apply", help="Apply pending migrations")
    apply_parser.set_defaults(func=cmd_apply)
