#!/usr/bin/env python3

import sys
from cli.companies import add_company_argument, open_tenant, parse_reference
from logger import get_logger

logger = get_logger("cli")


def cmd_list(args, services):
    """List payees by name."""
    tenant = open_tenant(args, services)
    payees = tenant.payees.all()

    if not payees:
        logger.info("No payees found.")
        return

    logger.info(f"\nPayees of {tenant.company.name}:")
    logger.info("=" * 80)
    for payee in payees:
        logger.info(f"#{payee.id:<5} {payee.name}")
    logger.info(f"\nTotal payees: {len(payees)}")


def cmd_create(args, services):
    tenant = open_tenant(args, services)
    payee = tenant.payees.create(args.name)
    logger.info(f"✓ Payee created successfully with ID: {payee.id}")


def cmd_rename(args, services):
    tenant = open_tenant(args, services)
    payee = tenant.payees.rename(parse_reference(args.payee), args.new_name)
    logger.info(f"✓ Payee renamed to '{payee.name}'")


def cmd_delete(args, services):
    tenant = open_tenant(args, services)
    payee = tenant.payees.get(parse_reference(args.payee))
    tenant.payees.delete(payee.id)
    logger.info(f"✓ Payee '{payee.name}' deleted successfully.")


def cmd_import(args, services):
    """Import payees from a CSV file with a Name column."""
    tenant = open_tenant(args, services)
    with open(args.file, "r", newline="") as f:
        result = tenant.import_payees(f)

    for skipped in result.skipped:
        logger.info(f"⊘ Line {skipped.line} '{skipped.name}': {skipped.reason}")
    logger.info(f"\n{result.summary()}")


def cmd_export(args, services):
    tenant = open_tenant(args, services)
    if args.file:
        with open(args.file, "w", newline="") as f:
            count = tenant.export_payees(f)
        logger.info(f"✓ Exported {count} payees to {args.file}")
    else:
        tenant.export_payees(sys.stdout)


def setup_parser(subparsers):
    """Setup payees subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "payees",
        help="Manage payees",
        description="Create, rename, delete, import and export payees",
    )

    payees_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available payee commands (references are names or #ID)",
        dest="subcommand",
        required=True,
    )

    list_parser = payees_subparsers.add_parser("list", help="List all payees")
    list_parser.set_defaults(func=cmd_list)

    create_parser = payees_subparsers.add_parser("create", help="Create a payee")
    create_parser.add_argument("name", help="Payee name")
    create_parser.set_defaults(func=cmd_create)

    rename_parser = payees_subparsers.add_parser("rename", help="Rename a payee")
    rename_parser.add_argument("payee", help="Payee to rename")
    rename_parser.add_argument("new_name", help="New name")
    rename_parser.set_defaults(func=cmd_rename)

    delete_parser = payees_subparsers.add_parser("delete", help="Delete a payee")
    delete_parser.add_argument("payee", help="Payee to delete")
    delete_parser.set_defaults(func=cmd_delete)

    import_parser = payees_subparsers.add_parser("import", help="Import from CSV")
    import_parser.add_argument("file", help="CSV with a Name column")
    import_parser.set_defaults(func=cmd_import)

    export_parser = payees_subparsers.add_parser("export", help="Export to CSV")
    export_parser.add_argument("file", nargs="?", help="Output file (default: stdout)")
    export_parser.set_defaults(func=cmd_export)

    for subparser in payees_subparsers.choices.values():
        add_company_argument(subparser)
