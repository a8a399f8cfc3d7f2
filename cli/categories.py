#!/usr/bin/env python3

import sys
from cli.companies import add_company_argument, open_tenant, parse_reference
from logger import get_logger
from models.category import ACCOUNT_TYPES
from store.categories import NeedsMerge

logger = get_logger("cli")


def _show(category, categories):
    names = {c.id: c.name for c in categories}
    parent = f"  under {names[category.parent_id]}" if category.parent_id in names else ""
    flags = "  [linked]" if category.is_protected else ""
    indent = "    " if category.parent_id else ""
    return f"{indent}#{category.id:<5} {category.name} ({category.type}){parent}{flags}"


def cmd_list(args, services):
    """List the chart of accounts, roots first."""
    tenant = open_tenant(args, services)
    categories = tenant.categories.all()

    if not categories:
        logger.info("No categories found.")
        return

    logger.info(f"\nCategories of {tenant.company.name}:")
    logger.info("=" * 80)
    for category in categories:
        logger.info(_show(category, categories))
    logger.info(f"\nTotal categories: {len(categories)}")


def cmd_create(args, services):
    """Create a category."""
    tenant = open_tenant(args, services)
    parent = parse_reference(args.parent) if args.parent else None
    category = tenant.categories.create(args.name, args.type, parent=parent)
    logger.info(f"✓ Category created successfully with ID: {category.id}")


def cmd_rename(args, services):
    """Rename a category, offering a merge when the name is taken."""
    tenant = open_tenant(args, services)
    result = tenant.categories.update(parse_reference(args.category), name=args.new_name)

    if isinstance(result, NeedsMerge):
        logger.info(result.message)
        answer = input("Merge? (yes/no): ").strip().lower()
        if answer != "yes":
            logger.info("Rename cancelled.")
            return
        merged = tenant.merge([result.category.id, result.existing.id], result.existing.id)
        logger.info(f"✓ Merged '{result.category.name}' into '{merged.name}'")
        return

    logger.info(f"✓ Category renamed to '{result.name}'")


def cmd_retype(args, services):
    """Change a category's type."""
    tenant = open_tenant(args, services)
    category = tenant.categories.update(parse_reference(args.category), type=args.type)
    logger.info(f"✓ '{category.name}' is now {category.type}")


def cmd_move(args, services):
    """Move a category under another, or to the top level."""
    tenant = open_tenant(args, services)
    parent = parse_reference(args.parent) if args.parent else None
    category = tenant.categories.move(parse_reference(args.category), parent)
    where = "the top level" if category.parent_id is None else f"#{category.parent_id}"
    logger.info(f"✓ '{category.name}' moved to {where}")


def cmd_delete(args, services):
    """Delete a category after confirmation."""
    tenant = open_tenant(args, services)
    category = tenant.categories.get(parse_reference(args.category))

    logger.info("\nCategory to delete:")
    logger.info(f"  ID: {category.id}")
    logger.info(f"  Name: {category.name}")
    logger.info(f"  Type: {category.type}")

    if not args.yes:
        confirm = (
            input("\nAre you sure you want to delete this category? (yes/no): ")
            .strip()
            .lower()
        )
        if confirm != "yes":
            logger.info("Deletion cancelled.")
            return

    tenant.categories.delete(category.id)
    logger.info(f"✓ Category '{category.name}' deleted successfully.")


def cmd_merge(args, services):
    """Merge categories into a target."""
    tenant = open_tenant(args, services)
    target = tenant.categories.get(parse_reference(args.target))
    sources = [tenant.categories.get(parse_reference(value)) for value in args.sources]
    merged = tenant.merge([c.id for c in sources] + [target.id], target.id)
    logger.info(f"✓ Merged {len(sources)} category(ies) into '{merged.name}'")


def cmd_usage(args, services):
    """Show what references a category."""
    tenant = open_tenant(args, services)
    category = tenant.categories.get(parse_reference(args.category))
    usage = tenant.categories.usage(category.id)

    logger.info(f"\nUsage of '{category.name}':")
    logger.info(f"  Transactions: {usage.transactions}")
    logger.info(f"  Imported transactions: {usage.imported_transactions}")
    logger.info(f"  Journal entries: {usage.journal_entries}")
    logger.info(f"  Automation rules: {usage.automations}")
    logger.info(f"  Subcategories: {usage.subcategories}")


def cmd_import(args, services):
    """Import categories from a CSV file."""
    tenant = open_tenant(args, services)
    with open(args.file, "r", newline="") as f:
        result = tenant.import_categories(
            f, auto_create_parents=True if args.create_parents else None
        )

    for skipped in result.skipped:
        logger.info(f"⊘ Line {skipped.line} '{skipped.name}': {skipped.reason}")
    logger.info(f"\n{result.summary()}")


def cmd_export(args, services):
    """Export categories to a CSV file, or stdout."""
    tenant = open_tenant(args, services)
    if args.file:
        with open(args.file, "w", newline="") as f:
            count = tenant.export_categories(f)
        logger.info(f"✓ Exported {count} categories to {args.file}")
    else:
        tenant.export_categories(sys.stdout)


def setup_parser(subparsers):
    """Setup categories subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "categories",
        help="Manage the chart of accounts",
        description="Create, change, merge, import and export categories",
    )

    categories_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available category commands (references are names or #ID)",
        dest="subcommand",
        required=True,
    )

    list_parser = categories_subparsers.add_parser("list", help="List all categories")
    list_parser.set_defaults(func=cmd_list)

    create_parser = categories_subparsers.add_parser("create", help="Create a category")
    create_parser.add_argument("name", help="Category name")
    create_parser.add_argument("type", choices=ACCOUNT_TYPES, help="Account type")
    create_parser.add_argument("--parent", help="Parent category")
    create_parser.set_defaults(func=cmd_create)

    rename_parser = categories_subparsers.add_parser("rename", help="Rename a category")
    rename_parser.add_argument("category", help="Category to rename")
    rename_parser.add_argument("new_name", help="New name")
    rename_parser.set_defaults(func=cmd_rename)

    retype_parser = categories_subparsers.add_parser("retype", help="Change a category's type")
    retype_parser.add_argument("category", help="Category to change")
    retype_parser.add_argument("type", choices=ACCOUNT_TYPES, help="New account type")
    retype_parser.set_defaults(func=cmd_retype)

    move_parser = categories_subparsers.add_parser("move", help="Move a category")
    move_parser.add_argument("category", help="Category to move")
    move_parser.add_argument("--parent", help="New parent (omit for top level)")
    move_parser.set_defaults(func=cmd_move)

    delete_parser = categories_subparsers.add_parser("delete", help="Delete a category")
    delete_parser.add_argument("category", help="Category to delete")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask")
    delete_parser.set_defaults(func=cmd_delete)

    merge_parser = categories_subparsers.add_parser("merge", help="Merge categories")
    merge_parser.add_argument("target", help="Category that survives")
    merge_parser.add_argument("sources", nargs="+", help="Categories merged into the target")
    merge_parser.set_defaults(func=cmd_merge)

    usage_parser = categories_subparsers.add_parser("usage", help="Show what uses a category")
    usage_parser.add_argument("category", help="Category to check")
    usage_parser.set_defaults(func=cmd_usage)

    import_parser = categories_subparsers.add_parser("import", help="Import from CSV")
    import_parser.add_argument("file", help="CSV with Name,Type[,Parent] columns")
    import_parser.add_argument(
        "--create-parents",
        action="store_true",
        help="Create parents that are missing from the company and the file",
    )
    import_parser.set_defaults(func=cmd_import)

    export_parser = categories_subparsers.add_parser("export", help="Export to CSV")
    export_parser.add_argument("file", nargs="?", help="Output file (default: stdout)")
    export_parser.set_defaults(func=cmd_export)

    for subparser in categories_subparsers.choices.values():
        add_company_argument(subparser)
