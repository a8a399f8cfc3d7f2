#!/usr/bin/env python3

from models.reference import ById, ByName
from logger import get_logger

logger = get_logger("cli")


def add_company_argument(parser):
    """Add the --company option shared by all company-scoped commands."""
    parser.add_argument(
        "--company",
        "-c",
        required=True,
        help="Company name, or #ID",
    )


def parse_reference(value: str):
    """Read a CLI reference: "#12" is an ID, anything else a name."""
    value = value.strip()
    if value.startswith("#") and value[1:].isdigit():
        return ById(int(value[1:]))
    return ByName(value)


def open_tenant(args, services, generator=None):
    """Open the company named by --company."""
    reference = parse_reference(args.company)
    company = reference.id if isinstance(reference, ById) else reference.name
    return services.open_tenant(company, generator=generator)


def cmd_list(args, services):
    """List all companies."""
    companies = services.companies.find_all()

    if not companies:
        logger.info("No companies found.")
        return

    logger.info("\nCompanies:")
    logger.info("=" * 80)
    for company in companies:
        logger.info(f"#{company.id}  {company.name}")
    logger.info(f"\nTotal companies: {len(companies)}")


def cmd_create(args, services):
    """Create a company."""
    name = args.name.strip()
    if not name:
        raise ValueError("Company name cannot be empty")
    company = services.companies.create(name)
    logger.info(f"✓ Company created successfully with ID: {company.id}")


def setup_parser(subparsers):
    """Setup companies subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "companies",
        help="Manage companies",
        description="Create and list companies (each has its own chart of accounts)",
    )

    companies_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available company commands",
        dest="subcommand",
        required=True,
    )

    list_parser = companies_subparsers.add_parser("list", help="List all companies")
    list_parser.set_defaults(func=cmd_list)

    create_parser = companies_subparsers.add_parser("create", help="Create a company")
    create_parser.add_argument("name", help="Company name")
    create_parser.set_defaults(func=cmd_create)
