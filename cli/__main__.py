#!/usr/bin/env python3
"""
Chartwell CLI - chart of accounts and payee management.

Usage:
    python -m cli <command> <subcommand> [options]

Commands:
    companies    Manage companies
    categories   Manage the chart of accounts
    payees       Manage payees
    assistant    Chat with the assistant or run command files
    migrate      Database migrations

Examples:
    python -m cli migrate apply
    python -m cli companies create "Acme Ltd"
    python -m cli categories create "Bank Fees" Expense --company "Acme Ltd"
    python -m cli categories move "Wire Fees" --parent "Bank Fees" -c "Acme Ltd"
    python -m cli categories import chart.csv --company "#1"
    python -m cli assistant chat --company "Acme Ltd"
"""

import sys
import argparse
from cli import assistant, categories, companies, migrate, payees
from config import load_config
from services.base import Services
from db.manager import DatabaseManager
from logger import setup_logging


def main():
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="cli",
        description="Chartwell - chart of accounts management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
    )

    companies.setup_parser(subparsers)
    categories.setup_parser(subparsers)
    payees.setup_parser(subparsers)
    assistant.setup_parser(subparsers)
    migrate.setup_parser(subparsers)

    args = parser.parse_args()

    if hasattr(args, "func"):
        try:
            config = load_config()
            setup_logging(config)

            # migrate works on the raw database; everything else on services
            if args.command == "migrate":
                args.func(args, DatabaseManager(config))
            else:
                args.func(args, Services(config))
        except Exception as e:
            print(f"Error: {e}")
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
