"""End-to-end tests of the CLI commands against a file database."""

import argparse
import json

import pytest

from cli import assistant, categories, companies, migrate, payees
from cli.companies import parse_reference
from db.manager import DatabaseManager
from errors import InUseError, PartialFailureError
from models.reference import ById, ByName
from services.base import Services
from tests.helpers import add_transaction


def build_parser():
    parser = argparse.ArgumentParser(prog="cli")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for module in (companies, categories, payees, assistant, migrate):
        module.setup_parser(subparsers)
    return parser


def run(target, *argv):
    args = build_parser().parse_args(argv)
    args.func(args, target)


@pytest.fixture
def file_services(test_config):
    """Services over a migrated database file, with one company."""
    run(DatabaseManager(test_config), "migrate", "apply")
    services = Services(test_config)
    run(services, "companies", "create", "Acme Ltd")
    return services


def chart(services):
    tenant = services.open_tenant("Acme Ltd")
    try:
        return {c.name: c for c in tenant.categories.all()}
    finally:
        tenant.close()


class TestParseReference:
    def test_id(self):
        assert parse_reference("#12") == ById(12)

    def test_name(self):
        assert parse_reference(" Bank Fees ") == ByName("Bank Fees")
        assert parse_reference("#1 Supplier") == ByName("#1 Supplier")


class TestMigrate:
    def test_apply_is_idempotent(self, test_config):
        db_manager = DatabaseManager(test_config)

        run(db_manager, "migrate", "apply")
        run(db_manager, "migrate", "apply")

        available, applied = db_manager.migration_status()
        assert available == applied == ["001_initial_schema.sql", "002_ledger.sql"]


class TestCategoryCommands:
    def test_create_move_and_list(self, file_services):
        run(file_services, "categories", "create", "Bank Fees", "Expense", "-c", "Acme Ltd")
        run(file_services, "categories", "create", "Wire Fees", "Expense", "-c", "Acme Ltd")
        run(file_services, "categories", "move", "Wire Fees", "--parent", "Bank Fees", "-c", "Acme Ltd")
        run(file_services, "categories", "list", "-c", "#1")

        names = chart(file_services)
        assert names["Wire Fees"].parent_id == names["Bank Fees"].id

    def test_merge(self, file_services):
        run(file_services, "categories", "create", "Fees", "Expense", "-c", "Acme Ltd")
        run(file_services, "categories", "create", "Charges", "Expense", "-c", "Acme Ltd")

        run(file_services, "categories", "merge", "Fees", "Charges", "-c", "Acme Ltd")

        assert list(chart(file_services)) == ["Fees"]

    def test_delete_in_use(self, file_services):
        run(file_services, "categories", "create", "Rent", "Expense", "-c", "Acme Ltd")
        add_transaction(file_services, 1, category_id=chart(file_services)["Rent"].id)

        with pytest.raises(InUseError):
            run(file_services, "categories", "delete", "Rent", "--yes", "-c", "Acme Ltd")

    def test_import_and_export(self, file_services, tmp_path):
        source = tmp_path / "chart.csv"
        source.write_text("Name,Type,Parent\nPaper,Expense,Office\n")
        exported = tmp_path / "out.csv"

        run(file_services, "categories", "import", str(source), "--create-parents", "-c", "Acme Ltd")
        run(file_services, "categories", "export", str(exported), "-c", "Acme Ltd")

        assert exported.read_text().splitlines() == [
            "Name,Type,Parent",
            "Office,Expense,",
            "Paper,Expense,Office",
        ]


class TestPayeeCommands:
    def test_create_rename_delete(self, file_services):
        run(file_services, "payees", "create", "Acme", "-c", "Acme Ltd")
        run(file_services, "payees", "rename", "Acme", "Acme Inc", "-c", "Acme Ltd")
        run(file_services, "payees", "create", "Globex", "-c", "Acme Ltd")
        run(file_services, "payees", "delete", "Globex", "-c", "Acme Ltd")

        assert [p.name for p in file_services.payees.list(1)] == ["Acme Inc"]


class TestAssistantRun:
    def test_run_file(self, file_services, tmp_path):
        commands = tmp_path / "commands.json"
        commands.write_text(
            json.dumps(
                {
                    "action": "batch_execute",
                    "commands": [
                        {"action": "create_category", "name": "Travel", "type": "Expense"},
                        {"action": "create_category", "name": "Flights", "type": "Expense", "parentName": "Travel"},
                    ],
                }
            )
        )

        run(file_services, "assistant", "run", str(commands), "--yes", "-c", "Acme Ltd")

        names = chart(file_services)
        assert names["Flights"].parent_id == names["Travel"].id

    def test_run_file_failure_is_raised(self, file_services, tmp_path):
        run(file_services, "categories", "create", "Rent", "Expense", "-c", "Acme Ltd")
        add_transaction(file_services, 1, category_id=chart(file_services)["Rent"].id)
        commands = tmp_path / "commands.json"
        commands.write_text(json.dumps([{"action": "delete_category", "category": "Rent"}]))

        with pytest.raises(PartialFailureError, match="Rent"):
            run(file_services, "assistant", "run", str(commands), "--yes", "-c", "Acme Ltd")
