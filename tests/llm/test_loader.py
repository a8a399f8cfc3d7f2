import pytest

from llm.prompts.loader import CommandPrompt, format_categories, format_payees
from models.category import Category
from models.payee import Payee


class TestCommandPrompt:
    """Tests for the YAML command prompt."""

    def test_packaged_prompt(self):
        prompt = CommandPrompt.load()

        messages = prompt.messages(
            [Category(id=1, name="Travel", type="Expense", company_id=1)],
            [Payee(id=1, name="Acme", company_id=1)],
        )

        assert prompt.version == "1.0"
        assert prompt.parameters["model"] == "gpt-4o-mini"
        assert [m["role"] for m in messages] == ["system", "system"]
        assert "- Travel (Expense)" in messages[1]["content"]
        assert "- Acme" in messages[1]["content"]

    def test_custom_file(self, tmp_path):
        prompt_file = tmp_path / "commands.yaml"
        prompt_file.write_text(
            'version: 2\nsystem_prompt: Be brief.\n'
            'user_prompt_template: "{categories} / {payees}"\n'
        )

        prompt = CommandPrompt.load(prompt_file)

        assert prompt.version == "2"
        assert prompt.parameters == {}
        assert prompt.messages([], [])[1]["content"] == "No categories yet. / No payees yet."

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CommandPrompt.load(tmp_path / "nope.yaml")


class TestFormatting:
    def test_categories_name_their_parent(self):
        categories = [
            Category(id=1, name="Travel", type="Expense", company_id=1),
            Category(id=2, name="Flights", type="Expense", company_id=1, parent_id=1),
        ]

        assert format_categories(categories) == (
            "- Travel (Expense)\n- Flights (Expense, under Travel)"
        )

    def test_empty_lists(self):
        assert format_categories([]) == "No categories yet."
        assert format_payees([]) == "No payees yet."
