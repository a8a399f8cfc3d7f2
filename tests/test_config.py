from pathlib import Path

import tomllib

import config as config_module
from config import Config, get_migrations_dir, load_config, parse_config


class TestParseConfig:
    """Tests for building a Config from TOML data."""

    def test_defaults(self):
        config = parse_config({})

        assert config.db_filename == "chartwell.db"
        assert config.log_level == "INFO"
        assert config.highlight_seconds == 3.0
        assert config.auto_create_parents is False
        assert config.max_batch_size == 10
        assert config.llm_enabled is False
        assert config.llm_provider == "openai"

    def test_sections(self):
        config = parse_config(
            {
                "base_dir": "/srv/chartwell",
                "database": {"filename": "books.db"},
                "logging": {"level": "DEBUG"},
                "store": {"highlight_seconds": 5},
                "import": {"auto_create_parents": True},
                "assistant": {"max_batch_size": 4},
                "llm": {"enabled": True, "openai_api_key": "sk-test", "openai_model": "gpt-4o"},
            }
        )

        assert config.db_path == Path("/srv/chartwell/db/books.db")
        assert config.log_dir == Path("/srv/chartwell/logs")
        assert config.log_level == "DEBUG"
        assert config.highlight_seconds == 5.0
        assert config.auto_create_parents is True
        assert config.max_batch_size == 4
        assert config.llm_enabled is True
        assert config.llm_openai_api_key == "sk-test"
        assert config.llm_openai_model == "gpt-4o"


class TestLoadConfig:
    def test_creates_default_file(self, tmp_path, monkeypatch):
        """Test a missing config file is written with defaults."""
        config_path = tmp_path / ".config" / "chartwell.toml"
        monkeypatch.setattr(config_module, "get_config_path", lambda: config_path)

        config = load_config()

        assert config == Config.default()
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        assert data["assistant"]["max_batch_size"] == 10
        assert data["import"]["auto_create_parents"] is False

    def test_reads_existing_file(self, tmp_path, monkeypatch):
        config_path = tmp_path / "chartwell.toml"
        config_path.write_text('[store]\nhighlight_seconds = 1.5\n')
        monkeypatch.setattr(config_module, "get_config_path", lambda: config_path)

        assert load_config().highlight_seconds == 1.5


def test_migrations_dir_ships_sql():
    assert sorted(p.name for p in get_migrations_dir().glob("*.sql")) == [
        "001_initial_schema.sql",
        "002_ledger.sql",
    ]
