"""Configuration management for Chartwell.

Reads configuration from ~/.config/chartwell.toml and creates default config if needed.
"""

from pathlib import Path
from dataclasses import dataclass
import tomllib
import tomli_w


@dataclass
class Config:
    """Application configuration."""

    base_dir: Path
    db_data_dir: Path
    db_filename: str
    log_level: str
    log_dir: Path
    highlight_seconds: float = 3.0
    auto_create_parents: bool = False
    max_batch_size: int = 10
    llm_enabled: bool = False
    llm_provider: str = "openai"
    llm_openai_api_key: str = ""
    llm_openai_model: str = "gpt-4o-mini"

    @property
    def db_path(self) -> Path:
        """Get the full database path (data_dir/filename)."""
        return self.db_data_dir / self.db_filename

    @classmethod
    def default(cls) -> "Config":
        """Create a Config with default values."""
        home = Path.home()
        base_dir = home / "data" / "chartwell"
        return cls(
            base_dir=base_dir,
            db_data_dir=base_dir / "db",
            db_filename="chartwell.db",
            log_level="INFO",
            log_dir=base_dir / "logs",
        )


def get_config_path() -> Path:
    """Get the path to the config file."""
    return Path.home() / ".config" / "chartwell.toml"


def get_migrations_dir() -> Path:
    """Get the path to the migrations directory.

    This is always relative to the code location, not configurable.
    """
    return Path(__file__).parent / "db" / "migrations"


def load_config() -> Config:
    """Load configuration from file, creating default if it doesn't exist.

    Returns:
        Config object with loaded or default values.
    """
    config_path = get_config_path()

    # If config doesn't exist, create it with defaults
    if not config_path.exists():
        config = Config.default()
        _write_config(config)
        return config

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    return parse_config(data)


def parse_config(data: dict) -> Config:
    """Build a Config from parsed TOML data, filling in defaults.

    Args:
        data: Dictionary as returned by tomllib.

    Returns:
        Config object.
    """
    defaults = Config.default()
    base_dir = Path(data.get("base_dir", defaults.base_dir))

    db_config = data.get("database", {})
    db_data_dir = Path(db_config.get("data_dir", base_dir / "db"))
    db_filename = db_config.get("filename", defaults.db_filename)

    log_config = data.get("logging", {})
    log_level = log_config.get("level", defaults.log_level)
    log_dir = Path(log_config.get("log_dir", base_dir / "logs"))

    store_config = data.get("store", {})
    highlight_seconds = float(
        store_config.get("highlight_seconds", defaults.highlight_seconds)
    )

    import_config = data.get("import", {})
    auto_create_parents = bool(
        import_config.get("auto_create_parents", defaults.auto_create_parents)
    )

    assistant_config = data.get("assistant", {})
    max_batch_size = int(
        assistant_config.get("max_batch_size", defaults.max_batch_size)
    )

    llm_config = data.get("llm", {})

    return Config(
        base_dir=base_dir,
        db_data_dir=db_data_dir,
        db_filename=db_filename,
        log_level=log_level,
        log_dir=log_dir,
        highlight_seconds=highlight_seconds,
        auto_create_parents=auto_create_parents,
        max_batch_size=max_batch_size,
        llm_enabled=bool(llm_config.get("enabled", defaults.llm_enabled)),
        llm_provider=llm_config.get("provider", defaults.llm_provider),
        llm_openai_api_key=llm_config.get(
            "openai_api_key", defaults.llm_openai_api_key
        ),
        llm_openai_model=llm_config.get("openai_model", defaults.llm_openai_model),
    )


def _write_config(config: Config) -> None:
    """Write config to the config file.

    Args:
        config: Config object to write.
    """
    config_path = get_config_path()

    # Ensure config directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "base_dir": str(config.base_dir),
        "database": {
            "data_dir": str(config.db_data_dir),
            "filename": config.db_filename,
        },
        "logging": {
            "level": config.log_level,
            "log_dir": str(config.log_dir),
        },
        "store": {
            "highlight_seconds": config.highlight_seconds,
        },
        "import": {
            "auto_create_parents": config.auto_create_parents,
        },
        "assistant": {
            "max_batch_size": config.max_batch_size,
        },
        "llm": {
            "enabled": config.llm_enabled,
            "provider": config.llm_provider,
            "openai_api_key": config.llm_openai_api_key,
            "openai_model": config.llm_openai_model,
        },
    }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
