"""Configuration management for Ledger.

Reads configuration from ~/.config/ledger.toml and creates default config if needed.
"""

from pathlib import Path
from dataclasses import dataclass
from typing import Optional
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
    llm_enabled: bool = False
    llm_provider: Optional[str] = "openai"
    llm_openai_api_key: str = ""
    llm_openai_model: Optional[str] = None
    llm_openai_base_url: Optional[str] = None
    embedding_mode: str = "random"  # "random" placeholder or "hashing"
    embedding_dimensions: int = 128
    rag_top_k: int = 5

    @property
    def db_path(self) -> Path:
        """Get the full database path (data_dir/filename)."""
        return self.db_data_dir / self.db_filename

    @classmethod
    def default(cls) -> "Config":
        """Create a Config with default values."""
        home = Path.home()
        base_dir = home / "data" / "ledger"
        return cls(
            base_dir=base_dir,
            db_data_dir=base_dir / "db",
            db_filename="ledger.db",
            log_level="INFO",
            log_dir=base_dir / "logs",
        )


def get_config_path() -> Path:
    """Get the path to the config file."""
    return Path.home() / ".config" / "ledger.toml"


def get_migrations_dir() -> Path:
    """Get the path to the migrations directory.

    This is always relative to the code location, not configurable.
    """
    return Path(__file__).parent / "db" / "migrations"


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file, creating default if it doesn't exist.

    Args:
        config_path: Optional override of the config file location.

    Returns:
        Config object with loaded or default values.
    """
    config_path = config_path or get_config_path()

    # If config doesn't exist, create it with defaults
    if not config_path.exists():
        config = Config.default()
        _write_config(config, config_path)
        return config

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    defaults = Config.default()

    # Parse with defaults for any missing values
    base_dir = Path(data.get("base_dir", defaults.base_dir))

    db_config = data.get("database", {})
    db_data_dir = Path(db_config.get("data_dir", base_dir / "db"))
    db_filename = db_config.get("filename", defaults.db_filename)

    log_config = data.get("logging", {})
    log_level = log_config.get("level", defaults.log_level)
    log_dir = Path(log_config.get("log_dir", base_dir / "logs"))

    llm_config = data.get("llm", {})
    assistant_config = data.get("assistant", {})

    return Config(
        base_dir=base_dir,
        db_data_dir=db_data_dir,
        db_filename=db_filename,
        log_level=log_level,
        log_dir=log_dir,
        llm_enabled=llm_config.get("enabled", defaults.llm_enabled),
        llm_provider=llm_config.get("provider", defaults.llm_provider),
        llm_openai_api_key=llm_config.get("openai_api_key", ""),
        llm_openai_model=llm_config.get("openai_model") or None,
        llm_openai_base_url=llm_config.get("openai_base_url") or None,
        embedding_mode=assistant_config.get("embedding_mode", defaults.embedding_mode),
        embedding_dimensions=assistant_config.get(
            "embedding_dimensions", defaults.embedding_dimensions
        ),
        rag_top_k=assistant_config.get("rag_top_k", defaults.rag_top_k),
    )


def _write_config(config: Config, config_path: Optional[Path] = None) -> None:
    """Write config to the config file.

    Args:
        config: Config object to write.
        config_path: Optional override of the config file location.
    """
    config_path = config_path or get_config_path()

    # Ensure config directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    # TOML has no null, so unset optional values are written as empty strings
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
        "llm": {
            "enabled": config.llm_enabled,
            "provider": config.llm_provider or "",
            "openai_api_key": config.llm_openai_api_key,
            "openai_model": config.llm_openai_model or "",
            "openai_base_url": config.llm_openai_base_url or "",
        },
        "assistant": {
            "embedding_mode": config.embedding_mode,
            "embedding_dimensions": config.embedding_dimensions,
            "rag_top_k": config.rag_top_k,
        },
    }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
