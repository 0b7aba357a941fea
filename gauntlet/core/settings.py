"""Application settings and configuration management."""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Look for .env file in the project root, then in the working directory
_env_file = Path(__file__).parent.parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    load_dotenv(".env", verbose=False)


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Stats persistence
    stats_backend: str = Field(default="sqlite", alias="GAUNTLET_STATS_BACKEND")
    database_path: str = Field(
        default="data/gauntlet.db", alias="GAUNTLET_DATABASE_PATH"
    )
    stats_dir: str = Field(default="data", alias="GAUNTLET_STATS_DIR")
    stats_storage_key: str = Field(
        default="gauntlet-stats", alias="GAUNTLET_STATS_STORAGE_KEY"
    )
    history_limit: int = Field(default=100, alias="GAUNTLET_HISTORY_LIMIT", ge=1)

    # Session defaults
    default_difficulty: str = Field(
        default="normal", alias="GAUNTLET_DEFAULT_DIFFICULTY"
    )
    default_repetitions: int = Field(
        default=3, alias="GAUNTLET_DEFAULT_REPETITIONS", ge=1
    )
    random_seed: int | None = Field(default=None, alias="GAUNTLET_RANDOM_SEED")

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="GAUNTLET_LOG_LEVEL")
    log_file: str = Field(default="logs/gauntlet.log", alias="GAUNTLET_LOG_FILE")

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
