"""Configuration module for the MemoSpace MCP server."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from memospace_mcp import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config: survives reinstalls, lives alongside the data
_USER_ENV = Path.home() / ".memospace" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("json", "sqlite")

DEFAULT_OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class MemoSpaceConfig(BaseModel):
    """Configuration for the MemoSpace server."""

    # Base directory for the project
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("MEMOSPACE_BASE_DIR", "."))
    )
    # Directory holding the JSON collection files
    data_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("MEMOSPACE_DATA_DIR", "data"))
    )
    # SQLite file used when storage_backend is "sqlite"
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("MEMOSPACE_DATABASE_PATH", "data/memospace.db")
        )
    )
    storage_backend: str = Field(
        default_factory=lambda: os.getenv("MEMOSPACE_STORAGE_BACKEND", "json").lower()
    )
    # Category assigned to notes saved without an explicit path
    default_category: str = Field(default="General")

    # Title generation (OpenRouter chat completions)
    title_generation_enabled: bool = Field(
        default_factory=lambda: _env_flag("MEMOSPACE_TITLE_GENERATION", "true")
    )
    openrouter_api_key: Optional[str] = Field(
        default_factory=lambda: os.getenv("OPENROUTER_API_KEY") or None
    )
    openrouter_url: str = Field(
        default_factory=lambda: os.getenv("OPENROUTER_URL", DEFAULT_OPENROUTER_URL)
    )
    ai_model: str = Field(
        default_factory=lambda: os.getenv("AI_MODEL", "deepseek/deepseek-r1")
    )
    # Upper bound (seconds) on a single title request before falling back
    title_timeout: float = Field(
        default_factory=lambda: float(os.getenv("MEMOSPACE_TITLE_TIMEOUT", "30.0"))
    )
    # Generated titles longer than this are discarded
    title_max_length: int = Field(default=60)

    # Server configuration
    server_name: str = Field(default=os.getenv("MEMOSPACE_SERVER_NAME", "memospace-mcp"))
    server_version: str = Field(default=__version__)

    @model_validator(mode="after")
    def _validate_settings(self) -> "MemoSpaceConfig":
        """Reject unknown storage backends and unusable timeouts."""
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"storage_backend must be one of {STORAGE_BACKENDS}, "
                f"got {self.storage_backend!r}"
            )
        if self.title_timeout <= 0:
            raise ValueError("title_timeout must be > 0")
        if self.title_generation_enabled and not self.openrouter_api_key:
            logger.info(
                "OPENROUTER_API_KEY not set; titles will use the deterministic rule"
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_data_dir(self) -> Path:
        """Get the absolute data directory, creating it if needed."""
        data_dir = self.get_absolute_path(self.data_dir)
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"


# Create a global config instance
config = MemoSpaceConfig()
