from pathlib import Path
from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

import os

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from FOURCOLOR_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FOURCOLOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(
        default=False,
        description="Raise on adjacency invariant violations instead of only logging them",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")

    # Map Generation Configuration
    map_width: float = Field(default=900.0, description="Default map width")
    map_height: float = Field(default=620.0, description="Default map height")
    min_region_count: int = Field(default=10, description="Fewest regions a puzzle may have")
    max_region_count: int = Field(default=200, description="Most regions a puzzle may have")
    default_region_count: int = Field(default=30, description="Region count when none is requested")

    # Coloring Configuration
    palette_size: int = Field(default=4, description="Number of colors in the puzzle palette")
    solver_node_budget: int = Field(
        default=500_000,
        description="Maximum tentative assignments the exact solver may make per request",
    )

    # Freehand Configuration
    default_snap_threshold: float = Field(
        default=12.0, description="Snap distance used when the caller does not supply one"
    )


# Instantiate singleton settings object
settings = Settings()
