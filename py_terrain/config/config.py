import os
from pathlib import Path

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def load_env_file(path: Path) -> dict:
    """Copy values from a .env file into os.environ, keeping variables already set."""
    if not path.exists():
        return {}
    missing_keys = {k: v for k, v in dotenv_values(path).items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v
    return missing_keys


# Explicitly load .env for local/dev environments only where values are missing
load_env_file(BASE_DIR / ".env")


class Settings(BaseSettings):
    """Application settings pulled from TERRAIN_* environment variables or .env."""

    # World Generation
    seed: int = Field(default=42, description="World seed")
    region_scale: float = Field(default=0.00015, description="Cellular frequency of macro regions")
    warp_strength: float = Field(default=50.0, description="Domain warp displacement of region borders")
    blend_distance: float = Field(default=10.0, description="Distance over which biomes blend")
    max_boundary_radius: int = Field(default=30, description="Search cap for boundary distance")

    # Height Field
    world_height: int = Field(default=128, description="Blocks per column")
    water_level: float = Field(default=0.18, description="Water level as a fraction of world height")
    chunk_size: int = Field(default=16, description="Chunk side length in blocks")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")

    class Config:
        env_prefix = "TERRAIN_"
        env_file_encoding = "utf-8"


settings = Settings()
