"""
CareFinder configuration

All values come from environment variables (case-insensitive) or a local
.env file, e.g. EMBEDDING_PROVIDER=e5 or DELTA_POLICY=decay.
"""

from typing import Literal
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide settings, read once at import time."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "CareFinder"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # API
    api_v1_prefix: str = "/api/v1"
    allowed_hosts: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ]
    )

    # Entity vectors
    vector_dimension: int = Field(default=128, ge=1)  # Structured profile/query encoding dimension
    profile_encode_missing: bool = True  # Encode a base vector when the loader supplies none
    seed_data_path: str | None = None  # JSON file: {"doctors": [...], "hospitals": [...]}

    # Embedding generator (external)
    embedding_provider: Literal["e5", "character"] = "character"
    e5_model_name: str = "intfloat/multilingual-e5-small"
    embedding_device: Literal["cpu", "cuda"] = "cpu"
    embedding_max_concurrency: int = 4  # Max concurrent embedding operations (threadpool limit)
    embedding_timeout_seconds: float = 2.0  # Query embedding budget before fallback

    # Real-time deltas
    delta_policy: Literal["latest", "decay"] = "latest"
    delta_slot_offset: int = 100  # First delta slot (availability pressure)
    delta_history_size: int = 10  # Provenance entries kept per entity
    delta_half_life_seconds: float = 900.0  # decay policy only
    delta_max_norm: float = 1.0  # decay policy only
    availability_capacity: int = Field(default=10, ge=1)  # Slots that count as fully available
    emergency_boost: float = 0.3
    on_call_boost: float = 0.2
    time_of_day_weight: float = 0.1

    # Search
    search_default_limit: int = Field(default=10, ge=1)
    search_yield_interval: int = Field(default=256, ge=1)  # Entities scored between event loop yields
    highlight_min_term_length: int = 3

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False  # Structured JSON logging


# Global settings instance
settings = Settings()
