"""Configuration management for Hookcast."""

import logging
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Hookcast configuration loaded from environment variables.

    All settings can be overridden via environment variables with
    the HOOKCAST_ prefix. For example:
        HOOKCAST_MAX_ATTEMPTS=5
        HOOKCAST_STORE_BACKEND=file
        HOOKCAST_STORE_PATH=/var/lib/hookcast
    """

    # Environment
    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Environment: development, production, or test",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format: json for production, text for development",
    )

    # Delivery
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum HTTP attempts per delivery task",
    )
    retry_base_delay_seconds: float = Field(
        default=1.0,
        gt=0.0,
        le=60.0,
        description="Delay before the first retry (doubles each attempt)",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Timeout for a single HTTP delivery attempt",
    )
    worker_count: int = Field(
        default=1,
        ge=1,
        le=64,
        description="Number of background delivery workers",
    )

    # Endpoint health
    failure_threshold: int = Field(
        default=10,
        ge=1,
        description="Consecutive failed deliveries before an endpoint is deactivated",
    )
    allow_duplicate_urls: bool = Field(
        default=False,
        description="Allow more than one endpoint to register the same URL",
    )

    # Ledger
    ledger_capacity: int = Field(
        default=1000,
        ge=1,
        le=1_000_000,
        description="Delivery ledger entries retained before the oldest are evicted",
    )

    # Persistence
    store_backend: Literal["memory", "file"] = Field(
        default="memory",
        description="Persistence backend for the endpoint registry and ledger",
    )
    store_path: Path | None = Field(
        default=None,
        description="Root directory for the file store backend",
    )

    model_config = {
        "env_prefix": "HOOKCAST_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @model_validator(mode="after")
    def validate_store_settings(self) -> "Settings":
        """File-backed storage needs a directory to write into."""
        if self.store_backend == "file" and self.store_path is None:
            raise ValueError("HOOKCAST_STORE_PATH is required when HOOKCAST_STORE_BACKEND=file")
        if self.env == "production" and self.store_backend == "memory":
            logger.warning(
                "In-memory store in production: endpoints and delivery log are lost on restart"
            )
        return self
