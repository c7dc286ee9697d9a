"""Application configuration via pydantic-settings."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """ChromaBase API configuration.

    Loaded from environment variables with the ``CHROMABASE_`` prefix.
    """

    model_config = {"env_prefix": "CHROMABASE_"}

    # -- Service -------------------------------------------------------------
    service_name: str = "ChromaBase API"
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: str = "*"  # comma-separated

    # -- Storage -------------------------------------------------------------
    db_path: Path = Path("/var/lib/chromabase/chromabase.db")
    collections_file: Path | None = None

    # -- Webhooks ------------------------------------------------------------
    webhook_timeout_s: float = 5.0
    webhook_drain_timeout_s: float = 10.0
    webhook_queue_size: int = 1000  # per URL

    # -- Live stream ---------------------------------------------------------
    stream_keepalive_s: float = 15.0
    stream_queue_size: int = 100

    # -- Responses -----------------------------------------------------------
    # Envelope-only by default: logical errors are answered with HTTP 200.
    conventional_status_codes: bool = False

    # -- Misc ----------------------------------------------------------------
    log_level: str = "INFO"
    # Open streams never finish on their own; uvicorn cancels them after this.
    shutdown_grace_s: float = 5.0

    def parse_cors_origins(self) -> list[str]:
        """Split the comma-separated CORS origin list."""
        origins = []
        for entry in self.cors_origins.split(","):
            entry = entry.strip()
            if entry:
                origins.append(entry)
        if not origins:
            logger.warning("Empty CORS origin list, cross-origin requests will be refused")
        return origins

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, v: str) -> str:
        return v.upper()
