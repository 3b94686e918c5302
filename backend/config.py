"""
Configuration management for the SIM order lifecycle service.

Loads settings from .env via pydantic-settings.

Notes:
    - national_id_key is decoded once and cached
    - validate_production_settings() enforces strict CORS and secrets in production
"""
import logging
from functools import cached_property

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/sim_orders.db"

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"

    # ── Auth (JWT) ──────────────────────────────────────────────────
    jwt_secret: str = ""
    jwt_issuer: str = "sim-orders-api"
    jwt_access_ttl_minutes: int = 60

    # ── National ID encryption ──────────────────────────────────────
    # 64 hex chars (32 bytes). Empty in development => derived dev key.
    national_id_key: str = ""

    # ── Reclamation scheduler ───────────────────────────────────────
    reclamation_enabled: bool = True
    reclamation_tick_seconds: int = 30
    default_cron_schedule: str = "*/2 * * * *"

    # ── Order numbering ─────────────────────────────────────────────
    order_id_prefix: str = "SO"
    first_order_number: int = 1000

    # ── Rate limits (anonymous endpoints, per client IP per minute) ──
    payment_callback_rate_limit: int = 120
    status_info_rate_limit: int = 60

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @cached_property
    def national_id_key_bytes(self) -> bytes:
        """
        Decode the national-id encryption key (computed once, cached).

        Outside production an empty key falls back to a fixed development key
        so local databases stay readable across restarts.
        """
        if not self.national_id_key:
            if self.environment == "production":
                raise ValueError("NATIONAL_ID_KEY not set in .env")
            return b"dev-only-national-id-key-32bytes"
        key = bytes.fromhex(self.national_id_key)
        if len(key) != 32:
            raise ValueError("NATIONAL_ID_KEY must be 32 bytes (64 hex characters)")
        return key

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup.
        """
        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if not self.jwt_secret:
                raise ValueError(
                    "JWT_SECRET must be set in production. "
                    "It is used to verify staff access tokens."
                )
            if not self.national_id_key:
                raise ValueError(
                    "NATIONAL_ID_KEY must be set in production. "
                    "It encrypts customer national ids at rest."
                )
            logger.info("Production settings validated")
        else:
            warnings = []
            if not self.national_id_key:
                warnings.append("NATIONAL_ID_KEY not set (using development key)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            if not self.reclamation_enabled:
                warnings.append("RECLAMATION_ENABLED=false (abandoned orders keep their numbers)")
            for w in warnings:
                logger.warning(f"{w}")


# Global settings instance
settings = Settings()
