"""
Application configuration using pydantic-settings (pydantic v2 style).

This centralizes environment-driven configuration. Prefer reading values
from environment variables; do not rely on os.getenv inline defaults which
can silently hide missing configuration.
"""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application configuration loaded from environment.

    Relevant environment variables:
      - SUPABASE_URL
      - SUPABASE_SERVICE_ROLE_KEY
      - DATABASE_URL
      - OPENAI_API_KEY
      - OPENAI_MODEL / OPENAI_VISION_MODEL
      - GOOGLE_APPLICATION_CREDENTIALS
      - OPENFOODFACTS_BASE_URL
      - REALTIME_ENABLED
      - LOG_LEVEL
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Supabase
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    database_url: Optional[str] = None
    realtime_enabled: bool = True

    # OpenAI
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_vision_model: str = "gpt-4o-mini"

    # Google Cloud Vision (receipt OCR)
    google_application_credentials: Optional[str] = None

    # Open Food Facts barcode lookup
    openfoodfacts_base_url: str = "https://world.openfoodfacts.org"
    barcode_timeout_seconds: float = Field(default=10.0, gt=0)
    default_expiry_days: int = Field(default=7, ge=0)

    log_level: str = "INFO"

    # --- validators / post-init checks ---
    @field_validator("supabase_url", "supabase_service_role_key", "openai_api_key")
    @classmethod
    def maybe_strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("openfoodfacts_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return (v or "INFO").upper()

    def model_post_init(self, __context) -> None:  # pydantic v2 hooks
        """
        Light-weight notice that runs after model is constructed.
        Uses logging (not print) so messages show up in server logs.
        """
        if not self.supabase_url or not self.supabase_service_role_key:
            logger.warning(
                "Supabase credentials are not configured. "
                "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY to enable DB features."
            )
        if not self.openai_api_key:
            logger.info(
                "OPENAI_API_KEY not set. Deduction, recipe and scan suggestions will be disabled."
            )
        if not self.google_application_credentials:
            logger.info(
                "GOOGLE_APPLICATION_CREDENTIALS not set. Receipt OCR will rely on the model alone."
            )


# single exporter
settings = Settings()
