"""
WasteWatch - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from wastewatch.core.constants import DEFAULT_NEARBY_COUNT, DEFAULT_NEARBY_RADIUS_METERS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Google Gemini (image classification)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    classification_timeout_seconds: float = 30.0

    # Submission pipeline
    classification_debounce_ms: int = 600

    # Verification workflow
    verification_delay_ms: int = 700
    image_fetch_timeout_seconds: float = 15.0
    qr_service_url: str = "https://api.qrserver.com/v1/create-qr-code/"
    qr_size: int = 360

    # Map view
    nearby_radius_meters: float = DEFAULT_NEARBY_RADIUS_METERS
    nearby_count: int = DEFAULT_NEARBY_COUNT

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def classification_debounce_seconds(self) -> float:
        return self.classification_debounce_ms / 1000

    @property
    def verification_delay_seconds(self) -> float:
        return self.verification_delay_ms / 1000


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
