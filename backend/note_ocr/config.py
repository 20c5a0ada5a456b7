"""
Handwritten Note OCR — Application Configuration
=================================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before app starts.
"""

from typing import List

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

# Formats the vision model documents support; only enforced in strict mode
DOCUMENTED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development. Only the Gemini API
    key has to be provided for the service to do useful work.
    """

    # ── Google Gemini ─────────────────────────────────────────────────────
    # Accepts both GEMINI_API_KEY and GOOGLE_GEMINI_API_KEY
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("gemini_api_key", "google_gemini_api_key"),
        description="Google Gemini API key for vision-based note extraction",
    )
    gemini_model: str = Field(default="gemini-2.5-flash")

    # Hard upper bound on a single model call, in seconds
    gemini_timeout: int = Field(default=60, ge=5, le=300)

    # ── Retry Configuration ───────────────────────────────────────────────
    # Only transient transport failures are retried; 1 means a single attempt
    retry_max_attempts: int = Field(default=1, ge=1, le=5)
    retry_min_wait: int = Field(default=1, ge=1, le=30)
    retry_max_wait: int = Field(default=8, ge=1, le=120)

    # ── Input Limits ──────────────────────────────────────────────────────
    # Decoded image size limit: 10 MiB = 10 * 1024 * 1024
    max_image_size: int = Field(default=10_485_760, ge=1_048_576, le=52_428_800)

    # When False any image/* type is accepted; when True only DOCUMENTED_MIME_TYPES
    strict_mime_types: bool = Field(default=False)

    # ── Temporary Image Storage ───────────────────────────────────────────
    store_uploaded_images: bool = Field(default=True)
    storage_root: str = Field(default="./storage")
    temp_image_ttl: int = Field(default=3600, ge=60, le=86400)  # seconds
    # Minimum gap between expiry sweeps triggered by new uploads
    temp_image_purge_interval: int = Field(default=300, ge=0, le=86400)  # seconds

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "populate_by_name": True,
    }

    @property
    def gemini_configured(self) -> bool:
        return bool(self.gemini_api_key) and self.gemini_api_key != "your_gemini_api_key_here"

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that critical settings are configured.
        When:  Called during app startup (lifespan).
        Why:   Fail fast with clear error messages instead of cryptic runtime failures.
        """
        errors = []
        if not self.gemini_configured:
            errors.append(
                "GEMINI_API_KEY (or GOOGLE_GEMINI_API_KEY) is not set. "
                "Get a key at https://aistudio.google.com/app/apikey"
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance: imported throughout the application
settings = Settings()
