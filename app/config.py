"""
Configuration management using Pydantic settings.
Handles the marketplace API location, session signing, page sizes and upload limits.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache


DEFAULT_SESSION_SECRET = "change-this-session-secret-in-production"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application configuration
    app_name: str = "Property Marketplace"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    testing: bool = False

    # Marketplace REST API
    api_base_url: str = "http://localhost:3000"
    api_timeout_seconds: float = 10.0

    # Session cookie configuration
    session_secret_key: str = DEFAULT_SESSION_SECRET
    session_cookie_name: str = "marketplace_session"
    session_max_age: int = 7 * 24 * 60 * 60  # matches the 7 day API token lifetime
    session_https_only: bool = False
    auth_recheck_seconds: int = 300

    # Page sizes
    default_page_size: int = 20
    agent_listings_page_size: int = 100
    favorites_page_size: int = 1000
    admin_page_size: int = 50
    featured_listings_limit: int = 12
    similar_listings_limit: int = 6

    # Server-side session data
    saved_properties_max_sessions: int = 10000
    viewed_properties_max_entries: int = 50000

    # UI behaviour
    toast_default_duration_ms: int = 3000
    view_tracking_debounce_seconds: float = 2.0

    # Upload limits
    max_photo_size: int = 10 * 1024 * 1024  # 10MB
    max_profile_photo_size: int = 5 * 1024 * 1024  # 5MB
    max_document_size: int = 10 * 1024 * 1024  # 10MB
    allowed_image_types: List[str] = ["image/jpeg", "image/png", "image/webp"]
    allowed_document_types: List[str] = ["application/pdf", "image/jpeg", "image/png"]

    # Monitoring
    slow_request_threshold: float = 2.0

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v):
        """Require an absolute http(s) URL and drop any trailing slash."""
        if not v or not v.startswith(("http://", "https://")):
            raise ValueError("API_BASE_URL must be an absolute http(s) URL")
        return v.rstrip("/")

    @field_validator("session_secret_key")
    @classmethod
    def validate_session_secret_key(cls, v):
        """Validate session secret strength."""
        if not v:
            raise ValueError("SESSION_SECRET_KEY is required")
        if len(v) < 32 and v != DEFAULT_SESSION_SECRET:
            raise ValueError("SESSION_SECRET_KEY must be at least 32 characters long")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing" or self.testing

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()


# Global settings instance
settings = get_settings()
