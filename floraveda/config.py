"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Gemini Configuration
    gemini_api_key: str = Field(
        default="",
        description="API key for Google Gemini (falls back to GOOGLE_API_KEY/GEMINI_API_KEY handling of the SDK)"
    )
    analysis_model: str = Field(
        default="gemini-3-pro-preview",
        description="Model used for the structured plant analysis call"
    )
    chat_model: str = Field(
        default="gemini-3-pro-preview",
        description="Model used for follow-up chat sessions"
    )

    # Consultation Configuration
    chat_greeting: str = Field(
        default=(
            "Hello! I am Dr. Green. I've analyzed your plant's condition. "
            "How can I assist you with its health and care today? 🩺🌿"
        ),
        description="Opening model turn of every chat transcript (empty to disable)"
    )
    max_image_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Largest accepted upload in bytes"
    )
    session_ttl_minutes: int = Field(
        default=24 * 60,
        description="Idle time after which a consultation is discarded"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum analysis requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="FloraVeda Plant Doctor",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
