"""
Configuration management for the StorySlides backend.

This module centralizes all configuration settings and environment variables
for the StorySlides API, following the 12-factor app methodology.
"""

import os
from functools import lru_cache
from dotenv import load_dotenv

from storyslides.exceptions import ConfigurationError

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings:
    """
    Application settings configuration.

    Values are read from environment variables when the class is created,
    with sensible defaults where appropriate.
    """

    # Database Configuration
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_KEY: str = os.getenv("SUPABASE_SERVICE_KEY", "")
    SUPABASE_CONNECTION_STRING: str = os.getenv("SUPABASE_CONNECTION_STRING", "")

    # Server Configuration
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = _env_bool("DEBUG")
    RELOAD: bool = _env_bool("RELOAD")

    # Concurrency Configuration
    MAX_CONCURRENT_DB_CONNECTIONS: int = int(os.getenv("MAX_CONCURRENT_DB_CONNECTIONS", "20"))
    REQUEST_TIMEOUT_SECONDS: int = int(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
    # 0 turns the limiter off
    RATE_LIMIT_PER_MINUTE: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))

    # CORS Configuration
    ALLOWED_ORIGINS: list[str] = [o for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o]

    @property
    def cors_allow_all(self) -> bool:
        return len(self.ALLOWED_ORIGINS) == 0

    @property
    def cors_origins(self) -> list[str]:
        return ["*"] if self.cors_allow_all else list(self.ALLOWED_ORIGINS)

    # Reading pipeline defaults
    DEFAULT_WORD_LIMIT: int = int(os.getenv("DEFAULT_WORD_LIMIT", "400"))
    DEFAULT_ADS_FREQUENCY: int = int(os.getenv("DEFAULT_ADS_FREQUENCY", "6"))

    # Logging
    LOG_DIR: str = os.getenv("LOG_DIR", "")

    def validate_required_settings(self) -> None:
        """
        Validate that all required environment variables are set.

        Raises:
            ConfigurationError: If any required environment variable is missing.
        """
        required_settings = [
            ("SUPABASE_URL", self.SUPABASE_URL),
            ("SUPABASE_SERVICE_KEY", self.SUPABASE_SERVICE_KEY),
            ("SUPABASE_CONNECTION_STRING", self.SUPABASE_CONNECTION_STRING),
        ]

        missing_settings = [
            name for name, value in required_settings if not value
        ]

        if missing_settings:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing_settings)}",
                error_code="missing_settings",
            )

    def get_postgres_connection_string(self) -> str:
        """
        Get the PostgreSQL connection string in the plain ``postgresql://`` form
        accepted by both asyncpg and psycopg.
        """
        connection_string = self.SUPABASE_CONNECTION_STRING
        if connection_string.startswith("postgresql+psycopg://"):
            connection_string = connection_string.replace(
                "postgresql+psycopg://", "postgresql://"
            )
        return connection_string


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings instance (cached).

    Returns:
        Settings: The application settings instance.
    """
    return Settings()


# Global settings instance for easy import
settings = get_settings()
