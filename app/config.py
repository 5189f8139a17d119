"""Application configuration management using Pydantic Settings.

This module loads and validates environment variables using Pydantic Settings.
All configuration is loaded from environment variables or a .env file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        database_url: SQLAlchemy connection string
        database_pool_size: Number of connections to maintain in pool
        database_max_overflow: Maximum overflow connections beyond pool_size
        environment: Application environment (development, staging, production)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        git_commit_sha: Git commit SHA reported by the service
        allowed_origins: List of allowed CORS origins
        generator_provider: Question generator backend (template, gemini)
        gemini_model: Gemini model used for question generation
        gemini_api_key: API key for the Gemini developer API
        google_cloud_project: Google Cloud project for Vertex AI / Translation
        google_cloud_location: Google Cloud location for Vertex AI / Translation
        generator_max_attempts: Attempts per generation call before falling back
        generator_backoff_base_seconds: Base of the exponential backoff
        generator_backoff_max_seconds: Upper bound of a single backoff wait
        generator_min_interval_seconds: Minimum spacing between generation calls
        generator_timeout_seconds: Timeout for a single generation attempt
        translation_provider: Translation backend (none, google)
        translation_batch_concurrency: Parallel requests per batch translation
        translation_timeout_seconds: Timeout for a single translation request
        translation_cache_ttl_seconds: Lifetime of cached translations
        default_max_questions: Question ceiling applied to new surveys
        default_target_language: Target language applied to new surveys
    """

    # Database Configuration
    database_url: str = Field(
        description="SQLAlchemy database connection string"
    )
    database_pool_size: int = Field(
        default=5,
        description="Number of database connections in pool"
    )
    database_max_overflow: int = Field(
        default=10,
        description="Maximum overflow connections beyond pool size"
    )

    # Application Configuration
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    git_commit_sha: str = Field(
        default="local",
        description="Git commit SHA for versioning"
    )
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        description="Comma-separated list of allowed CORS origins"
    )

    # Question Generation Configuration
    generator_provider: str = Field(
        default="template",
        description="Question generator backend"
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for question generation"
    )
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="API key for the Gemini developer API"
    )
    google_cloud_project: Optional[str] = Field(
        default=None,
        description="Google Cloud project for Vertex AI and Translation"
    )
    google_cloud_location: str = Field(
        default="global",
        description="Google Cloud location for Vertex AI and Translation"
    )
    generator_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per generation call before falling back"
    )
    generator_backoff_base_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Base of the exponential backoff between attempts"
    )
    generator_backoff_max_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Upper bound of a single backoff wait"
    )
    generator_min_interval_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Minimum spacing between generation requests"
    )
    generator_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single generation attempt"
    )

    # Translation Configuration
    translation_provider: str = Field(
        default="none",
        description="Translation backend"
    )
    translation_batch_concurrency: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Parallel requests issued per batch translation"
    )
    translation_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single translation request"
    )
    translation_cache_ttl_seconds: int = Field(
        default=30 * 24 * 60 * 60,
        ge=0,
        description="Lifetime of cached translations"
    )

    # Survey Defaults
    default_max_questions: int = Field(
        default=10,
        ge=5,
        le=50,
        description="Question ceiling applied to new surveys"
    )
    default_target_language: str = Field(
        default="en",
        min_length=2,
        description="Target language applied to new surveys"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = {"development", "staging", "production"}
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v_upper

    @field_validator("generator_provider")
    @classmethod
    def validate_generator_provider(cls, v: str) -> str:
        """Validate generator provider is a known backend."""
        allowed = {"template", "gemini"}
        if v.lower() not in allowed:
            raise ValueError(f"Generator provider must be one of {allowed}")
        return v.lower()

    @field_validator("translation_provider")
    @classmethod
    def validate_translation_provider(cls, v: str) -> str:
        """Validate translation provider is a known backend."""
        allowed = {"none", "google"}
        if v.lower() not in allowed:
            raise ValueError(f"Translation provider must be one of {allowed}")
        return v.lower()

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed_origins string into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton

    Note:
        Uses lru_cache to ensure settings are only loaded once
        and shared across the application.
    """
    return Settings()
