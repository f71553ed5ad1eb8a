"""
Configuration management using pydantic-settings and python-dotenv
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from sqlalchemy.engine import make_url


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # LLM
    LLM_API_KEY: str = Field(
        ...,
        description="OpenAI API key used for analyses and reports",
        alias="LLM_API_KEY"
    )
    LLM_MODEL: str = Field(
        default="gpt-4o-mini-2024-07-18",
        description="Model identifier sent with every completion request",
        alias="LLM_MODEL"
    )
    LLM_TEMPERATURE: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for analysis and report generation"
    )
    LLM_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        gt=0,
        description="Timeout applied to each LLM request"
    )
    LLM_MAX_RETRIES: int = Field(
        default=2,
        ge=0,
        description="Transport-level retries performed by the OpenAI SDK"
    )

    # Persistence
    PERSISTENCE_URL: str = Field(
        ...,
        description="SQLAlchemy async database URL",
        alias="PERSISTENCE_URL"
    )
    PERSISTENCE_KEY: str = Field(
        ...,
        description="Database password, used when the URL does not carry one",
        alias="PERSISTENCE_KEY"
    )
    DATABASE_ECHO: bool = Field(
        default=False,
        description="Echo SQL queries for debugging",
        alias="DATABASE_ECHO"
    )

    # Email delivery (Brevo)
    EMAIL_PROVIDER_KEY: Optional[str] = Field(
        default=None,
        description="Brevo API key, required for report delivery",
        alias="EMAIL_PROVIDER_KEY"
    )
    EMAIL_SENDER_ADDRESS: str = Field(
        default="hello@uselaunchlab.com",
        description="Sender address for transactional emails"
    )
    EMAIL_SENDER_NAME: str = Field(
        default="UseLaunchLab",
        description="Sender display name for transactional emails"
    )
    BREVO_REPORT_TEMPLATE_ID: Optional[int] = Field(
        default=None,
        description="Brevo template used for the report email; local templates when unset"
    )
    APP_BASE_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL used to build report links"
    )

    # Report access and delivery
    TOKEN_TTL_DAYS: int = Field(
        default=7,
        gt=0,
        description="Lifetime of report access tokens in days"
    )
    REPORT_MAX_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        description="Maximum attempts for a report job"
    )
    REPORT_RETRY_BACKOFF_SECONDS: float = Field(
        default=5.0,
        ge=0,
        description="Base delay before retrying a failed report job"
    )
    REPORT_WORKER_CONCURRENCY: int = Field(
        default=2,
        ge=1,
        description="Number of background report workers"
    )

    # Application
    ENVIRONMENT: str = Field(
        default="development",
        description="Application environment"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "allow"  # Allow extra fields from environment variables

    @property
    def database_url(self) -> str:
        """Database URL with PERSISTENCE_KEY applied as the password when missing"""
        url = make_url(self.PERSISTENCE_URL)
        if url.drivername.startswith("sqlite") or url.password:
            return url.render_as_string(hide_password=False)
        return url.set(password=self.PERSISTENCE_KEY).render_as_string(hide_password=False)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
