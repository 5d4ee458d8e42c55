"""Application configuration from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./ottalika.db",
        description="SQLAlchemy connection string",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Runtime
    environment: str = Field(
        default="development",
        description="Deployment environment; 'production' hides internal error detail",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file path")

    # Locale
    locale: str = Field(default="bn_BD", description="Locale for currency and number display")

    # Rent
    payment_grace_days: int = Field(
        default=5, ge=0, description="Days after month start before rent is due"
    )

    # API
    api_title: str = Field(default="Ottalika API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


# Global settings instance
settings = Settings()
