"""
Application configuration using Pydantic Settings.
Loads from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "ContactPro Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # API
    cors_origins: list[str] = [
        "https://contactpro-hrmanager.vercel.app",
        "https://dalilyai.com",
        "http://localhost:3000",
    ]
    frontend_url: str = "https://contactpro-hrmanager.vercel.app"
    # Base URL this service is reachable at; the scraper posts normalized
    # contacts back to {internal_api_base_url}/profiles
    internal_api_base_url: str = "http://localhost:8000"

    # Database - Individual settings (recommended)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_database: str = "contactpro"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    # Full DSN override, e.g. sqlite+aiosqlite:///./test.db
    database_dsn: str = ""

    # Database pool settings
    database_pool_size: int = 10
    database_max_overflow: int = 10

    @property
    def database_url(self) -> str:
        """Build database URL from individual components."""
        if self.database_dsn:
            return self.database_dsn
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_database}"

    # Authentication
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_refresh_secret_key: str = ""  # Falls back to jwt_secret_key
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 7 * 24 * 60  # 7 days
    jwt_refresh_token_expire_days: int = 30
    bcrypt_rounds: int = 10
    min_password_length: int = 6

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:8000/auth/google/callback"
    google_auth_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    google_token_url: str = "https://oauth2.googleapis.com/token"
    google_state_expire_minutes: int = 10

    # LinkedIn scraping service (Apify)
    apify_api_key: str = ""
    apify_base_url: str = "https://api.apify.com/v2"
    apify_actor_id: str = "supreme_coder~linkedin-profile-scraper"
    scraper_poll_interval_seconds: float = 3.0
    scraper_max_poll_attempts: int = 60  # ~3 minutes at the default interval
    scraper_http_timeout_seconds: float = 30.0
    scraper_max_retries: int = 3
    scraper_persist_via_http: bool = True

    # Points ledger
    signup_bonus_points: int = 100
    scrape_points_per_profile: int = 10
    unlock_cost_points: int = 10
    activity_log_limit: int = 20

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "console"

    # Sentry (Error Tracking)
    sentry_dsn: str = ""
    sentry_environment: str = "development"
    sentry_traces_sample_rate: float = 0.1

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
