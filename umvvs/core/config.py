"""Application configuration with environment variable validation."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env relative to the project root (3 levels up from this file)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"

SUPPORTED_BROWSERS = ("firefox", "chromium", "webkit")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Target form
    form_url: str = Field(
        default="https://umvvs.tra.go.tz/",
        validation_alias="FORM_URL",
    )
    field_prefix: str = Field(default="#MainContent_ddl", validation_alias="FIELD_PREFIX")
    loading_indicator: str = Field(
        default="#MainContent_UpdateProgress1",
        validation_alias="LOADING_INDICATOR",
    )

    # Browser
    browser_name: str = Field(default="firefox", validation_alias="BROWSER")
    headless: bool = Field(default=True, validation_alias="HEADLESS")
    browser_args: list[str] = Field(default_factory=list, validation_alias="BROWSER_ARGS")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) "
            "Gecko/20100101 Firefox/117.0"
        ),
        validation_alias="USER_AGENT",
    )

    # Timeouts (seconds)
    navigation_timeout: float = Field(default=60.0, validation_alias="NAVIGATION_TIMEOUT")
    stage_race_timeout: float = Field(default=5.0, validation_alias="STAGE_RACE_TIMEOUT")
    stage_settle_timeout: float = Field(default=15.0, validation_alias="STAGE_SETTLE_TIMEOUT")
    option_read_timeout: float = Field(default=15.0, validation_alias="OPTION_READ_TIMEOUT")

    # Resolution
    validate_identifiers: bool = Field(default=True, validation_alias="VALIDATE_IDENTIFIERS")
    max_concurrent_sessions: int = Field(default=2, validation_alias="MAX_CONCURRENT_SESSIONS")
    scrape_retries: int = Field(default=0, validation_alias="SCRAPE_RETRIES")

    # API settings
    allowed_origins: list[str] | str = Field(
        default=["*"],
        validation_alias="ALLOWED_ORIGINS",
    )

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True, validation_alias="RATE_LIMIT_ENABLED")
    rate_limit_requests: int = Field(default=100, validation_alias="RATE_LIMIT_REQUESTS")
    rate_limit_period: int = Field(default=900, validation_alias="RATE_LIMIT_PERIOD")

    @property
    def cors_origins(self) -> list[str]:
        """Parse ALLOWED_ORIGINS from comma-separated string or return list."""
        if isinstance(self.allowed_origins, str):
            return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return self.allowed_origins

    @property
    def rate_limit(self) -> str:
        """Rate limit in the notation understood by slowapi."""
        return f"{self.rate_limit_requests}/{self.rate_limit_period} seconds"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


def validate_settings() -> None:
    """Validate settings that pydantic cannot check on its own."""
    settings = get_settings()
    errors = []

    if settings.browser_name not in SUPPORTED_BROWSERS:
        errors.append(
            f"BROWSER must be one of {', '.join(SUPPORTED_BROWSERS)}, "
            f"got {settings.browser_name!r}"
        )
    for name in (
        "navigation_timeout",
        "stage_race_timeout",
        "stage_settle_timeout",
        "option_read_timeout",
    ):
        if getattr(settings, name) <= 0:
            errors.append(f"{name.upper()} must be positive")
    if settings.max_concurrent_sessions < 1:
        errors.append("MAX_CONCURRENT_SESSIONS must be at least 1")
    if settings.scrape_retries < 0:
        errors.append("SCRAPE_RETRIES cannot be negative")

    if errors:
        raise ValueError(f"Configuration errors: {'; '.join(errors)}")
