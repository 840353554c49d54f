"""
Speiseplan Configuration System
===============================

Settings for the upstream endpoints, catalog staleness, request limits and
logging. Values come from field defaults, a `.env` file and `SPEISEPLAN_*`
environment variables (nested sections use `__`, e.g.
`SPEISEPLAN_LIMITS__MAX_CONCURRENT_DETAILS=3`).
"""

from datetime import timedelta
from pathlib import Path
from typing import Optional
from enum import Enum

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, BaseModel, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode

_url_adapter = TypeAdapter(AnyHttpUrl)


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FeedSettings(BaseModel):
    """Upstream endpoints of the Studentenwerk meal plan."""
    feed_url: AnyHttpUrl = Field(
        default="https://www.studentenwerk-dresden.de/feeds/speiseplan.rss",
        description="RSS listing of today's meals",
    )
    detail_url_template: str = Field(
        default="https://www.studentenwerk-dresden.de/mensen/speiseplan/details-{id}.html",
        description="Detail page URL, {id} is replaced by the meal ID",
    )
    image_base_url: AnyHttpUrl = Field(
        default="https://bilderspeiseplan.studentenwerk-dresden.de",
        description="Origin that relative meal photo links resolve against",
    )

    @field_validator('detail_url_template')
    @classmethod
    def validate_detail_template(cls, v):
        """Ensure the template has a slot for the meal ID and nothing else."""
        if "{id}" not in v:
            raise ValueError("detail_url_template must contain '{id}'")
        try:
            v.format(id=0)
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(f"detail_url_template has unknown placeholders: {e}")
        return v

    def detail_url(self, meal_id: int) -> str:
        """Build the detail page URL for a meal."""
        return self.detail_url_template.format(id=meal_id)


class CatalogSettings(BaseModel):
    """In-memory catalog configuration."""
    stale_window_minutes: int = Field(default=30, ge=1, le=1440, description="Minutes before catalog reads are refused")

    @property
    def stale_window(self) -> timedelta:
        return timedelta(minutes=self.stale_window_minutes)


class LimitsSettings(BaseModel):
    """Request limits. Each fetch is a single attempt."""
    request_timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")
    max_concurrent_details: int = Field(default=5, ge=1, le=20, description="Concurrent detail page fetches")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class SpeiseplanSettings(BaseSettings):
    """Main application settings."""

    feed: FeedSettings = Field(default_factory=FeedSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="Speiseplan", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "SPEISEPLAN_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Cross-field checks that single-field validators cannot express.

        Raises:
            ConfigurationError: Listing every problem found
        """
        problems = []

        sample_detail_url = self.feed.detail_url(0)
        try:
            _url_adapter.validate_python(sample_detail_url)
        except PydanticValidationError:
            problems.append(f"detail_url_template does not yield a URL: {sample_detail_url!r}")

        if self.logging.file_path:
            try:
                Path(self.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                problems.append(f"log directory unusable: {e}")

        if problems:
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(problems)}",
                error_code=ErrorCode.CONFIG_INVALID,
            )

    def get_effective_log_level(self) -> str:
        """Log level to use, DEBUG whenever debug mode is on."""
        if self.debug:
            return LogLevel.DEBUG.value
        return self.logging.level.value


def load_settings() -> SpeiseplanSettings:
    """Build settings from defaults, ``.env`` and ``SPEISEPLAN_*`` variables.

    Process environment variables win over ``.env`` entries, which win over
    field defaults.

    Raises:
        ConfigurationError: If any value is invalid
    """
    load_dotenv()

    try:
        settings = SpeiseplanSettings()
    except PydanticValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ConfigurationError(
            f"Invalid settings ({fields}): {e}",
            config_key=fields,
            error_code=ErrorCode.CONFIG_INVALID,
        ) from e

    settings.validate_configuration()
    return settings


_settings: Optional[SpeiseplanSettings] = None


def get_settings(reload: bool = False) -> SpeiseplanSettings:
    """Return the process-wide settings, loading them on first use.

    Args:
        reload: Re-read the environment even if settings are cached
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
