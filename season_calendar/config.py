from datetime import date
from pathlib import Path
import logging

from croniter import croniter
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from season_calendar.utils.season_index import CHANNELS_PER_SEASON


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Calendar settings from the environment or .env.

    Grid dimensions are module constants in utils.season_index, not settings.
    """

    database_path: str = "./data/calendar.db"
    log_level: str = "INFO"
    user_id: str = "default-user"
    save_debounce_ms: int = 500
    channels_per_page: int = 12
    schedule_start_date: date = date(2025, 11, 8)
    countdown_rollover_cron: str = "*/5 * * * *"
    countdown_rollover_misfire_grace_sec: int = 300
    change_stream_queue_size: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, value: str) -> str:
        """Create the parent directory of a database file."""
        if value == ":memory:":
            return value
        try:
            Path(value).parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ValueError(f"Database directory for '{value}' is not writable: {exc}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("user_id must not be empty")
        return value.strip()

    @field_validator("save_debounce_ms", "countdown_rollover_misfire_grace_sec")
    @classmethod
    def validate_non_negative_ints(cls, value: int, info) -> int:
        """Ensure durations are non-negative."""
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator("channels_per_page")
    @classmethod
    def validate_channels_per_page(cls, value: int) -> int:
        """A page shows at least one and at most one season of channels."""
        if not 1 <= value <= CHANNELS_PER_SEASON:
            raise ValueError(
                f"channels_per_page must be between 1 and {CHANNELS_PER_SEASON}"
            )
        return value

    @field_validator("change_stream_queue_size")
    @classmethod
    def validate_change_stream_queue_size(cls, value: int) -> int:
        """Each WebSocket client buffers at least one message."""
        if value < 1:
            raise ValueError("change_stream_queue_size must be >= 1")
        return value

    @field_validator("countdown_rollover_cron")
    @classmethod
    def validate_cron_expression(cls, value: str) -> str:
        """Validate cron expression is valid."""
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @model_validator(mode="after")
    def validate_sync_configuration(self):
        """Validate cross-field configuration."""
        if self.save_debounce_ms == 0:
            logger.warning(
                "save_debounce_ms is 0 - every navigation/settings change is written immediately"
            )
        return self

    @property
    def save_debounce_seconds(self) -> float:
        return self.save_debounce_ms / 1000

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Database: %s", self.database_path)
        logger.info("  User: %s", self.user_id)
        logger.info("  Save Debounce: %sms", self.save_debounce_ms)
        logger.info("  Channels Per Page: %s", self.channels_per_page)
        logger.info("  Schedule Start Date: %s", self.schedule_start_date.isoformat())
        logger.info("  Countdown Rollover Schedule: %s", self.countdown_rollover_cron)
        logger.info(
            "  Countdown Rollover Misfire Grace: %ss",
            self.countdown_rollover_misfire_grace_sec,
        )
        logger.info("  Change Stream Queue Size: %s", self.change_stream_queue_size)


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
