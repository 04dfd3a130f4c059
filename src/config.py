"""Configuration management for the TestFlow recording and replay core."""

from enum import Enum
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TESTFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Recording / dedup
    dedup_window_ms: int = Field(600, description="Trailing window for duplicate suppression and pending clicks")
    text_description_max_chars: int = Field(50, description="Max label length used in step descriptions")
    element_text_max_chars: int = Field(200, description="Max text content kept on an element descriptor")

    # Wait inference
    default_wait_timeout_ms: int = Field(5000, description="Timeout for visible/clickable waits")
    navigation_timeout_ms: int = Field(10000, description="Timeout for clicks expected to navigate")
    network_idle_timeout_ms: int = Field(15000, description="Timeout for navigate steps")

    # Replay
    replay_poll_interval_ms: int = Field(200, description="Polling interval for wait conditions")
    start_url_settle_ms: int = Field(1500, description="Settle delay after navigating to the flow start URL")
    navigation_settle_ms: int = Field(1500, description="Page-level wait for navigation steps")
    network_idle_settle_ms: int = Field(2000, description="Page-level wait for networkIdle steps")
    default_settle_ms: int = Field(300, description="Fixed settle delay for other wait kinds")
    scroll_step_px: int = Field(300, description="Relative scroll distance when none was recorded")
    stop_on_failure: bool = Field(True, description="Halt a full run on the first failed step")

    # Logging
    log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
    log_json: bool = Field(False, description="Render logs as JSON")


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
