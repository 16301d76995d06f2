"""
Configuration management using environment variables.
Handles all relay settings with proper validation and defaults.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RelayConfig(BaseSettings):
    """
    Configuration class for the schedule relay.
    Uses pydantic BaseSettings for environment variable management.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Telegram
    bot_token: str = Field(default="")

    # Polling
    target_url: str = Field(default="https://poweron.loe.lviv.ua/shedule-off")
    check_interval_ms: int = Field(default=60_000)

    # Persistent state
    data_dir: str = Field(default="./data")
    persist_schedule_state: bool = Field(default=True)

    # Fetch Configuration
    fetch_strategy: str = Field(default="html")
    request_timeout: int = Field(default=25)
    retry_attempts: int = Field(default=2)
    retry_delay: float = Field(default=1.0)
    media_host_hint: str = Field(default="api.loe.lviv.ua/media")
    browser_timeout_ms: int = Field(default=45_000)
    browser_headless: bool = Field(default=True)

    # Change detection and alerting
    normalize_references: bool = Field(default=False)
    notify_subscribers_on_error: bool = Field(default=True)
    error_cooldown_minutes: int = Field(default=15)
    schedule_keywords: str = Field(default="графік,зараз,schedule")

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")
    log_file: Optional[str] = Field(default=None)

    # Development/Testing
    debug: bool = Field(default=False)

    @field_validator('check_interval_ms')
    @classmethod
    def validate_check_interval(cls, v):
        """Ensure the poll interval is not absurdly small."""
        if v < 1000:
            raise ValueError('check_interval_ms must be at least 1000')
        return v

    @field_validator('request_timeout')
    @classmethod
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 1 or v > 300:
            raise ValueError('request_timeout must be between 1 and 300 seconds')
        return v

    @field_validator('retry_attempts')
    @classmethod
    def validate_retry_attempts(cls, v):
        """Ensure retry attempts is reasonable."""
        if v < 0 or v > 10:
            raise ValueError('retry_attempts must be between 0 and 10')
        return v

    @field_validator('error_cooldown_minutes')
    @classmethod
    def validate_error_cooldown(cls, v):
        if v < 1 or v > 1440:
            raise ValueError('error_cooldown_minutes must be between 1 and 1440')
        return v

    @field_validator('fetch_strategy')
    @classmethod
    def validate_fetch_strategy(cls, v):
        """Ensure fetch strategy is known."""
        valid_strategies = ['html', 'browser']
        if v.lower() not in valid_strategies:
            raise ValueError(f'fetch_strategy must be one of: {valid_strategies}')
        return v.lower()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    @property
    def check_interval_seconds(self) -> float:
        return self.check_interval_ms / 1000

    def get_data_dir(self) -> Path:
        return Path(self.data_dir)

    def get_subscribers_file(self) -> Path:
        """Get subscriber list path as Path object."""
        return self.get_data_dir() / "subscribers.json"

    def get_schedule_state_file(self) -> Path:
        """Get last-known schedule cache path as Path object."""
        return self.get_data_dir() / "last_schedule.json"

    def get_keywords(self) -> List[str]:
        """Keywords that turn a free-text message into a refresh request."""
        return [k.strip().lower() for k in self.schedule_keywords.split(",") if k.strip()]

    def get_headers(self) -> dict:
        """Get default headers for HTTP requests."""
        return {
            "User-Agent": "Mozilla/5.0",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "uk-UA,uk;q=0.9,en;q=0.7",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }


# Global configuration instance
config = RelayConfig()
