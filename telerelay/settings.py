import os
from enum import Enum
from typing import Any, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment types."""

    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):  # type: ignore[misc]
    """
    Relay service settings.

    Every field can be overridden with an environment variable of the same
    (case-sensitive) name.
    """

    model_config = SettingsConfigDict(case_sensitive=True)

    ENV: Environment = Environment.DEV

    # Logging settings
    LOG_FILE_PATH: str = "logs/logging_errors.log"
    LOG_EXCLUDED_PATHS: list[str] = ["/metrics", "/health"]
    LOG_LEVEL: str = "INFO"
    LOG_CONSOLE_FORMAT: Literal["human", "json"] = "human"

    # WebSocket settings
    WS_OUTBOX_MAX_SIZE: int = 256
    CHAT_MAX_LENGTH: int = 500

    # Room lifecycle settings
    ROOM_IDLE_TIMEOUT_SECONDS: float = 3600.0
    ROOM_REAPER_INTERVAL_SECONDS: float = 60.0

    # Delivery simulation settings
    DELIVERY_TICK_SECONDS: float = 5.0
    DELIVERY_JITTER: float = 0.001
    DELIVERY_COMPLETE_PROBABILITY: float = 0.1
    DELIVERY_START_LAT: float = 19.0760
    DELIVERY_START_LNG: float = 72.8777
    # Delivered records are dropped this long after delivery (0 keeps them)
    DELIVERY_RETENTION_SECONDS: float = 600.0

    def __init__(self, **kwargs: Any) -> None:
        """Initialize settings with environment-specific defaults."""
        super().__init__(**kwargs)
        self._apply_environment_defaults()

    def _apply_environment_defaults(self) -> None:
        """Apply environment-specific configuration defaults."""
        if self.ENV == Environment.PRODUCTION:
            if os.getenv("LOG_CONSOLE_FORMAT") is None:
                self.LOG_CONSOLE_FORMAT = "json"
            if os.getenv("LOG_LEVEL") is None:
                self.LOG_LEVEL = "WARNING"

        elif self.ENV == Environment.STAGING:
            if os.getenv("LOG_CONSOLE_FORMAT") is None:
                self.LOG_CONSOLE_FORMAT = "json"

        else:  # Environment.DEV
            if os.getenv("LOG_LEVEL") is None:
                self.LOG_LEVEL = "DEBUG"

    @property
    def room_expiry_enabled(self) -> bool:
        return self.ROOM_IDLE_TIMEOUT_SECONDS > 0


app_settings = Settings()
