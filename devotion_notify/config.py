"""Environment configuration for the daily message delivery pipeline."""

import os
from functools import lru_cache

from dotenv import load_dotenv

from devotion_notify.errors import ConfigurationError

load_dotenv()


def _get_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _get_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "")

        # Push channel (Web Push / VAPID)
        self.VAPID_PUBLIC_KEY: str = os.getenv("VAPID_PUBLIC_KEY", "")
        self.VAPID_PRIVATE_KEY: str = os.getenv("VAPID_PRIVATE_KEY", "")
        self.VAPID_SUBJECT: str = os.getenv("VAPID_SUBJECT", "mailto:notifications@christiankit.app")

        # Email channel (Brevo transactional API)
        self.BREVO_API_KEY: str = os.getenv("BREVO_API_KEY", "")
        self.BREVO_API_URL: str = os.getenv("BREVO_API_URL", "https://api.brevo.com/v3/smtp/email")
        self.EMAIL_SENDER_NAME: str = os.getenv("EMAIL_SENDER_NAME", "ChristianKit")
        self.EMAIL_SENDER_ADDRESS: str = os.getenv(
            "EMAIL_SENDER_ADDRESS", "notifications@christiankit.app"
        )
        self.CHANNEL_TIMEOUT_SECONDS: float = _get_float("CHANNEL_TIMEOUT_SECONDS", 10.0)

        # Trigger endpoint auth
        self.TRIGGER_SECRET: str = os.getenv("TRIGGER_SECRET", "")
        self.JWT_ALGORITHM: str = "HS256"

        # Delivery cycle
        self.DELIVERY_MAX_WORKERS: int = _get_int("DELIVERY_MAX_WORKERS", 8)
        self.DELIVERY_WINDOW_MINUTES: int = _get_int("DELIVERY_WINDOW_MINUTES", 15)
        self.DEFAULT_PREFERRED_TIME: str = os.getenv("DEFAULT_PREFERRED_TIME", "08:00")
        self.PUSH_MAX_ATTEMPTS: int = _get_int("PUSH_MAX_ATTEMPTS", 3)
        self.PUSH_BACKOFF_BASE_MS: int = _get_int("PUSH_BACKOFF_BASE_MS", 1000)
        self.PUSH_BACKOFF_MAX_MS: int = _get_int("PUSH_BACKOFF_MAX_MS", 5000)
        self.ERROR_RATE_ALERT_THRESHOLD: float = _get_float("ERROR_RATE_ALERT_THRESHOLD", 0.10)
        self.RUN_TIMEZONE: str = os.getenv("RUN_TIMEZONE", "UTC")

        # Dev loop (production runs are triggered externally)
        self.WORKER_POLL_INTERVAL_SECONDS: int = _get_int("WORKER_POLL_INTERVAL_SECONDS", 900)

    def validate(self) -> None:
        """Validate that variables required to start a run are set."""
        if not self.DATABASE_URL:
            raise ConfigurationError("DATABASE_URL environment variable is required")
        self.validate_channels()

    def validate_channels(self) -> None:
        """Validate channel credentials (VAPID signing keys and email API key)."""
        if not self.VAPID_PUBLIC_KEY or not self.VAPID_PRIVATE_KEY:
            raise ConfigurationError(
                "VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY environment variables are required"
            )
        if not self.BREVO_API_KEY:
            raise ConfigurationError("BREVO_API_KEY environment variable is required")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    return settings
