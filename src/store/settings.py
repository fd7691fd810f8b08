"""Runtime settings for the store service, read from the environment."""

import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    environment: str = os.getenv("ENVIRONMENT", "development").lower()

    # Upper bound on waiting for a per-item or per-member lock
    stock_lock_timeout: float = float(os.getenv("STOCK_LOCK_TIMEOUT", "5"))

    # Sent back as Retry-After on a 409 ConcurrencyConflict
    checkout_retry_after: int = int(os.getenv("CHECKOUT_RETRY_AFTER", "1"))

    # Inventory managers notified by the low-stock monitor
    alert_recipients: list[str] = [
        address.strip() for address in os.getenv("ALERT_RECIPIENTS", "inventory@gymstore.local").split(",") if address.strip()
    ]

    default_low_stock_threshold: int = int(os.getenv("DEFAULT_LOW_STOCK_THRESHOLD", "5"))

    # Adapter name for low-stock delivery, see store.alerts.channel
    alert_channel: str = os.getenv("ALERT_CHANNEL", "log").lower()

    log_dir: str = os.getenv("LOG_DIR", "logs")
    log_level: str | None = os.getenv("LOG_LEVEL")


settings = Settings()
