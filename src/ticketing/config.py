"""Runtime settings for the ticketing context, read from the environment."""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    currency: str = "eur"
    gateway: str = "fake"
    stripe_api_key: str = ""
    stripe_webhook_secret: str = ""
    webhook_secret: str = "whsec_test"
    gateway_timeout_seconds: float = 10.0
    gateway_max_network_retries: int = 2
    blob_root: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            currency=os.getenv("TICKETING_CURRENCY", "eur").lower(),
            gateway=os.getenv("TICKETING_GATEWAY", "fake").lower(),
            stripe_api_key=os.getenv("STRIPE_API_KEY", ""),
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", ""),
            webhook_secret=os.getenv("TICKETING_WEBHOOK_SECRET", "whsec_test"),
            gateway_timeout_seconds=float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10")),
            gateway_max_network_retries=int(os.getenv("GATEWAY_MAX_NETWORK_RETRIES", "2")),
            blob_root=os.getenv("TICKETING_BLOB_ROOT") or None,
        )


def get_settings() -> Settings:
    """Settings are re-read on every call so tests can monkeypatch the environment."""
    return Settings.from_env()
