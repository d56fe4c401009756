"""Runtime settings read from the environment.

A ``.env`` file in the working directory is loaded first when present;
variables already set in the process environment win over it.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(override=False)

DEFAULT_JWT_SECRET = "change_this_secret_in_prod"


def _flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    environment: str
    jwt_secret: str
    jwt_algorithm: str
    payme_secret: str
    click_secret: str
    client_url: str
    audit_queue_size: int
    reconcile_payment_amounts: bool

    def provider_secret(self, provider: str) -> str:
        """Webhook signing secret for a payment provider, empty when unset."""
        return {"payme": self.payme_secret, "click": self.click_secret}.get(provider, "")

    def check(self) -> None:
        if self.environment in ("production", "prod") and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET must be set to a unique value in production")
        if self.audit_queue_size < 1:
            raise ValueError("AUDIT_QUEUE_SIZE must be a positive integer")


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings(
        environment=(os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower(),
        jwt_secret=os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        payme_secret=os.getenv("PAYME_SECRET", ""),
        click_secret=os.getenv("CLICK_SECRET", ""),
        client_url=os.getenv("CLIENT_URL", "http://localhost:5173").rstrip("/"),
        audit_queue_size=int(os.getenv("AUDIT_QUEUE_SIZE", "1000")),
        reconcile_payment_amounts=_flag("RECONCILE_PAYMENT_AMOUNTS"),
    )
