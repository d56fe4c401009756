"""Payment gateway port (abstract interface).

Every provider adapter mints intent ids, builds the customer redirect, and
verifies the signature on its own webhook deliveries.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class IntentResult:
    """Outcome of creating (or reusing) a payment intent."""

    intent_id: str
    redirect_url: str


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    provider: str

    @abstractmethod
    def mint_intent_id(self) -> str:
        """Return a fresh, unguessable intent identifier."""
        ...

    @abstractmethod
    def redirect_url(self, order_id: str, intent_id: str) -> str:
        """URL the customer is sent to once the intent exists."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        """Verify that a webhook payload is authentically from the provider."""
        ...
