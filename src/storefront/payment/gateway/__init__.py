"""Payment gateway registry.

Provides get_gateway() / set_gateway() to swap provider adapters, keyed by
provider name. Payme and Click default to the HMAC adapter.
"""

from storefront.errors import NotFoundError
from storefront.payment.gateway.hmac_adapter import HmacGateway
from storefront.payment.gateway.port import PaymentGateway

SUPPORTED_PROVIDERS = ("payme", "click")

_gateways: dict[str, PaymentGateway] = {}


def get_gateway(provider: str) -> PaymentGateway:
    """Return the adapter for ``provider``. Unknown providers raise NotFoundError."""
    gateway = _gateways.get(provider)
    if gateway is not None:
        return gateway
    if provider not in SUPPORTED_PROVIDERS:
        raise NotFoundError(f"Unknown payment provider: {provider}")

    gateway = HmacGateway(provider)
    _gateways[provider] = gateway
    return gateway


def set_gateway(provider: str, gateway: PaymentGateway) -> None:
    """Override the adapter for a provider (useful for tests)."""
    _gateways[provider] = gateway


def reset_gateways() -> None:
    """Reset to default adapters."""
    _gateways.clear()
