"""Redirect-style provider adapter with HMAC-signed webhooks.

Payme and Click both redirect the customer back to the storefront and then
notify the backend with a webhook signed by a per-provider secret.
"""

import secrets
from urllib.parse import urlencode

from storefront.config import get_settings
from storefront.payment.gateway.port import PaymentGateway
from storefront.payment.gateway.signature import verify_signature


class HmacGateway(PaymentGateway):
    def __init__(self, provider: str, secret: str | None = None, client_url: str | None = None) -> None:
        self.provider = provider
        self._secret = secret
        self._client_url = client_url

    @property
    def secret(self) -> str:
        if self._secret is not None:
            return self._secret
        return get_settings().provider_secret(self.provider)

    def mint_intent_id(self) -> str:
        return secrets.token_hex(16)

    def redirect_url(self, order_id: str, intent_id: str) -> str:
        base = self._client_url or get_settings().client_url
        query = urlencode({"orderId": order_id, "intentId": intent_id})
        return f"{base}/payment/success?{query}"

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        return verify_signature(payload, signature, self.secret)
