"""Webhook settlement: command, handler, and the service used by the API.

Providers deliver at least once, possibly out of order and concurrently.
Settlement is idempotent: a replay finds the order already paid and changes
nothing. Concurrent deliveries for the same order race on the aggregate
version; the loser retries against fresh state and becomes a no-op.
"""

import json

from protean import handle
from protean.exceptions import ExpectedVersionError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.config import get_settings
from storefront.domain import storefront
from storefront.errors import InvalidRequestError, NotFoundError, SignatureError
from storefront.order.order import Order
from storefront.order.repository import load_order
from storefront.payment.gateway import get_gateway
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

MAX_SETTLEMENT_ATTEMPTS = 3

FAILED_OUTCOMES = ("failed", "cancelled", "canceled")


@storefront.command(part_of="Order")
class SettlePayment:
    order_id = Identifier(required=True)
    intent_id = String(required=True, max_length=64)
    provider = String(required=True, max_length=20)
    outcome = String(max_length=20, default="paid")
    amount = Float()
    reason = String(max_length=500)


@storefront.command_handler(part_of=Order)
class SettlePaymentHandler:
    @handle(SettlePayment)
    def settle(self, command):
        order = load_order(command.order_id)

        if order.payment_intent_id and order.payment_intent_id != command.intent_id:
            logger.warning(
                "payment_intent_mismatch",
                order_id=str(order.id),
                expected_intent_id=order.payment_intent_id,
                received_intent_id=command.intent_id,
                provider=command.provider,
            )

        if command.outcome in FAILED_OUTCOMES:
            changed = order.record_payment_failure(command.intent_id, reason=command.reason)
        else:
            changed = order.settle_payment(
                command.intent_id,
                amount=command.amount,
                reconcile=get_settings().reconcile_payment_amounts,
            )

        if changed:
            current_domain.repository_for(Order).add(order)
            logger.info(
                "payment_webhook_applied",
                order_id=str(order.id),
                intent_id=command.intent_id,
                payment_status=order.payment_status,
            )
        else:
            logger.info(
                "payment_webhook_replayed",
                order_id=str(order.id),
                intent_id=command.intent_id,
                payment_status=order.payment_status,
            )
        return changed


def _parse_payload(raw_body: bytes) -> dict:
    try:
        payload = json.loads(raw_body or b"")
    except (ValueError, UnicodeDecodeError):
        raise InvalidRequestError("invalid payload") from None

    if not isinstance(payload, dict) or not payload.get("intentId") or not payload.get("orderId"):
        raise InvalidRequestError("invalid payload")
    return payload


def handle_webhook(provider: str, raw_body: bytes, signature: str | None) -> dict:
    """Verify, parse, and apply one webhook delivery.

    Raises SignatureError before anything else is looked at, including for a
    provider that has no adapter, and InvalidRequestError for a signed but
    malformed payload.
    """
    try:
        gateway = get_gateway(provider)
    except NotFoundError:
        logger.warning("payment_webhook_unknown_provider", provider=provider)
        raise SignatureError("invalid") from None
    if not gateway.verify_webhook_signature(raw_body, signature):
        logger.warning("payment_webhook_rejected", provider=provider, has_signature=bool(signature))
        raise SignatureError("invalid")

    payload = _parse_payload(raw_body)
    command = SettlePayment(
        order_id=str(payload["orderId"]),
        intent_id=str(payload["intentId"]),
        provider=provider,
        outcome=str(payload.get("status") or "paid").lower(),
        amount=payload.get("amount"),
        reason=payload.get("reason"),
    )

    for attempt in range(1, MAX_SETTLEMENT_ATTEMPTS + 1):
        try:
            current_domain.process(command, asynchronous=False)
            break
        except NotFoundError:
            # Unknown orders are acknowledged, not settled.
            logger.warning("payment_webhook_unknown_order", order_id=command.order_id, provider=provider)
            break
        except ExpectedVersionError:
            if attempt == MAX_SETTLEMENT_ATTEMPTS:
                raise
            logger.info("payment_webhook_retry", order_id=command.order_id, attempt=attempt)

    return {"ok": True}
