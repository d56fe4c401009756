"""Payment intent creation: command, handler, and the service used by the API."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import ForbiddenError, InvalidRequestError
from storefront.order.order import Order
from storefront.order.repository import load_order
from storefront.payment.gateway import get_gateway
from storefront.payment.gateway.port import IntentResult
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@storefront.command(part_of="Order")
class CreatePaymentIntent:
    order_id = Identifier(required=True)
    provider = String(required=True, max_length=20)
    amount = Float(required=True, min_value=0.0)
    requested_by = Identifier()  # set when the caller may only pay for their own orders


@storefront.command_handler(part_of=Order)
class CreatePaymentIntentHandler:
    @handle(CreatePaymentIntent)
    def create_intent(self, command):
        gateway = get_gateway(command.provider)
        order = load_order(command.order_id)
        if command.requested_by and str(order.user_id) != str(command.requested_by):
            raise ForbiddenError("Access denied: you can only pay for your own orders")

        intent_id = order.record_payment_intent(
            provider=command.provider,
            intent_id=gateway.mint_intent_id(),
            amount=command.amount,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "payment_intent_ready",
            order_id=str(order.id),
            provider=command.provider,
            intent_id=intent_id,
        )
        return intent_id


def create_intent(provider: str, order_id, amount, requested_by: str | None = None) -> IntentResult:
    """Create or reuse a payment intent for an order and build the redirect."""
    if not order_id or not amount:
        raise InvalidRequestError("orderId and amount required")

    gateway = get_gateway(provider)
    intent_id = current_domain.process(
        CreatePaymentIntent(
            order_id=str(order_id),
            provider=provider,
            amount=float(amount),
            requested_by=requested_by,
        ),
        asynchronous=False,
    )
    return IntentResult(intent_id=intent_id, redirect_url=gateway.redirect_url(str(order_id), intent_id))
