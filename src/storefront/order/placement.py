"""Order placement: command and handler."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@storefront.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    totals = Text(required=True)  # JSON: totals dict
    address = Text(required=True)  # JSON: address dict
    delivery = Text()  # JSON: delivery dict
    payment_method = String(max_length=20)
    notes = Text()


def _loads(value):
    if value is None:
        return None
    return json.loads(value) if isinstance(value, str) else value


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        order = Order.place(
            user_id=command.user_id,
            items_data=_loads(command.items),
            totals=_loads(command.totals),
            address=_loads(command.address),
            delivery=_loads(command.delivery),
            payment_method=command.payment_method,
            notes=command.notes,
        )
        current_domain.repository_for(Order).add(order)

        logger.info("order_placed", order_id=str(order.id), user_id=str(command.user_id), total=order.totals.total)
        return str(order.id)
