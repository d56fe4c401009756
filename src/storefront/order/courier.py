"""Courier assignment: command and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order
from storefront.order.repository import load_order


@storefront.command(part_of="Order")
class AssignCourier:
    order_id = Identifier(required=True)
    courier_id = String(required=True, max_length=64)
    courier_name = String(required=True, max_length=255)
    courier_phone = String(required=True, max_length=32)
    estimated_time = Integer(min_value=0)


@storefront.command_handler(part_of=Order)
class AssignCourierHandler:
    @handle(AssignCourier)
    def assign_courier(self, command):
        order = load_order(command.order_id)
        order.assign_courier(
            courier_id=command.courier_id,
            courier_name=command.courier_name,
            courier_phone=command.courier_phone,
            estimated_time=command.estimated_time,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
