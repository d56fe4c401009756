"""Customer-facing delivery timeline, derived from the order on every read.

Nothing here is cached or persisted: the timeline is a pure function of
the order's current status and its status history.
"""

from storefront.order.order import LIFECYCLE, Order, OrderStatus, stage_rank

_STAGE_TEXT = {
    OrderStatus.PENDING: ("Order placed", "Your order has been received"),
    OrderStatus.CONFIRMED: ("Order confirmed", "The store confirmed your order"),
    OrderStatus.PREPARING: ("Preparing", "Your order is being prepared"),
    OrderStatus.READY_FOR_DELIVERY: ("Ready for delivery", "Your order is packed and waiting for a courier"),
    OrderStatus.IN_TRANSIT: ("On the way", "Your order is on the way"),
    OrderStatus.DELIVERED: ("Delivered", "Your order has been delivered"),
    OrderStatus.CANCELLED: ("Cancelled", "This order was cancelled"),
}


def _isoformat(value):
    return value.isoformat() if value else None


def _stage(order: Order, status: OrderStatus, completed: bool) -> dict:
    title, description = _STAGE_TEXT[status]
    if status == OrderStatus.IN_TRANSIT and order.delivery and order.delivery.courier_name:
        description = f"Courier {order.delivery.courier_name} is delivering your order"

    timestamp = order.status_reached_at(status)
    if timestamp is None and status == OrderStatus.PENDING:
        timestamp = order.created_at

    return {
        "status": status.value,
        "title": title,
        "description": description,
        "timestamp": _isoformat(timestamp) if completed else None,
        "completed": completed,
    }


def build_timeline(order: Order) -> list[dict]:
    """Ordered stage entries for ``order``.

    Active and delivered orders list every lifecycle stage, completed up to
    and including the current one. Cancelled orders list only the stages
    actually recorded before cancellation, followed by the cancellation itself.
    """
    status = OrderStatus(order.status)

    if status == OrderStatus.CANCELLED:
        timeline = [_stage(order, stage, True) for stage in order.stages_reached()]
        timeline.append(_stage(order, OrderStatus.CANCELLED, True))
        return timeline

    current = stage_rank(status)
    return [_stage(order, stage, index <= current) for index, stage in enumerate(LIFECYCLE)]


def build_tracking(order: Order) -> dict:
    delivery = order.delivery
    courier = None
    if delivery and delivery.courier_id:
        courier = {
            "id": delivery.courier_id,
            "name": delivery.courier_name,
            "phone": delivery.courier_phone,
        }

    return {
        "order": {
            "id": str(order.id),
            "status": order.status,
            "paymentStatus": order.payment_status,
            "total": order.totals.total if order.totals else None,
            "estimatedTime": delivery.estimated_time if delivery else None,
        },
        "timeline": build_timeline(order),
        "courier": courier,
    }
