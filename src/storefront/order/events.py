"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A customer placed a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    item_count = Integer(required=True)
    total = Float(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new lifecycle status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class CourierAssigned:
    __version__ = 1

    order_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    courier_name = String(required=True)
    courier_phone = String(required=True)
    estimated_time = Integer()


@storefront.event(part_of="Order")
class PaymentIntentCreated:
    """A payment intent was minted with a provider for this order."""

    __version__ = 1

    order_id = Identifier(required=True)
    provider = String(required=True)
    intent_id = String(required=True)
    amount = Float()


@storefront.event(part_of="Order")
class PaymentSettled:
    """The provider confirmed payment. Raised at most once per order."""

    __version__ = 1

    order_id = Identifier(required=True)
    intent_id = String(required=True)
    provider = String()
    amount = Float()
    paid_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    intent_id = String(required=True)
    reason = String()
