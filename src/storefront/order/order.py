"""Order aggregate: the single owner of an order's lifecycle.

Lifecycle (forward-only, cancellable until terminal):
    pending → confirmed → preparing → ready_for_delivery → in_transit → delivered
    any non-terminal state → cancelled

Any strictly later stage may be reached directly, so an operator can skip
stages the shop does not use. ``delivered`` and ``cancelled`` are terminal.

Payment is tracked on a separate axis (``payment_status``). Settling a
payment never advances the delivery status.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.domain import storefront
from storefront.order.events import (
    CourierAssigned,
    OrderPlaced,
    OrderStatusChanged,
    PaymentFailed,
    PaymentIntentCreated,
    PaymentSettled,
)

# Totals are money amounts in display units; rounding noise below a cent is tolerated.
AMOUNT_TOLERANCE = 0.01


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY_FOR_DELIVERY = "ready_for_delivery"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PaymentMethod(Enum):
    CASH = "cash"
    CARD = "card"
    PAYME = "payme"
    CLICK = "click"


LIFECYCLE = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_DELIVERY,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
)

_TERMINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


def stage_rank(status: OrderStatus) -> int:
    """Position of a status in the delivery lifecycle, -1 for cancelled."""
    try:
        return LIFECYCLE.index(status)
    except ValueError:
        return -1


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class OrderTotals:
    """Money summary captured at checkout. Never recomputed afterwards."""

    subtotal = Float(required=True, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    total = Float(required=True, min_value=0.0)


@storefront.value_object(part_of="Order")
class ShippingAddress:
    full_name = String(required=True, max_length=255)
    phone = String(required=True, max_length=32)
    country = String(max_length=100)
    city = String(required=True, max_length=100)
    street = String(required=True, max_length=255)
    zip = String(max_length=20)


@storefront.value_object(part_of="Order")
class DeliveryInfo:
    """Delivery details, including the courier once one is assigned."""

    address = String(max_length=500)
    latitude = Float()
    longitude = Float()
    estimated_time = Integer(min_value=0)  # minutes
    courier_id = String(max_length=64)
    courier_name = String(max_length=255)
    courier_phone = String(max_length=32)
    instructions = Text()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    title = String(required=True, max_length=255)
    slug = String(max_length=255)
    price = Float(required=True, min_value=0.0)
    qty = Integer(required=True, min_value=1)
    color = String(max_length=50)
    size = String(max_length=50)
    image = String(max_length=1000)


@storefront.entity(part_of="Order")
class StatusChange:
    """One reached status in the order's history."""

    status = String(choices=OrderStatus, required=True)
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    user_id = Identifier(required=True)
    items = HasMany(OrderItem)
    totals = ValueObject(OrderTotals)
    address = ValueObject(ShippingAddress)
    delivery = ValueObject(DeliveryInfo)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH.value)
    payment_intent_id = String(max_length=64)
    paid_at = DateTime()
    notes = Text()
    status_changes = HasMany(StatusChange)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def totals_must_balance(self):
        if self.totals is None or not self.items:
            return

        expected_total = self.totals.subtotal + (self.totals.shipping or 0.0) + (self.totals.tax or 0.0)
        if abs(expected_total - self.totals.total) > AMOUNT_TOLERANCE:
            raise ValidationError({"totals": ["Total must equal subtotal + shipping + tax"]})

        items_subtotal = sum(item.price * item.qty for item in self.items)
        if abs(items_subtotal - self.totals.subtotal) > AMOUNT_TOLERANCE:
            raise ValidationError({"totals": ["Subtotal does not match order items"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, user_id, items_data, totals, address, delivery=None, payment_method=None, notes=None):
        """Create a new pending order from checkout data.

        Args:
            user_id: The account placing the order.
            items_data: List of dicts with product_id, title, slug, price, qty,
                        and optional color, size, image.
            totals: Dict with subtotal, shipping, tax, total.
            address: Dict with full_name, phone, country, city, street, zip.
            delivery: Optional dict with address, latitude, longitude,
                      estimated_time, instructions.
        """
        if not items_data or not totals or not address:
            raise ValidationError({"order": ["items, totals, address required"]})

        for item in items_data:
            if int(item.get("qty") or 0) < 1:
                raise ValidationError({"items": ["Item quantity must be at least 1"]})

        now = datetime.now(UTC)
        delivery = delivery or {}

        order = cls(
            user_id=user_id,
            totals=OrderTotals(
                subtotal=totals.get("subtotal"),
                shipping=totals.get("shipping") or 0.0,
                tax=totals.get("tax") or 0.0,
                total=totals.get("total"),
            ),
            address=ShippingAddress(**address),
            delivery=DeliveryInfo(
                address=delivery.get("address"),
                latitude=delivery.get("latitude"),
                longitude=delivery.get("longitude"),
                estimated_time=delivery.get("estimated_time"),
                instructions=delivery.get("instructions"),
            ),
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=payment_method or PaymentMethod.CASH.value,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

        with atomic_change(order):
            for item in items_data:
                order.add_items(OrderItem(**item))
            order.add_status_changes(StatusChange(status=OrderStatus.PENDING.value, changed_at=now))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id),
                item_count=len(items_data),
                total=order.totals.total,
                payment_method=order.payment_method,
                placed_at=now,
            )
        )
        return order

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in _TERMINAL_STATES

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus):
        current = OrderStatus(self.status)
        if current in _TERMINAL_STATES:
            raise ValidationError({"status": [f"Cannot change status of a {current.value} order"]})
        if target_status == OrderStatus.CANCELLED:
            return
        if stage_rank(target_status) <= stage_rank(current):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def transition_to(self, new_status):
        """Move the order to ``new_status``.

        Raises ValidationError, leaving the order untouched, when the value is
        not a known status or the move is not allowed from the current one.
        """
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError({"status": ["Invalid status"]}) from None

        self._assert_can_transition(target)

        previous = self.status
        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = target.value
            self.add_status_changes(StatusChange(status=target.value, changed_at=now))
            self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                changed_at=now,
            )
        )

    def status_reached_at(self, status: OrderStatus):
        """Timestamp at which ``status`` was first reached, if ever."""
        reached = [change.changed_at for change in self.status_changes if change.status == status.value]
        return min(reached) if reached else None

    def stages_reached(self) -> list[OrderStatus]:
        """Lifecycle stages recorded in the status history, in lifecycle order.

        Stages jumped over by a forward skip are not included. ``pending`` is
        always present.
        """
        recorded = {change.status for change in self.status_changes}
        recorded.add(OrderStatus.PENDING.value)
        return [stage for stage in LIFECYCLE if stage.value in recorded]

    # -------------------------------------------------------------------
    # Courier
    # -------------------------------------------------------------------
    def assign_courier(self, courier_id, courier_name, courier_phone, estimated_time=None):
        if self.is_terminal:
            raise ValidationError({"status": [f"Cannot assign a courier to a {self.status} order"]})

        current = self.delivery or DeliveryInfo()
        self.delivery = DeliveryInfo(
            address=current.address,
            latitude=current.latitude,
            longitude=current.longitude,
            instructions=current.instructions,
            estimated_time=estimated_time if estimated_time is not None else current.estimated_time,
            courier_id=str(courier_id),
            courier_name=courier_name,
            courier_phone=courier_phone,
        )
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CourierAssigned(
                order_id=str(self.id),
                courier_id=str(courier_id),
                courier_name=courier_name,
                courier_phone=courier_phone,
                estimated_time=self.delivery.estimated_time,
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment_intent(self, provider, intent_id, amount=None) -> str:
        """Attach a payment intent and return the intent id in effect.

        A still-pending intent for the same provider is reused rather than
        replaced, so retried checkout calls do not orphan intents.
        """
        if self.payment_status == PaymentStatus.PAID.value:
            raise ValidationError({"payment": ["Order is already paid"]})

        if (
            self.payment_intent_id
            and self.payment_method == provider
            and self.payment_status == PaymentStatus.PENDING.value
        ):
            return self.payment_intent_id

        self.payment_method = provider
        self.payment_status = PaymentStatus.PENDING.value
        self.payment_intent_id = intent_id
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentIntentCreated(
                order_id=str(self.id),
                provider=provider,
                intent_id=intent_id,
                amount=amount,
            )
        )
        return intent_id

    def settle_payment(self, intent_id, amount=None, reconcile=False) -> bool:
        """Mark the order paid. Returns False when it already was.

        With ``reconcile`` set, a reported amount that differs from the order
        total is rejected.
        """
        if self.payment_status == PaymentStatus.PAID.value:
            return False

        if reconcile and amount is not None and abs(float(amount) - self.totals.total) > AMOUNT_TOLERANCE:
            raise ValidationError({"amount": ["Paid amount does not match order total"]})

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        self.payment_intent_id = intent_id
        self.paid_at = now
        self.updated_at = now

        self.raise_(
            PaymentSettled(
                order_id=str(self.id),
                intent_id=intent_id,
                provider=self.payment_method,
                amount=amount,
                paid_at=now,
            )
        )
        return True

    def record_payment_failure(self, intent_id, reason=None) -> bool:
        """Mark the pending payment failed. A paid order is never downgraded."""
        if self.payment_status != PaymentStatus.PENDING.value:
            return False

        self.payment_status = PaymentStatus.FAILED.value
        self.updated_at = datetime.now(UTC)

        self.raise_(PaymentFailed(order_id=str(self.id), intent_id=intent_id, reason=reason))
        return True
