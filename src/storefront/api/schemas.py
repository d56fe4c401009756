"""Pydantic request/response schemas for the storefront API.

These are the external contracts (camelCase on the wire), kept separate
from the internal Protean commands and aggregates.
"""

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartItemSchema(CamelModel):
    product_id: str
    title: str
    slug: str | None = None
    price: float = Field(ge=0)
    qty: int = Field(ge=1)
    color: str | None = None
    size: str | None = None
    image: str | None = None


class TotalsSchema(CamelModel):
    subtotal: float = Field(ge=0)
    shipping: float = Field(default=0.0, ge=0)
    tax: float = Field(default=0.0, ge=0)
    total: float = Field(ge=0)


class AddressSchema(CamelModel):
    full_name: str
    phone: str
    country: str | None = None
    city: str
    street: str
    zip: str | None = None


class CoordinatesSchema(CamelModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class DeliverySchema(CamelModel):
    address: str | None = None
    coordinates: CoordinatesSchema | None = None
    estimated_time: int | None = Field(default=None, ge=0)
    instructions: str | None = None


class PaginationSchema(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationSchema":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(CamelModel):
    items: list[CartItemSchema] | None = None
    totals: TotalsSchema | None = None
    address: AddressSchema | None = None
    delivery: DeliverySchema | None = None
    payment_method: str | None = None
    notes: str | None = None


class UpdateStatusRequest(CamelModel):
    status: str | None = None


class AssignCourierRequest(CamelModel):
    courier_id: str
    courier_name: str
    courier_phone: str
    estimated_time: int | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Order Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(CamelModel):
    product_id: str
    title: str
    slug: str | None = None
    price: float
    qty: int
    color: str | None = None
    size: str | None = None
    image: str | None = None


class DeliveryResponse(CamelModel):
    address: str | None = None
    coordinates: CoordinatesSchema | None = None
    estimated_time: int | None = None
    courier_id: str | None = None
    courier_name: str | None = None
    courier_phone: str | None = None
    instructions: str | None = None


class StatusChangeResponse(CamelModel):
    status: str
    changed_at: datetime


class OrderResponse(CamelModel):
    id: str
    user_id: str
    items: list[OrderItemResponse]
    totals: TotalsSchema
    status: str
    address: AddressSchema
    delivery: DeliveryResponse | None = None
    payment_status: str
    payment_method: str
    payment_intent_id: str | None = None
    paid_at: datetime | None = None
    notes: str | None = None
    status_changes: list[StatusChangeResponse] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        delivery = None
        if order.delivery is not None:
            coordinates = None
            if order.delivery.latitude is not None and order.delivery.longitude is not None:
                coordinates = CoordinatesSchema(lat=order.delivery.latitude, lng=order.delivery.longitude)
            delivery = DeliveryResponse(
                address=order.delivery.address,
                coordinates=coordinates,
                estimated_time=order.delivery.estimated_time,
                courier_id=order.delivery.courier_id,
                courier_name=order.delivery.courier_name,
                courier_phone=order.delivery.courier_phone,
                instructions=order.delivery.instructions,
            )

        return cls(
            id=str(order.id),
            user_id=str(order.user_id),
            items=[
                OrderItemResponse(
                    product_id=str(item.product_id),
                    title=item.title,
                    slug=item.slug,
                    price=item.price,
                    qty=item.qty,
                    color=item.color,
                    size=item.size,
                    image=item.image,
                )
                for item in order.items
            ],
            totals=TotalsSchema(
                subtotal=order.totals.subtotal,
                shipping=order.totals.shipping or 0.0,
                tax=order.totals.tax or 0.0,
                total=order.totals.total,
            ),
            status=order.status,
            address=AddressSchema(
                full_name=order.address.full_name,
                phone=order.address.phone,
                country=order.address.country,
                city=order.address.city,
                street=order.address.street,
                zip=order.address.zip,
            ),
            delivery=delivery,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            payment_intent_id=order.payment_intent_id,
            paid_at=order.paid_at,
            notes=order.notes,
            status_changes=[
                StatusChangeResponse(status=change.status, changed_at=change.changed_at)
                for change in sorted(order.status_changes, key=lambda change: change.changed_at)
            ],
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]


class PaginatedOrdersResponse(BaseModel):
    orders: list[OrderResponse]
    pagination: PaginationSchema


# ---------------------------------------------------------------------------
# Payment Schemas
# ---------------------------------------------------------------------------
class CreateIntentRequest(CamelModel):
    order_id: str | None = None
    amount: float | None = None


class IntentResponse(CamelModel):
    intent_id: str
    redirect_url: str


class WebhookAckResponse(BaseModel):
    ok: bool = True


class PaymentReturnResponse(CamelModel):
    ok: bool
    outcome: str
    order_id: str | None = None
    intent_id: str | None = None
    payment_status: str | None = None


# ---------------------------------------------------------------------------
# Auth & User Schemas
# ---------------------------------------------------------------------------
class SignupRequest(CamelModel):
    name: str | None = None
    phone: str | None = None
    password: str | None = None


class LoginRequest(CamelModel):
    phone: str | None = None
    password: str | None = None


class UserResponse(CamelModel):
    id: str
    name: str
    phone: str
    role: str
    is_active: bool
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=str(user.id),
            name=user.name,
            phone=user.phone,
            role=user.role,
            is_active=bool(user.is_active),
            created_at=user.created_at,
        )


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class MeResponse(BaseModel):
    user: UserResponse


class CreateUserRequest(CamelModel):
    name: str
    phone: str
    password: str = Field(min_length=1)
    role: str = "user"
    is_active: bool = True


class UpdateUserRequest(CamelModel):
    name: str | None = None
    phone: str | None = None
    password: str | None = None
    role: str | None = None
    is_active: bool | None = None


class ChangeRoleRequest(CamelModel):
    role: str


class UserListResponse(BaseModel):
    users: list[UserResponse]
    pagination: PaginationSchema


class MessageResponse(BaseModel):
    message: str


class UserStatusResponse(CamelModel):
    id: str
    is_active: bool


# ---------------------------------------------------------------------------
# Audit Schemas
# ---------------------------------------------------------------------------
class AuditLogResponse(CamelModel):
    id: str
    user_id: str
    user_name: str
    user_role: str
    action: str
    resource: str
    resource_id: str | None = None
    details: dict = {}
    ip_address: str | None = None
    user_agent: str | None = None
    timestamp: datetime
    success: bool
    error_message: str | None = None

    @classmethod
    def from_entry(cls, entry) -> "AuditLogResponse":
        return cls(
            id=str(entry.id),
            user_id=str(entry.user_id),
            user_name=entry.user_name,
            user_role=entry.user_role,
            action=entry.action,
            resource=entry.resource,
            resource_id=entry.resource_id,
            details=entry.details_dict,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            timestamp=entry.timestamp,
            success=bool(entry.success),
            error_message=entry.error_message,
        )


class AuditLogListResponse(BaseModel):
    success: bool = True
    data: list[AuditLogResponse]
    pagination: PaginationSchema


class UserActivityResponse(BaseModel):
    success: bool = True
    data: list[AuditLogResponse]


# ---------------------------------------------------------------------------
# Dashboard Schemas
# ---------------------------------------------------------------------------
class DashboardStatsResponse(CamelModel):
    total_users: int
    total_orders: int
    total_revenue: float
    orders_by_status: dict[str, int]
    recent_orders: list[OrderResponse]
