"""FastAPI routes for customer and staff order operations."""

import json

from fastapi import APIRouter, Depends, Query, Request
from protean.utils.globals import current_domain

from storefront.access.dependencies import Principal, require_permission
from storefront.api.schemas import OrderListResponse, OrderResponse, PlaceOrderRequest, UpdateStatusRequest
from storefront.audit.capture import audited, set_audit_action
from storefront.audit.entry import AuditAction, AuditResource
from storefront.errors import InvalidRequestError
from storefront.order.order import Order, OrderStatus
from storefront.order.placement import PlaceOrder
from storefront.order.repository import load_order
from storefront.order.status import ChangeOrderStatus

router = APIRouter(prefix="/orders", tags=["orders"])

_STATUS_ACTIONS = {
    OrderStatus.CANCELLED.value: AuditAction.ORDER_CANCEL,
    OrderStatus.DELIVERED.value: AuditAction.ORDER_DELIVER,
}


def _delivery_payload(body: PlaceOrderRequest) -> str | None:
    if body.delivery is None:
        return None
    coordinates = body.delivery.coordinates
    return json.dumps(
        {
            "address": body.delivery.address,
            "latitude": coordinates.lat if coordinates else None,
            "longitude": coordinates.lng if coordinates else None,
            "estimated_time": body.delivery.estimated_time,
            "instructions": body.delivery.instructions,
        }
    )


@router.post(
    "",
    status_code=201,
    response_model=OrderResponse,
    dependencies=[Depends(audited(AuditResource.ORDER, AuditAction.ORDER_CREATE))],
)
async def place_order(
    request: Request,
    body: PlaceOrderRequest,
    principal: Principal = Depends(require_permission("orders", "create")),
) -> OrderResponse:
    if not body.items or body.totals is None or body.address is None:
        raise InvalidRequestError("items, totals, address required")

    command = PlaceOrder(
        user_id=principal.id,
        items=json.dumps([item.model_dump() for item in body.items]),
        totals=json.dumps(body.totals.model_dump()),
        address=json.dumps(body.address.model_dump()),
        delivery=_delivery_payload(body),
        payment_method=body.payment_method,
        notes=body.notes,
    )
    order_id = current_domain.process(command, asynchronous=False)
    set_audit_action(request, AuditAction.ORDER_CREATE, resource_id=order_id)
    return OrderResponse.from_order(load_order(order_id))


@router.get("/my", response_model=OrderListResponse)
async def my_orders(principal: Principal = Depends(require_permission("orders", "read_own"))) -> OrderListResponse:
    orders = current_domain.repository_for(Order).for_user(principal.id)
    return OrderListResponse(orders=[OrderResponse.from_order(order) for order in orders])


@router.get("", response_model=OrderListResponse)
async def list_orders(
    status: str | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    principal: Principal = Depends(require_permission("orders", "list")),
) -> OrderListResponse:
    orders, _ = current_domain.repository_for(Order).search(status=status, page=1, limit=limit)
    return OrderListResponse(orders=[OrderResponse.from_order(order) for order in orders])


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    dependencies=[Depends(audited(AuditResource.ORDER, AuditAction.ORDER_UPDATE))],
)
async def change_status(
    request: Request,
    order_id: str,
    body: UpdateStatusRequest,
    principal: Principal = Depends(require_permission("orders", "update")),
) -> OrderResponse:
    set_audit_action(request, _STATUS_ACTIONS.get(body.status, AuditAction.ORDER_UPDATE))
    if not body.status:
        raise InvalidRequestError("Invalid status")

    current_domain.process(ChangeOrderStatus(order_id=order_id, status=body.status), asynchronous=False)
    return OrderResponse.from_order(load_order(order_id))
