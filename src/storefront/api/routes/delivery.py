"""FastAPI routes for delivery tracking."""

from fastapi import APIRouter, Depends

from storefront.access.dependencies import Principal, require_permission
from storefront.delivery.tracker import build_tracking
from storefront.errors import ForbiddenError
from storefront.order.repository import load_order

router = APIRouter(prefix="/delivery", tags=["delivery"])


@router.get("/track/{order_id}")
async def track_order(
    order_id: str,
    principal: Principal = Depends(require_permission("delivery", "track")),
) -> dict:
    order = load_order(order_id)
    if not principal.is_staff and str(order.user_id) != principal.id:
        raise ForbiddenError(
            "Access denied: you can only track your own orders",
            user_role=principal.role,
            required_permission="delivery:track",
        )
    return build_tracking(order)
