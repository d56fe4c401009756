"""Storefront API routers."""

from storefront.api.routes.admin import router as admin_router
from storefront.api.routes.auth import router as auth_router
from storefront.api.routes.delivery import router as delivery_router
from storefront.api.routes.orders import router as order_router
from storefront.api.routes.payments import router as payment_router

__all__ = ["admin_router", "auth_router", "delivery_router", "order_router", "payment_router"]
