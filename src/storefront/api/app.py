"""Storefront FastAPI application factory.

The domain is initialized by ``create_app`` rather than at import time,
since ``Domain.init()`` imports every module under the package, this one
included.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.errors import register_error_handlers
from storefront.audit.capture import audit_middleware
from storefront.audit.recorder import AuditTrailRecorder
from storefront.config import get_settings
from storefront.domain import storefront
from storefront.utils.logging import clear_context, get_logger

logger = get_logger(__name__)


def create_app(init_domain: bool = True) -> FastAPI:
    settings = get_settings()
    settings.check()

    if init_domain:
        storefront.init()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        recorder = AuditTrailRecorder(storefront, maxsize=settings.audit_queue_size)
        recorder.start()
        app.state.audit_recorder = recorder
        logger.info("storefront_started", environment=settings.environment)
        try:
            yield
        finally:
            await recorder.stop()

    app = FastAPI(
        title="Storefront API",
        description="Order lifecycle, payment settlement, access control, and audit trail",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.middleware("http")(audit_middleware)

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the storefront domain context for each request."""
        with storefront.domain_context():
            try:
                return await call_next(request)
            finally:
                clear_context()

    register_error_handlers(app)

    from storefront.api.routes import admin_router, auth_router, delivery_router, order_router, payment_router

    app.include_router(auth_router)
    app.include_router(order_router)
    app.include_router(payment_router)
    app.include_router(delivery_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health():
        recorder = getattr(app.state, "audit_recorder", None)
        return {
            "status": "ok",
            "domain": storefront.name,
            "auditRecorder": "running" if recorder is not None and recorder.running else "stopped",
        }

    return app
