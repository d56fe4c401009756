"""FastAPI routes for payment intents, provider webhooks, and return pages."""

from fastapi import APIRouter, Depends, Header, Query, Request

from storefront.access.dependencies import Principal, require_permission
from storefront.api.schemas import (
    CreateIntentRequest,
    IntentResponse,
    PaymentReturnResponse,
    WebhookAckResponse,
)
from storefront.audit.capture import audited
from storefront.audit.entry import AuditAction, AuditResource
from storefront.errors import NotFoundError
from storefront.identity.user import Role
from storefront.order.repository import load_order
from storefront.payment.intents import create_intent
from storefront.payment.webhook import handle_webhook

router = APIRouter(prefix="/payments", tags=["payments"])


def _return_page(outcome: str, order_id: str | None, intent_id: str | None) -> PaymentReturnResponse:
    payment_status = None
    if order_id:
        try:
            payment_status = load_order(order_id).payment_status
        except NotFoundError:
            payment_status = None
    return PaymentReturnResponse(
        ok=outcome == "success",
        outcome=outcome,
        order_id=order_id,
        intent_id=intent_id,
        payment_status=payment_status,
    )


@router.get("/return/success", response_model=PaymentReturnResponse)
async def return_success(
    order_id: str | None = Query(default=None, alias="orderId"),
    intent_id: str | None = Query(default=None, alias="intentId"),
) -> PaymentReturnResponse:
    """Landing endpoint after the provider redirects back. Settlement itself only happens via webhook."""
    return _return_page("success", order_id, intent_id)


@router.get("/return/fail", response_model=PaymentReturnResponse)
async def return_fail(
    order_id: str | None = Query(default=None, alias="orderId"),
    intent_id: str | None = Query(default=None, alias="intentId"),
) -> PaymentReturnResponse:
    return _return_page("fail", order_id, intent_id)


@router.post(
    "/{provider}/create",
    response_model=IntentResponse,
    dependencies=[Depends(audited(AuditResource.PAYMENT, AuditAction.CREATE))],
)
async def create_payment_intent(
    provider: str,
    body: CreateIntentRequest,
    principal: Principal = Depends(require_permission("payments", "create")),
) -> IntentResponse:
    result = create_intent(
        provider,
        body.order_id,
        body.amount,
        requested_by=principal.id if principal.role == Role.USER.value else None,
    )
    return IntentResponse(intent_id=result.intent_id, redirect_url=result.redirect_url)


@router.post("/{provider}/webhook", response_model=WebhookAckResponse)
async def provider_webhook(
    provider: str,
    request: Request,
    x_signature: str | None = Header(default=None),
) -> WebhookAckResponse:
    """Settle an order from a provider notification signed over the raw body."""
    raw_body = await request.body()
    handle_webhook(provider, raw_body, x_signature)
    return WebhookAckResponse(ok=True)
