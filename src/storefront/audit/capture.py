"""Capture of audited requests.

Routes opt in with ``Depends(audited(resource, action))``, listed before
their permission dependency so that denied attempts are captured too. The
dependency stashes what it can see of the request; the middleware adds
the outcome once the response exists and hands the record to the
recorder. Requests without an authenticated principal are not audited.
"""

import ipaddress
import json
import time
from dataclasses import dataclass, field

from fastapi import Request

from storefront.audit.entry import AuditAction, AuditResource
from storefront.audit.recorder import AuditRecord, sanitize_body
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

_RESOURCE_ID_PARAMS = ("id", "order_id", "user_id", "product_id")


@dataclass
class AuditContext:
    resource: str
    action: str
    resource_id: str | None = None
    body: object = None
    extra: dict = field(default_factory=dict)


def audited(resource: AuditResource, action: AuditAction):
    """Dependency factory marking a route as audited."""

    async def _capture(request: Request) -> AuditContext:
        body = None
        raw = await request.body()
        if raw:
            try:
                body = json.loads(raw)
            except ValueError:
                body = None

        resource_id = next(
            (str(request.path_params[name]) for name in _RESOURCE_ID_PARAMS if request.path_params.get(name)),
            None,
        )
        if resource_id is None and isinstance(body, dict) and body.get("id"):
            resource_id = str(body["id"])

        context = AuditContext(resource=resource.value, action=action.value, resource_id=resource_id, body=body)
        request.state.audit = context
        return context

    return _capture


def set_audit_action(request: Request, action: AuditAction, resource_id: str | None = None, **extra) -> None:
    """Refine the audited action once the handler knows what actually happened."""
    context = getattr(request.state, "audit", None)
    if context is None:
        return
    context.action = action.value
    if resource_id is not None:
        context.resource_id = str(resource_id)
    context.extra.update(extra)


def _client_ip(request: Request) -> str | None:
    """First hop of ``X-Forwarded-For`` when it is a real address, else the peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        candidate = forwarded.split(",")[0].strip()
        try:
            return str(ipaddress.ip_address(candidate))
        except ValueError:
            logger.debug("forwarded_ip_ignored", value=candidate[:64])
    return request.client.host if request.client else None


def build_record(request: Request, status_code: int, elapsed_ms: float) -> AuditRecord | None:
    context = getattr(request.state, "audit", None)
    principal = getattr(request.state, "principal", None)
    if context is None or principal is None:
        return None

    success = status_code < 400
    details = {
        "method": request.method,
        "url": request.url.path,
        "params": dict(request.path_params),
        "query": sanitize_body(dict(request.query_params)),
        "body": sanitize_body(context.body),
        "responseTime": round(elapsed_ms, 2),
        "statusCode": status_code,
        **context.extra,
    }
    error_message = None
    if not success:
        error_message = getattr(request.state, "error_message", None) or f"HTTP {status_code}"

    return AuditRecord(
        user_id=principal.id,
        user_name=principal.name,
        user_role=principal.role,
        action=context.action,
        resource=context.resource,
        resource_id=context.resource_id,
        details=details,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        success=success,
        error_message=error_message,
    )


async def audit_middleware(request: Request, call_next):
    """Submit one audit record per audited request, after the response is produced."""
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        request.state.error_message = str(exc) or type(exc).__name__
        _submit(request, 500, started)
        raise

    _submit(request, response.status_code, started)
    return response


def _submit(request: Request, status_code: int, started: float) -> None:
    record = build_record(request, status_code, (time.perf_counter() - started) * 1000)
    if record is None:
        return

    recorder = getattr(request.app.state, "audit_recorder", None)
    if recorder is None:
        logger.warning("audit_recorder_missing", action=record.action, resource=record.resource)
        return
    recorder.submit(record)
