"""FastAPI routes for back-office staff: orders, couriers, accounts, and the audit trail."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from protean.utils.globals import current_domain

from storefront.access.dependencies import Principal, ensure_permission, require_auth, require_permission
from storefront.api.schemas import (
    AssignCourierRequest,
    AuditLogListResponse,
    AuditLogResponse,
    ChangeRoleRequest,
    CreateUserRequest,
    DashboardStatsResponse,
    MessageResponse,
    OrderResponse,
    PaginatedOrdersResponse,
    PaginationSchema,
    UpdateUserRequest,
    UserActivityResponse,
    UserListResponse,
    UserResponse,
    UserStatusResponse,
)
from storefront.audit.capture import audited, set_audit_action
from storefront.audit.entry import AuditAction, AuditLogEntry, AuditResource
from storefront.errors import InvalidRequestError
from storefront.identity.management import ChangeUserRole, CreateUser, DeleteUser, ToggleUserStatus, UpdateUser
from storefront.identity.repository import load_user
from storefront.identity.security import hash_password
from storefront.identity.user import User, normalize_role
from storefront.order.courier import AssignCourier
from storefront.order.order import Order
from storefront.order.repository import load_order

router = APIRouter(prefix="/admin", tags=["admin"])


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------
@router.get("/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(
    principal: Principal = Depends(require_permission("analytics", "view")),
) -> DashboardStatsResponse:
    orders = current_domain.repository_for(Order)
    recent, total_orders = orders.search(page=1, limit=5)
    return DashboardStatsResponse(
        total_users=current_domain.repository_for(User).count(),
        total_orders=total_orders,
        total_revenue=orders.delivered_revenue(),
        orders_by_status=orders.counts_by_status(),
        recent_orders=[OrderResponse.from_order(order) for order in recent],
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
@router.get("/orders", response_model=PaginatedOrdersResponse)
async def list_orders(
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    principal: Principal = Depends(require_permission("orders", "list")),
) -> PaginatedOrdersResponse:
    orders, total = current_domain.repository_for(Order).search(status=status, page=page, limit=limit)
    return PaginatedOrdersResponse(
        orders=[OrderResponse.from_order(order) for order in orders],
        pagination=PaginationSchema.build(page, limit, total),
    )


@router.put(
    "/orders/{order_id}/courier",
    response_model=OrderResponse,
    dependencies=[Depends(audited(AuditResource.DELIVERY, AuditAction.ASSIGN))],
)
async def assign_courier(
    order_id: str,
    body: AssignCourierRequest,
    principal: Principal = Depends(require_permission("delivery", "assign")),
) -> OrderResponse:
    current_domain.process(
        AssignCourier(
            order_id=order_id,
            courier_id=body.courier_id,
            courier_name=body.courier_name,
            courier_phone=body.courier_phone,
            estimated_time=body.estimated_time,
        ),
        asynchronous=False,
    )
    return OrderResponse.from_order(load_order(order_id))


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: str | None = None,
    is_active: bool | None = Query(default=None, alias="isActive"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    principal: Principal = Depends(require_permission("users", "list")),
) -> UserListResponse:
    users, total = current_domain.repository_for(User).search(
        role=normalize_role(role).value if role else None,
        is_active=is_active,
        page=page,
        limit=limit,
    )
    return UserListResponse(
        users=[UserResponse.from_user(user) for user in users],
        pagination=PaginationSchema.build(page, limit, total),
    )


@router.post(
    "/users",
    status_code=201,
    response_model=UserResponse,
    dependencies=[Depends(audited(AuditResource.USER, AuditAction.CREATE))],
)
async def create_user(
    request: Request,
    body: CreateUserRequest,
    principal: Principal = Depends(require_permission("users", "create")),
) -> UserResponse:
    password_hash = await run_in_threadpool(hash_password, body.password)
    user_id = current_domain.process(
        CreateUser(
            actor_id=principal.id,
            actor_role=principal.role,
            name=body.name,
            phone=body.phone,
            password_hash=password_hash,
            role=body.role,
            is_active=body.is_active,
        ),
        asynchronous=False,
    )
    set_audit_action(request, AuditAction.CREATE, resource_id=user_id)
    return UserResponse.from_user(load_user(user_id))


@router.put(
    "/users/{user_id}",
    response_model=UserResponse,
    dependencies=[Depends(audited(AuditResource.USER, AuditAction.UPDATE))],
)
async def update_user(
    user_id: str,
    body: UpdateUserRequest,
    principal: Principal = Depends(require_permission("users", "update")),
) -> UserResponse:
    password_hash = await run_in_threadpool(hash_password, body.password) if body.password else None
    current_domain.process(
        UpdateUser(
            actor_id=principal.id,
            actor_role=principal.role,
            user_id=user_id,
            name=body.name,
            phone=body.phone,
            password_hash=password_hash,
            role=body.role,
            is_active=body.is_active,
        ),
        asynchronous=False,
    )
    return UserResponse.from_user(load_user(user_id))


@router.delete(
    "/users/{user_id}",
    response_model=MessageResponse,
    dependencies=[Depends(audited(AuditResource.USER, AuditAction.DELETE))],
)
async def delete_user(
    user_id: str,
    principal: Principal = Depends(require_auth),
) -> MessageResponse:
    # Self-deletion is a 400 for every role, so it is checked before permissions.
    if user_id == principal.id:
        raise InvalidRequestError("Cannot delete your own account")
    ensure_permission(principal, "users", "delete")

    current_domain.process(
        DeleteUser(actor_id=principal.id, actor_role=principal.role, user_id=user_id),
        asynchronous=False,
    )
    return MessageResponse(message="User deleted")


@router.patch(
    "/users/{user_id}/toggle-status",
    response_model=UserStatusResponse,
    dependencies=[Depends(audited(AuditResource.USER, AuditAction.UPDATE))],
)
async def toggle_user_status(
    request: Request,
    user_id: str,
    principal: Principal = Depends(require_permission("users", "update")),
) -> UserStatusResponse:
    is_active = current_domain.process(
        ToggleUserStatus(actor_id=principal.id, actor_role=principal.role, user_id=user_id),
        asynchronous=False,
    )
    set_audit_action(request, AuditAction.ACTIVATE if is_active else AuditAction.DEACTIVATE, newStatus=is_active)
    return UserStatusResponse(id=user_id, is_active=is_active)


@router.patch(
    "/users/{user_id}/role",
    response_model=UserResponse,
    dependencies=[Depends(audited(AuditResource.USER, AuditAction.CHANGE_ROLE))],
)
async def change_user_role(
    request: Request,
    user_id: str,
    body: ChangeRoleRequest,
    principal: Principal = Depends(require_permission("users", "update")),
) -> UserResponse:
    old_role = current_domain.process(
        ChangeUserRole(actor_id=principal.id, actor_role=principal.role, user_id=user_id, role=body.role),
        asynchronous=False,
    )
    user = load_user(user_id)
    set_audit_action(request, AuditAction.CHANGE_ROLE, oldRole=old_role, newRole=user.role)
    return UserResponse.from_user(user)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------
@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    resource: str | None = None,
    action: str | None = None,
    user_role: str | None = Query(default=None, alias="userRole"),
    user_id: str | None = Query(default=None, alias="userId"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    principal: Principal = Depends(require_permission("system", "logs")),
) -> AuditLogListResponse:
    entries, total = current_domain.repository_for(AuditLogEntry).search(
        page=page,
        limit=limit,
        resource=resource,
        action=action,
        user_role=user_role,
        user_id=user_id,
        start_date=_as_utc(start_date),
        end_date=_as_utc(end_date),
    )
    return AuditLogListResponse(
        data=[AuditLogResponse.from_entry(entry) for entry in entries],
        pagination=PaginationSchema.build(page, limit, total),
    )


@router.get("/audit-logs/stats")
async def audit_stats(
    days: int = Query(default=7, ge=1, le=365),
    principal: Principal = Depends(require_permission("system", "logs")),
) -> dict:
    return {"success": True, "data": current_domain.repository_for(AuditLogEntry).stats(days=days)}


@router.get("/users/{user_id}/activity", response_model=UserActivityResponse)
async def user_activity(
    user_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    principal: Principal = Depends(require_permission("system", "logs")),
) -> UserActivityResponse:
    entries = current_domain.repository_for(AuditLogEntry).activity_for(user_id, limit=limit)
    return UserActivityResponse(data=[AuditLogResponse.from_entry(entry) for entry in entries])
