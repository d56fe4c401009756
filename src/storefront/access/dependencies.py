"""FastAPI dependencies for authentication and permission checks.

``require_auth`` re-loads the account on every request so that a
deactivated or deleted account is locked out even with a valid token.
The resolved principal is also stored on ``request.state`` for the
audit middleware.
"""

from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.access.permissions import is_allowed
from storefront.errors import AuthError, ForbiddenError
from storefront.identity.authentication import resolve_token
from storefront.identity.user import Role
from storefront.utils.logging import add_context

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    id: str
    name: str
    phone: str
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.ADMIN.value, Role.OPERATOR.value)


async def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token required")

    user = resolve_token(credentials.credentials)
    principal = Principal(id=str(user.id), name=user.name, phone=user.phone, role=user.role)
    request.state.principal = principal
    add_context(user_id=principal.id)
    return principal


def ensure_permission(principal: Principal, resource: str, action: str) -> None:
    if not is_allowed(principal.role, resource, action):
        raise ForbiddenError(
            f"Access denied: {action} permission required for {resource}",
            user_role=principal.role,
            required_permission=f"{resource}:{action}",
        )


def require_permission(resource: str, action: str):
    """Dependency factory: authenticated caller must hold ``resource:action``."""

    async def _checker(principal: Principal = Depends(require_auth)) -> Principal:
        ensure_permission(principal, resource, action)
        return principal

    return _checker
