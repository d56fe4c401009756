"""Role → resource → allowed actions.

The table is built once at import and exposed read-only. Ownership rules
(a ``user`` only sees their own orders) are checked by the endpoints that
need them, not here. ``orders:read_own`` covers the caller's own order
history; ``orders:read`` reaches any order.
"""

from types import MappingProxyType

from protean.exceptions import ValidationError

from storefront.identity.user import Role, normalize_role

_CRUD = ("create", "read", "update", "delete", "list")

_TABLE = {
    Role.ADMIN: {
        "users": _CRUD,
        "products": _CRUD,
        "categories": _CRUD,
        "orders": (*_CRUD, "read_own", "manage"),
        "comments": ("create", "read", "update", "delete", "moderate"),
        "payments": ("create", "read"),
        "analytics": ("view", "export"),
        "system": ("settings", "logs", "backup"),
        "delivery": ("manage", "assign", "track"),
    },
    Role.OPERATOR: {
        "users": ("create", "read", "update", "list"),
        "products": ("create", "read", "update", "list"),
        "categories": ("read", "list"),
        "orders": ("create", "read", "read_own", "update", "list", "manage"),
        "comments": ("read", "update", "delete", "moderate"),
        "payments": ("create", "read"),
        "analytics": ("view",),
        "delivery": ("manage", "assign", "track"),
    },
    Role.USER: {
        "users": (),
        "products": ("read", "list"),
        "categories": ("read", "list"),
        "orders": ("create", "read_own"),
        "comments": ("create", "read", "update"),
        "payments": ("create",),
        "analytics": (),
        "delivery": ("track",),
    },
}

PERMISSIONS = MappingProxyType(
    {
        role.value: MappingProxyType({resource: frozenset(actions) for resource, actions in resources.items()})
        for role, resources in _TABLE.items()
    }
)


def is_allowed(role, resource: str, action: str) -> bool:
    """True when ``role`` may perform ``action`` on ``resource``. Unknown roles get nothing."""
    try:
        role = normalize_role(role)
    except ValidationError:
        return False
    return action in PERMISSIONS[role.value].get(resource, frozenset())
