"""Domain events for the User aggregate."""

from protean.fields import Boolean, DateTime, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="User")
class UserRegistered:
    __version__ = 1

    user_id: Identifier(required=True)
    name: String(required=True)
    phone: String(required=True)
    role: String(required=True)
    created_by: Identifier()
    registered_at: DateTime(required=True)


@storefront.event(part_of="User")
class UserProfileUpdated:
    __version__ = 1

    user_id: Identifier(required=True)
    name: String()
    phone: String()


@storefront.event(part_of="User")
class UserRoleChanged:
    __version__ = 1

    user_id: Identifier(required=True)
    old_role: String(required=True)
    new_role: String(required=True)


@storefront.event(part_of="User")
class UserActivationChanged:
    """Account was activated or deactivated. Inactive accounts fail authentication."""

    __version__ = 1

    user_id: Identifier(required=True)
    is_active: Boolean(required=True)
