"""User aggregate: storefront accounts and their roles.

Roles are ``admin``, ``operator`` and ``user``. The legacy names
``moderator`` and ``cashier`` are accepted on input and stored as
``operator``.
"""

import re
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String

from storefront.domain import storefront
from storefront.identity.events import (
    UserActivationChanged,
    UserProfileUpdated,
    UserRegistered,
    UserRoleChanged,
)

PHONE_PATTERN = re.compile(r"^\+?998[0-9]{9}$")

# Sentinel for distinguishing "not provided" from None in partial updates
_UNSET = object()


class Role(Enum):
    ADMIN = "admin"
    OPERATOR = "operator"
    USER = "user"


_ROLE_ALIASES = {
    "moderator": Role.OPERATOR,
    "cashier": Role.OPERATOR,
}


def normalize_role(value) -> Role:
    """Resolve a role name, including legacy aliases. Raises ValidationError."""
    if isinstance(value, Role):
        return value
    name = str(value or "").strip().lower()
    if name in _ROLE_ALIASES:
        return _ROLE_ALIASES[name]
    try:
        return Role(name)
    except ValueError:
        raise ValidationError({"role": ["Invalid role. Must be one of admin, operator, user"]}) from None


def validate_phone(phone: str) -> str:
    phone = (phone or "").strip()
    if not PHONE_PATTERN.match(phone):
        raise ValidationError({"phone": ["Phone must be in +998XXXXXXXXX format"]})
    return phone


@storefront.aggregate
class User:
    name: String(required=True, max_length=100)
    phone: String(required=True, max_length=20, unique=True)
    password_hash: String(required=True, max_length=255)
    role: String(choices=Role, default=Role.USER.value)
    is_active: Boolean(default=True)
    created_by: Identifier()
    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def register(cls, name, phone, password_hash, role=Role.USER.value, created_by=None):
        name = (name or "").strip()
        if not name:
            raise ValidationError({"name": ["Name is required"]})

        role = normalize_role(role)
        now = datetime.now(UTC)
        user = cls(
            name=name,
            phone=validate_phone(phone),
            password_hash=password_hash,
            role=role.value,
            is_active=True,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        user.raise_(
            UserRegistered(
                user_id=user.id,
                name=user.name,
                phone=user.phone,
                role=user.role,
                created_by=created_by,
                registered_at=now,
            )
        )
        return user

    def update_profile(self, name=_UNSET, phone=_UNSET):
        if name is not _UNSET:
            name = (name or "").strip()
            if not name:
                raise ValidationError({"name": ["Name is required"]})
            self.name = name
        if phone is not _UNSET:
            self.phone = validate_phone(phone)

        self.updated_at = datetime.now(UTC)
        self.raise_(UserProfileUpdated(user_id=self.id, name=self.name, phone=self.phone))

    def set_password_hash(self, password_hash):
        self.password_hash = password_hash
        self.updated_at = datetime.now(UTC)

    def change_role(self, role):
        new_role = normalize_role(role)
        old_role = self.role
        if new_role.value == old_role:
            return False

        self.role = new_role.value
        self.updated_at = datetime.now(UTC)
        self.raise_(UserRoleChanged(user_id=self.id, old_role=old_role, new_role=new_role.value))
        return True

    def set_active(self, is_active: bool):
        if bool(is_active) == bool(self.is_active):
            return False

        self.is_active = bool(is_active)
        self.updated_at = datetime.now(UTC)
        self.raise_(UserActivationChanged(user_id=self.id, is_active=self.is_active))
        return True
