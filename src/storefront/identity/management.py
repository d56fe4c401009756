"""Account registration and administration: commands and handlers.

Passwords are hashed before a command is built; commands only ever carry
the hash.

Rules enforced here, on top of the permission table:
- nobody can delete or deactivate their own account, or change their own role
- only an admin can create, modify, or delete an admin or operator account
- only an admin can grant a role
"""

from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import ConflictError, ForbiddenError, InvalidRequestError
from storefront.identity.repository import load_user
from storefront.identity.user import _UNSET, Role, User, normalize_role, validate_phone
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _assert_phone_available(phone, exclude_id=None):
    existing = current_domain.repository_for(User).find_by_phone(phone)
    if existing is not None and str(existing.id) != str(exclude_id):
        raise ConflictError("User already exists with this phone number")


def _assert_can_manage(actor_role, target_role, action="update"):
    """Non-admins may only manage plain ``user`` accounts."""
    if actor_role == Role.ADMIN.value:
        return
    if normalize_role(target_role) != Role.USER:
        raise ForbiddenError(
            "Only admin can manage admin or operator accounts",
            user_role=actor_role,
            required_permission=f"users:{action}",
        )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@storefront.command(part_of="User")
class RegisterUser:
    """Self-service signup. Always produces a ``user`` account."""

    name: String(required=True, max_length=100)
    phone: String(required=True, max_length=20)
    password_hash: String(required=True, max_length=255)


@storefront.command(part_of="User")
class CreateUser:
    actor_id: Identifier(required=True)
    actor_role: String(required=True, max_length=20)
    name: String(required=True, max_length=100)
    phone: String(required=True, max_length=20)
    password_hash: String(required=True, max_length=255)
    role: String(max_length=20, default=Role.USER.value)
    is_active: Boolean(default=True)


@storefront.command(part_of="User")
class UpdateUser:
    actor_id: Identifier(required=True)
    actor_role: String(required=True, max_length=20)
    user_id: Identifier(required=True)
    name: String(max_length=100)
    phone: String(max_length=20)
    password_hash: String(max_length=255)
    role: String(max_length=20)
    is_active: Boolean()


@storefront.command(part_of="User")
class DeleteUser:
    actor_id: Identifier(required=True)
    actor_role: String(required=True, max_length=20)
    user_id: Identifier(required=True)


@storefront.command(part_of="User")
class ToggleUserStatus:
    actor_id: Identifier(required=True)
    actor_role: String(required=True, max_length=20)
    user_id: Identifier(required=True)


@storefront.command(part_of="User")
class ChangeUserRole:
    actor_id: Identifier(required=True)
    actor_role: String(required=True, max_length=20)
    user_id: Identifier(required=True)
    role: String(required=True, max_length=20)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------
@storefront.command_handler(part_of=User)
class UserManagementHandler:
    @handle(RegisterUser)
    def register(self, command):
        phone = validate_phone(command.phone)
        _assert_phone_available(phone)

        user = User.register(name=command.name, phone=phone, password_hash=command.password_hash)
        current_domain.repository_for(User).add(user)

        logger.info("user_registered", user_id=str(user.id), role=user.role)
        return str(user.id)

    @handle(CreateUser)
    def create(self, command):
        role = normalize_role(command.role or Role.USER.value)
        _assert_can_manage(command.actor_role, role.value, action="create")

        phone = validate_phone(command.phone)
        _assert_phone_available(phone)

        user = User.register(
            name=command.name,
            phone=phone,
            password_hash=command.password_hash,
            role=role.value,
            created_by=command.actor_id,
        )
        if command.is_active is False:
            user.set_active(False)
        current_domain.repository_for(User).add(user)

        logger.info("user_created", user_id=str(user.id), role=user.role, created_by=str(command.actor_id))
        return str(user.id)

    @handle(UpdateUser)
    def update(self, command):
        user = load_user(command.user_id)
        _assert_can_manage(command.actor_role, user.role)

        if command.role is not None:
            new_role = normalize_role(command.role)
            if new_role != Role.USER and command.actor_role != Role.ADMIN.value:
                raise ForbiddenError(
                    "Only admin can grant admin or operator role",
                    user_role=command.actor_role,
                    required_permission="users:change_role",
                )
            if str(user.id) == str(command.actor_id) and new_role.value != user.role:
                raise InvalidRequestError("Cannot change your own role")
            user.change_role(new_role)

        if command.is_active is not None:
            if str(user.id) == str(command.actor_id) and not command.is_active:
                raise InvalidRequestError("Cannot deactivate your own account")
            user.set_active(command.is_active)

        if command.phone is not None:
            _assert_phone_available(validate_phone(command.phone), exclude_id=user.id)

        if command.name is not None or command.phone is not None:
            user.update_profile(
                name=command.name if command.name is not None else _UNSET,
                phone=command.phone if command.phone is not None else _UNSET,
            )
        if command.password_hash:
            user.set_password_hash(command.password_hash)

        current_domain.repository_for(User).add(user)
        return str(user.id)

    @handle(DeleteUser)
    def delete(self, command):
        if str(command.user_id) == str(command.actor_id):
            raise InvalidRequestError("Cannot delete your own account")

        user = load_user(command.user_id)
        if user.role == Role.ADMIN.value and command.actor_role != Role.ADMIN.value:
            raise ForbiddenError(
                "Only admin can delete admin accounts",
                user_role=command.actor_role,
                required_permission="users:delete",
            )

        current_domain.repository_for(User)._dao.delete(user)

        logger.info("user_deleted", user_id=str(command.user_id), deleted_by=str(command.actor_id))
        return str(command.user_id)

    @handle(ToggleUserStatus)
    def toggle_status(self, command):
        if str(command.user_id) == str(command.actor_id):
            raise InvalidRequestError("Cannot deactivate your own account")

        user = load_user(command.user_id)
        _assert_can_manage(command.actor_role, user.role)

        user.set_active(not user.is_active)
        current_domain.repository_for(User).add(user)
        return user.is_active

    @handle(ChangeUserRole)
    def change_role(self, command):
        new_role = normalize_role(command.role)
        if command.actor_role != Role.ADMIN.value:
            raise ForbiddenError(
                "Only admin can change roles",
                user_role=command.actor_role,
                required_permission="users:change_role",
            )
        if str(command.user_id) == str(command.actor_id):
            raise InvalidRequestError("Cannot change your own role")

        user = load_user(command.user_id)
        old_role = user.role
        user.change_role(new_role)
        current_domain.repository_for(User).add(user)

        logger.info("user_role_changed", user_id=str(user.id), old_role=old_role, new_role=user.role)
        return old_role
