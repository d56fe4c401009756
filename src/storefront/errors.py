"""Exceptions raised by storefront services.

Each maps to one HTTP status in ``storefront.api.errors``. Protean's own
``ValidationError`` and ``ObjectNotFoundError`` are used inside aggregates
and repositories and are mapped alongside these.
"""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"message": self.message}


class InvalidRequestError(StorefrontError):
    """Request is malformed or violates a business rule."""


class AuthError(StorefrontError):
    """Missing, invalid, or revoked credentials."""


class SignatureError(StorefrontError):
    """Webhook payload failed signature verification."""


class ForbiddenError(StorefrontError):
    """Caller is authenticated but lacks the required permission."""

    def __init__(self, message: str, user_role: str | None = None, required_permission: str | None = None):
        self.user_role = user_role
        self.required_permission = required_permission
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.user_role is not None:
            body["userRole"] = self.user_role
        if self.required_permission is not None:
            body["requiredPermission"] = self.required_permission
        return body


class NotFoundError(StorefrontError):
    """Referenced record does not exist."""


class ConflictError(StorefrontError):
    """Write conflicts with existing state, such as a duplicate phone number."""
