"""Credential checks for login and for bearer-token requests."""

from protean.utils.globals import current_domain

from storefront.errors import AuthError, NotFoundError
from storefront.identity.repository import load_user
from storefront.identity.security import decode_access_token, verify_password
from storefront.identity.user import User, validate_phone


def authenticate(phone: str, password: str) -> User:
    """Return the active account matching the credentials or raise AuthError."""
    user = current_domain.repository_for(User).find_by_phone(validate_phone(phone))
    if user is None or not verify_password(password, user.password_hash):
        raise AuthError("Invalid credentials")
    if not user.is_active:
        raise AuthError("Invalid or inactive user")
    return user


def resolve_token(token: str) -> User:
    """Decode a bearer token and re-load the account it names.

    The account must still exist and be active. The role comes from the
    stored account, not from the token.
    """
    claims = decode_access_token(token)
    try:
        user = load_user(claims["id"])
    except NotFoundError:
        raise AuthError("Invalid or inactive user") from None

    if not user.is_active:
        raise AuthError("Invalid or inactive user")
    return user
