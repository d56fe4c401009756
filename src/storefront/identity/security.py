"""Password hashing and bearer tokens.

Tokens carry ``{id, role}`` and have no expiry; revocation is done by
deactivating the account, which every authenticated request re-checks.
"""

from jose import JWTError, jwt
from passlib.context import CryptContext

from storefront.config import get_settings
from storefront.errors import AuthError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(plain_password, password_hash)
    except ValueError:
        return False


def create_access_token(user_id: str, role: str) -> str:
    settings = get_settings()
    return jwt.encode({"id": str(user_id), "role": role}, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Decode a bearer token. Raises AuthError if it is invalid."""
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise AuthError("Invalid token") from None

    if not claims.get("id"):
        raise AuthError("Invalid token")
    return claims
