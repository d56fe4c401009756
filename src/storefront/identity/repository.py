"""Repository for the User aggregate."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import NotFoundError
from storefront.identity.user import User


@storefront.repository(part_of=User)
class UserRepository:
    def find_by_phone(self, phone: str) -> User | None:
        results = self._dao.query.filter(phone=phone).all()
        return results.first

    def search(self, role: str | None = None, is_active: bool | None = None, page: int = 1, limit: int = 10):
        """Return one page of users, newest first, and the total number of matches."""
        filters = {}
        if role:
            filters["role"] = role
        if is_active is not None:
            filters["is_active"] = is_active

        query = self._dao.query.filter(**filters) if filters else self._dao.query
        results = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        return results.items, results.total

    def count(self) -> int:
        return self._dao.query.limit(1).all().total


def load_user(user_id: str) -> User:
    """Fetch a user or raise NotFoundError."""
    try:
        return current_domain.repository_for(User).get(user_id)
    except ObjectNotFoundError:
        raise NotFoundError("User not found") from None
