"""Repository for the Order aggregate."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import NotFoundError
from storefront.order.order import Order, OrderStatus

_BATCH_SIZE = 500


@storefront.repository(part_of=Order)
class OrderRepository:
    """Order queries used by the listing endpoints. Newest orders come first."""

    def for_user(self, user_id: str, limit: int = 100) -> list[Order]:
        return self._dao.query.filter(user_id=str(user_id)).order_by("-created_at").limit(limit).all().items

    def search(self, status: str | None = None, page: int = 1, limit: int = 10) -> tuple[list[Order], int]:
        """Return one page of orders and the total number of matches."""
        query = self._dao.query
        if status:
            query = query.filter(status=status)

        results = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        return results.items, results.total

    def count(self, status: str | None = None) -> int:
        query = self._dao.query.filter(status=status) if status else self._dao.query
        return query.limit(1).all().total

    def counts_by_status(self) -> dict[str, int]:
        """Number of orders per status. Statuses with no orders are left out."""
        counts = {status.value: self.count(status=status.value) for status in OrderStatus}
        return {status: count for status, count in counts.items() if count}

    def delivered_revenue(self) -> float:
        """Sum of ``totals.total`` over delivered orders."""
        query = self._dao.query.filter(status=OrderStatus.DELIVERED.value)
        revenue = 0.0
        offset = 0
        while True:
            results = query.offset(offset).limit(_BATCH_SIZE).all()
            revenue += sum(order.totals.total for order in results.items if order.totals)
            offset += _BATCH_SIZE
            if not results.items or offset >= results.total:
                return revenue


def load_order(order_id: str) -> Order:
    """Fetch an order or raise NotFoundError."""
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise NotFoundError("Order not found") from None
