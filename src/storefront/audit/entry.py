"""AuditLogEntry aggregate and its query repository.

Entries are append-only: they are created once by the recorder and never
modified afterwards.
"""

import json
from collections import Counter
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, String, Text

from storefront.domain import storefront

_BATCH_SIZE = 500


def _clip(value: str | None, limit: int) -> str | None:
    return value[:limit] if value else value


class AuditAction(Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    REGISTER = "register"
    PROFILE_UPDATE = "profile_update"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    APPROVE = "approve"
    REJECT = "reject"
    MODERATE = "moderate"
    ASSIGN = "assign"
    UNASSIGN = "unassign"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    RESET_PASSWORD = "reset_password"
    CHANGE_ROLE = "change_role"
    ORDER_CREATE = "order_create"
    ORDER_UPDATE = "order_update"
    ORDER_CANCEL = "order_cancel"
    ORDER_DELIVER = "order_deliver"
    BACKUP = "backup"
    RESTORE = "restore"
    SYSTEM_CONFIG = "system_config"


class AuditResource(Enum):
    USER = "user"
    PRODUCT = "product"
    CATEGORY = "category"
    ORDER = "order"
    COMMENT = "comment"
    DELIVERY = "delivery"
    PAYMENT = "payment"
    COUPON = "coupon"
    ANALYTICS = "analytics"
    SYSTEM = "system"


@storefront.aggregate
class AuditLogEntry:
    user_id = Identifier(required=True)
    user_name = String(required=True, max_length=100)
    user_role = String(required=True, max_length=20)
    action = String(choices=AuditAction, required=True)
    resource = String(choices=AuditResource, required=True)
    resource_id = String(max_length=64)
    details = Text()  # JSON object
    ip_address = String(max_length=64)
    user_agent = String(max_length=500)
    timestamp = DateTime(required=True)
    success = Boolean(default=True)
    error_message = String(max_length=1000)

    @classmethod
    def from_record(cls, record):
        """Build an entry from a captured ``AuditRecord``.

        Bounded strings are clipped so that an oversized header or path never
        costs the mutation its entry.
        """
        return cls(
            user_id=record.user_id,
            user_name=_clip(record.user_name, 100),
            user_role=_clip(record.user_role, 20),
            action=record.action,
            resource=record.resource,
            resource_id=_clip(record.resource_id, 64),
            details=json.dumps(record.details or {}, default=str),
            ip_address=_clip(record.ip_address, 64),
            user_agent=_clip(record.user_agent, 500),
            timestamp=record.timestamp,
            success=record.success,
            error_message=_clip(record.error_message, 1000),
        )

    @property
    def details_dict(self) -> dict:
        return json.loads(self.details) if self.details else {}


@storefront.repository(part_of=AuditLogEntry)
class AuditLogRepository:
    """Read side of the audit trail. Results are newest first."""

    def _query(self, user_id=None, action=None, resource=None, user_role=None, start_date=None, end_date=None):
        filters = {}
        if user_id:
            filters["user_id"] = str(user_id)
        if action:
            filters["action"] = action
        if resource:
            filters["resource"] = resource
        if user_role:
            filters["user_role"] = user_role
        if start_date:
            filters["timestamp__gte"] = start_date
        if end_date:
            filters["timestamp__lte"] = end_date

        query = self._dao.query.filter(**filters) if filters else self._dao.query
        return query.order_by("-timestamp")

    def search(self, page: int = 1, limit: int = 50, **filters) -> tuple[list[AuditLogEntry], int]:
        results = self._query(**filters).offset((page - 1) * limit).limit(limit).all()
        return results.items, results.total

    def activity_for(self, user_id: str, limit: int = 50) -> list[AuditLogEntry]:
        return self._query(user_id=user_id).limit(limit).all().items

    def all_since(self, since: datetime) -> list[AuditLogEntry]:
        query = self._query(start_date=since)
        entries = []
        offset = 0
        while True:
            results = query.offset(offset).limit(_BATCH_SIZE).all()
            entries.extend(results.items)
            offset += _BATCH_SIZE
            if not results.items or offset >= results.total:
                return entries

    def stats(self, days: int = 7) -> dict:
        """Counts over the last ``days`` days, broken down by action, resource and role."""
        now = datetime.now(UTC)
        entries = self.all_since(now - timedelta(days=days))
        last_day = now - timedelta(days=1)

        return {
            "days": days,
            "total": len(entries),
            "successful": sum(1 for e in entries if e.success),
            "failed": sum(1 for e in entries if not e.success),
            "last24h": sum(1 for e in entries if e.timestamp and e.timestamp >= last_day),
            "byAction": dict(Counter(e.action for e in entries)),
            "byResource": dict(Counter(e.resource for e in entries)),
            "byRole": dict(Counter(e.user_role for e in entries)),
        }
