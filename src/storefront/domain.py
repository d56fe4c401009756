"""Storefront bounded context: orders, payments, access control, and audit.

Order lifecycle and payment settlement live in a single domain. Users and
audit log entries are aggregates of the same domain so that authorization
re-checks and audit writes use the same providers as order mutations.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

storefront = Domain(name="storefront")
