"""Asynchronous audit trail writer.

Requests hand finished ``AuditRecord``s to the recorder without waiting on
storage. A bounded ``asyncio.Queue`` sits between the two with a single
consumer task draining it. When the queue is full the oldest waiting
record is dropped and reported to the operational log, so a slow store
never holds request memory hostage. Write failures are logged and never
reach the client.
"""

import asyncio
import contextlib
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable

from protean.utils.globals import current_domain

from storefront.audit.entry import AuditLogEntry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SENSITIVE_FIELDS = frozenset({"password", "confirmPassword", "oldPassword", "newPassword", "token", "secret"})

REDACTED = "[REDACTED]"


def sanitize_body(body: Any) -> Any:
    """Copy of ``body`` with sensitive fields replaced, at any depth."""
    if isinstance(body, dict):
        return {key: REDACTED if key in SENSITIVE_FIELDS else sanitize_body(value) for key, value in body.items()}
    if isinstance(body, list):
        return [sanitize_body(item) for item in body]
    return body


@dataclass
class AuditRecord:
    """One captured mutation, ready to be persisted."""

    user_id: str
    user_name: str
    user_role: str
    action: str
    resource: str
    resource_id: str | None = None
    details: dict = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
    success: bool = True
    error_message: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class AuditTrailRecorder:
    def __init__(self, domain, maxsize: int = 1000, writer: Callable[[AuditRecord], None] | None = None) -> None:
        self.domain = domain
        self.maxsize = maxsize
        self._writer = writer or self._persist
        self._queue: asyncio.Queue | None = None
        self._consumer: asyncio.Task | None = None
        self.written = 0
        self.failed = 0
        self.dropped = 0

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    def start(self) -> None:
        """Create the queue and consumer on the running event loop."""
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._consumer = asyncio.create_task(self._consume(), name="audit-trail-writer")
        logger.debug("audit_recorder_started", queue_size=self.maxsize)

    def submit(self, record: AuditRecord) -> None:
        """Enqueue without blocking. Must be called from the event loop thread."""
        if self._queue is None:
            logger.warning("audit_recorder_not_running", action=record.action, resource=record.resource)
            return

        while True:
            try:
                self._queue.put_nowait(record)
                return
            except asyncio.QueueFull:
                try:
                    dropped = self._queue.get_nowait()
                except asyncio.QueueEmpty:
                    continue
                self._queue.task_done()
                self.dropped += 1
                logger.warning(
                    "audit_record_dropped",
                    action=dropped.action,
                    resource=dropped.resource,
                    user_id=dropped.user_id,
                    queue_size=self.maxsize,
                )

    async def _consume(self) -> None:
        while True:
            record = await self._queue.get()
            try:
                await asyncio.to_thread(self._writer, record)
                self.written += 1
            except Exception:
                self.failed += 1
                logger.exception(
                    "audit_write_failed",
                    action=record.action,
                    resource=record.resource,
                    user_id=record.user_id,
                )
            finally:
                self._queue.task_done()

    def _persist(self, record: AuditRecord) -> None:
        with self.domain.domain_context():
            current_domain.repository_for(AuditLogEntry).add(AuditLogEntry.from_record(record))

    async def join(self) -> None:
        """Wait until every queued record has been written or given up on."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, timeout: float = 5.0) -> None:
        """Drain what is queued (bounded by ``timeout``), then stop the consumer."""
        if self._consumer is None:
            return

        try:
            await asyncio.wait_for(self.join(), timeout=timeout)
        except TimeoutError:
            logger.warning("audit_recorder_drain_timeout", pending=self._queue.qsize())

        self._consumer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._consumer
        self._consumer = None
        self._queue = None
        logger.debug("audit_recorder_stopped", written=self.written, failed=self.failed, dropped=self.dropped)
