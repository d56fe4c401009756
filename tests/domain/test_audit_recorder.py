"""Tests for body sanitization and the bounded audit queue."""

import asyncio

from storefront.audit.recorder import REDACTED, AuditRecord, AuditTrailRecorder, sanitize_body


def _record(n):
    return AuditRecord(
        user_id=f"user-{n}",
        user_name="Tester",
        user_role="admin",
        action="update",
        resource="order",
        resource_id=f"order-{n}",
    )


class TestSanitizeBody:
    def test_top_level_fields_redacted(self):
        body = {"phone": "+998901234567", "password": "secret123", "token": "abc"}
        assert sanitize_body(body) == {"phone": "+998901234567", "password": REDACTED, "token": REDACTED}

    def test_nested_fields_redacted(self):
        body = {"user": {"newPassword": "x", "oldPassword": "y"}, "items": [{"secret": "z", "qty": 1}]}
        assert sanitize_body(body) == {
            "user": {"newPassword": REDACTED, "oldPassword": REDACTED},
            "items": [{"secret": REDACTED, "qty": 1}],
        }

    def test_only_exact_names_are_redacted(self):
        body = {"passwordHint": "dog", "confirmPassword": "x"}
        assert sanitize_body(body) == {"passwordHint": "dog", "confirmPassword": REDACTED}

    def test_original_is_not_modified(self):
        body = {"password": "secret123"}
        sanitize_body(body)
        assert body == {"password": "secret123"}

    def test_scalars_pass_through(self):
        assert sanitize_body(None) is None
        assert sanitize_body("text") == "text"


class TestAuditTrailRecorder:
    def test_records_are_written_in_order(self):
        written = []

        async def scenario():
            recorder = AuditTrailRecorder(domain=None, maxsize=10, writer=written.append)
            recorder.start()
            for n in range(3):
                recorder.submit(_record(n))
            await recorder.join()
            await recorder.stop()
            return recorder

        recorder = asyncio.run(scenario())
        assert [record.user_id for record in written] == ["user-0", "user-1", "user-2"]
        assert recorder.written == 3
        assert recorder.running is False

    def test_overflow_drops_oldest(self):
        written = []

        async def scenario():
            recorder = AuditTrailRecorder(domain=None, maxsize=2, writer=written.append)
            recorder.start()
            # No await between submits, so the consumer cannot drain in between.
            for n in range(4):
                recorder.submit(_record(n))
            await recorder.stop()
            return recorder

        recorder = asyncio.run(scenario())
        assert recorder.dropped == 2
        assert [record.user_id for record in written] == ["user-2", "user-3"]

    def test_write_failures_are_absorbed(self):
        written = []

        def flaky_writer(record):
            if record.user_id == "user-0":
                raise RuntimeError("store unavailable")
            written.append(record)

        async def scenario():
            recorder = AuditTrailRecorder(domain=None, maxsize=10, writer=flaky_writer)
            recorder.start()
            recorder.submit(_record(0))
            recorder.submit(_record(1))
            await recorder.stop()
            return recorder

        recorder = asyncio.run(scenario())
        assert recorder.failed == 1
        assert recorder.written == 1
        assert [record.user_id for record in written] == ["user-1"]

    def test_submit_before_start_is_ignored(self):
        written = []
        recorder = AuditTrailRecorder(domain=None, writer=written.append)
        recorder.submit(_record(0))
        assert written == []
        assert recorder.running is False

    def test_stop_drains_queue(self):
        written = []

        async def scenario():
            recorder = AuditTrailRecorder(domain=None, maxsize=100, writer=written.append)
            recorder.start()
            for n in range(20):
                recorder.submit(_record(n))
            await recorder.stop()

        asyncio.run(scenario())
        assert len(written) == 20

    def test_start_is_idempotent(self):
        async def scenario():
            recorder = AuditTrailRecorder(domain=None, writer=lambda record: None)
            recorder.start()
            consumer = recorder._consumer
            recorder.start()
            same = recorder._consumer is consumer
            await recorder.stop()
            return same

        assert asyncio.run(scenario()) is True
