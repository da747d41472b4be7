"""Tests for phone normalization and phone verification."""

import asyncio

import pytest

from smsbudget.audit import AuditLogger
from smsbudget.models.audit import AuditEventType
from smsbudget.phone import normalize_phone
from smsbudget.services.storage import InMemoryLedgerStorage
from smsbudget.verification import (
    InMemoryVerificationCodeStore,
    PendingCode,
    PhoneAlreadyLinkedError,
    PhoneVerificationFlow,
    VerificationOutcome,
    generate_code,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestNormalizePhone:
    """Tests for normalize_phone."""

    @pytest.mark.parametrize("raw,expected", [
        ("5551234567", "+15551234567"),
        ("(555) 123-4567", "+15551234567"),
        ("555.123.4567", "+15551234567"),
        ("15551234567", "+15551234567"),
        ("+15551234567", "+15551234567"),
        ("+1 (555) 123-4567", "+15551234567"),
        ("+447911123456", "+447911123456"),
        ("12345", "12345"),
        ("  12345 ", "12345"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_phone(raw) == expected


class TestVerificationCodeStore:
    """Tests for InMemoryVerificationCodeStore."""

    def test_get_and_consume_is_single_use(self):
        store = InMemoryVerificationCodeStore(clock=FakeClock())
        store.put("+15551234567", PendingCode("123456", "user-1"), ttl=600)

        assert store.get_and_consume("+15551234567") == PendingCode("123456", "user-1")
        assert store.get_and_consume("+15551234567") is None

    def test_expired_entry(self):
        clock = FakeClock()
        store = InMemoryVerificationCodeStore(clock=clock)
        store.put("+15551234567", PendingCode("123456", "user-1"), ttl=600)

        clock.now += 600
        assert store.get_and_consume("+15551234567") is None
        assert len(store) == 0

    def test_put_replaces_previous_code(self):
        store = InMemoryVerificationCodeStore(clock=FakeClock())
        store.put("k", PendingCode("111111", "user-1"), ttl=600)
        store.put("k", PendingCode("222222", "user-1"), ttl=600)
        assert store.get_and_consume("k").code == "222222"


class TestGenerateCode:
    def test_length_and_digits(self):
        for _ in range(50):
            code = generate_code(6)
            assert len(code) == 6
            assert code.isdigit()
            assert code[0] != "0"


class TestPhoneVerificationFlow:
    """Tests for PhoneVerificationFlow."""

    def _flow(self):
        storage = InMemoryLedgerStorage()
        storage.add_user("user-1", account_id="acct-1")
        storage.add_user("user-2", phone="+15559990000", account_id="acct-2")
        clock = FakeClock()
        flow = PhoneVerificationFlow(
            storage,
            code_store=InMemoryVerificationCodeStore(clock=clock),
            audit_logger=AuditLogger(storage),
            code_generator=lambda length: "123456",
        )
        return flow, storage, clock

    def test_start_issues_code(self):
        flow, storage, _ = self._flow()

        start = asyncio.run(flow.start("(555) 123-4567", "user-1"))

        assert start.phone == "+15551234567"
        assert "verification code is: 123456" in start.message
        assert "expires in 10 minutes" in start.message
        assert storage.events[-1].event_type == AuditEventType.VERIFICATION_STARTED

    def test_start_rejects_phone_of_another_user(self):
        flow, _, _ = self._flow()
        with pytest.raises(PhoneAlreadyLinkedError):
            asyncio.run(flow.start("555-999-0000", "user-1"))

    def test_start_allows_own_phone(self):
        flow, _, _ = self._flow()
        start = asyncio.run(flow.start("555-999-0000", "user-2"))
        assert start.phone == "+15559990000"

    def test_verify_links_phone(self):
        flow, storage, _ = self._flow()

        async def run():
            await flow.start("5551234567", "user-1")
            return await flow.verify("5551234567", "user-1", "123456")

        result = asyncio.run(run())

        assert result.verified is True
        assert result.message.startswith("Phone verified!")
        assert storage.users["user-1"]["phone"] == "+15551234567"
        assert storage.events[-1].event_type == AuditEventType.PHONE_VERIFIED

    def test_wrong_code_consumes_it(self):
        flow, storage, _ = self._flow()

        async def run():
            await flow.start("5551234567", "user-1")
            first = await flow.verify("5551234567", "user-1", "000000")
            second = await flow.verify("5551234567", "user-1", "123456")
            return first, second

        first, second = asyncio.run(run())

        assert first.outcome == VerificationOutcome.INVALID_CODE
        assert second.outcome == VerificationOutcome.NOT_FOUND
        assert storage.users["user-1"]["phone"] is None
        assert storage.events[-1].event_type == AuditEventType.VERIFICATION_FAILED

    def test_expired_code(self):
        flow, _, clock = self._flow()

        async def run():
            await flow.start("5551234567", "user-1")
            clock.now += 10 * 60 + 1
            return await flow.verify("5551234567", "user-1", "123456")

        assert asyncio.run(run()).outcome == VerificationOutcome.NOT_FOUND

    def test_code_for_another_user(self):
        flow, storage, _ = self._flow()

        async def run():
            await flow.start("5551234567", "user-1")
            return await flow.verify("5551234567", "user-2", "123456")

        result = asyncio.run(run())
        assert result.outcome == VerificationOutcome.USER_MISMATCH
        assert result.verified is False

    def test_verify_without_start(self):
        flow, _, _ = self._flow()
        result = asyncio.run(flow.verify("5551234567", "user-1", "123456"))
        assert result.outcome == VerificationOutcome.NOT_FOUND
