"""Integration tests for the inbound message flow."""

import asyncio

from datetime import date, datetime

from smsbudget.audit import AuditLogger
from smsbudget.dispatch import CommandDispatcher
from smsbudget.models.audit import AuditEventType
from smsbudget.orchestrator import SmsCommandFlow, create_app_components
from smsbudget.replies import HELP_TEXT
from smsbudget.replies.formatter import ACCOUNT_NOT_FOUND_TEXT, STORAGE_FAILURE_TEXT
from smsbudget.services.storage import InMemoryLedgerStorage
from smsbudget.verification import PhoneVerificationFlow


PHONE = "+15551234567"
RECEIVED_AT = datetime(2026, 10, 17, 15, 30)


def _flow(fail_operations=None):
    storage = InMemoryLedgerStorage(fail_operations=fail_operations)
    storage.add_user(
        "user-1",
        phone=PHONE,
        account_id="acct-1",
        categories=("Housing", "Transportation", "Food", "Income"),
    )
    flow = SmsCommandFlow(storage, audit_logger=AuditLogger(storage))
    return flow, storage


def _event_types(storage):
    return [event.event_type for event in storage.events]


class TestSmsCommandFlow:
    """handle_message end to end, against in-memory storage."""

    def test_records_expense(self):
        flow, storage = _flow()

        reply = asyncio.run(flow.handle_message(PHONE, "Spent $25 on groceries", RECEIVED_AT))

        assert reply == "Expense recorded: $25.00 (Food) - Spent on groceries"
        assert len(storage.transactions) == 1
        assert _event_types(storage) == [
            AuditEventType.SMS_RECEIVED,
            AuditEventType.COMMAND_PARSED,
            AuditEventType.TRANSACTION_RECORDED,
        ]
        assert len({event.correlation_id for event in storage.events}) == 1

    def test_sender_phone_is_normalized(self):
        flow, storage = _flow()
        reply = asyncio.run(flow.handle_message("(555) 123-4567", "help", RECEIVED_AT))
        assert reply == HELP_TEXT

    def test_uncategorized_expense_goes_to_other(self):
        flow, storage = _flow()
        reply = asyncio.run(flow.handle_message(PHONE, "$30 lunch", RECEIVED_AT))
        assert reply == "Expense recorded: $30.00 (Other) - lunch"

    def test_dated_income(self):
        flow, storage = _flow()
        reply = asyncio.run(
            flow.handle_message(PHONE, "Income $500 freelance work 10/15", RECEIVED_AT)
        )
        assert reply.startswith("Income recorded: $500.00 (Income)")
        assert reply.endswith("on 10/15/2026")

    def _flow_with_lagging_clock(self):
        _, storage = _flow()
        # Server clock still on the previous day
        dispatcher = CommandDispatcher(storage, today=lambda: date(2026, 10, 16))
        flow = SmsCommandFlow(
            storage, dispatcher=dispatcher, audit_logger=AuditLogger(storage)
        )
        return flow, storage

    def test_undated_expense_uses_received_date(self):
        flow, storage = self._flow_with_lagging_clock()

        reply = asyncio.run(flow.handle_message(PHONE, "Spent $25 on groceries", RECEIVED_AT))

        assert storage.transactions[0].occurred_on == date(2026, 10, 17)
        assert reply == "Expense recorded: $25.00 (Food) - Spent on groceries"

    def test_relative_date_resolves_against_received_date(self):
        flow, storage = self._flow_with_lagging_clock()

        reply = asyncio.run(
            flow.handle_message(PHONE, "Spent $5 on groceries yesterday", RECEIVED_AT)
        )

        assert storage.transactions[0].occurred_on == date(2026, 10, 16)
        assert reply.endswith("on 10/16/2026")

    def test_budget_query(self):
        flow, storage = _flow()
        reply = asyncio.run(flow.handle_message(PHONE, "budget groceries", RECEIVED_AT))
        assert reply.startswith("Food budget (")
        assert storage.transactions == []

    def test_unknown_phone(self):
        flow, storage = _flow()

        reply = asyncio.run(flow.handle_message("+15550000000", "Spent $25", RECEIVED_AT))

        assert reply == ACCOUNT_NOT_FOUND_TEXT
        assert storage.transactions == []
        assert AuditEventType.ACCOUNT_NOT_FOUND in _event_types(storage)
        assert AuditEventType.COMMAND_PARSED not in _event_types(storage)

    def test_account_lookup_failure(self):
        flow, storage = _flow(fail_operations={"resolve_account"})
        reply = asyncio.run(flow.handle_message(PHONE, "Spent $25", RECEIVED_AT))
        assert reply == STORAGE_FAILURE_TEXT
        assert AuditEventType.STORAGE_ERROR in _event_types(storage)

    def test_gibberish(self):
        flow, storage = _flow()
        reply = asyncio.run(flow.handle_message(PHONE, "asdkjh", RECEIVED_AT))
        assert "didn't understand" in reply
        assert storage.transactions == []

    def test_empty_body(self):
        flow, storage = _flow()
        reply = asyncio.run(flow.handle_message(PHONE, "", RECEIVED_AT))
        assert "didn't understand" in reply

    def test_audit_log_does_not_contain_message_text(self):
        flow, storage = _flow()
        asyncio.run(flow.handle_message(PHONE, "Spent $25 on groceries at Walmart", RECEIVED_AT))
        for event in storage.events:
            assert "Walmart" not in str(event.to_log_dict())
            assert PHONE not in str(event.to_log_dict())

    def test_unexpected_error_still_replies(self):
        flow, storage = _flow()

        class ExplodingDispatcher:
            async def dispatch(self, command, account, correlation_id=None, today=None):
                raise RuntimeError("boom")

        flow = SmsCommandFlow(
            storage,
            dispatcher=ExplodingDispatcher(),
            audit_logger=AuditLogger(storage),
        )

        reply = asyncio.run(flow.handle_message(PHONE, "help", RECEIVED_AT))

        assert reply == STORAGE_FAILURE_TEXT
        assert AuditEventType.SYSTEM_ERROR in _event_types(storage)


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_without_storage(self):
        sms_flow, verification_flow, sheets_client = create_app_components(use_storage=False)
        assert isinstance(sms_flow, SmsCommandFlow)
        assert isinstance(verification_flow, PhoneVerificationFlow)
        assert sheets_client is None

    def test_verified_phone_can_text(self):
        sms_flow, verification_flow, _ = create_app_components(use_storage=False)
        storage = sms_flow._directory
        storage.add_user("user-9", account_id="acct-9")

        async def run():
            start = await verification_flow.start("555-987-6543", "user-9")
            code = start.message.split("code is: ")[1][:6]
            await verification_flow.verify("555-987-6543", "user-9", code)
            return await sms_flow.handle_message("+15559876543", "$12 parking", RECEIVED_AT)

        reply = asyncio.run(run())
        assert reply == "Expense recorded: $12.00 (Other) - parking"
