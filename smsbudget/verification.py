"""
Phone Verification

Before a phone can text the ledger it must be linked to a user. The user
enters the number in the app, we text a short code, and the user types
it back.

DESIGN DECISION: Pending codes live behind VerificationCodeStore, an
expiring key-value interface. The in-memory store is fine for a single
process; a shared cache can implement the same two methods.

A code is single-use. Any verification attempt consumes it, so a wrong
guess means requesting a new code.
"""

import secrets
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, NamedTuple, Optional

from smsbudget.audit import AuditLogger
from smsbudget.config import get_settings
from smsbudget.phone import normalize_phone
from smsbudget.replies import ReplyFormatter, ReplyKind
from smsbudget.services.storage import AccountDirectoryInterface


class PhoneAlreadyLinkedError(Exception):
    """The phone number belongs to a different user."""
    pass


class PendingCode(NamedTuple):
    code: str
    user_id: str


class VerificationStart(NamedTuple):
    """A code was issued; `message` is the text to send to `phone`."""
    phone: str
    message: str


class VerificationOutcome(str, Enum):
    VERIFIED = "verified"
    NOT_FOUND = "not_found"
    USER_MISMATCH = "user_mismatch"
    INVALID_CODE = "invalid_code"


class VerificationResult(NamedTuple):
    outcome: VerificationOutcome
    phone: str
    message: Optional[str] = None

    @property
    def verified(self) -> bool:
        return self.outcome == VerificationOutcome.VERIFIED


class VerificationCodeStore(ABC):
    """Expiring key-value store for pending codes."""

    @abstractmethod
    def put(self, key: str, value: PendingCode, ttl: float) -> None:
        """Store value under key for ttl seconds, replacing any previous one."""
        pass

    @abstractmethod
    def get_and_consume(self, key: str) -> Optional[PendingCode]:
        """Remove and return the value, or None if missing or expired."""
        pass


class InMemoryVerificationCodeStore(VerificationCodeStore):
    """
    Dictionary-backed store.

    Args:
        clock: Returns the current time in seconds (time.monotonic by default)
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._entries: dict[str, tuple[PendingCode, float]] = {}

    def put(self, key: str, value: PendingCode, ttl: float) -> None:
        self._entries[key] = (value, self._clock() + ttl)

    def get_and_consume(self, key: str) -> Optional[PendingCode]:
        entry = self._entries.pop(key, None)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            return None
        return value

    def __len__(self) -> int:
        return len(self._entries)


def generate_code(length: int = 6) -> str:
    """Random numeric code without a leading zero."""
    first = str(secrets.randbelow(9) + 1)
    rest = "".join(str(secrets.randbelow(10)) for _ in range(length - 1))
    return first + rest


class PhoneVerificationFlow:
    """
    Issues and checks phone verification codes.

    Usage:
        flow = PhoneVerificationFlow(directory)
        start = await flow.start("(555) 123-4567", user_id)
        send_sms(start.phone, start.message)
        ...
        result = await flow.verify("(555) 123-4567", user_id, "123456")
    """

    def __init__(
        self,
        directory: AccountDirectoryInterface,
        code_store: Optional[VerificationCodeStore] = None,
        formatter: Optional[ReplyFormatter] = None,
        audit_logger: Optional[AuditLogger] = None,
        code_generator: Optional[Callable[[int], str]] = None,
    ):
        settings = get_settings().sms
        self._directory = directory
        self._code_store = code_store or InMemoryVerificationCodeStore()
        self._formatter = formatter or ReplyFormatter(settings.max_reply_length)
        self._audit_logger = audit_logger
        self._generate_code = code_generator or generate_code
        self._app_name = settings.app_name
        self._ttl_minutes = settings.verification_code_ttl_minutes
        self._code_length = settings.verification_code_length

    async def start(self, phone: str, user_id: str) -> VerificationStart:
        """
        Issue a code for linking phone to user_id.

        Raises:
            PhoneAlreadyLinkedError: If another user owns the phone
            StorageError: If the directory lookup fails
        """
        phone = normalize_phone(phone)

        owner = await self._directory.find_user_id_by_phone(phone)
        if owner and owner != user_id:
            raise PhoneAlreadyLinkedError(
                "This phone number is already associated with another account"
            )

        code = self._generate_code(self._code_length)
        self._code_store.put(
            phone,
            PendingCode(code=code, user_id=user_id),
            ttl=self._ttl_minutes * 60,
        )

        if self._audit_logger:
            await self._audit_logger.log_verification_started(user_id, phone)

        message = self._formatter.format(
            ReplyKind.VERIFICATION_CODE,
            {
                "app_name": self._app_name,
                "code": code,
                "ttl_minutes": self._ttl_minutes,
            },
        )
        return VerificationStart(phone=phone, message=message)

    async def verify(self, phone: str, user_id: str, code: str) -> VerificationResult:
        """
        Check a code and link the phone on success.

        Raises:
            StorageError: If linking fails (the code is already consumed)
        """
        phone = normalize_phone(phone)
        pending = self._code_store.get_and_consume(phone)

        if pending is None:
            outcome = VerificationOutcome.NOT_FOUND
        elif pending.user_id != user_id:
            outcome = VerificationOutcome.USER_MISMATCH
        elif not secrets.compare_digest(pending.code, (code or "").strip()):
            outcome = VerificationOutcome.INVALID_CODE
        else:
            await self._directory.link_phone(user_id, phone)
            if self._audit_logger:
                await self._audit_logger.log_phone_verified(user_id, phone)
            return VerificationResult(
                outcome=VerificationOutcome.VERIFIED,
                phone=phone,
                message=self._formatter.format(ReplyKind.PHONE_VERIFIED),
            )

        if self._audit_logger:
            await self._audit_logger.log_verification_failed(
                user_id, phone, outcome.value
            )
        return VerificationResult(outcome=outcome, phone=phone)
