"""
Verification ledger for one-time phone verification codes.

Holds at most one live code per phone number and enforces expiry and a strict
attempt budget. Code delivery (SMS) happens elsewhere; the ledger only hands
the issued code back to the caller.
"""

import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from walletpass.config import settings
from walletpass.exceptions import ErrorKind, InvalidPhoneNumberError
from walletpass.models.internal_models import VerificationEntry
from walletpass.utils.keyed_lock import KeyedLock
from walletpass.utils.phone_utils import is_valid_phone_number, mask_phone_number

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999


def generate_code() -> str:
    """Draw a 6-digit code uniformly from 100000-999999."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


@dataclass(frozen=True)
class CodeValidationResult:
    """Outcome of a code validation attempt."""

    success: bool
    error: Optional[ErrorKind] = None
    remaining_attempts: Optional[int] = None

    @property
    def message(self) -> str:
        if self.success:
            return "Phone number verified"
        if self.error == ErrorKind.NOT_FOUND:
            return "No verification code found for this phone number"
        if self.error == ErrorKind.EXPIRED:
            return "Verification code has expired"
        if self.error == ErrorKind.ATTEMPTS_EXHAUSTED:
            return "Too many verification attempts"
        return f"Invalid code. {self.remaining_attempts} attempts remaining"


class VerificationLedger:
    """
    In-memory table of verification codes keyed by normalized phone number.

    All access goes through ``issue_code`` and ``validate_code``; calls for the
    same phone number are serialized with a per-key lock so attempt counts are
    never lost, while calls for different numbers proceed independently.
    """

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        max_attempts: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        code_generator: Callable[[], str] = generate_code
    ):
        if ttl_seconds is None:
            ttl_seconds = settings.verification_code_ttl_seconds
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_attempts = max_attempts if max_attempts is not None else settings.verification_max_attempts
        self._clock = clock
        self._generate_code = code_generator
        self._entries: Dict[str, VerificationEntry] = {}
        self._locks = KeyedLock()

    @property
    def ttl_seconds(self) -> int:
        return int(self.ttl.total_seconds())

    async def issue_code(self, phone_number: str) -> str:
        """
        Issue a fresh code for a phone number, replacing any live one.

        Args:
            phone_number: Normalized international number (e.g. "+15551234567")

        Returns:
            The issued code, for out-of-band delivery

        Raises:
            InvalidPhoneNumberError: If the number fails the format check
        """
        if not is_valid_phone_number(phone_number):
            raise InvalidPhoneNumberError(
                "Invalid phone number format. Use international format (e.g., +12125551234)"
            )

        masked = mask_phone_number(phone_number)
        async with self._locks.acquire(phone_number):
            code = self._generate_code()
            replaced = phone_number in self._entries
            self._entries[phone_number] = VerificationEntry(
                code=code,
                expires_at=self._clock() + self.ttl,
                attempts=0
            )

        if replaced:
            logger.info(f"Verification code replaced for {masked}")
        else:
            logger.info(f"Verification code issued for {masked}")
        return code

    async def validate_code(self, phone_number: str, submitted_code: str) -> CodeValidationResult:
        """
        Validate a submitted code.

        Expiry and attempt exhaustion destroy the entry; a wrong guess only
        consumes an attempt so the caller may retry.

        Args:
            phone_number: Normalized international number
            submitted_code: Code entered by the user

        Returns:
            CodeValidationResult describing success or the failing rule
        """
        masked = mask_phone_number(phone_number)
        async with self._locks.acquire(phone_number):
            entry = self._entries.get(phone_number)
            if entry is None:
                logger.info(f"No verification code on record for {masked}")
                return CodeValidationResult(success=False, error=ErrorKind.NOT_FOUND)

            if self._clock() > entry.expires_at:
                del self._entries[phone_number]
                logger.info(f"Verification code expired for {masked}")
                return CodeValidationResult(success=False, error=ErrorKind.EXPIRED)

            if entry.attempts >= self.max_attempts:
                del self._entries[phone_number]
                logger.warning(f"Verification attempts exhausted for {masked}")
                return CodeValidationResult(success=False, error=ErrorKind.ATTEMPTS_EXHAUSTED)

            if not hmac.compare_digest(entry.code.encode(), (submitted_code or "").encode()):
                entry.attempts += 1
                remaining = self.max_attempts - entry.attempts
                logger.info(f"Verification code mismatch for {masked}: {remaining} attempts remaining")
                return CodeValidationResult(
                    success=False,
                    error=ErrorKind.CODE_MISMATCH,
                    remaining_attempts=remaining
                )

            del self._entries[phone_number]

        logger.info(f"Phone number {masked} verified successfully")
        return CodeValidationResult(success=True)

    async def purge_expired(self) -> int:
        """
        Drop expired entries. Validation already treats them as dead; this only
        reclaims memory.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        removed = 0
        for phone_number in list(self._entries):
            async with self._locks.acquire(phone_number):
                entry = self._entries.get(phone_number)
                if entry is not None and now > entry.expires_at:
                    del self._entries[phone_number]
                    removed += 1
        if removed:
            logger.debug(f"Purged {removed} expired verification codes")
        return removed

    def __len__(self) -> int:
        return len(self._entries)
