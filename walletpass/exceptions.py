"""Error taxonomy for the wallet pass service.

Every expected business outcome is a ``WalletPassError`` subclass carrying a
machine-readable ``kind`` and the HTTP status the boundary layer should use.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Kinds of expected failures surfaced to clients."""

    INVALID_FORMAT = "invalid_format"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    CODE_MISMATCH = "code_mismatch"
    ALREADY_VERIFIED = "already_verified"
    UNKNOWN_ARTIST = "unknown_artist"
    PRECONDITION_FAILED = "precondition_failed"
    NO_DEVICES_REGISTERED = "no_devices_registered"
    BACKEND_FAILURE = "backend_failure"


class WalletPassError(Exception):
    """Base exception for wallet pass service errors."""

    kind: ErrorKind = ErrorKind.BACKEND_FAILURE
    status_code: int = 500

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        details: Optional[Any] = None
    ):
        self.message = message
        if kind is not None:
            self.kind = kind
        self.details = details
        super().__init__(message)


class InvalidPhoneNumberError(WalletPassError):
    """Raised when a phone number fails the international format check."""

    kind = ErrorKind.INVALID_FORMAT
    status_code = 422


class PassNotFoundError(WalletPassError):
    """Raised when a pass identifier does not resolve."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404


class VerificationFailedError(WalletPassError):
    """Raised when a submitted verification code is rejected."""

    status_code = 400

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        remaining_attempts: Optional[int] = None
    ):
        details = None
        if remaining_attempts is not None:
            details = {"remaining_attempts": remaining_attempts}
        super().__init__(message, kind=kind, details=details)
        self.remaining_attempts = remaining_attempts


class AlreadyVerifiedError(WalletPassError):
    kind = ErrorKind.ALREADY_VERIFIED
    status_code = 409


class UnknownArtistError(WalletPassError):
    kind = ErrorKind.UNKNOWN_ARTIST
    status_code = 404


class PreconditionFailedError(WalletPassError):
    """Raised when a lifecycle step is attempted out of order."""

    kind = ErrorKind.PRECONDITION_FAILED
    status_code = 409


class NoDevicesRegisteredError(WalletPassError):
    kind = ErrorKind.NO_DEVICES_REGISTERED
    status_code = 400


class BackendFailureError(WalletPassError):
    """Raised when a wallet backend fails or times out."""

    kind = ErrorKind.BACKEND_FAILURE
    status_code = 502
