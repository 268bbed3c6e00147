"""Internal data models for the wallet pass service."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID


class Platform(str, Enum):
    """Wallet ecosystems a pass can be rendered for."""

    APPLE = "apple"
    GOOGLE = "google"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Platform":
        """Parse a platform name or alias, case-insensitively."""
        if not value:
            return cls.UNKNOWN
        return _PLATFORM_ALIASES.get(value.strip().lower(), cls.UNKNOWN)


_PLATFORM_ALIASES = {
    "apple": Platform.APPLE,
    "ios": Platform.APPLE,
    "google": Platform.GOOGLE,
    "android": Platform.GOOGLE,
}


class DetectionMethod(str, Enum):
    """How a platform decision was reached."""

    EXPLICIT_PARAMETER = "explicit_parameter"
    SIGNAL_MATCH = "signal_match"
    HEURISTIC = "heuristic"
    DEFAULT = "default"


class PassStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    DELETED = "deleted"


@dataclass
class VerificationEntry:
    """Live one-time code for a single phone number."""

    code: str
    expires_at: datetime
    attempts: int = 0


@dataclass(frozen=True)
class ArtistTemplate:
    """Catalog entry describing an artist's pass design."""

    id: UUID
    name: str
    tier_name: str
    logo_url: str
    background_url: Optional[str] = None


@dataclass(frozen=True)
class Pass:
    """A fan's wallet pass record, independent of any wallet backend."""

    id: UUID
    fan_name: str
    country_code: str
    national_number: str  # PII - never log unmasked
    fan_id: str
    artist_id: UUID
    artist_name: str
    tier_name: str
    logo_url: str
    background_url: Optional[str]
    status: PassStatus
    phone_verified: bool
    created_at: datetime
    verified_at: Optional[datetime] = None

    @property
    def full_phone_number(self) -> str:
        return f"{self.country_code}{self.national_number}"


@dataclass(frozen=True)
class DeviceRegistration:
    platform: str
    device_id: str
    push_token: Optional[str]
    registered_at: datetime

    @property
    def key(self) -> str:
        return f"{self.platform}:{self.device_id}"


@dataclass(frozen=True)
class PassFile:
    """Artifact produced by a wallet backend.

    File-delivery backends populate ``data``; URL-delivery backends also set
    ``redirect_url`` and callers must send the client there instead.
    """

    filename: str
    content_type: str
    data: bytes
    redirect_url: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.redirect_url is not None


@dataclass(frozen=True)
class NotificationDetail:
    device_id: Optional[str]
    sent_at: Optional[datetime]
    status: str
    error: Optional[str] = None


@dataclass(frozen=True)
class PlatformDetectionResult:
    """Outcome of platform detection for a single request."""

    platform: Platform
    method: DetectionMethod
    confidence: float
    source: str

    def __post_init__(self):
        """Validate confidence range after initialization."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0.0 and 1.0, got {self.confidence}")


@dataclass(frozen=True)
class ClientSignatureInfo:
    """Diagnostic classification of a client signature."""

    detected_platform: Platform
    signature: str
    is_desktop: bool
    is_mobile: bool
    is_bot: bool
    browser_family: str
    os_family: str
