"""Data models for the wallet pass service."""

from .api_models import (
    InitiatePassRequest,
    InitiatePassResponse,
    VerifyPhoneRequest,
    VerifyPhoneResponse,
    CompletePassRequest,
    CompletePassResponse,
    PassDetailsResponse,
    PlatformInfo,
    RegisterDeviceRequest,
    RegisterDeviceResponse,
    SendNotificationRequest,
    NotificationResponse,
    DetectionResponse,
    ArtistResponse,
    HealthResponse,
    ErrorResponse
)
from .internal_models import (
    ArtistTemplate,
    ClientSignatureInfo,
    DetectionMethod,
    DeviceRegistration,
    NotificationDetail,
    Pass,
    PassFile,
    PassStatus,
    Platform,
    PlatformDetectionResult,
    VerificationEntry
)

__all__ = [
    "InitiatePassRequest",
    "InitiatePassResponse",
    "VerifyPhoneRequest",
    "VerifyPhoneResponse",
    "CompletePassRequest",
    "CompletePassResponse",
    "PassDetailsResponse",
    "PlatformInfo",
    "RegisterDeviceRequest",
    "RegisterDeviceResponse",
    "SendNotificationRequest",
    "NotificationResponse",
    "DetectionResponse",
    "ArtistResponse",
    "HealthResponse",
    "ErrorResponse",
    "ArtistTemplate",
    "ClientSignatureInfo",
    "DetectionMethod",
    "DeviceRegistration",
    "NotificationDetail",
    "Pass",
    "PassFile",
    "PassStatus",
    "Platform",
    "PlatformDetectionResult",
    "VerificationEntry"
]
