"""Pydantic models for API requests and responses."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InitiatePassRequest(BaseModel):
    """Request model for starting pass creation."""

    countryCode: str = Field(..., min_length=1, max_length=5, description="Calling code, e.g. +1 or +44")
    phone: str = Field(..., min_length=1, max_length=20, description="National number only, e.g. 5551234567")
    artistId: UUID = Field(..., description="Artist template identifier")

    @field_validator('countryCode')
    @classmethod
    def validate_country_code(cls, v):
        """Validate calling code format."""
        if not v.lstrip('+').isdigit():
            raise ValueError('Country code must be digits with an optional leading +')
        return v

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "countryCode": "+1",
            "phone": "5551234567",
            "artistId": "a1b2c3d4-e5f6-4789-a1b2-c3d4e5f67890"
        }
    })


class InitiatePassResponse(BaseModel):
    passId: UUID
    message: str = Field(..., description="Delivery message with the masked phone number")
    expiresIn: int = Field(..., description="Seconds until the verification code expires")
    code: Optional[str] = Field(None, description="Verification code (demo mode only)")


class VerifyPhoneRequest(BaseModel):
    passId: UUID
    code: str = Field(..., min_length=1, max_length=10, description="Verification code from SMS")


class VerifyPhoneResponse(BaseModel):
    success: bool
    passId: UUID
    message: str


class CompletePassRequest(BaseModel):
    passId: UUID
    fanName: str = Field(..., min_length=1, max_length=100, description="Display name printed on the pass")

    @field_validator('fanName')
    @classmethod
    def validate_fan_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Fan name must not be blank')
        return v


class CompletePassResponse(BaseModel):
    success: bool
    passId: UUID
    fanName: str
    artistName: str
    tierName: str
    downloadUrls: Dict[str, str] = Field(..., description="Download link per platform")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "success": True,
            "passId": "5f0c6f7e-2b7c-4a8e-9d43-0e1c3f4b5a6d",
            "fanName": "Ada Lovelace",
            "artistName": "VOILÀ",
            "tierName": "Magician Pass",
            "downloadUrls": {
                "apple": "/api/pass/5f0c6f7e-2b7c-4a8e-9d43-0e1c3f4b5a6d/download?platform=apple",
                "google": "/api/pass/5f0c6f7e-2b7c-4a8e-9d43-0e1c3f4b5a6d/download?platform=google"
            }
        }
    })


class PlatformInfo(BaseModel):
    installed: bool
    deviceId: Optional[str] = None
    lastUpdated: Optional[datetime] = None


class PassDetailsResponse(BaseModel):
    passId: UUID
    fanName: str
    fanId: str
    artistName: str
    tierName: str
    status: str
    phoneVerified: bool
    platforms: Dict[str, PlatformInfo]
    createdAt: datetime
    verifiedAt: Optional[datetime] = None


class RegisterDeviceRequest(BaseModel):
    platform: str = Field(..., description="Wallet platform (apple, google, ios, android)")
    deviceId: str = Field(..., min_length=1, max_length=200)
    pushToken: Optional[str] = Field(None, max_length=500)


class RegisterDeviceResponse(BaseModel):
    registered: bool
    passId: UUID
    platform: str


class SendNotificationRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=500)
    actionUrl: Optional[str] = None
    priority: str = Field("normal", pattern="^(normal|high)$")


class NotificationDetailModel(BaseModel):
    deviceId: Optional[str] = None
    sentAt: Optional[datetime] = None
    status: str
    error: Optional[str] = None


class NotificationResponse(BaseModel):
    success: bool
    delivered: Dict[str, bool]
    details: Dict[str, NotificationDetailModel]


class ArtistResponse(BaseModel):
    id: UUID
    name: str
    tierName: str
    logoUrl: str
    backgroundUrl: Optional[str] = None


class DetectionResponse(BaseModel):
    """Response model for the platform detection diagnostic endpoint."""

    platform: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    method: str
    source: str
    userAgent: str
    isDesktop: bool
    isMobile: bool
    isBot: bool
    browser: str
    os: str
    recommendation: str
    shouldPromptUser: bool
    warning: Optional[str] = None


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Service health status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field("1.0.0", description="Service version")


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error kind")
    message: str = Field(..., description="Human-readable error message")
    correlation_id: str = Field(..., description="Request correlation ID for tracing")
    timestamp: datetime = Field(..., description="Error timestamp")
    details: Optional[Any] = Field(None, description="Structured error details")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "error": "code_mismatch",
            "message": "Invalid code. 2 attempts remaining",
            "correlation_id": "req_123456789",
            "timestamp": "2024-01-01T12:00:00Z",
            "details": {"remaining_attempts": 2}
        }
    })
