"""
Pass lifecycle API endpoints: initiate, verify, complete, download, notify.
"""

from typing import Optional
from urllib.parse import quote
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse, Response

from walletpass.config import settings
from walletpass.errors import get_correlation_id
from walletpass.models.api_models import (
    CompletePassRequest,
    CompletePassResponse,
    InitiatePassRequest,
    InitiatePassResponse,
    NotificationResponse,
    PassDetailsResponse,
    PlatformInfo,
    RegisterDeviceRequest,
    RegisterDeviceResponse,
    SendNotificationRequest,
    VerifyPhoneRequest,
    VerifyPhoneResponse,
)
from walletpass.models.internal_models import Platform
from walletpass.observability import trace_function
from walletpass.services.wallet_pass_service import WalletPassService, get_wallet_pass_service

logger = structlog.get_logger()
router = APIRouter(prefix="/api/pass", tags=["passes"])


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback for non-ASCII filenames."""
    fallback = filename.encode("ascii", "ignore").decode("ascii") or "pass"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@router.post("/initiate", response_model=InitiatePassResponse)
@trace_function("initiate_pass_endpoint")
async def initiate_pass(
    request: InitiatePassRequest,
    http_request: Request,
    service: WalletPassService = Depends(get_wallet_pass_service)
) -> InitiatePassResponse:
    """
    Start pass creation for a phone number.

    Issues a verification code for the phone number and creates a pending
    pass for the selected artist. The code itself is returned only when
    ``EXPOSE_VERIFICATION_CODE`` is enabled (demo deployments); otherwise it
    is delivered out of band.
    """
    result = await service.initiate(request.countryCode, request.phone, request.artistId)

    logger.info(
        "Pass initiated",
        pass_id=str(result.pass_.id),
        phone=result.masked_phone,
        correlation_id=get_correlation_id(http_request)
    )

    return InitiatePassResponse(
        passId=result.pass_.id,
        message=f"Verification code sent to {result.masked_phone}",
        expiresIn=result.expires_in,
        code=result.code if settings.expose_verification_code else None
    )


@router.post("/verify", response_model=VerifyPhoneResponse)
@trace_function("verify_phone_endpoint")
async def verify_phone(
    request: VerifyPhoneRequest,
    http_request: Request,
    service: WalletPassService = Depends(get_wallet_pass_service)
) -> VerifyPhoneResponse:
    """
    Verify the phone code for a pass.

    Rejected codes return 400 with the failure kind (``not_found``,
    ``expired``, ``attempts_exhausted`` or ``code_mismatch``) and, for a
    mismatch, the remaining attempts in ``details``.
    """
    pass_ = await service.verify(request.passId, request.code)

    logger.info(
        "Phone verified",
        pass_id=str(pass_.id),
        correlation_id=get_correlation_id(http_request)
    )

    return VerifyPhoneResponse(
        success=True,
        passId=pass_.id,
        message="Phone number verified successfully"
    )


@router.post("/complete", response_model=CompletePassResponse)
@trace_function("complete_pass_endpoint")
async def complete_pass(
    request: CompletePassRequest,
    http_request: Request,
    service: WalletPassService = Depends(get_wallet_pass_service)
) -> CompletePassResponse:
    """Set the fan name on a verified pass and return its download links."""
    result = await service.complete(request.passId, request.fanName)

    logger.info(
        "Pass completed",
        pass_id=str(result.pass_.id),
        fan_id=result.pass_.fan_id,
        correlation_id=get_correlation_id(http_request)
    )

    return CompletePassResponse(
        success=True,
        passId=result.pass_.id,
        fanName=result.pass_.fan_name,
        artistName=result.pass_.artist_name,
        tierName=result.pass_.tier_name,
        downloadUrls=result.download_urls
    )


@router.get("/{pass_id}", response_model=PassDetailsResponse)
async def get_pass(
    pass_id: UUID,
    service: WalletPassService = Depends(get_wallet_pass_service)
) -> PassDetailsResponse:
    details = await service.get_pass_details(pass_id)
    pass_ = details.pass_

    platforms = {}
    for platform, device in details.platforms.items():
        if device is None:
            platforms[platform] = PlatformInfo(installed=False)
        else:
            platforms[platform] = PlatformInfo(
                installed=True,
                deviceId=device.device_id,
                lastUpdated=device.registered_at
            )

    return PassDetailsResponse(
        passId=pass_.id,
        fanName=pass_.fan_name,
        fanId=pass_.fan_id,
        artistName=pass_.artist_name,
        tierName=pass_.tier_name,
        status=pass_.status.value,
        phoneVerified=pass_.phone_verified,
        platforms=platforms,
        createdAt=pass_.created_at,
        verifiedAt=pass_.verified_at
    )


@router.get("/{pass_id}/download")
@trace_function("download_pass_endpoint")
async def download_pass(
    pass_id: UUID,
    http_request: Request,
    platform: Optional[str] = Query(None, description="Explicit platform: apple, ios, google or android"),
    service: WalletPassService = Depends(get_wallet_pass_service)
) -> Response:
    """
    Download a pass for the detected wallet platform.

    Platform is taken from ``?platform=`` when valid, otherwise inferred
    from the User-Agent header. File-delivery platforms stream the pass file;
    URL-delivery platforms answer with a 302 redirect to the save URL.
    """
    result = await service.download(pass_id, platform, http_request.headers.get("User-Agent"))
    detection = result.detection

    headers = {
        "X-Platform-Detected": detection.platform.value,
        "X-Detection-Method": detection.method.value,
        "X-Detection-Confidence": f"{detection.confidence:.2f}"
    }
    if result.low_confidence:
        headers["X-Detection-Warning"] = "low-confidence"

    logger.info(
        "Pass download",
        pass_id=str(pass_id),
        platform=detection.platform.value,
        method=detection.method.value,
        confidence=detection.confidence,
        redirect=result.pass_file.is_redirect,
        correlation_id=get_correlation_id(http_request)
    )

    pass_file = result.pass_file
    if pass_file.is_redirect:
        return RedirectResponse(url=pass_file.redirect_url, status_code=302, headers=headers)

    headers["Content-Disposition"] = content_disposition(pass_file.filename)
    return Response(content=pass_file.data, media_type=pass_file.content_type, headers=headers)


@router.post("/{pass_id}/devices", response_model=RegisterDeviceResponse)
async def register_device(
    pass_id: UUID,
    request: RegisterDeviceRequest,
    service: WalletPassService = Depends(get_wallet_pass_service)
) -> RegisterDeviceResponse:
    """Device registration callback from a wallet app."""
    registered = await service.register_device(
        pass_id, request.platform, request.deviceId, request.pushToken
    )
    return RegisterDeviceResponse(
        registered=registered,
        passId=pass_id,
        platform=Platform.parse(request.platform).value
    )


@router.post("/{pass_id}/notify", response_model=NotificationResponse)
@trace_function("notify_pass_endpoint")
async def notify_pass(
    pass_id: UUID,
    request: SendNotificationRequest,
    http_request: Request,
    service: WalletPassService = Depends(get_wallet_pass_service)
) -> NotificationResponse:
    """
    Push an update notification to every device registered for the pass.

    One failing platform is reported in ``details`` and never fails the call.
    """
    result = await service.notify(pass_id, request.message)

    logger.info(
        "Pass notification sent",
        pass_id=str(pass_id),
        delivered=result.delivered,
        correlation_id=get_correlation_id(http_request)
    )

    return NotificationResponse(
        success=result.success,
        delivered=result.delivered,
        details={
            platform: {
                "deviceId": detail.device_id,
                "sentAt": detail.sent_at,
                "status": detail.status,
                "error": detail.error
            }
            for platform, detail in result.details.items()
        }
    )
