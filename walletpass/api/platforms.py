"""
Catalog and platform diagnostic endpoints.
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request

from walletpass.models.api_models import ArtistResponse, DetectionResponse
from walletpass.services.wallet_pass_service import WalletPassService, get_wallet_pass_service

logger = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["platforms"])


@router.get("/artists", response_model=List[ArtistResponse])
async def list_artists(
    service: WalletPassService = Depends(get_wallet_pass_service)
) -> List[ArtistResponse]:
    return [
        ArtistResponse(
            id=artist.id,
            name=artist.name,
            tierName=artist.tier_name,
            logoUrl=artist.logo_url,
            backgroundUrl=artist.background_url
        )
        for artist in service.list_artists()
    ]


@router.get("/platforms")
async def platform_requirements(
    service: WalletPassService = Depends(get_wallet_pass_service)
) -> Dict[str, Any]:
    """Setup requirements for every registered wallet platform."""
    return service.platform_requirements()


@router.get("/platform/detect", response_model=DetectionResponse)
async def detect_platform(
    http_request: Request,
    platform: Optional[str] = Query(None, description="Explicit platform hint"),
    service: WalletPassService = Depends(get_wallet_pass_service)
) -> DetectionResponse:
    """
    Show how the service would route a download from this client.

    Diagnostic only: nothing is stored and no pass is generated.
    """
    user_agent = http_request.headers.get("User-Agent", "")
    detection, info, low_confidence = service.detect(platform, user_agent)

    if low_confidence:
        recommendation = "Prompt the user to choose Apple Wallet or Google Wallet"
        warning = (
            f"Low confidence detection ({detection.confidence:.0%}). "
            f"Consider showing a platform selector."
        )
    else:
        recommendation = f"Serve the {detection.platform.value} pass"
        warning = None

    logger.debug(
        "Platform detection diagnostic",
        platform=detection.platform.value,
        method=detection.method.value,
        confidence=detection.confidence
    )

    return DetectionResponse(
        platform=detection.platform.value,
        confidence=detection.confidence,
        method=detection.method.value,
        source=detection.source,
        userAgent=info.signature,
        isDesktop=info.is_desktop,
        isMobile=info.is_mobile,
        isBot=info.is_bot,
        browser=info.browser_family,
        os=info.os_family,
        recommendation=recommendation,
        shouldPromptUser=low_confidence,
        warning=warning
    )
