"""
Apple Wallet backend.

Produces a file-delivery artifact: a .pkpass-shaped download whose content is
the pass.json manifest. Production issuance also needs the manifest signed
with a Pass Type ID certificate and packed into a ZIP archive, and pushes go
through APNs; neither is performed here.
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from walletpass.config import settings
from walletpass.clients.wallet_backend import WalletBackend
from walletpass.models.internal_models import NotificationDetail, Pass, PassFile

logger = logging.getLogger(__name__)

PKPASS_CONTENT_TYPE = "application/vnd.apple.pkpass"


class AppleWalletBackend(WalletBackend):
    """Apple Wallet (iOS, watchOS) pass issuance."""

    def __init__(
        self,
        pass_type_prefix: Optional[str] = None,
        team_identifier: Optional[str] = None,
        latency_seconds: float = 0.0
    ):
        self.pass_type_prefix = pass_type_prefix or settings.apple_pass_type_prefix
        self.team_identifier = team_identifier or settings.apple_team_identifier
        self.latency_seconds = latency_seconds

    @property
    def platform_name(self) -> str:
        return "apple"

    async def generate_pass(self, pass_: Pass) -> PassFile:
        logger.info(f"Generating Apple Wallet pass for {pass_.id}")
        await asyncio.sleep(self.latency_seconds)

        manifest = self.build_pass_json(pass_)
        filename = f"{pass_.artist_name.lower()}-{pass_.tier_name.lower().replace(' ', '-')}.pkpass"

        logger.info(f"Generated .pkpass file {filename} for pass {pass_.id}")
        return PassFile(
            filename=filename,
            content_type=PKPASS_CONTENT_TYPE,
            data=json.dumps(manifest, ensure_ascii=False, indent=2).encode("utf-8")
        )

    def build_pass_json(self, pass_: Pass) -> Dict[str, Any]:
        """pass.json manifest for a generic pass."""
        return {
            "formatVersion": 1,
            "passTypeIdentifier": f"{self.pass_type_prefix}.{pass_.artist_name.lower()}",
            "serialNumber": str(pass_.id),
            "teamIdentifier": self.team_identifier,
            "organizationName": "FanPad",
            "description": f"{pass_.artist_name} {pass_.tier_name}",
            "logoText": pass_.artist_name,
            "backgroundColor": "rgb(0, 0, 0)",
            "foregroundColor": "rgb(255, 255, 255)",
            "generic": {
                "primaryFields": [
                    {"key": "fanName", "label": "FAN", "value": pass_.fan_name}
                ],
                "secondaryFields": [
                    {"key": "fanId", "label": "ID", "value": pass_.fan_id}
                ]
            }
        }

    async def send_push_notification(self, device_id: str, pass_id: UUID, message: str) -> NotificationDetail:
        # APNs pushes are empty; the device fetches the updated pass itself
        logger.info(f"Sending APNs push to device {device_id} for pass {pass_id}")
        await asyncio.sleep(self.latency_seconds)
        return NotificationDetail(
            device_id=device_id,
            sent_at=datetime.utcnow(),
            status="delivered"
        )

    async def register_device(self, pass_id: UUID, device_id: str, push_token: Optional[str] = None) -> bool:
        logger.info(
            f"Device {device_id} registered for pass {pass_id} "
            f"({'with' if push_token else 'without'} push token)"
        )
        return True

    def describe_requirements(self) -> Dict[str, Any]:
        return {
            "platform": "Apple Wallet (iOS, watchOS)",
            "fileFormat": ".pkpass (signed ZIP archive)",
            "passTypeCertificate": {
                "type": "Pass Type ID Certificate",
                "format": "P12",
                "obtainFrom": "Apple Developer Portal -> Certificates, IDs & Profiles",
                "purpose": "Signs pass.json manifest to prove authenticity"
            },
            "apnsCertificate": {
                "type": "APNs Certificate or Auth Key",
                "format": "P8 (modern) or P12 (legacy)",
                "obtainFrom": "Apple Developer Portal -> Keys",
                "purpose": "Authenticates push notifications to APNs"
            },
            "teamId": "10-character Apple Developer Team ID",
            "passTypeId": f"Reverse-domain identifier (e.g., {self.pass_type_prefix}.voila)",
            "webServiceUrl": {
                "requirement": "HTTPS endpoint for pass registration and updates",
                "endpoints": [
                    "POST /v1/devices/{deviceId}/registrations/{passTypeId}/{serialNumber}",
                    "GET /v1/passes/{passTypeId}/{serialNumber}",
                    "DELETE /v1/devices/{deviceId}/registrations/{passTypeId}/{serialNumber}"
                ]
            },
            "requiredImages": [
                "logo.png (160x50 px @ 1x, 320x100 px @ 2x)",
                "icon.png (58x58 px @ 1x, 116x116 px @ 2x)",
                "Optional: background.png, strip.png, thumbnail.png"
            ],
            "documentation": "https://developer.apple.com/documentation/walletpasses"
        }
