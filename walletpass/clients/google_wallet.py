"""
Google Wallet backend.

Produces a URL-delivery artifact: a save-to-wallet link carrying the pass
object as an unsigned JWT (alg "none") encoded with PyJWT. Production
issuance signs the token with a service account key and updates passes via the Wallet Objects REST API.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

import jwt

from walletpass.config import settings
from walletpass.clients.wallet_backend import WalletBackend
from walletpass.models.internal_models import NotificationDetail, Pass, PassFile

logger = logging.getLogger(__name__)

SAVE_URL_BASE = "https://pay.google.com/gp/v/save/"
GOOGLE_MANAGED_DEVICE = "google-managed"


class GoogleWalletBackend(WalletBackend):
    """Google Wallet (Android) pass issuance."""

    def __init__(
        self,
        issuer_id: Optional[str] = None,
        service_account: Optional[str] = None,
        latency_seconds: float = 0.0
    ):
        self.issuer_id = issuer_id or settings.google_issuer_id
        self.service_account = service_account or settings.google_service_account
        self.latency_seconds = latency_seconds

    @property
    def platform_name(self) -> str:
        return "google"

    def object_id(self, pass_id: UUID) -> str:
        return f"{self.issuer_id}.{pass_id}"

    async def generate_pass(self, pass_: Pass) -> PassFile:
        logger.info(f"Generating Google Wallet pass for {pass_.id}")
        await asyncio.sleep(self.latency_seconds)

        save_url = f"{SAVE_URL_BASE}{self.build_save_token(pass_)}"

        logger.info(f"Generated Google Wallet save URL for pass {pass_.id}")
        return PassFile(
            filename="google-wallet-redirect",
            content_type="text/plain",
            data=save_url.encode("utf-8"),
            redirect_url=save_url
        )

    def build_save_token(self, pass_: Pass) -> str:
        """Unsigned save-to-wallet token: header.claims with an empty signature."""
        claims = {
            "iss": self.service_account,
            "aud": "google",
            "typ": "savetowallet",
            "iat": int(time.time()),
            "payload": {
                "genericObjects": [
                    {
                        "id": self.object_id(pass_.id),
                        "classId": f"{self.issuer_id}.{pass_.artist_name.lower()}",
                        "state": "ACTIVE",
                        "cardTitle": {"defaultValue": {"language": "en-US", "value": pass_.tier_name}},
                        "header": {"defaultValue": {"language": "en-US", "value": "FAN"}},
                        "subheader": {"defaultValue": {"language": "en-US", "value": pass_.fan_name}},
                        "textModulesData": [{"id": "fanId", "header": "ID", "body": pass_.fan_id}]
                    }
                ]
            }
        }
        return jwt.encode(claims, None, algorithm="none")

    async def send_push_notification(self, device_id: str, pass_id: UUID, message: str) -> NotificationDetail:
        # Google propagates object updates to every device itself
        logger.info(f"Would PATCH Google Wallet object {self.object_id(pass_id)} with a message")
        await asyncio.sleep(self.latency_seconds)
        return NotificationDetail(
            device_id=GOOGLE_MANAGED_DEVICE,
            sent_at=datetime.utcnow(),
            status="delivered"
        )

    async def register_device(self, pass_id: UUID, device_id: str, push_token: Optional[str] = None) -> bool:
        logger.info(f"Google Wallet device registration handled by Google for pass {pass_id}")
        return True

    def describe_requirements(self) -> Dict[str, Any]:
        return {
            "platform": "Google Wallet (Android)",
            "fileFormat": "JWT token (URL-based, no file download)",
            "serviceAccount": {
                "type": "Google Cloud Service Account",
                "format": "JSON key file",
                "permissions": "Wallet Objects API - Issuer",
                "purpose": "Signs JWT tokens and authenticates API calls"
            },
            "issuerId": {
                "type": "Google Wallet Issuer ID",
                "format": "Numeric ID",
                "obtainFrom": "Google Pay & Wallet Console -> API access"
            },
            "apiAccess": {
                "baseUrl": "https://walletobjects.googleapis.com/walletobjects/v1",
                "authentication": "OAuth 2.0 with service account",
                "scopes": ["https://www.googleapis.com/auth/wallet_object.issuer"]
            },
            "updateMechanism": "REST API (PATCH object) - no push notifications needed",
            "documentation": "https://developers.google.com/wallet"
        }
