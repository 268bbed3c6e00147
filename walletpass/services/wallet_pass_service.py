"""
Wallet pass service orchestrating the pass issuance workflow.

This module provides the business logic for:
- Initiating a pass with SMS-style phone verification
- Verifying the phone code and activating the pass
- Completing the pass with the fan's display name
- Routing downloads to the right wallet backend
- Fanning out pass update notifications to registered devices
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from walletpass.config import Settings, settings as default_settings
from walletpass.clients.apple_wallet import AppleWalletBackend
from walletpass.clients.google_wallet import GoogleWalletBackend
from walletpass.exceptions import (
    BackendFailureError,
    InvalidPhoneNumberError,
    NoDevicesRegisteredError,
    PreconditionFailedError,
    UnknownArtistError,
    VerificationFailedError,
)
from walletpass.models.internal_models import (
    ArtistTemplate,
    ClientSignatureInfo,
    DeviceRegistration,
    NotificationDetail,
    Pass,
    PassFile,
    Platform,
    PlatformDetectionResult,
)
from walletpass.observability import (
    record_code_issued,
    record_download_metrics,
    record_notification_metrics,
    record_verification_metrics,
)
from walletpass.services.pass_store import PassStore
from walletpass.services.platform_detector import PlatformDetector, is_low_confidence
from walletpass.services.platform_registry import PlatformRegistry
from walletpass.services.verification_ledger import VerificationLedger
from walletpass.utils.phone_utils import (
    is_valid_phone_number,
    mask_phone_number,
    normalize_country_code,
    normalize_national_number,
    normalize_phone_number,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitiateResult:
    pass_: Pass
    code: str
    expires_in: int
    masked_phone: str


@dataclass(frozen=True)
class CompletionResult:
    pass_: Pass
    download_urls: Dict[str, str]


@dataclass(frozen=True)
class DownloadResult:
    pass_file: PassFile
    detection: PlatformDetectionResult
    low_confidence: bool


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    delivered: Dict[str, bool] = field(default_factory=dict)
    details: Dict[str, NotificationDetail] = field(default_factory=dict)


@dataclass(frozen=True)
class PassDetails:
    pass_: Pass
    platforms: Dict[str, Optional[DeviceRegistration]]


class WalletPassService:
    """
    Composes the verification ledger, pass store, platform detector and
    platform registry into the verify -> complete -> download -> notify flow.

    All state lives in the injected ledger and store; the service itself only
    enforces step order and translates outcomes into ``WalletPassError``s.
    """

    def __init__(
        self,
        ledger: Optional[VerificationLedger] = None,
        store: Optional[PassStore] = None,
        detector: Optional[PlatformDetector] = None,
        registry: Optional[PlatformRegistry] = None,
        config: Optional[Settings] = None
    ):
        """
        Initialize wallet pass service.

        Args:
            ledger: Verification ledger. If None, creates a new one.
            store: Pass store. If None, creates a new one.
            detector: Platform detector. If None, uses the configured default platform.
            registry: Platform registry. If None, registers the Apple and Google backends.
            config: Settings. If None, uses the global settings.
        """
        self.settings = config if config is not None else default_settings
        self.ledger = ledger if ledger is not None else VerificationLedger(
            ttl_seconds=self.settings.verification_code_ttl_seconds,
            max_attempts=self.settings.verification_max_attempts
        )
        self.store = store if store is not None else PassStore()
        default_platform = Platform.parse(self.settings.default_platform)
        self.detector = detector if detector is not None else PlatformDetector(default_platform=default_platform)
        self.registry = registry if registry is not None else PlatformRegistry(
            [AppleWalletBackend(), GoogleWalletBackend()],
            default_platform=default_platform,
            timeout_seconds=self.settings.backend_timeout_seconds
        )

        logger.info(
            f"Wallet pass service initialized (default platform: {default_platform.value}, "
            f"code TTL: {self.ledger.ttl_seconds}s)"
        )

    async def initiate(self, country_code: str, national_number: str, artist_id: UUID) -> InitiateResult:
        """
        Start pass creation: issue a verification code and create a pending pass.

        Raises:
            InvalidPhoneNumberError: If the phone number is malformed
            UnknownArtistError: If the artist does not exist
        """
        country_code = normalize_country_code(country_code)
        national_number = normalize_national_number(national_number)
        phone_number = normalize_phone_number(country_code, national_number)
        masked = mask_phone_number(phone_number)
        logger.info(f"Initiating pass creation for {masked}")

        if not is_valid_phone_number(phone_number):
            raise InvalidPhoneNumberError(f"Phone number {masked} is not in international format")

        # No code goes out for a pass that cannot be created
        if self.store.catalog.get_artist(artist_id) is None:
            raise UnknownArtistError(f"Artist with ID {artist_id} not found")

        code = await self.ledger.issue_code(phone_number)
        record_code_issued(country_code)

        pass_ = await self.store.create_pass(country_code, national_number, artist_id)

        return InitiateResult(
            pass_=pass_,
            code=code,
            expires_in=self.ledger.ttl_seconds,
            masked_phone=masked
        )

    async def verify(self, pass_id: UUID, code: str) -> Pass:
        """
        Verify the phone code for a pass and activate it.

        Raises:
            PassNotFoundError: If the pass does not exist
            VerificationFailedError: If the code is rejected
            AlreadyVerifiedError: If the pass was already verified
        """
        logger.info(f"Verifying pass {pass_id}")
        pass_ = await self.store.get_pass(pass_id)

        result = await self.ledger.validate_code(pass_.full_phone_number, code)
        if not result.success:
            record_verification_metrics(False, result.error.value)
            raise VerificationFailedError(
                result.message,
                kind=result.error,
                remaining_attempts=result.remaining_attempts
            )

        record_verification_metrics(True, "verified")
        return await self.store.mark_verified(pass_id)

    async def complete(self, pass_id: UUID, fan_name: str) -> CompletionResult:
        """
        Set the fan name on a verified pass and return its download links.

        Raises:
            PassNotFoundError: If the pass does not exist
            PreconditionFailedError: If the pass has not been verified
        """
        logger.info(f"Completing pass {pass_id} with fan name")
        pass_ = await self.store.get_pass(pass_id)
        self._require_verified(pass_, "completing")

        updated = await self.store.complete_pass(pass_id, fan_name)
        return CompletionResult(pass_=updated, download_urls=self.download_urls(pass_id))

    async def download(
        self,
        pass_id: UUID,
        explicit_hint: Optional[str] = None,
        client_signature: Optional[str] = None
    ) -> DownloadResult:
        """
        Produce the platform-specific artifact for a verified pass.

        Raises:
            PassNotFoundError: If the pass does not exist
            PreconditionFailedError: If the pass has not been verified
            BackendFailureError: If the wallet backend fails
        """
        pass_ = await self.store.get_pass(pass_id)
        self._require_verified(pass_, "downloading")

        detection = self.detector.detect(explicit_hint, client_signature)
        low_confidence = is_low_confidence(detection, self.settings.low_confidence_threshold)

        logger.info(
            f"Pass {pass_id} download: platform={detection.platform.value}, "
            f"method={detection.method.value}, confidence={detection.confidence:.0%}, "
            f"source={detection.source}"
        )
        if low_confidence:
            logger.warning(
                f"Low confidence platform detection ({detection.confidence:.0%}) for pass {pass_id}. "
                f"Consider prompting the user."
            )
        record_download_metrics(detection, low_confidence)

        pass_file = await self.registry.generate_pass(detection.platform, pass_)
        return DownloadResult(pass_file=pass_file, detection=detection, low_confidence=low_confidence)

    async def notify(self, pass_id: UUID, message: str) -> NotificationResult:
        """
        Send an update notification to every device registered for a pass.

        A failing platform is reported in the result; it never fails the call.

        Raises:
            PassNotFoundError: If the pass does not exist
            NoDevicesRegisteredError: If no devices are registered
        """
        logger.info(f"Sending notification to pass {pass_id}")
        await self.store.get_pass(pass_id)

        devices = await self.store.list_devices(pass_id)
        if not devices:
            raise NoDevicesRegisteredError("No devices registered for this pass")

        registrations = list(devices.values())
        outcomes = await asyncio.gather(
            *(self._push(device, pass_id, message) for device in registrations)
        )

        delivered: Dict[str, bool] = {}
        details: Dict[str, NotificationDetail] = {}
        for device, detail in outcomes:
            ok = detail.status == "delivered"
            # Any delivered device marks the platform as delivered
            delivered[device.platform] = delivered.get(device.platform, False) or ok
            if ok or device.platform not in details:
                details[device.platform] = detail
            record_notification_metrics(device.platform, ok)

        return NotificationResult(
            success=any(delivered.values()),
            delivered=delivered,
            details=details
        )

    async def register_device(
        self,
        pass_id: UUID,
        platform: str,
        device_id: str,
        push_token: Optional[str] = None
    ) -> bool:
        """
        Handle a wallet's device registration callback.

        Raises:
            PassNotFoundError: If the pass does not exist
            PreconditionFailedError: If the platform is not supported
        """
        await self.store.get_pass(pass_id)
        parsed = Platform.parse(platform)
        if parsed == Platform.UNKNOWN:
            raise PreconditionFailedError(f"Unsupported platform: {platform}")

        accepted = await self.registry.register_device(parsed, pass_id, device_id, push_token)
        if not accepted:
            return False
        return await self.store.register_device(pass_id, parsed.value, device_id, push_token)

    async def get_pass_details(self, pass_id: UUID) -> PassDetails:
        """
        Raises:
            PassNotFoundError: If the pass does not exist
        """
        pass_ = await self.store.get_pass(pass_id)
        devices = await self.store.list_devices(pass_id)

        platforms: Dict[str, Optional[DeviceRegistration]] = {
            platform.value: None for platform in self.registry.platforms
        }
        for device in devices.values():
            current = platforms.get(device.platform)
            if current is None or device.registered_at >= current.registered_at:
                platforms[device.platform] = device

        return PassDetails(pass_=pass_, platforms=platforms)

    def detect(
        self,
        explicit_hint: Optional[str] = None,
        client_signature: Optional[str] = None
    ) -> Tuple[PlatformDetectionResult, ClientSignatureInfo, bool]:
        """Diagnostic detection with signature classification. No side effects."""
        detection = self.detector.detect(explicit_hint, client_signature)
        info = self.detector.describe_signature(client_signature)
        return detection, info, is_low_confidence(detection, self.settings.low_confidence_threshold)

    def list_artists(self) -> List[ArtistTemplate]:
        return self.store.catalog.list_artists()

    def platform_requirements(self) -> Dict[str, Any]:
        return self.registry.requirements()

    def download_urls(self, pass_id: UUID) -> Dict[str, str]:
        return {
            platform.value: f"/api/pass/{pass_id}/download?platform={platform.value}"
            for platform in self.registry.platforms
        }

    async def _push(
        self,
        device: DeviceRegistration,
        pass_id: UUID,
        message: str
    ) -> Tuple[DeviceRegistration, NotificationDetail]:
        try:
            detail = await self.registry.send_push_notification(
                Platform.parse(device.platform), device.device_id, pass_id, message
            )
        except BackendFailureError as e:
            logger.warning(f"Notification to {device.platform} device {device.device_id} failed: {e.message}")
            detail = NotificationDetail(
                device_id=device.device_id,
                sent_at=None,
                status="failed",
                error=e.message
            )
        return device, detail

    @staticmethod
    def _require_verified(pass_: Pass, action: str) -> None:
        if not pass_.phone_verified:
            raise PreconditionFailedError(f"Pass must be verified before {action}")


# Global service instance
_wallet_pass_service: Optional[WalletPassService] = None


def get_wallet_pass_service() -> WalletPassService:
    """
    Get the global wallet pass service instance.

    Returns:
        WalletPassService: The global wallet pass service instance
    """
    global _wallet_pass_service
    if _wallet_pass_service is None:
        _wallet_pass_service = WalletPassService()
    return _wallet_pass_service
