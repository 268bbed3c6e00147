"""
Tests for the wallet pass orchestration service.
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, Mock, patch
from uuid import UUID, uuid4

import pytest

from walletpass.clients.apple_wallet import AppleWalletBackend
from walletpass.clients.google_wallet import GoogleWalletBackend
from walletpass.exceptions import (
    BackendFailureError,
    ErrorKind,
    InvalidPhoneNumberError,
    NoDevicesRegisteredError,
    PassNotFoundError,
    PreconditionFailedError,
    UnknownArtistError,
    VerificationFailedError,
)
from walletpass.models.internal_models import DetectionMethod, NotificationDetail, PassStatus, Platform
from walletpass.services.pass_store import PassStore
from walletpass.services.platform_detector import PlatformDetector
from walletpass.services.platform_registry import PlatformRegistry
from walletpass.services.verification_ledger import VerificationLedger
from walletpass.services.wallet_pass_service import WalletPassService, get_wallet_pass_service
from walletpass.utils.phone_utils import normalize_phone_number

VOILA_ID = UUID("a1b2c3d4-e5f6-4789-a1b2-c3d4e5f67890")
CODE = "123456"


class TestWalletPassService:
    """Test cases for WalletPassService."""

    @pytest.fixture
    def registry(self):
        return PlatformRegistry(
            [AppleWalletBackend(), GoogleWalletBackend()],
            default_platform=Platform.APPLE,
            timeout_seconds=1.0
        )

    @pytest.fixture
    def service(self, clock, registry):
        return WalletPassService(
            ledger=VerificationLedger(ttl_seconds=600, max_attempts=3, clock=clock, code_generator=lambda: CODE),
            store=PassStore(clock=clock),
            detector=PlatformDetector(default_platform=Platform.APPLE),
            registry=registry
        )

    @pytest.fixture
    async def verified_pass(self, service):
        result = await service.initiate("+1", "5551234567", VOILA_ID)
        return await service.verify(result.pass_.id, CODE)

    @pytest.mark.asyncio
    async def test_initiate(self, service):
        result = await service.initiate("+1", "(555) 123-4567", VOILA_ID)

        assert result.code == CODE
        assert result.expires_in == 600
        assert result.masked_phone == "+15***4567"
        assert result.pass_.status == PassStatus.PENDING
        assert result.pass_.full_phone_number == "+15551234567"
        assert len(service.ledger) == 1

    @pytest.mark.asyncio
    async def test_initiate_adds_plus_to_country_code(self, service):
        result = await service.initiate("44", "7700900123", VOILA_ID)
        assert result.pass_.country_code == "+44"

    @pytest.mark.asyncio
    async def test_initiate_keys_ledger_by_normalized_number(self, service):
        with patch(
            "walletpass.services.wallet_pass_service.normalize_phone_number",
            wraps=normalize_phone_number
        ) as normalize:
            await service.initiate("1", "555.123.4567", VOILA_ID)

        normalize.assert_called_once_with("+1", "5551234567")
        assert "+15551234567" in service.ledger._entries

    @pytest.mark.asyncio
    async def test_initiate_invalid_phone(self, service):
        with pytest.raises(InvalidPhoneNumberError):
            await service.initiate("+1", "12ab", VOILA_ID)
        assert len(service.ledger) == 0

    @pytest.mark.asyncio
    async def test_initiate_unknown_artist_issues_no_code(self, service):
        with pytest.raises(UnknownArtistError):
            await service.initiate("+1", "5551234567", uuid4())
        assert len(service.ledger) == 0

    @pytest.mark.asyncio
    async def test_initiate_never_logs_full_number(self, service, caplog):
        with caplog.at_level("INFO"):
            await service.initiate("+1", "5551234567", VOILA_ID)
        assert "5551234567" not in caplog.text

    @pytest.mark.asyncio
    async def test_verify(self, service):
        initiated = await service.initiate("+1", "5551234567", VOILA_ID)

        verified = await service.verify(initiated.pass_.id, CODE)

        assert verified.phone_verified is True
        assert verified.status == PassStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_verify_unknown_pass_skips_ledger(self, service):
        service.ledger.validate_code = AsyncMock()

        with pytest.raises(PassNotFoundError):
            await service.verify(uuid4(), CODE)
        service.ledger.validate_code.assert_not_called()

    @pytest.mark.asyncio
    async def test_verify_wrong_code(self, service):
        initiated = await service.initiate("+1", "5551234567", VOILA_ID)

        with pytest.raises(VerificationFailedError) as exc_info:
            await service.verify(initiated.pass_.id, "000000")

        assert exc_info.value.kind == ErrorKind.CODE_MISMATCH
        assert exc_info.value.remaining_attempts == 2
        assert exc_info.value.details == {"remaining_attempts": 2}
        assert (await service.store.get_pass(initiated.pass_.id)).phone_verified is False

    @pytest.mark.asyncio
    async def test_verify_exhausted(self, service):
        initiated = await service.initiate("+1", "5551234567", VOILA_ID)
        for _ in range(3):
            with pytest.raises(VerificationFailedError):
                await service.verify(initiated.pass_.id, "000000")

        with pytest.raises(VerificationFailedError) as exc_info:
            await service.verify(initiated.pass_.id, CODE)
        assert exc_info.value.kind == ErrorKind.ATTEMPTS_EXHAUSTED

    @pytest.mark.asyncio
    async def test_verify_expired(self, service, clock):
        initiated = await service.initiate("+1", "5551234567", VOILA_ID)
        clock.advance(601)

        with pytest.raises(VerificationFailedError) as exc_info:
            await service.verify(initiated.pass_.id, CODE)
        assert exc_info.value.kind == ErrorKind.EXPIRED

    @pytest.mark.asyncio
    async def test_verify_twice_is_not_found(self, service, verified_pass):
        with pytest.raises(VerificationFailedError) as exc_info:
            await service.verify(verified_pass.id, CODE)
        assert exc_info.value.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_complete(self, service, verified_pass):
        result = await service.complete(verified_pass.id, "Ada Lovelace")

        assert result.pass_.fan_name == "Ada Lovelace"
        assert result.download_urls == {
            "apple": f"/api/pass/{verified_pass.id}/download?platform=apple",
            "google": f"/api/pass/{verified_pass.id}/download?platform=google"
        }

    @pytest.mark.asyncio
    async def test_complete_before_verify(self, service):
        initiated = await service.initiate("+1", "5551234567", VOILA_ID)

        with pytest.raises(PreconditionFailedError):
            await service.complete(initiated.pass_.id, "Ada Lovelace")

    @pytest.mark.asyncio
    async def test_end_to_end_iphone_download(self, service, user_agents):
        initiated = await service.initiate("+1", "5551234567", VOILA_ID)
        await service.verify(initiated.pass_.id, initiated.code)
        await service.complete(initiated.pass_.id, "Ada Lovelace")

        result = await service.download(initiated.pass_.id, None, user_agents["iphone"])

        assert result.detection.platform == Platform.APPLE
        assert result.detection.method == DetectionMethod.SIGNAL_MATCH
        assert result.low_confidence is False
        assert result.pass_file.is_redirect is False
        assert result.pass_file.filename.endswith(".pkpass")
        assert b"Ada Lovelace" in result.pass_file.data

    @pytest.mark.asyncio
    async def test_end_to_end_explicit_google_download(self, service, verified_pass, user_agents):
        result = await service.download(verified_pass.id, "google", user_agents["iphone"])

        assert result.detection.platform == Platform.GOOGLE
        assert result.detection.method == DetectionMethod.EXPLICIT_PARAMETER
        assert result.pass_file.is_redirect is True

    @pytest.mark.asyncio
    async def test_download_low_confidence_flag(self, service, verified_pass, user_agents):
        result = await service.download(verified_pass.id, None, user_agents["windows_chrome"])

        assert result.detection.platform == Platform.GOOGLE
        assert result.low_confidence is True

    @pytest.mark.asyncio
    async def test_download_before_verify_touches_nothing(self, service):
        initiated = await service.initiate("+1", "5551234567", VOILA_ID)
        service.detector = Mock()
        service.registry = Mock()
        service.registry.generate_pass = AsyncMock()

        with pytest.raises(PreconditionFailedError):
            await service.download(initiated.pass_.id, "apple", None)

        service.detector.detect.assert_not_called()
        service.registry.generate_pass.assert_not_called()

    @pytest.mark.asyncio
    async def test_download_unknown_pass(self, service):
        with pytest.raises(PassNotFoundError):
            await service.download(uuid4(), "apple", None)

    @pytest.mark.asyncio
    async def test_download_backend_failure(self, service, verified_pass):
        service.registry.resolve(Platform.APPLE).generate_pass = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(BackendFailureError):
            await service.download(verified_pass.id, "apple", None)

    @pytest.mark.asyncio
    async def test_notify_without_devices(self, service, verified_pass):
        with pytest.raises(NoDevicesRegisteredError):
            await service.notify(verified_pass.id, "Doors open at 7")

    @pytest.mark.asyncio
    async def test_notify_unknown_pass(self, service):
        with pytest.raises(PassNotFoundError):
            await service.notify(uuid4(), "Doors open at 7")

    @pytest.mark.asyncio
    async def test_notify_all_platforms(self, service, verified_pass):
        await service.register_device(verified_pass.id, "ios", "iphone-1", "apns-token")
        await service.register_device(verified_pass.id, "android", "pixel-1")

        result = await service.notify(verified_pass.id, "Doors open at 7")

        assert result.success is True
        assert result.delivered == {"apple": True, "google": True}
        assert result.details["apple"].device_id == "iphone-1"
        assert result.details["google"].status == "delivered"

    @pytest.mark.asyncio
    async def test_notify_partial_failure(self, service, verified_pass):
        await service.register_device(verified_pass.id, "apple", "iphone-1")
        await service.register_device(verified_pass.id, "google", "pixel-1")
        service.registry.resolve(Platform.APPLE).send_push_notification = AsyncMock(
            side_effect=ConnectionError("apns unreachable")
        )

        result = await service.notify(verified_pass.id, "Doors open at 7")

        assert result.success is True
        assert result.delivered == {"apple": False, "google": True}
        assert result.details["apple"].status == "failed"
        assert result.details["apple"].error is not None

    @pytest.mark.asyncio
    async def test_notify_aggregates_devices_per_platform(self, service, verified_pass):
        await service.register_device(verified_pass.id, "apple", "iphone-1")
        await service.register_device(verified_pass.id, "apple", "ipad-1")

        apple = service.registry.resolve(Platform.APPLE)

        async def flaky_push(device_id, pass_id, message):
            if device_id == "iphone-1":
                raise ConnectionError("device gone")
            return NotificationDetail(device_id=device_id, sent_at=datetime.utcnow(), status="delivered")

        apple.send_push_notification = flaky_push

        result = await service.notify(verified_pass.id, "Doors open at 7")

        assert result.delivered == {"apple": True}
        assert result.details["apple"].device_id == "ipad-1"

    @pytest.mark.asyncio
    async def test_notify_fans_out_concurrently(self, service, verified_pass):
        await service.register_device(verified_pass.id, "apple", "iphone-1")
        await service.register_device(verified_pass.id, "google", "pixel-1")
        started = []

        async def slow_push(platform, device_id, pass_id, message):
            started.append(device_id)
            await asyncio.sleep(0.2)
            return NotificationDetail(device_id=device_id, sent_at=datetime.utcnow(), status="delivered")

        with patch.object(service.registry, "send_push_notification", side_effect=slow_push):
            result = await asyncio.wait_for(service.notify(verified_pass.id, "hi"), timeout=0.35)

        assert len(started) == 2
        assert result.success is True

    @pytest.mark.asyncio
    async def test_register_device_unknown_platform(self, service, verified_pass):
        with pytest.raises(PreconditionFailedError):
            await service.register_device(verified_pass.id, "blackberry", "bb-1")

    @pytest.mark.asyncio
    async def test_register_device_unknown_pass(self, service):
        with pytest.raises(PassNotFoundError):
            await service.register_device(uuid4(), "apple", "iphone-1")

    @pytest.mark.asyncio
    async def test_get_pass_details(self, service, verified_pass):
        await service.register_device(verified_pass.id, "apple", "iphone-1")

        details = await service.get_pass_details(verified_pass.id)

        assert details.pass_.id == verified_pass.id
        assert details.platforms["apple"].device_id == "iphone-1"
        assert details.platforms["google"] is None

    def test_detect_has_no_side_effects(self, service, user_agents):
        detection, info, low_confidence = service.detect(None, user_agents["mac_safari"])

        assert detection.platform == Platform.APPLE
        assert detection.confidence == 0.75
        assert info.os_family == "macOS"
        assert low_confidence is False
        assert len(service.ledger) == 0

    def test_list_artists(self, service):
        assert [artist.id for artist in service.list_artists()] == [VOILA_ID]

    def test_platform_requirements(self, service):
        assert set(service.platform_requirements()) == {"apple", "google"}


class TestGetWalletPassService:
    """Test cases for the global service accessor."""

    def test_returns_singleton(self):
        assert get_wallet_pass_service() is get_wallet_pass_service()


class TestCollaboratorInjection:
    """Injected collaborators are used as given, even when empty."""

    @pytest.fixture
    def registry_backends(self):
        return [AppleWalletBackend(), GoogleWalletBackend()]

    def test_empty_ledger_is_kept(self):
        ledger = VerificationLedger(code_generator=lambda: CODE)
        assert len(ledger) == 0

        assert WalletPassService(ledger=ledger).ledger is ledger

    def test_injected_collaborators_are_kept(self, registry_backends):
        store = PassStore()
        detector = PlatformDetector(default_platform=Platform.GOOGLE)
        registry = PlatformRegistry(registry_backends, default_platform=Platform.GOOGLE)

        service = WalletPassService(store=store, detector=detector, registry=registry)

        assert service.store is store
        assert service.detector is detector
        assert service.registry is registry

    @pytest.mark.asyncio
    async def test_injected_ledger_issues_codes(self):
        service = WalletPassService(ledger=VerificationLedger(code_generator=lambda: CODE))

        result = await service.initiate("+1", "5551234567", VOILA_ID)

        assert result.code == CODE
        assert len(service.ledger) == 1
