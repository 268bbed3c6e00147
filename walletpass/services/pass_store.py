"""
Pass store for wallet pass records and device registrations.

Enforces the pass lifecycle: a pass is created pending, becomes active exactly
once when its phone number is verified, and only a verified pass can be
completed with a fan name.
"""

import logging
import secrets
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import UUID, uuid4

from walletpass.exceptions import (
    AlreadyVerifiedError,
    PassNotFoundError,
    PreconditionFailedError,
    UnknownArtistError,
)
from walletpass.models.internal_models import (
    ArtistTemplate,
    DeviceRegistration,
    Pass,
    PassStatus,
)
from walletpass.utils.keyed_lock import KeyedLock

logger = logging.getLogger(__name__)

PENDING_FAN_NAME = "Pending"

VOILA_TEMPLATE = ArtistTemplate(
    id=UUID("a1b2c3d4-e5f6-4789-a1b2-c3d4e5f67890"),
    name="VOILÀ",
    tier_name="Magician Pass",
    logo_url="https://placehold.co/400x400/6366f1/white?text=VOILA",
    background_url="https://placehold.co/600x400/4338ca/white?text=Magician+Pass"
)


def generate_fan_id() -> str:
    """Random 7-digit public fan identifier."""
    return str(1000000 + secrets.randbelow(9000000))


class ArtistCatalog:
    """Read-only lookup of artist pass templates."""

    def __init__(self, templates: Optional[List[ArtistTemplate]] = None):
        templates = templates if templates is not None else [VOILA_TEMPLATE]
        self._templates: Dict[UUID, ArtistTemplate] = {t.id: t for t in templates}

    def get_artist(self, artist_id: UUID) -> Optional[ArtistTemplate]:
        return self._templates.get(artist_id)

    def list_artists(self) -> List[ArtistTemplate]:
        return list(self._templates.values())


class PassStore:
    """
    In-memory repository for passes and their device registrations.

    Pass records are immutable values; every update swaps in a new record
    while holding that pass's lock, so concurrent callers never interleave a
    read-modify-write on the same pass.
    """

    def __init__(
        self,
        catalog: Optional[ArtistCatalog] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        fan_id_generator: Callable[[], str] = generate_fan_id
    ):
        self.catalog = catalog if catalog is not None else ArtistCatalog()
        self._clock = clock
        self._generate_fan_id = fan_id_generator
        self._passes: Dict[UUID, Pass] = {}
        self._devices: Dict[UUID, Dict[str, DeviceRegistration]] = {}
        self._fan_ids: set = set()
        self._locks = KeyedLock()

    async def create_pass(self, country_code: str, national_number: str, artist_id: UUID) -> Pass:
        """
        Create a pending, unverified pass.

        Raises:
            UnknownArtistError: If the artist is not in the catalog
        """
        artist = self.catalog.get_artist(artist_id)
        if artist is None:
            raise UnknownArtistError(f"Artist with ID {artist_id} not found")

        fan_id = self._allocate_fan_id()
        pass_ = Pass(
            id=uuid4(),
            fan_name=PENDING_FAN_NAME,
            country_code=country_code,
            national_number=national_number,
            fan_id=fan_id,
            artist_id=artist.id,
            artist_name=artist.name,
            tier_name=artist.tier_name,
            logo_url=artist.logo_url,
            background_url=artist.background_url,
            status=PassStatus.PENDING,
            phone_verified=False,
            created_at=self._clock()
        )

        self._passes[pass_.id] = pass_
        self._devices[pass_.id] = {}

        logger.info(f"Created pass {pass_.id} for artist {artist.name} (country: {country_code})")
        return pass_

    async def mark_verified(self, pass_id: UUID) -> Pass:
        """
        Record a successful phone verification. Succeeds exactly once per pass.

        Raises:
            PassNotFoundError: If the pass does not exist
            AlreadyVerifiedError: If the pass was already verified
        """
        async with self._locks.acquire(pass_id):
            existing = self._require(pass_id)
            if existing.phone_verified:
                raise AlreadyVerifiedError("Pass already verified")

            updated = replace(
                existing,
                phone_verified=True,
                status=PassStatus.ACTIVE,
                verified_at=self._clock()
            )
            self._passes[pass_id] = updated

        logger.info(f"Pass {pass_id} verified")
        return updated

    async def complete_pass(self, pass_id: UUID, fan_name: str) -> Pass:
        """
        Set the fan display name on a verified pass.

        Raises:
            PassNotFoundError: If the pass does not exist
            PreconditionFailedError: If the pass has not been verified
        """
        async with self._locks.acquire(pass_id):
            existing = self._require(pass_id)
            if not existing.phone_verified:
                raise PreconditionFailedError("Pass must be verified before completing")

            updated = replace(existing, fan_name=fan_name)
            self._passes[pass_id] = updated

        logger.info(f"Pass {pass_id} completed with fan name")
        return updated

    async def get_pass(self, pass_id: UUID) -> Pass:
        """
        Raises:
            PassNotFoundError: If the pass does not exist
        """
        return self._require(pass_id)

    async def register_device(
        self,
        pass_id: UUID,
        platform: str,
        device_id: str,
        push_token: Optional[str] = None
    ) -> bool:
        """Register (or refresh) a device for a pass. Returns False for unknown passes."""
        async with self._locks.acquire(pass_id):
            devices = self._devices.get(pass_id)
            if devices is None:
                logger.warning(f"Cannot register device for non-existent pass {pass_id}")
                return False

            registration = DeviceRegistration(
                platform=platform,
                device_id=device_id,
                push_token=push_token,
                registered_at=self._clock()
            )
            devices[registration.key] = registration

        logger.info(f"Registered {platform} device {device_id} for pass {pass_id}")
        return True

    async def list_devices(self, pass_id: UUID) -> Dict[str, DeviceRegistration]:
        """Copy of the registrations for a pass, empty when there are none."""
        return dict(self._devices.get(pass_id, {}))

    def _require(self, pass_id: UUID) -> Pass:
        pass_ = self._passes.get(pass_id)
        if pass_ is None:
            raise PassNotFoundError(f"Pass {pass_id} not found")
        return pass_

    def _allocate_fan_id(self) -> str:
        fan_id = self._generate_fan_id()
        while fan_id in self._fan_ids:
            fan_id = self._generate_fan_id()
        self._fan_ids.add(fan_id)
        return fan_id
