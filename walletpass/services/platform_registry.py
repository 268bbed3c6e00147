"""
Platform registry mapping detected platforms to wallet backends.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from walletpass.config import settings
from walletpass.clients.wallet_backend import WalletBackend
from walletpass.exceptions import BackendFailureError
from walletpass.models.internal_models import NotificationDetail, Pass, PassFile, Platform

logger = logging.getLogger(__name__)


class PlatformRegistry:
    """
    Dispatches wallet operations to the backend registered for a platform.

    Platforms without a backend (including ``UNKNOWN``) resolve to the default
    backend rather than failing.
    """

    def __init__(
        self,
        backends: Iterable[WalletBackend],
        default_platform: Optional[Platform] = None,
        timeout_seconds: Optional[float] = None
    ):
        self._backends: Dict[Platform, WalletBackend] = {}
        for backend in backends:
            self._backends[Platform.parse(backend.platform_name)] = backend

        self.default_platform = default_platform or Platform.parse(settings.default_platform)
        if self.default_platform not in self._backends:
            raise ValueError(f"No backend registered for default platform {self.default_platform.value}")

        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.backend_timeout_seconds

    @property
    def platforms(self) -> list:
        return list(self._backends)

    def resolve(self, platform: Platform) -> WalletBackend:
        backend = self._backends.get(platform)
        if backend is None:
            logger.warning(
                f"No backend for platform {platform.value}, using default {self.default_platform.value}"
            )
            backend = self._backends[self.default_platform]
        return backend

    async def generate_pass(self, platform: Platform, pass_: Pass) -> PassFile:
        """
        Generate a pass artifact on the platform's backend.

        Raises:
            BackendFailureError: If the backend fails or exceeds the timeout
        """
        backend = self.resolve(platform)
        try:
            return await asyncio.wait_for(backend.generate_pass(pass_), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"{backend.platform_name} backend timed out generating pass {pass_.id}")
            raise BackendFailureError(f"{backend.platform_name} wallet backend timed out")
        except BackendFailureError:
            raise
        except Exception as e:
            logger.error(f"{backend.platform_name} backend failed generating pass {pass_.id}: {e}")
            raise BackendFailureError(f"{backend.platform_name} wallet backend failed to generate pass")

    async def send_push_notification(
        self,
        platform: Platform,
        device_id: str,
        pass_id: UUID,
        message: str
    ) -> NotificationDetail:
        """
        Raises:
            BackendFailureError: If the backend fails or exceeds the timeout
        """
        backend = self.resolve(platform)
        try:
            return await asyncio.wait_for(
                backend.send_push_notification(device_id, pass_id, message),
                timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            raise BackendFailureError(f"{backend.platform_name} push notification timed out")
        except BackendFailureError:
            raise
        except Exception as e:
            logger.error(f"{backend.platform_name} push to device {device_id} failed: {e}")
            raise BackendFailureError(f"{backend.platform_name} push notification failed")

    async def register_device(
        self,
        platform: Platform,
        pass_id: UUID,
        device_id: str,
        push_token: Optional[str] = None
    ) -> bool:
        return await self.resolve(platform).register_device(pass_id, device_id, push_token)

    def requirements(self) -> Dict[str, Any]:
        return {
            platform.value: backend.describe_requirements()
            for platform, backend in self._backends.items()
        }
