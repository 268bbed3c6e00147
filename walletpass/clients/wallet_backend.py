"""
Shared contract for wallet backends.

Each wallet ecosystem issues passes in a fundamentally different way (a
signed file download vs. a save-to-wallet URL). Backends hide that behind one
interface so the routing and API layers stay platform-agnostic.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from uuid import UUID

from walletpass.models.internal_models import NotificationDetail, Pass, PassFile


class WalletBackend(ABC):
    """Abstract wallet backend for a single platform."""

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """Platform identifier ("apple", "google", ...)."""

    @abstractmethod
    async def generate_pass(self, pass_: Pass) -> PassFile:
        """
        Build the platform artifact for a pass.

        Returns:
            PassFile carrying file bytes, plus ``redirect_url`` for
            URL-delivery platforms

        Raises:
            BackendFailureError: If the artifact cannot be produced
        """

    @abstractmethod
    async def send_push_notification(self, device_id: str, pass_id: UUID, message: str) -> NotificationDetail:
        """
        Ask the platform to refresh a pass on a device.

        Raises:
            BackendFailureError: If the platform rejects the update
        """

    @abstractmethod
    async def register_device(self, pass_id: UUID, device_id: str, push_token: Optional[str] = None) -> bool:
        """Handle the platform's device registration callback."""

    @abstractmethod
    def describe_requirements(self) -> Dict[str, Any]:
        """Setup and production requirements for this platform (documentation only)."""
