"""Wallet backend integrations."""

from walletpass.clients.wallet_backend import WalletBackend
from walletpass.clients.apple_wallet import AppleWalletBackend
from walletpass.clients.google_wallet import GoogleWalletBackend

__all__ = [
    "WalletBackend",
    "AppleWalletBackend",
    "GoogleWalletBackend",
]
