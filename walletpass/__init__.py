"""Wallet pass issuance service."""

__version__ = "1.0.0"
