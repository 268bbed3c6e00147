"""Business logic for verification, pass lifecycle and platform routing."""
