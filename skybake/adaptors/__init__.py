"""Adaptors for third-party cloud SDKs."""
