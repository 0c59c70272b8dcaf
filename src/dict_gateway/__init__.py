"""Audited, rate-limited gateway client for the third-party dictionary API."""

__version__ = "0.1.0"
