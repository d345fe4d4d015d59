"""
Exception hierarchy for the TMDB browser core.

Remote failures (transport, HTTP status, payload shape) are raised by the
client and converted to user-facing messages by controllers and loaders.
Storage failures are raised by storage backends and absorbed by the
watchlist store.
"""

from typing import Any, Dict, Optional


class TMDBError(Exception):
    """Base error for anything that goes wrong talking to TMDB."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class TransportError(TMDBError):
    """Network failure, timeout or connection error."""

    def __init__(self, endpoint: str, reason: str):
        super().__init__(
            f"Request to {endpoint} failed: {reason}",
            details={"endpoint": endpoint},
        )
        self.endpoint = endpoint


class APIStatusError(TMDBError):
    """Non-success HTTP status with the service-provided message."""

    def __init__(self, endpoint: str, status_code: int, message: str):
        super().__init__(
            message,
            details={"endpoint": endpoint, "status_code": status_code},
        )
        self.endpoint = endpoint
        self.status_code = status_code


class PayloadError(TMDBError):
    """Response was not JSON or did not have the expected shape."""


class LoadError(TMDBError):
    """User-facing failure of a screen load (wraps a TMDBError)."""


class ConfigError(ValueError):
    """Missing or invalid configuration."""


class StorageError(Exception):
    """Local key-value storage could not be read or written."""
