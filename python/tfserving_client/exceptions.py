"""
Exceptions raised by the serving client.

Every error raised by this package derives from ServingClientError, so a
caller can catch the whole family with a single except clause.
"""

from typing import List, Optional


class ServingClientError(Exception):
    """Base class for all client errors."""


class ConfigError(ServingClientError):
    """Raised when the client configuration is incomplete or invalid."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        self.missing = list(missing or [])
        super().__init__(message)


class ServingConnectionError(ServingClientError, ConnectionError):
    """Raised when a channel to the server cannot be established or is gone."""


class DecodeError(ServingClientError):
    """Raised when an input image cannot be opened or decoded."""


class ProtocolError(ServingClientError):
    """Raised when a server response does not have the expected shape."""


class UnimplementedError(ServingClientError, NotImplementedError):
    """Raised when the server does not implement the requested method."""


class ServerError(ServingClientError):
    """Exception raised when server returns an error."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Server error {status_code}: {message}")
