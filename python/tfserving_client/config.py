"""
Client configuration.

ClientConfig is the state accumulated by ServingClientBuilder. It can also be
read from environment variables, which is how the command line entry point
and containerised callers usually configure the client.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .exceptions import ConfigError

DEFAULT_SIGNATURE_NAME = "serving_default"
DEFAULT_CONNECT_TIMEOUT = 10.0
ENV_PREFIX = "TFSERVING_"


def get_env_int(name: str, default: Optional[int]) -> Optional[int]:
    """Get integer from environment variable."""
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def get_env_float(name: str, default: Optional[float]) -> Optional[float]:
    """Get float from environment variable."""
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default



def format_host(hostname: str) -> str:
    """Bracket IPv6 literals so they can be followed by a port."""
    if ":" in hostname and not hostname.startswith("["):
        return f"[{hostname}]"
    return hostname

@dataclass
class ClientConfig:
    """Connection parameters of a serving client."""
    hostname: Optional[str] = None
    port: Optional[int] = None
    signature_name: Optional[str] = None
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    timeout: Optional[float] = None

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "ClientConfig":
        """
        Read the configuration from ``<prefix>HOST``, ``<prefix>PORT``,
        ``<prefix>SIGNATURE_NAME``, ``<prefix>CONNECT_TIMEOUT`` and
        ``<prefix>TIMEOUT``. Unset or malformed values stay unset.
        """
        return cls(
            hostname=os.environ.get(f"{prefix}HOST") or None,
            port=get_env_int(f"{prefix}PORT", None),
            signature_name=os.environ.get(f"{prefix}SIGNATURE_NAME") or None,
            connect_timeout=get_env_float(f"{prefix}CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
            timeout=get_env_float(f"{prefix}TIMEOUT", None),
        )

    def missing_fields(self) -> List[str]:
        missing = []
        if not self.hostname:
            missing.append("hostname")
        if self.port is None:
            missing.append("port")
        return missing

    def resolve(self) -> Tuple[str, str]:
        """
        Validate the configuration.

        Returns:
            (address, signature_name) where address is ``hostname:port``,
            with IPv6 literals in brackets

        Raises:
            ConfigError: if hostname or port is missing or the port is invalid.
                The first missing field names the message, ``missing`` lists
                all of them.
        """
        missing = self.missing_fields()
        if missing:
            raise ConfigError(f"{missing[0]} not provided", missing=missing)

        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 <= self.port <= 65535:
            raise ConfigError(f"port must be an integer between 0 and 65535, got {self.port!r}")

        signature_name = self.signature_name or DEFAULT_SIGNATURE_NAME
        return f"{format_host(self.hostname)}:{self.port}", signature_name
