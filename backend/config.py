"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object
- Parse Go-style listen addresses (":9000")

Non-responsibilities:
- No protocol constants
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    DEFAULT_LISTEN_ADDR,
    DEFAULT_PROBE_ADDRESS,
    DEFAULT_PROBE_COUNT,
    DEFAULT_PROBE_SIZE,
    HANDSHAKE_TIMEOUT_S,
    SHUTDOWN_GRACE_S,
)


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the app factory and the probe client.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    listen_addr: str = DEFAULT_LISTEN_ADDR
    shutdown_grace_s: float = SHUTDOWN_GRACE_S

    # ------------------------------------------------------------------
    # Probe client
    # ------------------------------------------------------------------

    probe_address: str = DEFAULT_PROBE_ADDRESS
    probe_count: int = DEFAULT_PROBE_COUNT
    probe_size: int = DEFAULT_PROBE_SIZE
    insecure: bool = False
    handshake_timeout_s: float = HANDSHAKE_TIMEOUT_S

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a numeric variable is malformed.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            listen_addr=os.environ.get("WSECHO_ADDR", DEFAULT_LISTEN_ADDR),
            shutdown_grace_s=float(
                os.environ.get("WSECHO_SHUTDOWN_GRACE_S", SHUTDOWN_GRACE_S)
            ),

            probe_address=os.environ.get("WSECHO_PROBE_ADDRESS", DEFAULT_PROBE_ADDRESS),
            probe_count=int(os.environ.get("WSECHO_PROBE_COUNT", DEFAULT_PROBE_COUNT)),
            probe_size=int(os.environ.get("WSECHO_PROBE_SIZE", DEFAULT_PROBE_SIZE)),
            insecure=os.environ.get("WSECHO_INSECURE", "0") == "1",
            handshake_timeout_s=float(
                os.environ.get("WSECHO_HANDSHAKE_TIMEOUT_S", HANDSHAKE_TIMEOUT_S)
            ),
        )


def parse_listen_address(addr: str) -> tuple[str, int]:
    """
    Split a listen address into (host, port).

    Accepts ":9000" (all interfaces), "127.0.0.1:9000" and "[::1]:9000".
    """
    host, sep, port_str = addr.rpartition(":")
    if not sep or not port_str.isdigit():
        raise ValueError(f"invalid listen address: {addr!r}")

    port = int(port_str)
    if port > 65535:
        raise ValueError(f"invalid port in listen address: {addr!r}")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        # Unbracketed IPv6 is ambiguous
        raise ValueError(f"IPv6 listen address must be bracketed: {addr!r}")

    return host or "0.0.0.0", port
