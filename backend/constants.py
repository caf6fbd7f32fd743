"""
CONSTANTS
---------
Single source of truth for the behavioral constants of the echo service
and the latency probe.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Deployment-specific values (addresses, counts) live in config.py.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# HTTP surface
# =============================================================================

ECHO_ROUTE: Final[str] = "/"
HEALTH_ROUTE: Final[str] = "/health"
HEALTH_BODY: Final[str] = "ok"

# Body returned when "/" is requested without the upgrade headers
UPGRADE_REQUIRED_BODY: Final[str] = (
    "websocket: the client is not using the websocket protocol"
)

# =============================================================================
# Timing
# =============================================================================

HANDSHAKE_TIMEOUT_S: Final[float] = 5.0
SHUTDOWN_GRACE_S: Final[float] = 5.0

# =============================================================================
# Close codes (RFC 6455 §7.4.1)
# =============================================================================

CLOSE_NORMAL: Final[int] = 1000
CLOSE_NO_STATUS: Final[int] = 1005
CLOSE_ABNORMAL: Final[int] = 1006

# =============================================================================
# Probe defaults
# =============================================================================

DEFAULT_LISTEN_ADDR: Final[str] = ":8080"
DEFAULT_PROBE_ADDRESS: Final[str] = "ws://127.0.0.1:8080/"
DEFAULT_PROBE_COUNT: Final[int] = 10
DEFAULT_PROBE_SIZE: Final[int] = 1024

# =============================================================================
# Identifiers
# =============================================================================

CONNECTION_ID_PREFIX: Final[str] = "conn_"
CONNECTION_ID_HEX_CHARS: Final[int] = 12
