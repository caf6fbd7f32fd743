"""
Connection status tracking for echo connections.

connection_status: CONNECTING | UP | CLOSING | DOWN

Pure data owned by the handler or probe run; carried on log events only.
"""
from enum import Enum

class ConnectionStatus(Enum):
    """
    Connection lifecycle status.
    """
    CONNECTING = "CONNECTING"  # Upgrade / dial in progress
    UP = "UP"                  # Frames flowing
    CLOSING = "CLOSING"        # Loop exited, teardown running
    DOWN = "DOWN"              # Transport closed
