"""
Per-connection identity for log correlation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from constants import CONNECTION_ID_HEX_CHARS, CONNECTION_ID_PREFIX
from observability.logger import now_ms


def new_connection_id() -> str:
    return f"{CONNECTION_ID_PREFIX}{uuid4().hex[:CONNECTION_ID_HEX_CHARS]}"


@dataclass(frozen=True)
class ConnectionContext:
    """
    Identity stamped on every log event of one connection.

    role:
        "server" for the echo handler, "client" for the probe
    """
    connection_id: str
    role: str

    @classmethod
    def create(cls, role: str) -> ConnectionContext:
        return cls(connection_id=new_connection_id(), role=role)

    def event(self, event_type: str, **fields: Any) -> dict[str, Any]:
        return {
            "ts_ms": now_ms(),
            "event_type": event_type,
            "connection_id": self.connection_id,
            "role": self.role,
            **fields,
        }
