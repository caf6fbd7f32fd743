# backend/protocol/frames.py
"""
Frame model shared by the echo handler and the probe client.

One Frame is one WebSocket message as seen above the transport:

    kind     text | binary | ping | pong | close
    payload  opaque bytes (UTF-8 for text)
    close    code + reason, only for kind == close

Usage example:

    frame = await conn.read()
    if frame.is_control:
        ...
    else:
        await conn.write(frame)   # echo: same kind, same payload
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from constants import CLOSE_NO_STATUS


class FrameKind(str, Enum):
    """
    Frame kinds carried over the connection.
    """
    TEXT = "text"
    BINARY = "binary"
    PING = "ping"
    PONG = "pong"
    CLOSE = "close"


CONTROL_KINDS = frozenset({FrameKind.PING, FrameKind.PONG, FrameKind.CLOSE})


@dataclass(frozen=True)
class Frame:
    """
    Immutable transmission unit.

    Frames are never mutated: they are either re-emitted as-is (echo)
    or inspected (control frames).
    """
    kind: FrameKind
    payload: bytes = b""
    close_code: int | None = None
    close_reason: str = ""

    @property
    def is_control(self) -> bool:
        return self.kind in CONTROL_KINDS

    @classmethod
    def text(cls, data: str) -> Frame:
        return cls(FrameKind.TEXT, data.encode("utf-8"))

    @classmethod
    def binary(cls, data: bytes) -> Frame:
        return cls(FrameKind.BINARY, bytes(data))

    @classmethod
    def ping(cls, data: bytes = b"") -> Frame:
        return cls(FrameKind.PING, bytes(data))

    @classmethod
    def pong(cls, data: bytes = b"") -> Frame:
        return cls(FrameKind.PONG, bytes(data))

    @classmethod
    def close(cls, code: int | None = None, reason: str = "") -> Frame:
        return cls(
            FrameKind.CLOSE,
            close_code=CLOSE_NO_STATUS if code is None else code,
            close_reason=reason,
        )
