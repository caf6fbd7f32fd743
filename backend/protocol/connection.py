"""
Transport boundary contract.

Both the server-side ASGI adapter and the client-side websockets adapter
present the same frame-oriented interface. Everything above this module
(echo handler, probe client) depends only on FrameConnection.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from protocol.frames import Frame


# -------------------------
# Exceptions
# -------------------------

class TransportError(Exception):
    """Base class for failures reported by a transport adapter."""


class UpgradeError(TransportError):
    """
    Raised when an HTTP request could not be upgraded to a WebSocket.

    Terminal for that one request; the HTTP server keeps serving.
    """


# -------------------------
# Interface
# -------------------------

class FrameConnection(Protocol):
    """
    Full-duplex, message-framed channel bound to one remote peer.

    read() blocks until a frame arrives. A close frame from the peer is
    returned as Frame(kind=CLOSE) rather than raised. Any other failure
    raises TransportError.
    """

    async def read(self) -> Frame:
        ...

    async def write(self, frame: Frame) -> None:
        ...

    async def close(self) -> None:
        ...


class Upgradable(Protocol):
    """
    An inbound request that can be upgraded to a FrameConnection.

    accept() raises UpgradeError when the handshake cannot complete.
    """

    async def accept(self) -> FrameConnection:
        ...


@runtime_checkable
class ControlObservable(Protocol):
    """
    A connection whose transport answers pings itself.

    Such transports never return ping or pong frames from read(); the
    listener is called with each one instead, for logging only.
    """

    def observe_control(self, listener: Callable[[Frame], None]) -> None:
        ...
