"""
Client-side transport adapter: websockets asyncio client -> FrameConnection.

- dial() performs the opening handshake with a bounded timeout
- A close frame from the server is returned as Frame(CLOSE), not raised
- Pings from the server are answered by the websockets library itself;
  observe_control() registers a log-only listener for pings and pongs
"""

from __future__ import annotations

import asyncio
import ssl
from typing import Any, Callable
from urllib.parse import urlsplit

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.frames import Frame as WireFrame, Opcode

from constants import CLOSE_ABNORMAL, CLOSE_NORMAL, HANDSHAKE_TIMEOUT_S
from protocol.connection import TransportError
from protocol.frames import Frame, FrameKind


ControlListener = Callable[[Frame], None]


class ControlAwareClientConnection(ClientConnection):
    """
    ClientConnection that reports ping and pong frames to a listener.

    The library still sends the pong for every ping; the listener only
    observes. It runs inside frame processing, so it must not block or
    raise.
    """

    control_listener: ControlListener | None = None

    def process_event(self, event: Any) -> None:
        super().process_event(event)
        if self.control_listener is None or not isinstance(event, WireFrame):
            return
        if event.opcode is Opcode.PING:
            self.control_listener(Frame.ping(bytes(event.data)))
        elif event.opcode is Opcode.PONG:
            self.control_listener(Frame.pong(bytes(event.data)))


def build_ssl_context(address: str, *, insecure: bool) -> ssl.SSLContext | None:
    """
    SSL context for wss:// addresses, None for ws://.

    insecure=True skips certificate and hostname verification.
    """
    if urlsplit(address).scheme.lower() != "wss":
        return None

    ctx = ssl.create_default_context()
    if insecure:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


async def dial(
    address: str,
    *,
    insecure: bool = False,
    handshake_timeout: float = HANDSHAKE_TIMEOUT_S,
) -> WebsocketsFrameConnection:
    """
    Open one WebSocket connection to `address`.

    Raises:
        TransportError if the address is invalid or the handshake fails
        or times out.
    """
    kwargs: dict[str, Any] = {
        "open_timeout": handshake_timeout,
        "create_connection": ControlAwareClientConnection,
    }
    ssl_context = build_ssl_context(address, insecure=insecure)
    if ssl_context is not None:
        kwargs["ssl"] = ssl_context

    try:
        ws = await connect(address, **kwargs)
    except (OSError, asyncio.TimeoutError, WebSocketException, ValueError) as exc:
        raise TransportError(f"couldn't dial {address}: {exc}") from exc

    return WebsocketsFrameConnection(ws)


class WebsocketsFrameConnection:
    """
    Adapter around one outbound websockets ClientConnection.
    """

    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    def observe_control(self, listener: ControlListener) -> None:
        if isinstance(self._ws, ControlAwareClientConnection):
            self._ws.control_listener = listener

    async def read(self) -> Frame:
        try:
            data = await self._ws.recv()
        except ConnectionClosed as exc:
            if exc.rcvd is not None and exc.rcvd.code != CLOSE_ABNORMAL:
                return Frame.close(exc.rcvd.code, exc.rcvd.reason)
            raise TransportError(f"couldn't read: {exc}") from exc
        except (OSError, RuntimeError) as exc:
            raise TransportError(f"couldn't read: {exc}") from exc

        if isinstance(data, str):
            return Frame.text(data)
        return Frame.binary(data)

    async def write(self, frame: Frame) -> None:
        try:
            if frame.kind is FrameKind.BINARY:
                await self._ws.send(frame.payload)
            elif frame.kind is FrameKind.TEXT:
                await self._ws.send(frame.payload.decode("utf-8"))
            elif frame.kind is FrameKind.PING:
                await self._ws.ping(frame.payload)
            elif frame.kind is FrameKind.PONG:
                await self._ws.pong(frame.payload)
            else:
                await self._ws.close(frame.close_code or CLOSE_NORMAL, frame.close_reason)
        except (ConnectionClosed, OSError, RuntimeError) as exc:
            raise TransportError(f"couldn't write: {exc}") from exc

    async def close(self) -> None:
        try:
            await self._ws.close()
        except (OSError, RuntimeError) as exc:
            raise TransportError(f"couldn't close: {exc}") from exc
