"""
Server-side transport adapter: FastAPI/Starlette WebSocket -> FrameConnection.

ASGI message mapping:
- websocket.receive (bytes)   -> Frame(BINARY)
- websocket.receive (text)    -> Frame(TEXT)
- websocket.disconnect (code) -> Frame(CLOSE, code, reason)
- websocket.disconnect (1006) -> TransportError (connection dropped, no close frame)

Ping/pong never reach the application: uvicorn answers pings itself,
echoing the payload, and consumes pongs.
"""

from __future__ import annotations

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from constants import CLOSE_ABNORMAL, CLOSE_NORMAL
from protocol.connection import TransportError, UpgradeError
from protocol.frames import Frame, FrameKind


_TRANSPORT_FAILURES = (RuntimeError, OSError, WebSocketDisconnect)


class AsgiFrameConnection:
    """
    Adapter around one inbound ASGI WebSocket.

    accept() performs the upgrade and returns the adapter itself.
    """

    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws

    async def accept(self) -> AsgiFrameConnection:
        try:
            await self._ws.accept()
        except _TRANSPORT_FAILURES as exc:
            raise UpgradeError(f"couldn't upgrade: {exc}") from exc
        return self

    async def read(self) -> Frame:
        try:
            message = await self._ws.receive()
        except _TRANSPORT_FAILURES as exc:
            raise TransportError(f"couldn't read: {exc}") from exc

        if message["type"] == "websocket.disconnect":
            code = message.get("code")
            if code == CLOSE_ABNORMAL:
                raise TransportError("couldn't read: connection closed abnormally (1006)")
            return Frame.close(code, message.get("reason") or "")

        data = message.get("bytes")
        if data is not None:
            return Frame.binary(data)

        text = message.get("text")
        if text is not None:
            return Frame.text(text)

        raise TransportError(f"couldn't read: unexpected ASGI message {message['type']!r}")

    async def write(self, frame: Frame) -> None:
        if frame.kind not in (FrameKind.TEXT, FrameKind.BINARY):
            raise TransportError(f"ASGI transport cannot send {frame.kind.value} frames")

        try:
            if frame.kind is FrameKind.BINARY:
                await self._ws.send_bytes(frame.payload)
            else:
                await self._ws.send_text(frame.payload.decode("utf-8"))
        except _TRANSPORT_FAILURES as exc:
            raise TransportError(f"couldn't write: {exc}") from exc

    async def close(self) -> None:
        # Peer already gone or close already sent: nothing left to release
        if (
            self._ws.client_state is WebSocketState.DISCONNECTED
            or self._ws.application_state is WebSocketState.DISCONNECTED
        ):
            return

        try:
            await self._ws.close(code=CLOSE_NORMAL)
        except _TRANSPORT_FAILURES as exc:
            raise TransportError(f"couldn't close: {exc}") from exc
