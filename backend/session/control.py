"""
Control-frame handlers (ping, pong, close).

Shared by the echo handler and the probe client: both loops hand every
control frame they read to dispatch(), and get back whether the frame was
consumed. The handlers never raise.

- ping  -> log, answer with a pong carrying the same payload
- pong  -> log only
- close -> log code and reason, cancel the lifetime token (a close that
           follows our own cancellation is logged as CLOSE_ACKNOWLEDGED)

Transports that answer pings themselves report pings and pongs through
observe(), which logs without replying.
"""

from __future__ import annotations

from protocol.connection import FrameConnection, TransportError
from protocol.frames import Frame, FrameKind
from observability.logger import EventLogger
from session.context import ConnectionContext
from session.lifetime import LifetimeToken


def _preview(payload: bytes) -> str:
    return payload.decode("utf-8", errors="replace")


class ControlHandlers:
    """
    Capability object {on_ping, on_pong, on_close} bound to one connection.
    """

    def __init__(
        self,
        *,
        conn: FrameConnection,
        token: LifetimeToken,
        context: ConnectionContext,
        log: EventLogger,
    ) -> None:
        self._conn = conn
        self._token = token
        self._context = context
        self._log = log

    async def dispatch(self, frame: Frame) -> bool:
        """
        Route a control frame to its handler.

        Returns:
            True if the frame was a control frame (and was handled)
            False for data frames, which the caller processes itself
        """
        if frame.kind is FrameKind.PING:
            await self.on_ping(frame.payload)
        elif frame.kind is FrameKind.PONG:
            self.on_pong(frame.payload)
        elif frame.kind is FrameKind.CLOSE:
            self.on_close(frame.close_code, frame.close_reason)
        else:
            return False
        return True

    async def on_ping(self, payload: bytes) -> None:
        self._log_ping(payload, answered_by="handler")
        try:
            await self._conn.write(Frame.pong(payload))
        except TransportError as exc:
            # Not terminal: the next read surfaces a dead transport
            self._log(self._context.event(
                "PONG_FAILED",
                exception=type(exc).__name__,
                message=str(exc),
            ))

    def on_pong(self, payload: bytes) -> None:
        self._log(self._context.event(
            "PONG_RECEIVED",
            payload=_preview(payload),
            payload_len=len(payload),
        ))

    def on_close(self, code: int | None, reason: str) -> None:
        if self._token.cancelled:
            # Our own cancellation made the transport close; not a peer close
            self._log(self._context.event(
                "CLOSE_ACKNOWLEDGED",
                origin="local",
                code=code,
                reason=reason,
                cancel_reason=self._token.reason,
            ))
            return

        self._log(self._context.event(
            "CLOSE_RECEIVED",
            origin="remote",
            code=code,
            reason=reason,
        ))
        self._token.cancel("remote_close")

    def observe(self, frame: Frame) -> None:
        """
        Log a ping or pong the transport has already handled.

        Synchronous and log-only: called from inside the transport's
        frame processing, which has sent the pong itself.
        """
        if frame.kind is FrameKind.PING:
            self._log_ping(frame.payload, answered_by="transport")
        elif frame.kind is FrameKind.PONG:
            self.on_pong(frame.payload)

    def _log_ping(self, payload: bytes, *, answered_by: str) -> None:
        self._log(self._context.event(
            "PING_RECEIVED",
            payload=_preview(payload),
            payload_len=len(payload),
            answered_by=answered_by,
        ))
