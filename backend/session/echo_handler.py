"""
Echo connection handler.

Responsibilities:
- Upgrade one inbound request to a FrameConnection
- Relay every application frame back to its sender (same kind, same payload)
- Answer pings, log pongs, stop on close frames (via ControlHandlers)
- Close the connection exactly once on every exit path

NOT responsible for:
- HTTP routing (server.routes)
- Ping/pong the transport already answers itself
- Any message transformation or validation

Ping/pong logging over ASGI: uvicorn answers client pings inside its
protocol implementation and the ASGI WebSocket interface has no message
type for ping or pong frames, so over a real server neither reaches this
handler and PING_RECEIVED / PONG_RECEIVED are not logged. They are logged
only for transports that return control frames from read().
"""

from __future__ import annotations

from protocol.connection import TransportError, UpgradeError, Upgradable
from observability.logger import EventLogger, log_event
from session.connection_status import ConnectionStatus
from session.context import ConnectionContext
from session.control import ControlHandlers
from session.lifetime import LifetimeToken
from session.teardown import OwnedConnection, owned_connection


class EchoConnectionHandler:
    """
    One handler per process; one serve() call per connection.

    The handler itself holds no per-connection state: every serve() call
    builds its own token, context and control handlers, so concurrent
    connections never interact.
    """

    def __init__(
        self,
        *,
        lifetime: LifetimeToken,
        log: EventLogger = log_event,
    ) -> None:
        self._lifetime = lifetime
        self._log = log

    async def serve(self, request: Upgradable) -> None:
        """
        Upgrade `request` and run the echo loop until close, cancel or error.
        """
        context = ConnectionContext.create(role="server")

        try:
            conn = await request.accept()
        except UpgradeError as exc:
            self._log(context.event(
                "UPGRADE_FAILED",
                exception=type(exc).__name__,
                message=str(exc),
            ))
            return

        token = self._lifetime.child()
        self._log(context.event("WS_CONNECTED", status=ConnectionStatus.UP.value))

        async with owned_connection(conn, context=context, log=self._log) as owned:
            messages = await self._echo_loop(owned, token=token, context=context)
            self._log(context.event(
                "WS_CLOSING",
                status=ConnectionStatus.CLOSING.value,
                messages=messages,
                cancel_reason=token.reason,
            ))

        self._log(context.event("WS_DISCONNECTED", status=ConnectionStatus.DOWN.value))

    async def _echo_loop(
        self,
        owned: OwnedConnection,
        *,
        token: LifetimeToken,
        context: ConnectionContext,
    ) -> int:
        """Returns the number of messages echoed."""
        controls = ControlHandlers(
            conn=owned,
            token=token,
            context=context,
            log=self._log,
        )
        echoed = 0

        while not token.cancelled:
            try:
                frame = await owned.read()
            except TransportError as exc:
                self._log(context.event(
                    "READ_FAILED",
                    exception=type(exc).__name__,
                    message=str(exc),
                ))
                break

            if await controls.dispatch(frame):
                continue

            self._log(context.event(
                "MESSAGE_RECEIVED",
                kind=frame.kind.value,
                size=len(frame.payload),
            ))

            try:
                await owned.write(frame)
            except TransportError as exc:
                self._log(context.event(
                    "WRITE_FAILED",
                    exception=type(exc).__name__,
                    message=str(exc),
                ))
                break

            echoed += 1

        return echoed
