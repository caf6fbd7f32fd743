"""
Scoped ownership of a FrameConnection.

The owner of a connection wraps it once:

    async with owned_connection(conn, context=ctx, log=log) as owned:
        ...

and the transport is closed exactly once on every exit path (normal
close, read error, write error, task cancellation). Close errors are
logged, never propagated.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from protocol.connection import FrameConnection, TransportError
from protocol.frames import Frame
from observability.logger import EventLogger
from session.context import ConnectionContext


class OwnedConnection:
    """
    FrameConnection wrapper with a one-shot closed flag.

    No lock: a connection has exactly one owner task.
    """

    def __init__(
        self,
        conn: FrameConnection,
        *,
        context: ConnectionContext,
        log: EventLogger,
    ) -> None:
        self._conn = conn
        self._context = context
        self._log = log
        self._closed = False

    async def read(self) -> Frame:
        if self._closed:
            raise TransportError("read on closed connection")
        return await self._conn.read()

    async def write(self, frame: Frame) -> None:
        if self._closed:
            raise TransportError("write on closed connection")
        await self._conn.write(frame)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        try:
            await self._conn.close()
        except TransportError as exc:
            self._log(self._context.event(
                "CLOSE_FAILED",
                exception=type(exc).__name__,
                message=str(exc),
            ))


@asynccontextmanager
async def owned_connection(
    conn: FrameConnection,
    *,
    context: ConnectionContext,
    log: EventLogger,
) -> AsyncIterator[OwnedConnection]:
    owned = OwnedConnection(conn, context=context, log=log)
    try:
        yield owned
    finally:
        await owned.close()
