"""
Latency probe client.

Dials one connection, sends `count` binary frames of `size` zero bytes one
after another, and times each round trip until its echo comes back.

Error policy:
- Dial failure   -> DialError (raised, no retry)
- Send failure   -> SendError (raised, no summary)
- Read failure   -> logged, loop stops, run still succeeds
- Close frame    -> token cancelled, loop stops, run still succeeds
- Cancellation   -> loop stops before the next send, run still succeeds

The read/send asymmetry is kept as is: a lost reply is treated like a
timeout, a failed send is not.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from constants import HANDSHAKE_TIMEOUT_S
from observability.logger import EventLogger, log_event
from observability.metrics import LatencySamples
from protocol.connection import ControlObservable, FrameConnection, TransportError
from protocol.frames import Frame
from session.connection_status import ConnectionStatus
from session.context import ConnectionContext
from session.control import ControlHandlers
from session.lifetime import LifetimeToken
from session.teardown import OwnedConnection, owned_connection
from transport.ws_client import dial as ws_dial


Dialer = Callable[..., Awaitable[FrameConnection]]
Clock = Callable[[], int]


# ---------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------

class ProbeError(Exception):
    """Base class for errors that abort a probe run."""


class DialError(ProbeError):
    """The connection could not be established."""


class SendError(ProbeError):
    """A probe payload could not be written."""


# ---------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ProbeOptions:
    address: str
    count: int
    size: int
    insecure: bool = False
    handshake_timeout_s: float = HANDSHAKE_TIMEOUT_S

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError("count must be >= 0")
        if self.size < 0:
            raise ValueError("size must be >= 0")


# ---------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------

class LatencyProbeClient:
    """
    One run() per probe invocation; the client owns the connection,
    its token and its samples for the duration of the run.
    """

    def __init__(
        self,
        options: ProbeOptions,
        *,
        lifetime: LifetimeToken | None = None,
        dial: Dialer = ws_dial,
        log: EventLogger = log_event,
        clock: Clock = time.monotonic_ns,
    ) -> None:
        self._options = options
        self._lifetime = lifetime if lifetime is not None else LifetimeToken()
        self._dial = dial
        self._log = log
        self._clock = clock

    async def run(self) -> LatencySamples:
        """
        Perform the round trips and log the summary.

        Returns:
            The collected samples (possibly fewer than `count`).

        Raises:
            DialError, SendError
        """
        opts = self._options
        context = ConnectionContext.create(role="client")
        token = self._lifetime.child()
        samples = LatencySamples(size=opts.size)

        self._log(context.event(
            "PROBE_DIALING",
            status=ConnectionStatus.CONNECTING.value,
            address=opts.address,
        ))
        try:
            conn = await self._dial(
                opts.address,
                insecure=opts.insecure,
                handshake_timeout=opts.handshake_timeout_s,
            )
        except TransportError as exc:
            raise DialError(str(exc)) from exc

        self._log(context.event("WS_CONNECTED", status=ConnectionStatus.UP.value))

        async with owned_connection(conn, context=context, log=self._log) as owned:
            controls = ControlHandlers(
                conn=owned,
                token=token,
                context=context,
                log=self._log,
            )
            if isinstance(conn, ControlObservable):
                conn.observe_control(controls.observe)
            payload = bytes(opts.size)

            for i in range(opts.count):
                if token.cancelled:
                    break

                start = self._clock()
                try:
                    await owned.write(Frame.binary(payload))
                except TransportError as exc:
                    raise SendError(str(exc)) from exc

                reply = await self._read_reply(owned, controls, token, context)
                if reply is None:
                    break

                elapsed_ns = self._clock() - start
                samples.record(elapsed_ns)
                self._log(context.event(
                    "PROBE_SAMPLE",
                    index=i,
                    size=opts.size,
                    elapsed_ms=elapsed_ns / 1_000_000,
                ))

        summary = samples.summary_event(
            connection_id=context.connection_id,
            role=context.role,
            cancel_reason=token.reason,
        )
        if summary is not None:
            self._log(summary)

        return samples

    async def _read_reply(
        self,
        owned: OwnedConnection,
        controls: ControlHandlers,
        token: LifetimeToken,
        context: ConnectionContext,
    ) -> Frame | None:
        """
        Read until a data frame arrives.

        Control frames in between are handled and skipped. Returns None
        when the read fails or the server closed the connection.
        """
        while True:
            try:
                frame = await owned.read()
            except TransportError as exc:
                self._log(context.event(
                    "READ_FAILED",
                    exception=type(exc).__name__,
                    message=str(exc),
                ))
                return None

            if not await controls.dispatch(frame):
                return frame
            if token.cancelled:
                return None
