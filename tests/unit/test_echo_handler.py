# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio

from protocol.connection import TransportError
from protocol.frames import Frame, FrameKind
from session.echo_handler import EchoConnectionHandler
from session.lifetime import LifetimeToken

from fakes import EventRecorder, FakeConnection, FakeRequest


def run_handler(
    conn: FakeConnection | None,
    *,
    lifetime: LifetimeToken | None = None,
) -> EventRecorder:
    recorder = EventRecorder()
    handler = EchoConnectionHandler(
        lifetime=lifetime if lifetime is not None else LifetimeToken(),
        log=recorder,
    )
    asyncio.run(handler.serve(FakeRequest(conn)))
    return recorder


# ---------------------------------------------------------------------
# Echo identity / FIFO
# ---------------------------------------------------------------------

def test_data_frames_echoed_with_same_kind_and_payload():
    inbound = [Frame.text("héllo"), Frame.binary(b"\x00\x01\xff")]
    conn = FakeConnection(list(inbound))

    run_handler(conn)

    assert conn.written == inbound
    assert [f.kind for f in conn.written] == [FrameKind.TEXT, FrameKind.BINARY]


def test_replies_preserve_arrival_order():
    inbound = [Frame.binary(bytes([i]) * (i + 1)) for i in range(20)]
    conn = FakeConnection(list(inbound))

    run_handler(conn)

    assert conn.written == inbound


def test_received_message_size_logged():
    conn = FakeConnection([Frame.binary(bytes(16))])

    events = run_handler(conn)

    received = events.of_type("MESSAGE_RECEIVED")
    assert len(received) == 1
    assert received[0]["size"] == 16
    assert received[0]["kind"] == "binary"
    assert received[0]["role"] == "server"


# ---------------------------------------------------------------------
# Control frames
# ---------------------------------------------------------------------

def test_ping_answered_with_pong_before_next_echo():
    conn = FakeConnection([Frame.ping(b"keepalive"), Frame.text("after")])

    events = run_handler(conn)

    assert conn.written == [Frame.pong(b"keepalive"), Frame.text("after")]
    ping = events.of_type("PING_RECEIVED")
    assert len(ping) == 1
    assert ping[0]["payload"] == "keepalive"


def test_pong_only_logged():
    conn = FakeConnection([Frame.pong(b"p1")])

    events = run_handler(conn)

    assert conn.written == []
    assert events.of_type("PONG_RECEIVED")[0]["payload"] == "p1"


def test_failed_pong_is_not_terminal():
    conn = FakeConnection(
        [Frame.ping(b"x"), Frame.binary(b"still echoed")],
        fail_write_kinds=frozenset({FrameKind.PONG}),
    )

    events = run_handler(conn)

    assert "PONG_FAILED" in events.types()
    assert conn.written == [Frame.binary(b"still echoed")]


def test_close_frame_stops_loop_without_further_reads():
    conn = FakeConnection([
        Frame.text("one"),
        Frame.close(1000, "bye"),
        Frame.text("never read"),
    ])

    events = run_handler(conn)

    assert conn.reads == 2
    assert conn.written == [Frame.text("one")]
    assert conn.close_calls == 1

    close = events.of_type("CLOSE_RECEIVED")
    assert close[0]["code"] == 1000
    assert close[0]["reason"] == "bye"
    assert close[0]["origin"] == "remote"
    assert events.of_type("WS_CLOSING")[0]["cancel_reason"] == "remote_close"


# ---------------------------------------------------------------------
# Teardown: exactly one close on every exit path
# ---------------------------------------------------------------------

def test_read_error_closes_once():
    conn = FakeConnection([TransportError("couldn't read: reset by peer")])

    events = run_handler(conn)

    assert conn.close_calls == 1
    assert "READ_FAILED" in events.types()
    assert events.types()[-1] == "WS_DISCONNECTED"


def test_write_error_closes_once():
    conn = FakeConnection(
        [Frame.binary(b"a"), Frame.binary(b"b")],
        fail_write_kinds=frozenset({FrameKind.BINARY}),
    )

    events = run_handler(conn)

    assert conn.close_calls == 1
    assert conn.reads == 1
    assert "WRITE_FAILED" in events.types()


def test_close_error_logged_not_raised():
    conn = FakeConnection([Frame.close(1001, "going away")], fail_close=True)

    events = run_handler(conn)

    assert conn.close_calls == 1
    assert "CLOSE_FAILED" in events.types()


def test_cancelled_process_token_skips_reads():
    lifetime = LifetimeToken()
    lifetime.cancel("shutdown")
    conn = FakeConnection([Frame.text("ignored")])

    events = run_handler(conn, lifetime=lifetime)

    assert conn.reads == 0
    assert conn.close_calls == 1
    assert events.of_type("WS_CLOSING")[0]["cancel_reason"] == "shutdown"


def test_shutdown_mid_session_stops_at_next_iteration():
    lifetime = LifetimeToken()
    conn = FakeConnection([Frame.text("a"), Frame.text("b"), Frame.text("c")])
    conn.on_read = lambda n: lifetime.cancel("shutdown") if n == 2 else None

    run_handler(conn, lifetime=lifetime)

    # The in-flight read completes and is echoed; no third read happens
    assert conn.written == [Frame.text("a"), Frame.text("b")]
    assert conn.reads == 2
    assert conn.close_calls == 1


def test_close_after_shutdown_is_acknowledged_not_received():
    lifetime = LifetimeToken()
    conn = FakeConnection([Frame.close(1012, "service restart")])
    # Shutdown starts while the read is in flight; the transport then
    # reports the close the server itself initiated
    conn.on_read = lambda n: lifetime.cancel("shutdown")

    events = run_handler(conn, lifetime=lifetime)

    assert "CLOSE_RECEIVED" not in events.types()
    ack = events.of_type("CLOSE_ACKNOWLEDGED")
    assert len(ack) == 1
    assert ack[0]["origin"] == "local"
    assert ack[0]["code"] == 1012
    assert ack[0]["cancel_reason"] == "shutdown"
    assert events.of_type("WS_CLOSING")[0]["cancel_reason"] == "shutdown"
    assert conn.close_calls == 1


# ---------------------------------------------------------------------
# Upgrade failure
# ---------------------------------------------------------------------

def test_upgrade_failure_logged_and_returns():
    events = run_handler(None)

    assert events.types() == ["UPGRADE_FAILED"]
    assert "upgrade" in events.events[0]["message"]


def test_each_connection_gets_its_own_id():
    recorder = EventRecorder()
    handler = EchoConnectionHandler(lifetime=LifetimeToken(), log=recorder)

    async def two_connections() -> None:
        await asyncio.gather(
            handler.serve(FakeRequest(FakeConnection([Frame.text("a")]))),
            handler.serve(FakeRequest(FakeConnection([Frame.text("b")]))),
        )

    asyncio.run(two_connections())

    ids = {e["connection_id"] for e in recorder.of_type("WS_CONNECTED")}
    assert len(ids) == 2
