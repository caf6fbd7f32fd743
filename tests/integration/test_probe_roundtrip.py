# pylint: disable=missing-module-docstring,missing-function-docstring,redefined-outer-name

import asyncio
import json
from typing import Any, Awaitable, Callable, TypeVar

import pytest
from websockets.asyncio.client import connect
from websockets.asyncio.server import ServerConnection, serve

from client.probe import DialError, LatencyProbeClient, ProbeOptions
from config import AppConfig
from observability import logger
from server.main import build_server

T = TypeVar("T")

STARTUP_TIMEOUT_S = 5.0


@pytest.fixture
def events(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    captured: list[dict[str, Any]] = []
    monkeypatch.setattr(logger, "_print", lambda line: captured.append(json.loads(line)))
    return captured


async def with_live_server(body: Callable[[int], Awaitable[T]]) -> T:
    """Run a real uvicorn server on an ephemeral port around `body(port)`."""
    server = build_server(AppConfig(
        listen_addr="127.0.0.1:0",
        log_level="WARNING",
        shutdown_grace_s=1.0,
    ))
    task = asyncio.create_task(server.serve())
    try:
        async with asyncio.timeout(STARTUP_TIMEOUT_S):
            while not server.started:
                await asyncio.sleep(0.01)
        port = server.servers[0].sockets[0].getsockname()[1]
        return await body(port)
    finally:
        server.should_exit = True
        await task


def test_probe_against_live_server(events: list[dict[str, Any]]):
    async def probe(port: int):
        client = LatencyProbeClient(
            ProbeOptions(address=f"ws://127.0.0.1:{port}/", count=3, size=16),
        )
        return await client.run()

    samples = asyncio.run(with_live_server(probe))

    assert len(samples) == 3

    server_recv = [
        e for e in events
        if e["event_type"] == "MESSAGE_RECEIVED" and e["role"] == "server"
    ]
    assert [(e["kind"], e["size"]) for e in server_recv] == [("binary", 16)] * 3

    summary = [e for e in events if e["event_type"] == "PROBE_SUMMARY"]
    assert len(summary) == 1
    assert summary[0]["samples"] == 3
    assert summary[0]["bytes"] == 48


def test_server_sees_client_close(events: list[dict[str, Any]]):
    async def probe(port: int):
        client = LatencyProbeClient(
            ProbeOptions(address=f"ws://127.0.0.1:{port}/", count=1, size=4),
        )
        await client.run()
        # Let the server task observe the close frame before shutdown
        for _ in range(100):
            if any(e["event_type"] == "WS_DISCONNECTED" and e["role"] == "server" for e in events):
                break
            await asyncio.sleep(0.01)

    asyncio.run(with_live_server(probe))

    server_close = [
        e for e in events
        if e["event_type"] == "CLOSE_RECEIVED" and e["role"] == "server"
    ]
    assert len(server_close) == 1
    assert server_close[0]["code"] == 1000


def test_dial_invalid_uri_is_a_dial_error():
    client = LatencyProbeClient(
        ProbeOptions(address="http://127.0.0.1:9000/", count=1, size=1),
        log=lambda _event: None,
    )

    with pytest.raises(DialError):
        asyncio.run(client.run())


# ---------------------------------------------------------------------
# Shutdown
# ---------------------------------------------------------------------

def test_shutdown_cancels_open_sessions_with_shutdown_reason(events: list[dict[str, Any]]):
    async def scenario():
        async def open_and_echo(port: int):
            ws = await connect(f"ws://127.0.0.1:{port}/")
            await ws.send("before shutdown")
            assert await ws.recv() == "before shutdown"
            return ws

        # The connection stays open while the server shuts down
        ws = await with_live_server(open_and_echo)
        await ws.close()

    asyncio.run(scenario())

    server_events = [e for e in events if e.get("role") == "server"]
    closing = [e for e in server_events if e["event_type"] == "WS_CLOSING"]
    assert len(closing) == 1
    assert closing[0]["cancel_reason"] == "shutdown"
    assert "CLOSE_RECEIVED" not in [e["event_type"] for e in server_events]

    types = [e["event_type"] for e in events]
    assert types.index("SERVER_SHUTTING_DOWN") < types.index("WS_CLOSING")


# ---------------------------------------------------------------------
# Control frames over a real client transport
# ---------------------------------------------------------------------

async def _ping_then_echo(ws: ServerConnection) -> None:
    async for message in ws:
        pong_waiter = await ws.ping(b"hb")
        await pong_waiter
        await ws.send(message)


def test_server_pings_are_logged_by_client(events: list[dict[str, Any]]):
    async def scenario():
        async with serve(_ping_then_echo, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            client = LatencyProbeClient(
                ProbeOptions(address=f"ws://127.0.0.1:{port}/", count=3, size=8),
            )
            return await client.run()

    samples = asyncio.run(scenario())

    assert len(samples) == 3
    pings = [e for e in events if e["event_type"] == "PING_RECEIVED"]
    assert len(pings) == 3
    assert all(e["role"] == "client" for e in pings)
    assert all(e["payload"] == "hb" for e in pings)
    assert all(e["answered_by"] == "transport" for e in pings)
