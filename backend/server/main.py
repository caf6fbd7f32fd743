"""
uvicorn bootstrap for the echo service.

Responsibilities:
- Resolve the listen address
- Run the app until SIGINT/SIGTERM
- Cancel the process lifetime token as soon as shutdown starts, so every
  handler winds down with cancel_reason="shutdown"
- Bound the graceful shutdown: after the grace period uvicorn cancels
  whatever connection tasks are still running
"""

from __future__ import annotations

import socket

import uvicorn

from config import AppConfig, parse_listen_address
from observability.logger import log_event, now_ms
from server.app import create_app
from session.lifetime import LifetimeToken


class EchoServer(uvicorn.Server):
    """
    uvicorn.Server that cancels the process token before closing connections.

    uvicorn closes live WebSockets (1012) and waits out the grace period
    before the app's lifespan shutdown runs, which is too late for the
    token to be the reason handlers stop.
    """

    def __init__(self, config: uvicorn.Config, *, lifetime: LifetimeToken) -> None:
        super().__init__(config)
        self._lifetime = lifetime

    async def shutdown(self, sockets: list[socket.socket] | None = None) -> None:
        log_event({
            "ts_ms": now_ms(),
            "event_type": "SERVER_SHUTTING_DOWN",
        })
        self._lifetime.cancel("shutdown")
        await super().shutdown(sockets=sockets)


def build_server(config: AppConfig) -> EchoServer:
    host, port = parse_listen_address(config.listen_addr)
    app = create_app(config)

    return EchoServer(
        uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level=config.log_level.lower(),
            timeout_graceful_shutdown=config.shutdown_grace_s,
        ),
        lifetime=app.state.lifetime,
    )


def serve(config: AppConfig) -> None:
    """Serve until the process is asked to stop."""
    server = build_server(config)

    log_event({
        "ts_ms": now_ms(),
        "event_type": "SERVER_LISTENING",
        "addr": config.listen_addr,
    })

    server.run()

    log_event({
        "ts_ms": now_ms(),
        "event_type": "SERVER_STOPPED",
        "addr": config.listen_addr,
    })


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------

if __name__ == "__main__":
    from dotenv import load_dotenv

    load_dotenv()
    serve(AppConfig.load_from_env())
