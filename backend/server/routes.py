"""
Route registration for the echo service.

Responsibilities:
- Define the health check and the upgrade route
- Hand each upgraded WebSocket to the echo handler
- Pull dependencies from app.state
"""

from __future__ import annotations

from fastapi import FastAPI, WebSocket
from fastapi.responses import PlainTextResponse

from constants import ECHO_ROUTE, HEALTH_BODY, HEALTH_ROUTE, UPGRADE_REQUIRED_BODY
from session.echo_handler import EchoConnectionHandler
from transport.asgi import AsgiFrameConnection


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get(HEALTH_ROUTE)
    async def health() -> PlainTextResponse: # pyright: ignore[reportUnusedFunction]
        """Health check endpoint for load balancers."""
        return PlainTextResponse(HEALTH_BODY)

    @app.get(ECHO_ROUTE)
    async def upgrade_required() -> PlainTextResponse: # pyright: ignore[reportUnusedFunction]
        # Plain HTTP on the upgrade route never reaches the handler
        return PlainTextResponse(UPGRADE_REQUIRED_BODY, status_code=400)

    @app.websocket(ECHO_ROUTE)
    async def echo_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        """
        One connection = one echo loop.
        """
        handler: EchoConnectionHandler = app.state.echo_handler
        await handler.serve(AsgiFrameConnection(ws))
