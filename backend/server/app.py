"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (process lifetime token, echo handler)
- Register routes
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import AppConfig
from session.echo_handler import EchoConnectionHandler
from session.lifetime import LifetimeToken

from server.routes import register_routes


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # No-op under EchoServer, which cancels when shutdown starts; other ASGI
    # servers only reach this after their own connection teardown
    app.state.lifetime.cancel("shutdown")


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations
    - ASGI server compatibility
    """
    if config is None:
        config = AppConfig.load_from_env()

    app = FastAPI(title="wsecho", lifespan=_lifespan)

    app.state.config = config

    # The upgrader accepts any origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # One token and one handler per process; connections derive from them
    app.state.lifetime = LifetimeToken()
    app.state.echo_handler = EchoConnectionHandler(lifetime=app.state.lifetime)

    # Routes
    register_routes(app)

    return app
