"""ASGI application for the notebook backend."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from cellbook.server.middleware import RequestIDMiddleware

if TYPE_CHECKING:
    from cellbook.notebook import Notebook


def create_app(notebook: "Notebook") -> Starlette:
    """Create the ASGI application.

    Args:
        notebook: The configured Notebook instance

    Returns:
        Starlette application
    """
    from cellbook.server.routes import create_routes

    routes = create_routes(notebook)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        yield
        await notebook.close()

    # Executed in reverse order: CORS -> request ID -> route handler
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=notebook.config.server.cors_origins or ["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        ),
        Middleware(RequestIDMiddleware, header_name="X-Request-ID"),
    ]

    return Starlette(
        routes=routes,
        middleware=middleware,
        lifespan=lifespan,
    )
