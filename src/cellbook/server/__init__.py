"""HTTP Server module."""

from cellbook.server.app import create_app
from cellbook.server.middleware import RequestIDMiddleware
from cellbook.server.routes import create_routes

__all__ = [
    "RequestIDMiddleware",
    "create_app",
    "create_routes",
]
