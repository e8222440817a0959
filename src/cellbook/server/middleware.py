"""Request tracing middleware for the HTTP server."""

from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from cellbook.observability import RequestContext, Timer, get_logger

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Scopes every request in a logging context.

    Reuses the caller's request ID header when present and echoes it back
    on the response.
    """

    def __init__(
        self,
        app: Any,
        header_name: str = "X-Request-ID",
    ) -> None:
        """Initialize request ID middleware.

        Args:
            app: The ASGI application
            header_name: Header carrying the request ID
        """
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        """Run the handler inside a RequestContext.

        Args:
            request: The incoming request
            call_next: Next middleware/handler in chain

        Returns:
            Response from handler, with the request ID header set
        """
        request_id = request.headers.get(self.header_name)

        async with RequestContext(request_id=request_id) as ctx:
            with Timer() as timer:
                response = await call_next(request)

            logger.info(
                "Request handled",
                context={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                },
                duration_ms=timer.duration_ms,
            )

        response.headers[self.header_name] = ctx.request_id
        return response
