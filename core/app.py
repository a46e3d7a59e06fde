import logging
import time

from mcp.server.fastmcp import FastMCP
from starlette.applications import Starlette
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration of every HTTP request."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"[http] {request.method} {request.url.path} -> "
            f"{response.status_code} ({elapsed_ms:.0f} ms)"
        )
        return response


def create_app(server: FastMCP) -> Starlette:
    """
    Creates the Starlette application serving the MCP server over
    streamable HTTP, with request logging.
    """
    app = server.streamable_http_app()
    app.add_middleware(RequestLoggingMiddleware)
    return app
