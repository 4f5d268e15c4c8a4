"""Handler, middleware and identity contracts.

These mirror the request-handler / middleware split used by standard
middleware pipelines: a handler turns a request into a response, a
middleware may answer itself or delegate to the handler it is given.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from starlette.requests import Request
from starlette.responses import Response


@runtime_checkable
class RequestHandler(Protocol):
    """Produces a response for a request."""

    async def handle(self, request: Request) -> Response: ...


@runtime_checkable
class Middleware(Protocol):
    """Processes a request, optionally delegating to ``handler``.

    Usage:
        class TokenMiddleware:
            async def process(self, request, handler):
                token = request.headers.get("x-api-key")
                if token is None:
                    return Response("Missing token", status_code=401)
                request.state.token = token
                return await handler.handle(request)
    """

    async def process(self, request: Request, handler: RequestHandler) -> Response: ...


@runtime_checkable
class Identity(Protocol):
    """An authenticated principal."""

    def get_id(self) -> Any: ...


@runtime_checkable
class Monitor(Protocol):
    """Per-request lifecycle observer."""

    def on(self) -> None: ...

    async def shutdown(self) -> None: ...
