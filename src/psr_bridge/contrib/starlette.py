"""ASGI entry point for the bridged application.

Builds a Starlette request per HTTP call, runs it through the configured
``process(request, handler)`` middlewares and the application, sends the
response, then consults the application's memory guard. Requests are
handled one at a time, matching the application's per-request reset.

Usage:
    import uvicorn
    from psr_bridge import AppConfig, Application
    from psr_bridge.contrib.starlette import ApplicationEndpoint

    app = Application(AppConfig(routes={"GET /": index}))
    endpoint = ApplicationEndpoint(app, middleware=[TimingMiddleware()])
    uvicorn.run(endpoint)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from ..interfaces import Middleware, RequestHandler


class MiddlewarePipeline:
    """Request handler that runs ``middleware`` in order, ending at ``handler``."""

    def __init__(
        self,
        middleware: Sequence[Middleware],
        handler: RequestHandler,
        index: int = 0,
    ) -> None:
        self._middleware = middleware
        self._handler = handler
        self._index = index

    async def handle(self, request: Request) -> Response:
        if self._index >= len(self._middleware):
            return await self._handler.handle(request)
        next_handler = MiddlewarePipeline(self._middleware, self._handler, self._index + 1)
        return await self._middleware[self._index].process(request, next_handler)


class ApplicationEndpoint:
    """ASGI application serving a bridged :class:`~psr_bridge.Application`.

    After each response the application's ``clean()`` is called; when it
    reports the worker should be recycled, ``on_recycle`` is invoked so the
    process supervisor can replace this worker.
    """

    def __init__(
        self,
        application: Any,
        middleware: Sequence[Middleware] = (),
        on_recycle: Callable[[], Any] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the endpoint.

        Args:
            application: The bridged application (a request handler with ``clean()``).
            middleware: Middlewares run before the application, outermost first.
            on_recycle: Called when memory usage says the worker should go.
            logger: Optional logger for debugging.
        """
        self._application = application
        self._pipeline = MiddlewarePipeline(list(middleware), application)
        self._on_recycle = on_recycle
        self._logger = logger
        self._lock = asyncio.Lock()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] != "http":
            raise RuntimeError(f"Unsupported ASGI scope type: {scope['type']}")

        request = Request(scope, receive)
        # The application rebuilds shared state per request
        async with self._lock:
            response = await self._pipeline.handle(request)
            await response(scope, receive, send)

            if self._application.clean():
                if self._logger:
                    self._logger.info("Worker memory limit reached, requesting recycle")
                if self._on_recycle is not None:
                    self._on_recycle()

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return
