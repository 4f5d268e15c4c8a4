"""Request handler running the framework application inside a long-lived worker.

The framework expects a fresh process per request. :class:`Application`
instead lives for the whole worker and, on every :meth:`Application.handle`
call, re-applies the original configuration, rebuilds components, runs
bootstrap with the session open, dispatches, and converts the result (or
the error) into a Starlette response.
"""

from __future__ import annotations

import gc
import logging
import os
import resource
from typing import Any

import psutil
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from ..base.application import ApplicationState, WebApplication
from ..base.component import Component
from ..config import AppConfig, parse_memory_limit
from ..constants import (
    GENERIC_ERROR_MESSAGE,
    MEMORY_THRESHOLD,
    WEB_ALIAS_ENV,
    WEBROOT_ALIAS_ENV,
)
from ..context import set_current_app
from ..exceptions import InvalidConfigError
from ..interfaces import Monitor
from ..monitor import ConnectionMonitor, EventMonitor
from .error_handler import ErrorHandler
from .request import Request
from .response import Response
from .session import Session
from .uploaded_file import UploadedFile
from .user import User


class Application(WebApplication):
    """Request handler wrapping the framework application.

    Usage:
        app = Application(AppConfig(routes={"GET /": index}))
        response = await app.handle(starlette_request)
        if app.clean():
            ...  # ask the process supervisor to recycle this worker

    Raises:
        InvalidConfigError: If the webroot / web alias environment
            variables are missing.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or AppConfig()
        self._memory_limit: int | None = None

        super().__init__(self._config, logger=logger)

        for alias, env_name in (("@webroot", WEBROOT_ALIAS_ENV), ("@web", WEB_ALIAS_ENV)):
            value = os.environ.get(env_name)
            if value is None:
                raise InvalidConfigError(f"Environment variable {env_name} is not set")
            self.set_alias(alias, value)

        set_current_app(self)
        self.monitors: list[Monitor] = self.create_monitors()

    def create_monitors(self) -> list[Monitor]:
        return [ConnectionMonitor(logger=self.logger), EventMonitor(logger=self.logger)]

    def core_components(self) -> dict[str, dict[str, Any]]:
        return {
            "request": {"class": Request},
            "response": {"class": Response},
            "session": {"class": Session},
            "user": {"class": User},
            "error_handler": {"class": ErrorHandler},
        }

    async def reset(self, request: StarletteRequest) -> None:
        """Rebuild the application state for ``request``."""
        for monitor in self.monitors:
            monitor.on()

        # Handlers fired while the previous request is torn down see the new one
        self.state = ApplicationState.BEGIN

        # Instances from the previous request
        previous_session = self._components.get("session")
        previous_error_handler = self._components.get("error_handler")
        if previous_session is not None:
            await previous_session.close()

        config = self._config.with_request(request)
        self.pre_init(config)

        # Registering again without unregistering would chain excepthooks forever
        if previous_error_handler is not None:
            previous_error_handler.unregister()

        self.register_error_handler()
        Component.__init__(self)

        session = self.get_session()
        if session is not None:
            cookie = request.cookies.get(session.get_name())
            if cookie:
                session.set_id(cookie)

        # Bootstrapped components may read the session, so it is open while
        # they run; later access reopens it lazily.
        self.ensure_behaviors()
        if session is not None:
            await session.open()
        await self.bootstrap()
        if session is not None:
            await session.close()

    async def bootstrap(self) -> None:
        # The aliases come from the environment, not from the request
        await self.base_bootstrap()

    async def handle(self, request: StarletteRequest) -> StarletteResponse:
        """Handle one request; never raises for errors raised by the application."""
        try:
            await self.reset(request)

            self.advance(ApplicationState.BEFORE_REQUEST)
            await self.trigger(self.EVENT_BEFORE_REQUEST)

            self.advance(ApplicationState.HANDLING_REQUEST)
            response = await self.handle_request(self.get_request())

            self.advance(ApplicationState.AFTER_REQUEST)
            await self.trigger(self.EVENT_AFTER_REQUEST)

            self.advance(ApplicationState.END)
            self._send_session_cookie(response)
            return await self.terminate(response.get_psr7_response())
        except Exception as exc:
            return await self.terminate(await self._handle_error(exc))

    def _send_session_cookie(self, response: Response) -> None:
        session = self.get_session() if self.has("session", check_instance=True) else None
        if session is not None and session.is_new and session.get_id() is not None:
            response.set_cookie(session.get_name(), session.get_id(), httponly=True)

    async def terminate(self, response: StarletteResponse) -> StarletteResponse:
        """Run end-of-request cleanup and return ``response``."""
        for monitor in self.monitors:
            try:
                await monitor.shutdown()
            except Exception:
                if self.logger:
                    self.logger.exception("Monitor %s failed to shut down", type(monitor).__name__)

        UploadedFile.reset()

        if self.logger:
            for handler in self.logger.handlers:
                handler.flush()

        return response

    async def _handle_error(self, exception: Exception) -> StarletteResponse:
        response: Response | None = None
        try:
            handler = self.get_error_handler()
            if handler is not None:
                response = handler.handle_exception(exception)
        except Exception:
            if self.logger:
                self.logger.exception("Error handler failed")

        if not isinstance(response, Response):
            response = Response(logger=self.logger)
            response.set_status_code(500)
            response.data = GENERIC_ERROR_MESSAGE

        # Before BEFORE_REQUEST the session may still be the previous request's
        try:
            if self.state >= ApplicationState.BEFORE_REQUEST:
                self._send_session_cookie(response)
        except Exception:
            if self.logger:
                self.logger.exception("Session cookie could not be added to the error response")

        try:
            await self.trigger(self.EVENT_AFTER_REQUEST)
        except Exception:
            if self.logger:
                self.logger.exception("after_request handler failed while handling an error")
        self.state = ApplicationState.END

        try:
            return response.get_psr7_response()
        except Exception:
            if self.logger:
                self.logger.exception("Error response could not be converted")
            return StarletteResponse(GENERIC_ERROR_MESSAGE, status_code=500, media_type="text/html")

    def clean(self) -> bool:
        """Collect garbage and report whether the worker should be recycled.

        Returns:
            True once memory usage reaches 90% of the memory limit.
        """
        gc.collect()
        limit = self.get_memory_limit()
        if limit <= 0:
            return False
        usage = self.get_memory_usage()
        if usage >= limit * MEMORY_THRESHOLD:
            if self.logger:
                self.logger.warning(
                    "Memory usage %d of limit %d, worker should be recycled", usage, limit
                )
            return True
        return False

    def get_memory_usage(self) -> int:
        """Resident set size of this process in bytes."""
        return psutil.Process().memory_info().rss

    def get_memory_limit(self) -> int:
        """Configured memory limit in bytes, or the address-space limit; 0 when unlimited."""
        if self._memory_limit is None:
            if self._config.memory_limit is not None:
                self._memory_limit = parse_memory_limit(self._config.memory_limit)
            else:
                soft, _hard = resource.getrlimit(resource.RLIMIT_AS)
                self._memory_limit = 0 if soft == resource.RLIM_INFINITY else soft
        return self._memory_limit
