"""Error handler component: turns exceptions into framework responses."""

from __future__ import annotations

import html
import sys
import traceback
from types import TracebackType
from typing import Any

from ..base.component import Component
from ..constants import GENERIC_ERROR_MESSAGE
from ..exceptions import HttpException
from .response import Response


class ErrorHandler(Component):
    """Renders exceptions raised while handling a request.

    ``register()`` also installs a process ``sys.excepthook`` that logs
    uncaught exceptions; a long-lived worker rebuilds this component on
    every request, so the previous one must be unregistered first.
    """

    debug: bool = False

    def init(self) -> None:
        self.exception: BaseException | None = None
        self._previous_hook: Any = None

    @property
    def registered(self) -> bool:
        return self._previous_hook is not None

    def register(self) -> None:
        if self.registered:
            return
        self._previous_hook = sys.excepthook
        sys.excepthook = self._excepthook

    def unregister(self) -> None:
        if not self.registered:
            return
        if sys.excepthook == self._excepthook:
            sys.excepthook = self._previous_hook
        self._previous_hook = None

    def _excepthook(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        if self.logger:
            self.logger.critical("Uncaught exception", exc_info=(exc_type, exc, tb))
        self._previous_hook(exc_type, exc, tb)

    def handle_exception(self, exception: Exception) -> Response | None:
        """Render ``exception`` into the application's response component.

        Returns:
            The response, or None if the error could not be rendered.
        """
        self.exception = exception
        if self.logger:
            if isinstance(exception, HttpException) and exception.status_code < 500:
                self.logger.info("HTTP %d: %s", exception.status_code, exception.message)
            else:
                self.logger.error("Unhandled exception", exc_info=exception)

        try:
            return self.render_exception(exception)
        except Exception:
            if self.logger:
                self.logger.exception("Exception while rendering an exception")
            return None

    def render_exception(self, exception: Exception) -> Response:
        response = self.app.get_response() if self.app is not None else Response()
        response.clear_body()

        if isinstance(exception, HttpException) and exception.response is not None:
            return response.with_psr7_response(exception.response)

        if isinstance(exception, HttpException):
            response.set_status_code(exception.status_code)
            message = exception.message
        else:
            response.set_status_code(500)
            message = GENERIC_ERROR_MESSAGE

        if self.debug and not isinstance(exception, HttpException):
            message = "".join(traceback.format_exception(exception))

        if response.format == Response.FORMAT_JSON:
            response.data = {
                "name": type(exception).__name__,
                "message": message,
                "status": response.status_code,
            }
        elif response.format == Response.FORMAT_HTML:
            response.data = html.escape(message)
        else:
            response.data = message
        return response
