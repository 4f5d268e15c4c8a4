"""Custom exceptions for the request/response bridge.

Provides a hierarchy of exceptions for configuration problems, lifecycle
misuse, session storage failures and HTTP-level errors.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from starlette.responses import Response as StarletteResponse


class BridgeError(Exception):
    """Base exception for bridge-related errors.

    All bridge-specific exceptions inherit from this class,
    allowing callers to catch all of them with a single except clause.
    """


class InvalidConfigError(BridgeError):
    """Raised when the application or a component is misconfigured."""


class InvalidStateError(BridgeError):
    """Raised when the application state would move backwards within a request."""


class RequestNotSetError(BridgeError, RuntimeError):
    """Raised when request state is read before it has been populated.

    This is a programming error: the request is only available once
    the handler that receives it has run.
    """

    def __init__(self, message: str | None = None) -> None:
        if message is None:
            message = "Request has not been set. Call handle() method first."
        super().__init__(message)


class SessionError(BridgeError):
    """Base exception for session storage errors."""


class SessionLockError(SessionError):
    """Raised when session lock cannot be acquired.

    Attributes:
        session_id: The session ID that couldn't be locked (truncated for security).
        timeout: The timeout value that was exceeded.
    """

    def __init__(
        self,
        session_id: str,
        timeout: float,
        message: str | None = None,
    ) -> None:
        self.session_id = session_id[:8] + "..." if len(session_id) > 8 else session_id
        self.timeout = timeout
        if message is None:
            message = f"Could not acquire session lock for {self.session_id} within {timeout}s"
        super().__init__(message)


class HttpException(BridgeError):
    """An error that maps directly onto an HTTP response status.

    Attributes:
        status_code: HTTP status to respond with.
        message: Human readable message; defaults to the status phrase.
        response: A ready response to send instead of rendering the error.
    """

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        response: StarletteResponse | None = None,
    ) -> None:
        self.status_code = status_code
        self.response = response
        if message is None:
            try:
                message = HTTPStatus(status_code).phrase
            except ValueError:
                message = "Error"
        self.message = message
        super().__init__(message)


class UnauthorizedHttpException(HttpException):
    """401 Unauthorized."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(401, message)


class NotFoundHttpException(HttpException):
    """404 Not Found."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(404, message)


class ServerErrorHttpException(HttpException):
    """500 Internal Server Error."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(500, message)
