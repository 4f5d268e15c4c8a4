"""Run a component-based web application behind standard middleware pipelines.

The application is a request handler (``async handle(request) -> response``)
over Starlette messages. It lives for the whole worker process and rebuilds
framework state on every request.

Basic usage:
    from psr_bridge import AppConfig, Application

    async def index(request):
        return {"hello": "world"}

    app = Application(AppConfig(routes={"GET /": index}))
    response = await app.handle(starlette_request)

Authenticating with a middleware:
    from psr_bridge import MiddlewareAuth

    config = AppConfig(
        routes={"GET /me": me},
        components={"user": {"identity_class": ApiUser}},
        filters=({"class": MiddlewareAuth, "middleware": JwtMiddleware(), "attribute": "token"},),
    )

Serving over ASGI:
    from psr_bridge.contrib.starlette import ApplicationEndpoint

    endpoint = ApplicationEndpoint(Application(config), on_recycle=worker.retire)
"""

from __future__ import annotations

from .base.application import ApplicationState, BaseApplication, WebApplication
from .base.component import ActionEvent, Component, Event
from .config import AppConfig, SessionConfig, parse_memory_limit
from .constants import (
    CONTINUE_STATUS_CODE,
    DEFAULT_SESSION_NAME,
    MEMORY_THRESHOLD,
    TOKEN_ATTRIBUTE_NAME,
    WEB_ALIAS_ENV,
    WEBROOT_ALIAS_ENV,
)
from .context import get_current_app, set_current_app
from .exceptions import (
    BridgeError,
    HttpException,
    InvalidConfigError,
    InvalidStateError,
    NotFoundHttpException,
    RequestNotSetError,
    ServerErrorHttpException,
    SessionError,
    SessionLockError,
    UnauthorizedHttpException,
)
from .filters.auth import (
    ActionFilter,
    AuthMethod,
    Continue,
    MiddlewareAuth,
    MiddlewareOutcome,
    Respond,
    interpret_outcome,
)
from .interfaces import Identity, Middleware, Monitor, RequestHandler
from .monitor import ConnectionMonitor, EventMonitor
from .sanitize import sanitize_session_id
from .web.application import Application
from .web.error_handler import ErrorHandler
from .web.request import Request
from .web.response import FileStream, Response
from .web.session import Session
from .web.uploaded_file import UploadedFile
from .web.user import User

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "Application",
    "AppConfig",
    "SessionConfig",
    "MiddlewareAuth",
    # Framework components
    "Request",
    "Response",
    "FileStream",
    "Session",
    "User",
    "ErrorHandler",
    "UploadedFile",
    # Framework core
    "ApplicationState",
    "BaseApplication",
    "WebApplication",
    "Component",
    "Event",
    "ActionEvent",
    "ActionFilter",
    "AuthMethod",
    # Middleware outcome
    "MiddlewareOutcome",
    "Continue",
    "Respond",
    "interpret_outcome",
    # Contracts
    "RequestHandler",
    "Middleware",
    "Identity",
    "Monitor",
    "ConnectionMonitor",
    "EventMonitor",
    # Exceptions
    "BridgeError",
    "InvalidConfigError",
    "InvalidStateError",
    "RequestNotSetError",
    "SessionError",
    "SessionLockError",
    "HttpException",
    "UnauthorizedHttpException",
    "NotFoundHttpException",
    "ServerErrorHttpException",
    # Context helpers
    "set_current_app",
    "get_current_app",
    # Utility functions
    "sanitize_session_id",
    "parse_memory_limit",
    # Constants
    "CONTINUE_STATUS_CODE",
    "TOKEN_ATTRIBUTE_NAME",
    "WEBROOT_ALIAS_ENV",
    "WEB_ALIAS_ENV",
    "MEMORY_THRESHOLD",
    "DEFAULT_SESSION_NAME",
]
