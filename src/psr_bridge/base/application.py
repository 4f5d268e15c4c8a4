"""Framework-native application: component locator, lifecycle and dispatch.

:class:`BaseApplication` owns the component definitions, the lifecycle
state and the bootstrap list. :class:`WebApplication` adds the framework's
normal request-handling path: route lookup, before/after action events and
conversion of action results into the response component.
"""

from __future__ import annotations

import inspect
import os
from collections.abc import Callable, Mapping
from enum import IntEnum
from typing import TYPE_CHECKING, Any, ClassVar

from starlette.responses import Response as StarletteResponse

from ..config import AppConfig
from ..exceptions import InvalidConfigError, InvalidStateError, NotFoundHttpException
from ..web.response import Response
from .component import ActionEvent, Component, create_component

if TYPE_CHECKING:
    import logging

    from ..web.error_handler import ErrorHandler
    from ..web.request import Request
    from ..web.session import Session
    from ..web.user import User


class ApplicationState(IntEnum):
    """Lifecycle stages of one request, in the order they are entered."""

    BEGIN = 0
    INIT = 1
    BEFORE_REQUEST = 2
    HANDLING_REQUEST = 3
    AFTER_REQUEST = 4
    END = 5


class BaseApplication(Component):
    """Component locator with a lifecycle.

    Components are described by definitions (``{"class": ..., **props}``)
    and instantiated lazily on first :meth:`get`. :meth:`pre_init` replaces
    every definition and drops every instance, so re-applying a
    configuration yields fresh components.
    """

    EVENT_BEFORE_REQUEST: ClassVar[str] = "before_request"
    EVENT_AFTER_REQUEST: ClassVar[str] = "after_request"
    EVENT_BEFORE_ACTION: ClassVar[str] = "before_action"
    EVENT_AFTER_ACTION: ClassVar[str] = "after_action"

    def __init__(
        self,
        config: AppConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.aliases: dict[str, str] = {}
        self.logger = logger
        self.state = ApplicationState.BEGIN
        self.pre_init(config or AppConfig())
        self.register_error_handler()
        super().__init__()

    def init(self) -> None:
        self.state = ApplicationState.INIT

    def pre_init(self, config: AppConfig) -> None:
        """Apply ``config``: component definitions, routes, filters and bootstrap list."""
        self.name = config.name
        self.params = dict(config.params)
        self.routes: dict[str, Callable[..., Any]] = dict(config.routes)
        self.filters: list[Any] = []
        self._filter_definitions = list(config.filters)
        self._bootstrap = list(config.bootstrap)
        self._behaviors_attached = False
        self._components: dict[str, Any] = {}
        self._definitions: dict[str, Any] = {}

        for component_id, definition in self.core_components().items():
            self._definitions[component_id] = {
                **definition,
                **config.components.get(component_id, {}),
            }
        for component_id, definition in config.components.items():
            self._definitions.setdefault(component_id, definition)

    def core_components(self) -> dict[str, dict[str, Any]]:
        return {}

    def advance(self, state: ApplicationState) -> None:
        """Move the lifecycle forward to ``state``.

        Raises:
            InvalidStateError: If ``state`` precedes the current state.
        """
        if state < self.state:
            raise InvalidStateError(
                f"Cannot move from {self.state.name} back to {state.name}"
            )
        self.state = state

    # Aliases

    def set_alias(self, alias: str, path: str | None) -> None:
        if not alias.startswith("@"):
            alias = "@" + alias
        if path is None:
            self.aliases.pop(alias, None)
        else:
            self.aliases[alias] = path.rstrip("/\\")

    def get_alias(self, alias: str) -> str:
        """Resolve ``@alias`` or ``@alias/rest/of/path``.

        Raises:
            InvalidConfigError: If the root alias is unknown.
        """
        if not alias.startswith("@"):
            return alias
        root, sep, rest = alias.partition("/")
        if root not in self.aliases:
            raise InvalidConfigError(f"Invalid path alias: {alias}")
        return self.aliases[root] + sep + rest

    # Component locator

    def has(self, component_id: str, check_instance: bool = False) -> bool:
        if check_instance:
            return component_id in self._components
        return component_id in self._definitions

    def get(self, component_id: str) -> Any:
        if component_id in self._components:
            return self._components[component_id]
        if component_id not in self._definitions:
            raise InvalidConfigError(f"Unknown component ID: {component_id}")

        component = create_component(
            self._definitions[component_id], app=self, logger=self.logger
        )
        self._components[component_id] = component
        return component

    def set(self, component_id: str, definition: Any) -> None:
        self._components.pop(component_id, None)
        if definition is None:
            self._definitions.pop(component_id, None)
        else:
            self._definitions[component_id] = definition

    def get_request(self) -> Request:
        return self.get("request")

    def get_response(self) -> Response:
        return self.get("response")

    def get_session(self) -> Session | None:
        return self.get("session") if self.has("session") else None

    def get_user(self) -> User:
        return self.get("user")

    def get_error_handler(self) -> ErrorHandler | None:
        return self.get("error_handler") if self.has("error_handler") else None

    def register_error_handler(self) -> None:
        if (handler := self.get_error_handler()) is not None:
            handler.register()

    def ensure_behaviors(self) -> None:
        """Instantiate the configured filters and attach them to this application."""
        if self._behaviors_attached:
            return
        for definition in self._filter_definitions:
            action_filter = create_component(definition, app=self, logger=self.logger)
            action_filter.attach(self)
            self.filters.append(action_filter)
        self._behaviors_attached = True

    # Bootstrap

    async def base_bootstrap(self) -> None:
        """Run every configured bootstrap item.

        Items are component ids, objects with a ``bootstrap(app)`` method or
        plain callables taking the application. Coroutines are awaited.
        """
        for item in self._bootstrap:
            if isinstance(item, str):
                if not self.has(item):
                    raise InvalidConfigError(f"Unknown bootstrapping component ID: {item}")
                item = self.get(item)

            if hasattr(item, "bootstrap"):
                result = item.bootstrap(self)
            elif callable(item):
                result = item(self)
            else:
                raise InvalidConfigError(f"Cannot bootstrap with {item!r}")

            if inspect.isawaitable(result):
                await result
            if self.logger:
                self.logger.debug("Bootstrap with %s", getattr(item, "__name__", type(item).__name__))

    async def bootstrap(self) -> None:
        await self.base_bootstrap()

    async def handle_request(self, request: Request) -> Response:
        raise NotImplementedError


class WebApplication(BaseApplication):
    """Web application with the framework's own request-handling path."""

    async def bootstrap(self) -> None:
        """Derive the web aliases from the request, then run the bootstrap list."""
        request = self.get_request()
        if "@webroot" not in self.aliases:
            self.set_alias("@webroot", os.getcwd())
        if "@web" not in self.aliases:
            self.set_alias("@web", request.get_base_url())
        await self.base_bootstrap()

    def resolve(self, request: Request) -> tuple[str, Callable[..., Any]]:
        """Find the action for ``request``.

        ``"METHOD /path"`` entries win over plain ``"/path"`` entries.

        Raises:
            NotFoundHttpException: If no route matches.
        """
        path = request.get_path()
        for route in (f"{request.get_method()} {path}", path):
            if route in self.routes:
                return route, self.routes[route]
        raise NotFoundHttpException(f"Page not found: {path}")

    async def handle_request(self, request: Request) -> Response:
        route, action = self.resolve(request)

        event = ActionEvent(action=route)
        await self.trigger(self.EVENT_BEFORE_ACTION, event)
        if not event.is_valid:
            return self.get_response()

        result = action(request)
        if inspect.isawaitable(result):
            result = await result

        event = ActionEvent(action=route, result=result)
        await self.trigger(self.EVENT_AFTER_ACTION, event)
        result = event.result

        if isinstance(result, Response):
            return result

        response = self.get_response()
        # A filter may have adopted a middleware answer for an optional action
        if result is not None and response.is_adopted:
            response.clear()
        if isinstance(result, StarletteResponse):
            response.with_psr7_response(result)
        elif isinstance(result, Mapping) and response.format == Response.FORMAT_HTML:
            response.format = Response.FORMAT_JSON
            response.data = result
        elif result is not None:
            response.data = result
        return response
