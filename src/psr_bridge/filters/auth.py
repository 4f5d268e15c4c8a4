"""Authentication filters, including the middleware-driven one.

:class:`MiddlewareAuth` runs a standard ``process(request, handler)``
middleware as an authentication method. It passes itself as the handler:
reaching :meth:`MiddlewareAuth.handle` means the middleware let the request
through, and the attribute it attached to the request is returned inside a
continue response (status 109 plus the token header). That response is
interpreted into a :data:`MiddlewareOutcome` and never sent to a client.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from ..base.component import ActionEvent, Component
from ..constants import CONTINUE_STATUS_CODE, TOKEN_ATTRIBUTE_NAME
from ..exceptions import HttpException, RequestNotSetError, UnauthorizedHttpException
from ..interfaces import Identity, Middleware

if TYPE_CHECKING:
    from ..base.application import BaseApplication
    from ..web.request import Request
    from ..web.response import Response
    from ..web.user import User


@dataclass(frozen=True)
class Continue:
    """The middleware delegated to the handler; ``token`` is the attribute value."""

    token: str


@dataclass(frozen=True)
class Respond:
    """The middleware answered itself with ``response``."""

    response: StarletteResponse


MiddlewareOutcome = Union[Continue, Respond]


def interpret_outcome(response: StarletteResponse) -> MiddlewareOutcome:
    """Classify a middleware result.

    Only a response carrying both the continue status and the token header
    is a :class:`Continue`; anything else is the middleware's own answer.
    """
    if response.status_code == CONTINUE_STATUS_CODE and TOKEN_ATTRIBUTE_NAME in response.headers:
        return Continue(response.headers[TOKEN_ATTRIBUTE_NAME])
    return Respond(response)


class ActionFilter(Component):
    """Runs before actions of the application it is attached to.

    ``only`` / ``except_`` restrict the routes (as written in the route
    table) the filter applies to.
    """

    only: Sequence[str] = ()
    except_: Sequence[str] = ()

    def attach(self, owner: BaseApplication) -> None:
        owner.on(owner.EVENT_BEFORE_ACTION, self._before_filter)

    def is_active(self, action: str) -> bool:
        if action in self.except_:
            return False
        return not self.only or action in self.only

    async def _before_filter(self, event: ActionEvent) -> None:
        if not self.is_active(event.action):
            return
        event.is_valid = await self.before_action(event.action)
        if not event.is_valid:
            event.handled = True

    async def before_action(self, action: str) -> bool:
        return True


class AuthMethod(ActionFilter):
    """Base class for authentication filters.

    ``user``, ``request`` and ``response`` default to the application's
    components. Routes listed in ``optional`` run even when no identity
    is found.
    """

    user: User | None = None
    request: Any = None
    response: Response | None = None
    optional: Sequence[str] = ()

    async def before_action(self, action: str) -> bool:
        response = self.response or self.app.get_response()
        request = self.app.get_request()
        user = self.user or self.app.get_user()

        identity = await self.authenticate(user, request, response)
        if identity is not None or action in self.optional:
            return True

        self.challenge(response)
        self.handle_failure(response)
        return False

    async def authenticate(self, user: User, request: Request, response: Response) -> Identity | None:
        raise NotImplementedError

    def challenge(self, response: Response) -> None:
        pass

    def handle_failure(self, response: Response) -> None:
        raise UnauthorizedHttpException("Your request was made with invalid credentials.")


class MiddlewareAuth(AuthMethod):
    """Authenticates with a ``process(request, handler)`` middleware.

    The middleware is expected to store the access token on
    ``request.state.<attribute>`` and call ``handler.handle(request)``;
    the token is then passed to ``User.login_by_access_token``. If the
    middleware answers itself (401, redirect...) that response is adopted
    as the application response and no identity is returned.

    Usage:
        config = AppConfig(
            filters=(
                {
                    "class": MiddlewareAuth,
                    "middleware": TokenMiddleware(),
                    "attribute": "token",
                },
            ),
        )
    """

    middleware: Middleware | None = None
    attribute: str | None = None

    def get_modified_request(self) -> StarletteRequest:
        """Return the request the middleware handed to :meth:`handle`.

        Raises:
            RequestNotSetError: If :meth:`handle` has not been called.
        """
        if self.request is None:
            raise RequestNotSetError()
        return self.request

    async def authenticate(self, user: User, request: Request, response: Response) -> Identity | None:
        if not self.attribute or self.middleware is None:
            if self.logger:
                self.logger.error(
                    "MiddlewareAuth misconfigured: %s not set.",
                    "middleware" if self.attribute else "token attribute",
                )
            response.set_status_code(500)
            response.content = "An unexpected error occurred."
            self.handle_failure(response)

        self.request = None
        result = await self.middleware.process(request.get_psr7_request(), self)

        if self.request is not None:
            request.set_psr7_request(self.get_modified_request())

        outcome = interpret_outcome(result)
        if isinstance(outcome, Continue):
            identity = await user.login_by_access_token(outcome.token, type(self).__name__)
            if identity is not None:
                return identity
        elif result.status_code != CONTINUE_STATUS_CODE:
            response.with_psr7_response(result)
            return None

        # The continue response is internal and never becomes the answer
        response.clear()
        return None

    async def handle(self, request: StarletteRequest) -> StarletteResponse:
        """Short-circuit the middleware chain with a continue response."""
        self.request = request
        value = getattr(request.state, self.attribute, None)
        return StarletteResponse(
            status_code=CONTINUE_STATUS_CODE,
            headers={TOKEN_ATTRIBUTE_NAME: str(value) if value is not None else ""},
        )

    def handle_failure(self, response: Response) -> None:
        """Stop processing with the status and content of ``response``.

        An adopted middleware answer travels on the exception so it is sent
        unchanged. A response without an error status (the token was
        rejected by the identity lookup) is reported as 401.
        """
        if response.is_adopted:
            raise HttpException(
                response.status_code,
                response.content,
                response=response.adopted_response,
            )
        if response.status_code < 400:
            raise UnauthorizedHttpException("Your request was made with invalid credentials.")
        raise HttpException(response.status_code, response.content)
