"""Framework request component backed by a Starlette request."""

from __future__ import annotations

from typing import Any

from starlette.datastructures import Headers, QueryParams
from starlette.requests import Request as StarletteRequest

from ..base.component import Component
from ..exceptions import RequestNotSetError


class Request(Component):
    """Mutable framework request wrapping the inbound Starlette request.

    The wrapped request is replaced through :meth:`set_psr7_request`
    whenever middleware hands back a modified one, so framework code always
    reads the latest attributes.
    """

    psr7_request: StarletteRequest | None = None

    def get_psr7_request(self) -> StarletteRequest:
        """Return the wrapped request.

        Raises:
            RequestNotSetError: If no request has been bound yet.
        """
        if self.psr7_request is None:
            raise RequestNotSetError()
        return self.psr7_request

    def set_psr7_request(self, request: StarletteRequest) -> None:
        self.psr7_request = request

    def get_method(self) -> str:
        return self.get_psr7_request().method.upper()

    def get_path(self) -> str:
        """Path relative to the mount point (``root_path``) of the application."""
        scope = self.get_psr7_request().scope
        path: str = scope["path"]
        root_path: str = scope.get("root_path", "")
        if root_path and path.startswith(root_path):
            path = path[len(root_path):]
        return path or "/"

    def get_base_url(self) -> str:
        return self.get_psr7_request().scope.get("root_path", "")

    def get_headers(self) -> Headers:
        return self.get_psr7_request().headers

    def get_query_params(self) -> QueryParams:
        return self.get_psr7_request().query_params

    def get_cookies(self) -> dict[str, str]:
        return self.get_psr7_request().cookies

    def get_attribute(self, name: str, default: Any = None) -> Any:
        """Read an attribute set by middleware on ``request.state``."""
        return getattr(self.get_psr7_request().state, name, default)

    async def get_body(self) -> bytes:
        return await self.get_psr7_request().body()

    @property
    def user_ip(self) -> str | None:
        client = self.get_psr7_request().client
        return client.host if client else None
