"""User component: holds the authenticated identity for the current request."""

from __future__ import annotations

import inspect
from typing import Any, ClassVar

from ..base.component import Component, Event
from ..exceptions import InvalidConfigError
from ..interfaces import Identity


class User(Component):
    """Tracks the identity of the current request.

    ``identity_class`` must provide
    ``find_identity_by_access_token(token, type=None)``, plain or async,
    returning an identity or None.
    """

    EVENT_AFTER_LOGIN: ClassVar[str] = "after_login"
    EVENT_AFTER_LOGOUT: ClassVar[str] = "after_logout"

    identity_class: Any = None

    def init(self) -> None:
        self._identity: Identity | None = None

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def is_guest(self) -> bool:
        return self._identity is None

    def get_id(self) -> Any:
        return self._identity.get_id() if self._identity is not None else None

    async def login(self, identity: Identity) -> bool:
        """Make ``identity`` the current identity."""
        self._identity = identity
        await self.trigger(self.EVENT_AFTER_LOGIN, Event(data=identity))
        if self.logger:
            self.logger.debug("User logged in: %s", identity.get_id())
        return True

    async def login_by_access_token(
        self, token: str, token_type: str | None = None
    ) -> Identity | None:
        """Log in the identity owning ``token``.

        Returns:
            The identity, or None if the token is unknown or login failed.

        Raises:
            InvalidConfigError: If ``identity_class`` is not configured.
        """
        if self.identity_class is None:
            raise InvalidConfigError("User.identity_class must be set.")

        identity = self.identity_class.find_identity_by_access_token(token, token_type)
        if inspect.isawaitable(identity):
            identity = await identity

        if identity is not None and await self.login(identity):
            return identity
        return None

    async def logout(self) -> bool:
        if self._identity is None:
            return False
        identity = self._identity
        self._identity = None
        await self.trigger(self.EVENT_AFTER_LOGOUT, Event(data=identity))
        return True
