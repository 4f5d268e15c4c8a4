"""Redis-backed session component, compatible with PHP's redis session handler.

The session is explicitly opened and closed by the application around
bootstrap. Any later read or write reopens it lazily; an open session holds
the PHP-compatible Redis lock until it is closed.
"""

from __future__ import annotations

import asyncio
import secrets
from typing import Any

import phpserialize
from redis.asyncio import Redis

from ..base.component import Component
from ..config import SessionConfig
from ..constants import (
    DEFAULT_REDIS_URL,
    DEFAULT_SESSION_NAME,
    LOCK_RETRY_INTERVAL,
    RELEASE_LOCK_SCRIPT,
)
from ..exceptions import SessionError, SessionLockError
from ..sanitize import sanitize_session_id


class Session(Component):
    """Session component sharing storage and locking with PHP.

    PHP Compatibility:
        - Data key: {SESSION_PREFIX}{session_id}, phpserialize payload
        - Lock key: {SESSION_PREFIX}{session_id}_LOCK
        - Lock acquire: SET key token NX PX expiry_ms
        - Lock release: Lua script checking token

    Usage:
        session = app.get_session()
        await session.set("cart_count", 5)   # opens lazily
        count = await session.get("cart_count")
        await session.close()                # saves and releases the lock
    """

    name: str = DEFAULT_SESSION_NAME
    redis: Redis[bytes] | None = None
    redis_url: str = DEFAULT_REDIS_URL
    config: SessionConfig | None = None

    def init(self) -> None:
        if self.config is None:
            self.config = SessionConfig()
        self._id: str | None = None
        self._is_new = False
        self._data: dict[str, Any] | None = None
        self._token: str | None = None
        self._release_lock_script: Any = None

    @property
    def is_active(self) -> bool:
        return self._token is not None

    @property
    def is_new(self) -> bool:
        """True when the ID was generated here rather than sent by the client."""
        return self._is_new

    def get_name(self) -> str:
        return self.name

    def get_id(self) -> str | None:
        return self._id

    def set_id(self, session_id: str | None) -> None:
        """Bind a client-supplied session ID; invalid IDs are ignored.

        Raises:
            SessionError: If the session is currently open.
        """
        if self.is_active:
            raise SessionError("Cannot change the ID of an active session")
        sanitized = sanitize_session_id(session_id, logger=self.logger)
        if sanitized is not None:
            self._id = sanitized
            self._is_new = False

    def _client(self) -> Redis[bytes]:
        if self.redis is None:
            self.redis = Redis.from_url(self.redis_url)
        if self._release_lock_script is None:
            self._release_lock_script = self.redis.register_script(RELEASE_LOCK_SCRIPT)
        return self.redis

    def _session_key(self, session_id: str) -> str:
        """Build Redis key for session data."""
        return f"{self.config.session_prefix}{session_id}"

    def _lock_key(self, session_id: str) -> str:
        """Build Redis key for session lock (PHP compatible format)."""
        return f"{self._session_key(session_id)}{self.config.lock_suffix}"

    def _decode_session(self, raw: bytes) -> dict[str, Any]:
        """Decode raw PHP-serialized session data."""
        return phpserialize.loads(
            raw,
            decode_strings=True,
            object_hook=lambda _name, d: dict(d),
        )

    async def open(self) -> None:
        """Acquire the session lock and load the data.

        A new ID is generated when none was bound. Opening an open session
        does nothing.

        Raises:
            SessionLockError: If the lock cannot be acquired within the timeout.
        """
        if self.is_active:
            return
        if self._id is None:
            self._id = secrets.token_hex(16)
            self._is_new = True

        redis = self._client()
        lock_key = self._lock_key(self._id)
        token = secrets.token_hex(16)
        acquired = False

        # Acquire lock (matching PHP's SET NX PX pattern)
        loop = asyncio.get_running_loop()
        start = loop.time()
        while loop.time() - start < self.config.lock_timeout:
            result = await redis.set(
                lock_key,
                token,
                nx=True,
                px=int(self.config.lock_timeout * 1000),
            )
            if result:
                acquired = True
                break
            await asyncio.sleep(LOCK_RETRY_INTERVAL)

        if not acquired:
            raise SessionLockError(self._id, self.config.lock_timeout)

        raw = await redis.get(self._session_key(self._id))
        self._data = self._decode_session(raw) if raw else {}
        self._token = token

        if self.logger:
            self.logger.debug("Session opened: %s", self._id[:8] + "...")
        await self.trigger(self.EVENT_AFTER_OPEN)

    async def close(self) -> None:
        """Save the data and release the lock. Closing a closed session does nothing."""
        if not self.is_active:
            return

        redis = self._client()
        try:
            await redis.set(
                self._session_key(self._id),
                phpserialize.dumps(self._data),
                ex=self.config.session_expire,
            )
        finally:
            await self._release_lock_script(keys=[self._lock_key(self._id)], args=[self._token])
            self._token = None
            self._data = None

        if self.logger:
            self.logger.debug(
                "Session saved and lock released: %s", self._id[:8] + "..."
            )

    async def get(self, key: str | None = None, default: Any = None) -> Any:
        """Get a session value, or a copy of all data when ``key`` is None."""
        await self.open()
        if key is None:
            return dict(self._data)
        return self._data.get(key, default)

    async def set(self, key: str, value: Any) -> None:
        await self.open()
        self._data[key] = value

    async def has(self, key: str) -> bool:
        await self.open()
        return key in self._data

    async def remove(self, key: str) -> Any:
        """Remove ``key`` and return its value (None if absent)."""
        await self.open()
        return self._data.pop(key, None)

    async def destroy(self) -> bool:
        """Delete the stored session and forget its ID.

        Returns:
            True if stored data was deleted, False if there was none.
        """
        if self._id is None:
            return False

        redis = self._client()
        session_id = self._id
        if self.is_active:
            await self._release_lock_script(keys=[self._lock_key(session_id)], args=[self._token])
            self._token = None
            self._data = None
        result = await redis.delete(self._session_key(session_id))
        self._id = None
        self._is_new = False
        if self.logger:
            self.logger.info(
                "Session deleted: %s, existed=%s", session_id[:8] + "...", result > 0
            )
        return result > 0
