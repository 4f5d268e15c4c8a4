"""Configuration dataclasses for the application and its session store.

The application configuration is kept as an immutable value so that it can
be re-applied verbatim at the start of every request handled by a
long-lived worker.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .constants import (
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_SESSION_EXPIRE,
    LOCK_SUFFIX,
    MEMORY_SUFFIXES,
    SESSION_PREFIX,
)


def parse_memory_limit(limit: int | str | None) -> int:
    """Convert a memory limit into bytes.

    Accepts plain byte counts or strings such as ``"512M"`` / ``"2G"``.
    Negative, empty or unparsable values mean "no limit" and return 0.

    Example:
        >>> parse_memory_limit("128M")
        134217728
        >>> parse_memory_limit(-1)
        0
    """
    if limit is None:
        return 0
    if isinstance(limit, int):
        return max(limit, 0)

    value = limit.strip().upper()
    if not value:
        return 0

    multiplier = 1
    suffix = value[-1]
    if not suffix.isdigit():
        pos = MEMORY_SUFFIXES.find(suffix)
        if pos <= 0:
            return 0
        multiplier = 1024**pos
        value = value[:-1]

    if not value.isdigit():
        return 0
    return int(value) * multiplier


@dataclass(frozen=True)
class AppConfig:
    """Configuration for the bridged application.

    Attributes:
        name: Application name.
        components: Component definitions keyed by component id. Each
            definition is a mapping with an optional ``"class"`` entry and
            property values; recognized core ids are ``request``,
            ``response``, ``session``, ``user`` and ``error_handler``.
        routes: Route table. Keys are ``"/path"`` or ``"METHOD /path"``,
            values are action callables receiving the framework request.
        filters: Action filter definitions (mappings with ``"class"``)
            attached to the application on every request.
        bootstrap: Component ids or callables run during bootstrap.
        params: Free-form application parameters.
        memory_limit: Worker memory ceiling in bytes or as ``"<n>[K|M|G]"``.
            When unset the process address-space limit is used.

    Example:
        >>> config = AppConfig(
        ...     components={"session": {"redis_url": "redis://cache:6379/1"}},
        ...     routes={"GET /": index},
        ...     memory_limit="256M",
        ... )
        >>> app = Application(config)
    """

    name: str = "My Application"
    components: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    routes: Mapping[str, Callable[..., Any]] = field(default_factory=dict)
    filters: tuple[Mapping[str, Any], ...] = ()
    bootstrap: tuple[str | Callable[..., Any], ...] = ()
    params: Mapping[str, Any] = field(default_factory=dict)
    memory_limit: int | str | None = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        for component_id, definition in self.components.items():
            if not isinstance(definition, Mapping):
                raise ValueError(
                    f"component definition for {component_id!r} must be a mapping"
                )
        for definition in self.filters:
            if not isinstance(definition, Mapping) or "class" not in definition:
                raise ValueError("filter definitions must be mappings with a 'class'")
        for route, action in self.routes.items():
            if not callable(action):
                raise ValueError(f"route {route!r} must map to a callable")
        if isinstance(self.memory_limit, str) and self.memory_limit.strip() not in ("", "-1"):
            if parse_memory_limit(self.memory_limit) == 0:
                raise ValueError(f"invalid memory_limit: {self.memory_limit!r}")

    def with_request(self, request: Any) -> AppConfig:
        """Return a copy with ``request`` bound to the request component."""
        components = dict(self.components)
        components["request"] = {**components.get("request", {}), "psr7_request": request}
        return dataclasses.replace(self, components=components)


@dataclass(frozen=True)
class SessionConfig:
    """Configuration for the Redis session store.

    Attributes:
        session_expire: Session expiration time in seconds.
        lock_timeout: Lock acquisition timeout in seconds.
        session_prefix: Redis key prefix for session data.
        lock_suffix: Redis key suffix for lock keys.

    Example:
        >>> config = SessionConfig(
        ...     session_expire=3600,  # 1 hour
        ...     lock_timeout=10.0,
        ... )
    """

    session_expire: int = DEFAULT_SESSION_EXPIRE
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    session_prefix: str = SESSION_PREFIX
    lock_suffix: str = LOCK_SUFFIX

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.session_expire <= 0:
            raise ValueError("session_expire must be positive")
        if self.lock_timeout <= 0:
            raise ValueError("lock_timeout must be positive")
        if not self.session_prefix:
            raise ValueError("session_prefix cannot be empty")
