"""Test fixtures for py-psr-bridge package."""

from __future__ import annotations

import sys
from collections.abc import Callable
from typing import Any, Generator
from unittest.mock import AsyncMock

import pytest
from starlette.requests import Request

from psr_bridge import (
    AppConfig,
    Application,
    Event,
    SessionConfig,
    UploadedFile,
    set_current_app,
)
from psr_bridge.constants import WEB_ALIAS_ENV, WEBROOT_ALIAS_ENV

VALID_SESSION_ID = "a1b2c3d4e5f6g7h8i9j0k1l2m3n4o5p6"


class ApiUser:
    """Identity resolved from a static token table."""

    tokens = {"valid-token": 42, "other-token": 7}

    def __init__(self, user_id: int) -> None:
        self.id = user_id

    def get_id(self) -> int:
        return self.id

    @classmethod
    def find_identity_by_access_token(cls, token: str, token_type: str | None = None) -> ApiUser | None:
        user_id = cls.tokens.get(token)
        return cls(user_id) if user_id is not None else None


def create_request(
    path: str = "/",
    method: str = "GET",
    headers: dict[str, str] | None = None,
    cookies: dict[str, str] | None = None,
    root_path: str = "",
) -> Request:
    """Build a Starlette request from a minimal HTTP scope."""
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        cookie_header = "; ".join(f"{k}={v}" for k, v in cookies.items())
        raw_headers.append((b"cookie", cookie_header.encode()))
    scope = {
        "type": "http",
        "method": method,
        "path": root_path + path,
        "root_path": root_path,
        "query_string": b"",
        "headers": raw_headers,
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
        "scheme": "http",
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request(scope, receive)


@pytest.fixture(autouse=True)
def alias_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Provide the environment variables every application requires."""
    monkeypatch.setenv(WEBROOT_ALIAS_ENV, "/srv/app/web")
    monkeypatch.setenv(WEB_ALIAS_ENV, "http://localhost:8080")


@pytest.fixture(autouse=True)
def isolate_process_state() -> Generator[None, None, None]:
    """Restore process-wide state touched by applications under test."""
    excepthook = sys.excepthook
    snapshot = Event.snapshot()
    yield
    sys.excepthook = excepthook
    Event.restrict_to(snapshot)
    UploadedFile.reset()
    set_current_app(None)


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create a mock Redis client for testing."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    # Mock the register_script method to return a callable
    mock_script = AsyncMock(return_value=1)
    redis.register_script = lambda script: mock_script
    redis.release_lock = mock_script
    return redis


@pytest.fixture
def session_config() -> SessionConfig:
    """Create a SessionConfig with a short lock timeout for testing."""
    return SessionConfig(session_expire=3600, lock_timeout=0.2)


@pytest.fixture
def make_request() -> Callable[..., Request]:
    return create_request


@pytest.fixture
def make_app(mock_redis: AsyncMock, session_config: SessionConfig) -> Callable[..., Application]:
    """Factory building applications whose session uses the mocked Redis."""

    def _make(app_class: type[Application] = Application, **kwargs: Any) -> Application:
        logger = kwargs.pop("logger", None)
        components = dict(kwargs.pop("components", {}))
        components["session"] = {
            "redis": mock_redis,
            "config": session_config,
            **components.get("session", {}),
        }
        components.setdefault("user", {"identity_class": ApiUser})
        return app_class(AppConfig(components=components, **kwargs), logger=logger)

    return _make
