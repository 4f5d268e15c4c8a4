"""Tests for configuration dataclasses and memory limit parsing."""

from __future__ import annotations

import pytest

from psr_bridge import AppConfig, SessionConfig, parse_memory_limit
from psr_bridge.constants import DEFAULT_LOCK_TIMEOUT, DEFAULT_SESSION_EXPIRE


async def index(request: object) -> str:
    return "index"


class TestParseMemoryLimit:
    """Tests for parse_memory_limit."""

    @pytest.mark.parametrize(
        ("limit", "expected"),
        [
            ("128M", 128 * 1024 * 1024),
            ("2G", 2 * 1024**3),
            ("512k", 512 * 1024),
            ("1048576", 1048576),
            (" 64M ", 64 * 1024 * 1024),
            (4096, 4096),
        ],
    )
    def test_valid_limits(self, limit: int | str, expected: int) -> None:
        assert parse_memory_limit(limit) == expected

    @pytest.mark.parametrize("limit", [None, -1, "-1", "", "12X", "M", "1.5G", "abc"])
    def test_unlimited_or_invalid_is_zero(self, limit: int | str | None) -> None:
        assert parse_memory_limit(limit) == 0


class TestAppConfig:
    """Tests for AppConfig dataclass."""

    def test_default_values(self) -> None:
        config = AppConfig()

        assert config.name == "My Application"
        assert config.components == {}
        assert config.routes == {}
        assert config.filters == ()
        assert config.bootstrap == ()
        assert config.memory_limit is None

    def test_custom_values(self) -> None:
        config = AppConfig(
            name="Shop",
            components={"session": {"name": "SHOPSESSID"}},
            routes={"GET /": index},
            params={"admin_email": "admin@example.com"},
            memory_limit="256M",
        )

        assert config.name == "Shop"
        assert config.components["session"]["name"] == "SHOPSESSID"
        assert config.routes["GET /"] is index
        assert config.params["admin_email"] == "admin@example.com"

    def test_invalid_component_definition(self) -> None:
        with pytest.raises(ValueError, match="component definition for 'session' must be a mapping"):
            AppConfig(components={"session": "redis"})  # type: ignore[dict-item]

    def test_filter_without_class(self) -> None:
        with pytest.raises(ValueError, match="filter definitions must be mappings"):
            AppConfig(filters=({"attribute": "token"},))

    def test_route_must_be_callable(self) -> None:
        with pytest.raises(ValueError, match="route 'GET /' must map to a callable"):
            AppConfig(routes={"GET /": "site/index"})  # type: ignore[dict-item]

    def test_invalid_memory_limit(self) -> None:
        with pytest.raises(ValueError, match="invalid memory_limit"):
            AppConfig(memory_limit="lots")

    def test_unlimited_memory_limit_accepted(self) -> None:
        assert AppConfig(memory_limit="-1").memory_limit == "-1"

    def test_with_request_binds_request(self) -> None:
        config = AppConfig(components={"request": {"class": object}})
        request = object()

        bound = config.with_request(request)

        assert bound.components["request"] == {"class": object, "psr7_request": request}
        # The original configuration is left untouched
        assert config.components["request"] == {"class": object}

    def test_config_is_frozen(self) -> None:
        config = AppConfig()

        with pytest.raises(AttributeError):
            config.name = "Other"  # type: ignore[misc]


class TestSessionConfig:
    """Tests for SessionConfig dataclass."""

    def test_default_values(self) -> None:
        config = SessionConfig()

        assert config.session_expire == DEFAULT_SESSION_EXPIRE
        assert config.lock_timeout == DEFAULT_LOCK_TIMEOUT
        assert config.session_prefix == "PHPREDIS_SESSION:"
        assert config.lock_suffix == "_LOCK"

    def test_invalid_session_expire(self) -> None:
        with pytest.raises(ValueError, match="session_expire must be positive"):
            SessionConfig(session_expire=0)

    def test_invalid_lock_timeout(self) -> None:
        with pytest.raises(ValueError, match="lock_timeout must be positive"):
            SessionConfig(lock_timeout=-1.0)

    def test_invalid_session_prefix(self) -> None:
        with pytest.raises(ValueError, match="session_prefix cannot be empty"):
            SessionConfig(session_prefix="")
