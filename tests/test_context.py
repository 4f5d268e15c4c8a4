"""Tests for the current application accessor."""

from __future__ import annotations

from collections.abc import Callable

from psr_bridge import Application, get_current_app, set_current_app


class TestCurrentApp:
    """Tests for current_app context variable management."""

    def test_returns_none_when_not_set(self) -> None:
        set_current_app(None)
        assert get_current_app() is None

    def test_application_publishes_itself(self, make_app: Callable[..., Application]) -> None:
        app = make_app()
        assert get_current_app() is app

    def test_latest_application_wins(self, make_app: Callable[..., Application]) -> None:
        make_app()
        second = make_app()
        assert get_current_app() is second
