"""Tests for the component model and its events."""

from __future__ import annotations

from typing import Any

import pytest

from psr_bridge import Component, Event, InvalidConfigError
from psr_bridge.base.component import create_component


class Widget(Component):
    title: str = "untitled"
    size: int = 0

    def init(self) -> None:
        self.initialized_with = (self.title, self.size)


class SpecialWidget(Widget):
    pass


class TestComponentConfiguration:
    """Tests for constructing components from property values."""

    def test_properties_set_before_init(self) -> None:
        widget = Widget(title="clock", size=3)

        assert widget.initialized_with == ("clock", 3)

    def test_unknown_property_raises(self) -> None:
        with pytest.raises(InvalidConfigError, match="Unknown property Widget.color"):
            Widget(color="red")

    def test_private_property_raises(self) -> None:
        with pytest.raises(InvalidConfigError):
            Widget(_events={})

    def test_create_component_from_definition(self) -> None:
        widget = create_component({"class": Widget, "title": "clock"}, logger=None)

        assert isinstance(widget, Widget)
        assert widget.title == "clock"
        assert widget.logger is None

    def test_create_component_keeps_explicit_values(self) -> None:
        app = object()
        widget = create_component({"class": Widget, "app": "explicit"}, app=app)

        assert widget.app == "explicit"

    def test_create_component_returns_objects_as_is(self) -> None:
        widget = Widget()
        assert create_component(widget) is widget

    def test_create_component_without_class(self) -> None:
        with pytest.raises(InvalidConfigError, match="has no class"):
            create_component({"title": "clock"})


class TestComponentEvents:
    """Tests for instance and class-level event handlers."""

    @pytest.mark.asyncio
    async def test_instance_handlers_run_in_order(self) -> None:
        widget = Widget()
        calls: list[str] = []
        widget.on("changed", lambda event: calls.append("first"))

        async def second(event: Event) -> None:
            calls.append("second")

        widget.on("changed", second)

        event = await widget.trigger("changed")

        assert calls == ["first", "second"]
        assert event.sender is widget
        assert event.name == "changed"

    @pytest.mark.asyncio
    async def test_handled_event_stops_propagation(self) -> None:
        widget = Widget()
        calls: list[str] = []

        def stop(event: Event) -> None:
            calls.append("stop")
            event.handled = True

        widget.on("changed", stop)
        widget.on("changed", lambda event: calls.append("never"))
        Event.on(Widget, "changed", lambda event: calls.append("class"))

        await widget.trigger("changed")

        assert calls == ["stop"]

    @pytest.mark.asyncio
    async def test_class_handlers_fire_for_subclasses(self) -> None:
        seen: list[Any] = []
        Event.on(Widget, "changed", lambda event: seen.append(event.sender))

        special = SpecialWidget()
        await special.trigger("changed")
        await Component().trigger("changed")

        assert seen == [special]
        assert special.has_event_handlers("changed")

    def test_off_detaches_handlers(self) -> None:
        widget = Widget()

        def handler(event: Event) -> None:
            pass

        widget.on("changed", handler)
        assert widget.off("changed", handler)
        assert not widget.off("changed", handler)
        assert not widget.has_event_handlers("changed")

    def test_snapshot_and_restrict(self) -> None:
        def kept(event: Event) -> None:
            pass

        def added(event: Event) -> None:
            pass

        Event.on(Widget, "changed", kept)
        snapshot = Event.snapshot()
        Event.on(Widget, "changed", added)
        Event.on(Widget, "removed", added)

        assert Event.restrict_to(snapshot) == 2
        assert Event._class_handlers[(Widget, "changed")] == [kept]
        assert (Widget, "removed") not in Event._class_handlers
