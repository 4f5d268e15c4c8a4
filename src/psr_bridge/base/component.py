"""Component model of the framework-native side.

Components are configured from plain mappings, carry instance-level event
handlers and also fire class-level handlers registered through
:class:`Event`. Handlers may be plain callables or coroutines.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from ..exceptions import InvalidConfigError

if TYPE_CHECKING:
    from .application import BaseApplication

Handler = Callable[["Event"], Any]


async def _invoke(handler: Handler, event: Event) -> None:
    result = handler(event)
    if inspect.isawaitable(result):
        await result


@dataclass
class Event:
    """An event passed to handlers.

    Class-level handlers live in a process-wide registry keyed by
    ``(class, event name)``; they fire for instances of the class and of
    its subclasses.
    """

    name: str = ""
    sender: Any = None
    data: Any = None
    handled: bool = False

    _class_handlers: ClassVar[dict[tuple[type, str], list[Handler]]] = {}

    @classmethod
    def on(cls, target: type, name: str, handler: Handler) -> None:
        cls._class_handlers.setdefault((target, name), []).append(handler)

    @classmethod
    def off(cls, target: type, name: str, handler: Handler | None = None) -> bool:
        """Detach one handler, or all handlers for ``name`` when ``handler`` is None."""
        key = (target, name)
        if key not in cls._class_handlers:
            return False
        if handler is None:
            del cls._class_handlers[key]
            return True
        handlers = cls._class_handlers[key]
        if handler not in handlers:
            return False
        handlers.remove(handler)
        if not handlers:
            del cls._class_handlers[key]
        return True

    @classmethod
    def snapshot(cls) -> dict[tuple[type, str], list[Handler]]:
        """Copy of the class-level registry."""
        return {key: list(handlers) for key, handlers in cls._class_handlers.items()}

    @classmethod
    def restrict_to(cls, snapshot: dict[tuple[type, str], list[Handler]]) -> int:
        """Remove every class-level handler not present in ``snapshot``.

        Returns:
            Number of handlers removed.
        """
        removed = 0
        for key in list(cls._class_handlers):
            known = snapshot.get(key, [])
            kept = [h for h in cls._class_handlers[key] if h in known]
            removed += len(cls._class_handlers[key]) - len(kept)
            if kept:
                cls._class_handlers[key] = kept
            else:
                del cls._class_handlers[key]
        return removed

    @classmethod
    async def trigger(cls, sender: Any, name: str, event: Event) -> None:
        for klass in type(sender).__mro__:
            for handler in list(cls._class_handlers.get((klass, name), ())):
                await _invoke(handler, event)
                if event.handled:
                    return


@dataclass
class ActionEvent(Event):
    """Event fired around action execution.

    Setting ``is_valid`` to False from a ``before_action`` handler stops
    the action from running.
    """

    action: str = ""
    is_valid: bool = True
    result: Any = None


class Component:
    """Base class for configurable, event-aware objects.

    Keyword arguments passed to the constructor must name existing
    attributes; anything else is a configuration error. ``init()`` runs
    after configuration.
    """

    EVENT_AFTER_OPEN: ClassVar[str] = "after_open"

    app: BaseApplication | None = None
    logger: logging.Logger | None = None

    def __init__(self, **config: Any) -> None:
        self._events: dict[str, list[Handler]] = {}
        for name, value in config.items():
            if name.startswith("_") or not hasattr(self, name):
                raise InvalidConfigError(
                    f"Unknown property {type(self).__name__}.{name}"
                )
            setattr(self, name, value)
        self.init()

    def init(self) -> None:
        pass

    def on(self, name: str, handler: Handler) -> None:
        self._events.setdefault(name, []).append(handler)

    def off(self, name: str, handler: Handler | None = None) -> bool:
        if name not in self._events:
            return False
        if handler is None:
            del self._events[name]
            return True
        if handler not in self._events[name]:
            return False
        self._events[name].remove(handler)
        return True

    def off_all(self) -> None:
        self._events = {}

    def has_event_handlers(self, name: str) -> bool:
        if self._events.get(name):
            return True
        return any(
            (klass, name) in Event._class_handlers for klass in type(self).__mro__
        )

    async def trigger(self, name: str, event: Event | None = None) -> Event:
        if event is None:
            event = Event()
        event.name = name
        event.sender = self
        event.handled = False
        for handler in list(self._events.get(name, ())):
            await _invoke(handler, event)
            if event.handled:
                return event
        await Event.trigger(self, name, event)
        return event


def create_component(definition: Any, default_class: type | None = None, **extra: Any) -> Any:
    """Instantiate a component from its definition.

    ``definition`` is either an already-built object (returned as is) or a
    mapping holding an optional ``"class"`` and property values.
    """
    if not isinstance(definition, Mapping):
        return definition

    props = dict(definition)
    component_class = props.pop("class", default_class)
    if component_class is None:
        raise InvalidConfigError(f"Component definition has no class: {definition!r}")
    for name, value in extra.items():
        if value is not None:
            props.setdefault(name, value)
    return component_class(**props)
