"""Context variable helpers for the current application.

Framework code deep in the call chain sometimes needs "the current
application". The application object is passed explicitly wherever the
bridge controls the call; this accessor exists only for code that cannot
receive it, and is set by the application when it is constructed.
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base.application import BaseApplication

# ContextVar for the application serving the current worker
_current_app: ContextVar[BaseApplication | None] = ContextVar("current_app", default=None)


def set_current_app(app: BaseApplication | None) -> None:
    """Set the current application (called by the application itself).

    Args:
        app: The application to publish, or None to clear.
    """
    _current_app.set(app)


def get_current_app() -> BaseApplication | None:
    """Get the current application.

    Returns:
        The current application, or None if not set.
    """
    return _current_app.get()
