"""Action filters attached to the application on every request."""

from __future__ import annotations
