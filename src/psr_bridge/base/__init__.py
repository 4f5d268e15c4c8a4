"""Framework-native core: components, events and the application lifecycle."""

from __future__ import annotations
