"""Integrations with ASGI servers and frameworks.

    from psr_bridge.contrib.starlette import ApplicationEndpoint
"""

from __future__ import annotations
