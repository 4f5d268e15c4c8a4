"""Web components of the bridged application.

The request and response components wrap Starlette messages; the session,
user and error handler components are rebuilt for every request.
"""

from __future__ import annotations
