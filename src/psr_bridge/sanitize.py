"""Session ID sanitization and validation.

Session IDs arrive from a client cookie and are bound to the session
component before it opens, so they are validated first to prevent
injection into Redis keys.
"""

from __future__ import annotations

import logging

from .constants import SESSION_ID_PATTERN


def sanitize_session_id(
    session_id: str | None,
    logger: logging.Logger | None = None,
) -> str | None:
    """Sanitize and validate a session ID for security.

    Args:
        session_id: Raw session ID from cookie or other source.
        logger: Optional logger for security warnings.

    Returns:
        Validated session ID or None if invalid.

    Security considerations:
        - Prevents injection attacks by validating format
        - Limits length to prevent DoS via large cookies
        - Only allows alphanumeric characters (no special chars)
        - Rejects empty strings, whitespace, and null bytes

    Example:
        >>> sanitize_session_id("abc123def456ghi789jkl012mno")
        'abc123def456ghi789jkl012mno'
        >>> sanitize_session_id("invalid<script>")
        None
    """
    if not session_id:
        return None

    session_id = session_id.strip()

    # Alphanumeric only, 26-128 chars
    if not SESSION_ID_PATTERN.match(session_id):
        if logger:
            logger.warning(
                "Invalid session ID format rejected: prefix=%s, length=%d",
                session_id[:8] if len(session_id) >= 8 else session_id,
                len(session_id),
            )
        return None

    return session_id
