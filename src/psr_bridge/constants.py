"""Constants for the request/response bridge.

Reserved wire values, environment variable names and the PHP-compatible
session store settings shared by the framework components.
"""

from __future__ import annotations

import re
from typing import Final

# Out-of-range status used by MiddlewareAuth to signal "middleware did not
# respond yet". Reserved: never valid for a client-facing response.
CONTINUE_STATUS_CODE: Final[int] = 109

# Header carrying the token attribute value on the continue response
TOKEN_ATTRIBUTE_NAME: Final[str] = "yii_psr7_token_attr"

# Required environment variables for the @webroot and @web aliases
WEBROOT_ALIAS_ENV: Final[str] = "YII_ALIAS_WEBROOT"
WEB_ALIAS_ENV: Final[str] = "YII_ALIAS_WEB"

# Fraction of the memory limit at which a worker should be recycled
MEMORY_THRESHOLD: Final[float] = 0.90

# Unit suffixes accepted by memory limits ("128M"), index is the 1024 power
MEMORY_SUFFIXES: Final[str] = " KMG"

# Body returned when the error handler produced nothing usable
GENERIC_ERROR_MESSAGE: Final[str] = "An internal server error occurred."

# Chunk size used when streaming file responses
FILE_CHUNK_SIZE: Final[int] = 64 * 1024

# Default session cookie name (matches PHP's session.name)
DEFAULT_SESSION_NAME: Final[str] = "PHPSESSID"

# Default Redis location for the session component
DEFAULT_REDIS_URL: Final[str] = "redis://localhost:6379/0"

# PHP redis session handler default prefix (configurable via session.save_path?prefix=)
SESSION_PREFIX: Final[str] = "PHPREDIS_SESSION:"

# PHP redis lock key suffix: {session_key}_LOCK
LOCK_SUFFIX: Final[str] = "_LOCK"

# Lua script for safe lock release
# Only releases if token matches (prevents releasing other process's lock)
RELEASE_LOCK_SCRIPT: Final[str] = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

# Session ID validation pattern, alphanumeric only, 26-128 chars
SESSION_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9]{26,128}$")

# Default session expiration in seconds (24 hours, matching PHP default)
DEFAULT_SESSION_EXPIRE: Final[int] = 86400

# Default lock timeout in seconds
DEFAULT_LOCK_TIMEOUT: Final[float] = 30.0

# Lock retry interval in seconds (like PHP)
LOCK_RETRY_INTERVAL: Final[float] = 0.05
