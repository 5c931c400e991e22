"""
Token Guard
token-guard

Client-side credential cache that hands out a currently-valid bearer
token, logging in or refreshing against the auth service only when the
cached token is about to expire. Thread-safe; corrects expiry checks for
clock skew between client and server.
"""

from .guard import TokenGuard, create_token_guard
from .auth import TokenGuardAuth
from .transport import HttpxAuthTransport
from .types import (
    AuthTransport,
    Clock,
    GuardConfig,
    SystemClock,
    TokenInfo,
)
from .errors import (
    TokenGuardError,
    ConfigurationError,
    AuthenticationError,
    NetworkError,
    TokenRefreshError,
    TokenFormatError,
    is_token_guard_error,
)

__version__ = "0.1.0"
__all__ = [
    # Guard
    "TokenGuard",
    "create_token_guard",
    "TokenGuardAuth",
    "HttpxAuthTransport",
    # Types
    "AuthTransport",
    "Clock",
    "GuardConfig",
    "SystemClock",
    "TokenInfo",
    # Errors
    "TokenGuardError",
    "ConfigurationError",
    "AuthenticationError",
    "NetworkError",
    "TokenRefreshError",
    "TokenFormatError",
    "is_token_guard_error",
]
