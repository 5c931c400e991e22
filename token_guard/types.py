"""
Token Guard Type Definitions

Configuration, the immutable token record, and the collaborator
interfaces (transport and clock) the guard calls into.
"""

import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .errors import ConfigurationError


DEFAULT_REQUEST_MARGIN_MS = 1000
DEFAULT_LOGIN_PATH = "/api/auth/login"
DEFAULT_REFRESH_PATH = "/api/auth/token"


@runtime_checkable
class AuthTransport(Protocol):
    """Transport interface executing the login and refresh calls."""
    
    def post_login(self, base_url: str, username: str, password: str) -> Dict[str, Any]:
        """POST credentials to the login endpoint and return the JSON body."""
        ...
    
    def post_refresh(self, base_url: str, refresh_token: str) -> Dict[str, Any]:
        """POST a refresh token to the refresh endpoint and return the JSON body."""
        ...


@runtime_checkable
class Clock(Protocol):
    """Time source in epoch milliseconds."""
    
    def now(self) -> int:
        ...


class SystemClock:
    """Wall clock (default)."""
    
    def now(self) -> int:
        return int(time.time() * 1000)


@dataclass(frozen=True)
class TokenInfo:
    """Everything known about the current tokens, replaced as a whole."""
    
    token: Optional[str] = None
    refresh_token: Optional[str] = None
    # Epoch milliseconds; None means no known expiry
    token_expires_at: Optional[int] = None
    refresh_token_expires_at: Optional[int] = None
    # Server issued-at minus local request start, in milliseconds
    clock_skew: int = 0
    
    def is_token_valid(self, deadline: int) -> bool:
        """Check the access token is usable until ``deadline``."""
        if self.token is None:
            return False
        return self.token_expires_at is None or deadline <= self.token_expires_at
    
    def can_refresh(self, deadline: int) -> bool:
        """Check the refresh token is still worth presenting at ``deadline``."""
        if self.refresh_token is None:
            return False
        return self.refresh_token_expires_at is None or deadline < self.refresh_token_expires_at


@dataclass
class GuardConfig:
    """Token guard configuration options."""
    
    # Base URL of the authentication service
    base_url: str
    # Safety buffer added to "now" when checking expiry (default: 1000 ms)
    request_margin_ms: int = DEFAULT_REQUEST_MARGIN_MS
    # Request timeout in seconds for the default transport (default: 30)
    timeout: float = 30.0
    login_path: str = DEFAULT_LOGIN_PATH
    refresh_path: str = DEFAULT_REFRESH_PATH
    # Log in within the same call when the server rejects a refresh token
    login_on_refresh_rejection: bool = False
    # Enable debug logging (default: False)
    debug: bool = False
    # Custom headers to include in auth requests
    headers: Optional[Dict[str, str]] = None
    
    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigurationError("base_url is required")
        self.base_url = self.base_url.rstrip("/")
        if self.request_margin_ms < 0:
            raise ConfigurationError(
                "request_margin_ms must not be negative",
                {"request_margin_ms": self.request_margin_ms},
            )
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive", {"timeout": self.timeout})
    
    @classmethod
    def from_env(cls, prefix: str = "TOKEN_GUARD_") -> "GuardConfig":
        """
        Build a configuration from environment variables.
        
        Reads ``{prefix}BASE_URL`` (required), ``{prefix}REQUEST_MARGIN_MS``,
        ``{prefix}TIMEOUT`` and ``{prefix}DEBUG``.
        """
        base_url = os.environ.get(f"{prefix}BASE_URL", "")
        if not base_url:
            raise ConfigurationError(f"{prefix}BASE_URL is not set")
        
        try:
            margin = int(os.environ.get(f"{prefix}REQUEST_MARGIN_MS", DEFAULT_REQUEST_MARGIN_MS))
            timeout = float(os.environ.get(f"{prefix}TIMEOUT", 30.0))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e
        
        debug = os.environ.get(f"{prefix}DEBUG", "").lower() in ("1", "true", "yes")
        return cls(
            base_url=base_url,
            request_margin_ms=margin,
            timeout=timeout,
            debug=debug,
        )
