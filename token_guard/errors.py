"""
Token Guard Error Classes

Every failure raised by the guard derives from TokenGuardError so callers
can catch one type at the call site that fetches a token.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class TokenGuardError(Exception):
    """Base error class for Token Guard."""
    
    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 0,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "name": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
            "timestamp": self.timestamp,
        }
    
    def copy(self) -> "TokenGuardError":
        """Return a fresh error of the same type with the same fields and no traceback."""
        clone = self.__class__.__new__(self.__class__)
        Exception.__init__(clone, self.message)
        clone.__dict__.update(self.__dict__)
        return clone
    
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ConfigurationError(TokenGuardError):
    """Configuration error (missing credentials, invalid settings)."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, 0, details)


class AuthenticationError(TokenGuardError):
    """Authentication error (rejected login/refresh, transport failure)."""
    
    def __init__(
        self,
        message: str,
        code: str = "AUTHENTICATION_FAILED",
        status_code: int = 401,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, status_code, details)
    
    @property
    def is_rejection(self) -> bool:
        """True when the server answered and refused the credentials."""
        return self.status_code in (400, 401, 403)


class NetworkError(AuthenticationError):
    """Network error (connection issues, timeouts)."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NETWORK_ERROR", 0, details)


class TokenRefreshError(AuthenticationError):
    """Token refresh error."""
    
    def __init__(
        self,
        message: str,
        status_code: int = 401,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, "TOKEN_REFRESH_FAILED", status_code, details)


class TokenFormatError(AuthenticationError):
    """Response lacks a token, or the token claims cannot be decoded."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "TOKEN_FORMAT_ERROR", 0, details)


def is_token_guard_error(error: Any) -> bool:
    """Check if error is a TokenGuardError."""
    return isinstance(error, TokenGuardError)
