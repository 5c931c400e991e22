"""
Token Guard

Keeps a bearer token valid for any number of concurrent callers. Tokens
are served lock-free while valid; once they are about to expire a single
caller refreshes (or logs in again) under a lock while the others wait
and then pick up the new token.
"""

import dataclasses
import logging
import threading
from typing import Any, Dict, Optional, cast

from .claims import claim_millis, decode_claims
from .errors import (
    AuthenticationError,
    ConfigurationError,
    TokenFormatError,
    TokenGuardError,
    TokenRefreshError,
    is_token_guard_error,
)
from .transport import HttpxAuthTransport
from .types import AuthTransport, Clock, GuardConfig, SystemClock, TokenInfo


logger = logging.getLogger("token_guard")


class TokenGuard:
    """
    Client-side credential cache.
    
    One instance per backing connection. The whole token state lives in a
    single frozen TokenInfo that is swapped by reference, so the lock-free
    read in ensure_valid_token() always sees a consistent record.
    """
    
    def __init__(
        self,
        base_url: str,
        transport: AuthTransport,
        access_token: Optional[str] = None,
        *,
        clock: Optional[Clock] = None,
        config: Optional[GuardConfig] = None,
        owns_transport: bool = False,
    ) -> None:
        """
        Initialize the guard.
        
        Args:
            base_url: Base URL of the authentication service
            transport: Executes the login and refresh calls
            access_token: Pre-existing access token; no login happens while it is valid
            clock: Time source in epoch milliseconds (default: wall clock)
            config: Further options; its base_url is replaced by ``base_url``
            owns_transport: Close the transport when the guard is closed
        """
        if config is None:
            config = GuardConfig(base_url=base_url)
        else:
            config = dataclasses.replace(config, base_url=base_url)
        
        self._config = config
        self._base_url = config.base_url
        self._transport = transport
        self._clock: Clock = clock or SystemClock()
        self._request_margin = config.request_margin_ms
        self._debug = config.debug
        self._owns_transport = owns_transport
        
        # Credentials
        self._username: Optional[str] = None
        self._password: Optional[str] = None
        
        # State
        self._info = self._seed(access_token) if access_token else TokenInfo()
        self._rejected_refresh_token: Optional[str] = None
        self._lock = threading.Lock()
        self._attempts = 0
        self._last_error: Optional[TokenGuardError] = None
        
        self._log(f"TokenGuard initialized (base_url={self._base_url}, seeded={access_token is not None})")
    
    def _seed(self, access_token: str) -> TokenInfo:
        """Build the initial record from a pre-existing access token."""
        try:
            expires_at = claim_millis(decode_claims(access_token), "exp", required=False)
        except TokenFormatError as e:
            logger.warning("Seed access token expiry unreadable (%s); keeping it until replaced", e.message)
            expires_at = None
        return TokenInfo(token=access_token, token_expires_at=expires_at)
    
    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            logger.debug(f"[TokenGuard] {message}", *args)
    
    # =========================================================================
    # Public API
    # =========================================================================
    
    def set_credentials(self, username: str, password: str) -> None:
        """Store the credentials used by future logins."""
        self._username = username
        self._password = password
    
    def ensure_valid_token(self) -> str:
        """
        Return an access token valid for at least the request margin.
        
        Logs in or refreshes first when the cached token is missing or about
        to expire. At most one such call runs at a time; concurrent callers
        block until it finishes and then re-check the new state.
        
        Raises:
            ConfigurationError: If a login is needed and no credentials are set
            AuthenticationError: If the server rejects the login/refresh or
                the transport fails
            TokenFormatError: If the response carries no decodable token
        """
        info = self._info
        if info.token is not None and info.is_token_valid(self._deadline(info)):
            return info.token
        
        seen = self._attempts
        with self._lock:
            info = self._info
            deadline = self._deadline(info)
            if not info.is_token_valid(deadline):
                # Waited behind an attempt that failed: share its outcome
                if self._attempts != seen and self._last_error is not None:
                    raise self._last_error.copy() from self._last_error
                
                try:
                    if self._can_refresh(info, deadline):
                        self._refresh_locked(info)
                    else:
                        self._login_locked()
                except TokenGuardError as e:
                    self._last_error = e
                    raise
                finally:
                    self._attempts += 1
            
            token = self._info.token
            if token is None:
                raise AuthenticationError("No valid token available")
            return token
    
    def login(self) -> str:
        """Log in with the stored credentials and return the new access token."""
        with self._lock:
            return self._login_locked().token or ""
    
    def refresh(self) -> str:
        """
        Exchange the stored refresh token for new tokens.
        
        Raises:
            TokenRefreshError: If there is no refresh token or the server refuses it
        """
        with self._lock:
            return self._refresh_locked(self._info).token or ""
    
    def clear(self) -> None:
        """Forget all tokens; the next ensure_valid_token() logs in."""
        with self._lock:
            self._info = TokenInfo()
            self._rejected_refresh_token = None
            self._last_error = None
        self._log("Tokens cleared")
    
    def get_main_token(self) -> Optional[str]:
        """Get the current access token, valid or not."""
        return self._info.token
    
    def get_refresh_token(self) -> Optional[str]:
        """Get the current refresh token."""
        return self._info.refresh_token
    
    @property
    def token_info(self) -> TokenInfo:
        """Snapshot of the current token state."""
        return self._info
    
    @property
    def clock_skew(self) -> int:
        return self._info.clock_skew
    
    def close(self) -> None:
        """Close the transport if this guard owns it."""
        if self._owns_transport:
            close = getattr(self._transport, "close", None)
            if close is not None:
                close()
    
    def __enter__(self) -> "TokenGuard":
        return self
    
    def __exit__(self, *args: Any) -> None:
        self.close()
    
    # =========================================================================
    # Internal Methods (callers hold self._lock)
    # =========================================================================
    
    def _deadline(self, info: TokenInfo) -> int:
        return self._clock.now() + info.clock_skew + self._request_margin
    
    def _can_refresh(self, info: TokenInfo, deadline: int) -> bool:
        if info.refresh_token == self._rejected_refresh_token:
            return False
        return info.can_refresh(deadline)
    
    def _login_locked(self) -> TokenInfo:
        username, password = self._username, self._password
        if not username or password is None:
            raise ConfigurationError("Credentials are not set; call set_credentials() first")
        
        self._log(f"Login attempt for: {username}")
        request_start = self._clock.now()
        try:
            body = self._transport.post_login(self._base_url, username, password)
        except Exception as e:
            if is_token_guard_error(e):
                raise
            raise AuthenticationError(f"Login failed: {e}", status_code=0) from e
        
        info = self._apply_token_info(request_start, body)
        self._log("Login successful")
        return info
    
    def _refresh_locked(self, info: TokenInfo) -> TokenInfo:
        refresh_token = info.refresh_token
        if refresh_token is None:
            raise TokenRefreshError("No refresh token available", 0)
        
        self._log("Refreshing access token")
        request_start = self._clock.now()
        try:
            body = self._transport.post_refresh(self._base_url, refresh_token)
        except TokenFormatError:
            raise
        except AuthenticationError as e:
            if not e.is_rejection:
                raise TokenRefreshError(e.message, e.status_code, {"original_error": e.code}) from e
            
            self._rejected_refresh_token = refresh_token
            logger.warning("Refresh token rejected by server (HTTP %s)", e.status_code)
            if self._config.login_on_refresh_rejection and self._username:
                self._log("Falling back to login")
                return self._login_locked()
            raise TokenRefreshError(e.message, e.status_code, {"original_error": e.code}) from e
        except Exception as e:
            if is_token_guard_error(e):
                raise
            raise TokenRefreshError(f"Refresh failed: {e}", 0) from e
        
        new_info = self._apply_token_info(request_start, body)
        self._log("Token refreshed")
        return new_info
    
    def _apply_token_info(self, request_start: int, body: Dict[str, Any]) -> TokenInfo:
        """
        Decode a login/refresh response and commit it as the new state.
        
        The clock skew is the server's issued-at claim minus the local time
        the request was sent. Nothing is committed unless every field decodes.
        """
        if not isinstance(body, dict):
            raise TokenFormatError("Auth response is not a JSON object")
        
        token = body.get("token")
        if not isinstance(token, str) or not token:
            raise TokenFormatError("Auth response has no token")
        
        refresh_token = body.get("refreshToken")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise TokenFormatError("refreshToken is not a string")
        
        claims = decode_claims(token)
        # required claims never come back as None
        expires_at = cast(int, claim_millis(claims, "exp"))
        issued_at = cast(int, claim_millis(claims, "iat"))
        
        refresh_expires_at: Optional[int] = None
        if refresh_token:
            refresh_expires_at = claim_millis(decode_claims(refresh_token), "exp", required=False)
        else:
            refresh_token = None
        
        info = TokenInfo(
            token=token,
            refresh_token=refresh_token,
            token_expires_at=expires_at,
            refresh_token_expires_at=refresh_expires_at,
            clock_skew=issued_at - request_start,
        )
        self._info = info
        self._rejected_refresh_token = None
        self._last_error = None
        self._log(f"Token expires at {expires_at} (clock_skew={info.clock_skew}ms)")
        return info


def create_token_guard(
    config: GuardConfig,
    access_token: Optional[str] = None,
    clock: Optional[Clock] = None,
) -> TokenGuard:
    """Create a guard backed by the default httpx transport."""
    return TokenGuard(
        config.base_url,
        HttpxAuthTransport.from_config(config),
        access_token,
        clock=clock,
        config=config,
        owns_transport=True,
    )
