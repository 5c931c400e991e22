"""
Token Guard HTTP Transport

Default AuthTransport built on a blocking httpx client. Executes the
login and refresh calls and maps HTTP failures onto the guard's errors.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .errors import AuthenticationError, NetworkError, TokenFormatError
from .types import DEFAULT_LOGIN_PATH, DEFAULT_REFRESH_PATH, GuardConfig


logger = logging.getLogger("token_guard")


class HttpxAuthTransport:
    """
    Login/refresh transport over httpx.
    
    Timeouts are enforced here; the guard itself never times out a call.
    """
    
    def __init__(
        self,
        timeout: float = 30.0,
        login_path: str = DEFAULT_LOGIN_PATH,
        refresh_path: str = DEFAULT_REFRESH_PATH,
        headers: Optional[Dict[str, str]] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self._timeout = timeout
        self._login_path = login_path
        self._refresh_path = refresh_path
        self._custom_headers = headers or {}
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.Client(timeout=timeout)
    
    @classmethod
    def from_config(cls, config: GuardConfig) -> "HttpxAuthTransport":
        """Create a transport matching a guard configuration."""
        return cls(
            timeout=config.timeout,
            login_path=config.login_path,
            refresh_path=config.refresh_path,
            headers=config.headers,
        )
    
    def post_login(self, base_url: str, username: str, password: str) -> Dict[str, Any]:
        return self._post(
            f"{base_url}{self._login_path}",
            {"username": username, "password": password},
        )
    
    def post_refresh(self, base_url: str, refresh_token: str) -> Dict[str, Any]:
        return self._post(
            f"{base_url}{self._refresh_path}",
            {"refreshToken": refresh_token},
        )
    
    def _post(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a single POST request."""
        headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **self._custom_headers,
        }
        
        try:
            response = self._http_client.post(url, headers=headers, json=body)
        except httpx.TimeoutException as e:
            raise NetworkError("Request timeout", {"timeout": self._timeout, "url": url}) from e
        except httpx.RequestError as e:
            raise NetworkError(str(e), {"url": url}) from e
        
        return self._handle_response(response)
    
    def _handle_response(self, response: httpx.Response) -> Dict[str, Any]:
        """Handle HTTP response and convert to a body or an error."""
        if response.is_success:
            try:
                data = response.json()
            except ValueError as e:
                raise TokenFormatError("Auth response is not valid JSON") from e
            if not isinstance(data, dict):
                raise TokenFormatError("Auth response is not a JSON object")
            return data
        
        error_data: Dict[str, Any] = {}
        try:
            parsed = response.json()
            if isinstance(parsed, dict):
                error_data = parsed
        except ValueError:
            logger.debug("Non-JSON error body from %s", response.url)
        
        error = error_data.get("error")
        if not isinstance(error, dict):
            error = error_data
        message = error.get("message") or f"HTTP {response.status_code}"
        details: Dict[str, Any] = {"url": str(response.url)}
        if "errorCode" in error:
            details["error_code"] = error["errorCode"]
        
        status = response.status_code
        if status in (400, 401, 403):
            code = error.get("code") or "AUTHENTICATION_FAILED"
            raise AuthenticationError(message, str(code), status, details)
        elif status == 429:
            retry_after = response.headers.get("retry-after", "60")
            details["retry_after"] = int(retry_after) if retry_after.isdigit() else retry_after
            raise AuthenticationError(message, "RATE_LIMITED", status, details)
        else:
            raise AuthenticationError(message, "HTTP_ERROR", status, details)
    
    def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            self._http_client.close()
    
    def __enter__(self) -> "HttpxAuthTransport":
        return self
    
    def __exit__(self, *args: Any) -> None:
        self.close()
