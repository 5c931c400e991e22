"""
httpx integration.

Attach TokenGuardAuth to an httpx.Client so every request carries a
token that the guard has checked (and renewed if needed) just before
sending.

Example:
    guard = create_token_guard(GuardConfig(base_url="https://iot.example.com"))
    guard.set_credentials("tenant@example.com", os.environ["TB_PASSWORD"])
    
    with httpx.Client(base_url="https://iot.example.com", auth=TokenGuardAuth(guard)) as client:
        client.get("/api/tenant/devices", params={"pageSize": 10, "page": 0})
"""

from typing import Generator

import httpx

from .guard import TokenGuard


DEFAULT_HEADER_NAME = "X-Authorization"


class TokenGuardAuth(httpx.Auth):
    """Bearer auth whose token comes from a TokenGuard."""
    
    requires_request_body = False
    
    def __init__(self, guard: TokenGuard, header_name: str = DEFAULT_HEADER_NAME) -> None:
        self._guard = guard
        self._header_name = header_name
    
    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        # Blocks while the guard logs in or refreshes; use with sync clients
        token = self._guard.ensure_valid_token()
        request.headers[self._header_name] = f"Bearer {token}"
        yield request
