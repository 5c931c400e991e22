"""
Shared fixtures for Token Guard tests.

Tokens are real HS256 JWTs so claim decoding runs exactly as in production.
"""

import threading
import time
from typing import Any, Dict, List, Optional, Union

import jwt
import pytest


SIGNING_KEY = "token-guard-test-signing-key-0123456789abcdef"
BASE_URL = "https://auth.example.com"

# Server time of the first token, in seconds
NOW_S = 1_700_000_000
NOW_MS = NOW_S * 1000
ACCESS_TTL_S = 900
REFRESH_TTL_S = 7 * 24 * 3600


def make_token(iat: Optional[int] = NOW_S, exp: Optional[int] = NOW_S + ACCESS_TTL_S, **extra: Any) -> str:
    """Mint a signed JWT with the given timestamps (seconds)."""
    payload: Dict[str, Any] = {"sub": "tenant@example.com", **extra}
    if iat is not None:
        payload["iat"] = iat
    if exp is not None:
        payload["exp"] = exp
    return jwt.encode(payload, SIGNING_KEY, algorithm="HS256")


def token_response(
    issued_at: int = NOW_S,
    ttl: int = ACCESS_TTL_S,
    refresh_ttl: Optional[int] = REFRESH_TTL_S,
    tag: str = "1",
) -> Dict[str, Any]:
    """Build a login/refresh response body."""
    body: Dict[str, Any] = {"token": make_token(issued_at, issued_at + ttl, jti=f"access-{tag}")}
    if refresh_ttl is not None:
        body["refreshToken"] = make_token(issued_at, issued_at + refresh_ttl, jti=f"refresh-{tag}")
    return body


class ManualClock:
    """Clock that only moves when told to."""
    
    def __init__(self, now_ms: int = NOW_MS) -> None:
        self._now = now_ms
    
    def now(self) -> int:
        return self._now
    
    def advance(self, millis: int) -> None:
        self._now += millis
    
    def set(self, now_ms: int) -> None:
        self._now = now_ms


Outcome = Union[Dict[str, Any], Exception]


class FakeTransport:
    """Scripted AuthTransport that counts calls."""
    
    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.login_outcomes: List[Outcome] = []
        self.refresh_outcomes: List[Outcome] = []
        self.login_calls: List[Dict[str, str]] = []
        self.refresh_calls: List[Dict[str, str]] = []
        self._lock = threading.Lock()
    
    def post_login(self, base_url: str, username: str, password: str) -> Dict[str, Any]:
        with self._lock:
            self.login_calls.append({"base_url": base_url, "username": username, "password": password})
        return self._next(self.login_outcomes)
    
    def post_refresh(self, base_url: str, refresh_token: str) -> Dict[str, Any]:
        with self._lock:
            self.refresh_calls.append({"base_url": base_url, "refresh_token": refresh_token})
        return self._next(self.refresh_outcomes)
    
    def _next(self, outcomes: List[Outcome]) -> Dict[str, Any]:
        if self.delay:
            time.sleep(self.delay)
        # The last outcome repeats once the script runs out
        with self._lock:
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
