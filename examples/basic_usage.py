"""
Token Guard - Basic Usage Example

This example demonstrates sharing one TokenGuard between worker threads.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor

import httpx

from token_guard import (
    AuthenticationError,
    ConfigurationError,
    GuardConfig,
    TokenGuardAuth,
    create_token_guard,
)


def fetch_devices(client: httpx.Client, page: int) -> int:
    response = client.get("/api/tenant/devices", params={"pageSize": 20, "page": page})
    response.raise_for_status()
    return len(response.json().get("data", []))


def main() -> None:
    logging.basicConfig(level=logging.DEBUG)
    
    base_url = os.environ.get("TOKEN_GUARD_BASE_URL", "http://localhost:8080")
    guard = create_token_guard(GuardConfig(base_url=base_url, debug=True))
    guard.set_credentials(
        os.environ.get("TOKEN_GUARD_USERNAME", "tenant@example.com"),
        os.environ.get("TOKEN_GUARD_PASSWORD", "tenant"),
    )
    
    try:
        with guard, httpx.Client(base_url=base_url, auth=TokenGuardAuth(guard)) as client:
            # All workers share the guard; only one of them logs in
            with ThreadPoolExecutor(max_workers=4) as pool:
                counts = list(pool.map(lambda page: fetch_devices(client, page), range(4)))
            print(f"Devices per page: {counts}")
            print(f"Clock skew: {guard.clock_skew}ms")
    except ConfigurationError as e:
        print(f"Configuration problem: {e.message}")
    except AuthenticationError as e:
        print(f"Auth failed ({e.code}): {e.message}")


if __name__ == "__main__":
    main()
