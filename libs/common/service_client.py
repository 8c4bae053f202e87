"""Async HTTP helper for internal service-to-service calls.

Cross-service calls go through this helper so that every request carries a
service-role token and the caller's request id.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from libs.auth.dependencies import service_role_jwt
from libs.common.logging import get_request_id

# Default timeout for internal calls (seconds).
_DEFAULT_TIMEOUT = 10.0


async def internal_request(
    *,
    service_url: str,
    method: str,
    path: str,
    calling_service: str,
    json: Any = None,
    params: Optional[dict] = None,
    timeout: float = _DEFAULT_TIMEOUT,
) -> httpx.Response:
    """Make an authenticated internal HTTP call.

    Args:
        service_url: Base URL of the target service.
        method: HTTP method.
        path: URL path on the target service.
        calling_service: Name of the calling service for the JWT "sub" claim.
        json: Optional JSON body.
        params: Optional query parameters.
        timeout: Request timeout in seconds.

    Raises:
        httpx.RequestError on connection failures.
    """
    headers = {
        "Authorization": f"Bearer {service_role_jwt(calling_service)}",
        "X-Caller-Service": calling_service,
    }
    request_id = get_request_id()
    if request_id:
        headers["X-Request-ID"] = request_id

    async with httpx.AsyncClient(timeout=timeout) as client:
        return await client.request(
            method,
            f"{service_url}{path}",
            headers=headers,
            json=json,
            params=params,
        )


async def internal_post(
    *,
    service_url: str,
    path: str,
    calling_service: str,
    json: Any = None,
    timeout: float = _DEFAULT_TIMEOUT,
) -> httpx.Response:
    """Convenience wrapper for POST requests."""
    return await internal_request(
        service_url=service_url,
        method="POST",
        path=path,
        calling_service=calling_service,
        json=json,
        timeout=timeout,
    )
