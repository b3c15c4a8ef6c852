"""
Outbound call helpers
Cancellable timeouts for awaitables and a small JSON-over-HTTP helper.
"""
import asyncio
import logging
from typing import Any, Awaitable, Dict, Optional, TypeVar

import httpx

from sales_coach.errors import ApiError, RequestTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 5.0


async def with_timeout(awaitable: Awaitable[T], seconds: float = DEFAULT_TIMEOUT_SECONDS) -> T:
    """
    Await a call, cancelling it once the timeout elapses.

    Raises:
        RequestTimeoutError: if the call did not finish in time
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        raise RequestTimeoutError(seconds) from None


async def fetch_with_timeout(
    url: str,
    method: str = "GET",
    *,
    json_body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    base_url: str = "",
    client: Optional[httpx.AsyncClient] = None,
) -> Any:
    """
    Send a JSON request and return the decoded response body.

    Args:
        url: Request path or absolute URL
        method: HTTP method
        json_body: Optional body, sent as JSON
        headers: Extra headers
        timeout: Seconds before the request is abandoned
        base_url: Prefix joined to ``url``
        client: Optional shared client (tests pass a mock transport here)

    Raises:
        RequestTimeoutError: on timeout
        ApiError: when the response status is not 2xx or the transport fails
    """
    request_headers = {"Content-Type": "application/json"}
    if headers:
        request_headers.update(headers)

    owns_client = client is None
    http = client or httpx.AsyncClient()
    try:
        response = await http.request(
            method,
            f"{base_url}{url}",
            json=json_body,
            headers=request_headers,
            timeout=timeout,
        )
    except httpx.TimeoutException:
        raise RequestTimeoutError(timeout) from None
    except httpx.HTTPError as e:
        raise ApiError(502, f"Request to {url} failed: {e}") from e
    finally:
        if owns_client:
            await http.aclose()

    if response.is_error:
        try:
            data = response.json()
        except ValueError:
            data = response.text
        raise ApiError(response.status_code, f"API error: {response.reason_phrase}", data)

    return response.json()


async def fetch_bytes(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    client: Optional[httpx.AsyncClient] = None,
) -> httpx.Response:
    """GET a binary resource; the caller reads ``content`` and headers."""
    owns_client = client is None
    http = client or httpx.AsyncClient(follow_redirects=True)
    try:
        response = await http.get(url, timeout=timeout)
    except httpx.TimeoutException:
        raise RequestTimeoutError(timeout) from None
    except httpx.HTTPError as e:
        raise ApiError(502, f"Failed to fetch {url}: {e}") from e
    finally:
        if owns_client:
            await http.aclose()

    if response.is_error:
        raise ApiError(response.status_code, f"Failed to fetch {url}: {response.reason_phrase}")
    logger.debug(f"[HTTP] fetched {url} ({len(response.content)} bytes)")
    return response
