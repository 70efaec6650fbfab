"""
Low-level HTTP request helper shared by the resolver, routing and location clients.

Every call is a single attempt: timeouts and transport errors propagate to the
caller, which classifies them into its own error taxonomy.
"""
import logging

import aiohttp

from .const import REQUEST_TIMEOUT

_LOGGER = logging.getLogger(__name__)


class ApiResponseError(Exception):
    """Exception raised when a backend answers with an error response."""
    def __init__(self, status: int, error_json: dict | None = None):
        self.status = status
        self.error_json = error_json
        super().__init__(f"API Error (HTTP {status}): {error_json}")


async def make_request(
    method: str,
    url: str,
    headers: dict = None,
    payload: dict = None,
    params: dict = None,
    timeout: float = REQUEST_TIMEOUT,
):
    """
    Make one HTTP request and return the parsed JSON body.

    Args:
        method: HTTP method (GET or POST)
        url: Target URL for the request
        headers: HTTP headers dictionary (optional)
        payload: JSON payload for POST requests (optional)
        params: URL query parameters (optional)
        timeout: Total timeout in seconds

    Returns:
        Parsed JSON response

    Raises:
        asyncio.TimeoutError: If the request times out
        aiohttp.ClientError: For connection level failures
        ApiResponseError: If the server answers with a non-200 status
        ValueError: If the response has an unexpected content type
    """
    method = method.upper()
    if method not in ("GET", "POST"):
        raise ValueError(f"Unsupported HTTP method: {method}")

    headers = {"accept": "application/json", **(headers or {})}
    timeout_config = aiohttp.ClientTimeout(total=timeout)

    async with aiohttp.ClientSession(timeout=timeout_config) as session:
        async with session.request(
            method, url, headers=headers, json=payload, params=params
        ) as response:
            return await _process_response(response, url)


async def _process_response(response, url: str):
    """
    Return the JSON body of a 200 response; raise for anything else.

    A 200 without a JSON body is a ValueError (the caller got an answer it
    cannot parse). Every other status becomes ApiResponseError carrying the
    status and, when the backend sent one, its JSON error body, so OSRM
    codes such as NoRoute survive a 400.
    """
    content_type = response.headers.get('Content-Type', '')
    is_json = 'application/json' in content_type

    if response.status == 200:
        if is_json:
            return await response.json()
        text = await response.text()
        _LOGGER.warning("%s answered 200 with %s instead of JSON", url, content_type or "no content type")
        raise ValueError(f"Expected JSON from {url}, got {content_type}: {text[:200]}")

    if not is_json:
        text = await response.text()
        _LOGGER.debug("%s answered HTTP %s (%s): %s", url, response.status, content_type, text[:200])
        raise ApiResponseError(response.status)

    try:
        error_json = await response.json()
    except (aiohttp.ContentTypeError, ValueError) as e:
        _LOGGER.debug("Unreadable JSON error body from %s (HTTP %s): %s", url, response.status, e)
        raise ApiResponseError(response.status) from e
    raise ApiResponseError(response.status, error_json)
