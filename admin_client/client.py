"""
HTTP client used by the admin panel to talk to the ANT Support API.

Every response body is read exactly once, parsed as JSON when possible and,
for error statuses, normalized into an ApiError carrying the HTTP status, the
parsed body and an ``errorType`` the caller can branch on.
"""

import json
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from backend.utils.verbosity_logger import get_logger

logger = get_logger("admin_client.client")

DEFAULT_TIMEOUT = 30.0
DEFAULT_PAGE_SIZE = 20

DUPLICATE_SUGGESTION = "Try using a different name or check for existing records"

# status -> (error, message) used when an error response has no body
EMPTY_RESPONSE_DEFAULTS = {
    400: (
        "Bad Request: Invalid data provided",
        "The request contains invalid or missing data",
    ),
    404: (
        "Not Found: Resource does not exist",
        "The requested resource was not found",
    ),
    409: (
        "Conflict: Data already exists or violates constraints",
        "The requested operation conflicts with existing data",
    ),
    500: ("Internal Server Error", "An error occurred on the server"),
}


class ApiError(Exception):
    """
    Raised for every failed call.  ``status`` is 0 when no HTTP response was
    received at all.
    """

    def __init__(
        self,
        message: str,
        status: int,
        response: Optional[Dict[str, Any]] = None,
        error_type: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.response = response
        self.error_type = error_type

    def __repr__(self):
        return f"ApiError(status={self.status}, error_type={self.error_type!r}, message={self.message!r})"


class ApiTimeoutError(ApiError):
    """The request did not complete within its timeout."""

    def __init__(self, message: str = "Request timeout"):
        super().__init__(message, 408, {"error": message, "errorType": "TIMEOUT"}, "TIMEOUT")


def build_params(params: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    """Query pairs with None dropped and list values repeated."""
    pairs: List[Tuple[str, str]] = []
    for key, value in (params or {}).items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            if isinstance(item, bool):
                item = "true" if item else "false"
            pairs.append((key, str(item)))
    return pairs


def read_body_text(response: httpx.Response) -> str:
    """The response text, or "" when the body was already consumed or cannot be read."""
    try:
        return response.text
    except (httpx.ResponseNotRead, httpx.StreamConsumed, httpx.StreamClosed) as e:
        logger.warning("Response body unavailable: %s", type(e).__name__)
        return ""


def parse_body(text: str) -> Any:
    if not text.strip():
        return {}
    try:
        return json.loads(text)
    except ValueError:
        return {"message": text}


def empty_response_body(status: int) -> Dict[str, Any]:
    error, message = EMPTY_RESPONSE_DEFAULTS.get(
        status, (f"HTTP {status}", f"Server returned {status} without error details")
    )
    return {
        "error": error,
        "errorType": "EMPTY_RESPONSE",
        "message": message,
        "suggestion": "Check server logs for more information",
        "status": status,
    }


def error_from_response(status: int, data: Any) -> ApiError:
    """Build the ApiError for an error status and its parsed body."""
    if not data:
        logger.warning("Empty error response for %s", status)
        data = empty_response_body(status)
    elif not isinstance(data, dict):
        data = {"message": str(data)}
    else:
        data = dict(data)

    error_message = data.get("error") or data.get("message") or f"HTTP {status}"

    if status == 409:
        lowered = str(error_message).lower()
        if "already exists" in lowered or "duplicate" in lowered:
            data["suggestion"] = DUPLICATE_SUGGESTION
        if not data.get("errorType"):
            data["errorType"] = "CONFLICT"
        logger.error("Conflict error 409: %s", error_message)
    else:
        logger.error("HTTP error %s: %s", status, error_message)

    return ApiError(
        f"HTTP {status}: {error_message}",
        status,
        data,
        data.get("errorType") or "HTTP_ERROR",
    )


class ApiClient:
    """
    Thin async wrapper around httpx.AsyncClient returning parsed JSON bodies.

    ``transport`` is handed to httpx unchanged (tests pass an
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        default_headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.default_headers = {"Content-Type": "application/json"}
        self.default_headers.update(default_headers or {})
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(transport=self._transport, timeout=self.timeout)
        return self._http

    async def aclose(self):
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def build_url(self, endpoint: str) -> str:
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return f"{self.base_url}{endpoint}"

    async def request(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = self.build_url(endpoint)
        request_headers = dict(self.default_headers)
        request_headers.update(headers or {})
        logger.debug("%s %s", method, url)

        try:
            response = await self.http.request(
                method,
                url,
                params=build_params(params),
                json=data,
                headers=request_headers,
                timeout=self.timeout if timeout is None else timeout,
            )
        except httpx.TimeoutException as e:
            logger.error("Request timeout: %s %s", method, url)
            raise ApiTimeoutError() from e
        except httpx.RequestError as e:
            logger.error("Request error: %s %s: %s", method, url, e)
            raise ApiError(str(e) or type(e).__name__, 0, None, "NETWORK_ERROR") from e

        return self.handle_response(response)

    def handle_response(self, response: httpx.Response) -> Any:
        """Parse the body once and raise ApiError for statuses >= 400."""
        data = parse_body(read_body_text(response))
        if response.status_code >= 400:
            raise error_from_response(response.status_code, data)
        return data

    async def get(self, endpoint: str, **kwargs) -> Any:
        return await self.request("GET", endpoint, **kwargs)

    async def post(self, endpoint: str, data: Any = None, **kwargs) -> Any:
        return await self.request("POST", endpoint, data=data, **kwargs)

    async def put(self, endpoint: str, data: Any = None, **kwargs) -> Any:
        return await self.request("PUT", endpoint, data=data, **kwargs)

    async def patch(self, endpoint: str, data: Any = None, **kwargs) -> Any:
        return await self.request("PATCH", endpoint, data=data, **kwargs)

    async def delete(self, endpoint: str, **kwargs) -> Any:
        return await self.request("DELETE", endpoint, **kwargs)

    def set_default_header(self, key: str, value: str):
        self.default_headers[key] = value

    def remove_default_header(self, key: str):
        self.default_headers.pop(key, None)

    def set_auth_token(self, token: str):
        self.set_default_header("Authorization", f"Bearer {token}")

    def clear_auth(self):
        self.remove_default_header("Authorization")


def create_paginated_request(
    page: int = 1, limit: int = DEFAULT_PAGE_SIZE, filters: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    params: Dict[str, Any] = {"page": page, "limit": limit}
    params.update(filters or {})
    return params


def handle_api_error(error: BaseException) -> str:
    """Human readable message for any exception raised by a call."""
    if isinstance(error, ApiError):
        return error.message
    return str(error) or "An unexpected error occurred"
