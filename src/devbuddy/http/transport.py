"""Single-request HTTP transport for tracker REST APIs.

Executes exactly one request: builds the URL, merges headers, serializes the
body, parses the response and classifies failures. Retrying and caching are
layered on top by devbuddy.http.gateway.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from .errors import NetworkFailure, http_failure_for

logger = logging.getLogger("devbuddy.http.transport")

__all__ = ["NO_CONTENT", "Transport"]

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class _NoContent:
    """Result of a 204 or empty-bodied response."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_CONTENT"


NO_CONTENT = _NoContent()


class Transport:
    """Async HTTP transport bound to one base URL.

    Uses a long-lived httpx.AsyncClient with connection pooling. Authentication
    headers come from ``header_provider`` on every call, so a negotiated auth
    method is picked up without rebuilding the client.

    Attributes:
        base_url: Server URL including any API path prefix the caller wants
            endpoints resolved against (usually just the server root)

    Example:
        >>> transport = Transport("https://jira.company.com", header_provider=auth.headers)
        >>> me = await transport.request("/rest/api/2/myself")
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
        header_provider: Callable[[], Mapping[str, str]] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.header_provider = header_provider

        if client is None:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    connect=3.0,
                    read=timeout,
                    write=5.0,
                    pool=3.0,
                ),
                limits=httpx.Limits(
                    max_keepalive_connections=20,
                    max_connections=100,
                    keepalive_expiry=10.0,
                ),
            )
        self._client = client

    def url_for(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return f"{self.base_url}{endpoint}"

    def build_headers(self, headers: Mapping[str, str] | None = None) -> dict[str, str]:
        """Default headers, then auth headers, then caller headers (last wins)."""
        merged = dict(DEFAULT_HEADERS)
        if self.header_provider is not None:
            merged.update(self.header_provider())
        if headers:
            merged.update(headers)
        return merged

    async def request(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Execute one request and return the decoded body.

        Args:
            endpoint: Path (and query) relative to base_url
            method: HTTP method
            body: JSON-serializable payload, or a pre-encoded str/bytes
            headers: Extra headers; override defaults and auth headers

        Returns:
            Decoded JSON, the raw text for non-JSON bodies, or NO_CONTENT for a
            204/empty response

        Raises:
            NetworkFailure: No response was received
            HttpFailure: Non-2xx response (specialised by status)
        """
        method = method.upper()
        kwargs: dict[str, Any] = {"headers": self.build_headers(headers)}
        if body is not None:
            if isinstance(body, (str, bytes)):
                kwargs["content"] = body
            else:
                kwargs["json"] = body

        try:
            response = await self._client.request(method, self.url_for(endpoint), **kwargs)
        except httpx.TimeoutException as e:
            logger.debug(
                "http_timeout",
                extra={"method": method, "endpoint": endpoint, "error": str(e)},
            )
            raise NetworkFailure(method, endpoint, f"timeout: {e}") from e
        except httpx.TransportError as e:
            logger.debug(
                "http_network_error",
                extra={"method": method, "endpoint": endpoint, "error": str(e)},
            )
            raise NetworkFailure(method, endpoint, str(e) or type(e).__name__) from e

        if not response.is_success:
            raise http_failure_for(
                method,
                endpoint,
                response.status_code,
                response.reason_phrase,
                response.text,
                response.headers.get("Retry-After"),
            )

        if response.status_code == 204 or not response.content or not response.content.strip():
            return NO_CONTENT

        try:
            return response.json()
        except ValueError:
            return response.text

    async def close(self) -> None:
        """Close the underlying HTTP client and release pooled connections."""
        await self._client.aclose()

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
