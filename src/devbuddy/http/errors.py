"""Failure taxonomy for tracker API calls.

Every failure that leaves the HTTP layer is a TrackerClientError carrying the
HTTP method and endpoint it happened on. HTTP failures are specialised by status
so callers can branch on the kind of failure instead of parsing messages:

    TrackerClientError
    ├── NetworkFailure          no response received (DNS, refused, timeout)
    └── HttpFailure             response received, non-2xx
        ├── AuthenticationFailure   401 / 403
        ├── NotFound                404
        ├── RateLimited             429
        └── ServerFailure           5xx

ConversionFailure is raised by the format converters and never leaves them.
"""

from dataclasses import dataclass

__all__ = [
    "AuthenticationFailure",
    "ConversionFailure",
    "FriendlyError",
    "HttpFailure",
    "NetworkFailure",
    "NotFound",
    "RateLimited",
    "ServerFailure",
    "TrackerClientError",
    "friendly_error",
    "http_failure_for",
]

# Raw bodies can be whole HTML error pages; keep messages readable.
MAX_BODY_IN_MESSAGE = 500


class TrackerClientError(Exception):
    """Raised when a tracker API request fails.

    Attributes:
        method: HTTP method of the failed request
        endpoint: Endpoint (path + query) of the failed request
    """

    def __init__(self, message: str, method: str = "", endpoint: str = "") -> None:
        self.method = method
        self.endpoint = endpoint
        super().__init__(message)


class NetworkFailure(TrackerClientError):
    """No response was received (DNS failure, connection refused, timeout)."""

    status = None

    def __init__(self, method: str, endpoint: str, reason: str) -> None:
        self.reason = reason
        super().__init__(f"{method} {endpoint} failed: network error: {reason}", method, endpoint)


class HttpFailure(TrackerClientError):
    """A response was received with a non-2xx status.

    Attributes:
        status: HTTP status code
        status_text: Reason phrase
        body: Raw response body (may be empty)
        retry_after: Raw Retry-After header value, if any
    """

    def __init__(
        self,
        method: str,
        endpoint: str,
        status: int,
        status_text: str = "",
        body: str = "",
        retry_after: str | None = None,
    ) -> None:
        self.status = status
        self.status_text = status_text
        self.body = body
        self.retry_after = retry_after
        message = f"{method} {endpoint} failed: HTTP {status} {status_text}".rstrip()
        if body:
            message += f" - {body[:MAX_BODY_IN_MESSAGE]}"
        super().__init__(message, method, endpoint)


class AuthenticationFailure(HttpFailure):
    """401/403: credentials rejected or not permitted. Prompts re-authentication."""


class NotFound(HttpFailure):
    """404: the resource does not exist. A normal outcome for lookups."""


class RateLimited(HttpFailure):
    """429: too many requests. Retried by policy before surfacing."""


class ServerFailure(HttpFailure):
    """5xx: the tracker failed. Retried by policy before surfacing."""


class ConversionFailure(ValueError):
    """Malformed rich-text input. Recovered inside the converters."""


def http_failure_for(
    method: str,
    endpoint: str,
    status: int,
    status_text: str = "",
    body: str = "",
    retry_after: str | None = None,
) -> HttpFailure:
    """Build the most specific HttpFailure subclass for a status code."""
    if status in (401, 403):
        cls: type[HttpFailure] = AuthenticationFailure
    elif status == 404:
        cls = NotFound
    elif status == 429:
        cls = RateLimited
    elif status >= 500:
        cls = ServerFailure
    else:
        cls = HttpFailure
    return cls(method, endpoint, status, status_text, body, retry_after)


@dataclass(frozen=True)
class FriendlyError:
    """Short, user-facing summary of a failure for UI surfaces."""

    title: str
    description: str
    can_retry: bool
    action: str | None = None


def friendly_error(error: BaseException, context: str | None = None) -> FriendlyError:
    """Convert a failure into a message suitable for a notification or tooltip.

    Args:
        error: Any exception raised by a client call
        context: Name of the service for 5xx messages (default: "service")

    Returns:
        FriendlyError with title, description, retry hint and suggested action
    """
    if isinstance(error, NetworkFailure):
        return FriendlyError(
            title="Unable to connect",
            description="Check your internet connection and try again.",
            can_retry=True,
            action="Check your network connection",
        )

    if isinstance(error, HttpFailure):
        if error.status == 401:
            return FriendlyError(
                title="Authentication failed",
                description="Your API token may be invalid or expired. Please reconfigure.",
                can_retry=False,
                action="Reconfigure API token",
            )
        if error.status == 403:
            return FriendlyError(
                title="Access denied",
                description="You don't have permission to access this resource.",
                can_retry=False,
            )
        if error.status == 404:
            return FriendlyError(
                title="Not found",
                description="The requested resource could not be found.",
                can_retry=False,
            )
        if error.status == 429:
            return FriendlyError(
                title="Rate limited",
                description="Too many requests. Please wait a moment and try again.",
                can_retry=True,
                action="Wait and retry",
            )
        if error.status >= 500:
            return FriendlyError(
                title="Service temporarily unavailable",
                description=f"The {context or 'service'} is experiencing issues. Try again later.",
                can_retry=True,
                action="Try again later",
            )
        return FriendlyError(
            title="Request failed",
            description=f"Error {error.status}: {error.status_text}",
            can_retry=False,
        )

    return FriendlyError(
        title="Something went wrong",
        description=str(error) or "An unexpected error occurred.",
        can_retry=True,
        action="Try refreshing",
    )
