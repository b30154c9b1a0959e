"""HTTP layer shared by the tracker connectors: transport, retry, cache, gateway."""

from .cache import TTL, TTLCache, generate_cache_key
from .errors import (
    AuthenticationFailure,
    ConversionFailure,
    FriendlyError,
    HttpFailure,
    NetworkFailure,
    NotFound,
    RateLimited,
    ServerFailure,
    TrackerClientError,
    friendly_error,
)
from .gateway import ApiGateway
from .retry import NO_RETRY, RetryConfig, with_retry
from .transport import NO_CONTENT, Transport

__all__ = [
    "NO_CONTENT",
    "NO_RETRY",
    "TTL",
    "ApiGateway",
    "AuthenticationFailure",
    "ConversionFailure",
    "FriendlyError",
    "HttpFailure",
    "NetworkFailure",
    "NotFound",
    "RateLimited",
    "RetryConfig",
    "ServerFailure",
    "TTLCache",
    "TrackerClientError",
    "Transport",
    "friendly_error",
    "generate_cache_key",
    "with_retry",
]
