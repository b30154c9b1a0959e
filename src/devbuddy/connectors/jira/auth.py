"""Authentication scheme negotiation for self-hosted Jira.

Servers from 8.14 accept personal access tokens as a Bearer credential; all
versions accept Basic auth. The same secret may be either a password or a
token, so the negotiator probes the identity endpoint once per scheme and locks
in the first one that returns a user.

Negotiation is run-once. An identity check that ends without a verdict on the
credentials (network error, 429, 5xx) leaves the negotiator unresolved so the
next call retries it. Once a scheme is confirmed, or both schemes are rejected,
the outcome stands until reset() is called (for example after credential
rotation); a later 401 on a real call does not trigger renegotiation.
"""

import base64
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ...http.errors import TrackerClientError
from .capabilities import Capabilities

logger = logging.getLogger("devbuddy.jira.auth")

__all__ = [
    "AuthMethod",
    "AuthNegotiator",
    "Credentials",
    "NegotiationState",
    "basic_headers",
    "bearer_headers",
]


class AuthMethod(str, Enum):
    UNRESOLVED = "unresolved"
    TOKEN = "token"
    BASIC = "basic"


class NegotiationState(str, Enum):
    UNRESOLVED = "unresolved"
    PROBING_TOKEN = "probing-token"
    PROBING_BASIC = "probing-basic"
    CONFIRMED_TOKEN = "confirmed-token"
    CONFIRMED_BASIC = "confirmed-basic"
    # Both probes rejected; basic headers are still sent
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Credentials:
    username: str
    secret: str = field(repr=False)

    @property
    def complete(self) -> bool:
        return bool(self.username and self.secret)


def basic_headers(credentials: Credentials) -> dict[str, str]:
    encoded = base64.b64encode(f"{credentials.username}:{credentials.secret}".encode()).decode()
    return {"Authorization": f"Basic {encoded}"}


def bearer_headers(credentials: Credentials) -> dict[str, str]:
    return {"Authorization": f"Bearer {credentials.secret}"}


# Probe: identity call with explicit headers. Returns the user payload, or None
# when the server rejects the credentials (401/403). Network failures and
# transient statuses (429, 5xx) propagate.
Probe = Callable[[dict[str, str]], Awaitable[dict[str, Any] | None]]


class AuthNegotiator:
    """Chooses between token and basic auth by probing the identity endpoint.

    Args:
        credentials: Username and password-or-token
        probe: Identity probe (see ``Probe``)

    Example:
        >>> negotiator = AuthNegotiator(Credentials("jdoe", secret), probe)
        >>> await negotiator.negotiate(capabilities)
        <AuthMethod.TOKEN: 'token'>
        >>> negotiator.headers()
        {'Authorization': 'Bearer ...'}
    """

    def __init__(self, credentials: Credentials, probe: Probe) -> None:
        self.credentials = credentials
        self._probe = probe
        self._method = AuthMethod.UNRESOLVED
        self._state = NegotiationState.UNRESOLVED
        self._finished = False

    @property
    def method(self) -> AuthMethod:
        return self._method

    @property
    def state(self) -> NegotiationState:
        return self._state

    @property
    def finished(self) -> bool:
        """True once negotiation reached a terminal state."""
        return self._finished

    def headers(self) -> dict[str, str]:
        """Authorization header for the negotiated (or default) scheme."""
        if not self.credentials.secret:
            return {}
        if self._method == AuthMethod.TOKEN:
            return bearer_headers(self.credentials)
        if not self.credentials.username:
            return {}
        return basic_headers(self.credentials)

    async def negotiate(self, capabilities: Capabilities | None) -> AuthMethod:
        """Run the probe sequence once and return the chosen method.

        Never raises for rejected credentials; any other TrackerClientError
        propagates and leaves the negotiator unresolved.
        """
        if self._finished:
            return self._method
        if not self.credentials.secret:
            logger.warning("jira_auth_no_credentials")
            return self._method

        try:
            if capabilities is not None and capabilities.personal_access_tokens:
                self._state = NegotiationState.PROBING_TOKEN
                user = await self._probe(bearer_headers(self.credentials))
                if user:
                    return self._confirm(AuthMethod.TOKEN, NegotiationState.CONFIRMED_TOKEN)
                logger.debug("jira_auth_token_rejected")

            if self.credentials.username:
                self._state = NegotiationState.PROBING_BASIC
                user = await self._probe(basic_headers(self.credentials))
                if user:
                    return self._confirm(AuthMethod.BASIC, NegotiationState.CONFIRMED_BASIC)
                logger.debug("jira_auth_basic_rejected")
        except TrackerClientError as e:
            self._state = NegotiationState.UNRESOLVED
            logger.warning(
                "jira_auth_negotiation_inconclusive",
                extra={"error": str(e), "status": getattr(e, "status", None)},
            )
            raise

        self._state = NegotiationState.EXHAUSTED
        self._finished = True
        logger.warning(
            "jira_auth_negotiation_failed",
            extra={"username": self.credentials.username},
        )
        return self._method

    def _confirm(self, method: AuthMethod, state: NegotiationState) -> AuthMethod:
        self._method = method
        self._state = state
        self._finished = True
        logger.info("jira_auth_negotiated", extra={"method": method.value})
        return method

    def reset(self, credentials: Credentials | None = None) -> None:
        """Forget the negotiated scheme, optionally swapping credentials."""
        if credentials is not None:
            self.credentials = credentials
        self._method = AuthMethod.UNRESOLVED
        self._state = NegotiationState.UNRESOLVED
        self._finished = False
