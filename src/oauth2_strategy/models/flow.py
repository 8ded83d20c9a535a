"""Authorization flow models.

Contains models for authorization requests and callback handling.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from urllib.parse import urlencode, urlsplit, urlunsplit

from oauth2_strategy.models.config import PROTECTED_PARAMS

logger = logging.getLogger(__name__)


def _frozen(params: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(params or {}))


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the authorization code flow."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    code_challenge: str
    code_challenge_method: str
    state: str
    scopes: tuple[str, ...] = ()
    extra_params: Mapping[str, str] = field(default_factory=dict)
    passthrough_params: Mapping[str, str] = field(default_factory=dict)
    # Keys that extras and pass-through values may not replace
    protected_params: frozenset[str] = PROTECTED_PARAMS

    def __post_init__(self) -> None:
        object.__setattr__(self, "scopes", tuple(self.scopes))
        object.__setattr__(self, "protected_params", frozenset(self.protected_params))
        object.__setattr__(self, "extra_params", _frozen(self.extra_params))
        object.__setattr__(
            self, "passthrough_params", _frozen(self.passthrough_params)
        )

    @property
    def scope(self) -> str | None:
        return " ".join(self.scopes) if self.scopes else None

    def to_params(self) -> dict[str, str]:
        """Assemble query parameters in precedence order.

        Mandatory parameters first, then scope, then provider extras, then
        pass-through parameters from the incoming request (last write wins).
        Keys in ``protected_params`` keep their builder value.
        """
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
            "state": self.state,
        }

        if self.scope:
            params["scope"] = self.scope

        for key, value in self.extra_params.items():
            if key in self.protected_params:
                logger.warning(f"Ignoring provider parameter {key!r}: protected")
                continue
            params[key] = value

        for key, value in self.passthrough_params.items():
            if key in self.protected_params:
                logger.warning(f"Ignoring pass-through parameter {key!r}: protected")
                continue
            params[key] = value

        return params

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        scheme, netloc, path, query, fragment = urlsplit(self.authorization_endpoint)
        encoded = urlencode(self.to_params())
        # Keep any query already present on the endpoint
        query = f"{query}&{encoded}" if query else encoded
        return urlunsplit((scheme, netloc, path, query, fragment))


@dataclass(frozen=True)
class AuthorizationResponse:
    """Query parameters of the provider's redirect back to the application."""

    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> AuthorizationResponse:
        return cls(
            code=query.get("code") or None,
            state=query.get("state") or None,
            error=query.get("error") or None,
            error_description=query.get("error_description") or None,
            error_uri=query.get("error_uri") or None,
        )

    def is_callback(self) -> bool:
        """A request carrying a code, state or error is a provider callback."""
        return any(value is not None for value in (self.code, self.state, self.error))

    def is_error(self) -> bool:
        return self.error is not None
