"""Token endpoint request and response models.

Requests are immutable and form-encoded (RFC 6749 Section 4.1.3). Responses
are kept verbatim and validated through ``TokenResponse``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict

from oauth2_strategy.models.config import ClientAuthMethod


@dataclass(frozen=True, repr=False)
class ClientCredentials:
    """Client credentials and how to present them to the token endpoint."""

    client_id: str
    client_secret: str
    auth_method: ClientAuthMethod = ClientAuthMethod.CLIENT_SECRET_POST

    def apply(self, data: dict[str, str]) -> httpx.Auth | None:
        """Add credentials to form data, or return Basic auth for the request."""
        if self.auth_method is ClientAuthMethod.CLIENT_SECRET_BASIC:
            return httpx.BasicAuth(self.client_id, self.client_secret)

        data["client_id"] = self.client_id
        data["client_secret"] = self.client_secret
        return None

    def __repr__(self) -> str:
        return (
            f"ClientCredentials(client_id={self.client_id!r}, "
            f"auth_method={self.auth_method.value!r})"
        )


@dataclass(frozen=True)
class TokenExchangeRequest:
    """Authorization code exchange parameters (RFC 6749 Section 4.1.3).

    Includes the PKCE code_verifier (RFC 7636 Section 4.5).
    """

    token_endpoint: str
    code: str = field(repr=False)
    redirect_uri: str
    code_verifier: str = field(repr=False)
    credentials: ClientCredentials
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        return {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "code_verifier": self.code_verifier,
        }


@dataclass(frozen=True)
class RefreshTokenRequest:
    """Refresh token request parameters (RFC 6749 Section 6)."""

    token_endpoint: str
    refresh_token: str = field(repr=False)
    credentials: ClientCredentials
    grant_type: str = "refresh_token"
    scope: str | None = None

    def to_form_data(self) -> dict[str, str]:
        data = {
            "grant_type": self.grant_type,
            "refresh_token": self.refresh_token,
        }
        if self.scope:
            data["scope"] = self.scope
        return data


@dataclass(frozen=True)
class TokenRevocationRequest:
    """Token revocation request parameters (RFC 7009 Section 2.1)."""

    revocation_endpoint: str
    token: str = field(repr=False)
    credentials: ClientCredentials
    token_type_hint: str | None = None

    def to_form_data(self) -> dict[str, str]:
        data = {"token": self.token}
        if self.token_type_hint:
            data["token_type_hint"] = self.token_type_hint
        return data


class TokenResponse(BaseModel):
    """Successful token response (RFC 6749 Section 5.1).

    Providers add their own fields (Auth0 and Azure both do), so unknown keys
    are allowed.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str
    expires_in: int | None = None
    refresh_token: str | None = None
    scope: str | None = None
    id_token: str | None = None


@dataclass(frozen=True)
class OAuth2Tokens:
    """Token endpoint payload, kept verbatim.

    ``data`` is exactly what the provider returned. The properties read the
    standard fields from it.
    """

    data: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, OAuth2Tokens):
            return dict(self.data) == dict(other.data)
        return NotImplemented

    def __repr__(self) -> str:
        return f"OAuth2Tokens(fields={sorted(self.data)})"

    @property
    def access_token(self) -> str:
        return self.data["access_token"]

    @property
    def token_type(self) -> str:
        return self.data["token_type"]

    @property
    def expires_in(self) -> int | None:
        value = self.data.get("expires_in")
        return int(value) if value is not None else None

    @property
    def refresh_token(self) -> str | None:
        return self.data.get("refresh_token")

    @property
    def scopes(self) -> list[str]:
        return (self.data.get("scope") or "").split()

    @property
    def id_token(self) -> str | None:
        return self.data.get("id_token")

    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token)
