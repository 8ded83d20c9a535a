"""Configuration models for OAuth2 strategies.

Provider configuration is supplied once at strategy construction and is
immutable afterwards, so one instance can be shared by concurrent requests.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

# Pure function supplied by a provider adapter: (config, request_params) -> extras.
# None or empty values in the returned mapping are dropped from the URL.
ExtraParamsHook = Callable[[Any, Mapping[str, str]], Mapping[str, str | None]]


class ClientAuthMethod(str, Enum):
    """How client credentials are sent to the token endpoint (RFC 6749 2.3.1)."""

    CLIENT_SECRET_POST = "client_secret_post"
    CLIENT_SECRET_BASIC = "client_secret_basic"


# Parameters that bind the redirect to this flow. By default neither
# pass-through values nor provider extras may replace them.
PROTECTED_PARAMS = frozenset(
    {
        "response_type",
        "client_id",
        "redirect_uri",
        "state",
        "code_challenge",
        "code_challenge_method",
    }
)


class PassThroughPolicy(BaseModel):
    """Which query parameters of the initiation request reach the provider.

    A forwarded value replaces a same-named builder parameter unless its key
    is in ``protected``. Pass ``protected=frozenset()`` to let forwarded
    values override every parameter, flow-binding ones included.
    """

    model_config = ConfigDict(frozen=True)

    mode: Literal["all", "none", "allow_list"] = "all"
    allowed: frozenset[str] = frozenset()
    protected: frozenset[str] = PROTECTED_PARAMS

    @classmethod
    def allow_all(
        cls, protected: Iterable[str] = PROTECTED_PARAMS
    ) -> PassThroughPolicy:
        return cls(mode="all", protected=frozenset(protected))

    @classmethod
    def deny_all(cls) -> PassThroughPolicy:
        return cls(mode="none")

    @classmethod
    def allow_only(
        cls, names: Iterable[str], protected: Iterable[str] = PROTECTED_PARAMS
    ) -> PassThroughPolicy:
        return cls(
            mode="allow_list", allowed=frozenset(names), protected=frozenset(protected)
        )

    def select(self, params: Iterable[tuple[str, str]]) -> dict[str, str]:
        """Filter request parameters. Repeated keys keep their last value."""
        if self.mode == "none":
            return {}

        selected: dict[str, str] = {}
        for key, value in params:
            if self.mode == "allow_list" and key not in self.allowed:
                continue
            selected[key] = value
        return selected


def validate_host(v: str) -> str:
    """Reject provider domains given as URLs or with a path."""
    if "://" in v or "/" in v:
        raise ValueError(f"Domain must be a bare host name: {v}")
    return v


def _validate_endpoint(url: str) -> str:
    parsed = urlparse(url)
    if not parsed.netloc:
        raise ValueError(f"URL must be absolute: {url}")
    # Must be HTTPS or localhost
    if parsed.scheme == "https":
        return url
    if parsed.scheme == "http" and parsed.hostname in ("localhost", "127.0.0.1"):
        return url
    raise ValueError(f"URL must use HTTPS or localhost: {url}")


class ProviderConfig(BaseModel):
    """Endpoints, client credentials and parameter hooks for one provider."""

    model_config = ConfigDict(frozen=True)

    authorization_endpoint: str
    token_endpoint: str
    token_revocation_endpoint: str | None = None

    client_id: str = Field(min_length=1)
    client_secret: SecretStr
    redirect_uri: str

    # Default scopes, used when the caller requests none
    scopes: tuple[str, ...] = ()
    extra_params: ExtraParamsHook | None = None
    passthrough: PassThroughPolicy = Field(default_factory=PassThroughPolicy.allow_all)
    auth_method: ClientAuthMethod = ClientAuthMethod.CLIENT_SECRET_POST

    @field_validator(
        "authorization_endpoint",
        "token_endpoint",
        "token_revocation_endpoint",
        "redirect_uri",
    )
    @classmethod
    def validate_urls(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _validate_endpoint(v)

    def resolve_scopes(self, requested: Iterable[str] | None = None) -> tuple[str, ...]:
        """Return the requested scopes in order, or the provider default."""
        scopes = tuple(requested or ())
        return scopes or self.scopes

    def resolve_extra_params(self, request_params: Mapping[str, str]) -> dict[str, str]:
        """Run the adapter hook and drop unset values."""
        if self.extra_params is None:
            return {}
        extras = self.extra_params(self, request_params)
        return {key: value for key, value in extras.items() if value}


class FlowCookieSettings(BaseModel):
    """Attributes of the signed cookie that carries flow state.

    The cookie is always ``HttpOnly`` and ``SameSite=Lax`` so it survives the
    top-level redirect back from the provider.
    """

    model_config = ConfigDict(frozen=True)

    secret: SecretStr
    # None names the cookie after the strategy, so each provider gets its own
    name: str | None = Field(default=None, min_length=1)
    path: str = "/"
    max_age: int = Field(default=300, gt=0)  # 5 minutes
    # None infers Secure from the redirect URI scheme
    secure: bool | None = None

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, v: SecretStr) -> SecretStr:
        if len(v.get_secret_value()) < 32:
            raise ValueError("Cookie signing secret must be at least 32 characters")
        return v
