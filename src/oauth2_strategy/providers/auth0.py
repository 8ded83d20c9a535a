"""Auth0 provider adapter.

Endpoints are fixed under the tenant domain. Audience, organization,
invitation and connection are sent with the authorization request when set.

See https://auth0.com/docs/api/authentication#authorization-code-flow-with-pkce
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import partial

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from oauth2_strategy.models.config import (
    ClientAuthMethod,
    FlowCookieSettings,
    PassThroughPolicy,
    ProviderConfig,
    validate_host,
)
from oauth2_strategy.strategy import OAuth2Strategy, User, VerifyFunction

Auth0StrategyDefaultName = "auth0"

# https://auth0.com/docs/get-started/apis/scopes/openid-connect-scopes#standard-claims
AUTH0_DEFAULT_SCOPES = ("openid", "profile", "email")


class Auth0StrategyOptions(BaseModel):
    """Auth0 strategy options."""

    model_config = ConfigDict(frozen=True)

    domain: str = Field(min_length=1)
    client_id: str = Field(min_length=1)
    client_secret: SecretStr
    redirect_uri: str
    scopes: tuple[str, ...] | None = None

    audience: str | None = None
    organization: str | None = None
    invitation: str | None = None
    connection: str | None = None

    # Auth0 forwards every query parameter of the initiation request
    passthrough: PassThroughPolicy = Field(default_factory=PassThroughPolicy.allow_all)
    auth_method: ClientAuthMethod = ClientAuthMethod.CLIENT_SECRET_POST

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        return validate_host(v)


def auth0_extra_params(
    options: Auth0StrategyOptions,
    config: ProviderConfig | None = None,
    request_params: Mapping[str, str] | None = None,
) -> dict[str, str | None]:
    """Auth0-specific authorization parameters. Unset values are dropped."""
    return {
        "audience": options.audience,
        "organization": options.organization,
        "invitation": options.invitation,
        "connection": options.connection,
    }


def auth0_config(options: Auth0StrategyOptions) -> ProviderConfig:
    base_url = f"https://{options.domain}"
    return ProviderConfig(
        authorization_endpoint=f"{base_url}/authorize",
        token_endpoint=f"{base_url}/oauth/token",
        token_revocation_endpoint=f"{base_url}/oauth/revoke",
        client_id=options.client_id,
        client_secret=options.client_secret,
        redirect_uri=options.redirect_uri,
        scopes=options.scopes or AUTH0_DEFAULT_SCOPES,
        extra_params=partial(auth0_extra_params, options),
        passthrough=options.passthrough,
        auth_method=options.auth_method,
    )


class Auth0Strategy(OAuth2Strategy[User]):
    """OAuth2 strategy preconfigured for an Auth0 tenant."""

    name = Auth0StrategyDefaultName

    def __init__(
        self,
        options: Auth0StrategyOptions,
        verify: VerifyFunction,
        cookie: FlowCookieSettings,
        **kwargs,
    ):
        self.options = options
        super().__init__(auth0_config(options), verify, cookie, **kwargs)
