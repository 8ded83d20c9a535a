"""Azure AD B2C provider adapter.

Endpoints are templated with the tenant and user-flow policy.

See https://learn.microsoft.com/en-us/azure/active-directory-b2c/authorization-code-flow
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import partial
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from oauth2_strategy.models.config import (
    ClientAuthMethod,
    FlowCookieSettings,
    PassThroughPolicy,
    ProviderConfig,
    validate_host,
)
from oauth2_strategy.strategy import OAuth2Strategy, User, VerifyFunction

AzureStrategyDefaultName = "azure"

# https://learn.microsoft.com/en-us/azure/active-directory-b2c/tokens-overview
AZURE_DEFAULT_SCOPES = ("openid", "profile", "offline_access")

Prompt = Literal["none", "login", "consent", "select_account"]


class AzureStrategyOptions(BaseModel):
    """Azure B2C strategy options.

    The default scopes only sign the user in. B2C then answers the token
    request with an id_token and no access_token, which the token exchange
    rejects. Add an API scope, such as
    ``https://{tenant}.onmicrosoft.com/api/read`` or the client id itself,
    to receive an access token.
    """

    model_config = ConfigDict(frozen=True)

    domain: str = Field(min_length=1)
    tenant: str = Field(min_length=1)
    policy: str = Field(min_length=1)
    client_id: str = Field(min_length=1)
    client_secret: SecretStr
    redirect_uri: str
    scopes: tuple[str, ...] | None = None
    prompt: Prompt = "none"

    passthrough: PassThroughPolicy = Field(default_factory=PassThroughPolicy.deny_all)
    auth_method: ClientAuthMethod = ClientAuthMethod.CLIENT_SECRET_POST

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        return validate_host(v)

    @field_validator("tenant", "policy")
    @classmethod
    def validate_path_segment(cls, v: str) -> str:
        if "/" in v:
            raise ValueError(f"Must be a single path segment: {v}")
        return v


def azure_extra_params(
    options: AzureStrategyOptions,
    config: ProviderConfig | None = None,
    request_params: Mapping[str, str] | None = None,
) -> dict[str, str | None]:
    return {"prompt": options.prompt}


def azure_config(options: AzureStrategyOptions) -> ProviderConfig:
    base_url = (
        f"https://{options.domain}/{options.tenant}/{options.policy}/oauth2/v2.0"
    )
    return ProviderConfig(
        authorization_endpoint=f"{base_url}/authorize",
        token_endpoint=f"{base_url}/token",
        client_id=options.client_id,
        client_secret=options.client_secret,
        redirect_uri=options.redirect_uri,
        scopes=options.scopes or AZURE_DEFAULT_SCOPES,
        extra_params=partial(azure_extra_params, options),
        passthrough=options.passthrough,
        auth_method=options.auth_method,
    )


class AzureStrategy(OAuth2Strategy[User]):
    """OAuth2 strategy preconfigured for an Azure AD B2C user flow."""

    name = AzureStrategyDefaultName

    def __init__(
        self,
        options: AzureStrategyOptions,
        verify: VerifyFunction,
        cookie: FlowCookieSettings,
        **kwargs,
    ):
        self.options = options
        super().__init__(azure_config(options), verify, cookie, **kwargs)
