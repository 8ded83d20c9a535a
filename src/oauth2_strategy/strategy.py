"""OAuth2 authorization code strategy.

Drives the two-phase protocol for one provider: an initiation request is
answered with a redirect to the provider, and the provider's callback is
validated, exchanged for tokens and handed to the application's verify
function.

Correlation between the two phases happens only through the signed flow
cookie, so strategies hold no per-flow state and can be shared across
concurrent requests and server instances.
"""

from __future__ import annotations

import inspect
import logging
import secrets
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar
from urllib.parse import urlparse

from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from oauth2_strategy.models.config import FlowCookieSettings, ProviderConfig
from oauth2_strategy.models.errors import OAuth2Error
from oauth2_strategy.models.flow import AuthorizationResponse
from oauth2_strategy.models.security import FlowState
from oauth2_strategy.models.tokens import (
    ClientCredentials,
    OAuth2Tokens,
    RefreshTokenRequest,
    TokenExchangeRequest,
    TokenRevocationRequest,
)
from oauth2_strategy.primitives.cookies import FlowCookieCodec
from oauth2_strategy.primitives.pkce import RandomBytes
from oauth2_strategy.services.flow import OAuth2FlowManager
from oauth2_strategy.services.tokens import OAuth2TokenManager, Timeout

logger = logging.getLogger(__name__)

User = TypeVar("User")


@dataclass(frozen=True)
class VerifyOptions:
    """Input of the application's verify function."""

    tokens: OAuth2Tokens
    request: Request


VerifyFunction = Callable[[VerifyOptions], Awaitable[User] | User]


@dataclass(frozen=True)
class Redirect:
    """Initiation outcome: send the browser to the provider.

    Not an error. The caller turns it into a response with ``to_response``.
    """

    location: str
    flow_state: FlowState
    codec: FlowCookieCodec = field(repr=False)
    status_code: int = 302

    def to_response(self) -> RedirectResponse:
        """Build the redirect response carrying the flow cookie."""
        response = RedirectResponse(self.location, status_code=self.status_code)
        self.codec.set_cookie(response, self.flow_state)
        return response


@dataclass(frozen=True)
class Authenticated(Generic[User]):
    """Callback outcome: whatever the verify function returned."""

    user: User
    codec: FlowCookieCodec = field(repr=False)

    def expire_cookie(self, response: Response) -> Response:
        """Discard the consumed flow cookie on the caller's response."""
        self.codec.expire_cookie(response)
        return response


class OAuth2Strategy(Generic[User]):
    """Authorization Code with PKCE strategy for a single provider.

    Orchestrates PKCE/state generation, the authorization redirect, callback
    validation, the token exchange and the verify callback.
    """

    name = "oauth2"

    def __init__(
        self,
        config: ProviderConfig,
        verify: VerifyFunction,
        cookie: FlowCookieSettings,
        *,
        name: str | None = None,
        token_manager: OAuth2TokenManager | None = None,
        random_bytes: RandomBytes = secrets.token_bytes,
    ):
        """Initialize the strategy.

        Args:
            config: Provider endpoints, credentials and parameter hooks
            verify: Application callback receiving VerifyOptions; may be async
            cookie: Flow cookie settings, including the signing secret. An
                unnamed cookie takes the strategy name.
            name: Strategy name, defaults to the class attribute
            token_manager: Token endpoint client, created if not given
            random_bytes: Secure random source for PKCE and state
        """
        self.config = config
        self.verify = verify
        if name is not None:
            self.name = name

        secure = urlparse(config.redirect_uri).scheme == "https"
        self.cookie_codec = FlowCookieCodec(cookie, name=self.name, secure=secure)
        self.flow_manager = OAuth2FlowManager(config, random_bytes)
        self.token_manager = token_manager or OAuth2TokenManager()

    @property
    def credentials(self) -> ClientCredentials:
        return ClientCredentials(
            client_id=self.config.client_id,
            client_secret=self.config.client_secret.get_secret_value(),
            auth_method=self.config.auth_method,
        )

    async def authenticate(
        self,
        request: Request,
        *,
        scopes: Sequence[str] | None = None,
        timeout: Timeout = None,
    ) -> Redirect | Authenticated[User]:
        """Handle an initiation request or a provider callback.

        Args:
            request: Incoming request
            scopes: Scopes for a new flow, or None for the provider default
            timeout: Bound for the token exchange call

        Returns:
            Redirect for an initiation request, Authenticated for a callback

        Raises:
            AuthorizationDeniedError: Provider reported an error
            AuthorizationCallbackError: Missing code, flow cookie or state
            TokenExchangeError: Token endpoint rejected the code or failed
            Exception: Anything raised by the verify function, unchanged
        """
        auth_response = AuthorizationResponse.from_query(request.query_params)

        if not auth_response.is_callback():
            return self.authorization_redirect(request, scopes=scopes)

        logger.debug(f"Processing {self.name} authorization callback")
        grant = self.flow_manager.validate_callback(
            auth_response, lambda: self.cookie_codec.read(request)
        )

        token_request = TokenExchangeRequest(
            token_endpoint=self.config.token_endpoint,
            code=grant.code,
            redirect_uri=self.config.redirect_uri,
            code_verifier=grant.code_verifier,
            credentials=self.credentials,
        )
        tokens = await self.token_manager.exchange_code_for_token(
            token_request, timeout=timeout
        )

        user = self.verify(VerifyOptions(tokens=tokens, request=request))
        if inspect.isawaitable(user):
            user = await user

        logger.info(f"Authenticated user with {self.name} strategy")
        return Authenticated(user=user, codec=self.cookie_codec)

    def authorization_redirect(
        self, request: Request, *, scopes: Sequence[str] | None = None
    ) -> Redirect:
        """Start a new flow, forwarding the request's query parameters."""
        location, flow_state = self.flow_manager.start_authorization_flow(
            request.query_params.multi_items(), scopes
        )
        logger.debug(f"Redirecting to {self.name} authorization endpoint")
        return Redirect(
            location=location, flow_state=flow_state, codec=self.cookie_codec
        )

    async def refresh_token(
        self,
        refresh_token: str,
        *,
        scopes: Sequence[str] | None = None,
        timeout: Timeout = None,
    ) -> OAuth2Tokens:
        """Exchange a refresh token for new tokens."""
        refresh_request = RefreshTokenRequest(
            token_endpoint=self.config.token_endpoint,
            refresh_token=refresh_token,
            credentials=self.credentials,
            scope=" ".join(scopes) if scopes else None,
        )
        return await self.token_manager.refresh_access_token(
            refresh_request, timeout=timeout
        )

    async def revoke_token(
        self,
        token: str,
        *,
        token_type_hint: str | None = None,
        timeout: Timeout = None,
    ) -> None:
        """Revoke a token at the provider's revocation endpoint.

        Raises:
            OAuth2Error: If the provider has no revocation endpoint
            TokenRevocationError: If the provider rejects the request
        """
        if not self.config.token_revocation_endpoint:
            raise OAuth2Error(f"{self.name} strategy has no revocation endpoint")

        revocation_request = TokenRevocationRequest(
            revocation_endpoint=self.config.token_revocation_endpoint,
            token=token,
            credentials=self.credentials,
            token_type_hint=token_type_hint,
        )
        await self.token_manager.revoke_token(revocation_request, timeout=timeout)

    async def close(self) -> None:
        """Close the token endpoint client."""
        await self.token_manager.close()
