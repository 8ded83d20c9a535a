"""OAuth2 token endpoint service.

Implements the RFC 6749 authorization code exchange with the PKCE verifier
(RFC 7636), plus on-demand refresh and RFC 7009 revocation.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from oauth2_strategy.models.errors import (
    TokenError,
    TokenExchangeError,
    TokenRefreshError,
    TokenRevocationError,
)
from oauth2_strategy.models.tokens import (
    ClientCredentials,
    OAuth2Tokens,
    RefreshTokenRequest,
    TokenExchangeRequest,
    TokenResponse,
    TokenRevocationRequest,
)

logger = logging.getLogger(__name__)

Timeout = float | httpx.Timeout | None


class OAuth2TokenManager:
    """Manages token endpoint interactions.

    Handles:
    - Authorization code to access token exchange (RFC 6749 Section 4.1.3)
    - Access token refresh (RFC 6749 Section 6)
    - Token revocation (RFC 7009)

    Uses application/x-www-form-urlencoded encoding as required by RFC 6749.
    No request is ever retried here: authorization codes are single-use.
    """

    def __init__(
        self, timeout: float = 30.0, http_client: httpx.AsyncClient | None = None
    ):
        """Initialize the token manager.

        Args:
            timeout: Default HTTP request timeout in seconds
            http_client: Shared client to use instead of creating one. It is
                not closed by ``close()``.
        """
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def exchange_code_for_token(
        self, token_request: TokenExchangeRequest, timeout: Timeout = None
    ) -> OAuth2Tokens:
        """Exchange an authorization code for tokens.

        Args:
            token_request: Token exchange request parameters
            timeout: Per-call timeout, overriding the client default

        Returns:
            OAuth2Tokens: The provider's payload, verbatim

        Raises:
            TokenExchangeError: If the provider rejects the code, the response
                is malformed, or the request fails
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        response = await self._post(
            token_request.token_endpoint,
            token_request.to_form_data(),
            token_request.credentials,
            timeout,
            TokenExchangeError,
        )
        tokens = self._parse_token_response(response, TokenExchangeError)
        logger.info("Token exchange successful")
        return tokens

    async def refresh_access_token(
        self, refresh_request: RefreshTokenRequest, timeout: Timeout = None
    ) -> OAuth2Tokens:
        """Refresh an access token using a refresh token.

        Raises:
            TokenRefreshError: If the refresh fails
        """
        logger.debug(f"Refreshing access token at {refresh_request.token_endpoint}")

        response = await self._post(
            refresh_request.token_endpoint,
            refresh_request.to_form_data(),
            refresh_request.credentials,
            timeout,
            TokenRefreshError,
        )
        return self._parse_token_response(response, TokenRefreshError)

    async def revoke_token(
        self, revocation_request: TokenRevocationRequest, timeout: Timeout = None
    ) -> None:
        """Revoke an access or refresh token.

        Raises:
            TokenRevocationError: If the provider does not answer with 2xx
        """
        logger.debug(f"Revoking token at {revocation_request.revocation_endpoint}")

        response = await self._post(
            revocation_request.revocation_endpoint,
            revocation_request.to_form_data(),
            revocation_request.credentials,
            timeout,
            TokenRevocationError,
        )
        if not response.is_success:
            raise TokenRevocationError(
                f"Token revocation failed with {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

    async def _post(
        self,
        endpoint: str,
        form_data: dict[str, str],
        credentials: ClientCredentials,
        timeout: Timeout,
        error_cls: type[TokenError],
    ) -> httpx.Response:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        auth = credentials.apply(form_data)

        kwargs: dict[str, Any] = {"data": form_data, "headers": headers}
        if auth is not None:
            kwargs["auth"] = auth
        if timeout is not None:
            kwargs["timeout"] = timeout

        # Log request details (without sensitive data)
        logger.debug(
            f"Token endpoint request: grant_type={form_data.get('grant_type')}, "
            f"client_id={credentials.client_id}, "
            f"auth_method={credentials.auth_method.value}"
        )

        try:
            return await self._http_client.post(endpoint, **kwargs)
        except httpx.HTTPError as e:
            raise error_cls(f"HTTP error calling token endpoint: {e}") from e

    def _parse_token_response(
        self, response: httpx.Response, error_cls: type[TokenError]
    ) -> OAuth2Tokens:
        """Validate a token endpoint response (RFC 6749 Section 5).

        Raises:
            TokenError: As ``error_cls``, carrying the raw body
        """
        body = response.text

        if not response.is_success:
            error_code, error_description = self._extract_error(response)
            logger.warning(
                f"Token endpoint failed with {response.status_code}: "
                f"{error_code} - {error_description}"
            )
            raise error_cls(
                f"Token endpoint returned {response.status_code}: {error_code}",
                status_code=response.status_code,
                body=body,
            )

        try:
            response_data = response.json()
        except ValueError as e:
            raise error_cls(
                f"Invalid token response format: {e}",
                status_code=response.status_code,
                body=body,
            ) from e

        if not isinstance(response_data, dict):
            raise error_cls(
                "Token response is not a JSON object",
                status_code=response.status_code,
                body=body,
            )

        try:
            TokenResponse.model_validate(response_data)
        except ValidationError as e:
            raise error_cls(
                f"Invalid token response: {e.error_count()} validation error(s)",
                status_code=response.status_code,
                body=body,
            ) from e

        return OAuth2Tokens(response_data)

    @staticmethod
    def _extract_error(response: httpx.Response) -> tuple[str, str]:
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            return "unknown_error", "No description provided"
        return (
            str(data.get("error", "unknown_error")),
            str(data.get("error_description", "No description provided")),
        )

    async def close(self) -> None:
        """Close the HTTP client if this manager created it."""
        if self._owns_client:
            await self._http_client.aclose()
