"""Exception hierarchy for the OAuth2 authorization code flow.

Provides specific exception types for each failure mode so callers can tell
a user denial apart from a forged callback or a rejected token exchange.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all OAuth2 strategy errors."""

    pass


class PKCEError(OAuth2Error):
    """Raised when PKCE parameter generation fails."""

    pass


class AuthorizationDeniedError(OAuth2Error):
    """Raised when the provider redirects back with an ``error`` parameter.

    Carries the provider's error code and description so the caller can render
    a structured denial. Never retried.
    """

    def __init__(
        self,
        error: str,
        error_description: str | None = None,
        error_uri: str | None = None,
    ):
        self.error = error
        self.error_description = error_description
        self.error_uri = error_uri
        message = f"Authorization denied: {error}"
        if error_description:
            message += f" ({error_description})"
        if error_uri:
            message += f" See: {error_uri}"
        super().__init__(message)


class AuthorizationCallbackError(OAuth2Error):
    """Raised when callback data is malformed or forged.

    Always fatal to the current attempt. The flow must be restarted from
    initiation.
    """

    pass


class MissingCodeError(AuthorizationCallbackError):
    """Raised when the callback carries no authorization code."""

    pass


class MissingFlowStateError(AuthorizationCallbackError):
    """Raised when the flow cookie is absent, tampered with, or expired."""

    pass


class StateMismatchError(AuthorizationCallbackError):
    """Raised when the callback state does not match the flow cookie.

    This indicates a CSRF attempt or a stale browser tab.
    """

    pass


class TokenError(OAuth2Error):
    """Raised when token endpoint operations fail.

    ``status_code`` is ``None`` for transport failures. ``body`` holds the raw
    provider response for diagnosis.
    """

    def __init__(
        self, message: str, status_code: int | None = None, body: str | None = None
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class TokenExchangeError(TokenError):
    """Raised when authorization code to token exchange fails."""

    pass


class TokenRefreshError(TokenError):
    """Raised when token refresh fails."""

    pass


class TokenRevocationError(TokenError):
    """Raised when token revocation fails."""

    pass
