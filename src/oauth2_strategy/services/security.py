"""Security utilities for the authorization code flow.

Provides state parameter generation and constant-time validation.
"""

from __future__ import annotations

import secrets

from oauth2_strategy.models.errors import StateMismatchError
from oauth2_strategy.primitives.pkce import RandomBytes, base64url

STATE_ENTROPY_BYTES = 32


def generate_state(random_bytes: RandomBytes = secrets.token_bytes) -> str:
    """Generate an unguessable state parameter.

    The state parameter provides CSRF protection by binding the callback to
    the browser that started the flow.

    Returns:
        43-character base64url string (256 bits of entropy)
    """
    return base64url(random_bytes(STATE_ENTROPY_BYTES))


def validate_state(expected: str, actual: str | None) -> None:
    """Validate state parameter matches expected value.

    Args:
        expected: State stored in the flow cookie
        actual: State parameter from the callback URL

    Raises:
        StateMismatchError: If state is missing or does not match
    """
    if actual is None:
        raise StateMismatchError("Callback is missing the state parameter")
    if not secrets.compare_digest(expected.encode(), actual.encode()):
        raise StateMismatchError("State parameter mismatch - possible CSRF attack")
