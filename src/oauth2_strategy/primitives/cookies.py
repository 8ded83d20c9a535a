"""Signed flow cookie codec.

The flow cookie is the only place flow state lives between the redirect to
the provider and the callback. No server-side record exists, so any server
instance can complete any flow.

Cookie value format::

    base64url(state=...&codeVerifier=...&iat=...) "." base64url(HMAC-SHA256)
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import time
from collections.abc import Callable
from urllib.parse import parse_qs, urlencode

from starlette.requests import Request
from starlette.responses import Response

from oauth2_strategy.models.config import FlowCookieSettings
from oauth2_strategy.models.errors import MissingFlowStateError
from oauth2_strategy.models.security import FlowState
from oauth2_strategy.primitives.pkce import base64url

logger = logging.getLogger(__name__)

# Tolerated clock difference between server instances
CLOCK_SKEW_SECONDS = 60


def _b64decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


class FlowCookieCodec:
    """Encodes FlowState into a signed, time-limited cookie and back."""

    def __init__(
        self,
        settings: FlowCookieSettings,
        *,
        name: str = "oauth2",
        secure: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the codec.

        Args:
            settings: Cookie name, path, lifetime and signing secret
            name: Cookie name used when settings leave it unset
            secure: Secure attribute used when settings leave it unset
            clock: Time source, in seconds since the epoch
        """
        self.settings = settings
        self.name = settings.name or name
        self.secure = settings.secure if settings.secure is not None else secure
        self._key = settings.secret.get_secret_value().encode()
        self._clock = clock

    def encode(self, flow_state: FlowState) -> str:
        payload = urlencode(
            {
                "state": flow_state.state,
                "codeVerifier": flow_state.code_verifier,
                "iat": str(int(self._clock())),
            }
        )
        payload_b64 = base64url(payload.encode())
        return f"{payload_b64}.{self._sign(payload_b64)}"

    def decode(self, value: str | None) -> FlowState:
        """Verify and parse a cookie value.

        Raises:
            MissingFlowStateError: If the value is absent, tampered with,
                malformed or expired
        """
        if not value:
            raise MissingFlowStateError("Missing flow state cookie")
        if "." not in value:
            raise MissingFlowStateError("Malformed flow state cookie")

        payload_b64, signature = value.rsplit(".", 1)
        expected = self._sign(payload_b64).encode()
        if not hmac.compare_digest(expected, signature.encode()):
            raise MissingFlowStateError("Invalid flow state cookie signature")

        try:
            fields = parse_qs(_b64decode(payload_b64).decode(), strict_parsing=True)
            state = fields["state"][-1]
            code_verifier = fields["codeVerifier"][-1]
            issued_at = int(fields["iat"][-1])
        except (binascii.Error, UnicodeDecodeError, ValueError, KeyError) as e:
            raise MissingFlowStateError(f"Malformed flow state cookie: {e}") from e

        age = self._clock() - issued_at
        if age > self.settings.max_age:
            raise MissingFlowStateError("Flow state cookie has expired")
        if age < -CLOCK_SKEW_SECONDS:
            raise MissingFlowStateError("Flow state cookie issued in the future")

        return FlowState(state=state, code_verifier=code_verifier)

    def read(self, request: Request) -> FlowState:
        """Decode the flow cookie carried by an incoming request."""
        return self.decode(request.cookies.get(self.name))

    def set_cookie(self, response: Response, flow_state: FlowState) -> None:
        response.set_cookie(
            self.name,
            self.encode(flow_state),
            max_age=self.settings.max_age,
            path=self.settings.path,
            secure=self.secure,
            httponly=True,
            samesite="lax",
        )

    def expire_cookie(self, response: Response) -> None:
        """Discard the flow cookie once the callback has consumed it."""
        response.delete_cookie(
            self.name,
            path=self.settings.path,
            secure=self.secure,
            httponly=True,
            samesite="lax",
        )

    def _sign(self, payload_b64: str) -> str:
        digest = hmac.new(self._key, payload_b64.encode(), hashlib.sha256).digest()
        return base64url(digest)
