"""Security-related models for the authorization code flow.

Contains PKCE parameters and the flow state carried across the redirect.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PKCEParameters:
    """PKCE (Proof Key for Code Exchange) parameters (RFC 7636).

    Immutable parameters generated for each authorization flow to prevent
    authorization code interception attacks.
    """

    code_verifier: str = field()
    code_challenge: str = field()
    code_challenge_method: str = field(default="S256")

    def __post_init__(self) -> None:
        """Validate PKCE parameters meet RFC 7636 requirements."""
        if not (43 <= len(self.code_verifier) <= 128):
            raise ValueError("code_verifier must be 43-128 characters")
        if not (43 <= len(self.code_challenge) <= 128):
            raise ValueError("code_challenge must be 43-128 characters")
        if self.code_challenge_method != "S256":
            raise ValueError("Only S256 code challenge method is supported")


@dataclass(frozen=True)
class FlowState:
    """State and code verifier for one in-flight authentication attempt.

    Lives only inside the signed flow cookie, never in server memory.
    """

    state: str
    code_verifier: str

    def __repr__(self) -> str:
        return "FlowState(state=..., code_verifier=...)"


@dataclass(frozen=True)
class AuthorizationGrant:
    """Validated callback result, ready for token exchange."""

    code: str
    code_verifier: str

    def __repr__(self) -> str:
        return "AuthorizationGrant(code=..., code_verifier=...)"
