"""PKCE (Proof Key for Code Exchange) manager.

Implements RFC 7636 parameter generation to prevent authorization code
interception attacks. Only the S256 method is produced.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from collections.abc import Callable

from oauth2_strategy.models.errors import PKCEError
from oauth2_strategy.models.security import PKCEParameters

RandomBytes = Callable[[int], bytes]

# 32 bytes encode to a 43-character verifier, the RFC 7636 minimum
VERIFIER_ENTROPY_BYTES = 32


def base64url(data: bytes) -> str:
    """Unpadded base64url encoding (RFC 7636 Appendix A)."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


class PKCEManager:
    """Generates PKCE parameters for authorization code flows.

    The random source is injectable so tests can substitute a deterministic
    one. It defaults to ``secrets.token_bytes``.
    """

    def __init__(self, random_bytes: RandomBytes = secrets.token_bytes):
        self._random_bytes = random_bytes

    def generate_parameters(self) -> PKCEParameters:
        """Generate new PKCE parameters for an authorization flow.

        Returns:
            PKCEParameters: Immutable parameters for the authorization flow

        Raises:
            PKCEError: If parameter generation fails
        """
        try:
            code_verifier = self._generate_code_verifier()
            code_challenge = self.generate_code_challenge(code_verifier)

            return PKCEParameters(
                code_verifier=code_verifier,
                code_challenge=code_challenge,
                code_challenge_method="S256",
            )

        except Exception as e:
            raise PKCEError(f"Failed to generate PKCE parameters: {e}") from e

    @staticmethod
    def generate_code_challenge(code_verifier: str) -> str:
        """Derive the S256 code challenge.

        RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))
        """
        digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
        return base64url(digest)

    def _generate_code_verifier(self) -> str:
        """Generate a code verifier from the random source.

        base64url output only uses unreserved characters, as required by
        RFC 7636 Section 4.1.
        """
        return base64url(self._random_bytes(VERIFIER_ENTROPY_BYTES))
