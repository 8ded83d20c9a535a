"""Authorization code flow service.

Builds the authorization redirect for a provider and validates the callback
that comes back from it.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Iterable, Sequence

from oauth2_strategy.models.config import ProviderConfig
from oauth2_strategy.models.errors import (
    AuthorizationDeniedError,
    MissingCodeError,
    MissingFlowStateError,
    StateMismatchError,
)
from oauth2_strategy.models.flow import AuthorizationRequest, AuthorizationResponse
from oauth2_strategy.models.security import (
    AuthorizationGrant,
    FlowState,
    PKCEParameters,
)
from oauth2_strategy.primitives.pkce import PKCEManager, RandomBytes
from oauth2_strategy.services.security import generate_state, validate_state

logger = logging.getLogger(__name__)


class OAuth2FlowManager:
    """Runs both halves of the authorization code flow for one provider.

    Handles:
    - PKCE and state generation
    - Authorization URL construction with provider extras and pass-through
      parameters
    - Callback validation (provider error, code, flow cookie, state)
    """

    def __init__(
        self,
        config: ProviderConfig,
        random_bytes: RandomBytes = secrets.token_bytes,
    ):
        self.config = config
        self._random_bytes = random_bytes
        self._pkce_manager = PKCEManager(random_bytes)

    def start_authorization_flow(
        self,
        request_params: Iterable[tuple[str, str]] = (),
        scopes: Sequence[str] | None = None,
    ) -> tuple[str, FlowState]:
        """Start an authorization flow.

        Args:
            request_params: Query parameters of the incoming initiation request
            scopes: Scopes to request, or None for the provider default

        Returns:
            Tuple of (authorization_url, flow_state). The flow state must be
            stored in the flow cookie for the callback.
        """
        pkce_params = self._pkce_manager.generate_parameters()
        state = generate_state(self._random_bytes)

        auth_request = self.build_authorization_request(
            pkce_params, state, request_params, scopes
        )
        logger.debug(
            f"Starting authorization flow for client {self.config.client_id}"
        )

        flow_state = FlowState(state=state, code_verifier=pkce_params.code_verifier)
        return auth_request.build_authorization_url(), flow_state

    def build_authorization_request(
        self,
        pkce_params: PKCEParameters,
        state: str,
        request_params: Iterable[tuple[str, str]] = (),
        scopes: Sequence[str] | None = None,
    ) -> AuthorizationRequest:
        """Assemble the authorization request. Performs no I/O."""
        request_params = list(request_params)
        # Adapter hooks see the last value of each request parameter
        extras = self.config.resolve_extra_params(dict(request_params))
        passthrough = self.config.passthrough.select(request_params)

        return AuthorizationRequest(
            authorization_endpoint=self.config.authorization_endpoint,
            client_id=self.config.client_id,
            redirect_uri=self.config.redirect_uri,
            code_challenge=pkce_params.code_challenge,
            code_challenge_method=pkce_params.code_challenge_method,
            state=state,
            scopes=self.config.resolve_scopes(scopes),
            extra_params=extras,
            passthrough_params=passthrough,
            protected_params=self.config.passthrough.protected,
        )

    def validate_callback(
        self,
        response: AuthorizationResponse,
        load_flow_state: Callable[[], FlowState],
    ) -> AuthorizationGrant:
        """Validate a provider callback.

        Checks run in a fixed order and the flow cookie is only read once an
        authorization code is known to be present.

        Args:
            response: Parsed callback query parameters
            load_flow_state: Reads and verifies the flow cookie

        Returns:
            AuthorizationGrant: Code and verifier for the token exchange

        Raises:
            AuthorizationDeniedError: Provider reported an error
            MissingCodeError: No authorization code in the callback
            MissingFlowStateError: Flow cookie absent or invalid
            StateMismatchError: Callback state differs from the cookie
        """
        if response.is_error():
            logger.warning(
                f"Authorization callback contained error: {response.error} - "
                f"{response.error_description}"
            )
            raise AuthorizationDeniedError(
                response.error, response.error_description, response.error_uri
            )

        if response.code is None:
            logger.warning("Rejected callback: missing authorization code")
            raise MissingCodeError("Missing authorization code in callback")

        try:
            flow_state = load_flow_state()
        except MissingFlowStateError as e:
            logger.warning(f"Rejected callback: {e}")
            raise

        try:
            validate_state(flow_state.state, response.state)
        except StateMismatchError as e:
            logger.warning(f"Rejected callback: {e}")
            raise

        logger.debug("Authorization callback validated")
        return AuthorizationGrant(
            code=response.code, code_verifier=flow_state.code_verifier
        )
