"""Session credentials and the password sign-in exchange."""

from typing import TYPE_CHECKING, Optional

from google.auth import credentials as ga_credentials
from google.auth import exceptions as ga_exceptions
from pydantic import ValidationError

import config
from api_clients import is_success
from core.models import AuthenticationRequest, AuthenticationResponse, User
from utils.logger import get_logger
from utils.error_handler import AuthenticationError

if TYPE_CHECKING:
    from services.rest_api import RestService

logger = get_logger()


class SessionCredentials(ga_credentials.Credentials):
    """Bearer credential used for every backend call.

    Starts out holding the anonymous key, so unauthenticated calls are made
    with public access. A successful sign-in replaces the token with the
    user's access token exactly once; the token is never refreshed.

    Not thread-safe: one client instance (and its session) must not be
    shared between threads.
    """

    def __init__(self, anon_key: Optional[str]):
        super().__init__()
        self.anon_key = anon_key
        self.token = anon_key or None
        self.identity: Optional[User] = None

    def current_credential(self) -> Optional[str]:
        return self.token

    def current_identity(self) -> Optional[User]:
        return self.identity

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    def on_authenticated(self, access_token: str, identity: User) -> None:
        """Installs the token and identity obtained from a successful sign-in."""
        self.token = access_token
        self.identity = identity
        logger.info(f"Session now authenticated as {identity.email or identity.id}.")

    def refresh(self, request) -> None:
        raise ga_exceptions.RefreshError(
            "Session credentials cannot be refreshed; sign in again to obtain a new token."
        )


def sign_in(rest: "RestService", session: SessionCredentials, email: str, password: str) -> AuthenticationResponse:
    """Exchanges an email and password for an access token.

    On success the session is switched over to the user's token.

    Args:
        rest: The REST service used to send the request.
        session: The session to update.
        email: The email of the account.
        password: The password of the account.

    Returns:
        AuthenticationResponse: The token and the authenticated user.

    Raises:
        AuthenticationError: If the server rejects the credentials or the
            response cannot be parsed.
        NetworkError: If the request could not be sent.
    """
    logger.info(f"Authenticating user {email}...")
    body = AuthenticationRequest(email=email, password=password)
    status, payload = rest.insert(
        f"{config.AUTH_TOKEN_PATH}?grant_type=password",
        body.model_dump(by_alias=True),
    )
    if not is_success(status):
        logger.warning(f"Authentication for {email} was rejected with status {status}.")
        raise AuthenticationError(f"Authentication failed for '{email}'.", status_code=status)

    try:
        response = AuthenticationResponse.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Unexpected authentication response: {e}", exc_info=config.DEBUG)
        raise AuthenticationError("Authentication response could not be parsed.", status_code=status) from e

    session.on_authenticated(response.access_token, response.user)
    return response
