"""Bearer token lifecycle for Google Photos calls.

An ``AuthContext`` belongs to one signed-in session and is handed to every
service that talks to Google, so two sessions never share a credential.
"""

import threading
import time
from collections.abc import Callable
from enum import Enum

import requests

from ..config import get_oauth_client_id, get_oauth_client_secret, get_token_endpoint, get_token_lifetime
from ..error_handling import AuthError, RemoteApiError
from ..logging_config import get_logger, log_user_action
from .cache import PersistentStore

logger = get_logger(__name__)

TOKEN_REQUEST_TIMEOUT = 30.0


class TokenState(Enum):
    """Where the credential is in its lifecycle."""

    NO_CREDENTIAL = "no_credential"
    VALID = "valid"
    STALE = "stale"


class AuthContext:
    """Holds the bearer token of one session and refreshes it when stale."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_endpoint: str | None = None,
        token_lifetime: float | None = None,
        refresh_token_store: PersistentStore | None = None,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the context without any credential.

        Args:
            client_id: OAuth client id (defaults to OAUTH_CLIENT_ID)
            client_secret: OAuth client secret (defaults to OAUTH_CLIENT_SECRET)
            token_endpoint: OAuth token URL (defaults to OAUTH_TOKEN_ENDPOINT)
            token_lifetime: Seconds after which the token is refreshed
            refresh_token_store: Store remembering refresh credentials per profile
            session: requests session used for the token exchange
            clock: Time source, in seconds
        """
        self._client_id = client_id
        self._client_secret = client_secret
        self.token_endpoint = token_endpoint or get_token_endpoint()
        self.token_lifetime = get_token_lifetime() if token_lifetime is None else token_lifetime
        self.refresh_token_store = refresh_token_store
        self.session = session or requests.Session()
        self._clock = clock
        self._lock = threading.Lock()

        self.token: str | None = None
        self.profile_id: str | None = None
        self.token_issued_at: float | None = None
        self._refresh_credential: str | None = None

    @property
    def client_id(self) -> str:
        return self._client_id or get_oauth_client_id()

    @property
    def client_secret(self) -> str:
        return self._client_secret or get_oauth_client_secret()

    @property
    def state(self) -> TokenState:
        if not self._refresh_credential:
            return TokenState.NO_CREDENTIAL
        if self._is_stale():
            return TokenState.STALE
        return TokenState.VALID

    @property
    def has_credential(self) -> bool:
        return self._refresh_credential is not None

    def set_tokens(self, token: str | None, refresh_token: str | None, profile_id: str | None = None) -> None:
        """
        Install the tokens received at sign in.

        Google only sends a refresh token on the first consent. When it is
        missing, the credential remembered for ``profile_id`` is reused; when it
        is present, it is remembered for the next sign in.
        """
        self.profile_id = profile_id

        if not refresh_token and profile_id and self.refresh_token_store is not None:
            stored = self.refresh_token_store.get(profile_id)
            refresh_token = stored.get("refreshToken") if stored else None
            if refresh_token:
                logger.debug("refresh_token_restored", profile_id=profile_id)

        if refresh_token and profile_id and self.refresh_token_store is not None:
            self.refresh_token_store.set(profile_id, {"refreshToken": refresh_token})

        self.token = token
        self._refresh_credential = refresh_token
        # No token yet means the first get_token() must exchange the credential
        self.token_issued_at = self._clock() if token else None

        log_user_action(profile_id or "unknown", "tokens_set", has_refresh_token=bool(refresh_token))

    def clear(self) -> None:
        """Forget the credential (sign out)."""
        self.token = None
        self.token_issued_at = None
        self._refresh_credential = None
        log_user_action(self.profile_id or "unknown", "tokens_cleared")

    def _is_stale(self) -> bool:
        if self.token is None or self.token_issued_at is None:
            return True
        return self._clock() - self.token_issued_at >= self.token_lifetime

    def get_token(self) -> str:
        """
        Return a usable bearer token, refreshing it first when stale.

        Raises:
            AuthError: If no refresh credential was ever established or the refresh fails
        """
        if not self._refresh_credential:
            raise AuthError("No refresh credential available", code="no_credential")
        return self.refresh_token()

    def refresh_token(self) -> str:
        """
        Exchange the refresh credential for a new bearer token if the current one is stale.

        Returns:
            str: The current token when still fresh, otherwise the new one

        Raises:
            AuthError: If there is no credential or the token endpoint refuses it
        """
        if not self._refresh_credential:
            raise AuthError("No refresh credential available", code="no_credential")

        if not self._is_stale():
            return self.token  # type: ignore[return-value]

        with self._lock:
            # Another worker may have refreshed while this one waited
            if not self._is_stale():
                return self.token  # type: ignore[return-value]
            return self._exchange_refresh_credential()

    def _exchange_refresh_credential(self) -> str:
        logger.info("refreshing_token", profile_id=self.profile_id)

        try:
            response = self.session.post(
                self.token_endpoint,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self._refresh_credential,
                    "grant_type": "refresh_token",
                },
                timeout=TOKEN_REQUEST_TIMEOUT,
            )
            if not response.ok:
                raise RemoteApiError.from_response(response)
            access_token = response.json().get("access_token")
        except (requests.RequestException, RemoteApiError, ValueError) as e:
            raise AuthError(
                f"Failed to refresh token: {e}",
                code="token_refresh_failed",
                details={"profile_id": self.profile_id},
                original_exception=e,
            ) from e

        if not access_token:
            raise AuthError("Token endpoint returned no access token", code="token_refresh_failed")

        self.token = access_token
        self.token_issued_at = self._clock()
        logger.info("token_refreshed", profile_id=self.profile_id)
        return access_token
