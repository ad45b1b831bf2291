"""
OAuth 2.0 authorization-code client for the Calendar API.

Holds the process-wide authorization state: the client identity loaded from
the credential store and the current token record. The web endpoint writes
it (code exchange), the calendar client reads it and refreshes it when it
has expired or on a 401. Every replacement is written to the token file
and swapped in under the same lock, so the file never lags memory.
"""

import logging
import threading
from datetime import timezone
from typing import List, Optional, Sequence

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from .credential_store import CredentialStore
from .errors import AuthorizationError, ConfigurationError, UpstreamError
from .models import ClientSecrets, TokenRecord

logger = logging.getLogger(__name__)

SCOPES = [
    'https://www.googleapis.com/auth/calendar.readonly',
    'https://www.googleapis.com/auth/calendar.events',
]


class AuthorizationClient:
    def __init__(self, store: CredentialStore, scopes: Sequence[str] = SCOPES):
        self.store = store
        self.scopes = list(scopes)
        self._lock = threading.Lock()
        self._secrets: Optional[ClientSecrets] = None
        self._token: Optional[TokenRecord] = None

    def load(self) -> None:
        """(Re)seed state from the credential store."""
        try:
            secrets, token = self.store.load()
        except ConfigurationError:
            with self._lock:
                self._secrets = None
                self._token = None
            raise

        with self._lock:
            self._secrets = secrets
            self._token = token

    def is_configured(self) -> bool:
        with self._lock:
            return self._secrets is not None

    def is_authorized(self) -> bool:
        with self._lock:
            return self._token is not None and bool(self._token.access_token)

    def build_consent_url(self, scopes: Optional[Sequence[str]] = None) -> str:
        """Google consent URL requesting offline access and forced consent."""
        flow = self._flow(scopes)
        auth_url, _ = flow.authorization_url(
            access_type='offline',
            prompt='consent',
        )
        return auth_url

    def exchange_code(self, code: str) -> TokenRecord:
        """Trade an authorization code for tokens, persist them and make them current."""
        flow = self._flow()
        try:
            token = flow.fetch_token(code=code)
        except Exception as e:
            raise AuthorizationError(f"Failed to exchange authorization code: {e}") from e

        creds = flow.credentials
        record = TokenRecord(
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            expiry=creds.expiry,
            token_type=token.get('token_type') or 'Bearer',
            scopes=_scope_list(token.get('scope')) or list(self.scopes),
        )

        with self._lock:
            self._replace_token(record)
        logger.info("Authorization code exchanged; client is authorized")
        return record

    def credentials(self) -> Credentials:
        """google-auth credentials for the current token, refreshed first if expired."""
        with self._lock:
            if self._secrets is None or self._token is None or not self._token.access_token:
                raise UpstreamError("Not authorized. Please complete the OAuth 2.0 flow.")
            creds = self._build_credentials(self._secrets, self._token)
            if creds.expired and self._token.refresh_token:
                # google-auth would refresh on its own and drop the new token
                self._refresh_locked(creds)
                creds = self._build_credentials(self._secrets, self._token)
            return creds

    def refresh(self) -> TokenRecord:
        """Mint a new access token from the refresh token and persist it."""
        with self._lock:
            if self._secrets is None or self._token is None:
                raise AuthorizationError("Not authorized. Please complete the OAuth 2.0 flow.")
            if not self._token.refresh_token:
                raise AuthorizationError("Access token expired and no refresh token is stored. Re-authorize the app.")
            return self._refresh_locked(self._build_credentials(self._secrets, self._token))

    def _refresh_locked(self, creds: Credentials) -> TokenRecord:
        try:
            creds.refresh(Request())
        except GoogleAuthError as e:
            raise AuthorizationError(f"Could not refresh token: {e}. Re-authorize the app.") from e

        record = TokenRecord(
            access_token=creds.token,
            refresh_token=creds.refresh_token or self._token.refresh_token,
            expiry=creds.expiry,
            token_type=self._token.token_type,
            scopes=self._token.scopes,
        )
        self._replace_token(record)
        logger.info("Access token refreshed")
        return record

    def _replace_token(self, record: TokenRecord) -> None:
        """Write `record` to disk, then make it current. Caller holds the lock."""
        try:
            self.store.save(record)
        except OSError as e:
            raise AuthorizationError(f"Could not save token to {self.store.token_path}: {e}") from e
        self._token = record

    def _flow(self, scopes: Optional[Sequence[str]] = None) -> Flow:
        with self._lock:
            secrets = self._secrets
        if secrets is None:
            raise ConfigurationError("OAuth client is not configured. Check credentials.json.")

        return Flow.from_client_config(
            secrets.to_client_config(),
            scopes=list(scopes or self.scopes),
            redirect_uri=secrets.redirect_uri,
            # consent URL and code exchange use separate Flow objects
            autogenerate_code_verifier=False,
        )

    def _build_credentials(self, secrets: ClientSecrets, token: TokenRecord) -> Credentials:
        expiry = token.expiry
        if expiry is not None and expiry.tzinfo is not None:
            expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)
        return Credentials(
            token=token.access_token,
            refresh_token=token.refresh_token,
            token_uri=secrets.token_uri,
            client_id=secrets.client_id,
            client_secret=secrets.client_secret,
            scopes=token.scopes or self.scopes,
            expiry=expiry,
        )


def _scope_list(scope) -> List[str]:
    if isinstance(scope, str):
        return scope.split()
    if isinstance(scope, (list, tuple)):
        return list(scope)
    return []
