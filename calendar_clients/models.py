"""
Data models for OAuth configuration, tokens and Calendar entities.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError

GOOGLE_AUTH_URI = 'https://accounts.google.com/o/oauth2/auth'
GOOGLE_TOKEN_URI = 'https://oauth2.googleapis.com/token'


@dataclass
class ClientSecrets:
    client_id: str
    client_secret: str
    redirect_uri: str
    auth_uri: str = GOOGLE_AUTH_URI
    token_uri: str = GOOGLE_TOKEN_URI

    @classmethod
    def from_dict(cls, data: Any) -> 'ClientSecrets':
        """Validate the `web` section of a Google client secret file."""
        web = data.get('web') if isinstance(data, dict) else None
        if not isinstance(web, dict):
            raise ConfigurationError(
                "Invalid credentials.json structure. Missing 'web' OAuth client section."
            )

        missing = [name for name in ('client_id', 'client_secret') if not _non_empty_str(web.get(name))]
        redirect_uris = web.get('redirect_uris')
        if not isinstance(redirect_uris, list) or not redirect_uris or not _non_empty_str(redirect_uris[0]):
            missing.append('redirect_uris')
        if missing:
            raise ConfigurationError(
                f"Invalid credentials.json structure. Missing required web OAuth fields: {', '.join(missing)}"
            )

        return cls(
            client_id=web['client_id'],
            client_secret=web['client_secret'],
            redirect_uri=redirect_uris[0],
            auth_uri=web.get('auth_uri') or GOOGLE_AUTH_URI,
            token_uri=web.get('token_uri') or GOOGLE_TOKEN_URI,
        )

    def to_client_config(self) -> Dict[str, Any]:
        """Client config in the shape google_auth_oauthlib expects."""
        return {
            'web': {
                'client_id': self.client_id,
                'client_secret': self.client_secret,
                'redirect_uris': [self.redirect_uri],
                'auth_uri': self.auth_uri,
                'token_uri': self.token_uri,
            }
        }


@dataclass
class TokenRecord:
    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None
    token_type: str = 'Bearer'
    scopes: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> 'TokenRecord':
        if not isinstance(data, dict) or not _non_empty_str(data.get('access_token')):
            raise ValueError("token record has no access_token")

        expiry = None
        expiry_date = data.get('expiry_date')
        if expiry_date is not None:
            if isinstance(expiry_date, bool) or not isinstance(expiry_date, (int, float)):
                raise ValueError("expiry_date must be milliseconds since the epoch")
            expiry = datetime.fromtimestamp(expiry_date / 1000, tz=timezone.utc)

        scope = data.get('scope') or ''
        return cls(
            access_token=data['access_token'],
            refresh_token=data.get('refresh_token') or None,
            expiry=expiry,
            token_type=data.get('token_type') or 'Bearer',
            scopes=scope.split() if isinstance(scope, str) else [],
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'access_token': self.access_token,
            'token_type': self.token_type,
            'scope': ' '.join(self.scopes),
        }
        if self.refresh_token:
            data['refresh_token'] = self.refresh_token
        if self.expiry is not None:
            expiry = self.expiry
            if expiry.tzinfo is None:
                # google-auth keeps naive UTC expiries
                expiry = expiry.replace(tzinfo=timezone.utc)
            data['expiry_date'] = int(expiry.timestamp() * 1000)
        return data


@dataclass
class MeetingSummary:
    title: str
    start: str

    def display(self) -> str:
        return f"{self.title} at {self.start}"


@dataclass
class CreatedEvent:
    id: str
    html_link: str
    summary: str
    start: str
    end: str


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())
