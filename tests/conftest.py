"""
Pytest configuration and fixtures for the calendar MCP server

Provides client secret / token files in a temporary directory and
authorization clients in both states.
"""

import copy
import json
from datetime import datetime, timezone

import pytest

from calendar_clients.auth_client import SCOPES, AuthorizationClient
from calendar_clients.credential_store import CredentialStore
from calendar_clients.models import TokenRecord

CLIENT_SECRETS = {
    "web": {
        "client_id": "test-client-id.apps.googleusercontent.com",
        "project_id": "calendar-mcp-test",
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "client_secret": "test-client-secret",
        "redirect_uris": ["http://localhost:3001/oauth2callback"],
    }
}


@pytest.fixture
def client_secrets():
    return copy.deepcopy(CLIENT_SECRETS)


@pytest.fixture
def credentials_file(tmp_path, client_secrets):
    """Write a valid web client secret file"""
    path = tmp_path / "credentials.json"
    path.write_text(json.dumps(client_secrets))
    return path


@pytest.fixture
def token_path(tmp_path):
    return tmp_path / "token.json"


@pytest.fixture
def store(credentials_file, token_path):
    return CredentialStore(str(credentials_file), str(token_path))


@pytest.fixture
def token_record():
    return TokenRecord(
        access_token="ya29.test-access-token",
        refresh_token="1//test-refresh-token",
        expiry=datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc),
        token_type="Bearer",
        scopes=list(SCOPES),
    )


@pytest.fixture
def auth_client(store):
    """Configured but not yet authorized"""
    client = AuthorizationClient(store)
    client.load()
    return client


@pytest.fixture
def authorized_auth_client(store, token_record):
    store.save(token_record)
    client = AuthorizationClient(store)
    client.load()
    return client
