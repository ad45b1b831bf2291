"""
Tests for reading client secrets and persisting the token file.
"""

import json
import os

import pytest

from calendar_clients.auth_client import AuthorizationClient
from calendar_clients.credential_store import CredentialStore
from calendar_clients.errors import ConfigurationError
from calendar_clients.models import TokenRecord


class TestLoad:
    def test_missing_credentials_file(self, tmp_path):
        store = CredentialStore(str(tmp_path / "credentials.json"), str(tmp_path / "token.json"))
        with pytest.raises(ConfigurationError, match="not found"):
            store.load()

    def test_unparsable_credentials_file(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text("{not json")
        store = CredentialStore(str(path), str(tmp_path / "token.json"))
        with pytest.raises(ConfigurationError):
            store.load()

    @pytest.mark.parametrize("field", ["client_id", "client_secret", "redirect_uris"])
    def test_missing_required_field(self, tmp_path, client_secrets, field):
        web = dict(client_secrets["web"])
        del web[field]
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"web": web}))
        store = CredentialStore(str(path), str(tmp_path / "token.json"))
        with pytest.raises(ConfigurationError, match=field):
            store.load()

    def test_installed_client_is_rejected(self, tmp_path, client_secrets):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"installed": client_secrets["web"]}))
        store = CredentialStore(str(path), str(tmp_path / "token.json"))
        with pytest.raises(ConfigurationError, match="web"):
            store.load()

    def test_first_redirect_uri_is_used(self, tmp_path, client_secrets):
        web = dict(client_secrets["web"])
        web["redirect_uris"] = ["http://localhost:3001/oauth2callback", "http://example.com/cb"]
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"web": web}))
        secrets, _ = CredentialStore(str(path), str(tmp_path / "token.json")).load()
        assert secrets.redirect_uri == "http://localhost:3001/oauth2callback"

    def test_no_token_file_is_not_an_error(self, store, client_secrets):
        secrets, token = store.load()
        assert secrets.client_id == client_secrets["web"]["client_id"]
        assert token is None

    def test_unreadable_token_file_means_unauthorized(self, store, token_path):
        token_path.write_text("garbage")
        _, token = store.load()
        assert token is None

    def test_token_without_access_token_means_unauthorized(self, store, token_path):
        token_path.write_text(json.dumps({"refresh_token": "1//x"}))
        _, token = store.load()
        assert token is None

    def test_reads_token_written_by_node_client(self, store, token_path):
        token_path.write_text(json.dumps({
            "access_token": "ya29.node",
            "refresh_token": "1//node",
            "scope": "https://www.googleapis.com/auth/calendar.events",
            "token_type": "Bearer",
            "expiry_date": 1893499200000,
        }))
        _, token = store.load()
        assert token.access_token == "ya29.node"
        assert token.refresh_token == "1//node"
        assert token.scopes == ["https://www.googleapis.com/auth/calendar.events"]
        assert token.expiry.year == 2030


class TestSave:
    def test_round_trip_restores_authorized_state(self, store, token_record):
        store.save(token_record)

        _, loaded = store.load()
        assert loaded == token_record

        client = AuthorizationClient(store)
        client.load()
        assert client.is_authorized()
        creds = client.credentials()
        assert creds.token == token_record.access_token
        assert creds.refresh_token == token_record.refresh_token

    def test_save_is_idempotent(self, store, token_record, token_path):
        store.save(token_record)
        first = token_path.read_bytes()
        store.save(token_record)
        assert token_path.read_bytes() == first
        assert json.loads(first)["access_token"] == token_record.access_token

    def test_save_replaces_whole_file(self, store, token_record, token_path):
        store.save(token_record)
        store.save(TokenRecord(access_token="ya29.second"))

        data = json.loads(token_path.read_text())
        assert data["access_token"] == "ya29.second"
        assert "refresh_token" not in data
        assert "expiry_date" not in data

    def test_no_temporary_files_left_behind(self, store, token_record, tmp_path):
        store.save(token_record)
        assert sorted(os.listdir(tmp_path)) == ["credentials.json", "token.json"]
