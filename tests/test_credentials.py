"""Tests for tunnel credentials files."""

import base64
import json
import os
import stat
import uuid

import pytest

from tunnelctl.credentials import (
    CREDENTIALS_FILE_MODE,
    generate_tunnel_secret,
    read_tunnel_credentials,
    tunnel_file_path,
    write_tunnel_credentials,
)
from tunnelctl.exceptions import CredentialsFileExistsError
from tunnelctl.models import Credentials


@pytest.fixture
def credentials():
    return Credentials(
        account_tag="account-1",
        tunnel_secret=bytes(range(32)),
        tunnel_id=uuid.UUID(int=7),
        tunnel_name="web",
    )


class TestGenerateTunnelSecret:
    def test_length(self):
        assert len(generate_tunnel_secret()) == 32

    def test_random(self):
        assert generate_tunnel_secret() != generate_tunnel_secret()


class TestTunnelFilePath:
    def test_named_after_tunnel_id(self, tmp_path):
        tunnel_id = uuid.UUID(int=7)

        path = tunnel_file_path(tunnel_id, str(tmp_path))

        assert path == str(tmp_path / f"{tunnel_id}.json")

    def test_home_expanded(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))

        path = tunnel_file_path(uuid.UUID(int=7), "~/.tunnelctl")

        assert path.startswith(str(tmp_path))


class TestWriteTunnelCredentials:
    def test_writes_json(self, tmp_path, credentials):
        path = tmp_path / "creds.json"

        write_tunnel_credentials(str(path), credentials)

        data = json.loads(path.read_text())
        assert data == {
            "AccountTag": "account-1",
            "TunnelSecret": base64.b64encode(bytes(range(32))).decode(),
            "TunnelID": str(uuid.UUID(int=7)),
            "TunnelName": "web",
        }

    def test_restrictive_permissions(self, tmp_path, credentials):
        path = tmp_path / "creds.json"

        write_tunnel_credentials(str(path), credentials)

        assert stat.S_IMODE(os.stat(path).st_mode) == CREDENTIALS_FILE_MODE

    def test_refuses_to_overwrite(self, tmp_path, credentials):
        """Test an existing file is reported and left untouched"""
        path = tmp_path / "creds.json"
        path.write_text("original")

        with pytest.raises(CredentialsFileExistsError, match="already exists"):
            write_tunnel_credentials(str(path), credentials)

        assert path.read_text() == "original"

    def test_filesystem_errors_propagate(self, tmp_path, credentials):
        path = tmp_path / "missing-dir" / "creds.json"

        with pytest.raises(FileNotFoundError):
            write_tunnel_credentials(str(path), credentials)

    def test_read_back(self, tmp_path, credentials):
        path = tmp_path / "creds.json"
        write_tunnel_credentials(str(path), credentials)

        assert read_tunnel_credentials(str(path)) == credentials
