"""Tests for command configuration."""

import uuid

import pytest
from pydantic import ValidationError as PydanticValidationError

from tunnelctl.config import (
    CleanupOptions,
    FileConfig,
    ListOptions,
    RunOptions,
    TransportProtocol,
    TunnelCtlSettings,
    load_file_config,
)
from tunnelctl.exceptions import ValidationError


class TestTunnelCtlSettings:
    def test_defaults(self):
        settings = TunnelCtlSettings()

        assert settings.credentials_dir == "~/.tunnelctl"
        assert settings.log_level == "INFO"
        assert settings.config_file is None

    def test_log_level_normalized(self):
        assert TunnelCtlSettings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(PydanticValidationError):
            TunnelCtlSettings(log_level="loud")

    def test_frozen(self):
        settings = TunnelCtlSettings()

        with pytest.raises(PydanticValidationError):
            settings.state_file = "/tmp/other.json"  # type: ignore[misc]

    def test_unknown_fields_rejected(self):
        with pytest.raises(PydanticValidationError):
            TunnelCtlSettings(unknown=True)  # type: ignore[call-arg]


class TestListOptions:
    def test_defaults(self):
        options = ListOptions()

        assert options.sort_by == "name"
        assert options.invert_sort is False
        assert options.tunnel_id() is None

    def test_tunnel_id_parsed(self):
        tunnel_id = uuid.uuid4()

        assert ListOptions(id=str(tunnel_id)).tunnel_id() == tunnel_id

    def test_invalid_tunnel_id(self):
        with pytest.raises(ValidationError, match="abc is not a valid tunnel ID"):
            ListOptions(id="abc").tunnel_id()


class TestRunOptions:
    def test_protocol_values(self):
        assert RunOptions().protocol == TransportProtocol.AUTO
        assert RunOptions(protocol="quic").protocol == TransportProtocol.QUIC

    def test_invalid_protocol(self):
        with pytest.raises(PydanticValidationError):
            RunOptions(protocol="carrier-pigeon")


class TestCleanupOptions:
    def test_connector_id_must_be_uuid(self):
        with pytest.raises(PydanticValidationError):
            CleanupOptions(connector_id="not-a-uuid")


class TestLoadFileConfig:
    def test_no_path(self):
        assert load_file_config(None) == FileConfig()

    def test_missing_file(self, tmp_path):
        assert load_file_config(str(tmp_path / "nope.yml")) == FileConfig()

    def test_reads_tunnel_and_credentials(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(
            "tunnel: my-tunnel\n"
            "credentials-file: /etc/tunnelctl/creds.json\n"
            "ingress: []\n"
        )

        config = load_file_config(str(path))

        assert config.tunnel == "my-tunnel"
        assert config.credentials_file == "/etc/tunnelctl/creds.json"

    def test_numeric_tunnel_kept_as_string(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("tunnel: 1234\n")

        assert load_file_config(str(path)).tunnel == "1234"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("tunnel: [unclosed\n")

        with pytest.raises(ValidationError, match="not valid YAML"):
            load_file_config(str(path))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValidationError, match="must contain a mapping"):
            load_file_config(str(path))

    def test_wrongly_typed_value(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("credentials-file: 123\n")

        with pytest.raises(ValidationError, match="has invalid settings"):
            load_file_config(str(path))
