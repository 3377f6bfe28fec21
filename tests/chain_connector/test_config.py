"""
Configuration and Logging Utility Tests.
"""

import pytest

from chain_connector.config import (
    ConfigError,
    GatewaySettings,
    load_connector_configs,
    optional_bool,
    optional_number,
    optional_str,
    parse_connector_configs,
    require_str,
)
from chain_connector.errors import ConnectorError, ErrorKind
from chain_connector.logging_utils import mask_headers, mask_params, mask_url, mask_value


# ============================================================
# DOCUMENT PARSING
# ============================================================

class TestParseConnectorConfigs:
    """Tests for parse_connector_configs / load_connector_configs."""

    def test_yaml_document(self):
        text = (
            "mesh:\n"
            "  base_url: http://localhost:8080\n"
            "  network: Sepolia\n"
            "overledger:\n"
        )
        assert parse_connector_configs(text) == {
            "mesh": {"base_url": "http://localhost:8080", "network": "Sepolia"},
            "overledger": {},
        }

    def test_json_document(self):
        assert parse_connector_configs('{"mesh": {"network": "Sepolia"}}', "json") == {
            "mesh": {"network": "Sepolia"},
        }

    @pytest.mark.parametrize("text,fmt", [("", "yaml"), ("   ", "json")])
    def test_empty_document(self, text, fmt):
        assert parse_connector_configs(text, fmt) == {}

    @pytest.mark.parametrize("text,fmt", [
        ("- a\n- b\n", "yaml"),
        ("mesh: [1, 2]\n", "yaml"),
        ("{not json", "json"),
        ("mesh: {", "yaml"),
        ("a: 1", "toml"),
    ])
    def test_malformed_documents(self, text, fmt):
        with pytest.raises(ConfigError):
            parse_connector_configs(text, fmt)

    def test_load_by_extension(self, tmp_path):
        json_path = tmp_path / "connectors.json"
        json_path.write_text('{"mesh": {"base_url": "http://x"}}')
        yaml_path = tmp_path / "connectors.yml"
        yaml_path.write_text("mesh:\n  base_url: http://y\n")

        assert load_connector_configs(json_path)["mesh"]["base_url"] == "http://x"
        assert load_connector_configs(yaml_path)["mesh"]["base_url"] == "http://y"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="failed to read"):
            load_connector_configs(tmp_path / "absent.yaml")


# ============================================================
# OPTION HELPERS
# ============================================================

class TestOptionHelpers:
    """Tests for typed option accessors."""

    def test_require_str(self):
        assert require_str({"base_url": "http://x"}, "base_url", "mesh") == "http://x"

    @pytest.mark.parametrize("config,fragment", [
        ({}, "missing base_url"),
        ({"base_url": 8080}, "must be a string"),
        ({"base_url": ""}, "must not be empty"),
    ])
    def test_require_str_rejects(self, config, fragment):
        with pytest.raises(ConnectorError) as exc_info:
            require_str(config, "base_url", "mesh")
        assert exc_info.value.kind is ErrorKind.INVALID_CONFIG
        assert fragment in exc_info.value.message
        assert exc_info.value.connector_id == "mesh"

    def test_optional_values(self):
        assert optional_str({}, "network", "mesh", "Sepolia") == "Sepolia"
        assert optional_str({"network": ""}, "network", "mesh") is None
        assert optional_bool({}, "tls_skip_verify", "overledger") is False
        assert optional_bool({"tls_skip_verify": True}, "tls_skip_verify", "overledger") is True
        assert optional_number({"timeout_seconds": 5}, "timeout_seconds", "mesh") == 5.0

    @pytest.mark.parametrize("call", [
        lambda: optional_str({"network": 1}, "network", "mesh"),
        lambda: optional_bool({"tls_skip_verify": "yes"}, "tls_skip_verify", "overledger"),
        lambda: optional_number({"timeout_seconds": 0}, "timeout_seconds", "mesh"),
        lambda: optional_number({"timeout_seconds": True}, "timeout_seconds", "mesh"),
    ])
    def test_optional_rejects(self, call):
        with pytest.raises(ConnectorError) as exc_info:
            call()
        assert exc_info.value.kind is ErrorKind.INVALID_CONFIG


class TestGatewaySettings:
    """Tests for GatewaySettings.from_env()."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CONNECTOR_CONFIG", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        settings = GatewaySettings.from_env()
        assert settings.config_path == "connectors.yaml"
        assert settings.log_level == "INFO"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("CONNECTOR_CONFIG", "/etc/gateway.json")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        settings = GatewaySettings.from_env()
        assert settings.config_path == "/etc/gateway.json"
        assert settings.log_level == "DEBUG"


# ============================================================
# MASKING
# ============================================================

class TestMasking:
    """Credentials never reach log lines in full."""

    def test_mask_value(self):
        assert mask_value("abcdefgh") == "abcd...***"
        assert mask_value("abc") == "***"

    def test_mask_headers(self):
        masked = mask_headers({"Authorization": "Bearer secret-token", "Accept": "application/json"})
        assert masked["Authorization"] == "Bear...***"
        assert masked["Accept"] == "application/json"

    def test_mask_params_nested(self):
        masked = mask_params({"client_secret": "s3cr3t-value", "outer": {"access_token": "tok-12345"}})
        assert "s3cr3t-value" not in str(masked)
        assert "tok-12345" not in str(masked)

    def test_mask_url(self):
        url = "https://sepolia.infura.io/v3/0123456789abcdef0123"
        assert mask_url(url) == "https://sepolia.infura.io/v3/0123...***"
        assert mask_url("http://localhost:8545") == "http://localhost:8545"
