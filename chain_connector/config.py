"""
Chain Connector - Configuration.

============================================================
PURPOSE
============================================================
Connector configuration document loading and option parsing.

The document (YAML or JSON) maps connector IDs to free-form
option mappings, e.g.:

    mesh:
      base_url: "http://localhost:8080"
      network: "Sepolia"
    overledger:
      base_url: "https://api.overledger.dev"
      auth_url: "https://auth.overledger.dev/oauth2/token"
      client_id: "..."
      client_secret: "..."

Credentials are taken from the document as-is.

============================================================
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .errors import invalid_config


logger = logging.getLogger(__name__)


ConnectorConfigs = Dict[str, Dict[str, Any]]


class ConfigError(Exception):
    """Configuration document could not be loaded."""


# ============================================================
# TIMEOUTS
# ============================================================

@dataclass(frozen=True)
class TimeoutConfig:
    """Per-call timeouts for remote calls."""

    api_seconds: float = 30.0
    """Rosetta POST / Overledger REST / OAuth token calls."""

    validation_seconds: float = 10.0
    """Health and validation probes."""

    rpc_seconds: float = 20.0
    """Ethereum JSON-RPC calls."""


DEFAULT_TIMEOUTS = TimeoutConfig()


# ============================================================
# PROCESS SETTINGS
# ============================================================

@dataclass
class GatewaySettings:
    """Process-level settings for the gateway entry point."""

    config_path: str = "connectors.yaml"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "GatewaySettings":
        return cls(
            config_path=os.environ.get("CONNECTOR_CONFIG", cls.config_path),
            log_level=os.environ.get("LOG_LEVEL", cls.log_level),
        )


# ============================================================
# DOCUMENT LOADING
# ============================================================

def parse_connector_configs(text: str, fmt: str = "yaml") -> ConnectorConfigs:
    """
    Parse a connector configuration document.

    Args:
        text: Document contents
        fmt: "yaml" or "json"

    Returns:
        Mapping of connector ID to option mapping

    Raises:
        ConfigError: If the document is malformed
    """
    fmt = fmt.lower()
    try:
        if fmt == "json":
            data = json.loads(text) if text.strip() else None
        elif fmt in ("yaml", "yml"):
            data = yaml.safe_load(text)
        else:
            raise ConfigError(f"unsupported config format: {fmt}")
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to parse {fmt} config: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError("connector config must be a mapping of connector ID to options")

    configs: ConnectorConfigs = {}
    for connector_id, options in data.items():
        if not isinstance(connector_id, str) or not connector_id:
            raise ConfigError(f"invalid connector ID in config: {connector_id!r}")
        if options is None:
            options = {}
        if not isinstance(options, Mapping):
            raise ConfigError(f"options for connector '{connector_id}' must be a mapping")
        configs[connector_id] = dict(options)
    return configs


def load_connector_configs(path: Union[str, Path]) -> ConnectorConfigs:
    """
    Load a connector configuration document from disk.

    The format is chosen by extension: .json is JSON, anything else YAML.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e

    fmt = "json" if path.suffix.lower() == ".json" else "yaml"
    configs = parse_connector_configs(text, fmt)
    logger.info(f"Loaded connector config from {path} ({len(configs)} connectors)")
    return configs


# ============================================================
# OPTION HELPERS
# ============================================================

def require_str(config: Mapping[str, Any], key: str, connector_id: str) -> str:
    """Read a required non-empty string option."""
    if key not in config:
        raise invalid_config(connector_id, f"{connector_id}: missing {key} in config")
    value = config[key]
    if not isinstance(value, str):
        raise invalid_config(connector_id, f"{connector_id}: {key} must be a string")
    if not value:
        raise invalid_config(connector_id, f"{connector_id}: {key} must not be empty")
    return value


def optional_str(
    config: Mapping[str, Any],
    key: str,
    connector_id: str,
    default: Optional[str] = None,
) -> Optional[str]:
    value = config.get(key)
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        raise invalid_config(connector_id, f"{connector_id}: {key} must be a string")
    return value


def optional_bool(
    config: Mapping[str, Any],
    key: str,
    connector_id: str,
    default: bool = False,
) -> bool:
    value = config.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise invalid_config(connector_id, f"{connector_id}: {key} must be a boolean")
    return value


def optional_number(
    config: Mapping[str, Any],
    key: str,
    connector_id: str,
    default: Optional[float] = None,
) -> Optional[float]:
    value = config.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise invalid_config(connector_id, f"{connector_id}: {key} must be a positive number")
    return float(value)
