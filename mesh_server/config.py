"""
Mesh Server - Configuration.

============================================================
ENVIRONMENT
============================================================
PORT                  listen port (default 8080)
MESH_BLOCKCHAIN       served blockchain name (default "Ethereum")
MESH_NETWORK          served network name (default "Sepolia")
ETH_RPC_URL           Ethereum JSON-RPC endpoint
INFURA_RPC_URL        alternative name for ETH_RPC_URL
MESH_LIVE_MODE        "false" / "0" / "no" disables live mode
MESH_STRICT_MODE      "true" / "1" / "yes" surfaces live errors
                      instead of serving mock data
RPC_TIMEOUT_SECONDS   JSON-RPC timeout (default 20)

Live mode engages iff an RPC URL is set and MESH_LIVE_MODE is
not disabled.

============================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from chain_connector.clients.eth_rpc import DEFAULT_RPC_TIMEOUT
from chain_connector.logging_utils import mask_url


logger = logging.getLogger(__name__)


_FALSE_VALUES = {"false", "0", "no", "off"}
_TRUE_VALUES = {"true", "1", "yes", "on"}


def _env_flag(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    value = value.strip().lower()
    if value in _FALSE_VALUES:
        return False
    if value in _TRUE_VALUES:
        return True
    return default


@dataclass
class MeshServerConfig:
    """Runtime configuration of the Rosetta simulation server."""

    host: str = "0.0.0.0"
    port: int = 8080
    blockchain: str = "Ethereum"
    network: str = "Sepolia"
    rpc_url: Optional[str] = None
    live_mode: bool = True
    strict_mode: bool = False
    rpc_timeout_seconds: float = DEFAULT_RPC_TIMEOUT

    @property
    def live_enabled(self) -> bool:
        return bool(self.rpc_url) and self.live_mode

    @property
    def network_identifier(self) -> Dict[str, str]:
        return {"blockchain": self.blockchain, "network": self.network}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MeshServerConfig":
        """
        Build config from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)
        """
        env = os.environ if environ is None else environ

        port = cls.port
        if env.get("PORT"):
            try:
                port = int(env["PORT"])
            except ValueError:
                logger.warning(f"Invalid PORT={env['PORT']!r}, using {cls.port}")

        timeout = cls.rpc_timeout_seconds
        if env.get("RPC_TIMEOUT_SECONDS"):
            try:
                timeout = float(env["RPC_TIMEOUT_SECONDS"])
            except ValueError:
                logger.warning(
                    f"Invalid RPC_TIMEOUT_SECONDS={env['RPC_TIMEOUT_SECONDS']!r}, using {timeout}"
                )

        return cls(
            port=port,
            blockchain=env.get("MESH_BLOCKCHAIN") or cls.blockchain,
            network=env.get("MESH_NETWORK") or cls.network,
            rpc_url=env.get("ETH_RPC_URL") or env.get("INFURA_RPC_URL") or None,
            live_mode=_env_flag(env.get("MESH_LIVE_MODE"), True),
            strict_mode=_env_flag(env.get("MESH_STRICT_MODE"), False),
            rpc_timeout_seconds=timeout,
        )

    def describe(self) -> str:
        mode = "live" if self.live_enabled else "mock"
        rpc = mask_url(self.rpc_url) if self.rpc_url else "-"
        return (
            f"{self.blockchain}/{self.network} mode={mode} strict={self.strict_mode} rpc={rpc}"
        )
