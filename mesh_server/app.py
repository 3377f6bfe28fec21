"""
Mesh Server - HTTP Application.

============================================================
PURPOSE
============================================================
Rosetta-conformant HTTP surface over the API services.

ROUTES:
    POST /network/list
    POST /network/options
    POST /network/status
    POST /account/balance
    POST /account/coins
    POST /block
    POST /block/transaction
    POST /construction/submit
    GET  /health

ERRORS:
- Every Rosetta error is HTTP 500 with {code, message, retriable}
- Malformed body or unknown network_identifier: code 1
  "Invalid request"

============================================================
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from aiohttp import web

from chain_connector.clients.eth_rpc import EthRPCClient

from .account_service import AccountAPIService
from .block_service import BlockAPIService
from .config import MeshServerConfig
from .construction_service import ConstructionAPIService
from .errors import RosettaError, invalid_request
from .network_service import NetworkAPIService


logger = logging.getLogger(__name__)


ServiceMethod = Callable[[Mapping[str, Any]], Awaitable[Dict[str, Any]]]


def json_response(data: Any, status: int = 200) -> web.Response:
    """Create JSON response."""
    return web.Response(
        text=json.dumps(data),
        status=status,
        content_type="application/json",
    )


# ============================================================
# API HANDLERS
# ============================================================

class MeshAPI:
    """Rosetta request handling: parse, check network, dispatch."""

    def __init__(
        self,
        config: MeshServerConfig,
        rpc: Optional[EthRPCClient] = None,
    ) -> None:
        self._config = config
        self._rpc = rpc
        strict = config.strict_mode

        self.network = NetworkAPIService(config.network_identifier, rpc, strict)
        self.block = BlockAPIService(rpc, strict)
        self.account = AccountAPIService(rpc, strict)
        self.construction = ConstructionAPIService(rpc, strict)

    @property
    def mode(self) -> str:
        return "live" if self._rpc is not None else "mock"

    async def _read_body(self, request: web.Request) -> Dict[str, Any]:
        text = await request.text()
        if not text.strip():
            return {}
        try:
            body = json.loads(text)
        except ValueError as e:
            raise invalid_request(f"malformed JSON body: {e}") from e
        if not isinstance(body, dict):
            raise invalid_request("request body must be a JSON object")
        return body

    def _check_network(self, body: Mapping[str, Any]) -> None:
        identifier = body.get("network_identifier")
        if not isinstance(identifier, Mapping):
            raise invalid_request("network_identifier is required")
        served = self._config.network_identifier
        if (
            identifier.get("blockchain") != served["blockchain"]
            or identifier.get("network") != served["network"]
        ):
            raise invalid_request(
                f"network {identifier.get('blockchain')}/{identifier.get('network')} is not supported"
            )

    def endpoint(self, method: ServiceMethod, check_network: bool = True):
        """Wrap a service method as an aiohttp handler."""

        async def handler(request: web.Request) -> web.Response:
            try:
                body = await self._read_body(request)
                if check_network:
                    self._check_network(body)
                result = await method(body)
            except RosettaError as e:
                logger.info(f"{request.path} -> Rosetta error {e.code}: {e.details or e.message}")
                return json_response(e.to_dict(), status=500)
            return json_response(result)

        return handler

    async def health(self, request: web.Request) -> web.Response:
        """GET /health"""
        return json_response({
            "status": "healthy",
            "service": "mesh-server",
            "mode": self.mode,
            "network": self._config.network_identifier,
        })


# ============================================================
# APPLICATION FACTORY
# ============================================================

def create_mesh_app(
    config: Optional[MeshServerConfig] = None,
    rpc: Optional[EthRPCClient] = None,
) -> web.Application:
    """
    Create the Rosetta simulation application.

    Args:
        config: Server config (default: from environment)
        rpc: RPC client override; built from config.rpc_url when
            live mode is enabled and none is given

    Returns:
        aiohttp Application with all routes configured
    """
    if config is None:
        config = MeshServerConfig.from_env()

    owns_rpc = False
    if rpc is None and config.live_enabled:
        rpc = EthRPCClient(config.rpc_url, timeout_seconds=config.rpc_timeout_seconds)
        owns_rpc = True
    elif not config.live_mode:
        rpc = None

    api = MeshAPI(config, rpc)
    logger.info(f"Mesh server configured: {config.describe()}")

    app = web.Application()
    app.router.add_post("/network/list", api.endpoint(api.network.network_list, check_network=False))
    app.router.add_post("/network/options", api.endpoint(api.network.network_options))
    app.router.add_post("/network/status", api.endpoint(api.network.network_status))
    app.router.add_post("/account/balance", api.endpoint(api.account.account_balance))
    app.router.add_post("/account/coins", api.endpoint(api.account.account_coins))
    app.router.add_post("/block", api.endpoint(api.block.block))
    app.router.add_post("/block/transaction", api.endpoint(api.block.block_transaction))
    app.router.add_post("/construction/submit", api.endpoint(api.construction.construction_submit))
    app.router.add_get("/health", api.health)

    if owns_rpc:
        async def close_rpc(app: web.Application) -> None:
            await rpc.close()

        app.on_cleanup.append(close_rpc)

    return app
