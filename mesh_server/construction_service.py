"""
Mesh Server - Construction API Service.

Only /construction/submit is served: signing and payload
construction happen outside this server.
"""

import logging
from typing import Any, Dict, Mapping

from chain_connector.clients.eth_rpc import EthRPCClient

from . import mock_data
from .base_service import LiveBackedService
from .errors import invalid_request


logger = logging.getLogger(__name__)


class ConstructionAPIService(LiveBackedService):
    """Construction API."""

    async def construction_submit(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        signed_tx = request.get("signed_transaction")
        if not isinstance(signed_tx, str) or not signed_tx:
            raise invalid_request("signed_transaction is required")

        async def live(rpc: EthRPCClient) -> Dict[str, Any]:
            tx_hash = await rpc.send_raw_transaction(signed_tx)
            if not isinstance(tx_hash, str) or not tx_hash:
                raise ValueError("eth_sendRawTransaction returned no hash")
            logger.info(f"Broadcast transaction {tx_hash}")
            return {"transaction_identifier": {"hash": tx_hash}, "metadata": {}}

        def mock() -> Dict[str, Any]:
            return {
                "transaction_identifier": {"hash": mock_data.submitted_hash(signed_tx)},
                "metadata": {"mock": True},
            }

        return await self._live_or_mock("construction_submit", live, mock)
