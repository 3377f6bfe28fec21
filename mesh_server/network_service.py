"""
Mesh Server - Network API Service.

/network/list, /network/options and /network/status.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from chain_connector.clients.eth_rpc import EthRPCClient, hex_to_int
from chain_connector.types import OperationStatus, OperationType, seconds_to_millis

from . import mock_data
from .base_service import LiveBackedService
from .errors import allowed_errors


logger = logging.getLogger(__name__)


ROSETTA_VERSION = "1.5.1"
NODE_VERSION = "1.0.0"


class NetworkAPIService(LiveBackedService):
    """Network API: served identifier, capabilities and chain head."""

    def __init__(
        self,
        network_identifier: Dict[str, str],
        rpc: Optional[EthRPCClient] = None,
        strict: bool = False,
    ) -> None:
        super().__init__(rpc, strict)
        self._network_identifier = dict(network_identifier)

    async def network_list(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        return {"network_identifiers": [dict(self._network_identifier)]}

    async def network_options(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "version": {
                "rosetta_version": ROSETTA_VERSION,
                "node_version": NODE_VERSION,
            },
            "allow": {
                "operation_statuses": [
                    {"status": status.value, "successful": status.successful}
                    for status in OperationStatus
                ],
                "operation_types": [op_type.value for op_type in OperationType],
                "errors": allowed_errors(),
                "historical_balance_lookup": True,
                "call_methods": [],
                "balance_exemptions": [],
                "mempool_coins": False,
            },
        }

    async def network_status(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._live_or_mock("network_status", self._live_status, mock_data.network_status)

    async def _live_status(self, rpc: EthRPCClient) -> Dict[str, Any]:
        current = await rpc.block_number()
        head = await rpc.get_block_by_number(current, False)
        genesis = await rpc.get_block_by_number(0, False)
        if not head or not genesis:
            raise ValueError(f"block {current} or genesis not available")

        current_identifier = {"index": current, "hash": head["hash"]}
        genesis_identifier = {"index": 0, "hash": genesis["hash"]}
        return {
            "current_block_identifier": current_identifier,
            "current_block_timestamp": seconds_to_millis(hex_to_int(head["timestamp"])),
            "genesis_block_identifier": genesis_identifier,
            "oldest_block_identifier": genesis_identifier,
            "sync_status": {
                "current_index": current,
                "target_index": current,
                "stage": "synced",
                "synced": True,
            },
            "peers": [],
        }
