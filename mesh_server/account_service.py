"""
Mesh Server - Account API Service.

/account/balance answers live via eth_getBalance; /account/coins
is mock only (Ethereum is account based, not UTXO).
"""

import logging
from typing import Any, Dict, Mapping

from chain_connector.clients.eth_rpc import EthRPCClient, hex_to_int
from chain_connector.types import Amount

from . import mock_data
from .base_service import LiveBackedService, partial_block, required_mapping
from .errors import invalid_request


logger = logging.getLogger(__name__)


def _account_address(request: Mapping[str, Any]) -> str:
    account = required_mapping(request, "account_identifier")
    address = account.get("address")
    if not isinstance(address, str) or not address:
        raise invalid_request("Account address is required")
    return address


class AccountAPIService(LiveBackedService):
    """Account API."""

    async def account_balance(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        address = _account_address(request)
        identifier = partial_block(request)

        async def live(rpc: EthRPCClient) -> Dict[str, Any]:
            if identifier.get("hash"):
                tag = identifier["hash"]
                block = await rpc.get_block_by_hash(tag, False)
            elif "index" in identifier:
                tag = identifier["index"]
                block = await rpc.get_block_by_number(tag, False)
            else:
                tag = "latest"
                block = await rpc.get_block_by_number(tag, False)
            if not block:
                raise ValueError(f"block not found: {tag}")

            balance = await rpc.get_balance(address, tag)
            return {
                "block_identifier": {
                    "index": hex_to_int(block["number"]),
                    "hash": block["hash"],
                },
                "balances": [Amount(value=str(balance), currency=mock_data.ETH).to_dict()],
                "metadata": {},
            }

        return await self._live_or_mock("account_balance", live, mock_data.account_balance)

    async def account_coins(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        _account_address(request)
        return mock_data.account_coins()
