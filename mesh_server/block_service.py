"""
Mesh Server - Block API Service.

============================================================
LIVE MAPPING
============================================================
- /block: eth_getBlockByNumber(hex|"latest", true) or
  eth_getBlockByHash(hash, true). Every transaction with a
  non-zero value and a recipient becomes two Transfer operations:
  -value on `from`, +value on `to`.
- /block/transaction: eth_getTransactionByHash plus
  eth_getTransactionReceipt. Adds a Fee operation of
  -(gasUsed * effectiveGasPrice) on `from`. Receipt status 0x0
  marks the transfer operations FAILURE.

Contract creations (no `to`) produce no transfer operations.

============================================================
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from chain_connector.clients.eth_rpc import EthRPCClient, hex_to_int
from chain_connector.types import (
    AccountRef,
    Amount,
    Operation,
    OperationStatus,
    OperationType,
    seconds_to_millis,
)

from . import mock_data
from .base_service import LiveBackedService, partial_block, required_mapping
from .errors import invalid_request


logger = logging.getLogger(__name__)


# ============================================================
# OPERATION MAPPING
# ============================================================

def transfer_operations(
    tx: Mapping[str, Any],
    status: OperationStatus = OperationStatus.SUCCESS,
    start_index: int = 0,
) -> List[Operation]:
    """Map an RPC transaction's value transfer to debit/credit operations."""
    value = hex_to_int(tx.get("value") or "0x0")
    sender = tx.get("from")
    recipient = tx.get("to")
    if value == 0 or not sender or not recipient:
        return []
    return [
        Operation(
            index=start_index,
            type=OperationType.TRANSFER,
            status=status,
            account=AccountRef(address=sender),
            amount=Amount(value=str(-value), currency=mock_data.ETH),
        ),
        Operation(
            index=start_index + 1,
            type=OperationType.TRANSFER,
            status=status,
            account=AccountRef(address=recipient),
            amount=Amount(value=str(value), currency=mock_data.ETH),
        ),
    ]


def fee_operation(
    tx: Mapping[str, Any],
    receipt: Mapping[str, Any],
    index: int,
) -> Optional[Operation]:
    """Fee paid by the sender; charged regardless of execution status."""
    gas_price = receipt.get("effectiveGasPrice") or tx.get("gasPrice")
    if not receipt.get("gasUsed") or not gas_price or not tx.get("from"):
        return None
    fee = hex_to_int(receipt["gasUsed"]) * hex_to_int(gas_price)
    if fee == 0:
        return None
    return Operation(
        index=index,
        type=OperationType.FEE,
        status=OperationStatus.SUCCESS,
        account=AccountRef(address=tx["from"]),
        amount=Amount(value=str(-fee), currency=mock_data.ETH),
    )


# ============================================================
# SERVICE
# ============================================================

class BlockAPIService(LiveBackedService):
    """Block API."""

    async def block(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        identifier = partial_block(request)

        async def live(rpc: EthRPCClient) -> Dict[str, Any]:
            if identifier.get("hash"):
                raw = await rpc.get_block_by_hash(identifier["hash"], True)
            else:
                raw = await rpc.get_block_by_number(identifier.get("index", "latest"), True)
            if not raw:
                raise ValueError(f"block not found: {identifier or 'latest'}")
            return {"block": self._map_block(raw)}

        return await self._live_or_mock(
            "block",
            live,
            lambda: mock_data.block(identifier.get("index"), identifier.get("hash")),
        )

    def _map_block(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        number = hex_to_int(raw["number"])
        block_identifier = {"index": number, "hash": raw["hash"]}
        if number == 0:
            parent_identifier = dict(block_identifier)
        else:
            parent_identifier = {"index": number - 1, "hash": raw["parentHash"]}

        transactions = []
        for tx in raw.get("transactions") or []:
            # Hash-only entries carry no value information.
            if not isinstance(tx, Mapping):
                continue
            transactions.append(
                {
                    "transaction_identifier": {"hash": tx["hash"]},
                    "operations": [op.to_dict() for op in transfer_operations(tx)],
                }
            )

        return {
            "block_identifier": block_identifier,
            "parent_block_identifier": parent_identifier,
            "timestamp": seconds_to_millis(hex_to_int(raw["timestamp"])),
            "transactions": transactions,
        }

    async def block_transaction(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        required_mapping(request, "block_identifier")
        tx_identifier = required_mapping(request, "transaction_identifier")
        tx_hash = tx_identifier.get("hash")
        if not isinstance(tx_hash, str) or not tx_hash:
            raise invalid_request("Transaction hash is required")

        async def live(rpc: EthRPCClient) -> Dict[str, Any]:
            tx = await rpc.get_transaction_by_hash(tx_hash)
            if not tx:
                raise ValueError(f"transaction not found: {tx_hash}")
            receipt = await rpc.get_transaction_receipt(tx_hash) or {}
            return {"transaction": self._map_transaction(tx, receipt)}

        return await self._live_or_mock(
            "block_transaction",
            live,
            lambda: mock_data.block_transaction(tx_hash),
        )

    def _map_transaction(self, tx: Mapping[str, Any], receipt: Mapping[str, Any]) -> Dict[str, Any]:
        status = OperationStatus.SUCCESS
        if receipt.get("status") == "0x0":
            status = OperationStatus.FAILURE

        operations = transfer_operations(tx, status)
        fee = fee_operation(tx, receipt, len(operations))
        if fee is not None:
            operations.append(fee)

        metadata = {}
        for source, key in (
            (receipt, "gasUsed"),
            (receipt, "effectiveGasPrice"),
            (tx, "gasPrice"),
            (tx, "gas"),
            (tx, "nonce"),
            (tx, "blockNumber"),
        ):
            if source.get(key):
                metadata[key] = str(hex_to_int(source[key]))

        return {
            "transaction_identifier": {"hash": tx["hash"]},
            "operations": [op.to_dict() for op in operations],
            "metadata": metadata,
        }
