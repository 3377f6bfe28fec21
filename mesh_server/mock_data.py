"""
Mesh Server - Canned Responses.

Fixed data served in mock mode and as the live-mode fallback.
"""

import hashlib
from typing import Any, Dict, List, Optional

from chain_connector.types import AccountRef, Amount, Currency, Operation, OperationStatus, OperationType


MOCK_BLOCK_INDEX = 1000000
MOCK_BLOCK_HASH = "0x1234567890abcdef1234567890abcdef1234567890abcdef1234567890abcdef"
MOCK_PARENT_HASH = "0xabcdef1234567890abcdef1234567890abcdef1234567890abcdef1234567890"
MOCK_GENESIS_HASH = "0x" + "0" * 64
MOCK_TIMESTAMP_MS = 1640995200000

MOCK_TX_HASH = "0xtx1234567890abcdef1234567890abcdef1234567890abcdef1234567890abcdef"
MOCK_OTHER_TX_HASH = "0xtxabcdef1234567890abcdef1234567890abcdef1234567890abcdef1234567890"

MOCK_SENDER = "0x1234567890abcdef1234567890abcdef1234567890"
MOCK_RECIPIENT = "0xabcdef1234567890abcdef1234567890abcdef1234"

ONE_ETH_WEI = "1000000000000000000"
MOCK_FEE_WEI = "21000000000000000"

ETH = Currency(symbol="ETH", decimals=18)
USDC = Currency(symbol="USDC", decimals=6)
USDT = Currency(symbol="USDT", decimals=18)

ACCOUNT_METADATA = {"sequence_number": "42", "account_type": "contract"}


def block_identifier(index: int = MOCK_BLOCK_INDEX, block_hash: str = MOCK_BLOCK_HASH) -> Dict[str, Any]:
    return {"index": index, "hash": block_hash}


def _op(index: int, op_type: OperationType, address: str, value: str) -> Dict[str, Any]:
    return Operation(
        index=index,
        type=op_type,
        status=OperationStatus.SUCCESS,
        account=AccountRef(address=address),
        amount=Amount(value=value, currency=ETH),
    ).to_dict()


def _transfer_ops() -> List[Dict[str, Any]]:
    return [
        _op(0, OperationType.TRANSFER, MOCK_SENDER, ONE_ETH_WEI),
        _op(1, OperationType.TRANSFER, MOCK_RECIPIENT, "-" + ONE_ETH_WEI),
    ]


# ============================================================
# NETWORK
# ============================================================

def network_status() -> Dict[str, Any]:
    current = block_identifier()
    genesis = block_identifier(0, MOCK_GENESIS_HASH)
    return {
        "current_block_identifier": current,
        "current_block_timestamp": MOCK_TIMESTAMP_MS,
        "genesis_block_identifier": genesis,
        "oldest_block_identifier": genesis,
        "sync_status": {
            "current_index": MOCK_BLOCK_INDEX,
            "target_index": MOCK_BLOCK_INDEX,
            "stage": "synced",
            "synced": True,
        },
        "peers": [
            {"peer_id": "peer1", "metadata": {"address": "127.0.0.1:8080"}},
            {"peer_id": "peer2", "metadata": {"address": "127.0.0.1:8081"}},
        ],
    }


# ============================================================
# BLOCK
# ============================================================

def block(index: Optional[int] = None, block_hash: Optional[str] = None) -> Dict[str, Any]:
    index = MOCK_BLOCK_INDEX if index is None else index
    block_hash = block_hash or MOCK_BLOCK_HASH
    return {
        "block": {
            "block_identifier": block_identifier(index, block_hash),
            "parent_block_identifier": block_identifier(max(index - 1, 0), MOCK_PARENT_HASH),
            "timestamp": MOCK_TIMESTAMP_MS,
            "transactions": [
                {
                    "transaction_identifier": {"hash": MOCK_TX_HASH},
                    "operations": _transfer_ops(),
                }
            ],
            "metadata": {
                "gas_used": "21000",
                "gas_limit": "21000",
                "base_fee_per_gas": "20000000000",
            },
        },
        "other_transactions": [{"hash": MOCK_OTHER_TX_HASH}],
    }


def block_transaction(tx_hash: str) -> Dict[str, Any]:
    operations = _transfer_ops()
    operations.append(_op(2, OperationType.FEE, MOCK_SENDER, "-" + MOCK_FEE_WEI))
    return {
        "transaction": {
            "transaction_identifier": {"hash": tx_hash},
            "operations": operations,
            "metadata": {
                "gas_used": "21000",
                "gas_price": "20000000000",
                "gas_limit": "21000",
                "nonce": "42",
            },
        }
    }


# ============================================================
# ACCOUNT
# ============================================================

def account_balance() -> Dict[str, Any]:
    return {
        "block_identifier": block_identifier(),
        "balances": [
            Amount(value="5000000000000000000", currency=ETH).to_dict(),
            Amount(value="100000000", currency=USDC).to_dict(),
            Amount(value="1000000000000000000000", currency=USDT).to_dict(),
        ],
        "metadata": dict(ACCOUNT_METADATA),
    }


def account_coins() -> Dict[str, Any]:
    return {
        "block_identifier": block_identifier(),
        "coins": [
            {
                "coin_identifier": {"identifier": f"{MOCK_BLOCK_HASH}:0"},
                "amount": Amount(value="5000000000000000000", currency=ETH).to_dict(),
            },
            {
                "coin_identifier": {"identifier": f"{MOCK_PARENT_HASH}:0"},
                "amount": Amount(value="100000000", currency=USDC).to_dict(),
            },
        ],
        "metadata": dict(ACCOUNT_METADATA),
    }


# ============================================================
# CONSTRUCTION
# ============================================================

def submitted_hash(signed_tx: str) -> str:
    """Deterministic mock hash: 0x + sha256(signed tx)."""
    return "0x" + hashlib.sha256(signed_tx.encode("utf-8")).hexdigest()
