"""
Chain Connector - Rosetta Identifier Conversion.

============================================================
PURPOSE
============================================================
One conversion per Rosetta identifier kind, turning caller input
into the nested wire object.

ACCEPTED SHAPES (closed set):
- network_identifier:     NetworkRef | {blockchain, network}
- account_identifier:     AccountRef | {address, sub_account?, metadata?}
- partial block (/block): None | PartialBlockRef | BlockRef | {index?, hash?}
- full block:             BlockRef | {index?, hash?} with at least one set
- transaction_identifier: TxRef | {hash}

Block index accepts int or an integral JSON number (float).
Anything else fails with InvalidArg.

============================================================
"""

from typing import Any, Dict, Mapping, Optional

from .errors import invalid_arg
from .types import AccountRef, BlockRef, NetworkRef, PartialBlockRef, TxRef


# ============================================================
# FIELD HELPERS
# ============================================================

def _block_index(raw: Any, kind: str) -> int:
    """Normalize a block index from int / int64 / JSON-number forms."""
    if isinstance(raw, bool):
        raise invalid_arg(f"invalid {kind}: index must be a number, got bool")
    if isinstance(raw, int):
        index = raw
    elif isinstance(raw, float) and raw.is_integer():
        index = int(raw)
    else:
        raise invalid_arg(f"invalid {kind}: index must be an integer, got {raw!r}")
    if index < 0:
        raise invalid_arg(f"invalid {kind}: index must be non-negative")
    if index > 2 ** 63 - 1:
        raise invalid_arg(f"invalid {kind}: index overflows int64")
    return index


def _optional_hash(data: Mapping[str, Any], kind: str) -> Optional[str]:
    if "hash" not in data or data["hash"] is None:
        return None
    value = data["hash"]
    if not isinstance(value, str):
        raise invalid_arg(f"invalid {kind}: hash must be a string")
    return value


# ============================================================
# CONVERSIONS
# ============================================================

def to_network_identifier(value: Any) -> Dict[str, Any]:
    if isinstance(value, NetworkRef):
        value.validate()
        return {"blockchain": value.chain, "network": value.network}
    if isinstance(value, Mapping):
        blockchain = value.get("blockchain")
        network = value.get("network")
        if not isinstance(blockchain, str) or not isinstance(network, str) or not blockchain or not network:
            raise invalid_arg("invalid network_identifier map: missing fields")
        return {"blockchain": blockchain, "network": network}
    raise invalid_arg(f"unsupported network_identifier type: {type(value).__name__}")


def to_account_identifier(value: Any) -> Dict[str, Any]:
    if isinstance(value, AccountRef):
        value.validate()
        return value.to_dict()
    if isinstance(value, Mapping):
        address = value.get("address")
        if not isinstance(address, str) or not address:
            raise invalid_arg("invalid account_identifier map: missing address")
        identifier: Dict[str, Any] = {"address": address}

        sub_account = value.get("sub_account")
        if sub_account is not None:
            if not isinstance(sub_account, Mapping):
                raise invalid_arg("invalid account_identifier map: sub_account must be a mapping")
            sub_address = sub_account.get("address")
            if not isinstance(sub_address, str) or not sub_address:
                raise invalid_arg("invalid account_identifier map: sub_account missing address")
            identifier["sub_account"] = dict(sub_account)

        metadata = value.get("metadata")
        if metadata is not None:
            if not isinstance(metadata, Mapping):
                raise invalid_arg("invalid account_identifier map: metadata must be a mapping")
            identifier["metadata"] = dict(metadata)
        return identifier
    raise invalid_arg(f"unsupported account_identifier type: {type(value).__name__}")


def to_partial_block_identifier(value: Any) -> Dict[str, Any]:
    """Convert for /block and /account/balance. None means latest: {}."""
    if value is None:
        return {}
    if isinstance(value, (PartialBlockRef, BlockRef)):
        identifier: Dict[str, Any] = {}
        if value.index is not None:
            identifier["index"] = _block_index(value.index, "block_identifier")
        if value.hash:
            identifier["hash"] = value.hash
        return identifier
    if isinstance(value, Mapping):
        identifier = {}
        if value.get("index") is not None:
            identifier["index"] = _block_index(value["index"], "block_identifier")
        block_hash = _optional_hash(value, "block_identifier")
        if block_hash:
            identifier["hash"] = block_hash
        return identifier
    raise invalid_arg(f"unsupported block_identifier type for /block: {type(value).__name__}")


def to_block_identifier(value: Any) -> Dict[str, Any]:
    """Convert a full block identifier for /block/transaction."""
    if isinstance(value, BlockRef):
        index, block_hash = value.index, value.hash
        if index is not None:
            index = _block_index(index, "block_identifier")
    elif isinstance(value, Mapping):
        if not value:
            raise invalid_arg("invalid block_identifier map: empty")
        index = None
        if value.get("index") is not None:
            index = _block_index(value["index"], "block_identifier")
        block_hash = _optional_hash(value, "block_identifier")
    else:
        raise invalid_arg(
            f"unsupported block_identifier type for /block/transaction: {type(value).__name__}"
        )

    if block_hash is not None and not block_hash:
        raise invalid_arg("invalid block_identifier: hash must not be empty")
    if index is None and block_hash is None:
        raise invalid_arg("invalid block_identifier: require index and/or hash")

    identifier: Dict[str, Any] = {}
    if index is not None:
        identifier["index"] = index
    if block_hash is not None:
        identifier["hash"] = block_hash
    return identifier


def to_transaction_identifier(value: Any) -> Dict[str, Any]:
    if isinstance(value, TxRef):
        tx_hash = value.hash
    elif isinstance(value, Mapping):
        if not value:
            raise invalid_arg("invalid transaction_identifier map: empty")
        tx_hash = value.get("hash")
    else:
        raise invalid_arg(f"unsupported transaction_identifier type: {type(value).__name__}")
    if not isinstance(tx_hash, str) or not tx_hash:
        raise invalid_arg("invalid transaction_identifier: missing hash")
    return {"hash": tx_hash}
