"""
Chain Connector - Normalized Types.

============================================================
PURPOSE
============================================================
Normalized wire model shared by every adapter.

DESIGN PRINCIPLES:
- Lossless over both Rosetta and Overledger back-ends
- Amounts are decimal-integer strings, NEVER floats
- Timestamp unit conversions live here and nowhere else

============================================================
"""

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import ConnectorError, ErrorKind


# ============================================================
# TIMESTAMPS
# ============================================================

def now_epoch_seconds() -> int:
    """Current time as integer epoch seconds (Event convention)."""
    return int(time.time())


def seconds_to_millis(seconds: int) -> int:
    """Convert epoch seconds to epoch milliseconds (Rosetta convention)."""
    return int(seconds) * 1000


def millis_to_seconds(millis: int) -> int:
    """Convert epoch milliseconds to epoch seconds."""
    return int(millis) // 1000


# ============================================================
# ENUMS / CONSTANTS
# ============================================================

class OperationType(Enum):
    """Allowed Rosetta operation types."""

    TRANSFER = "Transfer"
    REWARD = "Reward"
    FEE = "Fee"


class OperationStatus(Enum):
    """Rosetta operation statuses."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

    @property
    def successful(self) -> bool:
        return self is OperationStatus.SUCCESS


class TxStatus:
    """Well-known transaction status strings."""

    SUBMITTED = "submitted"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


_AMOUNT_VALUE_RE = re.compile(r"^-?[0-9]+$")


def _invalid(message: str) -> ConnectorError:
    return ConnectorError(ErrorKind.INVALID_ARG, message)


# ============================================================
# IDENTIFIERS
# ============================================================

@dataclass(frozen=True)
class NetworkRef:
    """A chain/network pair, unique across adapters."""

    chain: str
    """Blockchain name (Rosetta `blockchain`)."""

    network: str
    """Network name (Rosetta `network`, Overledger network id)."""

    def validate(self) -> "NetworkRef":
        if not self.chain or not self.network:
            raise _invalid("network reference requires non-empty chain and network")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {"chain": self.chain, "network": self.network}


@dataclass
class SubAccountRef:
    """Opaque sub-account reference."""

    address: str
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class AccountRef:
    """An account on a network."""

    address: str
    """Account address (non-empty)."""

    sub_account: Optional[SubAccountRef] = None
    """Optional sub-account."""

    metadata: Optional[Dict[str, Any]] = None
    """Optional account metadata."""

    def validate(self) -> "AccountRef":
        if not self.address:
            raise _invalid("account reference requires a non-empty address")
        return self

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"address": self.address}
        if self.sub_account is not None:
            data["sub_account"] = {"address": self.sub_account.address}
            if self.sub_account.metadata:
                data["sub_account"]["metadata"] = self.sub_account.metadata
        if self.metadata:
            data["metadata"] = self.metadata
        return data


@dataclass(frozen=True)
class BlockRef:
    """Full block reference: index and/or hash must be set."""

    index: Optional[int] = None
    hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.index is not None:
            data["index"] = self.index
        if self.hash is not None:
            data["hash"] = self.hash
        return data


@dataclass(frozen=True)
class PartialBlockRef:
    """Partial block reference. Both fields unset means "latest"."""

    index: Optional[int] = None
    hash: Optional[str] = None

    @property
    def is_latest(self) -> bool:
        return self.index is None and not self.hash

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.index is not None:
            data["index"] = self.index
        if self.hash:
            data["hash"] = self.hash
        return data


@dataclass(frozen=True)
class TxRef:
    """Transaction reference."""

    hash: str

    def to_dict(self) -> Dict[str, Any]:
        return {"hash": self.hash}


# ============================================================
# VALUES
# ============================================================

@dataclass(frozen=True)
class Currency:
    """Currency descriptor, immutable per (network, symbol)."""

    symbol: str
    decimals: int
    metadata: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)

    def __post_init__(self) -> None:
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int) or self.decimals < 0:
            raise _invalid(f"currency decimals must be a non-negative integer, got {self.decimals!r}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Currency":
        decimals = data.get("decimals", 0)
        if isinstance(decimals, float) and decimals.is_integer():
            decimals = int(decimals)
        return cls(
            symbol=str(data.get("symbol", "")),
            decimals=decimals,
            metadata=data.get("metadata"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"symbol": self.symbol, "decimals": self.decimals}
        if self.metadata:
            data["metadata"] = self.metadata
        return data


# Documented default attached by the Rosetta adapter's network listing.
DEFAULT_CURRENCY = Currency(symbol="ETH", decimals=18)


@dataclass(frozen=True)
class Amount:
    """Signed big-integer amount in minimal units, carried as a string."""

    value: str
    currency: Currency

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not _AMOUNT_VALUE_RE.match(self.value):
            raise _invalid(f"amount value must be a decimal integer string, got {self.value!r}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Amount":
        currency = data.get("currency")
        if not isinstance(currency, Mapping):
            raise ConnectorError(ErrorKind.UPSTREAM, "amount is missing its currency")
        return cls(value=data.get("value"), currency=Currency.from_dict(currency))

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "currency": self.currency.to_dict()}


@dataclass
class Operation:
    """A single balance-affecting action within a transaction."""

    index: int
    type: OperationType
    status: Optional[OperationStatus] = None
    account: Optional[AccountRef] = None
    amount: Optional[Amount] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "operation_identifier": {"index": self.index},
            "type": self.type.value,
        }
        if self.status is not None:
            data["status"] = self.status.value
        if self.account is not None:
            data["account"] = self.account.to_dict()
        if self.amount is not None:
            data["amount"] = self.amount.to_dict()
        return data


# ============================================================
# MESSAGE PAYLOADS
# ============================================================

def _required_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise _invalid(f"payload is missing required string field '{key}'")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise _invalid(f"payload field '{key}' must be a string")
    return value


@dataclass(frozen=True)
class RosettaPayload:
    """Submit an already-signed transaction through a Rosetta node."""

    signed_tx: str
    network: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RosettaPayload":
        return cls(
            signed_tx=_required_str(data, "signed_tx"),
            network=_optional_str(data, "network"),
        )


@dataclass(frozen=True)
class OverledgerPayload:
    """Transfer request routed through the Overledger gateway."""

    network_id: str
    from_address: str
    to_address: str
    amount: str
    token_id: Optional[str] = None
    gas_limit: Optional[str] = None
    gas_price: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "OverledgerPayload":
        metadata = data.get("metadata")
        if metadata is not None and not isinstance(metadata, Mapping):
            raise _invalid("payload field 'metadata' must be a mapping")
        return cls(
            network_id=_required_str(data, "network_id"),
            from_address=_required_str(data, "from_address"),
            to_address=_required_str(data, "to_address"),
            amount=_required_str(data, "amount"),
            token_id=_optional_str(data, "token_id"),
            gas_limit=_optional_str(data, "gas_limit"),
            gas_price=_optional_str(data, "gas_price"),
            metadata=dict(metadata) if metadata else None,
        )


@dataclass(frozen=True)
class RawPayload:
    """Forward-compatible free-form payload."""

    data: Dict[str, Any] = field(default_factory=dict)


Payload = Union[RosettaPayload, OverledgerPayload, RawPayload, Mapping[str, Any]]


# ============================================================
# MESSAGE / TX / EVENT
# ============================================================

@dataclass
class Message:
    """Unit of submission passed to Connector.send()."""

    payload: Payload
    id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def payload_mapping(self) -> Optional[Mapping[str, Any]]:
        """Return the payload as a mapping for raw/loose payloads, else None."""
        if isinstance(self.payload, RawPayload):
            return self.payload.data
        if isinstance(self.payload, Mapping):
            return self.payload
        return None


@dataclass
class Tx:
    """Transaction acknowledgment returned by send()."""

    hash: str
    status: str
    raw: Any = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"hash": self.hash, "status": self.status}
        if self.raw is not None:
            data["raw"] = self.raw
        if self.metadata:
            data["metadata"] = self.metadata
        return data


@dataclass
class Event:
    """Observation produced by receive()."""

    type: str
    data: Any
    timestamp: int
    """Epoch seconds."""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "data": self.data, "timestamp": self.timestamp}


# ============================================================
# QUERY RESULTS
# ============================================================

@dataclass
class NetworkInfo:
    """A listed network with its (default) currency."""

    network: NetworkRef
    currency: Currency

    def to_dict(self) -> Dict[str, Any]:
        return {**self.network.to_dict(), "currency": self.currency.to_dict()}


@dataclass
class BalanceResult:
    """Normalized balance query result."""

    network: NetworkRef
    account: AccountRef
    balances: List[Amount] = field(default_factory=list)
    block: Optional[BlockRef] = None
    raw: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "network": self.network.to_dict(),
            "account": self.account.to_dict(),
            "balances": [b.to_dict() for b in self.balances],
        }
        if self.block is not None:
            data["block"] = self.block.to_dict()
        return data
