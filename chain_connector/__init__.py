"""
Chain Connector Package.

============================================================
PURPOSE
============================================================
Multi-chain connector gateway: one normalized contract over
heterogeneous blockchain back-ends.

AUTHORITY BOUNDARIES:
    CAN:
        - Submit already-signed or gateway-built transactions
        - Query networks, balances and transaction status
        - Probe back-end health

    MUST NOT:
        - Hold keys or sign
        - Retry or queue submissions
        - Track chain state

============================================================
MODULES
============================================================
- types: Normalized data model and timestamp conversions
- errors: Error taxonomy and envelope
- config: Connector config document and option helpers
- identifiers: Rosetta identifier conversions
- clients: Rosetta, Overledger and Ethereum JSON-RPC clients
- adapters: Connector contract, Rosetta and Overledger adapters
- registry: Explicit factory registry
- bootstrap: Init + health gate before serving
- service: Gateway façade

============================================================
"""

# ============================================================
# TYPES
# ============================================================
from .types import (
    AccountRef,
    Amount,
    BalanceResult,
    BlockRef,
    Currency,
    DEFAULT_CURRENCY,
    Event,
    Message,
    NetworkInfo,
    NetworkRef,
    Operation,
    OperationStatus,
    OperationType,
    OverledgerPayload,
    PartialBlockRef,
    RawPayload,
    RosettaPayload,
    SubAccountRef,
    Tx,
    TxRef,
    TxStatus,
)

# ============================================================
# ERRORS
# ============================================================
from .errors import (
    ConnectorError,
    ErrorKind,
    EthRPCError,
)

# ============================================================
# CONNECTORS
# ============================================================
from .adapters import (
    Connector,
    OverledgerAdapter,
    QueryConnector,
    RosettaAdapter,
)

# ============================================================
# REGISTRY / BOOTSTRAP / SERVICE
# ============================================================
from .registry import (
    CONNECTOR_FACTORIES,
    ConnectorRegistry,
    RegistrationError,
    build_registry,
    get_default_registry,
)
from .bootstrap import BootstrapError, bootstrap, run_bootstrap
from .service import GatewayService, HealthReport, ServiceHealth, error_envelope


__all__ = [
    # Types
    "AccountRef",
    "Amount",
    "BalanceResult",
    "BlockRef",
    "Currency",
    "DEFAULT_CURRENCY",
    "Event",
    "Message",
    "NetworkInfo",
    "NetworkRef",
    "Operation",
    "OperationStatus",
    "OperationType",
    "OverledgerPayload",
    "PartialBlockRef",
    "RawPayload",
    "RosettaPayload",
    "SubAccountRef",
    "Tx",
    "TxRef",
    "TxStatus",
    # Errors
    "ConnectorError",
    "ErrorKind",
    "EthRPCError",
    # Connectors
    "Connector",
    "QueryConnector",
    "RosettaAdapter",
    "OverledgerAdapter",
    # Registry / bootstrap / service
    "CONNECTOR_FACTORIES",
    "ConnectorRegistry",
    "RegistrationError",
    "build_registry",
    "get_default_registry",
    "BootstrapError",
    "bootstrap",
    "run_bootstrap",
    "GatewayService",
    "HealthReport",
    "ServiceHealth",
    "error_envelope",
]
