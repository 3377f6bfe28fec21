"""
Chain Connector - Connector Base.

============================================================
PURPOSE
============================================================
Abstract contract every back-end adapter implements.

DESIGN PRINCIPLES:
- Back-end agnostic: five operations, normalized types
- Validation failures raise InvalidArg before any remote call
- Safe for concurrent invocation once initialized

============================================================
LIFECYCLE
============================================================
    adapter = RosettaAdapter()
    await adapter.init({"base_url": "http://localhost:8080"})
    await adapter.health_check()
    tx = await adapter.send(Message(payload=RosettaPayload("0x...")))
    await adapter.close()

============================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping

from ..errors import not_initialized
from ..types import AccountRef, BalanceResult, Event, Message, NetworkRef, Tx


logger = logging.getLogger(__name__)


# ============================================================
# CONNECTOR CONTRACT
# ============================================================

class Connector(ABC):
    """
    Abstract connector contract.

    Implementations:
    - RosettaAdapter: Rosetta/Mesh servers
    - OverledgerAdapter: Overledger REST gateway
    """

    @property
    @abstractmethod
    def connector_id(self) -> str:
        """Stable, non-empty, unique identifier."""
        pass

    @property
    @abstractmethod
    def is_initialized(self) -> bool:
        """Check whether init() has completed successfully."""
        pass

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    @abstractmethod
    async def init(self, config: Mapping[str, Any]) -> None:
        """
        Initialize from a free-form option mapping.

        Re-init closes and rebuilds clients. Unknown keys are ignored.

        Raises:
            ConnectorError: InvalidConfig on missing/wrong-typed keys or
                an unreachable dependency
        """
        pass

    @abstractmethod
    async def health_check(self) -> None:
        """
        Probe the back-end with a single round trip.

        Raises:
            ConnectorError: Unavailable, or NotInitialized before init
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass

    # --------------------------------------------------------
    # MESSAGING
    # --------------------------------------------------------

    @abstractmethod
    async def send(self, message: Message) -> Tx:
        """
        Submit a message to the back-end.

        Args:
            message: Message with an adapter-specific payload

        Returns:
            Tx acknowledgment

        Raises:
            ConnectorError: InvalidArg on a malformed payload
        """
        pass

    @abstractmethod
    async def receive(self, tx_id: str) -> Event:
        """
        Observe the state of a previously submitted transaction.

        Args:
            tx_id: Adapter-specific transaction identifier

        Returns:
            Event with an epoch-seconds timestamp
        """
        pass

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise not_initialized(self.connector_id)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.connector_id!r}, initialized={self.is_initialized})"


# ============================================================
# QUERY EXTENSION
# ============================================================

class QueryConnector(ABC):
    """Read operations used by the service façade for listing and balances."""

    @abstractmethod
    async def list_networks(self) -> Any:
        """List networks served by the back-end."""
        pass

    @abstractmethod
    async def get_balance(self, network: NetworkRef, account: AccountRef) -> BalanceResult:
        """Fetch balances of an account on a network."""
        pass
