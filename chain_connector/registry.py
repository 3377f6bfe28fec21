"""
Connector Registry - ID to connector mapping with explicit factories.

Features:
- Explicit factory table assembled at the bootstrap call site
- Unique, non-empty connector IDs
- Frozen after bootstrap: reads only from then on
"""

import logging
from typing import Callable, Dict, List, Mapping, Optional

from .adapters.base import Connector
from .adapters.overledger import OverledgerAdapter
from .adapters.rosetta import RosettaAdapter


logger = logging.getLogger(__name__)


ConnectorFactory = Callable[[], Connector]


# Connector ID -> constructor. Order is registration order.
CONNECTOR_FACTORIES: Dict[str, ConnectorFactory] = {
    RosettaAdapter.CONNECTOR_ID: RosettaAdapter,
    OverledgerAdapter.CONNECTOR_ID: OverledgerAdapter,
}


class RegistrationError(Exception):
    """Raised when a connector cannot be registered."""


class ConnectorRegistry:
    """
    Registry of connectors keyed by ID.

    Usage:
        registry = build_registry()
        await bootstrap(configs, registry)   # freezes on success

        connector = registry.get("mesh")
    """

    def __init__(self) -> None:
        self._connectors: Dict[str, Connector] = {}
        self._initialized: List[str] = []
        self._frozen = False

    # --------------------------------------------------------
    # MUTATION (before freeze)
    # --------------------------------------------------------

    def register(self, connector: Connector) -> None:
        """
        Register a connector.

        Raises:
            RegistrationError: On None, empty or duplicate ID, or after freeze
        """
        if self._frozen:
            raise RegistrationError("registry is frozen")
        if connector is None:
            raise RegistrationError("cannot register None connector")

        connector_id = connector.connector_id
        if not connector_id:
            raise RegistrationError("connector ID must not be empty")
        if connector_id in self._connectors:
            raise RegistrationError(f"connector '{connector_id}' already registered")

        self._connectors[connector_id] = connector
        logger.info(f"Registered connector '{connector_id}'")

    def mark_initialized(self, connector_id: str) -> None:
        if self._frozen:
            raise RegistrationError("registry is frozen")
        if connector_id not in self._connectors:
            raise RegistrationError(f"connector '{connector_id}' is not registered")
        if connector_id not in self._initialized:
            self._initialized.append(connector_id)

    def freeze(self) -> None:
        self._frozen = True
        logger.info(f"Connector registry frozen: {', '.join(self._connectors) or '(empty)'}")

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    # --------------------------------------------------------
    # READS
    # --------------------------------------------------------

    def get(self, connector_id: str) -> Optional[Connector]:
        return self._connectors.get(connector_id)

    def __contains__(self, connector_id: object) -> bool:
        return connector_id in self._connectors

    def __len__(self) -> int:
        return len(self._connectors)

    def all(self) -> List[Connector]:
        return list(self._connectors.values())

    def ids(self) -> List[str]:
        return list(self._connectors)

    def initialized(self) -> List[str]:
        """IDs of connectors that completed init and health check."""
        return list(self._initialized)


def build_registry(factories: Optional[Mapping[str, ConnectorFactory]] = None) -> ConnectorRegistry:
    """
    Build a registry holding one connector per factory.

    Args:
        factories: ID -> constructor (default: CONNECTOR_FACTORIES)

    Raises:
        RegistrationError: If a factory's connector ID disagrees with its key
    """
    if factories is None:
        factories = CONNECTOR_FACTORIES

    registry = ConnectorRegistry()
    for connector_id, factory in factories.items():
        connector = factory()
        if connector.connector_id != connector_id:
            raise RegistrationError(
                f"factory '{connector_id}' produced connector with ID '{connector.connector_id}'"
            )
        registry.register(connector)
    return registry


# Global registry instance
_default_registry: Optional[ConnectorRegistry] = None


def get_default_registry() -> ConnectorRegistry:
    """Get or create the process-wide registry."""
    global _default_registry
    if _default_registry is None:
        _default_registry = build_registry()
    return _default_registry
