"""
Chain Connector - Gateway Service.

============================================================
PURPOSE
============================================================
Stateless façade over the connector registry.

Each operation:
1. Resolves the connector (missing/uninitialized -> NotInitialized)
2. Invokes exactly one adapter method
3. Wraps any failure into ConnectorError without re-classifying

Listing degrades gracefully: NotInitialized and NotFound become
an empty result.

============================================================
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .adapters.base import Connector, QueryConnector
from .errors import ConnectorError, ErrorKind, invalid_arg, not_initialized, wrap_exception
from .registry import ConnectorRegistry
from .types import AccountRef, BalanceResult, Event, Message, NetworkRef, Tx, now_epoch_seconds


logger = logging.getLogger(__name__)


# ============================================================
# HEALTH MODELS
# ============================================================

class HealthStatus:
    """Aggregate and per-service health strings."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNINITIALIZED = "uninitialized"


@dataclass
class ServiceHealth:
    status: str
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status}
        if self.message:
            data["message"] = self.message
        return data


@dataclass
class HealthReport:
    """Aggregate health. Always served with HTTP 200 by an HTTP layer."""

    status: str
    timestamp: int
    services: Dict[str, ServiceHealth] = field(default_factory=dict)

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "services": {sid: s.to_dict() for sid, s in self.services.items()},
        }


# ============================================================
# SERVICE
# ============================================================

class GatewayService:
    """Normalized operations over registered connectors."""

    def __init__(self, registry: ConnectorRegistry) -> None:
        self._registry = registry

    def _resolve(self, connector_id: str) -> Connector:
        connector = self._registry.get(connector_id)
        if connector is None or not connector.is_initialized:
            raise not_initialized(connector_id)
        return connector

    def _resolve_query(self, connector_id: str) -> QueryConnector:
        connector = self._resolve(connector_id)
        if not isinstance(connector, QueryConnector):
            raise invalid_arg(f"connector '{connector_id}' does not support queries")
        return connector

    # --------------------------------------------------------
    # OPERATIONS
    # --------------------------------------------------------

    def list_connectors(self) -> List[Dict[str, Any]]:
        return [
            {"id": c.connector_id, "initialized": c.is_initialized}
            for c in self._registry.all()
        ]

    async def list_networks(self, connector_id: str) -> Any:
        """
        List networks of a connector.

        Returns:
            The adapter's listing, or [] if the connector is not
            initialized or the back-end reports NotFound
        """
        try:
            connector = self._resolve_query(connector_id)
            return await connector.list_networks()
        except Exception as e:
            error = wrap_exception(e, connector_id)
            if error.kind in (ErrorKind.NOT_INITIALIZED, ErrorKind.NOT_FOUND):
                logger.debug(f"list_networks({connector_id}) degraded to empty: {error}")
                return []
            raise error

    async def get_balance(
        self,
        connector_id: str,
        network: NetworkRef,
        account: AccountRef,
    ) -> BalanceResult:
        try:
            connector = self._resolve_query(connector_id)
            return await connector.get_balance(network, account)
        except Exception as e:
            raise wrap_exception(e, connector_id)

    async def submit_transaction(self, connector_id: str, message: Message) -> Tx:
        try:
            connector = self._resolve(connector_id)
            return await connector.send(message)
        except Exception as e:
            raise wrap_exception(e, connector_id)

    async def get_transaction_status(self, connector_id: str, tx_id: str) -> Event:
        try:
            connector = self._resolve(connector_id)
            return await connector.receive(tx_id)
        except Exception as e:
            raise wrap_exception(e, connector_id)

    # --------------------------------------------------------
    # HEALTH
    # --------------------------------------------------------

    async def _check(self, connector: Connector) -> ServiceHealth:
        if not connector.is_initialized:
            return ServiceHealth(status=HealthStatus.UNINITIALIZED)
        try:
            await connector.health_check()
            return ServiceHealth(status=HealthStatus.HEALTHY)
        except Exception as e:
            error = wrap_exception(e, connector.connector_id)
            logger.warning(f"Health check failed for '{connector.connector_id}': {error}")
            return ServiceHealth(status=HealthStatus.UNHEALTHY, message=error.message)

    async def health_check(self) -> HealthReport:
        """Probe every registered connector concurrently."""
        connectors = self._registry.all()
        results = await asyncio.gather(*(self._check(c) for c in connectors))
        services = {c.connector_id: r for c, r in zip(connectors, results)}

        degraded = any(s.status == HealthStatus.UNHEALTHY for s in services.values())
        report = HealthReport(
            status=HealthStatus.DEGRADED if degraded else HealthStatus.HEALTHY,
            timestamp=now_epoch_seconds(),
            services=services,
        )
        logger.info(f"Health: {report.status} {[f'{k}={v.status}' for k, v in services.items()]}")
        return report


def error_envelope(error: BaseException, connector_id: Optional[str] = None) -> Dict[str, Any]:
    """Serialize any exception into the public `{kind, message, cause?}` envelope."""
    if not isinstance(error, ConnectorError):
        error = wrap_exception(error, connector_id)
    return error.to_envelope()
