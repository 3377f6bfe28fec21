"""
Chain Connector - Rosetta (Mesh) Client.

============================================================
PURPOSE
============================================================
Thin client for Rosetta/Mesh-conformant servers. Every endpoint
is a POST with a JSON body of nested identifier objects.

Identifier arguments accept typed refs or loose mappings; see
chain_connector.identifiers for the accepted shapes.

============================================================
"""

import logging
from typing import Any, Dict, Optional

from ..errors import ConnectorError, ErrorKind
from ..identifiers import (
    to_account_identifier,
    to_block_identifier,
    to_network_identifier,
    to_partial_block_identifier,
    to_transaction_identifier,
)
from .http import JSONHTTPClient


logger = logging.getLogger(__name__)


class RosettaClient(JSONHTTPClient):
    """Rosetta POST-per-endpoint client."""

    SERVICE_NAME = "rosetta"

    async def _post(
        self,
        path: str,
        body: Dict[str, Any],
        timeout_seconds: Optional[float] = None,
    ) -> Dict[str, Any]:
        return await self._request("POST", path, json_body=body, timeout_seconds=timeout_seconds)

    # --------------------------------------------------------
    # NETWORK
    # --------------------------------------------------------

    async def list_networks(self, timeout_seconds: Optional[float] = None) -> Dict[str, Any]:
        """POST /network/list with an empty body."""
        return await self._post("/network/list", {}, timeout_seconds=timeout_seconds)

    async def network_status(self, network: Any, block: Any = None) -> Dict[str, Any]:
        """POST /network/status."""
        body: Dict[str, Any] = {"network_identifier": to_network_identifier(network)}
        if block is not None:
            body["block_identifier"] = to_partial_block_identifier(block)
        return await self._post("/network/status", body)

    async def network_options(self, network: Any) -> Dict[str, Any]:
        """POST /network/options."""
        return await self._post(
            "/network/options",
            {"network_identifier": to_network_identifier(network)},
        )

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    async def account_balance(
        self,
        network: Any,
        account: Any,
        block: Any = None,
    ) -> Dict[str, Any]:
        """POST /account/balance."""
        body: Dict[str, Any] = {
            "network_identifier": to_network_identifier(network),
            "account_identifier": to_account_identifier(account),
        }
        if block is not None:
            body["block_identifier"] = to_partial_block_identifier(block)
        return await self._post("/account/balance", body)

    # --------------------------------------------------------
    # BLOCK
    # --------------------------------------------------------

    async def block(self, network: Any, block: Any = None) -> Dict[str, Any]:
        """
        POST /block.

        A None block reference is sent as `{}` (latest).
        """
        body = {
            "network_identifier": to_network_identifier(network),
            "block_identifier": to_partial_block_identifier(block),
        }
        return await self._post("/block", body)

    async def block_transaction(
        self,
        network: Any,
        block: Any,
        transaction: Any,
    ) -> Dict[str, Any]:
        """POST /block/transaction. Both block and transaction are required."""
        body = {
            "network_identifier": to_network_identifier(network),
            "block_identifier": to_block_identifier(block),
            "transaction_identifier": to_transaction_identifier(transaction),
        }
        return await self._post("/block/transaction", body)

    # --------------------------------------------------------
    # CONSTRUCTION
    # --------------------------------------------------------

    async def construction_submit(self, network: Any, signed_tx: str) -> Dict[str, Any]:
        """POST /construction/submit."""
        body = {
            "network_identifier": to_network_identifier(network),
            "signed_transaction": signed_tx,
        }
        return await self._post("/construction/submit", body)

    # --------------------------------------------------------
    # HEALTH
    # --------------------------------------------------------

    async def health(self, timeout_seconds: Optional[float] = None) -> None:
        """
        Probe /network/list once.

        Raises:
            ConnectorError: Unavailable, carrying the underlying failure
        """
        try:
            await self.list_networks(timeout_seconds=timeout_seconds)
        except ConnectorError as e:
            logger.debug(f"Rosetta health probe failed: {e}")
            raise ConnectorError(
                ErrorKind.UNAVAILABLE,
                f"rosetta health probe failed: {e.message}",
                cause=e,
                status_code=e.status_code,
            ) from e
