"""
Mesh Server - Live/Mock Service Base.

============================================================
PURPOSE
============================================================
Shared behavior of the Rosetta API services:
- Live mode: answer from Ethereum JSON-RPC
- Mock mode: answer from canned data
- Live failure: serve mock for the same call and log a warning,
  or raise a retriable "Network error" in strict mode

============================================================
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from chain_connector.clients.eth_rpc import EthRPCClient
from chain_connector.errors import ConnectorError
from chain_connector.identifiers import to_partial_block_identifier

from .errors import invalid_request, network_error


logger = logging.getLogger(__name__)


# Failures a live call may produce: transport/RPC errors, and malformed
# RPC results (missing keys, bad hex, null blocks).
LIVE_ERRORS = (ConnectorError, ValueError, KeyError, TypeError)


class LiveBackedService:
    """Base for services that answer live when an RPC client is configured."""

    def __init__(self, rpc: Optional[EthRPCClient] = None, strict: bool = False) -> None:
        self._rpc = rpc
        self._strict = strict

    @property
    def is_live(self) -> bool:
        return self._rpc is not None

    async def _live_or_mock(
        self,
        operation: str,
        live: Callable[[EthRPCClient], Awaitable[Dict[str, Any]]],
        mock: Callable[[], Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Run `live` against the RPC client, falling back to `mock`.

        Raises:
            RosettaError: Network error, only in strict mode
        """
        if self._rpc is None:
            return mock()
        try:
            return await live(self._rpc)
        except LIVE_ERRORS as e:
            if self._strict:
                logger.error(f"{operation}: live RPC failed in strict mode: {e}")
                raise network_error(f"{operation}: {e}") from e
            logger.warning(f"{operation}: live RPC failed, serving mock data: {e}")
            return mock()


# ============================================================
# REQUEST FIELD HELPERS
# ============================================================

def required_mapping(request: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = request.get(key)
    if not isinstance(value, Mapping):
        raise invalid_request(f"{key} is required")
    return value


def required_str(data: Mapping[str, Any], key: str, context: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise invalid_request(f"{context}.{key} is required")
    return value


def partial_block(request: Mapping[str, Any]) -> Dict[str, Any]:
    """Normalize an optional partial block_identifier: {} means latest."""
    value = request.get("block_identifier")
    try:
        return to_partial_block_identifier(value)
    except ConnectorError as e:
        raise invalid_request(e.message) from e
