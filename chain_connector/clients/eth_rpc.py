"""
Chain Connector - Ethereum JSON-RPC Client.

============================================================
PURPOSE
============================================================
Minimal JSON-RPC 2.0 client used by the Rosetta simulation
back-end in live mode.

Quantities travel as 0x-prefixed hex strings; use hex_to_int()
and int_to_hex() at the boundary. Wei values may exceed int64,
Python ints carry them unchanged.

============================================================
"""

import itertools
import logging
from typing import Any, Dict, List, Optional, Union

import aiohttp

from ..errors import ConnectorError, ErrorKind, EthRPCError
from ..logging_utils import mask_url
from .http import JSONHTTPClient


logger = logging.getLogger(__name__)


DEFAULT_RPC_TIMEOUT = 20.0


# ============================================================
# HEX HELPERS
# ============================================================

def hex_to_int(value: Optional[str]) -> int:
    """
    Parse a 0x-prefixed hex quantity.

    Raises:
        ValueError: On empty or malformed input
    """
    if not value:
        raise ValueError("empty hex string")
    text = value[2:] if value.lower().startswith("0x") else value
    if not text:
        raise ValueError(f"invalid hex: {value}")
    return int(text, 16)


def int_to_hex(value: int) -> str:
    return hex(value)


BlockTag = Union[str, int]


def _block_tag(tag: BlockTag) -> str:
    if isinstance(tag, int) and not isinstance(tag, bool):
        return int_to_hex(tag)
    return tag


# ============================================================
# CLIENT
# ============================================================

class EthRPCClient(JSONHTTPClient):
    """Ethereum JSON-RPC 2.0 client over aiohttp."""

    SERVICE_NAME = "eth-rpc"

    def __init__(
        self,
        url: str,
        timeout_seconds: float = DEFAULT_RPC_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(url, timeout_seconds=timeout_seconds, session=session)
        self._ids = itertools.count(1)

    def __repr__(self) -> str:
        return f"EthRPCClient(url={mask_url(self._base_url)!r})"

    def _error_for_status(self, status: int, body: str) -> ConnectorError:
        return ConnectorError(
            ErrorKind.UPSTREAM,
            f"rpc http status {status}",
            status_code=status,
            response_body=body,
        )

    async def call(self, method: str, params: List[Any]) -> Any:
        """
        Issue one JSON-RPC call and return its `result`.

        Raises:
            EthRPCError: If the response carries an `error` object
            ConnectorError: On transport or HTTP failure
        """
        request = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        response = await self._request("POST", self._base_url, json_body=request)
        if not isinstance(response, dict):
            raise ConnectorError(ErrorKind.UPSTREAM, f"rpc {method}: malformed response")

        error = response.get("error")
        if error:
            code = error.get("code", 0) if isinstance(error, dict) else 0
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            raise EthRPCError(code, message)
        return response.get("result")

    # --------------------------------------------------------
    # METHODS
    # --------------------------------------------------------

    async def block_number(self) -> int:
        return hex_to_int(await self.call("eth_blockNumber", []))

    async def get_block_by_number(self, tag: BlockTag, full: bool = False) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getBlockByNumber", [_block_tag(tag), full])

    async def get_block_by_hash(self, block_hash: str, full: bool = False) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getBlockByHash", [block_hash, full])

    async def get_transaction_by_hash(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getTransactionByHash", [tx_hash])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    async def get_balance(self, address: str, tag: BlockTag = "latest") -> int:
        return hex_to_int(await self.call("eth_getBalance", [address, _block_tag(tag)]))

    async def send_raw_transaction(self, signed_tx: str) -> str:
        return await self.call("eth_sendRawTransaction", [signed_tx])
