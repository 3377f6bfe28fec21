"""
Back-end clients.

- JSONHTTPClient: shared aiohttp plumbing
- RosettaClient: Rosetta/Mesh POST API
- OverledgerClient: OAuth2 + REST gateway
- EthRPCClient: Ethereum JSON-RPC
"""

from .eth_rpc import EthRPCClient, hex_to_int, int_to_hex
from .http import JSONHTTPClient
from .overledger import OverledgerClient, TransactionRequest
from .rosetta import RosettaClient


__all__ = [
    "JSONHTTPClient",
    "RosettaClient",
    "OverledgerClient",
    "TransactionRequest",
    "EthRPCClient",
    "hex_to_int",
    "int_to_hex",
]
