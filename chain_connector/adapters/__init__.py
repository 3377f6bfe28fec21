"""
Connector adapters.

- Connector / QueryConnector: abstract contract
- RosettaAdapter ("mesh"): Rosetta/Mesh servers
- OverledgerAdapter ("overledger"): Overledger gateway
"""

from .base import Connector, QueryConnector
from .overledger import OverledgerAdapter, parse_tx_id
from .rosetta import RosettaAdapter


__all__ = [
    "Connector",
    "QueryConnector",
    "RosettaAdapter",
    "OverledgerAdapter",
    "parse_tx_id",
]
