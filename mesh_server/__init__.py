"""
Mesh Server Package.

============================================================
PURPOSE
============================================================
Rosetta simulation back-end. Answers from Ethereum JSON-RPC in
live mode and from canned data otherwise, so the Rosetta adapter
can be exercised offline.

============================================================
MODULES
============================================================
- config: Environment-driven server config
- mock_data: Canned responses
- errors: Rosetta error objects
- base_service: Live/mock fallback
- network_service / block_service / account_service /
  construction_service: Rosetta API services
- app: aiohttp application factory

============================================================
"""

from .app import create_mesh_app
from .config import MeshServerConfig
from .errors import RosettaError


__all__ = [
    "create_mesh_app",
    "MeshServerConfig",
    "RosettaError",
]
