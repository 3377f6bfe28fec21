"""
Mesh Server - Entry Point.

============================================================
USAGE
============================================================
python -m mesh_server
python -m mesh_server --port 9000 --log-level DEBUG
ETH_RPC_URL=https://sepolia.infura.io/v3/<key> python -m mesh_server

============================================================
"""

import argparse
import sys
from typing import List, Optional

from aiohttp import web

from chain_connector.logging_utils import configure_logging

from .app import create_mesh_app
from .config import MeshServerConfig


def create_parser(config: MeshServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mesh-server",
        description="Rosetta simulation server backed by Ethereum JSON-RPC or mock data",
    )
    parser.add_argument("--host", default=config.host, help="Bind address")
    parser.add_argument("--port", type=int, default=config.port, help="Listen port (env: PORT)")
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Force mock mode even if an RPC URL is configured",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Surface live RPC errors instead of serving mock data",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    config = MeshServerConfig.from_env()
    args = create_parser(config).parse_args(argv)
    configure_logging(args.log_level)

    config.host = args.host
    config.port = args.port
    if args.mock:
        config.live_mode = False
    if args.strict:
        config.strict_mode = True

    web.run_app(create_mesh_app(config), host=config.host, port=config.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
