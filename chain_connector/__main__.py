"""
Chain Connector - CLI.

============================================================
USAGE
============================================================
python -m chain_connector --config connectors.yaml
python -m chain_connector --config connectors.yaml --log-level DEBUG

Bootstraps every configured connector, then prints the aggregate
health report as JSON. Exits non-zero (with the failing connector
named) if bootstrap fails.

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .bootstrap import close_all, run_bootstrap
from .config import GatewaySettings
from .logging_utils import configure_logging
from .registry import build_registry
from .service import GatewayService


logger = logging.getLogger(__name__)


def create_parser(settings: GatewaySettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chain-connector",
        description="Bootstrap blockchain connectors and report health",
    )
    parser.add_argument(
        "--config",
        default=settings.config_path,
        help="Connector config document, YAML or JSON (env: CONNECTOR_CONFIG)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (env: LOG_LEVEL)",
    )
    return parser


async def async_main(args: argparse.Namespace) -> int:
    registry = await run_bootstrap(args.config, build_registry())
    try:
        service = GatewayService(registry)
        report = await service.health_check()
        print(json.dumps(report.to_dict(), indent=2))
        return 0 if report.is_healthy else 1
    finally:
        await close_all(registry)


def main(argv: Optional[List[str]] = None) -> int:
    settings = GatewaySettings.from_env()
    args = create_parser(settings).parse_args(argv)
    configure_logging(args.log_level)
    return asyncio.run(async_main(args))


if __name__ == "__main__":
    sys.exit(main())
