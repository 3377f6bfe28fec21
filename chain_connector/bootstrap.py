"""
Chain Connector - Bootstrap.

============================================================
RESPONSIBILITY
============================================================
Bring configured connectors up before serving.

- For each configured ID that is registered: init(), then
  health_check()
- Configured IDs without a registered connector are skipped
- Registered connectors without config stay uninitialized
- ANY init or health failure is fatal
- The registry is frozen on success

============================================================
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from .config import ConfigError, ConnectorConfigs, load_connector_configs
from .errors import wrap_exception
from .registry import ConnectorRegistry, get_default_registry


logger = logging.getLogger(__name__)


class BootstrapError(Exception):
    """A configured connector failed init or health check."""

    def __init__(self, connector_id: str, cause: BaseException) -> None:
        super().__init__(f"bootstrap failed for connector '{connector_id}': {cause}")
        self.connector_id = connector_id
        self.cause = cause


async def bootstrap(
    configs: ConnectorConfigs,
    registry: Optional[ConnectorRegistry] = None,
) -> ConnectorRegistry:
    """
    Initialize and health-check every configured connector.

    Args:
        configs: Connector ID -> option mapping
        registry: Target registry (default: process-wide registry)

    Returns:
        The frozen registry

    Raises:
        BootstrapError: On the first connector that fails
    """
    if registry is None:
        registry = get_default_registry()

    logger.info(f"Bootstrapping connectors: configured={list(configs)} registered={registry.ids()}")

    for connector_id, options in configs.items():
        connector = registry.get(connector_id)
        if connector is None:
            logger.warning(f"No connector registered for configured ID '{connector_id}', skipping")
            continue

        try:
            await connector.init(options)
            await connector.health_check()
        except Exception as e:
            error = wrap_exception(e, connector_id)
            logger.critical(f"Connector '{connector_id}' failed bootstrap: {error}")
            raise BootstrapError(connector_id, error) from e

        registry.mark_initialized(connector_id)
        logger.info(f"Connector '{connector_id}' initialized and healthy")

    for connector_id in registry.ids():
        if connector_id not in configs:
            logger.info(f"Connector '{connector_id}' not configured, left uninitialized")

    registry.freeze()
    logger.info(f"Bootstrap complete: {len(registry.initialized())} connector(s) ready")
    return registry


async def close_all(registry: ConnectorRegistry) -> None:
    """Release resources held by every registered connector."""
    for connector in registry.all():
        await connector.close()


async def run_bootstrap(
    config_path: Union[str, Path],
    registry: Optional[ConnectorRegistry] = None,
) -> ConnectorRegistry:
    """
    Load the config document and bootstrap, terminating the process
    on failure.

    Raises:
        SystemExit: With a message naming the connector and the cause
    """
    if registry is None:
        registry = get_default_registry()

    try:
        configs = load_connector_configs(config_path)
    except ConfigError as e:
        logger.critical(f"Failed to load connector config: {e}")
        sys.exit(f"bootstrap failed: {e}")

    try:
        return await bootstrap(configs, registry)
    except BootstrapError as e:
        await close_all(registry)
        sys.exit(str(e))
