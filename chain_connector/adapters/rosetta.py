"""
Chain Connector - Rosetta (Mesh) Adapter.

============================================================
PURPOSE
============================================================
Connector for Rosetta/Mesh-conformant servers.

CONFIG:
    base_url         required, HTTP base URL of the Rosetta server
    network          optional default network; discovered via
                     /network/list when omitted
    blockchain       optional chain name used for submissions
                     (default "ethereum")
    timeout_seconds  optional per-call timeout

NOTES:
- list_networks() attaches ETH/18 as the currency of every network.
  Rosetta's /network/list carries no currency; callers needing the
  real one should consult network_options().
- receive() is a local acknowledgment; Rosetta has no status lookup
  by hash alone.

============================================================
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..clients.rosetta import RosettaClient
from ..config import DEFAULT_TIMEOUTS, optional_number, optional_str, require_str
from ..errors import ConnectorError, ErrorKind, invalid_arg, invalid_config
from ..types import (
    DEFAULT_CURRENCY,
    AccountRef,
    Amount,
    BalanceResult,
    BlockRef,
    Event,
    Message,
    NetworkInfo,
    NetworkRef,
    OverledgerPayload,
    RosettaPayload,
    Tx,
    TxStatus,
    now_epoch_seconds,
)
from .base import Connector, QueryConnector


logger = logging.getLogger(__name__)


DEFAULT_BLOCKCHAIN = "ethereum"


class RosettaAdapter(Connector, QueryConnector):
    """Connector over a Rosetta/Mesh server."""

    CONNECTOR_ID = "mesh"

    def __init__(self) -> None:
        self._client: Optional[RosettaClient] = None
        self._blockchain = DEFAULT_BLOCKCHAIN
        self._network: Optional[str] = None

    @property
    def connector_id(self) -> str:
        return self.CONNECTOR_ID

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    @property
    def default_network(self) -> Optional[NetworkRef]:
        if not self._network:
            return None
        return NetworkRef(self._blockchain, self._network)

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def init(self, config: Mapping[str, Any]) -> None:
        base_url = require_str(config, "base_url", self.CONNECTOR_ID)
        network = optional_str(config, "network", self.CONNECTOR_ID)
        blockchain = optional_str(config, "blockchain", self.CONNECTOR_ID)
        timeout = optional_number(
            config, "timeout_seconds", self.CONNECTOR_ID, default=DEFAULT_TIMEOUTS.api_seconds
        )

        client = RosettaClient(base_url, timeout_seconds=timeout)

        if not network:
            try:
                discovered = await self._discover_network(client)
            except ConnectorError as e:
                await client.close()
                raise invalid_config(
                    self.CONNECTOR_ID,
                    f"{self.CONNECTOR_ID}: could not discover default network from {base_url}: {e.message}",
                    cause=e,
                ) from e
            network = discovered["network"]
            blockchain = blockchain or discovered["blockchain"]

        # The previous client stays live until discovery has succeeded.
        await self.close()
        self._client = client
        self._network = network
        self._blockchain = blockchain or DEFAULT_BLOCKCHAIN
        logger.info(
            f"Rosetta adapter initialized: base_url={base_url} "
            f"blockchain={self._blockchain} network={self._network}"
        )

    async def _discover_network(self, client: RosettaClient) -> Dict[str, str]:
        response = await client.list_networks(timeout_seconds=DEFAULT_TIMEOUTS.validation_seconds)
        identifiers = response.get("network_identifiers") or []
        if not identifiers or not isinstance(identifiers[0], Mapping):
            raise ConnectorError(ErrorKind.UPSTREAM, "/network/list returned no networks")
        first = identifiers[0]
        network = first.get("network")
        if not isinstance(network, str) or not network:
            raise ConnectorError(ErrorKind.UPSTREAM, "/network/list returned a network without a name")
        logger.info(f"Discovered default Rosetta network: {first.get('blockchain')}/{network}")
        return {"blockchain": str(first.get("blockchain") or ""), "network": network}

    async def health_check(self) -> None:
        self._require_initialized()
        await self._client.health(timeout_seconds=DEFAULT_TIMEOUTS.validation_seconds)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    def _network_or_default(self, network: Optional[NetworkRef]) -> NetworkRef:
        if network is not None:
            return network
        if self.default_network is None:
            raise invalid_arg("network is required: no default network configured")
        return self.default_network

    async def list_networks(self) -> List[NetworkInfo]:
        self._require_initialized()
        response = await self._client.list_networks()
        if not isinstance(response, Mapping):
            raise self._upstream("/network/list response is not an object")

        networks = []
        for identifier in response.get("network_identifiers") or []:
            if not isinstance(identifier, Mapping):
                raise self._upstream(f"malformed network identifier in /network/list: {identifier!r}")
            chain = identifier.get("blockchain")
            name = identifier.get("network")
            if not isinstance(chain, str) or not chain or not isinstance(name, str) or not name:
                raise self._upstream(
                    f"/network/list returned an identifier without blockchain or network: {dict(identifier)!r}"
                )
            networks.append(
                NetworkInfo(
                    network=NetworkRef(chain=chain, network=name),
                    currency=DEFAULT_CURRENCY,
                )
            )
        return networks

    def _upstream(self, message: str) -> ConnectorError:
        return ConnectorError(ErrorKind.UPSTREAM, message, connector_id=self.CONNECTOR_ID)

    async def network_status(self, network: Optional[NetworkRef] = None, block: Any = None) -> Dict[str, Any]:
        self._require_initialized()
        return await self._client.network_status(self._network_or_default(network), block)

    async def network_options(self, network: Optional[NetworkRef] = None) -> Dict[str, Any]:
        self._require_initialized()
        return await self._client.network_options(self._network_or_default(network))

    async def get_balance(
        self,
        network: NetworkRef,
        account: AccountRef,
        block: Any = None,
    ) -> BalanceResult:
        self._require_initialized()
        response = await self._client.account_balance(network, account, block)
        if not isinstance(response, Mapping):
            raise self._upstream("/account/balance response is not an object")

        items = response.get("balances") or []
        if not isinstance(items, list):
            raise self._upstream(f"/account/balance balances is not an array: {items!r}")
        for item in items:
            if not isinstance(item, Mapping):
                raise self._upstream(f"malformed balance in /account/balance response: {item!r}")

        try:
            balances = [Amount.from_dict(item) for item in items]
        except ConnectorError as e:
            if e.kind is not ErrorKind.INVALID_ARG:
                raise
            raise ConnectorError(
                ErrorKind.UPSTREAM,
                f"malformed balance in /account/balance response: {e.message}",
                cause=e,
            ) from e

        block_ref = None
        block_identifier = response.get("block_identifier")
        if isinstance(block_identifier, Mapping):
            block_ref = BlockRef(
                index=block_identifier.get("index"),
                hash=block_identifier.get("hash"),
            )
        return BalanceResult(
            network=network,
            account=account,
            balances=balances,
            block=block_ref,
            raw=response,
        )

    async def block(self, network: Optional[NetworkRef] = None, block: Any = None) -> Dict[str, Any]:
        self._require_initialized()
        return await self._client.block(self._network_or_default(network), block)

    async def block_transaction(
        self,
        network: Optional[NetworkRef],
        block: Any,
        transaction: Any,
    ) -> Dict[str, Any]:
        self._require_initialized()
        return await self._client.block_transaction(self._network_or_default(network), block, transaction)

    # --------------------------------------------------------
    # MESSAGING
    # --------------------------------------------------------

    def _payload(self, message: Message) -> RosettaPayload:
        if isinstance(message.payload, RosettaPayload):
            payload = message.payload
            if not payload.signed_tx:
                raise invalid_arg("payload is missing required string field 'signed_tx'")
            return payload
        if isinstance(message.payload, OverledgerPayload):
            raise invalid_arg(f"{self.CONNECTOR_ID} cannot send an Overledger payload")
        data = message.payload_mapping()
        if data is None:
            raise invalid_arg(f"unsupported payload type: {type(message.payload).__name__}")
        return RosettaPayload.from_mapping(data)

    async def send(self, message: Message) -> Tx:
        self._require_initialized()
        payload = self._payload(message)
        network_name = payload.network or self._network
        if not network_name:
            raise invalid_arg("payload has no network and no default network is configured")

        network = NetworkRef(self._blockchain, network_name)
        response = await self._client.construction_submit(network, payload.signed_tx)

        identifier = response.get("transaction_identifier")
        tx_hash = identifier.get("hash") if isinstance(identifier, Mapping) else None
        if not isinstance(tx_hash, str) or not tx_hash:
            raise ConnectorError(
                ErrorKind.UPSTREAM,
                "/construction/submit response is missing transaction_identifier.hash",
                connector_id=self.CONNECTOR_ID,
            )
        logger.info(f"Submitted transaction {tx_hash} on {network.chain}/{network.network}")
        return Tx(hash=tx_hash, status=TxStatus.SUBMITTED, raw=response, metadata=message.metadata)

    async def receive(self, tx_id: str) -> Event:
        self._require_initialized()
        if not tx_id:
            raise invalid_arg("tx_id is required")
        return Event(type="submission_ack", data={"tx": tx_id}, timestamp=now_epoch_seconds())
