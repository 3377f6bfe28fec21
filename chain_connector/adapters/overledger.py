"""
Chain Connector - Overledger Adapter.

============================================================
PURPOSE
============================================================
Connector for the Quant Overledger REST gateway.

CONFIG:
    base_url         required
    auth_url         required, OAuth2 token endpoint
    client_id        required
    client_secret    required
    tls_skip_verify  optional, development only

RECEIVE:
    tx_id is "<networkId>:<hash>", split on the first colon.

BALANCES:
    Amounts are converted to minimal units using each row's decimals.

============================================================
"""

import logging
import re
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..clients.overledger import OverledgerClient, TransactionRequest
from ..config import DEFAULT_TIMEOUTS, optional_bool, require_str
from ..errors import ConnectorError, ErrorKind, invalid_arg, invalid_config
from ..logging_utils import mask_value
from ..types import (
    AccountRef,
    Amount,
    BalanceResult,
    Currency,
    Event,
    Message,
    NetworkRef,
    OverledgerPayload,
    RosettaPayload,
    Tx,
    TxStatus,
    now_epoch_seconds,
)
from .base import Connector, QueryConnector


logger = logging.getLogger(__name__)


_INTEGER_RE = re.compile(r"^-?[0-9]+$")


def to_minimal_units(amount: Any, decimals: int) -> Optional[str]:
    """
    Convert a gateway amount into a minimal-unit integer string.

    Integer strings pass through unchanged. Decimal amounts such as
    "0.5" are scaled by 10**decimals and accepted only when the result
    is a whole number.

    Returns:
        The integer string, or None if the amount cannot be represented
    """
    if isinstance(amount, int) and not isinstance(amount, bool):
        return str(amount)
    if isinstance(amount, str) and _INTEGER_RE.match(amount):
        return amount
    if isinstance(amount, bool) or not isinstance(amount, (str, float)):
        return None

    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None

    with localcontext() as ctx:
        ctx.prec = 100
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            return None
        return str(int(scaled))


def parse_tx_id(tx_id: str) -> Tuple[str, str]:
    """
    Split "<networkId>:<hash>".

    Raises:
        ConnectorError: InvalidArg if either part is missing
    """
    network_id, sep, tx_hash = (tx_id or "").partition(":")
    if not sep or not network_id or not tx_hash:
        raise invalid_arg("overledger tx_id must be in format <networkId>:<hash>")
    return network_id, tx_hash


class OverledgerAdapter(Connector, QueryConnector):
    """Connector over the Overledger gateway."""

    CONNECTOR_ID = "overledger"

    def __init__(self) -> None:
        self._client: Optional[OverledgerClient] = None

    @property
    def connector_id(self) -> str:
        return self.CONNECTOR_ID

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def init(self, config: Mapping[str, Any]) -> None:
        cid = self.CONNECTOR_ID
        base_url = require_str(config, "base_url", cid)
        auth_url = require_str(config, "auth_url", cid)
        client_id = require_str(config, "client_id", cid)
        client_secret = require_str(config, "client_secret", cid)
        tls_skip_verify = optional_bool(config, "tls_skip_verify", cid)

        client = OverledgerClient(
            base_url=base_url,
            auth_url=auth_url,
            client_id=client_id,
            client_secret=client_secret,
            tls_skip_verify=tls_skip_verify,
            timeout_seconds=DEFAULT_TIMEOUTS.api_seconds,
        )

        try:
            await client.test_connection()
        except ConnectorError as e:
            await client.close()
            raise invalid_config(
                cid,
                f"{cid}: credential check against {auth_url} failed: {e.message}",
                cause=e,
            ) from e

        # Swap only once the new credentials are proven.
        await self.close()
        self._client = client
        logger.info(
            f"Overledger adapter initialized: base_url={base_url} "
            f"client_id={mask_value(client_id)}"
        )

    async def health_check(self) -> None:
        self._require_initialized()
        try:
            await self._client.get_networks(timeout_seconds=DEFAULT_TIMEOUTS.validation_seconds)
        except ConnectorError as e:
            raise ConnectorError(
                ErrorKind.UNAVAILABLE,
                f"overledger health probe failed: {e.message}",
                cause=e,
                connector_id=self.CONNECTOR_ID,
                status_code=e.status_code,
            ) from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    async def list_networks(self) -> Dict[str, Any]:
        """Return the gateway's network listing unchanged."""
        self._require_initialized()
        return await self._client.get_networks()

    async def get_balances(self, network_id: str, address: str) -> List[Dict[str, Any]]:
        """Return the per-token balance array as provided by the gateway."""
        self._require_initialized()
        if not network_id or not address:
            raise invalid_arg("network_id and address are required")
        response = await self._client.get_balances(network_id, address)
        if not isinstance(response, Mapping):
            raise ConnectorError(
                ErrorKind.UPSTREAM,
                "overledger balance response is not an object",
                connector_id=self.CONNECTOR_ID,
            )
        return list(response.get("balances") or [])

    async def get_balance(self, network: NetworkRef, account: AccountRef) -> BalanceResult:
        """
        Normalize the per-token balance array.

        Rows whose amount cannot be expressed exactly in minimal units
        are left out of `balances` and kept in `raw`.
        """
        self._require_initialized()
        network.validate()
        account.validate()
        response = await self._client.get_balances(network.network, account.address)
        if not isinstance(response, Mapping):
            raise ConnectorError(
                ErrorKind.UPSTREAM,
                "overledger balance response is not an object",
                connector_id=self.CONNECTOR_ID,
            )

        balances = []
        for item in response.get("balances") or []:
            if not isinstance(item, Mapping):
                raise ConnectorError(
                    ErrorKind.UPSTREAM,
                    f"malformed balance row in overledger response: {item!r}",
                    connector_id=self.CONNECTOR_ID,
                )
            currency_metadata = {
                key: item[key] for key in ("tokenId", "tokenName", "unit") if item.get(key)
            }
            try:
                currency = Currency(
                    symbol=str(item.get("tokenSymbol", "")),
                    decimals=item.get("decimals", 0),
                    metadata=currency_metadata or None,
                )
            except ConnectorError as e:
                raise ConnectorError(
                    ErrorKind.UPSTREAM,
                    f"malformed balance in overledger response: {e.message}",
                    cause=e,
                    connector_id=self.CONNECTOR_ID,
                ) from e

            value = to_minimal_units(item.get("amount"), currency.decimals)
            if value is None:
                logger.warning(
                    f"Overledger balance for {currency.symbol or item.get('tokenId')} has amount "
                    f"{item.get('amount')!r} not expressible in minimal units, kept in raw only"
                )
                continue
            balances.append(Amount(value=value, currency=currency))

        return BalanceResult(network=network, account=account, balances=balances, raw=response)

    # --------------------------------------------------------
    # MESSAGING
    # --------------------------------------------------------

    def _payload(self, message: Message) -> OverledgerPayload:
        if isinstance(message.payload, OverledgerPayload):
            return message.payload
        if isinstance(message.payload, RosettaPayload):
            raise invalid_arg(f"{self.CONNECTOR_ID} cannot send a Rosetta payload")
        data = message.payload_mapping()
        if data is None:
            raise invalid_arg(f"unsupported payload type: {type(message.payload).__name__}")
        return OverledgerPayload.from_mapping(data)

    async def send(self, message: Message) -> Tx:
        self._require_initialized()
        payload = self._payload(message)
        request = TransactionRequest(
            network_id=payload.network_id,
            from_address=payload.from_address,
            to_address=payload.to_address,
            amount=payload.amount,
            token_id=payload.token_id,
            gas_limit=payload.gas_limit,
            gas_price=payload.gas_price,
            metadata=dict(payload.metadata or {}),
        )
        response = await self._client.create_transaction(request)

        tx_hash = response.get("hash") if isinstance(response, Mapping) else None
        if not isinstance(tx_hash, str) or not tx_hash:
            raise ConnectorError(
                ErrorKind.UPSTREAM,
                "overledger transaction response is missing hash",
                connector_id=self.CONNECTOR_ID,
                response_body=str(response)[:500],
            )
        status = response.get("status")
        if not isinstance(status, str) or not status:
            status = TxStatus.SUBMITTED

        logger.info(f"Overledger transaction created on {payload.network_id}: hash={tx_hash} status={status}")
        return Tx(hash=tx_hash, status=status, raw=response, metadata=message.metadata)

    async def receive(self, tx_id: str) -> Event:
        self._require_initialized()
        network_id, tx_hash = parse_tx_id(tx_id)
        response = await self._client.get_transaction_status(network_id, tx_hash)
        return Event(type="tx_status", data=response, timestamp=now_epoch_seconds())
