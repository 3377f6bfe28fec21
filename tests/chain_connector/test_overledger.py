"""
Overledger Client and Adapter Tests.

============================================================
PURPOSE
============================================================
OAuth token caching, REST request shapes and the normalized
behavior of the "overledger" adapter.

TEST CATEGORIES:
- Token cache: refresh, coalescing, 401 invalidation
- Send / receive wire shapes
- Balance normalization
- Error surfacing

============================================================
"""

import asyncio
import base64
import time
from urllib.parse import parse_qs

import pytest
from aiohttp import web

from chain_connector.adapters.overledger import OverledgerAdapter, parse_tx_id, to_minimal_units
from chain_connector.clients.overledger import OverledgerClient
from chain_connector.errors import ConnectorError, ErrorKind
from chain_connector.types import AccountRef, Message, NetworkRef, OverledgerPayload, RosettaPayload


AUTH_PATH = "/oauth2/token"


def token_route(stub, expires_in=3600, delay=0.0):
    issued = []

    async def handler(request):
        if delay:
            await asyncio.sleep(delay)
        token = f"token-{len(issued) + 1}"
        issued.append(token)
        return web.json_response({
            "access_token": token,
            "token_type": "Bearer",
            "expires_in": expires_in,
        })

    stub.route("POST", AUTH_PATH, handler=handler)
    return issued


def config(stub, **overrides):
    cfg = {
        "base_url": stub.base_url,
        "auth_url": stub.url(AUTH_PATH),
        "client_id": "client-id",
        "client_secret": "client-secret",
    }
    cfg.update(overrides)
    return cfg


async def make_adapter(stub) -> OverledgerAdapter:
    adapter = OverledgerAdapter()
    await adapter.init(config(stub))
    return adapter


def make_client(stub, **kwargs) -> OverledgerClient:
    return OverledgerClient(
        base_url=stub.base_url,
        auth_url=stub.url(AUTH_PATH),
        client_id="client-id",
        client_secret="client-secret",
        **kwargs,
    )


# ============================================================
# TOKEN CACHE TESTS
# ============================================================

class TestTokenCache:
    """Tests for OAuth2 token handling."""

    @pytest.mark.asyncio
    async def test_auth_request_shape(self, stub):
        token_route(stub)
        async with make_client(stub) as client:
            token = await client.get_token()

        assert token == "token-1"
        request = stub.calls("POST", AUTH_PATH)[0]
        assert parse_qs(request.body) == {"grant_type": ["client_credentials"]}
        expected = base64.b64encode(b"client-id:client-secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"

    @pytest.mark.asyncio
    async def test_token_is_cached(self, stub):
        issued = token_route(stub)
        async with make_client(stub) as client:
            await client.get_token()
            await client.get_token()
        assert issued == ["token-1"]

    @pytest.mark.asyncio
    async def test_expiry_skew_applied(self, stub):
        token_route(stub, expires_in=200)
        async with make_client(stub) as client:
            await client.get_token()
            # 200s lifetime minus the 300s skew: already stale
            assert not client.has_valid_token

    @pytest.mark.asyncio
    async def test_concurrent_refresh_coalesces(self, stub):
        issued = token_route(stub, delay=0.05)
        async with make_client(stub) as client:
            tokens = await asyncio.gather(*(client.get_token() for _ in range(10)))
        assert set(tokens) == {"token-1"}
        assert len(stub.calls("POST", AUTH_PATH)) == 1
        assert issued == ["token-1"]

    @pytest.mark.asyncio
    async def test_concurrent_sends_after_expiry_refresh_once(self, stub):
        token_route(stub, delay=0.05)
        stub.route("POST", "/v2/networks/ethereum-sepolia/transactions", json_body={
            "hash": "0xH", "status": "pending",
        })
        adapter = await make_adapter(stub)
        try:
            adapter._client._expires_at = 0.0
            payload = OverledgerPayload("ethereum-sepolia", "0xA", "0xB", "1")
            await asyncio.gather(*(adapter.send(Message(payload=payload)) for _ in range(5)))
        finally:
            await adapter.close()

        # One token for init, one coalesced refresh for the burst
        assert len(stub.calls("POST", AUTH_PATH)) == 2

    @pytest.mark.asyncio
    async def test_401_invalidates_token(self, stub):
        issued = token_route(stub)
        stub.route("GET", "/v2/networks", status=401, text="expired")
        async with make_client(stub) as client:
            with pytest.raises(ConnectorError) as exc_info:
                await client.get_networks()
            assert exc_info.value.kind is ErrorKind.UNAUTHORIZED
            assert not client.has_valid_token

            with pytest.raises(ConnectorError):
                await client.get_networks()
        assert issued == ["token-1", "token-2"]

    @pytest.mark.asyncio
    async def test_other_failures_keep_token(self, stub):
        issued = token_route(stub)
        stub.route("GET", "/v2/networks", status=500, text="boom")
        async with make_client(stub) as client:
            for _ in range(2):
                with pytest.raises(ConnectorError):
                    await client.get_networks()
            assert client.has_valid_token
        assert issued == ["token-1"]

    @pytest.mark.asyncio
    async def test_auth_rejected(self, stub):
        stub.route("POST", AUTH_PATH, status=401, text="bad credentials")
        async with make_client(stub) as client:
            with pytest.raises(ConnectorError) as exc_info:
                await client.get_token()
        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED
        assert "authentication failed" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_auth_response_without_token(self, stub):
        stub.route("POST", AUTH_PATH, json_body={"token_type": "Bearer", "expires_in": 3600})
        async with make_client(stub) as client:
            with pytest.raises(ConnectorError) as exc_info:
                await client.get_token()
        assert exc_info.value.kind is ErrorKind.UPSTREAM

    @pytest.mark.asyncio
    async def test_token_fetch_times_out(self, stub):
        token_route(stub, delay=1.0)
        async with make_client(stub, timeout_seconds=0.2) as client:
            started = time.monotonic()
            with pytest.raises(ConnectorError) as exc_info:
                await client.get_token()
            elapsed = time.monotonic() - started

        assert exc_info.value.kind is ErrorKind.UNAVAILABLE
        assert "authentication failed" in exc_info.value.message
        assert elapsed < 0.8


# ============================================================
# CLIENT TESTS
# ============================================================

class TestOverledgerClient:
    """Tests for REST request shapes and error surfacing."""

    @pytest.mark.asyncio
    async def test_rest_headers(self, stub):
        token_route(stub)
        stub.route("GET", "/v2/networks", json_body={"networks": []})
        async with make_client(stub) as client:
            await client.get_networks()

        request = stub.calls("GET", "/v2/networks")[0]
        assert request.headers["Authorization"] == "Bearer token-1"
        assert request.headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_structured_error_message(self, stub):
        token_route(stub)
        stub.route("GET", "/v2/networks/nope/addresses/0xA/balances", status=404, json_body={
            "error": {"code": "NETWORK_NOT_FOUND", "message": "unknown network", "details": "nope"},
        })
        async with make_client(stub) as client:
            with pytest.raises(ConnectorError) as exc_info:
                await client.get_balances("nope", "0xA")

        error = exc_info.value
        assert error.kind is ErrorKind.NOT_FOUND
        assert "unknown network" in error.message
        assert "NETWORK_NOT_FOUND" in error.message

    @pytest.mark.asyncio
    async def test_rest_call_times_out(self, stub):
        token_route(stub)
        stub.route("GET", "/v2/networks", json_body={"networks": []}, delay=1.0)
        async with make_client(stub, timeout_seconds=0.2) as client:
            started = time.monotonic()
            with pytest.raises(ConnectorError) as exc_info:
                await client.get_networks()
            elapsed = time.monotonic() - started
            assert client.has_valid_token

        assert exc_info.value.kind is ErrorKind.UNAVAILABLE
        assert "timed out" in exc_info.value.message
        assert elapsed < 0.8

    @pytest.mark.asyncio
    async def test_versioned_base_url_not_doubled(self, stub):
        token_route(stub)
        stub.route("GET", "/v2/networks", json_body={"networks": []})
        client = OverledgerClient(
            base_url=stub.url("/v2"),
            auth_url=stub.url(AUTH_PATH),
            client_id="client-id",
            client_secret="client-secret",
        )
        async with client:
            await client.get_networks()
        assert len(stub.calls("GET", "/v2/networks")) == 1


# ============================================================
# ADAPTER TESTS
# ============================================================

class TestOverledgerAdapterInit:
    """Tests for OverledgerAdapter.init()."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["base_url", "auth_url", "client_id", "client_secret"])
    async def test_missing_required_key(self, stub, missing):
        cfg = config(stub)
        del cfg[missing]
        adapter = OverledgerAdapter()
        with pytest.raises(ConnectorError) as exc_info:
            await adapter.init(cfg)
        assert exc_info.value.kind is ErrorKind.INVALID_CONFIG
        assert missing in exc_info.value.message
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_wrong_typed_tls_flag(self, stub):
        adapter = OverledgerAdapter()
        with pytest.raises(ConnectorError) as exc_info:
            await adapter.init(config(stub, tls_skip_verify="yes"))
        assert exc_info.value.kind is ErrorKind.INVALID_CONFIG

    @pytest.mark.asyncio
    async def test_bad_credentials_are_invalid_config(self, stub):
        stub.route("POST", AUTH_PATH, status=401, text="denied")
        adapter = OverledgerAdapter()
        with pytest.raises(ConnectorError) as exc_info:
            await adapter.init(config(stub))
        assert exc_info.value.kind is ErrorKind.INVALID_CONFIG
        assert not adapter.is_initialized

    @pytest.mark.asyncio
    async def test_failed_reinit_keeps_previous_client(self, stub):
        token_route(stub)
        networks = {"networks": [{"id": "ethereum-sepolia"}]}
        stub.route("GET", "/v2/networks", json_body=networks)
        adapter = await make_adapter(stub)
        first = adapter._client
        try:
            stub.route("POST", AUTH_PATH, status=401, text="denied")
            with pytest.raises(ConnectorError) as exc_info:
                await adapter.init(config(stub, client_secret="rotated"))

            assert exc_info.value.kind is ErrorKind.INVALID_CONFIG
            assert adapter.is_initialized
            assert adapter._client is first
            assert await adapter.list_networks() == networks
        finally:
            await adapter.close()


class TestOverledgerAdapter:
    """Tests for OverledgerAdapter operations."""

    @pytest.mark.asyncio
    async def test_send(self, stub):
        token_route(stub)
        stub.route("POST", "/v2/networks/ethereum-sepolia/transactions", json_body={
            "transactionId": "t-1", "hash": "0xH", "status": "pending",
        })
        adapter = await make_adapter(stub)
        try:
            tx = await adapter.send(Message(payload={
                "network_id": "ethereum-sepolia",
                "from_address": "0xA",
                "to_address": "0xB",
                "amount": "500000000000000000",
            }))
        finally:
            await adapter.close()

        assert tx.hash == "0xH"
        assert tx.status == "pending"
        assert tx.raw["transactionId"] == "t-1"
        body = stub.calls("POST", "/v2/networks/ethereum-sepolia/transactions")[0].json()
        assert body == {
            "networkId": "ethereum-sepolia",
            "fromAddress": "0xA",
            "toAddress": "0xB",
            "amount": "500000000000000000",
        }

    @pytest.mark.asyncio
    async def test_send_optional_fields(self, stub):
        token_route(stub)
        stub.route("POST", "/v2/networks/ethereum-sepolia/transactions", json_body={
            "hash": "0xH", "status": "pending",
        })
        adapter = await make_adapter(stub)
        try:
            await adapter.send(Message(payload=OverledgerPayload(
                network_id="ethereum-sepolia",
                from_address="0xA",
                to_address="0xB",
                amount="1",
                token_id="USDC",
                gas_limit="21000",
                metadata={"memo": "x"},
            )))
        finally:
            await adapter.close()

        body = stub.calls("POST", "/v2/networks/ethereum-sepolia/transactions")[0].json()
        assert body["tokenId"] == "USDC"
        assert body["gasLimit"] == "21000"
        assert body["metadata"] == {"memo": "x"}
        assert "gasPrice" not in body

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        {"transactionId": "t-1", "status": "pending"},
        {"transactionId": "t-1", "hash": "", "status": "pending"},
        {"hash": 42},
        [{"hash": "0xH"}],
    ])
    async def test_send_response_without_hash_is_upstream(self, stub, response):
        token_route(stub)
        stub.route("POST", "/v2/networks/ethereum-sepolia/transactions", json_body=response)
        adapter = await make_adapter(stub)
        try:
            with pytest.raises(ConnectorError) as exc_info:
                await adapter.send(Message(payload=OverledgerPayload("ethereum-sepolia", "0xA", "0xB", "1")))
        finally:
            await adapter.close()

        assert exc_info.value.kind is ErrorKind.UPSTREAM
        assert exc_info.value.connector_id == "overledger"

    @pytest.mark.asyncio
    async def test_send_without_status_is_submitted(self, stub):
        token_route(stub)
        stub.route("POST", "/v2/networks/ethereum-sepolia/transactions", json_body={"hash": "0xH"})
        adapter = await make_adapter(stub)
        try:
            tx = await adapter.send(Message(payload=OverledgerPayload("ethereum-sepolia", "0xA", "0xB", "1")))
        finally:
            await adapter.close()

        assert tx.hash == "0xH"
        assert tx.status == "submitted"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"network_id": "n", "from_address": "a", "to_address": "b"},
        {"network_id": "", "from_address": "a", "to_address": "b", "amount": "1"},
        {"network_id": "n", "from_address": "a", "to_address": "b", "amount": 1},
        RosettaPayload(signed_tx="0xs"),
    ])
    async def test_send_invalid_payload(self, stub, payload):
        token_route(stub)
        adapter = await make_adapter(stub)
        try:
            with pytest.raises(ConnectorError) as exc_info:
                await adapter.send(Message(payload=payload))
        finally:
            await adapter.close()
        assert exc_info.value.kind is ErrorKind.INVALID_ARG
        assert [r.path for r in stub.requests] == [AUTH_PATH]

    @pytest.mark.asyncio
    async def test_receive(self, stub):
        token_route(stub)
        status = {"transactionId": "t-1", "hash": "0xH", "status": "confirmed", "confirmations": 3}
        stub.route("GET", "/v2/networks/ethereum-sepolia/transactions/0xH/status", json_body=status)
        adapter = await make_adapter(stub)
        try:
            before = int(time.time())
            event = await adapter.receive("ethereum-sepolia:0xH")
        finally:
            await adapter.close()

        assert event.type == "tx_status"
        assert event.data == status
        assert before <= event.timestamp <= int(time.time())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tx_id", ["0xH", "", ":0xH", "ethereum-sepolia:"])
    async def test_receive_rejects_bad_tx_id(self, stub, tx_id):
        token_route(stub)
        adapter = await make_adapter(stub)
        try:
            with pytest.raises(ConnectorError) as exc_info:
                await adapter.receive(tx_id)
        finally:
            await adapter.close()
        assert exc_info.value.kind is ErrorKind.INVALID_ARG
        assert [r.path for r in stub.requests] == [AUTH_PATH]

    def test_parse_tx_id_splits_on_first_colon(self):
        assert parse_tx_id("net:0xH:extra") == ("net", "0xH:extra")

    @pytest.mark.asyncio
    async def test_get_balance_normalizes(self, stub):
        token_route(stub)
        stub.route("GET", "/v2/networks/ethereum-sepolia/addresses/0xA/balances", json_body={
            "address": "0xA",
            "balances": [
                {
                    "tokenId": "ETH",
                    "tokenName": "Ether",
                    "tokenSymbol": "ETH",
                    "amount": "1234567890000000000",
                    "decimals": 18,
                    "unit": "wei",
                },
            ],
        })
        adapter = await make_adapter(stub)
        try:
            result = await adapter.get_balance(NetworkRef("ethereum", "ethereum-sepolia"), AccountRef("0xA"))
        finally:
            await adapter.close()

        assert len(result.balances) == 1
        amount = result.balances[0]
        assert amount.value == "1234567890000000000"
        assert amount.currency.symbol == "ETH"
        assert amount.currency.decimals == 18
        assert result.raw["address"] == "0xA"

    @pytest.mark.asyncio
    async def test_get_balance_decimal_amounts(self, stub):
        token_route(stub)
        rows = [
            {"tokenSymbol": "ETH", "amount": "0.5", "decimals": 18},
            {"tokenSymbol": "ETH", "amount": "0.5", "unit": "ETH"},
            {"tokenSymbol": "USDC", "amount": "12", "decimals": 6},
        ]
        stub.route("GET", "/v2/networks/ethereum-sepolia/addresses/0xA/balances", json_body={
            "address": "0xA",
            "balances": rows,
        })
        adapter = await make_adapter(stub)
        try:
            result = await adapter.get_balance(NetworkRef("ethereum", "ethereum-sepolia"), AccountRef("0xA"))
        finally:
            await adapter.close()

        assert [(a.currency.symbol, a.value) for a in result.balances] == [
            ("ETH", "500000000000000000"),
            ("USDC", "12"),
        ]
        assert result.raw["balances"] == rows

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"balances": ["1000"]},
        {"balances": [{"tokenSymbol": "ETH", "amount": "1", "decimals": -2}]},
        ["not", "an", "object"],
    ])
    async def test_get_balance_malformed_is_upstream(self, stub, body):
        token_route(stub)
        stub.route("GET", "/v2/networks/ethereum-sepolia/addresses/0xA/balances", json_body=body)
        adapter = await make_adapter(stub)
        try:
            with pytest.raises(ConnectorError) as exc_info:
                await adapter.get_balance(NetworkRef("ethereum", "ethereum-sepolia"), AccountRef("0xA"))
        finally:
            await adapter.close()

        assert exc_info.value.kind is ErrorKind.UPSTREAM

    @pytest.mark.parametrize("amount,decimals,expected", [
        ("1234567890000000000", 18, "1234567890000000000"),
        ("-7", 0, "-7"),
        (42, 6, "42"),
        ("0.5", 18, "500000000000000000"),
        ("1.25", 2, "125"),
        ("1e3", 0, "1000"),
        (0.5, 1, "5"),
        ("0.5", 0, None),
        ("0.0000001", 6, None),
        ("abc", 18, None),
        ("NaN", 18, None),
        (None, 18, None),
        (True, 0, None),
    ])
    def test_to_minimal_units(self, amount, decimals, expected):
        assert to_minimal_units(amount, decimals) == expected

    @pytest.mark.asyncio
    async def test_list_networks_passthrough(self, stub):
        token_route(stub)
        networks = {"networks": [{"id": "ethereum-sepolia", "name": "Sepolia", "status": "active"}]}
        stub.route("GET", "/v2/networks", json_body=networks)
        adapter = await make_adapter(stub)
        try:
            assert await adapter.list_networks() == networks
            await adapter.health_check()
        finally:
            await adapter.close()
