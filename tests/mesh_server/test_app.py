"""
Mesh Server HTTP Tests.

============================================================
PURPOSE
============================================================
Rosetta HTTP surface of the simulation server, and the "mesh"
adapter driven end to end against it.

============================================================
"""

import hashlib

import pytest
import pytest_asyncio
from aiohttp import test_utils

from chain_connector.adapters.rosetta import RosettaAdapter
from chain_connector.errors import ConnectorError, ErrorKind
from chain_connector.types import AccountRef, Message, RosettaPayload
from mesh_server.app import create_mesh_app
from mesh_server.config import MeshServerConfig


SEPOLIA = {"blockchain": "Ethereum", "network": "Sepolia"}


@pytest_asyncio.fixture
async def client():
    """TestClient over a mock-mode mesh server."""
    app = create_mesh_app(MeshServerConfig(rpc_url=None))
    test_client = test_utils.TestClient(test_utils.TestServer(app))
    await test_client.start_server()
    yield test_client
    await test_client.close()


def server_url(test_client: test_utils.TestClient) -> str:
    return str(test_client.make_url("")).rstrip("/")


# ============================================================
# ROUTES
# ============================================================

class TestRoutes:
    """Tests for the Rosetta routes."""

    @pytest.mark.asyncio
    async def test_network_list(self, client):
        response = await client.post("/network/list", json={})
        assert response.status == 200
        assert await response.json() == {"network_identifiers": [SEPOLIA]}

    @pytest.mark.asyncio
    async def test_network_status(self, client):
        response = await client.post("/network/status", json={"network_identifier": SEPOLIA})
        data = await response.json()
        assert response.status == 200
        assert data["current_block_identifier"]["index"] == 1000000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", [
        "/network/status",
        "/network/options",
        "/account/balance",
        "/block",
        "/construction/submit",
    ])
    async def test_unknown_network(self, client, path):
        response = await client.post(path, json={
            "network_identifier": {"blockchain": "Bitcoin", "network": "Mainnet"},
        })
        data = await response.json()

        assert response.status == 500
        assert data["code"] == 1
        assert data["message"] == "Invalid request"
        assert data["retriable"] is False
        assert "Bitcoin/Mainnet" in data["details"]["reason"]

    @pytest.mark.asyncio
    async def test_network_match_is_exact(self, client):
        response = await client.post("/network/status", json={
            "network_identifier": {"blockchain": "ethereum", "network": "sepolia"},
        })
        assert response.status == 500

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["{not json", "[1, 2]"])
    async def test_malformed_body(self, client, body):
        response = await client.post(
            "/block",
            data=body,
            headers={"Content-Type": "application/json"},
        )
        data = await response.json()
        assert response.status == 500
        assert data["code"] == 1

    @pytest.mark.asyncio
    async def test_missing_network_identifier(self, client):
        response = await client.post("/account/balance", json={"account_identifier": {"address": "0xa"}})
        data = await response.json()
        assert response.status == 500
        assert data["details"]["reason"] == "network_identifier is required"

    @pytest.mark.asyncio
    async def test_block_transaction_requires_hash(self, client):
        response = await client.post("/block/transaction", json={
            "network_identifier": SEPOLIA,
            "block_identifier": {"index": 1, "hash": "0xb"},
            "transaction_identifier": {"hash": ""},
        })
        data = await response.json()
        assert response.status == 500
        assert data["details"]["reason"] == "Transaction hash is required"

    @pytest.mark.asyncio
    async def test_account_coins(self, client):
        response = await client.post("/account/coins", json={
            "network_identifier": SEPOLIA,
            "account_identifier": {"address": "0xa"},
        })
        assert response.status == 200
        assert len((await response.json())["coins"]) == 2

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        data = await response.json()
        assert response.status == 200
        assert data == {
            "status": "healthy",
            "service": "mesh-server",
            "mode": "mock",
            "network": SEPOLIA,
        }

    @pytest.mark.asyncio
    async def test_live_disabled_ignores_rpc_url(self):
        config = MeshServerConfig(rpc_url="http://127.0.0.1:1", live_mode=False)
        test_client = test_utils.TestClient(test_utils.TestServer(create_mesh_app(config)))
        await test_client.start_server()
        try:
            response = await test_client.get("/health")
            assert (await response.json())["mode"] == "mock"
        finally:
            await test_client.close()

    @pytest.mark.asyncio
    async def test_unreachable_rpc_serves_mock_over_http(self):
        config = MeshServerConfig(rpc_url="http://127.0.0.1:1", rpc_timeout_seconds=2)
        test_client = test_utils.TestClient(test_utils.TestServer(create_mesh_app(config)))
        await test_client.start_server()
        try:
            health = await (await test_client.get("/health")).json()
            response = await test_client.post("/network/status", json={"network_identifier": SEPOLIA})
            data = await response.json()
        finally:
            await test_client.close()

        assert health["mode"] == "live"
        assert response.status == 200
        assert data["current_block_identifier"]["index"] == 1000000


# ============================================================
# ADAPTER END TO END
# ============================================================

class TestRosettaAdapterAgainstMeshServer:
    """The mesh adapter driven against the simulation server."""

    @pytest.mark.asyncio
    async def test_discovered_network_round_trips(self, client):
        adapter = RosettaAdapter()
        await adapter.init({"base_url": server_url(client)})
        try:
            await adapter.health_check()
            networks = await adapter.list_networks()
            status = await adapter.network_status(networks[0].network)
        finally:
            await adapter.close()

        assert networks[0].network.chain == "Ethereum"
        assert networks[0].network.network == "Sepolia"
        assert status["current_block_identifier"]["index"] == 1000000

    @pytest.mark.asyncio
    async def test_send_returns_deterministic_hash(self, client):
        adapter = RosettaAdapter()
        await adapter.init({"base_url": server_url(client), "network": "Sepolia", "blockchain": "Ethereum"})
        try:
            tx = await adapter.send(Message(payload=RosettaPayload(signed_tx="0xf86c0a8502540be400")))
            event = await adapter.receive(tx.hash)
        finally:
            await adapter.close()

        assert tx.hash == "0x" + hashlib.sha256(b"0xf86c0a8502540be400").hexdigest()
        assert tx.status == "submitted"
        assert event.data == {"tx": tx.hash}

    @pytest.mark.asyncio
    async def test_balance(self, client):
        adapter = RosettaAdapter()
        await adapter.init({"base_url": server_url(client)})
        try:
            result = await adapter.get_balance(adapter.default_network, AccountRef("0xa"))
        finally:
            await adapter.close()

        assert [b.currency.symbol for b in result.balances] == ["ETH", "USDC", "USDT"]
        assert result.balances[0].value == "5000000000000000000"
        assert result.block.index == 1000000

    @pytest.mark.asyncio
    async def test_wrong_network_is_upstream(self, client):
        adapter = RosettaAdapter()
        await adapter.init({"base_url": server_url(client), "network": "Mainnet"})
        try:
            with pytest.raises(ConnectorError) as exc_info:
                await adapter.network_status()
        finally:
            await adapter.close()

        assert exc_info.value.kind is ErrorKind.UPSTREAM
        assert "Invalid request" in exc_info.value.message
