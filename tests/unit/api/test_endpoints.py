"""Tests for the pool and quote endpoints."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from dex.api.endpoints import get_router
from dex.api.main import app
from dex.pools import PoolType
from dex.routing import Route
from tests.helpers import E6, E18, seed_stable_pool, seed_volatile_pool


@pytest.fixture
def dai_uni(registry, dai, uni):
    return seed_volatile_pool(registry, dai, 1_000 * E18, uni, 10 * E18)


@pytest.fixture
def stables(registry, dai, usdc, usdt):
    return seed_stable_pool(
        registry, [dai, usdc, usdt], [1_000_000 * E18, 1_000_000 * E6, 1_000_000 * E6]
    )


@pytest.fixture
def client(router) -> Iterator[TestClient]:
    """Test client serving the test deployment."""
    app.dependency_overrides[get_router] = lambda: router
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "version" in response.json()


class TestPools:
    """Tests for GET /pools and GET /pools/{address}."""

    def test_empty_registry(self, client):
        response = client.get("/pools")
        assert response.status_code == 200
        assert response.json() == {"pools": []}

    def test_lists_both_curves(self, client, dai_uni, stables):
        pools = client.get("/pools").json()["pools"]
        assert [p["poolType"] for p in pools] == [PoolType.VOLATILE, PoolType.STABLE]

    def test_volatile_pool_info(self, client, dai_uni, dai):
        data = client.get(f"/pools/{dai_uni.address}").json()
        assert data["address"] == dai_uni.address
        assert data["tokens"] == list(dai_uni.tokens)
        assert data["balances"] == [str(r) for r in dai_uni.get_reserves()]
        assert data["adminBalances"] == ["0", "0"]
        assert data["swapFeeRate"] == 30_000_000
        assert data["lpToken"] == dai_uni.address
        assert data["totalSupply"] == str(100 * E18)
        assert data["amplification"] is None
        assert data["virtualPrice"] is None

    def test_stable_pool_info(self, client, stables):
        data = client.get(f"/pools/{stables.address}").json()
        assert data["poolType"] == 2
        assert data["amplification"] == 200
        assert data["virtualPrice"] == str(E18)
        assert data["lpToken"] == stables.lp_token.address
        assert data["totalSupply"] == str(3_000_000 * E18)

    def test_unknown_pool_is_404(self, client):
        response = client.get("/pools/0x" + "ab" * 20)
        assert response.status_code == 404

    def test_malformed_address_is_404(self, client):
        response = client.get("/pools/not-an-address")
        assert response.status_code == 404


class TestQuotes:
    """Tests for the POST /quote/* endpoints."""

    def test_amounts_out(self, client, router, dai_uni, stables, dai, usdc, uni):
        body = {
            "amountIn": str(100 * E6),
            "routes": [
                {"from": usdc.address, "to": dai.address, "pool": stables.address, "poolType": 2},
                {"from": dai.address, "to": uni.address, "pool": dai_uni.address},
            ],
        }
        response = client.post("/quote/amounts-out", json=body)

        assert response.status_code == 200
        data = response.json()
        routes = [
            Route(usdc.address, dai.address, stables.address, PoolType.STABLE),
            Route(dai.address, uni.address, dai_uni.address),
        ]
        expected = router.get_amounts_out_path(100 * E6, routes)
        assert data["amounts"] == [str(a) for a in expected]
        assert data["amountOut"] == str(expected[-1])

    def test_add_liquidity_quote(self, client, dai_uni, dai, uni):
        body = {
            "poolType": 1,
            "tokens": [dai.address, uni.address],
            "amountDesireds": [str(100 * E18), str(100 * E18)],
        }
        data = client.post("/quote/add-liquidity", json=body).json()
        assert data == {"amounts": [str(100 * E18), str(E18)], "liquidity": str(10 * E18)}

    def test_remove_liquidity_quote(self, client, stables, dai, usdc, usdt):
        body = {
            "poolType": 2,
            "tokens": [dai.address, usdc.address, usdt.address],
            "liquidity": str(3_000 * E18),
        }
        data = client.post("/quote/remove-liquidity", json=body).json()
        assert data == {"amounts": [str(1_000 * E18), str(1_000 * E6), str(1_000 * E6)]}

    def test_remove_liquidity_one_token_quote(self, client, router, stables, dai, usdc, usdt):
        tokens = [dai.address, usdc.address, usdt.address]
        body = {"tokens": tokens, "liquidity": str(E18), "token": usdc.address}
        data = client.post("/quote/remove-liquidity-one-token", json=body).json()
        assert data == {
            "amount": str(router.quote_remove_liquidity_one_token(tokens, E18, usdc.address))
        }

    def test_remove_liquidity_imbalance_quote(self, client, router, stables, dai, usdc, usdt):
        tokens = [dai.address, usdc.address, usdt.address]
        amounts = [E18, 0, E6]
        body = {"tokens": tokens, "amounts": [str(a) for a in amounts]}
        data = client.post("/quote/remove-liquidity-imbalance", json=body).json()
        assert data == {
            "burnAmount": str(router.quote_remove_liquidity_imbalance(tokens, amounts))
        }


class TestErrors:
    """Engine rejections and malformed requests."""

    def test_engine_error_is_400_with_class_name(self, client, dai_uni, dai, uni):
        body = {
            "amountIn": "1",
            "routes": [{"from": dai.address, "to": uni.address, "pool": "0x" + "ab" * 20}],
        }
        response = client.post("/quote/amounts-out", json=body)
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "InvalidPairType"
        assert data["detail"]

    def test_missing_stable_pool_is_400(self, client, dai, uni):
        body = {"tokens": [dai.address, uni.address], "liquidity": "1", "token": dai.address}
        response = client.post("/quote/remove-liquidity-one-token", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "NotStablePair"

    def test_empty_route_is_422(self, client):
        response = client.post("/quote/amounts-out", json={"amountIn": "1", "routes": []})
        assert response.status_code == 422

    @pytest.mark.parametrize("amount", ["-1", "abc", str(2**256)])
    def test_invalid_uint256_is_422(self, client, dai, uni, dai_uni, amount):
        body = {
            "amountIn": amount,
            "routes": [{"from": dai.address, "to": uni.address, "pool": dai_uni.address}],
        }
        response = client.post("/quote/amounts-out", json=body)
        assert response.status_code == 422

    def test_invalid_address_is_422(self, client):
        body = {"poolType": 1, "tokens": ["0x1234"], "liquidity": "1"}
        response = client.post("/quote/remove-liquidity", json=body)
        assert response.status_code == 422
