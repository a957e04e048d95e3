"""Leaderboard endpoints."""

from __future__ import annotations

from httpx import AsyncClient

from tests.conftest import auth_headers, register_via_api


class TestLeaderboardApi:
    async def test_empty_leaderboard(self, client: AsyncClient):
        response = await client.get("/api/v1/leaderboard")
        assert response.status_code == 200
        assert response.json() == {"scope": "GLOBAL", "total": 0, "leaderboard": []}

    async def test_global_order(self, client: AsyncClient, mock_email_service):
        a = await register_via_api(client, "anna")
        b = await register_via_api(client, "kenji", continent="ASIA", country_code="JP")
        await client.post("/api/v1/purchase", json={"amountUsd": 20}, headers=auth_headers(b["access_token"]))
        await client.post("/api/v1/purchase", json={"amountUsd": 5}, headers=auth_headers(a["access_token"]))

        data = (await client.get("/api/v1/leaderboard")).json()
        assert data["total"] == 2
        assert [e["username"] for e in data["leaderboard"]] == ["kenji", "anna"]
        assert [e["global_rank"] for e in data["leaderboard"]] == [1, 2]
        assert [e["continent_rank"] for e in data["leaderboard"]] == [1, 1]
        assert data["leaderboard"][0]["country_code"] == "JP"

    async def test_continent_filter(self, client: AsyncClient, mock_email_service):
        await register_via_api(client, "anna")
        await register_via_api(client, "kenji", continent="ASIA", country_code="JP")
        await register_via_api(client, "lukas", country_code="DE")

        data = (await client.get("/api/v1/leaderboard", params={"continent": "EUROPE"})).json()
        assert data["scope"] == "EUROPE"
        assert data["total"] == 2
        assert [e["username"] for e in data["leaderboard"]] == ["anna", "lukas"]
        assert [e["continent_rank"] for e in data["leaderboard"]] == [1, 2]

    async def test_limit(self, client: AsyncClient, mock_email_service):
        for name in ("anna", "bruno", "chloe"):
            await register_via_api(client, name)
        data = (await client.get("/api/v1/leaderboard", params={"limit": 2})).json()
        assert len(data["leaderboard"]) == 2
        assert data["total"] == 3

    async def test_unknown_continent_is_422(self, client: AsyncClient):
        response = await client.get("/api/v1/leaderboard", params={"continent": "ATLANTIS"})
        assert response.status_code == 422

    async def test_continent_counts(self, client: AsyncClient, mock_email_service):
        await register_via_api(client, "anna")
        await register_via_api(client, "kenji", continent="ASIA", country_code="JP")
        await register_via_api(client, "lukas", country_code="DE")

        data = (await client.get("/api/v1/leaderboard/continents")).json()
        counts = {c["continent"]: c["users"] for c in data["continents"]}
        assert counts["EUROPE"] == 2
        assert counts["ASIA"] == 1
        assert counts["OCEANIA"] == 0
        assert data["total"] == 3
        names = {c["continent"]: c["display_name"] for c in data["continents"]}
        assert names["NORTH_AMERICA"] == "NORTH AMERICA"
