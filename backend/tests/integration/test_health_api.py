"""Integration tests for health, metrics and root endpoints."""

from httpx import AsyncClient


class TestHealth:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["tactics_loaded"] == 14
        assert data["mitre_attack_version"] == "14.1"

    async def test_generated_request_id(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.headers["X-Request-ID"]

    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"


class TestAggregationMetrics:
    async def test_empty_window(self, client: AsyncClient):
        response = await client.get("/health/metrics")

        assert response.status_code == 200
        data = response.json()
        assert data["total_calls"] == 0
        assert data["latency"]["sample_size"] == 0

    async def test_counts_scorecard_calls(self, client: AsyncClient):
        body = {
            "query": {
                "start": "2024-03-01T00:00:00Z",
                "end": "2024-03-31T00:00:00Z",
            },
            "snapshot": {
                "techniques": [
                    {
                        "id": "t",
                        "operationId": "op",
                        "startTime": "2024-03-02T00:00:00Z",
                    }
                ]
            },
        }
        await client.post("/api/v1/scorecard/metrics", json=body)
        await client.post("/api/v1/analytics/techniques", json=body)

        data = (await client.get("/health/metrics")).json()

        assert data["total_calls"] == 2
        assert data["calls_by_operation"] == {"metrics": 1, "techniques": 1}
        assert data["techniques_in_window"] == 2
