"""
API tests for node CRUD, pagination and proximity search.
"""

import pytest
from httpx import AsyncClient

from helpers import create_cable, create_node


class TestNodeCrud:

    @pytest.mark.asyncio
    async def test_create_applies_defaults(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/nodes",
            json={"name": "ODP-01", "type": "odp", "latitude": -6.2, "longitude": 106.8},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Node created successfully"
        node = body["data"]
        assert node["type"] == "ODP"
        assert node["capacity_ports"] == 8
        assert node["used_ports"] == 0
        assert node["status"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_type(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/nodes",
            json={"name": "X", "type": "ROUTER", "latitude": -6.2, "longitude": 106.8},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        assert body["errors"][0]["field"] == "type"

    @pytest.mark.asyncio
    async def test_create_rejects_used_over_capacity(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/nodes",
            json={"name": "X", "type": "ODP", "latitude": -6.2, "longitude": 106.8,
                  "capacity_ports": 4, "used_ports": 5},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_rejects_used_over_capacity(self, async_client: AsyncClient):
        node = await create_node(async_client, capacity_ports=4)
        response = await async_client.put(f"/api/nodes/{node['id']}", json={"used_ports": 6})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_rejects_zero_zero_location(self, async_client: AsyncClient):
        node = await create_node(async_client)
        response = await async_client.put(
            f"/api/nodes/{node['id']}", json={"latitude": 0, "longitude": 0}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Latitude and Longitude are required"

        response = await async_client.get(f"/api/nodes/{node['id']}")
        assert response.json()["data"]["latitude"] == -6.2

        # One axis at zero is a real location
        response = await async_client.put(f"/api/nodes/{node['id']}", json={"latitude": 0})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_get_update_delete(self, async_client: AsyncClient):
        node = await create_node(async_client, name="Closure A", type="CLOSURE")

        response = await async_client.get(f"/api/nodes/{node['id']}")
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Closure A"

        response = await async_client.put(
            f"/api/nodes/{node['id']}", json={"status": "maintenance", "used_ports": 2}
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "MAINTENANCE"
        assert response.json()["data"]["used_ports"] == 2

        response = await async_client.delete(f"/api/nodes/{node['id']}")
        assert response.status_code == 200
        assert response.json()["success"] is True

        response = await async_client.get(f"/api/nodes/{node['id']}")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Node not found"}

    @pytest.mark.asyncio
    async def test_delete_missing_node_404(self, async_client: AsyncClient):
        response = await async_client.delete("/api/nodes/9999")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_referenced_node_409(self, async_client: AsyncClient):
        node = await create_node(async_client)
        await create_cable(async_client, origin_node_id=node["id"])

        response = await async_client.delete(f"/api/nodes/{node['id']}")
        assert response.status_code == 409
        assert "cables" in response.json()["error"]

        response = await async_client.get(f"/api/nodes/{node['id']}")
        assert response.status_code == 200


class TestNodeListing:

    @pytest.mark.asyncio
    async def test_pagination_envelope(self, async_client: AsyncClient):
        for i in range(5):
            await create_node(async_client, name=f"Node {i}")

        response = await async_client.get("/api/nodes", params={"limit": 2, "offset": 0})
        body = response.json()
        assert response.status_code == 200
        assert len(body["data"]) == 2
        assert body["pagination"] == {"total": 5, "limit": 2, "offset": 0, "has_more": True}

        response = await async_client.get("/api/nodes", params={"limit": 2, "offset": 4})
        body = response.json()
        assert len(body["data"]) == 1
        assert body["pagination"]["has_more"] is False

    @pytest.mark.asyncio
    async def test_offset_beyond_total(self, async_client: AsyncClient):
        await create_node(async_client)

        response = await async_client.get("/api/nodes", params={"offset": 50})
        body = response.json()
        assert body["data"] == []
        assert body["pagination"]["total"] == 1
        assert body["pagination"]["has_more"] is False

    @pytest.mark.asyncio
    async def test_default_limit(self, async_client: AsyncClient):
        response = await async_client.get("/api/nodes")
        assert response.json()["pagination"]["limit"] == 100

    @pytest.mark.asyncio
    async def test_newest_first(self, async_client: AsyncClient):
        first = await create_node(async_client, name="first")
        second = await create_node(async_client, name="second")

        response = await async_client.get("/api/nodes")
        ids = [n["id"] for n in response.json()["data"]]
        assert ids == [second["id"], first["id"]]

    @pytest.mark.asyncio
    async def test_filters(self, async_client: AsyncClient):
        await create_node(async_client, type="OLT")
        await create_node(async_client, type="ODP")
        await create_node(async_client, type="ODP", status="PLAN")

        response = await async_client.get("/api/nodes", params={"type": "ODP"})
        assert response.json()["pagination"]["total"] == 2

        response = await async_client.get("/api/nodes", params={"type": "odp", "status": "PLAN"})
        assert response.json()["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_invalid_filter_value_400(self, async_client: AsyncClient):
        response = await async_client.get("/api/nodes", params={"type": "ROUTER"})
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestNearby:

    @pytest.mark.asyncio
    async def test_zero_zero_rejected(self, async_client: AsyncClient):
        response = await async_client.get("/api/nodes/nearby", params={"lat": 0, "lng": 0})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_coordinates_rejected(self, async_client: AsyncClient):
        response = await async_client.get("/api/nodes/nearby")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_single_coordinate_rejected(self, async_client: AsyncClient):
        await create_node(async_client, name="meridian", latitude=-6.2, longitude=0.001)

        response = await async_client.get("/api/nodes/nearby", params={"lat": -6.2})
        assert response.status_code == 400
        assert response.json()["error"] == "lat and lng are required"

        response = await async_client.get("/api/nodes/nearby", params={"lng": 0.001})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_sorted_by_distance_within_radius(self, async_client: AsyncClient):
        far = await create_node(async_client, name="far", latitude=-6.2, longitude=106.81)   # ~1.1 km
        near = await create_node(async_client, name="near", latitude=-6.2, longitude=106.803)  # ~330 m
        await create_node(async_client, name="outside", latitude=-6.3, longitude=106.8)

        response = await async_client.get(
            "/api/nodes/nearby", params={"lat": -6.2, "lng": 106.8, "radius": 2000}
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert [n["id"] for n in data] == [near["id"], far["id"]]
        assert data[0]["distance_km"] < data[1]["distance_km"] <= 2.0

    @pytest.mark.asyncio
    async def test_default_radius_is_one_km(self, async_client: AsyncClient):
        await create_node(async_client, name="far", latitude=-6.2, longitude=106.81)
        near = await create_node(async_client, name="near", latitude=-6.2, longitude=106.803)

        response = await async_client.get("/api/nodes/nearby", params={"lat": -6.2, "lng": 106.8})
        assert [n["id"] for n in response.json()["data"]] == [near["id"]]

    @pytest.mark.asyncio
    async def test_type_filter(self, async_client: AsyncClient):
        await create_node(async_client, type="POLE", latitude=-6.2, longitude=106.801)
        odp = await create_node(async_client, type="ODP", latitude=-6.2, longitude=106.802)

        response = await async_client.get(
            "/api/nodes/nearby", params={"lat": -6.2, "lng": 106.8, "type": "ODP"}
        )
        assert [n["id"] for n in response.json()["data"]] == [odp["id"]]

    @pytest.mark.asyncio
    async def test_radius_above_limit_rejected(self, async_client: AsyncClient):
        response = await async_client.get(
            "/api/nodes/nearby", params={"lat": -6.2, "lng": 106.8, "radius": 150000}
        )
        assert response.status_code == 400
