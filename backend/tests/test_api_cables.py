"""
API tests for cables and their cores.
"""

import pytest
from httpx import AsyncClient

from helpers import create_cable, create_node, list_cores


class TestCableCrud:

    @pytest.mark.asyncio
    async def test_create_generates_cores(self, async_client: AsyncClient):
        cable = await create_cable(async_client, core_count=24)
        assert cable["color_hex"] == "#000000"
        assert cable["status"] == "ACTIVE"

        cores = await list_cores(async_client, cable["id"])
        assert len(cores) == 24
        assert [c["core_index"] for c in cores] == list(range(1, 25))
        assert all(c["status"] == "VACANT" for c in cores)

        assert cores[0]["tube_color"] == "Blue"
        assert cores[0]["core_color"] == "Blue"
        assert cores[12]["tube_color"] == "Orange"
        assert cores[12]["core_color"] == "Blue"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("core_count", [0, 289])
    async def test_core_count_bounds(self, async_client: AsyncClient, core_count):
        response = await async_client.post(
            "/api/cables", json={"type": "ADSS", "core_count": core_count}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_origin_node_rejected(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/cables", json={"type": "DUCT", "core_count": 12, "origin_node_id": 999}
        )
        assert response.status_code == 400
        assert "origin_node_id" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_invalid_path_coordinates(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/cables",
            json={"type": "DROP", "core_count": 2, "path_coordinates": [[106.8, 95.0], [106.9, -6.2]]},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_core_count_is_fixed(self, async_client: AsyncClient):
        cable = await create_cable(async_client, core_count=12)

        response = await async_client.put(f"/api/cables/{cable['id']}", json={"core_count": 24})
        assert response.status_code == 400

        # Echoing the same count back is allowed
        response = await async_client.put(
            f"/api/cables/{cable['id']}", json={"core_count": 12, "name": "Renamed"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Renamed"
        assert len(await list_cores(async_client, cable["id"])) == 12

    @pytest.mark.asyncio
    async def test_update_links_nodes(self, async_client: AsyncClient):
        a = await create_node(async_client, name="A")
        b = await create_node(async_client, name="B")
        cable = await create_cable(async_client)

        response = await async_client.put(
            f"/api/cables/{cable['id']}",
            json={"origin_node_id": a["id"], "dest_node_id": b["id"], "color_hex": "#1E90FF"},
        )
        data = response.json()["data"]
        assert data["origin_node_id"] == a["id"]
        assert data["dest_node_id"] == b["id"]
        assert data["color_hex"] == "#1e90ff"

    @pytest.mark.asyncio
    async def test_delete_removes_cores(self, async_client: AsyncClient):
        cable = await create_cable(async_client)

        response = await async_client.delete(f"/api/cables/{cable['id']}")
        assert response.status_code == 200

        response = await async_client.get(f"/api/cables/{cable['id']}/cores")
        assert response.status_code == 404

        response = await async_client.delete(f"/api/cables/{cable['id']}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_filters(self, async_client: AsyncClient):
        node = await create_node(async_client)
        await create_cable(async_client, type="ADSS", origin_node_id=node["id"])
        await create_cable(async_client, type="DROP")

        response = await async_client.get("/api/cables", params={"type": "DROP"})
        assert response.json()["pagination"]["total"] == 1

        response = await async_client.get("/api/cables", params={"origin_node_id": node["id"]})
        assert response.json()["pagination"]["total"] == 1


class TestCoreUpdate:

    @pytest.mark.asyncio
    async def test_manual_override(self, async_client: AsyncClient):
        cable = await create_cable(async_client, core_count=4)
        core = (await list_cores(async_client, cable["id"]))[1]

        response = await async_client.put(
            f"/api/cables/{cable['id']}/cores/{core['id']}",
            json={"status": "damaged", "core_color": "violet"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "DAMAGED"
        assert data["core_color"] == "Violet"

    @pytest.mark.asyncio
    async def test_core_from_other_cable_404(self, async_client: AsyncClient):
        first = await create_cable(async_client, core_count=2)
        second = await create_cable(async_client, core_count=2)
        core = (await list_cores(async_client, first["id"]))[0]

        response = await async_client.put(
            f"/api/cables/{second['id']}/cores/{core['id']}", json={"status": "RESERVED"}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_status(self, async_client: AsyncClient):
        cable = await create_cable(async_client, core_count=2)
        core = (await list_cores(async_client, cable["id"]))[0]

        response = await async_client.put(
            f"/api/cables/{cable['id']}/cores/{core['id']}", json={"status": "BROKEN"}
        )
        assert response.status_code == 400
