"""Request helpers shared by the API tests."""

from httpx import AsyncClient


async def create_node(client: AsyncClient, **overrides) -> dict:
    payload = {
        "name": "Node",
        "type": "ODP",
        "latitude": -6.2,
        "longitude": 106.8,
    }
    payload.update(overrides)
    response = await client.post("/api/nodes", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def create_cable(client: AsyncClient, **overrides) -> dict:
    payload = {"name": "Cable", "type": "ADSS", "core_count": 12}
    payload.update(overrides)
    response = await client.post("/api/cables", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def list_cores(client: AsyncClient, cable_id: int) -> list:
    response = await client.get(f"/api/cables/{cable_id}/cores")
    assert response.status_code == 200, response.text
    return response.json()["data"]


async def create_connection(client: AsyncClient, **payload) -> dict:
    response = await client.post("/api/connections", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]
