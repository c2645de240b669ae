"""API tests for the GeoJSON map layers."""

import pytest
from httpx import AsyncClient

from helpers import create_cable, create_node


@pytest.mark.asyncio
async def test_nodes_feature_collection(async_client: AsyncClient):
    await create_node(async_client, name="OLT", type="OLT", latitude=-6.2, longitude=106.8)
    await create_node(async_client, name="ODP", type="ODP", latitude=-6.21, longitude=106.81)

    response = await async_client.get("/api/geojson/nodes")
    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "FeatureCollection"
    assert len(body["features"]) == 2

    feature = body["features"][0]
    assert feature["type"] == "Feature"
    assert feature["geometry"] == {"type": "Point", "coordinates": [106.8, -6.2]}
    assert feature["properties"]["name"] == "OLT"


@pytest.mark.asyncio
async def test_nodes_type_filter(async_client: AsyncClient):
    await create_node(async_client, type="OLT")
    await create_node(async_client, type="ODP")

    response = await async_client.get("/api/geojson/nodes", params={"type": "olt"})
    features = response.json()["features"]
    assert [f["properties"]["type"] for f in features] == ["OLT"]


@pytest.mark.asyncio
async def test_cables_only_with_route(async_client: AsyncClient):
    routed = await create_cable(
        async_client, name="Routed", path_coordinates=[[106.8, -6.2], [106.81, -6.21]]
    )
    await create_cable(async_client, name="Unrouted")
    await create_cable(async_client, name="Single point", path_coordinates=[[106.8, -6.2]])

    response = await async_client.get("/api/geojson/cables")
    features = response.json()["features"]
    assert len(features) == 1
    assert features[0]["geometry"]["type"] == "LineString"
    assert features[0]["geometry"]["coordinates"] == [[106.8, -6.2], [106.81, -6.21]]
    assert features[0]["properties"]["id"] == routed["id"]
