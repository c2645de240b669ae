from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from network.constants import NODE_TYPES
from network.geojson import cables_to_geojson, nodes_to_geojson
from network.queries import fetch_map_cables, fetch_map_nodes
from services.topology_store import normalize_filter

router = APIRouter(prefix="/api/geojson", tags=["geojson"])


@router.get("/nodes")
async def nodes_geojson(
    type: Optional[str] = Query(None, description="Only include nodes of this type"),
    db: AsyncSession = Depends(get_db),
):
    """All nodes as a FeatureCollection of Points."""
    node_type = normalize_filter(type, NODE_TYPES, "node type")
    nodes = await fetch_map_nodes(db, node_type)
    return nodes_to_geojson(nodes)


@router.get("/cables")
async def cables_geojson(db: AsyncSession = Depends(get_db)):
    """Cables with a drawn route as a FeatureCollection of LineStrings."""
    cables = await fetch_map_cables(db)
    return cables_to_geojson(cables)
