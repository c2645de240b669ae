from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from network.geo import find_nearby
from schemas import (
    NearbyNodeResponse,
    NodeCreate,
    NodeResponse,
    NodeUpdate,
    paginated_response,
    success_response,
)
from services import topology_store as store

router = APIRouter(prefix="/api/nodes", tags=["nodes"])


@router.get("")
async def list_nodes(
    type: Optional[str] = Query(None, description="Filter by node type"),
    status: Optional[str] = Query(None, description="Filter by node status"),
    limit: Optional[int] = Query(None, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """
    List nodes, newest first.

    Query parameters:
    - type: OLT, ODC, ODP, CLOSURE, POLE or CUSTOMER
    - status: ACTIVE, MAINTENANCE, PLAN or INACTIVE
    - limit / offset: page window (default limit 100)
    """
    page = await store.list_nodes(db, node_type=type, status=status, limit=limit, offset=offset)
    return paginated_response(
        [NodeResponse.model_validate(n) for n in page.items],
        page.total,
        page.limit,
        page.offset,
    )


@router.get("/nearby")
async def nearby_nodes(
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    radius: Optional[float] = Query(None, description="Search radius in meters"),
    type: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Nodes within `radius` meters of (lat, lng), nearest first.

    Omitted radius defaults to 1000 m.
    """
    radius_m = radius if radius is not None else settings.NEARBY_DEFAULT_RADIUS_M
    matches = await find_nearby(db, lat, lng, radius_m / 1000.0, node_type=type)

    data = [
        NearbyNodeResponse.model_validate(
            {**NodeResponse.model_validate(node).model_dump(), "distance_km": round(distance, 4)}
        )
        for node, distance in matches
    ]
    return success_response(data)


@router.get("/{node_id}")
async def get_node(node_id: int, db: AsyncSession = Depends(get_db)):
    node = await store.get_node(db, node_id)
    return success_response(NodeResponse.model_validate(node))


@router.post("", status_code=201)
async def create_node(node: NodeCreate, db: AsyncSession = Depends(get_db)):
    db_node = await store.create_node(db, node)
    return success_response(NodeResponse.model_validate(db_node), "Node created successfully")


@router.put("/{node_id}")
async def update_node(node_id: int, node_update: NodeUpdate, db: AsyncSession = Depends(get_db)):
    """Update only the provided fields of a node."""
    db_node = await store.update_node(db, node_id, node_update)
    return success_response(NodeResponse.model_validate(db_node), "Node updated successfully")


@router.delete("/{node_id}")
async def delete_node(node_id: int, db: AsyncSession = Depends(get_db)):
    """
    Delete a node.

    Nodes still referenced by a cable, connection or customer are refused
    with 409.
    """
    await store.delete_node(db, node_id)
    return success_response(message="Node deleted successfully")
