from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from network.splice_matrix import get_splice_matrix
from schemas import (
    ConnectionCreate,
    ConnectionResponse,
    ReconcileResponse,
    SpliceMatrixResponse,
    paginated_response,
    success_response,
)
from services import topology_store as store

router = APIRouter(prefix="/api/connections", tags=["connections"])


@router.get("")
async def list_connections(
    location_node_id: Optional[int] = Query(None),
    input_type: Optional[str] = Query(None),
    input_id: Optional[int] = Query(None),
    output_type: Optional[str] = Query(None),
    output_id: Optional[int] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    page = await store.list_connections(
        db,
        location_node_id=location_node_id,
        input_type=input_type,
        input_id=input_id,
        output_type=output_type,
        output_id=output_id,
        limit=limit,
        offset=offset,
    )
    return paginated_response(
        [ConnectionResponse.model_validate(c) for c in page.items],
        page.total,
        page.limit,
        page.offset,
    )


@router.get("/matrix/{node_id}")
async def splice_matrix(node_id: int, db: AsyncSession = Depends(get_db)):
    """
    Core-to-core splice matrix at a location.

    Includes the cores on each side, connections touching ports, and a
    consistency report (cores used twice, endpoints with no core row).
    """
    matrix = await get_splice_matrix(db, node_id)
    return success_response(SpliceMatrixResponse.model_validate(matrix, from_attributes=True))


@router.get("/location/{node_id}")
async def connections_at_location(node_id: int, db: AsyncSession = Depends(get_db)):
    connections = await store.connections_at_location(db, node_id)
    return success_response([ConnectionResponse.model_validate(c) for c in connections])


@router.post("/reconcile")
async def reconcile_cores(db: AsyncSession = Depends(get_db)):
    """Recompute USED/VACANT core states from the connection table."""
    result = await store.reconcile_cores(db)
    return success_response(
        ReconcileResponse(cores_checked=result.cores_checked, cores_changed=result.cores_changed),
        f"{result.cores_changed} core(s) updated",
    )


@router.get("/{connection_id}")
async def get_connection(connection_id: int, db: AsyncSession = Depends(get_db)):
    connection = await store.get_connection(db, connection_id)
    return success_response(ConnectionResponse.model_validate(connection))


@router.post("", status_code=201)
async def create_connection(connection: ConnectionCreate, db: AsyncSession = Depends(get_db)):
    """Create a splice; the cores it joins become USED."""
    db_connection = await store.create_connection(db, connection)
    return success_response(
        ConnectionResponse.model_validate(db_connection), "Connection created successfully"
    )


@router.delete("/{connection_id}")
async def delete_connection(connection_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a splice; cores no longer spliced anywhere return to VACANT."""
    await store.delete_connection(db, connection_id)
    return success_response(message="Connection deleted successfully")
