from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from schemas import (
    CableCreate,
    CableResponse,
    CableUpdate,
    CoreResponse,
    CoreUpdate,
    paginated_response,
    success_response,
)
from services import topology_store as store

router = APIRouter(prefix="/api/cables", tags=["cables"])


@router.get("")
async def list_cables(
    type: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    origin_node_id: Optional[int] = Query(None),
    dest_node_id: Optional[int] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List cables, newest first, with optional type/status/endpoint filters."""
    page = await store.list_cables(
        db,
        cable_type=type,
        status=status,
        origin_node_id=origin_node_id,
        dest_node_id=dest_node_id,
        limit=limit,
        offset=offset,
    )
    return paginated_response(
        [CableResponse.model_validate(c) for c in page.items],
        page.total,
        page.limit,
        page.offset,
    )


@router.get("/{cable_id}")
async def get_cable(cable_id: int, db: AsyncSession = Depends(get_db)):
    cable = await store.get_cable(db, cable_id)
    return success_response(CableResponse.model_validate(cable))


@router.post("", status_code=201)
async def create_cable(cable: CableCreate, db: AsyncSession = Depends(get_db)):
    """Create a cable; its cores are generated in the same transaction."""
    db_cable = await store.create_cable(db, cable)
    return success_response(CableResponse.model_validate(db_cable), "Cable created successfully")


@router.put("/{cable_id}")
async def update_cable(cable_id: int, cable_update: CableUpdate, db: AsyncSession = Depends(get_db)):
    """Update a cable. core_count cannot change after creation."""
    db_cable = await store.update_cable(db, cable_id, cable_update)
    return success_response(CableResponse.model_validate(db_cable), "Cable updated successfully")


@router.delete("/{cable_id}")
async def delete_cable(cable_id: int, db: AsyncSession = Depends(get_db)):
    await store.delete_cable(db, cable_id)
    return success_response(message="Cable deleted successfully")


@router.get("/{cable_id}/cores")
async def list_cores(cable_id: int, db: AsyncSession = Depends(get_db)):
    """Cores of a cable, ordered by index."""
    cores = await store.list_cores(db, cable_id)
    return success_response([CoreResponse.model_validate(c) for c in cores])


@router.put("/{cable_id}/cores/{core_id}")
async def update_core(
    cable_id: int,
    core_id: int,
    core_update: CoreUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Manually set a core's colors or state (e.g. RESERVED, DAMAGED)."""
    core = await store.update_core(db, cable_id, core_id, core_update)
    return success_response(CoreResponse.model_validate(core), "Core updated successfully")
