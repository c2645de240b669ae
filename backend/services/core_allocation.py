"""
Core allocation manager.

Handles:
- Generating the color-coded cores of a new cable
- Marking cores USED / VACANT as splices are made and removed
- Recomputing every core's allocation state from the live connection table

The hooks never commit; they run inside the caller's transaction so the
connection write and the core state change land together.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, and_

from models import CableCore, Connection
from network.constants import (
    CORE_STATUS_DAMAGED,
    CORE_STATUS_USED,
    CORE_STATUS_VACANT,
    ENDPOINT_CORE,
    FIBER_COLORS,
    MANUAL_CORE_STATUSES,
)
from utils.logging_utils import LogTimer

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result of a core state reconciliation."""
    cores_checked: int = 0
    cores_changed: int = 0


def core_colors(core_index: int) -> tuple[str, str]:
    """
    Return (tube_color, core_color) for a 1-based core index.

    Twelve cores per tube; the tube sequence wraps after twelve tubes.
    """
    palette_size = len(FIBER_COLORS)
    tube = FIBER_COLORS[((core_index - 1) // palette_size) % palette_size]
    core = FIBER_COLORS[(core_index - 1) % palette_size]
    return tube, core


def generate_cores(cable_id: Optional[int], count: int) -> list[CableCore]:
    """Build `count` unsaved VACANT cores with indices 1..count."""
    if count < 1:
        raise ValueError(f"core count must be at least 1, got {count}")

    cores = []
    for index in range(1, count + 1):
        tube, core = core_colors(index)
        cores.append(
            CableCore(
                cable_id=cable_id,
                core_index=index,
                tube_color=tube,
                core_color=core,
                status=CORE_STATUS_VACANT,
            )
        )
    return cores


def core_endpoint_ids(connection) -> list[int]:
    """Core ids referenced by a connection's CORE endpoints."""
    ids = []
    if connection.input_type == ENDPOINT_CORE:
        ids.append(connection.input_id)
    if connection.output_type == ENDPOINT_CORE:
        ids.append(connection.output_id)
    return ids


async def _load_cores(db: AsyncSession, core_ids: Iterable[int]) -> dict:
    ids = set(core_ids)
    if not ids:
        return {}
    result = await db.execute(select(CableCore).where(CableCore.id.in_(ids)))
    return {c.id: c for c in result.scalars().all()}


async def on_connection_created(db: AsyncSession, connection: Connection) -> None:
    """Mark the cores a new connection attaches to as USED.

    A RESERVED core that gets spliced becomes USED and its reservation is
    consumed; removing the splice later returns it to VACANT, not RESERVED.
    DAMAGED cores keep their state.
    """
    core_ids = core_endpoint_ids(connection)
    cores = await _load_cores(db, core_ids)

    for core_id in core_ids:
        core = cores.get(core_id)
        if core is None:
            logger.warning(
                f"Connection {connection.id} references missing core {core_id}; state not updated"
            )
            continue
        if core.status == CORE_STATUS_DAMAGED:
            logger.warning(
                f"Connection {connection.id} attached to DAMAGED core {core_id}; leaving it DAMAGED"
            )
            continue
        if core.status != CORE_STATUS_USED:
            logger.debug(f"Core {core_id}: {core.status} -> {CORE_STATUS_USED}")
            core.status = CORE_STATUS_USED


async def _still_referenced(db: AsyncSession, core_id: int, excluding_id: Optional[int]) -> bool:
    query = select(func.count(Connection.id)).where(
        or_(
            and_(Connection.input_type == ENDPOINT_CORE, Connection.input_id == core_id),
            and_(Connection.output_type == ENDPOINT_CORE, Connection.output_id == core_id),
        )
    )
    if excluding_id is not None:
        query = query.where(Connection.id != excluding_id)
    result = await db.execute(query)
    return (result.scalar() or 0) > 0


async def on_connection_deleted(db: AsyncSession, connection: Connection) -> None:
    """Release the cores of a removed connection back to VACANT.

    A core stays USED while another connection still references it;
    RESERVED and DAMAGED are operator decisions and are never touched.
    """
    core_ids = core_endpoint_ids(connection)
    cores = await _load_cores(db, core_ids)

    for core_id in core_ids:
        core = cores.get(core_id)
        if core is None:
            logger.warning(
                f"Deleted connection {connection.id} referenced missing core {core_id}"
            )
            continue
        if core.status in MANUAL_CORE_STATUSES:
            continue
        if await _still_referenced(db, core_id, connection.id):
            logger.debug(f"Core {core_id} still spliced elsewhere; keeping {core.status}")
            continue
        if core.status != CORE_STATUS_VACANT:
            logger.debug(f"Core {core_id}: {core.status} -> {CORE_STATUS_VACANT}")
            core.status = CORE_STATUS_VACANT


async def reconcile_core_states(db: AsyncSession) -> ReconcileResult:
    """
    Recompute USED/VACANT for every core from the connection table.

    Repairs drift left by manual edits or interrupted writes. Commits once
    at the end when anything changed.
    """
    result = ReconcileResult()

    with LogTimer(logger, "Reconciling core states") as timer:
        conn_result = await db.execute(select(Connection))
        referenced = set()
        for connection in conn_result.scalars().all():
            referenced.update(core_endpoint_ids(connection))

        core_result = await db.execute(select(CableCore).order_by(CableCore.id))
        for core in core_result.scalars().all():
            result.cores_checked += 1
            if core.status in MANUAL_CORE_STATUSES:
                continue
            desired = CORE_STATUS_USED if core.id in referenced else CORE_STATUS_VACANT
            if core.status != desired:
                core.status = desired
                result.cores_changed += 1

        if result.cores_changed:
            await db.commit()

        timer.set_record_count(result.cores_checked)

    logger.info(f"Core reconciliation changed {result.cores_changed} of {result.cores_checked} cores")
    return result
