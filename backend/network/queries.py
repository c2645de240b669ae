"""
Database query helpers for splice-graph reads (matrix, trace, map layers).
"""
import logging
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from models import Node, Cable, CableCore, Connection, Customer

logger = logging.getLogger(__name__)


async def fetch_connections(db: AsyncSession) -> list:
    """Fetch every connection record, ordered by id."""
    result = await db.execute(select(Connection).order_by(Connection.id))
    return result.scalars().all()


async def fetch_connections_at(db: AsyncSession, node_id: int) -> list:
    """Fetch the connections physically located at one node, ordered by id."""
    result = await db.execute(
        select(Connection)
        .where(Connection.location_node_id == node_id)
        .order_by(Connection.id)
    )
    return result.scalars().all()


async def fetch_node(db: AsyncSession, node_id: int) -> Optional[Node]:
    result = await db.execute(select(Node).where(Node.id == node_id))
    return result.scalar_one_or_none()


async def fetch_customer(db: AsyncSession, customer_id: int) -> Optional[Customer]:
    result = await db.execute(select(Customer).where(Customer.id == customer_id))
    return result.scalar_one_or_none()


async def fetch_nodes_by_ids(db: AsyncSession, node_ids: Iterable[int]) -> dict:
    """Batch-fetch nodes, keyed by id."""
    ids = {i for i in node_ids if i is not None}
    if not ids:
        return {}
    result = await db.execute(select(Node).where(Node.id.in_(ids)))
    return {n.id: n for n in result.scalars().all()}


async def fetch_cores_by_ids(db: AsyncSession, core_ids: Iterable[int]) -> dict:
    """Batch-fetch cable cores, keyed by id."""
    ids = {i for i in core_ids if i is not None}
    if not ids:
        return {}
    result = await db.execute(select(CableCore).where(CableCore.id.in_(ids)))
    return {c.id: c for c in result.scalars().all()}


async def fetch_cables_by_ids(db: AsyncSession, cable_ids: Iterable[int]) -> dict:
    """Batch-fetch cables, keyed by id."""
    ids = {i for i in cable_ids if i is not None}
    if not ids:
        return {}
    result = await db.execute(select(Cable).where(Cable.id.in_(ids)))
    return {c.id: c for c in result.scalars().all()}


async def fetch_node_types(db: AsyncSession) -> dict:
    """Map node id → node type for every node (tracer head-end detection)."""
    result = await db.execute(select(Node.id, Node.type))
    return dict(result.all())


async def fetch_map_nodes(db: AsyncSession, node_type: Optional[str] = None) -> list:
    """Fetch nodes for the map layer with an optional type filter."""
    query = select(Node)
    if node_type:
        query = query.where(Node.type == node_type)
    result = await db.execute(query.order_by(Node.id))
    return result.scalars().all()


async def fetch_map_cables(db: AsyncSession) -> list:
    """Fetch cables for the map layer; routes are checked by the encoder."""
    result = await db.execute(select(Cable).order_by(Cable.id))
    return result.scalars().all()
