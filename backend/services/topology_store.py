"""
Topology store: persistence of nodes, cables, cores, connections and customers.

Every mutating operation commits exactly once, so a cable and its cores,
or a connection and the core states it changes, are written together or
not at all. SQLAlchemy failures are rolled back and re-raised as
TopologyStoreError with the failing operation attached.
"""

import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import Cable, CableCore, Connection, Customer, Node
from network.constants import (
    ASSET_STATUSES,
    CABLE_TYPES,
    CUSTOMER_STATUS_LOS,
    CUSTOMER_STATUS_OFFLINE,
    CUSTOMER_STATUSES,
    DEFAULT_ASSET_STATUS,
    DEFAULT_CABLE_COLOR,
    ENDPOINT_CORE,
    ENDPOINT_TYPES,
    NODE_TYPES,
)
from network.queries import fetch_connections_at
from schemas import (
    validate_choice,
    CableCreate,
    CableUpdate,
    ConnectionCreate,
    CoreUpdate,
    CustomerCreate,
    CustomerUpdate,
    NodeCreate,
    NodeUpdate,
)
from services.core_allocation import (
    ReconcileResult,
    generate_cores,
    on_connection_created,
    on_connection_deleted,
    reconcile_core_states,
)
from utils.audit import audit

logger = logging.getLogger(__name__)


# ── Errors ───────────────────────────────────────────────────────────

class TopologyStoreError(Exception):
    """Unexpected persistence failure; carries the operation that failed."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation


class EntityNotFoundError(TopologyStoreError):
    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class TopologyValidationError(TopologyStoreError):
    """Request is well-formed but violates a topology rule."""


class TopologyConflictError(TopologyStoreError):
    """Operation conflicts with existing references."""


def store_operation(name: str):
    """Roll back and wrap database errors raised by a store coroutine.

    The wrapped coroutine must take the session as its first argument.
    """
    def decorator(func_):
        @functools.wraps(func_)
        async def wrapper(db: AsyncSession, *args, **kwargs):
            try:
                return await func_(db, *args, **kwargs)
            except TopologyStoreError:
                await db.rollback()
                raise
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Store operation '{name}' failed: {e}", exc_info=True)
                raise TopologyStoreError(f"{name} failed", operation=name) from e
        return wrapper
    return decorator


# ── Pagination ───────────────────────────────────────────────────────

@dataclass
class Page:
    """One page of a list query."""
    items: List[Any] = field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total


def _page_bounds(limit: Optional[int], offset: Optional[int]) -> tuple[int, int]:
    if limit is None or limit < 1:
        limit = settings.DEFAULT_PAGE_SIZE
    limit = min(limit, settings.MAX_PAGE_SIZE)
    offset = max(offset or 0, 0)
    return limit, offset


async def _paginate(
    db: AsyncSession,
    model,
    conditions: list,
    limit: Optional[int],
    offset: Optional[int],
) -> Page:
    """Count and fetch one page, newest first."""
    limit, offset = _page_bounds(limit, offset)
    where = and_(*conditions) if conditions else None

    count_query = select(func.count(model.id))
    query = select(model)
    if where is not None:
        count_query = count_query.where(where)
        query = query.where(where)

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(
        query.order_by(model.created_at.desc(), model.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return Page(items=list(result.scalars().all()), total=total, limit=limit, offset=offset)


async def _get_or_404(db: AsyncSession, model, entity_id: int, entity: str):
    result = await db.execute(select(model).where(model.id == entity_id))
    row = result.scalar_one_or_none()
    if row is None:
        raise EntityNotFoundError(entity, entity_id)
    return row


async def _require_node(db: AsyncSession, node_id: Optional[int], field_name: str) -> None:
    if node_id is None:
        return
    result = await db.execute(select(Node.id).where(Node.id == node_id))
    if result.scalar_one_or_none() is None:
        raise TopologyValidationError(f"{field_name} {node_id} does not reference an existing node")


def normalize_filter(value: Optional[str], allowed: tuple, label: str) -> Optional[str]:
    """Normalize an enumerated list filter; unknown values are a validation error."""
    if not value:
        return None
    try:
        return validate_choice(value, frozenset(allowed), label)
    except ValueError as e:
        raise TopologyValidationError(str(e)) from e


def _apply(row, changes: Dict[str, Any], required: frozenset) -> Dict[str, Any]:
    """Copy changed fields onto a row; explicit nulls on required columns are ignored."""
    applied = {}
    for key, value in changes.items():
        if value is None and key in required:
            continue
        if getattr(row, key) != value:
            applied[key] = value
        setattr(row, key, value)
    return applied


# ═══════════════════════════════════════════════════════════════════════
# NODES
# ═══════════════════════════════════════════════════════════════════════

_NODE_REQUIRED = frozenset({"name", "type", "latitude", "longitude", "capacity_ports", "used_ports", "status"})


@store_operation("list nodes")
async def list_nodes(
    db: AsyncSession,
    node_type: Optional[str] = None,
    status: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> Page:
    node_type = normalize_filter(node_type, NODE_TYPES, "node type")
    status = normalize_filter(status, ASSET_STATUSES, "node status")

    conditions = []
    if node_type:
        conditions.append(Node.type == node_type)
    if status:
        conditions.append(Node.status == status)
    return await _paginate(db, Node, conditions, limit, offset)


@store_operation("get node")
async def get_node(db: AsyncSession, node_id: int) -> Node:
    return await _get_or_404(db, Node, node_id, "Node")


@store_operation("create node")
async def create_node(db: AsyncSession, data: NodeCreate) -> Node:
    capacity = data.capacity_ports
    if capacity is None:
        capacity = settings.NODE_DEFAULT_CAPACITY_PORTS
    used = data.used_ports or 0
    if used > capacity:
        raise TopologyValidationError(
            f"used_ports ({used}) cannot exceed capacity_ports ({capacity})"
        )

    node = Node(
        name=data.name,
        type=data.type,
        model=data.model,
        latitude=data.latitude,
        longitude=data.longitude,
        address=data.address,
        capacity_ports=capacity,
        used_ports=used,
        status=data.status or DEFAULT_ASSET_STATUS,
    )
    db.add(node)
    await db.commit()
    await db.refresh(node)

    logger.info(f"Created node {node.id} ({node.type} '{node.name}')")
    audit.log_node_crud(operation="CREATE", node_id=str(node.id), name=node.name, node_type=node.type)
    return node


@store_operation("update node")
async def update_node(db: AsyncSession, node_id: int, data: NodeUpdate) -> Node:
    node = await _get_or_404(db, Node, node_id, "Node")
    changes = _apply(node, data.model_dump(exclude_unset=True), _NODE_REQUIRED)

    if node.latitude == 0 and node.longitude == 0:
        raise TopologyValidationError("Latitude and Longitude are required")
    if node.used_ports > node.capacity_ports:
        raise TopologyValidationError(
            f"used_ports ({node.used_ports}) cannot exceed capacity_ports ({node.capacity_ports})"
        )

    node.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(node)

    audit.log_node_crud(
        operation="UPDATE", node_id=str(node.id), name=node.name, node_type=node.type, changes=changes
    )
    return node


async def _node_references(db: AsyncSession, node_id: int) -> Dict[str, int]:
    cables = (await db.execute(
        select(func.count(Cable.id)).where(
            or_(Cable.origin_node_id == node_id, Cable.dest_node_id == node_id)
        )
    )).scalar() or 0
    connections = (await db.execute(
        select(func.count(Connection.id)).where(Connection.location_node_id == node_id)
    )).scalar() or 0
    customers = (await db.execute(
        select(func.count(Customer.id)).where(Customer.node_id == node_id)
    )).scalar() or 0
    return {"cables": cables, "connections": connections, "customers": customers}


@store_operation("delete node")
async def delete_node(db: AsyncSession, node_id: int) -> None:
    node = await _get_or_404(db, Node, node_id, "Node")

    references = await _node_references(db, node_id)
    in_use = {k: v for k, v in references.items() if v}
    if in_use:
        summary = ", ".join(f"{count} {kind}" for kind, count in in_use.items())
        raise TopologyConflictError(f"Node {node_id} is still referenced by {summary}")

    await db.delete(node)
    await db.commit()

    audit.log_node_crud(operation="DELETE", node_id=str(node_id), name=node.name, node_type=node.type)


# ═══════════════════════════════════════════════════════════════════════
# CABLES & CORES
# ═══════════════════════════════════════════════════════════════════════

_CABLE_REQUIRED = frozenset({"type", "core_count", "color_hex", "status"})


@store_operation("list cables")
async def list_cables(
    db: AsyncSession,
    cable_type: Optional[str] = None,
    status: Optional[str] = None,
    origin_node_id: Optional[int] = None,
    dest_node_id: Optional[int] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> Page:
    cable_type = normalize_filter(cable_type, CABLE_TYPES, "cable type")
    status = normalize_filter(status, ASSET_STATUSES, "cable status")

    conditions = []
    if cable_type:
        conditions.append(Cable.type == cable_type)
    if status:
        conditions.append(Cable.status == status)
    if origin_node_id is not None:
        conditions.append(Cable.origin_node_id == origin_node_id)
    if dest_node_id is not None:
        conditions.append(Cable.dest_node_id == dest_node_id)
    return await _paginate(db, Cable, conditions, limit, offset)


@store_operation("get cable")
async def get_cable(db: AsyncSession, cable_id: int) -> Cable:
    return await _get_or_404(db, Cable, cable_id, "Cable")


@store_operation("create cable")
async def create_cable(db: AsyncSession, data: CableCreate) -> Cable:
    """Insert a cable together with its generated cores."""
    await _require_node(db, data.origin_node_id, "origin_node_id")
    await _require_node(db, data.dest_node_id, "dest_node_id")

    cable = Cable(
        name=data.name,
        type=data.type,
        core_count=data.core_count,
        length_meter=data.length_meter,
        origin_node_id=data.origin_node_id,
        dest_node_id=data.dest_node_id,
        path_coordinates=data.path_coordinates,
        color_hex=data.color_hex or DEFAULT_CABLE_COLOR,
        status=data.status or DEFAULT_ASSET_STATUS,
    )
    db.add(cable)
    await db.flush()

    db.add_all(generate_cores(cable.id, cable.core_count))
    await db.commit()
    await db.refresh(cable)

    logger.info(f"Created cable {cable.id} with {cable.core_count} cores")
    audit.log_cable_crud(
        operation="CREATE", cable_id=str(cable.id), name=cable.name, core_count=cable.core_count
    )
    return cable


@store_operation("update cable")
async def update_cable(db: AsyncSession, cable_id: int, data: CableUpdate) -> Cable:
    cable = await _get_or_404(db, Cable, cable_id, "Cable")
    update_data = data.model_dump(exclude_unset=True)

    new_count = update_data.pop("core_count", None)
    if new_count is not None and new_count != cable.core_count:
        raise TopologyValidationError(
            f"core_count is fixed at creation ({cable.core_count}); got {new_count}"
        )

    if "origin_node_id" in update_data:
        await _require_node(db, update_data["origin_node_id"], "origin_node_id")
    if "dest_node_id" in update_data:
        await _require_node(db, update_data["dest_node_id"], "dest_node_id")

    changes = _apply(cable, update_data, _CABLE_REQUIRED)
    cable.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(cable)

    audit.log_cable_crud(operation="UPDATE", cable_id=str(cable.id), name=cable.name, changes=changes)
    return cable


@store_operation("delete cable")
async def delete_cable(db: AsyncSession, cable_id: int) -> None:
    """Delete a cable and its cores in one transaction."""
    cable = await _get_or_404(db, Cable, cable_id, "Cable")

    await db.execute(delete(CableCore).where(CableCore.cable_id == cable_id))
    await db.delete(cable)
    await db.commit()

    audit.log_cable_crud(operation="DELETE", cable_id=str(cable_id), name=cable.name)


@store_operation("list cores")
async def list_cores(db: AsyncSession, cable_id: int) -> List[CableCore]:
    await _get_or_404(db, Cable, cable_id, "Cable")
    result = await db.execute(
        select(CableCore)
        .where(CableCore.cable_id == cable_id)
        .order_by(CableCore.core_index)
    )
    return list(result.scalars().all())


@store_operation("update core")
async def update_core(db: AsyncSession, cable_id: int, core_id: int, data: CoreUpdate) -> CableCore:
    """Manual override of a core's colors or state (any state is allowed)."""
    result = await db.execute(
        select(CableCore).where(and_(CableCore.id == core_id, CableCore.cable_id == cable_id))
    )
    core = result.scalar_one_or_none()
    if core is None:
        raise EntityNotFoundError("Core", core_id)

    changes = _apply(core, data.model_dump(exclude_unset=True), frozenset({"status"}))
    core.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(core)

    audit.log_core_change(core_id=str(core.id), cable_id=str(cable_id), changes=changes)
    return core


# ═══════════════════════════════════════════════════════════════════════
# CONNECTIONS
# ═══════════════════════════════════════════════════════════════════════

@store_operation("list connections")
async def list_connections(
    db: AsyncSession,
    location_node_id: Optional[int] = None,
    input_type: Optional[str] = None,
    input_id: Optional[int] = None,
    output_type: Optional[str] = None,
    output_id: Optional[int] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> Page:
    input_type = normalize_filter(input_type, ENDPOINT_TYPES, "endpoint type")
    output_type = normalize_filter(output_type, ENDPOINT_TYPES, "endpoint type")

    conditions = []
    if location_node_id is not None:
        conditions.append(Connection.location_node_id == location_node_id)
    if input_type:
        conditions.append(Connection.input_type == input_type)
    if input_id is not None:
        conditions.append(Connection.input_id == input_id)
    if output_type:
        conditions.append(Connection.output_type == output_type)
    if output_id is not None:
        conditions.append(Connection.output_id == output_id)
    return await _paginate(db, Connection, conditions, limit, offset)


@store_operation("get connection")
async def get_connection(db: AsyncSession, connection_id: int) -> Connection:
    return await _get_or_404(db, Connection, connection_id, "Connection")


@store_operation("connections at location")
async def connections_at_location(db: AsyncSession, node_id: int) -> List[Connection]:
    return list(await fetch_connections_at(db, node_id))


async def _check_core_endpoints(db: AsyncSession, data: ConnectionCreate) -> None:
    core_ids = set()
    if data.input_type == ENDPOINT_CORE:
        core_ids.add(data.input_id)
    if data.output_type == ENDPOINT_CORE:
        core_ids.add(data.output_id)
    if not core_ids:
        return

    result = await db.execute(select(CableCore.id).where(CableCore.id.in_(core_ids)))
    missing = sorted(core_ids - set(result.scalars().all()))
    if not missing:
        return
    if settings.STRICT_ENDPOINT_REFERENCES:
        raise TopologyValidationError(
            f"Connection references unknown core(s): {', '.join(str(m) for m in missing)}"
        )
    logger.warning(f"Recording connection with unknown core endpoint(s) {missing}")


@store_operation("create connection")
async def create_connection(db: AsyncSession, data: ConnectionCreate) -> Connection:
    """Insert a connection and mark its cores USED in the same commit."""
    await _require_node(db, data.location_node_id, "location_node_id")
    await _check_core_endpoints(db, data)

    connection = Connection(**data.model_dump())
    db.add(connection)
    await db.flush()

    await on_connection_created(db, connection)
    await db.commit()
    await db.refresh(connection)

    audit.log_connection_change(
        operation="CREATE",
        connection_id=str(connection.id),
        location_node_id=connection.location_node_id,
        input_key=connection.input_key,
        output_key=connection.output_key,
    )
    return connection


@store_operation("delete connection")
async def delete_connection(db: AsyncSession, connection_id: int) -> None:
    """Delete a connection and release its cores in the same commit."""
    connection = await _get_or_404(db, Connection, connection_id, "Connection")

    await db.delete(connection)
    await db.flush()
    await on_connection_deleted(db, connection)
    await db.commit()

    audit.log_connection_change(
        operation="DELETE",
        connection_id=str(connection_id),
        location_node_id=connection.location_node_id,
        input_key=connection.input_key,
        output_key=connection.output_key,
    )


@store_operation("reconcile core states")
async def reconcile_cores(db: AsyncSession) -> ReconcileResult:
    """Recompute USED/VACANT for every core; rolled back as a unit on failure."""
    result = await reconcile_core_states(db)
    audit.log_core_reconcile(result.cores_checked, result.cores_changed)
    return result


# ═══════════════════════════════════════════════════════════════════════
# CUSTOMERS
# ═══════════════════════════════════════════════════════════════════════

_CUSTOMER_REQUIRED = frozenset({"name", "current_status"})


@store_operation("list customers")
async def list_customers(
    db: AsyncSession,
    node_id: Optional[int] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> Page:
    status = normalize_filter(status, CUSTOMER_STATUSES, "customer status")

    conditions = []
    if node_id is not None:
        conditions.append(Customer.node_id == node_id)
    if status:
        conditions.append(Customer.current_status == status)
    if search:
        pattern = f"%{search.lower()}%"
        conditions.append(
            or_(
                func.lower(Customer.name).like(pattern),
                func.lower(Customer.ont_sn).like(pattern),
            )
        )
    return await _paginate(db, Customer, conditions, limit, offset)


@store_operation("get customer")
async def get_customer(db: AsyncSession, customer_id: int) -> Customer:
    return await _get_or_404(db, Customer, customer_id, "Customer")


@store_operation("create customer")
async def create_customer(db: AsyncSession, data: CustomerCreate) -> Customer:
    await _require_node(db, data.node_id, "node_id")

    customer = Customer(
        node_id=data.node_id,
        name=data.name,
        ont_sn=data.ont_sn,
        phone=data.phone,
        email=data.email,
        current_status=data.current_status or CUSTOMER_STATUS_OFFLINE,
        subscription_type=data.subscription_type,
    )
    db.add(customer)
    await db.commit()
    await db.refresh(customer)

    audit.log_customer_crud(operation="CREATE", customer_id=str(customer.id), name=customer.name)
    return customer


@store_operation("update customer")
async def update_customer(db: AsyncSession, customer_id: int, data: CustomerUpdate) -> Customer:
    customer = await _get_or_404(db, Customer, customer_id, "Customer")
    update_data = data.model_dump(exclude_unset=True)
    if "node_id" in update_data:
        await _require_node(db, update_data["node_id"], "node_id")

    changes = _apply(customer, update_data, _CUSTOMER_REQUIRED)
    customer.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(customer)

    audit.log_customer_crud(
        operation="UPDATE", customer_id=str(customer.id), name=customer.name, changes=changes
    )
    return customer


@store_operation("delete customer")
async def delete_customer(db: AsyncSession, customer_id: int) -> None:
    customer = await _get_or_404(db, Customer, customer_id, "Customer")
    await db.delete(customer)
    await db.commit()

    audit.log_customer_crud(operation="DELETE", customer_id=str(customer_id), name=customer.name)


@store_operation("list LOS customers")
async def list_los_customers(db: AsyncSession) -> List[Customer]:
    result = await db.execute(
        select(Customer)
        .where(Customer.current_status == CUSTOMER_STATUS_LOS)
        .order_by(Customer.name)
    )
    return list(result.scalars().all())


@store_operation("update customer status")
async def update_customer_status(
    db: AsyncSession,
    customer_id: int,
    status: str,
    rx_power: Optional[float] = None,
) -> Customer:
    """Record a live status report; rx power is only overwritten when given."""
    customer = await _get_or_404(db, Customer, customer_id, "Customer")
    customer.current_status = status
    if rx_power is not None:
        customer.last_rx_power = rx_power
    customer.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(customer)

    audit.log_customer_status(customer_id=str(customer.id), status=status, rx_power=rx_power)
    return customer


@store_operation("bulk update customer status")
async def bulk_update_customer_status(db: AsyncSession, updates: Dict[str, str]) -> int:
    """Apply {ont_sn: status} updates; returns the number of customers changed."""
    if not updates:
        return 0

    result = await db.execute(select(Customer).where(Customer.ont_sn.in_(list(updates))))
    customers = result.scalars().all()

    now = datetime.utcnow()
    for customer in customers:
        customer.current_status = updates[customer.ont_sn]
        customer.updated_at = now
    await db.commit()

    unknown = set(updates) - {c.ont_sn for c in customers}
    if unknown:
        logger.warning(f"Bulk status update skipped {len(unknown)} unknown ONT serial(s)")
    logger.info(f"Bulk status update applied to {len(customers)} customers")
    for customer in customers:
        audit.log_customer_status(customer_id=str(customer.id), status=customer.current_status)
    return len(customers)
