"""
Path tracer: walks splice connections from a subscriber's node to the head-end.

The walk follows each connection's output endpoint to the connection whose
input is that same endpoint, summing the per-splice loss as it goes. It is
bounded by max_hops, so looped splices terminate like any over-long chain;
the cycle flag tells the two apart.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from network.constants import (
    DEFAULT_TRACE_MAX_HOPS,
    ENDPOINT_CORE,
    HEAD_END_NODE_TYPES,
    TRACE_REASON_DEAD_END,
    TRACE_REASON_HEAD_END,
    TRACE_REASON_MAX_HOPS,
    TRACE_REASON_NO_CONNECTION,
    TRACE_REASON_NO_NODE,
)
from network.queries import (
    fetch_cables_by_ids,
    fetch_connections,
    fetch_cores_by_ids,
    fetch_customer,
    fetch_node_types,
    fetch_nodes_by_ids,
)
from services.topology_store import EntityNotFoundError
from utils.logging_utils import LogTimer

logger = logging.getLogger(__name__)


@dataclass
class Hop:
    sequence: int
    connection: Any
    loss_db: float
    cumulative_loss_db: float


@dataclass
class TraceResult:
    """Outcome of one walk; `valid` only when a head-end was reached."""
    hops: List[Hop] = field(default_factory=list)
    total_loss_db: float = 0.0
    valid: bool = False
    reason: str = TRACE_REASON_NO_CONNECTION
    cycle_detected: bool = False
    fan_out_points: List[Dict[str, Any]] = field(default_factory=list)
    head_end_node_id: Optional[int] = None

    @property
    def total_hops(self) -> int:
        return len(self.hops)


def build_adjacency(connections: Iterable) -> dict:
    """Index connections by input endpoint key (type, id), each list sorted by id."""
    index = defaultdict(list)
    for conn in connections:
        index[(conn.input_type, conn.input_id)].append(conn)
    for bucket in index.values():
        bucket.sort(key=lambda c: c.id)
    return dict(index)


def trace_path(
    start_node_id: Optional[int],
    connections: Iterable,
    node_types: Dict[int, str],
    max_hops: int = DEFAULT_TRACE_MAX_HOPS,
) -> TraceResult:
    """
    Walk from the lowest-id connection at start_node_id toward a head-end.

    Args:
        start_node_id: node the subscriber hangs off (None -> no_node)
        connections: every connection in the network
        node_types: node id -> node type, for head-end detection
        max_hops: hard bound on the number of traversed connections

    Returns:
        TraceResult; fan-outs pick the lowest connection id and are recorded
    """
    result = TraceResult()
    if start_node_id is None:
        result.reason = TRACE_REASON_NO_NODE
        return result

    connections = list(connections)
    adjacency = build_adjacency(connections)

    starts = sorted(
        (c for c in connections if c.location_node_id == start_node_id),
        key=lambda c: c.id,
    )
    if not starts:
        result.reason = TRACE_REASON_NO_CONNECTION
        return result
    if len(starts) > 1:
        result.fan_out_points.append({
            "node_id": start_node_id,
            "endpoint": None,
            "candidates": [c.id for c in starts],
            "chosen": starts[0].id,
        })

    current = starts[0]
    visited = set()
    total = 0.0

    while True:
        if len(result.hops) >= max_hops:
            result.reason = TRACE_REASON_MAX_HOPS
            break

        if current.id in visited:
            result.cycle_detected = True
        visited.add(current.id)

        loss = current.loss_db or 0.0
        total += loss
        result.hops.append(
            Hop(
                sequence=len(result.hops) + 1,
                connection=current,
                loss_db=loss,
                cumulative_loss_db=total,
            )
        )

        if node_types.get(current.location_node_id) in HEAD_END_NODE_TYPES:
            result.valid = True
            result.reason = TRACE_REASON_HEAD_END
            result.head_end_node_id = current.location_node_id
            break

        candidates = adjacency.get((current.output_type, current.output_id), [])
        if not candidates:
            result.reason = TRACE_REASON_DEAD_END
            break
        if len(candidates) > 1:
            result.fan_out_points.append({
                "node_id": current.location_node_id,
                "endpoint": f"{current.output_type}:{current.output_id}",
                "candidates": [c.id for c in candidates],
                "chosen": candidates[0].id,
            })
        current = candidates[0]

    result.total_loss_db = total
    return result


def _hop_core_id(connection) -> Optional[int]:
    """The core a hop travels on: the output core, else the input core."""
    if connection.output_type == ENDPOINT_CORE:
        return connection.output_id
    if connection.input_type == ENDPOINT_CORE:
        return connection.input_id
    return None


async def trace_customer(db: AsyncSession, customer_id: int, max_hops: Optional[int] = None) -> dict:
    """
    Trace a customer back to the head-end and resolve every hop.

    Raises EntityNotFoundError when the customer does not exist. An
    incomplete path is a normal result with trace_valid=False.
    """
    customer = await fetch_customer(db, customer_id)
    if customer is None:
        raise EntityNotFoundError("Customer", customer_id)

    if max_hops is None:
        max_hops = settings.TRACE_MAX_HOPS

    with LogTimer(logger, f"Tracing customer {customer_id}") as timer:
        if customer.node_id is None:
            result = trace_path(None, [], {}, max_hops)
        else:
            connections = await fetch_connections(db)
            node_types = await fetch_node_types(db)
            result = trace_path(customer.node_id, connections, node_types, max_hops)

        hop_connections = [h.connection for h in result.hops]
        nodes = await fetch_nodes_by_ids(
            db, [c.location_node_id for c in hop_connections] + [result.head_end_node_id]
        )
        cores = await fetch_cores_by_ids(db, [_hop_core_id(c) for c in hop_connections])
        cables = await fetch_cables_by_ids(db, [core.cable_id for core in cores.values()])

        timer.set_record_count(len(hop_connections))
        timer.add_info("hop_count", result.total_hops)
        timer.add_info("total_loss_db", result.total_loss_db)

    if result.cycle_detected:
        logger.warning(f"Splice loop detected while tracing customer {customer_id}")

    trace_hops = []
    for hop in result.hops:
        core = cores.get(_hop_core_id(hop.connection))
        trace_hops.append({
            "sequence": hop.sequence,
            "connection": hop.connection,
            "node": nodes.get(hop.connection.location_node_id),
            "core": core,
            "cable": cables.get(core.cable_id) if core is not None else None,
            "loss_db": hop.loss_db,
            "cumulative_loss_db": hop.cumulative_loss_db,
        })

    return {
        "customer": customer,
        "trace_path": trace_hops,
        "total_loss_db": result.total_loss_db,
        "total_hops": result.total_hops,
        "trace_valid": result.valid,
        "reason": result.reason,
        "cycle_detected": result.cycle_detected,
        "fan_out_points": result.fan_out_points,
        "head_end": nodes.get(result.head_end_node_id),
    }
