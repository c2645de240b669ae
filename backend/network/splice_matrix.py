"""
Splice matrix: the core-to-core mapping at one splice location.

build_matrix() is pure and works on any objects carrying the connection
attributes; get_splice_matrix() loads the rows and resolves cores.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from network.constants import ENDPOINT_CORE
from network.queries import fetch_connections_at, fetch_cores_by_ids, fetch_node
from services.topology_store import EntityNotFoundError
from utils.logging_utils import LogTimer

logger = logging.getLogger(__name__)


@dataclass
class SpliceMatrix:
    """Partitioned connections at a location plus a consistency report."""
    connections: list = field(default_factory=list)        # core-to-core edges
    other_connections: list = field(default_factory=list)  # anything touching a port
    input_core_ids: list = field(default_factory=list)
    output_core_ids: list = field(default_factory=list)
    duplicate_cores: list = field(default_factory=list)
    dangling_cores: list = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.duplicate_cores and not self.dangling_cores


def _unique(ids: Iterable[int]) -> list:
    seen = set()
    ordered = []
    for i in ids:
        if i not in seen:
            seen.add(i)
            ordered.append(i)
    return ordered


def build_matrix(connections: Iterable, known_core_ids: Optional[set] = None) -> SpliceMatrix:
    """
    Partition the connections at one location.

    Args:
        connections: connections at the location (any order)
        known_core_ids: ids of cores that exist; when given, CORE endpoints
            outside this set are reported as dangling

    Returns:
        SpliceMatrix with edges in ascending connection id order
    """
    matrix = SpliceMatrix()
    slot_counts = Counter()

    for conn in sorted(connections, key=lambda c: c.id):
        if conn.input_type == ENDPOINT_CORE:
            slot_counts[conn.input_id] += 1
        if conn.output_type == ENDPOINT_CORE:
            slot_counts[conn.output_id] += 1

        if conn.input_type == ENDPOINT_CORE and conn.output_type == ENDPOINT_CORE:
            matrix.connections.append({
                "connection_id": conn.id,
                "input_core_id": conn.input_id,
                "output_core_id": conn.output_id,
                "loss_db": conn.loss_db,
            })
            matrix.input_core_ids.append(conn.input_id)
            matrix.output_core_ids.append(conn.output_id)
        else:
            matrix.other_connections.append(conn)

    matrix.input_core_ids = _unique(matrix.input_core_ids)
    matrix.output_core_ids = _unique(matrix.output_core_ids)
    matrix.duplicate_cores = sorted(core_id for core_id, n in slot_counts.items() if n > 1)
    if known_core_ids is not None:
        matrix.dangling_cores = sorted(set(slot_counts) - set(known_core_ids))
    return matrix


async def get_splice_matrix(db: AsyncSession, node_id: int) -> dict:
    """Load and build the splice matrix for a location node."""
    node = await fetch_node(db, node_id)
    if node is None:
        raise EntityNotFoundError("Node", node_id)

    with LogTimer(logger, f"Building splice matrix for node {node_id}") as timer:
        connections = await fetch_connections_at(db, node_id)

        core_ids = set()
        for conn in connections:
            if conn.input_type == ENDPOINT_CORE:
                core_ids.add(conn.input_id)
            if conn.output_type == ENDPOINT_CORE:
                core_ids.add(conn.output_id)
        cores = await fetch_cores_by_ids(db, core_ids)

        matrix = build_matrix(connections, set(cores))
        timer.set_record_count(len(connections))

    if not matrix.is_consistent:
        logger.warning(
            f"Splice matrix at node {node_id} is inconsistent: "
            f"duplicate={matrix.duplicate_cores} dangling={matrix.dangling_cores}"
        )

    return {
        "location_node": node,
        "input_cores": [cores[i] for i in matrix.input_core_ids if i in cores],
        "output_cores": [cores[i] for i in matrix.output_core_ids if i in cores],
        "connections": matrix.connections,
        "other_connections": matrix.other_connections,
        "duplicate_cores": matrix.duplicate_cores,
        "dangling_cores": matrix.dangling_cores,
        "is_consistent": matrix.is_consistent,
    }
