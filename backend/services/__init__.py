"""Services package for SPECTRA."""

from .core_allocation import (
    generate_cores,
    on_connection_created,
    on_connection_deleted,
    reconcile_core_states,
    ReconcileResult,
)
from .topology_store import (
    Page,
    TopologyStoreError,
    EntityNotFoundError,
    TopologyValidationError,
    TopologyConflictError,
)

__all__ = [
    "generate_cores",
    "on_connection_created",
    "on_connection_deleted",
    "reconcile_core_states",
    "ReconcileResult",
    "Page",
    "TopologyStoreError",
    "EntityNotFoundError",
    "TopologyValidationError",
    "TopologyConflictError",
]
