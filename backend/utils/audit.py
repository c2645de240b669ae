"""
Structured audit logging module for the SPECTRA backend.

This module provides an AuditLogger class that logs events to a dedicated 'audit' logger
in structured JSON format. It supports context-aware request_id propagation across async
calls using contextvars.ContextVar.

Key features:
- Async-safe request_id tracking via ContextVar
- Structured JSON output with ISO8601 timestamps
- Convenience methods for topology changes (nodes, cables, cores, splices, customers)
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Dict, Optional


# Context variable for tracking request_id across async calls
_request_id_context: ContextVar[Optional[str]] = ContextVar(
    'request_id', default=None
)

# Context variable for tracking the acting client across async calls
_actor_context: ContextVar[Optional[str]] = ContextVar(
    'actor', default=None
)


class AuditLogger:
    """
    Structured audit logger for every mutating topology operation.

    All events are written to a dedicated 'audit' logger in JSON format.
    """

    def __init__(self):
        self.logger = logging.getLogger('audit')

    def set_request_id(self, request_id: str) -> None:
        """Set the request_id for the current context."""
        _request_id_context.set(request_id)

    def get_request_id(self) -> Optional[str]:
        """Get the current request_id from context, or None."""
        return _request_id_context.get()

    def set_actor(self, actor: str) -> None:
        """Set the acting client for this request context."""
        _actor_context.set(actor)

    def get_actor(self) -> Optional[str]:
        return _actor_context.get()

    def log(
        self,
        action: str,
        actor: str,
        resource: str,
        resource_id: str,
        status: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Core method to log a structured audit event.

        Args:
            action: Type of action performed (e.g., 'CREATE', 'DELETE', 'RECONCILE')
            actor: Client or service performing the action
            resource: Type of resource affected (e.g., 'Node', 'Cable', 'Connection')
            resource_id: Identifier of the affected resource
            status: Result status (e.g., 'success', 'failure')
            details: Optional dict of additional context
        """
        event = {
            'timestamp': datetime.utcnow().isoformat() + 'Z',
            'action': action,
            'actor': actor if actor != 'user' else (self.get_actor() or 'user'),
            'resource': resource,
            'resource_id': resource_id,
            'status': status,
            'request_id': self.get_request_id(),
            'details': details or {},
        }
        self.logger.info(json.dumps(event, default=str))

    def log_node_crud(
        self,
        operation: str,
        node_id: str,
        name: str,
        node_type: str,
        changes: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log node Create/Update/Delete operations.

        Args:
            operation: CRUD operation ('CREATE', 'UPDATE', 'DELETE')
            node_id: Node identifier
            name: Node name
            node_type: OLT, ODC, ODP, ...
            changes: Optional dict of changed fields (for UPDATE operations)
        """
        details = {'name': name, 'type': node_type}
        if changes:
            details['changes'] = changes

        self.log(
            action=operation,
            actor='user',
            resource='Node',
            resource_id=node_id,
            status='success',
            details=details,
        )

    def log_cable_crud(
        self,
        operation: str,
        cable_id: str,
        name: Optional[str] = None,
        core_count: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = {}
        if name:
            details['name'] = name
        if core_count is not None:
            details['core_count'] = core_count
        if changes:
            details['changes'] = changes

        self.log(
            action=operation,
            actor='user',
            resource='Cable',
            resource_id=cable_id,
            status='success',
            details=details,
        )

    def log_core_change(
        self,
        core_id: str,
        cable_id: str,
        changes: Dict[str, Any],
    ) -> None:
        """Log a manual override of a core's state or colors."""
        self.log(
            action='UPDATE',
            actor='user',
            resource='CableCore',
            resource_id=core_id,
            status='success',
            details={'cable_id': cable_id, 'changes': changes},
        )

    def log_connection_change(
        self,
        operation: str,
        connection_id: str,
        location_node_id: Optional[int] = None,
        input_key: Optional[tuple] = None,
        output_key: Optional[tuple] = None,
    ) -> None:
        """
        Log splice creation or deletion.

        Args:
            operation: Operation type ('CREATE', 'DELETE')
            connection_id: Connection identifier
            location_node_id: Node the splice sits in
            input_key: (type, id) of the input endpoint
            output_key: (type, id) of the output endpoint
        """
        details: Dict[str, Any] = {'location_node_id': location_node_id}
        if input_key:
            details['input'] = f"{input_key[0]}:{input_key[1]}"
        if output_key:
            details['output'] = f"{output_key[0]}:{output_key[1]}"

        self.log(
            action=operation,
            actor='user',
            resource='Connection',
            resource_id=connection_id,
            status='success',
            details=details,
        )

    def log_customer_crud(
        self,
        operation: str,
        customer_id: str,
        name: str,
        changes: Optional[Dict[str, Any]] = None,
    ) -> None:
        details: Dict[str, Any] = {'name': name}
        if changes:
            details['changes'] = changes

        self.log(
            action=operation,
            actor='user',
            resource='Customer',
            resource_id=customer_id,
            status='success',
            details=details,
        )

    def log_customer_status(
        self,
        customer_id: str,
        status: str,
        rx_power: Optional[float] = None,
    ) -> None:
        details: Dict[str, Any] = {'current_status': status}
        if rx_power is not None:
            details['rx_power'] = rx_power

        self.log(
            action='STATUS',
            actor='monitor',
            resource='Customer',
            resource_id=customer_id,
            status='success',
            details=details,
        )

    def log_core_reconcile(self, cores_checked: int, cores_changed: int) -> None:
        """Log a recomputation of core states from the connection table."""
        self.log(
            action='RECONCILE',
            actor='user',
            resource='CableCore',
            resource_id='batch',
            status='success',
            details={'cores_checked': cores_checked, 'cores_changed': cores_changed},
        )

    def log_seed_data(self, status: str, node_count: int = 0) -> None:
        """
        Log demo network seeding.

        Args:
            status: Operation status (e.g., 'success', 'failure', 'skipped')
            node_count: Number of nodes created
        """
        self.log(
            action='SEED',
            actor='system',
            resource='SeedData',
            resource_id='demo_network',
            status=status,
            details={'node_count': node_count},
        )


# Global audit logger instance for convenient import
audit = AuditLogger()
