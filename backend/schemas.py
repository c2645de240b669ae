"""
Pydantic v2 schemas with strict input validation and lenient output serialization.

Architecture:
  - *Fields classes: pure field definitions, no validators.  Shared by both
    input (Create/Update) and output (Response) schemas.
  - *Create / *Update classes: inherit from *Fields and ADD strict validators
    so bad data is rejected early with clear, actionable error messages.
  - *Response classes: inherit from *Fields directly (no validators) so any
    data already in the database serializes without crashing.

Enumerated values (node type, core status, ...) are accepted in any case and
normalized to upper case before they reach the store.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import re

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from network.constants import (
    ASSET_STATUSES,
    CABLE_TYPES,
    CORE_STATUSES,
    CUSTOMER_STATUSES,
    ENDPOINT_TYPES,
    FIBER_COLORS,
    MAX_CORE_COUNT,
    MIN_CORE_COUNT,
    NODE_TYPES,
    RX_POWER_GOOD,
    RX_POWER_WARNING,
)


# ── Allowed value sets (for input validation) ────────────────────────

VALID_NODE_TYPES = frozenset(NODE_TYPES)
VALID_ASSET_STATUSES = frozenset(ASSET_STATUSES)
VALID_CABLE_TYPES = frozenset(CABLE_TYPES)
VALID_CORE_STATUSES = frozenset(CORE_STATUSES)
VALID_ENDPOINT_TYPES = frozenset(ENDPOINT_TYPES)
VALID_CUSTOMER_STATUSES = frozenset(CUSTOMER_STATUSES)

_PALETTE_BY_LOWER = {color.lower(): color for color in FIBER_COLORS}

# ── Reusable validators ──────────────────────────────────────────────

HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_choice(value: str, allowed: frozenset, label: str) -> str:
    """Normalize an enumerated value to upper case and check membership."""
    upper = value.strip().upper()
    if upper not in allowed:
        raise ValueError(
            f"Invalid {label} '{value}'. "
            f"Allowed values: {', '.join(sorted(allowed))}"
        )
    return upper


def _validate_hex_color(value: str) -> str:
    if not HEX_COLOR_RE.match(value):
        raise ValueError(
            f"Invalid color '{value}'. Expected a hex color like #1e90ff"
        )
    return value.lower()


def _validate_fiber_color(value: str) -> str:
    color = _PALETTE_BY_LOWER.get(value.strip().lower())
    if color is None:
        raise ValueError(
            f"Invalid fiber color '{value}'. "
            f"Allowed values: {', '.join(FIBER_COLORS)}"
        )
    return color


def _validate_coordinates(points: List[List[float]]) -> List[List[float]]:
    """Validate a cable route given as [[lng, lat], ...]."""
    for i, point in enumerate(points):
        if len(point) != 2:
            raise ValueError(
                f"Invalid coordinate at index {i}: expected [longitude, latitude]"
            )
        lng, lat = point
        if not -180 <= lng <= 180:
            raise ValueError(f"Longitude out of range at index {i}: {lng}")
        if not -90 <= lat <= 90:
            raise ValueError(f"Latitude out of range at index {i}: {lat}")
    return points


def rx_power_quality(rx_power: Optional[float]) -> Optional[str]:
    """Classify a receive power reading (dBm) as GOOD / WARNING / CRITICAL."""
    if rx_power is None:
        return None
    if rx_power >= RX_POWER_GOOD:
        return "GOOD"
    if rx_power >= RX_POWER_WARNING:
        return "WARNING"
    return "CRITICAL"


# ═══════════════════════════════════════════════════════════════════════
# NODE SCHEMAS
# ═══════════════════════════════════════════════════════════════════════

class NodeFields(BaseModel):
    """Pure field definitions for nodes.  No validators."""

    name: str = Field(..., min_length=1, max_length=100)
    type: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=500)
    capacity_ports: Optional[int] = Field(None, ge=0)
    used_ports: Optional[int] = Field(None, ge=0)
    model: Optional[str] = Field(None, max_length=255)
    status: Optional[str] = None


class _NodeValidators:
    """Mixin-style validators reused by NodeCreate and NodeUpdate."""

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_choice(v, VALID_NODE_TYPES, "node type")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_choice(v, VALID_ASSET_STATUSES, "node status")

    @model_validator(mode="after")
    def validate_ports(self):
        if (
            self.capacity_ports is not None
            and self.used_ports is not None
            and self.used_ports > self.capacity_ports
        ):
            raise ValueError(
                f"used_ports ({self.used_ports}) cannot exceed "
                f"capacity_ports ({self.capacity_ports})"
            )
        return self


class NodeCreate(NodeFields, _NodeValidators):
    """Schema for creating a node — fields + strict validation."""

    @model_validator(mode="after")
    def validate_location_present(self):
        # 0/0 is how an omitted location arrives from map clients
        if self.latitude == 0 and self.longitude == 0:
            raise ValueError("Latitude and Longitude are required")
        return self


class NodeUpdate(BaseModel, _NodeValidators):
    """Schema for updating a node (all fields optional, with validation)."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=500)
    capacity_ports: Optional[int] = Field(None, ge=0)
    used_ports: Optional[int] = Field(None, ge=0)
    model: Optional[str] = Field(None, max_length=255)
    status: Optional[str] = None


class NodeResponse(NodeFields):
    """Schema for node responses — no validators, just serialization."""

    id: int
    capacity_ports: int
    used_ports: int
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NearbyNodeResponse(NodeResponse):
    """Node plus its great-circle distance from the query point."""

    distance_km: float


# ═══════════════════════════════════════════════════════════════════════
# CABLE SCHEMAS
# ═══════════════════════════════════════════════════════════════════════

class CableFields(BaseModel):
    """Pure field definitions for cables.  No validators."""

    name: Optional[str] = Field(None, max_length=255)
    type: str
    core_count: int = Field(..., ge=MIN_CORE_COUNT, le=MAX_CORE_COUNT)
    length_meter: Optional[float] = Field(None, ge=0)
    origin_node_id: Optional[int] = None
    dest_node_id: Optional[int] = None
    path_coordinates: Optional[List[List[float]]] = None
    color_hex: Optional[str] = None
    status: Optional[str] = None


class _CableValidators:
    """Mixin-style validators reused by CableCreate and CableUpdate."""

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_choice(v, VALID_CABLE_TYPES, "cable type")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_choice(v, VALID_ASSET_STATUSES, "cable status")

    @field_validator("color_hex")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _validate_hex_color(v)

    @field_validator("path_coordinates")
    @classmethod
    def validate_path(cls, v: Optional[List[List[float]]]) -> Optional[List[List[float]]]:
        if v is None:
            return v
        return _validate_coordinates(v)


class CableCreate(CableFields, _CableValidators):
    """Schema for creating a cable — fields + strict validation."""
    pass


class CableUpdate(BaseModel, _CableValidators):
    """Schema for updating a cable (all fields optional, with validation).

    core_count is accepted so that a client echoing the full record back
    does not fail, but the store rejects any value that differs from the
    count the cable was created with.
    """

    name: Optional[str] = Field(None, max_length=255)
    type: Optional[str] = None
    core_count: Optional[int] = Field(None, ge=MIN_CORE_COUNT, le=MAX_CORE_COUNT)
    length_meter: Optional[float] = Field(None, ge=0)
    origin_node_id: Optional[int] = None
    dest_node_id: Optional[int] = None
    path_coordinates: Optional[List[List[float]]] = None
    color_hex: Optional[str] = None
    status: Optional[str] = None


class CableResponse(CableFields):
    """Schema for cable responses — no validators."""

    id: int
    color_hex: str
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ═══════════════════════════════════════════════════════════════════════
# CORE SCHEMAS
# ═══════════════════════════════════════════════════════════════════════

class CoreUpdate(BaseModel):
    """Manual override of a core's colors or allocation state."""

    tube_color: Optional[str] = None
    core_color: Optional[str] = None
    status: Optional[str] = None

    @field_validator("tube_color", "core_color")
    @classmethod
    def validate_colors(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _validate_fiber_color(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_choice(v, VALID_CORE_STATUSES, "core status")


class CoreResponse(BaseModel):
    """Schema for cable core responses."""

    id: int
    cable_id: int
    core_index: int
    tube_color: Optional[str] = None
    core_color: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ═══════════════════════════════════════════════════════════════════════
# CONNECTION SCHEMAS
# ═══════════════════════════════════════════════════════════════════════

class ConnectionFields(BaseModel):
    """Pure field definitions for splice connections.  No validators."""

    location_node_id: Optional[int] = None
    input_type: str
    input_id: int = Field(..., ge=1)
    output_type: str
    output_id: int = Field(..., ge=1)
    loss_db: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=5000)


class ConnectionCreate(ConnectionFields):
    """Schema for creating a connection — fields + strict validation."""

    @field_validator("input_type", "output_type")
    @classmethod
    def validate_endpoint_type(cls, v: str) -> str:
        return validate_choice(v, VALID_ENDPOINT_TYPES, "endpoint type")

    @model_validator(mode="after")
    def validate_distinct_endpoints(self):
        if (self.input_type, self.input_id) == (self.output_type, self.output_id):
            raise ValueError("Input and output endpoints must be different")
        return self


class ConnectionResponse(ConnectionFields):
    """Schema for connection responses — no validators."""

    id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MatrixConnection(BaseModel):
    """One core-to-core splice in a splice matrix."""

    connection_id: int
    input_core_id: int
    output_core_id: int
    loss_db: Optional[float] = None


class SpliceMatrixResponse(BaseModel):
    """Core-to-core mapping at one location plus its consistency report."""

    location_node: NodeResponse
    input_cores: List[CoreResponse]
    output_cores: List[CoreResponse]
    connections: List[MatrixConnection]
    other_connections: List[ConnectionResponse]
    duplicate_cores: List[int]
    dangling_cores: List[int]
    is_consistent: bool


class ReconcileResponse(BaseModel):
    cores_checked: int
    cores_changed: int


# ═══════════════════════════════════════════════════════════════════════
# CUSTOMER SCHEMAS
# ═══════════════════════════════════════════════════════════════════════

class CustomerFields(BaseModel):
    """Pure field definitions for customers.  No validators."""

    node_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=100)
    ont_sn: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    current_status: Optional[str] = None
    subscription_type: Optional[str] = Field(None, max_length=100)


class _CustomerValidators:
    """Mixin-style validators reused by CustomerCreate and CustomerUpdate."""

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not EMAIL_RE.match(v):
            raise ValueError(f"Invalid email address '{v}'")
        return v

    @field_validator("current_status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_choice(v, VALID_CUSTOMER_STATUSES, "customer status")


class CustomerCreate(CustomerFields, _CustomerValidators):
    """Schema for creating a customer — fields + strict validation."""
    pass


class CustomerUpdate(BaseModel, _CustomerValidators):
    """Schema for updating a customer (all fields optional, with validation)."""

    node_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    ont_sn: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    current_status: Optional[str] = None
    last_rx_power: Optional[float] = None
    subscription_type: Optional[str] = Field(None, max_length=100)


class CustomerResponse(CustomerFields):
    """Schema for customer responses — no validators."""

    id: int
    current_status: str
    last_rx_power: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def signal_quality(self) -> Optional[str]:
        return rx_power_quality(self.last_rx_power)


class CustomerStatusUpdate(BaseModel):
    """Live status report from the monitoring feed."""

    status: str
    rx_power: Optional[float] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        return validate_choice(v, VALID_CUSTOMER_STATUSES, "customer status")


class CustomerBulkStatusUpdate(BaseModel):
    """Status updates keyed by ONT serial number."""

    updates: Dict[str, str] = Field(..., min_length=1)

    @field_validator("updates")
    @classmethod
    def validate_updates(cls, v: Dict[str, str]) -> Dict[str, str]:
        return {
            ont_sn: validate_choice(status, VALID_CUSTOMER_STATUSES, "customer status")
            for ont_sn, status in v.items()
        }


# ═══════════════════════════════════════════════════════════════════════
# TRACE SCHEMAS
# ═══════════════════════════════════════════════════════════════════════

class TraceHop(BaseModel):
    """One traversed connection on the way to the head-end."""

    sequence: int
    connection: ConnectionResponse
    node: Optional[NodeResponse] = None
    core: Optional[CoreResponse] = None
    cable: Optional[CableResponse] = None
    loss_db: float
    cumulative_loss_db: float


class CustomerTraceResponse(BaseModel):
    customer: CustomerResponse
    trace_path: List[TraceHop]
    total_loss_db: float
    total_hops: int
    trace_valid: bool
    reason: str
    cycle_detected: bool
    fan_out_points: List[Dict[str, Any]]
    head_end: Optional[NodeResponse] = None


# ═══════════════════════════════════════════════════════════════════════
# RESPONSE ENVELOPE
# ═══════════════════════════════════════════════════════════════════════

def success_response(data: Any = None, message: Optional[str] = None) -> dict:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def error_response(error: str, **extra: Any) -> dict:
    return {"success": False, "error": error, **extra}


def paginated_response(items: List[Any], total: int, limit: int, offset: int) -> dict:
    return {
        "success": True,
        "data": items,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }
