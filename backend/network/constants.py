"""
Shared constants for the fiber topology engine.
"""

# ── Node types ───────────────────────────────────────────────────
NODE_TYPE_OLT = "OLT"            # Head-end, where traces terminate
NODE_TYPE_ODC = "ODC"            # Distribution cabinet
NODE_TYPE_ODP = "ODP"            # Access point
NODE_TYPE_CLOSURE = "CLOSURE"    # Splice closure
NODE_TYPE_POLE = "POLE"
NODE_TYPE_CUSTOMER = "CUSTOMER"  # Subscriber premises

NODE_TYPES = (
    NODE_TYPE_OLT,
    NODE_TYPE_ODC,
    NODE_TYPE_ODP,
    NODE_TYPE_CLOSURE,
    NODE_TYPE_POLE,
    NODE_TYPE_CUSTOMER,
)
HEAD_END_NODE_TYPES = frozenset({NODE_TYPE_OLT})

# Nodes and cables share the same lifecycle states
ASSET_STATUSES = ("ACTIVE", "MAINTENANCE", "PLAN", "INACTIVE")
DEFAULT_ASSET_STATUS = "ACTIVE"

# ── Cables ───────────────────────────────────────────────────────
CABLE_TYPES = ("ADSS", "DUCT", "DROP")
MIN_CORE_COUNT = 1
MAX_CORE_COUNT = 288
DEFAULT_CABLE_COLOR = "#000000"

# ── Cores ────────────────────────────────────────────────────────
CORE_STATUS_VACANT = "VACANT"
CORE_STATUS_USED = "USED"
CORE_STATUS_RESERVED = "RESERVED"
CORE_STATUS_DAMAGED = "DAMAGED"

CORE_STATUSES = (
    CORE_STATUS_VACANT,
    CORE_STATUS_USED,
    CORE_STATUS_RESERVED,
    CORE_STATUS_DAMAGED,
)

# Operator-set states that connection create/delete never release
MANUAL_CORE_STATUSES = frozenset({CORE_STATUS_RESERVED, CORE_STATUS_DAMAGED})

# ── Color palette ────────────────────────────────────────────────
# Standard 12-color sequence, used for both buffer tubes and cores.
FIBER_COLORS = (
    "Blue", "Orange", "Green", "Brown", "Slate", "White",
    "Red", "Black", "Yellow", "Violet", "Rose", "Aqua",
)

# ── Connections ──────────────────────────────────────────────────
ENDPOINT_CORE = "CORE"
ENDPOINT_PORT = "PORT"
ENDPOINT_TYPES = (ENDPOINT_CORE, ENDPOINT_PORT)

# ── Customers ────────────────────────────────────────────────────
CUSTOMER_STATUS_ONLINE = "ONLINE"
CUSTOMER_STATUS_OFFLINE = "OFFLINE"
CUSTOMER_STATUS_LOS = "LOS"
CUSTOMER_STATUS_POWER_OFF = "POWER_OFF"

CUSTOMER_STATUSES = (
    CUSTOMER_STATUS_ONLINE,
    CUSTOMER_STATUS_OFFLINE,
    CUSTOMER_STATUS_LOS,
    CUSTOMER_STATUS_POWER_OFF,
)

# Receive power thresholds (dBm)
RX_POWER_GOOD = -25.0
RX_POWER_WARNING = -27.0
RX_POWER_CRITICAL = -28.0  # LOS imminent

# ── Path tracing ─────────────────────────────────────────────────
DEFAULT_TRACE_MAX_HOPS = 20

TRACE_REASON_HEAD_END = "head_end_reached"
TRACE_REASON_DEAD_END = "dead_end"
TRACE_REASON_MAX_HOPS = "max_hops_exceeded"
TRACE_REASON_NO_CONNECTION = "no_connection"
TRACE_REASON_NO_NODE = "no_node"

# ── Geography ────────────────────────────────────────────────────
EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.32
