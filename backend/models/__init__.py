from .node import Node
from .cable import Cable
from .cable_core import CableCore
from .connection import Connection
from .customer import Customer

__all__ = [
    "Node",
    "Cable",
    "CableCore",
    "Connection",
    "Customer",
]
