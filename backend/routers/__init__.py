from .nodes import router as nodes_router
from .cables import router as cables_router
from .connections import router as connections_router
from .customers import router as customers_router
from .geojson import router as geojson_router

__all__ = [
    "nodes_router",
    "cables_router",
    "connections_router",
    "customers_router",
    "geojson_router",
]
