"""
GeoJSON encoding of nodes and cables for the map view.

Coordinates are emitted as [longitude, latitude].
"""
from typing import Iterable


def feature_collection(features: list) -> dict:
    return {"type": "FeatureCollection", "features": features}


def node_feature(node) -> dict:
    """Encode a node as a Point feature."""
    return {
        "type": "Feature",
        "geometry": {
            "type": "Point",
            "coordinates": [node.longitude, node.latitude],
        },
        "properties": {
            "id": node.id,
            "name": node.name,
            "type": node.type,
            "status": node.status,
            "address": node.address,
            "capacity_ports": node.capacity_ports,
            "used_ports": node.used_ports,
        },
    }


def has_route(cable) -> bool:
    """True when a cable has at least two drawn points."""
    path = cable.path_coordinates
    return isinstance(path, list) and len(path) >= 2


def cable_feature(cable) -> dict:
    """Encode a cable route as a LineString feature."""
    return {
        "type": "Feature",
        "geometry": {
            "type": "LineString",
            "coordinates": [list(point) for point in cable.path_coordinates],
        },
        "properties": {
            "id": cable.id,
            "name": cable.name,
            "type": cable.type,
            "core_count": cable.core_count,
            "length_meter": cable.length_meter,
            "origin_node_id": cable.origin_node_id,
            "dest_node_id": cable.dest_node_id,
            "color_hex": cable.color_hex,
            "status": cable.status,
        },
    }


def nodes_to_geojson(nodes: Iterable) -> dict:
    return feature_collection([node_feature(n) for n in nodes])


def cables_to_geojson(cables: Iterable) -> dict:
    """Encode cables; cables without a drawable route are left out."""
    return feature_collection([cable_feature(c) for c in cables if has_route(c)])
