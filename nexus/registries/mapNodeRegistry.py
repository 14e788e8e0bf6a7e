"""
Map Node Registry

Static tactical map nodes (id -> name/position) used by logistics lane
route resolution. Positions are normalized board coordinates (0-100).
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple, Union


def _coordinate(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


@dataclass(frozen=True)
class MapNode:
    id: str
    name: str
    kind: str
    parentId: Optional[str] = None
    position: Tuple[float, float] = (0.0, 0.0)

    def toDict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "parentId": self.parentId,
            "position": {"x": self.position[0], "y": self.position[1]},
        }

    @staticmethod
    def fromDict(data: Dict[str, Any], nodeId: Optional[str] = None) -> 'MapNode':
        """Never raises for a dict: unusable coordinates become 0.0."""
        position = data.get("position")
        if isinstance(position, dict):
            xy = (_coordinate(position.get("x")), _coordinate(position.get("y")))
        elif isinstance(position, (list, tuple)) and len(position) == 2:
            xy = (_coordinate(position[0]), _coordinate(position[1]))
        else:
            xy = (_coordinate(data.get("x")), _coordinate(data.get("y")))
        resolvedId = str(nodeId or data.get("id") or "")
        return MapNode(
            id=resolvedId,
            name=str(data.get("name") or data.get("label") or resolvedId),
            kind=str(data.get("kind") or "node"),
            parentId=data.get("parentId"),
            position=xy,
        )


TACTICAL_MAP_NODES: Tuple[MapNode, ...] = (
    MapNode("system-stanton", "Stanton", "system", None, (50.0, 50.0)),
    MapNode("body-hurston", "Hurston", "planet", "system-stanton", (22.0, 64.0)),
    MapNode("body-crusader", "Crusader", "planet", "system-stanton", (70.0, 30.0)),
    MapNode("body-arccorp", "ArcCorp", "planet", "system-stanton", (78.0, 70.0)),
    MapNode("body-microtech", "microTech", "planet", "system-stanton", (30.0, 18.0)),
    MapNode("city-lorville", "Lorville", "city", "body-hurston", (20.0, 67.0)),
    MapNode("city-orison", "Orison", "city", "body-crusader", (72.0, 33.0)),
    MapNode("city-area18", "Area18", "city", "body-arccorp", (80.0, 73.0)),
    MapNode("city-new-babbage", "New Babbage", "city", "body-microtech", (28.0, 15.0)),
    MapNode("station-everus-harbor", "Everus Harbor", "station", "body-hurston", (25.0, 60.0)),
    MapNode("station-seraphim", "Seraphim Station", "station", "body-crusader", (67.0, 27.0)),
    MapNode("station-baijini-point", "Baijini Point", "station", "body-arccorp", (75.0, 67.0)),
    MapNode("station-port-tressler", "Port Tressler", "station", "body-microtech", (33.0, 21.0)),
    MapNode("lagrange-hur-l1", "HUR-L1 Green Glade", "lagrange", "system-stanton", (34.0, 58.0)),
    MapNode("lagrange-cru-l1", "CRU-L1 Ambitious Dream", "lagrange", "system-stanton", (62.0, 38.0)),
    MapNode("lagrange-arc-l1", "ARC-L1 Wide Forest", "lagrange", "system-stanton", (66.0, 64.0)),
    MapNode("lagrange-mic-l1", "MIC-L1 Shallow Frontier", "lagrange", "system-stanton", (38.0, 30.0)),
)

TACTICAL_MAP_NODE_BY_ID: Dict[str, MapNode] = {node.id: node for node in TACTICAL_MAP_NODES}


def getMapNode(nodeId: str) -> Optional[MapNode]:
    return TACTICAL_MAP_NODE_BY_ID.get(nodeId)


def coerceMapNodes(mapNodes: Union[None, Dict[str, Any], Iterable[Any]]) -> Dict[str, MapNode]:
    """
    Normalize caller-supplied map nodes into an ordered id -> MapNode table.

    Accepts a {nodeId: {name, position}} mapping, an iterable of MapNode or
    node dicts, or None for the built-in registry. Entries without an id are
    dropped.
    """
    if mapNodes is None:
        return dict(TACTICAL_MAP_NODE_BY_ID)

    nodes: Dict[str, MapNode] = {}
    if isinstance(mapNodes, dict):
        items = [
            value if isinstance(value, MapNode) else MapNode.fromDict(value, nodeId=key)
            for key, value in mapNodes.items() if isinstance(value, (dict, MapNode))
        ]
    else:
        items = [
            item if isinstance(item, MapNode) else MapNode.fromDict(item)
            for item in mapNodes if isinstance(item, (dict, MapNode))
        ]

    for node in items:
        if node.id and node.id not in nodes:
            nodes[node.id] = node
    return nodes
