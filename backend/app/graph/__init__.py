"""Graph layout and state management for the exploration view."""

from .layout import (
    CenterNode,
    EdgeKind,
    GapNode,
    GraphEdge,
    GraphLayout,
    GraphNode,
    PaperNode,
    Position,
    RadialGeometry,
    compute_radial_layout,
)
from .store import GraphStateStore

__all__ = [
    "CenterNode",
    "EdgeKind",
    "GapNode",
    "GraphEdge",
    "GraphLayout",
    "GraphNode",
    "GraphStateStore",
    "PaperNode",
    "Position",
    "RadialGeometry",
    "compute_radial_layout",
]
