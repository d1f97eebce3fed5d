"""Radial layout for query, paper and research-gap nodes."""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from typing_extensions import assert_never

from backend.app.config import LayoutConfig
from backend.app.contracts import PaperRecord

CENTER_NODE_ID = "center-node"


def paper_node_id(paper_id: str) -> str:
    """Return the stable node identifier for a paper."""

    return f"paper-{paper_id}"


def gap_node_id(paper_id: str) -> str:
    """Return the stable node identifier for a paper's research gap."""

    return f"gap-{paper_id}"


class EdgeKind(str, Enum):
    """Relations drawn between graph nodes."""

    QUERY = "query"
    EXTRACTION = "extraction"


@dataclass(frozen=True)
class Position:
    """Canvas coordinates of a node."""

    x: float
    y: float


@dataclass(frozen=True)
class CenterNode:
    """The single node representing the active search query."""

    label: str
    position: Position

    @property
    def id(self) -> str:
        return CENTER_NODE_ID


@dataclass(frozen=True)
class PaperNode:
    """A visible paper, keyed by its external ``paper_id``."""

    paper_id: str
    position: Position

    @property
    def id(self) -> str:
        return paper_node_id(self.paper_id)


@dataclass(frozen=True)
class GapNode:
    """The extracted research gap hanging off a paper node."""

    paper_id: str
    text: str
    position: Position

    @property
    def id(self) -> str:
        return gap_node_id(self.paper_id)


GraphNode = Union[CenterNode, PaperNode, GapNode]


@dataclass(frozen=True)
class GraphEdge:
    """Directed edge derived from the presence of both endpoints."""

    source: str
    target: str
    kind: EdgeKind
    paper_id: str

    @property
    def id(self) -> str:
        if self.kind is EdgeKind.QUERY:
            return f"edge-center-{self.paper_id}"
        return f"edge-paper-gap-{self.paper_id}"


@dataclass(frozen=True)
class RadialGeometry:
    """Origin and ring radii used by :func:`compute_radial_layout`."""

    origin_x: float = 400.0
    origin_y: float = 300.0
    paper_radius: float = 350.0
    gap_radius: float = 250.0

    @classmethod
    def from_config(cls, config: LayoutConfig) -> "RadialGeometry":
        return cls(
            origin_x=config.origin_x,
            origin_y=config.origin_y,
            paper_radius=config.paper_radius,
            gap_radius=config.gap_radius,
        )


@dataclass(frozen=True)
class GraphLayout:
    """Positioned nodes and derived edges for one visible paper set."""

    center: CenterNode
    nodes: Tuple[GraphNode, ...]
    edges: Tuple[GraphEdge, ...]

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def node(self, node_id: str) -> Optional[GraphNode]:
        """Return the node with ``node_id`` if it is part of the layout."""

        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def paper_nodes(self) -> Iterator[PaperNode]:
        return (node for node in self.nodes if isinstance(node, PaperNode))

    def gap_nodes(self) -> Iterator[GapNode]:
        return (node for node in self.nodes if isinstance(node, GapNode))

    @property
    def positions(self) -> Dict[str, Tuple[float, float]]:
        return {node.id: (node.position.x, node.position.y) for node in self.nodes}


def compute_radial_layout(
    records: Sequence[PaperRecord],
    query: str,
    geometry: RadialGeometry = RadialGeometry(),
) -> GraphLayout:
    """Place the query, its papers and their gaps on concentric circles.

    Paper ``i`` of ``N`` sits at angle ``i * 2π / max(N, 1)`` on the paper ring
    around the origin. A paper's gap node continues outward along the same
    angle, on a ring of ``gap_radius`` around the paper itself. The layout is
    recomputed from scratch for every call, so adding or removing a paper
    shifts the angles of all other papers.

    Args:
        records: Visible papers in display order.
        query: Active search query used for the center label.
        geometry: Origin and radii.

    Returns:
        GraphLayout containing ``1 + N + g`` nodes and ``N + g`` edges, where
        ``g`` counts papers with a non-empty research gap.
    """

    center = CenterNode(
        label=f"Query: {query}",
        position=Position(geometry.origin_x, geometry.origin_y),
    )
    nodes: List[GraphNode] = [center]
    edges: List[GraphEdge] = []

    angle_step = 2 * math.pi / max(len(records), 1)
    for index, record in enumerate(records):
        angle = index * angle_step
        paper_x = geometry.origin_x + geometry.paper_radius * math.cos(angle)
        paper_y = geometry.origin_y + geometry.paper_radius * math.sin(angle)
        paper = PaperNode(paper_id=record.paper_id, position=Position(paper_x, paper_y))
        nodes.append(paper)
        edges.append(
            GraphEdge(source=center.id, target=paper.id, kind=EdgeKind.QUERY, paper_id=record.paper_id)
        )

        if record.research_gap:
            gap = GapNode(
                paper_id=record.paper_id,
                text=record.research_gap,
                position=Position(
                    paper_x + geometry.gap_radius * math.cos(angle),
                    paper_y + geometry.gap_radius * math.sin(angle),
                ),
            )
            nodes.append(gap)
            edges.append(
                GraphEdge(
                    source=paper.id,
                    target=gap.id,
                    kind=EdgeKind.EXTRACTION,
                    paper_id=record.paper_id,
                )
            )

    return GraphLayout(center=center, nodes=tuple(nodes), edges=tuple(edges))


def node_type(node: GraphNode) -> str:
    """Return the renderer type tag for ``node``."""

    if isinstance(node, CenterNode):
        return "center"
    if isinstance(node, PaperNode):
        return "paper"
    if isinstance(node, GapNode):
        return "gap"
    assert_never(node)


def node_to_payload(node: GraphNode) -> Dict[str, object]:
    """Serialize a node into the shape consumed by the graph renderer."""

    data: Dict[str, object]
    if isinstance(node, CenterNode):
        data = {"label": node.label}
    elif isinstance(node, PaperNode):
        data = {"paperId": node.paper_id}
    elif isinstance(node, GapNode):
        data = {"paperId": node.paper_id, "gap": node.text}
    else:
        assert_never(node)
    return {
        "id": node.id,
        "type": node_type(node),
        "position": {"x": node.position.x, "y": node.position.y},
        "data": data,
    }


def edge_to_payload(edge: GraphEdge) -> Dict[str, object]:
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "kind": edge.kind.value,
    }


__all__ = [
    "CENTER_NODE_ID",
    "CenterNode",
    "EdgeKind",
    "GapNode",
    "GraphEdge",
    "GraphLayout",
    "GraphNode",
    "PaperNode",
    "Position",
    "RadialGeometry",
    "compute_radial_layout",
    "edge_to_payload",
    "gap_node_id",
    "node_to_payload",
    "node_type",
    "paper_node_id",
]
