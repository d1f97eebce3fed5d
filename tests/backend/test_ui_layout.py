"""Tests for the radial layout of query, paper and gap nodes."""

from __future__ import annotations

import math
from typing import Dict, Optional, Tuple

import pytest

from backend.app.contracts import PaperRecord
from backend.app.graph.layout import (
    CENTER_NODE_ID,
    CenterNode,
    EdgeKind,
    GapNode,
    PaperNode,
    RadialGeometry,
    compute_radial_layout,
    edge_to_payload,
    node_to_payload,
)


def _paper(paper_id: str, *, gap: Optional[str] = None, year: Optional[int] = 2020) -> PaperRecord:
    return PaperRecord(paper_id=paper_id, title=f"Paper {paper_id}", year=year, research_gap=gap)


def _radius(position: Tuple[float, float], origin: Tuple[float, float]) -> float:
    return math.hypot(position[0] - origin[0], position[1] - origin[1])


def _angle(position: Tuple[float, float], origin: Tuple[float, float]) -> float:
    return math.atan2(position[1] - origin[1], position[0] - origin[0])


def test_layout_counts_nodes_and_edges_for_transformers_search() -> None:
    """Five papers with three gaps produce nine nodes and eight edges."""

    records = [
        _paper("a", gap="Longer contexts remain open."),
        _paper("b"),
        _paper("c", gap="Evaluation on low-resource languages."),
        _paper("d"),
        _paper("e", gap="Compute cost of pre-training."),
    ]

    layout = compute_radial_layout(records, "transformers")

    assert layout.node_count == 9
    assert layout.edge_count == 8
    assert sum(1 for _ in layout.paper_nodes()) == 5
    assert sum(1 for _ in layout.gap_nodes()) == 3


def test_layout_places_papers_on_ring_at_even_angles() -> None:
    geometry = RadialGeometry()
    origin = (geometry.origin_x, geometry.origin_y)
    records = [_paper(str(index)) for index in range(4)]

    layout = compute_radial_layout(records, "graphs", geometry)
    positions: Dict[str, Tuple[float, float]] = layout.positions

    assert positions[CENTER_NODE_ID] == origin
    for index in range(4):
        position = positions[f"paper-{index}"]
        assert _radius(position, origin) == pytest.approx(geometry.paper_radius)
        expected = index * (2 * math.pi / 4)
        assert math.cos(_angle(position, origin)) == pytest.approx(math.cos(expected))
        assert math.sin(_angle(position, origin)) == pytest.approx(math.sin(expected))


def test_gap_node_extends_outward_from_its_paper() -> None:
    geometry = RadialGeometry(origin_x=0.0, origin_y=0.0, paper_radius=10.0, gap_radius=5.0)
    records = [_paper("x"), _paper("y", gap="Needs more data.")]

    layout = compute_radial_layout(records, "q", geometry)
    paper = layout.node("paper-y")
    gap = layout.node("gap-y")

    assert isinstance(paper, PaperNode)
    assert isinstance(gap, GapNode)
    assert (paper.position.x, paper.position.y) == pytest.approx((-10.0, 0.0), abs=1e-9)
    assert (gap.position.x, gap.position.y) == pytest.approx((-15.0, 0.0), abs=1e-9)
    assert gap.text == "Needs more data."


def test_empty_layout_contains_only_center() -> None:
    layout = compute_radial_layout([], "nothing")

    assert layout.node_count == 1
    assert layout.edge_count == 0
    assert isinstance(layout.nodes[0], CenterNode)
    assert layout.center.label == "Query: nothing"


def test_single_paper_sits_at_angle_zero() -> None:
    geometry = RadialGeometry()
    layout = compute_radial_layout([_paper("solo")], "q", geometry)

    node = layout.node("paper-solo")
    assert node is not None
    assert node.position.x == pytest.approx(geometry.origin_x + geometry.paper_radius)
    assert node.position.y == pytest.approx(geometry.origin_y)


def test_node_and_edge_ids_are_derived_from_paper_ids() -> None:
    layout = compute_radial_layout([_paper("p1", gap="gap")], "q")

    assert [node.id for node in layout.nodes] == [CENTER_NODE_ID, "paper-p1", "gap-p1"]
    assert [(edge.id, edge.kind) for edge in layout.edges] == [
        ("edge-center-p1", EdgeKind.QUERY),
        ("edge-paper-gap-p1", EdgeKind.EXTRACTION),
    ]
    assert layout.edges[0].source == CENTER_NODE_ID
    assert layout.edges[1].target == "gap-p1"


def test_empty_gap_string_creates_no_gap_node() -> None:
    layout = compute_radial_layout([_paper("p1", gap="")], "q")

    assert layout.node("gap-p1") is None
    assert layout.edge_count == 1


def test_payloads_tag_each_node_variant() -> None:
    layout = compute_radial_layout([_paper("p1", gap="gap text")], "q")

    payloads = [node_to_payload(node) for node in layout.nodes]
    assert [payload["type"] for payload in payloads] == ["center", "paper", "gap"]
    assert payloads[0]["data"] == {"label": "Query: q"}
    assert payloads[2]["data"] == {"paperId": "p1", "gap": "gap text"}
    assert edge_to_payload(layout.edges[1])["kind"] == "extraction"
