"""Layout IR types and option defaults."""

from __future__ import annotations

from dataclasses import dataclass, field

from hierflow.errors import Diagnostic
from hierflow.hierarchy import OrphanPolicy
from hierflow.model import Edge, Node, Size

# ─── Geometry Constants ───────────────────────────────────────────────────────

DEFAULT_NODE_WIDTH: float = 172.0
DEFAULT_NODE_HEIGHT: float = 36.0
DEFAULT_MARGIN: float = 20.0  # space between a group border and its children
NODE_SPACING: float = 50.0  # gap between neighbours within one rank
RANK_SPACING: float = 50.0  # gap between adjacent ranks
MAX_CROSSING_PASSES: int = 24

DUMMY_PREFIX = "__dummy_"


@dataclass(frozen=True)
class LayoutOptions:
    margin: float = DEFAULT_MARGIN
    default_size: Size = field(default_factory=lambda: Size(DEFAULT_NODE_WIDTH, DEFAULT_NODE_HEIGHT))
    node_spacing: float = NODE_SPACING
    rank_spacing: float = RANK_SPACING
    orphan_policy: OrphanPolicy = OrphanPolicy.PROMOTE
    # Report child positions relative to the parent group's top-left corner.
    relative_positions: bool = False
    max_crossing_passes: int = MAX_CROSSING_PASSES


@dataclass
class LayoutNode:
    """A positioned box inside one scope.

    Coordinates are top-left, scope-local, and expressed in rank space: ``y``
    runs along ranks and ``x`` across them. The engine transposes for
    left-to-right layouts.
    """

    id: str
    rank: int
    order: int
    x: float
    y: float
    width: float
    height: float
    dummy: bool = False


@dataclass
class LayoutResult:
    """Laid-out snapshot: nodes with positions and group sizes filled in.

    ``edges`` is the caller's edge list, unchanged and complete, including
    cross-scope edges, self-loops and edges with unknown endpoints.
    """

    nodes: list[Node]
    edges: list[Edge]
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def node(self, node_id: str) -> Node:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def to_dict(self) -> dict:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
