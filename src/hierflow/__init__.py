"""hierflow — hierarchical layered layout and visibility control for nested diagrams."""

from hierflow.editing import drop, hit_test, reparent
from hierflow.errors import (
    CyclicEdges,
    CyclicHierarchy,
    Diagnostic,
    DiagnosticCode,
    DiagramError,
    DuplicateNodeId,
    OrphanParent,
    Severity,
)
from hierflow.hierarchy import HierarchyIndex, OrphanPolicy, get_descendants, validate
from hierflow.layout import LayoutOptions, LayoutResult, layout
from hierflow.model import Direction, Edge, Node, NodeKind, Point, Side, Size
from hierflow.visibility import collapse, expand, focus

__all__ = [
    # Model
    "Node",
    "Edge",
    "NodeKind",
    "Direction",
    "Side",
    "Size",
    "Point",
    # Hierarchy
    "HierarchyIndex",
    "OrphanPolicy",
    "get_descendants",
    "validate",
    # Layout
    "layout",
    "LayoutOptions",
    "LayoutResult",
    # Visibility
    "expand",
    "collapse",
    "focus",
    # Editing
    "hit_test",
    "reparent",
    "drop",
    # Errors
    "Diagnostic",
    "DiagnosticCode",
    "Severity",
    "DiagramError",
    "CyclicHierarchy",
    "CyclicEdges",
    "DuplicateNodeId",
    "OrphanParent",
]
