"""Structural edits an editor performs when a node is dropped onto the canvas.

Like everything else here these are copy-on-write: each call returns a new
node list and leaves the input untouched.
"""

from __future__ import annotations

from collections.abc import Sequence

from hierflow.errors import CyclicHierarchy, Diagnostic, DiagnosticCode, DuplicateNodeId, Severity
from hierflow.hierarchy import HierarchyIndex
from hierflow.layout.types import DEFAULT_NODE_HEIGHT, DEFAULT_NODE_WIDTH
from hierflow.model import Node, NodeKind, Point, Size

_DEFAULT_SIZE = Size(DEFAULT_NODE_WIDTH, DEFAULT_NODE_HEIGHT)


def contains(node: Node, point: Point, default_size: Size = _DEFAULT_SIZE) -> bool:
    """True if ``point`` lies inside the node's box (edges inclusive)."""
    size = node.size or default_size
    return (
        node.position.x <= point.x <= node.position.x + size.width
        and node.position.y <= point.y <= node.position.y + size.height
    )


def hit_test(nodes: Sequence[Node], point: Point, default_size: Size = _DEFAULT_SIZE) -> Node | None:
    """Deepest visible node under ``point``, or None.

    Positions are taken as absolute. Between nodes at the same depth the one
    later in the list wins, since it is drawn on top.
    """
    index = HierarchyIndex.build(nodes)
    best: Node | None = None
    best_depth = -1
    for node in nodes:
        if node.hidden or not contains(node, point, default_size):
            continue
        depth = index.depth(node.id)
        if depth >= best_depth:
            best, best_depth = node, depth
    return best


def reparent(nodes: Sequence[Node], node_id: str, parent_id: str | None) -> list[Node]:
    """Move ``node_id`` under ``parent_id`` (or to the root when None).

    The new parent is promoted to a group if it was a leaf.

    Raises:
        KeyError: either id is unknown.
        CyclicHierarchy: the parent is the node itself or one of its descendants.
    """
    index = HierarchyIndex.build(nodes)
    index.require(node_id)
    if parent_id is not None:
        index.require(parent_id)
        if parent_id == node_id or parent_id in index.descendants(node_id):
            raise CyclicHierarchy(Diagnostic(
                code=DiagnosticCode.CYCLIC_HIERARCHY,
                severity=Severity.ERROR,
                message=f"Cannot move {node_id} under {parent_id}: it would become its own ancestor",
                node_id=node_id,
            ))

    result: list[Node] = []
    for node in nodes:
        if node.id == node_id:
            node = node.evolve(parent_id=parent_id)
        elif node.id == parent_id and not node.is_group:
            node = node.evolve(kind=NodeKind.GROUP)
        result.append(node)
    return result


def drop(nodes: Sequence[Node], new_node: Node, point: Point, default_size: Size = _DEFAULT_SIZE) -> list[Node]:
    """Add ``new_node`` at ``point``.

    Dropped onto an existing node, the new node becomes its child, placed at
    the parent's origin (the next layout pass positions it properly), and the
    target is promoted to a group. Dropped onto empty canvas, it is a root
    node at ``point``.

    Raises:
        DuplicateNodeId: ``new_node.id`` is already in use.
    """
    if any(node.id == new_node.id for node in nodes):
        raise DuplicateNodeId(Diagnostic(
            code=DiagnosticCode.DUPLICATE_NODE_ID,
            severity=Severity.ERROR,
            message=f"Duplicate node id: {new_node.id}",
            node_id=new_node.id,
        ))
    target = hit_test(nodes, point, default_size)
    if target is None:
        return [*nodes, new_node.evolve(parent_id=None, position=point)]
    added = new_node.evolve(parent_id=target.id, position=target.position)
    return reparent([*nodes, added], added.id, target.id)
