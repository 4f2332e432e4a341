"""Collapse, expand and focus as pure transformations of the ``hidden`` flag.

None of these touch positions, so toggling visibility never needs a relayout.

Collapse is deep and expand is shallow: ``collapse(A)`` hides every
descendant of A, while ``expand(A)`` reveals only A's direct children. After
``collapse(A)`` then ``expand(A)``, grandchildren stay hidden until their own
parent is expanded, which gives a level-by-level reveal.
"""

from __future__ import annotations

from collections.abc import Sequence

from hierflow.hierarchy import HierarchyIndex
from hierflow.model import Edge, Node


def _with_hidden(nodes: Sequence[Node], hidden: dict[str, bool]) -> list[Node]:
    """Copy the node list, replacing ``hidden`` where the map says so."""
    result: list[Node] = []
    for node in nodes:
        flag = hidden.get(node.id, node.hidden)
        result.append(node if flag == node.hidden else node.evolve(hidden=flag))
    return result


def expand(nodes: Sequence[Node], target_id: str) -> list[Node]:
    """Show the direct children of ``target_id``; deeper levels are left as they are."""
    index = HierarchyIndex.build(nodes)
    index.require(target_id)
    return _with_hidden(nodes, {nid: False for nid in index.children(target_id)})


def collapse(nodes: Sequence[Node], target_id: str) -> list[Node]:
    """Hide every descendant of ``target_id``. The target itself stays as it is."""
    index = HierarchyIndex.build(nodes)
    return _with_hidden(nodes, {nid: True for nid in index.descendants(target_id)})


def focus_set(nodes: Sequence[Node], edges: Sequence[Edge], target_id: str) -> set[str]:
    """The target, its descendants and every node sharing an edge with it."""
    index = HierarchyIndex.build(nodes)
    keep = {target_id, *index.descendants(target_id)}
    for edge in edges:
        if edge.source == target_id:
            keep.add(edge.target)
        elif edge.target == target_id:
            keep.add(edge.source)
    return keep


def focus(nodes: Sequence[Node], edges: Sequence[Edge], target_id: str) -> list[Node]:
    """Show exactly the focus set of ``target_id`` and hide everything else.

    Always computed from the full node list; earlier collapse, expand or
    focus state is discarded, not narrowed.
    """
    keep = focus_set(nodes, edges, target_id)
    return _with_hidden(nodes, {node.id: node.id not in keep for node in nodes})
