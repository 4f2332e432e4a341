"""Hierarchical layout — one layered pass per scope, innermost scopes first.

A scope is the set of siblings under one parent (or the parentless root
set). Scopes are processed in post-order over the containment tree, so a
group's size is final before the group is placed as an opaque box in its
own parent's scope. Each finished scope sizes its parent to the visible
members' bounding box plus a margin and records the parent's scope-local
origin; absolute coordinates are composed top-down once every scope is done.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from hierflow.errors import Diagnostic, DiagnosticCode, Severity, raise_first_fatal
from hierflow.hierarchy import ROOT, HierarchyIndex, validate
from hierflow.layout.sugiyama import layout_scope
from hierflow.layout.types import LayoutNode, LayoutOptions, LayoutResult
from hierflow.model import Direction, Edge, Node, Point, Size

logger = logging.getLogger(__name__)


def layout(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    direction: Direction | str = Direction.TopToBottom,
    options: LayoutOptions | None = None,
) -> LayoutResult:
    """Compute positions for every node and sizes for every group.

    Raises:
        CyclicHierarchy, DuplicateNodeId: before any layout work.
        OrphanParent: only under ``OrphanPolicy.STRICT``.

    Recoverable issues (orphans, unknown edge endpoints, rank cycles) are
    returned in ``LayoutResult.diagnostics``. Input records are never mutated.
    """
    direction = Direction.parse(direction)
    options = options or LayoutOptions()

    diagnostics = validate(nodes, edges, options.orphan_policy)
    raise_first_fatal(diagnostics)

    index = HierarchyIndex.build(nodes)
    by_id: dict[str, Node] = {node.id: node for node in nodes}
    scope_edges = _edges_by_scope(edges, index)

    # Scope-local top-left of every node, and each group's local origin
    # (box min minus margin) in its own children's coordinate frame.
    local: dict[str, Point] = {}
    origin: dict[str, Point] = {}
    sizes: dict[str, Size] = {}

    containers = [nid for nid in index.post_order() if index.children_of.get(nid)]
    for scope in [*containers, ROOT]:
        members = index.children(scope)
        boxes = [(nid, *_box(by_id[nid], sizes, options, direction)) for nid in members]
        result = layout_scope(
            boxes,
            scope_edges.get(scope, []),
            node_spacing=options.node_spacing,
            rank_spacing=options.rank_spacing,
            max_passes=options.max_crossing_passes,
        )
        if result.cycle is not None:
            diagnostic = Diagnostic(
                code=DiagnosticCode.CYCLIC_EDGES,
                severity=Severity.WARNING,
                message=(
                    f"Edge cycle in scope {scope or '<root>'}: "
                    + " -> ".join([src for src, _ in result.cycle] + [result.cycle[0][0]])
                    + f"; reversed {len(result.reversed_edges)} edge(s)"
                ),
                node_id=result.cycle[0][0],
                scope=scope,
            )
            logger.warning("%s", diagnostic.message)
            diagnostics.append(diagnostic)

        placed = {ln.id: _to_flow_space(ln, direction) for ln in result.nodes}
        for nid, (x, y, _w, _h) in placed.items():
            local[nid] = Point(x, y)
        logger.debug("Laid out scope %s with %d member(s)", scope or "<root>", len(placed))

        if scope is not ROOT:
            sizes[scope], origin[scope] = _fit_group(by_id, members, placed, options)

    positions = _compose_positions(index, local, origin, options.relative_positions)

    laid_out = [
        node.evolve(
            position=positions.get(node.id, node.position),
            size=_final_size(node, sizes, options),
            source_side=direction.source_side,
            target_side=direction.target_side,
        )
        for node in nodes
    ]
    return LayoutResult(nodes=laid_out, edges=list(edges), diagnostics=diagnostics)


def _final_size(node: Node, sizes: dict[str, Size], options: LayoutOptions) -> Size | None:
    if node.id in sizes:
        return sizes[node.id]
    if node.is_group:
        return node.size or options.default_size
    return node.size


def _edges_by_scope(edges: Sequence[Edge], index: HierarchyIndex) -> dict[str | None, list[tuple[str, str]]]:
    """Group edges whose endpoints are siblings; all other edges are left out of ranking."""
    grouped: dict[str | None, list[tuple[str, str]]] = {}
    for edge in edges:
        if edge.is_self_loop or edge.source not in index or edge.target not in index:
            continue
        scope = index.parent_of[edge.source]
        if index.parent_of[edge.target] != scope:
            continue
        grouped.setdefault(scope, []).append((edge.source, edge.target))
    return grouped


def _box(node: Node, sizes: dict[str, Size], options: LayoutOptions, direction: Direction) -> tuple[float, float]:
    """Box of a scope member in rank space (width across ranks, height along them)."""
    size = sizes.get(node.id) or node.size or options.default_size
    if direction.is_horizontal:
        return size.height, size.width
    return size.width, size.height


def _to_flow_space(ln: LayoutNode, direction: Direction) -> tuple[float, float, float, float]:
    """Rank space → (x, y, width, height) for the requested direction."""
    if direction.is_horizontal:
        return ln.y, ln.x, ln.height, ln.width
    return ln.x, ln.y, ln.width, ln.height


def _fit_group(
    by_id: dict[str, Node],
    members: list[str],
    placed: dict[str, tuple[float, float, float, float]],
    options: LayoutOptions,
) -> tuple[Size, Point]:
    """Size a group around its visible children.

    Hidden children keep their slots in the scope but do not stretch the
    box. A group with no visible children shrinks to the default size,
    anchored at the children's box so hidden children keep coordinates near
    their parent.
    """
    margin = options.margin
    visible = [nid for nid in members if not by_id[nid].hidden]
    counted = visible or members

    min_x = min(placed[nid][0] for nid in counted)
    min_y = min(placed[nid][1] for nid in counted)
    max_x = max(placed[nid][0] + placed[nid][2] for nid in counted)
    max_y = max(placed[nid][1] + placed[nid][3] for nid in counted)
    group_origin = Point(min_x - margin, min_y - margin)

    if not visible:
        return options.default_size, group_origin

    return Size(max_x - min_x + 2 * margin, max_y - min_y + 2 * margin), group_origin


def _compose_positions(
    index: HierarchyIndex,
    local: dict[str, Point],
    origin: dict[str, Point],
    relative: bool,
) -> dict[str, Point]:
    """Turn scope-local positions into final coordinates, parents before children."""
    positions: dict[str, Point] = {}
    for node_id in reversed(index.post_order()):
        here = local[node_id]
        parent = index.parent_of[node_id]
        if parent is None:
            positions[node_id] = here
            continue
        offset = origin[parent]
        rel = Point(here.x - offset.x, here.y - offset.y)
        if relative:
            positions[node_id] = rel
        else:
            base = positions[parent]
            positions[node_id] = Point(base.x + rel.x, base.y + rel.y)
    return positions
