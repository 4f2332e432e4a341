"""Sugiyama-style layered layout for a single scope.

Phases:
  1. Cycle detection / removal  (greedy-FAS, only when a scope is cyclic)
  2. Rank assignment            (longest path over a topological order)
  3. Crossing minimization      (barycenter heuristic, seeded by input order)
  4. Coordinate assignment      (top-left boxes in rank space)

Everything here works in "rank space": ranks advance along ``y`` and the
order within a rank runs along ``x``. Callers swap width/height on the way in
and transpose positions on the way out for left-to-right layouts.

Each call builds its own ``nx.DiGraph``; nothing is shared between calls.
Iteration follows node insertion order everywhere so identical input always
yields identical coordinates.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import networkx as nx

from hierflow.layout.types import (
    DUMMY_PREFIX,
    MAX_CROSSING_PASSES,
    NODE_SPACING,
    RANK_SPACING,
    LayoutNode,
)

# ─── Scope Graph ──────────────────────────────────────────────────────────────


def build_scope_graph(
    boxes: Iterable[tuple[str, float, float]],
    edges: Iterable[tuple[str, str]],
) -> nx.DiGraph:
    """Build the layering graph for one scope.

    Args:
        boxes: (id, width, height) per member, in input order.
        edges: (source, target) pairs. Pairs with an endpoint outside the
            scope and self-loops are skipped.
    """
    graph: nx.DiGraph = nx.DiGraph()
    for node_id, width, height in boxes:
        graph.add_node(node_id, width=width, height=height)
    for src, tgt in edges:
        if src == tgt or src not in graph or tgt not in graph:
            continue
        graph.add_edge(src, tgt)
    return graph


def find_rank_cycle(graph: nx.DiGraph) -> list[tuple[str, str]] | None:
    """Return the edges of one cycle, or None when the scope is acyclic."""
    try:
        return [(edge[0], edge[1]) for edge in nx.find_cycle(graph)]
    except nx.NetworkXNoCycle:
        return None


# ─── Cycle Removal (Greedy-FAS) ───────────────────────────────────────────────


def greedy_fas_ordering(graph: nx.DiGraph) -> list[str]:
    """Compute a node ordering using the greedy-FAS heuristic.

    Nodes earlier in the ordering should have outgoing edges going forward.

    Algorithm (Eades, Lin, Smyth 1993):
    - Maintain dynamic in/out degree counters updated as nodes are removed.
    - Repeatedly:
        1. Move all sinks (out_deg == 0) to s2.
        2. Move all sources (in_deg == 0) to s1.
        3. Of remaining nodes in cycles, pick max (out - in) and add to s1.
    - Final ordering: s1 + reversed(s2).
    """
    # dict keeps insertion order, so every scan below is deterministic.
    active: dict[str, None] = dict.fromkeys(graph.nodes)

    out_deg: dict[str, int] = {node: graph.out_degree(node) for node in graph.nodes}
    in_deg: dict[str, int] = {node: graph.in_degree(node) for node in graph.nodes}

    s1: list[str] = []
    s2: list[str] = []

    def _remove(node: str) -> None:
        del active[node]
        for succ in graph.successors(node):
            if succ in active:
                in_deg[succ] -= 1
        for pred in graph.predecessors(node):
            if pred in active:
                out_deg[pred] -= 1

    while active:
        changed = True
        while changed:
            changed = False
            for sink in [n for n in active if out_deg[n] == 0]:
                changed = True
                _remove(sink)
                s2.append(sink)

        changed = True
        while changed:
            changed = False
            for source in [n for n in active if in_deg[n] == 0]:
                changed = True
                _remove(source)
                s1.append(source)

        if active:
            best = max(active, key=lambda n: out_deg[n] - in_deg[n])
            _remove(best)
            s1.append(best)

    s2.reverse()
    s1.extend(s2)
    return s1


def remove_cycles(graph: nx.DiGraph) -> tuple[nx.DiGraph, set[tuple[str, str]]]:
    """Return an acyclic copy of the graph with back-edges reversed.

    The second element holds the reversed edges as (src, tgt) pairs relative
    to the original directions. Self-loops are dropped from the copy.
    """
    if graph.number_of_nodes() == 0:
        return graph.copy(), set()

    position: dict[str, int] = {node: pos for pos, node in enumerate(greedy_fas_ordering(graph))}

    reversed_edges: set[tuple[str, str]] = set()
    dag: nx.DiGraph = nx.DiGraph()
    for node_id in graph.nodes:
        dag.add_node(node_id, **graph.nodes[node_id])
    for src, tgt in graph.edges():
        if src == tgt:
            reversed_edges.add((src, tgt))
            continue
        if position[src] > position[tgt]:
            reversed_edges.add((src, tgt))
            dag.add_edge(tgt, src)
        else:
            dag.add_edge(src, tgt)
    return dag, reversed_edges


# ─── Rank Assignment ──────────────────────────────────────────────────────────


def assign_ranks(dag: nx.DiGraph) -> dict[str, int]:
    """Longest-path ranking: every edge u→v gets rank[v] >= rank[u] + 1.

    One pass over a topological order, O(V + E). Sources sit at rank 0.
    """
    ranks: dict[str, int] = {node: 0 for node in dag.nodes}
    for node in nx.topological_sort(dag):
        for succ in dag.successors(node):
            if ranks[succ] < ranks[node] + 1:
                ranks[succ] = ranks[node] + 1
    return ranks


# ─── Dummy Node Insertion ─────────────────────────────────────────────────────


@dataclass
class AugmentedGraph:
    """A DAG where every edge connects adjacent ranks.

    Edges spanning more than one rank are replaced by chains of zero-size
    dummy nodes, one per intermediate rank. Dummies only steer crossing
    minimization; they never reach the caller.
    """

    graph: nx.DiGraph
    ranks: dict[str, int]
    rank_count: int
    dummy_chains: dict[tuple[str, str], list[str]] = field(default_factory=dict)


def insert_dummy_nodes(dag: nx.DiGraph, ranks: dict[str, int]) -> AugmentedGraph:
    """Split every long edge u → v into u → d₁ → … → dₖ → v."""
    g: nx.DiGraph = nx.DiGraph()
    for node_id in dag.nodes:
        g.add_node(node_id, **dag.nodes[node_id])

    ranks = dict(ranks)
    dummy_chains: dict[tuple[str, str], list[str]] = {}

    for src, tgt in list(dag.edges()):
        span = ranks[tgt] - ranks[src]
        if span <= 1:
            g.add_edge(src, tgt)
            continue

        chain: list[str] = []
        prev = src
        for i in range(span - 1):
            dummy_id = f"{DUMMY_PREFIX}{len(dummy_chains)}_{i}"
            while dummy_id in g:
                dummy_id += "_"
            g.add_node(dummy_id, width=0.0, height=0.0, dummy=True)
            ranks[dummy_id] = ranks[src] + i + 1
            g.add_edge(prev, dummy_id)
            chain.append(dummy_id)
            prev = dummy_id
        g.add_edge(prev, tgt)
        dummy_chains[(src, tgt)] = chain

    rank_count = (max(ranks.values()) + 1) if ranks else 0
    return AugmentedGraph(graph=g, ranks=ranks, rank_count=rank_count, dummy_chains=dummy_chains)


# ─── Crossing Minimization (Barycenter) ───────────────────────────────────────


def minimise_crossings(aug: AugmentedGraph, max_passes: int = MAX_CROSSING_PASSES) -> list[list[str]]:
    """Order each rank to reduce edge crossings.

    The initial order within each rank is the input order. Alternating
    top-down and bottom-up barycenter sweeps run until a pass no longer
    lowers the crossing count. Python's sort is stable, so equal barycenters
    keep their previous relative order, and nodes without neighbours in the
    reference rank keep their current slot.

    Returns one list per rank; the best ordering seen is returned, so the
    result never has more crossings than the input order.
    """
    ordering: list[list[str]] = [[] for _ in range(aug.rank_count)]
    for node_id in aug.graph.nodes:
        ordering[aug.ranks[node_id]].append(node_id)

    best = count_crossings(ordering, aug.graph)
    best_ordering = [list(rank) for rank in ordering]

    for _pass in range(max_passes):
        if best == 0:
            break

        for rank_idx in range(1, aug.rank_count):
            prev = {nid: float(i) for i, nid in enumerate(ordering[rank_idx - 1])}
            _sort_rank(ordering[rank_idx], aug.graph, prev, "incoming")

        for rank_idx in range(aug.rank_count - 2, -1, -1):
            nxt = {nid: float(i) for i, nid in enumerate(ordering[rank_idx + 1])}
            _sort_rank(ordering[rank_idx], aug.graph, nxt, "outgoing")

        new = count_crossings(ordering, aug.graph)
        if new >= best:
            break
        best = new
        best_ordering = [list(rank) for rank in ordering]

    return best_ordering


def _sort_rank(rank: list[str], graph: nx.DiGraph, neighbor_pos: dict[str, float], direction: str) -> None:
    current = {nid: float(i) for i, nid in enumerate(rank)}
    rank.sort(key=lambda nid: _barycenter(nid, graph, neighbor_pos, direction, current[nid]))


def _barycenter(
    node_id: str,
    graph: nx.DiGraph,
    neighbor_pos: dict[str, float],
    direction: str,
    fallback: float,
) -> float:
    """Average position of a node's neighbours in the adjacent rank.

    direction: "incoming" to look at predecessors, "outgoing" for successors.
    Returns ``fallback`` if the node has no neighbours in that rank.
    """
    neighbors = graph.predecessors(node_id) if direction == "incoming" else graph.successors(node_id)
    positions = [neighbor_pos[nb] for nb in neighbors if nb in neighbor_pos]
    if not positions:
        return fallback
    return sum(positions) / len(positions)


def count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    """Count edge crossings between consecutive ranks (inversion count)."""
    total = 0
    for r_idx in range(len(ordering) - 1):
        tgt_pos: dict[str, int] = {nid: i for i, nid in enumerate(ordering[r_idx + 1])}
        edges: list[tuple[int, int]] = []
        for sp, src_id in enumerate(ordering[r_idx]):
            if src_id in graph:
                for nb in graph.successors(src_id):
                    if nb in tgt_pos:
                        edges.append((sp, tgt_pos[nb]))
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] < ej[0] and ei[1] > ej[1]) or (ei[0] > ej[0] and ei[1] < ej[1]):
                    total += 1
    return total


# ─── Coordinate Assignment ────────────────────────────────────────────────────


def assign_coordinates(
    ordering: list[list[str]],
    aug: AugmentedGraph,
    node_spacing: float = NODE_SPACING,
    rank_spacing: float = RANK_SPACING,
) -> list[LayoutNode]:
    """Assign top-left coordinates to every node of the augmented graph.

    Each rank is as thick as its tallest member, members are centred within
    their rank's thickness, and each rank is centred on the widest one.
    """
    graph = aug.graph

    def dims(node_id: str) -> tuple[float, float]:
        attrs = graph.nodes[node_id]
        return attrs.get("width", 0.0), attrs.get("height", 0.0)

    rank_thickness = [max((dims(nid)[1] for nid in rank), default=0.0) for rank in ordering]

    rank_y: list[float] = []
    y = 0.0
    for thickness in rank_thickness:
        rank_y.append(y)
        y += thickness + rank_spacing

    rank_widths: list[float] = []
    for rank in ordering:
        w_sum = sum(dims(nid)[0] for nid in rank)
        rank_widths.append(w_sum + max(0, len(rank) - 1) * node_spacing)

    center = max(rank_widths, default=0.0) / 2

    nodes: list[LayoutNode] = []
    for rank_idx, rank in enumerate(ordering):
        x = center - rank_widths[rank_idx] / 2
        for order, node_id in enumerate(rank):
            width, height = dims(node_id)
            nodes.append(LayoutNode(
                id=node_id,
                rank=rank_idx,
                order=order,
                x=x,
                y=rank_y[rank_idx] + (rank_thickness[rank_idx] - height) / 2,
                width=width,
                height=height,
                dummy=graph.nodes[node_id].get("dummy", False),
            ))
            x += width + node_spacing

    _align_ranks(ordering, nodes, graph, node_spacing)

    if nodes:
        min_x = min(n.x for n in nodes)
        for n in nodes:
            n.x -= min_x

    return nodes


def _align_ranks(
    ordering: list[list[str]],
    nodes: list[LayoutNode],
    graph: nx.DiGraph,
    max_shift: float,
) -> None:
    """Shift whole ranks so their centres line up with connected neighbours.

    A top-down pass aligns each rank under its predecessors, then a bottom-up
    pass aligns each rank over its successors. A rank moves as a unit, so
    members never overlap; shifts larger than ``max_shift`` are skipped.
    """
    by_id: dict[str, LayoutNode] = {n.id: n for n in nodes}

    def centre(n: LayoutNode) -> float:
        return n.x + n.width / 2

    def shift_rank(rank_idx: int, neighbours_of, neighbour_rank: int) -> None:
        own_sum = 0.0
        other_sum = 0.0
        count = 0
        for node_id in ordering[rank_idx]:
            node = by_id[node_id]
            for nb in neighbours_of(node_id):
                other = by_id.get(nb)
                if other is None or other.dummy or other.rank != neighbour_rank:
                    continue
                own_sum += centre(node)
                other_sum += centre(other)
                count += 1
        if count == 0:
            return
        shift = (other_sum - own_sum) / count
        if abs(shift) > max_shift:
            return
        for node_id in ordering[rank_idx]:
            by_id[node_id].x += shift

    for rank_idx in range(1, len(ordering)):
        shift_rank(rank_idx, graph.predecessors, rank_idx - 1)

    for rank_idx in range(len(ordering) - 2, -1, -1):
        shift_rank(rank_idx, graph.successors, rank_idx + 1)


# ─── Scope Pipeline ───────────────────────────────────────────────────────────


@dataclass
class ScopeLayout:
    """Positioned members of one scope (dummies removed).

    ``cycle`` holds the edges of a rank cycle when one was found; the scope
    is then laid out on a copy with greedy-FAS back-edges reversed.
    """

    nodes: list[LayoutNode]
    cycle: list[tuple[str, str]] | None = None
    reversed_edges: set[tuple[str, str]] = field(default_factory=set)


def layout_scope(
    boxes: Iterable[tuple[str, float, float]],
    edges: Iterable[tuple[str, str]],
    node_spacing: float = NODE_SPACING,
    rank_spacing: float = RANK_SPACING,
    max_passes: int = MAX_CROSSING_PASSES,
) -> ScopeLayout:
    """Run the full layered pipeline over one scope's members."""
    graph = build_scope_graph(boxes, edges)
    if graph.number_of_nodes() == 0:
        return ScopeLayout(nodes=[])

    cycle = find_rank_cycle(graph)
    reversed_edges: set[tuple[str, str]] = set()
    dag = graph
    if cycle is not None:
        dag, reversed_edges = remove_cycles(graph)

    ranks = assign_ranks(dag)
    aug = insert_dummy_nodes(dag, ranks)
    ordering = minimise_crossings(aug, max_passes)
    placed = assign_coordinates(ordering, aug, node_spacing, rank_spacing)
    return ScopeLayout(
        nodes=[n for n in placed if not n.dummy],
        cycle=cycle,
        reversed_edges=reversed_edges,
    )
