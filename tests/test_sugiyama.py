"""Tests for layout/sugiyama.py — the per-scope layered pipeline.

Covers:
  - greedy_fas_ordering / remove_cycles (cycle removal)
  - assign_ranks (longest path)
  - insert_dummy_nodes
  - count_crossings / minimise_crossings (barycenter heuristic)
  - assign_coordinates
  - layout_scope (full pipeline)
"""

from __future__ import annotations

import networkx as nx

from hierflow.layout.sugiyama import (
    AugmentedGraph,
    assign_coordinates,
    assign_ranks,
    build_scope_graph,
    count_crossings,
    find_rank_cycle,
    greedy_fas_ordering,
    insert_dummy_nodes,
    layout_scope,
    minimise_crossings,
    remove_cycles,
)
from hierflow.layout.types import NODE_SPACING, RANK_SPACING, LayoutNode

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_graph(*edges: tuple[str, str]) -> nx.DiGraph:
    """Build a DiGraph from a list of (src, tgt) string pairs."""
    g: nx.DiGraph = nx.DiGraph()
    for src, tgt in edges:
        g.add_edge(src, tgt)
    return g


def make_graph_nodes(*nodes: str) -> nx.DiGraph:
    """Build a DiGraph with only nodes (no edges)."""
    g: nx.DiGraph = nx.DiGraph()
    for node in nodes:
        g.add_node(node)
    return g


def make_augmented_graph(
    edges: list[tuple[str, str]],
    ranks: dict[str, int],
    width: float = 100.0,
    height: float = 40.0,
) -> AugmentedGraph:
    """Build an AugmentedGraph from explicit ranks; nodes are inserted in ``ranks`` order."""
    g: nx.DiGraph = nx.DiGraph()
    for nid in ranks:
        g.add_node(nid, width=width, height=height)
    for src, tgt in edges:
        g.add_edge(src, tgt)
    rank_count = (max(ranks.values()) + 1) if ranks else 0
    return AugmentedGraph(graph=g, ranks=ranks, rank_count=rank_count)


def by_id(nodes: list[LayoutNode]) -> dict[str, LayoutNode]:
    return {n.id: n for n in nodes}


# ─── Cycle Removal Tests ──────────────────────────────────────────────────────


class TestCycleRemoval:
    def test_dag_has_no_reversed_edges(self):
        """A → B → C (simple DAG, no cycles) — should have zero reversed edges."""
        g = make_graph(("A", "B"), ("B", "C"))
        dag, reversed_edges = remove_cycles(g)
        assert reversed_edges == set()
        assert set(dag.edges()) == {("A", "B"), ("B", "C")}

    def test_single_cycle_reversed(self):
        """A → B → A (2-cycle) — should reverse exactly one edge, result is a DAG."""
        g = make_graph(("A", "B"), ("B", "A"))
        dag, reversed_edges = remove_cycles(g)
        assert len(reversed_edges) == 1
        assert nx.is_directed_acyclic_graph(dag)

    def test_self_loop_removed(self):
        """A → A (self-loop) — counted as reversed and dropped from the DAG."""
        g = make_graph(("A", "A"))
        dag, reversed_edges = remove_cycles(g)
        assert reversed_edges == {("A", "A")}
        assert dag.number_of_edges() == 0
        assert "A" in dag

    def test_complex_cycle(self):
        """A → B → C → A (3-cycle) plus D → B — result must be a DAG."""
        g = make_graph(("A", "B"), ("B", "C"), ("C", "A"), ("D", "B"))
        dag, reversed_edges = remove_cycles(g)
        assert nx.is_directed_acyclic_graph(dag)
        assert len(reversed_edges) >= 1

    def test_empty_graph(self):
        """Empty graph — should return empty graph with no reversed edges."""
        dag, reversed_edges = remove_cycles(nx.DiGraph())
        assert dag.number_of_nodes() == 0
        assert reversed_edges == set()

    def test_node_attributes_preserved(self):
        """Box sizes survive into the acyclic copy."""
        g = build_scope_graph([("A", 10.0, 20.0), ("B", 30.0, 40.0)], [("A", "B"), ("B", "A")])
        dag, _ = remove_cycles(g)
        assert dag.nodes["B"]["width"] == 30.0
        assert dag.nodes["B"]["height"] == 40.0


class TestGreedyFasOrdering:
    def test_chain_ordering(self):
        """A → B → C — ordering follows the chain."""
        g = make_graph(("A", "B"), ("B", "C"))
        assert greedy_fas_ordering(g) == ["A", "B", "C"]

    def test_single_node(self):
        """A single node orders to itself."""
        assert greedy_fas_ordering(make_graph_nodes("A")) == ["A"]

    def test_empty_graph(self):
        """An empty graph orders to nothing."""
        assert greedy_fas_ordering(nx.DiGraph()) == []

    def test_all_nodes_present(self):
        """Ordering must contain all nodes exactly once, even inside a cycle."""
        g = make_graph(("A", "B"), ("B", "C"), ("C", "A"))
        ordering = greedy_fas_ordering(g)
        assert sorted(ordering) == ["A", "B", "C"]

    def test_deterministic(self):
        """Same graph, same ordering, every time."""
        g = make_graph(("A", "B"), ("B", "C"), ("C", "A"), ("C", "D"), ("D", "B"))
        first = greedy_fas_ordering(g)
        for _ in range(5):
            assert greedy_fas_ordering(g) == first


class TestFindRankCycle:
    def test_acyclic_returns_none(self):
        """A DAG has no rank cycle."""
        assert find_rank_cycle(make_graph(("A", "B"), ("B", "C"))) is None

    def test_cycle_edges_returned(self):
        """The cycle comes back as its edges."""
        cycle = find_rank_cycle(make_graph(("A", "B"), ("B", "A")))
        assert cycle is not None
        assert set(cycle) == {("A", "B"), ("B", "A")}


# ─── Scope Graph Tests ────────────────────────────────────────────────────────


class TestBuildScopeGraph:
    def test_keeps_input_order(self):
        """Graph nodes keep the order the boxes were given in."""
        g = build_scope_graph([("B", 1.0, 1.0), ("A", 1.0, 1.0), ("C", 1.0, 1.0)], [])
        assert list(g.nodes) == ["B", "A", "C"]

    def test_skips_self_loops_and_foreign_endpoints(self):
        """Self-loops and edges leaving the scope are skipped."""
        g = build_scope_graph([("A", 1.0, 1.0), ("B", 1.0, 1.0)], [("A", "A"), ("A", "X"), ("A", "B")])
        assert list(g.edges()) == [("A", "B")]
        assert "X" not in g


# ─── Rank Assignment Tests ────────────────────────────────────────────────────


class TestAssignRanks:
    def test_chain(self):
        """A chain gets consecutive ranks."""
        ranks = assign_ranks(make_graph(("A", "B"), ("B", "C")))
        assert ranks == {"A": 0, "B": 1, "C": 2}

    def test_longest_path_wins(self):
        """A → C directly and A → B → C — C sits below B."""
        ranks = assign_ranks(make_graph(("A", "C"), ("A", "B"), ("B", "C")))
        assert ranks["C"] == 2

    def test_isolated_nodes_rank_zero(self):
        """Unconnected nodes sit on rank 0."""
        ranks = assign_ranks(make_graph_nodes("A", "B"))
        assert ranks == {"A": 0, "B": 0}

    def test_every_edge_points_down(self):
        """Every edge goes to a strictly later rank."""
        g = make_graph(("A", "B"), ("A", "C"), ("C", "D"), ("B", "D"), ("D", "E"), ("A", "E"))
        ranks = assign_ranks(g)
        for src, tgt in g.edges():
            assert ranks[src] < ranks[tgt]


# ─── Dummy Node Tests ─────────────────────────────────────────────────────────


class TestInsertDummyNodes:
    def test_adjacent_edges_unchanged(self):
        """Edges between adjacent ranks need no dummies."""
        dag = make_graph(("A", "B"))
        aug = insert_dummy_nodes(dag, {"A": 0, "B": 1})
        assert list(aug.graph.edges()) == [("A", "B")]
        assert aug.dummy_chains == {}

    def test_long_edge_split(self):
        """A → C spanning two ranks gets one dummy in rank 1."""
        dag = make_graph(("A", "B"), ("B", "C"), ("A", "C"))
        aug = insert_dummy_nodes(dag, {"A": 0, "B": 1, "C": 2})
        chain = aug.dummy_chains[("A", "C")]
        assert len(chain) == 1
        assert aug.ranks[chain[0]] == 1
        assert aug.graph.nodes[chain[0]]["dummy"] is True
        assert not aug.graph.has_edge("A", "C")
        for src, tgt in aug.graph.edges():
            assert aug.ranks[tgt] - aug.ranks[src] == 1

    def test_rank_count(self):
        """rank_count is one past the highest rank."""
        aug = insert_dummy_nodes(make_graph(("A", "B")), {"A": 0, "B": 1})
        assert aug.rank_count == 2


# ─── count_crossings Tests ────────────────────────────────────────────────────


class TestCountCrossings:
    def test_no_crossings_simple_chain(self):
        """A chain has no crossings."""
        aug = make_augmented_graph([("A", "B")], {"A": 0, "B": 1})
        assert count_crossings([["A"], ["B"]], aug.graph) == 0

    def test_no_crossings_parallel(self):
        """Parallel edges do not cross."""
        aug = make_augmented_graph([("A", "C"), ("B", "D")], {"A": 0, "B": 0, "C": 1, "D": 1})
        assert count_crossings([["A", "B"], ["C", "D"]], aug.graph) == 0

    def test_one_crossing(self):
        """A→D and B→C with A before B — one crossing because D is after C."""
        aug = make_augmented_graph([("A", "D"), ("B", "C")], {"A": 0, "B": 0, "C": 1, "D": 1})
        assert count_crossings([["A", "B"], ["C", "D"]], aug.graph) == 1

    def test_empty_graph_no_crossings(self):
        """An empty ordering has no crossings."""
        assert count_crossings([], nx.DiGraph()) == 0

    def test_crossing_reduces_with_swap(self):
        """Swapping one rank removes the crossing."""
        aug = make_augmented_graph([("A", "D"), ("B", "C")], {"A": 0, "B": 0, "C": 1, "D": 1})
        assert count_crossings([["A", "B"], ["C", "D"]], aug.graph) == 1
        assert count_crossings([["A", "B"], ["D", "C"]], aug.graph) == 0


# ─── minimise_crossings Tests ─────────────────────────────────────────────────


class TestMinimiseCrossings:
    def test_returns_all_nodes_once(self):
        """Every node appears exactly once."""
        aug = make_augmented_graph([("A", "B"), ("A", "C"), ("B", "D"), ("C", "E")],
                                   {"A": 0, "B": 1, "C": 1, "D": 2, "E": 2})
        result = minimise_crossings(aug)
        all_ids = [nid for rank in result for nid in rank]
        assert sorted(all_ids) == ["A", "B", "C", "D", "E"]

    def test_each_node_in_its_rank(self):
        """Nodes stay in their assigned rank."""
        ranks = {"A": 0, "B": 1, "C": 1, "D": 2}
        aug = make_augmented_graph([("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")], ranks)
        result = minimise_crossings(aug)
        assert len(result) == aug.rank_count
        for node_id, expected in ranks.items():
            assert node_id in result[expected]

    def test_removes_simple_crossing(self):
        """A→D, B→C seeded as [A, B] / [C, D] — the sweep swaps C and D."""
        aug = make_augmented_graph([("A", "D"), ("B", "C")], {"A": 0, "B": 0, "C": 1, "D": 1})
        result = minimise_crossings(aug)
        assert result == [["A", "B"], ["D", "C"]]
        assert count_crossings(result, aug.graph) == 0

    def test_seeded_by_input_order(self):
        """Without edges the input order is kept as-is, not sorted."""
        aug = make_augmented_graph([], {"B": 0, "A": 0, "C": 0})
        assert minimise_crossings(aug) == [["B", "A", "C"]]

    def test_never_worse_than_input(self):
        """The result never has more crossings than input order."""
        ranks = {"A": 0, "B": 0, "C": 0, "D": 1, "E": 1, "F": 1}
        edges = [("A", "F"), ("B", "E"), ("C", "D"), ("A", "D")]
        aug = make_augmented_graph(edges, ranks)
        initial = count_crossings([["A", "B", "C"], ["D", "E", "F"]], aug.graph)
        assert count_crossings(minimise_crossings(aug), aug.graph) <= initial

    def test_empty_graph(self):
        """An empty graph gives no ranks."""
        aug = AugmentedGraph(graph=nx.DiGraph(), ranks={}, rank_count=0)
        assert minimise_crossings(aug) == []


# ─── assign_coordinates Tests ─────────────────────────────────────────────────


class TestAssignCoordinates:
    def test_first_rank_at_zero(self):
        """Rank 0 starts at y=0."""
        aug = make_augmented_graph([("A", "B")], {"A": 0, "B": 1})
        nodes = by_id(assign_coordinates([["A"], ["B"]], aug))
        assert nodes["A"].y == 0

    def test_rank_offsets(self):
        """Ranks are stacked by thickness plus rank spacing."""
        aug = make_augmented_graph([("A", "B"), ("B", "C")], {"A": 0, "B": 1, "C": 2})
        nodes = by_id(assign_coordinates([["A"], ["B"], ["C"]], aug))
        assert nodes["B"].y == 40.0 + RANK_SPACING
        assert nodes["C"].y == 2 * (40.0 + RANK_SPACING)

    def test_same_rank_same_y(self):
        """Equal-height members of one rank share y."""
        aug = make_augmented_graph([("A", "C"), ("B", "C")], {"A": 0, "B": 0, "C": 1})
        nodes = by_id(assign_coordinates([["A", "B"], ["C"]], aug))
        assert nodes["A"].y == nodes["B"].y

    def test_neighbours_separated_by_spacing(self):
        """Neighbours in a rank are node_spacing apart."""
        aug = make_augmented_graph([], {"A": 0, "B": 0})
        nodes = by_id(assign_coordinates([["A", "B"]], aug))
        assert nodes["A"].x == 0
        assert nodes["B"].x == 100.0 + NODE_SPACING

    def test_shorter_node_centred_in_rank(self):
        """A shorter box is centred within its rank."""
        aug = make_augmented_graph([], {"A": 0, "B": 0})
        aug.graph.nodes["B"]["height"] = 20.0
        nodes = by_id(assign_coordinates([["A", "B"]], aug))
        assert nodes["A"].y == 0
        assert nodes["B"].y == 10.0

    def test_non_negative_and_non_overlapping(self):
        """Boxes start at x >= 0 and never overlap within a rank."""
        ranks = {"A": 0, "B": 0, "C": 1, "D": 1, "E": 1}
        aug = make_augmented_graph([("A", "C"), ("B", "D"), ("B", "E")], ranks)
        result = assign_coordinates([["A", "B"], ["C", "D", "E"]], aug)
        for n in result:
            assert n.x >= 0
            assert n.y >= 0
        rank1 = sorted((n for n in result if n.rank == 1), key=lambda n: n.x)
        for left, right in zip(rank1, rank1[1:]):
            assert left.x + left.width <= right.x

    def test_custom_spacing(self):
        """Custom spacings are honoured."""
        aug = make_augmented_graph([("A", "B")], {"A": 0, "B": 1})
        nodes = by_id(assign_coordinates([["A"], ["B"]], aug, node_spacing=10.0, rank_spacing=5.0))
        assert nodes["B"].y == 45.0

    def test_order_recorded(self):
        """LayoutNode.order records the slot within the rank."""
        aug = make_augmented_graph([], {"A": 0, "B": 0})
        nodes = by_id(assign_coordinates([["B", "A"]], aug))
        assert nodes["B"].order == 0
        assert nodes["A"].order == 1
        assert nodes["B"].x < nodes["A"].x


# ─── layout_scope Tests ───────────────────────────────────────────────────────


class TestLayoutScope:
    def test_empty_scope(self):
        """An empty scope yields no nodes and no cycle."""
        result = layout_scope([], [])
        assert result.nodes == []
        assert result.cycle is None

    def test_chain_top_to_bottom(self):
        """A → B → C stacks downward."""
        result = layout_scope([("A", 50.0, 20.0), ("B", 50.0, 20.0)], [("A", "B")])
        nodes = by_id(result.nodes)
        assert nodes["A"].rank == 0
        assert nodes["B"].rank == 1
        assert nodes["A"].y < nodes["B"].y
        assert result.cycle is None

    def test_dummies_not_returned(self):
        """Dummy nodes never leave the scope pipeline."""
        boxes = [("A", 50.0, 20.0), ("B", 50.0, 20.0), ("C", 50.0, 20.0)]
        result = layout_scope(boxes, [("A", "B"), ("B", "C"), ("A", "C")])
        assert sorted(n.id for n in result.nodes) == ["A", "B", "C"]

    def test_cycle_reported_and_laid_out(self):
        """A cyclic scope is flagged and still positioned."""
        result = layout_scope([("A", 50.0, 20.0), ("B", 50.0, 20.0)], [("A", "B"), ("B", "A")])
        assert result.cycle is not None
        assert len(result.reversed_edges) == 1
        nodes = by_id(result.nodes)
        assert nodes["A"].rank != nodes["B"].rank

    def test_self_loop_is_not_a_cycle(self):
        """Self-loops are not reported as cycles."""
        result = layout_scope([("A", 50.0, 20.0)], [("A", "A")])
        assert result.cycle is None
        assert len(result.nodes) == 1

    def test_deterministic(self):
        """Identical input gives identical coordinates."""
        boxes = [(n, 40.0, 20.0) for n in "ABCDEF"]
        edges = [("A", "D"), ("B", "E"), ("C", "F"), ("A", "F"), ("C", "D")]
        first = layout_scope(boxes, edges).nodes
        for _ in range(3):
            assert layout_scope(boxes, edges).nodes == first
