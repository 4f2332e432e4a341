"""Containment hierarchy — parent/child index over a flat node list.

The index is rebuilt from scratch on every call; diagrams are interactively
sized (hundreds of nodes), so there is no incremental update path.

All traversals are iterative so deep hierarchies never hit the recursion
limit, and cycle-safe so a malformed hierarchy cannot make them loop.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Sequence
from enum import Enum

from hierflow.errors import Diagnostic, DiagnosticCode, Severity
from hierflow.model import Edge, Node

logger = logging.getLogger(__name__)

# Key of the root scope in ``children_of``.
ROOT: None = None


class OrphanPolicy(str, Enum):
    """What to do with a node whose ``parent_id`` does not resolve."""

    PROMOTE = "promote"  # move to the root scope, emit a warning
    STRICT = "strict"  # fatal


class HierarchyIndex:
    """Parent → children and child → parent maps for one node snapshot.

    Attributes:
        children_of: Maps parent id (``ROOT`` for parentless nodes) → child ids
            in input order.
        parent_of: Maps node id → resolved parent id (``None`` at root).
        orphans: Node ids whose declared parent was missing and that were
            promoted to the root scope.
        duplicates: Ids seen more than once; only the first record counts.
    """

    def __init__(
        self,
        children_of: dict[str | None, list[str]],
        parent_of: dict[str, str | None],
        orphans: list[str],
        duplicates: list[str],
    ) -> None:
        self.children_of = children_of
        self.parent_of = parent_of
        self.orphans = orphans
        self.duplicates = duplicates

    @classmethod
    def build(cls, nodes: Iterable[Node]) -> HierarchyIndex:
        """Index a node list in O(n)."""
        nodes = list(nodes)
        known: set[str] = set()
        duplicates: list[str] = []
        for node in nodes:
            if node.id in known:
                duplicates.append(node.id)
            known.add(node.id)

        children_of: dict[str | None, list[str]] = {ROOT: []}
        parent_of: dict[str, str | None] = {}
        orphans: list[str] = []

        for node in nodes:
            if node.id in parent_of:
                continue
            parent = node.parent_id
            if parent is not None and parent not in known:
                orphans.append(node.id)
                parent = ROOT
            parent_of[node.id] = parent
            children_of.setdefault(parent, []).append(node.id)

        return cls(children_of, parent_of, orphans, duplicates)

    # --- Queries ---

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.parent_of

    def require(self, node_id: str) -> None:
        if node_id not in self.parent_of:
            raise KeyError(f"Unknown node id: {node_id}")

    @property
    def roots(self) -> list[str]:
        return list(self.children_of[ROOT])

    def children(self, node_id: str | None) -> list[str]:
        """Direct children in input order (``None`` for the root scope)."""
        return list(self.children_of.get(node_id, []))

    def parent(self, node_id: str) -> str | None:
        self.require(node_id)
        return self.parent_of[node_id]

    def descendants(self, node_id: str) -> list[str]:
        """Transitive children, breadth-first, each id once, ``node_id`` excluded."""
        self.require(node_id)
        seen: set[str] = {node_id}
        result: list[str] = []
        queue = deque(self.children_of.get(node_id, []))
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            result.append(current)
            queue.extend(self.children_of.get(current, []))
        return result

    def ancestors(self, node_id: str) -> list[str]:
        """Parent chain, nearest first. Stops early if the chain loops."""
        self.require(node_id)
        seen: set[str] = {node_id}
        result: list[str] = []
        current = self.parent_of[node_id]
        while current is not None and current not in seen:
            seen.add(current)
            result.append(current)
            current = self.parent_of.get(current)
        return result

    def depth(self, node_id: str) -> int:
        return len(self.ancestors(node_id))

    def is_descendant(self, node_id: str, ancestor_id: str) -> bool:
        return ancestor_id in self.ancestors(node_id)

    def post_order(self) -> list[str]:
        """All nodes reachable from the root, each listed after its descendants.

        Siblings keep input order. Uses an explicit stack instead of recursion.
        Nodes caught in a parent cycle are unreachable and therefore omitted;
        ``find_hierarchy_cycles`` reports them.
        """
        result: list[str] = []
        visited: set[str] = set()
        # (node id, children already pushed?)
        stack: list[tuple[str, bool]] = [(root, False) for root in reversed(self.children_of[ROOT])]
        while stack:
            node_id, expanded = stack.pop()
            if expanded:
                result.append(node_id)
                continue
            if node_id in visited:
                continue
            visited.add(node_id)
            stack.append((node_id, True))
            for child in reversed(self.children_of.get(node_id, [])):
                if child not in visited:
                    stack.append((child, False))
        return result


# ─── Validation ───────────────────────────────────────────────────────────────


def find_hierarchy_cycles(index: HierarchyIndex) -> list[list[str]]:
    """Return every parent-pointer cycle, each as the ids along the cycle.

    Depth-first walk up the parent chain with a per-path visited set: reaching
    a node already on the current path closes a cycle. Nodes whose chain was
    fully resolved are remembered so each node is walked once overall.
    """
    done: set[str] = set()
    cycles: list[list[str]] = []
    for start in index.parent_of:
        if start in done:
            continue
        path: list[str] = []
        on_path: set[str] = set()
        current: str | None = start
        while current is not None and current not in done:
            if current in on_path:
                cycles.append(path[path.index(current):])
                break
            on_path.add(current)
            path.append(current)
            current = index.parent_of.get(current)
        done.update(path)
    return cycles


def validate(
    nodes: Sequence[Node],
    edges: Sequence[Edge] = (),
    policy: OrphanPolicy = OrphanPolicy.PROMOTE,
) -> list[Diagnostic]:
    """Check a node/edge snapshot and return every issue found.

    Checks for:
    - Duplicate node ids - ERROR
    - Parent-pointer cycles - ERROR
    - Unresolvable parent ids - WARNING (promoted to root) or ERROR when strict
    - Edges referencing unknown nodes - WARNING (excluded from layout)
    - Duplicate edge ids - WARNING

    Never raises; fatal issues carry ``Severity.ERROR``.
    """
    index = HierarchyIndex.build(nodes)
    issues: list[Diagnostic] = []

    for node_id in dict.fromkeys(index.duplicates):
        issues.append(Diagnostic(
            code=DiagnosticCode.DUPLICATE_NODE_ID,
            severity=Severity.ERROR,
            message=f"Duplicate node id: {node_id}",
            node_id=node_id,
        ))

    for cycle in find_hierarchy_cycles(index):
        issues.append(Diagnostic(
            code=DiagnosticCode.CYCLIC_HIERARCHY,
            severity=Severity.ERROR,
            message=f"Parent cycle: {' -> '.join(cycle + cycle[:1])}",
            node_id=cycle[0],
        ))

    declared_parent = {}
    for node in nodes:
        declared_parent.setdefault(node.id, node.parent_id)
    for node_id in index.orphans:
        strict = policy is OrphanPolicy.STRICT
        issues.append(Diagnostic(
            code=DiagnosticCode.ORPHAN_PARENT,
            severity=Severity.ERROR if strict else Severity.WARNING,
            message=(
                f"Node {node_id} references missing parent {declared_parent[node_id]}"
                + ("" if strict else "; promoted to root")
            ),
            node_id=node_id,
        ))

    seen_edges: set[str] = set()
    for edge in edges:
        if edge.id in seen_edges:
            issues.append(Diagnostic(
                code=DiagnosticCode.DUPLICATE_EDGE_ID,
                severity=Severity.WARNING,
                message=f"Duplicate edge id: {edge.id}",
                edge_id=edge.id,
            ))
        seen_edges.add(edge.id)
        for endpoint in (edge.source, edge.target):
            if endpoint not in index:
                issues.append(Diagnostic(
                    code=DiagnosticCode.UNKNOWN_EDGE_ENDPOINT,
                    severity=Severity.WARNING,
                    message=f"Edge {edge.id} references non-existent node: {endpoint}",
                    edge_id=edge.id,
                    node_id=endpoint,
                ))

    for issue in issues:
        if not issue.is_fatal:
            logger.warning("%s", issue.message)
    return issues


def get_descendants(nodes: Sequence[Node], target_id: str) -> list[str]:
    """Descendant ids of ``target_id``, breadth-first, ``target_id`` excluded."""
    return HierarchyIndex.build(nodes).descendants(target_id)
