"""Graph model — node and edge records shared by layout and visibility.

Records are frozen dataclasses. Every transformation produces a new record
via ``dataclasses.replace`` (``Node.evolve``) instead of mutating in place, so
callers can hold on to a snapshot while a new one is computed.

The dict schema mirrors what an editor front-end exchanges::

    Node:  { id, parentId?, kind: "leaf"|"group", size?: {width, height},
             position: {x, y}, hidden, label?, data? }
    Edge:  { id, source, target, label? }
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# ─── Enums ────────────────────────────────────────────────────────────────────


class NodeKind(str, Enum):
    """Leaf nodes are plain boxes; group nodes contain other nodes."""

    LEAF = "leaf"
    GROUP = "group"


class Side(str, Enum):
    """Side of a node box where an edge handle attaches."""

    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


class Direction(str, Enum):
    """Flow direction of the layered layout (rank axis)."""

    TopToBottom = "TB"
    LeftToRight = "LR"

    @property
    def is_horizontal(self) -> bool:
        return self is Direction.LeftToRight

    @property
    def source_side(self) -> Side:
        """Side where outgoing edges leave a node."""
        return Side.RIGHT if self.is_horizontal else Side.BOTTOM

    @property
    def target_side(self) -> Side:
        """Side where incoming edges enter a node."""
        return Side.LEFT if self.is_horizontal else Side.TOP

    @classmethod
    def parse(cls, value: str | Direction) -> Direction:
        """Accept the enum, its value ("TB"/"LR") or its name."""
        if isinstance(value, Direction):
            return value
        for member in cls:
            if value in (member.value, member.name):
                return member
        raise ValueError(f"Unknown direction: {value!r}")


# ─── Geometry ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class Point:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


# ─── Records ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Node:
    """A diagram node.

    ``position`` is computed by the layout engine; callers may pass anything.
    ``label`` and ``data`` are opaque payload carried through untouched.
    """

    id: str
    parent_id: str | None = None
    kind: NodeKind = NodeKind.LEAF
    size: Size | None = None
    position: Point = field(default_factory=Point)
    hidden: bool = False
    label: str | None = None
    data: Any = None
    # Handle sides, filled in by layout from the flow direction.
    source_side: Side | None = None
    target_side: Side | None = None

    @property
    def is_group(self) -> bool:
        return self.kind is NodeKind.GROUP

    def evolve(self, **changes: Any) -> Node:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, raw: dict) -> Node:
        size = raw.get("size")
        position = raw.get("position") or {}
        source_side = raw.get("sourceSide")
        target_side = raw.get("targetSide")
        return cls(
            id=str(raw["id"]),
            parent_id=raw.get("parentId"),
            kind=NodeKind(raw.get("kind", NodeKind.LEAF.value)),
            size=Size(float(size["width"]), float(size["height"])) if size else None,
            position=Point(float(position.get("x", 0.0)), float(position.get("y", 0.0))),
            hidden=bool(raw.get("hidden", False)),
            label=raw.get("label"),
            data=raw.get("data"),
            source_side=Side(source_side) if source_side else None,
            target_side=Side(target_side) if target_side else None,
        )

    def to_dict(self) -> dict:
        """Convert to the JSON-serializable schema (optional keys omitted when unset)."""
        result: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "position": self.position.to_dict(),
            "hidden": self.hidden,
        }
        if self.parent_id is not None:
            result["parentId"] = self.parent_id
        if self.size is not None:
            result["size"] = self.size.to_dict()
        if self.label is not None:
            result["label"] = self.label
        if self.data is not None:
            result["data"] = self.data
        if self.source_side is not None:
            result["sourceSide"] = self.source_side.value
        if self.target_side is not None:
            result["targetSide"] = self.target_side.value
        return result


@dataclass(frozen=True)
class Edge:
    """A directed edge between two nodes; endpoints may live in different scopes."""

    id: str
    source: str
    target: str
    label: str | None = None

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target

    @classmethod
    def from_dict(cls, raw: dict) -> Edge:
        return cls(
            id=str(raw["id"]),
            source=str(raw["source"]),
            target=str(raw["target"]),
            label=raw.get("label"),
        )

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"id": self.id, "source": self.source, "target": self.target}
        if self.label is not None:
            result["label"] = self.label
        return result


def nodes_from_dicts(raw_nodes: Iterable[dict]) -> list[Node]:
    return [Node.from_dict(raw) for raw in raw_nodes]


def edges_from_dicts(raw_edges: Iterable[dict]) -> list[Edge]:
    return [Edge.from_dict(raw) for raw in raw_edges]
