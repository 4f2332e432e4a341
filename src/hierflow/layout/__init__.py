"""Hierarchical layered layout."""

from hierflow.layout.engine import layout
from hierflow.layout.types import (
    DEFAULT_MARGIN,
    DEFAULT_NODE_HEIGHT,
    DEFAULT_NODE_WIDTH,
    NODE_SPACING,
    RANK_SPACING,
    LayoutNode,
    LayoutOptions,
    LayoutResult,
)

__all__ = [
    "layout",
    "LayoutOptions",
    "LayoutResult",
    "LayoutNode",
    "DEFAULT_MARGIN",
    "DEFAULT_NODE_WIDTH",
    "DEFAULT_NODE_HEIGHT",
    "NODE_SPACING",
    "RANK_SPACING",
]
