"""Diagnostics and the exception taxonomy.

Recoverable problems are collected as ``Diagnostic`` records and returned next
to a successful result. Fatal problems are raised as ``DiagramError``
subclasses before any layout work starts, so a caller never sees a
half-laid-out graph.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Severity(str, Enum):
    """Severity levels for diagnostics."""

    ERROR = "error"  # fatal, the operation cannot proceed
    WARNING = "warning"  # recovered, result may differ from what the caller expects
    INFO = "info"


class DiagnosticCode(str, Enum):
    CYCLIC_HIERARCHY = "cyclic_hierarchy"
    CYCLIC_EDGES = "cyclic_edges"
    ORPHAN_PARENT = "orphan_parent"
    DUPLICATE_NODE_ID = "duplicate_node_id"
    DUPLICATE_EDGE_ID = "duplicate_edge_id"
    UNKNOWN_EDGE_ENDPOINT = "unknown_edge_endpoint"


@dataclass(frozen=True)
class Diagnostic:
    """A single issue found while validating or laying out a graph.

    ``scope`` is the parent id of the scope the issue belongs to (``None`` for
    the root scope or when the issue is not scope-specific).
    """

    code: DiagnosticCode
    severity: Severity
    message: str
    node_id: str | None = None
    edge_id: str | None = None
    scope: str | None = None

    @property
    def is_fatal(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "code": self.code.value,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.edge_id:
            result["edge_id"] = self.edge_id
        if self.scope:
            result["scope"] = self.scope
        return result


# ─── Exceptions ───────────────────────────────────────────────────────────────


class DiagramError(Exception):
    """Base class for fatal graph errors. Carries the diagnostic that caused it."""

    code: DiagnosticCode

    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(diagnostic.message)
        self.diagnostic = diagnostic


class CyclicHierarchy(DiagramError):
    """Parent pointers form a cycle."""

    code = DiagnosticCode.CYCLIC_HIERARCHY


class DuplicateNodeId(DiagramError):
    code = DiagnosticCode.DUPLICATE_NODE_ID


class OrphanParent(DiagramError):
    """A ``parent_id`` does not resolve; raised only under the strict orphan policy."""

    code = DiagnosticCode.ORPHAN_PARENT


class CyclicEdges(DiagramError):
    """Edges within one scope form a cycle.

    Normally reported as a recoverable diagnostic; the class exists so callers
    can turn such diagnostics into an exception with ``raise_for``.
    """

    code = DiagnosticCode.CYCLIC_EDGES


_ERRORS_BY_CODE: dict[DiagnosticCode, type[DiagramError]] = {
    cls.code: cls for cls in (CyclicHierarchy, DuplicateNodeId, OrphanParent, CyclicEdges)
}


def raise_for(diagnostic: Diagnostic) -> None:
    """Raise the exception matching a diagnostic's code."""
    error_cls = _ERRORS_BY_CODE.get(diagnostic.code, DiagramError)
    raise error_cls(diagnostic)


def raise_first_fatal(diagnostics: list[Diagnostic]) -> None:
    """Raise for the first fatal diagnostic, if any."""
    for diagnostic in diagnostics:
        if diagnostic.is_fatal:
            raise_for(diagnostic)
