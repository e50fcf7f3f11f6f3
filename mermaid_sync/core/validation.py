"""
Graph validation - Check a GraphModel against its structural invariants.

Used by the HTTP layer and the CLI to report problems in graphs that did not
come from the parser (e.g. a graph posted by an external client).

Each check is a generator over the graph; validate_graph() runs them in order.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterator

from .models import Dialect, FLOWCHART_NODE_SHAPES, NodeShape

if TYPE_CHECKING:
    from .models import GraphModel


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invariant violated
    WARNING = "warning"  # Will serialize, but lossily
    INFO = "info"        # Permitted, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a graph."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    edge_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {"type": self.severity.value, "message": self.message}
        for key in ("node_id", "edge_id"):
            value = getattr(self, key)
            if value:
                result[key] = value
        return result


# Shapes each dialect writes without loss.
_EXPRESSIBLE_SHAPES: dict[Dialect, tuple[NodeShape, ...]] = {
    Dialect.FLOWCHART: FLOWCHART_NODE_SHAPES,
    Dialect.SEQUENCE: (NodeShape.PARTICIPANT,),
}


def _check_empty(graph: "GraphModel") -> Iterator[ValidationIssue]:
    if not graph.nodes:
        yield ValidationIssue(IssueSeverity.INFO, "Graph has no nodes")


def _check_unique_ids(graph: "GraphModel") -> Iterator[ValidationIssue]:
    for node_id, count in Counter(n.id for n in graph.nodes).items():
        if count > 1:
            yield ValidationIssue(
                IssueSeverity.ERROR, f"Node identifier declared {count} times", node_id=node_id
            )


def _check_endpoints(graph: "GraphModel") -> Iterator[ValidationIssue]:
    """Edges whose endpoints are missing are dropped by the serializer."""
    node_ids = {n.id for n in graph.nodes}
    for edge in graph.edges:
        for role, endpoint in (("source", edge.source), ("target", edge.target)):
            if endpoint not in node_ids:
                yield ValidationIssue(
                    IssueSeverity.ERROR,
                    f"Edge references non-existent {role} node: {endpoint}",
                    edge_id=edge.id,
                )


def _check_shapes(graph: "GraphModel") -> Iterator[ValidationIssue]:
    allowed = _EXPRESSIBLE_SHAPES.get(graph.dialect)
    if allowed is None:
        return
    fallback = "a rectangle in flowcharts" if graph.dialect == Dialect.FLOWCHART \
        else "a participant in sequence diagrams"
    for node in graph.nodes:
        if node.shape not in allowed:
            yield ValidationIssue(
                IssueSeverity.WARNING,
                f"Shape '{node.shape.value}' is written as {fallback}",
                node_id=node.id,
            )


def _check_edge_multiplicity(graph: "GraphModel") -> Iterator[ValidationIssue]:
    seen: set[tuple[str, str]] = set()
    for edge in graph.edges:
        if edge.source == edge.target:
            yield ValidationIssue(IssueSeverity.INFO, "Self-loop", node_id=edge.source, edge_id=edge.id)
        pair = (edge.source, edge.target)
        if pair in seen:
            yield ValidationIssue(
                IssueSeverity.INFO, f"Parallel edge from {edge.source} to {edge.target}", edge_id=edge.id
            )
        seen.add(pair)


_CHECKS = (_check_empty, _check_unique_ids, _check_endpoints, _check_shapes, _check_edge_multiplicity)


def validate_graph(graph: "GraphModel") -> list[ValidationIssue]:
    """
    Validate a graph and return a list of issues.

    Checks for:
    - Empty graph - INFO
    - Duplicate node identifiers - ERROR
    - Edges referencing missing nodes - ERROR
    - Shapes the dialect cannot express - WARNING
    - Self-loops and parallel edges - INFO
    """
    return [issue for check in _CHECKS for issue in check(graph)]


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """Counts by severity, plus whether the graph is free of errors."""
    counts = Counter(i.severity for i in issues)
    return {
        "total": len(issues),
        "errors": counts[IssueSeverity.ERROR],
        "warnings": counts[IssueSeverity.WARNING],
        "info": counts[IssueSeverity.INFO],
        "valid": counts[IssueSeverity.ERROR] == 0,
    }
