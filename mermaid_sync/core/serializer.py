"""
Graph -> Text serializer.

Emits normalized diagram source from a GraphModel using per-dialect syntax
templates. Serialization is total and deterministic; it does not try to
reproduce the original formatting, comments or unrecognized constructs.
"""

import logging

from .models import Dialect, Edge, GraphModel, Node, NodeShape

logger = logging.getLogger(__name__)

INDENT = "  "
DEFAULT_MESSAGE = "message"

# Shape -> (open, close) delimiter pair for flowchart nodes.
SHAPE_DELIMITERS: dict[NodeShape, tuple[str, str]] = {
    NodeShape.RECTANGLE: ("[", "]"),
    NodeShape.ROUNDED: ("(", ")"),
    NodeShape.CIRCLE: ("((", "))"),
    NodeShape.DIAMOND: ("{", "}"),
}


def _resolvable_edges(graph: GraphModel) -> list[Edge]:
    """Edges whose endpoints both exist; dangling ones are dropped."""
    node_ids = {n.id for n in graph.nodes}
    edges = []
    for edge in graph.edges:
        if edge.source not in node_ids or edge.target not in node_ids:
            logger.warning(
                "Skipping edge %s: references missing node (%s -> %s)",
                edge.id, edge.source, edge.target,
            )
            continue
        edges.append(edge)
    return edges


def _label(node: Node) -> str:
    return node.label or node.id


def _flowchart_lines(graph: GraphModel) -> list[str]:
    lines = [f"graph {graph.direction or 'TD'}"]
    for node in graph.nodes:
        open_, close = SHAPE_DELIMITERS.get(node.shape, SHAPE_DELIMITERS[NodeShape.RECTANGLE])
        lines.append(f"{INDENT}{node.id}{open_}{_label(node)}{close}")
    for edge in _resolvable_edges(graph):
        decoration = f"|{edge.label}|" if edge.label else ""
        lines.append(f"{INDENT}{edge.source} -->{decoration} {edge.target}")
    return lines


def _sequence_lines(graph: GraphModel) -> list[str]:
    lines = ["sequenceDiagram"]
    for node in graph.nodes:
        lines.append(f"{INDENT}participant {node.id} as {_label(node)}")
    for edge in _resolvable_edges(graph):
        lines.append(f"{INDENT}{edge.source}->>{edge.target}: {edge.label or DEFAULT_MESSAGE}")
    return lines


def _generic_lines(graph: GraphModel) -> list[str]:
    lines = ["graph TD"]
    for node in graph.nodes:
        lines.append(f"{INDENT}{node.id}[{_label(node)}]")
    for edge in _resolvable_edges(graph):
        lines.append(f"{INDENT}{edge.source} --> {edge.target}")
    return lines


def serialize(graph: GraphModel, dialect: "Dialect | str | None" = None) -> str:
    """
    Serialize a GraphModel to diagram source text.

    Args:
        graph: The model to serialize
        dialect: Target dialect; defaults to the model's own dialect

    Returns:
        Source text, one construct per line, newline-terminated
    """
    dialect = graph.dialect if dialect is None else Dialect.coerce(dialect)

    if dialect == Dialect.FLOWCHART:
        lines = _flowchart_lines(graph)
    elif dialect == Dialect.SEQUENCE:
        lines = _sequence_lines(graph)
    else:
        lines = _generic_lines(graph)

    return "\n".join(lines) + "\n"
