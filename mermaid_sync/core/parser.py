"""
Text -> Graph parser.

Turns diagram source text into a GraphModel by running the dialect's grammar
recognizers line by line. Parsing is permissive: unrecognized lines are
skipped and malformed input never raises, the worst case is a sparse graph.
"""

import logging
from typing import Mapping, Optional

from .grammar import NodeMatch, header_direction, recognize_line
from .layout import PLACEHOLDER_POSITION, fallback_position
from .models import Dialect, Edge, GraphModel, Node, Position, default_shape, edge_id

logger = logging.getLogger(__name__)

PLACEHOLDER_ID = "start"
PLACEHOLDER_LABEL = "Start"
COMMENT_PREFIX = "%%"


class _GraphBuilder:
    """
    Accumulates nodes and edges for one parse.

    Nodes live in an ordered mapping keyed by identifier; the first
    declaration of an identifier wins and later ones are ignored.
    """

    def __init__(self, dialect: Dialect, known_positions: Optional[Mapping[str, Position]] = None):
        self.dialect = dialect
        self.nodes: dict[str, Node] = {}
        self.edges: list[Edge] = []
        self._known_positions = known_positions or {}
        self._pair_counts: dict[tuple[str, str], int] = {}

    def _position_for(self, node_id: str) -> Position:
        known = self._known_positions.get(node_id)
        if known is not None:
            return known.model_copy()
        return fallback_position(len(self.nodes))

    def declare(self, match: NodeMatch) -> bool:
        """Add a node unless its identifier was already seen."""
        if match.id in self.nodes:
            return False
        self.nodes[match.id] = Node(
            id=match.id,
            label=match.label,
            shape=match.shape,
            position=self._position_for(match.id),
        )
        return True

    def declare_implicit(self, node_id: str) -> None:
        """Declare an undecorated node referenced only by an edge."""
        if node_id not in self.nodes:
            self.declare(NodeMatch(id=node_id, label=node_id, shape=default_shape(self.dialect)))

    def connect(self, source: str, target: str, label: Optional[str]) -> None:
        self.declare_implicit(source)
        self.declare_implicit(target)
        occurrence = self._pair_counts.get((source, target), 0)
        self._pair_counts[(source, target)] = occurrence + 1
        self.edges.append(Edge(
            id=edge_id(source, target, occurrence),
            source=source,
            target=target,
            label=label,
        ))


def parse(
    source_text: str,
    dialect: "Dialect | str",
    known_positions: Optional[Mapping[str, Position]] = None,
) -> GraphModel:
    """
    Parse diagram source text into a GraphModel.

    The first non-blank, non-comment line is the dialect header and is never turned into
    a node or edge. New nodes take their position from `known_positions`
    when the caller already knows the identifier, otherwise from the
    fallback grid in insertion order.

    Args:
        source_text: Diagram source (any string)
        dialect: Dialect tag or Dialect
        known_positions: Positions to keep for already-known node IDs

    Returns:
        A GraphModel with at least one node
    """
    dialect = Dialect.coerce(dialect)
    lines = [
        line.strip() for line in (source_text or "").splitlines()
        if line.strip() and not line.strip().startswith(COMMENT_PREFIX)
    ]

    direction = "TD"
    if lines:
        direction = header_direction(lines[0]) or direction

    builder = _GraphBuilder(dialect, known_positions)

    for line in lines[1:]:
        node_matches, edge_matches = recognize_line(line, dialect)
        for match in node_matches:
            builder.declare(match)
        for match in edge_matches:
            builder.connect(match.source, match.target, match.label)

    if not builder.nodes:
        builder.nodes[PLACEHOLDER_ID] = Node(
            id=PLACEHOLDER_ID,
            label=PLACEHOLDER_LABEL,
            shape=default_shape(dialect),
            position=PLACEHOLDER_POSITION.model_copy(),
        )

    logger.debug(
        "Parsed %d lines into %d nodes and %d edges (%s)",
        len(lines), len(builder.nodes), len(builder.edges), dialect.value,
    )

    return GraphModel(
        dialect=dialect,
        direction=direction,
        nodes=list(builder.nodes.values()),
        edges=builder.edges,
    )
