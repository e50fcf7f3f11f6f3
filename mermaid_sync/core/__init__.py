"""
mermaid-sync core - Graph model, grammar recognizers, parser and serializer.

This module provides the pure transforms used by both the backend controller
and the CLI, ensuring a single source of truth for text <-> graph conversion.
"""

from .models import (
    # Enums
    Dialect,
    NodeShape,
    # Core models
    Position,
    Node,
    Edge,
    GraphModel,
    # Request models (for API)
    CreateNodeRequest,
    UpdateNodeRequest,
    CreateEdgeRequest,
    UpdateEdgeRequest,
    TextChangeRequest,
    NewDiagramRequest,
    ConvertTextRequest,
    ConvertGraphRequest,
)

from .grammar import (
    FLOWCHART_SHAPES, find_nodes, find_edges, find_participant, find_message,
    is_identifier, node_label_text, edge_label_text,
)
from .parser import parse
from .serializer import serialize
from .validation import validate_graph, validation_summary, ValidationIssue, IssueSeverity

__all__ = [
    # Enums
    "Dialect",
    "NodeShape",
    # Models
    "Position",
    "Node",
    "Edge",
    "GraphModel",
    # Request models
    "CreateNodeRequest",
    "UpdateNodeRequest",
    "CreateEdgeRequest",
    "UpdateEdgeRequest",
    "TextChangeRequest",
    "NewDiagramRequest",
    "ConvertTextRequest",
    "ConvertGraphRequest",
    # Grammar
    "FLOWCHART_SHAPES",
    "find_nodes",
    "find_edges",
    "find_participant",
    "find_message",
    "is_identifier",
    "node_label_text",
    "edge_label_text",
    # Transforms
    "parse",
    "serialize",
    # Validation
    "validate_graph",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
]
