"""
mermaid-sync - Bidirectional synchronization between Mermaid diagram text and
an editable node/edge graph.
"""

from .core import Dialect, NodeShape, GraphModel, Node, Edge, Position, parse, serialize

__version__ = "1.0.0"

__all__ = ["Dialect", "NodeShape", "GraphModel", "Node", "Edge", "Position", "parse", "serialize"]
