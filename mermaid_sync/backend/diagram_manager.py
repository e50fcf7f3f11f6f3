"""
Diagram Manager - Graph editing operations driven by the visual editor.

This module implements:
- Node operations: add, update (move, relabel, reshape), delete (cascading to edges)
- Edge operations: connect, relabel, delete
- Hand-off of every completed mutation to the Synchronization Controller

Operations mutate the controller's current GraphModel in place and never call
the serializer themselves; the controller decides when text is published.
Identifiers and labels are checked against the grammar first, so anything an
operation accepts reads back unchanged from the published text.
"""

import logging
import random
from typing import Optional

from ..core.grammar import edge_label_text, is_identifier, node_label_text
from ..core.layout import random_position
from ..core.models import (
    Dialect, Edge, FLOWCHART_NODE_SHAPES, GraphModel, Node, NodeShape, Position,
    default_shape, generate_node_id,
)
from .sync_controller import SyncController

logger = logging.getLogger(__name__)


class DiagramManager:
    """
    Applies user-driven mutations to the current graph model.

    Lookups by ID return None/False for unknown IDs; requests that would break
    a graph invariant raise ValueError.
    """

    def __init__(self, controller: SyncController, rng: Optional[random.Random] = None):
        self._controller = controller
        self._rng = rng or random.Random()

    @property
    def controller(self) -> SyncController:
        return self._controller

    @property
    def graph(self) -> GraphModel:
        """The graph currently owned by the controller."""
        return self._controller.graph

    def _committed(self) -> None:
        self._controller.graph_edited()

    # --- Node Operations ---

    def add_node(
        self,
        label: str = "New Node",
        shape: Optional[NodeShape] = None,
        position: Optional[Position] = None,
        node_id: Optional[str] = None,
    ) -> Node:
        """Add a node with a fresh (or caller-chosen) identifier."""
        graph = self.graph
        shape = shape or default_shape(graph.dialect)
        self._check_shape(shape)
        label = node_label_text(label, graph.dialect, shape)

        if node_id is None:
            node_id = generate_node_id()
            while graph.has_node(node_id):
                node_id = generate_node_id()
        elif not is_identifier(node_id):
            raise ValueError(f"Invalid node identifier: {node_id!r} (letters, digits and _ only)")
        elif graph.has_node(node_id):
            raise ValueError(f"Node already exists: {node_id}")

        node = Node(
            id=node_id,
            label=label,
            shape=shape,
            position=position or random_position(self._rng),
        )
        graph.nodes.append(node)
        logger.debug("Added node %s", node.id)
        self._committed()
        return node

    def update_node(
        self,
        node_id: str,
        label: Optional[str] = None,
        shape: Optional[NodeShape] = None,
        position: Optional[Position] = None,
    ) -> Optional[Node]:
        """
        Relabel, reshape and/or move a node as one edit.

        Every requested change is validated before any is applied, so a
        ValueError leaves the node untouched. A blank label falls back to
        the ID; a shape equal to the current one is accepted as a no-op.
        """
        node = self.graph.get_node(node_id)
        if node is None:
            return None

        new_shape = node.shape if shape is None else shape
        if shape is not None and shape != node.shape:
            self._check_shape(shape)
        new_label = node.label
        if label is not None or new_shape != node.shape:
            source = node.label if label is None else label
            new_label = node_label_text(source, self.graph.dialect, new_shape) or node.id

        node.label = new_label
        node.shape = new_shape
        if position is not None:
            node.position = position
        self._committed()
        return node

    def move_node(self, node_id: str, x: float, y: float) -> Optional[Node]:
        """Change a node's position only."""
        return self.update_node(node_id, position=Position(x=x, y=y))

    def relabel_node(self, node_id: str, label: str) -> Optional[Node]:
        """Change a node's label; a blank label falls back to the ID."""
        return self.update_node(node_id, label=label)

    def reshape_node(self, node_id: str, shape: NodeShape) -> Optional[Node]:
        """Change a node's shape to one the dialect can express."""
        return self.update_node(node_id, shape=shape)

    def delete_node(self, node_id: str) -> bool:
        """Delete a node and every edge that references it."""
        graph = self.graph
        node = graph.get_node(node_id)
        if node is None:
            return False

        graph.nodes = [n for n in graph.nodes if n.id != node_id]
        removed = len(graph.edges)
        graph.edges = [e for e in graph.edges if e.source != node_id and e.target != node_id]
        logger.debug("Deleted node %s and %d connected edges", node_id, removed - len(graph.edges))
        self._committed()
        return True

    def get_node(self, node_id: str) -> Optional[Node]:
        return self.graph.get_node(node_id)

    # --- Edge Operations ---

    def connect(self, source: str, target: str, label: Optional[str] = None) -> Edge:
        """
        Connect two existing nodes.

        Self-loops and parallel edges are allowed; each parallel edge gets
        the next occurrence index in its ID.
        """
        graph = self.graph
        if not source or not target:
            raise ValueError("Both source and target nodes must be specified")
        if not graph.has_node(source):
            raise ValueError(f"Source node not found: {source}")
        if not graph.has_node(target):
            raise ValueError(f"Target node not found: {target}")

        edge = Edge(
            id=graph.next_edge_id(source, target),
            source=source,
            target=target,
            label=edge_label_text(label, graph.dialect) or None,
        )
        graph.edges.append(edge)
        self._committed()
        return edge

    def relabel_edge(self, edge_id: str, label: Optional[str]) -> Optional[Edge]:
        """Change an edge's label; an empty label clears it."""
        edge = self.graph.get_edge(edge_id)
        if edge is None:
            return None
        edge.label = edge_label_text(label, self.graph.dialect) or None
        self._committed()
        return edge

    def delete_edge(self, edge_id: str) -> bool:
        """Delete an edge."""
        graph = self.graph
        if graph.get_edge(edge_id) is None:
            return False
        graph.edges = [e for e in graph.edges if e.id != edge_id]
        self._committed()
        return True

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self.graph.get_edge(edge_id)

    # --- State ---

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        controller = self._controller
        return {
            "dialect": controller.dialect.value,
            "text": controller.text,
            "graph": controller.graph.to_json_dict(),
            "version": controller.version,
            "revision": controller.revision,
            "sync_state": controller.state.value,
        }

    def _check_shape(self, shape: NodeShape) -> None:
        dialect = self.graph.dialect
        if dialect == Dialect.SEQUENCE and shape != NodeShape.PARTICIPANT:
            raise ValueError(f"Sequence diagrams only have participants, not {shape.value}")
        if dialect != Dialect.SEQUENCE and shape not in FLOWCHART_NODE_SHAPES:
            raise ValueError(f"Shape not supported in {dialect.value} diagrams: {shape.value}")
