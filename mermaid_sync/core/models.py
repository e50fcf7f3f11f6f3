"""
Core data models for the graph side of a diagram.

These models define the shared source of truth between the text view and the
visual view:
- Nodes with id, label, shape and a canvas position
- Edges connecting nodes (using source/target naming convention)
- The GraphModel that owns both, bound to one dialect for its lifetime

Field Naming Convention:
- Edges use `source` and `target` (same as the rendering collaborator expects)
- For backward compatibility, `from`/`to` are accepted on input and converted
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field, model_validator
import uuid


class Dialect(str, Enum):
    """Supported diagram sub-languages."""
    FLOWCHART = "flowchart"
    SEQUENCE = "sequence"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: "str | Dialect | None") -> "Dialect":
        """Map a dialect tag (or a Mermaid header keyword) to a Dialect."""
        if isinstance(value, Dialect):
            return value
        if not value:
            return cls.OTHER
        tag = value.strip()
        aliases = {
            "graph": cls.FLOWCHART,
            "flowchart": cls.FLOWCHART,
            "sequence": cls.SEQUENCE,
            "sequenceDiagram": cls.SEQUENCE,
        }
        return aliases.get(tag, aliases.get(tag.lower(), cls.OTHER))

    @classmethod
    def from_header(cls, source_text: Optional[str]) -> Optional["Dialect"]:
        """
        Detect the dialect named by the header line of diagram source.

        The header is the first non-blank, non-comment line; its first word is
        the dialect keyword (`graph LR`, `flowchart TD`, `sequenceDiagram`).
        Unknown keywords map to OTHER. Returns None when there is no header.
        """
        for line in (source_text or "").splitlines():
            line = line.strip()
            if not line or line.startswith("%%"):
                continue
            return cls.coerce(line.split()[0])
        return None


class NodeShape(str, Enum):
    """Visual shapes for nodes on the canvas."""
    RECTANGLE = "rectangle"
    ROUNDED = "rounded"
    CIRCLE = "circle"
    DIAMOND = "diamond"
    PARTICIPANT = "participant"


FLOWCHART_NODE_SHAPES = (
    NodeShape.RECTANGLE,
    NodeShape.ROUNDED,
    NodeShape.CIRCLE,
    NodeShape.DIAMOND,
)

DIRECTIONS = ("TD", "TB", "BT", "RL", "LR")


def default_shape(dialect: Dialect) -> NodeShape:
    """Shape given to nodes the source text does not decorate."""
    if dialect == Dialect.SEQUENCE:
        return NodeShape.PARTICIPANT
    return NodeShape.RECTANGLE


def generate_node_id() -> str:
    """Generate a unique node ID that is also a valid diagram identifier."""
    return f"n{uuid.uuid4().hex[:8]}"


def edge_id(source: str, target: str, occurrence: int) -> str:
    """Deterministic edge ID for the n-th edge between source and target."""
    return f"{source}-{target}-{occurrence}"


class Position(BaseModel):
    """A point on the canvas."""
    x: float = 0
    y: float = 0


class Node(BaseModel):
    """A node in the graph."""
    id: str = Field(default_factory=generate_node_id)
    label: str = ""
    shape: NodeShape = NodeShape.RECTANGLE
    position: Position = Field(default_factory=Position)

    @model_validator(mode='before')
    @classmethod
    def convert_flat_position(cls, data: Any) -> Any:
        """Accept flat x/y fields as well as a nested position."""
        if isinstance(data, dict) and 'position' not in data and ('x' in data or 'y' in data):
            data = dict(data)
            data['position'] = {'x': data.pop('x', 0), 'y': data.pop('y', 0)}
        return data

    @model_validator(mode='after')
    def default_label(self) -> "Node":
        if not self.label:
            self.label = self.id
        return self


class Edge(BaseModel):
    """
    An edge (or sequence message) connecting two nodes.

    Uses `source` and `target` as canonical field names.
    Accepts `from`/`to` on input for backward compatibility.
    """
    id: str
    source: str
    target: str
    label: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' fields and derive a missing id."""
        if isinstance(data, dict):
            data = dict(data)
            if 'from' in data and 'source' not in data:
                data['source'] = data.pop('from')
            if 'to' in data and 'target' not in data:
                data['target'] = data.pop('to')
            if not data.get('id') and 'source' in data and 'target' in data:
                data['id'] = edge_id(data['source'], data['target'], 0)
            if data.get('label') == "":
                data['label'] = None
        return data


class GraphModel(BaseModel):
    """
    The node/edge representation shared by the parser, the serializer and
    the editing operations.

    The dialect is frozen: switching dialect means building a new model.
    """
    dialect: Dialect = Field(default=Dialect.FLOWCHART, frozen=True)
    direction: str = "TD"
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        """Get an edge by ID."""
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def has_node(self, node_id: str) -> bool:
        return self.get_node(node_id) is not None

    def node_positions(self) -> dict[str, Position]:
        """Snapshot of node positions keyed by node ID."""
        return {n.id: n.position.model_copy() for n in self.nodes}

    def edges_for_node(self, node_id: str) -> list[Edge]:
        """All edges with the node as source or target."""
        return [e for e in self.edges if e.source == node_id or e.target == node_id]

    def next_edge_id(self, source: str, target: str) -> str:
        """First unused deterministic ID for a new source->target edge."""
        taken = {e.id for e in self.edges}
        occurrence = sum(1 for e in self.edges if e.source == source and e.target == target)
        while edge_id(source, target, occurrence) in taken:
            occurrence += 1
        return edge_id(source, target, occurrence)

    def to_json_dict(self) -> dict:
        """Convert to the JSON shape the rendering collaborator consumes."""
        return {
            "dialect": self.dialect.value,
            "direction": self.direction,
            "nodes": [n.model_dump(mode="json") for n in self.nodes],
            "edges": [e.model_dump(mode="json") for e in self.edges],
        }


# --- API Request/Response Models ---

class CreateNodeRequest(BaseModel):
    """Request to create a new node."""
    id: Optional[str] = None
    label: str = "New Node"
    shape: Optional[NodeShape] = None
    x: Optional[float] = None
    y: Optional[float] = None


class UpdateNodeRequest(BaseModel):
    """Request to update an existing node (partial update)."""
    label: Optional[str] = None
    shape: Optional[NodeShape] = None
    x: Optional[float] = None
    y: Optional[float] = None


class CreateEdgeRequest(BaseModel):
    """Request to connect two nodes."""
    source: str = ""
    target: str = ""
    label: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' fields to 'source'/'target'."""
        if isinstance(data, dict):
            if 'from' in data and 'source' not in data:
                data['source'] = data.pop('from')
            if 'to' in data and 'target' not in data:
                data['target'] = data.pop('to')
        return data


class UpdateEdgeRequest(BaseModel):
    """Request to relabel an edge. An empty label clears it."""
    label: Optional[str] = None


class TextChangeRequest(BaseModel):
    """Text pushed by the text view."""
    text: str


class NewDiagramRequest(BaseModel):
    """Start over with a dialect and optional initial text."""
    dialect: Dialect = Dialect.FLOWCHART
    text: str = ""


class ConvertTextRequest(BaseModel):
    text: str
    dialect: Dialect = Dialect.FLOWCHART


class ConvertGraphRequest(BaseModel):
    graph: GraphModel
    dialect: Optional[Dialect] = None
