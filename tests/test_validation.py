from mermaid_sync.core.models import Dialect, Edge, GraphModel, Node, NodeShape
from mermaid_sync.core.parser import parse
from mermaid_sync.core.validation import IssueSeverity, validate_graph, validation_summary


def _by_severity(issues, severity):
    return [i for i in issues if i.severity == severity]


def test_parsed_graph_is_valid():
    graph = parse("graph TD\nA[a] --> B[b]\nB --> C", "flowchart")
    summary = validation_summary(validate_graph(graph))
    assert summary["valid"] is True
    assert summary["errors"] == 0


def test_dangling_edge_is_an_error():
    graph = GraphModel(
        nodes=[Node(id="A")],
        edges=[Edge(id="A-Z-0", source="A", target="Z")],
    )
    errors = _by_severity(validate_graph(graph), IssueSeverity.ERROR)
    assert len(errors) == 1
    assert errors[0].edge_id == "A-Z-0"
    assert errors[0].to_dict()["type"] == "error"


def test_duplicate_ids_are_an_error():
    graph = GraphModel(nodes=[Node(id="A"), Node(id="A", shape=NodeShape.CIRCLE)])
    errors = _by_severity(validate_graph(graph), IssueSeverity.ERROR)
    assert [e.node_id for e in errors] == ["A"]


def test_shape_mismatch_is_a_warning():
    graph = GraphModel(dialect=Dialect.SEQUENCE, nodes=[Node(id="A", shape=NodeShape.DIAMOND)])
    warnings = _by_severity(validate_graph(graph), IssueSeverity.WARNING)
    assert [w.node_id for w in warnings] == ["A"]


def test_self_loops_and_parallel_edges_are_informational():
    graph = parse("graph TD\nA --> A\nA --> B\nA --> B", "flowchart")
    issues = validate_graph(graph)
    assert not _by_severity(issues, IssueSeverity.ERROR)
    assert len(_by_severity(issues, IssueSeverity.INFO)) == 2


def test_empty_graph():
    summary = validation_summary(validate_graph(GraphModel()))
    assert summary == {"total": 1, "errors": 0, "warnings": 0, "info": 1, "valid": True}
