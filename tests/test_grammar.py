import pytest

from mermaid_sync.core.grammar import (
    FLOWCHART_SHAPES, edge_label_text, find_edges, find_message, find_nodes, find_participant,
    header_direction, is_identifier, node_label_text, recognize_line, recognize_shape,
)
from mermaid_sync.core.models import Dialect, NodeShape


def test_shape_precedence_order_is_explicit():
    assert [r.shape for r in FLOWCHART_SHAPES] == [
        NodeShape.DIAMOND, NodeShape.CIRCLE, NodeShape.ROUNDED, NodeShape.RECTANGLE,
    ]


def test_circle_wins_over_rounded():
    match = recognize_shape("A((hello))")
    assert match.shape == NodeShape.CIRCLE
    assert match.id == "A"
    assert match.label == "hello"


def test_rounded_recognizer_alone_would_misread_circle():
    rounded_only = tuple(r for r in FLOWCHART_SHAPES if r.shape == NodeShape.ROUNDED)
    match = recognize_shape("A((hello))", rounded_only)
    assert match.shape == NodeShape.ROUNDED
    assert match.label == "(hello"


def test_each_shape_delimiter():
    assert recognize_shape("A[Box]").shape == NodeShape.RECTANGLE
    assert recognize_shape("A(Soft)").shape == NodeShape.ROUNDED
    assert recognize_shape("A((Dot))").shape == NodeShape.CIRCLE
    assert recognize_shape("A{Ask}").shape == NodeShape.DIAMOND
    assert recognize_shape("A") is None


def test_find_nodes_on_edge_line():
    nodes = find_nodes("A[Start] --> B{Check}")
    assert [(n.id, n.label, n.shape) for n in nodes] == [
        ("A", "Start", NodeShape.RECTANGLE),
        ("B", "Check", NodeShape.DIAMOND),
    ]


def test_label_text_is_not_rescanned_as_nodes():
    nodes = find_nodes("A[call foo(x)]")
    assert len(nodes) == 1
    assert nodes[0].label == "call foo(x)"


def test_edge_label_text_is_not_scanned_as_nodes():
    assert find_nodes("A -->|retry(3)| B") == []


def test_edge_between_decorated_nodes():
    edges = find_edges("A[Start] --> B[End]")
    assert len(edges) == 1
    assert (edges[0].source, edges[0].target, edges[0].label) == ("A", "B", None)


def test_edge_with_label_and_undirected_arrow():
    labelled = find_edges("A -->|yes| B")[0]
    assert labelled.label == "yes"
    assert labelled.arrow == "-->"

    plain = find_edges("C --- D")[0]
    assert (plain.source, plain.target, plain.arrow) == ("C", "D", "---")


def test_edge_chain_yields_one_edge_per_hop():
    edges = find_edges("A --> B --> C")
    assert [(e.source, e.target) for e in edges] == [("A", "B"), ("B", "C")]


def test_arrow_inside_node_label_is_not_an_edge():
    assert find_edges("A[a --> b]") == []


def test_header_direction():
    assert header_direction("graph LR") == "LR"
    assert header_direction("flowchart TB") == "TB"
    assert header_direction("sequenceDiagram") is None


def test_participant_with_and_without_alias():
    p = find_participant("participant A as Alice Smith")
    assert (p.id, p.label, p.shape) == ("A", "Alice Smith", NodeShape.PARTICIPANT)
    assert find_participant("participant Bob").label == "Bob"
    assert find_participant("actor C as Carol").id == "C"


def test_message_arrows_parse_alike():
    sync = find_message("Alice->>Bob: Hello there")
    async_ = find_message("Alice-->>Bob: Hello there")
    assert (sync.source, sync.target, sync.label) == ("Alice", "Bob", "Hello there")
    assert (async_.source, async_.target, async_.label) == ("Alice", "Bob", "Hello there")
    assert sync.arrow == "->>"
    assert async_.arrow == "-->>"


def test_unrecognized_lines_yield_nothing():
    assert recognize_line("style A fill:#f9f", Dialect.FLOWCHART) == ([], [])
    assert recognize_line("note over A: hi", Dialect.SEQUENCE) == ([], [])


@pytest.mark.parametrize("value, expected", [
    ("A", True), ("node_1", True), ("my node", False), ("a-b", False), ("", False), (None, False),
])
def test_is_identifier(value, expected):
    assert is_identifier(value) is expected


def test_node_label_text_collapses_line_breaks():
    assert node_label_text(" one\r\n  two \n", Dialect.FLOWCHART, NodeShape.RECTANGLE) == "one two"


@pytest.mark.parametrize("shape, label", [
    (NodeShape.RECTANGLE, "a]b"),
    (NodeShape.ROUNDED, "f(x)"),
    (NodeShape.CIRCLE, "x)"),
    (NodeShape.DIAMOND, "{y}"),
])
def test_node_label_text_rejects_closing_delimiter(shape, label):
    with pytest.raises(ValueError):
        node_label_text(label, Dialect.FLOWCHART, shape)


def test_node_label_text_allows_other_shapes_delimiters():
    assert node_label_text("f(x)", Dialect.FLOWCHART, NodeShape.RECTANGLE) == "f(x)"
    assert node_label_text("a]b", Dialect.SEQUENCE, NodeShape.PARTICIPANT) == "a]b"
    with pytest.raises(ValueError):
        node_label_text("a]b", Dialect.OTHER, NodeShape.DIAMOND)


def test_edge_label_text():
    assert edge_label_text(None, Dialect.FLOWCHART) == ""
    assert edge_label_text("a|b", Dialect.SEQUENCE) == "a|b"
    with pytest.raises(ValueError):
        edge_label_text("a|b", Dialect.FLOWCHART)
