"""
Grammar recognizers - line-level pattern matchers for each dialect.

Every recognizer is a pure function of one line of source text that returns
the structural matches found on it (possibly none). Lines that no recognizer
matches contribute nothing; callers skip them silently.

Flowchart node shapes are textually nested (`A((x))` also contains the
rounded form `A((x)`), so shapes are tried through an explicit ordered
list: diamond, circle, rounded, rectangle. The first recognizer that matches
at a given identifier wins and its span is consumed.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .models import Dialect, NodeShape, DIRECTIONS


IDENT = r"[A-Za-z0-9_]+"


@dataclass(frozen=True)
class NodeMatch:
    """A node declaration found on a line."""
    id: str
    label: str
    shape: NodeShape


@dataclass(frozen=True)
class EdgeMatch:
    """An edge (or sequence message) found on a line."""
    source: str
    target: str
    arrow: str
    label: Optional[str] = None


@dataclass(frozen=True)
class ShapeRecognizer:
    """Matches one flowchart node shape anchored at an identifier."""
    shape: NodeShape
    pattern: re.Pattern

    def match_at(self, line: str, pos: int) -> Optional[re.Match]:
        return self.pattern.match(line, pos)


def _shape(shape: NodeShape, open_: str, close: str, body: str) -> ShapeRecognizer:
    return ShapeRecognizer(
        shape=shape,
        pattern=re.compile(rf"(?P<id>{IDENT}){open_}(?P<label>{body}){close}"),
    )


# Precedence order matters: see module docstring.
FLOWCHART_SHAPES: tuple[ShapeRecognizer, ...] = (
    _shape(NodeShape.DIAMOND, r"\{", r"\}", r"[^}]+"),
    _shape(NodeShape.CIRCLE, r"\(\(", r"\)\)", r"[^)]+"),
    _shape(NodeShape.ROUNDED, r"\(", r"\)", r"[^)]+"),
    _shape(NodeShape.RECTANGLE, r"\[", r"\]", r"[^\]]+"),
)

# Scanner tokens: an edge label between pipes (skipped) or an identifier.
_SCAN = re.compile(rf"\|[^|]*\||{IDENT}")

# Node label blocks elided before edge search; pipe labels are kept.
_LABEL_BLOCKS = re.compile(r"\|[^|]*\||\(\([^)]*\)\)|\([^)]*\)|\[[^\]]*\]|\{[^}]*\}")

_FLOWCHART_EDGE = re.compile(
    rf"(?P<source>{IDENT})\s*(?P<arrow>-->|---)\s*"
    rf"(?:\|(?P<label>[^|]*)\|\s*)?(?P<target>{IDENT})"
)

_FLOWCHART_HEADER = re.compile(rf"^\s*(?:graph|flowchart)\s+(?P<direction>{'|'.join(DIRECTIONS)})\b")

_PARTICIPANT = re.compile(rf"^\s*(?:participant|actor)\s+(?P<id>{IDENT})(?:\s+as\s+(?P<label>.+?))?\s*$")

_MESSAGE = re.compile(
    rf"(?P<source>{IDENT})\s*(?P<arrow>-->>|->>|-->|->)\s*(?P<target>{IDENT})\s*:\s*(?P<label>.*)$"
)


# --- Flowchart ---

def find_nodes(line: str, recognizers: tuple[ShapeRecognizer, ...] = FLOWCHART_SHAPES) -> list[NodeMatch]:
    """
    Find every decorated node declaration on a flowchart line.

    Scans identifiers left to right and tries the recognizers in order at
    each one. Text inside a matched label or an edge `|label|` is skipped.

    Args:
        line: One line of flowchart source
        recognizers: Shape recognizers in precedence order

    Returns:
        Node matches in textual order
    """
    matches: list[NodeMatch] = []
    pos = 0
    while True:
        token = _SCAN.search(line, pos)
        if token is None:
            break
        if token.group(0).startswith("|"):
            pos = token.end()
            continue
        for recognizer in recognizers:
            m = recognizer.match_at(line, token.start())
            if m:
                matches.append(NodeMatch(
                    id=m.group("id"),
                    label=m.group("label").strip(),
                    shape=recognizer.shape,
                ))
                pos = m.end()
                break
        else:
            pos = token.end()
    return matches


def recognize_shape(text: str, recognizers: tuple[ShapeRecognizer, ...] = FLOWCHART_SHAPES) -> Optional[NodeMatch]:
    """Classify a single `id<delimiters>` token, or None if it has no shape."""
    found = find_nodes(text.strip(), recognizers)
    return found[0] if found else None


def _strip_label_blocks(line: str) -> str:
    return _LABEL_BLOCKS.sub(lambda m: m.group(0) if m.group(0).startswith("|") else "", line)


def find_edges(line: str) -> list[EdgeMatch]:
    """
    Find the edges on a flowchart line.

    Node label blocks are elided first so `A[Start] --> B[End]` reads as
    `A --> B`. A chain like `A --> B --> C` yields one edge per hop.
    """
    stripped = _strip_label_blocks(line)
    edges: list[EdgeMatch] = []
    pos = 0
    while True:
        m = _FLOWCHART_EDGE.search(stripped, pos)
        if m is None:
            break
        label = (m.group("label") or "").strip()
        edges.append(EdgeMatch(
            source=m.group("source"),
            target=m.group("target"),
            arrow=m.group("arrow"),
            label=label or None,
        ))
        pos = m.start("target")
    return edges


def header_direction(line: str) -> Optional[str]:
    """Direction named by a `graph TD` / `flowchart LR` header, if any."""
    m = _FLOWCHART_HEADER.match(line)
    return m.group("direction") if m else None


# --- Sequence ---

def find_participant(line: str) -> Optional[NodeMatch]:
    """Match `participant <id> [as <label>]`."""
    m = _PARTICIPANT.match(line)
    if m is None:
        return None
    node_id = m.group("id")
    return NodeMatch(id=node_id, label=m.group("label") or node_id, shape=NodeShape.PARTICIPANT)


def find_message(line: str) -> Optional[EdgeMatch]:
    """Match `<id> <arrow> <id> : <text>`. Sync and async arrows parse alike."""
    m = _MESSAGE.search(line)
    if m is None:
        return None
    return EdgeMatch(
        source=m.group("source"),
        target=m.group("target"),
        arrow=m.group("arrow"),
        label=m.group("label").strip() or None,
    )


# --- Writability ---

# Closing delimiter of each flowchart shape; a label containing it ends early.
_CLOSING_DELIMITERS = {
    NodeShape.RECTANGLE: "]",
    NodeShape.ROUNDED: ")",
    NodeShape.CIRCLE: ")",
    NodeShape.DIAMOND: "}",
}
_EDGE_LABEL_RESERVED = "|"
_LINE_BREAKS = re.compile(r"\s*[\r\n]+\s*")


def is_identifier(value: Optional[str]) -> bool:
    """True if `value` reads back as a single node identifier."""
    return bool(value) and re.fullmatch(IDENT, value) is not None


def _one_line(label: Optional[str]) -> str:
    return _LINE_BREAKS.sub(" ", label or "").strip()


def node_label_text(label: Optional[str], dialect: Dialect, shape: NodeShape) -> str:
    """
    Normalize a node label so it survives serialize -> parse.

    Line breaks collapse to a space. A flowchart label may not contain the
    closing delimiter of its shape (the `other` dialect always writes
    rectangles); such labels raise ValueError rather than being rewritten.
    """
    text = _one_line(label)
    if dialect == Dialect.SEQUENCE:
        return text
    closing = "]" if dialect == Dialect.OTHER else _CLOSING_DELIMITERS.get(shape, "]")
    if closing in text:
        raise ValueError(f"A {shape.value} label cannot contain '{closing}'")
    return text


def edge_label_text(label: Optional[str], dialect: Dialect) -> str:
    """Normalize an edge label; flowchart labels may not contain '|'."""
    text = _one_line(label)
    if dialect != Dialect.SEQUENCE and _EDGE_LABEL_RESERVED in text:
        raise ValueError(f"An edge label cannot contain '{_EDGE_LABEL_RESERVED}'")
    return text


# --- Dialect dispatch ---

def recognize_line(line: str, dialect: Dialect) -> tuple[list[NodeMatch], list[EdgeMatch]]:
    """
    Run every recognizer of a dialect over one line.

    Node and edge recognition are independent; both may fire on one line.
    The `other` dialect is read with the flowchart grammar.
    """
    if dialect == Dialect.SEQUENCE:
        participant = find_participant(line)
        message = find_message(line) if participant is None else None
        return ([participant] if participant else []), ([message] if message else [])
    return find_nodes(line), find_edges(line)
