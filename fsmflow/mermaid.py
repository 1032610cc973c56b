"""Mermaid-style state diagrams.

The event sits between pipes on the arrow::

    stateDiagram-v2
    [*] --> |start| idle
    idle --> |work| busy
    busy --> |done| [*]

``%%`` starts a comment line. A leading ``stateDiagram``, ``stateDiagram-v2``,
``graph <dir>`` or ``flowchart <dir>`` header is accepted and ignored.
"""

from __future__ import annotations

import re
from typing import List

from .syntax import ARROW, NAME, NODE, LineScanner, RawEdge, build_table, significant_lines
from .transition import TransitionTable

SYNTAX = "mermaid"

_HEADER = re.compile(r"^\s*(stateDiagram(-v2)?|graph(\s+\w+)?|flowchart(\s+\w+)?)\s*$")


def parse_edge(raw: str, line: int) -> RawEdge:
    scanner = LineScanner(SYNTAX, raw, line)
    source = scanner.expect(NODE, "a state name or '[*]'")
    scanner.expect(ARROW, "'-->' after the source state")
    scanner.expect_literal("|", "'|' opening the event label")
    event = scanner.expect(NAME, "an event name inside '|...|'")
    scanner.expect_literal("|", "'|' closing the event label")
    target = scanner.expect(NODE, "a target state name or '[*]'")
    scanner.expect_end()
    return RawEdge(source=source, event=event, target=target, line=line)


def parse(text: str) -> TransitionTable:
    """Compile Mermaid-style diagram text into a transition table."""
    edges: List[RawEdge] = []
    first = True
    for number, raw in significant_lines(text, "%%"):
        if first and _HEADER.match(raw):
            first = False
            continue
        first = False
        edges.append(parse_edge(raw, number))
    return build_table(edges, SYNTAX)
