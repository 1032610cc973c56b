"""PlantUML-style state diagrams.

One transition per line::

    [*] --> idle : start
    idle --> busy : work
    busy --> [*] : done

``'`` starts a comment line; ``@startuml``/``@enduml`` and ``hide``/``skinparam``
directives are accepted and ignored.
"""

from __future__ import annotations

import re
from typing import List

from .syntax import ARROW, NAME, NODE, LineScanner, RawEdge, build_table, significant_lines
from .transition import TransitionTable

SYNTAX = "plantuml"

_DIRECTIVE = re.compile(r"^\s*(@startuml|@enduml|hide\s+empty\s|skinparam\s+\w)")


def parse_edge(raw: str, line: int) -> RawEdge:
    scanner = LineScanner(SYNTAX, raw, line)
    source = scanner.expect(NODE, "a state name or '[*]'")
    scanner.expect(ARROW, "'-->' after the source state")
    target = scanner.expect(NODE, "a target state name or '[*]'")
    scanner.expect_literal(":", "':' followed by the event name")
    event = scanner.expect(NAME, "an event name after ':'")
    scanner.expect_end()
    return RawEdge(source=source, event=event, target=target, line=line)


def parse(text: str) -> TransitionTable:
    """Compile PlantUML-style diagram text into a transition table."""
    edges: List[RawEdge] = []
    for number, raw in significant_lines(text, "'"):
        if _DIRECTIVE.match(raw):
            continue
        edges.append(parse_edge(raw, number))
    return build_table(edges, SYNTAX)
