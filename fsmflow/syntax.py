"""Shared machinery for the diagram syntaxes.

Each syntax module scans its own surface form into ``RawEdge`` values and
hands them to ``build_table``, which resolves the ``[*]`` pseudo-state and
enforces the structural rules every table must satisfy.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Pattern, Tuple

from .errors import (
    CompileError,
    compile_malformed_line,
    compile_multiple_initial_states,
    compile_no_initial_state,
    compile_no_transitions,
)
from .transition import TERMINAL, Transition, TransitionTable

PSEUDO_STATE = "[*]"

NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*")
NODE = re.compile(r"\[\*\]|[A-Za-z_][A-Za-z0-9_.]*")
ARROW = re.compile(r"-->")


@dataclass(frozen=True)
class RawEdge:
    source: str
    event: str
    target: str
    line: int


class LineScanner:
    """Consumes one diagram line token by token.

    On a mismatch it raises ``CompileError`` pointing at the column where the
    expected token should have started.
    """

    def __init__(self, syntax: str, text: str, line: int) -> None:
        self.syntax = syntax
        self.text = text
        self.line = line
        self.pos = 0

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def fail(self, expected: str) -> CompileError:
        return compile_malformed_line(
            self.syntax, self.line, self.pos + 1, self.text.strip(), expected
        )

    def expect(self, pattern: Pattern[str], expected: str) -> str:
        self._skip_ws()
        m = pattern.match(self.text, self.pos)
        if not m:
            raise self.fail(expected)
        self.pos = m.end()
        return m.group(0)

    def expect_literal(self, literal: str, expected: Optional[str] = None) -> None:
        self._skip_ws()
        if not self.text.startswith(literal, self.pos):
            raise self.fail(expected or f"'{literal}'")
        self.pos += len(literal)

    def expect_end(self) -> None:
        self._skip_ws()
        if self.pos != len(self.text):
            raise self.fail("end of line")


def significant_lines(text: str, comment_prefix: str) -> Iterator[Tuple[int, str]]:
    """Yield (1-based line number, raw line) for lines that are not blank or comments."""
    for number, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.strip()
        if not stripped or stripped.startswith(comment_prefix):
            continue
        yield number, raw


def build_table(edges: List[RawEdge], syntax: str) -> TransitionTable:
    if not edges:
        raise compile_no_transitions(syntax)

    initial: List[str] = []
    conflict_line: Optional[int] = None
    entry_events: List[str] = []
    transitions: List[Transition] = []

    for edge in edges:
        if edge.source == PSEUDO_STATE:
            if edge.target == PSEUDO_STATE:
                raise CompileError(
                    f"Entry edge at line {edge.line} targets the exit pseudo-state",
                    line=edge.line,
                    snippet=f"[*] --> [*] : {edge.event}",
                    why="'[*] --> [*]' would start an instance that is already finished.",
                    fix="Point the entry edge at a concrete initial state.",
                )
            if edge.target not in initial:
                initial.append(edge.target)
                if len(initial) == 2:
                    conflict_line = edge.line
            if edge.event not in entry_events:
                entry_events.append(edge.event)
            continue

        to_state = TERMINAL if edge.target == PSEUDO_STATE else edge.target
        t = Transition(edge.source, edge.event, to_state)
        if t not in transitions:
            transitions.append(t)

    if not initial:
        raise compile_no_initial_state(syntax)
    if len(initial) > 1:
        raise compile_multiple_initial_states(syntax, initial, conflict_line)

    return TransitionTable(
        initial_state=initial[0],
        transitions=tuple(transitions),
        entry_events=tuple(entry_events),
    )
