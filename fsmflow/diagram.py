"""Diagram text to transition table compilation.

Example:
    from fsmflow.diagram import compile_diagram

    table = compile_diagram(
        '''
        [*] --> idle : start
        idle --> [*] : stop
        ''',
        syntax="plantuml",
    )
    table.initial_state  # 'idle'
"""

from __future__ import annotations

from typing import Callable, Dict

from . import mermaid, plantuml
from .errors import compile_unknown_syntax
from .transition import TransitionTable

Parser = Callable[[str], TransitionTable]

SYNTAXES: Dict[str, Parser] = {
    plantuml.SYNTAX: plantuml.parse,
    mermaid.SYNTAX: mermaid.parse,
}


def compile_diagram(text: str, syntax: str = "plantuml") -> TransitionTable:
    """Compile diagram text under the named syntax.

    Pure and deterministic: the same text always yields an equal table.

    Raises:
        CompileError: If the syntax is unknown, a line is malformed, or the
            diagram has no transitions or not exactly one initial state.
    """
    parser = SYNTAXES.get(syntax.lower())
    if parser is None:
        raise compile_unknown_syntax(syntax, sorted(SYNTAXES))
    return parser(text)
