"""Render transition tables back into diagram text.

The output compiles under the matching syntax to a table equal to the input,
so it doubles as a canonical form for a diagram.

Example:
    from fsmflow import compile_diagram, visualize

    table = compile_diagram(open("order.puml").read())
    print(visualize(table, format="mermaid"))
    stateDiagram-v2
    [*] --> |start| idle
    idle --> |stop| [*]
"""

from __future__ import annotations

from typing import List

from .syntax import PSEUDO_STATE
from .transition import TransitionTable

FORMATS = ("mermaid", "plantuml")


def visualize(table: TransitionTable, *, format: str = "mermaid") -> str:
    """Render ``table`` as Mermaid or PlantUML diagram text.

    Raises:
        ValueError: If format is not supported.
    """
    if format not in FORMATS:
        raise ValueError(f"Unsupported format: {format!r}. Use one of: {', '.join(FORMATS)}.")

    entry_events = table.entry_events or ("start",)
    edges = [(PSEUDO_STATE, event, table.initial_state) for event in entry_events]
    for t in table.transitions:
        target = PSEUDO_STATE if t.is_terminal else t.to_state
        edges.append((t.from_state, t.event, target))

    if format == "mermaid":
        return _generate_mermaid(edges)
    return _generate_plantuml(edges)


def _generate_mermaid(edges: List[tuple]) -> str:
    lines = ["stateDiagram-v2"]
    lines.extend(f"{src} --> |{event}| {dst}" for src, event, dst in edges)
    return "\n".join(lines)


def _generate_plantuml(edges: List[tuple]) -> str:
    lines = ["@startuml"]
    lines.extend(f"{src} --> {dst} : {event}" for src, event, dst in edges)
    lines.append("@enduml")
    return "\n".join(lines)
