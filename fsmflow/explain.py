"""Transition table explanation without side effects.

explain(table) answers: "What does this diagram describe, and is anything
about it suspicious?" It never starts an instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .transition import TransitionTable


@dataclass
class Diagnostic:
    """A single warning about a transition table."""

    level: str  # "warning"
    what: str
    why: Optional[str] = None
    fix: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        """Format as structured message (matches FSMFlowError format)."""
        lines = [f"[{self.level.upper()}] {self.what}"]
        if self.why:
            lines.append(f"Why: {self.why}")
        if self.fix:
            lines.append(f"Fix: {self.fix}")
        if self.context:
            ctx_lines = [f"  {k}={v!r}" for k, v in self.context.items()]
            lines.append("Context:\n" + "\n".join(ctx_lines))
        return "\n".join(lines)


@dataclass
class TableExplanation:
    """Structured explanation of a transition table."""

    initial_state: str
    states: List[str] = field(default_factory=list)
    events: List[str] = field(default_factory=list)
    terminal_states: List[str] = field(default_factory=list)
    transitions: List[str] = field(default_factory=list)
    warnings: List[Diagnostic] = field(default_factory=list)

    def format(self) -> str:
        lines = [
            "FSMFlow Table Explanation",
            "=" * 40,
            f"initial_state: {self.initial_state}",
            f"states: {', '.join(self.states)}",
            f"events: {', '.join(self.events)}",
            f"terminal_states: {', '.join(self.terminal_states) or '(none)'}",
            "",
            "Transitions:",
        ]
        lines.extend(f"  {t}" for t in self.transitions)

        if self.warnings:
            lines.append("")
            lines.append(f"Warnings ({len(self.warnings)}):")
            for d in self.warnings:
                lines.append(d.format())

        return "\n".join(lines)


def explain(table: TransitionTable) -> TableExplanation:
    exp = TableExplanation(
        initial_state=table.initial_state,
        states=table.states,
        events=table.events,
        terminal_states=table.terminal_states,
        transitions=[f"{t.from_state} --{t.event}--> {t.to_state}" for t in table.transitions],
    )

    if not table.terminal_states:
        exp.warnings.append(
            Diagnostic(
                level="warning",
                what="No transition reaches the terminal state",
                why="Instances of this FSM never stop on their own.",
                fix="Add an edge to '[*]' if instances should finish.",
            )
        )

    reachable = table.reachable()
    unreachable = [s for s in table.states if s not in reachable]
    if unreachable:
        exp.warnings.append(
            Diagnostic(
                level="warning",
                what=f"Unreachable states: {', '.join(unreachable)}",
                why="No path of transitions leads to them from the initial state.",
                fix="Connect them to the rest of the diagram or remove them.",
                context={"states": unreachable},
            )
        )

    dead_ends = [s for s in table.states if not table.events_from(s)]
    if dead_ends:
        exp.warnings.append(
            Diagnostic(
                level="warning",
                what=f"Dead-end states: {', '.join(dead_ends)}",
                why="An instance entering them can never move or stop again.",
                fix="Add an outgoing edge, e.g. to '[*]'.",
                context={"states": dead_ends},
            )
        )

    for (from_state, event), targets in table.ambiguous().items():
        exp.warnings.append(
            Diagnostic(
                level="warning",
                what=f"Event {event!r} in state {from_state!r} has several targets",
                why="on_transition must pick one; the default callback refuses such events.",
                fix="Rename the events or supply an on_transition that chooses the target.",
                context={"state": from_state, "event": event, "targets": [repr(t) for t in targets]},
            )
        )

    return exp
