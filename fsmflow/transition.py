"""Transition tables: the immutable graph compiled from a state diagram.

A table is built once per FSM type and shared read-only by every running
instance of that type. The diagram's ``[*]`` pseudo-state never appears in a
table: as a source it is resolved into ``initial_state``, as a target into
the ``TERMINAL`` marker.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Tuple, Union


class _Terminal:
    """Resolved exit pseudo-state. Use the ``TERMINAL`` singleton."""

    _instance = None

    def __new__(cls) -> "_Terminal":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "[*]"

    def __reduce__(self):
        return (_Terminal, ())


TERMINAL = _Terminal()

State = str
Event = str
Target = Union[State, _Terminal]


@dataclass(frozen=True)
class Transition:
    from_state: State
    event: Event
    to_state: Target

    @property
    def is_terminal(self) -> bool:
        return self.to_state is TERMINAL


@dataclass(frozen=True)
class TransitionTable:
    """All transitions of one FSM type plus its resolved initial state.

    Attributes:
        initial_state: The single state every instance starts in
        transitions: Edges in declaration order, exact duplicates removed
        entry_events: Events labelling the ``[*] --> initial_state`` edges
    """

    initial_state: State
    transitions: Tuple[Transition, ...]
    entry_events: Tuple[Event, ...] = ()
    _index: Dict[Tuple[State, Event], Tuple[Target, ...]] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        index: Dict[Tuple[State, Event], List[Target]] = {}
        for t in self.transitions:
            index.setdefault((t.from_state, t.event), []).append(t.to_state)
        object.__setattr__(
            self, "_index", {k: tuple(v) for k, v in index.items()}
        )

    def allowed(self, from_state: State, to_state: Target) -> bool:
        """True iff some edge leads from ``from_state`` to ``to_state``."""
        return any(
            t.from_state == from_state and t.to_state == to_state
            for t in self.transitions
        )

    def responds_to(self, from_state: State, event: Event) -> bool:
        """True iff ``event`` labels some edge leaving ``from_state``."""
        return (from_state, event) in self._index

    def targets(self, from_state: State, event: Event) -> Tuple[Target, ...]:
        """Candidate to-states for ``event`` in ``from_state``, in declaration order."""
        return self._index.get((from_state, event), ())

    def events_from(self, from_state: State) -> List[Event]:
        seen: List[Event] = []
        for t in self.transitions:
            if t.from_state == from_state and t.event not in seen:
                seen.append(t.event)
        return seen

    @property
    def states(self) -> List[State]:
        names = {self.initial_state}
        for t in self.transitions:
            names.add(t.from_state)
            if not t.is_terminal:
                names.add(t.to_state)  # type: ignore[arg-type]
        return sorted(names)

    @property
    def events(self) -> List[Event]:
        return sorted({t.event for t in self.transitions} | set(self.entry_events))

    @property
    def terminal_states(self) -> List[State]:
        return sorted({t.from_state for t in self.transitions if t.is_terminal})

    def ambiguous(self) -> Dict[Tuple[State, Event], Tuple[Target, ...]]:
        """(from, event) pairs declaring more than one distinct to-state."""
        return {k: v for k, v in self._index.items() if len(set(v)) > 1}

    def reachable(self) -> FrozenSet[State]:
        """States reachable from the initial state."""
        seen = {self.initial_state}
        frontier = [self.initial_state]
        while frontier:
            current = frontier.pop()
            for t in self.transitions:
                if t.from_state == current and not t.is_terminal and t.to_state not in seen:
                    seen.add(t.to_state)  # type: ignore[arg-type]
                    frontier.append(t.to_state)  # type: ignore[arg-type]
        return frozenset(seen)


def initial_state(table: TransitionTable) -> State:
    return table.initial_state


def allowed(table: TransitionTable, from_state: State, to_state: Target) -> bool:
    return table.allowed(from_state, to_state)


def responds_to(table: TransitionTable, from_state: State, event: Event) -> bool:
    return table.responds_to(from_state, event)
