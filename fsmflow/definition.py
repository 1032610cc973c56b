from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .callbacks import Callbacks
from .diagram import compile_diagram
from .errors import fsm_type_not_found
from .transition import TransitionTable


@dataclass(frozen=True)
class FSMType:
    """A compiled transition table plus the hooks bound to it.

    A blueprint shared by every instance started from it; never mutated.
    """

    name: str
    table: TransitionTable
    callbacks: Callbacks = field(default_factory=Callbacks)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "callbacks", Callbacks.from_object(self.callbacks).bind(self.table)
        )

    @classmethod
    def from_diagram(
        cls,
        name: str,
        diagram: str,
        syntax: str = "plantuml",
        callbacks: Optional[Any] = None,
    ) -> "FSMType":
        table = compile_diagram(diagram, syntax)
        return cls(name=name, table=table, callbacks=callbacks if callbacks is not None else Callbacks())


class FSMTypeRegistry:
    def __init__(self) -> None:
        self._types: Dict[str, FSMType] = {}

    def register(self, fsm_type: FSMType) -> FSMType:
        self._types[fsm_type.name] = fsm_type
        return fsm_type

    def unregister(self, name: str) -> None:
        self._types.pop(name, None)

    def get(self, name: str) -> FSMType:
        fsm_type = self._types.get(name)
        if fsm_type is None:
            raise fsm_type_not_found(name, self.names())
        return fsm_type

    def names(self) -> list[str]:
        return sorted(self._types.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._types


DEFAULT_REGISTRY = FSMTypeRegistry()
