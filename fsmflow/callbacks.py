"""Callback hooks bound to an FSM type.

An FSM type author supplies up to three hooks, as plain functions or
coroutine functions:

    on_transition(state, event, event_payload, state_payload) -> Success | Failure
    on_failure(event, event_payload, run_state) -> None
    on_terminate(run_state) -> None

Missing hooks fall back to defaults: ``on_transition`` follows the table when
the (state, event) pair has exactly one declared target, the other two do
nothing.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Optional, Union

from .errors import ConfigError, ErrorContext, import_not_callbacks
from .transition import Target, TransitionTable

HOOKS = ("on_transition", "on_failure", "on_terminate")

# Faults that escape the isolation boundary and take the instance down.
FATAL_ERRORS = (MemoryError,)


@dataclass(frozen=True)
class Success:
    state: Target
    payload: Any = None


@dataclass(frozen=True)
class Failure:
    reason: Any = None


Outcome = Union[Success, Failure]
Hook = Callable[..., Union[Any, Awaitable[Any]]]


async def invoke(fn: Hook, *args: Any) -> Any:
    """Call a hook and await its result if it returned an awaitable."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def follow_table(table: TransitionTable) -> Hook:
    """Build an ``on_transition`` that moves along the single declared edge."""

    def on_transition(state: str, event: str, event_payload: Any, state_payload: Any) -> Outcome:
        targets = table.targets(state, event)
        if len(set(targets)) != 1:
            return Failure(
                f"{len(set(targets))} declared targets for {event!r} in state {state!r}"
            )
        return Success(targets[0], state_payload)

    return on_transition


def _noop(*_args: Any) -> None:
    return None


@dataclass(frozen=True)
class Callbacks:
    on_transition: Optional[Hook] = None
    on_failure: Optional[Hook] = None
    on_terminate: Optional[Hook] = None

    def bind(self, table: TransitionTable) -> "Callbacks":
        """Return a copy with every missing hook replaced by its default."""
        return replace(
            self,
            on_transition=self.on_transition or follow_table(table),
            on_failure=self.on_failure or _noop,
            on_terminate=self.on_terminate or _noop,
        )

    @classmethod
    def from_object(cls, obj: Any, source: Optional[str] = None) -> "Callbacks":
        """Collect hooks from an instance, a class or a module.

        Classes are instantiated with no arguments first. ``source`` names
        where ``obj`` came from and only shows up in error messages.
        """
        if isinstance(obj, Callbacks):
            return obj

        if inspect.isclass(obj):
            try:
                obj = obj()
            except Exception as e:
                ctx = ErrorContext().add("source", source or obj.__name__).add("error", str(e))
                raise ConfigError(
                    f"Failed to instantiate callbacks: '{source or obj.__name__}'",
                    why=f"The callbacks class raised an error during instantiation: {e}",
                    fix="Give the callbacks class a zero-argument constructor.",
                    context=ctx,
                ) from None

        found = {}
        for hook in HOOKS:
            fn = getattr(obj, hook, None)
            if callable(fn):
                found[hook] = fn

        if not found:
            raise import_not_callbacks(source or repr(obj), type(obj).__name__)
        return cls(**found)
