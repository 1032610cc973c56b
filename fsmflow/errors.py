"""FSMFlow error types with structured, actionable messages.

Error Contract:
Every user-facing error includes:
- What happened (one sentence, plain English)
- Why (root cause, not stack trace)
- Fix (specific, actionable)
- Context (relevant keys/paths, trimmed)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ErrorContext:
    """Structured context for error messages."""

    items: Dict[str, Any] = field(default_factory=dict)

    def add(self, key: str, value: Any) -> "ErrorContext":
        """Add a context item, returning self for chaining."""
        self.items[key] = value
        return self

    def format(self) -> str:
        """Format context as indented key=value lines."""
        if not self.items:
            return ""
        return "\n".join(f"  {k}={v!r}" for k, v in self.items.items())


class FSMFlowError(Exception):
    """Base exception for FSMFlow with structured error messages.

    Attributes:
        what: One-sentence description of what happened
        why: Root cause explanation
        fix: Actionable fix suggestion
        context: Relevant debugging context
    """

    def __init__(
        self,
        what: str,
        *,
        why: Optional[str] = None,
        fix: Optional[str] = None,
        context: Optional[ErrorContext] = None,
    ):
        self.what = what
        self.why = why
        self.fix = fix
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = [self.what]

        if self.why:
            lines.append(f"\nWhy: {self.why}")

        if self.fix:
            lines.append(f"\nFix: {self.fix}")

        ctx = self.context.format()
        if ctx:
            lines.append(f"\nContext:\n{ctx}")

        return "".join(lines)


class CompileError(FSMFlowError):
    """Diagram text is malformed or describes an invalid transition table.

    ``description`` is always set; ``line``/``column`` are 1-based and,
    together with ``snippet``, only present when the fault can be pinned to
    a place in the diagram.
    """

    def __init__(
        self,
        description: str,
        *,
        line: Optional[int] = None,
        column: Optional[int] = None,
        snippet: Optional[str] = None,
        why: Optional[str] = None,
        fix: Optional[str] = None,
        context: Optional[ErrorContext] = None,
    ):
        self.description = description
        self.line = line
        self.column = column
        self.snippet = snippet

        ctx = context or ErrorContext()
        if line is not None:
            ctx.add("line", line)
        if column is not None:
            ctx.add("column", column)
        if snippet is not None:
            ctx.add("snippet", snippet)

        super().__init__(description, why=why, fix=fix, context=ctx)


class TransitionRejected(FSMFlowError):
    """A transition request had no effect on the instance.

    Never raised to the sender; instances hand it to the log and to the
    ``fsm.rejected`` notification.
    """

    def __init__(
        self,
        what: str,
        *,
        event: Any = None,
        state: Any = None,
        cause: Optional[BaseException] = None,
        why: Optional[str] = None,
        fix: Optional[str] = None,
        context: Optional[ErrorContext] = None,
    ):
        self.event = event
        self.state = state
        self.cause = cause
        super().__init__(what, why=why, fix=fix, context=context)


class NotFoundError(FSMFlowError):
    """No running instance is registered under the requested name."""

    pass


class StartError(FSMFlowError):
    """An instance could not be started."""

    pass


class ConfigError(FSMFlowError):
    """Error loading or validating configuration."""

    pass


class ImportError_(FSMFlowError):
    """Error importing a dotted path symbol."""

    pass


# --- Helper constructors for common errors ---


def compile_malformed_line(
    syntax: str, line: int, column: int, snippet: str, expected: str
) -> CompileError:
    """A diagram line does not match the syntax grammar."""
    return CompileError(
        f"Malformed {syntax} transition at line {line}, column {column}",
        line=line,
        column=column,
        snippet=snippet,
        why=f"Expected {expected}.",
        fix="Fix the line, or turn it into a comment if it is not a transition.",
        context=ErrorContext().add("syntax", syntax),
    )


def compile_no_transitions(syntax: str) -> CompileError:
    """A diagram declares nothing."""
    return CompileError(
        "Diagram declares no transitions",
        why="A transition table needs at least one edge.",
        fix="Add transitions such as '[*] --> idle : start'.",
        context=ErrorContext().add("syntax", syntax),
    )


def compile_no_initial_state(syntax: str) -> CompileError:
    """A diagram has no entry edge."""
    return CompileError(
        "Diagram has no initial state",
        why="No transition leaves the '[*]' entry pseudo-state.",
        fix="Add exactly one entry edge, e.g. '[*] --> idle : start'.",
        context=ErrorContext().add("syntax", syntax),
    )


def compile_multiple_initial_states(
    syntax: str, states: List[str], line: Optional[int] = None
) -> CompileError:
    """Entry edges resolve to more than one state."""
    return CompileError(
        f"Diagram has {len(states)} initial states: {', '.join(states)}",
        line=line,
        why="Every entry edge from '[*]' must target the same state.",
        fix="Keep a single initial state and route the others through events.",
        context=ErrorContext().add("syntax", syntax).add("initial_states", states),
    )


def compile_unknown_syntax(syntax: str, valid: List[str]) -> CompileError:
    """No parser is registered for the syntax name."""
    return CompileError(
        f"Unknown diagram syntax: '{syntax}'",
        why="Diagrams can only be compiled with a registered syntax.",
        fix=f"Use one of: {', '.join(valid)}",
        context=ErrorContext().add("syntax", syntax),
    )


def instance_not_found(name: Any) -> NotFoundError:
    """Operation targets an unknown or stopped instance."""
    return NotFoundError(
        f"No running FSM instance named {name!r}",
        why="The instance was never started, or it has already stopped.",
        fix="Check the name, or start the instance with InstanceManager.start().",
        context=ErrorContext().add("name", name),
    )


def instance_already_started(name: Any, fsm_type: str) -> StartError:
    """Instance name is already claimed."""
    ctx = ErrorContext().add("name", name).add("running_type", fsm_type)
    return StartError(
        f"FSM instance {name!r} is already running",
        why="Instance names must be unique among running instances.",
        fix="Pick another name, or stop the running instance first.",
        context=ctx,
    )


def fsm_type_not_found(name: str, valid_types: List[str]) -> ConfigError:
    """FSM type name not found in registry."""
    shown = valid_types[:5]
    more = len(valid_types) - 5 if len(valid_types) > 5 else 0

    valid_str = ", ".join(shown) or "(none registered)"
    if more > 0:
        valid_str += f" (+{more} more)"

    ctx = ErrorContext()
    ctx.add("requested_type", name)
    ctx.add("valid_types", shown)

    return ConfigError(
        f"Unknown FSM type: '{name}'",
        why="The requested FSM type is not registered.",
        fix=f"Use one of the registered types: {valid_str}\n"
        "Or register yours with DEFAULT_REGISTRY.register(fsm_type)",
        context=ctx,
    )


def config_missing_field(field: str, path: Optional[str] = None) -> ConfigError:
    """Config is missing a required field."""
    ctx = ErrorContext()
    if path:
        ctx.add("config_path", path)
    ctx.add("field", field)

    return ConfigError(
        f"Config missing required field: '{field}'",
        why=f"The '{field}' field is required but was not found in the config.",
        fix=f"Add '{field}' to your config file.",
        context=ctx,
    )


def config_wrong_type(
    field: str, expected: str, got: str, path: Optional[str] = None
) -> ConfigError:
    """Config field has wrong type."""
    ctx = ErrorContext()
    if path:
        ctx.add("config_path", path)
    ctx.add("field", field)
    ctx.add("expected", expected)
    ctx.add("got", got)

    return ConfigError(
        f"Config field '{field}' has wrong type",
        why=f"Expected {expected}, but got {got}.",
        fix=f"Change '{field}' to be a {expected}.",
        context=ctx,
    )


def import_invalid_format(dotted_path: str) -> ImportError_:
    """Dotted path has invalid format."""
    return ImportError_(
        f"Invalid dotted path format: '{dotted_path}'",
        why="Dotted paths must be in 'module:Symbol' format.",
        fix="Use the format 'mypackage.module:MyCallbacks' (colon separates module from symbol).",
        context=ErrorContext().add("dotted_path", dotted_path),
    )


def import_module_not_found(module: str, dotted_path: str) -> ImportError_:
    """Module in dotted path not found."""
    ctx = ErrorContext().add("module", module).add("dotted_path", dotted_path)

    return ImportError_(
        f"Module not found: '{module}'",
        why="The module specified in the dotted path could not be imported.",
        fix="Check that the module exists and is on your Python path.",
        context=ctx,
    )


def import_symbol_not_found(module: str, symbol: str, dotted_path: str) -> ImportError_:
    """Symbol not found in module."""
    ctx = (
        ErrorContext()
        .add("module", module)
        .add("symbol", symbol)
        .add("dotted_path", dotted_path)
    )

    return ImportError_(
        f"Symbol '{symbol}' not found in module '{module}'",
        why="The module was imported successfully, but doesn't contain that symbol.",
        fix="Check the spelling and make sure it's defined at module top level.",
        context=ctx,
    )


def import_not_callbacks(dotted_path: str, got_type: str) -> ImportError_:
    """Imported symbol exposes none of the callback hooks."""
    ctx = ErrorContext().add("dotted_path", dotted_path).add("got_type", got_type)

    return ImportError_(
        f"No FSM callbacks found at '{dotted_path}'",
        why=f"Expected an object, class or module defining on_transition, "
        f"on_failure or on_terminate, but got {got_type} without any of them.",
        fix="Define at least one of the hooks:\n"
        "  def on_transition(state, event, event_payload, state_payload): ...",
        context=ctx,
    )


def transition_failed(event: Any, state: Any, reason: Any) -> TransitionRejected:
    """on_transition reported a failure outcome."""
    ctx = ErrorContext().add("event", event).add("state", state).add("reason", reason)
    return TransitionRejected(
        f"Transition on {event!r} from {state!r} was refused by on_transition",
        event=event,
        state=state,
        why="The callback returned a failure outcome instead of Success(state, payload).",
        context=ctx,
    )


def transition_raised(event: Any, state: Any, cause: BaseException) -> TransitionRejected:
    """on_transition raised."""
    ctx = ErrorContext().add("event", event).add("state", state).add("error", repr(cause))
    return TransitionRejected(
        f"on_transition raised while handling {event!r} in {state!r}",
        event=event,
        state=state,
        cause=cause,
        why=f"{type(cause).__name__}: {cause}",
        fix="Return Failure(reason) from on_transition instead of raising.",
        context=ctx,
    )


def transition_not_allowed(event: Any, state: Any, target: Any) -> TransitionRejected:
    """on_transition picked a target the table does not declare."""
    ctx = ErrorContext().add("event", event).add("state", state).add("target", target)
    return TransitionRejected(
        f"Transition {state!r} --> {target!r} is not declared in the diagram",
        event=event,
        state=state,
        why="on_transition returned a target state without a matching edge.",
        fix="Add the edge to the diagram or return a declared target.",
        context=ctx,
    )
