"""FSMFlow - diagram-driven finite state machines running as supervised asyncio actors.

Quick Start:
    from fsmflow import TERMINAL, Failure, FSMType, InstanceManager, Success

    DIAGRAM = '''
    [*] --> idle : start
    idle --> busy : work
    busy --> [*] : done
    '''

    class Hooks:
        def on_transition(self, state, event, event_payload, state_payload):
            if (state, event) == ("idle", "work"):
                return Success("busy", event_payload)
            if (state, event) == ("busy", "done"):
                return Success(TERMINAL, state_payload)
            return Failure("unexpected")

    job = FSMType.from_diagram("job", DIAGRAM, callbacks=Hooks())
    manager = InstanceManager()
    await manager.start(job, "job-1", payload={})
    manager.send("job-1", "work", {"id": 7})
    (await manager.state("job-1")).current  # 'busy'

For config-driven usage:
    from fsmflow import ConfigLoader

    config = ConfigLoader.load_fsm_config("job.yaml")
    job = config.build()
    manager = config.manager()
"""

from .actor import FSMActor, Lifecycle, RunState
from .callbacks import Callbacks, Failure, Success
from .config_loader import ConfigLoader, FSMConfig, RuntimeConfig
from .definition import DEFAULT_REGISTRY, FSMType, FSMTypeRegistry
from .diagram import compile_diagram
from .errors import (
    CompileError,
    ConfigError,
    FSMFlowError,
    ImportError_,
    NotFoundError,
    StartError,
    TransitionRejected,
)
from .event_bus import LifecycleBus
from .explain import Diagnostic, TableExplanation, explain
from .manager import InstanceManager
from .transition import TERMINAL, Transition, TransitionTable, allowed, initial_state, responds_to
from .visualize import visualize

__all__ = [
    # Core
    "compile_diagram",
    "TransitionTable",
    "Transition",
    "TERMINAL",
    "initial_state",
    "allowed",
    "responds_to",
    # FSM types and runtime
    "FSMType",
    "Callbacks",
    "Success",
    "Failure",
    "InstanceManager",
    "FSMActor",
    "RunState",
    "Lifecycle",
    "LifecycleBus",
    # Registry (advanced)
    "FSMTypeRegistry",
    "DEFAULT_REGISTRY",
    # Config
    "ConfigLoader",
    "FSMConfig",
    "RuntimeConfig",
    # Errors
    "FSMFlowError",
    "CompileError",
    "TransitionRejected",
    "NotFoundError",
    "StartError",
    "ConfigError",
    "ImportError_",
    # Introspection
    "explain",
    "TableExplanation",
    "Diagnostic",
    "visualize",
]

__version__ = "0.1.0"
