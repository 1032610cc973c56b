from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .callbacks import Callbacks
from .definition import DEFAULT_REGISTRY, FSMType, FSMTypeRegistry
from .errors import ConfigError, ErrorContext, config_missing_field, config_wrong_type
from .imports import load_symbol
from .manager import RESTART_POLICIES, InstanceManager


@dataclass(frozen=True)
class RuntimeConfig:
    shutdown_timeout: float = 5.0
    restart: str = "transient"
    max_restarts: int = 3
    max_seconds: float = 5.0


@dataclass(frozen=True)
class FSMConfig:
    name: str
    diagram: str
    syntax: str = "plantuml"
    callbacks: Optional[str] = None
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    source: Optional[str] = None

    def build(self, registry: Optional[FSMTypeRegistry] = None) -> FSMType:
        """Compile the diagram, load the callbacks and register the FSM type.

        Raises:
            CompileError: If the diagram does not compile.
            ImportError_: If the callbacks path cannot be loaded.
        """
        hooks = Callbacks()
        if self.callbacks:
            hooks = Callbacks.from_object(load_symbol(self.callbacks), self.callbacks)
        fsm_type = FSMType.from_diagram(self.name, self.diagram, self.syntax, hooks)
        return (registry or DEFAULT_REGISTRY).register(fsm_type)

    def manager(self, registry: Optional[FSMTypeRegistry] = None, **kwargs: Any) -> InstanceManager:
        return InstanceManager(
            registry=registry or DEFAULT_REGISTRY,
            shutdown_timeout=self.runtime.shutdown_timeout,
            restart=self.runtime.restart,
            max_restarts=self.runtime.max_restarts,
            max_seconds=self.runtime.max_seconds,
            **kwargs,
        )


class ConfigLoader:
    @staticmethod
    def load_yaml(path: str | Path) -> Dict[str, Any]:
        p = Path(path)
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise config_wrong_type(
                field="(root)",
                expected="mapping/object",
                got=type(data).__name__,
                path=str(p),
            )
        return data

    @staticmethod
    def _load_diagram(data: Dict[str, Any], config_path: Path) -> str:
        path_str = str(config_path)
        inline = data.get("diagram")
        diagram_file = data.get("diagram_file")

        if inline is not None and diagram_file is not None:
            ctx = ErrorContext().add("config_path", path_str)
            raise ConfigError(
                "Config sets both 'diagram' and 'diagram_file'",
                why="The diagram must come from exactly one place.",
                fix="Keep either the inline 'diagram' or the 'diagram_file' path.",
                context=ctx,
            )

        if inline is not None:
            if not isinstance(inline, str):
                raise config_wrong_type("diagram", "string", type(inline).__name__, path_str)
            return inline

        if diagram_file is None:
            raise config_missing_field("diagram", path_str)
        if not isinstance(diagram_file, str):
            raise config_wrong_type("diagram_file", "string", type(diagram_file).__name__, path_str)

        # Relative paths resolve against the config file's directory.
        p = Path(diagram_file)
        if not p.is_absolute():
            p = config_path.parent / p
        try:
            return p.read_text(encoding="utf-8")
        except OSError as e:
            ctx = ErrorContext().add("config_path", path_str).add("diagram_file", str(p))
            raise ConfigError(
                f"Cannot read diagram file: {p}",
                why=str(e),
                fix="Check the 'diagram_file' path; relative paths start at the config file.",
                context=ctx,
            ) from None

    @staticmethod
    def _load_runtime(data: Any, path_str: str) -> RuntimeConfig:
        if data is None:
            return RuntimeConfig()
        if not isinstance(data, dict):
            raise config_wrong_type("runtime", "mapping", type(data).__name__, path_str)

        defaults = RuntimeConfig()
        timeout = data.get("shutdown_timeout", defaults.shutdown_timeout)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise config_wrong_type(
                "runtime.shutdown_timeout", "positive number", repr(timeout), path_str
            )

        restart = data.get("restart", defaults.restart)
        if restart not in RESTART_POLICIES:
            ctx = ErrorContext().add("config_path", path_str).add("restart", restart)
            raise ConfigError(
                f"Unknown restart policy: {restart!r}",
                why="Instances are supervised with a fixed set of policies.",
                fix=f"Use one of: {', '.join(RESTART_POLICIES)}",
                context=ctx,
            )

        max_restarts = data.get("max_restarts", defaults.max_restarts)
        if isinstance(max_restarts, bool) or not isinstance(max_restarts, int) or max_restarts < 0:
            raise config_wrong_type(
                "runtime.max_restarts", "non-negative integer", repr(max_restarts), path_str
            )

        max_seconds = data.get("max_seconds", defaults.max_seconds)
        if isinstance(max_seconds, bool) or not isinstance(max_seconds, (int, float)) or max_seconds <= 0:
            raise config_wrong_type(
                "runtime.max_seconds", "positive number", repr(max_seconds), path_str
            )

        return RuntimeConfig(
            shutdown_timeout=float(timeout),
            restart=restart,
            max_restarts=max_restarts,
            max_seconds=float(max_seconds),
        )

    @staticmethod
    def load_fsm_config(path: str | Path) -> FSMConfig:
        config_path = Path(path)
        path_str = str(config_path)
        data = ConfigLoader.load_yaml(config_path)

        name = data.get("name")
        if not name or not isinstance(name, str):
            raise config_missing_field("name", path_str)

        syntax = data.get("syntax", "plantuml")
        if not isinstance(syntax, str):
            raise config_wrong_type("syntax", "string", type(syntax).__name__, path_str)

        callbacks = data.get("callbacks")
        if callbacks is not None and not isinstance(callbacks, str):
            raise config_wrong_type("callbacks", "string", type(callbacks).__name__, path_str)

        return FSMConfig(
            name=name,
            diagram=ConfigLoader._load_diagram(data, config_path),
            syntax=syntax,
            callbacks=callbacks,
            runtime=ConfigLoader._load_runtime(data.get("runtime"), path_str),
            source=path_str,
        )
