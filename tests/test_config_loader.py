"""Tests for YAML FSM configs."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from fixture_callbacks import RecordingHooks
from fsmflow import CompileError, ConfigError, FSMTypeRegistry, ImportError_, TERMINAL
from fsmflow.config_loader import ConfigLoader, RuntimeConfig


def _write(tmp_path: Path, body: str, name: str = "config.yaml") -> Path:
    p = tmp_path / name
    p.write_text(textwrap.dedent(body), encoding="utf-8")
    return p


def test_inline_diagram_config(example_config_yaml: Path):
    config = ConfigLoader.load_fsm_config(example_config_yaml)
    assert config.name == "p1"
    assert config.syntax == "plantuml"
    assert config.callbacks is None
    assert config.runtime == RuntimeConfig(shutdown_timeout=2.5, restart="temporary", max_restarts=1)
    assert config.source == str(example_config_yaml)


def test_build_registers_type(example_config_yaml: Path):
    registry = FSMTypeRegistry()
    fsm = ConfigLoader.load_fsm_config(example_config_yaml).build(registry)
    assert registry.get("p1") is fsm
    assert fsm.table.initial_state == "s1"
    assert fsm.table.allowed("s2", TERMINAL)


def test_manager_uses_runtime_settings(example_config_yaml: Path):
    registry = FSMTypeRegistry()
    manager = ConfigLoader.load_fsm_config(example_config_yaml).manager(registry)
    assert manager.registry is registry
    assert manager.shutdown_timeout == 2.5
    assert manager.restart == "temporary"
    assert manager.max_restarts == 1


def test_diagram_file_and_callbacks(mermaid_config_yaml: Path):
    """diagram_file resolves next to the config; callbacks load from a dotted path."""
    config = ConfigLoader.load_fsm_config(mermaid_config_yaml)
    assert config.syntax == "mermaid"
    assert config.runtime == RuntimeConfig()

    fsm = config.build(FSMTypeRegistry())
    assert fsm.table.entry_events == ("start",)
    assert isinstance(fsm.callbacks.on_transition.__self__, RecordingHooks)


async def test_config_built_type_runs(mermaid_config_yaml: Path):
    registry = FSMTypeRegistry()
    config = ConfigLoader.load_fsm_config(mermaid_config_yaml)
    config.build(registry)
    manager = config.manager(registry)

    await manager.start("p2", "order-1", "p0")
    manager.send("order-1", "to_s3")
    assert (await manager.state("order-1")).current == "s3"
    await manager.shutdown()


def test_missing_name(tmp_path: Path):
    p = _write(tmp_path, "diagram: '[*] --> a : go'\n")
    with pytest.raises(ConfigError, match="'name'"):
        ConfigLoader.load_fsm_config(p)


def test_missing_diagram(tmp_path: Path):
    p = _write(tmp_path, "name: x\n")
    with pytest.raises(ConfigError, match="'diagram'"):
        ConfigLoader.load_fsm_config(p)


def test_both_diagram_sources_rejected(tmp_path: Path):
    p = _write(
        tmp_path,
        """\
        name: x
        diagram: "[*] --> a : go"
        diagram_file: x.puml
        """,
    )
    with pytest.raises(ConfigError, match="both"):
        ConfigLoader.load_fsm_config(p)


def test_unreadable_diagram_file(tmp_path: Path):
    p = _write(tmp_path, "name: x\ndiagram_file: missing.puml\n")
    with pytest.raises(ConfigError, match="Cannot read diagram file"):
        ConfigLoader.load_fsm_config(p)


def test_root_must_be_mapping(tmp_path: Path):
    p = _write(tmp_path, "- just\n- a list\n")
    with pytest.raises(ConfigError, match="wrong type"):
        ConfigLoader.load_fsm_config(p)


def test_callbacks_must_be_string(tmp_path: Path):
    p = _write(
        tmp_path,
        """\
        name: x
        diagram: "[*] --> a : go"
        callbacks: [1, 2]
        """,
    )
    with pytest.raises(ConfigError, match="'callbacks' has wrong type"):
        ConfigLoader.load_fsm_config(p)


@pytest.mark.parametrize(
    "runtime, match",
    [
        ("shutdown_timeout: 0", "shutdown_timeout"),
        ("shutdown_timeout: soon", "shutdown_timeout"),
        ("restart: permanent", "Unknown restart policy"),
        ("max_restarts: -1", "max_restarts"),
        ("max_restarts: true", "max_restarts"),
        ("max_seconds: 0", "max_seconds"),
    ],
)
def test_invalid_runtime(tmp_path: Path, runtime: str, match: str):
    p = _write(tmp_path, f"name: x\ndiagram: '[*] --> a : go'\nruntime:\n  {runtime}\n")
    with pytest.raises(ConfigError, match=match):
        ConfigLoader.load_fsm_config(p)


def test_bad_diagram_fails_at_build(tmp_path: Path):
    """Loading only reads the file; compiling happens in build()."""
    p = _write(tmp_path, "name: x\ndiagram: 'a --> b'\n")
    config = ConfigLoader.load_fsm_config(p)
    with pytest.raises(CompileError):
        config.build(FSMTypeRegistry())


def test_bad_callbacks_path_fails_at_build(tmp_path: Path):
    p = _write(
        tmp_path,
        """\
        name: x
        diagram: "[*] --> a : go"
        callbacks: "fixture_callbacks:NotCallbacks"
        """,
    )
    config = ConfigLoader.load_fsm_config(p)
    with pytest.raises(ImportError_, match="No FSM callbacks found"):
        config.build(FSMTypeRegistry())


def test_restart_window_reaches_manager(tmp_path: Path):
    p = _write(tmp_path, "name: x\ndiagram: '[*] --> a : go'\nruntime:\n  max_seconds: 30\n")
    config = ConfigLoader.load_fsm_config(p)
    assert config.runtime.max_seconds == 30.0
    assert config.manager(FSMTypeRegistry()).max_seconds == 30.0
