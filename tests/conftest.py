from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from fixture_callbacks import P1_DIAGRAM, RecordingHooks
from fsmflow.definition import FSMType, FSMTypeRegistry
from fsmflow.manager import InstanceManager


@pytest.fixture
def hooks() -> RecordingHooks:
    return RecordingHooks()


@pytest.fixture
def p1(hooks: RecordingHooks) -> FSMType:
    return FSMType.from_diagram("p1", P1_DIAGRAM, callbacks=hooks)


@pytest.fixture
def registry(p1: FSMType) -> FSMTypeRegistry:
    reg = FSMTypeRegistry()
    reg.register(p1)
    return reg


@pytest.fixture
async def manager(registry: FSMTypeRegistry):
    m = InstanceManager(registry=registry, shutdown_timeout=1.0)
    yield m
    await m.shutdown()


@pytest.fixture
def example_config_yaml(tmp_path: Path) -> Path:
    p = tmp_path / "config.yaml"
    p.write_text(
        textwrap.dedent(
            """\
            name: p1
            syntax: plantuml
            diagram: |
              [*] --> s1 : to_s1
              s1 --> s2 : to_s2
              s1 --> s3 : to_s3
              s2 --> [*] : ok
              s3 --> [*] : ok
            runtime:
              shutdown_timeout: 2.5
              restart: temporary
              max_restarts: 1
            """
        ),
        encoding="utf-8",
    )
    return p


@pytest.fixture
def mermaid_config_yaml(tmp_path: Path) -> Path:
    (tmp_path / "p2.mmd").write_text(
        textwrap.dedent(
            """\
            stateDiagram-v2
            [*] --> |start| s1
            s1 --> |to_s2| s2
            s1 --> |to_s3| s3
            s2 --> |ok| [*]
            s3 --> |ok| [*]
            """
        ),
        encoding="utf-8",
    )
    p = tmp_path / "p2.yaml"
    p.write_text(
        textwrap.dedent(
            """\
            name: p2
            syntax: mermaid
            diagram_file: p2.mmd
            callbacks: "fixture_callbacks:RecordingHooks"
            """
        ),
        encoding="utf-8",
    )
    return p
