from __future__ import annotations

import argparse
import asyncio
import os
import sys

from .config_loader import ConfigLoader, FSMConfig
from .definition import FSMTypeRegistry
from .errors import FSMFlowError, NotFoundError
from .explain import explain
from .visualize import FORMATS, visualize


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="fsmflow", description="FSMFlow CLI")
    sub = p.add_subparsers(dest="command", required=True)

    chk = sub.add_parser("check", help="Compile the diagram and report warnings.")
    chk.add_argument("--config", type=str, default=None, help="Path to config YAML (or use FSMFLOW_CONFIG).")
    chk.add_argument("--strict", action="store_true", help="Exit non-zero if there are warnings.")

    vis = sub.add_parser("visualize", help="Print the compiled diagram.")
    vis.add_argument("--config", type=str, default=None, help="Path to config YAML (or use FSMFLOW_CONFIG).")
    vis.add_argument("--format", choices=FORMATS, default="mermaid", help="Output syntax.")

    run = sub.add_parser("run", help="Start one instance and feed it events.")
    run.add_argument("--config", type=str, default=None, help="Path to config YAML (or use FSMFLOW_CONFIG).")
    run.add_argument("--name", type=str, default="cli", help="Instance name.")
    run.add_argument("--payload", type=str, default=None, help="Initial state payload.")
    run.add_argument("events", nargs="*", help="Events to send, in order. Use event=payload to attach a payload.")

    return p


def _resolve_config_path(cli_value: str | None) -> str:
    path = cli_value or os.getenv("FSMFLOW_CONFIG")
    if not path:
        raise SystemExit("No config provided. Use --config or set FSMFLOW_CONFIG.")
    return path


def _load(args) -> FSMConfig:
    return ConfigLoader.load_fsm_config(_resolve_config_path(args.config))


def cmd_check(args) -> int:
    cfg = _load(args)
    fsm_type = cfg.build(FSMTypeRegistry())
    exp = explain(fsm_type.table)
    print(exp.format())
    return 1 if args.strict and exp.warnings else 0


def cmd_visualize(args) -> int:
    cfg = _load(args)
    fsm_type = cfg.build(FSMTypeRegistry())
    print(visualize(fsm_type.table, format=args.format))
    return 0


async def cmd_run(args) -> int:
    cfg = _load(args)
    registry = FSMTypeRegistry()
    fsm_type = cfg.build(registry)
    manager = cfg.manager(registry)

    actor = await manager.start(fsm_type, args.name, args.payload)
    for raw in args.events:
        event, _, payload = raw.partition("=")
        manager.send(args.name, event, payload or None)
        # Round-trip a query so each event is applied before the next is sent.
        try:
            await manager.state(args.name)
        except NotFoundError:
            break

    if manager.is_alive(args.name):
        rs = await manager.state(args.name)
        print(f"state: {rs.current}")
        print(f"history: {', '.join(rs.history) or '(empty)'}")
        await manager.shutdown()
    else:
        await asyncio.wait({actor.task})
        print(f"state: [*] ({actor.stop_reason})")
    return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    try:
        if args.command == "check":
            code = cmd_check(args)
        elif args.command == "visualize":
            code = cmd_visualize(args)
        elif args.command == "run":
            code = asyncio.run(cmd_run(args))
        else:
            raise SystemExit(2)
    except FSMFlowError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(1) from None

    raise SystemExit(code)


if __name__ == "__main__":
    main()
