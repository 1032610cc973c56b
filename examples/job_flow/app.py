#!/usr/bin/env python
"""
Job Flow Example

Demonstrates:
- Loading an FSM type from a YAML config and a PlantUML diagram file
- Callbacks loaded from a dotted path
- Subscribing to lifecycle notifications
- Rejected events leaving the instance untouched
- Terminal transitions stopping the instance

Run: python app.py
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Add the example directory to path so the config can find the hooks module
sys.path.insert(0, str(Path(__file__).parent))

from fsmflow.config_loader import ConfigLoader
from fsmflow.definition import FSMTypeRegistry
from fsmflow.event_bus import REJECTED, TRANSITIONED


async def main():
    config_path = Path(__file__).parent / "config.yaml"
    config = ConfigLoader.load_fsm_config(config_path)

    registry = FSMTypeRegistry()
    config.build(registry)
    manager = config.manager(registry)

    # --- Observability ---
    async def on_transitioned(data):
        print(f"  [{data['name']}] {data['from_state']} -> {data['to_state']}")

    async def on_rejected(data):
        print(f"  [{data['name']}] {data['error'].what}")

    manager.bus.subscribe(TRANSITIONED, on_transitioned, priority=5)
    manager.bus.subscribe(REJECTED, on_rejected, priority=5)

    # --- Demo ---
    print("\n--- Running job workflow demo ---\n")
    await manager.start(config.name, "job-1", {})
    print("Current state:", (await manager.state("job-1")).current)

    for event, payload in [
        ("start_job", "report-42"),
        ("complete", None),
        ("reset", None),
        ("start_job", "report-43"),
        ("fail", "disk full"),
        ("retry", None),
        ("cancel", None),
        ("archive", None),  # rejected: not valid while idle
    ]:
        print(f"\nSending: {event}")
        manager.send("job-1", event, payload)
        rs = await manager.state("job-1")

    print(f"\nCurrent state: {rs.current}")
    print(f"History: {' <- '.join(rs.history)}")

    manager.send("job-1", "start_job", "report-44")
    manager.send("job-1", "complete")
    manager.send("job-1", "archive")
    actor = await manager.wait("job-1")
    print(f"\nStopped: {actor.stop_reason}")


if __name__ == "__main__":
    asyncio.run(main())
