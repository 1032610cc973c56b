from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Dict, List, Optional, Set, Union

from .actor import FSMActor, RunState
from .definition import DEFAULT_REGISTRY, FSMType, FSMTypeRegistry
from .errors import instance_already_started, instance_not_found
from .event_bus import RESTARTED, LifecycleBus
from .logger import get_logger

RESTART_POLICIES = ("transient", "temporary")


@dataclass
class InstanceManager:
    """Starts, addresses and supervises named FSM instances.

    Restart policy ``transient`` restarts an instance with a fresh run state
    when its task dies abnormally. At most ``max_restarts`` restarts are
    allowed within any ``max_seconds`` window; one more crash inside the
    window and the instance stays down. Normal stops (terminal transition,
    ``stop()``) are never restarted. ``temporary`` never restarts.
    """

    registry: FSMTypeRegistry = DEFAULT_REGISTRY
    shutdown_timeout: float = 5.0
    restart: str = "transient"
    max_restarts: int = 3
    max_seconds: float = 5.0
    logger: Any = field(default_factory=lambda: get_logger("fsmflow"))
    bus: LifecycleBus = field(init=False)
    instances: Dict[Any, FSMActor] = field(init=False, default_factory=dict)
    _claim_lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)
    _restarts: Dict[Any, List[float]] = field(init=False, default_factory=dict)
    _notifications: Set[asyncio.Task] = field(init=False, default_factory=set)

    def __post_init__(self) -> None:
        if self.restart not in RESTART_POLICIES:
            raise ValueError(f"restart must be one of {', '.join(RESTART_POLICIES)}")
        if self.shutdown_timeout <= 0:
            raise ValueError("shutdown_timeout must be > 0")
        if self.max_restarts < 0:
            raise ValueError("max_restarts must be >= 0")
        if self.max_seconds <= 0:
            raise ValueError("max_seconds must be > 0")
        self.bus = LifecycleBus(logger=self.logger)

    async def start(
        self, fsm_type: Union[FSMType, str], name: Any, payload: Any = None
    ) -> FSMActor:
        """Start an instance under a unique name.

        Raises:
            StartError: If a running instance already holds ``name``.
            ConfigError: If ``fsm_type`` names an unregistered type.
        """
        if isinstance(fsm_type, str):
            fsm_type = self.registry.get(fsm_type)

        async with self._claim_lock:
            running = self.instances.get(name)
            if running is not None and running.alive:
                raise instance_already_started(name, running.fsm_type.name)
            self._restarts[name] = []
            return self._spawn(fsm_type, name, payload)

    def _spawn(self, fsm_type: FSMType, name: Any, payload: Any) -> FSMActor:
        actor = FSMActor(fsm_type, name, payload, logger=self.logger, bus=self.bus)
        self.instances[name] = actor
        actor.start().add_done_callback(partial(self._on_exit, actor))
        return actor

    def _on_exit(self, actor: FSMActor, task: asyncio.Task) -> None:
        name = actor.name
        if self.instances.get(name) is actor:
            del self.instances[name]

        if task.cancelled() or task.exception() is None:
            return

        if self.restart != "transient":
            self.logger.error("%s crashed, not restarting (policy %s)", name, self.restart)
            return
        if name in self.instances:
            # Name was claimed again while the crashed task was finishing.
            return

        loop = asyncio.get_running_loop()
        now = loop.time()
        recent = [t for t in self._restarts.get(name, []) if now - t < self.max_seconds]
        if len(recent) >= self.max_restarts:
            self.logger.error(
                "%s crashed %d times within %.1fs, giving up",
                name, len(recent) + 1, self.max_seconds,
            )
            self._restarts[name] = recent
            return

        recent.append(now)
        self._restarts[name] = recent
        attempt = len(recent)
        self.logger.warning("%s crashed, restarting (%d/%d)", name, attempt, self.max_restarts)
        self._spawn(actor.fsm_type, name, actor.initial_payload)
        notification = loop.create_task(
            self.bus.publish(
                RESTARTED,
                {"name": name, "attempt": attempt, "error": task.exception()},
            )
        )
        self._notifications.add(notification)
        notification.add_done_callback(self._notifications.discard)

    def _lookup(self, name: Any) -> FSMActor:
        actor = self.instances.get(name)
        if actor is None or not actor.alive:
            raise instance_not_found(name)
        return actor

    def get(self, name: Any) -> Optional[FSMActor]:
        return self.instances.get(name)

    def is_alive(self, name: Any) -> bool:
        actor = self.instances.get(name)
        return actor is not None and actor.alive

    def names(self) -> List[Any]:
        return [name for name, actor in self.instances.items() if actor.alive]

    def send(self, name: Any, event: Any, payload: Any = None) -> None:
        """Fire-and-forget transition request.

        Raises:
            NotFoundError: If no running instance holds ``name``.
        """
        self._lookup(name).send(event, payload)

    async def query(self, name: Any, kind: str, arg: Any = None) -> Any:
        return await self._lookup(name).query(kind, arg)

    async def state(self, name: Any) -> RunState:
        return await self.query(name, "state")

    async def allowed(self, name: Any, to_state: Any) -> bool:
        return await self.query(name, "allowed", to_state)

    async def responds(self, name: Any, event: Any) -> bool:
        return await self.query(name, "responds", event)

    async def wait(self, name: Any) -> FSMActor:
        """Wait until the instance's task has exited and return its actor."""
        actor = self.instances.get(name)
        if actor is None or actor.task is None:
            raise instance_not_found(name)
        await asyncio.wait({actor.task})
        return actor

    async def stop(self, name: Any, timeout: Optional[float] = None) -> None:
        """Stop an instance, giving it ``timeout`` seconds to run on_terminate.

        The stop request queues behind messages already in the mailbox. If
        the instance has not exited when the window closes, its task is
        cancelled.
        """
        actor = self._lookup(name)
        actor.request_stop()
        await self._await_exit(actor, self.shutdown_timeout if timeout is None else timeout)

    async def _await_exit(self, actor: FSMActor, timeout: float) -> None:
        task = actor.task
        if task is None:
            return
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            self.logger.warning("%s did not stop within %.1fs, cancelling", actor.name, timeout)
            task.cancel()
            await asyncio.wait({task})

    async def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop every running instance."""
        window = self.shutdown_timeout if timeout is None else timeout
        actors = [a for a in self.instances.values() if a.alive]
        for actor in actors:
            actor.request_stop()
        await asyncio.gather(*(self._await_exit(a, window) for a in actors))
