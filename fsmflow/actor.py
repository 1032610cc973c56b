"""The per-instance FSM actor.

Each instance runs as one asyncio task draining its own mailbox, so requests
to one instance are applied strictly one at a time in arrival order and the
run state is only ever touched from inside that task. A transition either
commits state, payload and history together or leaves all three untouched.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from .callbacks import FATAL_ERRORS, Success, invoke
from .errors import (
    TransitionRejected,
    instance_not_found,
    transition_failed,
    transition_not_allowed,
    transition_raised,
)
from .event_bus import REJECTED, STARTED, TERMINATED, TRANSITIONED, LifecycleBus
from .logger import get_logger, set_instance_name
from .transition import TERMINAL, State

QUERY_KINDS = ("state", "allowed", "responds")


class Lifecycle(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class RunState:
    """Snapshot of an instance: current state, opaque payload, history.

    ``history`` lists previously visited states, most recent first.
    """

    current: State
    payload: Any = None
    history: Tuple[State, ...] = ()


@dataclass(frozen=True)
class _TransitionRequest:
    event: Any
    payload: Any


@dataclass(frozen=True)
class _QueryRequest:
    kind: str
    arg: Any
    reply: "asyncio.Future[Any]"


class _StopRequest:
    pass


_STOP = _StopRequest()


class FSMActor:
    def __init__(
        self,
        fsm_type: Any,
        name: Any,
        payload: Any = None,
        *,
        logger: Any = None,
        bus: Optional[LifecycleBus] = None,
    ) -> None:
        self.fsm_type = fsm_type
        self.name = name
        self.initial_payload = payload
        self.run_state = RunState(current=fsm_type.table.initial_state, payload=payload)
        self.status = Lifecycle.RUNNING
        self.stop_reason: Optional[str] = None
        self.crash: Optional[BaseException] = None
        self.logger = logger or get_logger("fsmflow")
        self.bus = bus
        self._mailbox: "asyncio.Queue[Any]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._terminate_called = False

    @property
    def alive(self) -> bool:
        return self.status is Lifecycle.RUNNING

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def start(self) -> asyncio.Task:
        if self._task is None:
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._run(), name=f"fsm:{self.name}")
        return self._task

    # --- Mailbox API (callable from any coroutine on the loop) ---

    def send(self, event: Any, payload: Any = None) -> None:
        """Enqueue a transition and return without waiting for it."""
        self._post(_TransitionRequest(event, payload))

    async def query(self, kind: str, arg: Any = None) -> Any:
        """Ask the instance a question and wait for the answer.

        Raises:
            ValueError: If ``kind`` is not one of QUERY_KINDS.
            NotFoundError: If the instance stops before answering.
        """
        if kind not in QUERY_KINDS:
            raise ValueError(f"query kind must be one of {', '.join(QUERY_KINDS)}")
        reply = asyncio.get_running_loop().create_future()
        self._post(_QueryRequest(kind, arg, reply))
        return await reply

    def request_stop(self) -> None:
        """Enqueue a stop behind everything already in the mailbox."""
        self._post(_STOP)

    def _post(self, message: Any) -> None:
        if self.status is Lifecycle.STOPPED:
            raise instance_not_found(self.name)
        self._mailbox.put_nowait(message)

    # --- Task body ---

    async def _run(self) -> None:
        set_instance_name(self.name)
        try:
            self.logger.info("%s started in %s", self.name, self.run_state.current)
            await self._publish(
                STARTED,
                {"name": self.name, "fsm_type": self.fsm_type.name, "state": self.run_state.current},
            )
            while self.status is Lifecycle.RUNNING:
                message = await self._mailbox.get()
                if message is _STOP:
                    self._mark_stopped("stop")
                elif isinstance(message, _QueryRequest):
                    self._answer(message)
                else:
                    await self._transition(message.event, message.payload)
        except asyncio.CancelledError:
            self._mark_stopped("killed")
            raise
        except Exception as e:
            self.crash = e
            self._mark_stopped("crash")
            self.logger.exception("%s crashed: %s", self.name, e)
            raise
        finally:
            if self.status is Lifecycle.RUNNING:
                self._mark_stopped("crash")
            self._drain()
            await self._safe_on_terminate()
            await self._publish(
                TERMINATED,
                {"name": self.name, "reason": self.stop_reason, "run_state": self.run_state},
            )

    def _mark_stopped(self, reason: str) -> None:
        if self.status is Lifecycle.STOPPED:
            return
        self.status = Lifecycle.STOPPED
        self.stop_reason = reason

    def _drain(self) -> None:
        while True:
            try:
                message = self._mailbox.get_nowait()
            except asyncio.QueueEmpty:
                return
            if isinstance(message, _QueryRequest):
                if not message.reply.done():
                    message.reply.set_exception(instance_not_found(self.name))
            elif isinstance(message, _TransitionRequest):
                self.logger.debug("%s dropped %r: instance stopped", self.name, message.event)

    def _answer(self, request: _QueryRequest) -> None:
        if request.reply.done():
            return
        table = self.fsm_type.table
        current = self.run_state.current
        try:
            if request.kind == "state":
                result: Any = self.run_state
            elif request.kind == "allowed":
                result = table.allowed(current, request.arg)
            else:
                result = table.responds_to(current, request.arg)
        except Exception as e:
            # A bad query argument fails the caller, never the instance.
            self.logger.warning("%s %s query failed: %r", self.name, request.kind, e)
            request.reply.set_exception(e)
            return
        request.reply.set_result(result)

    async def _transition(self, event: Any, event_payload: Any) -> None:
        before = self.run_state
        outcome = await self._safe_on_transition(
            before.current, event, event_payload, before.payload
        )

        rejection: Optional[TransitionRejected] = None
        if isinstance(outcome, TransitionRejected):
            rejection = outcome
        elif not isinstance(outcome, Success):
            reason = getattr(outcome, "reason", outcome)
            rejection = transition_failed(event, before.current, reason)
        elif not self.fsm_type.table.allowed(before.current, outcome.state):
            rejection = transition_not_allowed(event, before.current, outcome.state)

        if rejection is not None:
            self.logger.warning("%s transition failed: %s", self.name, rejection.what)
            await self._safe_on_failure(event, event_payload, before)
            await self._publish(
                REJECTED,
                {"name": self.name, "event": event, "state": before.current, "error": rejection},
            )
            return

        if outcome.state is TERMINAL:
            self.logger.info("%s reached the terminal state on %r", self.name, event)
            self._mark_stopped("terminal")
            return

        self.run_state = RunState(
            current=outcome.state,
            payload=outcome.payload,
            history=(before.current,) + before.history,
        )
        self.logger.info("%s transitioned to %s", self.name, outcome.state)
        await self._publish(
            TRANSITIONED,
            {
                "name": self.name,
                "event": event,
                "from_state": before.current,
                "to_state": outcome.state,
            },
        )

    # --- Fault-isolated hooks ---

    async def _safe_on_transition(
        self, state: State, event: Any, event_payload: Any, state_payload: Any
    ) -> Any:
        try:
            return await invoke(
                self.fsm_type.callbacks.on_transition, state, event, event_payload, state_payload
            )
        except FATAL_ERRORS:
            raise
        except Exception as e:
            self.logger.warning("%s on_transition raised: %r", self.name, e)
            return transition_raised(event, state, e)

    async def _safe_on_failure(self, event: Any, event_payload: Any, run_state: RunState) -> None:
        try:
            await invoke(self.fsm_type.callbacks.on_failure, event, event_payload, run_state)
        except FATAL_ERRORS:
            raise
        except Exception as e:
            self.logger.warning("%s on_failure raised: %r", self.name, e)

    async def _safe_on_terminate(self) -> None:
        if self._terminate_called:
            return
        self._terminate_called = True
        try:
            await invoke(self.fsm_type.callbacks.on_terminate, self.run_state)
        except Exception as e:
            self.logger.warning("%s on_terminate raised: %r", self.name, e)

    async def _publish(self, topic: str, data: Any) -> None:
        if self.bus is not None:
            await self.bus.publish(topic, data)
