"""Tests for the per-instance actor protocol."""

from __future__ import annotations

import asyncio
import random

import pytest

from fixture_callbacks import P1_DIAGRAM, AsyncHooks
from fsmflow import TERMINAL, Callbacks, Failure, FSMType, NotFoundError, Success
from fsmflow.actor import FSMActor, Lifecycle, RunState
from fsmflow.event_bus import REJECTED, TERMINATED, TRANSITIONED, LifecycleBus


async def _stop(actor: FSMActor) -> None:
    if actor.alive:
        actor.request_stop()
    await asyncio.wait({actor.task})


async def test_starts_in_initial_state(p1):
    actor = FSMActor(p1, "a", payload="p0")
    actor.start()
    assert await actor.query("state") == RunState(current="s1", payload="p0", history=())
    assert actor.status is Lifecycle.RUNNING
    await _stop(actor)


async def test_accepted_transition_commits(p1, hooks):
    """State, payload and history update together."""
    actor = FSMActor(p1, "a", payload="p0")
    actor.start()

    actor.send("to_s2", "p1")
    rs = await actor.query("state")
    assert rs == RunState(current="s2", payload="p1", history=("s1",))
    assert hooks.transitions == [("s1", "to_s2", "p1", "p0")]
    assert hooks.failures == []
    await _stop(actor)


async def test_terminal_transition_stops_and_terminates_once(p1, hooks):
    actor = FSMActor(p1, "a", payload="p0")
    actor.start()

    actor.send("to_s2")
    actor.send("ok")
    await asyncio.wait({actor.task})

    assert actor.status is Lifecycle.STOPPED
    assert actor.stop_reason == "terminal"
    assert len(hooks.terminated) == 1
    assert hooks.terminated[0].current == "s2"
    assert hooks.terminated[0].history == ("s1",)


async def test_undeclared_event_is_rejected(p1, hooks):
    """'ok' from s1 leaves the run state untouched and calls on_failure once."""
    actor = FSMActor(p1, "a", payload="p0")
    actor.start()
    before = await actor.query("state")

    actor.send("ok", "ev")
    after = await actor.query("state")

    assert after == before
    assert len(hooks.failures) == 1
    event, event_payload, run_state = hooks.failures[0]
    assert (event, event_payload) == ("ok", "ev")
    assert run_state == before
    await _stop(actor)


async def test_explicit_failure_is_rejected(p1, hooks):
    actor = FSMActor(p1, "a")
    actor.start()
    actor.send("unknown")
    assert (await actor.query("state")).current == "s1"
    assert [f[0] for f in hooks.failures] == ["unknown"]
    await _stop(actor)


async def test_undeclared_target_is_rejected():
    """The callback is not trusted: targets are re-checked against the table."""
    failures = []
    fsm = FSMType.from_diagram(
        "liar",
        P1_DIAGRAM,
        callbacks=Callbacks(
            on_transition=lambda s, e, ep, sp: Success("s3" if s == "s2" else "s2", sp),
            on_failure=lambda e, ep, rs: failures.append(e),
        ),
    )
    actor = FSMActor(fsm, "a")
    actor.start()

    actor.send("first")
    actor.send("second")
    rs = await actor.query("state")
    assert rs.current == "s2"
    assert rs.history == ("s1",)
    assert failures == ["second"]
    await _stop(actor)


async def test_callback_fault_is_contained():
    """A raising on_transition changes nothing and calls on_failure exactly once."""
    hooks = AsyncHooks()
    fsm = FSMType.from_diagram("async", P1_DIAGRAM, callbacks=hooks)
    actor = FSMActor(fsm, "a", payload={"n": 1})
    actor.start()
    actor.send("to_s2")
    before = await actor.query("state")

    actor.send("boom")
    after = await actor.query("state")

    assert after == before
    assert after.payload == {"n": 1}
    assert len(hooks.failures) == 1
    assert hooks.failures[0] == ("boom", before)
    assert actor.alive
    await _stop(actor)


async def test_non_outcome_return_is_rejected():
    fsm = FSMType.from_diagram(
        "odd", P1_DIAGRAM, callbacks=Callbacks(on_transition=lambda *a: ("s2", None))
    )
    actor = FSMActor(fsm, "a")
    actor.start()
    actor.send("to_s2")
    assert (await actor.query("state")).current == "s1"
    await _stop(actor)


async def test_faulty_on_failure_and_on_terminate_are_swallowed():
    def bad(*_args):
        raise RuntimeError("hook fault")

    fsm = FSMType.from_diagram(
        "bad_hooks",
        P1_DIAGRAM,
        callbacks=Callbacks(on_failure=bad, on_terminate=bad),
    )
    actor = FSMActor(fsm, "a")
    actor.start()
    actor.send("ok")
    assert (await actor.query("state")).current == "s1"
    actor.send("to_s2")
    actor.send("ok")
    await asyncio.wait({actor.task})
    assert actor.task.exception() is None
    assert actor.stop_reason == "terminal"


async def test_queries_delegate_to_table(p1):
    actor = FSMActor(p1, "a")
    actor.start()
    assert await actor.query("allowed", "s2") is True
    assert await actor.query("allowed", TERMINAL) is False
    assert await actor.query("responds", "to_s3") is True
    assert await actor.query("responds", "ok") is False

    actor.send("to_s3")
    assert await actor.query("allowed", TERMINAL) is True
    assert await actor.query("responds", "ok") is True
    await _stop(actor)


async def test_unknown_query_kind(p1):
    actor = FSMActor(p1, "a")
    with pytest.raises(ValueError, match="query kind"):
        await actor.query("history")


async def test_failing_query_leaves_instance_untouched(p1):
    """A query that cannot be answered fails the caller, not the instance."""
    actor = FSMActor(p1, "a", payload="p0")
    actor.start()
    actor.send("to_s2")
    before = await actor.query("state")

    with pytest.raises(TypeError):
        await asyncio.wait_for(actor.query("responds", ["ok"]), timeout=5)

    assert actor.alive
    assert actor.crash is None
    assert await actor.query("state") == before
    assert await actor.query("responds", "ok") is True
    await _stop(actor)


async def test_stopped_actor_refuses_messages(p1, hooks):
    actor = FSMActor(p1, "a")
    actor.start()
    actor.request_stop()
    await asyncio.wait({actor.task})

    assert actor.stop_reason == "stop"
    assert len(hooks.terminated) == 1
    with pytest.raises(NotFoundError):
        actor.send("to_s2")
    with pytest.raises(NotFoundError):
        await actor.query("state")


async def test_queued_query_fails_after_terminal_transition(p1):
    """Requests queued behind the terminal transition are answered with NotFoundError."""
    actor = FSMActor(p1, "a")
    actor.start()
    actor.send("to_s2")
    actor.send("ok")
    with pytest.raises(NotFoundError):
        await actor.query("state")


async def test_cancelled_actor_still_terminates(p1, hooks):
    actor = FSMActor(p1, "a")
    task = actor.start()
    await actor.query("state")
    task.cancel()
    await asyncio.wait({task})
    assert actor.stop_reason == "killed"
    assert len(hooks.terminated) == 1


async def test_memory_error_is_fatal():
    def exhaust(*_args):
        raise MemoryError("simulated exhaustion")

    terminated = []
    fsm = FSMType.from_diagram(
        "fatal",
        P1_DIAGRAM,
        callbacks=Callbacks(on_transition=exhaust, on_terminate=terminated.append),
    )
    actor = FSMActor(fsm, "a")
    actor.start()
    actor.send("to_s2")
    await asyncio.wait({actor.task})

    assert isinstance(actor.task.exception(), MemoryError)
    assert actor.stop_reason == "crash"
    assert len(terminated) == 1


async def test_lifecycle_notifications(p1):
    bus = LifecycleBus()
    seen = []

    async def record(data):
        seen.append(data)

    for topic in (TRANSITIONED, REJECTED, TERMINATED):
        bus.subscribe(topic, record)

    actor = FSMActor(p1, "a", bus=bus)
    actor.start()
    actor.send("ok")
    actor.send("to_s2")
    actor.send("ok")
    await asyncio.wait({actor.task})

    assert seen[0]["event"] == "ok"
    assert seen[0]["error"].state == "s1"
    assert seen[1] == {"name": "a", "event": "to_s2", "from_state": "s1", "to_state": "s2"}
    assert seen[2]["reason"] == "terminal"
    assert seen[2]["run_state"].current == "s2"


async def test_random_sequences_only_follow_declared_edges():
    """Whatever the callback answers, the state moves along one declared edge or not at all."""
    rng = random.Random(1234)
    states = ["s1", "s2", "s3", "nowhere", TERMINAL]

    def chaotic(state, event, event_payload, state_payload):
        roll = rng.random()
        if roll < 0.15:
            raise RuntimeError("chaos")
        if roll < 0.3:
            return Failure("chaos")
        return Success(rng.choice(states), event_payload)

    fsm = FSMType.from_diagram("chaos", P1_DIAGRAM, callbacks=Callbacks(on_transition=chaotic))
    table = fsm.table

    for run in range(20):
        actor = FSMActor(fsm, f"chaos-{run}", payload=0)
        actor.start()
        for step in range(1, 30):
            before = await actor.query("state")
            actor.send("e", step)
            try:
                after = await actor.query("state")
            except NotFoundError:
                assert table.allowed(before.current, TERMINAL)
                break
            if after == before:
                continue
            assert table.allowed(before.current, after.current)
            assert after.history == (before.current,) + before.history
            assert after.payload == step
        await _stop(actor)
