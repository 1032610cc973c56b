"""Callbacks for the job flow example."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fsmflow import TERMINAL, Failure, Success

MAX_ATTEMPTS = 3

_TARGETS = {
    ("idle", "start_job"): "processing",
    ("processing", "complete"): "complete",
    ("processing", "fail"): "failed",
    ("processing", "cancel"): "idle",
    ("failed", "retry"): "processing",
    ("complete", "reset"): "idle",
    ("complete", "archive"): TERMINAL,
    ("failed", "abandon"): TERMINAL,
}


class JobHooks:
    """Counts attempts in the payload and refuses retries past MAX_ATTEMPTS."""

    def __init__(self) -> None:
        self.finished = []

    def on_transition(
        self, state: str, event: str, event_payload: Any, state_payload: Optional[Dict[str, Any]]
    ):
        target = _TARGETS.get((state, event))
        if target is None:
            return Failure(f"{event} is not valid while {state}")

        job = dict(state_payload or {})
        if event == "start_job":
            job["attempts"] = 1
            if event_payload:
                job["job_id"] = event_payload
        elif event == "retry":
            if job.get("attempts", 0) >= MAX_ATTEMPTS:
                return Failure("too many attempts")
            job["attempts"] = job.get("attempts", 0) + 1
        elif event == "fail":
            job["last_error"] = event_payload
        return Success(target, job)

    def on_failure(self, event: str, event_payload: Any, run_state) -> None:
        print(f"  rejected {event!r} in {run_state.current}")

    def on_terminate(self, run_state) -> None:
        self.finished.append(run_state)
        print(f"  finished in {run_state.current} with {run_state.payload}")
