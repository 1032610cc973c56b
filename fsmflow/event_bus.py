from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, DefaultDict, List, Optional

Handler = Callable[[Any], Awaitable[None]]
FilterFn = Callable[[str, Any], bool]

# Topics published by instances and the manager.
STARTED = "fsm.started"
TRANSITIONED = "fsm.transitioned"
REJECTED = "fsm.rejected"
TERMINATED = "fsm.terminated"
RESTARTED = "fsm.restarted"


@dataclass(frozen=True)
class SubscriptionHandle:
    """Opaque handle returned by subscribe(), used for unsubscribe()."""
    topic: str
    subscription_id: str


@dataclass(frozen=True)
class Subscription:
    subscription_id: str
    priority: int
    handler: Handler
    filter_fn: Optional[FilterFn] = None


class LifecycleBus:
    """Async notification bus for instance lifecycle topics.

    Handlers run one at a time in ascending priority order. A failing handler
    is logged and skipped; it never reaches the publisher, so observers cannot
    disturb the instance that published.
    """

    def __init__(self, logger: Any = None) -> None:
        self._topics: DefaultDict[str, List[Subscription]] = defaultdict(list)
        self._logger = logger

    def subscribe(
        self,
        topic: str,
        handler: Handler,
        priority: int = 3,
        filter_fn: Optional[FilterFn] = None,
    ) -> SubscriptionHandle:
        if not (1 <= priority <= 5):
            raise ValueError("priority must be an integer between 1 and 5")

        sub = Subscription(
            subscription_id=str(uuid.uuid4()),
            priority=priority,
            handler=handler,
            filter_fn=filter_fn,
        )
        self._topics[topic].append(sub)
        return SubscriptionHandle(topic=topic, subscription_id=sub.subscription_id)

    def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        """Remove a subscription; returns False if it was already gone."""
        subs = self._topics.get(handle.topic)
        if not subs:
            return False

        before = len(subs)
        subs[:] = [s for s in subs if s.subscription_id != handle.subscription_id]
        if not subs:
            self._topics.pop(handle.topic, None)
        return len(subs) != before

    async def publish(self, topic: str, data: Any = None) -> None:
        subs = self._topics.get(topic)
        if not subs:
            return

        for s in sorted(subs, key=lambda s: s.priority):
            try:
                if s.filter_fn is not None and not s.filter_fn(topic, data):
                    continue
                await s.handler(data)
            except Exception as e:
                if self._logger:
                    self._logger.error("Error handling %s: %s", topic, e)
