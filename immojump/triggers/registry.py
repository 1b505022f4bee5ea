"""
Registry of configured webhook trigger instances.

Each instance owns its configuration, its persisted state and the sink
that receives emitted events (the host's workflow entry point). Deliveries
to the same instance are filtered one at a time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from immojump.triggers.filter import FilterResult, TriggerConfig, WebhookEventFilter
from immojump.triggers.subscription import TriggerState

logger = logging.getLogger(__name__)

EventSink = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass
class TriggerInstance:
    """One configured trigger."""

    trigger_id: str
    config: TriggerConfig
    state: TriggerState = field(default_factory=TriggerState)
    sink: EventSink | None = None
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def deliver(self, body: dict[str, Any]) -> FilterResult:
        """Filter one delivery against this trigger's config and state."""
        async with self._lock:
            return WebhookEventFilter(self.config, self.state.window).evaluate(body)


class TriggerRegistry:
    """In-memory lookup of trigger instances by id."""

    def __init__(self) -> None:
        self._triggers: dict[str, TriggerInstance] = {}

    def register(
        self,
        trigger_id: str,
        config: TriggerConfig,
        *,
        state: TriggerState | None = None,
        sink: EventSink | None = None,
    ) -> TriggerInstance:
        instance = TriggerInstance(
            trigger_id=trigger_id,
            config=config,
            state=state or TriggerState(),
            sink=sink,
        )
        self._triggers[trigger_id] = instance
        logger.info(
            f"[immojump] Registered trigger {trigger_id} for {', '.join(config.event_types) or 'no events'}"
        )
        return instance

    def unregister(self, trigger_id: str) -> TriggerInstance | None:
        return self._triggers.pop(trigger_id, None)

    def get(self, trigger_id: str) -> TriggerInstance | None:
        return self._triggers.get(trigger_id)

    def list_triggers(self) -> list[str]:
        return sorted(self._triggers)
