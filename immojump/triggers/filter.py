"""
Inbound webhook event filtering.

Every delivery runs through one pass of:

    Received -> Deduped? -> TypeMatch? -> AttributeMatch? -> Emit | Drop

Deduplication remembers the last 500 event ids of a trigger instance. The
type check requires explicit membership in the configured allow-list. The
attribute filters are membership checks against the event payload and
must all pass. An emitted event is forwarded with its body unchanged.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEDUPE_WINDOW_SIZE = 500

# Event type the property type filter applies to
PROPERTY_CREATED = "immobilie.created"


# =============================================================================
# Dedupe window
# =============================================================================


class DedupeWindow:
    """
    Bounded FIFO of recently seen event ids.

    Holds at most ``maxlen`` ids in arrival order; adding one more evicts
    the oldest. Membership is O(1).
    """

    def __init__(self, ids: Iterable[str] = (), maxlen: int = DEDUPE_WINDOW_SIZE):
        if maxlen < 1:
            raise ValueError("maxlen must be at least 1")
        self.maxlen = maxlen
        self._order: deque[str] = deque()
        self._members: set[str] = set()
        for event_id in ids:
            self.add(event_id)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._members

    def __len__(self) -> int:
        return len(self._order)

    def add(self, event_id: str) -> None:
        """Record an id, evicting the oldest when the window is full."""
        if event_id in self._members:
            return
        self._order.append(event_id)
        self._members.add(event_id)
        while len(self._order) > self.maxlen:
            evicted = self._order.popleft()
            self._members.discard(evicted)

    def seen(self, event_id: str) -> bool:
        """
        Check an id and record it.

        Returns:
            True if the id was already in the window
        """
        if event_id in self._members:
            return True
        self.add(event_id)
        return False

    def to_list(self) -> list[str]:
        """Ids oldest first, for persistence by the host."""
        return list(self._order)


# =============================================================================
# Event and configuration
# =============================================================================


class WebhookEvent(BaseModel):
    """
    An inbound webhook delivery.

    Accepts both envelopes the API sends: ``{event, immobilie, payload}``
    and the legacy ``{id, type, object, payload}``.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    type: str = ""
    object: dict[str, Any] | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    body: dict[str, Any] = Field(default_factory=dict, description="Raw delivery body")

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> WebhookEvent:
        """Parse a delivery body."""
        raw_id = body.get("id")
        obj = body.get("object")
        if not isinstance(obj, dict):
            obj = body.get("immobilie") if isinstance(body.get("immobilie"), dict) else None
        payload = body.get("payload")
        event_type = body.get("type") or body.get("event") or ""
        return cls(
            id=str(raw_id) if raw_id else None,
            type=str(event_type),
            object=obj,
            payload=payload if isinstance(payload, dict) else {},
            body=body,
        )


def _split_values(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    elif not isinstance(value, (list, tuple, set)):
        value = [value]
    return [str(item).strip() for item in value if str(item).strip()]


class TriggerConfig(BaseModel):
    """
    Configuration of one webhook trigger instance.

    ``event_types``, ``property_types`` and the status and tag filters
    accept a comma separated string or a list; a filter matches when the
    event's value is any of the listed ones. Empty filters are not applied.
    The property type filter only applies to ``immobilie.created`` events.
    """

    event_types: list[str] = Field(
        default_factory=lambda: ["immobilie.created", "immobilie.status_changed"]
    )
    filter_status_from: list[str] = Field(default_factory=list)
    filter_status_to: list[str] = Field(default_factory=list)
    filter_tag_name: list[str] = Field(default_factory=list)
    filter_object_id: str = ""
    property_types: list[str] = Field(default_factory=list)
    dedupe: bool = True

    @field_validator(
        "event_types",
        "property_types",
        "filter_status_from",
        "filter_status_to",
        "filter_tag_name",
        mode="before",
    )
    @classmethod
    def _split(cls, value: Any) -> list[str]:
        return _split_values(value)

    @field_validator("filter_object_id", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


# =============================================================================
# Filter
# =============================================================================


class DropReason(str, Enum):
    """Why an event was not emitted."""

    DUPLICATE = "duplicate"
    EVENT_TYPE = "event_type"
    OBJECT_ID = "object_id"
    STATUS_FROM = "status_from"
    STATUS_TO = "status_to"
    TAG = "tag"
    PROPERTY_TYPE = "property_type"


@dataclass(frozen=True, slots=True)
class FilterResult:
    """Outcome of filtering one event."""

    event: WebhookEvent
    reason: DropReason | None = None

    @property
    def emitted(self) -> bool:
        return self.reason is None

    @property
    def output(self) -> dict[str, Any] | None:
        """The body to forward, or None when dropped."""
        return self.event.body if self.emitted else None


def _payload_value(payload: dict[str, Any], primary: str, fallback: str) -> str | None:
    """Primary field, else the fallback field, as a string."""
    value = payload.get(primary) or payload.get(fallback)
    return None if value is None else str(value)


class WebhookEventFilter:
    """
    Applies a trigger's dedupe, type and attribute filters.

    The dedupe window is injected so the host can persist it between
    deliveries. Ids are recorded before the other filters run, so an event
    dropped by a filter is still remembered.
    """

    def __init__(self, config: TriggerConfig, window: DedupeWindow | None = None):
        self.config = config
        self.window = window if window is not None else DedupeWindow()

    def evaluate(self, body: dict[str, Any] | WebhookEvent) -> FilterResult:
        """
        Filter one delivery.

        Args:
            body: Raw delivery body or an already parsed event

        Returns:
            FilterResult; ``output`` holds the body to emit
        """
        event = body if isinstance(body, WebhookEvent) else WebhookEvent.from_body(body)
        reason = self._drop_reason(event)
        if reason is None:
            logger.info(f"[immojump] Emitting event id={event.id} type={event.type}")
        else:
            logger.debug(
                f"[immojump] Dropping event id={event.id} type={event.type}: {reason.value}"
            )
        return FilterResult(event=event, reason=reason)

    def _drop_reason(self, event: WebhookEvent) -> DropReason | None:
        config = self.config

        if config.dedupe and event.id and self.window.seen(event.id):
            return DropReason.DUPLICATE

        if event.type not in config.event_types:
            return DropReason.EVENT_TYPE

        if config.filter_object_id:
            object_id = (event.object or {}).get("id")
            if object_id is None or str(object_id) != config.filter_object_id:
                return DropReason.OBJECT_ID

        payload = event.payload
        if config.filter_status_from and (
            _payload_value(payload, "old_status_name", "old_status_id")
            not in config.filter_status_from
        ):
            return DropReason.STATUS_FROM

        if config.filter_status_to and (
            _payload_value(payload, "new_status_name", "new_status_id")
            not in config.filter_status_to
        ):
            return DropReason.STATUS_TO

        if config.filter_tag_name and (
            _payload_value(payload, "tag_name", "tag_id") not in config.filter_tag_name
        ):
            return DropReason.TAG

        if config.property_types and event.type == PROPERTY_CREATED:
            property_type = (event.object or {}).get("type") or event.body.get("object_type")
            if property_type is None or str(property_type) not in config.property_types:
                return DropReason.PROPERTY_TYPE

        return None
