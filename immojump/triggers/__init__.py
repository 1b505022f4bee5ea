"""
Immojump webhook triggers.

Filtering of inbound events, the webhook subscription lifecycle and the
registry of configured trigger instances.
"""

from immojump.triggers.filter import (
    DEDUPE_WINDOW_SIZE,
    DedupeWindow,
    DropReason,
    FilterResult,
    TriggerConfig,
    WebhookEvent,
    WebhookEventFilter,
)
from immojump.triggers.registry import EventSink, TriggerInstance, TriggerRegistry
from immojump.triggers.subscription import (
    TriggerState,
    activate,
    check_exists,
    deactivate,
    extract_id,
)

__all__ = [
    "DEDUPE_WINDOW_SIZE",
    "DedupeWindow",
    "DropReason",
    "EventSink",
    "FilterResult",
    "TriggerConfig",
    "TriggerInstance",
    "TriggerRegistry",
    "TriggerState",
    "WebhookEvent",
    "WebhookEventFilter",
    "activate",
    "check_exists",
    "deactivate",
    "extract_id",
]
