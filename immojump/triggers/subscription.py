"""
Webhook subscription lifecycle for Immojump triggers.

A trigger instance registers a webhook subscription on activation and
removes it on deactivation. The subscription id and the dedupe window live
in TriggerState, which the host persists between invocations.

Failure Mode:
    - activate: errors propagate, nothing is stored
    - check_exists: errors are logged and reported as "does not exist"
    - deactivate: best effort, always reports success
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from immojump.integrations.base import IntegrationError, NotFoundError
from immojump.triggers.filter import DEDUPE_WINDOW_SIZE, DedupeWindow

if TYPE_CHECKING:
    from immojump.integrations.immojump import ImmojumpClient

logger = logging.getLogger(__name__)


@dataclass
class TriggerState:
    """Per-trigger-instance state persisted by the host."""

    window: DedupeWindow = field(default_factory=DedupeWindow)
    subscription_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "seen_ids": self.window.to_list(),
            "subscription_id": self.subscription_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TriggerState:
        data = data or {}
        return cls(
            window=DedupeWindow(data.get("seen_ids") or (), maxlen=DEDUPE_WINDOW_SIZE),
            subscription_id=data.get("subscription_id"),
        )


def extract_id(value: Any) -> str | None:
    """Subscription id from a bare id or an object carrying ``id``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        return str(value)
    if isinstance(value, dict):
        candidate = value.get("id")
        if isinstance(candidate, (str, int)) and not isinstance(candidate, bool):
            return str(candidate)
    return None


async def activate(
    client: ImmojumpClient,
    state: TriggerState,
    webhook_url: str,
    event_types: list[str],
) -> bool:
    """
    Register a webhook subscription for the trigger.

    Args:
        client: Immojump client
        state: Trigger state receiving the subscription id
        webhook_url: Public URL of the trigger's webhook endpoint
        event_types: Event types to subscribe to

    Returns:
        True if the API returned a subscription id
    """
    result = await client.run(
        "webhook",
        "create",
        {"target_url": webhook_url, "event_types": list(event_types)},
    )
    subscription_id = extract_id(result.body)
    if subscription_id is None:
        logger.warning("[immojump] Webhook registration returned no subscription id")
        return False

    state.subscription_id = subscription_id
    logger.info(f"[immojump] Registered webhook subscription {subscription_id}")
    return True


async def check_exists(client: ImmojumpClient, state: TriggerState) -> bool:
    """
    Check that the stored subscription is still registered.

    Clears the stored id when the API no longer lists it.
    """
    if not state.subscription_id:
        return False

    try:
        result = await client.run("webhook", "list")
    except IntegrationError as e:
        logger.error(
            f"[immojump] Checking webhook {state.subscription_id} failed: {e.message} "
            f"(status={e.status_code})"
        )
        return False

    hooks = result.body if isinstance(result.body, list) else []
    exists = any(extract_id(hook) == state.subscription_id for hook in hooks if isinstance(hook, dict))
    if not exists:
        logger.info(f"[immojump] Webhook subscription {state.subscription_id} no longer exists")
        state.subscription_id = None
    return exists


async def deactivate(client: ImmojumpClient, state: TriggerState) -> bool:
    """
    Remove the trigger's webhook subscription.

    Failures are logged and swallowed so deactivation always succeeds.
    """
    subscription_id = state.subscription_id
    if not subscription_id:
        return True

    try:
        await client.run("webhook", "delete", {"webhook_id": subscription_id})
        logger.info(f"[immojump] Deleted webhook subscription {subscription_id}")
    except NotFoundError:
        logger.info(f"[immojump] Webhook subscription {subscription_id} was already gone")
    except IntegrationError as e:
        logger.warning(
            f"[immojump] Deleting webhook {subscription_id} failed: {e.message} "
            f"(status={e.status_code})"
        )

    state.subscription_id = None
    return True
