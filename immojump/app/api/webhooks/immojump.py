"""
Immojump Webhook Handler.

Receives Immojump event deliveries for a configured trigger, runs them
through the trigger's filter and hands emitted events to the trigger's
sink in a background task. The response is sent immediately.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from immojump.app.dependencies import get_registry
from immojump.triggers import TriggerRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhooks"])


async def _forward_event(trigger_id: str, sink: Any, body: Dict[str, Any]) -> None:
    """Background task delivering an emitted event to the workflow sink."""
    try:
        await sink(body)
    except Exception as e:
        logger.error(f"Forwarding event for trigger {trigger_id} failed: {e}", exc_info=True)


@router.post(
    "/immojump/{trigger_id}",
    summary="Receive Immojump webhook event",
    responses={
        200: {"description": "Event emitted or dropped"},
        400: {"description": "Invalid webhook payload"},
        404: {"description": "Unknown trigger"},
    },
)
async def receive_immojump_webhook(
    trigger_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    registry: TriggerRegistry = Depends(get_registry),
) -> Dict[str, str]:
    """
    Receive and filter an Immojump event delivery.

    Handles deliveries by:
    1. Looking up the trigger instance
    2. Parsing the JSON envelope
    3. Applying dedupe, type and attribute filters
    4. Queuing the emitted event for the trigger's sink
    """
    instance = registry.get(trigger_id)
    if instance is None:
        logger.warning(f"Immojump webhook for unknown trigger {trigger_id}")
        raise HTTPException(status_code=404, detail="unknown trigger")

    try:
        body = await request.json()
    except ValueError:
        logger.warning(f"Immojump webhook for {trigger_id} with invalid JSON body")
        raise HTTPException(status_code=400, detail="invalid JSON body")

    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="JSON object expected")

    result = await instance.deliver(body)

    if not result.emitted:
        return {"status": "success", "message": "event dropped", "reason": result.reason.value}

    if instance.sink is not None:
        background_tasks.add_task(_forward_event, trigger_id, instance.sink, result.output)

    return {"status": "success", "message": "event emitted"}
