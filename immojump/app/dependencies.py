"""
Dependency Injection for the Immojump service.

Provides singleton instances of settings, the API client and the trigger
registry, and the startup/shutdown of configured triggers.
"""
from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx

from immojump.config.schemas import AppSettings, TriggerSettings
from immojump.integrations.base import IntegrationError
from immojump.integrations.immojump import ImmojumpClient
from immojump.triggers import EventSink, TriggerRegistry, activate, deactivate

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_triggers() -> Dict[str, Any]:
    """Trigger definitions from IMMOJUMP_TRIGGERS (a JSON object)."""
    raw = os.getenv("IMMOJUMP_TRIGGERS", "").strip()
    if not raw:
        return {}
    try:
        triggers = json.loads(raw)
    except ValueError as e:
        raise ValueError(f"IMMOJUMP_TRIGGERS is not valid JSON: {e}") from e
    if not isinstance(triggers, dict):
        raise ValueError("IMMOJUMP_TRIGGERS must be a JSON object keyed by trigger id")
    return triggers


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return AppSettings(
        # Service
        service_name=os.getenv("IMMOJUMP_SERVICE_NAME", "immojump"),
        environment=os.getenv("IMMOJUMP_ENVIRONMENT", "development"),
        debug=_env_flag("IMMOJUMP_DEBUG"),
        public_url=os.getenv("IMMOJUMP_PUBLIC_URL", ""),
        # API
        base_url=os.getenv("IMMOJUMP_BASE_URL", "https://immokalkulation.de"),
        api_token=os.getenv("IMMOJUMP_API_TOKEN", ""),
        organisation_id=os.getenv("IMMOJUMP_ORGANISATION_ID", ""),
        # HTTP
        request_timeout=float(os.getenv("IMMOJUMP_REQUEST_TIMEOUT", "30")),
        log_requests=_env_flag("IMMOJUMP_LOG_REQUESTS"),
        log_responses=_env_flag("IMMOJUMP_LOG_RESPONSES"),
        # Triggers
        triggers=_env_triggers(),
    )


# Global instances (initialized on first access)
_client: Optional[ImmojumpClient] = None
_registry: Optional[TriggerRegistry] = None
_forward_client: Optional[httpx.AsyncClient] = None


def get_client() -> ImmojumpClient:
    """
    Get the Immojump client for the configured account.

    Raises:
        ConfigError: If base URL or token is not configured
    """
    global _client
    if _client is None:
        settings = get_settings()
        _client = ImmojumpClient(
            settings.credentials(),
            timeout=settings.request_timeout,
            log_requests=settings.log_requests,
            log_responses=settings.log_responses,
        )
    return _client


def get_registry() -> TriggerRegistry:
    """Get the trigger registry."""
    global _registry
    if _registry is None:
        _registry = TriggerRegistry()
    return _registry


def get_forward_client() -> httpx.AsyncClient:
    """Get the HTTP client used to forward emitted events."""
    global _forward_client
    if _forward_client is None or _forward_client.is_closed:
        _forward_client = httpx.AsyncClient(timeout=get_settings().request_timeout)
    return _forward_client


def make_sink(trigger_id: str, forward_url: str) -> EventSink:
    """
    Build the sink receiving a trigger's emitted events.

    Events are POSTed to ``forward_url``; without one they are only logged.
    """

    async def sink(body: Dict[str, Any]) -> None:
        if not forward_url:
            logger.info(f"[immojump] Trigger {trigger_id} emitted event {body.get('id')}")
            return
        response = await get_forward_client().post(forward_url, json=body)
        response.raise_for_status()
        logger.info(
            f"[immojump] Forwarded event {body.get('id')} of trigger {trigger_id} "
            f"(status={response.status_code})"
        )

    return sink


async def _start_trigger(settings: AppSettings, trigger_id: str, trigger: TriggerSettings) -> None:
    registry = get_registry()
    instance = registry.register(
        trigger_id,
        trigger.trigger_config(),
        sink=make_sink(trigger_id, trigger.forward_url),
    )
    if not trigger.subscribe:
        return

    webhook_url = settings.webhook_url(trigger_id)
    if webhook_url is None:
        logger.warning(
            f"[immojump] IMMOJUMP_PUBLIC_URL not set, trigger {trigger_id} is not subscribed"
        )
        return

    try:
        await activate(get_client(), instance.state, webhook_url, instance.config.event_types)
    except IntegrationError as e:
        logger.error(f"[immojump] Subscribing trigger {trigger_id} failed: {e}")


async def initialize_services() -> None:
    """Register the configured triggers and subscribe their webhooks."""
    settings = get_settings()
    for trigger_id, trigger in settings.triggers.items():
        await _start_trigger(settings, trigger_id, trigger)
    logger.info(f"Immojump services initialized ({len(settings.triggers)} triggers)")


async def shutdown_services() -> None:
    """Remove trigger subscriptions and close HTTP clients."""
    global _client, _forward_client

    if _registry is not None:
        for trigger_id in _registry.list_triggers():
            instance = _registry.unregister(trigger_id)
            if instance is not None and instance.state.subscription_id:
                await deactivate(get_client(), instance.state)

    if _client is not None:
        await _client.close()
        _client = None
        logger.info("Immojump client closed")

    if _forward_client is not None:
        await _forward_client.aclose()
        _forward_client = None
