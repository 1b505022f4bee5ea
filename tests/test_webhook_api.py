"""
Tests for the webhook receiver endpoint and service wiring.

Tests cover:
- Unknown triggers and invalid bodies
- Emitted events reaching the trigger sink
- Dropped events
- Settings from the environment
- Configured triggers from startup subscription to delivery and shutdown
"""

import json

import httpx
import pytest
from fastapi import FastAPI
from pydantic import SecretStr
from unittest.mock import AsyncMock

from immojump.app.api.webhooks import immojump_router
from immojump.app import dependencies
from immojump.app.dependencies import get_registry, get_settings
from immojump.config import AppSettings, TriggerSettings
from immojump.triggers import TriggerConfig, TriggerRegistry


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def registry():
    return TriggerRegistry()


@pytest.fixture
def app(registry):
    """App with the webhook router and an isolated trigger registry."""
    app = FastAPI()
    app.include_router(immojump_router, prefix="/api/v1")
    app.dependency_overrides[get_registry] = lambda: registry
    return app


@pytest.fixture
def http(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


# =============================================================================
# Receiver
# =============================================================================


class TestWebhookEndpoint:
    """Tests for POST /api/v1/webhook/immojump/{trigger_id}."""

    @pytest.mark.asyncio
    async def test_unknown_trigger(self, http):
        async with http:
            response = await http.post("/api/v1/webhook/immojump/missing", json={"id": "e1"})

        assert response.status_code == 404
        assert response.json()["detail"] == "unknown trigger"

    @pytest.mark.asyncio
    async def test_invalid_json(self, http, registry):
        registry.register("t-1", TriggerConfig())

        async with http:
            response = await http.post(
                "/api/v1/webhook/immojump/t-1",
                content=b"{not json",
                headers={"Content-Type": "application/json"},
            )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_non_object_body(self, http, registry):
        registry.register("t-1", TriggerConfig())

        async with http:
            response = await http.post("/api/v1/webhook/immojump/t-1", json=[1, 2])

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_emitted_event_reaches_sink(self, http, registry, status_changed_body):
        sink = AsyncMock()
        registry.register("t-1", TriggerConfig(), sink=sink)

        async with http:
            response = await http.post("/api/v1/webhook/immojump/t-1", json=status_changed_body)

        assert response.status_code == 200
        assert response.json() == {"status": "success", "message": "event emitted"}
        sink.assert_awaited_once_with(status_changed_body)

    @pytest.mark.asyncio
    async def test_duplicate_dropped(self, http, registry, status_changed_body):
        sink = AsyncMock()
        registry.register("t-1", TriggerConfig(), sink=sink)

        async with http:
            await http.post("/api/v1/webhook/immojump/t-1", json=status_changed_body)
            response = await http.post("/api/v1/webhook/immojump/t-1", json=status_changed_body)

        assert response.status_code == 200
        assert response.json() == {
            "status": "success",
            "message": "event dropped",
            "reason": "duplicate",
        }
        assert sink.await_count == 1

    @pytest.mark.asyncio
    async def test_sink_failure_does_not_fail_delivery(self, http, registry, status_changed_body):
        sink = AsyncMock(side_effect=RuntimeError("workflow down"))
        registry.register("t-1", TriggerConfig(), sink=sink)

        async with http:
            response = await http.post("/api/v1/webhook/immojump/t-1", json=status_changed_body)

        assert response.status_code == 200
        sink.assert_awaited_once()


# =============================================================================
# Settings
# =============================================================================


class TestSettings:
    """Tests for environment driven settings."""

    @pytest.fixture(autouse=True)
    def clear_settings_cache(self):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_defaults(self, monkeypatch):
        for name in ("IMMOJUMP_BASE_URL", "IMMOJUMP_API_TOKEN", "IMMOJUMP_ORGANISATION_ID", "IMMOJUMP_DEBUG"):
            monkeypatch.delenv(name, raising=False)

        settings = get_settings()

        assert settings.base_url == "https://immokalkulation.de"
        assert settings.api_token.get_secret_value() == ""
        assert settings.debug is False
        assert settings.request_timeout == 30.0

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("IMMOJUMP_BASE_URL", "https://immo.example.com/")
        monkeypatch.setenv("IMMOJUMP_API_TOKEN", "secret")
        monkeypatch.setenv("IMMOJUMP_ORGANISATION_ID", "org-9")
        monkeypatch.setenv("IMMOJUMP_REQUEST_TIMEOUT", "12.5")
        monkeypatch.setenv("IMMOJUMP_DEBUG", "TRUE")

        settings = get_settings()

        assert settings.debug is True
        assert settings.request_timeout == 12.5
        assert "secret" not in repr(settings)

        credentials = settings.credentials()
        assert credentials.token.get_secret_value() == "secret"
        assert credentials.organisation_id == "org-9"

    def test_triggers_from_environment(self, monkeypatch):
        monkeypatch.setenv("IMMOJUMP_PUBLIC_URL", "https://public.example.com/")
        monkeypatch.setenv(
            "IMMOJUMP_TRIGGERS",
            json.dumps({"t-1": {"event_types": "immobilie.created", "filter_status_to": "Verkauft"}}),
        )

        settings = get_settings()

        trigger = settings.triggers["t-1"]
        assert trigger.subscribe is True
        assert trigger.forward_url == ""
        assert trigger.trigger_config().filter_status_to == ["Verkauft"]
        assert settings.webhook_url("t-1") == "https://public.example.com/api/v1/webhook/immojump/t-1"

    def test_invalid_triggers_json(self, monkeypatch):
        monkeypatch.setenv("IMMOJUMP_TRIGGERS", "[not json")

        with pytest.raises(ValueError, match="IMMOJUMP_TRIGGERS"):
            get_settings()


# =============================================================================
# Service endpoints
# =============================================================================


class TestServiceEndpoints:
    """Tests for the root and health endpoints of the service app."""

    @pytest.mark.asyncio
    async def test_health_without_token(self, monkeypatch, registry):
        from immojump.app import main

        monkeypatch.setattr(main.settings, "api_token", SecretStr(""))
        registry.register("t-1", TriggerConfig())
        monkeypatch.setattr(main, "get_registry", lambda: registry)

        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=main.app), base_url="http://test"
        ) as http:
            root = await http.get("/")
            health = await http.get("/health")

        assert root.json()["status"] == "running"
        body = health.json()
        assert body["status"] == "healthy"
        assert body["api"] == "not configured"
        assert body["triggers"] == ["t-1"]


class TestTriggerSettings:
    """Tests for TriggerSettings and webhook URLs."""

    def test_trigger_config_excludes_delivery_fields(self):
        trigger = TriggerSettings(
            event_types=["immobilie.created"],
            property_types="MFH, ETW",
            forward_url="https://flows.example.com/hook",
            subscribe=False,
        )

        config = trigger.trigger_config()

        assert config.property_types == ["MFH", "ETW"]
        assert not hasattr(config, "forward_url")

    def test_webhook_url_requires_public_url(self):
        assert AppSettings().webhook_url("t-1") is None
        assert AppSettings(public_url="  ").webhook_url("t-1") is None

    def test_webhook_url_quotes_trigger_id(self):
        settings = AppSettings(public_url="https://public.example.com")

        assert settings.webhook_url("a b/c") == (
            "https://public.example.com/api/v1/webhook/immojump/a%20b%2Fc"
        )


# =============================================================================
# Trigger lifecycle
# =============================================================================


class TestTriggerLifecycle:
    """Tests for configured triggers across the application lifespan."""

    @pytest.fixture
    def forwarded(self, monkeypatch):
        """Requests received by the forward URL."""
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request)
            return httpx.Response(200, json={"ok": True})

        monkeypatch.setattr(
            dependencies, "_forward_client", httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        return received

    @pytest.fixture
    def configure(self, monkeypatch):
        """Set trigger environment and reset service singletons."""

        def factory(triggers, public_url="https://public.example.com"):
            monkeypatch.setenv("IMMOJUMP_API_TOKEN", "test-token")
            monkeypatch.setenv("IMMOJUMP_TRIGGERS", json.dumps(triggers))
            if public_url:
                monkeypatch.setenv("IMMOJUMP_PUBLIC_URL", public_url)
            else:
                monkeypatch.delenv("IMMOJUMP_PUBLIC_URL", raising=False)
            monkeypatch.setattr(dependencies, "_registry", None)
            get_settings.cache_clear()

        yield factory
        get_settings.cache_clear()

    @pytest.mark.asyncio
    async def test_subscribe_deliver_unsubscribe(
        self, monkeypatch, configure, forwarded, make_client, status_changed_body
    ):
        from immojump.app import main

        def api(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(201, json={"id": 99})
            return httpx.Response(204)

        api_client = make_client(api)
        monkeypatch.setattr(dependencies, "_client", api_client)
        configure(
            {
                "t-1": {
                    "event_types": ["immobilie.status_changed"],
                    "filter_status_to": ["Verkauft", "Reserviert"],
                    "forward_url": "https://flows.example.com/hook",
                }
            }
        )

        async with main.app.router.lifespan_context(main.app):
            registry = dependencies.get_registry()
            instance = registry.get("t-1")
            assert instance.state.subscription_id == "99"

            subscribe = api_client.sent[0]
            assert subscribe.method == "POST"
            assert subscribe.url.path == "/api/integrations/webhooks"
            assert json.loads(subscribe.content) == {
                "target_url": "https://public.example.com/api/v1/webhook/immojump/t-1",
                "event_types": ["immobilie.status_changed"],
            }

            async with httpx.AsyncClient(
                transport=httpx.ASGITransport(app=main.app), base_url="http://test"
            ) as http:
                response = await http.post(
                    "/api/v1/webhook/immojump/t-1", json=status_changed_body
                )

            assert response.json() == {"status": "success", "message": "event emitted"}
            assert len(forwarded) == 1
            assert str(forwarded[0].url) == "https://flows.example.com/hook"
            assert json.loads(forwarded[0].content) == status_changed_body

        unsubscribe = api_client.sent[-1]
        assert unsubscribe.method == "DELETE"
        assert unsubscribe.url.path == "/api/integrations/webhooks/99"
        assert registry.list_triggers() == []

    @pytest.mark.asyncio
    async def test_without_public_url_not_subscribed(self, monkeypatch, configure, make_client):
        api_client = make_client(lambda request: httpx.Response(201, json={"id": 99}))
        monkeypatch.setattr(dependencies, "_client", api_client)
        configure({"t-1": {"event_types": ["immobilie.created"]}}, public_url="")

        await dependencies.initialize_services()

        instance = dependencies.get_registry().get("t-1")
        assert instance is not None
        assert instance.state.subscription_id is None
        assert api_client.sent == []

        await dependencies.shutdown_services()
        assert api_client.sent == []

    @pytest.mark.asyncio
    async def test_subscribe_disabled(self, monkeypatch, configure, make_client):
        api_client = make_client(lambda request: httpx.Response(201, json={"id": 99}))
        monkeypatch.setattr(dependencies, "_client", api_client)
        configure({"t-1": {"subscribe": False}})

        await dependencies.initialize_services()

        assert dependencies.get_registry().list_triggers() == ["t-1"]
        assert api_client.sent == []
        await dependencies.shutdown_services()

    @pytest.mark.asyncio
    async def test_activation_failure_keeps_trigger(self, monkeypatch, configure, make_client):
        api_client = make_client(lambda request: httpx.Response(500, text="boom"))
        monkeypatch.setattr(dependencies, "_client", api_client)
        configure({"t-1": {"event_types": ["immobilie.created"]}})

        await dependencies.initialize_services()

        instance = dependencies.get_registry().get("t-1")
        assert instance is not None
        assert instance.state.subscription_id is None
        assert len(api_client.sent) == 1
        await dependencies.shutdown_services()

    @pytest.mark.asyncio
    async def test_sink_without_forward_url_only_logs(self, forwarded, status_changed_body):
        sink = dependencies.make_sink("t-1", "")

        await sink(status_changed_body)

        assert forwarded == []
