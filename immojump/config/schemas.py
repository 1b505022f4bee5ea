"""
Configuration Schemas for Immojump.

Security:
    Sensitive fields use SecretStr to prevent accidental logging
    of credentials. Access the value with `.get_secret_value()`.
"""

from __future__ import annotations

from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from immojump.integrations.immojump.credentials import DEFAULT_BASE_URL, ImmojumpCredentials
from immojump.triggers.filter import TriggerConfig

# Path of the webhook receiver, relative to the public URL
WEBHOOK_PATH = "/api/v1/webhook/immojump/{trigger_id}"


class TriggerSettings(TriggerConfig):
    """
    A trigger served by this service.

    Carries the filter configuration plus where emitted events go and
    whether a webhook subscription is registered for it on startup.
    """

    forward_url: str = Field(default="", description="URL receiving emitted events")
    subscribe: bool = Field(default=True, description="Register a webhook subscription")

    def trigger_config(self) -> TriggerConfig:
        """The filter configuration alone."""
        return TriggerConfig.model_validate(
            self.model_dump(exclude={"forward_url", "subscribe"})
        )


class AppSettings(BaseModel):
    """
    Application settings model.

    Populated from IMMOJUMP_* environment variables by
    ``immojump.app.dependencies.get_settings``.
    """

    model_config = ConfigDict(extra="ignore")

    # Service identity
    service_name: str = "immojump"
    environment: str = "development"
    debug: bool = False
    public_url: str = Field(default="", description="Public base URL of this service")

    # Immojump API
    base_url: str = Field(default=DEFAULT_BASE_URL, description="Immojump API base URL")
    api_token: SecretStr = Field(default=SecretStr(""), description="Immojump bearer token")
    organisation_id: str = Field(default="", description="Organisation for X-Organisation-Id")

    # HTTP
    request_timeout: float = Field(30.0, gt=0, description="Per-request timeout in seconds")
    log_requests: bool = False
    log_responses: bool = False

    # Triggers, by trigger id
    triggers: dict[str, TriggerSettings] = Field(default_factory=dict)

    def credentials(self) -> ImmojumpCredentials:
        """Credentials for the configured API account."""
        return ImmojumpCredentials(
            base_url=self.base_url,
            token=self.api_token,
            organisation_id=self.organisation_id,
        )

    def webhook_url(self, trigger_id: str) -> str | None:
        """Public webhook URL of a trigger, or None without a public URL."""
        public_url = self.public_url.strip().rstrip("/")
        if not public_url:
            return None
        return public_url + WEBHOOK_PATH.format(trigger_id=quote(trigger_id, safe=""))
