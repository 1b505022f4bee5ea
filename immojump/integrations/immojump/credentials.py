"""
Credential resolution for the Immojump API.

Turns the stored credential fields into an AuthContext: a normalized base
URL plus the headers every outbound request carries.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, Field, SecretStr

from immojump.integrations.base import ConfigError

DEFAULT_BASE_URL = "https://immokalkulation.de"

# Connectivity test endpoint used by the credential check
CREDENTIAL_TEST_PATH = "/api/user/me-auth"


class ImmojumpCredentials(BaseModel):
    """
    Stored Immojump credentials.

    Security:
        The token is a SecretStr so it never shows up in logs or reprs.
    """

    base_url: str = Field(DEFAULT_BASE_URL, description="API base URL")
    token: SecretStr = Field(default=SecretStr(""), description="Bearer token")
    organisation_id: str = Field(
        "",
        description="If empty, the backend uses the token user's current organisation",
    )


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Resolved base URL and authentication headers."""

    base_url: str
    headers: dict[str, str] = field(default_factory=dict)
    organisation_id: str = ""

    def url(self, path: str) -> str:
        """Absolute URL for an API path, joined by exactly one slash."""
        return f"{self.base_url}/{path.lstrip('/')}"


def resolve(credentials: ImmojumpCredentials) -> AuthContext:
    """
    Resolve credentials into an AuthContext.

    Args:
        credentials: Stored credential fields

    Returns:
        AuthContext with the trailing slash stripped from the base URL

    Raises:
        ConfigError: If base URL or token is empty
    """
    base_url = (credentials.base_url or "").strip()
    token = credentials.token.get_secret_value().strip()
    organisation_id = (credentials.organisation_id or "").strip()

    if not base_url:
        raise ConfigError("Immojump base URL is required")
    if not token:
        raise ConfigError("Immojump API token is required")

    if base_url.endswith("/"):
        base_url = base_url[:-1]

    headers = {"Authorization": f"Bearer {token}"}
    # Never send an empty organisation header
    if organisation_id:
        headers["X-Organisation-Id"] = organisation_id

    return AuthContext(
        base_url=base_url,
        headers=headers,
        organisation_id=organisation_id,
    )
