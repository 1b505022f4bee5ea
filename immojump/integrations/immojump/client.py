"""
Immojump API Client.

This client provides async access to the Immojump REST API for properties
(Immobilien), contacts, activities, the organisation feed and webhook
subscriptions. Requests are composed by the route table in ``routes`` and
executed once each; errors surface as IntegrationError subtypes.

Usage:
    credentials = ImmojumpCredentials(
        base_url="https://immokalkulation.de",
        token="...",
        organisation_id="org-1",
    )
    async with ImmojumpClient(credentials) as client:
        # Any operation from the route table
        contact = await client.run(
            "contact", "create", {"first_name": "Erika", "last_name": "Muster"}
        )

        # All pages of a list operation
        async for activity in client.list_all("activity", base_params={"search": "Termin"}):
            ...

        # Selection options
        statuses = await client.load_options("statuses")
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from immojump.integrations.base import (
    ApiResult,
    IntegrationClient,
    IntegrationConfig,
    RequestSpec,
)
from immojump.integrations.immojump.credentials import (
    AuthContext,
    ImmojumpCredentials,
    resolve,
)
from immojump.integrations.immojump.options import OptionItem, OptionLoader
from immojump.integrations.immojump.pagination import collect_all, list_all
from immojump.integrations.immojump.routes import build

logger = logging.getLogger(__name__)


class ImmojumpClient(IntegrationClient):
    """
    Async client for the Immojump API.

    The client handles:
    - Authentication via Bearer token and optional X-Organisation-Id
    - Request composition from the static route table
    - Page/offset pagination
    - Selection option loading
    """

    def __init__(
        self,
        credentials: ImmojumpCredentials,
        *,
        timeout: float = 30.0,
        log_requests: bool = False,
        log_responses: bool = False,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize Immojump client.

        Args:
            credentials: Stored credentials (validated here)
            timeout: Per-request timeout in seconds
            log_requests: Log request bodies at DEBUG
            log_responses: Log response bodies at DEBUG
            http_client: Optional pre-built httpx client

        Raises:
            ConfigError: If base URL or token is missing
        """
        self.auth: AuthContext = resolve(credentials)
        super().__init__(
            IntegrationConfig(
                base_url=self.auth.base_url,
                timeout=timeout,
                log_requests=log_requests,
                log_responses=log_responses,
            ),
            http_client=http_client,
        )

    @property
    def name(self) -> str:
        """Integration name."""
        return "immojump"

    def build(
        self,
        resource: str,
        operation: str,
        params: dict[str, Any] | None = None,
    ) -> RequestSpec:
        """Build the request for an operation without sending it."""
        return build(resource, operation, params, self.auth)

    async def run(
        self,
        resource: str,
        operation: str,
        params: dict[str, Any] | None = None,
    ) -> ApiResult:
        """
        Build and execute one operation.

        Args:
            resource: Resource name
            operation: Operation name
            params: Operation parameters

        Returns:
            The API result
        """
        spec = self.build(resource, operation, params)
        logger.info(f"[immojump] {resource}.{operation}: {spec.method} {spec.path}")
        return await self.execute(spec)

    def list_all(
        self,
        resource: str,
        operation: str = "list",
        base_params: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[Any]:
        """Lazily iterate over every record of a list operation."""
        return list_all(self, resource, operation, base_params, **kwargs)

    async def collect_all(
        self,
        resource: str,
        operation: str = "list",
        base_params: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> list[Any]:
        """Fetch every record of a list operation into a list."""
        return await collect_all(self, resource, operation, base_params, **kwargs)

    async def load_options(
        self,
        kind: str,
        *,
        strict: bool = False,
        use_name_as_value: bool = False,
    ) -> list[OptionItem]:
        """Load selection options (statuses, tags, channels)."""
        loader = OptionLoader(self, strict=strict)
        return await loader.load_options(kind, use_name_as_value=use_name_as_value)

    # =========================================================================
    # Health Check
    # =========================================================================

    async def health_check(self) -> bool:
        """
        Check that the credentials work against the API.

        Returns:
            True if the connectivity test endpoint answers successfully
        """
        try:
            await self.run("user", "me")
            return True
        except Exception as e:
            logger.warning(f"[immojump] Health check failed: {e}")
            return False
