"""
Immojump Integration.

Immojump is a real-estate management platform. This integration provides:
- Property (Immobilie) CRUD, status and tag management
- Contact and activity management
- Organisation feed posts and test integration events
- Webhook subscription management
- Selection options for statuses, tags and feed channels

Usage:
    from immojump.integrations.immojump import ImmojumpClient, ImmojumpCredentials

    client = ImmojumpClient(ImmojumpCredentials(
        base_url="https://immokalkulation.de",
        token="...",
        organisation_id="org-1",
    ))

    # Update only the status of an activity
    result = await client.run(
        "activity",
        "update",
        {"activity_id": "a-1", "update_fields": {"status": "Geplant"}},
    )
"""

from immojump.integrations.immojump.client import ImmojumpClient
from immojump.integrations.immojump.credentials import (
    AuthContext,
    ImmojumpCredentials,
    resolve,
)
from immojump.integrations.immojump.options import OptionItem, OptionLoader
from immojump.integrations.immojump.pagination import collect_all, list_all
from immojump.integrations.immojump.routes import (
    OperationRoute,
    PaginationStyle,
    build,
    get_route,
    list_operations,
)

__all__ = [
    "AuthContext",
    "ImmojumpClient",
    "ImmojumpCredentials",
    "OperationRoute",
    "OptionItem",
    "OptionLoader",
    "PaginationStyle",
    "build",
    "collect_all",
    "get_route",
    "list_all",
    "list_operations",
    "resolve",
]
