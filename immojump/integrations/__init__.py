"""
Immojump Integrations Layer.

This module provides the API client layer for the Immojump real-estate
management platform:

1. Base: Error taxonomy, request/response descriptors, HTTP executor
2. Credentials: Resolution of stored credentials into request headers
3. Routes: Static (resource, operation) table producing RequestSpecs
4. Pagination and option loading on top of the client

Directory Structure:
    integrations/
    ├── base.py             # Errors, RequestSpec, ApiResult, IntegrationClient
    └── immojump/
        ├── client.py       # ImmojumpClient
        ├── credentials.py  # ImmojumpCredentials, AuthContext, resolve()
        ├── routes.py       # Route table and build()
        ├── schemas.py      # Pydantic request schemas
        ├── pagination.py   # list_all()
        └── options.py      # OptionLoader
"""

from immojump.integrations.base import (
    ApiError,
    ApiResult,
    AuthenticationError,
    ConfigError,
    IntegrationClient,
    IntegrationConfig,
    IntegrationError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RequestSpec,
    ValidationError,
)

__all__ = [
    "ApiError",
    "ApiResult",
    "AuthenticationError",
    "ConfigError",
    "IntegrationClient",
    "IntegrationConfig",
    "IntegrationError",
    "NetworkError",
    "NotFoundError",
    "RateLimitError",
    "RequestSpec",
    "ValidationError",
]
