"""
Immojump - API client and webhook trigger for the Immojump real-estate platform.

Subpackages:
    integrations: Credential resolution, request routes, HTTP execution,
        pagination and option loading
    triggers: Webhook event filtering and subscription lifecycle
    app: FastAPI service receiving webhook deliveries
"""

__version__ = "0.1.0"
