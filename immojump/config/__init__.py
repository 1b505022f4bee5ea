"""
Immojump Configuration

Environment-driven settings for the webhook service and API client.
"""

from .schemas import AppSettings, TriggerSettings

__all__ = [
    "AppSettings",
    "TriggerSettings",
]
