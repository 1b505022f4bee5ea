"""Inbound webhook routers."""

from immojump.app.api.webhooks.immojump import router as immojump_router

__all__ = ["immojump_router"]
