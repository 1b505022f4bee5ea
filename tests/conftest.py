"""
Pytest configuration and fixtures for Immojump tests.
"""

import sys
from pathlib import Path

import httpx
import pytest

# Add the repository root to path for imports
# This allows `from immojump.integrations import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from immojump.integrations.immojump import ImmojumpClient, ImmojumpCredentials, resolve


@pytest.fixture
def credentials():
    """Credentials with an organisation configured."""
    return ImmojumpCredentials(
        base_url="https://immo.example.com/",
        token="test-token",
        organisation_id="org-1",
    )


@pytest.fixture
def credentials_without_org():
    """Credentials without an organisation."""
    return ImmojumpCredentials(
        base_url="https://immo.example.com",
        token="test-token",
    )


@pytest.fixture
def auth(credentials):
    """Resolved auth context."""
    return resolve(credentials)


@pytest.fixture
def make_client(credentials):
    """
    Factory for clients backed by an httpx.MockTransport.

    The handler receives every httpx.Request; requests are also recorded
    on the returned client as ``sent``.
    """

    def factory(handler, creds=None):
        sent = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return handler(request)

        resolved = resolve(creds or credentials)
        http_client = httpx.AsyncClient(
            base_url=resolved.base_url,
            transport=httpx.MockTransport(recording_handler),
        )
        client = ImmojumpClient(creds or credentials, http_client=http_client)
        client.sent = sent
        return client

    return factory


@pytest.fixture
def status_changed_body():
    """Sample status change delivery."""
    return {
        "id": "evt-1",
        "type": "immobilie.status_changed",
        "object": {"id": "immo-42", "type": "ETW"},
        "payload": {
            "old_status_name": "Akquise",
            "new_status_name": "Verkauft",
            "old_status_id": 3,
            "new_status_id": 7,
        },
    }
