"""
Pagination for Immojump list operations.

``list_all`` is a lazy, finite async iterator: every page is one awaited
request, and the next page is only requested once the previous one has
been consumed. Contacts and activities page with ``page``/``per_page``,
properties with ``offset``/``limit``; the route table says which.

Failure Mode:
    The first ApiError or NetworkError propagates out of the iterator.
    Records already yielded stay with the caller; callers that need them
    after a failure must accumulate as they iterate.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from immojump.integrations.base import ApiError, ValidationError
from immojump.integrations.immojump.routes import PaginationStyle, get_route

if TYPE_CHECKING:
    from immojump.integrations.immojump.client import ImmojumpClient

logger = logging.getLogger(__name__)

# Envelope keys a list response may wrap its records in
RECORD_KEYS = ("items", "results", "data")


def extract_records(body: Any) -> list[Any]:
    """
    Pull the record list out of a list response.

    Raises:
        ApiError: If the body is neither a list nor a known envelope
    """
    if body is None:
        return []
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in RECORD_KEYS:
            if isinstance(body.get(key), list):
                return body[key]
    raise ApiError("Unexpected list response shape", response_body=body)


async def list_all(
    client: ImmojumpClient,
    resource: str,
    operation: str = "list",
    base_params: dict[str, Any] | None = None,
    *,
    max_results: int | None = None,
    return_all: bool = True,
    limit: int = 50,
) -> AsyncIterator[Any]:
    """
    Iterate over the records of a list operation.

    Args:
        client: Client used to run each page request
        resource: Resource name
        operation: List operation name
        base_params: Filters and other parameters sent with every page
        max_results: Stop after this many records
        return_all: Page until the results run out; when False a single
            page of at most ``limit`` records is returned
        limit: Page size for the single page when ``return_all`` is False

    Yields:
        Records in server order
    """
    route = get_route(resource, operation)
    if route.pagination is PaginationStyle.NONE:
        raise ValidationError(f"{resource}.{operation} does not support pagination")

    if route.pagination is PaginationStyle.PAGE:
        position_key, size_key, start = "page", "per_page", 1
    else:
        position_key, size_key, start = "offset", "limit", 0

    params = dict(base_params or {})

    if not return_all:
        if limit < 1:
            raise ValidationError("limit must be at least 1", field_name="limit")
        params[size_key] = limit
        params.setdefault(position_key, start)
        result = await client.run(resource, operation, params)
        for record in extract_records(result.body)[:limit]:
            yield record
        return

    if max_results is not None and max_results <= 0:
        return

    page_size = int(params.get(size_key) or route.page_size)
    position = start
    yielded = 0

    while True:
        params[position_key] = position
        params[size_key] = page_size

        result = await client.run(resource, operation, params)
        records = extract_records(result.body)

        logger.debug(
            f"[immojump] {resource}.{operation} {position_key}={position} "
            f"returned {len(records)} records"
        )

        for record in records:
            yield record
            yielded += 1
            if max_results is not None and yielded >= max_results:
                return

        if len(records) < page_size:
            return

        position += 1 if route.pagination is PaginationStyle.PAGE else page_size


async def collect_all(
    client: ImmojumpClient,
    resource: str,
    operation: str = "list",
    base_params: dict[str, Any] | None = None,
    **kwargs: Any,
) -> list[Any]:
    """Drain ``list_all`` into a list."""
    return [
        record
        async for record in list_all(client, resource, operation, base_params, **kwargs)
    ]
