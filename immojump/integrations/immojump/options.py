"""
Option loading for Immojump selection fields.

Fetches reference data (statuses, tags, feed channels) and turns it into
label/value pairs.

Failure Mode (Graceful Degradation):
    - Options feed a selection UI that must always render something
    - Wrong response shape: empty list, logged as a warning
    - API or network failure: two placeholder items carrying the error
    - Tags without an organisation: one placeholder item, no request made
    - ``strict=True`` propagates errors instead of returning placeholders
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from immojump.integrations.base import IntegrationError, ValidationError
from immojump.integrations.immojump.schemas import ReferenceRecord

if TYPE_CHECKING:
    from immojump.integrations.immojump.client import ImmojumpClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OptionItem:
    """A label/value pair for a selection field."""

    label: str
    value: str


@dataclass(frozen=True, slots=True)
class OptionKind:
    """Where an option kind is loaded from and how it is labelled."""

    resource: str
    operation: str
    label_prefix: str
    requires_organisation: bool = False


OPTION_KINDS: dict[str, OptionKind] = {
    "statuses": OptionKind("status", "list", "Status"),
    "tags": OptionKind("tag", "list", "Tag", requires_organisation=True),
    "channels": OptionKind("feed", "list_channels", "Channel"),
}

MISSING_ORGANISATION = OptionItem("Debug: Missing organisation", "missing_org")
API_ERROR = OptionItem("Debug: API Error", "error")


def to_option(record: ReferenceRecord, label_prefix: str, *, use_name_as_value: bool = False) -> OptionItem:
    """Derive an option from a reference record."""
    has_name = isinstance(record.name, str) and record.name.strip() != ""
    label = record.name if has_name else f"{label_prefix} {record.id}"
    value = record.name if (has_name and use_name_as_value) else str(record.id)
    return OptionItem(label=label, value=value)


def parse_records(payload: list[Any]) -> list[ReferenceRecord]:
    """Keep the entries that look like reference records."""
    records: list[ReferenceRecord] = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        try:
            records.append(ReferenceRecord.model_validate(entry))
        except PydanticValidationError:
            continue
    return records


class OptionLoader:
    """
    Loads selection options from the Immojump API.

    Usage:
        loader = OptionLoader(client)
        statuses = await loader.load_options("statuses")
    """

    def __init__(self, client: ImmojumpClient, *, strict: bool = False):
        self.client = client
        self.strict = strict

    async def load_options(
        self,
        kind: str,
        *,
        use_name_as_value: bool = False,
    ) -> list[OptionItem]:
        """
        Load the options of one kind.

        Args:
            kind: statuses, tags or channels
            use_name_as_value: Use the record name as the option value
                (for filters that compare names), falling back to the id

        Returns:
            Options in server order
        """
        option_kind = OPTION_KINDS.get(kind)
        if option_kind is None:
            raise ValidationError(
                f"Unknown option kind: {kind} (expected one of {', '.join(OPTION_KINDS)})"
            )

        if option_kind.requires_organisation and not self.client.auth.organisation_id:
            logger.warning(f"[immojump] Cannot load {kind}: missing organisation ID")
            return [MISSING_ORGANISATION]

        try:
            result = await self.client.run(option_kind.resource, option_kind.operation)
        except IntegrationError as e:
            if self.strict:
                raise
            logger.error(
                f"[immojump] Loading {kind} failed: {e.message} "
                f"(status={e.status_code})"
            )
            return [
                API_ERROR,
                OptionItem(f"Debug: {e.message or 'Unknown error'}", "debug"),
            ]

        if not isinstance(result.body, list):
            logger.warning(
                f"[immojump] Unexpected {kind} payload: {type(result.body).__name__}"
            )
            return []

        records = parse_records(result.body)
        logger.debug(f"[immojump] Loaded {len(records)} {kind}")

        return [
            to_option(record, option_kind.label_prefix, use_name_as_value=use_name_as_value)
            for record in records
        ]
