"""
Pydantic schemas for the Immojump API.

Request schemas map the parameters a caller configured onto the API's
request bodies and query strings. Create schemas always send their required
fields plus any non-empty optional field; update schemas only send what was
explicitly set.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from immojump.integrations.base import ValidationError

# =============================================================================
# Enums
# =============================================================================


class ActivityType(str, Enum):
    """Activity kinds known to the API."""

    ANRUF = "ANRUF"
    BESICHTIGUNG = "BESICHTIGUNG"
    BRIEF = "BRIEF"
    EMAIL = "E-MAIL"
    MEETING = "MEETING"
    NOTIZ = "NOTIZ"
    SONSTIGES = "SONSTIGES"


class ActivityStatus(str, Enum):
    """Activity lifecycle states."""

    GEPLANT = "Geplant"
    IN_BEARBEITUNG = "In Bearbeitung"
    ABGESCHLOSSEN = "Abgeschlossen"
    ABGEBROCHEN = "Abgebrochen"


class ActivityPriority(str, Enum):
    """Activity priorities. NA means not set."""

    HOCH = "Hoch"
    MITTEL = "Mittel"
    NIEDRIG = "Niedrig"
    NA = "NA"


# Filter value meaning "do not filter"
ANY_FILTER = "all"


# =============================================================================
# Helpers
# =============================================================================


def parse_json_field(value: Any, field_name: str) -> Any:
    """
    Decode a free-text JSON field.

    Non-string values are taken as already decoded.

    Raises:
        ValidationError: If the text is not valid JSON
    """
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError as e:
        raise ValidationError(
            f"{field_name} must be valid JSON",
            field_name=field_name,
        ) from e


def _parse_contact_ids(value: Any) -> list[Any] | None:
    """Decode contact_ids, which must be a JSON array of UUID strings."""
    if value is None or value == "":
        return None
    parsed = parse_json_field(value, "contact_ids")
    if not isinstance(parsed, list):
        raise ValidationError(
            "contact_ids must be an array of UUID strings",
            field_name="contact_ids",
        )
    return parsed


def _merge_json_object(target: dict[str, Any], raw: Any, field_name: str) -> None:
    """Shallow-merge a JSON object text field into ``target``."""
    if raw is None or raw == "":
        return
    parsed = parse_json_field(raw, field_name)
    if not isinstance(parsed, dict):
        raise ValidationError(
            f"{field_name} must be a JSON object",
            field_name=field_name,
        )
    target.update(parsed)


def _coerce_id(value: str | int) -> str | int:
    """Send numeric string ids as integers."""
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


# =============================================================================
# Property (Immobilie)
# =============================================================================


class PropertyCreate(BaseModel):
    """Schema for creating (or fully replacing) a property."""

    type: str = Field("ETW", min_length=1, description="Property type code")
    title: str | None = None
    address: str | None = None
    price: float | None = Field(None, ge=0)
    daten: str | dict[str, Any] | None = Field(
        None, description="Raw extra data as a JSON object"
    )

    def to_api_dict(self, organisation_id: str = "") -> dict[str, Any]:
        """Convert to API request format."""
        daten: dict[str, Any] = {}
        if self.title:
            daten["title"] = self.title
        if self.address:
            daten["address"] = self.address
        if self.price is not None:
            daten["price"] = self.price
        _merge_json_object(daten, self.daten, "daten")

        body: dict[str, Any] = {"type": self.type, "daten": daten}
        if organisation_id:
            body["organisation_id"] = organisation_id
        return body


class PropertyUpdate(BaseModel):
    """Schema for a sparse property update."""

    status: str | None = None
    status_id: str | int | None = None
    type: str | None = None
    title: str | None = None
    address: str | None = None
    price: float | None = None
    daten: str | dict[str, Any] | None = None

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to API request format, only explicitly set fields."""
        fields = self.model_dump(exclude_unset=True)
        data: dict[str, Any] = {}
        for key in ("status", "type"):
            if key in fields:
                data[key] = fields[key]
        if "status_id" in fields:
            data["status_id"] = (
                _coerce_id(fields["status_id"]) if fields["status_id"] is not None else None
            )

        daten: dict[str, Any] = {}
        for key in ("title", "address", "price"):
            if key in fields:
                daten[key] = fields[key]
        _merge_json_object(daten, fields.get("daten"), "daten")
        if daten:
            data["daten"] = daten
        return data


class PropertyQuery(BaseModel):
    """Query parameters for listing properties (offset pagination)."""

    offset: int = Field(0, ge=0)
    limit: int = Field(50, ge=1, le=100, description="Max number of results")

    def to_params(self) -> dict[str, Any]:
        return {"offset": self.offset, "limit": self.limit}


class StatusUpdate(BaseModel):
    """Schema for setting a property's status."""

    status_id: str | int

    def to_api_dict(self) -> dict[str, Any]:
        return {"status_id": _coerce_id(self.status_id)}


# =============================================================================
# Contacts
# =============================================================================


class ContactCreate(BaseModel):
    """Schema for creating a contact."""

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    organisation_id: str | None = None
    email: str | None = None
    phone: str | None = None
    mobile: str | None = None
    address: str | None = None
    role: str | None = None
    company: str | None = None

    def to_api_dict(self, default_organisation_id: str = "") -> dict[str, Any]:
        """Convert to API request format, excluding empty optionals."""
        data: dict[str, Any] = {
            "first_name": self.first_name,
            "last_name": self.last_name,
        }
        organisation_id = self.organisation_id or default_organisation_id
        if organisation_id:
            data["organisation_id"] = organisation_id
        for key in ("email", "phone", "mobile", "address", "role", "company"):
            value = getattr(self, key)
            if value:
                data[key] = value
        return data


class ContactUpdate(BaseModel):
    """Schema for updating a contact."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    mobile: str | None = None
    address: str | None = None
    role: str | None = None
    company: str | None = None

    def to_api_dict(self) -> dict[str, Any]:
        """
        Convert to API request format.

        Names are only sent when non-empty; every other field is sent once
        explicitly set, even to an empty value, so it can be cleared.
        """
        fields = self.model_dump(exclude_unset=True)
        data: dict[str, Any] = {}
        for key, value in fields.items():
            if key in ("first_name", "last_name") and not value:
                continue
            data[key] = value
        return data


class ContactQuery(BaseModel):
    """Query parameters for listing contacts."""

    organisation_id: str | None = None
    page: int = Field(1, ge=1)
    per_page: int = Field(50, ge=1, le=200)
    search: str | None = None
    sort: str | None = None
    order: Literal["asc", "desc"] = "asc"

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"page": self.page, "per_page": self.per_page}
        if self.organisation_id:
            params["organisation_id"] = self.organisation_id
        if self.search:
            params["q"] = self.search
        if self.sort:
            params["sort"] = self.sort
            params["order"] = self.order
        return params


# =============================================================================
# Activities
# =============================================================================


class ActivityCreate(BaseModel):
    """Schema for creating an activity."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    title: str = Field(..., min_length=1)
    type: ActivityType = ActivityType.ANRUF
    status: ActivityStatus = ActivityStatus.GEPLANT
    priority: ActivityPriority = ActivityPriority.NA
    description: str | None = None
    scheduled_start: str | None = None
    scheduled_end: str | None = None
    actual_start: str | None = None
    actual_end: str | None = None
    assigned_to_id: str | None = None
    immobilien_id: str | None = None
    organisation_id: str | None = None
    contact_ids: str | list[str] | None = Field(
        None, description="JSON array of contact UUIDs"
    )

    def to_api_dict(self, default_organisation_id: str = "") -> dict[str, Any]:
        """Convert to API request format, excluding empty optionals."""
        data: dict[str, Any] = {
            "title": self.title,
            "type": self.type,
            "status": self.status,
            "priority": self.priority,
        }
        for key in (
            "description",
            "scheduled_start",
            "scheduled_end",
            "actual_start",
            "actual_end",
            "assigned_to_id",
            "immobilien_id",
        ):
            value = getattr(self, key)
            if value:
                data[key] = value

        organisation_id = self.organisation_id or default_organisation_id
        if organisation_id:
            data["organisation_id"] = organisation_id

        contact_ids = _parse_contact_ids(self.contact_ids)
        if contact_ids is not None:
            data["contact_ids"] = contact_ids
        return data


class ActivityUpdate(BaseModel):
    """Schema for a sparse activity update."""

    model_config = ConfigDict(use_enum_values=True)

    title: str | None = None
    type: ActivityType | None = None
    status: ActivityStatus | None = None
    priority: ActivityPriority | None = None
    description: str | None = None
    scheduled_start: str | None = None
    scheduled_end: str | None = None
    actual_start: str | None = None
    actual_end: str | None = None
    assigned_to_id: str | None = None
    immobilien_id: str | None = None
    contact_ids: str | list[str] | None = None

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to API request format, only explicitly set fields."""
        fields = self.model_dump(exclude_unset=True)
        data: dict[str, Any] = {}
        for key, value in fields.items():
            if key == "contact_ids":
                # An explicitly empty value unlinks all contacts
                data[key] = _parse_contact_ids(value) or []
            elif key == "immobilien_id":
                # An empty id unlinks the property
                data[key] = value or None
            else:
                data[key] = value
        return data


class ActivityQuery(BaseModel):
    """Query parameters for listing activities."""

    organisation_id: str | None = None
    page: int = Field(1, ge=1)
    per_page: int = Field(25, ge=1, le=200)
    search: str | None = None
    type_filter: str = ANY_FILTER
    status_filter: str = ANY_FILTER
    priority_filter: str = ANY_FILTER
    immobilien_id: str | None = None

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"page": self.page, "per_page": self.per_page}
        if self.organisation_id:
            params["organisation_id"] = self.organisation_id
        if self.search:
            params["q"] = self.search
        for key, value in (
            ("type", self.type_filter),
            ("status", self.status_filter),
            ("priority", self.priority_filter),
        ):
            if value and value != ANY_FILTER:
                params[key] = value
        if self.immobilien_id:
            params["immobilie"] = self.immobilien_id
        return params


# =============================================================================
# Feed, integration events and webhooks
# =============================================================================


class FeedPost(BaseModel):
    """Schema for posting an organisation feed message."""

    title: str = Field(..., min_length=1)
    message: str = Field(..., description="Message body (HTML)")
    channel_id: str | None = None

    def to_api_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title, "message": self.message}
        if self.channel_id:
            data["channel_id"] = self.channel_id
        return data


class IntegrationTestEvent(BaseModel):
    """Schema for sending a test integration event."""

    object_type: str = "integration"
    object_id: str = "test"
    payload: str | dict[str, Any] | None = None

    def to_api_dict(self) -> dict[str, Any]:
        payload = self.payload
        if payload is None or payload == "":
            payload = {}
        return {
            "object_type": self.object_type,
            "object_id": self.object_id,
            "payload": parse_json_field(payload, "payload"),
        }


class WebhookSubscriptionCreate(BaseModel):
    """Schema for registering a webhook subscription."""

    target_url: str = Field(..., min_length=1)
    event_types: list[str] = Field(default_factory=list)

    def to_api_dict(self) -> dict[str, Any]:
        return {"target_url": self.target_url, "event_types": list(self.event_types)}


# =============================================================================
# Response Schemas
# =============================================================================


class ReferenceRecord(BaseModel):
    """A status, tag or channel record as returned by the API."""

    model_config = ConfigDict(extra="ignore")

    id: str | int
    name: str | None = None
