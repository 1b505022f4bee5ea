"""
Request routes for the Immojump API.

A static table maps every (resource, operation) pair to a route: HTTP
method, path template, the parameters it accepts and the mappers that
shape the body and query string. ``build`` validates a parameter bag
against the route and produces an immutable RequestSpec.

Usage:
    auth = resolve(credentials)
    spec = build(
        "activity",
        "update",
        {"activity_id": "a-1", "update_fields": {"status": "Geplant"}},
        auth,
    )
    # spec.method == "PUT", spec.body == {"status": "Geplant"}

Parameter naming:
    - Path identifiers are named after their resource (``contact_id``)
    - Update operations take their sparse changes in ``update_fields``
    - Create operations take their fields flat
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from string import Formatter
from typing import Any, TypeVar
from urllib.parse import quote

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from immojump.integrations.base import ConfigError, RequestSpec, ValidationError
from immojump.integrations.immojump.credentials import CREDENTIAL_TEST_PATH, AuthContext
from immojump.integrations.immojump.schemas import (
    ActivityCreate,
    ActivityQuery,
    ActivityUpdate,
    ContactCreate,
    ContactQuery,
    ContactUpdate,
    FeedPost,
    IntegrationTestEvent,
    PropertyCreate,
    PropertyQuery,
    PropertyUpdate,
    StatusUpdate,
    WebhookSubscriptionCreate,
    parse_json_field,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

Params = dict[str, Any]
BodyMapper = Callable[[Params, AuthContext], Any]
QueryMapper = Callable[[Params, AuthContext], dict[str, Any]]
PathResolver = Callable[[Params, AuthContext], str]


class PaginationStyle(str, Enum):
    """How a list operation pages through results."""

    NONE = "none"
    PAGE = "page"  # page / per_page
    OFFSET = "offset"  # offset / limit


@dataclass(frozen=True, slots=True)
class OperationRoute:
    """Static description of one (resource, operation) pair."""

    method: str
    path: str | PathResolver
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()
    body: BodyMapper | None = None
    query: QueryMapper | None = None
    pagination: PaginationStyle = PaginationStyle.NONE
    page_size: int = 0

    @property
    def path_params(self) -> tuple[str, ...]:
        """Identifiers interpolated into the path template."""
        if not isinstance(self.path, str):
            return ()
        return tuple(name for _, name, _, _ in Formatter().parse(self.path) if name)

    @property
    def accepted(self) -> frozenset[str]:
        """Every parameter name this operation accepts."""
        return frozenset(self.path_params + self.required + self.optional)


# =============================================================================
# Mapping helpers
# =============================================================================


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _pick(params: Params, names: tuple[str, ...]) -> Params:
    """Subset of params with the given names that are not None."""
    return {name: params[name] for name in names if params.get(name) is not None}


def _model(model_cls: type[M], data: Any, label: str) -> M:
    """
    Instantiate a request schema, mapping failures to ValidationError.

    Unknown keys are rejected rather than silently dropped.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError(f"{label} must be an object", field_name=label)

    unknown = sorted(set(data) - set(model_cls.model_fields))
    if unknown:
        raise ValidationError(
            f"Unknown field(s) in {label}: {', '.join(unknown)}",
            field_name=label,
        )

    try:
        return model_cls(**data)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid {label}: {details}", field_name=label) from e


def _stringify(params: dict[str, Any]) -> dict[str, str]:
    return {key: str(value) for key, value in params.items() if value is not None}


def _tag_ids(params: Params, auth: AuthContext) -> list[Any]:
    raw = params.get("tag_ids")
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        stripped = raw.strip()
        if stripped.startswith("["):
            raw = parse_json_field(stripped, "tag_ids")
        else:
            raw = [part.strip() for part in stripped.split(",") if part.strip()]
    if not isinstance(raw, list):
        raise ValidationError("tag_ids must be a list of tag ids", field_name="tag_ids")
    return raw


def _organisation_path(params: Params, auth: AuthContext) -> str:
    if not auth.organisation_id:
        raise ConfigError("Organisation ID is required to list tags")
    return f"/api/{quote(auth.organisation_id, safe='')}/tags"


def _activity_create_path(params: Params, auth: AuthContext) -> str:
    immobilien_id = params.get("immobilien_id")
    if _is_empty(immobilien_id):
        return "/api/activities/activities"
    return f"/api/activities/activities/immobilie/{quote(str(immobilien_id), safe='')}"


def _with_org(query: BaseModel, auth: AuthContext) -> dict[str, Any]:
    params = query.to_params()
    if "organisation_id" not in params and auth.organisation_id:
        params["organisation_id"] = auth.organisation_id
    return params


# Field lists shared between create and replace style operations
_PROPERTY_FIELDS = ("type", "title", "address", "price", "daten")
_CONTACT_FIELDS = (
    "organisation_id",
    "email",
    "phone",
    "mobile",
    "address",
    "role",
    "company",
)
_ACTIVITY_FIELDS = (
    "type",
    "status",
    "priority",
    "description",
    "scheduled_start",
    "scheduled_end",
    "actual_start",
    "actual_end",
    "assigned_to_id",
    "immobilien_id",
    "organisation_id",
    "contact_ids",
)


def _property_body(params: Params, auth: AuthContext) -> Any:
    return _model(
        PropertyCreate, _pick(params, _PROPERTY_FIELDS), "property"
    ).to_api_dict(auth.organisation_id)


def _update_body(model_cls: type[BaseModel]) -> BodyMapper:
    def mapper(params: Params, auth: AuthContext) -> Any:
        return _model(model_cls, params.get("update_fields"), "update_fields").to_api_dict()

    return mapper


# =============================================================================
# Route table
# =============================================================================

ROUTES: dict[str, dict[str, OperationRoute]] = {
    "user": {
        "me": OperationRoute("GET", CREDENTIAL_TEST_PATH),
    },
    "property": {
        "list": OperationRoute(
            "GET",
            "/api/v2/immobilien",
            optional=("offset", "limit"),
            query=lambda p, a: _model(PropertyQuery, _pick(p, ("offset", "limit")), "query").to_params(),
            pagination=PaginationStyle.OFFSET,
            page_size=100,
        ),
        "get": OperationRoute("GET", "/api/v2/immobilien/{property_id}"),
        "create": OperationRoute(
            "POST",
            "/api/v2/immobilien",
            optional=_PROPERTY_FIELDS,
            body=_property_body,
        ),
        "update": OperationRoute(
            "PATCH",
            "/api/v2/immobilien/{property_id}",
            optional=("update_fields",),
            body=_update_body(PropertyUpdate),
        ),
        "replace": OperationRoute(
            "PUT",
            "/api/v2/immobilien/{property_id}",
            optional=_PROPERTY_FIELDS,
            body=_property_body,
        ),
        "delete": OperationRoute("DELETE", "/api/v2/immobilien/{property_id}"),
        "update_status": OperationRoute(
            "PUT",
            "/api/statuses/immobilien/{property_id}/status",
            required=("status_id",),
            body=lambda p, a: _model(StatusUpdate, _pick(p, ("status_id",)), "status").to_api_dict(),
        ),
        "set_tags": OperationRoute(
            "PUT",
            "/api/immobilie/{property_id}/tags",
            optional=("tag_ids",),
            body=_tag_ids,
        ),
    },
    "status": {
        "list": OperationRoute(
            "GET",
            "/api/statuses/statuses",
            query=lambda p, a: (
                {"organisation_id": a.organisation_id} if a.organisation_id else {}
            ),
        ),
    },
    "tag": {
        "list": OperationRoute("GET", _organisation_path),
    },
    "feed": {
        "list_channels": OperationRoute("GET", "/api/organisation-feed/channels"),
        "post": OperationRoute(
            "POST",
            "/api/organisation-feed/post",
            required=("title",),
            optional=("message", "channel_id"),
            body=lambda p, a: _model(
                FeedPost,
                {"message": "", **_pick(p, ("title", "message", "channel_id"))},
                "feed post",
            ).to_api_dict(),
        ),
    },
    "integration-event": {
        "send_test_event": OperationRoute(
            "POST",
            "/api/integrations/test-event",
            optional=("object_type", "object_id", "payload"),
            body=lambda p, a: _model(
                IntegrationTestEvent,
                _pick(p, ("object_type", "object_id", "payload")),
                "test event",
            ).to_api_dict(),
        ),
    },
    "webhook": {
        "create": OperationRoute(
            "POST",
            "/api/integrations/webhooks",
            required=("target_url",),
            optional=("event_types",),
            body=lambda p, a: _model(
                WebhookSubscriptionCreate,
                _pick(p, ("target_url", "event_types")),
                "webhook",
            ).to_api_dict(),
        ),
        "list": OperationRoute("GET", "/api/integrations/webhooks"),
        "delete": OperationRoute("DELETE", "/api/integrations/webhooks/{webhook_id}"),
    },
    "contact": {
        "list": OperationRoute(
            "GET",
            "/api/contacts",
            optional=("organisation_id", "page", "per_page", "search", "sort", "order"),
            query=lambda p, a: _with_org(
                _model(
                    ContactQuery,
                    _pick(p, ("organisation_id", "page", "per_page", "search", "sort", "order")),
                    "query",
                ),
                a,
            ),
            pagination=PaginationStyle.PAGE,
            page_size=50,
        ),
        "get": OperationRoute("GET", "/api/contacts/{contact_id}"),
        "create": OperationRoute(
            "POST",
            "/api/contacts",
            required=("first_name", "last_name"),
            optional=_CONTACT_FIELDS,
            body=lambda p, a: _model(
                ContactCreate,
                _pick(p, ("first_name", "last_name") + _CONTACT_FIELDS),
                "contact",
            ).to_api_dict(a.organisation_id),
        ),
        "update": OperationRoute(
            "PUT",
            "/api/contacts/{contact_id}",
            optional=("update_fields",),
            body=_update_body(ContactUpdate),
        ),
        "delete": OperationRoute("DELETE", "/api/contacts/{contact_id}"),
    },
    "activity": {
        "list": OperationRoute(
            "GET",
            "/api/activities/activities",
            optional=(
                "organisation_id",
                "page",
                "per_page",
                "search",
                "type_filter",
                "status_filter",
                "priority_filter",
                "immobilien_id",
            ),
            query=lambda p, a: _with_org(
                _model(
                    ActivityQuery,
                    _pick(
                        p,
                        (
                            "organisation_id",
                            "page",
                            "per_page",
                            "search",
                            "type_filter",
                            "status_filter",
                            "priority_filter",
                            "immobilien_id",
                        ),
                    ),
                    "query",
                ),
                a,
            ),
            pagination=PaginationStyle.PAGE,
            page_size=25,
        ),
        "get": OperationRoute("GET", "/api/activities/activities/{activity_id}"),
        "create": OperationRoute(
            "POST",
            _activity_create_path,
            required=("title",),
            optional=_ACTIVITY_FIELDS,
            body=lambda p, a: _model(
                ActivityCreate,
                _pick(p, ("title",) + _ACTIVITY_FIELDS),
                "activity",
            ).to_api_dict(a.organisation_id),
        ),
        "update": OperationRoute(
            "PUT",
            "/api/activities/activities/{activity_id}",
            optional=("update_fields",),
            body=_update_body(ActivityUpdate),
        ),
        "delete": OperationRoute("DELETE", "/api/activities/activities/{activity_id}"),
    },
}

RESOURCE_ALIASES = {
    "immobilie": "property",
    "integration": "integration-event",
}


# =============================================================================
# Public API
# =============================================================================


def get_route(resource: str, operation: str) -> OperationRoute:
    """
    Look up the route for a resource/operation pair.

    Raises:
        ValidationError: If the pair is not in the table
    """
    resource = RESOURCE_ALIASES.get(resource, resource)
    operations = ROUTES.get(resource)
    if operations is None:
        raise ValidationError(f"Unknown resource: {resource}")
    route = operations.get(operation)
    if route is None:
        raise ValidationError(f"Unknown operation '{operation}' for resource '{resource}'")
    return route


def list_operations() -> dict[str, list[str]]:
    """All supported operations, grouped by resource."""
    return {resource: sorted(ops) for resource, ops in ROUTES.items()}


def build(
    resource: str,
    operation: str,
    params: Params | None,
    auth: AuthContext,
) -> RequestSpec:
    """
    Build the request for a resource operation.

    Args:
        resource: Resource name (property, contact, activity, ...)
        operation: Operation name (list, get, create, update, ...)
        params: Parameter bag configured by the caller
        auth: Resolved credentials

    Returns:
        RequestSpec with the auth headers merged in

    Raises:
        ValidationError: Unknown parameters, missing identifiers or
            malformed field values
        ConfigError: The operation needs configuration that is missing
    """
    params = dict(params or {})
    route = get_route(resource, operation)

    unknown = sorted(set(params) - route.accepted)
    if unknown:
        raise ValidationError(
            f"Unknown parameter(s) for {resource}.{operation}: {', '.join(unknown)}"
        )

    for name in route.path_params + route.required:
        if _is_empty(params.get(name)):
            raise ValidationError(
                f"{name} is required for {resource}.{operation}",
                field_name=name,
            )

    if isinstance(route.path, str):
        path = route.path.format(
            **{name: quote(str(params[name]).strip(), safe="") for name in route.path_params}
        )
    else:
        path = route.path(params, auth)

    query = _stringify(route.query(params, auth)) if route.query else {}
    body = route.body(params, auth) if route.body else None

    logger.debug(f"[immojump] Built {route.method} {path} for {resource}.{operation}")

    return RequestSpec(
        method=route.method,
        path=path,
        query=query,
        body=body,
        headers=dict(auth.headers),
    )
