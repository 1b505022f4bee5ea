"""
Tests for inbound webhook filtering.

Tests cover:
- Dedupe window behaviour and eviction
- Event type allow-list
- Attribute filters (AND semantics)
- Both delivery envelopes
- Trigger configuration parsing
"""

import pytest

from immojump.triggers import (
    DEDUPE_WINDOW_SIZE,
    DedupeWindow,
    DropReason,
    TriggerConfig,
    WebhookEvent,
    WebhookEventFilter,
)


def make_event(event_id, event_type="immobilie.created", **payload):
    return {
        "id": event_id,
        "type": event_type,
        "object": {"id": "immo-1", "type": "ETW"},
        "payload": payload,
    }


# =============================================================================
# Dedupe window
# =============================================================================


class TestDedupeWindow:
    """Tests for DedupeWindow."""

    def test_seen(self):
        window = DedupeWindow()

        assert window.seen("a") is False
        assert window.seen("a") is True
        assert len(window) == 1

    def test_evicts_oldest(self):
        window = DedupeWindow(maxlen=3)
        for event_id in ("a", "b", "c", "d"):
            window.add(event_id)

        assert "a" not in window
        assert window.to_list() == ["b", "c", "d"]

    def test_restored_from_list(self):
        window = DedupeWindow(["x", "y"])
        assert "x" in window
        assert window.seen("y") is True

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            DedupeWindow(maxlen=0)


# =============================================================================
# Filter
# =============================================================================


class TestWebhookEventFilter:
    """Tests for WebhookEventFilter.evaluate()."""

    def test_emits_matching_event_unchanged(self, status_changed_body):
        event_filter = WebhookEventFilter(TriggerConfig())

        result = event_filter.evaluate(status_changed_body)

        assert result.emitted is True
        assert result.reason is None
        assert result.output == status_changed_body

    def test_duplicate_dropped(self, status_changed_body):
        event_filter = WebhookEventFilter(TriggerConfig())

        first = event_filter.evaluate(status_changed_body)
        second = event_filter.evaluate(status_changed_body)

        assert first.emitted is True
        assert second.emitted is False
        assert second.reason is DropReason.DUPLICATE
        assert second.output is None

    def test_window_of_500(self):
        """The 501st distinct id evicts the first one."""
        event_filter = WebhookEventFilter(TriggerConfig())

        for i in range(DEDUPE_WINDOW_SIZE + 1):
            assert event_filter.evaluate(make_event(f"evt-{i}")).emitted

        assert len(event_filter.window) == DEDUPE_WINDOW_SIZE
        assert event_filter.evaluate(make_event("evt-0")).emitted is True
        assert event_filter.evaluate(make_event("evt-500")).emitted is False

    def test_dedupe_disabled(self, status_changed_body):
        event_filter = WebhookEventFilter(TriggerConfig(dedupe=False))

        assert event_filter.evaluate(status_changed_body).emitted
        assert event_filter.evaluate(status_changed_body).emitted

    def test_events_without_id_not_deduped(self):
        event_filter = WebhookEventFilter(TriggerConfig())
        body = make_event(None)

        assert event_filter.evaluate(body).emitted
        assert event_filter.evaluate(body).emitted
        assert len(event_filter.window) == 0

    def test_dropped_event_still_remembered(self):
        """An id is recorded even when a later filter drops the event."""
        event_filter = WebhookEventFilter(TriggerConfig(event_types=["immobilie.created"]))

        dropped = event_filter.evaluate(make_event("evt-1", "contact.created"))

        assert dropped.reason is DropReason.EVENT_TYPE
        assert "evt-1" in event_filter.window

    def test_type_not_in_allow_list(self):
        event_filter = WebhookEventFilter(TriggerConfig(event_types="immobilie.created"))

        result = event_filter.evaluate(make_event("evt-1", "immobilie.deleted"))

        assert result.reason is DropReason.EVENT_TYPE

    def test_empty_allow_list_drops_everything(self):
        event_filter = WebhookEventFilter(TriggerConfig(event_types=[]))

        assert event_filter.evaluate(make_event("evt-1")).reason is DropReason.EVENT_TYPE

    def test_status_filters(self, status_changed_body):
        config = TriggerConfig(filter_status_from="Akquise", filter_status_to="Verkauft")

        assert WebhookEventFilter(config).evaluate(status_changed_body).emitted

    def test_status_filters_and_semantics(self, status_changed_body):
        """Every configured filter has to match."""
        config = TriggerConfig(filter_status_from="Akquise", filter_status_to="Reserviert")

        result = WebhookEventFilter(config).evaluate(status_changed_body)

        assert result.reason is DropReason.STATUS_TO

    def test_status_id_fallback(self):
        """Without a status name the status id is compared."""
        body = make_event("evt-1", "immobilie.status_changed", old_status_id=3)
        config = TriggerConfig(filter_status_from="3")

        assert WebhookEventFilter(config).evaluate(body).emitted

    def test_status_from_missing(self):
        body = make_event("evt-1", "immobilie.status_changed")
        config = TriggerConfig(filter_status_from="Akquise")

        assert WebhookEventFilter(config).evaluate(body).reason is DropReason.STATUS_FROM

    def test_tag_filter(self):
        config = TriggerConfig(
            event_types=["immobilie.tag_added"],
            filter_tag_name="Premium",
        )
        event_filter = WebhookEventFilter(config)

        assert event_filter.evaluate(make_event("e1", "immobilie.tag_added", tag_name="Premium")).emitted
        assert (
            event_filter.evaluate(make_event("e2", "immobilie.tag_added", tag_name="Basis")).reason
            is DropReason.TAG
        )

    def test_object_id_filter(self, status_changed_body):
        matching = TriggerConfig(filter_object_id=" immo-42 ")
        other = TriggerConfig(filter_object_id="immo-7")

        assert WebhookEventFilter(matching).evaluate(status_changed_body).emitted
        assert WebhookEventFilter(other).evaluate(status_changed_body).reason is DropReason.OBJECT_ID

    def test_property_type_filter(self):
        created = make_event("evt-1", "immobilie.created")

        assert WebhookEventFilter(TriggerConfig(property_types="ETW, EFH")).evaluate(created).emitted
        assert (
            WebhookEventFilter(TriggerConfig(property_types=["MFH"])).evaluate(created).reason
            is DropReason.PROPERTY_TYPE
        )

    def test_property_type_filter_only_for_created(self, status_changed_body):
        """Status changes pass a property type filter they do not match."""
        config = TriggerConfig(
            event_types=["immobilie.status_changed", "immobilie.created"],
            property_types=["MFH"],
        )

        result = WebhookEventFilter(config).evaluate(status_changed_body)

        assert result.emitted is True

    def test_property_type_from_top_level_object_type(self):
        body = {"event": "immobilie.created", "immobilie": {"id": 1}, "object_type": "EFH"}

        assert WebhookEventFilter(TriggerConfig(property_types=["EFH"])).evaluate(body).emitted

    def test_status_filter_any_of(self, status_changed_body):
        """A list valued filter matches any of its entries."""
        config = TriggerConfig(filter_status_to=["Verkauft", "Reserviert"])

        assert WebhookEventFilter(config).evaluate(status_changed_body).emitted

    def test_status_filter_any_of_no_match(self, status_changed_body):
        config = TriggerConfig(filter_status_to="Reserviert, Archiviert")

        result = WebhookEventFilter(config).evaluate(status_changed_body)

        assert result.reason is DropReason.STATUS_TO

    def test_tag_filter_any_of(self):
        config = TriggerConfig(
            event_types=["immobilie.tag_added"],
            filter_tag_name=["Premium", "Neubau"],
        )
        event_filter = WebhookEventFilter(config)

        assert event_filter.evaluate(make_event("e1", "immobilie.tag_added", tag_name="Neubau")).emitted
        assert event_filter.evaluate(make_event("e2", "immobilie.tag_added", tag_id=7)).reason is DropReason.TAG

    def test_current_envelope(self):
        """The {event, immobilie, payload} shape is understood."""
        body = {
            "event": "immobilie.status_changed",
            "immobilie": {"id": 42},
            "payload": {"new_status_name": "Verkauft"},
        }
        config = TriggerConfig(filter_object_id="42", filter_status_to="Verkauft")

        result = WebhookEventFilter(config).evaluate(body)

        assert result.emitted is True
        assert result.output == body

    def test_shared_window(self):
        """Filters built over the same window share dedupe state."""
        window = DedupeWindow()

        WebhookEventFilter(TriggerConfig(), window).evaluate(make_event("evt-1"))
        result = WebhookEventFilter(TriggerConfig(), window).evaluate(make_event("evt-1"))

        assert result.reason is DropReason.DUPLICATE


class TestWebhookEvent:
    """Tests for WebhookEvent parsing."""

    def test_numeric_id_stringified(self):
        event = WebhookEvent.from_body({"id": 17, "type": "immobilie.created"})

        assert event.id == "17"
        assert event.payload == {}
        assert event.object is None

    def test_non_dict_payload_ignored(self):
        event = WebhookEvent.from_body({"type": "x", "payload": "text"})
        assert event.payload == {}


class TestTriggerConfig:
    """Tests for TriggerConfig parsing."""

    def test_defaults(self):
        config = TriggerConfig()

        assert config.event_types == ["immobilie.created", "immobilie.status_changed"]
        assert config.dedupe is True

    def test_comma_separated_event_types(self):
        config = TriggerConfig(event_types=" immobilie.created, ,contact.created ")
        assert config.event_types == ["immobilie.created", "contact.created"]

    def test_filters_split_and_stripped(self):
        config = TriggerConfig(
            filter_status_to="  Verkauft ",
            filter_status_from=[" Akquise", ""],
            filter_tag_name=None,
            filter_object_id=" immo-1 ",
        )

        assert config.filter_status_to == ["Verkauft"]
        assert config.filter_status_from == ["Akquise"]
        assert config.filter_tag_name == []
        assert config.filter_object_id == "immo-1"

    def test_numeric_filter_value(self):
        assert TriggerConfig(filter_status_to=7).filter_status_to == ["7"]
