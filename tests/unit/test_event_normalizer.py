"""Tests for the webhook-to-canonical-event normalizer."""

import pytest

from src.constants import (
    EVENT_DOCUMENT,
    EVENT_LOCATION,
    EVENT_MEDIA,
    EVENT_MESSAGE,
    EVENT_VOICE_NOTE,
)
from src.models.event_models import CanonicalMessageEvent
from src.models.messenger import AttachmentType
from src.services.event_normalizer import (
    MessengerEventNormalizer,
    attachment_marker,
    generate_event_ref,
    is_event_ref,
)
from tests.payloads import (
    PAGE_ID,
    attachment_event,
    make_webhook,
    postback_event,
    text_event,
)


@pytest.fixture
def normalizer(recording_sink):
    return MessengerEventNormalizer(recording_sink)


class TestTextMessages:
    """Plain text messages."""

    def test_text_message_fields(self, normalizer):
        events = normalizer.normalize(make_webhook(text_event("Hi there", mid="m-9", timestamp=42)))

        assert len(events) == 1
        event = events[0]
        assert event.body == "Hi there"
        assert event.from_ == "user-456"
        assert event.name == ""
        assert event.host.id == PAGE_ID
        assert event.host.phone == "messenger"
        assert event.timestamp == 42
        assert event.message_id == "m-9"
        assert event.media is None

    def test_order_is_preserved(self, normalizer):
        payload = make_webhook(
            text_event("one", mid="m1", timestamp=1),
            text_event("two", mid="m2", timestamp=2),
            text_event("three", mid="m3", timestamp=3),
        )

        events = normalizer.normalize(payload)

        assert [e.body for e in events] == ["one", "two", "three"]
        assert [e.message_id for e in events] == ["m1", "m2", "m3"]

    def test_multiple_entries_flattened_in_order(self, normalizer):
        payload = {
            "object": "page",
            "entry": [
                {"id": PAGE_ID, "time": 1, "messaging": [text_event("a", mid="m1")]},
                {"id": PAGE_ID, "time": 2, "messaging": [text_event("b", mid="m2")]},
            ],
        }

        events = normalizer.normalize(payload)

        assert [e.body for e in events] == ["a", "b"]

    def test_message_without_text_has_empty_body(self, normalizer):
        raw = text_event()
        del raw["message"]["text"]

        events = normalizer.normalize(make_webhook(raw))

        assert events[0].body == ""

    def test_serializes_with_bus_field_names(self, normalizer):
        event = normalizer.normalize(make_webhook(text_event("hey", mid="m-1")))[0]

        data = event.model_dump(by_alias=True)

        assert data["from"] == "user-456"
        assert data["messageId"] == "m-1"
        assert data["host"] == {"id": PAGE_ID, "phone": "messenger"}


class TestAttachments:
    """Attachment handling."""

    @pytest.mark.parametrize(
        "attachment_type,marker",
        [
            ("image", EVENT_MEDIA),
            ("video", EVENT_MEDIA),
            ("audio", EVENT_VOICE_NOTE),
            ("file", EVENT_DOCUMENT),
            ("location", EVENT_LOCATION),
        ],
    )
    def test_attachment_type_selects_marker(self, normalizer, attachment_type, marker):
        events = normalizer.normalize(make_webhook(attachment_event(attachment_type)))

        assert is_event_ref(events[0].body, marker)

    def test_image_marker_replaces_text(self, normalizer):
        payload = make_webhook(attachment_event("image", text="hi"))

        event = normalizer.normalize(payload)[0]

        assert event.body != "hi"
        assert is_event_ref(event.body, EVENT_MEDIA)

    def test_media_reference_is_attached(self, normalizer):
        payload = make_webhook(attachment_event("audio", url="https://cdn.example.com/a.mp3"))

        event = normalizer.normalize(payload)[0]

        assert event.media_url == "https://cdn.example.com/a.mp3"
        assert event.media.type == AttachmentType.AUDIO

    def test_only_first_attachment_is_inspected(self, normalizer):
        raw = attachment_event("file", url="https://cdn.example.com/doc.pdf")
        raw["message"]["attachments"].append(
            {"type": "image", "payload": {"url": "https://cdn.example.com/img.png"}}
        )

        events = normalizer.normalize(make_webhook(raw))

        assert len(events) == 1
        assert is_event_ref(events[0].body, EVENT_DOCUMENT)
        assert events[0].media_url == "https://cdn.example.com/doc.pdf"

    def test_unrecognized_attachment_keeps_text(self, normalizer):
        payload = make_webhook(attachment_event("fallback", text="see link"))

        event = normalizer.normalize(payload)[0]

        assert event.body == "see link"
        assert event.media is None

    def test_unrecognized_attachment_without_text(self, normalizer):
        event = normalizer.normalize(make_webhook(attachment_event("sticker")))[0]

        assert event.body == ""

    def test_location_without_url_has_no_media(self, normalizer):
        raw = attachment_event("location")
        raw["message"]["attachments"][0]["payload"] = {
            "coordinates": {"lat": 30.27, "long": -97.74}
        }

        event = normalizer.normalize(make_webhook(raw))[0]

        assert is_event_ref(event.body, EVENT_LOCATION)
        assert event.media is None

    def test_empty_attachment_list_keeps_text(self, normalizer):
        raw = text_event("plain")
        raw["message"]["attachments"] = []

        event = normalizer.normalize(make_webhook(raw))[0]

        assert event.body == "plain"

    def test_refs_are_unique(self, normalizer):
        payload = make_webhook(attachment_event("image"), attachment_event("image"))

        first, second = normalizer.normalize(payload)

        assert first.body != second.body


class TestPostbacks:
    """Postback handling."""

    def test_postback_body_and_synthesized_id(self, normalizer):
        event = normalizer.normalize(make_webhook(postback_event("BUY", timestamp=1000)))[0]

        assert event.body == "BUY"
        assert event.message_id == "postback_1000"
        assert event.from_ == "user-456"
        assert event.host.id == PAGE_ID

    def test_message_takes_priority_over_postback(self, normalizer):
        raw = text_event("typed", mid="m-5")
        raw["postback"] = {"title": "t", "payload": "CLICKED"}

        events = normalizer.normalize(make_webhook(raw))

        assert len(events) == 1
        assert events[0].body == "typed"
        assert events[0].message_id == "m-5"


class TestRejectionAndSkipping:
    """Inputs that produce no events."""

    @pytest.mark.parametrize("object_type", ["user", "instagram", "", "PAGE"])
    def test_non_page_object_is_ignored(self, normalizer, recording_sink, object_type):
        payload = make_webhook(text_event(), object_type=object_type)

        assert normalizer.normalize(payload) == []
        assert recording_sink.events == []

    @pytest.mark.parametrize(
        "payload",
        [
            {"object": "page"},
            {"object": "page", "entry": []},
            {"object": "page", "entry": None},
            {"object": "page", "entry": "nope"},
            None,
            "not a dict",
            [1, 2, 3],
        ],
    )
    def test_missing_or_malformed_entries(self, normalizer, payload):
        assert normalizer.normalize(payload) == []

    def test_event_without_message_or_postback_is_skipped(self, normalizer):
        delivery = {
            "sender": {"id": "user-456"},
            "recipient": {"id": PAGE_ID},
            "timestamp": 5,
            "delivery": {"mids": ["m-1"]},
        }

        events = normalizer.normalize(make_webhook(delivery, text_event("after")))

        assert [e.body for e in events] == ["after"]

    def test_malformed_event_does_not_drop_siblings(self, normalizer):
        broken = {"recipient": {"id": PAGE_ID}, "message": {"text": "no sender"}}

        events = normalizer.normalize(
            make_webhook(text_event("before"), broken, "garbage", text_event("after"))
        )

        assert [e.body for e in events] == ["before", "after"]

    def test_entry_without_messaging(self, normalizer):
        payload = {"object": "page", "entry": [{"id": PAGE_ID, "time": 1}]}

        assert normalizer.normalize(payload) == []

    def test_numeric_ids_are_kept_as_strings(self, normalizer, recording_sink):
        numeric = {
            "sender": {"id": 123},
            "recipient": {"id": 456},
            "timestamp": 7,
            "message": {"mid": "m-num", "text": "hi"},
        }
        payload = make_webhook(numeric)
        payload["entry"][0]["id"] = 456
        payload["entry"].append({"id": PAGE_ID, "messaging": [text_event("sibling")]})

        events = normalizer.normalize(payload)

        assert [e.body for e in events] == ["hi", "sibling"]
        assert events[0].from_ == "123"
        assert events[0].host.id == "456"
        assert len(recording_sink.payloads(EVENT_MESSAGE)) == 2


class TestEmission:
    """Events are emitted on the sink."""

    def test_each_event_emitted_as_message(self, normalizer, recording_sink):
        events = normalizer.normalize(
            make_webhook(text_event("a", mid="m1"), postback_event("B"))
        )

        assert [name for name, _ in recording_sink.events] == [EVENT_MESSAGE, EVENT_MESSAGE]
        assert recording_sink.payloads(EVENT_MESSAGE) == events
        assert all(isinstance(e, CanonicalMessageEvent) for e in events)

    def test_emitted_before_next_event_is_built(self, recording_sink):
        seen_counts = []

        class CountingSink:
            def emit(self, event, payload=None):
                seen_counts.append(len(recording_sink.events))
                recording_sink.emit(event, payload)

        normalizer = MessengerEventNormalizer(CountingSink())
        normalizer.normalize(make_webhook(text_event("1"), text_event("2")))

        assert seen_counts == [0, 1]


class TestHelpers:
    """Marker helpers."""

    def test_generate_event_ref_prefix(self):
        ref = generate_event_ref(EVENT_MEDIA)

        assert ref.startswith("_event_media___")
        assert is_event_ref(ref, EVENT_MEDIA)
        assert not is_event_ref(ref, EVENT_DOCUMENT)

    def test_unrecognized_has_no_marker(self):
        assert attachment_marker(AttachmentType.UNRECOGNIZED) is None

    def test_every_known_type_has_marker(self):
        known = [t for t in AttachmentType if t is not AttachmentType.UNRECOGNIZED]

        assert all(attachment_marker(t) for t in known)
