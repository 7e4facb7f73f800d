"""Translate Messenger webhook payloads into canonical message events.

The normalizer performs no I/O. Each messaging event that carries a
message or a postback becomes one ``CanonicalMessageEvent`` which is
emitted on the sink as soon as it is built. Anything malformed is logged
and skipped; ``normalize`` never raises.
"""

import uuid
from typing import Any

import logfire
from pydantic import ValidationError

from src.constants import (
    EVENT_DOCUMENT,
    EVENT_LOCATION,
    EVENT_MEDIA,
    EVENT_MESSAGE,
    EVENT_VOICE_NOTE,
    PAGE_OBJECT,
    POSTBACK_ID_PREFIX,
)
from src.models.event_models import CanonicalMessageEvent, EventHost, MediaReference
from src.models.messenger import (
    AttachmentType,
    MessagingEvent,
    MessengerAttachment,
    MessengerWebhookPayload,
)
from src.services.event_bus import EventSink


def generate_event_ref(marker: str) -> str:
    """Build a unique body reference such as ``_event_media___<uuid>``."""
    return f"{marker}__{uuid.uuid4()}"


def is_event_ref(body: str, marker: str) -> bool:
    """Check whether ``body`` is a reference generated for ``marker``."""
    return body.startswith(f"{marker}__")


def attachment_marker(attachment_type: AttachmentType) -> str | None:
    """
    Map an attachment type to its body marker.

    Returns:
        The marker, or None for unrecognized attachments (the caller keeps
        the message text)
    """
    match attachment_type:
        case AttachmentType.IMAGE | AttachmentType.VIDEO:
            return EVENT_MEDIA
        case AttachmentType.AUDIO:
            return EVENT_VOICE_NOTE
        case AttachmentType.FILE:
            return EVENT_DOCUMENT
        case AttachmentType.LOCATION:
            return EVENT_LOCATION
        case AttachmentType.UNRECOGNIZED:
            return None


class MessengerEventNormalizer:
    """Turn raw webhook payloads into canonical events on a sink."""

    def __init__(self, sink: EventSink):
        self._sink = sink

    def normalize(self, payload: Any) -> list[CanonicalMessageEvent]:
        """
        Normalize one webhook delivery.

        Args:
            payload: Decoded JSON body of ``POST /webhook``

        Returns:
            Events built from the payload, in delivery order (possibly empty)
        """
        if not isinstance(payload, dict):
            logfire.warn("Ignoring non-object webhook payload", payload_type=type(payload).__name__)
            return []

        try:
            webhook = MessengerWebhookPayload.model_validate(payload)
        except ValidationError as e:
            logfire.warn("Ignoring malformed webhook payload", error=str(e))
            return []

        if webhook.object != PAGE_OBJECT or not webhook.entry:
            logfire.info(
                "Ignoring webhook payload",
                object=webhook.object,
                entry_count=len(webhook.entry),
            )
            return []

        events: list[CanonicalMessageEvent] = []
        for entry in webhook.entry:
            for raw_event in entry.messaging:
                event = self._build_event(raw_event, entry_id=entry.id)
                if event is None:
                    continue
                events.append(event)
                self._sink.emit(EVENT_MESSAGE, event)

        logfire.info("Webhook normalized", event_count=len(events))
        return events

    def _build_event(
        self, raw_event: dict[str, Any], entry_id: str
    ) -> CanonicalMessageEvent | None:
        try:
            messaging_event = MessagingEvent.model_validate(raw_event)
        except ValidationError as e:
            logfire.warn(
                "Skipping malformed messaging event",
                entry_id=entry_id,
                error_count=e.error_count(),
            )
            return None

        if messaging_event.message is not None:
            return self._from_message(messaging_event)
        if messaging_event.postback is not None:
            return self._from_postback(messaging_event)
        return None

    def _from_message(self, messaging_event: MessagingEvent) -> CanonicalMessageEvent:
        message = messaging_event.message
        body = message.text or ""
        media = None

        # Only the first attachment is inspected
        if message.attachments:
            attachment = message.attachments[0]
            marker = attachment_marker(attachment.type)
            if marker is not None:
                body = generate_event_ref(marker)
                media = _media_reference(attachment)
            else:
                logfire.info(
                    "Unrecognized attachment type, keeping message text",
                    mid=message.mid,
                )

        return CanonicalMessageEvent(
            body=body,
            from_=messaging_event.sender.id,
            host=EventHost(id=messaging_event.recipient.id),
            timestamp=messaging_event.timestamp,
            message_id=message.mid,
            media=media,
        )

    def _from_postback(self, messaging_event: MessagingEvent) -> CanonicalMessageEvent:
        return CanonicalMessageEvent(
            body=messaging_event.postback.payload,
            from_=messaging_event.sender.id,
            host=EventHost(id=messaging_event.recipient.id),
            timestamp=messaging_event.timestamp,
            message_id=f"{POSTBACK_ID_PREFIX}{messaging_event.timestamp}",
        )


def _media_reference(attachment: MessengerAttachment) -> MediaReference | None:
    if not attachment.payload.url:
        return None
    return MediaReference(url=attachment.payload.url, type=attachment.type)
