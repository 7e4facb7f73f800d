"""Incoming Facebook Messenger webhook models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AttachmentType(str, Enum):
    """Attachment type tags understood by the normalizer."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"
    LOCATION = "location"
    UNRECOGNIZED = "unrecognized"


class MessengerParty(BaseModel):
    """Sender or recipient reference."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str


class AttachmentPayload(BaseModel):
    """Attachment payload; location attachments carry coordinates, not a URL."""

    model_config = ConfigDict(extra="allow")

    url: str | None = None


class MessengerAttachment(BaseModel):
    """Single attachment of an incoming message."""

    model_config = ConfigDict(extra="ignore")

    type: AttachmentType = AttachmentType.UNRECOGNIZED
    payload: AttachmentPayload = Field(default_factory=AttachmentPayload)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_unknown_type(cls, value: Any) -> Any:
        if isinstance(value, AttachmentType):
            return value
        try:
            return AttachmentType(value)
        except ValueError:
            return AttachmentType.UNRECOGNIZED

    @field_validator("payload", mode="before")
    @classmethod
    def _default_payload(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}


class MessengerMessage(BaseModel):
    """Message block of a messaging event."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    mid: str = ""
    text: str | None = None
    attachments: list[MessengerAttachment] = Field(default_factory=list)

    @field_validator("attachments", mode="before")
    @classmethod
    def _default_attachments(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []


class MessengerPostback(BaseModel):
    """Postback (button press) block of a messaging event."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    title: str = ""
    payload: str = ""


class MessagingEvent(BaseModel):
    """One delivery inside ``entry[].messaging``."""

    model_config = ConfigDict(extra="ignore")

    sender: MessengerParty
    recipient: MessengerParty
    timestamp: int = 0
    message: MessengerMessage | None = None
    postback: MessengerPostback | None = None


class MessengerEntry(BaseModel):
    """Facebook webhook entry.

    ``messaging`` is kept raw so one malformed event cannot reject its
    siblings; the normalizer validates events individually.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str = ""
    time: int = 0
    messaging: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("messaging", mode="before")
    @classmethod
    def _default_messaging(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]


class MessengerWebhookPayload(BaseModel):
    """Facebook webhook payload."""

    model_config = ConfigDict(extra="ignore")

    object: str = ""
    entry: list[MessengerEntry] = Field(default_factory=list)

    @field_validator("entry", mode="before")
    @classmethod
    def _default_entry(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]
