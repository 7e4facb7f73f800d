"""Canonical events emitted onto the chatbot event bus."""

from pydantic import BaseModel, ConfigDict, Field

from src.constants import CHANNEL_TAG
from src.models.messenger import AttachmentType


class EventHost(BaseModel):
    """Receiving page and channel tag."""

    model_config = ConfigDict(frozen=True)

    id: str
    phone: str = CHANNEL_TAG


class MediaReference(BaseModel):
    """Where the media of a message can be downloaded from."""

    model_config = ConfigDict(frozen=True)

    url: str
    type: AttachmentType


class CanonicalMessageEvent(BaseModel):
    """Platform-agnostic representation of an inbound interaction."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    body: str
    from_: str = Field(alias="from")
    # Messenger does not include the sender's name in webhook payloads
    name: str = ""
    host: EventHost
    timestamp: int
    message_id: str = Field(alias="messageId")
    media: MediaReference | None = None

    @property
    def media_url(self) -> str | None:
        return self.media.url if self.media else None


class AuthFailure(BaseModel):
    """Payload of the ``auth_failure`` event."""

    instructions: list[str]


class DownloadedMedia(BaseModel):
    """Bytes fetched from a media URL plus the extension they will be saved with."""

    content: bytes
    extension: str
