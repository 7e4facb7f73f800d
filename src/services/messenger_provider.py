"""Facebook Messenger provider.

Bridges the Messenger webhook to the chatbot event bus and exposes the
outbound operations bot logic needs.

Failure conventions differ per operation:
- ``handle_inbound_webhook`` always acknowledges.
- ``check_status`` emits ``ready`` or ``auth_failure`` and never raises.
- ``send_message`` raises ``SendMessageError``.
- ``save_media`` returns the ``SAVE_MEDIA_ERROR`` sentinel.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any

import httpx
import logfire

from src.config import ProviderConfig
from src.constants import (
    EVENT_AUTH_FAILURE,
    EVENT_READY,
    SAVE_MEDIA_ERROR,
    SUBSCRIBE_MODE,
    VERIFY_ERROR,
    WEBHOOK_ACK,
)
from src.logging_config import mask_pii, redact_tokens
from src.models.event_models import AuthFailure, CanonicalMessageEvent, MediaReference
from src.services import facebook_service
from src.services.event_bus import EventSink
from src.services.event_normalizer import MessengerEventNormalizer
from src.services.exceptions import (
    MessengerProviderError,
    NetworkError,
    SendMessageError,
    UpstreamStatusError,
)
from src.services.media_storage import write_media

MediaSource = CanonicalMessageEvent | MediaReference | str | None


class ProviderState(str, Enum):
    """Lifecycle of a provider instance."""

    CONSTRUCTED = "constructed"
    INITIALIZING = "initializing"
    READY = "ready"
    DEGRADED = "degraded"


class MessengerProvider:
    """Messenger adapter bound to one page.

    Example:
        >>> bus = EventBus()
        >>> provider = MessengerProvider(config, sink=bus)
        >>> await provider.initialize()
        >>> provider.verify_subscription("subscribe", config.verify_token, "123")
        '123'
    """

    def __init__(
        self,
        config: ProviderConfig,
        sink: EventSink,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize with an already validated configuration.

        Args:
            config: Result of ``build_provider_config``
            sink: Receives ``message``, ``ready`` and ``auth_failure`` events
            http_client: Optional shared client for Graph API calls
        """
        self.config = config
        self._sink = sink
        self._http_client = http_client
        self._normalizer = MessengerEventNormalizer(sink)
        self.state = ProviderState.CONSTRUCTED

        logfire.info(
            "Messenger provider constructed",
            config=redact_tokens(config.model_dump()),
        )

    async def initialize(self) -> ProviderState:
        """Run the authentication check and settle on READY or DEGRADED."""
        self.state = ProviderState.INITIALIZING
        await self.check_status()
        return self.state

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def handle_inbound_webhook(self, raw_body: Any) -> str:
        """
        Normalize a webhook delivery and emit its events.

        Args:
            raw_body: Decoded JSON, or the raw request body as str/bytes

        Returns:
            ``WEBHOOK_ACK``, whatever the payload contained
        """
        payload = raw_body
        if isinstance(raw_body, (bytes, bytearray, str)):
            try:
                payload = json.loads(raw_body)
            except (ValueError, UnicodeDecodeError, RecursionError) as e:
                logfire.warn("Webhook body is not valid JSON", error=str(e))
                return WEBHOOK_ACK

        try:
            self._normalizer.normalize(payload)
        except Exception as e:
            logfire.error(
                "Error handling inbound webhook",
                error=str(e),
                error_type=type(e).__name__,
            )
        return WEBHOOK_ACK

    def verify_subscription(
        self,
        mode: str | None,
        token: str | None,
        challenge: str | None,
    ) -> str:
        """
        Answer the webhook subscription handshake.

        Returns:
            ``challenge`` when mode and token match exactly, else ``VERIFY_ERROR``
        """
        if not mode or not token:
            logfire.warn("Webhook verification missing mode or token")
            return VERIFY_ERROR

        if mode == SUBSCRIBE_MODE and token == self.config.verify_token:
            logfire.info("Webhook verified")
            return challenge or ""

        logfire.warn(
            "Webhook verification failed",
            mode=mode,
            token=mask_pii(token),
        )
        return VERIFY_ERROR

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def check_status(self) -> bool:
        """
        Verify the access token against the configured page.

        Emits ``ready`` (True) on success, ``auth_failure`` otherwise.

        Returns:
            True when authenticated
        """
        try:
            await facebook_service.get_page_status(
                access_token=self.config.access_token,
                page_id=self.config.page_id,
                version=self.config.version,
                client=self._http_client,
                timeout=self.config.timeout_seconds,
            )
        except UpstreamStatusError as e:
            self._fail_auth(
                [
                    "Failed to authenticate with Facebook Messenger API",
                    f"Error details: {e.message}",
                    "Please check your access token and ensure it has the necessary permissions",
                    "Please verify that the Facebook Page ID is correct",
                ]
            )
            return False
        except NetworkError as e:
            self._fail_auth(
                [
                    "An error occurred while checking the API status",
                    f"Error details: {e.message}",
                    "Please verify your access token and Facebook Page ID",
                ]
            )
            return False

        logfire.info(
            "Successfully authenticated with Facebook Messenger API",
            page_id=self.config.page_id,
        )
        self.state = ProviderState.READY
        self._sink.emit(EVENT_READY, True)
        return True

    def _fail_auth(self, instructions: list[str]) -> None:
        self.state = ProviderState.DEGRADED
        logfire.error(
            "Messenger authentication check failed",
            page_id=self.config.page_id,
            instructions=instructions,
        )
        self._sink.emit(EVENT_AUTH_FAILURE, AuthFailure(instructions=instructions))

    async def send_message(self, recipient_id: str, text: str) -> dict[str, Any]:
        """
        Send a text message to a user.

        Returns:
            Graph API response body

        Raises:
            SendMessageError: The message was not delivered (cause chained)
        """
        try:
            return await facebook_service.send_message(
                access_token=self.config.access_token,
                recipient_id=recipient_id,
                text=text,
                version=self.config.version,
                client=self._http_client,
                timeout=self.config.timeout_seconds,
            )
        except MessengerProviderError as e:
            logfire.error(
                "Error sending message",
                recipient_id=recipient_id,
                error=e.message,
                error_kind=e.kind.value,
            )
            raise SendMessageError(kind=e.kind) from e

    async def save_media(
        self,
        source: MediaSource,
        target_dir: str | Path | None = None,
    ) -> str:
        """
        Download the media referenced by an event and write it to disk.

        Args:
            source: Canonical event, media reference or bare URL
            target_dir: Destination directory (system temp dir when None)

        Returns:
            Path of the written file, ``""`` when there is no media URL, or
            ``SAVE_MEDIA_ERROR`` on any failure
        """
        media_url = _media_url(source)
        if not media_url:
            return ""

        try:
            media = await facebook_service.download_media(
                media_url,
                access_token=self.config.access_token,
                client=self._http_client,
                timeout=self.config.timeout_seconds,
            )
            path = write_media(media, target_dir)
        except (MessengerProviderError, OSError, ValueError) as e:
            logfire.error(
                "Error saving file",
                error=str(e),
                error_type=type(e).__name__,
            )
            return SAVE_MEDIA_ERROR
        return str(path)


def _media_url(source: MediaSource) -> str | None:
    if isinstance(source, CanonicalMessageEvent):
        return source.media_url
    if isinstance(source, MediaReference):
        return source.url
    if isinstance(source, str):
        return source
    return None
