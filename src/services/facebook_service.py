"""Facebook Graph API calls used by the Messenger provider.

Each function opens its own ``httpx.AsyncClient`` unless one is passed in,
and reports failures as ``NetworkError`` or ``UpstreamStatusError`` so
callers never handle httpx exceptions directly.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
import logfire

from src.constants import (
    FACEBOOK_API_TIMEOUT_SECONDS,
    LOG_RESPONSE_BODY_CHARS,
    MESSENGER_API_URL,
    STATUS_CHECK_FIELDS,
)
from src.models.event_models import DownloadedMedia
from src.services.exceptions import (
    MediaValidationError,
    NetworkError,
    UpstreamStatusError,
    extract_graph_error_message,
)
from src.services.media_storage import extension_for_content_type


def graph_url(version: str, path: str) -> str:
    """Build a versioned Graph API URL, e.g. ``graph_url("v19.0", "me/messages")``."""
    return f"{MESSENGER_API_URL}{version}/{path}"


@asynccontextmanager
async def _http_client(
    client: httpx.AsyncClient | None, timeout: float
) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout) as new_client:
        yield new_client


def _upstream_error(action: str, response: httpx.Response) -> UpstreamStatusError:
    try:
        detail = extract_graph_error_message(response.json())
    except ValueError:
        detail = None
    message = detail or f"{action} returned HTTP {response.status_code}"
    return UpstreamStatusError(
        message,
        status_code=response.status_code,
        response_body=response.text[:LOG_RESPONSE_BODY_CHARS],
    )


async def get_page_status(
    access_token: str,
    page_id: str,
    version: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = FACEBOOK_API_TIMEOUT_SECONDS,
) -> dict[str, Any]:
    """
    Read the page's id and name to prove the access token works.

    Returns:
        Graph API response body (``{"id": ..., "name": ...}``)

    Raises:
        UpstreamStatusError: Any status other than 200
        NetworkError: The request could not be completed
    """
    url = graph_url(version, page_id)
    params = {"access_token": access_token, "fields": STATUS_CHECK_FIELDS}
    start_time = time.time()
    try:
        async with _http_client(client, timeout) as http:
            response = await http.get(url, params=params)
    except httpx.RequestError as e:
        logfire.error(
            "Facebook status check request error",
            page_id=page_id,
            error=str(e),
            error_type=type(e).__name__,
            response_time_ms=(time.time() - start_time) * 1000,
        )
        raise NetworkError(str(e) or type(e).__name__) from e

    if response.status_code != 200:
        logfire.error(
            "Unexpected status check response",
            page_id=page_id,
            status_code=response.status_code,
            response_body=response.text[:LOG_RESPONSE_BODY_CHARS],
        )
        raise _upstream_error("Status check", response)

    try:
        return response.json()
    except ValueError:
        return {}


async def send_message(
    access_token: str,
    recipient_id: str,
    text: str,
    version: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = FACEBOOK_API_TIMEOUT_SECONDS,
) -> dict[str, Any]:
    """
    Send a text message via the Send API.

    Args:
        access_token: Facebook Page access token
        recipient_id: Facebook user ID (PSID) to send message to
        text: Message text to send
        version: Graph API version

    Returns:
        Graph API response body (``recipient_id``, ``message_id``)

    Raises:
        UpstreamStatusError: The Send API rejected the message
        NetworkError: The request could not be completed
    """
    start_time = time.time()

    logfire.info(
        "Sending Facebook message",
        recipient_id=recipient_id,
        message_length=len(text),
        api_version=version,
    )

    url = graph_url(version, "me/messages")
    payload = {
        "recipient": {"id": recipient_id},
        "message": {"text": text},
        "access_token": access_token,
    }

    try:
        async with _http_client(client, timeout) as http:
            response = await http.post(url, json=payload)
    except httpx.RequestError as e:
        logfire.error(
            "Facebook API request error",
            recipient_id=recipient_id,
            error=str(e),
            error_type=type(e).__name__,
            response_time_ms=(time.time() - start_time) * 1000,
        )
        raise NetworkError(str(e) or type(e).__name__) from e

    elapsed = time.time() - start_time
    if not response.is_success:
        logfire.error(
            "Facebook message send failed",
            recipient_id=recipient_id,
            status_code=response.status_code,
            response_body=response.text[:LOG_RESPONSE_BODY_CHARS],
            response_time_ms=elapsed * 1000,
        )
        raise _upstream_error("Send API", response)

    try:
        response_data = response.json()
    except ValueError:
        response_data = {}
    logfire.info(
        "Facebook message sent successfully",
        recipient_id=recipient_id,
        status_code=response.status_code,
        message_id=response_data.get("message_id"),
        response_time_ms=elapsed * 1000,
    )
    return response_data


async def download_media(
    media_url: str,
    access_token: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = FACEBOOK_API_TIMEOUT_SECONDS,
) -> DownloadedMedia:
    """
    Download an attachment with the page token as bearer credential.

    Raises:
        UpstreamStatusError: The media host answered with an error status
        NetworkError: The request could not be completed
        MediaValidationError: The URL is malformed or no file extension
            matches the Content-Type
    """
    headers = {"Authorization": f"Bearer {access_token}"}
    start_time = time.time()
    try:
        async with _http_client(client, timeout) as http:
            response = await http.get(media_url, headers=headers, follow_redirects=True)
    except httpx.RequestError as e:
        logfire.error(
            "Media download request error",
            error=str(e),
            error_type=type(e).__name__,
            response_time_ms=(time.time() - start_time) * 1000,
        )
        raise NetworkError(str(e) or type(e).__name__) from e
    except httpx.InvalidURL as e:
        logfire.error("Invalid media URL", error=str(e))
        raise MediaValidationError(f"Invalid media URL: {e}") from e

    if not response.is_success:
        logfire.error(
            "Media download failed",
            status_code=response.status_code,
            response_time_ms=(time.time() - start_time) * 1000,
        )
        raise _upstream_error("Media download", response)

    content_type = response.headers.get("content-type")
    extension = extension_for_content_type(content_type)
    if not extension:
        logfire.error("Unable to determine file extension", content_type=content_type)
        raise MediaValidationError("Unable to determine file extension")

    logfire.info(
        "Media downloaded",
        content_type=content_type,
        size_bytes=len(response.content),
        response_time_ms=(time.time() - start_time) * 1000,
    )
    return DownloadedMedia(content=response.content, extension=extension)
