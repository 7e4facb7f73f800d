"""Facebook webhook endpoints.

Both routes delegate to the ``MessengerProvider`` stored on
``app.state.provider``; this module only deals with HTTP concerns.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from src.constants import VERIFY_ERROR
from src.services.messenger_provider import MessengerProvider

logger = logging.getLogger(__name__)
router = APIRouter()


def get_provider(request: Request) -> MessengerProvider:
    """Return the provider created during application startup."""
    return request.app.state.provider


@router.get("")
async def verify_webhook(
    request: Request,
    provider: MessengerProvider = Depends(get_provider),
):
    """Facebook webhook verification endpoint."""
    result = provider.verify_subscription(
        mode=request.query_params.get("hub.mode"),
        token=request.query_params.get("hub.verify_token"),
        challenge=request.query_params.get("hub.challenge"),
    )

    if result == VERIFY_ERROR:
        logger.warning("Webhook verification failed")
        return PlainTextResponse(result, status_code=403)

    logger.info("Webhook verified successfully")
    return PlainTextResponse(result)


@router.post("")
async def handle_webhook(
    request: Request,
    provider: MessengerProvider = Depends(get_provider),
):
    """Handle incoming Facebook Messenger webhook events.

    The raw body is handed over undecoded so that malformed JSON is
    acknowledged like any other delivery.
    """
    body = await request.body()
    return PlainTextResponse(provider.handle_inbound_webhook(body))
