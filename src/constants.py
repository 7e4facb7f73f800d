"""Application-wide constants.

This module centralizes the literals exchanged with the Graph API and
the event bus so the adapter, the router and the tests agree on them.
"""

# =============================================================================
# Facebook Graph API
# =============================================================================

# Base URL for all Graph API calls (version is appended per request)
MESSENGER_API_URL = "https://graph.facebook.com/"

# Default Graph API version
DEFAULT_GRAPH_API_VERSION = "v19.0"

# Fields requested by the authentication health check
STATUS_CHECK_FIELDS = "id,name"

# Timeout for Facebook Graph API calls (seconds)
FACEBOOK_API_TIMEOUT_SECONDS = 10.0

# Maximum number of response body characters copied into log records
LOG_RESPONSE_BODY_CHARS = 500

# =============================================================================
# Provider Defaults
# =============================================================================

DEFAULT_PROVIDER_NAME = "messenger-bot"

DEFAULT_PORT = 3000

# =============================================================================
# Webhook Protocol
# =============================================================================

# Discriminator carried by every Messenger page webhook
PAGE_OBJECT = "page"

# hub.mode value sent during subscription verification
SUBSCRIBE_MODE = "subscribe"

# Body returned for every inbound webhook, whatever happened to it
WEBHOOK_ACK = "EVENT_RECEIVED"

# Body returned when subscription verification fails
VERIFY_ERROR = "ERROR"

# Value returned by save_media when the download or write fails
SAVE_MEDIA_ERROR = "ERROR"

# Channel tag placed in the canonical event's host block
CHANNEL_TAG = "messenger"

POSTBACK_ID_PREFIX = "postback_"

# =============================================================================
# Canonical Body Markers
# =============================================================================

EVENT_MEDIA = "_event_media_"
EVENT_VOICE_NOTE = "_event_voice_note_"
EVENT_DOCUMENT = "_event_document_"
EVENT_LOCATION = "_event_location_"

# =============================================================================
# Event Bus
# =============================================================================

EVENT_MESSAGE = "message"
EVENT_READY = "ready"
EVENT_AUTH_FAILURE = "auth_failure"

# =============================================================================
# Media Persistence
# =============================================================================

MEDIA_FILENAME_PREFIX = "file-"
