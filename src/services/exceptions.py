"""Exceptions raised by the Messenger provider.

Every low-level failure is reported as one of three kinds so callers can
branch on ``error.kind`` without inspecting httpx exceptions or Graph API
response bodies.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    NETWORK = "network"
    UPSTREAM_STATUS = "upstream_status"
    VALIDATION = "validation"


class MessengerProviderError(Exception):
    """Base exception for Messenger provider errors."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class NetworkError(MessengerProviderError):
    """Raised when the Graph API or media host could not be reached."""

    kind = ErrorKind.NETWORK


class UpstreamStatusError(MessengerProviderError):
    """Raised when the Graph API answers with an unexpected status code."""

    kind = ErrorKind.UPSTREAM_STATUS

    def __init__(
        self,
        message: str,
        status_code: int,
        response_body: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class ConfigValidationError(MessengerProviderError):
    """Raised at construction time when required configuration is missing."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class MediaValidationError(MessengerProviderError):
    """Raised when media cannot be fetched or typed: bad URL or unknown Content-Type."""

    kind = ErrorKind.VALIDATION


class SendMessageError(MessengerProviderError):
    """Raised when an outbound message could not be delivered."""

    def __init__(self, message: str = "Failed to send message", kind: ErrorKind | None = None):
        super().__init__(message, kind)


def extract_graph_error_message(data: Any) -> str | None:
    """Pull ``error.message`` out of a Graph API error body, if present."""
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if not isinstance(error, dict):
        return None
    message = error.get("message")
    return message if isinstance(message, str) and message else None
