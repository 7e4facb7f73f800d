"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Configuration: provider_config
2. Event sinks: recording_sink
3. Provider: provider (bound to recording_sink)
4. Infrastructure: respx_mock, logfire_capture, test_client
"""

import os
from unittest.mock import patch

import pytest

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

import logfire
import respx

from src.config import build_provider_config
from src.services.event_bus import RecordingEventSink
from src.services.messenger_provider import MessengerProvider
from tests.payloads import ACCESS_TOKEN, PAGE_ID, VERIFY_TOKEN


# =============================================================================
# Configuration & Provider
# =============================================================================


@pytest.fixture
def provider_config():
    """Validated provider configuration with test credentials."""
    return build_provider_config(
        overrides={
            "access_token": ACCESS_TOKEN,
            "page_id": PAGE_ID,
            "verify_token": VERIFY_TOKEN,
        }
    )


@pytest.fixture
def recording_sink():
    """Event sink that records every emission."""
    return RecordingEventSink()


@pytest.fixture
def provider(provider_config, recording_sink):
    """MessengerProvider wired to recording_sink."""
    return MessengerProvider(provider_config, sink=recording_sink)


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture
def respx_mock():
    """Respx mock fixture for HTTP mocking."""
    with respx.mock:
        yield respx


@pytest.fixture
def logfire_capture():
    """
    Capture Logfire logs for testing.

    This fixture patches Logfire to capture log calls for assertion.
    """
    captured_logs = []

    original_info = logfire.info
    original_warn = logfire.warn
    original_error = logfire.error

    def capture_info(*args, **kwargs):
        captured_logs.append(("info", args, kwargs))
        return original_info(*args, **kwargs)

    def capture_warn(*args, **kwargs):
        captured_logs.append(("warn", args, kwargs))
        return original_warn(*args, **kwargs)

    def capture_error(*args, **kwargs):
        captured_logs.append(("error", args, kwargs))
        return original_error(*args, **kwargs)

    with (
        patch("logfire.info", side_effect=capture_info),
        patch("logfire.warn", side_effect=capture_warn),
        patch("logfire.error", side_effect=capture_error),
    ):
        yield captured_logs


@pytest.fixture
def test_client(provider):
    """FastAPI TestClient with the test provider injected.

    The client is not used as a context manager, so the lifespan (and its
    Graph API status check) does not run.
    """
    from fastapi.testclient import TestClient
    from src.main import create_app

    app = create_app()
    app.state.provider = provider
    return TestClient(app)
