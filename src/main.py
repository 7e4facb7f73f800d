"""FastAPI application initialization."""

from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import FastAPI
from sentry_sdk.integrations.fastapi import FastApiIntegration

from src.api import health, webhook
from src.config import get_settings, provider_config_from_settings
from src.logging_config import setup_logfire
from src.services.event_bus import EventBus
from src.services.messenger_provider import MessengerProvider


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the Messenger provider and run its authentication check."""
    settings = get_settings()

    setup_logfire(app)

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            integrations=[FastApiIntegration()],
        )

    # A provider injected before startup (tests, embedding apps) is reused
    if getattr(app.state, "provider", None) is None:
        # Raises ConfigValidationError on missing credentials, aborting startup
        config = provider_config_from_settings(settings)
        app.state.event_bus = EventBus()
        app.state.provider = MessengerProvider(config, sink=app.state.event_bus)

    state = await app.state.provider.initialize()

    logfire.info(
        "Application startup complete",
        environment=settings.env,
        provider_state=state.value,
    )

    yield

    logfire.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create the FastAPI application with webhook and health routes."""
    application = FastAPI(
        title="Messenger Provider",
        description="Facebook Messenger webhook adapter for the chatbot event bus",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.include_router(health.router, tags=["health"])
    application.include_router(webhook.router, prefix="/webhook", tags=["webhook"])
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app", host="0.0.0.0", port=settings.port, reload=settings.env == "local"
    )
