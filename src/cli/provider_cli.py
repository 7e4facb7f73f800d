"""Typer-based operator CLI for the Messenger provider."""

import os

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent.parent
from dotenv import load_dotenv

load_dotenv(_project_root / ".env")
load_dotenv(_project_root / ".env.local")

import asyncio
from typing import Optional

import typer

from src.config import get_settings, provider_config_from_settings
from src.constants import EVENT_AUTH_FAILURE, EVENT_READY, SAVE_MEDIA_ERROR
from src.services.event_bus import EventBus
from src.services.exceptions import ConfigValidationError, SendMessageError
from src.services.messenger_provider import MessengerProvider

app = typer.Typer(help="Operate the Facebook Messenger provider.")


def _build_provider() -> tuple[MessengerProvider, EventBus]:
    """Build a provider from environment settings, exiting on bad config."""
    try:
        config = provider_config_from_settings(get_settings())
    except ConfigValidationError as e:
        typer.secho(f"Configuration error: {e.message}", fg=typer.colors.RED)
        raise typer.Exit(code=2)
    bus = EventBus()
    return MessengerProvider(config, sink=bus), bus


@app.command("check-status")
def check_status():
    """Check that the access token can read the configured page."""
    provider, bus = _build_provider()

    bus.on(EVENT_READY, lambda _: typer.secho("Authenticated", fg=typer.colors.GREEN))

    def _print_failure(payload):
        typer.secho("Authentication failed", fg=typer.colors.RED)
        for line in payload.instructions:
            typer.echo(f"  - {line}")

    bus.on(EVENT_AUTH_FAILURE, _print_failure)

    if not asyncio.run(provider.check_status()):
        raise typer.Exit(code=1)


@app.command()
def send(
    recipient_id: str = typer.Argument(..., help="Recipient PSID"),
    text: str = typer.Argument(..., help="Message text"),
):
    """Send a text message to a user."""
    provider, _ = _build_provider()
    try:
        result = asyncio.run(provider.send_message(recipient_id, text))
    except SendMessageError as e:
        typer.secho(f"{e.message} ({e.kind.value})", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Sent: {result.get('message_id', '')}")


@app.command("save-media")
def save_media(
    url: str = typer.Argument(..., help="Attachment URL from a webhook"),
    directory: Optional[Path] = typer.Option(None, "--dir", help="Target directory"),
):
    """Download an attachment and print where it was written."""
    provider, _ = _build_provider()
    target = directory or get_settings().media_download_dir
    path = asyncio.run(provider.save_media(url, target))
    if path == SAVE_MEDIA_ERROR:
        typer.secho("Failed to save media", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(path)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Port (defaults to PORT setting)"),
):
    """Run the webhook server."""
    import uvicorn

    uvicorn.run("src.main:app", host=host, port=port or get_settings().port)


if __name__ == "__main__":
    app()
