"""Persist downloaded Messenger media to local disk."""

import mimetypes
import tempfile
import time
from pathlib import Path

import logfire

from src.constants import MEDIA_FILENAME_PREFIX
from src.models.event_models import DownloadedMedia

# Pinned so the result does not depend on the host's mime.types files
_EXTENSION_OVERRIDES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "audio/aac": "aac",
    "audio/ogg": "ogg",
    "application/pdf": "pdf",
}


def extension_for_content_type(content_type: str | None) -> str | None:
    """
    Infer a file extension (without the dot) from a Content-Type header.

    Parameters such as ``; charset=utf-8`` are ignored.

    Returns:
        Extension, or None when the type is missing or unknown
    """
    if not content_type:
        return None
    mime_type = content_type.split(";", 1)[0].strip().lower()
    if not mime_type:
        return None
    if mime_type in _EXTENSION_OVERRIDES:
        return _EXTENSION_OVERRIDES[mime_type]
    guessed = mimetypes.guess_extension(mime_type)
    return guessed.lstrip(".") if guessed else None


def media_filename(extension: str, now: float | None = None) -> str:
    """Build ``file-<epoch milliseconds>.<extension>``."""
    millis = int((time.time() if now is None else now) * 1000)
    return f"{MEDIA_FILENAME_PREFIX}{millis}.{extension}"


def write_media(media: DownloadedMedia, target_dir: str | Path | None = None) -> Path:
    """
    Write downloaded media into ``target_dir``.

    Args:
        media: Downloaded bytes and their extension
        target_dir: Destination directory (system temp dir when None)

    Returns:
        Path of the written file

    Raises:
        OSError: The file could not be written
    """
    directory = Path(target_dir) if target_dir is not None else Path(tempfile.gettempdir())
    path = directory / media_filename(media.extension)
    path.write_bytes(media.content)
    logfire.info(
        "Media saved",
        path=str(path),
        extension=media.extension,
        size_bytes=len(media.content),
    )
    return path
