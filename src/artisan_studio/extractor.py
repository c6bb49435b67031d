"""Normalize remote model responses into file descriptors.

Different fal models wrap conceptually identical outputs in different
envelopes. Each known envelope is one entry in ``_SHAPES``; the first shape
that matches wins, so the order below is significant.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from artisan_studio.errors import UnextractableResponse
from artisan_studio.models.media import MediaFileDescriptor, MediaKind

FileRef = dict[str, Any]


def _file_ref(value: Any) -> FileRef | None:
    """Return value if it looks like a file object ({"url": ...})."""
    if isinstance(value, dict) and value.get("url"):
        return value
    return None


def _images(data: dict[str, Any]) -> list[tuple[str, str | None]] | None:
    images = data.get("images")
    if not isinstance(images, list):
        return None
    return [(img["url"], img.get("content_type")) for img in images if _file_ref(img)]


def _video(data: dict[str, Any]) -> list[tuple[str, str | None]] | None:
    video = _file_ref(data.get("video"))
    if video is None:
        return None
    return [(video["url"], video.get("content_type") or "video/mp4")]


def _audio(data: dict[str, Any]) -> list[tuple[str, str | None]] | None:
    audio = _file_ref(data.get("audio")) or _file_ref(data.get("audio_file"))
    if audio is None:
        return None
    return [(audio["url"], audio.get("content_type") or "audio/mpeg")]


def _output(data: dict[str, Any]) -> list[tuple[str, str | None]] | None:
    output = _file_ref(data.get("output"))
    if output is None:
        return None
    # Generic output envelopes (lipsync) are always video
    return [(output["url"], "video/mp4")]


def _image(data: dict[str, Any]) -> list[tuple[str, str | None]] | None:
    image = _file_ref(data.get("image"))
    if image is None:
        return None
    return [(image["url"], image.get("content_type") or "image/png")]


_SHAPES: tuple[tuple[str, Callable[[dict[str, Any]], list[tuple[str, str | None]] | None]], ...] = (
    ("images", _images),
    ("video", _video),
    ("audio", _audio),
    ("output", _output),
    ("image", _image),
)


def match_shape(data: dict[str, Any]) -> str | None:
    """Name of the first envelope shape the response matches, if any."""
    for name, matcher in _SHAPES:
        if matcher(data) is not None:
            return name
    return None


def extract_files(data: Any, media_kind: MediaKind) -> list[MediaFileDescriptor]:
    """Extract file descriptors from a remote model response.

    Args:
        data: Decoded JSON response of the remote model.
        media_kind: Output kind of the model binding. Attached to every
            descriptor; it does not influence which shape matches.

    Returns:
        Descriptors in the order the remote model returned them.

    Raises:
        UnextractableResponse: If no known envelope shape matches.
    """
    if isinstance(data, dict):
        for _name, matcher in _SHAPES:
            files = matcher(data)
            if files is not None:
                return [
                    MediaFileDescriptor(url=url, content_type=content_type, media_kind=media_kind)
                    for url, content_type in files
                ]
    raise UnextractableResponse(media_kind)
