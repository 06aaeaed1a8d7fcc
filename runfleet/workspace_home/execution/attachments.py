"""Image attachment helpers.

Attachments are passed through to the thread service untouched (local paths,
``http(s)`` URLs, or pasted ``data:`` URIs).  These helpers only clean up the
list and give each entry a short human-readable name for logs and views.
"""

from __future__ import annotations

from collections.abc import Iterable

PASTED_IMAGE_TITLE = "Pasted image"
REMOTE_IMAGE_TITLE = "Image"


def attachment_title(path: str) -> str:
    """Short display name for an attachment."""
    if path.startswith("data:"):
        return PASTED_IMAGE_TITLE
    if path.startswith(("http://", "https://")):
        return REMOTE_IMAGE_TITLE
    parts = [part for part in path.replace("\\", "/").split("/") if part]
    return parts[-1] if parts else path


def normalize_images(images: Iterable[str] | None) -> tuple[str, ...]:
    """Drop blank and duplicate entries, preserving the original order."""
    if not images:
        return ()
    seen: dict[str, None] = {}
    for image in images:
        if image and image.strip():
            seen.setdefault(image, None)
    return tuple(seen)
