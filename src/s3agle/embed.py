"""Markup for embedding a stored attachment into a note."""

from __future__ import annotations

import mimetypes
import posixpath
from urllib.parse import quote

from s3agle.config import Settings
from s3agle.models import Backend, ContentCategory

ASSET_MANAGER_SCHEME = "eagle://"

PDF_VIEWER_URL = "https://docs.google.com/viewer?embedded=true&url="
OFFICE_VIEWER_URL = "https://view.officeapps.live.com/op/embed.aspx?src="

_ARCHIVE_EXTENSIONS = {".zip", ".rar", ".7z", ".tar", ".gz", ".tgz", ".bz2", ".xz"}
_MARKDOWN_EXTENSIONS = {".md", ".markdown"}

# Types the stdlib table doesn't know on every platform
_EXTRA_TYPES = {
    ".webp": "image/webp",
    ".flac": "audio/flac",
    ".md": "text/markdown",
    ".mkv": "video/x-matroska",
}


def guess_content_type(name: str) -> str:
    """Best-effort content type for a file name."""
    ext = posixpath.splitext(name)[1].lower()
    if ext in _EXTRA_TYPES:
        return _EXTRA_TYPES[ext]
    content_type, _ = mimetypes.guess_type(name, strict=False)
    return content_type or "application/octet-stream"


def classify(content_type: str, name: str = "") -> ContentCategory:
    """Map a declared content type (and file name) to a content category."""
    content_type = (content_type or "").lower()
    ext = posixpath.splitext(name)[1].lower()

    if ext in _MARKDOWN_EXTENSIONS or content_type == "text/markdown":
        return ContentCategory.MARKDOWN_NOTE
    if content_type.startswith("image/"):
        return ContentCategory.IMAGE
    if content_type.startswith("video/"):
        return ContentCategory.VIDEO
    if content_type.startswith("audio/"):
        return ContentCategory.AUDIO
    if content_type == "application/pdf":
        return ContentCategory.PDF
    if "presentation" in content_type or "powerpoint" in content_type:
        return ContentCategory.SLIDE_DECK
    if "wordprocessing" in content_type or content_type == "application/msword":
        return ContentCategory.WORD_DOCUMENT
    if "spreadsheet" in content_type or "excel" in content_type:
        return ContentCategory.SPREADSHEET
    if "zip" in content_type or "compressed" in content_type or ext in _ARCHIVE_EXTENSIONS:
        return ContentCategory.ARCHIVE
    return ContentCategory.UNKNOWN


def is_asset_manager_location(location: str) -> bool:
    return location.startswith(ASSET_MANAGER_SCHEME)


def _display_name(location: str) -> str:
    return location.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1] or location


def _link(name: str, location: str) -> str:
    return f"[{name}]({location})"


def _viewer_iframe(viewer_url: str, location: str, height: int) -> str:
    src = viewer_url + quote(location, safe=":/%")
    return (
        f'<iframe src="{src}" width="100%" height="{height}" '
        f'frameborder="0"></iframe>'
    )


def render(
    location: str,
    category: ContentCategory,
    backend: Backend,
    settings: Settings,
    name: str | None = None,
) -> str:
    """Build the markup that embeds location in a note.

    Args:
        location: URL, vault path or asset-manager URI
        category: Content category of the attachment
        backend: Backend that produced the location
        settings: Settings providing the viewer toggles
        name: Display name (last path segment of location if not provided)

    Returns:
        Markdown or HTML string to insert into the note
    """
    name = name or _display_name(location)
    from_asset_manager = backend == Backend.ASSET_MANAGER or is_asset_manager_location(location)
    can_use_viewer = not from_asset_manager and backend != Backend.LOCAL_TREE

    if category == ContentCategory.VIDEO:
        return f'<video src="{location}" controls></video>'
    if category == ContentCategory.AUDIO:
        return f'<audio src="{location}" controls></audio>'
    if from_asset_manager:
        return _link(name, location)

    if category == ContentCategory.IMAGE:
        return f"![{name}]({location})"
    if category == ContentCategory.PDF:
        if settings.use_pdf_viewer and can_use_viewer:
            return _viewer_iframe(PDF_VIEWER_URL, location, 800)
        return _link(name, location)
    if category in (ContentCategory.SLIDE_DECK, ContentCategory.WORD_DOCUMENT):
        if settings.use_office_viewer and can_use_viewer:
            return _viewer_iframe(OFFICE_VIEWER_URL, location, 600)
        return _link(name, location)
    if category == ContentCategory.MARKDOWN_NOTE:
        base = posixpath.splitext(_display_name(location))[0]
        return f"[[{base}]]"
    return _link(name, location)
