"""Find file references in note text for the bulk upload/download commands."""

from __future__ import annotations

import posixpath
import re
from urllib.parse import unquote

from s3agle.models import FileReference
from s3agle.naming import extract_file_name_from_url

# Extensions the bulk upload picks up
UPLOADABLE_EXTENSIONS = frozenset(
    {
        ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg",
        ".mp4", ".webm", ".ogg", ".mp3", ".wav", ".flac",
        ".pdf", ".ppt", ".pptx", ".doc", ".docx",
    }
)

# ![[path]] / [[path]] embeds, and ![alt](path) / [alt](path) links
_LOCAL_REFERENCE = re.compile(r"!?\[\[([^\]|#]+)(?:[|#][^\]]*)?\]\]|!?\[[^\]]*\]\(([^)\s]+)\)")
_TAG_NAME = re.compile(r"<([A-Za-z][A-Za-z0-9]*)")


def is_uploadable(path: str) -> bool:
    return posixpath.splitext(path.lower())[1] in UPLOADABLE_EXTENSIONS


def _with_slash(url: str) -> str:
    return url if url.endswith("/") else url + "/"


def extract_local_file_links(text: str) -> list[FileReference]:
    """Local files embedded or linked from the note.

    Web URLs are skipped; file:// prefixes are stripped. Each reference keeps
    the full matched text so it can be replaced in place.
    """
    references = []
    for match in _LOCAL_REFERENCE.finditer(text):
        target = (match.group(1) or match.group(2) or "").strip()
        if not target or target.startswith(("http://", "https://")):
            continue
        path = unquote(target)
        if path.startswith("file://"):
            path = path[len("file://") :]
        if not is_uploadable(path):
            continue
        references.append(
            FileReference(path=path, name=posixpath.basename(path), reference=match.group(0))
        )
    return references


def _object_store_url_pattern(content_url: str) -> re.Pattern[str]:
    return re.compile(re.escape(_with_slash(content_url)) + r"[^\s<>\"')\]]*")


def _enclosing_tag(text: str, start: int, end: int) -> tuple[int, int] | None:
    """Span of the HTML element whose opening tag contains text[start:end]."""
    tag_start = text.rfind("<", 0, start)
    tag_end = text.find(">", end)
    between = text[tag_start:start] if tag_start != -1 else ""
    if tag_start == -1 or tag_end == -1 or ">" in between or "\n" in between:
        return None
    tag = _TAG_NAME.match(text, tag_start)
    if tag is not None:
        closing = re.compile(rf"\s*</{tag.group(1)}\s*>").match(text, tag_end + 1)
        if closing is not None:
            return tag_start, closing.end()
    return tag_start, tag_end + 1


def extract_object_store_links(text: str, content_url: str) -> list[FileReference]:
    """Object-store URLs in the note, with the markup surrounding each one.

    The reference is the whole HTML element (including viewer iframes) or
    markdown link holding the URL, or the bare URL.
    """
    if not content_url:
        return []
    references = []
    for match in _object_store_url_pattern(content_url).finditer(text):
        url = match.group(0)
        start, end = match.span()

        tag_span = _enclosing_tag(text, start, end)
        if tag_span is not None:
            reference = text[tag_span[0] : tag_span[1]]
        else:
            # Markdown link whose target is the URL
            link_start = text.rfind("[", 0, start)
            closes = text[end : end + 1] == ")"
            if link_start != -1 and text[start - 2 : start] == "](" and closes:
                if link_start > 0 and text[link_start - 1] == "!":
                    link_start -= 1
                reference = text[link_start : end + 1]
            else:
                reference = url

        references.append(
            FileReference(path=url, name=extract_file_name_from_url(url), reference=reference)
        )
    return references
