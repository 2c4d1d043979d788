"""Stable attachment names: content hashes or sanitized original names."""

from __future__ import annotations

import hashlib
import posixpath
import re
import secrets
import unicodedata
from urllib.parse import unquote

from s3agle.models import Attachment

HASH = "hash"
SANITIZE = "sanitize"

FALLBACK_NAME = "untitled"

# Upper bound for generated seeds
SEED_RANGE = 1_000_000

_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")
_INVALID_IN_URL_NAME = re.compile(r'[<>:"/\\|?*\x00-\x1f)]')
_EDGE_JUNK = re.compile(r"^[._]+|[._]+$")

_process_seed = secrets.randbelow(SEED_RANGE)


def current_seed() -> int:
    """Return the process-wide hashing seed."""
    return _process_seed


def regenerate_seed() -> int:
    """Pick a new process-wide seed.

    Changing the seed changes every hashed name, which intentionally breaks
    deduplication against files uploaded earlier.
    """
    global _process_seed
    _process_seed = secrets.randbelow(SEED_RANGE)
    return _process_seed


def content_digest(data: bytes, seed: int | None = None) -> str:
    """Compute a numeric digest of data combined with the seed."""
    seed = current_seed() if seed is None else seed
    digest = hashlib.sha256(str(seed).encode("ascii") + b":" + data).digest()
    return str(int.from_bytes(digest[:8], "big"))


def split_extension(name: str) -> tuple[str, str]:
    """Split a file name into stem and extension (including the dot)."""
    stem, ext = posixpath.splitext(name)
    if not stem:
        # ".gitignore" style names have no extension
        return name, ""
    return stem, ext


def sanitize_file_name(name: str) -> str:
    """Make a file name safe for object keys and filesystems.

    Whitespace runs become underscores, diacritics are stripped, and any
    character outside [A-Za-z0-9._-] is removed.
    """
    decomposed = unicodedata.normalize("NFKD", name)
    without_marks = "".join(c for c in decomposed if not unicodedata.combining(c))
    cleaned = _UNSAFE.sub("", _WHITESPACE.sub("_", without_marks.strip()))
    if not cleaned.strip("._"):
        return FALLBACK_NAME
    return cleaned


def hashed_name(attachment: Attachment, seed: int | None = None) -> str:
    """Digest of the payload, keeping the original extension."""
    _, ext = split_extension(attachment.name)
    return content_digest(attachment.data, seed) + sanitize_extension(ext)


def sanitize_extension(ext: str) -> str:
    cleaned = _UNSAFE.sub("", ext.lower())
    return cleaned if cleaned not in ("", ".") else ""


def name_attachment(attachment: Attachment, mode: str = SANITIZE, seed: int | None = None) -> str:
    """Derive the stored name of an attachment.

    Args:
        attachment: The attachment to name
        mode: "hash" for a content digest, "sanitize" for the cleaned name
        seed: Hash seed (process-wide seed if not provided)

    Returns:
        Candidate file name, never empty
    """
    if mode == HASH:
        return hashed_name(attachment, seed)
    return sanitize_file_name(attachment.name)


def extract_file_name_from_url(url: str) -> str:
    """Derive a local file name from a download URL."""
    name = url.split("?", 1)[0].split("#", 1)[0]
    name = unquote(name.rsplit("/", 1)[-1])
    name = _INVALID_IN_URL_NAME.sub("_", name)
    name = _EDGE_JUNK.sub("", name)
    return name or FALLBACK_NAME
