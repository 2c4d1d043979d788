"""Note documents: text buffers, placeholders and frontmatter."""

from __future__ import annotations

import logging
import secrets
from pathlib import Path
from typing import Any, Protocol

import yaml

from s3agle.config import NoteOverrides

logger = logging.getLogger(__name__)

_DELIMITER = "---"


class Document(Protocol):
    """Text buffer of the note attachments are embedded into."""

    def read(self) -> str: ...

    def write(self, text: str) -> None: ...

    def replace_first(self, old: str, new: str) -> bool: ...

    def replace_all(self, old: str, new: str) -> int: ...


class TextDocument:
    """In-memory document."""

    def __init__(self, text: str = "") -> None:
        self.text = text

    def read(self) -> str:
        return self.text

    def write(self, text: str) -> None:
        self.text = text

    def append(self, text: str) -> None:
        self.write(self.read() + text)

    def replace_first(self, old: str, new: str) -> bool:
        """Replace the first exact occurrence of old. Returns False if absent."""
        current = self.read()
        if not old or old not in current:
            return False
        self.write(current.replace(old, new, 1))
        return True

    def replace_all(self, old: str, new: str) -> int:
        current = self.read()
        count = current.count(old) if old else 0
        if count:
            self.write(current.replace(old, new))
        return count


class NoteFile(TextDocument):
    """A note on disk.

    Each mutation reads, edits and writes the file synchronously, so no other
    coroutine can run between the read and the write.
    """

    def __init__(self, path: str | Path, encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.encoding = encoding

    def read(self) -> str:
        return self.path.read_text(encoding=self.encoding)

    def write(self, text: str) -> None:
        self.path.write_text(text, encoding=self.encoding)


def make_placeholder(name: str) -> str:
    """Placeholder text shown while an attachment uploads.

    The random token keeps placeholders unique within a document, so
    concurrent uploads of files with the same name never swap markup.
    """
    return f"![Uploading {name}…]({secrets.token_hex(4)})"


def error_marker(name: str) -> str:
    return f"![Error uploading {name}]"


def parse_frontmatter(content: str) -> tuple[dict[str, Any] | None, str]:
    """Parse YAML frontmatter from note content.

    Returns:
        (frontmatter_dict, body) if valid frontmatter found,
        (None, original_content) otherwise.
    """
    stripped = content.lstrip("\n")
    if not stripped.startswith(_DELIMITER):
        return None, content

    after_open = stripped[len(_DELIMITER) :]
    if not after_open.startswith("\n"):
        return None, content

    close_idx = after_open.find(f"\n{_DELIMITER}", 1)
    if close_idx == -1:
        return None, content

    yaml_block = after_open[1:close_idx]
    body = after_open[close_idx + 1 + len(_DELIMITER) :]
    if body.startswith("\n"):
        body = body[1:]

    try:
        parsed = yaml.safe_load(yaml_block)
    except yaml.YAMLError:
        logger.warning("Failed to parse YAML frontmatter")
        return None, content

    if not isinstance(parsed, dict):
        return None, content
    return parsed, body


def note_overrides(document: Document) -> NoteOverrides:
    """Per-note overrides declared in the document's frontmatter."""
    frontmatter, _ = parse_frontmatter(document.read())
    return NoteOverrides.from_frontmatter(frontmatter)
