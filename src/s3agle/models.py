"""Data models for the s3agle library."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Backend(str, Enum):
    """Storage backends an attachment can be sent to."""

    OBJECT_STORE = "object-store"
    LOCAL_TREE = "local-tree"
    ASSET_MANAGER = "asset-manager"

    def __str__(self) -> str:
        return self.value


class ContentCategory(str, Enum):
    """Coarse file kind used to pick the embed markup."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    PDF = "pdf"
    SLIDE_DECK = "slide-deck"
    WORD_DOCUMENT = "word-document"
    SPREADSHEET = "spreadsheet"
    ARCHIVE = "archive"
    MARKDOWN_NOTE = "markdown-note"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Attachment:
    """A binary payload pasted, dropped or found in a note."""

    data: bytes
    content_type: str
    name: str

    def with_name(self, name: str) -> Attachment:
        """Return a copy carrying a different file name."""
        return Attachment(data=self.data, content_type=self.content_type, name=name)


@dataclass(frozen=True)
class FolderNode:
    """One folder of the asset-manager's remote hierarchy."""

    id: str
    name: str
    parent_id: str = ""
    children: tuple[FolderNode, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any], parent_id: str = "") -> FolderNode:
        """Build a node (and its subtree) from a folder-list entry."""
        node_id = str(data.get("id", ""))
        return cls(
            id=node_id,
            name=str(data.get("name", "")),
            parent_id=str(data.get("parent") or parent_id),
            children=tuple(
                cls.from_dict(child, node_id) for child in data.get("children") or []
            ),
        )


@dataclass(frozen=True)
class UploadResult:
    """Locations produced by the backends for one attachment."""

    object_store_url: str | None = None
    asset_manager_uri: str | None = None
    local_path: str | None = None

    @property
    def success(self) -> bool:
        """Check if at least one backend produced a location."""
        return bool(self.object_store_url or self.asset_manager_uri or self.local_path)

    @property
    def backend(self) -> Backend | None:
        """Backend whose location wins when rendering."""
        if self.object_store_url:
            return Backend.OBJECT_STORE
        if self.local_path:
            return Backend.LOCAL_TREE
        if self.asset_manager_uri:
            return Backend.ASSET_MANAGER
        return None

    @property
    def location(self) -> str | None:
        """Highest-priority location: object-store, local-tree, asset-manager."""
        return self.object_store_url or self.local_path or self.asset_manager_uri


@dataclass(frozen=True)
class AttachmentOutcome:
    """Report for one attachment processed by the orchestrator."""

    name: str
    placeholder: str | None = None
    result: UploadResult = field(default_factory=UploadResult)
    markup: str | None = None
    error: str | None = None
    warnings: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class FileReference:
    """A file referenced from a note.

    reference is the exact text in the note (the whole embed or link) so it
    can be used as a placeholder and replaced in place.
    """

    path: str
    name: str
    reference: str
