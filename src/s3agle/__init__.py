"""s3agle - send note attachments to an object store, a local folder tree and Eagle.

Example usage:
    import asyncio

    from s3agle import Attachment, NoteFile, UploadOrchestrator, load_settings

    async def main() -> None:
        settings = load_settings()
        orchestrator = UploadOrchestrator()
        attachment = Attachment(data=b"...", content_type="image/png", name="photo.png")
        try:
            outcomes = await orchestrator.attach([attachment], NoteFile("note.md"), settings)
        finally:
            await orchestrator.aclose()
        print(outcomes[0].markup)

    asyncio.run(main())
"""

from s3agle.config import NoteOverrides, Settings, load_settings
from s3agle.document import NoteFile, TextDocument
from s3agle.embed import classify, render
from s3agle.exceptions import (
    AmbiguousSuccessError,
    AssetManagerError,
    BackendError,
    ConfigurationError,
    FolderError,
    LocalTreeError,
    ObjectStoreError,
    S3agleError,
    TotalFailureError,
)
from s3agle.folders import resolve_folder
from s3agle.models import (
    Attachment,
    AttachmentOutcome,
    Backend,
    ContentCategory,
    FileReference,
    FolderNode,
    UploadResult,
)
from s3agle.naming import name_attachment
from s3agle.orchestrator import UploadOrchestrator

__version__ = "0.1.0"

__all__ = [
    # Main entry point
    "UploadOrchestrator",
    # Configuration
    "Settings",
    "NoteOverrides",
    "load_settings",
    # Documents
    "NoteFile",
    "TextDocument",
    # Building blocks
    "classify",
    "render",
    "name_attachment",
    "resolve_folder",
    # Models
    "Attachment",
    "AttachmentOutcome",
    "Backend",
    "ContentCategory",
    "FileReference",
    "FolderNode",
    "UploadResult",
    # Exceptions
    "S3agleError",
    "ConfigurationError",
    "BackendError",
    "ObjectStoreError",
    "LocalTreeError",
    "AssetManagerError",
    "AmbiguousSuccessError",
    "FolderError",
    "TotalFailureError",
]
