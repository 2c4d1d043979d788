"""Local folder-tree backend with content-based deduplication."""

from __future__ import annotations

import asyncio
import logging
import posixpath
from pathlib import Path
from typing import Protocol

from s3agle.config import Settings, expand_folder_template
from s3agle.exceptions import LocalTreeError
from s3agle.models import Attachment
from s3agle.naming import content_digest, split_extension

logger = logging.getLogger(__name__)


class FileSystem(Protocol):
    """Filesystem primitives, addressed by root-relative POSIX paths."""

    root: Path

    async def exists(self, path: str) -> bool: ...

    async def read_bytes(self, path: str) -> bytes: ...

    async def write_bytes(self, path: str, data: bytes) -> None: ...

    async def mkdir(self, path: str) -> None: ...


class PathFileSystem:
    """FileSystem backed by a directory on disk."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    def resolve(self, path: str) -> Path:
        return self.root.joinpath(*[part for part in path.split("/") if part])

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).exists)

    async def read_bytes(self, path: str) -> bytes:
        return await asyncio.to_thread(self.resolve(path).read_bytes)

    async def write_bytes(self, path: str, data: bytes) -> None:
        await asyncio.to_thread(self.resolve(path).write_bytes, data)

    async def mkdir(self, path: str) -> None:
        await asyncio.to_thread(self.resolve(path).mkdir, parents=True, exist_ok=True)


def suffixed_name(name: str, counter: int) -> str:
    """Insert -counter before the extension: photo.png -> photo-2.png."""
    stem, ext = split_extension(name)
    return f"{stem}-{counter}{ext}"


class LocalTreeAdapter:
    """Writes attachments into the local folder tree.

    An existing file with identical content is reused; a different file
    under the same name gets a numeric suffix (name-1.ext, name-2.ext, ...).
    """

    def __init__(self, fs: FileSystem | None = None) -> None:
        self._fs = fs
        # Guards the check-then-write below; concurrent stores share one tree
        self._write_lock = asyncio.Lock()

    def filesystem(self, settings: Settings) -> FileSystem:
        if self._fs is None:
            self._fs = PathFileSystem(settings.local_root)
        return self._fs

    def absolute_path(self, relative_path: str, settings: Settings) -> str:
        """Filesystem path of a stored file, for services that ingest by path."""
        root = self.filesystem(settings).root
        return str(root.joinpath(*[part for part in relative_path.split("/") if part]))

    def relative_path(self, absolute_path: str | Path, settings: Settings) -> str | None:
        """Root-relative POSIX path, or None if the path is outside the root."""
        root = self.filesystem(settings).root.resolve()
        try:
            return Path(absolute_path).resolve().relative_to(root).as_posix()
        except ValueError:
            return None

    async def store(self, attachment: Attachment, settings: Settings) -> str:
        """Write the attachment and return its root-relative path.

        Raises:
            LocalTreeError: If reading or writing fails
        """
        fs = self.filesystem(settings)
        folder = expand_folder_template(settings.local_folder)
        new_digest = content_digest(attachment.data, settings.hash_seed)

        try:
            async with self._write_lock:
                if folder and not await fs.exists(folder):
                    await fs.mkdir(folder)

                counter = 0
                while True:
                    name = attachment.name if counter == 0 else suffixed_name(attachment.name, counter)
                    path = posixpath.join(folder, name) if folder else name

                    if not await fs.exists(path):
                        await fs.write_bytes(path, attachment.data)
                        logger.info(f"Saved {attachment.name} to {path}")
                        return path

                    existing = await fs.read_bytes(path)
                    if content_digest(existing, settings.hash_seed) == new_digest:
                        logger.info(f"{path} already holds identical content, reusing it")
                        return path

                    counter += 1
        except OSError as e:
            raise LocalTreeError(f"Failed to save {attachment.name}: {e}") from e
