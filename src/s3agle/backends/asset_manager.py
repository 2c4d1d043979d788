"""Asset-manager backend.

The asset manager ingests items from a URL or a local path; it never
receives raw bytes. A location produced by another backend is required.
"""

from __future__ import annotations

import logging
from functools import partial

from s3agle._internal.eagle_client import EagleClient
from s3agle.config import Settings, expand_folder_template
from s3agle.embed import ASSET_MANAGER_SCHEME
from s3agle.exceptions import AmbiguousSuccessError, AssetManagerError
from s3agle.folders import resolve_folder
from s3agle.models import Attachment, FolderNode

logger = logging.getLogger(__name__)

TAGS = ("Obsidian", "s3agle")


def is_web_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def item_uri(item_id: str) -> str:
    return f"{ASSET_MANAGER_SCHEME}item/{item_id}"


class AssetManagerAdapter:
    """Registers stored attachments with the asset manager."""

    def __init__(self, client: EagleClient | None = None) -> None:
        self._client = client

    def client(self, settings: Settings) -> EagleClient:
        if self._client is None:
            self._client = EagleClient(settings.asset_manager_url, timeout=settings.request_timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def _create_folder(self, client: EagleClient, name: str, parent_id: str) -> str | None:
        try:
            return await client.create_folder(name, parent_id)
        except AssetManagerError as e:
            logger.error(f"Failed to create folder {name!r}: {e}")
            return None

    async def resolve_folder(
        self, path: str, settings: Settings, *, create_if_missing: bool = True
    ) -> FolderNode | None:
        """Find (and by default create) a folder from a fresh tree snapshot."""
        client = self.client(settings)
        tree = await client.list_folders()
        return await resolve_folder(
            tree,
            expand_folder_template(path),
            create_if_missing=create_if_missing,
            create_folder=partial(self._create_folder, client),
        )

    async def _folder_id(self, settings: Settings) -> str:
        if not settings.asset_manager_folder:
            return ""
        try:
            folder = await self.resolve_folder(settings.asset_manager_folder, settings)
        except AssetManagerError as e:
            logger.warning(f"Could not list asset-manager folders, using the library root: {e}")
            return ""
        if folder is None:
            logger.warning(
                f"Could not resolve folder {settings.asset_manager_folder!r}, using the library root"
            )
            return ""
        return folder.id

    async def store(self, attachment: Attachment, settings: Settings, *, source: str) -> str:
        """Register the file at source (URL or absolute path) with the asset manager.

        Args:
            attachment: The attachment being stored (provides the display name)
            settings: Destination settings
            source: Location produced by the object-store or local-tree backend

        Returns:
            eagle://item/<id> URI of the new item

        Raises:
            AssetManagerError: If the request fails
            AmbiguousSuccessError: If the item id can't be determined
        """
        if not source:
            raise AssetManagerError("The asset manager needs a URL or a local path to ingest")

        client = self.client(settings)
        folder_id = await self._folder_id(settings)
        tags = list(TAGS)
        annotation = f"Added from {source}"

        if is_web_url(source):
            item_id = await client.add_from_url(
                source,
                attachment.name,
                tags=tags,
                folder_id=folder_id,
                website=source,
                annotation=annotation,
            )
        else:
            item_id = await client.add_from_path(
                source,
                attachment.name,
                tags=tags,
                folder_id=folder_id,
                annotation=annotation,
            )

        if not item_id:
            logger.info(f"No item id returned for {attachment.name}, looking it up by name")
            item_id = await client.find_item_id(attachment.name, folder_id)
        if not item_id:
            raise AmbiguousSuccessError(
                f"Item {attachment.name} was submitted but its id could not be found"
            )

        logger.info(f"Added {attachment.name} to the asset manager as {item_id}")
        return item_uri(item_id)
