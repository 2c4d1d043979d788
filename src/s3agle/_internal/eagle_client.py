"""Async client for the asset manager's local JSON-over-HTTP API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from s3agle.exceptions import AssetManagerError
from s3agle.models import FolderNode

logger = logging.getLogger(__name__)

ADD_FROM_URL = "/api/item/addFromURL"
ADD_FROM_PATH = "/api/item/addFromPath"
FOLDER_LIST = "/api/folder/list"
FOLDER_CREATE = "/api/folder/create"
ITEM_LIST = "/api/item/list"


class EagleClient:
    """Thin wrapper around the asset-manager endpoints.

    Every call expects HTTP 200 with a {"status": "success", "data": ...}
    envelope; anything else raises AssetManagerError.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> EagleClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(
        self,
        method: str,
        endpoint: str,
        *,
        payload: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Make an API call and unwrap the response envelope."""
        try:
            response = await self._client.request(method, endpoint, json=payload, params=params)
        except httpx.HTTPError as e:
            raise AssetManagerError(f"Request to {endpoint} failed: {e}") from e

        if response.status_code != 200:
            raise AssetManagerError(
                f"{endpoint} returned HTTP {response.status_code}: {response.text[:200]}"
            )
        try:
            body = response.json()
        except ValueError as e:
            raise AssetManagerError(f"{endpoint} returned invalid JSON") from e

        if not isinstance(body, dict) or body.get("status") != "success":
            raise AssetManagerError(f"{endpoint} did not succeed: {body!r}")
        return body.get("data")

    async def add_from_url(
        self,
        url: str,
        name: str,
        *,
        tags: list[str],
        folder_id: str = "",
        website: str = "",
        annotation: str = "",
    ) -> str | None:
        """Add an item the service downloads from url. Returns its id if reported."""
        data = await self._call(
            "POST",
            ADD_FROM_URL,
            payload={
                "url": url,
                "name": name,
                "tags": tags,
                "folderId": folder_id,
                "website": website,
                "annotation": annotation,
            },
        )
        return _item_id(data)

    async def add_from_path(
        self,
        path: str,
        name: str,
        *,
        tags: list[str],
        folder_id: str = "",
        annotation: str = "",
    ) -> str | None:
        """Add an item the service copies from a local path. Returns its id if reported."""
        data = await self._call(
            "POST",
            ADD_FROM_PATH,
            payload={
                "path": path,
                "name": name,
                "tags": tags,
                "folderId": folder_id,
                "annotation": annotation,
            },
        )
        return _item_id(data)

    async def list_folders(self) -> list[FolderNode]:
        """Fetch a full snapshot of the folder tree."""
        data = await self._call("GET", FOLDER_LIST)
        if not isinstance(data, list):
            raise AssetManagerError(f"{FOLDER_LIST} returned unexpected data: {data!r}")
        return [FolderNode.from_dict(entry) for entry in data if isinstance(entry, dict)]

    async def create_folder(self, name: str, parent_id: str = "") -> str:
        """Create a folder and return its id."""
        payload: dict[str, Any] = {"folderName": name}
        if parent_id:
            payload["parent"] = parent_id
        data = await self._call("POST", FOLDER_CREATE, payload=payload)
        folder_id = data.get("id") if isinstance(data, dict) else None
        if not folder_id:
            raise AssetManagerError(f"{FOLDER_CREATE} returned no folder id")
        return str(folder_id)

    async def find_item_id(self, name: str, folder_id: str = "") -> str | None:
        """Look an item up by exact name within a folder."""
        params = {"keyword": name}
        if folder_id:
            params["folders"] = folder_id
        data = await self._call("GET", ITEM_LIST, params=params)
        for item in data or []:
            if isinstance(item, dict) and item.get("name") == name and item.get("id"):
                return str(item["id"])
        return None


def _item_id(data: Any) -> str | None:
    """Extract the new item's id; the service sometimes omits it."""
    if isinstance(data, dict):
        data = data.get("id")
    if not data or data == "undefined":
        return None
    return str(data)
