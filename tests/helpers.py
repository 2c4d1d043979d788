"""Shared test helpers for s3agle tests."""

from __future__ import annotations

import json
from pathlib import Path, PurePosixPath
from typing import Any

import httpx


class MemoryFileSystem:
    """In-memory FileSystem that records writes."""

    def __init__(self, files: dict[str, bytes] | None = None, root: str = "/vault") -> None:
        self.root = Path(root)
        self.files: dict[str, bytes] = dict(files or {})
        self.dirs: set[str] = set()
        self.writes: list[str] = []

    async def exists(self, path: str) -> bool:
        return path in self.files or path in self.dirs

    async def read_bytes(self, path: str) -> bytes:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    async def write_bytes(self, path: str, data: bytes) -> None:
        self.files[path] = data
        self.writes.append(path)

    async def mkdir(self, path: str) -> None:
        parts = PurePosixPath(path).parts
        for i in range(1, len(parts) + 1):
            self.dirs.add("/".join(parts[:i]))


def folder(id: str, name: str, children: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    """Folder entry as returned by the asset manager's folder list."""
    return {"id": id, "name": name, "children": children or []}


class FakeEagle:
    """Fake asset-manager service for httpx.MockTransport."""

    def __init__(self, folders: list[dict[str, Any]] | None = None) -> None:
        self.folders = folders or []
        self.items: list[dict[str, Any]] = []
        self.requests: list[tuple[str, str, Any]] = []
        self.created_folders: list[dict[str, Any]] = []
        self.omit_item_id = False
        self.unlisted_items = False
        self.fail_endpoints: set[str] = set()
        self.refuse_folder_names: set[str] = set()
        self._next_id = 100

    def _new_id(self) -> str:
        self._next_id += 1
        return f"ID{self._next_id}"

    def _attach_folder(self, entry: dict[str, Any], parent_id: str | None) -> None:
        if not parent_id:
            self.folders.append(entry)
            return
        pending = list(self.folders)
        while pending:
            node = pending.pop()
            if node["id"] == parent_id:
                node["children"].append(entry)
                return
            pending.extend(node["children"])

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self, path: str) -> list[Any]:
        return [body for _, p, body in self.requests if p == path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))

        if path in self.fail_endpoints:
            return httpx.Response(500, text="internal error")

        if path == "/api/folder/list":
            return httpx.Response(200, json={"status": "success", "data": self.folders})

        if path == "/api/folder/create":
            if body["folderName"] in self.refuse_folder_names:
                return httpx.Response(200, json={"status": "error", "data": None})
            folder_id = self._new_id()
            self.created_folders.append({"id": folder_id, **body})
            self._attach_folder(folder(folder_id, body["folderName"]), body.get("parent"))
            return httpx.Response(200, json={"status": "success", "data": {"id": folder_id}})

        if path in ("/api/item/addFromURL", "/api/item/addFromPath"):
            item_id = self._new_id()
            self.items.append({"id": item_id, "name": body["name"], "folderId": body["folderId"]})
            data = None if self.omit_item_id else item_id
            return httpx.Response(200, json={"status": "success", "data": data})

        if path == "/api/item/list":
            keyword = request.url.params.get("keyword")
            matches = [] if self.unlisted_items else [i for i in self.items if i["name"] == keyword]
            return httpx.Response(200, json={"status": "success", "data": matches})

        return httpx.Response(404, text="not found")
