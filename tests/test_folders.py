"""Tests for folder path resolution."""

from __future__ import annotations

import pytest
from helpers import folder

from s3agle import FolderNode, resolve_folder


def make_tree() -> tuple[FolderNode, ...]:
    entries = [
        folder("A1", "A", [folder("B1", "B", [folder("C1", "C")])]),
        folder("X1", "X"),
    ]
    return tuple(FolderNode.from_dict(entry) for entry in entries)


class Recorder:
    """Creation primitive that hands out sequential ids."""

    def __init__(self, refuse: set[str] | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self.refuse = refuse or set()

    async def __call__(self, name: str, parent_id: str) -> str | None:
        self.calls.append((name, parent_id))
        if name in self.refuse:
            return None
        return f"NEW{len(self.calls)}"


class TestResolveExisting:
    """Tests for paths that already exist."""

    async def test_existing_path_creates_nothing(self) -> None:
        """Test that an existing path resolves without any creation."""
        create = Recorder()

        node = await resolve_folder(make_tree(), "A/B/C", create_if_missing=True, create_folder=create)

        assert node is not None
        assert node.id == "C1"
        assert node.parent_id == "B1"
        assert create.calls == []

    async def test_ignores_empty_segments(self) -> None:
        """Test that leading, trailing and doubled slashes are ignored."""
        node = await resolve_folder(make_tree(), "/A//B/")

        assert node is not None
        assert node.id == "B1"

    async def test_names_are_case_sensitive(self) -> None:
        """Test that a differently cased name does not match."""
        assert await resolve_folder(make_tree(), "a/b") is None

    async def test_empty_path_returns_none(self) -> None:
        """Test that an empty path resolves to nothing."""
        create = Recorder()

        assert await resolve_folder(make_tree(), "", create_if_missing=True, create_folder=create) is None
        assert await resolve_folder(make_tree(), "///") is None
        assert create.calls == []


class TestResolveMissing:
    """Tests for paths with missing segments."""

    async def test_missing_without_create_returns_none(self) -> None:
        """Test that lookup-only mode never creates folders."""
        create = Recorder()

        node = await resolve_folder(make_tree(), "A/B/D", create_folder=create)

        assert node is None
        assert create.calls == []

    async def test_missing_without_primitive_returns_none(self) -> None:
        assert await resolve_folder(make_tree(), "A/B/D") is None

    async def test_missing_leaf_created_under_deepest_existing(self) -> None:
        """Test that only the missing leaf is created, under its parent."""
        create = Recorder()

        node = await resolve_folder(make_tree(), "A/B/D", create_if_missing=True, create_folder=create)

        assert create.calls == [("D", "B1")]
        assert node == FolderNode(id="NEW1", name="D", parent_id="B1")

    async def test_chain_created_in_order(self) -> None:
        """Test that each created folder becomes the parent of the next."""
        create = Recorder()

        node = await resolve_folder(make_tree(), "X/Y/Z", create_if_missing=True, create_folder=create)

        assert create.calls == [("Y", "X1"), ("Z", "NEW1")]
        assert node is not None
        assert node.id == "NEW2"
        assert node.parent_id == "NEW1"

    async def test_top_level_created_under_root(self) -> None:
        """Test that a missing top-level folder is created at the root."""
        create = Recorder()

        node = await resolve_folder(make_tree(), "Screenshots", create_if_missing=True, create_folder=create)

        assert create.calls == [("Screenshots", "")]
        assert node is not None
        assert node.parent_id == ""

    async def test_failure_halfway_keeps_ancestors(self) -> None:
        """Test that a refused creation stops the walk and returns None."""
        create = Recorder(refuse={"Z"})

        node = await resolve_folder(make_tree(), "X/Y/Z/W", create_if_missing=True, create_folder=create)

        assert node is None
        # Y was created and is not rolled back, W is never attempted
        assert create.calls == [("Y", "X1"), ("Z", "NEW1")]

    async def test_create_requires_primitive(self) -> None:
        """Test that create mode without a primitive is a usage error."""
        with pytest.raises(ValueError, match="create_folder"):
            await resolve_folder(make_tree(), "A/Q", create_if_missing=True)


class TestFolderNodeFromDict:
    """Tests for parsing folder-list entries."""

    def test_children_get_parent_ids(self) -> None:
        """Test that nested entries remember their parent."""
        root = FolderNode.from_dict(folder("A1", "A", [folder("B1", "B")]))

        assert root.parent_id == ""
        assert root.children[0].parent_id == "A1"
        assert root.children[0].name == "B"

    def test_missing_children(self) -> None:
        """Test that entries without children parse to leaves."""
        node = FolderNode.from_dict({"id": 5, "name": "Solo", "children": None})

        assert node.id == "5"
        assert node.children == ()
