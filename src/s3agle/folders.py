"""Find-or-create resolution of slash-delimited paths in a remote folder tree."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

from s3agle.models import FolderNode

logger = logging.getLogger(__name__)

# Creates a folder named name under parent_id ("" = root) and returns its id,
# or None if the backend refused.
CreateFolder = Callable[[str, str], Awaitable["str | None"]]


def split_path(path: str) -> list[str]:
    """Split a folder path into its non-empty segments."""
    return [segment for segment in path.split("/") if segment]


def find_child(nodes: Sequence[FolderNode], name: str) -> FolderNode | None:
    """Linear search for an exact, case-sensitive name match."""
    for node in nodes:
        if node.name == name:
            return node
    return None


async def resolve_folder(
    tree: Sequence[FolderNode],
    path: str,
    *,
    create_if_missing: bool = False,
    create_folder: CreateFolder | None = None,
    parent_id: str = "",
) -> FolderNode | None:
    """Resolve path against a folder tree snapshot.

    Walks the tree one segment at a time. Missing segments are created with
    create_folder when create_if_missing is set; created nodes are
    synthesized locally (with no children) so deeper segments can be created
    without fetching the tree again.

    Creation is not transactional: if a segment can't be created, the
    ancestors created before it are left in place and None is returned.

    Args:
        tree: Top-level folders of the snapshot
        path: "/"-delimited folder path
        create_if_missing: Create missing segments
        create_folder: Creation primitive, required when create_if_missing
        parent_id: Id the top-level segment lives under ("" = root)

    Returns:
        The node for the last segment, or None if not found / not created
    """
    segments = split_path(path)
    if not segments:
        return None
    if create_if_missing and create_folder is None:
        raise ValueError("create_folder is required when create_if_missing is set")

    nodes: Sequence[FolderNode] = tree
    current_parent = parent_id
    for index, name in enumerate(segments):
        is_last = index == len(segments) - 1
        match = find_child(nodes, name)

        if match is None:
            if not create_if_missing or create_folder is None:
                return None
            new_id = await create_folder(name, current_parent)
            if not new_id:
                logger.warning(f"Could not create folder {name!r} under {current_parent or 'root'}")
                return None
            logger.info(f"Created folder {name!r} ({new_id}) under {current_parent or 'root'}")
            match = FolderNode(id=new_id, name=name, parent_id=current_parent)

        if is_last:
            return match
        nodes = match.children
        current_parent = match.id

    return None
