"""Storage backends an attachment can be sent to."""

from s3agle.backends.asset_manager import AssetManagerAdapter
from s3agle.backends.local_tree import FileSystem, LocalTreeAdapter, PathFileSystem
from s3agle.backends.object_store import ObjectStoreAdapter, public_url

__all__ = [
    "AssetManagerAdapter",
    "FileSystem",
    "LocalTreeAdapter",
    "ObjectStoreAdapter",
    "PathFileSystem",
    "public_url",
]
