"""Pytest fixtures for s3agle tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from unittest.mock import MagicMock

import pytest
from helpers import FakeEagle, MemoryFileSystem

from s3agle import Attachment, Settings, UploadOrchestrator
from s3agle._internal.eagle_client import EagleClient
from s3agle.backends import AssetManagerAdapter, LocalTreeAdapter, ObjectStoreAdapter
from s3agle.notices import LoggingNotifier


@pytest.fixture
def settings() -> Settings:
    """Settings with every backend configured and only the object store enabled."""
    return Settings(
        use_object_store=True,
        use_local_tree=False,
        use_asset_manager=False,
        access_key="AKIA",
        secret_key="secret",
        region="us-east-1",
        bucket="notes",
        endpoint="https://s3.example.com",
        object_store_folder="uploads",
        local_root="/vault",
        local_folder="attachments",
        asset_manager_url="http://eagle.test",
        asset_manager_folder="Obsidian",
        hash_seed=42,
    )


@pytest.fixture
def png() -> Attachment:
    return Attachment(data=b"\x89PNG fake image", content_type="image/png", name="photo.png")


@pytest.fixture
def mock_s3_client() -> MagicMock:
    """Create a mock boto3 S3 client with an empty bucket."""
    client = MagicMock()
    client.list_objects_v2.return_value = {"KeyCount": 0}
    client.put_object.return_value = {"ETag": '"etag"'}
    return client


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture
def fake_eagle() -> FakeEagle:
    return FakeEagle()


@pytest.fixture
async def eagle_client(fake_eagle: FakeEagle) -> AsyncIterator[EagleClient]:
    client = EagleClient("http://eagle.test", transport=fake_eagle.transport())
    yield client
    await client.aclose()


@pytest.fixture
def notifier() -> LoggingNotifier:
    return LoggingNotifier()


@pytest.fixture
def orchestrator(
    mock_s3_client: MagicMock,
    memory_fs: MemoryFileSystem,
    eagle_client: EagleClient,
    notifier: LoggingNotifier,
) -> UploadOrchestrator:
    """Orchestrator wired to in-memory fakes of every backend."""
    return UploadOrchestrator(
        ObjectStoreAdapter(mock_s3_client),
        LocalTreeAdapter(memory_fs),
        AssetManagerAdapter(eagle_client),
        notifier=notifier,
    )
