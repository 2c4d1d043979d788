"""Tests for the object-store backend."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from s3agle import Attachment, ObjectStoreError, Settings
from s3agle.backends import ObjectStoreAdapter, public_url
from s3agle.backends.object_store import content_url, object_key


class TestObjectKey:
    """Tests for object key construction."""

    def test_folder_and_name(self) -> None:
        assert object_key("uploads", "photo.png") == "uploads/photo.png"

    def test_no_folder(self) -> None:
        assert object_key("", "photo.png") == "photo.png"

    def test_date_template(self) -> None:
        """Test that date placeholders expand to today's date."""
        with patch("s3agle.config.date") as mock_date:
            mock_date.today.return_value = date(2024, 3, 7)

            assert object_key("img/${year}/${month}/${day}", "a.png") == "img/2024/03/07/a.png"


class TestPublicUrl:
    """Tests for public URL composition."""

    def test_path_style(self, settings: Settings) -> None:
        """Test that path style puts the bucket in the path."""
        assert public_url(settings, "uploads/a.png") == "https://s3.example.com/notes/uploads/a.png"

    def test_subdomain_style(self, settings: Settings) -> None:
        """Test that subdomain style puts the bucket in the host."""
        s = replace(settings, use_bucket_subdomain=True)

        assert public_url(s, "uploads/a.png") == "https://notes.s3.example.com/uploads/a.png"

    def test_force_path_style_wins(self, settings: Settings) -> None:
        """Test that forced path style overrides subdomain style."""
        s = replace(settings, use_bucket_subdomain=True, force_path_style=True)

        assert public_url(s, "a.png") == "https://s3.example.com/notes/a.png"

    def test_endpoint_without_scheme(self, settings: Settings) -> None:
        """Test that a bare host defaults to https."""
        s = replace(settings, endpoint="s3.amazonaws.com")

        assert public_url(s, "a.png") == "https://s3.amazonaws.com/notes/a.png"

    def test_custom_content_url(self, settings: Settings) -> None:
        """Test that a custom CDN host replaces the endpoint."""
        s = replace(settings, use_custom_content_url=True, custom_content_url="http://cdn.example/")

        assert public_url(s, "a.png") == "http://cdn.example/notes/a.png"

    def test_custom_content_url_with_bucket_used_as_is(self, settings: Settings) -> None:
        """Test that a content URL already naming the bucket is not doubled."""
        s = replace(
            settings, use_custom_content_url=True, custom_content_url="https://notes.cdn.example"
        )

        assert public_url(s, "a.png") == "https://notes.cdn.example/a.png"

    def test_spaces_are_escaped(self, settings: Settings) -> None:
        assert public_url(settings, "my file.png") == "https://s3.example.com/notes/my%20file.png"

    def test_content_url_is_prefix(self, settings: Settings) -> None:
        """Test that every object URL starts with the content URL."""
        assert public_url(settings, "uploads/a.png").startswith(content_url(settings))


class TestStore:
    """Tests for ObjectStoreAdapter.store()."""

    async def test_uploads_new_object(
        self, mock_s3_client: MagicMock, settings: Settings, png: Attachment
    ) -> None:
        """Test that a new key is written with its content type."""
        adapter = ObjectStoreAdapter(mock_s3_client)

        url = await adapter.store(png, settings)

        assert url == "https://s3.example.com/notes/uploads/photo.png"
        mock_s3_client.list_objects_v2.assert_called_once_with(
            Bucket="notes", Prefix="uploads/photo.png"
        )
        mock_s3_client.put_object.assert_called_once_with(
            Bucket="notes",
            Key="uploads/photo.png",
            Body=png.data,
            ContentType="image/png",
        )

    async def test_skips_existing_object(
        self, mock_s3_client: MagicMock, settings: Settings, png: Attachment
    ) -> None:
        """Test that an existing key is reused without writing."""
        mock_s3_client.list_objects_v2.return_value = {
            "KeyCount": 1,
            "Contents": [{"Key": "uploads/photo.png"}],
        }
        adapter = ObjectStoreAdapter(mock_s3_client)

        url = await adapter.store(png, settings)

        assert url == "https://s3.example.com/notes/uploads/photo.png"
        mock_s3_client.put_object.assert_not_called()

    async def test_prefix_match_is_not_existence(
        self, mock_s3_client: MagicMock, settings: Settings, png: Attachment
    ) -> None:
        """Test that a longer key sharing the prefix does not count."""
        mock_s3_client.list_objects_v2.return_value = {
            "KeyCount": 1,
            "Contents": [{"Key": "uploads/photo.png.bak"}],
        }
        adapter = ObjectStoreAdapter(mock_s3_client)

        await adapter.store(png, settings)

        mock_s3_client.put_object.assert_called_once()

    async def test_failed_existence_check_treated_as_absent(
        self, mock_s3_client: MagicMock, settings: Settings, png: Attachment
    ) -> None:
        """Test that a failing listing still leads to an upload."""
        mock_s3_client.list_objects_v2.side_effect = RuntimeError("AccessDenied")
        adapter = ObjectStoreAdapter(mock_s3_client)

        url = await adapter.store(png, settings)

        assert url.endswith("/uploads/photo.png")
        mock_s3_client.put_object.assert_called_once()

    async def test_put_failure_raises(
        self, mock_s3_client: MagicMock, settings: Settings, png: Attachment
    ) -> None:
        """Test that a failed write raises ObjectStoreError."""
        mock_s3_client.put_object.side_effect = RuntimeError("NoSuchBucket")
        adapter = ObjectStoreAdapter(mock_s3_client)

        with pytest.raises(ObjectStoreError, match="NoSuchBucket"):
            await adapter.store(png, settings)

    async def test_missing_content_type_defaults(
        self, mock_s3_client: MagicMock, settings: Settings
    ) -> None:
        adapter = ObjectStoreAdapter(mock_s3_client)

        await adapter.store(Attachment(data=b"x", content_type="", name="blob"), settings)

        assert mock_s3_client.put_object.call_args.kwargs["ContentType"] == "application/octet-stream"

    async def test_client_creation_failure_raises(self, settings: Settings, png: Attachment) -> None:
        """Test that a client that can't be built raises ObjectStoreError."""
        adapter = ObjectStoreAdapter()

        with patch("s3agle.backends.object_store.boto3.client", side_effect=ValueError("bad endpoint")):
            with pytest.raises(ObjectStoreError, match="bad endpoint"):
                await adapter.store(png, settings)
