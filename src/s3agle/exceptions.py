"""Exception hierarchy for the s3agle library."""

from __future__ import annotations


class S3agleError(Exception):
    """Base exception for all s3agle errors."""

    pass


class ConfigurationError(S3agleError):
    """Raised when a required setting is missing or invalid.

    Always raised before any network or filesystem call is made.
    """

    pass


class BackendError(S3agleError):
    """Raised when a storage backend fails to store an attachment."""

    pass


class ObjectStoreError(BackendError):
    """Raised when the object-store write fails."""

    pass


class LocalTreeError(BackendError):
    """Raised when writing into the local folder tree fails."""

    pass


class AssetManagerError(BackendError):
    """Raised when the asset-manager service rejects or fails a request."""

    pass


class AmbiguousSuccessError(AssetManagerError):
    """Raised when an item was accepted but its identifier can't be found."""

    pass


class FolderError(S3agleError):
    """Raised when an asset-manager folder operation fails."""

    pass


class TotalFailureError(S3agleError):
    """Raised when every enabled backend failed for one attachment.

    The errors attribute maps each backend that was attempted to the
    exception it raised.
    """

    def __init__(self, file_name: str, errors: dict[str, BaseException]) -> None:
        details = "; ".join(f"{backend}: {err}" for backend, err in errors.items())
        super().__init__(f"Failed to upload {file_name}" + (f" ({details})" if details else ""))
        self.file_name = file_name
        self.errors = errors
