"""Configuration for s3agle.

Settings are an immutable value. Per-note overrides are applied with
Settings.merge(), which returns a new value for the current operation.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields, replace
from datetime import date
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv, set_key

from s3agle.exceptions import ConfigurationError
from s3agle.models import Backend
from s3agle.naming import HASH, SANITIZE, current_seed

logger = logging.getLogger(__name__)

ENV_PREFIX = "S3AGLE_"

DEFAULT_OBJECT_STORE_ENDPOINT = "s3.amazonaws.com"
DEFAULT_ASSET_MANAGER_URL = "http://localhost:41595"
DEFAULT_ASSET_MANAGER_FOLDER = "Obsidian"
DEFAULT_LOCAL_FOLDER = "attachments"

HASH_SEED_KEY = f"{ENV_PREFIX}HASH_SEED"

# Frontmatter keys a note can use to override the global settings
LOCAL_ONLY_KEY = "S3agleLocalOnly"
UPLOAD_ON_DRAG_KEY = "S3agleUploadOnDrag"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def expand_folder_template(template: str, today: date | None = None) -> str:
    """Substitute ${year}, ${month} and ${day} and normalize slashes."""
    today = today or date.today()
    expanded = (
        template.replace("${year}", f"{today.year:04d}")
        .replace("${month}", f"{today.month:02d}")
        .replace("${day}", f"{today.day:02d}")
    )
    return "/".join(part for part in expanded.split("/") if part)


@dataclass(frozen=True)
class NoteOverrides:
    """Per-note settings that take precedence over the global configuration."""

    local_only: bool | None = None
    upload_on_drag: bool | None = None

    @classmethod
    def from_frontmatter(cls, frontmatter: Mapping[str, Any] | None) -> NoteOverrides:
        if not frontmatter:
            return cls()
        return cls(
            local_only=_optional_bool(frontmatter.get(LOCAL_ONLY_KEY)),
            upload_on_drag=_optional_bool(frontmatter.get(UPLOAD_ON_DRAG_KEY)),
        )


@dataclass(frozen=True)
class Settings:
    """Destination settings for one upload operation."""

    # Backends
    use_object_store: bool = True
    use_local_tree: bool = False
    use_asset_manager: bool = False

    # Object store
    access_key: str = ""
    secret_key: str = ""
    region: str = ""
    bucket: str = ""
    endpoint: str = DEFAULT_OBJECT_STORE_ENDPOINT
    object_store_folder: str = ""
    use_bucket_subdomain: bool = False
    force_path_style: bool = False
    use_custom_content_url: bool = False
    custom_content_url: str = ""

    # Local folder tree
    local_root: str = ""
    local_folder: str = DEFAULT_LOCAL_FOLDER

    # Asset manager
    asset_manager_url: str = DEFAULT_ASSET_MANAGER_URL
    asset_manager_folder: str = DEFAULT_ASSET_MANAGER_FOLDER

    # Naming
    hash_file_names: bool = False
    hash_seed: int | None = None

    # Rendering
    use_pdf_viewer: bool = True
    use_office_viewer: bool = True

    # Behaviour
    upload_on_drag: bool = True
    local_only: bool = False
    request_timeout: float = 30.0

    @property
    def naming_mode(self) -> str:
        return HASH if self.hash_file_names else SANITIZE

    def enabled_backends(self) -> frozenset[Backend]:
        """Backends enabled by the flags (ignores local-only mode)."""
        enabled = set()
        if self.use_object_store:
            enabled.add(Backend.OBJECT_STORE)
        if self.use_local_tree:
            enabled.add(Backend.LOCAL_TREE)
        if self.use_asset_manager:
            enabled.add(Backend.ASSET_MANAGER)
        return frozenset(enabled)

    def merge(self, overrides: NoteOverrides | None) -> Settings:
        """Return a copy with the non-empty per-note overrides applied."""
        if overrides is None:
            return self
        changes: dict[str, Any] = {}
        if overrides.local_only is not None:
            changes["local_only"] = overrides.local_only
        if overrides.upload_on_drag is not None:
            changes["upload_on_drag"] = overrides.upload_on_drag
        return replace(self, **changes) if changes else self

    def validate(self, backends: Iterable[Backend] | None = None) -> None:
        """Check that the given backends (default: enabled ones) are configured.

        Raises:
            ConfigurationError: If a required value is missing
        """
        targets = set(self.enabled_backends() if backends is None else backends)
        missing = []
        if Backend.OBJECT_STORE in targets:
            for name in ("bucket", "access_key", "secret_key"):
                if not getattr(self, name):
                    missing.append(name)
            if self.use_custom_content_url and not self.custom_content_url:
                missing.append("custom_content_url")
        if Backend.LOCAL_TREE in targets and not self.local_root:
            missing.append("local_root")
        if Backend.ASSET_MANAGER in targets and not self.asset_manager_url:
            missing.append("asset_manager_url")
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    def content_base_url(self) -> str:
        """Base URL objects are served from, without a trailing slash."""
        base = (
            self.custom_content_url
            if self.use_custom_content_url and self.custom_content_url
            else self.endpoint or DEFAULT_OBJECT_STORE_ENDPOINT
        )
        return base.rstrip("/")

    def endpoint_url(self) -> str:
        """Endpoint passed to the object-store client."""
        endpoint = self.endpoint or DEFAULT_OBJECT_STORE_ENDPOINT
        if not endpoint.startswith(("http://", "https://")):
            endpoint = f"https://{endpoint}"
        return endpoint


def _optional_bool(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Expected a boolean, got: {value!r}")


def _coerce(name: str, raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        return _optional_bool(raw)
    if isinstance(default, float):
        try:
            return float(raw)
        except ValueError as e:
            raise ConfigurationError(f"{ENV_PREFIX}{name.upper()} must be a number, got: {raw}") from e
    if name == "hash_seed":
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigurationError(f"{HASH_SEED_KEY} must be an integer, got: {raw}") from e
    return raw


def load_settings(
    env_file: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from S3AGLE_* environment variables.

    Args:
        env_file: Optional .env file to load first (defaults to ./.env)
        environ: Mapping to read instead of os.environ

    Returns:
        Settings with defaults for everything not set
    """
    if environ is None:
        load_dotenv(dotenv_path(env_file))
        environ = os.environ

    values: dict[str, Any] = {}
    for f in fields(Settings):
        key = f"{ENV_PREFIX}{f.name.upper()}"
        if key in environ:
            values[f.name] = _coerce(f.name, environ[key], f.default)
    return Settings(**values)


def dotenv_path(env_file: str | Path | None = None) -> Path:
    """The .env file settings are read from and saved to.

    Defaults to the nearest .env above the working directory, or ./.env if
    there is none yet.
    """
    if env_file:
        return Path(env_file)
    return Path(find_dotenv(usecwd=True) or ".env")


def save_hash_seed(seed: int, env_file: str | Path | None = None) -> Path:
    """Write the hash seed to the .env file so later runs name files the same.

    Raises:
        ConfigurationError: If the file can't be written
    """
    path = dotenv_path(env_file)
    try:
        path.touch(exist_ok=True)
        set_key(path, HASH_SEED_KEY, str(seed), quote_mode="never")
    except OSError as e:
        raise ConfigurationError(f"Could not save {HASH_SEED_KEY} to {path}: {e}") from e
    logger.info(f"Saved {HASH_SEED_KEY} to {path}")
    return path


def ensure_hash_seed(settings: Settings, env_file: str | Path | None = None) -> Settings:
    """Pin a hash seed for hash-mode naming.

    With hashed names on and no seed configured, the process seed is saved
    to the .env file and returned in the settings.
    """
    if not settings.hash_file_names or settings.hash_seed is not None:
        return settings
    seed = current_seed()
    save_hash_seed(seed, env_file)
    return replace(settings, hash_seed=seed)
