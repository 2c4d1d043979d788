"""Upload orchestration: routing, backend ordering, fallback and rendering."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import replace

import httpx

from s3agle.backends.asset_manager import AssetManagerAdapter
from s3agle.backends.local_tree import FileSystem, LocalTreeAdapter
from s3agle.backends.object_store import ObjectStoreAdapter, content_url
from s3agle.config import Settings
from s3agle.document import Document, error_marker, make_placeholder, note_overrides
from s3agle.embed import classify, guess_content_type, render
from s3agle.exceptions import AssetManagerError, BackendError, S3agleError, TotalFailureError
from s3agle.models import Attachment, AttachmentOutcome, Backend, FileReference, UploadResult
from s3agle.naming import name_attachment
from s3agle.notices import LoggingNotifier, Notifier
from s3agle.references import extract_local_file_links, extract_object_store_links

logger = logging.getLogger(__name__)

PASTE = "paste"
DROP = "drop"


class UploadOrchestrator:
    """Sends attachments to the enabled backends and embeds the result.

    Object-store and local-tree uploads run concurrently; the asset manager
    runs afterwards with whichever location they produced (object-store
    preferred), since it can only ingest URLs and paths.

    Example:
        orchestrator = UploadOrchestrator()
        document = NoteFile("note.md")
        outcomes = await orchestrator.attach([attachment], document, settings)
    """

    def __init__(
        self,
        object_store: ObjectStoreAdapter | None = None,
        local_tree: LocalTreeAdapter | None = None,
        asset_manager: AssetManagerAdapter | None = None,
        *,
        notifier: Notifier | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.object_store = object_store or ObjectStoreAdapter()
        self.local_tree = local_tree or LocalTreeAdapter()
        self.asset_manager = asset_manager or AssetManagerAdapter()
        self.notifier = notifier or LoggingNotifier()
        self._http_client = http_client

    async def aclose(self) -> None:
        await self.asset_manager.aclose()
        if self._http_client is not None:
            await self._http_client.aclose()

    def route(self, settings: Settings) -> frozenset[Backend]:
        """Backends to call for the given (already merged) settings."""
        if settings.local_only:
            return frozenset({Backend.LOCAL_TREE})
        return settings.enabled_backends()

    def name(self, attachment: Attachment, settings: Settings) -> Attachment:
        """Rename the attachment according to the naming mode."""
        return attachment.with_name(
            name_attachment(attachment, settings.naming_mode, settings.hash_seed)
        )

    async def upload(self, attachment: Attachment, settings: Settings) -> UploadResult:
        """Store one attachment in every routed backend.

        Returns:
            UploadResult with the locations that were produced

        Raises:
            ConfigurationError: If a routed backend is not configured
            TotalFailureError: If every routed backend failed
        """
        backends = self.route(settings)
        settings.validate(backends)
        result, _ = await self._upload(attachment, settings, backends)
        return result

    async def _store(self, backend: Backend, attachment: Attachment, settings: Settings) -> str:
        if backend == Backend.OBJECT_STORE:
            return await self.object_store.store(attachment, settings)
        return await self.local_tree.store(attachment, settings)

    def _backend_failed(
        self, backend: Backend, attachment: Attachment, error: BaseException, warnings: list[str]
    ) -> None:
        message = f"{backend} failed for {attachment.name}: {error}"
        logger.error(message)
        warnings.append(message)
        self.notifier.notify(message)

    async def _upload(
        self, attachment: Attachment, settings: Settings, backends: frozenset[Backend]
    ) -> tuple[UploadResult, list[str]]:
        errors: dict[str, BaseException] = {}
        warnings: list[str] = []
        locations: dict[Backend, str] = {}

        primary = [b for b in (Backend.OBJECT_STORE, Backend.LOCAL_TREE) if b in backends]
        results = await asyncio.gather(
            *(self._store(b, attachment, settings) for b in primary),
            return_exceptions=True,
        )
        for backend, outcome in zip(primary, results):
            if isinstance(outcome, BackendError):
                errors[str(backend)] = outcome
                self._backend_failed(backend, attachment, outcome, warnings)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                locations[backend] = outcome

        if Backend.ASSET_MANAGER in backends:
            source = locations.get(Backend.OBJECT_STORE)
            if source is None and Backend.LOCAL_TREE in locations:
                source = self.local_tree.absolute_path(locations[Backend.LOCAL_TREE], settings)

            if source is None:
                skipped = AssetManagerError(
                    "skipped, no object-store or local copy to ingest from"
                )
                errors[str(Backend.ASSET_MANAGER)] = skipped
                self._backend_failed(Backend.ASSET_MANAGER, attachment, skipped, warnings)
            else:
                try:
                    locations[Backend.ASSET_MANAGER] = await self.asset_manager.store(
                        attachment, settings, source=source
                    )
                except BackendError as e:
                    errors[str(Backend.ASSET_MANAGER)] = e
                    self._backend_failed(Backend.ASSET_MANAGER, attachment, e, warnings)

        result = UploadResult(
            object_store_url=locations.get(Backend.OBJECT_STORE),
            asset_manager_uri=locations.get(Backend.ASSET_MANAGER),
            local_path=locations.get(Backend.LOCAL_TREE),
        )
        if not result.success:
            raise TotalFailureError(attachment.name, errors)
        return result, warnings

    async def process(
        self,
        attachment: Attachment,
        document: Document,
        placeholder: str,
        settings: Settings,
    ) -> AttachmentOutcome:
        """Upload one attachment and swap its placeholder for the embed markup.

        In local-only mode the file is only written to the local tree and the
        placeholder is left for the caller to embed. On total failure the
        placeholder becomes an error marker.

        Raises:
            ConfigurationError: If a routed backend is not configured
        """
        backends = self.route(settings)
        settings.validate(backends)
        if not backends:
            logger.info(f"No backend enabled, leaving {attachment.name} untouched")
            return AttachmentOutcome(name=attachment.name, placeholder=placeholder)

        try:
            result, warnings = await self._upload(attachment, settings, backends)
            location, produced_by = result.location, result.backend
            if location is None or produced_by is None:
                raise TotalFailureError(attachment.name, {})
        except TotalFailureError as e:
            logger.error(str(e))
            self.notifier.notify(f"Failed to upload {attachment.name}")
            document.replace_first(placeholder, error_marker(attachment.name))
            return AttachmentOutcome(name=attachment.name, placeholder=placeholder, error=str(e))

        if settings.local_only:
            return AttachmentOutcome(
                name=attachment.name,
                placeholder=placeholder,
                result=result,
                warnings=tuple(warnings),
            )

        markup = render(
            location,
            classify(attachment.content_type, attachment.name),
            produced_by,
            settings,
            name=attachment.name,
        )
        if not document.replace_first(placeholder, markup):
            logger.warning(f"Placeholder for {attachment.name} is no longer in the note")
        return AttachmentOutcome(
            name=attachment.name,
            placeholder=placeholder,
            result=result,
            markup=markup,
            warnings=tuple(warnings),
        )

    async def process_many(
        self,
        items: Sequence[tuple[Attachment, str]],
        document: Document,
        settings: Settings,
    ) -> list[AttachmentOutcome]:
        """Process (attachment, placeholder) pairs concurrently.

        A failure is reported for its own attachment and never cancels the
        others.
        """
        settings.validate(self.route(settings))
        results = await asyncio.gather(
            *(self.process(a, document, p, settings) for a, p in items),
            return_exceptions=True,
        )

        outcomes: list[AttachmentOutcome] = []
        for (attachment, placeholder), outcome in zip(items, results):
            if isinstance(outcome, AttachmentOutcome):
                outcomes.append(outcome)
                continue
            if not isinstance(outcome, Exception):
                raise outcome
            logger.error(f"Error processing {attachment.name}: {outcome}")
            self.notifier.notify(f"Failed to upload {attachment.name}: {outcome}")
            document.replace_first(placeholder, error_marker(attachment.name))
            outcomes.append(
                AttachmentOutcome(name=attachment.name, placeholder=placeholder, error=str(outcome))
            )

        failed = sum(1 for o in outcomes if not o.success)
        if failed:
            self.notifier.notify(f"{len(outcomes) - failed}/{len(outcomes)} file(s) processed.")
        elif outcomes:
            self.notifier.notify("All files processed.")
        return outcomes

    async def attach(
        self,
        files: Sequence[Attachment],
        document: Document,
        settings: Settings,
        *,
        source: str = PASTE,
    ) -> list[AttachmentOutcome]:
        """Handle files pasted or dropped into a note.

        The note's frontmatter overrides are merged first. Each file gets a
        unique placeholder appended to the note, which is replaced once the
        upload finishes.
        """
        settings = settings.merge(note_overrides(document))
        if source == DROP and not settings.upload_on_drag:
            logger.info("Upload on drag-and-drop is disabled, ignoring dropped files")
            return []
        backends = self.route(settings)
        if not files or not backends:
            return []
        settings.validate(backends)

        items = []
        for file in files:
            named = self.name(file, settings)
            placeholder = make_placeholder(named.name)
            text = document.read()
            separator = "" if not text or text.endswith("\n") else "\n"
            document.write(f"{text}{separator}{placeholder}\n")
            items.append((named, placeholder))
        return await self.process_many(items, document, settings)

    async def _locate(self, fs: FileSystem, reference: FileReference, settings: Settings) -> str | None:
        """Root-relative path of a referenced local file, if it exists."""
        candidates = []
        if reference.path.startswith("/"):
            relative = self.local_tree.relative_path(reference.path, settings)
            if relative:
                candidates.append(relative)
        else:
            candidates.append(reference.path)
            if settings.local_folder:
                candidates.append(f"{settings.local_folder.strip('/')}/{reference.path}")
        for candidate in candidates:
            if await fs.exists(candidate):
                return candidate
        return None

    async def upload_all(self, document: Document, settings: Settings) -> list[AttachmentOutcome]:
        """Upload every local file referenced in the note and rewrite the references.

        The whole reference (embed or link) serves as the placeholder. A
        reference repeated in the note is uploaded once and every copy is
        rewritten.
        """
        settings = replace(settings, local_only=False)
        settings.validate(self.route(settings))
        fs = self.local_tree.filesystem(settings)

        items = []
        seen: set[str] = set()
        for reference in extract_local_file_links(document.read()):
            if reference.reference in seen:
                continue
            seen.add(reference.reference)
            path = await self._locate(fs, reference, settings)
            if path is None:
                logger.warning(f"Referenced file {reference.path} not found, skipping")
                continue
            try:
                data = await fs.read_bytes(path)
            except OSError as e:
                self.notifier.notify(f"Could not read {reference.path}: {e}")
                continue
            attachment = Attachment(
                data=data, content_type=guess_content_type(reference.name), name=reference.name
            )
            items.append((self.name(attachment, settings), reference.reference))

        if not items:
            self.notifier.notify("No local files to upload.")
            return []
        outcomes = await self.process_many(items, document, settings)
        for outcome in outcomes:
            if outcome.placeholder and outcome.markup:
                document.replace_all(outcome.placeholder, outcome.markup)
        return outcomes

    async def _download(self, url: str, settings: Settings) -> tuple[bytes, str | None]:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=settings.request_timeout, follow_redirects=True
            )
        response = await self._http_client.get(url)
        response.raise_for_status()
        content_type = response.headers.get("content-type")
        return response.content, content_type.split(";")[0].strip() if content_type else None

    async def _download_one(
        self, url: str, references: list[FileReference], document: Document, settings: Settings
    ) -> AttachmentOutcome:
        name = references[0].name
        try:
            data, content_type = await self._download(url, settings)
        except httpx.HTTPError as e:
            raise S3agleError(f"Failed to download {url}: {e}") from e

        attachment = Attachment(
            data=data, content_type=content_type or guess_content_type(name), name=name
        )
        path = await self.local_tree.store(attachment, settings)
        markup = render(
            path,
            classify(attachment.content_type, name),
            Backend.LOCAL_TREE,
            settings,
            name=name,
        )
        for reference in references:
            document.replace_all(reference.reference, markup)
        return AttachmentOutcome(
            name=name, result=UploadResult(local_path=path), markup=markup
        )

    async def download_all(self, document: Document, settings: Settings) -> list[AttachmentOutcome]:
        """Download every object-store file referenced in the note into the local tree."""
        settings.validate({Backend.LOCAL_TREE})
        by_url: dict[str, list[FileReference]] = {}
        for reference in extract_object_store_links(document.read(), content_url(settings)):
            by_url.setdefault(reference.path, []).append(reference)

        if not by_url:
            self.notifier.notify("No object-store links found in the note.")
            return []

        urls = list(by_url)
        results = await asyncio.gather(
            *(self._download_one(url, by_url[url], document, settings) for url in urls),
            return_exceptions=True,
        )
        outcomes: list[AttachmentOutcome] = []
        for url, outcome in zip(urls, results):
            if isinstance(outcome, AttachmentOutcome):
                outcomes.append(outcome)
            elif isinstance(outcome, S3agleError):
                logger.error(f"Error downloading {url}: {outcome}")
                self.notifier.notify(f"Failed to download file: {url}")
                outcomes.append(AttachmentOutcome(name=by_url[url][0].name, error=str(outcome)))
            else:
                raise outcome

        if all(o.success for o in outcomes):
            self.notifier.notify("All links have been updated to local paths.")
        return outcomes
