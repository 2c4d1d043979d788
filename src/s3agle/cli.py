"""Command-line interface for s3agle."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import click

from s3agle import (
    Attachment,
    AttachmentOutcome,
    Backend,
    ConfigurationError,
    FolderError,
    NoteFile,
    Settings,
    UploadOrchestrator,
    load_settings,
)
from s3agle.backends import AssetManagerAdapter
from s3agle.config import ensure_hash_seed, save_hash_seed
from s3agle.embed import guess_content_type
from s3agle.exceptions import AssetManagerError
from s3agle.naming import regenerate_seed
from s3agle.orchestrator import DROP, PASTE

T = TypeVar("T")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class EchoNotifier:
    """Prints notices to stderr."""

    def notify(self, message: str) -> None:
        click.echo(click.style(f"S3agle: {message}", fg="yellow"), err=True)


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]  # type: ignore[no-any-return]


def _run(
    ctx: click.Context,
    action: Callable[[UploadOrchestrator], Awaitable[T]],
) -> T:
    """Run an orchestrator action and close its clients afterwards."""

    async def runner() -> T:
        orchestrator = UploadOrchestrator(notifier=EchoNotifier())
        try:
            return await action(orchestrator)
        finally:
            await orchestrator.aclose()

    return asyncio.run(runner())


def _report(outcomes: list[AttachmentOutcome]) -> None:
    """Print results and exit non-zero if anything failed."""
    success_count = 0
    for outcome in outcomes:
        if outcome.success:
            target = outcome.markup or outcome.result.location or "(skipped)"
            click.echo(click.style("✓ ", fg="green") + f"{outcome.name} -> {target}")
            success_count += 1
        else:
            click.echo(click.style("✗ ", fg="red") + f"{outcome.name}: {outcome.error}", err=True)

    total = len(outcomes)
    if success_count != total:
        click.echo(f"\n{success_count}/{total} file(s) processed.", err=True)
        sys.exit(1)


@click.group()
@click.version_option(package_name="s3agle")
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Load settings from this .env file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, env_file: Path | None, verbose: bool) -> None:
    """S3agle - store note attachments in S3, a local folder and Eagle."""
    logging.basicConfig(format=LOG_FORMAT, level=logging.DEBUG if verbose else logging.INFO)
    try:
        settings = ensure_hash_seed(load_settings(env_file), env_file)
    except ConfigurationError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        sys.exit(1)
    ctx.obj = {"settings": settings, "env_file": env_file}


@main.command()
@click.argument("note", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--drop", "dropped", is_flag=True, help="Treat the files as drag-and-dropped")
@click.pass_context
def upload(ctx: click.Context, note: Path, files: tuple[Path, ...], dropped: bool) -> None:
    """Attach FILES to NOTE.

    Examples:

        s3agle upload note.md photo.png

        s3agle upload note.md slides.pptx report.pdf --drop
    """
    attachments = [
        Attachment(data=path.read_bytes(), content_type=guess_content_type(path.name), name=path.name)
        for path in files
    ]
    try:
        outcomes = _run(
            ctx,
            lambda o: o.attach(
                attachments, NoteFile(note), _settings(ctx), source=DROP if dropped else PASTE
            ),
        )
    except ConfigurationError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        sys.exit(1)
    if not outcomes:
        click.echo("Nothing to do (no backend enabled or drag-and-drop disabled).")
        return
    _report(outcomes)


@main.command("upload-all")
@click.argument("note", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def upload_all(ctx: click.Context, note: Path) -> None:
    """Upload every local file referenced in NOTE."""
    try:
        outcomes = _run(ctx, lambda o: o.upload_all(NoteFile(note), _settings(ctx)))
    except ConfigurationError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        sys.exit(1)
    _report(outcomes)


@main.command("download-all")
@click.argument("note", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def download_all(ctx: click.Context, note: Path) -> None:
    """Download every object-store file referenced in NOTE to the local folder."""
    try:
        outcomes = _run(ctx, lambda o: o.download_all(NoteFile(note), _settings(ctx)))
    except ConfigurationError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        sys.exit(1)
    _report(outcomes)


@main.command("resolve-folder")
@click.argument("path")
@click.option("--create", is_flag=True, help="Create missing folders")
@click.pass_context
def resolve_folder_command(ctx: click.Context, path: str, create: bool) -> None:
    """Find (or create) an Eagle folder and print its id.

    Examples:

        s3agle resolve-folder Obsidian/Screenshots

        s3agle resolve-folder 'Obsidian/${year}/${month}' --create
    """
    settings = _settings(ctx)

    async def action() -> str:
        adapter = AssetManagerAdapter()
        try:
            folder = await adapter.resolve_folder(path, settings, create_if_missing=create)
        finally:
            await adapter.aclose()
        if folder is None:
            raise FolderError(f"Folder not found: {path}")
        return folder.id

    try:
        settings.validate({Backend.ASSET_MANAGER})
        folder_id = asyncio.run(action())
    except (ConfigurationError, FolderError, AssetManagerError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)
    click.echo(folder_id)


@main.command("new-seed")
@click.pass_context
def new_seed(ctx: click.Context) -> None:
    """Pick a fresh hash seed and save it to the .env file.

    Hashed names stop matching files uploaded with the previous seed.
    """
    seed = regenerate_seed()
    try:
        save_hash_seed(seed, ctx.obj["env_file"])
    except ConfigurationError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)
    click.echo(str(seed))


if __name__ == "__main__":
    main()
