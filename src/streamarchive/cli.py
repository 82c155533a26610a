"""CLI interface — thin wrapper over ArchiveService."""

import logging
from typing import NoReturn

import typer

from streamarchive.archiver import ArchiveRunResult
from streamarchive.config import MissingCredentialError, settings
from streamarchive.discovery import DiscoveryResult
from streamarchive.registry import RegistryNotFoundError
from streamarchive.service import ArchiveService, UnknownArchiveModeError


app = typer.Typer(
    name="streamarchive",
    help="Archive live-stream metadata and chat transcripts into JSON files.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> NoReturn:
    typer.echo(f"❌ {message}", err=True)
    raise typer.Exit(code=1)


def _get_service() -> ArchiveService:
    """Create a service instance with default settings."""
    try:
        return ArchiveService(settings=settings)
    except (ValueError, OSError) as e:
        _fail(f"Cannot load channel directory: {e}")


def _echo_discovery(result: DiscoveryResult) -> None:
    for report in result.channels:
        if report.error:
            typer.echo(f"  ⚠️  {report.channel_key}: {report.error}")
        else:
            typer.echo(f"  {report.channel_key}: {report.found} broadcasts ({report.inserted} new)")


def _echo_archive(result: ArchiveRunResult) -> None:
    typer.echo(f"Chat archive [{result.target_status.value}]: {result.processed} processed")
    for o in result.outcomes:
        line = f"  {o.video_id}  {o.state.value:<12s}  pages={o.pages}  new={o.new_messages}"
        if o.error:
            line += f"  ({o.error})"
        typer.echo(line)


@app.command()
def discover() -> None:
    """Refresh the video registry from every tracked channel."""
    svc = _get_service()
    try:
        result = svc.discover()
    except MissingCredentialError as e:
        _fail(str(e))
    _echo_discovery(result)
    typer.echo(f"✅ Registry: {result.inserted} new, {result.updated} refreshed")


@app.command()
def archive(
    mode: str = typer.Option("live", "--mode", "-m", help="Which videos to archive: live or ended."),
) -> None:
    """Fetch chat transcripts for live or ended broadcasts."""
    svc = _get_service()
    try:
        result = svc.archive(mode)
    except (MissingCredentialError, RegistryNotFoundError, UnknownArchiveModeError) as e:
        _fail(str(e))
    _echo_archive(result)


@app.command()
def schedule() -> None:
    """Rewrite the upcoming-broadcast and standing-video caches."""
    svc = _get_service()
    try:
        upcoming = svc.refresh_schedule()
    except MissingCredentialError as e:
        _fail(str(e))
    for key, cards in upcoming["channels"].items():
        typer.echo(f"  {key}: {len(cards)} upcoming")
    typer.echo("✅ Schedule cache updated")


@app.command()
def sync() -> None:
    """Discover broadcasts, then archive ended and live chats."""
    svc = _get_service()
    try:
        discovered, runs = svc.sync()
    except (MissingCredentialError, RegistryNotFoundError) as e:
        _fail(str(e))
    _echo_discovery(discovered)
    for run in runs:
        _echo_archive(run)


@app.command()
def status() -> None:
    """Show registry counts without contacting YouTube."""
    summary = _get_service().status()
    if not summary.total:
        typer.echo("Registry is empty. Run 'streamarchive discover' first.")
        return
    typer.echo(f"Videos:       {summary.total}")
    for name, count in sorted(summary.by_status.items()):
        pending = summary.pending.get(name, 0)
        typer.echo(f"  {name:<10s} {count:>5d}  ({pending} awaiting chat)")
    typer.echo(f"Chat fetched: {summary.chat_fetched}")
