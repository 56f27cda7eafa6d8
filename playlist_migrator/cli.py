"""
Command-line interface for playlist-migrator.

This module implements the CLI using Click, with rich-click for help
formatting and Rich for tables and the progress bar.

Commands:
    playlist-migrate migrate <playlist>             Migrate or resume a playlist
    playlist-migrate reset <playlist>               Forget a playlist's migration state
    playlist-migrate threshold [VALUE]              Show or set the match threshold
    playlist-migrate playlists                      List Spotify playlists with status
    playlist-migrate sync                           Link playlists already on YouTube
    playlist-migrate status                         Show credentials and stored state
    playlist-migrate auth session <service> [JSON]  Store captured session headers
    playlist-migrate auth token <service> ...       Store an OAuth token pair
    playlist-migrate auth clear <service>           Delete stored credentials

Services:
    "source" (alias "spotify") and "target" (alias "youtube").

Configuration:
    Reads config.yaml from the current directory (or --config). The file is
    optional; OAuth client credentials in it are only needed for refreshing
    expired tokens.

Exit Codes:
    0 success, 1 configuration or input error, 2 database error,
    3 authentication error, 4 other migration error, 130 interrupted.
"""

import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

import rich_click as click
from rich import get_console
from rich.table import Table

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.MAX_WIDTH = 100

from playlist_migrator import __version__
from playlist_migrator.core import (
    AuthenticationRequiredError,
    CatalogAuthError,
    ConfigError,
    DatabaseError,
    MigratorError,
    RefreshFailedError,
    Service,
    ValidationError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from playlist_migrator.core.progress import MigrationProgressBar
from playlist_migrator.migration import MigrationService
from playlist_migrator.utils import extract_playlist_id

logger = get_logger(__name__)


SERVICE_ALIASES = {
    "source": Service.SOURCE,
    "spotify": Service.SOURCE,
    "target": Service.TARGET,
    "youtube": Service.TARGET,
}

SERVICE_CHOICE = click.Choice(sorted(SERVICE_ALIASES), case_sensitive=False)


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug output on the console")
@click.version_option(__version__, prog_name="playlist-migrator")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """
    playlist-migrator: Move Spotify playlists to YouTube.

    Every track is matched against YouTube search results by title,
    duration and channel. Progress is stored locally, so an interrupted
    migration resumes where it stopped.

    \b
    GETTING STARTED:
        playlist-migrate auth token spotify --access-token ... --refresh-token ...
        playlist-migrate auth session youtube '{"cookie": "...", ...}'
        playlist-migrate migrate "https://open.spotify.com/playlist/..."
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


@contextmanager
def _service_session(ctx: click.Context) -> Iterator[MigrationService]:
    """
    Load configuration, set up logging and yield a MigrationService.

    Translates application errors into messages and exit codes.
    """
    service: MigrationService | None = None
    try:
        config = load_config(ctx.obj.get("config_path"))
        setup_logging(config.log_directory, verbose=ctx.obj.get("verbose", False))
        service = MigrationService.from_config(config)
        yield service

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except ValidationError as e:
        click.echo(f"Invalid input: {e.message}", err=True)
        sys.exit(1)

    except DatabaseError as e:
        click.echo(f"Database error: {e.message}", err=True)
        logger.error(f"Database error: {e.message}", exc_info=True)
        sys.exit(2)

    except (AuthenticationRequiredError, RefreshFailedError, CatalogAuthError) as e:
        click.echo(f"Authentication error: {e.message}", err=True)
        click.echo("Store fresh credentials with 'playlist-migrate auth'", err=True)
        logger.error(f"Authentication error: {e.message}")
        sys.exit(3)

    except MigratorError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        if service is not None:
            service.close()
        shutdown_logging()


def _parse_playlist(value: str) -> str:
    try:
        return extract_playlist_id(value)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="PLAYLIST") from e


def _format_timestamp(epoch_ms: int | None) -> str:
    if not epoch_ms:
        return "-"
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d %H:%M")


# =============================================================================
# Migration commands
# =============================================================================

@cli.command()
@click.argument("playlist", metavar="PLAYLIST")
@click.pass_context
def migrate(ctx: click.Context, playlist: str) -> None:
    """
    Migrate a Spotify playlist (URL, URI or id) to YouTube.

    Running the command again on the same playlist resumes it: tracks
    already migrated or skipped are not searched again, failed ones are
    retried.
    """
    playlist_id = _parse_playlist(playlist)

    with _service_session(ctx) as service:
        channel = service.start_migration(playlist_id)
        bar = MigrationProgressBar()
        try:
            with bar:
                for event in channel:
                    bar.handle(event)
        except KeyboardInterrupt:
            channel.close()
            click.echo(
                "\nStopped following progress; finishing the current run so it can be resumed...",
                err=True
            )
            channel.wait()
            raise

        if channel.error is not None:
            raise channel.error

        summary = channel.summary
        logger.info("=" * 60)
        logger.info("MIGRATION SUMMARY")
        logger.info("=" * 60)
        logger.info(f"Migrated:          {summary.migrated}")
        logger.info(f"Skipped:           {summary.skipped}")
        logger.info(f"Failed:            {summary.failed}")
        if summary.unidentified:
            logger.info(f"Without Spotify id: {summary.unidentified}")
        if summary.target_playlist_id:
            logger.info(f"YouTube playlist:  https://www.youtube.com/playlist?list={summary.target_playlist_id}")
        logger.info("=" * 60)


@cli.command()
@click.argument("playlist", metavar="PLAYLIST")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset(ctx: click.Context, playlist: str, yes: bool) -> None:
    """
    Forget the migration state of a playlist.

    The next 'migrate' starts from scratch and creates a new YouTube
    playlist. The existing YouTube playlist is not deleted.
    """
    playlist_id = _parse_playlist(playlist)
    if not yes:
        click.confirm(f"Reset migration state of playlist {playlist_id}?", abort=True)

    with _service_session(ctx) as service:
        if service.reset_migration(playlist_id):
            click.echo(f"Migration state of {playlist_id} deleted")
        else:
            click.echo(f"No migration state stored for {playlist_id}")


# Negative values must reach validation instead of being parsed as options
@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("value", type=float, required=False)
@click.pass_context
def threshold(ctx: click.Context, value: Optional[float]) -> None:
    """
    Show or set the match threshold (0 to 1).

    A candidate is accepted only if its score is strictly greater than
    the threshold. Default 0.5.
    """
    with _service_session(ctx) as service:
        if value is None:
            click.echo(f"Match threshold: {service.get_match_threshold()}")
        else:
            stored = service.set_match_threshold(value)
            click.echo(f"Match threshold set to {stored}")


@cli.command()
@click.pass_context
def playlists(ctx: click.Context) -> None:
    """List your Spotify playlists with their migration status."""
    with _service_session(ctx) as service:
        overview = service.playlist_overview()

        table = Table(title="Spotify playlists")
        table.add_column("ID", style="dim")
        table.add_column("Name")
        table.add_column("Tracks", justify="right")
        table.add_column("Public")
        table.add_column("Status")
        table.add_column("Last update")

        status_styles = {
            "completed": "green",
            "in_progress": "yellow",
            "failed": "red",
        }
        for item in overview:
            style = status_styles.get(item.status, "dim")
            table.add_row(
                item.id,
                item.name,
                str(item.track_count),
                "yes" if item.is_public else "no",
                f"[{style}]{item.status}[/{style}]",
                _format_timestamp(item.last_updated),
            )
        get_console().print(table)


@cli.command()
@click.pass_context
def sync(ctx: click.Context) -> None:
    """
    Link Spotify playlists to YouTube playlists with the same name.

    Linked playlists count as migrated: 'migrate' will not create a
    second YouTube playlist for them. Use 'reset' to undo a link.
    """
    with _service_session(ctx) as service:
        linked = service.sync_playlists()

        if not linked:
            click.echo("No new playlists to link")
            return
        for record in linked:
            click.echo(f"Linked '{record.name}' -> {record.target_playlist_id}")
        click.echo(f"{len(linked)} playlist(s) linked")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show stored credentials, the match threshold and migration records."""
    with _service_session(ctx) as service:
        console = get_console()

        for service_role in (Service.SOURCE, Service.TARGET):
            auth = service.tokens.status(service_role)
            if not auth.connected:
                line = "[red]not connected[/red]"
            else:
                line = f"[green]connected[/green] ({auth.auth_type.value})"
                if auth.expires_at:
                    line += f", token expires {_format_timestamp(auth.expires_at)}"
            console.print(f"{service_role.value:<8} {line}")

        console.print(f"Match threshold: {service.get_match_threshold()}")
        console.print(f"Database: {service.store.db_path}")

        records = service.store.get_all_playlists()
        if not records:
            console.print("No migrations recorded")
            return

        table = Table(title="Migrations")
        table.add_column("Playlist")
        table.add_column("Status")
        table.add_column("Migrated", justify="right")
        table.add_column("Skipped", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Last update")
        for record in records:
            counts = service.store.count_tracks(record.source_playlist_id)
            table.add_row(
                record.name or record.source_playlist_id,
                record.status.value,
                str(counts.migrated),
                str(counts.skipped),
                str(counts.failed),
                _format_timestamp(record.last_updated),
            )
        console.print(table)


# =============================================================================
# Credential commands
# =============================================================================

@cli.group()
def auth() -> None:
    """Manage stored credentials."""


@auth.command("session")
@click.argument("service_name", metavar="SERVICE", type=SERVICE_CHOICE)
@click.argument("headers", required=False)
@click.pass_context
def auth_session(ctx: click.Context, service_name: str, headers: Optional[str]) -> None:
    """
    Store captured browser session headers for SERVICE.

    HEADERS is a JSON object of request headers and must include a
    cookie header. Omit it (or pass '-') to read the JSON from stdin.
    """
    if headers is None or headers == "-":
        headers = click.get_text_stream("stdin").read()

    with _service_session(ctx) as service:
        role = SERVICE_ALIASES[service_name.lower()]
        bundle = service.tokens.store_session_headers(role, headers)
        click.echo(f"Stored {len(bundle.headers)} session headers for {role.value}")


@auth.command("token")
@click.argument("service_name", metavar="SERVICE", type=SERVICE_CHOICE)
@click.option("--access-token", required=True, help="OAuth access token")
@click.option("--refresh-token", default=None, help="OAuth refresh token")
@click.option("--expires-in", type=int, default=None, help="Access token lifetime in seconds")
@click.pass_context
def auth_token(
    ctx: click.Context,
    service_name: str,
    access_token: str,
    refresh_token: Optional[str],
    expires_in: Optional[int]
) -> None:
    """Store an OAuth token pair for SERVICE."""
    with _service_session(ctx) as service:
        role = SERVICE_ALIASES[service_name.lower()]
        service.tokens.store_oauth_tokens(
            role, access_token, refresh_token=refresh_token, expires_in=expires_in
        )
        click.echo(f"Stored OAuth token for {role.value}")


@auth.command("clear")
@click.argument("service_name", metavar="SERVICE", type=SERVICE_CHOICE)
@click.pass_context
def auth_clear(ctx: click.Context, service_name: str) -> None:
    """Delete stored credentials for SERVICE."""
    with _service_session(ctx) as service:
        role = SERVICE_ALIASES[service_name.lower()]
        if service.tokens.clear(role):
            click.echo(f"Credentials for {role.value} deleted")
        else:
            click.echo(f"No credentials stored for {role.value}")


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `playlist-migrate` from the
    command line. It invokes the Click CLI group.
    """
    cli()


if __name__ == "__main__":
    main()
