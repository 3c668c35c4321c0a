"""
Command-line interface for pipebomb.

This module implements the CLI using Click, with rich-click for the
output colors. Every command runs one coroutine with asyncio.run against
a PipeBomb client built from the global options.

Commands:
    pipebomb identify <host>               Check whether a host runs a pipebomb server
    pipebomb ping <host> [<host> ...]      Measure identify latency of servers
    pipebomb playlist <id>                 Print a playlist (local or host@id)
    pipebomb search <service> <query>      Search a music service
    pipebomb watch <id>                    Print a playlist every time it changes

Options:
    --server <url>                         Home server (overrides pipebomb.yaml)
    --config <path>                        Configuration file
    --log-dir <path>                       Write log files to this directory
    --verbose                              Show debug output

Exit codes:
    0   success
    1   configuration error or unexpected error
    2   authentication refused
    3   server offline or not a pipebomb server
    4   server answered with an error
    5   other pipebomb error
    130 interrupted
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

import rich_click as click
from tqdm import tqdm

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.MAX_WIDTH = 100

from pipebomb import __version__
from pipebomb.client import PipeBomb
from pipebomb.collection.external_collection import ExternalCollection
from pipebomb.collection.playlist import Playlist
from pipebomb.core import (
    AuthenticationError,
    ConfigError,
    FederationError,
    PipeBombConfig,
    PipeBombError,
    ResponseError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from pipebomb.federation import ServerInfo, check_host
from pipebomb.music.track import Track
from pipebomb.net import KeyAuthenticator

logger = get_logger(__name__)


@click.group()
@click.option(
    "--server",
    type=str,
    default=None,
    metavar="<url>",
    help="Home server URL (overrides the configuration file)"
)
@click.option(
    "--config", "config_path",
    type=click.Path(path_type=Path),
    default=None,
    metavar="<pipebomb.yaml>",
    help="Configuration file (default: ./pipebomb.yaml)"
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    metavar="<dir>",
    help="Write full, error and refresh failure logs to this directory"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug output"
)
@click.version_option(__version__, prog_name="pipebomb")
@click.pass_context
def cli(
    ctx: click.Context,
    server: str | None,
    config_path: Path | None,
    log_dir: Path | None,
    verbose: bool
) -> None:
    """
    pipebomb: client for federated pipebomb music servers.

    \b
    EXAMPLES:
        pipebomb identify music.example.org
        pipebomb ping music.example.org friend.example.org
        pipebomb --server music.example.org playlist 7
        pipebomb playlist friend.example.org@12
        pipebomb search youtube "never gonna give you up"
        pipebomb watch 7
    """
    setup_logging(log_dir, verbose)
    ctx.obj = {"server": server, "config_path": config_path}


# =============================================================================
# Commands
# =============================================================================

@cli.command()
@click.argument("host")
def identify(host: str) -> None:
    """Check whether HOST runs a pipebomb server."""
    async def run() -> None:
        info = await check_host(host)
        if info is None:
            raise FederationError(f"{host} is not an online pipebomb server", details={"host": host})
        scheme = "https" if info.https else "http"
        click.echo(f"{info.name} ({scheme}://{info.address})")

    _execute(run)


@cli.command()
@click.argument("hosts", nargs=-1, required=True)
@click.option("--samples", type=click.IntRange(min=1), default=ServerInfo.LATENCY_SAMPLES, show_default=True,
              help="Requests per host")
def ping(hosts: tuple[str, ...], samples: int) -> None:
    """Measure the identify latency of one or more HOSTS."""
    async def run() -> None:
        rows = []
        for host in tqdm(hosts, desc="Pinging", unit="host"):
            info = await check_host(host)
            if info is None:
                rows.append((host, "offline", None))
                continue
            server = ServerInfo.from_host_info(info)
            latency = await server.get_latency(samples=samples)
            rows.append((server.name, server.get_status(), latency))

        for name, status, latency in rows:
            latency_text = f"{latency} ms" if latency is not None else "-"
            click.echo(f"{name:<32} {status:<9} {latency_text}")

    _execute(run)


@cli.command()
@click.argument("collection_id")
@click.pass_context
def playlist(ctx: click.Context, collection_id: str) -> None:
    """Print the playlist COLLECTION_ID (plain ID or host@id)."""
    async def run() -> None:
        async with await _create_client(ctx) as client:
            found = await client.v1.get_playlist(collection_id)
            await _print_playlist(found)

    _execute(run)


@cli.command()
@click.argument("service")
@click.argument("query")
@click.pass_context
def search(ctx: click.Context, service: str, query: str) -> None:
    """Search SERVICE for QUERY."""
    async def run() -> None:
        async with await _create_client(ctx) as client:
            result = await client.v1.search(service, query)
            items = result if isinstance(result, list) else [result] if result is not None else []
            if not items:
                click.echo("No results")
                return
            for item in items:
                click.echo(_describe(item))

    _execute(run)


@cli.command()
@click.argument("collection_id")
@click.option("--duration", type=float, default=None, metavar="<seconds>",
              help="Stop after this many seconds (default: until interrupted)")
@click.pass_context
def watch(ctx: click.Context, collection_id: str, duration: float | None) -> None:
    """Print the playlist COLLECTION_ID every time it changes."""
    async def run() -> None:
        async with await _create_client(ctx) as client:
            found = await client.v1.get_playlist(collection_id)
            await _print_playlist(found)

            def on_update(updated: Playlist) -> None:
                if updated.is_deleted():
                    click.echo(f"{updated.collection_id} was deleted")
                    return
                click.echo(f"\n{updated.get_name()} changed:")
                for track in updated.tracks or []:
                    click.echo(f"  {_describe(track)}")

            found.register_update_callback(on_update)
            logger.info(
                f"Watching {found.collection_id}, refreshing every "
                f"{client.context.playlist_update_frequency:g}s"
            )
            try:
                if duration is None:
                    await asyncio.Event().wait()
                else:
                    await asyncio.sleep(duration)
            finally:
                found.unregister_update_callback(on_update)

    _execute(run)


# =============================================================================
# Helpers
# =============================================================================

async def _create_client(ctx: click.Context) -> PipeBomb:
    """
    Build the client from --server or the configuration file.

    With --server the default options are used and no login happens.
    Otherwise the configuration file is loaded and, if it names a user and
    key file, the client logs in.
    """
    server = ctx.obj["server"]
    if server is not None:
        return PipeBomb(server, config=PipeBombConfig())

    config = load_config(ctx.obj["config_path"])
    client = PipeBomb(config.server.url, config=config.options)
    if config.server.username and config.server.key_file:
        authenticator = KeyAuthenticator.from_file(config.server.key_file)
        try:
            await client.authenticate(config.server.username, authenticator)
        except BaseException:
            await client.close()
            raise
    return client


async def _print_playlist(found: Playlist) -> None:
    tracks = await found.get_track_list()
    owner = f" by {found.owner.username}" if found.owner else ""
    click.echo(f"{found.get_name()}{owner} [{found.collection_id}] - {len(tracks)} tracks")
    for position, track in enumerate(tracks, start=1):
        await track.get_metadata()
        click.echo(f"  {position:>3}. {_describe(track)}")


def _describe(item: Any) -> str:
    if isinstance(item, Track):
        meta = item.metadata
        if meta is None:
            return item.track_id
        return f"{meta.primary_artist} - {meta.title} [{item.track_id}]"
    if isinstance(item, Playlist):
        return f"playlist: {item.get_name()} [{item.collection_id}]"
    if isinstance(item, ExternalCollection):
        return f"{item.type} on {item.service}: {item.get_name()} ({item.size} tracks) [{item.collection_id}]"
    return repr(item)


def _execute(command: Callable[[], Awaitable[None]]) -> None:
    """Run a command coroutine and map pipebomb errors to exit codes."""
    try:
        asyncio.run(command())

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except AuthenticationError as e:
        click.echo(f"Authentication error: {e.message}", err=True)
        click.echo("Check server.username and server.key_file in pipebomb.yaml", err=True)
        logger.error(f"Authentication error: {e.message}", exc_info=True)
        sys.exit(2)

    except FederationError as e:
        click.echo(f"Federation error: {e.message}", err=True)
        sys.exit(3)

    except ResponseError as e:
        click.echo(f"Server error: {e.message}", err=True)
        logger.error(f"Server error: {e.message}", exc_info=True)
        sys.exit(4)

    except PipeBombError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(5)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
