"""Main CLI application for Krew."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from krew import __version__
from krew.config.parser import ConfigError, load_plugin_from_index, load_plugin_manifest
from krew.config.schemas import PluginManifest
from krew.core import installer, receipt
from krew.core.environment import Paths
from krew.core.errors import (
    AlreadyInstalledError,
    AlreadyUpgradedError,
    KrewError,
    NotInstalledError,
)

# Create the main Typer app
app = typer.Typer(
    name="krew",
    help="Install and manage kubectl plugins",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

# Set up logger for the krew package
logger = logging.getLogger("krew")


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def get_paths(ctx: typer.Context) -> Paths:
    """Get the installation layout chosen in the app callback."""
    paths: Paths = ctx.obj
    return paths


def resolve_plugin(paths: Paths, name: str | None, manifest: Path | None) -> PluginManifest:
    """Load a plugin manifest from --manifest or from the local index."""
    try:
        if manifest is not None:
            plugin = load_plugin_manifest(manifest)
        elif name is not None:
            plugin = load_plugin_from_index(paths.index_path, name)
        else:
            print_error("Specify a plugin name or --manifest")
            raise typer.Exit(1)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if name is not None and manifest is not None and plugin.name != name:
        print_error(f"Manifest {manifest} is for plugin {plugin.name!r}, not {name!r}")
        raise typer.Exit(1)
    return plugin


@app.callback()
def callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug)",
        ),
    ] = 0,
    root: Annotated[
        Path | None,
        typer.Option(
            "--root",
            help="Installation root (overrides KREW_ROOT)",
        ),
    ] = None,
) -> None:
    """Krew - install and manage kubectl plugins."""
    setup_logging(verbose)
    ctx.obj = Paths(root) if root is not None else Paths.from_environment()


@app.command()
def version() -> None:
    """Show the Krew version."""
    console.print(f"krew {__version__}")


ManifestOption = Annotated[
    Path | None,
    typer.Option(
        "--manifest",
        "-m",
        help="Plugin manifest file to use instead of the local index",
        exists=True,
        dir_okay=False,
    ),
]

ArchiveOption = Annotated[
    Path | None,
    typer.Option(
        "--archive",
        help="Local archive to install instead of downloading the manifest's uri",
        exists=True,
        dir_okay=False,
    ),
]


@app.command()
def install(
    ctx: typer.Context,
    plugin: Annotated[
        str | None,
        typer.Argument(help="Plugin to install from the local index"),
    ] = None,
    manifest: ManifestOption = None,
    archive: ArchiveOption = None,
) -> None:
    """Install a plugin.

    The archive is checksum-verified even when --archive is given.
    """
    paths = get_paths(ctx)
    manifest_data = resolve_plugin(paths, plugin, manifest)

    try:
        result = installer.install(
            paths, manifest_data, installer.InstallOpts(archive_file_override=archive)
        )
    except AlreadyInstalledError as e:
        print_warning(f"{e}. Use 'krew upgrade' to get a newer version.")
        raise typer.Exit(1) from e
    except KrewError as e:
        print_error(f"Failed to install {manifest_data.name}: {e}")
        raise typer.Exit(1) from e

    print_success(f"Installed {result.plugin_name} {result.version}")
    console.print(f"  Linked: {result.link_path}")
    if manifest_data.spec.caveats:
        console.print(f"\nCaveats:\n{manifest_data.spec.caveats.strip()}")


@app.command()
def upgrade(
    ctx: typer.Context,
    plugin: Annotated[
        str | None,
        typer.Argument(help="Plugin to upgrade from the local index"),
    ] = None,
    manifest: ManifestOption = None,
    archive: ArchiveOption = None,
) -> None:
    """Upgrade an installed plugin to the version in its manifest."""
    paths = get_paths(ctx)
    manifest_data = resolve_plugin(paths, plugin, manifest)

    try:
        result = installer.upgrade(
            paths, manifest_data, installer.InstallOpts(archive_file_override=archive)
        )
    except AlreadyUpgradedError as e:
        console.print(f"Skipping {manifest_data.name}: {e}")
        return
    except KrewError as e:
        print_error(f"Failed to upgrade {manifest_data.name}: {e}")
        raise typer.Exit(1) from e

    print_success(
        f"Upgraded {result.plugin_name} from {result.previous_version} to {result.version}"
    )


@app.command()
def uninstall(
    ctx: typer.Context,
    plugins: Annotated[
        list[str],
        typer.Argument(help="Plugins to uninstall"),
    ],
) -> None:
    """Uninstall plugins."""
    paths = get_paths(ctx)
    failed = False

    for plugin_name in plugins:
        try:
            installer.uninstall(paths, plugin_name)
        except NotInstalledError as e:
            print_warning(str(e))
            failed = True
            continue
        except KrewError as e:
            print_error(f"Failed to uninstall {plugin_name}: {e}")
            failed = True
            continue
        print_success(f"Uninstalled {plugin_name}")

    if failed:
        raise typer.Exit(1)


@app.command("list")
def list_plugins(ctx: typer.Context) -> None:
    """List installed plugins."""
    paths = get_paths(ctx)
    installed = receipt.list_installed(paths.install_receipts_path)

    if not installed:
        console.print("No plugins installed")
        return

    table = Table(title="Installed Plugins")
    table.add_column("Plugin", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Description", style="dim")

    for plugin in installed:
        table.add_row(plugin.name, plugin.version, plugin.spec.short_description or "")

    console.print(table)


@app.command()
def sweep(ctx: typer.Context) -> None:
    """Remove install directories that no receipt refers to."""
    paths = get_paths(ctx)
    try:
        removed = installer.sweep_orphans(paths)
    except KrewError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if not removed:
        console.print("Nothing to clean up")
        return
    for path in removed:
        print_success(f"Removed {path}")
