"""Command-line interface for site-icon-tool."""

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from .config import Config, create_default_user_config, load_config
from .errors import FetchError, IconNotFoundError, InvalidOriginError
from .normalizer import normalize_origin
from .pipeline import IconPipeline
from .renderers import CLIRenderer, JSONRenderer
from .renderers.base import BaseRenderer
from .utils.debug_stats import get_stats_tracker
from .utils.logger import VerbosityLevel, setup_logger

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="site-icon-tool",
    help="Find, validate and download the best icon of any website",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


# ============================================================================
# Validation Functions
# ============================================================================


def validate_verbosity(value: str | None) -> str | None:
    """
    Validate verbosity level.

    Args:
        value: Verbosity level string (None means use the configured level)

    Returns:
        Validated verbosity level

    Raises:
        typer.BadParameter: If verbosity is invalid
    """
    if value is None:
        return None
    valid_levels = ["quiet", "normal", "verbose", "debug"]
    if value.lower() not in valid_levels:
        raise typer.BadParameter(
            f"Invalid verbosity: {value}. Must be one of: {', '.join(valid_levels)}"
        )
    return value.lower()


# ============================================================================
# Helper Functions
# ============================================================================


def _prepare(config_file: Path | None, verbosity: str | None) -> tuple[Config, VerbosityLevel]:
    """
    Load configuration and set up logging and debug statistics.

    Returns:
        Tuple of (config, effective verbosity)
    """
    config = load_config(config_file)

    level_name = verbosity or validate_verbosity(config.output.verbosity) or "normal"
    level = VerbosityLevel[level_name.upper()]
    setup_logger(level=level)

    stats_tracker = get_stats_tracker()
    if level == VerbosityLevel.DEBUG:
        stats_tracker.enable()
        stats_tracker.reset()
        logger.debug("Debug statistics tracking enabled")

    return config, level


def _print_debug_stats(level: VerbosityLevel) -> None:
    stats_tracker = get_stats_tracker()
    if level == VerbosityLevel.DEBUG and stats_tracker.is_enabled():
        # stderr keeps JSON output on stdout clean
        sys.stderr.write(stats_tracker.get_summary() + "\n")


# Shared options
SizeOption = Annotated[
    int | None,
    typer.Option("--size", "-s", min=1, help="Preferred icon size in pixels"),
]
VerbosityOption = Annotated[
    str | None,
    typer.Option(
        "--verbosity",
        "-v",
        help="Output verbosity: quiet, normal, verbose, debug",
        callback=validate_verbosity,
    ),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file",
        exists=True,
        dir_okay=False,
    ),
]


# ============================================================================
# Commands
# ============================================================================


@app.command()
def lookup(
    url: Annotated[str, typer.Argument(help="Website URL or host (e.g., example.com)")],
    size: SizeOption = None,
    output_format: Annotated[
        str,
        typer.Option(
            "--format",
            "-f",
            help="Output format: cli, json",
        ),
    ] = "cli",
    no_validate: Annotated[
        bool,
        typer.Option(
            "--no-validate",
            help="List discovered candidates without probing them",
        ),
    ] = False,
    verbosity: VerbosityOption = None,
    config_file: ConfigOption = None,
):
    """
    Discover the icons of a website and show the best match.

    Example:
        sit lookup example.com
        sit lookup https://example.com/blog --size 64
        sit lookup example.com --format json
    """
    config, level = _prepare(config_file, verbosity)

    renderer: BaseRenderer
    if output_format == "cli":
        renderer = CLIRenderer(verbosity=level, color=config.output.color)
    elif output_format == "json":
        renderer = JSONRenderer(verbosity=level)
    else:
        console.print(f"[red]Error: Unknown output format: {output_format}[/red]")
        console.print("Available formats: cli, json")
        raise typer.Exit(1)

    try:
        origin = normalize_origin(url)
        with IconPipeline(config, validate=not no_validate) as pipeline:
            result = pipeline.build_result(origin, size)
        renderer.render(result)
    except (InvalidOriginError, IconNotFoundError) as e:
        renderer.add_error(url, str(e))

    renderer.render_summary()
    _print_debug_stats(level)

    if renderer.all_errors:
        raise typer.Exit(1)


@app.command()
def fetch(
    url: Annotated[str, typer.Argument(help="Website URL or host (e.g., example.com)")],
    output: Annotated[
        Path,
        typer.Option(
            "--output",
            "-o",
            help="File to write the icon to",
            dir_okay=False,
        ),
    ],
    size: SizeOption = None,
    verbosity: VerbosityOption = None,
    config_file: ConfigOption = None,
):
    """
    Download the best icon of a website.

    Example:
        sit fetch example.com --output favicon.png
        sit fetch example.com --size 180 -o touch-icon.png
    """
    config, level = _prepare(config_file, verbosity)

    try:
        origin = normalize_origin(url)
        with IconPipeline(config) as pipeline:
            icon, content, content_type = pipeline.resolve(origin, size)
    except (InvalidOriginError, IconNotFoundError, FetchError) as e:
        console.print(f"[red]✗ {e}[/red]")
        _print_debug_stats(level)
        raise typer.Exit(1)

    output.write_bytes(content)
    _print_debug_stats(level)

    if level != VerbosityLevel.QUIET:
        console.print(
            f"[green]✓ Saved {icon.url} ({content_type}, {len(content)} bytes) to {output}[/green]"
        )


@app.command()
def paths(config_file: ConfigOption = None) -> None:
    """
    List the common icon paths probed when no discovered icon validates.
    """
    config = load_config(config_file)

    console.print("[bold blue]Fallback icon paths[/bold blue]\n")
    for path in config.validation.fallback_paths:
        console.print(f"  • {path}")


@app.command()
def create_config(
    output: Annotated[
        Path,
        typer.Option(
            "--output",
            "-o",
            help="Output file path",
        ),
    ] = Path(".site-icon-tool.toml"),
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing file",
        ),
    ] = False,
):
    """
    Create a default configuration file.

    Example:
        sit create-config
        sit create-config --output ~/.config/site-icon-tool/config.toml
    """
    if output.exists() and not force:
        console.print(f"[yellow]File already exists: {output}[/yellow]")
        console.print("Use --force to overwrite")
        raise typer.Exit(1)

    try:
        create_default_user_config(output, force=force)
        console.print(f"[green]✓ Created configuration file: {output}[/green]")
    except Exception as e:
        console.print(f"[red]✗ Failed to create config: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    try:
        import importlib.metadata

        version = importlib.metadata.version("site-icon-tool")
        console.print(f"site-icon-tool version {version}")
    except Exception:
        console.print("site-icon-tool (version unknown)")


# ============================================================================
# Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        console.print(f"[red]Unexpected error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
