"""Command-line interface for image-dedup."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from image_dedup import __version__
from image_dedup.core.deleter import ImageDeleter
from image_dedup.core.errors import ScanCancelledError
from image_dedup.core.grouper import DuplicateGroup, DuplicateGrouper
from image_dedup.core.scanner import ImageScanner
from image_dedup.core.similarity import DEFAULT_THRESHOLD, clamp_threshold
from image_dedup.core.store import DuplicateStore
from image_dedup.ui.progress import run_scan
from image_dedup.ui.session import InteractiveSession
from image_dedup.ui.viewer import DEFAULT_LARGEST_DIMENSION, OpenCVViewer
from image_dedup.utils.config import Config
from image_dedup.utils.logger import set_verbosity, setup_logger

console = Console()
logger = setup_logger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_BAD_DIRECTORY = 2
EXIT_CANCELLED = 130


@click.group()
@click.version_option(version=__version__, prog_name="image-dedup")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: ~/.image-dedup/config.json)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_file: Optional[Path]) -> None:
    """
    Image Dedup - find pixel-identical duplicate images and review them.

    Every pair of images in a directory is compared sample by sample. Matching
    images are grouped and can then be inspected, compared side by side and
    deleted from an interactive console session.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_file"] = config_file

    if verbose:
        set_verbosity(logging.DEBUG)


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option(
    "--recurse/--no-recurse",
    "-r/-R",
    default=None,
    help="Recurse through subdirectories (default: from config)",
)
@click.option(
    "--threshold",
    "-t",
    type=float,
    help="Similarity from 0.1 to 1.0 needed to flag a duplicate (default: 0.9)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Export the groups to a text file right after scanning",
)
@click.option(
    "--review/--no-review",
    default=True,
    help="Start the interactive review session (default: True)",
)
@click.option(
    "--recycle-bin/--permanent",
    default=None,
    help="Move deleted files to the recycle bin or delete permanently",
)
@click.option(
    "--skip-hidden/--include-hidden",
    default=None,
    help="Skip dot-files and dot-folders (default: from config)",
)
@click.option(
    "--show-progress/--no-progress",
    default=True,
    help="Show progress bars",
)
@click.pass_context
def scan(
    ctx: click.Context,
    path: Path,
    recurse: Optional[bool],
    threshold: Optional[float],
    output: Optional[Path],
    review: bool,
    recycle_bin: Optional[bool],
    skip_hidden: Optional[bool],
    show_progress: bool,
) -> None:
    """
    Scan PATH for duplicate images and review them.

    Example:
        image-dedup scan ~/Pictures --recurse --threshold 0.95
    """
    config = Config(ctx.obj.get("config_file"))

    if recurse is None:
        recurse = bool(config.get("recursive", False))
    if skip_hidden is None:
        skip_hidden = bool(config.get("skip_hidden", False))
    if recycle_bin is None:
        recycle_bin = bool(config.get("safety.use_recycle_bin", False))
    if threshold is None:
        threshold = _config_number(
            config, "similarity_threshold", DEFAULT_THRESHOLD, float
        )
    threshold = clamp_threshold(threshold)
    logger.debug(
        f"Options: recurse={recurse}, skip_hidden={skip_hidden}, "
        f"threshold={threshold}, recycle_bin={recycle_bin}"
    )

    console.print(
        f"\n[bold cyan]Image Dedup v{__version__}[/bold cyan] - Duplicate Detection\n"
    )

    if not path.is_dir():
        console.print(f"[red]Directory not found:[/red] {escape(str(path))}")
        sys.exit(EXIT_BAD_DIRECTORY)

    if recurse:
        console.print("[yellow]Recursion enabled[/yellow]")
    if threshold != DEFAULT_THRESHOLD:
        console.print(f"[yellow]Threshold set to {threshold}[/yellow]")

    scanner = ImageScanner()
    candidates = scanner.scan_directory(path, recursive=recurse, skip_hidden=skip_hidden)
    console.print(
        f"Found {len(candidates)} file{'s' if len(candidates) != 1 else ''}"
    )

    if len(candidates) < 2:
        console.print("[yellow]Didn't find enough files to compare.[/yellow]")
        return

    try:
        groups = run_scan(
            DuplicateGrouper(), candidates, threshold, show_progress=show_progress
        )
    except ScanCancelledError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(EXIT_CANCELLED)

    if not groups:
        console.print("[green]✓ No duplicates found![/green]")
        return

    _display_group_summary(groups)

    deleter = ImageDeleter(
        use_recycle_bin=recycle_bin,
        operations_log=config.get_operations_log(),
    )
    store = DuplicateStore(groups, deleter)

    if output:
        outcome = store.export(output)
        if outcome.ok:
            console.print(f"[green]✓ Groups saved to:[/green] {escape(str(output))}")
        else:
            console.print(f"[red]✗ {escape(outcome.message)}:[/red] {escape(str(output))}")

    if not review:
        return

    session = InteractiveSession(
        store,
        OpenCVViewer(),
        console=console,
        largest_dimension=_config_number(
            config, "largest_dimension", DEFAULT_LARGEST_DIMENSION, int
        ),
    )
    session.run()

    if deleter.deleted:
        console.print(
            f"[bold green]✓ {len(deleter.deleted)} files "
            f"{'moved to recycle bin' if recycle_bin else 'deleted'}[/bold green]"
        )


@cli.command(name="config")
@click.argument("key")
@click.argument("value", required=False)
@click.pass_context
def config_command(ctx: click.Context, key: str, value: Optional[str]) -> None:
    """
    Show or change a configuration value.

    KEY supports dot notation. VALUE is read as JSON, so numbers and
    true/false keep their type; anything else is stored as text.

    Example:
        image-dedup config safety.use_recycle_bin true
    """
    config = Config(ctx.obj.get("config_file"))

    if value is None:
        current = config.get(key)
        if current is None:
            console.print(f"[yellow]{escape(key)} is not set[/yellow]")
        else:
            console.print(f"{escape(key)} = {escape(json.dumps(current))}")
        return

    config.set(key, _parse_config_value(value))
    console.print(
        f"[green]✓ Set {escape(key)} = {escape(json.dumps(config.get(key)))}[/green]"
    )


def _parse_config_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _config_number(config: Config, key: str, default: Any, cast: Callable) -> Any:
    """Read a numeric setting, falling back to ``default`` if it is not a number."""
    raw = config.get(key, default)
    try:
        return cast(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid {key} in config: {raw!r}. Using {default}.")
        return default


def _display_group_summary(groups: List[DuplicateGroup]) -> None:
    """Display the scan result as a table, one row per group."""
    table = Table(
        title=f"Found {len(groups)} group{'s' if len(groups) != 1 else ''} of duplicates",
        header_style="bold cyan",
    )
    table.add_column("Group", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("First Item")

    for i, group in enumerate(groups[:10]):  # Show first 10 groups
        table.add_row(str(i), str(len(group)), escape(str(group.first)))

    console.print(table)
    if len(groups) > 10:
        console.print(f"[dim]... and {len(groups) - 10} more groups[/dim]\n")


def main() -> None:
    """
    Main entry point for the CLI.

    Argument errors exit with status 1 rather than click's default of 2,
    which is reserved for a missing scan directory.
    """
    try:
        cli.main(obj={}, standalone_mode=False)
    except click.UsageError as e:
        e.show()
        sys.exit(EXIT_USAGE)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        console.print("[yellow]Aborted.[/yellow]")
        sys.exit(EXIT_USAGE)
    sys.exit(EXIT_OK)


if __name__ == "__main__":
    main()
