"""
Console review session for duplicate groups.

The session is a small state machine: an overview listing every group, and
a group view listing one group's members. Each line the user enters is fed to
``dispatch`` together with the current ``SessionState`` and the next state
comes back out.
"""

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from image_dedup import __version__
from image_dedup.core.codec import PillowCodec
from image_dedup.core.errors import DecodeError, ViewerError
from image_dedup.core.store import DuplicateStore, ErrorKind, Outcome
from image_dedup.ui.viewer import (
    DEFAULT_LARGEST_DIMENSION,
    MIN_LARGEST_DIMENSION,
    Viewer,
    compute_display_size,
)
from image_dedup.utils.logger import setup_logger

logger = setup_logger(__name__)

TITLE = f"=== Image Duplicate Detector v{__version__} ==="

OVERVIEW_HELP = (
    "View group: [Group Number], Export to file: e [Path], "
    f"Set compare window's largest dimension (min {MIN_LARGEST_DIMENSION}, "
    f"default {DEFAULT_LARGEST_DIMENSION}): s [Largest Dimension], Quit: q"
)
GROUP_HELP = (
    "Delete item: d [Item Number], Delete all duplicates (leaves first item "
    "in group): d a, Mark as non-duplicate: n [Item Number], Compare items: "
    "c [Item Numbers (space delimited)], Compare all items: c a, Go back: q"
)


class View(Enum):
    OVERVIEW = "overview"
    GROUP = "group"


@dataclass(frozen=True)
class SessionState:
    """Everything the session loop carries from one command to the next."""

    view: View = View.OVERVIEW
    selected: Optional[int] = None
    largest_dimension: int = DEFAULT_LARGEST_DIMENSION
    status: str = ""
    running: bool = True

    def to_overview(self, status: str = "") -> "SessionState":
        return replace(self, view=View.OVERVIEW, selected=None, status=status)


def _parse_index(token: str) -> Optional[int]:
    try:
        return int(token)
    except ValueError:
        return None


def dispatch(
    state: SessionState,
    command: str,
    store: DuplicateStore,
    viewer: Viewer,
    codec: Optional[PillowCodec] = None,
) -> SessionState:
    """
    Apply one user command and return the next session state.

    Problems with a command never raise; they leave the view unchanged and
    describe themselves in ``status``.
    """
    state = replace(state, status="")
    command = command.strip()

    if state.view is View.OVERVIEW:
        return _dispatch_overview(state, command, store)
    return _dispatch_group(state, command, store, viewer, codec or PillowCodec())


def _dispatch_overview(
    state: SessionState, command: str, store: DuplicateStore
) -> SessionState:
    parts = command.split()
    if not parts:
        return replace(state, status="Invalid command")

    verb = parts[0]
    if verb == "q":
        return replace(state, running=False)

    if verb == "e":
        destination = command[1:].strip()
        if not destination:
            return replace(state, status="Invalid command")
        outcome = store.export(Path(destination).expanduser())
        return replace(state, status=outcome.message)

    if verb == "s":
        if len(parts) != 2:
            return replace(state, status="Invalid arguments")
        size = _parse_index(parts[1])
        if size is None:
            return replace(state, status="Invalid arguments")
        size = max(size, MIN_LARGEST_DIMENSION)
        return replace(
            state,
            largest_dimension=size,
            status=f"Largest dimension set to {size}",
        )

    choice = _parse_index(command)
    if choice is None or not store.group(choice).ok:
        return replace(state, status="Invalid selection")
    return replace(state, view=View.GROUP, selected=choice)


def _dispatch_group(
    state: SessionState,
    command: str,
    store: DuplicateStore,
    viewer: Viewer,
    codec: PillowCodec,
) -> SessionState:
    parts = command.split()
    if parts and parts[0] in ("q", "b") and len(parts) == 1:
        return state.to_overview()

    if len(parts) < 2 or parts[0] not in ("d", "n", "c"):
        return replace(state, status="Invalid command or selection")

    verb, args = parts[0], parts[1:]
    index = state.selected

    if verb == "c":
        return _compare(state, args, store, viewer, codec)

    if len(args) != 1:
        return replace(state, status="Invalid command or selection")

    if verb == "d" and args[0] == "a":
        outcome = store.delete_all_but_first(index)
    else:
        member = _parse_index(args[0])
        if member is None:
            return replace(state, status="Invalid selection")
        if verb == "d":
            outcome = store.delete_member(index, member)
        else:
            outcome = store.mark_non_duplicate(index, member)

    return _after_mutation(state, outcome)


def _after_mutation(state: SessionState, outcome: Outcome) -> SessionState:
    if outcome.collapsed:
        return state.to_overview(outcome.message)
    return replace(state, status=outcome.message)


def _compare(
    state: SessionState,
    args: List[str],
    store: DuplicateStore,
    viewer: Viewer,
    codec: PillowCodec,
) -> SessionState:
    group = store.group(state.selected).value

    if args == ["a"]:
        paths = list(group)
    else:
        indices: List[int] = []
        for token in args:
            member = _parse_index(token)
            if member is None or not 0 <= member < len(group):
                return replace(state, status="Invalid selection")
            if member not in indices:
                indices.append(member)
        paths = [group[i] for i in indices]

    outcome = show_images(viewer, codec, paths, state.largest_dimension)
    return replace(state, status=outcome.message)


def show_images(
    viewer: Viewer, codec: PillowCodec, paths: List[Path], largest: int
) -> Outcome:
    """Size the compare windows from the first image and hand off to the viewer."""
    try:
        width, height = codec.dimensions(paths[0])
    except DecodeError as e:
        return Outcome.failure(ErrorKind.DISPLAY_ERROR, str(e))

    size = compute_display_size(width, height, largest)
    logger.debug(f"Image size: {width}x{height}, resized size: {size[0]}x{size[1]}")
    try:
        viewer.display(paths, size)
    except ViewerError as e:
        return Outcome.failure(ErrorKind.DISPLAY_ERROR, str(e))
    return Outcome.success()


class InteractiveSession:
    """Terminal review loop built on Rich."""

    def __init__(
        self,
        store: DuplicateStore,
        viewer: Viewer,
        console: Optional[Console] = None,
        input_func: Optional[Callable[[str], str]] = None,
        codec: Optional[PillowCodec] = None,
        largest_dimension: int = DEFAULT_LARGEST_DIMENSION,
    ):
        """
        Initialize the session.

        Args:
            store: Groups under review
            viewer: Display used by the compare commands
            console: Rich console instance (creates new one if None)
            input_func: Prompt reader (defaults to console.input)
            codec: Codec used to size compare windows
            largest_dimension: Initial compare window size
        """
        self.store = store
        self.viewer = viewer
        self.console = console or Console()
        self.input_func = input_func or self.console.input
        self.codec = codec or PillowCodec()
        self.state = SessionState(
            largest_dimension=max(largest_dimension, MIN_LARGEST_DIMENSION)
        )

    def run(self) -> SessionState:
        """Process commands until the user quits or no groups remain."""
        while self.state.running:
            if self.state.view is View.OVERVIEW and self.store.group_count() == 0:
                self.console.print("[green]No duplicates left to review.[/green]")
                self.state = replace(self.state, running=False)
                break

            self.render()
            try:
                command = self.input_func("Enter command: ")
            except (EOFError, KeyboardInterrupt):
                self.console.print()
                self.state = replace(self.state, running=False)
                break

            self.state = dispatch(
                self.state, command, self.store, self.viewer, self.codec
            )

        return self.state

    def render(self) -> None:
        if self.console.is_terminal:
            self.console.clear()
        self.console.print(f"[bold cyan]{TITLE}[/bold cyan]")
        if self.state.status:
            self.console.print(f"[yellow]{escape(self.state.status)}[/yellow]\n")

        if self.state.view is View.OVERVIEW:
            self._render_overview()
        else:
            self._render_group()

    def _render_overview(self) -> None:
        count = self.store.group_count()
        table = Table(
            title=f"Found {count} group{'s' if count != 1 else ''} of duplicates",
            box=box.ROUNDED,
            header_style="bold magenta",
        )
        table.add_column("Group", style="dim", justify="right")
        table.add_column("Items", justify="right")
        table.add_column("First Item", style="cyan")

        for i, group in enumerate(self.store.groups):
            table.add_row(str(i), str(len(group)), escape(str(group.first)))

        self.console.print(table)
        self.console.print(f"\n[dim]{escape(OVERVIEW_HELP)}[/dim]")

    def _render_group(self) -> None:
        group = self.store.group(self.state.selected).value
        size = len(group)
        table = Table(
            title=(
                f"Group {self.state.selected} "
                f"({size} member{'s' if size != 1 else ''})"
            ),
            box=box.ROUNDED,
            header_style="bold magenta",
        )
        table.add_column("#", style="dim", justify="right")
        table.add_column("File", style="cyan")

        for i, path in enumerate(group):
            table.add_row(str(i), escape(str(path)))

        self.console.print(table)
        self.console.print(f"\n[dim]{escape(GROUP_HELP)}[/dim]")
