"""Runs the pairwise scan on a worker thread with nested progress bars."""

import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm import tqdm

from image_dedup.core.grouper import DuplicateGroup, DuplicateGrouper, ScanProgress
from image_dedup.utils.logger import setup_logger

logger = setup_logger(__name__)

REFRESH_INTERVAL = 0.1


def run_scan(
    grouper: DuplicateGrouper,
    candidates: Sequence[Path],
    threshold: float,
    show_progress: bool = True,
    cancel: Optional[threading.Event] = None,
) -> List[DuplicateGroup]:
    """
    Group duplicates on a background worker while rendering progress.

    The foreground only reads the worker's progress counters. A Ctrl-C sets
    the cancellation event; the worker then stops at its next comparison and
    the resulting ScanCancelledError propagates to the caller.

    Args:
        grouper: Grouper performing the comparisons
        candidates: Image paths to compare
        threshold: Clamped similarity threshold
        show_progress: Render parent/child progress bars
        cancel: Optional event used to stop the scan

    Returns:
        Duplicate groups found by the grouper
    """
    progress = ScanProgress()
    cancel = cancel or threading.Event()

    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="scan") as executor:
        future = executor.submit(
            grouper.group, candidates, threshold, progress, cancel
        )
        try:
            if show_progress:
                _render_until_done(future, progress)
            else:
                wait([future])
        except KeyboardInterrupt:
            logger.warning("Cancelling scan...")
            cancel.set()
            wait([future])

        return future.result()


def _render_until_done(future, progress: ScanProgress) -> None:
    """Mirror the progress counters into two tqdm bars until the scan ends."""
    parent = tqdm(total=1, desc="Parent Progress", unit="img", position=0)
    child = tqdm(total=1, desc="Child Progress ", unit="cmp", position=1, leave=False)
    try:
        while True:
            done, _ = wait([future], timeout=REFRESH_INTERVAL, return_when=FIRST_COMPLETED)
            snapshot = progress.snapshot()
            _sync(parent, snapshot.outer_done, snapshot.outer_total)
            _sync(child, snapshot.inner_done, snapshot.inner_total)
            if done:
                break
    finally:
        child.close()
        parent.close()


def _sync(bar: tqdm, done: int, total: int) -> None:
    if bar.total != total:
        bar.reset(total=total)
    bar.n = done
    bar.refresh()
