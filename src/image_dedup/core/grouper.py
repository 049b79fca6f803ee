"""Pairwise comparison of a candidate set and grouping of the matches."""

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional

from image_dedup.core.errors import ScanCancelledError
from image_dedup.core.similarity import MatchStatus, SimilarityScorer
from image_dedup.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class DuplicateGroup:
    """An ordered set of two or more images considered copies of each other."""

    members: List[Path] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self) -> Iterator[Path]:
        return iter(self.members)

    def __getitem__(self, index: int) -> Path:
        return self.members[index]

    def __contains__(self, path: object) -> bool:
        return path in self.members

    @property
    def first(self) -> Path:
        """The member kept by 'delete all but first'."""
        return self.members[0]


class DisjointSet:
    """Union-find over hashable items with union by size and path compression."""

    def __init__(self, items: Iterable = ()):
        self._parent: Dict = {}
        self._size: Dict = {}
        for item in items:
            self.add(item)

    def add(self, item) -> None:
        if item not in self._parent:
            self._parent[item] = item
            self._size[item] = 1

    def find(self, item):
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        # Compress the path walked above
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, a, b) -> bool:
        """Merge the sets holding ``a`` and ``b``. Returns False if already joined."""
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return False
        if self._size[root_a] < self._size[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_b] = root_a
        self._size[root_a] += self._size[root_b]
        return True


class ProgressSnapshot(NamedTuple):
    outer_done: int
    outer_total: int
    inner_done: int
    inner_total: int

    @property
    def outer_fraction(self) -> float:
        return self.outer_done / self.outer_total if self.outer_total else 1.0

    @property
    def inner_fraction(self) -> float:
        return self.inner_done / self.inner_total if self.inner_total else 1.0


class ScanProgress:
    """
    Outer/inner progress counters shared between the scan worker and the UI.

    The outer counter tracks which candidate is the first of the pair; the
    inner counter tracks comparisons against the remaining candidates.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._outer_done = 0
        self._outer_total = 0
        self._inner_done = 0
        self._inner_total = 0

    def start_outer(self, done: int, total: int, inner_total: int) -> None:
        with self._lock:
            self._outer_done = done
            self._outer_total = total
            self._inner_done = 0
            self._inner_total = inner_total

    def advance_inner(self, done: int) -> None:
        with self._lock:
            self._inner_done = done

    def finish(self) -> None:
        with self._lock:
            self._outer_done = self._outer_total
            self._inner_done = self._inner_total

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(
                self._outer_done,
                self._outer_total,
                self._inner_done,
                self._inner_total,
            )


class DuplicateGrouper:
    """Compares every unordered pair of candidates and groups the matches."""

    def __init__(self, scorer: Optional[SimilarityScorer] = None):
        self.scorer = scorer or SimilarityScorer()

    def group(
        self,
        candidates: Iterable[Path],
        threshold: float,
        progress: Optional[ScanProgress] = None,
        cancel: Optional[threading.Event] = None,
    ) -> List[DuplicateGroup]:
        """
        Find groups of duplicate images.

        Pairs scoring at or above ``threshold`` are linked, and linked images
        are merged transitively. The threshold is used as given; callers
        clamp it first.

        Args:
            candidates: Image paths to compare (duplicates are ignored)
            threshold: Minimum similarity for a match
            progress: Optional counters updated as the scan advances
            cancel: Optional event checked between comparisons

        Returns:
            Groups ordered by their first member, members in path order

        Raises:
            ScanCancelledError: If ``cancel`` is set before the scan finishes
        """
        ordered = sorted(set(candidates))
        total = len(ordered)
        links = DisjointSet(ordered)
        linked = set()
        compared = skipped = failed = 0

        logger.info(
            f"Comparing {total} images ({total * (total - 1) // 2} pairs, "
            f"threshold: {threshold})"
        )

        for i, path_a in enumerate(ordered):
            remainder = ordered[i + 1:]
            if progress:
                progress.start_outer(i, total, len(remainder))

            for j, path_b in enumerate(remainder):
                if cancel is not None and cancel.is_set():
                    raise ScanCancelledError(
                        f"Scan cancelled after {compared} comparisons"
                    )

                result = self.scorer.score(path_a, path_b)
                compared += 1

                if result.status is MatchStatus.DECODE_FAILED:
                    failed += 1
                elif result.status is MatchStatus.SKIPPED:
                    skipped += 1
                elif result.meets(threshold):
                    links.union(path_a, path_b)
                    linked.update((path_a, path_b))
                    logger.debug(
                        f"Match {path_a} ~ {path_b} (score: {result.score:.4f})"
                    )

                if progress:
                    progress.advance_inner(j + 1)

        if progress:
            progress.finish()

        clusters: Dict[Path, List[Path]] = defaultdict(list)
        for path in ordered:
            if path in linked:
                clusters[links.find(path)].append(path)

        groups = sorted(
            (DuplicateGroup(members) for members in clusters.values()),
            key=lambda group: group.first,
        )

        logger.info(
            f"Found {len(groups)} duplicate groups "
            f"({compared} comparisons, {skipped} size mismatches, "
            f"{failed} decode failures)"
        )
        return groups
