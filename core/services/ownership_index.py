# core/services/ownership_index.py
import logging
import os
import re
import threading
import time
from typing import Callable, FrozenSet, NamedTuple, Optional, Tuple

from core.errors import AccessError

# <root>/<author name>/<title> (<externalId>)/
BOOK_DIRECTORY = re.compile(r'^(?P<title>.*\S)\s*\((?P<external_id>[^()\s][^()]*)\)$')

Entry = Tuple[str, str]


def normalise_entry(author_name: str, title: str) -> Entry:
    return author_name.strip().lower(), title.strip().lower()


class OwnershipSnapshot(NamedTuple):
    """One completed scan. Never mutated once published."""
    root: str
    entries: FrozenSet[Entry]
    scanned_at: float
    directories: int
    skipped: int


class OwnershipIndex:
    """Which (author, title) pairs have a directory under the collection root.

    Readers always see a whole snapshot: a rebuild builds a new frozenset and
    replaces the reference in one assignment. A failed rebuild leaves the
    previous snapshot in place.
    """

    def __init__(self,
                 root: str,
                 ttl: float = 3600.0,
                 clock: Callable[[], float] = time.monotonic):
        self.root = root
        self.ttl = ttl
        self.clock = clock
        self._snapshot: Optional[OwnershipSnapshot] = None
        self._rebuild_lock = threading.Lock()
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def snapshot(self) -> Optional[OwnershipSnapshot]:
        return self._snapshot

    @property
    def entries(self) -> FrozenSet[Entry]:
        snapshot = self._snapshot
        return snapshot.entries if snapshot else frozenset()

    def is_expired(self) -> bool:
        return self._expired(self._snapshot)

    def _expired(self, snapshot: Optional[OwnershipSnapshot]) -> bool:
        return snapshot is None or self.clock() - snapshot.scanned_at > self.ttl

    def rebuild(self, root: Optional[str] = None) -> FrozenSet[Entry]:
        """
        Scan the collection root and publish a new snapshot.

        Args:
            root: Directory to scan, defaults to the configured root

        Returns:
            The new entry set

        Raises:
            AccessError: root is missing or unreadable (previous snapshot is kept)
        """
        root = root or self.root
        with self._rebuild_lock:
            snapshot = self._scan(root)
            self._snapshot = snapshot
        return snapshot.entries

    def refresh(self, force: bool = False) -> FrozenSet[Entry]:
        """Return the cached entries, rescanning if forced or older than the TTL"""
        snapshot = self._snapshot
        if not force and not self._expired(snapshot):
            self.logger.debug(f"Using cached ownership data ({len(snapshot.entries)} entries, "
                              f"age {self.clock() - snapshot.scanned_at:.0f}s)")
            return snapshot.entries
        return self.rebuild()

    def is_owned(self, author_name: str, title: str) -> bool:
        """Case-insensitive exact match against the current snapshot"""
        if not author_name or not title:
            return False
        return normalise_entry(author_name, title) in self.entries

    def invalidate(self) -> None:
        self.logger.debug("Invalidating ownership cache")
        self._snapshot = None

    def _scan(self, root: str) -> OwnershipSnapshot:
        self.logger.info(f"Starting filesystem ownership scan: {root}")
        try:
            author_dirs = sorted(
                (entry for entry in os.scandir(root) if entry.is_dir()),
                key=lambda entry: entry.name
            )
        except OSError as e:
            self.logger.error(f"Collection root not accessible: {root}: {e}")
            raise AccessError(root) from e

        entries = set()
        directories = 0
        skipped = 0
        for author_dir in author_dirs:
            author_name = author_dir.name.strip()
            try:
                book_dirs = [entry for entry in os.scandir(author_dir.path) if entry.is_dir()]
            except OSError as e:
                self.logger.warning(f"Skipping unreadable author directory {author_dir.path}: {e}")
                skipped += 1
                continue

            for book_dir in book_dirs:
                directories += 1
                match = BOOK_DIRECTORY.match(book_dir.name)
                if not author_name or not match:
                    self.logger.debug(f"Skipping malformed directory: {book_dir.path}")
                    skipped += 1
                    continue
                entries.add(normalise_entry(author_name, match.group('title')))

        snapshot = OwnershipSnapshot(
            root=root,
            entries=frozenset(entries),
            scanned_at=self.clock(),
            directories=directories,
            skipped=skipped
        )
        self.logger.info(f"Filesystem ownership scan completed: {directories} directories, "
                         f"{len(snapshot.entries)} owned books, {skipped} skipped")
        return snapshot
