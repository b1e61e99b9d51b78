"""
Append-only snapshot storage.

``SnapshotStore`` defines the interface and the locking discipline: a
per-package lock serializes appends and prunes, so a prune never sees a
half-written history. Two implementations are provided, an in-memory
store and a directory of JSON files (one file per snapshot).
"""
import json
import logging
import re
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Hashable, Optional

from doccov.constants import HISTORY_DIR, RETENTION_DAYS
from doccov.errors import ConfigError, DocCovError
from doccov.history.snapshot import CoverageSnapshot

logger = logging.getLogger(__name__)


def retention_days(tier: str) -> int:
    """
    Raises:
        ConfigError: If the tier is unknown
    """
    try:
        return RETENTION_DAYS[tier]
    except KeyError:
        raise ConfigError(
            f"Unknown retention tier {tier!r}; expected one of {', '.join(RETENTION_DAYS)}"
        ) from None


class SnapshotStore(ABC):
    """
    Ordered, append-only history of coverage snapshots per package.

    Subclasses implement three primitives (append, list entries, remove
    entries); this class applies locking, ordering and pruning policy.
    """

    def __init__(self):
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock(self, package: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(package, threading.Lock())

    # --- primitives ---

    @abstractmethod
    def _append(self, snapshot: CoverageSnapshot) -> None:
        ...

    @abstractmethod
    def _entries(self, package: str) -> list[tuple[Hashable, CoverageSnapshot]]:
        """(key, snapshot) pairs in storage order."""

    @abstractmethod
    def _remove(self, package: str, keys: set) -> None:
        ...

    @abstractmethod
    def packages(self) -> list[str]:
        """Packages with at least one stored snapshot."""

    # --- public interface ---

    def _sorted_entries(self, package: str) -> list[tuple[Hashable, CoverageSnapshot]]:
        return sorted(self._entries(package), key=lambda entry: entry[1].timestamp)

    def record_snapshot(self, snapshot: CoverageSnapshot) -> CoverageSnapshot:
        """Append a snapshot to its package's history."""
        with self._lock(snapshot.package):
            self._append(snapshot)
        logger.debug("Recorded snapshot for %s at %s", snapshot.package, snapshot.timestamp)
        return snapshot

    def load_history(self, package: str, limit: Optional[int] = None) -> list[CoverageSnapshot]:
        """
        Snapshots for a package, oldest first.

        Args:
            package: Package name
            limit: Keep only the newest ``limit`` snapshots
        """
        with self._lock(package):
            snapshots = [s for _, s in self._sorted_entries(package)]
        if limit is not None:
            snapshots = snapshots[-limit:] if limit > 0 else []
        return snapshots

    def prune_by_count(self, package: str, keep: int) -> int:
        """
        Delete all but the newest ``keep`` snapshots.

        Returns:
            Number of snapshots deleted
        """
        if keep < 0:
            raise ValueError("keep must be non-negative")
        with self._lock(package):
            entries = self._sorted_entries(package)
            doomed = entries[:max(len(entries) - keep, 0)]
            self._remove(package, {key for key, _ in doomed})
        if doomed:
            logger.info("Pruned %d snapshots for %s (keep=%d)", len(doomed), package, keep)
        return len(doomed)

    def prune_by_tier(self, package: str, tier: str, now: Optional[datetime] = None) -> int:
        """
        Delete snapshots older than the tier's retention window.

        Returns:
            Number of snapshots deleted
        """
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=retention_days(tier))
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=timezone.utc)
        with self._lock(package):
            doomed = {key for key, s in self._entries(package) if s.timestamp < cutoff}
            self._remove(package, doomed)
        if doomed:
            logger.info("Pruned %d snapshots for %s (tier=%s)", len(doomed), package, tier)
        return len(doomed)


class MemorySnapshotStore(SnapshotStore):
    """Keeps snapshots in process memory."""

    def __init__(self):
        super().__init__()
        self._data: dict[str, list[tuple[int, CoverageSnapshot]]] = {}
        self._counter = 0

    def _append(self, snapshot: CoverageSnapshot) -> None:
        with self._locks_guard:
            self._counter += 1
            key = self._counter
        self._data.setdefault(snapshot.package, []).append((key, snapshot))

    def _entries(self, package: str) -> list[tuple[Hashable, CoverageSnapshot]]:
        return list(self._data.get(package, []))

    def _remove(self, package: str, keys: set) -> None:
        if keys:
            self._data[package] = [e for e in self._data.get(package, []) if e[0] not in keys]

    def packages(self) -> list[str]:
        return sorted(name for name, entries in self._data.items() if entries)


_UNSAFE_CHARS = re.compile(r"[^\w.-]+")


class JsonFileSnapshotStore(SnapshotStore):
    """
    One JSON file per snapshot under ``root/<package>/``.

    Unreadable or malformed files are skipped with a warning rather than
    failing the whole history.
    """

    def __init__(self, root: Path | str = HISTORY_DIR):
        super().__init__()
        self.root = Path(root)

    def _package_dir(self, package: str) -> Path:
        safe = _UNSAFE_CHARS.sub("_", package).strip("._") or "_"
        return self.root / safe

    def _append(self, snapshot: CoverageSnapshot) -> None:
        directory = self._package_dir(snapshot.package)
        directory.mkdir(parents=True, exist_ok=True)
        stem = snapshot.timestamp.strftime("%Y-%m-%d-%H%M%S-%f")
        path = directory / f"{stem}.json"
        suffix = 1
        while path.exists():
            path = directory / f"{stem}-{suffix}.json"
            suffix += 1
        path.write_text(json.dumps(snapshot.to_dict(), indent=2), encoding="utf-8")

    def _load_file(self, path: Path) -> Optional[CoverageSnapshot]:
        try:
            data: Any = json.loads(path.read_text(encoding="utf-8"))
            return CoverageSnapshot.from_dict(data)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, DocCovError) as e:
            logger.warning("Skipping unreadable snapshot %s: %s", path, e)
            return None

    def _entries(self, package: str) -> list[tuple[Hashable, CoverageSnapshot]]:
        directory = self._package_dir(package)
        if not directory.is_dir():
            return []
        entries = []
        for path in sorted(directory.glob("*.json")):
            snapshot = self._load_file(path)
            if snapshot is not None and snapshot.package == package:
                entries.append((path, snapshot))
        return entries

    def _remove(self, package: str, keys: set) -> None:
        for path in keys:
            try:
                path.unlink()
            except FileNotFoundError:
                logger.debug("Snapshot already gone: %s", path)

    def packages(self) -> list[str]:
        if not self.root.is_dir():
            return []
        names = set()
        for directory in sorted(p for p in self.root.iterdir() if p.is_dir()):
            for path in sorted(directory.glob("*.json")):
                snapshot = self._load_file(path)
                if snapshot is not None:
                    names.add(snapshot.package)
                    break
        return sorted(names)
