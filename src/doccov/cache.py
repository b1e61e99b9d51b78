"""
Process-wide memoization of specs and diffs.

Keys are content hashes, so equal inputs share an entry. The first
request for a key computes the value; concurrent requests for the same
key wait on that computation instead of starting their own. A failed
computation is not cached and its exception reaches every waiter.
"""
import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future
from typing import Callable, Hashable, Optional, TypeVar

from doccov.diff import DiffOptions, SpecDiff, diff_specs
from doccov.models import PackageSpec
from doccov.serializer import content_hash

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ResultCache:
    """
    Thread-safe cache with in-flight deduplication.

    Entries never expire; ``max_entries`` bounds the table with LRU
    eviction when set.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: OrderedDict[Hashable, object] = OrderedDict()
        self._in_flight: dict[Hashable, Future] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: Hashable) -> Optional[object]:
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                return self._entries[key]
        return None

    def _store(self, key: Hashable, value: object) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %s", evicted)

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        """
        Return the cached value for ``key``, computing it at most once.

        Raises:
            Whatever ``compute`` raised, for the caller that ran it and
            for every caller that waited on it
        """
        with self._lock:
            if key in self._entries:
                self.hits += 1
                self._entries.move_to_end(key)
                return self._entries[key]
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                self.misses += 1
                future = Future()
                self._in_flight[key] = future
            else:
                self.hits += 1

        if not owner:
            logger.debug("Waiting on in-flight computation for %s", key)
            return future.result()

        try:
            value = compute()
        except BaseException as e:
            with self._lock:
                del self._in_flight[key]
            future.set_exception(e)
            raise

        with self._lock:
            self._store(key, value)
            del self._in_flight[key]
        future.set_result(value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    # --- typed helpers ---

    @staticmethod
    def spec_key(owner: str, repo: str, spec_hash: str) -> tuple:
        return ("spec", owner, repo, spec_hash)

    @staticmethod
    def diff_key(base_hash: str, head_hash: str, options_hash: Optional[str] = None) -> tuple:
        if options_hash is None:
            return ("diff", base_hash, head_hash)
        return ("diff", base_hash, head_hash, options_hash)

    def cache_spec(self, owner: str, repo: str, spec: PackageSpec) -> str:
        """Store a spec under its content hash and return the hash."""
        spec_hash = content_hash(spec)
        key = self.spec_key(owner, repo, spec_hash)
        with self._lock:
            if key not in self._entries:
                self._store(key, spec)
        return spec_hash

    def get_spec(self, owner: str, repo: str, spec_hash: str) -> Optional[PackageSpec]:
        return self.get(self.spec_key(owner, repo, spec_hash))

    def get_or_compute_diff(
        self,
        base: PackageSpec,
        head: PackageSpec,
        compute: Optional[Callable[[PackageSpec, PackageSpec], SpecDiff]] = None,
        options: Optional[DiffOptions] = None,
    ) -> tuple[SpecDiff, bool]:
        """
        Diff two specs through the cache.

        Returns:
            (diff, cached) where cached is False only for the caller that
            actually ran the computation
        """
        options_hash = None
        if options is not None and options.quality_config:
            options_hash = content_hash(dict(options.quality_config))
        key = self.diff_key(content_hash(base), content_hash(head), options_hash)
        ran = []

        def run() -> SpecDiff:
            ran.append(True)
            if compute is not None:
                return compute(base, head)
            return diff_specs(base, head, options=options)

        diff = self.get_or_compute(key, run)
        return diff, not ran
