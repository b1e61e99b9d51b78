"""
Retrieve two spec versions and diff them through the result cache.

Retrieval is delegated to a caller-supplied function (e.g. a build service
or a storage bucket lookup). Both versions are fetched concurrently under a
bounded wait; the diff itself is pure and is never interrupted.
"""
import logging
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Union

from doccov.cache import ResultCache
from doccov.constants import RETRIEVAL_TIMEOUT_SECONDS
from doccov.diff import DiffOptions, SpecDiff
from doccov.docs_impact import analyze_docs_impact
from doccov.errors import NotFound, RetrievalTimeout
from doccov.models import PackageSpec

logger = logging.getLogger(__name__)

# retrieve(owner, repo, sha) -> spec, spec dict, or None when it cannot be produced
SpecRetriever = Callable[[str, str, str], Union[PackageSpec, dict, None]]

_default_cache = ResultCache()


@dataclass(frozen=True)
class SpecRef:
    sha: str
    hash: str
    name: str
    version: Optional[str]

    def to_dict(self) -> dict:
        return {"sha": self.sha, "hash": self.hash, "name": self.name, "version": self.version}


@dataclass(frozen=True)
class FullDiffResult:
    diff: SpecDiff
    base: SpecRef
    head: SpecRef
    generated_at: datetime
    cached: bool

    def to_dict(self) -> dict:
        return {
            "diff": self.diff.to_dict(),
            "base": self.base.to_dict(),
            "head": self.head.to_dict(),
            "generatedAt": self.generated_at.isoformat(),
            "cached": self.cached,
        }


def _materialize(result: Any, owner: str, repo: str, sha: str) -> PackageSpec:
    """Validate a retrieved spec; MalformedSpec propagates."""
    if result is None:
        raise NotFound(f"No spec available for {owner}/{repo}@{sha}")
    if isinstance(result, PackageSpec):
        return result
    return PackageSpec.from_dict(result)


def retrieve_specs(
    retrieve: SpecRetriever,
    owner: str,
    repo: str,
    base_sha: str,
    head_sha: str,
    timeout: float = RETRIEVAL_TIMEOUT_SECONDS,
) -> tuple[PackageSpec, PackageSpec]:
    """
    Fetch both specs concurrently.

    Raises:
        RetrievalTimeout: If both are not available within ``timeout`` seconds
        NotFound: If either spec cannot be produced
        MalformedSpec: If either spec fails validation
    """
    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="doccov-retrieve")
    try:
        futures = {
            executor.submit(retrieve, owner, repo, sha): sha for sha in (base_sha, head_sha)
        }
        specs: dict[str, PackageSpec] = {}
        deadline = time.monotonic() + timeout
        pending = set(futures)

        # Validate each spec as soon as it arrives so a missing or failed one
        # is reported without waiting on the other
        while pending:
            done, pending = wait(
                pending, timeout=max(deadline - time.monotonic(), 0), return_when=FIRST_COMPLETED,
            )
            if not done:
                raise RetrievalTimeout(
                    f"Spec retrieval for {owner}/{repo} ({base_sha}..{head_sha}) "
                    f"exceeded {timeout:g}s"
                )
            for future in done:
                sha = futures[future]
                specs[sha] = _materialize(future.result(), owner, repo, sha)

        base, head = specs[base_sha], specs[head_sha]
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
    return base, head


def compute_full_diff(
    retrieve: SpecRetriever,
    owner: str,
    repo: str,
    base_sha: str,
    head_sha: str,
    cache: Optional[ResultCache] = None,
    timeout: float = RETRIEVAL_TIMEOUT_SECONDS,
    markdown_files: Optional[Iterable] = None,
    options: Optional[DiffOptions] = None,
) -> FullDiffResult:
    """
    Retrieve, validate and diff two versions of a repository's spec.

    Args:
        retrieve: Function producing the spec for (owner, repo, sha)
        owner: Repository owner
        repo: Repository name
        base_sha: Base commit
        head_sha: Head commit
        cache: Result cache (a process-wide default if None)
        timeout: Bounded wait for retrieval, in seconds
        markdown_files: Docs to check for impact ({path, content})
        options: Diff options

    Returns:
        FullDiffResult; ``cached`` tells whether the diff came from the cache
    """
    cache = cache if cache is not None else _default_cache
    base, head = retrieve_specs(retrieve, owner, repo, base_sha, head_sha, timeout)

    base_hash = cache.cache_spec(owner, repo, base)
    head_hash = cache.cache_spec(owner, repo, head)
    diff, cached = cache.get_or_compute_diff(base, head, options=options)
    logger.info(
        "Diff %s/%s %s..%s: %d breaking (%s)",
        owner, repo, base_sha[:7], head_sha[:7], len(diff.breaking),
        "cached" if cached else "computed",
    )

    if markdown_files is not None:
        diff = replace(diff, docs_impact=analyze_docs_impact(diff, markdown_files))

    return FullDiffResult(
        diff=diff,
        base=SpecRef(base_sha, base_hash, base.meta.name, base.meta.version),
        head=SpecRef(head_sha, head_hash, head.meta.name, head.meta.version),
        generated_at=datetime.now(timezone.utc),
        cached=cached,
    )
