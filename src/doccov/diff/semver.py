"""
Semantic version recommendations from a spec diff.
"""
import re
from dataclasses import dataclass
from typing import Sequence

from doccov.constants import SEMVER_BUMPS

_VERSION = re.compile(r"^(\d+)\.(\d+)\.(\d+)")


@dataclass(frozen=True)
class SemverRecommendation:
    bump: str
    reason: str
    breaking_count: int = 0
    non_breaking_count: int = 0
    docs_only_count: int = 0

    def to_dict(self) -> dict:
        return {
            "bump": self.bump,
            "reason": self.reason,
            "breakingCount": self.breaking_count,
            "nonBreakingCount": self.non_breaking_count,
            "docsOnlyCount": self.docs_only_count,
        }


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def recommend_semver_bump(
    breaking: Sequence[str],
    non_breaking: Sequence[str],
    docs_only: Sequence[str],
) -> SemverRecommendation:
    """
    Recommend a version bump.

    major if anything broke, minor for compatible surface changes, patch
    for documentation-only changes, otherwise none.
    """
    counts = dict(
        breaking_count=len(breaking),
        non_breaking_count=len(non_breaking),
        docs_only_count=len(docs_only),
    )
    if breaking:
        return SemverRecommendation(
            "major", f"{_plural(len(breaking), 'breaking change')} detected", **counts,
        )
    if non_breaking:
        return SemverRecommendation(
            "minor", f"{_plural(len(non_breaking), 'non-breaking change')} to the public API",
            **counts,
        )
    if docs_only:
        return SemverRecommendation(
            "patch", _plural(len(docs_only), "documentation-only change"), **counts,
        )
    return SemverRecommendation("none", "No changes detected", **counts)


def calculate_next_version(version: str, bump: str) -> str:
    """
    Apply a bump to a version string.

    A leading ``v`` is preserved. Versions that do not start with
    ``MAJOR.MINOR.PATCH`` and a bump of ``none`` return the input unchanged.
    """
    if bump not in SEMVER_BUMPS:
        raise ValueError(f"Unknown semver bump: {bump!r}")
    prefix = "v" if version.startswith("v") else ""
    match = _VERSION.match(version[len(prefix):])
    if match is None or bump == "none":
        return version

    major, minor, patch = (int(part) for part in match.groups())
    if bump == "major":
        major, minor, patch = major + 1, 0, 0
    elif bump == "minor":
        minor, patch = minor + 1, 0
    else:
        patch += 1
    return f"{prefix}{major}.{minor}.{patch}"
