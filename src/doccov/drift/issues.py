"""
Drift issue records, categorization and summaries.

An issue's id is a sha256 fingerprint of what it says about which export,
so the same mismatch found in two spec versions has the same id.
"""
import hashlib
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional

from doccov.constants import DRIFT_CATEGORIES, DRIFT_SEVERITIES, FIXABLE_DRIFT_TYPES


class DriftStatus(Enum):
    """Whether an issue appeared or disappeared between two versions."""
    INTRODUCED = "introduced"
    RESOLVED = "resolved"


def drift_fingerprint(export_id: str, drift_type: str, target: str, description: str) -> str:
    """Stable sha256 hex digest identifying one drift finding."""
    payload = "\x1f".join((export_id, drift_type, target, description))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class DriftIssue:
    """A mismatch between what the docs claim and what the code declares."""
    type: str
    target: str
    description: str
    export_id: str
    export_name: str
    suggestion: Optional[str] = None
    file_path: Optional[str] = None
    line: Optional[int] = None
    status: DriftStatus = DriftStatus.INTRODUCED

    @property
    def id(self) -> str:
        return drift_fingerprint(self.export_id, self.type, self.target, self.description)

    @property
    def severity(self) -> str:
        return DRIFT_SEVERITIES[self.type]

    @property
    def category(self) -> str:
        return categorize_drift(self)

    @property
    def fixable(self) -> bool:
        return self.type in FIXABLE_DRIFT_TYPES

    def with_status(self, status: DriftStatus) -> "DriftIssue":
        return replace(self, status=status)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity,
            "category": self.category,
            "description": self.description,
            "target": self.target,
            "suggestion": self.suggestion,
            "filePath": self.file_path,
            "line": self.line,
            "exportId": self.export_id,
            "exportName": self.export_name,
            "status": self.status.value,
            "fixable": self.fixable,
        }


@dataclass(frozen=True)
class ExampleRunResult:
    """Outcome of running one example, supplied by an execution collaborator."""
    index: int
    success: bool
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0


def categorize_drift(issue: DriftIssue) -> str:
    """Category of an issue: structural, semantic or example."""
    return DRIFT_CATEGORIES[issue.type]


def group_drifts_by_category(issues: Iterable[DriftIssue]) -> dict[str, list[DriftIssue]]:
    grouped: dict[str, list[DriftIssue]] = {"structural": [], "semantic": [], "example": []}
    for issue in issues:
        grouped[categorize_drift(issue)].append(issue)
    return grouped


@dataclass(frozen=True)
class DriftSummary:
    total: int
    by_category: dict[str, int] = field(default_factory=dict)
    fixable: int = 0

    def to_dict(self) -> dict:
        return {"total": self.total, "byCategory": dict(self.by_category), "fixable": self.fixable}


def drift_summary(issues: Iterable[DriftIssue]) -> DriftSummary:
    """Totals by category plus the number of auto-fixable issues."""
    issues = list(issues)
    grouped = group_drifts_by_category(issues)
    return DriftSummary(
        total=len(issues),
        by_category={category: len(items) for category, items in grouped.items()},
        fixable=sum(1 for i in issues if i.fixable),
    )


def format_drift_summary_line(summary: DriftSummary) -> str:
    """
    One-line summary for CLI output.

    Example:
        "5 issues (3 structural, 1 semantic, 1 example) (3 auto-fixable)"
    """
    if summary.total == 0:
        return "No drift detected"

    parts = [
        f"{summary.by_category[category]} {category}"
        for category in ("structural", "semantic", "example")
        if summary.by_category.get(category, 0) > 0
    ]
    fixable_note = f" ({summary.fixable} auto-fixable)" if summary.fixable > 0 else ""
    return f"{summary.total} issues ({', '.join(parts)}){fixable_note}"


@dataclass(frozen=True)
class DriftDelta:
    introduced: tuple[DriftIssue, ...] = ()
    resolved: tuple[DriftIssue, ...] = ()


def _surplus(issues: list[DriftIssue], other: Counter) -> list[DriftIssue]:
    """Issues whose fingerprint occurs more often here than in other."""
    remaining = Counter(other)
    surplus = []
    for issue in issues:
        if remaining[issue.id] > 0:
            remaining[issue.id] -= 1
        else:
            surplus.append(issue)
    return surplus


def drift_delta(
    base_issues: Iterable[DriftIssue],
    head_issues: Iterable[DriftIssue],
) -> DriftDelta:
    """
    Issues introduced and resolved between two versions.

    Issues are compared as multisets of fingerprints, so a mismatch that
    exists on both sides is neither introduced nor resolved.
    """
    base = list(base_issues)
    head = list(head_issues)
    introduced = _surplus(head, Counter(i.id for i in base))
    resolved = _surplus(base, Counter(i.id for i in head))
    return DriftDelta(
        introduced=tuple(i.with_status(DriftStatus.INTRODUCED) for i in introduced),
        resolved=tuple(i.with_status(DriftStatus.RESOLVED) for i in resolved),
    )
