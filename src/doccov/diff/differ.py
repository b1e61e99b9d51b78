"""
Structural diff between two versions of a package spec.

Exports are matched by id. Each matched pair is classified as breaking,
non-breaking or docs-only; coverage and drift are recomputed for both
sides and compared. ``diff_specs`` is a pure function of its inputs, which
is what makes caching its result sound.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Optional, Sequence

from doccov.constants import BREAKING_SEVERITY_ORDER, DOC_ONLY_KEYS, IGNORED_DIFF_KEYS
from doccov.diff.compat import is_assignable
from doccov.diff.members import MemberChange, diff_members
from doccov.diff.semver import recommend_semver_bump
from doccov.diff.signatures import Change, compare_signatures, compare_type_parameters
from doccov.docs_impact import DocsImpactResult, analyze_docs_impact
from doccov.drift import detect_spec_drift, drift_delta
from doccov.models import ExportKind, ExportSymbol, PackageSpec
from doccov.quality import QualityEngine
from doccov.schema import UNKNOWN, render_schema

logger = logging.getLogger(__name__)

_MEMBER_KINDS = (ExportKind.CLASS, ExportKind.INTERFACE, ExportKind.ENUM)


@dataclass(frozen=True)
class DiffOptions:
    """Inputs that influence a diff besides the two specs."""
    quality_config: Optional[Mapping[str, str]] = None


@dataclass(frozen=True)
class CategorizedBreaking:
    """A breaking export with a severity for triage."""
    id: str
    name: str
    kind: str
    severity: str
    reason: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "severity": self.severity,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class SpecDiff:
    """Result of comparing a base spec against a head spec."""
    breaking: tuple[str, ...] = ()
    non_breaking: tuple[str, ...] = ()
    docs_only: tuple[str, ...] = ()
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    old_coverage: int = 100
    new_coverage: int = 100
    coverage_delta: float = 0.0
    drift_introduced: int = 0
    drift_resolved: int = 0
    new_undocumented: tuple[str, ...] = ()
    improved_exports: tuple[str, ...] = ()
    regressed_exports: tuple[str, ...] = ()
    member_changes: tuple[MemberChange, ...] = ()
    categorized_breaking: tuple[CategorizedBreaking, ...] = ()
    reasons: dict[str, tuple[str, ...]] = field(default_factory=dict, compare=False)
    semver_bump: str = "none"
    docs_impact: Optional[DocsImpactResult] = None

    @property
    def has_breaking(self) -> bool:
        return bool(self.breaking)

    @property
    def is_empty(self) -> bool:
        return not (self.breaking or self.non_breaking or self.docs_only)

    def to_dict(self) -> dict:
        """JSON-serializable representation (camelCase wire names)."""
        return {
            "breaking": list(self.breaking),
            "nonBreaking": list(self.non_breaking),
            "docsOnly": list(self.docs_only),
            "added": list(self.added),
            "removed": list(self.removed),
            "coverageDelta": self.coverage_delta,
            "oldCoverage": self.old_coverage,
            "newCoverage": self.new_coverage,
            "driftIntroduced": self.drift_introduced,
            "driftResolved": self.drift_resolved,
            "newUndocumented": list(self.new_undocumented),
            "improvedExports": list(self.improved_exports),
            "regressedExports": list(self.regressed_exports),
            "memberChanges": [m.to_dict() for m in self.member_changes],
            "categorizedBreaking": [c.to_dict() for c in self.categorized_breaking],
            "reasons": {name: list(r) for name, r in self.reasons.items()},
            "semverBump": self.semver_bump,
            "docsImpact": self.docs_impact.to_dict() if self.docs_impact is not None else None,
        }


# =============================================================================
# Export classification
# =============================================================================

def _strip_keys(value: Any, keys: frozenset[str]) -> Any:
    """Drop keys recursively; schema subtrees are left alone."""
    if isinstance(value, dict):
        return {
            k: (v if k == "schema" else _strip_keys(v, keys))
            for k, v in value.items()
            if k not in keys
        }
    if isinstance(value, list):
        return [_strip_keys(v, keys) for v in value]
    return value


def _structural_changes(old: ExportSymbol, new: ExportSymbol) -> list[Change]:
    if old.kind is not new.kind:
        return [Change(True, f"kind changed from {old.kind.value} to {new.kind.value}")]

    changes = []
    if old.name != new.name:
        changes.append(Change(False, f"renamed from {old.name} to {new.name}"))
    changes.extend(compare_signatures(old.signatures, new.signatures))
    changes.extend(compare_type_parameters(old.type_parameters, new.type_parameters))

    if old.extends and old.extends != new.extends:
        changes.append(Change(True, f"no longer extends {old.extends}"))
    elif new.extends and not old.extends:
        changes.append(Change(False, f"now extends {new.extends}"))
    for name in old.implements:
        if name not in new.implements:
            changes.append(Change(True, f"no longer implements {name}"))
    for name in new.implements:
        if name not in old.implements:
            changes.append(Change(False, f"now implements {name}"))

    if old.schema != new.schema:
        before = old.schema if old.schema is not None else UNKNOWN
        after = new.schema if new.schema is not None else UNKNOWN
        if is_assignable(before, after):
            changes.append(Change(
                False, f"type widened from {render_schema(before)} to {render_schema(after)}",
            ))
        else:
            changes.append(Change(
                True, f"type changed from {render_schema(before)} to {render_schema(after)}",
            ))

    if old.deprecated != new.deprecated:
        changes.append(Change(False, "deprecated" if new.deprecated else "no longer deprecated"))
    return changes


def classify_export_change(
    old: ExportSymbol,
    new: ExportSymbol,
) -> tuple[Optional[str], list[str], list[MemberChange]]:
    """
    Classify one matched export pair.

    Returns:
        (category, reasons, member_changes) where category is "breaking",
        "nonBreaking", "docsOnly" or None for no change
    """
    old_dict = _strip_keys(old.to_dict(), IGNORED_DIFF_KEYS)
    new_dict = _strip_keys(new.to_dict(), IGNORED_DIFF_KEYS)
    if old_dict == new_dict:
        return None, [], []
    if _strip_keys(old_dict, DOC_ONLY_KEYS) == _strip_keys(new_dict, DOC_ONLY_KEYS):
        return "docsOnly", [], []

    changes = _structural_changes(old, new)
    member_changes = []
    if old.kind is new.kind and old.kind in _MEMBER_KINDS:
        member_changes = diff_members(old, new)

    breaking = [c.reason for c in changes if c.breaking]
    for mc in member_changes:
        if mc.breaking:
            breaking.append(f"member {mc.member_name} {mc.change_type}")
    if breaking:
        return "breaking", breaking, member_changes

    reasons = [c.reason for c in changes]
    reasons.extend(f"member {mc.member_name} {mc.change_type}" for mc in member_changes)
    return "nonBreaking", reasons or ["changed"], member_changes


def categorize_breaking(
    old: ExportSymbol,
    removed: bool,
    member_changes: Sequence[MemberChange],
) -> CategorizedBreaking:
    """Assign a triage severity to a breaking export."""
    kind = old.kind
    if removed:
        severity = "high" if kind in (ExportKind.FUNCTION, ExportKind.CLASS) else "medium"
        reason = "removed"
    elif kind is ExportKind.CLASS and member_changes:
        breaking = [m for m in member_changes if m.breaking]
        if any(m.member_kind == "constructor" for m in breaking):
            severity, reason = "high", "constructor changed"
        elif any(m.change_type == "removed" for m in breaking):
            severity, reason = "high", "methods removed"
        else:
            severity, reason = "medium", "methods changed"
    elif kind in (ExportKind.INTERFACE, ExportKind.TYPE):
        severity, reason = "medium", "type definition changed"
    elif kind is ExportKind.FUNCTION:
        severity, reason = "high", "signature changed"
    else:
        severity, reason = "low", "changed"
    return CategorizedBreaking(old.id, old.name, kind.value, severity, reason)


# =============================================================================
# Spec diff
# =============================================================================

def _flatten(drift: Mapping[str, list]) -> list:
    return [issue for issues in drift.values() for issue in issues]


def diff_specs(
    base: PackageSpec,
    head: PackageSpec,
    markdown_files: Optional[Iterable] = None,
    options: Optional[DiffOptions] = None,
) -> SpecDiff:
    """
    Compare two spec versions.

    Args:
        base: The earlier spec
        head: The later spec
        markdown_files: Markdown files ({path, content}) to check for impact
        options: Quality configuration used for coverage on both sides

    Returns:
        SpecDiff; ``docs_impact`` is None unless markdown files were given
    """
    options = options or DiffOptions()
    head_by_id = head.exports_by_id
    base_by_id = base.exports_by_id

    breaking: list[str] = []
    non_breaking: list[str] = []
    docs_only: list[str] = []
    added: list[str] = []
    removed: list[str] = []
    member_changes: list[MemberChange] = []
    categorized: list[CategorizedBreaking] = []
    reasons: dict[str, tuple[str, ...]] = {}

    for old in base.exports:
        new = head_by_id.get(old.id)
        if new is None:
            breaking.append(old.name)
            removed.append(old.name)
            reasons[old.name] = ("removed",)
            categorized.append(categorize_breaking(old, True, ()))
            continue

        category, why, members = classify_export_change(old, new)
        member_changes.extend(members)
        if category is None:
            continue
        if why:
            reasons[new.name] = tuple(why)
        if category == "breaking":
            breaking.append(new.name)
            categorized.append(categorize_breaking(new, False, members))
        elif category == "nonBreaking":
            non_breaking.append(new.name)
        else:
            docs_only.append(new.name)

    for new in head.exports:
        if new.id not in base_by_id:
            non_breaking.append(new.name)
            added.append(new.name)
            reasons[new.name] = ("added",)

    categorized.sort(key=lambda c: BREAKING_SEVERITY_ORDER[c.severity])

    engine = QualityEngine()
    old_quality = engine.evaluate_spec(base, config=options.quality_config)
    new_quality = engine.evaluate_spec(head, config=options.quality_config)
    old_coverage = old_quality.coverage_score
    new_coverage = new_quality.coverage_score

    improved, regressed, undocumented = [], [], []
    for new in head.exports:
        head_score = new_quality.by_export[new.id].coverage_score
        base_result = old_quality.by_export.get(new.id)
        if base_result is None:
            if head_score < 100:
                undocumented.append(new.name)
        elif head_score > base_result.coverage_score:
            improved.append(new.name)
        elif head_score < base_result.coverage_score:
            regressed.append(new.name)

    delta = drift_delta(_flatten(detect_spec_drift(base)), _flatten(detect_spec_drift(head)))
    recommendation = recommend_semver_bump(breaking, non_breaking, docs_only)

    diff = SpecDiff(
        breaking=tuple(breaking),
        non_breaking=tuple(non_breaking),
        docs_only=tuple(docs_only),
        added=tuple(added),
        removed=tuple(removed),
        old_coverage=old_coverage,
        new_coverage=new_coverage,
        coverage_delta=round(float(new_coverage - old_coverage), 1),
        drift_introduced=len(delta.introduced),
        drift_resolved=len(delta.resolved),
        new_undocumented=tuple(undocumented),
        improved_exports=tuple(improved),
        regressed_exports=tuple(regressed),
        member_changes=tuple(member_changes),
        categorized_breaking=tuple(categorized),
        reasons=reasons,
        semver_bump=recommendation.bump,
    )
    logger.debug(
        "Diffed %s: %d breaking, %d non-breaking, %d docs-only",
        head.meta.name, len(breaking), len(non_breaking), len(docs_only),
    )

    if markdown_files is not None:
        diff = replace(diff, docs_impact=analyze_docs_impact(diff, markdown_files))
    return diff
