"""
Structural API diffing.

- compat: structural type assignability
- signatures: parameter, return and overload comparison
- members: member-level changes for classes, interfaces and enums
- semver: version bump recommendation
- differ: diff_specs and the SpecDiff result
"""
from doccov.diff.compat import is_assignable, is_equivalent
from doccov.diff.differ import (
    CategorizedBreaking,
    DiffOptions,
    SpecDiff,
    categorize_breaking,
    classify_export_change,
    diff_specs,
)
from doccov.diff.members import MemberChange, diff_members
from doccov.diff.semver import SemverRecommendation, calculate_next_version, recommend_semver_bump
from doccov.diff.signatures import Change, compare_signatures

__all__ = [
    "is_assignable",
    "is_equivalent",
    "CategorizedBreaking",
    "DiffOptions",
    "SpecDiff",
    "categorize_breaking",
    "classify_export_change",
    "diff_specs",
    "MemberChange",
    "diff_members",
    "SemverRecommendation",
    "calculate_next_version",
    "recommend_semver_bump",
    "Change",
    "compare_signatures",
]
