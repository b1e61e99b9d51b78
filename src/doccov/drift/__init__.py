"""
Documentation drift detection.

- tags: parsing of @param, @returns, @template and inline link tags
- issues: DriftIssue records, categorization, summaries and deltas
- detector: the ten drift detectors and spec-level entry points
"""
from doccov.drift.issues import (
    DriftDelta,
    DriftIssue,
    DriftStatus,
    DriftSummary,
    ExampleRunResult,
    categorize_drift,
    drift_delta,
    drift_fingerprint,
    drift_summary,
    format_drift_summary_line,
    group_drifts_by_category,
)
from doccov.drift.detector import detect_export_drift, detect_spec_drift

__all__ = [
    "DriftDelta",
    "DriftIssue",
    "DriftStatus",
    "DriftSummary",
    "ExampleRunResult",
    "categorize_drift",
    "drift_delta",
    "drift_fingerprint",
    "drift_summary",
    "format_drift_summary_line",
    "group_drifts_by_category",
    "detect_export_drift",
    "detect_spec_drift",
]
