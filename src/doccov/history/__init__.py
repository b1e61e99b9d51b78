"""
Coverage history: snapshots, storage and trend analytics.
"""
from doccov.history.snapshot import CoverageSnapshot, SignalCounts, compute_snapshot
from doccov.history.store import (
    JsonFileSnapshotStore,
    MemorySnapshotStore,
    SnapshotStore,
    retention_days,
)
from doccov.history.trends import (
    CoverageTrend,
    ExtendedTrendAnalysis,
    Milestone,
    Regression,
    WeeklySummary,
    analyze_trends,
    calculate_velocity,
    compute_trend,
    detect_milestones,
    detect_regression,
    format_delta,
    project_coverage,
    render_sparkline,
    weekly_summaries,
)
from doccov.history.insights import Insight, generate_insights

__all__ = [
    "CoverageSnapshot",
    "SignalCounts",
    "compute_snapshot",
    "JsonFileSnapshotStore",
    "MemorySnapshotStore",
    "SnapshotStore",
    "retention_days",
    "CoverageTrend",
    "ExtendedTrendAnalysis",
    "Milestone",
    "Regression",
    "WeeklySummary",
    "analyze_trends",
    "calculate_velocity",
    "compute_trend",
    "detect_milestones",
    "detect_regression",
    "format_delta",
    "project_coverage",
    "render_sparkline",
    "weekly_summaries",
    "Insight",
    "generate_insights",
]
