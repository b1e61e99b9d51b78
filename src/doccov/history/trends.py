"""
Trend analytics over a snapshot history.

Every function here is a read-only projection over a sequence of
snapshots; none of them touch the store.
"""
import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Sequence

from doccov.constants import (
    COVERAGE_MILESTONES,
    DEFAULT_RETENTION_TIER,
    REGRESSION_THRESHOLD,
    REGRESSION_WINDOW,
    SPARKLINE_CHARS,
    SPARKLINE_LENGTH,
)
from doccov.history.snapshot import CoverageSnapshot, format_timestamp
from doccov.history.store import retention_days

_SECONDS_PER_DAY = 86400


def _chronological(snapshots: Sequence[CoverageSnapshot]) -> list[CoverageSnapshot]:
    return sorted(snapshots, key=lambda s: s.timestamp)


# =============================================================================
# Display helpers
# =============================================================================

def render_sparkline(values: Sequence[float]) -> str:
    """Render values as ``▁▂▃▄▅▆▇█`` scaled between their min and max."""
    if not values:
        return ""
    low, high = min(values), max(values)
    span = (high - low) or 1
    last = len(SPARKLINE_CHARS) - 1
    return "".join(
        SPARKLINE_CHARS[min(math.floor((v - low) / span * len(SPARKLINE_CHARS)), last)]
        for v in values
    )


def format_delta(delta: float) -> str:
    """``↑5%``, ``↓3%`` or ``→0%``."""
    if delta > 0:
        return f"↑{delta:g}%"
    if delta < 0:
        return f"↓{abs(delta):g}%"
    return "→0%"


# =============================================================================
# Velocity and projection
# =============================================================================

def calculate_velocity(
    snapshots: Sequence[CoverageSnapshot],
    days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> float:
    """
    Average coverage change per day.

    Args:
        snapshots: History in any order
        days: Trailing window; only snapshots within ``days`` of ``now`` count
        now: Window end (defaults to the newest snapshot's time)

    Returns:
        (newest - oldest) / span in days, rounded to 2 decimals; 0 with fewer
        than two snapshots or a span under one day
    """
    ordered = _chronological(snapshots)
    if days is not None and ordered:
        end = now or ordered[-1].timestamp
        start = end - timedelta(days=days)
        ordered = [s for s in ordered if start <= s.timestamp <= end]
    if len(ordered) < 2:
        return 0.0

    oldest, newest = ordered[0], ordered[-1]
    span_days = (newest.timestamp - oldest.timestamp).total_seconds() / _SECONDS_PER_DAY
    if span_days < 1:
        return 0.0
    return round((newest.coverage_score - oldest.coverage_score) / span_days, 2)


def project_coverage(current: float, velocity_30d: float, days: int = 30) -> int:
    """Linear projection clamped to [0, 100]."""
    return min(100, max(0, round(current + velocity_30d * days)))


# =============================================================================
# Regressions and milestones
# =============================================================================

@dataclass(frozen=True)
class Regression:
    from_version: str
    to_version: str
    coverage_drop: int
    exports_lost: int

    def to_dict(self) -> dict:
        return {
            "fromVersion": self.from_version,
            "toVersion": self.to_version,
            "coverageDrop": self.coverage_drop,
            "exportsLost": self.exports_lost,
        }


def detect_regression(snapshots: Sequence[CoverageSnapshot]) -> Optional[Regression]:
    """
    First significant drop among the most recent snapshots.

    Scans the last few snapshots pairwise, oldest first, and reports the
    first adjacent pair whose coverage fell by at least the threshold.
    Versions fall back to ``v{n}`` (1-based position within the window).
    """
    recent = _chronological(snapshots)[-REGRESSION_WINDOW:]
    for i in range(1, len(recent)):
        prev, curr = recent[i - 1], recent[i]
        drop = prev.coverage_score - curr.coverage_score
        if drop >= REGRESSION_THRESHOLD:
            return Regression(
                from_version=prev.version or f"v{i}",
                to_version=curr.version or f"v{i + 1}",
                coverage_drop=round(drop),
                exports_lost=prev.documented_exports - curr.documented_exports,
            )
    return None


@dataclass(frozen=True)
class Milestone:
    threshold: int
    index: int
    snapshot: CoverageSnapshot

    def to_dict(self) -> dict:
        return {
            "threshold": self.threshold,
            "index": self.index,
            "version": self.snapshot.version,
            "timestamp": format_timestamp(self.snapshot.timestamp),
        }


def detect_milestones(
    snapshots: Sequence[CoverageSnapshot],
    thresholds: Sequence[int] = COVERAGE_MILESTONES,
) -> list[Milestone]:
    """
    First upward crossing of each threshold (prev < m <= curr).

    Returns:
        Milestones in the order they were crossed
    """
    ordered = _chronological(snapshots)
    found: list[Milestone] = []
    for threshold in thresholds:
        for i in range(1, len(ordered)):
            if ordered[i - 1].coverage_score < threshold <= ordered[i].coverage_score:
                found.append(Milestone(threshold, i, ordered[i]))
                break
    return sorted(found, key=lambda m: (m.index, m.threshold))


# =============================================================================
# Weekly summaries
# =============================================================================

@dataclass(frozen=True)
class WeeklySummary:
    week_start: datetime
    week_end: datetime
    avg_coverage: int
    start_coverage: int
    end_coverage: int
    delta: int
    snapshot_count: int
    week_over_week_delta: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "weekStart": format_timestamp(self.week_start),
            "weekEnd": format_timestamp(self.week_end),
            "avgCoverage": self.avg_coverage,
            "startCoverage": self.start_coverage,
            "endCoverage": self.end_coverage,
            "delta": self.delta,
            "snapshotCount": self.snapshot_count,
            "weekOverWeekDelta": self.week_over_week_delta,
        }


def week_start(moment: datetime) -> datetime:
    """Midnight UTC of the Sunday on or before ``moment``."""
    day = moment.astimezone(timezone.utc).date()
    sunday = day - timedelta(days=(day.weekday() + 1) % 7)
    return datetime.combine(sunday, time.min, tzinfo=timezone.utc)


def weekly_summaries(snapshots: Sequence[CoverageSnapshot]) -> list[WeeklySummary]:
    """
    Group snapshots into Sunday-based calendar weeks.

    Returns:
        Summaries newest week first; ``week_over_week_delta`` compares each
        week's average with the previous week that has data
    """
    groups: dict[datetime, list[CoverageSnapshot]] = {}
    for snapshot in _chronological(snapshots):
        groups.setdefault(week_start(snapshot.timestamp), []).append(snapshot)

    summaries = []
    previous_avg: Optional[int] = None
    for start in sorted(groups):
        week = groups[start]
        scores = [s.coverage_score for s in week]
        avg = round(sum(scores) / len(scores))
        summaries.append(WeeklySummary(
            week_start=start,
            week_end=start + timedelta(days=6),
            avg_coverage=avg,
            start_coverage=scores[0],
            end_coverage=scores[-1],
            delta=scores[-1] - scores[0],
            snapshot_count=len(week),
            week_over_week_delta=avg - previous_avg if previous_avg is not None else None,
        ))
        previous_avg = avg
    summaries.reverse()
    return summaries


# =============================================================================
# Trend reports
# =============================================================================

@dataclass(frozen=True)
class CoverageTrend:
    """The latest snapshot, its predecessors and a sparkline."""
    current: CoverageSnapshot
    history: tuple[CoverageSnapshot, ...] = ()
    delta: Optional[int] = None
    sparkline: tuple[int, ...] = ()

    @property
    def sparkline_text(self) -> str:
        return render_sparkline(self.sparkline)

    def to_dict(self) -> dict:
        return {
            "current": self.current.to_dict(),
            "history": [s.to_dict() for s in self.history],
            "delta": self.delta,
            "sparkline": list(self.sparkline),
        }


def compute_trend(snapshots: Sequence[CoverageSnapshot]) -> Optional[CoverageTrend]:
    """
    Trend ending at the newest snapshot.

    ``history`` excludes the current snapshot and is most recent first;
    the sparkline holds up to the last ten scores, oldest first. None
    for an empty history.
    """
    ordered = _chronological(snapshots)
    if not ordered:
        return None
    current = ordered[-1]
    history = tuple(reversed(ordered[:-1]))
    return CoverageTrend(
        current=current,
        history=history,
        delta=current.coverage_score - history[0].coverage_score if history else None,
        sparkline=tuple(s.coverage_score for s in ordered[-SPARKLINE_LENGTH:]),
    )


@dataclass(frozen=True)
class ExtendedTrendAnalysis:
    trend: CoverageTrend
    weekly_summaries: tuple[WeeklySummary, ...]
    velocity_7d: float
    velocity_30d: float
    velocity_90d: Optional[float]
    projected_30d: int
    all_time_high: int
    all_time_low: int
    data_range: Optional[tuple[datetime, datetime]]
    regression: Optional[Regression] = None

    def to_dict(self) -> dict:
        return {
            "trend": self.trend.to_dict(),
            "weeklySummaries": [w.to_dict() for w in self.weekly_summaries],
            "velocity7d": self.velocity_7d,
            "velocity30d": self.velocity_30d,
            "velocity90d": self.velocity_90d,
            "projected30d": self.projected_30d,
            "allTimeHigh": self.all_time_high,
            "allTimeLow": self.all_time_low,
            "dataRange": {
                "start": format_timestamp(self.data_range[0]),
                "end": format_timestamp(self.data_range[1]),
            } if self.data_range else None,
            "regression": self.regression.to_dict() if self.regression else None,
        }


def analyze_trends(
    snapshots: Sequence[CoverageSnapshot],
    tier: str = DEFAULT_RETENTION_TIER,
    now: Optional[datetime] = None,
) -> Optional[ExtendedTrendAnalysis]:
    """
    Extended analysis over a history.

    Weekly summaries cover the tier's retention window; the 90-day
    velocity is only computed for the pro tier. Returns None for an
    empty history.

    Raises:
        ConfigError: If the tier is unknown
    """
    days = retention_days(tier)
    trend = compute_trend(snapshots)
    if trend is None:
        return None

    ordered = _chronological(snapshots)
    end = now or trend.current.timestamp
    in_period = [s for s in ordered if s.timestamp >= end - timedelta(days=days)]
    velocity_30d = calculate_velocity(ordered, 30, end)
    scores = [s.coverage_score for s in ordered]

    return ExtendedTrendAnalysis(
        trend=trend,
        weekly_summaries=tuple(weekly_summaries(in_period)),
        velocity_7d=calculate_velocity(ordered, 7, end),
        velocity_30d=velocity_30d,
        velocity_90d=calculate_velocity(ordered, 90, end) if tier == "pro" else None,
        projected_30d=project_coverage(trend.current.coverage_score, velocity_30d),
        all_time_high=max(scores),
        all_time_low=min(scores),
        data_range=(ordered[0].timestamp, ordered[-1].timestamp) if len(ordered) > 1 else None,
        regression=detect_regression(ordered),
    )
