"""
Human-readable insights derived from a coverage history.
"""
import math
from dataclasses import dataclass
from typing import Sequence

from doccov.constants import MAX_INSIGHTS
from doccov.history.snapshot import CoverageSnapshot
from doccov.history.trends import detect_milestones


@dataclass(frozen=True)
class Insight:
    type: str           # improvement, regression, prediction or milestone
    message: str
    severity: str       # success, warning or info

    def to_dict(self) -> dict:
        return {"type": self.type, "message": self.message, "severity": self.severity}


def generate_insights(snapshots: Sequence[CoverageSnapshot]) -> list[Insight]:
    """
    Summarize a history in at most a handful of insights.

    Order: overall improvement or regression, a prediction of when 100%
    is reached, then milestones in the order they were crossed.
    """
    ordered = sorted(snapshots, key=lambda s: s.timestamp)
    if len(ordered) < 2:
        return []

    first, last = ordered[0], ordered[-1]
    since = first.version or "first snapshot"
    diff = last.coverage_score - first.coverage_score
    insights = []

    if diff > 0:
        insights.append(Insight("improvement", f"Coverage increased {diff}% since {since}", "success"))
    elif diff < 0:
        insights.append(Insight("regression", f"Coverage decreased {-diff}% since {since}", "warning"))

    if diff > 0 and last.coverage_score < 100:
        gain_per_snapshot = diff / (len(ordered) - 1)
        remaining = math.ceil((100 - last.coverage_score) / gain_per_snapshot)
        insights.append(Insight(
            "prediction", f"At current pace, 100% coverage in ~{remaining} releases", "info",
        ))

    for milestone in detect_milestones(ordered):
        label = milestone.snapshot.version or f"snapshot {milestone.index + 1}"
        insights.append(Insight(
            "milestone", f"Reached {milestone.threshold}% coverage at {label}", "success",
        ))

    return insights[:MAX_INSIGHTS]
