"""
Coverage snapshots: one point-in-time record of a package's documentation health.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from doccov.constants import SNAPSHOT_SOURCES
from doccov.drift import detect_spec_drift
from doccov.errors import MalformedSpec
from doccov.models import PackageSpec
from doccov.quality import AggregateQualityResult, QualityEngine


def parse_timestamp(value: str) -> datetime:
    """ISO-8601 to an aware UTC datetime; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class SignalCounts:
    """How many exports carry each documentation signal."""
    description: int = 0
    params: int = 0
    returns: int = 0
    examples: int = 0

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "params": self.params,
            "returns": self.returns,
            "examples": self.examples,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SignalCounts":
        data = data or {}
        return cls(**{name: int(data.get(name, 0)) for name in ("description", "params", "returns", "examples")})


@dataclass(frozen=True)
class CoverageSnapshot:
    """A recorded coverage measurement. Snapshots are ordered by timestamp."""
    timestamp: datetime
    package: str
    coverage_score: int
    documented_exports: int
    total_exports: int
    drift_count: int = 0
    signals: SignalCounts = field(default_factory=SignalCounts)
    source: str = "manual"
    version: Optional[str] = None
    commit: Optional[str] = None
    branch: Optional[str] = None

    def __post_init__(self):
        if self.source not in SNAPSHOT_SOURCES:
            raise ValueError(f"Unknown snapshot source: {self.source!r}")
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))

    @property
    def label(self) -> str:
        """Version if known, else the short commit, else the date."""
        if self.version:
            return self.version
        if self.commit:
            return self.commit[:7]
        return self.timestamp.date().isoformat()

    def to_dict(self) -> dict:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "package": self.package,
            "version": self.version,
            "commit": self.commit,
            "branch": self.branch,
            "coverageScore": self.coverage_score,
            "documentedExports": self.documented_exports,
            "totalExports": self.total_exports,
            "signals": self.signals.to_dict(),
            "driftCount": self.drift_count,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CoverageSnapshot":
        """
        Raises:
            MalformedSpec: If a required field is missing or invalid
        """
        if not isinstance(data, dict):
            raise MalformedSpec("snapshot", "expected an object")
        try:
            return cls(
                timestamp=parse_timestamp(data["timestamp"]),
                package=str(data["package"]),
                coverage_score=int(data["coverageScore"]),
                documented_exports=int(data.get("documentedExports", 0)),
                total_exports=int(data.get("totalExports", 0)),
                drift_count=int(data.get("driftCount", 0)),
                signals=SignalCounts.from_dict(data.get("signals")),
                source=data.get("source") or "manual",
                version=data.get("version"),
                commit=data.get("commit"),
                branch=data.get("branch"),
            )
        except KeyError as e:
            raise MalformedSpec(f"snapshot.{e.args[0]}", "missing required field") from e
        except (TypeError, ValueError) as e:
            raise MalformedSpec("snapshot", str(e)) from e


def _all_documented(values: list[Optional[str]]) -> bool:
    return bool(values) and all(v and v.strip() for v in values)


def compute_snapshot(
    spec: PackageSpec,
    quality: Optional[AggregateQualityResult] = None,
    drift_count: Optional[int] = None,
    source: str = "manual",
    commit: Optional[str] = None,
    branch: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> CoverageSnapshot:
    """
    Measure a spec.

    Args:
        spec: The package spec to measure
        quality: Precomputed quality result (evaluated with built-in rules if None)
        drift_count: Precomputed drift issue count (detected if None)
        source: ci, manual or scheduled
        commit: Commit SHA the spec was built from
        branch: Branch name
        timestamp: Measurement time (now if None)

    Returns:
        CoverageSnapshot
    """
    if quality is None:
        quality = QualityEngine().evaluate_spec(spec)
    if drift_count is None:
        drift_count = sum(len(issues) for issues in detect_spec_drift(spec).values())

    exports = spec.exports
    described = [e for e in exports if e.description and e.description.strip()]
    signals = SignalCounts(
        description=len(described),
        params=sum(1 for e in exports if _all_documented([p.description for p in e.parameters])),
        returns=sum(
            1 for e in exports
            if _all_documented([s.returns.description if s.returns else None for s in e.signatures])
        ),
        examples=sum(1 for e in exports if e.examples),
    )

    return CoverageSnapshot(
        timestamp=timestamp or datetime.now(timezone.utc),
        package=spec.meta.name,
        version=spec.meta.version,
        commit=commit,
        branch=branch,
        coverage_score=quality.coverage_score,
        documented_exports=len(described),
        total_exports=len(exports),
        signals=signals,
        drift_count=drift_count,
        source=source,
    )
