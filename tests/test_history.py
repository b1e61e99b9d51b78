"""
Tests for coverage snapshots, snapshot stores and trend analytics.
"""
import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from doccov.errors import ConfigError, MalformedSpec
from doccov.history import (
    CoverageSnapshot,
    JsonFileSnapshotStore,
    MemorySnapshotStore,
    analyze_trends,
    calculate_velocity,
    compute_snapshot,
    compute_trend,
    detect_milestones,
    detect_regression,
    format_delta,
    generate_insights,
    project_coverage,
    render_sparkline,
    retention_days,
    weekly_summaries,
)
from doccov.history.trends import week_start

from builders import function, make_spec, param

EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


def snap(day, score, version=None, documented=0, package="pkg", **extra):
    return CoverageSnapshot(
        timestamp=EPOCH + timedelta(days=day),
        package=package,
        coverage_score=score,
        documented_exports=documented,
        total_exports=10,
        version=version,
        **extra,
    )


# =============================================================================
# Snapshots
# =============================================================================

class TestCoverageSnapshot:
    """Tests for CoverageSnapshot and compute_snapshot."""

    def test_round_trip(self):
        original = snap(3, 72, version="1.2.0", commit="abc1234def", branch="main", source="ci")
        assert CoverageSnapshot.from_dict(original.to_dict()) == original

    def test_to_dict_uses_z_suffix(self):
        assert snap(0, 50).to_dict()["timestamp"] == "2026-01-01T00:00:00Z"

    def test_unknown_source_rejected(self):
        with pytest.raises(ValueError):
            snap(0, 50, source="cron")

    def test_naive_timestamp_taken_as_utc(self):
        s = CoverageSnapshot(datetime(2026, 1, 1), "pkg", 50, 1, 2)
        assert s.timestamp.tzinfo is timezone.utc

    def test_missing_field_reports_path(self):
        with pytest.raises(MalformedSpec) as exc:
            CoverageSnapshot.from_dict({"timestamp": "2026-01-01T00:00:00Z", "package": "pkg"})
        assert exc.value.path == "snapshot.coverageScore"

    def test_label_fallbacks(self):
        assert snap(0, 50, version="2.0.0").label == "2.0.0"
        assert snap(0, 50, commit="abcdef0123").label == "abcdef0"
        assert snap(0, 50).label == "2026-01-01"

    def test_compute_snapshot_counts_signals(self):
        spec = make_spec(
            function("applyTax", param("base", "number", description="Amount"),
                     description="Apply tax", examples=["applyTax(1)"]),
            function("formatPrice"),
        )
        s = compute_snapshot(spec, drift_count=3, source="ci", timestamp=EPOCH)
        assert (s.package, s.version) == ("pkg", "1.0.0")
        assert s.coverage_score == 50
        assert (s.documented_exports, s.total_exports) == (1, 2)
        assert s.signals.description == 1
        assert s.signals.params == 1
        assert s.signals.returns == 0
        assert s.signals.examples == 1
        assert s.drift_count == 3

    def test_compute_snapshot_detects_drift_when_not_given(self):
        spec = make_spec(function("a", deprecated=True))
        assert compute_snapshot(spec, timestamp=EPOCH).drift_count == 1


# =============================================================================
# Stores
# =============================================================================

class TestMemorySnapshotStore:
    """Tests for the in-memory store and the shared pruning policy."""

    def _store(self, *snapshots):
        store = MemorySnapshotStore()
        for s in snapshots:
            store.record_snapshot(s)
        return store

    def test_history_is_chronological(self):
        store = self._store(snap(5, 60), snap(1, 50), snap(9, 70))
        assert [s.coverage_score for s in store.load_history("pkg")] == [50, 60, 70]

    def test_limit_keeps_newest(self):
        store = self._store(snap(1, 50), snap(2, 60), snap(3, 70))
        assert [s.coverage_score for s in store.load_history("pkg", limit=2)] == [60, 70]
        assert store.load_history("pkg", limit=0) == []

    def test_packages_are_isolated(self):
        store = self._store(snap(1, 50), snap(1, 90, package="other"))
        assert store.packages() == ["other", "pkg"]
        assert [s.coverage_score for s in store.load_history("other")] == [90]
        assert store.load_history("missing") == []

    def test_prune_by_count(self):
        store = self._store(snap(1, 50), snap(2, 60), snap(3, 70))
        assert store.prune_by_count("pkg", keep=1) == 2
        assert [s.coverage_score for s in store.load_history("pkg")] == [70]

    def test_prune_by_count_zero_removes_all(self):
        store = self._store(snap(1, 50), snap(2, 60))
        assert store.prune_by_count("pkg", keep=0) == 2
        assert store.packages() == []

    @pytest.mark.parametrize("keep, removed, left", [
        (0, 3, []),
        (2, 1, [60, 70]),
        (3, 0, [50, 60, 70]),
        (5, 0, [50, 60, 70]),
    ])
    def test_prune_by_count_boundaries(self, keep, removed, left):
        """Keeping at least the whole history deletes nothing."""
        store = self._store(snap(1, 50), snap(2, 60), snap(3, 70))
        assert store.prune_by_count("pkg", keep=keep) == removed
        assert [s.coverage_score for s in store.load_history("pkg")] == left

    def test_prune_by_count_rejects_negative(self):
        with pytest.raises(ValueError):
            MemorySnapshotStore().prune_by_count("pkg", keep=-1)

    def test_prune_by_tier(self):
        """The free tier keeps seven days before ``now``."""
        store = self._store(snap(0, 50), snap(2, 55), snap(5, 60), snap(10, 70))
        removed = store.prune_by_tier("pkg", "free", now=EPOCH + timedelta(days=10))
        assert removed == 2
        assert [s.coverage_score for s in store.load_history("pkg")] == [60, 70]

    def test_unknown_tier(self):
        with pytest.raises(ConfigError):
            retention_days("enterprise")
        with pytest.raises(ConfigError):
            MemorySnapshotStore().prune_by_tier("pkg", "enterprise")

    def test_concurrent_appends(self):
        store = MemorySnapshotStore()
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(store.record_snapshot, [snap(i, i % 100) for i in range(50)]))
        assert len(store.load_history("pkg")) == 50


class TestJsonFileSnapshotStore:
    """Tests for the JSON file store."""

    def test_one_file_per_snapshot(self, tmp_path):
        store = JsonFileSnapshotStore(tmp_path)
        store.record_snapshot(snap(1, 50))
        store.record_snapshot(snap(2, 60))
        assert len(list((tmp_path / "pkg").glob("*.json"))) == 2
        assert [s.coverage_score for s in store.load_history("pkg")] == [50, 60]

    def test_same_timestamp_does_not_overwrite(self, tmp_path):
        store = JsonFileSnapshotStore(tmp_path)
        store.record_snapshot(snap(1, 50))
        store.record_snapshot(snap(1, 51))
        assert len(store.load_history("pkg")) == 2

    def test_scoped_package_name(self, tmp_path):
        store = JsonFileSnapshotStore(tmp_path)
        store.record_snapshot(snap(1, 50, package="@scope/pkg"))
        assert (tmp_path / "scope_pkg").is_dir()
        assert store.packages() == ["@scope/pkg"]

    def test_corrupt_file_skipped(self, tmp_path):
        store = JsonFileSnapshotStore(tmp_path)
        store.record_snapshot(snap(1, 50))
        (tmp_path / "pkg" / "zzz.json").write_text("{not json", encoding="utf-8")
        (tmp_path / "pkg" / "yyy.json").write_text(json.dumps({"package": "pkg"}), encoding="utf-8")
        assert [s.coverage_score for s in store.load_history("pkg")] == [50]

    def test_prune_deletes_files(self, tmp_path):
        store = JsonFileSnapshotStore(tmp_path)
        for day in range(4):
            store.record_snapshot(snap(day, 50 + day))
        assert store.prune_by_count("pkg", keep=2) == 2
        assert len(list((tmp_path / "pkg").glob("*.json"))) == 2
        assert [s.coverage_score for s in store.load_history("pkg")] == [52, 53]

    def test_missing_root(self, tmp_path):
        store = JsonFileSnapshotStore(tmp_path / "nowhere")
        assert store.packages() == []
        assert store.load_history("pkg") == []


# =============================================================================
# Trends
# =============================================================================

class TestDisplayHelpers:
    """Tests for sparklines and delta formatting."""

    def test_sparkline_scales_between_min_and_max(self):
        assert render_sparkline([0, 50, 100]) == "▁▅█"

    def test_flat_sparkline(self):
        assert render_sparkline([5, 5]) == "▁▁"
        assert render_sparkline([]) == ""

    def test_format_delta(self):
        assert format_delta(5) == "↑5%"
        assert format_delta(-3) == "↓3%"
        assert format_delta(0) == "→0%"
        assert format_delta(2.5) == "↑2.5%"


class TestVelocity:
    """Tests for velocity and projection."""

    def test_change_per_day(self):
        assert calculate_velocity([snap(10, 70), snap(0, 50)]) == 2.0

    def test_window_excludes_older_snapshots(self):
        assert calculate_velocity([snap(0, 50), snap(10, 70)], days=7) == 0.0

    def test_short_span_is_zero(self):
        snapshots = [snap(0, 50), snap(0.5, 80)]
        assert calculate_velocity(snapshots) == 0.0
        assert calculate_velocity(snapshots[:1]) == 0.0

    def test_projection_clamped(self):
        assert project_coverage(90, 2.0) == 100
        assert project_coverage(50, -2.0) == 0
        assert project_coverage(50, 0.5) == 65


class TestRegressionsAndMilestones:
    """Tests for regression and milestone detection."""

    def test_regression_found(self):
        regression = detect_regression([snap(0, 80, documented=10), snap(1, 78, documented=9),
                                        snap(2, 74, documented=7)])
        assert regression.coverage_drop == 4
        assert (regression.from_version, regression.to_version) == ("v2", "v3")
        assert regression.exports_lost == 2

    def test_regression_uses_versions(self):
        regression = detect_regression([snap(0, 80, version="1.0.0"), snap(1, 70, version="1.1.0")])
        assert regression.to_dict()["fromVersion"] == "1.0.0"
        assert regression.to_dict()["coverageDrop"] == 10

    def test_small_drops_ignored(self):
        assert detect_regression([snap(0, 80), snap(1, 79), snap(2, 78)]) is None

    def test_only_recent_window_scanned(self):
        scores = [90, 50, 60, 61, 62, 63, 64]
        assert detect_regression([snap(i, s) for i, s in enumerate(scores)]) is None

    def test_milestones_in_crossing_order(self):
        scores = [40, 60, 80, 70, 95]
        milestones = detect_milestones([snap(i, s) for i, s in enumerate(scores)])
        assert [m.threshold for m in milestones] == [50, 75, 90]
        assert [m.index for m in milestones] == [1, 2, 4]

    def test_milestone_counted_once(self):
        scores = [40, 60, 40, 60]
        assert len(detect_milestones([snap(i, s) for i, s in enumerate(scores)])) == 1


class TestWeeklySummaries:
    """Tests for Sunday-based weekly grouping."""

    def test_week_start_is_sunday(self):
        # 2026-01-01 is a Thursday
        assert week_start(EPOCH) == datetime(2025, 12, 28, tzinfo=timezone.utc)
        assert week_start(datetime(2026, 1, 4, 15, tzinfo=timezone.utc)) == datetime(
            2026, 1, 4, tzinfo=timezone.utc)

    def test_grouping_newest_first(self):
        summaries = weekly_summaries([snap(0, 50), snap(1, 60), snap(4, 70)])
        assert [s.snapshot_count for s in summaries] == [1, 2]
        latest, earlier = summaries
        assert earlier.avg_coverage == 55
        assert earlier.delta == 10
        assert earlier.week_over_week_delta is None
        assert latest.week_over_week_delta == 15
        assert latest.week_end - latest.week_start == timedelta(days=6)


class TestAnalyzeTrends:
    """Tests for compute_trend and analyze_trends."""

    def test_trend(self):
        trend = compute_trend([snap(2, 70), snap(0, 50), snap(1, 60)])
        assert trend.current.coverage_score == 70
        assert [s.coverage_score for s in trend.history] == [60, 50]
        assert trend.delta == 10
        assert trend.sparkline == (50, 60, 70)

    def test_single_snapshot_has_no_delta(self):
        assert compute_trend([snap(0, 50)]).delta is None
        assert compute_trend([]) is None

    def test_extended_analysis(self):
        snapshots = [snap(0, 50), snap(20, 60), snap(40, 80)]
        analysis = analyze_trends(snapshots, tier="pro")
        assert analysis.velocity_7d == 0.0
        assert analysis.velocity_30d == 1.0
        assert analysis.velocity_90d == 0.75
        assert analysis.projected_30d == 100
        assert (analysis.all_time_high, analysis.all_time_low) == (80, 50)
        assert analysis.data_range == (snapshots[0].timestamp, snapshots[-1].timestamp)
        assert analysis.regression is None

    def test_free_tier_limits_window(self):
        analysis = analyze_trends([snap(0, 50), snap(20, 60), snap(40, 80)], tier="free")
        assert analysis.velocity_90d is None
        assert len(analysis.weekly_summaries) == 1

    def test_empty_and_unknown_tier(self):
        assert analyze_trends([]) is None
        with pytest.raises(ConfigError):
            analyze_trends([snap(0, 50)], tier="gold")

    def test_to_dict(self):
        data = analyze_trends([snap(0, 50)]).to_dict()
        assert data["dataRange"] is None
        assert data["trend"]["delta"] is None


class TestInsights:
    """Tests for generate_insights."""

    def test_improvement_prediction_and_milestones(self):
        insights = generate_insights([
            snap(0, 40, version="1.0.0"),
            snap(1, 60, version="1.1.0"),
            snap(2, 80, version="1.2.0"),
        ])
        assert [i.type for i in insights] == ["improvement", "prediction", "milestone", "milestone"]
        assert insights[0].message == "Coverage increased 40% since 1.0.0"
        assert insights[1].message == "At current pace, 100% coverage in ~1 releases"
        assert insights[2].message == "Reached 50% coverage at 1.1.0"

    def test_regression(self):
        insights = generate_insights([snap(0, 80), snap(1, 70)])
        assert len(insights) == 1
        assert insights[0].message == "Coverage decreased 10% since first snapshot"
        assert insights[0].severity == "warning"

    def test_too_little_history(self):
        assert generate_insights([snap(0, 50)]) == []

    def test_capped(self):
        scores = [10, 55, 80, 95, 100]
        assert len(generate_insights([snap(i, s) for i, s in enumerate(scores)])) == 5


class TestAppendPruneSerialization:
    """Appends and prunes on one package never interleave."""

    @pytest.fixture(params=["memory", "json"])
    def store(self, request, tmp_path):
        if request.param == "memory":
            return MemorySnapshotStore()
        return JsonFileSnapshotStore(tmp_path)

    def test_every_snapshot_kept_or_counted_as_pruned(self, store):
        total = 40
        pruned = []

        def work(i):
            store.record_snapshot(snap(i, i % 100))
            if i % 5 == 4:
                pruned.append(store.prune_by_count("pkg", keep=3))

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(work, range(total)))

        remaining = store.load_history("pkg")
        assert sum(pruned) + len(remaining) == total
        assert len(remaining) >= 1

    def test_final_prune_keeps_newest(self, store):
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda i: store.record_snapshot(snap(i, i)), range(20)))
        assert store.prune_by_count("pkg", keep=5) == 15
        assert [s.coverage_score for s in store.load_history("pkg")] == [15, 16, 17, 18, 19]
