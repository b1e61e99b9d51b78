"""
Command-line interface for doccov
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape as rich_escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from doccov import __version__
from doccov.config import DocCovConfig, load_config
from doccov.constants import (
    COVERAGE_HEALTHY_THRESHOLD,
    COVERAGE_WARNING_THRESHOLD,
    HISTORY_DIR,
    RETENTION_DAYS,
    SNAPSHOT_SOURCES,
)
from doccov.diff import DiffOptions, SpecDiff, calculate_next_version, diff_specs
from doccov.drift import detect_spec_drift, drift_summary, format_drift_summary_line
from doccov.errors import DocCovError
from doccov.history import (
    JsonFileSnapshotStore,
    analyze_trends,
    compute_snapshot,
    format_delta,
    generate_insights,
)
from doccov.markdown import load_markdown_dir
from doccov.models import PackageSpec
from doccov.quality import AggregateQualityResult, QualityEngine, Severity
from doccov.serializer import load_spec

logger = logging.getLogger(__name__)

# Create a console instance for all output
console = Console()

_SEVERITY_STYLES = {
    "error": "red",
    "warn": "yellow",
    "warning": "yellow",
    "info": "dim",
    "high": "red",
    "medium": "yellow",
    "low": "dim",
}


def _coverage_style(pct: float) -> str:
    """Get Rich style name based on coverage percentage."""
    if pct >= COVERAGE_HEALTHY_THRESHOLD:
        return "green"
    if pct >= COVERAGE_WARNING_THRESHOLD:
        return "yellow"
    return "red"


def make_progress_bar(percentage: float, width: int = 10) -> str:
    """Create a text-based progress bar."""
    filled = int(percentage / 100 * width)
    return "█" * filled + "░" * (width - filled)


def _print_json(data: Any) -> None:
    # Plain print: rich would wrap long lines
    print(json.dumps(data, indent=2))


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# =============================================================================
# quality
# =============================================================================

def print_quality_report(spec: PackageSpec, result: AggregateQualityResult) -> None:
    """Print a coverage table and the violations found."""
    score = result.coverage_score
    style = _coverage_style(score)
    console.print()
    console.print(Panel(
        f"[bold]{rich_escape(spec.meta.name)}[/] documentation coverage: "
        f"[{style}]{score}%[/] {make_progress_bar(score)}",
        style="blue",
        expand=False,
    ))

    table = Table(title="Exports", show_header=True, header_style="bold magenta")
    table.add_column("Export", style="cyan")
    table.add_column("Kind", style="dim")
    table.add_column("Coverage", justify="right")
    table.add_column("Missing")

    exports = spec.exports_by_id
    for export_id, quality in sorted(result.by_export.items(), key=lambda x: x[1].coverage_score):
        export = exports[export_id]
        pct_style = _coverage_style(quality.coverage_score)
        table.add_row(
            rich_escape(export.name),
            export.kind.value,
            f"[{pct_style}]{quality.coverage_score}%[/]",
            rich_escape(", ".join(quality.missing)) or "[green]✓[/]",
        )
    console.print(table)

    violations = [(export_id, v) for export_id, q in result.by_export.items() for v in q.violations]
    if violations:
        console.print(f"\n[bold]Violations ({len(violations)}):[/]")
        for export_id, violation in violations:
            sev = violation.severity.value
            fix = " [dim](fixable)[/]" if violation.fixable else ""
            console.print(
                f"  [{_SEVERITY_STYLES[sev]}]{sev.upper():<5}[/] "
                f"[cyan]{rich_escape(exports[export_id].name)}[/] "
                f"{rich_escape(violation.message)} [dim]{violation.rule_id}[/]{fix}"
            )
    else:
        console.print("\n[green]✓ No violations found![/]")


def run_quality(args: argparse.Namespace, config: DocCovConfig) -> int:
    spec = load_spec(args.spec)
    engine = QualityEngine(defaults=config.rule_config)
    result = engine.evaluate_spec(spec)

    if args.json:
        _print_json(result.to_dict())
    else:
        print_quality_report(spec, result)

    has_errors = any(
        v.severity is Severity.ERROR for q in result.by_export.values() for v in q.violations
    )
    return 1 if has_errors else 0


# =============================================================================
# drift
# =============================================================================

def run_drift(args: argparse.Namespace, config: DocCovConfig) -> int:
    spec = load_spec(args.spec)
    drift = detect_spec_drift(spec)
    issues = [issue for export_issues in drift.values() for issue in export_issues]

    if args.json:
        _print_json({
            "issues": [i.to_dict() for i in issues],
            "summary": drift_summary(issues).to_dict(),
        })
        return 0

    if not issues:
        console.print("[green]✓ No documentation drift detected.[/]")
        return 0

    table = Table(title="Documentation Drift", show_header=True, header_style="bold magenta")
    table.add_column("Export", style="cyan")
    table.add_column("Type")
    table.add_column("Issue")
    table.add_column("Suggestion", style="dim")
    for issue in issues:
        style = _SEVERITY_STYLES.get(issue.severity, "white")
        table.add_row(
            rich_escape(issue.export_name),
            f"[{style}]{issue.type}[/]",
            rich_escape(issue.description),
            rich_escape(issue.suggestion or ""),
        )
    console.print(table)
    console.print(f"\n[bold]{rich_escape(format_drift_summary_line(drift_summary(issues)))}[/]")
    return 0


# =============================================================================
# diff
# =============================================================================

def _print_name_list(title: str, names: Sequence[str], style: str) -> None:
    if not names:
        return
    console.print(f"\n[bold {style}]{title} ({len(names)}):[/]")
    for name in names:
        console.print(f"  [dim]•[/] [{style}]{rich_escape(name)}[/]")


def print_diff_report(base: PackageSpec, head: PackageSpec, diff: SpecDiff) -> None:
    """Print breaking, non-breaking and docs-only changes plus docs impact."""
    version = base.meta.version
    next_version = calculate_next_version(version, diff.semver_bump) if version else None
    summary = Text()
    summary.append("Semver bump: ", style="bold")
    summary.append(diff.semver_bump, style="red bold" if diff.semver_bump == "major" else "cyan bold")
    if next_version:
        summary.append(f"  ({version} → {next_version})", style="dim")
    summary.append("\nCoverage:    ", style="bold")
    summary.append(f"{diff.old_coverage}% → {diff.new_coverage}% ", style=_coverage_style(diff.new_coverage))
    summary.append(format_delta(diff.coverage_delta))
    summary.append("\nDrift:       ", style="bold")
    summary.append(f"+{diff.drift_introduced} introduced, -{diff.drift_resolved} resolved")
    console.print(Panel(summary, title="[bold blue]Spec Diff[/]", border_style="blue"))

    if diff.categorized_breaking:
        console.print(f"\n[bold red]Breaking ({len(diff.breaking)}):[/]")
        for item in diff.categorized_breaking:
            style = _SEVERITY_STYLES[item.severity]
            details = "; ".join(diff.reasons.get(item.name, ()))
            console.print(
                f"  [{style}]{item.severity.upper():<6}[/] [white]{rich_escape(item.name)}[/] "
                f"{item.reason} [dim]{rich_escape(details)}[/]"
            )
    _print_name_list("Non-breaking", diff.non_breaking, "green")
    _print_name_list("Docs-only", diff.docs_only, "cyan")
    _print_name_list("New undocumented", diff.new_undocumented, "yellow")

    if diff.is_empty:
        console.print("\n[green]✓ No API changes.[/]")

    impact = diff.docs_impact
    if impact is not None:
        console.print("\n[bold]Docs impact:[/]")
        if not impact.has_impact:
            console.print("  [green]✓ No documentation impact detected.[/]")
        for file_impact in impact.impacted_files:
            lines = ", ".join(str(ref.line) for ref in file_impact.references)
            console.print(f"  [green]{rich_escape(file_impact.file)}[/] [dim]lines {lines}[/]")
        if impact.missing_docs:
            console.print(
                f"  [yellow]Undocumented new exports:[/] {rich_escape(', '.join(impact.missing_docs))}"
            )


def run_diff(args: argparse.Namespace, config: DocCovConfig) -> int:
    base = load_spec(args.base)
    head = load_spec(args.head)
    markdown = load_markdown_dir(args.docs) if args.docs else None
    diff = diff_specs(base, head, markdown, DiffOptions(quality_config=config.rule_config))

    if args.json:
        _print_json(diff.to_dict())
    else:
        print_diff_report(base, head, diff)
    return 1 if diff.has_breaking else 0


# =============================================================================
# trends
# =============================================================================

def run_trends_record(args: argparse.Namespace, config: DocCovConfig) -> int:
    spec = load_spec(args.spec)
    quality = QualityEngine(defaults=config.rule_config).evaluate_spec(spec)
    snapshot = compute_snapshot(
        spec, quality, source=args.source, commit=args.commit, branch=args.branch,
    )
    JsonFileSnapshotStore(args.history).record_snapshot(snapshot)

    style = _coverage_style(snapshot.coverage_score)
    console.print(
        f"[bold green]✓[/] Recorded [cyan]{rich_escape(snapshot.package)}[/] "
        f"[{style}]{snapshot.coverage_score}%[/] "
        f"({snapshot.documented_exports}/{snapshot.total_exports} documented, "
        f"{snapshot.drift_count} drift)"
    )
    return 0


def run_trends_prune(args: argparse.Namespace, config: DocCovConfig) -> int:
    store = JsonFileSnapshotStore(args.history)
    if args.tier:
        removed = store.prune_by_tier(args.package, args.tier)
        rule = f"older than {RETENTION_DAYS[args.tier]} days"
    else:
        keep = args.keep if args.keep is not None else config.history_keep
        removed = store.prune_by_count(args.package, keep)
        rule = f"beyond the newest {keep}"
    console.print(f"[bold green]✓[/] Pruned {removed} snapshots {rule}")
    return 0


def run_trends_show(args: argparse.Namespace, config: DocCovConfig) -> int:
    history = JsonFileSnapshotStore(args.history).load_history(args.package, args.limit)
    tier = args.tier or config.history_tier
    analysis = analyze_trends(history, tier)
    if analysis is None:
        console.print(f"[yellow]No history for {rich_escape(args.package)}[/]")
        return 0

    insights = generate_insights(history)
    if args.json:
        _print_json({
            **analysis.to_dict(),
            "insights": [i.to_dict() for i in insights],
            "snapshots": [s.to_dict() for s in history],
        })
        return 0

    trend = analysis.trend
    current = trend.current.coverage_score
    summary = Text()
    summary.append("Coverage:   ", style="bold")
    summary.append(f"{current}% ", style=_coverage_style(current))
    if trend.delta is not None:
        summary.append(format_delta(trend.delta))
    summary.append(f"\nTrend:      {trend.sparkline_text}")
    summary.append(f"\nVelocity:   {analysis.velocity_7d:+}/day (7d), {analysis.velocity_30d:+}/day (30d)")
    if analysis.velocity_90d is not None:
        summary.append(f", {analysis.velocity_90d:+}/day (90d)")
    summary.append(f"\nProjected:  {analysis.projected_30d}% in 30 days")
    summary.append(f"\nRange:      {analysis.all_time_low}% – {analysis.all_time_high}%")
    console.print(Panel(summary, title=f"[bold blue]{rich_escape(args.package)}[/]", border_style="blue"))

    if insights:
        console.print("\n[bold]Insights:[/]")
        styles = {"success": "green", "warning": "yellow", "info": "cyan"}
        for insight in insights:
            console.print(f"  [{styles[insight.severity]}]•[/] {rich_escape(insight.message)}")
    return 0


# =============================================================================
# Entry point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doccov",
        description="Documentation coverage, drift and API diff analysis",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file (default: ./doccov.config.json if present)"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    quality = commands.add_parser("quality", help="Score documentation coverage")
    quality.add_argument("spec", type=Path, help="Package spec JSON")
    quality.add_argument("--json", action="store_true", help="Print JSON instead of a report")
    quality.set_defaults(handler=run_quality)

    drift = commands.add_parser("drift", help="Find documentation that disagrees with the code")
    drift.add_argument("spec", type=Path, help="Package spec JSON")
    drift.add_argument("--json", action="store_true", help="Print JSON instead of a report")
    drift.set_defaults(handler=run_drift)

    diff = commands.add_parser("diff", help="Classify API changes between two specs")
    diff.add_argument("base", type=Path, help="Base (older) spec JSON")
    diff.add_argument("head", type=Path, help="Head (newer) spec JSON")
    diff.add_argument("--docs", type=Path, help="Markdown docs directory to check for impact")
    diff.add_argument("--json", action="store_true", help="Print JSON instead of a report")
    diff.set_defaults(handler=run_diff)

    trends = commands.add_parser("trends", help="Record and analyze coverage history")
    trends.add_argument(
        "--history",
        type=Path,
        default=Path(HISTORY_DIR),
        help=f"History directory (default: {HISTORY_DIR})"
    )
    actions = trends.add_subparsers(dest="action", required=True)

    record = actions.add_parser("record", help="Record a coverage snapshot")
    record.add_argument("spec", type=Path, help="Package spec JSON")
    record.add_argument("--source", choices=sorted(SNAPSHOT_SOURCES), default="manual")
    record.add_argument("--commit", help="Commit SHA the spec was built from")
    record.add_argument("--branch", help="Branch name")
    record.set_defaults(handler=run_trends_record)

    prune = actions.add_parser("prune", help="Delete old snapshots")
    prune.add_argument("package", help="Package name")
    group = prune.add_mutually_exclusive_group()
    group.add_argument("--keep", type=int, help="Keep the newest N snapshots")
    group.add_argument("--tier", choices=list(RETENTION_DAYS), help="Apply a retention tier")
    prune.set_defaults(handler=run_trends_prune)

    show = actions.add_parser("show", help="Show trend analysis and insights")
    show.add_argument("package", help="Package name")
    show.add_argument("--limit", type=int, help="Analyze only the newest N snapshots")
    show.add_argument("--tier", choices=list(RETENTION_DAYS), help="Retention tier for the analysis window")
    show.add_argument("--json", action="store_true", help="Print JSON instead of a report")
    show.set_defaults(handler=run_trends_show)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = load_config(args.config)
        return args.handler(args, config)
    except DocCovError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[bold red]Error:[/] {rich_escape(str(e))}")
        return 1


if __name__ == "__main__":
    exit(main())
