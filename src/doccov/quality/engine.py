"""
Rule engine for documentation quality.

Evaluates a RuleSet against exports and produces per-export coverage
scores plus lint violations. The engine is stateless between calls;
the same inputs always give the same result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Union

from doccov.graph import ExportRegistry
from doccov.models import ExportSymbol, PackageSpec
from doccov.quality.rules import (
    QualityRule,
    RuleSet,
    Severity,
    default_rule_set,
    parse_severity,
)

logger = logging.getLogger(__name__)

SeverityConfig = Mapping[str, Union[str, Severity]]


@dataclass(frozen=True)
class Violation:
    """A failed rule at a non-off severity."""
    rule_id: str
    severity: Severity
    message: str
    fixable: bool = False
    line: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "ruleId": self.rule_id,
            "severity": self.severity.value,
            "message": self.message,
            "line": self.line,
            "fixable": self.fixable,
        }


@dataclass(frozen=True)
class QualityResult:
    """Coverage and violations for one export."""
    export_id: str
    coverage_score: int
    satisfied: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()
    applicable: tuple[str, ...] = ()
    violations: tuple[Violation, ...] = ()

    @property
    def error_count(self) -> int:
        return sum(1 for v in self.violations if v.severity is Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for v in self.violations if v.severity is Severity.WARN)

    @property
    def fixable_count(self) -> int:
        return sum(1 for v in self.violations if v.fixable)

    def to_dict(self) -> dict:
        return {
            "coverageScore": self.coverage_score,
            "coverage": {
                "satisfied": list(self.satisfied),
                "missing": list(self.missing),
                "applicable": list(self.applicable),
            },
            "violations": [v.to_dict() for v in self.violations],
            "summary": {
                "errorCount": self.error_count,
                "warningCount": self.warning_count,
                "fixableCount": self.fixable_count,
            },
        }


@dataclass(frozen=True)
class AggregateQualityResult:
    """Per-export results keyed by export id, plus overall figures."""
    by_export: dict[str, QualityResult] = field(default_factory=dict)

    @property
    def coverage_score(self) -> int:
        """Rounded mean of export scores; 100 when there are no exports."""
        if not self.by_export:
            return 100
        total = sum(r.coverage_score for r in self.by_export.values())
        return round(total / len(self.by_export))

    @property
    def error_count(self) -> int:
        return sum(r.error_count for r in self.by_export.values())

    @property
    def warning_count(self) -> int:
        return sum(r.warning_count for r in self.by_export.values())

    @property
    def fixable_count(self) -> int:
        return sum(r.fixable_count for r in self.by_export.values())

    @property
    def total_violations(self) -> int:
        return self.error_count + self.warning_count

    def to_dict(self) -> dict:
        return {
            "byExport": {k: r.to_dict() for k, r in self.by_export.items()},
            "overall": {
                "coverageScore": self.coverage_score,
                "totalViolations": self.total_violations,
                "errorCount": self.error_count,
                "warningCount": self.warning_count,
                "fixableCount": self.fixable_count,
            },
        }


class QualityEngine:
    """
    Evaluates documentation quality rules.

    Effective severity of a rule is resolved in order: the per-call
    config, the engine defaults, then the rule's own default. Rules at
    ``off`` are excluded from both coverage and violations.
    """

    def __init__(
        self,
        rule_set: Optional[RuleSet] = None,
        defaults: Optional[SeverityConfig] = None,
    ):
        """
        Initialize the engine.

        Args:
            rule_set: Rules to evaluate (built-in rules if None)
            defaults: Engine-wide severity overrides, keyed by rule id
        """
        self._rules = rule_set if rule_set is not None else default_rule_set()
        self._defaults = {
            rule_id: parse_severity(value)
            for rule_id, value in (defaults or {}).items()
        }

    @property
    def rule_set(self) -> RuleSet:
        return self._rules

    def severity_for(self, rule: QualityRule, config: Optional[SeverityConfig] = None) -> Severity:
        if config and rule.id in config:
            return parse_severity(config[rule.id])
        if rule.id in self._defaults:
            return self._defaults[rule.id]
        return rule.default_severity

    def _passes(
        self,
        rule: QualityRule,
        export: ExportSymbol,
        raw_doc_text: Optional[str],
        registry: Optional[ExportRegistry],
    ) -> bool:
        """Run a rule check; a check that raises counts as a pass."""
        try:
            return bool(rule.check(export, raw_doc_text, registry))
        except Exception:
            logger.warning(
                "Rule %s raised on export %s; counting as pass",
                rule.id, export.id, exc_info=True,
            )
            return True

    def evaluate_export(
        self,
        export: ExportSymbol,
        raw_doc_text: Optional[str] = None,
        config: Optional[SeverityConfig] = None,
        registry: Optional[ExportRegistry] = None,
    ) -> QualityResult:
        """
        Evaluate every applicable rule against one export.

        Args:
            export: The export to evaluate
            raw_doc_text: Raw doc-comment text for style rules
            config: Per-call severity overrides
            registry: Export registry for spec-level rules

        Returns:
            QualityResult with coverage score (0-100) and violations
        """
        satisfied: list[str] = []
        missing: list[str] = []
        applicable: list[str] = []
        violations: list[Violation] = []
        line = export.source.line if export.source else None

        for rule in self._rules.for_kind(export.kind.value):
            severity = self.severity_for(rule, config)
            if severity is Severity.OFF:
                continue

            passed = self._passes(rule, export, raw_doc_text, registry)
            if rule.affects_coverage:
                applicable.append(rule.id)
                (satisfied if passed else missing).append(rule.id)
            if not passed:
                violations.append(Violation(
                    rule_id=rule.id,
                    severity=severity,
                    message=rule.message(export, raw_doc_text, registry),
                    fixable=rule.fixable,
                    line=line,
                ))

        if applicable:
            score = round(100 * len(satisfied) / len(applicable))
        else:
            score = 100

        return QualityResult(
            export_id=export.id,
            coverage_score=score,
            satisfied=tuple(satisfied),
            missing=tuple(missing),
            applicable=tuple(applicable),
            violations=tuple(violations),
        )

    def evaluate(
        self,
        items: Iterable[tuple[ExportSymbol, Optional[str]]],
        config: Optional[SeverityConfig] = None,
        registry: Optional[ExportRegistry] = None,
    ) -> AggregateQualityResult:
        """Evaluate a sequence of (export, raw_doc_text) pairs."""
        by_export = {}
        for export, raw_doc_text in items:
            by_export[export.id] = self.evaluate_export(export, raw_doc_text, config, registry)
        return AggregateQualityResult(by_export=by_export)

    def evaluate_spec(
        self,
        spec: PackageSpec,
        raw_docs: Optional[Mapping[str, str]] = None,
        config: Optional[SeverityConfig] = None,
    ) -> AggregateQualityResult:
        """
        Evaluate every export of a spec against its own registry.

        Raw doc text is taken from raw_docs (keyed by export id) when given,
        otherwise from the export's own raw comments.
        """
        raw_docs = raw_docs or {}
        registry = ExportRegistry.from_spec(spec)
        items = [(e, raw_docs.get(e.id, e.raw_comments)) for e in spec.exports]
        return self.evaluate(items, config, registry)

    def fix(
        self,
        export: ExportSymbol,
        raw_doc_text: Optional[str],
        rule_id: str,
        registry: Optional[ExportRegistry] = None,
    ) -> Optional[str]:
        """
        Apply a fixable rule's rewrite to raw doc text.

        Returns:
            The rewritten text, or None if the rule is unknown, not fixable,
            already satisfied, or its fix produced nothing
        """
        rule = self._rules.get(rule_id)
        if rule is None or rule.fix is None:
            return None
        if self._passes(rule, export, raw_doc_text, registry):
            return None
        try:
            return rule.fix(export, raw_doc_text, registry)
        except Exception:
            logger.warning("Fix for rule %s raised on export %s", rule.id, export.id, exc_info=True)
            return None


_default_engine = QualityEngine()


def evaluate_export_quality(
    export: ExportSymbol,
    raw_doc_text: Optional[str] = None,
    config: Optional[SeverityConfig] = None,
    registry: Optional[ExportRegistry] = None,
) -> QualityResult:
    """Evaluate one export with the built-in rules."""
    return _default_engine.evaluate_export(export, raw_doc_text, config, registry)


def evaluate_quality(
    items: Iterable[tuple[ExportSymbol, Optional[str]]],
    config: Optional[SeverityConfig] = None,
    registry: Optional[ExportRegistry] = None,
) -> AggregateQualityResult:
    """Evaluate many exports with the built-in rules."""
    return _default_engine.evaluate(items, config, registry)


def merge_config(
    user_rules: Optional[SeverityConfig] = None,
    rule_set: Optional[RuleSet] = None,
) -> dict[str, Severity]:
    """
    Fill a partial severity map with each rule's default.

    Raises:
        ConfigError: On an invalid severity value
    """
    rules = rule_set if rule_set is not None else default_rule_set()
    merged = rules.default_severities()
    for rule_id, value in (user_rules or {}).items():
        merged[rule_id] = parse_severity(value)
    return merged
