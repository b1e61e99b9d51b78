"""
Documentation quality rules and the engine that evaluates them.

- rules: QualityRule, RuleSet and the built-in rule tiers
- engine: QualityEngine and the evaluate_* convenience functions
"""
from doccov.quality.rules import (
    QualityRule,
    RuleSet,
    Severity,
    default_rule_set,
    parse_severity,
)
from doccov.quality.engine import (
    AggregateQualityResult,
    QualityEngine,
    QualityResult,
    Violation,
    evaluate_export_quality,
    evaluate_quality,
    merge_config,
)

__all__ = [
    "QualityRule",
    "RuleSet",
    "Severity",
    "default_rule_set",
    "parse_severity",
    "AggregateQualityResult",
    "QualityEngine",
    "QualityResult",
    "Violation",
    "evaluate_export_quality",
    "evaluate_quality",
    "merge_config",
]
