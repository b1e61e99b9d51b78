"""
Built-in documentation quality rules.

Rules come in three tiers:
- Coverage rules: contribute to the coverage score
- Structural rules: release-tag hygiene and forgotten exports
- Style rules: regex heuristics over raw doc-comment text

Style rules are best-effort and may miss unusually formatted comments.
Every check is a pure predicate; a rule that cannot decide passes.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional

from doccov.constants import (
    EMPTY_RETURNS_PATTERN,
    PARAM_DASH_SEPARATORS,
    PARAM_STYLE_PATTERN,
    RELEASE_TAGS,
    TYPE_ONLY_RETURNS_PATTERN,
)
from doccov.errors import ConfigError
from doccov.models import ExportSymbol

if TYPE_CHECKING:
    from doccov.graph import ExportRegistry


class Severity(Enum):
    """Lint severity of a rule."""
    ERROR = "error"
    WARN = "warn"
    OFF = "off"


def parse_severity(value) -> Severity:
    """Coerce a config value to a Severity, raising ConfigError if invalid."""
    if isinstance(value, Severity):
        return value
    try:
        return Severity(value)
    except ValueError:
        raise ConfigError(
            f"Invalid severity {value!r}; expected one of error, warn, off"
        ) from None


Check = Callable[[ExportSymbol, Optional[str], Optional["ExportRegistry"]], bool]
Message = Callable[[ExportSymbol, Optional[str], Optional["ExportRegistry"]], str]
Fix = Callable[[ExportSymbol, Optional[str], Optional["ExportRegistry"]], Optional[str]]


@dataclass(frozen=True)
class QualityRule:
    """
    A single documentation quality check.

    Attributes:
        id: Stable rule identifier used in configuration
        check: Pure predicate (export, raw_doc_text, registry) -> passed
        applies_to: Export kinds the rule applies to (None = all kinds)
        affects_coverage: Whether the rule counts toward the coverage score
        violation: Builds the violation message when the check fails
        fix: Rewrites raw doc text so the check passes, or None
    """
    id: str
    name: str
    description: str
    check: Check
    default_severity: Severity = Severity.WARN
    applies_to: Optional[frozenset[str]] = None
    affects_coverage: bool = False
    category: str = "style"
    violation: Optional[Message] = None
    fix: Optional[Fix] = None

    @property
    def fixable(self) -> bool:
        return self.fix is not None

    def applies(self, kind: str) -> bool:
        return self.applies_to is None or kind in self.applies_to

    def message(
        self,
        export: ExportSymbol,
        raw_doc_text: Optional[str] = None,
        registry: Optional[ExportRegistry] = None,
    ) -> str:
        if self.violation is None:
            return f"Export '{export.name}' fails {self.id}"
        return self.violation(export, raw_doc_text, registry)


class RuleSet:
    """
    An explicit, ordered collection of rules handed to the engine.

    Rule order is evaluation order, so results list rule ids in the
    order the rules were registered.
    """

    def __init__(self, rules: Iterable[QualityRule]):
        self._rules: dict[str, QualityRule] = {}
        for rule in rules:
            if rule.id in self._rules:
                raise ValueError(f"Duplicate rule id: {rule.id}")
            self._rules[rule.id] = rule

    def __iter__(self) -> Iterator[QualityRule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def get(self, rule_id: str) -> Optional[QualityRule]:
        return self._rules.get(rule_id)

    @property
    def ids(self) -> list[str]:
        return list(self._rules)

    def for_kind(self, kind: str) -> list[QualityRule]:
        """Rules applicable to an export kind, in registration order."""
        return [r for r in self._rules.values() if r.applies(kind)]

    def default_severities(self) -> dict[str, Severity]:
        return {r.id: r.default_severity for r in self._rules.values()}

    def subset(self, rule_ids: Iterable[str]) -> "RuleSet":
        """
        A new RuleSet limited to the given ids, keeping registration order.

        Raises:
            ConfigError: If an id is not registered
        """
        wanted = set(rule_ids)
        unknown = wanted - set(self._rules)
        if unknown:
            raise ConfigError(f"Unknown rule id(s): {', '.join(sorted(unknown))}")
        return RuleSet(r for r in self._rules.values() if r.id in wanted)


# =============================================================================
# Coverage rules
# =============================================================================

def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def _check_description(export, raw_doc_text, registry) -> bool:
    return _has_text(export.description)


def _check_params(export, raw_doc_text, registry) -> bool:
    return all(_has_text(p.description) for p in export.parameters)


def _check_returns(export, raw_doc_text, registry) -> bool:
    return all(
        sig.returns is not None and _has_text(sig.returns.description)
        for sig in export.signatures
    )


def _check_examples(export, raw_doc_text, registry) -> bool:
    return bool(export.examples)


COVERAGE_RULES: tuple[QualityRule, ...] = (
    QualityRule(
        id="has-description",
        name="Has Description",
        description="Export has a description comment",
        check=_check_description,
        default_severity=Severity.WARN,
        affects_coverage=True,
        category="coverage",
        violation=lambda e, raw, reg: f"Export '{e.name}' is missing a description",
    ),
    QualityRule(
        id="has-params",
        name="Has Parameters",
        description="All parameters are documented",
        check=_check_params,
        default_severity=Severity.OFF,
        applies_to=frozenset({"function"}),
        affects_coverage=True,
        category="coverage",
        violation=lambda e, raw, reg: f"Function '{e.name}' has undocumented parameters",
    ),
    QualityRule(
        id="has-returns",
        name="Has Returns",
        description="Return value is documented",
        check=_check_returns,
        default_severity=Severity.OFF,
        applies_to=frozenset({"function"}),
        affects_coverage=True,
        category="coverage",
        violation=lambda e, raw, reg: f"Function '{e.name}' has undocumented return value",
    ),
    QualityRule(
        id="has-examples",
        name="Has Examples",
        description="Export has at least one @example",
        check=_check_examples,
        default_severity=Severity.OFF,
        applies_to=frozenset({"function", "class"}),
        affects_coverage=True,
        category="coverage",
        violation=lambda e, raw, reg: f"Export '{e.name}' is missing an @example",
    ),
)


# =============================================================================
# Structural rules
# =============================================================================

def _release_tags(export: ExportSymbol) -> list[str]:
    """Release tags on the export, lowercased, in tag order."""
    return [t.name.lower() for t in export.tags if t.name.lower() in RELEASE_TAGS]


def _check_release_tag(export, raw_doc_text, registry) -> bool:
    return bool(_release_tags(export))


def _check_internal_underscore(export, raw_doc_text, registry) -> bool:
    if "internal" not in _release_tags(export):
        return True
    return export.name.startswith("_")


def _check_conflicting_tags(export, raw_doc_text, registry) -> bool:
    return len(set(_release_tags(export))) <= 1


def _check_forgotten_export(export, raw_doc_text, registry) -> bool:
    if registry is None:
        return True
    return not registry.forgotten_references(export)


def _forgotten_message(export, raw_doc_text, registry) -> str:
    forgotten = registry.forgotten_references(export) if registry is not None else []
    return (
        f"Export '{export.name}' references types that are not exported: "
        f"{', '.join(forgotten)}"
    )


STRUCTURAL_RULES: tuple[QualityRule, ...] = (
    QualityRule(
        id="require-release-tag",
        name="Require Release Tag",
        description="Export carries one of @public, @beta, @alpha or @internal",
        check=_check_release_tag,
        default_severity=Severity.OFF,
        category="structural",
        violation=lambda e, raw, reg: f"Export '{e.name}' has no release tag",
    ),
    QualityRule(
        id="internal-underscore",
        name="Internal Underscore",
        description="@internal exports are named with a leading underscore",
        check=_check_internal_underscore,
        default_severity=Severity.OFF,
        category="structural",
        violation=lambda e, raw, reg: (
            f"Internal export '{e.name}' should start with an underscore"
        ),
    ),
    QualityRule(
        id="no-conflicting-tags",
        name="No Conflicting Tags",
        description="Export has at most one release tag",
        check=_check_conflicting_tags,
        default_severity=Severity.WARN,
        category="structural",
        violation=lambda e, raw, reg: (
            f"Export '{e.name}' has conflicting release tags: "
            f"{', '.join('@' + t for t in dict.fromkeys(_release_tags(e)))}"
        ),
    ),
    QualityRule(
        id="no-forgotten-export",
        name="No Forgotten Export",
        description="Types referenced by an export are themselves exported",
        check=_check_forgotten_export,
        default_severity=Severity.WARN,
        category="structural",
        violation=_forgotten_message,
    ),
)


# =============================================================================
# Style rules
# =============================================================================

_EMPTY_RETURNS = re.compile(EMPTY_RETURNS_PATTERN, re.MULTILINE)
_TYPE_ONLY_RETURNS = re.compile(TYPE_ONLY_RETURNS_PATTERN, re.MULTILINE)
_PARAM_STYLE = re.compile(PARAM_STYLE_PATTERN)


def _check_empty_returns(export, raw_doc_text, registry) -> bool:
    if not raw_doc_text:
        return True
    if _EMPTY_RETURNS.search(raw_doc_text):
        return False
    return not _TYPE_ONLY_RETURNS.search(raw_doc_text)


def _is_dashed(rest: str) -> bool:
    return rest.strip().startswith(PARAM_DASH_SEPARATORS)


def _check_param_style(export, raw_doc_text, registry) -> bool:
    if not raw_doc_text:
        return True
    for match in _PARAM_STYLE.finditer(raw_doc_text):
        rest = match.group(2).strip()
        if rest and not _is_dashed(rest):
            return False
    return True


def _fix_param_style(export, raw_doc_text, registry) -> Optional[str]:
    """Insert a dash between each @param name and its description."""
    if not raw_doc_text:
        return None

    def dash(match: re.Match) -> str:
        rest = match.group(2)
        if _is_dashed(rest):
            return match.group(0)
        head = match.group(0)[:match.start(2) - match.start(0)]
        return f"{head}- {rest}"

    fixed = _PARAM_STYLE.sub(dash, raw_doc_text)
    return fixed if fixed != raw_doc_text else None


STYLE_RULES: tuple[QualityRule, ...] = (
    QualityRule(
        id="no-empty-returns",
        name="No Empty Returns",
        description="@returns tag must have a description",
        check=_check_empty_returns,
        default_severity=Severity.WARN,
        applies_to=frozenset({"function"}),
        category="style",
        violation=lambda e, raw, reg: (
            f"Export '{e.name}' has @returns without a description"
        ),
    ),
    QualityRule(
        id="consistent-param-style",
        name="Consistent Param Style",
        description="@param tags use dash separator",
        check=_check_param_style,
        default_severity=Severity.OFF,
        applies_to=frozenset({"function"}),
        category="style",
        violation=lambda e, raw, reg: (
            f"Export '{e.name}' has @param without dash separator"
        ),
        fix=_fix_param_style,
    ),
)


def default_rule_set() -> RuleSet:
    """All built-in rules: coverage, then structural, then style."""
    return RuleSet([*COVERAGE_RULES, *STRUCTURAL_RULES, *STYLE_RULES])
