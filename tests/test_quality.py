"""
Tests for the quality rule engine.
"""
import pytest

from doccov.errors import ConfigError
from doccov.quality import (
    QualityEngine,
    QualityRule,
    RuleSet,
    Severity,
    default_rule_set,
    evaluate_export_quality,
    merge_config,
    parse_severity,
)

from builders import function, klass, make_export, make_spec, param, tag


class TestRuleSet:
    """Tests for RuleSet and the built-in rules."""

    def test_default_order(self):
        """Coverage rules come first, then structural, then style."""
        ids = default_rule_set().ids
        assert ids[:4] == ["has-description", "has-params", "has-returns", "has-examples"]
        assert ids.index("no-forgotten-export") < ids.index("no-empty-returns")

    def test_duplicate_ids_rejected(self):
        rule = default_rule_set().get("has-description")
        with pytest.raises(ValueError):
            RuleSet([rule, rule])

    def test_subset_keeps_order_and_rejects_unknown(self):
        rules = default_rule_set()
        assert rules.subset(["has-examples", "has-description"]).ids == ["has-description", "has-examples"]
        with pytest.raises(ConfigError):
            rules.subset(["no-such-rule"])

    def test_for_kind(self):
        """Function-only rules do not apply to classes."""
        ids = [r.id for r in default_rule_set().for_kind("class")]
        assert "has-params" not in ids
        assert "has-examples" in ids


class TestSeverity:
    """Tests for severity parsing and merging."""

    def test_parse(self):
        assert parse_severity("warn") is Severity.WARN
        assert parse_severity(Severity.OFF) is Severity.OFF

    def test_invalid(self):
        with pytest.raises(ConfigError):
            parse_severity("fatal")

    def test_merge_config_fills_defaults(self):
        merged = merge_config({"has-examples": "error"})
        assert merged["has-examples"] is Severity.ERROR
        assert merged["has-description"] is Severity.WARN
        assert merged["has-params"] is Severity.OFF


class TestEvaluateExport:
    """Tests for per-export evaluation."""

    def test_documented_function_scores_full(self):
        export = make_export(function("applyTax", param("base", "number"), description="Apply tax"))
        result = evaluate_export_quality(export)
        assert result.coverage_score == 100
        assert result.violations == ()

    def test_missing_description(self):
        """Only has-description is on by default, so a bare export scores 0."""
        export = make_export(function("applyTax"))
        result = evaluate_export_quality(export)
        assert result.coverage_score == 0
        assert result.missing == ("has-description",)
        assert result.violations[0].severity is Severity.WARN
        assert result.violations[0].message == "Export 'applyTax' is missing a description"

    def test_config_enables_coverage_rules(self):
        """Turning a coverage rule on adds it to the denominator."""
        export = make_export(function("applyTax", param("base"), description="Apply tax"))
        result = evaluate_export_quality(export, config={"has-params": "error"})
        assert result.applicable == ("has-description", "has-params")
        assert result.coverage_score == 50
        assert result.error_count == 1

    def test_off_rules_excluded(self):
        export = make_export(function("applyTax"))
        result = evaluate_export_quality(export, config={"has-description": "off"})
        assert result.coverage_score == 100
        assert result.applicable == ()

    def test_rule_order_preserved(self):
        export = make_export(function("f", param("a")))
        config = {"has-params": "warn", "has-returns": "warn", "has-examples": "warn"}
        result = evaluate_export_quality(export, config=config)
        assert result.missing == ("has-description", "has-params", "has-returns", "has-examples")

    def test_conflicting_release_tags(self):
        export = make_export(function("f", description="d", tags=[tag("public"), tag("beta")]))
        result = evaluate_export_quality(export)
        assert [v.rule_id for v in result.violations] == ["no-conflicting-tags"]
        assert "@public, @beta" in result.violations[0].message

    def test_internal_underscore(self):
        export = make_export(function("helper", description="d", tags=[tag("internal")]))
        result = evaluate_export_quality(export, config={"internal-underscore": "warn"})
        assert [v.rule_id for v in result.violations] == ["internal-underscore"]

    def test_empty_returns_style_rule(self):
        export = make_export(function("f", description="d"))
        raw = "Does things.\n@returns {string}\n"
        result = evaluate_export_quality(export, raw)
        assert [v.rule_id for v in result.violations] == ["no-empty-returns"]

    def test_check_that_raises_counts_as_pass(self):
        def boom(export, raw, registry):
            raise RuntimeError("broken rule")

        rule = QualityRule(id="boom", name="Boom", description="", check=boom, affects_coverage=True)
        engine = QualityEngine(RuleSet([rule]))
        result = engine.evaluate_export(make_export(function("f")))
        assert result.coverage_score == 100
        assert result.violations == ()

    def test_engine_defaults_below_call_config(self):
        """Per-call config overrides engine defaults, which override rule defaults."""
        engine = QualityEngine(defaults={"has-description": "error"})
        export = make_export(function("f"))
        assert engine.evaluate_export(export).violations[0].severity is Severity.ERROR
        overridden = engine.evaluate_export(export, config={"has-description": "warn"})
        assert overridden.violations[0].severity is Severity.WARN


class TestEvaluateSpec:
    """Tests for spec-level evaluation."""

    def test_aggregate_is_mean_of_scores(self):
        spec = make_spec(function("a", description="A"), function("b"), function("c", description="C"))
        result = QualityEngine().evaluate_spec(spec)
        assert list(result.by_export) == ["a", "b", "c"]
        # (100 + 0 + 100) / 3
        assert result.coverage_score == 67
        assert result.warning_count == 1

    def test_empty_spec_scores_full(self):
        assert QualityEngine().evaluate_spec(make_spec()).coverage_score == 100

    def test_forgotten_export(self):
        """Spec evaluation supplies the registry for forgotten-export checks."""
        spec = make_spec(
            function("load", description="Load", returns={"$ref": "#/types/Config"}),
            types=[{"id": "Config", "name": "Config"}],
        )
        result = QualityEngine().evaluate_spec(spec)
        violations = result.by_export["load"].violations
        assert [v.rule_id for v in violations] == ["no-forgotten-export"]
        assert violations[0].message.endswith("Config")

    def test_raw_docs_override_raw_comments(self):
        spec = make_spec(function("f", description="d", rawComments="@returns {string}"))
        engine = QualityEngine()
        assert engine.evaluate_spec(spec).by_export["f"].violations
        clean = engine.evaluate_spec(spec, raw_docs={"f": "@returns {string} the name"})
        assert clean.by_export["f"].violations == ()

    def test_to_dict_shape(self):
        spec = make_spec(function("a"))
        data = QualityEngine().evaluate_spec(spec).to_dict()
        assert data["overall"]["coverageScore"] == 0
        assert data["byExport"]["a"]["coverage"]["missing"] == ["has-description"]


class TestFix:
    """Tests for fixable rules."""

    def test_param_style_fix(self):
        export = make_export(function("f", param("a")))
        fixed = QualityEngine().fix(export, "@param a the value", "consistent-param-style")
        assert fixed == "@param a - the value"

    def test_fix_noop_when_passing(self):
        export = make_export(function("f", param("a")))
        assert QualityEngine().fix(export, "@param a - the value", "consistent-param-style") is None

    def test_unfixable_rule(self):
        export = make_export(klass("C"))
        assert QualityEngine().fix(export, "", "has-description") is None
