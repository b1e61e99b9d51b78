"""
Drift detection between documentation claims and declared signatures.

Each detector is an independent, deterministic comparison of one kind.
Detectors never depend on each other's output, and running them twice on
the same export yields identical issue lists in identical order.
"""
from __future__ import annotations

import logging
import re
from typing import Mapping, Optional, Sequence

from doccov.constants import (
    EXAMPLE_BUILTINS,
    MAX_LISTED_PARAMETERS,
    MIN_IDENTIFIER_LENGTH,
    VISIBILITY_TAGS,
)
from doccov.drift.issues import DriftIssue, ExampleRunResult
from doccov.drift.tags import (
    documented_params,
    iter_inline_links,
    parse_return_type,
    parse_template_tag,
)
from doccov.graph import ExportRegistry
from doccov.matcher import find_closest_match
from doccov.models import ExportSymbol, PackageSpec
from doccov.patterns import (
    CODE_CALL_SITE,
    CODE_COMMENT_OR_STRING,
    CODE_DECLARATION,
    CODE_DEFAULT_IMPORT,
    CODE_DESTRUCTURE_DECLARATION,
    CODE_IDENTIFIER,
    CODE_NAMED_IMPORT,
    CODE_NAMESPACE_IMPORT,
    EXAMPLE_FENCE_CLOSE,
    EXAMPLE_FENCE_OPEN,
)
from doccov.schema import (
    UNKNOWN,
    ObjectSchema,
    normalize_type_text,
    render_schema,
    types_equivalent,
)

logger = logging.getLogger(__name__)

ExampleResults = Mapping[int, ExampleRunResult]


def _issue(
    export: ExportSymbol,
    drift_type: str,
    target: str,
    description: str,
    suggestion: Optional[str] = None,
) -> DriftIssue:
    source = export.source
    return DriftIssue(
        type=drift_type,
        target=target,
        description=description,
        export_id=export.id,
        export_name=export.name,
        suggestion=suggestion,
        file_path=source.file if source else None,
        line=source.line if source else None,
    )


def _did_you_mean(name: str, candidates: Sequence[str], prefix: str = "") -> Optional[str]:
    match = find_closest_match(name, candidates)
    return f'Did you mean "{prefix}{match}"?' if match else None


def _actual_parameters(export: ExportSymbol) -> dict:
    """First declaration of each parameter name across all signatures."""
    params = {}
    for param in export.parameters:
        params.setdefault(param.name, param)
    return params


# =============================================================================
# Parameter drift
# =============================================================================

def detect_param_drift(export: ExportSymbol) -> list[DriftIssue]:
    """Documented @param names that do not exist in any signature."""
    actual = _actual_parameters(export)
    if not actual:
        return []

    issues = []
    for doc in documented_params(export.tags):
        name = doc.name
        if name in actual:
            continue

        parent, _, property_path = name.partition(".")
        if property_path and parent in actual:
            schema = actual[parent].schema
            if not isinstance(schema, ObjectSchema) or not schema.properties:
                # Properties unknown (external type); nothing to verify
                continue
            first = property_path.split(".")[0]
            candidates, label = list(schema.property_names), "Available properties"
            if first in candidates:
                continue
            missing, prefix = first, f"{parent}."
            description = (
                f'Documentation describes property "{property_path}" on parameter '
                f'"{parent}" which does not exist.'
            )
        else:
            candidates, label = list(actual), "Available parameters"
            missing, prefix = name, ""
            description = (
                f'Documentation describes parameter "{name}" which is not present '
                f'in the signature.'
            )

        suggestion = _did_you_mean(missing, candidates, prefix)
        if suggestion is None and len(candidates) <= MAX_LISTED_PARAMETERS:
            suggestion = f"{label}: {', '.join(prefix + c for c in candidates)}"
        issues.append(_issue(export, "param-mismatch", name, description, suggestion))
    return issues


def detect_optionality_drift(export: ExportSymbol) -> list[DriftIssue]:
    """Bracketed (optional) @param names that disagree with the signature."""
    actual = _actual_parameters(export)
    issues = []
    for doc in documented_params(export.tags):
        param = actual.get(doc.name)
        if param is None or param.required != doc.optional:
            continue
        if doc.optional:
            description = f'Documentation marks parameter "{doc.name}" optional but the signature requires it.'
            suggestion = f"Remove brackets around {doc.name} or mark the parameter optional in the signature."
        else:
            description = (
                f'Documentation omits optional brackets for parameter "{doc.name}" '
                f'but the signature marks it optional.'
            )
            suggestion = f"Document {doc.name} as [{doc.name}] or make it required in the signature."
        issues.append(_issue(export, "optionality-mismatch", doc.name, description, suggestion))
    return issues


def detect_param_type_drift(export: ExportSymbol) -> list[DriftIssue]:
    """Documented @param {type} that differs from the declared type."""
    actual = _actual_parameters(export)
    issues = []
    for doc in documented_params(export.tags):
        param = actual.get(doc.name)
        if param is None or not doc.type or param.schema == UNKNOWN:
            continue
        declared = render_schema(param.schema)
        if types_equivalent(doc.type, declared):
            continue
        issues.append(_issue(
            export, "param-type-mismatch", doc.name,
            f'Documentation gives {doc.type} for parameter "{doc.name}" but the '
            f'signature declares {declared}.',
            f"Update @param {{{declared}}} {doc.name} to match the signature.",
        ))
    return issues


# =============================================================================
# Type drift
# =============================================================================

def detect_return_type_drift(export: ExportSymbol) -> list[DriftIssue]:
    """@returns {type} that differs from the declared return type."""
    tag = next((t for t in export.tags if t.name in ("returns", "return") and t.text), None)
    documented = parse_return_type(tag.text) if tag else None
    if not documented:
        return []

    returns = next((s.returns for s in export.signatures if s.returns is not None), None)
    if returns is None or returns.schema == UNKNOWN:
        return []
    declared = render_schema(returns.schema)
    if types_equivalent(documented, declared):
        return []
    return [_issue(
        export, "return-type-mismatch", "returns",
        f"Documentation gives {documented} but the function returns {declared}.",
        f"Update @returns to {declared}.",
    )]


def detect_generic_constraint_drift(export: ExportSymbol) -> list[DriftIssue]:
    """@template constraints that differ from the type parameter constraints."""
    actual: dict[str, Optional[str]] = {}
    for type_param in [*export.type_parameters, *(t for s in export.signatures for t in s.type_parameters)]:
        actual.setdefault(type_param.name, type_param.constraint)

    issues = []
    for tag in export.tags:
        if tag.name != "template" or not tag.text.strip():
            continue
        doc = parse_template_tag(tag.text)
        if doc is None or doc.name not in actual:
            continue
        constraint = actual[doc.name]
        if normalize_type_text(constraint) == normalize_type_text(doc.constraint):
            continue

        description = (
            f'Documentation constrains template "{doc.name}" to {doc.constraint or "nothing"} '
            f'but the declaration constrains it to {constraint or "nothing"}.'
        )
        if constraint:
            suggestion = f"Update @template to {{{constraint}}} {doc.name} to reflect the declaration."
        else:
            suggestion = f"Remove the constraint from @template {doc.name} to match the declaration."
        issues.append(_issue(export, "generic-constraint-mismatch", doc.name, description, suggestion))
    return issues


# =============================================================================
# Semantic drift
# =============================================================================

def detect_deprecated_drift(export: ExportSymbol) -> list[DriftIssue]:
    """@deprecated tag that disagrees with the declaration's deprecation."""
    if export.deprecated == export.has_tag("deprecated"):
        return []
    if export.deprecated:
        description = (
            f'Declaration for "{export.name}" is marked deprecated but @deprecated '
            f'is missing from the docs.'
        )
        suggestion = "Add an @deprecated tag explaining the replacement or removal timeline."
    else:
        description = f'Documentation marks "{export.name}" as deprecated but the declaration is not.'
        suggestion = "Remove the @deprecated tag or deprecate the declaration."
    return [_issue(export, "deprecated-mismatch", export.name, description, suggestion)]


def detect_visibility_drift(export: ExportSymbol) -> list[DriftIssue]:
    """
    Visibility tags that disagree with actual visibility.

    Exports themselves are public. @internal is satisfied by anything that
    is not public.
    """
    checks = [(export.name, export.tags, "public")]
    checks.extend((f"{export.name}#{m.name}", m.tags, m.visibility.value) for m in export.members)

    issues = []
    for target, tags, actual in checks:
        tag = next((t for t in tags if t.name.lower() in VISIBILITY_TAGS), None)
        if tag is None:
            continue
        documented = VISIBILITY_TAGS[tag.name.lower()]
        if documented == "internal":
            matches = actual != "public"
        else:
            matches = actual == documented
        if matches:
            continue
        wanted = "protected/private" if documented == "internal" else documented
        issues.append(_issue(
            export, "visibility-mismatch", target,
            f'Documentation marks "{target}" as @{tag.name} but the declaration is {actual}.',
            f"Remove @{tag.name} or mark the declaration {wanted}.",
        ))
    return issues


def detect_broken_links(
    export: ExportSymbol,
    registry: Optional[ExportRegistry] = None,
) -> list[DriftIssue]:
    """{@link}, {@see} and {@inheritDoc} targets that name nothing exported."""
    if registry is None:
        return []

    issues = []
    for kind, target in iter_inline_links(export):
        if target.startswith(("http://", "https://")) or "/" in target or "@" in target:
            continue
        root = re.split(r"[.#]", target, maxsplit=1)[0]
        if root in registry or target in registry:
            continue
        issues.append(_issue(
            export, "broken-link", target,
            f"{{@{kind} {target}}} references a symbol that does not exist.",
            _did_you_mean(root, registry.known_names),
        ))
    return issues


# =============================================================================
# Example drift
# =============================================================================

def _example_identifiers(code: str) -> dict[str, str]:
    """
    Identifiers an example refers to, mapped to how they are used.

    Collects imported names ('value') and call or construct sites ('call'),
    minus names the example declares itself and language built-ins.
    """
    code = CODE_COMMENT_OR_STRING.sub('""', code)

    local: set[str] = set()
    referenced: dict[str, str] = {}

    def reference(name: str, context: str) -> None:
        if len(name) < MIN_IDENTIFIER_LENGTH or name in EXAMPLE_BUILTINS:
            return
        if context == "call" or name not in referenced:
            referenced[name] = context

    for match in CODE_NAMED_IMPORT.finditer(code):
        for specifier in match.group(1).split(","):
            words = specifier.split()
            if words and words[0] == "type":
                words = words[1:]
            if not words:
                continue
            reference(words[0], "value")
            if len(words) == 3 and words[1] == "as":
                local.add(words[2])
    for match in CODE_DEFAULT_IMPORT.finditer(code):
        reference(match.group(1), "value")
    local.update(CODE_NAMESPACE_IMPORT.findall(code))

    local.update(CODE_DECLARATION.findall(code))
    for bindings in CODE_DESTRUCTURE_DECLARATION.findall(code):
        local.update(CODE_IDENTIFIER.findall(bindings))

    for match in CODE_CALL_SITE.finditer(code):
        reference(match.group(2), "call")

    return {name: ctx for name, ctx in referenced.items() if name not in local}


def detect_example_drift(
    export: ExportSymbol,
    registry: Optional[ExportRegistry] = None,
) -> list[DriftIssue]:
    """
    Examples that use symbols the package no longer exports.

    An unknown identifier is reported when a close export name exists
    (a likely rename or typo) or when it is PascalCase.
    """
    if registry is None or not export.examples:
        return []

    issues = []
    seen: set[str] = set()
    for example in export.examples:
        code = EXAMPLE_FENCE_CLOSE.sub("", EXAMPLE_FENCE_OPEN.sub("", example.strip())).strip()
        for identifier, context in _example_identifiers(code).items():
            if identifier in registry or identifier in seen:
                continue
            match = registry.find_close_match(identifier, context)
            if not match and not identifier[0].isupper():
                continue
            seen.add(identifier)
            issues.append(_issue(
                export, "example-drift", identifier,
                f'@example references "{identifier}" which does not exist in this package.',
                f'Did you mean "{match}"?' if match else None,
            ))
    return issues


def detect_example_runtime_errors(
    export: ExportSymbol,
    results: Optional[ExampleResults] = None,
) -> list[DriftIssue]:
    """Turn failed example runs, keyed by example index, into issues."""
    if not results or not export.examples:
        return []

    issues = []
    for index in range(len(export.examples)):
        result = results.get(index)
        if result is None or result.success:
            continue
        if "timed out" in result.stderr:
            description = f"@example timed out after {result.duration_ms}ms."
            suggestion = "Check for infinite loops or long-running operations."
        else:
            lines = [line for line in result.stderr.splitlines() if line.strip()]
            error = next(
                (line for line in lines if re.match(r"^(?:Error|TypeError|ReferenceError|SyntaxError):\s*\S", line)),
                lines[0][:100] if lines else "Unknown error",
            )
            description = f"@example throws at runtime: {error}"
            suggestion = "Fix the example code or update it to match the current API."
        issues.append(_issue(
            export, "example-runtime-error", f"example[{index}]", description, suggestion,
        ))
    return issues


# =============================================================================
# Entry points
# =============================================================================

def detect_export_drift(
    export: ExportSymbol,
    registry: Optional[ExportRegistry] = None,
    example_results: Optional[ExampleResults] = None,
) -> list[DriftIssue]:
    """
    Run every detector on one export.

    Args:
        export: The export to check
        registry: Export registry, needed for example and link checks
        example_results: Run results keyed by example index, if examples were run

    Returns:
        Issues in detector order, then in the order each detector found them
    """
    return [
        *detect_param_drift(export),
        *detect_optionality_drift(export),
        *detect_param_type_drift(export),
        *detect_return_type_drift(export),
        *detect_generic_constraint_drift(export),
        *detect_deprecated_drift(export),
        *detect_visibility_drift(export),
        *detect_example_drift(export, registry),
        *detect_broken_links(export, registry),
        *detect_example_runtime_errors(export, example_results),
    ]


def detect_spec_drift(
    spec: PackageSpec,
    example_results: Optional[Mapping[str, ExampleResults]] = None,
) -> dict[str, list[DriftIssue]]:
    """Drift issues for every export of a spec, keyed by export id."""
    registry = ExportRegistry.from_spec(spec)
    example_results = example_results or {}
    drift = {}
    for export in spec.exports:
        drift[export.id] = detect_export_drift(export, registry, example_results.get(export.id))
    total = sum(len(issues) for issues in drift.values())
    logger.debug("Detected %d drift issues across %d exports", total, len(drift))
    return drift
