"""
Signature-level comparison for the spec differ.

Parameters are compared by position: callers pass arguments positionally,
so a renamed parameter is harmless while a removed one is not.
"""
from dataclasses import dataclass
from typing import Optional

from doccov.diff.compat import is_assignable
from doccov.models import Parameter, Returns, Signature, TypeParameter
from doccov.schema import PrimitiveSchema, Schema, render_schema

_VOID = PrimitiveSchema("void")


@dataclass(frozen=True)
class Change:
    """One classified structural change."""
    breaking: bool
    reason: str


def _return_schema(returns: Optional[Returns]) -> Schema:
    return returns.schema if returns is not None else _VOID


def compare_parameters(base: tuple[Parameter, ...], head: tuple[Parameter, ...]) -> list[Change]:
    changes = []
    for index, old in enumerate(base):
        if index >= len(head):
            changes.append(Change(True, f"parameter '{old.name}' removed"))
            continue
        new = head[index]
        if new.name != old.name:
            changes.append(Change(False, f"parameter '{old.name}' renamed to '{new.name}'"))
        if old.is_optional and not new.is_optional:
            changes.append(Change(True, f"parameter '{new.name}' became required"))
        elif not old.is_optional and new.is_optional:
            changes.append(Change(False, f"parameter '{new.name}' became optional"))

        if not is_assignable(old.schema, new.schema):
            changes.append(Change(
                True,
                f"parameter '{new.name}' type narrowed from "
                f"{render_schema(old.schema)} to {render_schema(new.schema)}",
            ))
        elif old.schema != new.schema:
            changes.append(Change(
                False,
                f"parameter '{new.name}' type widened from "
                f"{render_schema(old.schema)} to {render_schema(new.schema)}",
            ))

    for new in head[len(base):]:
        if new.is_optional:
            changes.append(Change(False, f"optional parameter '{new.name}' added"))
        else:
            changes.append(Change(True, f"required parameter '{new.name}' added"))
    return changes


def compare_returns(base: Optional[Returns], head: Optional[Returns]) -> list[Change]:
    if base is None and head is None:
        return []
    old, new = _return_schema(base), _return_schema(head)
    if old == new:
        return []
    if not is_assignable(new, old):
        return [Change(
            True, f"return type changed from {render_schema(old)} to {render_schema(new)}",
        )]
    return [Change(
        False, f"return type narrowed from {render_schema(old)} to {render_schema(new)}",
    )]


def compare_type_parameters(
    base: tuple[TypeParameter, ...],
    head: tuple[TypeParameter, ...],
) -> list[Change]:
    changes = []
    head_by_name = {t.name: t for t in head}
    base_names = {t.name for t in base}
    for old in base:
        new = head_by_name.get(old.name)
        if new is None:
            changes.append(Change(True, f"type parameter '{old.name}' removed"))
        elif (old.constraint or None) != (new.constraint or None):
            changes.append(Change(
                True,
                f"type parameter '{old.name}' constraint changed from "
                f"{old.constraint or 'none'} to {new.constraint or 'none'}",
            ))
    for new in head:
        if new.name in base_names:
            continue
        if new.default is not None:
            changes.append(Change(False, f"type parameter '{new.name}' added with default"))
        else:
            changes.append(Change(True, f"type parameter '{new.name}' added"))
    return changes


def compare_signature(base: Signature, head: Signature) -> list[Change]:
    return [
        *compare_parameters(base.parameters, head.parameters),
        *compare_returns(base.returns, head.returns),
        *compare_type_parameters(base.type_parameters, head.type_parameters),
    ]


def compare_signatures(
    base: tuple[Signature, ...],
    head: tuple[Signature, ...],
) -> list[Change]:
    """
    Compare overload lists pairwise by position.

    Base overloads with no counterpart are removals (breaking); extra head
    overloads are additions.
    """
    changes = []
    for old, new in zip(base, head):
        changes.extend(compare_signature(old, new))
    for _ in base[len(head):]:
        changes.append(Change(True, "overload removed"))
    for _ in head[len(base):]:
        changes.append(Change(False, "overload added"))
    return changes
