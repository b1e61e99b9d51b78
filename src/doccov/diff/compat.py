"""
Structural type compatibility between schemas.

``is_assignable(source, target)`` answers: can a value of type ``source``
be used where ``target`` is expected? The diff uses it in both directions,
parameters are checked contravariantly and returns covariantly.
"""
import json

from doccov.constants import ANY_TYPE, BOTTOM_TYPE, TOP_TYPES, VOID_EQUIVALENTS
from doccov.schema import (
    ArraySchema,
    IntersectionSchema,
    ObjectSchema,
    PrimitiveSchema,
    ReferenceSchema,
    Schema,
    TupleSchema,
    UnionSchema,
)


def _primitive_name(schema: Schema) -> str | None:
    return schema.name if isinstance(schema, PrimitiveSchema) else None


def literal_base(name: str | None) -> str | None:
    """Primitive name of a JSON literal type ('"on"' -> string), else None."""
    if not name:
        return None
    try:
        value = json.loads(name)
    except ValueError:
        return None
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    return None


def is_assignable(source: Schema, target: Schema) -> bool:
    """
    Structural assignability check.

    Rules, in order:
    - equal schemas are assignable
    - any/unknown targets accept everything; never and any go anywhere
    - a literal is assignable to its base primitive ('"on"' -> string)
    - void and undefined are interchangeable
    - a union source needs every member assignable; a union target needs one
    - an intersection target needs every member; an intersection source needs one
    - arrays compare items, tuples compare elementwise or against array items
    - objects use width subtyping
    - references are equal only by type id
    """
    if source == target:
        return True

    target_name = _primitive_name(target)
    source_name = _primitive_name(source)
    if target_name in TOP_TYPES:
        return True
    if source_name in (BOTTOM_TYPE, ANY_TYPE):
        return True
    if target_name is not None and literal_base(source_name) == target_name:
        return True
    if source_name in VOID_EQUIVALENTS and target_name in VOID_EQUIVALENTS:
        return True

    # Unions and intersections on the source side decompose first so that
    # (a | b) -> (a | b | c) checks member by member.
    if isinstance(source, UnionSchema):
        return all(is_assignable(member, target) for member in source.members)
    if isinstance(target, IntersectionSchema):
        return all(is_assignable(source, member) for member in target.members)
    if isinstance(target, UnionSchema):
        return any(is_assignable(source, member) for member in target.members)
    if isinstance(source, IntersectionSchema):
        return any(is_assignable(member, target) for member in source.members)

    if isinstance(target, ArraySchema):
        if isinstance(source, ArraySchema):
            return is_assignable(source.items, target.items)
        if isinstance(source, TupleSchema):
            return all(is_assignable(item, target.items) for item in source.items)
        return False

    if isinstance(target, TupleSchema):
        if not isinstance(source, TupleSchema) or len(source.items) != len(target.items):
            return False
        return all(is_assignable(s, t) for s, t in zip(source.items, target.items))

    if isinstance(target, ObjectSchema):
        if not isinstance(source, ObjectSchema):
            return False
        for name, target_prop in target.properties:
            source_prop = source.get(name)
            if source_prop is None or not is_assignable(source_prop, target_prop):
                return False
        return True

    if isinstance(target, ReferenceSchema):
        return isinstance(source, ReferenceSchema) and source.type_id == target.type_id

    return False


def is_equivalent(a: Schema, b: Schema) -> bool:
    """Mutually assignable schemas."""
    return is_assignable(a, b) and is_assignable(b, a)
