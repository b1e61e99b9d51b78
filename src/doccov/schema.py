"""
Recursive type schemas attached to signatures, members and type aliases.

A schema is one of seven immutable node types (primitive, reference, array,
tuple, object, union, intersection). Parsing accepts both the tagged wire
form (``{"kind": "union", "members": [...]}``) and the JSON-Schema-like
shapes produced by extractors (``{"anyOf": [...]}``, ``{"$ref": ...}``).
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Iterator, Union

from doccov.constants import TYPE_REF_PREFIX, VOID_EQUIVALENTS
from doccov.errors import MalformedSpec


@dataclass(frozen=True)
class PrimitiveSchema:
    """A named primitive or literal type (string, number, void, ...)."""
    name: str
    kind: ClassVar[str] = "primitive"


@dataclass(frozen=True)
class ReferenceSchema:
    """A reference into the owning spec's type table."""
    type_id: str
    kind: ClassVar[str] = "reference"


@dataclass(frozen=True)
class ArraySchema:
    items: Schema
    kind: ClassVar[str] = "array"


@dataclass(frozen=True)
class TupleSchema:
    items: tuple[Schema, ...]
    kind: ClassVar[str] = "tuple"


@dataclass(frozen=True)
class ObjectSchema:
    """An object type. Property order is preserved from the source."""
    properties: tuple[tuple[str, Schema], ...] = ()
    kind: ClassVar[str] = "object"

    @property
    def property_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.properties)

    def get(self, name: str) -> Schema | None:
        for prop_name, schema in self.properties:
            if prop_name == name:
                return schema
        return None


@dataclass(frozen=True)
class UnionSchema:
    members: tuple[Schema, ...]
    kind: ClassVar[str] = "union"


@dataclass(frozen=True)
class IntersectionSchema:
    members: tuple[Schema, ...]
    kind: ClassVar[str] = "intersection"


Schema = Union[
    PrimitiveSchema,
    ReferenceSchema,
    ArraySchema,
    TupleSchema,
    ObjectSchema,
    UnionSchema,
    IntersectionSchema,
]

UNKNOWN = PrimitiveSchema("unknown")


# --- Parsing ---

def _strip_ref(ref: str) -> str:
    """'#/types/User' -> 'User'."""
    if ref.startswith(TYPE_REF_PREFIX):
        return ref[len(TYPE_REF_PREFIX):]
    return ref.rsplit("/", 1)[-1]


def _parse_list(values: Any, path: str) -> tuple[Schema, ...]:
    if not isinstance(values, list):
        raise MalformedSpec(path, "expected a list of schemas")
    return tuple(schema_from_dict(v, f"{path}[{i}]") for i, v in enumerate(values))


def _parse_properties(props: Any, path: str) -> tuple[tuple[str, Schema], ...]:
    if isinstance(props, dict):
        return tuple(
            (name, schema_from_dict(value, f"{path}.{name}"))
            for name, value in props.items()
        )
    if isinstance(props, list):
        parsed = []
        for i, entry in enumerate(props):
            if not (isinstance(entry, (list, tuple)) and len(entry) == 2 and isinstance(entry[0], str)):
                raise MalformedSpec(f"{path}[{i}]", "expected a [name, schema] pair")
            parsed.append((entry[0], schema_from_dict(entry[1], f"{path}[{i}]")))
        return tuple(parsed)
    raise MalformedSpec(path, "expected an object of property schemas")


def _parse_tagged(data: dict, kind: str, path: str) -> Schema:
    if kind == "primitive":
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise MalformedSpec(f"{path}.name", "primitive schema needs a name")
        return PrimitiveSchema(name)
    if kind == "reference":
        type_id = data.get("typeId", data.get("type_id"))
        if not isinstance(type_id, str) or not type_id:
            raise MalformedSpec(f"{path}.typeId", "reference schema needs a typeId")
        return ReferenceSchema(type_id)
    if kind == "array":
        return ArraySchema(schema_from_dict(data.get("items", "unknown"), f"{path}.items"))
    if kind == "tuple":
        return TupleSchema(_parse_list(data.get("items", []), f"{path}.items"))
    if kind == "object":
        return ObjectSchema(_parse_properties(data.get("properties", {}), f"{path}.properties"))
    if kind == "union":
        return UnionSchema(_parse_list(data.get("members"), f"{path}.members"))
    if kind == "intersection":
        return IntersectionSchema(_parse_list(data.get("members"), f"{path}.members"))
    raise MalformedSpec(f"{path}.kind", f"unknown schema kind {kind!r}")


def schema_from_dict(data: Any, path: str = "schema") -> Schema:
    """
    Parse a schema from its JSON form.

    Args:
        data: Tagged schema dict, JSON-Schema-like dict, or bare type name
        path: JSON path used in error messages

    Returns:
        The parsed schema

    Raises:
        MalformedSpec: If the value is not a recognizable schema
    """
    if isinstance(data, str):
        if not data:
            raise MalformedSpec(path, "empty type name")
        return PrimitiveSchema(data)
    if not isinstance(data, dict):
        raise MalformedSpec(path, f"expected a schema, got {type(data).__name__}")

    kind = data.get("kind")
    if isinstance(kind, str):
        return _parse_tagged(data, kind, path)

    if isinstance(data.get("$ref"), str):
        return ReferenceSchema(_strip_ref(data["$ref"]))
    for key in ("anyOf", "oneOf"):
        if key in data:
            return UnionSchema(_parse_list(data[key], f"{path}.{key}"))
    if "allOf" in data:
        return IntersectionSchema(_parse_list(data["allOf"], f"{path}.allOf"))

    json_type = data.get("type")
    if json_type == "array":
        items = data.get("items")
        if isinstance(items, list):
            return TupleSchema(_parse_list(items, f"{path}.items"))
        return ArraySchema(schema_from_dict(items if items is not None else "unknown", f"{path}.items"))
    if json_type == "object" or "properties" in data:
        return ObjectSchema(_parse_properties(data.get("properties", {}), f"{path}.properties"))
    if isinstance(json_type, str) and json_type:
        return PrimitiveSchema(json_type)
    if isinstance(json_type, list) and json_type:
        return UnionSchema(tuple(schema_from_dict(t, f"{path}.type") for t in json_type))
    if "const" in data:
        # Literal types render the way they are written in source
        return PrimitiveSchema(json.dumps(data["const"]))
    if not data:
        return UNKNOWN

    raise MalformedSpec(path, "unrecognized schema shape")


def schema_to_dict(schema: Schema) -> dict:
    """Serialize a schema to its tagged wire form."""
    if isinstance(schema, PrimitiveSchema):
        return {"kind": "primitive", "name": schema.name}
    if isinstance(schema, ReferenceSchema):
        return {"kind": "reference", "typeId": schema.type_id}
    if isinstance(schema, ArraySchema):
        return {"kind": "array", "items": schema_to_dict(schema.items)}
    if isinstance(schema, TupleSchema):
        return {"kind": "tuple", "items": [schema_to_dict(s) for s in schema.items]}
    if isinstance(schema, ObjectSchema):
        return {
            "kind": "object",
            "properties": {name: schema_to_dict(s) for name, s in schema.properties},
        }
    if isinstance(schema, UnionSchema):
        return {"kind": "union", "members": [schema_to_dict(s) for s in schema.members]}
    return {"kind": "intersection", "members": [schema_to_dict(s) for s in schema.members]}


# --- Traversal and display ---

def iter_references(schema: Schema | None) -> Iterator[str]:
    """Yield every referenced type id in depth-first order."""
    if schema is None:
        return
    if isinstance(schema, ReferenceSchema):
        yield schema.type_id
    elif isinstance(schema, ArraySchema):
        yield from iter_references(schema.items)
    elif isinstance(schema, TupleSchema):
        for item in schema.items:
            yield from iter_references(item)
    elif isinstance(schema, ObjectSchema):
        for _, prop in schema.properties:
            yield from iter_references(prop)
    elif isinstance(schema, (UnionSchema, IntersectionSchema)):
        for member in schema.members:
            yield from iter_references(member)


def render_schema(schema: Schema | None) -> str:
    """
    Render a schema as a TypeScript-like type string.

    Examples:
        union(string, number) -> "string | number"
        array(union(a, b))    -> "(a | b)[]"
    """
    if schema is None:
        return "unknown"
    if isinstance(schema, PrimitiveSchema):
        return schema.name
    if isinstance(schema, ReferenceSchema):
        return schema.type_id
    if isinstance(schema, ArraySchema):
        inner = render_schema(schema.items)
        if isinstance(schema.items, (UnionSchema, IntersectionSchema)):
            inner = f"({inner})"
        return f"{inner}[]"
    if isinstance(schema, TupleSchema):
        return "[" + ", ".join(render_schema(s) for s in schema.items) + "]"
    if isinstance(schema, ObjectSchema):
        if not schema.properties:
            return "{}"
        body = "; ".join(f"{name}: {render_schema(s)}" for name, s in schema.properties)
        return "{ " + body + " }"
    if isinstance(schema, UnionSchema):
        return " | ".join(render_schema(s) for s in schema.members)
    return " & ".join(render_schema(s) for s in schema.members)


# --- Type text comparison (doc comments vs rendered schemas) ---

_ARRAY_GENERIC = re.compile(r'^Array<(.+)>$')


def _split_top_level(text: str, sep: str) -> list[str]:
    """Split on sep, ignoring separators nested inside brackets."""
    parts, depth, current = [], 0, []
    for char in text:
        if char in "<([{":
            depth += 1
        elif char in ">)]}":
            depth -= 1
        if char == sep and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def normalize_type_text(text: str | None) -> str | None:
    """
    Normalize a type string for comparison.

    Removes whitespace, rewrites ``Array<T>`` as ``T[]`` and sorts
    top-level union members so ordering differences compare equal.
    """
    if not text:
        return None
    compact = re.sub(r'\s+', '', text)
    if not compact:
        return None
    match = _ARRAY_GENERIC.match(compact)
    if match and len(_split_top_level(match.group(1), ",")) == 1:
        inner = match.group(1)
        compact = f"({inner})[]" if "|" in inner or "&" in inner else f"{inner}[]"
    members = _split_top_level(compact, "|")
    if len(members) > 1:
        compact = "|".join(sorted(members))
    return compact


def types_equivalent(documented: str | None, actual: str | None) -> bool:
    """Compare two type strings after normalization; void and undefined match."""
    left = normalize_type_text(documented)
    right = normalize_type_text(actual)
    if left == right:
        return True
    if left is None or right is None:
        return False
    return left.lower() in VOID_EQUIVALENTS and right.lower() in VOID_EQUIVALENTS
