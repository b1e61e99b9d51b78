"""
Data models for package specifications.

All models are immutable (frozen) dataclasses. A PackageSpec is never
mutated after construction; derived views are computed on demand.

``from_dict`` validates its input and raises MalformedSpec with the JSON
path of the first problem. Unresolved type references are not fatal: they
are attached to the affected export as UnresolvedReference warnings.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import Any, Optional

from doccov.constants import EXPORT_KINDS, MEMBER_KINDS, VISIBILITY_RANK
from doccov.errors import MalformedSpec
from doccov.schema import (
    Schema,
    UNKNOWN,
    iter_references,
    render_schema,
    schema_from_dict,
    schema_to_dict,
)

logger = logging.getLogger(__name__)


class ExportKind(Enum):
    """Kinds of exported symbols."""
    FUNCTION = "function"
    CLASS = "class"
    INTERFACE = "interface"
    TYPE = "type"
    ENUM = "enum"
    VARIABLE = "variable"


class MemberKind(Enum):
    """Kinds of class/interface/enum members."""
    METHOD = "method"
    PROPERTY = "property"
    ENUM_MEMBER = "enum-member"
    CONSTRUCTOR = "constructor"


class Visibility(Enum):
    """Declared member visibility."""
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"

    @property
    def rank(self) -> int:
        """Higher rank means more visible."""
        return VISIBILITY_RANK[self.value]


# --- Validation helpers ---

def _expect_dict(data: Any, path: str) -> dict:
    if not isinstance(data, dict):
        raise MalformedSpec(path, f"expected an object, got {type(data).__name__}")
    return data


def _expect_list(data: dict, key: str, path: str) -> list:
    value = data.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedSpec(f"{path}.{key}", f"expected a list, got {type(value).__name__}")
    return value


def _expect_str(data: dict, key: str, path: str, required: bool = True) -> Optional[str]:
    value = data.get(key)
    if value is None:
        if required:
            raise MalformedSpec(f"{path}.{key}", "missing required field")
        return None
    if not isinstance(value, str) or (required and not value):
        raise MalformedSpec(f"{path}.{key}", f"expected a non-empty string, got {value!r}")
    return value


def _optional_schema(data: dict, key: str, path: str) -> Optional[Schema]:
    if data.get(key) is None:
        return None
    return schema_from_dict(data[key], f"{path}.{key}")


def _tuple_of(model, data: dict, key: str, path: str) -> tuple:
    """Validate each item of a list field with model.from_dict."""
    return tuple(
        model.from_dict(item, f"{path}.{key}[{i}]")
        for i, item in enumerate(_expect_list(data, key, path))
    )


# --- Leaf models ---

@dataclass(frozen=True)
class Tag:
    """A documentation tag such as ``@param name - text``."""
    name: str
    text: str = ""

    def __str__(self) -> str:
        return f"@{self.name} {self.text}".rstrip()

    def to_dict(self) -> dict:
        return {"name": self.name, "text": self.text}

    @classmethod
    def from_dict(cls, data: Any, path: str = "tag") -> "Tag":
        data = _expect_dict(data, path)
        name = _expect_str(data, "name", path)
        text = data.get("text") or ""
        if not isinstance(text, str):
            raise MalformedSpec(f"{path}.text", "expected a string")
        return cls(name=name.lstrip("@"), text=text)


@dataclass(frozen=True)
class SourceLocation:
    """Where an export is declared."""
    file: Optional[str] = None
    line: Optional[int] = None

    def __str__(self) -> str:
        if self.file and self.line:
            return f"{self.file}:{self.line}"
        return self.file or ""

    def to_dict(self) -> dict:
        return {"file": self.file, "line": self.line}

    @classmethod
    def from_dict(cls, data: Any, path: str = "source") -> "SourceLocation":
        data = _expect_dict(data, path)
        line = data.get("line")
        if line is not None and not isinstance(line, int):
            raise MalformedSpec(f"{path}.line", "expected an integer")
        return cls(file=data.get("file"), line=line)


@dataclass(frozen=True)
class TypeParameter:
    """A generic type parameter with optional constraint."""
    name: str
    constraint: Optional[str] = None
    default: Optional[str] = None

    def to_dict(self) -> dict:
        return {"name": self.name, "constraint": self.constraint, "default": self.default}

    @classmethod
    def from_dict(cls, data: Any, path: str = "typeParameter") -> "TypeParameter":
        data = _expect_dict(data, path)
        return cls(
            name=_expect_str(data, "name", path),
            constraint=_expect_str(data, "constraint", path, required=False),
            default=_expect_str(data, "default", path, required=False),
        )


@dataclass(frozen=True)
class Parameter:
    """A single signature parameter."""
    name: str
    schema: Schema = UNKNOWN
    required: bool = True
    rest: bool = False
    description: Optional[str] = None

    @property
    def is_optional(self) -> bool:
        """Optional or rest parameters can be omitted by callers."""
        return not self.required or self.rest

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "schema": schema_to_dict(self.schema),
            "required": self.required,
            "rest": self.rest,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Any, path: str = "parameter") -> "Parameter":
        data = _expect_dict(data, path)
        return cls(
            name=_expect_str(data, "name", path),
            schema=_optional_schema(data, "schema", path) or UNKNOWN,
            required=data.get("required", True) is not False,
            rest=bool(data.get("rest", False)),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class Returns:
    """Declared return type of a signature."""
    schema: Schema = UNKNOWN
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {"schema": schema_to_dict(self.schema), "description": self.description}

    @classmethod
    def from_dict(cls, data: Any, path: str = "returns") -> "Returns":
        data = _expect_dict(data, path)
        return cls(
            schema=_optional_schema(data, "schema", path) or UNKNOWN,
            description=data.get("description"),
        )


@dataclass(frozen=True)
class Signature:
    """One call signature (overload) of a function or method."""
    parameters: tuple[Parameter, ...] = ()
    returns: Optional[Returns] = None
    type_parameters: tuple[TypeParameter, ...] = ()

    def render(self, name: str = "") -> str:
        """Human-readable form, e.g. ``applyTax(base: number, rate?: number)``."""
        params = []
        for p in self.parameters:
            prefix = "..." if p.rest else ""
            optional = "?" if not p.required and not p.rest else ""
            params.append(f"{prefix}{p.name}{optional}: {render_schema(p.schema)}")
        text = f"{name}({', '.join(params)})"
        if self.returns is not None:
            text += f": {render_schema(self.returns.schema)}"
        return text

    def to_dict(self) -> dict:
        return {
            "parameters": [p.to_dict() for p in self.parameters],
            "returns": self.returns.to_dict() if self.returns else None,
            "typeParameters": [t.to_dict() for t in self.type_parameters],
        }

    @classmethod
    def from_dict(cls, data: Any, path: str = "signature") -> "Signature":
        data = _expect_dict(data, path)
        returns = data.get("returns")
        return cls(
            parameters=_tuple_of(Parameter, data, "parameters", path),
            returns=Returns.from_dict(returns, f"{path}.returns") if returns is not None else None,
            type_parameters=_tuple_of(TypeParameter, data, "typeParameters", path),
        )


@dataclass(frozen=True)
class Member:
    """A class, interface or enum member."""
    name: str
    kind: MemberKind
    schema: Optional[Schema] = None
    signatures: tuple[Signature, ...] = ()
    visibility: Visibility = Visibility.PUBLIC
    description: Optional[str] = None
    tags: tuple[Tag, ...] = ()

    def render(self) -> str:
        """Short display form used in member-change reports."""
        if self.signatures:
            return self.signatures[0].render(self.name)
        if self.schema is not None:
            return f"{self.name}: {render_schema(self.schema)}"
        return self.name

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "schema": schema_to_dict(self.schema) if self.schema is not None else None,
            "signatures": [s.to_dict() for s in self.signatures],
            "visibility": self.visibility.value,
            "description": self.description,
            "tags": [t.to_dict() for t in self.tags],
        }

    @classmethod
    def from_dict(cls, data: Any, path: str = "member") -> "Member":
        data = _expect_dict(data, path)
        kind = data.get("kind", "property")
        if kind not in MEMBER_KINDS:
            raise MalformedSpec(f"{path}.kind", f"unknown member kind {kind!r}")
        visibility = data.get("visibility") or "public"
        if visibility not in VISIBILITY_RANK:
            raise MalformedSpec(f"{path}.visibility", f"unknown visibility {visibility!r}")
        return cls(
            name=_expect_str(data, "name", path),
            kind=MemberKind(kind),
            schema=_optional_schema(data, "schema", path),
            signatures=_tuple_of(Signature, data, "signatures", path),
            visibility=Visibility(visibility),
            description=data.get("description"),
            tags=_tuple_of(Tag, data, "tags", path),
        )


@dataclass(frozen=True)
class UnresolvedReference:
    """Warning: a reference schema names a type missing from the type table."""
    export_id: str
    type_id: str

    def __str__(self) -> str:
        return f"{self.export_id} references unknown type '{self.type_id}'"

    def to_dict(self) -> dict:
        return {"exportId": self.export_id, "typeId": self.type_id}


# --- Exports and specs ---

@dataclass(frozen=True)
class ExportSymbol:
    """An exported function, class, interface, type alias, enum or variable."""
    id: str
    name: str
    kind: ExportKind
    description: Optional[str] = None
    tags: tuple[Tag, ...] = ()
    signatures: tuple[Signature, ...] = ()
    members: tuple[Member, ...] = ()
    examples: tuple[str, ...] = ()
    extends: Optional[str] = None
    implements: tuple[str, ...] = ()
    source: Optional[SourceLocation] = None
    deprecated: bool = False
    type_parameters: tuple[TypeParameter, ...] = ()
    schema: Optional[Schema] = None
    raw_comments: Optional[str] = None
    warnings: tuple[UnresolvedReference, ...] = field(default=(), compare=False)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.name}"

    def has_tag(self, name: str) -> bool:
        """True if any tag has the given name (case-insensitive)."""
        lowered = name.lower()
        return any(t.name.lower() == lowered for t in self.tags)

    @property
    def parameters(self) -> list[Parameter]:
        """Parameters across all signatures, in declaration order."""
        return [p for sig in self.signatures for p in sig.parameters]

    def referenced_type_ids(self) -> list[str]:
        """Distinct type ids referenced by this export, first-seen order."""
        schemas = []
        for owner in [self, *self.members]:
            schemas.append(owner.schema)
            for sig in owner.signatures:
                schemas.extend(p.schema for p in sig.parameters)
                schemas.append(sig.returns.schema if sig.returns else None)

        seen: dict[str, None] = {}
        for schema in (s for s in schemas if s is not None):
            for type_id in iter_references(schema):
                seen.setdefault(type_id, None)
        return list(seen)

    def to_dict(self) -> dict:
        """JSON-serializable representation."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "description": self.description,
            "tags": [t.to_dict() for t in self.tags],
            "signatures": [s.to_dict() for s in self.signatures],
            "members": [m.to_dict() for m in self.members],
            "examples": list(self.examples),
            "extends": self.extends,
            "implements": list(self.implements),
            "source": self.source.to_dict() if self.source else None,
            "deprecated": self.deprecated,
            "typeParameters": [t.to_dict() for t in self.type_parameters],
            "schema": schema_to_dict(self.schema) if self.schema is not None else None,
            "rawComments": self.raw_comments,
        }

    @classmethod
    def from_dict(cls, data: Any, path: str = "export") -> "ExportSymbol":
        """Reconstruct from dictionary, validating as it goes."""
        data = _expect_dict(data, path)
        name = _expect_str(data, "name", path)
        export_id = _expect_str(data, "id", path, required=False) or name
        kind = data.get("kind")
        if kind not in EXPORT_KINDS:
            raise MalformedSpec(f"{path}.kind", f"unknown kind {kind!r}")

        examples = []
        for i, example in enumerate(_expect_list(data, "examples", path)):
            if isinstance(example, dict):
                example = example.get("code")
            if not isinstance(example, str):
                raise MalformedSpec(f"{path}.examples[{i}]", "expected example code")
            examples.append(example)

        implements = _expect_list(data, "implements", path)
        if not all(isinstance(i, str) for i in implements):
            raise MalformedSpec(f"{path}.implements", "expected a list of names")

        source = data.get("source")
        return cls(
            id=export_id,
            name=name,
            kind=ExportKind(kind),
            description=data.get("description"),
            tags=_tuple_of(Tag, data, "tags", path),
            signatures=_tuple_of(Signature, data, "signatures", path),
            members=_tuple_of(Member, data, "members", path),
            examples=tuple(examples),
            extends=_expect_str(data, "extends", path, required=False),
            implements=tuple(implements),
            source=SourceLocation.from_dict(source, f"{path}.source") if source else None,
            deprecated=bool(data.get("deprecated", False)),
            type_parameters=_tuple_of(TypeParameter, data, "typeParameters", path),
            schema=_optional_schema(data, "schema", path),
            raw_comments=data.get("rawComments"),
        )


@dataclass(frozen=True)
class TypeDefinition:
    """An entry in the spec's named type table."""
    id: str
    name: str
    schema: Optional[Schema] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "schema": schema_to_dict(self.schema) if self.schema is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Any, path: str = "type") -> "TypeDefinition":
        data = _expect_dict(data, path)
        name = _expect_str(data, "name", path)
        return cls(
            id=_expect_str(data, "id", path, required=False) or name,
            name=name,
            schema=_optional_schema(data, "schema", path),
        )


@dataclass(frozen=True)
class PackageMeta:
    name: str
    version: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {"name": self.name, "version": self.version, "description": self.description}


@dataclass(frozen=True)
class PackageSpec:
    """
    The exported surface of one package version.

    Immutable once produced. Exports are matched across versions by ``id``;
    ``name`` is the declaration-site name and may change on re-export.
    """
    meta: PackageMeta
    exports: tuple[ExportSymbol, ...] = ()
    types: tuple[TypeDefinition, ...] = ()
    generated_at: Optional[str] = None

    def __str__(self) -> str:
        version = f"@{self.meta.version}" if self.meta.version else ""
        return f"PackageSpec({self.meta.name}{version}, {len(self.exports)} exports)"

    @cached_property
    def exports_by_id(self) -> dict[str, ExportSymbol]:
        return {e.id: e for e in self.exports}

    def get_export(self, export_id: str) -> Optional[ExportSymbol]:
        return self.exports_by_id.get(export_id)

    def to_dict(self) -> dict:
        """JSON-serializable representation."""
        return {
            "meta": self.meta.to_dict(),
            "exports": [e.to_dict() for e in self.exports],
            "types": [t.to_dict() for t in self.types],
            "generatedAt": self.generated_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PackageSpec":
        """
        Validate and build a spec from its JSON form.

        Raises:
            MalformedSpec: On the first structural problem (no partial result)
        """
        data = _expect_dict(data, "spec")
        meta_data = _expect_dict(data.get("meta"), "meta")
        meta = PackageMeta(
            name=_expect_str(meta_data, "name", "meta"),
            version=_expect_str(meta_data, "version", "meta", required=False),
            description=meta_data.get("description"),
        )

        types = tuple(
            TypeDefinition.from_dict(t, f"types[{i}]")
            for i, t in enumerate(_expect_list(data, "types", "spec"))
        )
        type_keys = frozenset(k for t in types for k in (t.id, t.name))

        exports = []
        seen_ids: set[str] = set()
        for i, raw in enumerate(_expect_list(data, "exports", "spec")):
            export = ExportSymbol.from_dict(raw, f"exports[{i}]")
            if export.id in seen_ids:
                raise MalformedSpec(f"exports[{i}].id", f"duplicate export id {export.id!r}")
            seen_ids.add(export.id)

            warnings = tuple(
                UnresolvedReference(export.id, type_id)
                for type_id in export.referenced_type_ids()
                if type_id not in type_keys
            )
            for warning in warnings:
                logger.warning("Unresolved type reference: %s", warning)
            if warnings:
                export = replace(export, warnings=warnings)
            exports.append(export)

        generated_at = data.get("generatedAt")
        return cls(
            meta=meta,
            exports=tuple(exports),
            types=types,
            generated_at=generated_at if isinstance(generated_at, str) else None,
        )
