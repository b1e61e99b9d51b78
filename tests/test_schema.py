"""
Tests for schema parsing, rendering and type text comparison.
"""
import pytest

from doccov.errors import MalformedSpec
from doccov.schema import (
    UNKNOWN,
    ArraySchema,
    IntersectionSchema,
    ObjectSchema,
    PrimitiveSchema,
    ReferenceSchema,
    TupleSchema,
    UnionSchema,
    iter_references,
    normalize_type_text,
    render_schema,
    schema_from_dict,
    schema_to_dict,
    types_equivalent,
)


class TestSchemaParsing:
    """Tests for schema_from_dict."""

    def test_bare_type_name(self):
        """A bare string is a primitive type."""
        assert schema_from_dict("string") == PrimitiveSchema("string")

    def test_tagged_union(self):
        """Tagged union form parses its members in order."""
        schema = schema_from_dict({"kind": "union", "members": ["string", "number"]})
        assert schema == UnionSchema((PrimitiveSchema("string"), PrimitiveSchema("number")))

    def test_json_schema_ref_strips_prefix(self):
        """$ref values lose the #/types/ prefix."""
        assert schema_from_dict({"$ref": "#/types/User"}) == ReferenceSchema("User")

    def test_any_of_is_union_and_all_of_is_intersection(self):
        """JSON-Schema combinators map to union and intersection."""
        assert isinstance(schema_from_dict({"anyOf": ["a", "b"]}), UnionSchema)
        assert isinstance(schema_from_dict({"allOf": ["a", "b"]}), IntersectionSchema)

    def test_array_with_list_items_is_tuple(self):
        """An items list describes a tuple; a single items schema an array."""
        assert schema_from_dict({"type": "array", "items": ["string", "number"]}) == TupleSchema(
            (PrimitiveSchema("string"), PrimitiveSchema("number"))
        )
        assert schema_from_dict({"type": "array", "items": "string"}) == ArraySchema(
            PrimitiveSchema("string")
        )

    def test_object_properties_keep_order(self):
        """Object properties preserve source order."""
        schema = schema_from_dict({"type": "object", "properties": {"b": "string", "a": "number"}})
        assert isinstance(schema, ObjectSchema)
        assert schema.property_names == ("b", "a")
        assert schema.get("a") == PrimitiveSchema("number")
        assert schema.get("missing") is None

    def test_const_renders_as_literal(self):
        """const values become literal primitive names."""
        assert schema_from_dict({"const": "on"}) == PrimitiveSchema('"on"')

    def test_empty_dict_is_unknown(self):
        assert schema_from_dict({}) == UNKNOWN

    def test_unknown_kind_reports_path(self):
        """An unrecognized tagged kind raises with the JSON path."""
        with pytest.raises(MalformedSpec) as exc:
            schema_from_dict({"kind": "mystery"}, "exports[0].schema")
        assert exc.value.path == "exports[0].schema.kind"

    def test_non_schema_value_raises(self):
        with pytest.raises(MalformedSpec):
            schema_from_dict(42)

    def test_wire_form_survives_reparse(self):
        """schema_to_dict output parses back to an equal schema."""
        original = schema_from_dict({
            "kind": "object",
            "properties": {
                "tags": {"kind": "array", "items": {"kind": "union", "members": ["a", "b"]}},
                "owner": {"$ref": "#/types/User"},
            },
        })
        assert schema_from_dict(schema_to_dict(original)) == original


class TestSchemaRendering:
    """Tests for render_schema and iter_references."""

    def test_union_in_array_is_parenthesized(self):
        schema = ArraySchema(UnionSchema((PrimitiveSchema("a"), PrimitiveSchema("b"))))
        assert render_schema(schema) == "(a | b)[]"

    def test_object_and_tuple(self):
        obj = ObjectSchema((("id", PrimitiveSchema("number")), ("name", PrimitiveSchema("string"))))
        assert render_schema(obj) == "{ id: number; name: string }"
        assert render_schema(ObjectSchema()) == "{}"
        assert render_schema(TupleSchema((PrimitiveSchema("a"), PrimitiveSchema("b")))) == "[a, b]"

    def test_none_renders_unknown(self):
        assert render_schema(None) == "unknown"

    def test_iter_references_depth_first(self):
        """References are yielded from nested positions in order."""
        schema = schema_from_dict({
            "anyOf": [
                {"$ref": "#/types/A"},
                {"type": "array", "items": {"$ref": "#/types/B"}},
                {"type": "object", "properties": {"c": {"$ref": "#/types/C"}}},
            ]
        })
        assert list(iter_references(schema)) == ["A", "B", "C"]


class TestTypeText:
    """Tests for normalize_type_text and types_equivalent."""

    def test_whitespace_and_union_order_ignored(self):
        assert types_equivalent("number | string", "string|number")

    def test_array_generic_matches_suffix_form(self):
        assert normalize_type_text("Array<string>") == "string[]"
        assert types_equivalent("Array<string>", "string[]")
        assert normalize_type_text("Array<a | b>") == "(a|b)[]"

    def test_void_matches_undefined(self):
        assert types_equivalent("void", "undefined")

    def test_different_types(self):
        assert not types_equivalent("string", "number")
        assert not types_equivalent(None, "number")

    def test_empty_text_normalizes_to_none(self):
        assert normalize_type_text("   ") is None
        assert normalize_type_text(None) is None
