"""
Tests for spec models and validation.

Verifies that specs validate on the way in, report the JSON path of
the first problem, and serialize back to an equivalent form.
"""
import pytest

from doccov.errors import MalformedSpec
from doccov.models import (
    ExportKind,
    MemberKind,
    PackageSpec,
    Signature,
    Visibility,
)
from doccov.schema import ReferenceSchema

from builders import function, klass, make_export, make_spec, method, param, prop, tag


class TestExportSymbol:
    """Tests for ExportSymbol."""

    def test_id_defaults_to_name(self):
        """An export without an id is keyed by its name."""
        export = make_export({"name": "applyTax", "kind": "function"})
        assert export.id == "applyTax"
        assert export.kind is ExportKind.FUNCTION

    def test_unknown_kind_rejected(self):
        with pytest.raises(MalformedSpec) as exc:
            make_export({"name": "x", "kind": "module"})
        assert exc.value.path == "export.kind"

    def test_missing_name_rejected(self):
        with pytest.raises(MalformedSpec) as exc:
            make_export({"kind": "function"})
        assert exc.value.path == "export.name"

    def test_example_objects_unwrapped(self):
        """Examples given as {code} objects are stored as code strings."""
        export = make_export({
            "name": "f", "kind": "function",
            "examples": [{"code": "f()"}, "f(1)"],
        })
        assert export.examples == ("f()", "f(1)")

    def test_tag_names_lose_at_sign(self):
        export = make_export({"name": "f", "kind": "function", "tags": [tag("@deprecated")]})
        assert export.has_tag("deprecated")
        assert export.has_tag("DEPRECATED")

    def test_parameters_across_signatures(self):
        """parameters flattens every overload in declaration order."""
        export = make_export({
            "name": "f", "kind": "function",
            "signatures": [
                {"parameters": [param("a")]},
                {"parameters": [param("a"), param("b", required=False)]},
            ],
        })
        assert [p.name for p in export.parameters] == ["a", "a", "b"]

    def test_round_trip(self):
        """to_dict output validates back to an equal export."""
        data = klass(
            "Cart",
            prop("items", {"type": "array", "items": {"$ref": "#/types/Item"}}),
            method("add", param("item", {"$ref": "#/types/Item"}), visibility="protected"),
            description="A shopping cart",
            extends="Base",
            typeParameters=[{"name": "T", "constraint": "object"}],
        )
        export = make_export(data)
        assert make_export(export.to_dict()) == export
        assert export.members[1].visibility is Visibility.PROTECTED
        assert export.members[0].kind is MemberKind.PROPERTY

    def test_referenced_type_ids_distinct(self):
        export = make_export(function(
            "save",
            param("a", {"$ref": "#/types/User"}),
            param("b", {"$ref": "#/types/User"}),
            returns={"$ref": "#/types/Result"},
        ))
        assert export.referenced_type_ids() == ["User", "Result"]


class TestSignature:
    """Tests for Signature rendering."""

    def test_render_marks_optional_and_rest(self):
        sig = Signature.from_dict({
            "parameters": [
                param("base", "number"),
                param("rate", "number", required=False),
                param("rest", {"type": "array", "items": "string"}, rest=True),
            ],
            "returns": {"schema": "number"},
        })
        assert sig.render("applyTax") == "applyTax(base: number, rate?: number, ...rest: string[]): number"


class TestMember:
    """Tests for Member validation."""

    def test_unknown_visibility_rejected(self):
        with pytest.raises(MalformedSpec) as exc:
            make_export(klass("C", {"name": "m", "kind": "method", "visibility": "friend"}))
        assert exc.value.path == "export.members[0].visibility"

    def test_unknown_member_kind_rejected(self):
        with pytest.raises(MalformedSpec):
            make_export(klass("C", {"name": "m", "kind": "getter"}))


class TestPackageSpec:
    """Tests for PackageSpec validation."""

    def test_duplicate_export_ids_rejected(self):
        with pytest.raises(MalformedSpec) as exc:
            make_spec(function("a"), function("a"))
        assert exc.value.path == "exports[1].id"

    def test_missing_meta_rejected(self):
        with pytest.raises(MalformedSpec) as exc:
            PackageSpec.from_dict({"exports": []})
        assert exc.value.path == "meta"

    def test_error_path_points_into_nested_structure(self):
        """The first problem is reported with its full JSON path."""
        with pytest.raises(MalformedSpec) as exc:
            make_spec(function("ok"), function("bad", {"schema": "string"}))
        assert exc.value.path == "exports[1].signatures[0].parameters[0].name"

    def test_unresolved_reference_is_a_warning(self):
        """A reference missing from the type table is kept as a warning."""
        spec = make_spec(function("load", returns={"$ref": "#/types/Config"}))
        export = spec.get_export("load")
        assert export.signatures[0].returns.schema == ReferenceSchema("Config")
        assert [w.type_id for w in export.warnings] == ["Config"]

    def test_resolved_reference_has_no_warning(self):
        spec = make_spec(
            function("load", returns={"$ref": "#/types/Config"}),
            types=[{"id": "Config", "name": "Config"}],
        )
        assert spec.get_export("load").warnings == ()

    def test_round_trip(self):
        spec = make_spec(function("a", description="A"), klass("B"), version="2.1.0")
        restored = PackageSpec.from_dict(spec.to_dict())
        assert restored == spec
        assert str(restored) == "PackageSpec(pkg@2.1.0, 2 exports)"

    def test_exports_by_id(self):
        spec = make_spec(function("a"), function("b"))
        assert list(spec.exports_by_id) == ["a", "b"]
        assert spec.get_export("missing") is None
