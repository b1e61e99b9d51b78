"""
Tests for locating documentation affected by API changes.
"""
from doccov.diff import diff_specs
from doccov.docs_impact import analyze_docs_impact

from builders import function, klass, make_spec, method, param

GUIDE = """# Guide

```ts
import { applyTax, Cart } from 'pkg';
const cart = new Cart();
cart.clear();
applyTax(100);
```
"""


def _diff(base, head):
    return diff_specs(make_spec(*base), make_spec(*head))


class TestAnalyzeDocsImpact:
    """Tests for analyze_docs_impact."""

    def test_removed_export_reference(self):
        diff = _diff([function("applyTax")], [])
        result = analyze_docs_impact(diff, [{"path": "guide.md", "content": GUIDE}])
        assert result.has_impact
        refs = result.references
        assert [(r.file, r.line, r.change_type) for r in refs] == [
            ("guide.md", 4, "removed"),
            ("guide.md", 7, "removed"),
        ]
        assert refs[1].context == "applyTax(100);"

    def test_fence_inside_list_item(self):
        content = "1. Step one:\n\n   ```ts\n   applyTax(1)\n   ```\n"
        result = analyze_docs_impact(_diff([function("applyTax")], []), [("guide.md", content)])
        assert [(r.line, r.context) for r in result.references] == [(4, "applyTax(1)")]
        assert result.stats.impacted_references == 1

    def test_signature_change_reference(self):
        diff = _diff([function("applyTax", param("base"))], [function("applyTax", param("base"), param("rate"))])
        result = analyze_docs_impact(diff, [("guide.md", GUIDE)])
        assert {r.change_type for r in result.references} == {"signature-changed"}

    def test_removed_method_call(self):
        """A .member( call of a removed method is reported with its replacement."""
        base = [klass("Cart", method("clear"), method("add"))]
        head = [klass("Cart", method("reset"), method("add"))]
        result = analyze_docs_impact(_diff(base, head), [{"path": "guide.md", "content": GUIDE}])
        member_refs = [r for r in result.references if r.member_name]
        assert len(member_refs) == 1
        ref = member_refs[0]
        assert (ref.export_name, ref.member_name, ref.change_type, ref.line) == (
            "Cart", "clear", "method-removed", 6,
        )
        assert ref.context == "cart.clear();"

    def test_added_export_without_docs(self):
        diff = _diff([], [function("applyTax"), function("formatPrice")])
        result = analyze_docs_impact(diff, [{"path": "guide.md", "content": GUIDE}])
        assert result.missing_docs == ("formatPrice",)
        assert result.impacted_files == ()
        assert result.has_impact

    def test_prose_mentions_ignored(self):
        """Only code blocks are scanned."""
        diff = _diff([function("applyTax")], [])
        content = "Call applyTax to compute totals.\n\n```bash\napplyTax\n```\n"
        result = analyze_docs_impact(diff, [{"path": "a.md", "content": content}])
        assert not result.has_impact

    def test_whole_word_matching(self):
        diff = _diff([function("tax")], [])
        content = "```ts\napplyTax(1);\n```\n"
        assert analyze_docs_impact(diff, [{"path": "a.md", "content": content}]).references == []

    def test_stats(self):
        diff = _diff([function("applyTax")], [])
        result = analyze_docs_impact(diff, [
            {"path": "guide.md", "content": GUIDE},
            {"path": "empty.md", "content": "nothing"},
        ])
        assert result.stats.files_scanned == 2
        assert result.stats.code_blocks_found == 1
        assert result.stats.references_found == 2
        assert result.stats.impacted_references == 2

    def test_to_dict(self):
        diff = _diff([function("applyTax")], [])
        data = analyze_docs_impact(diff, [{"path": "guide.md", "content": GUIDE}]).to_dict()
        assert data["impactedFiles"][0]["file"] == "guide.md"
        assert data["impactedFiles"][0]["references"][0]["exportName"] == "applyTax"
        assert data["stats"]["filesScanned"] == 1
