"""
Tests for the command-line interface.
"""
import json

import pytest

from doccov.cli import build_parser, main
from doccov.serializer import save_spec

from builders import function, make_spec, param


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run each command in an empty directory so no config file is found."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def write_spec(directory, filename, *exports, version="1.0.0"):
    path = directory / filename
    save_spec(make_spec(*exports, version=version), path)
    return path


class TestParser:
    """Tests for argument parsing."""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_prune_options_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["trends", "prune", "pkg", "--keep", "3", "--tier", "free"])


class TestQualityCommand:
    """Tests for `doccov quality`."""

    def test_json_output(self, workdir, capsys):
        spec = write_spec(workdir, "spec.json", function("a", description="A"), function("b"))
        assert main(["quality", str(spec), "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["overall"]["coverageScore"] == 50

    def test_report(self, workdir, capsys):
        spec = write_spec(workdir, "spec.json", function("applyTax"))
        assert main(["quality", str(spec)]) == 0
        out = capsys.readouterr().out
        assert "applyTax" in out
        assert "has-description" in out

    def test_error_severity_fails(self, workdir):
        spec = write_spec(workdir, "spec.json", function("applyTax"))
        config = workdir / "strict.json"
        config.write_text(json.dumps({"rules": {"has-description": "error"}}))
        assert main(["--config", str(config), "quality", str(spec)]) == 1

    def test_config_picked_up_from_cwd(self, workdir):
        spec = write_spec(workdir, "spec.json", function("applyTax"))
        (workdir / "doccov.config.json").write_text(json.dumps({"rules": {"has-description": "error"}}))
        assert main(["quality", str(spec), "--json"]) == 1

    def test_missing_spec(self, workdir, capsys):
        assert main(["quality", str(workdir / "missing.json")]) == 1
        assert "Error:" in capsys.readouterr().out


class TestDriftCommand:
    """Tests for `doccov drift`."""

    def test_json_output(self, workdir, capsys):
        spec = write_spec(workdir, "spec.json", function("a", deprecated=True))
        assert main(["drift", str(spec), "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert [i["type"] for i in data["issues"]] == ["deprecated-mismatch"]

    def test_clean(self, workdir, capsys):
        spec = write_spec(workdir, "spec.json", function("a", description="A"))
        assert main(["drift", str(spec)]) == 0
        assert "No documentation drift" in capsys.readouterr().out


class TestDiffCommand:
    """Tests for `doccov diff`."""

    def test_breaking_change_exits_nonzero(self, workdir, capsys):
        base = write_spec(workdir, "base.json", function("a"), function("b"))
        head = write_spec(workdir, "head.json", function("a"), version="1.1.0")
        assert main(["diff", str(base), str(head), "--json"]) == 1
        data = json.loads(capsys.readouterr().out)
        assert data["breaking"] == ["b"]
        assert data["semverBump"] == "major"

    def test_addition_exits_zero(self, workdir, capsys):
        base = write_spec(workdir, "base.json", function("a"))
        head = write_spec(workdir, "head.json", function("a"), function("b"))
        assert main(["diff", str(base), str(head)]) == 0
        assert "Non-breaking" in capsys.readouterr().out

    def test_docs_impact(self, workdir, capsys):
        base = write_spec(workdir, "base.json", function("applyTax", param("base", "number")))
        head = write_spec(workdir, "head.json")
        docs = workdir / "docs"
        docs.mkdir()
        (docs / "guide.md").write_text("```ts\napplyTax(100);\n```\n", encoding="utf-8")
        assert main(["diff", str(base), str(head), "--docs", str(docs), "--json"]) == 1
        impact = json.loads(capsys.readouterr().out)["docsImpact"]
        assert impact["impactedFiles"][0]["file"] == "guide.md"

    def test_docs_impact_report(self, workdir, capsys):
        base = write_spec(workdir, "base.json", function("applyTax", param("base", "number")))
        head = write_spec(workdir, "head.json")
        docs = workdir / "docs"
        docs.mkdir()
        (docs / "guide.md").write_text("```ts\napplyTax(100);\n```\n", encoding="utf-8")
        assert main(["diff", str(base), str(head), "--docs", str(docs)]) == 1
        out = capsys.readouterr().out
        assert "Docs impact" in out
        assert "guide.md" in out


class TestTrendsCommand:
    """Tests for `doccov trends`."""

    def test_record_then_show_snapshots(self, workdir, capsys):
        spec = write_spec(workdir, "spec.json", function("a", description="A"), function("b"))
        history = str(workdir / "history")
        assert main(["trends", "--history", history, "record", str(spec), "--source", "ci"]) == 0
        capsys.readouterr()
        assert main(["trends", "--history", history, "show", "pkg", "--json"]) == 0
        snapshots = json.loads(capsys.readouterr().out)["snapshots"]
        assert len(snapshots) == 1
        assert snapshots[0]["coverageScore"] == 50
        assert snapshots[0]["source"] == "ci"

    def test_show_and_prune(self, workdir, capsys):
        spec = write_spec(workdir, "spec.json", function("a", description="A"))
        history = str(workdir / "history")
        for _ in range(3):
            main(["trends", "--history", history, "record", str(spec)])
        assert main(["trends", "--history", history, "show", "pkg", "--json"]) == 0
        out = capsys.readouterr().out
        data = json.loads(out[out.index("{"):])
        assert data["trend"]["current"]["coverageScore"] == 100
        assert main(["trends", "--history", history, "prune", "pkg", "--keep", "1"]) == 0
        assert "Pruned 2 snapshots" in capsys.readouterr().out

    def test_show_without_history(self, workdir, capsys):
        assert main(["trends", "--history", str(workdir / "none"), "show", "pkg"]) == 0
        assert "No history" in capsys.readouterr().out
