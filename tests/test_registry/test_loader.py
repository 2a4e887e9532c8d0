"""Tests for manifest parsing and blueprint loading.

Covers:
- YAML and schema errors reported as ManifestError with readable problems
- Declared id must match the directory / key it was loaded from
- Missing templates and Jinja2 syntax errors, all collected in one error
- Conditions may only name declared variables, `exists` operands included
- Files that are not UTF-8 fail only their own blueprint
- DirectorySource, PackageSource and InMemorySource lookups
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from blueprint_engine.errors import ManifestError
from blueprint_engine.registry import (
    BlueprintRegistry,
    DirectorySource,
    InMemorySource,
    PackageSource,
    load_blueprint,
    parse_manifest,
)
from blueprint_engine.registry.sources import MANIFEST_NAME, TEMPLATES_DIR

pytestmark = pytest.mark.unit


BROKEN_MANIFEST = textwrap.dedent(
    """\
    type: tool
    variables:
      - name: name
    files:
      - source: main.go.j2
        destination: main.go
      - source: missing.go.j2
        destination: missing.go
      - source: broken.go.j2
        destination: "{{ name "
    """
)


# ---------------------------------------------------------------------------
# parse_manifest
# ---------------------------------------------------------------------------


class TestParseManifest:
    def test_id_defaults_to_key(self):
        manifest = parse_manifest("type: tool\n", "tool")
        assert manifest.id == "tool"
        assert manifest.is_canonical

    def test_invalid_yaml(self):
        with pytest.raises(ManifestError) as exc_info:
            parse_manifest("type: [unclosed\n", "tool")
        assert exc_info.value.problems[0].startswith("invalid YAML")
        assert exc_info.value.blueprint_id == "tool"

    @pytest.mark.parametrize("text", ["", "- a\n- b\n", "just a string\n"])
    def test_not_a_mapping(self, text):
        with pytest.raises(ManifestError) as exc_info:
            parse_manifest(text, "tool")
        assert exc_info.value.problems == ("manifest must be a mapping",)

    def test_id_mismatch(self):
        with pytest.raises(ManifestError, match="does not match"):
            parse_manifest("id: other\ntype: tool\n", "tool")

    def test_schema_errors_carry_location(self):
        text = "type: tool\nvariables:\n  - name: port\n    kind: int\n    default: eighty\n"
        with pytest.raises(ManifestError) as exc_info:
            parse_manifest(text, "tool")
        assert any(problem.startswith("variables.0") for problem in exc_info.value.problems)
        assert exc_info.value.code == "MANIFEST_ERROR"

    def test_exists_on_undeclared_variable(self):
        manifest = textwrap.dedent(
            """\
            type: tool
            variables:
              - name: database.driver
                default: ""
            files:
              - source: db.go.j2
                destination: db.go
                condition: exists(databse.driver)
            """
        )
        with pytest.raises(ManifestError) as exc_info:
            parse_manifest(manifest, "tool")
        assert any(
            "files.0.condition references undeclared variable(s): databse.driver" in problem
            for problem in exc_info.value.problems
        )

    def test_conditions_on_declared_variables(self):
        manifest = textwrap.dedent(
            """\
            type: tool
            variables:
              - name: database.driver
                default: ""
              - name: with_tests
                kind: bool
                default: true
            files:
              - source: db.go.j2
                destination: db.go
                condition: exists(database.driver) and not with_tests
            dependencies:
              - module: github.com/lib/pq
                condition: {exists: database.driver}
            """
        )
        parsed = parse_manifest(manifest, "tool")
        assert parsed.files[0].condition.mentions() == frozenset({"database.driver", "with_tests"})

    def test_missing_type(self):
        with pytest.raises(ManifestError) as exc_info:
            parse_manifest("name: Tool\n", "tool")
        assert any(problem.startswith("type") for problem in exc_info.value.problems)


# ---------------------------------------------------------------------------
# load_blueprint
# ---------------------------------------------------------------------------


class TestLoadBlueprint:
    def test_loads_templates_referenced_by_files(self, memory_source):
        blueprint = load_blueprint(memory_source, "svc")
        assert blueprint.id == "svc"
        assert set(blueprint.templates) == {
            "main.go.j2",
            "README.md.j2",
            "logger.go.j2",
            "db.go.j2",
            "main_test.go.j2",
            "run.sh.j2",
        }
        assert blueprint.template("run.sh.j2").startswith("#!/bin/sh")

    def test_collects_every_problem(self):
        source = InMemorySource(
            {
                "tool": (
                    BROKEN_MANIFEST,
                    {"main.go.j2": "package main\n", "broken.go.j2": "{% if name %}\n"},
                )
            }
        )
        with pytest.raises(ManifestError) as exc_info:
            load_blueprint(source, "tool")

        problems = exc_info.value.problems
        assert "files.1.source: template 'missing.go.j2' not found" in problems
        assert any(p.startswith("files.2.source (broken.go.j2): template syntax error") for p in problems)
        assert any(p.startswith("files.2.destination: template syntax error") for p in problems)
        assert len(problems) == 3

    def test_bad_derive_expression(self):
        manifest = "type: tool\nvariables:\n  - name: name\n  - name: path\n    derive: '{{ name | }}'\n"
        source = InMemorySource({"tool": (manifest, {})})
        with pytest.raises(ManifestError) as exc_info:
            load_blueprint(source, "tool")
        assert exc_info.value.problems[0].startswith("variables.path.derive")

    def test_missing_manifest(self):
        with pytest.raises(ManifestError, match="manifest unreadable"):
            load_blueprint(InMemorySource({}), "ghost")

    def test_shared_source_read_once(self):
        manifest = textwrap.dedent(
            """\
            type: tool
            files:
              - source: shared.j2
                destination: a.txt
              - source: shared.j2
                destination: b.txt
            """
        )
        blueprint = load_blueprint(InMemorySource({"tool": (manifest, {"shared.j2": "x\n"})}), "tool")
        assert dict(blueprint.templates) == {"shared.j2": "x\n"}


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


def _write_blueprint(root: Path, blueprint_id: str, manifest: str, templates: dict[str, str]) -> None:
    base = root / blueprint_id
    (base / TEMPLATES_DIR).mkdir(parents=True)
    (base / MANIFEST_NAME).write_text(manifest, encoding="utf-8")
    for rel, text in templates.items():
        path = base / TEMPLATES_DIR / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


class TestDirectorySource:
    def test_lists_only_directories_with_manifest(self, tmp_path):
        _write_blueprint(tmp_path, "tool", "type: tool\n", {"cmd/root.go.j2": "package cmd\n"})
        (tmp_path / "notes").mkdir()
        (tmp_path / "README.md").write_text("hi", encoding="utf-8")

        source = DirectorySource(tmp_path)
        assert source.list_ids() == ["tool"]
        assert source.list_templates("tool") == ["cmd/root.go.j2"]
        assert source.read_template("tool", "cmd/root.go.j2") == "package cmd\n"
        assert source.describe() == str(tmp_path)

    def test_missing_root_is_empty(self, tmp_path):
        assert DirectorySource(tmp_path / "nope").list_ids() == []

    def test_missing_files_raise(self, tmp_path):
        _write_blueprint(tmp_path, "tool", "type: tool\n", {})
        source = DirectorySource(tmp_path)
        with pytest.raises(FileNotFoundError):
            source.read_template("tool", "absent.j2")
        with pytest.raises(FileNotFoundError):
            source.read_manifest("absent")

    def test_loads_from_disk(self, tmp_path):
        manifest = "type: tool\nfiles:\n  - source: cmd/root.go.j2\n    destination: cmd/root.go\n"
        _write_blueprint(tmp_path, "tool", manifest, {"cmd/root.go.j2": "package cmd\n"})
        blueprint = load_blueprint(DirectorySource(tmp_path), "tool")
        assert blueprint.manifest.files[0].destination == "cmd/root.go"

    def test_undecodable_files_fail_only_their_blueprint(self, tmp_path, caplog):
        manifest = "type: {id}\nfiles:\n  - source: a.j2\n    destination: a.txt\n"
        _write_blueprint(tmp_path, "good", manifest.format(id="good"), {"a.j2": "ok\n"})
        _write_blueprint(tmp_path, "bad", manifest.format(id="bad"), {})
        (tmp_path / "bad" / TEMPLATES_DIR / "a.j2").write_bytes(b"\xff\xfe")
        (tmp_path / "worse").mkdir()
        (tmp_path / "worse" / MANIFEST_NAME).write_bytes(b"type: \xff\n")

        with caplog.at_level("WARNING", logger="blueprint_engine"):
            registry = BlueprintRegistry(DirectorySource(tmp_path), strict=False).load()

        assert registry.ids() == ["good"]
        assert sorted(registry.errors) == ["bad", "worse"]
        with pytest.raises(ManifestError, match="cannot read 'a.j2'"):
            registry.get("bad")
        with pytest.raises(ManifestError, match="manifest unreadable"):
            registry.get("worse")
        assert "Skipping blueprint bad" in caplog.text


class TestInMemorySource:
    def test_lookups(self, memory_source):
        assert memory_source.list_ids() == ["svc", "svc-lite"]
        assert memory_source.list_templates("svc-lite") == ["README.md.j2", "main.go.j2"]
        assert memory_source.list_templates("ghost") == []
        assert memory_source.describe() == "memory:2 blueprint(s)"

    def test_source_is_a_copy(self, blueprint_data):
        source = InMemorySource(blueprint_data)
        blueprint_data["svc"][1]["main.go.j2"] = "changed"
        assert source.read_template("svc", "main.go.j2") != "changed"

    def test_missing_template(self, memory_source):
        with pytest.raises(FileNotFoundError):
            memory_source.read_template("svc", "nope.j2")


class TestPackageSource:
    def test_bundled_blueprints_present(self):
        source = PackageSource()
        ids = source.list_ids()
        assert {"cli", "cli-simple", "library", "library-simple", "lambda", "web-api"} <= set(ids)
        assert source.describe() == "package:blueprint_engine/blueprints"
