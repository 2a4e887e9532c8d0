"""Shared pytest fixtures for the blueprint engine test suite.

Provides reusable fixtures for:
- A small in-memory blueprint set (a canonical ``svc`` and its ``svc-lite``
  simple variant)
- Registries, resolvers and engines over that set
- Disk targets that fail on demand, for rollback tests
"""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from blueprint_engine.config import EngineConfig
from blueprint_engine.engine import BlueprintEngine
from blueprint_engine.registry import BlueprintRegistry, InMemorySource
from blueprint_engine.resolver import ConfigResolver, ProjectConfig
from blueprint_engine.scaffolder import DiskTarget


# ---------------------------------------------------------------------------
# Blueprint fixtures
# ---------------------------------------------------------------------------

SVC_MANIFEST = textwrap.dedent(
    """\
    name: Service
    description: Test service blueprint
    type: svc
    tags: [test]
    variables:
      - name: name
        description: Project name
        format: project_name
      - name: module_path
        format: module_path
        derive: "example.com/acme/{{ name }}"
      - name: logger
        kind: enum
        allowed_values: [slog, zap]
        default: slog
      - name: database.driver
        kind: enum
        allowed_values: ["", postgres, sqlite]
        default: ""
        visibility: advanced
      - name: with_tests
        kind: bool
        default: true
      - name: replicas
        kind: int
        default: 1
        minimum: 1
        maximum: 10
        visibility: advanced
    files:
      - source: main.go.j2
        destination: main.go
      - source: README.md.j2
        destination: README.md
      - source: logger.go.j2
        destination: "internal/log/{{ logger }}.go"
      - source: db.go.j2
        destination: internal/db/db.go
        condition: exists(database.driver)
      - source: main_test.go.j2
        destination: main_test.go
        condition: with_tests
      - source: run.sh.j2
        destination: bin/run.sh
        executable: true
    dependencies:
      - module: github.com/spf13/cobra
        version: v1.8.0
      - module: go.uber.org/zap
        version: v1.26.0
        condition: 'logger == "zap"'
      - module: github.com/lib/pq
        version: v1.10.9
        condition: 'database.driver == "postgres"'
    hooks:
      - name: tidy
        command: go
        args: [mod, tidy]
    """
)

SVC_TEMPLATES = {
    "main.go.j2": "package main\n\n// module {{ module_path }}\nfunc main() {}\n",
    "README.md.j2": (
        "# {{ name }}\n\n"
        "Dependencies:\n"
        "{% for dep in dependencies %}\n"
        "- {{ dep }}\n"
        "{% endfor %}\n"
    ),
    "logger.go.j2": "package log // {{ logger }}\n",
    "db.go.j2": "package db // {{ database.driver }}\n",
    "main_test.go.j2": "package main\n",
    "run.sh.j2": "#!/bin/sh\nexec {{ name | snake_case }} --replicas {{ replicas }}\n",
}

SVC_LITE_MANIFEST = textwrap.dedent(
    """\
    name: Service (simple)
    type: svc
    complexity: [simple]
    variables:
      - name: name
        format: project_name
      - name: module_path
        format: module_path
        derive: "example.com/acme/{{ name }}"
    files:
      - source: main.go.j2
        destination: main.go
      - source: README.md.j2
        destination: README.md
    """
)

SVC_LITE_TEMPLATES = {
    "main.go.j2": "package main\n\nfunc main() {}\n",
    "README.md.j2": "# {{ name }} (lite)\n",
}


@pytest.fixture
def blueprint_data() -> dict[str, tuple[str, dict[str, str]]]:
    """Fresh, mutable copy of the in-memory blueprint set."""
    return {
        "svc": (SVC_MANIFEST, dict(SVC_TEMPLATES)),
        "svc-lite": (SVC_LITE_MANIFEST, dict(SVC_LITE_TEMPLATES)),
    }


@pytest.fixture
def memory_source(blueprint_data) -> InMemorySource:
    return InMemorySource(blueprint_data)


@pytest.fixture
def registry(memory_source) -> BlueprintRegistry:
    """Strict registry over the in-memory blueprint set, already loaded."""
    return BlueprintRegistry(memory_source, strict=True).load()


@pytest.fixture
def resolver(registry) -> ConfigResolver:
    return ConfigResolver(registry)


@pytest.fixture
def svc_config(resolver) -> ProjectConfig:
    """Resolved config for the canonical ``svc`` blueprint with defaults."""
    return resolver.resolve("svc", "standard", "basic", {"name": "app"}, non_interactive=True)


@pytest.fixture
def engine(registry) -> BlueprintEngine:
    return BlueprintEngine(registry=registry, config=EngineConfig(non_interactive=True))


# ---------------------------------------------------------------------------
# Failing targets
# ---------------------------------------------------------------------------


class FlakyDiskTarget(DiskTarget):
    """DiskTarget that fails the n-th file write and, optionally, every removal.

    A failing write leaves a truncated file behind, like an interrupted
    ``write()`` would.
    """

    def __init__(
        self,
        root: Path,
        fail_on_write: Optional[int] = None,
        fail_removal: bool = False,
    ) -> None:
        super().__init__(root)
        self.fail_on_write = fail_on_write
        self.fail_removal = fail_removal
        self.writes = 0

    def write_file(self, path: str, content: str, executable: bool = False) -> None:
        self.writes += 1
        if self.writes == self.fail_on_write:
            self._resolve(path).write_text(content[: len(content) // 2], encoding="utf-8")
            raise OSError(28, "No space left on device")
        super().write_file(path, content, executable)

    def remove_file(self, path: str) -> None:
        if self.fail_removal:
            raise PermissionError(13, "Permission denied")
        super().remove_file(path)


@pytest.fixture
def flaky_target() -> Callable[..., FlakyDiskTarget]:
    """Factory: ``flaky_target(root, fail_on_write=k, fail_removal=False)``."""

    def _make(root: Path, **kwargs: Any) -> FlakyDiskTarget:
        return FlakyDiskTarget(root, **kwargs)

    return _make


def snapshot_tree(root: Path) -> dict[str, bytes]:
    """Every file below *root* (relative POSIX path -> bytes)."""
    if not root.exists():
        return {}
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def tree_snapshot() -> Callable[[Path], dict[str, bytes]]:
    return snapshot_tree
