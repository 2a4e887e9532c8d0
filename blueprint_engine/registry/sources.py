"""Blueprint source providers.

A source supplies raw manifest text and template text by blueprint id.  The
registry is agnostic about where they come from:

- ``DirectorySource``: a directory tree on disk (one sub-directory per id)
- ``PackageSource``: blueprints bundled inside an installed package
- ``InMemorySource``: a plain dict, used by tests and preview front ends

Layout of one blueprint::

    <id>/
        template.yaml
        templates/
            main.go.j2
            cmd/root.go.j2
"""

from __future__ import annotations

from collections.abc import Mapping
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Protocol, runtime_checkable


MANIFEST_NAME = "template.yaml"
TEMPLATES_DIR = "templates"


@runtime_checkable
class BlueprintSource(Protocol):
    """What the registry needs from a backing store."""

    def list_ids(self) -> list[str]: ...

    def read_manifest(self, blueprint_id: str) -> str: ...

    def list_templates(self, blueprint_id: str) -> list[str]: ...

    def read_template(self, blueprint_id: str, source: str) -> str: ...

    def describe(self) -> str: ...


# ---------------------------------------------------------------------------
# Traversable-backed sources
# ---------------------------------------------------------------------------


class _TraversableSource:
    """Shared implementation over ``pathlib.Path`` or ``Traversable`` roots."""

    def __init__(self, root: Traversable) -> None:
        self._root = root

    def list_ids(self) -> list[str]:
        if not self._root.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self._root.iterdir()
            if entry.is_dir() and entry.joinpath(MANIFEST_NAME).is_file()
        )

    def read_manifest(self, blueprint_id: str) -> str:
        manifest = self._root.joinpath(blueprint_id, MANIFEST_NAME)
        if not manifest.is_file():
            raise FileNotFoundError(f"{self.describe()}: no manifest for '{blueprint_id}'")
        return manifest.read_text(encoding="utf-8")

    def list_templates(self, blueprint_id: str) -> list[str]:
        base = self._root.joinpath(blueprint_id, TEMPLATES_DIR)
        if not base.is_dir():
            return []
        found: list[str] = []
        _walk(base, "", found)
        return sorted(found)

    def read_template(self, blueprint_id: str, source: str) -> str:
        node = self._root.joinpath(blueprint_id, TEMPLATES_DIR, *source.split("/"))
        if not node.is_file():
            raise FileNotFoundError(f"{self.describe()}: '{blueprint_id}' has no template '{source}'")
        return node.read_text(encoding="utf-8")

    def describe(self) -> str:
        return str(self._root)


def _walk(node: Traversable, prefix: str, found: list[str]) -> None:
    for child in node.iterdir():
        rel = f"{prefix}{child.name}"
        if child.is_dir():
            _walk(child, rel + "/", found)
        elif child.is_file():
            found.append(rel)


class DirectorySource(_TraversableSource):
    """Blueprints stored in a directory on the local file system."""

    def __init__(self, root: str | Path) -> None:
        self.path = Path(root)
        super().__init__(self.path)


class PackageSource(_TraversableSource):
    """Blueprints shipped as package data (``importlib.resources``)."""

    def __init__(self, package: str = "blueprint_engine", subdir: str = "blueprints") -> None:
        self.package = package
        self.subdir = subdir
        super().__init__(resources.files(package).joinpath(subdir))

    def describe(self) -> str:
        return f"package:{self.package}/{self.subdir}"


# ---------------------------------------------------------------------------
# In-memory source
# ---------------------------------------------------------------------------


class InMemorySource:
    """Dict-backed source.

    ``blueprints`` maps an id to ``(manifest_text, {source: template_text})``.
    """

    def __init__(self, blueprints: Mapping[str, tuple[str, Mapping[str, str]]]) -> None:
        self._blueprints = {
            blueprint_id: (manifest, dict(templates))
            for blueprint_id, (manifest, templates) in blueprints.items()
        }

    def list_ids(self) -> list[str]:
        return sorted(self._blueprints)

    def read_manifest(self, blueprint_id: str) -> str:
        try:
            return self._blueprints[blueprint_id][0]
        except KeyError:
            raise FileNotFoundError(f"memory: no manifest for '{blueprint_id}'") from None

    def list_templates(self, blueprint_id: str) -> list[str]:
        entry = self._blueprints.get(blueprint_id)
        return sorted(entry[1]) if entry else []

    def read_template(self, blueprint_id: str, source: str) -> str:
        entry = self._blueprints.get(blueprint_id)
        if entry is None or source not in entry[1]:
            raise FileNotFoundError(f"memory: '{blueprint_id}' has no template '{source}'")
        return entry[1][source]

    def describe(self) -> str:
        return f"memory:{len(self._blueprints)} blueprint(s)"
