"""Generation planning: conditions, destinations, content, conflicts.

``PlanRenderer.render`` turns a ``Blueprint`` plus a resolved
``ProjectConfig`` into a ``GenerationPlan`` without touching any file
system:

1. Evaluate dependency conditions; the survivors become ``module@version``
   strings exposed to templates as ``dependencies``
2. Evaluate each file's condition, in manifest order
3. Render and normalise the destination path of every surviving file
4. Render its content
5. Reject colliding destinations before anything is written
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from jinja2 import TemplateError

from ..errors import ConflictError, TemplateRenderError
from ..registry.conditions import Condition, UnresolvedReference
from ..registry.models import Blueprint, BlueprintManifest, HookSpec
from .templates import TemplateRenderer

if TYPE_CHECKING:
    from ..resolver.resolver import ProjectConfig

logger = logging.getLogger(__name__)

_DRIVE_RE = re.compile(r"^[A-Za-z]:")


# ---------------------------------------------------------------------------
# Plan data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlannedFile:
    """One file to materialise: relative POSIX path and rendered content."""

    path: str
    content: str
    source: str
    executable: bool = False


@dataclass(frozen=True)
class GenerationPlan:
    """Ordered, fully rendered file list for one request."""

    blueprint_id: str
    files: tuple[PlannedFile, ...] = ()
    dependencies: tuple[str, ...] = ()
    hooks: tuple[HookSpec, ...] = ()

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(planned.path for planned in self.files)

    def get(self, path: str) -> Optional[PlannedFile]:
        return next((planned for planned in self.files if planned.path == path), None)

    def as_dict(self) -> dict[str, str]:
        return {planned.path: planned.content for planned in self.files}

    def digest(self) -> str:
        """SHA-256 over ids, paths, modes, contents and dependencies."""
        digest = hashlib.sha256(self.blueprint_id.encode("utf-8"))
        for planned in self.files:
            for part in (planned.path, "x" if planned.executable else "-", planned.content):
                digest.update(b"\0")
                digest.update(part.encode("utf-8"))
        for dependency in self.dependencies:
            digest.update(b"\1")
            digest.update(dependency.encode("utf-8"))
        return digest.hexdigest()

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self) -> Iterator[PlannedFile]:
        return iter(self.files)


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class PlanRenderer:
    """Builds a ``GenerationPlan`` from a blueprint and a resolved config."""

    def __init__(self, renderer: Optional[TemplateRenderer] = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def render(self, blueprint: Blueprint, config: "ProjectConfig") -> GenerationPlan:
        """Render every file whose condition holds.

        Raises:
            TemplateRenderError: Undefined variable in a condition or
                template, template fault, or an invalid destination.
            ConflictError: Two files share a destination, or a file path is
                the parent directory of another file.
        """
        manifest = blueprint.manifest
        if config.blueprint_id != manifest.id:
            raise TemplateRenderError(
                manifest.id,
                "<config>",
                f"configuration was resolved for blueprint '{config.blueprint_id}'",
            )

        variables: Mapping[str, Any] = config.variables
        dependencies = tuple(
            dep.requirement()
            for dep in manifest.dependencies
            if _holds(manifest.id, f"dependency {dep.module}", dep.condition, variables)
        )

        context = config.context()
        context["dependencies"] = list(dependencies)
        context["blueprint"] = _blueprint_metadata(manifest)

        files: list[PlannedFile] = []
        for spec in manifest.files:
            if not _holds(manifest.id, spec.source, spec.condition, variables):
                continue
            destination = self._render(manifest.id, spec.source, spec.destination, context)
            try:
                path = normalize_destination(destination)
            except ValueError as exc:
                raise TemplateRenderError(manifest.id, spec.source, str(exc)) from exc
            content = self._render(manifest.id, spec.source, blueprint.template(spec.source), context)
            files.append(PlannedFile(path, content, spec.source, spec.executable))

        detect_conflicts(files)

        plan = GenerationPlan(
            blueprint_id=manifest.id,
            files=tuple(files),
            dependencies=dependencies,
            hooks=manifest.hooks,
        )
        logger.debug(
            "Planned %d of %d file(s) for %s", len(plan), len(manifest.files), manifest.id
        )
        return plan

    def _render(self, blueprint_id: str, source: str, text: str, context: dict[str, Any]) -> str:
        try:
            return self.renderer.render_string(text, context)
        except (TemplateError, TypeError, ValueError) as exc:
            raise TemplateRenderError(blueprint_id, source, f"{type(exc).__name__}: {exc}") from exc


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def normalize_destination(raw: str) -> str:
    """Normalise a rendered destination to a relative POSIX path.

    Raises:
        ValueError: The path is empty, absolute, or escapes the output root.
    """
    text = raw.strip().replace("\\", "/")
    if text.startswith("/") or _DRIVE_RE.match(text):
        raise ValueError(f"destination '{raw}' must be relative")
    parts = [part for part in text.split("/") if part not in ("", ".")]
    if ".." in parts:
        raise ValueError(f"destination '{raw}' escapes the output root")
    if not parts:
        raise ValueError("destination rendered to an empty path")
    return "/".join(parts)


def detect_conflicts(files: list[PlannedFile]) -> None:
    """Raise ``ConflictError`` for duplicate paths or file/directory clashes."""
    owners: dict[str, str] = {}
    for planned in files:
        first = owners.get(planned.path)
        if first is not None:
            raise ConflictError(
                planned.path,
                (first, planned.source),
                f"rendered by both '{first}' and '{planned.source}'",
            )
        owners[planned.path] = planned.source

    for planned in files:
        parts = planned.path.split("/")
        for depth in range(1, len(parts)):
            parent = "/".join(parts[:depth])
            if parent in owners:
                raise ConflictError(
                    parent,
                    (owners[parent], planned.source),
                    f"'{parent}' is a file but '{planned.path}' needs it as a directory",
                )


def _holds(blueprint_id: str, source: str, condition: Condition, variables: Mapping[str, Any]) -> bool:
    try:
        return condition.evaluate(variables)
    except UnresolvedReference as exc:
        raise TemplateRenderError(blueprint_id, source, f"condition '{condition}': {exc}") from exc


def _blueprint_metadata(manifest: BlueprintManifest) -> dict[str, str]:
    return {
        "id": manifest.id,
        "name": manifest.name,
        "type": manifest.type,
        "architecture": manifest.architecture,
        "version": manifest.version,
        "description": manifest.description,
    }
