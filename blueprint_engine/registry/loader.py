"""Manifest loading and load-time validation.

``load_blueprint`` turns the raw bytes a ``BlueprintSource`` provides into an
immutable ``Blueprint``.  Every structural problem is reported as a
``ManifestError`` here, so the planner never meets a malformed manifest:

1. YAML syntax (PyYAML ``safe_load``)
2. Schema and invariants (pydantic models in ``registry.models``)
3. Template references: every ``FileSpec.source`` must exist in the source
4. Jinja2 syntax of every referenced template, destination and ``derive``
"""

from __future__ import annotations

import logging
from typing import Any

import yaml
from jinja2 import TemplateSyntaxError
from pydantic import ValidationError

from ..errors import ManifestError
from ..scaffolder.templates import TemplateRenderer
from .models import Blueprint, BlueprintManifest
from .sources import BlueprintSource

logger = logging.getLogger(__name__)


def load_blueprint(
    source: BlueprintSource,
    blueprint_id: str,
    renderer: TemplateRenderer | None = None,
) -> Blueprint:
    """Load and fully validate one blueprint from *source*.

    Raises:
        ManifestError: Listing every problem found (not only the first).
    """
    renderer = renderer or TemplateRenderer()
    manifest = parse_manifest(_read_manifest(source, blueprint_id), blueprint_id)

    problems: list[str] = []
    available = set(source.list_templates(blueprint_id))
    templates: dict[str, str] = {}

    for index, spec in enumerate(manifest.files):
        where = f"files.{index}"
        if spec.source not in available:
            problems.append(f"{where}.source: template '{spec.source}' not found")
        elif spec.source not in templates:
            try:
                text = source.read_template(blueprint_id, spec.source)
            except (OSError, UnicodeDecodeError) as exc:
                problems.append(f"{where}.source: cannot read '{spec.source}': {exc}")
            else:
                templates[spec.source] = text
                _check_syntax(renderer, text, f"{where}.source ({spec.source})", problems)
        _check_syntax(renderer, spec.destination, f"{where}.destination", problems)

    for var in manifest.variables:
        if var.derive is not None:
            _check_syntax(renderer, var.derive, f"variables.{var.name}.derive", problems)

    if problems:
        raise ManifestError(blueprint_id, problems)

    logger.debug(
        "Loaded blueprint %s (%d variables, %d files)",
        blueprint_id, len(manifest.variables), len(manifest.files),
    )
    return Blueprint(manifest=manifest, templates=templates)


def parse_manifest(text: str, blueprint_id: str) -> BlueprintManifest:
    """Parse manifest YAML into a validated ``BlueprintManifest``.

    The ``id`` defaults to *blueprint_id* (the directory name) and, when
    present, must agree with it.
    """
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ManifestError(blueprint_id, [f"invalid YAML: {exc}"]) from exc

    if not isinstance(raw, dict):
        raise ManifestError(blueprint_id, ["manifest must be a mapping"])

    declared = raw.setdefault("id", blueprint_id)
    if declared != blueprint_id:
        raise ManifestError(
            blueprint_id, [f"id: declared id '{declared}' does not match '{blueprint_id}'"]
        )

    try:
        return BlueprintManifest.model_validate(raw)
    except ValidationError as exc:
        raise ManifestError(blueprint_id, format_validation_errors(exc)) from exc


def format_validation_errors(exc: ValidationError) -> list[str]:
    """Flatten a pydantic error into ``"loc: message"`` lines."""
    lines: list[str] = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ())) or "manifest"
        lines.append(f"{loc}: {error.get('msg', 'invalid value')}")
    return lines


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_manifest(source: BlueprintSource, blueprint_id: str) -> str:
    try:
        return source.read_manifest(blueprint_id)
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(blueprint_id, [f"manifest unreadable: {exc}"]) from exc


def _check_syntax(renderer: TemplateRenderer, text: Any, where: str, problems: list[str]) -> None:
    try:
        renderer.compile(text)
    except TemplateSyntaxError as exc:
        problems.append(f"{where}: template syntax error on line {exc.lineno}: {exc.message}")
