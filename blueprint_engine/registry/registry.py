"""Blueprint registry: one-time loading, variant table and read-only lookups.

The registry reads every blueprint its source provides, validates it through
``loader.load_blueprint`` and publishes an immutable snapshot.  Population is
guarded by a lock with a double-checked fast path, so concurrent first
callers never load twice and later readers never take the lock.

The variant table maps ``(type, complexity)`` to a blueprint id.  It is built
from the manifests' ``complexity`` declarations and falls back to the
canonical blueprint (``id == type``) for every pair nobody claimed.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

from ..errors import BlueprintNotFoundError, ManifestError
from ..scaffolder.templates import TemplateRenderer
from .loader import load_blueprint
from .models import Blueprint, BlueprintManifest, ComplexityLevel
from .sources import BlueprintSource, PackageSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Snapshot:
    """Everything one load produced, published with a single assignment."""

    blueprints: Mapping[str, Blueprint] = field(default_factory=dict)
    errors: Mapping[str, ManifestError] = field(default_factory=dict)
    variants: Mapping[tuple[str, ComplexityLevel], str] = field(default_factory=dict)
    order: tuple[str, ...] = ()


class BlueprintRegistry:
    """Loads blueprints once and serves them read-only.

    Args:
        source: Backing store; defaults to the bundled blueprints.
        strict: When true, any malformed manifest fails the whole load with
            one aggregated ``ManifestError``.  Otherwise failures are recorded
            in ``errors`` and only that blueprint becomes unusable.
    """

    def __init__(self, source: Optional[BlueprintSource] = None, *, strict: bool = False) -> None:
        self.source: BlueprintSource = source if source is not None else PackageSource()
        self.strict = strict
        self._lock = threading.Lock()
        self._snapshot: Optional[_Snapshot] = None

    # -- Loading -----------------------------------------------------------

    def load(self) -> "BlueprintRegistry":
        """Populate the registry if it has not been populated yet."""
        if self._snapshot is None:
            with self._lock:
                if self._snapshot is None:
                    self._snapshot = self._build()
        return self

    def reload(self) -> "BlueprintRegistry":
        """Re-read every blueprint and atomically replace the snapshot."""
        with self._lock:
            self._snapshot = self._build()
        return self

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    def _state(self) -> _Snapshot:
        snapshot = self._snapshot
        if snapshot is None:
            self.load()
            snapshot = self._snapshot
        assert snapshot is not None
        return snapshot

    def _build(self) -> _Snapshot:
        renderer = TemplateRenderer()
        loaded: dict[str, Blueprint] = {}
        errors: dict[str, ManifestError] = {}

        for blueprint_id in self.source.list_ids():
            try:
                loaded[blueprint_id] = load_blueprint(self.source, blueprint_id, renderer)
            except ManifestError as exc:
                errors[blueprint_id] = exc

        variants = _build_variant_table(loaded, errors)

        if errors:
            if self.strict:
                problems = [
                    f"{blueprint_id}: {problem}"
                    for blueprint_id, exc in sorted(errors.items())
                    for problem in exc.problems
                ]
                raise ManifestError(", ".join(sorted(errors)), problems)
            for blueprint_id, exc in sorted(errors.items()):
                logger.warning("Skipping blueprint %s: %s", blueprint_id, exc.message)

        order = tuple(
            bp.id for bp in sorted(loaded.values(), key=lambda bp: _list_key(bp.manifest))
        )
        logger.info(
            "Loaded %d blueprint(s) from %s (%d failed)",
            len(loaded), self.source.describe(), len(errors),
        )
        return _Snapshot(
            blueprints=MappingProxyType(loaded),
            errors=MappingProxyType(errors),
            variants=MappingProxyType(variants),
            order=order,
        )

    # -- Lookups -----------------------------------------------------------

    def get(self, blueprint_id: str) -> Blueprint:
        """Return the blueprint registered under *blueprint_id*.

        Raises:
            ManifestError: The blueprint exists but failed to load.
            BlueprintNotFoundError: No such blueprint.
        """
        state = self._state()
        if blueprint_id in state.errors:
            raise state.errors[blueprint_id]
        try:
            return state.blueprints[blueprint_id]
        except KeyError:
            raise BlueprintNotFoundError(blueprint_id, available=state.order) from None

    def manifest(self, blueprint_id: str) -> BlueprintManifest:
        return self.get(blueprint_id).manifest

    def exists(self, blueprint_id: str) -> bool:
        return blueprint_id in self._state().blueprints

    def ids(self) -> list[str]:
        return list(self._state().order)

    def list(self) -> list[BlueprintManifest]:
        """All usable manifests: simple variants first, then by type and id."""
        state = self._state()
        return [state.blueprints[blueprint_id].manifest for blueprint_id in state.order]

    def list_by_type(self, blueprint_type: str) -> list[BlueprintManifest]:
        return [manifest for manifest in self.list() if manifest.type == blueprint_type]

    def types(self) -> list[str]:
        return sorted({bp.type for bp in self._state().blueprints.values()})

    @property
    def errors(self) -> Mapping[str, ManifestError]:
        return self._state().errors

    def variant_for(self, blueprint_type: str, complexity: ComplexityLevel) -> str:
        """Map ``(type, complexity)`` to the blueprint id that serves it.

        Raises:
            BlueprintNotFoundError: *blueprint_type* has no canonical blueprint.
        """
        state = self._state()
        if blueprint_type in state.errors:
            raise state.errors[blueprint_type]
        canonical = state.blueprints.get(blueprint_type)
        if canonical is None or not canonical.manifest.is_canonical:
            raise BlueprintNotFoundError(blueprint_type, available=self.types())
        return state.variants.get((blueprint_type, ComplexityLevel(complexity)), blueprint_type)

    def variant_table(self) -> Mapping[tuple[str, ComplexityLevel], str]:
        """The total ``(type, complexity) -> id`` mapping."""
        table: dict[tuple[str, ComplexityLevel], str] = {}
        for blueprint_type in self.types():
            for level in ComplexityLevel:
                table[(blueprint_type, level)] = self.variant_for(blueprint_type, level)
        return MappingProxyType(table)

    def __contains__(self, blueprint_id: object) -> bool:
        return isinstance(blueprint_id, str) and self.exists(blueprint_id)

    def __len__(self) -> int:
        return len(self._state().blueprints)


# ---------------------------------------------------------------------------
# Variant table
# ---------------------------------------------------------------------------


def _build_variant_table(
    loaded: dict[str, Blueprint],
    errors: dict[str, ManifestError],
) -> dict[tuple[str, ComplexityLevel], str]:
    """Build the variant table, moving inconsistent variants into *errors*."""
    canonical_types = {bp.type for bp in loaded.values() if bp.manifest.is_canonical}
    variants: dict[tuple[str, ComplexityLevel], str] = {}

    for blueprint_id in sorted(loaded):
        manifest = loaded[blueprint_id].manifest
        if manifest.is_canonical:
            continue
        problems: list[str] = []
        if manifest.type not in canonical_types:
            problems.append(
                f"type: no canonical blueprint '{manifest.type}' for variant '{blueprint_id}'"
            )
        claims: list[tuple[str, ComplexityLevel]] = []
        for level in manifest.complexity:
            key = (manifest.type, level)
            if key in variants:
                problems.append(
                    f"complexity: '{level.value}' of type '{manifest.type}' "
                    f"is already served by '{variants[key]}'"
                )
            else:
                claims.append(key)
        if problems:
            errors[blueprint_id] = ManifestError(blueprint_id, problems)
            del loaded[blueprint_id]
            continue
        for key in claims:
            variants[key] = blueprint_id

    return variants


def _list_key(manifest: BlueprintManifest) -> tuple[int, str, str]:
    simple_first = 0 if ComplexityLevel.SIMPLE in manifest.complexity else 1
    return (simple_first, manifest.type, manifest.id)


# ---------------------------------------------------------------------------
# Process-wide default registry
# ---------------------------------------------------------------------------

_default_registry: Optional[BlueprintRegistry] = None
_default_lock = threading.Lock()


def get_default_registry() -> BlueprintRegistry:
    """Return the shared registry over the bundled blueprints (loaded once)."""
    global _default_registry
    if _default_registry is None:
        with _default_lock:
            if _default_registry is None:
                _default_registry = BlueprintRegistry(PackageSource(), strict=True).load()
    return _default_registry


def reset_default_registry() -> None:
    """Drop the shared registry; the next call to ``get_default_registry`` reloads."""
    global _default_registry
    with _default_lock:
        _default_registry = None
