"""Blueprint engine facade.

Wires the registry, resolver, planner and generator together behind the
three entry points external collaborators (prompt UI, CLI layer, web
preview) consume:

``resolve_config``  -- raw input -> ``ProjectConfig``
``render_plan``     -- blueprint id + config -> ``GenerationPlan``
``generate``        -- plan + output -> ``GenerationResult``

plus the ``create_project`` / ``preview`` conveniences that chain all three.

Usage::

    from blueprint_engine import BlueprintEngine, OutputSpec

    engine = BlueprintEngine()
    result = engine.create_project(
        "cli", {"name": "app"}, OutputSpec.disk("./app"),
        complexity="simple", non_interactive=True,
    )
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from blueprint_engine.config import EngineConfig
from blueprint_engine.registry import BlueprintManifest, BlueprintRegistry, ComplexityLevel, get_default_registry
from blueprint_engine.resolver import ConfigResolver, DisclosureMode, OutputMode, ProjectConfig
from blueprint_engine.scaffolder import (
    DiskTarget,
    GenerationPlan,
    GenerationResult,
    MemoryTarget,
    PlanRenderer,
    ProjectGenerator,
    WriteTarget,
)
from blueprint_engine.utils import configure_logging

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Output selection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OutputSpec:
    """Where ``generate`` writes: a disk root or a fresh in-memory tree.

    ``overwrite=None`` defers to ``EngineConfig.overwrite``.
    """

    mode: OutputMode
    root: Optional[Path] = None
    overwrite: Optional[bool] = None

    @classmethod
    def disk(cls, root: Union[str, Path], overwrite: Optional[bool] = None) -> "OutputSpec":
        return cls(OutputMode.DISK, Path(root), overwrite)

    @classmethod
    def memory(cls) -> "OutputSpec":
        return cls(OutputMode.MEMORY)

    def target(self) -> WriteTarget:
        if self.mode is OutputMode.DISK:
            if self.root is None:
                raise ValueError("disk output needs a root directory")
            return DiskTarget(self.root)
        return MemoryTarget()


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class BlueprintEngine:
    """Blueprint resolution and generation engine.

    One engine can serve any number of concurrent requests: the registry is
    read-only after loading and every request builds its own config, plan,
    target and result.

    Attributes:
        config: Engine configuration.
        registry: Source of blueprints.
        resolver: Turns raw input into ``ProjectConfig`` objects.
        planner: Turns a blueprint plus config into a ``GenerationPlan``.
    """

    def __init__(
        self,
        registry: Optional[BlueprintRegistry] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.config = config or EngineConfig()
        if "log_level" in self.config.model_fields_set:
            configure_logging(self.config.log_level)
        if registry is None:
            if self.config.blueprints_dir is None:
                registry = get_default_registry()
            else:
                registry = self.config.build_registry()
        self.registry = registry
        self.resolver = ConfigResolver(
            registry,
            profile=self.config.profile,
            non_interactive=self.config.non_interactive,
        )
        self.planner = PlanRenderer(self.resolver.renderer)

    # ------------------------------------------------------------------
    # The three entry points
    # ------------------------------------------------------------------

    def resolve_config(
        self,
        blueprint_type: str,
        complexity: Union[str, ComplexityLevel, None] = None,
        disclosure_mode: Union[str, DisclosureMode, None] = None,
        raw_values: Optional[Mapping[str, Any]] = None,
        *,
        non_interactive: Optional[bool] = None,
        output_mode: Union[str, OutputMode] = OutputMode.DISK,
    ) -> ProjectConfig:
        """Resolve raw input into a validated ``ProjectConfig``.

        ``complexity`` and ``disclosure_mode`` default to the configured
        ``default_complexity`` / ``default_disclosure``.
        """
        return self.resolver.resolve(
            blueprint_type,
            complexity if complexity is not None else self.config.default_complexity,
            disclosure_mode if disclosure_mode is not None else self.config.default_disclosure,
            raw_values,
            non_interactive=non_interactive,
            output_mode=output_mode,
        )

    def render_plan(self, blueprint_id: str, config: ProjectConfig) -> GenerationPlan:
        """Render *blueprint_id* against *config* (no I/O)."""
        return self.planner.render(self.registry.get(blueprint_id), config)

    def generate(self, plan: GenerationPlan, output: OutputSpec) -> GenerationResult:
        """Materialise *plan* on the requested output, all or nothing."""
        overwrite = self.config.overwrite if output.overwrite is None else output.overwrite
        generator = ProjectGenerator(output.target(), overwrite=overwrite)
        return generator.execute(plan)

    async def generate_async(self, plan: GenerationPlan, output: OutputSpec) -> GenerationResult:
        """Run :meth:`generate` in a worker thread."""
        return await asyncio.to_thread(self.generate, plan, output)

    # ------------------------------------------------------------------
    # Conveniences
    # ------------------------------------------------------------------

    def create_project(
        self,
        blueprint_type: str,
        raw_values: Optional[Mapping[str, Any]],
        output: OutputSpec,
        *,
        complexity: Union[str, ComplexityLevel, None] = None,
        disclosure_mode: Union[str, DisclosureMode, None] = None,
        non_interactive: Optional[bool] = None,
    ) -> GenerationResult:
        """Resolve, render and generate in one call."""
        config = self.resolve_config(
            blueprint_type,
            complexity,
            disclosure_mode,
            raw_values,
            non_interactive=non_interactive,
            output_mode=output.mode,
        )
        plan = self.render_plan(config.blueprint_id, config)
        logger.info(
            "Creating %s project from %s (%d file(s), %s)",
            blueprint_type, config.blueprint_id, len(plan), output.mode.value,
        )
        return self.generate(plan, output)

    async def create_project_async(
        self,
        blueprint_type: str,
        raw_values: Optional[Mapping[str, Any]],
        output: OutputSpec,
        **kwargs: Any,
    ) -> GenerationResult:
        """Run :meth:`create_project` in a worker thread."""
        return await asyncio.to_thread(self.create_project, blueprint_type, raw_values, output, **kwargs)

    def preview(
        self,
        blueprint_type: str,
        raw_values: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> GenerationResult:
        """Generate into memory; ``result.files`` holds the virtual tree."""
        return self.create_project(blueprint_type, raw_values, OutputSpec.memory(), **kwargs)

    def list_blueprints(self, blueprint_type: Optional[str] = None) -> list[BlueprintManifest]:
        """Available blueprints in listing order, optionally of one type."""
        if blueprint_type is None:
            return self.registry.list()
        return self.registry.list_by_type(blueprint_type)


# ---------------------------------------------------------------------------
# Module-level shortcuts over a shared default engine
# ---------------------------------------------------------------------------

_default_engine: Optional[BlueprintEngine] = None
_engine_lock = threading.Lock()


def get_default_engine() -> BlueprintEngine:
    """Return the shared engine over the bundled blueprints."""
    global _default_engine
    if _default_engine is None:
        with _engine_lock:
            if _default_engine is None:
                _default_engine = BlueprintEngine()
    return _default_engine


def resolve_config(
    blueprint_type: str,
    complexity: Union[str, ComplexityLevel, None] = None,
    disclosure_mode: Union[str, DisclosureMode, None] = None,
    raw_values: Optional[Mapping[str, Any]] = None,
    **kwargs: Any,
) -> ProjectConfig:
    return get_default_engine().resolve_config(
        blueprint_type, complexity, disclosure_mode, raw_values, **kwargs
    )


def render_plan(blueprint_id: str, config: ProjectConfig) -> GenerationPlan:
    return get_default_engine().render_plan(blueprint_id, config)


def generate(plan: GenerationPlan, output: OutputSpec) -> GenerationResult:
    return get_default_engine().generate(plan, output)


def create_project(
    blueprint_type: str,
    raw_values: Optional[Mapping[str, Any]],
    output: OutputSpec,
    **kwargs: Any,
) -> GenerationResult:
    return get_default_engine().create_project(blueprint_type, raw_values, output, **kwargs)


def preview(blueprint_type: str, raw_values: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> GenerationResult:
    return get_default_engine().preview(blueprint_type, raw_values, **kwargs)


def list_blueprints(blueprint_type: Optional[str] = None) -> list[BlueprintManifest]:
    return get_default_engine().list_blueprints(blueprint_type)
