"""Blueprint resolution and generation engine.

Generates complete project trees from parameterised blueprints: reusable
skeletons for web services, CLIs, libraries and serverless functions.

Quick usage::

    from blueprint_engine import BlueprintEngine, OutputSpec

    engine = BlueprintEngine()
    config = engine.resolve_config("cli", "simple", "basic", {"name": "app"}, non_interactive=True)
    plan = engine.render_plan(config.blueprint_id, config)
    result = engine.generate(plan, OutputSpec.disk("./app"))
"""

from blueprint_engine.errors import (
    BlueprintEngineError,
    BlueprintNotFoundError,
    ConflictError,
    ManifestError,
    RollbackError,
    TemplateRenderError,
    VariableValidationError,
    WriteError,
)
from blueprint_engine.registry import (
    Blueprint,
    BlueprintManifest,
    BlueprintRegistry,
    ComplexityLevel,
    DirectorySource,
    InMemorySource,
    PackageSource,
    get_default_registry,
)
from blueprint_engine.resolver import ConfigResolver, DisclosureMode, OutputMode, ProjectConfig
from blueprint_engine.scaffolder import (
    DiskTarget,
    GenerationPlan,
    GenerationResult,
    GenerationState,
    MemoryTarget,
    PlanRenderer,
    ProjectGenerator,
)
from blueprint_engine.config import EngineConfig
from blueprint_engine.engine import (
    BlueprintEngine,
    OutputSpec,
    create_project,
    generate,
    get_default_engine,
    list_blueprints,
    preview,
    render_plan,
    resolve_config,
)

__version__ = "0.1.0"

__all__ = [
    "Blueprint",
    "BlueprintEngine",
    "BlueprintEngineError",
    "BlueprintManifest",
    "BlueprintNotFoundError",
    "BlueprintRegistry",
    "ComplexityLevel",
    "ConfigResolver",
    "ConflictError",
    "DirectorySource",
    "DisclosureMode",
    "DiskTarget",
    "EngineConfig",
    "GenerationPlan",
    "GenerationResult",
    "GenerationState",
    "InMemorySource",
    "ManifestError",
    "MemoryTarget",
    "OutputMode",
    "OutputSpec",
    "PackageSource",
    "PlanRenderer",
    "ProjectConfig",
    "ProjectGenerator",
    "RollbackError",
    "TemplateRenderError",
    "VariableValidationError",
    "WriteError",
    "create_project",
    "generate",
    "get_default_engine",
    "get_default_registry",
    "list_blueprints",
    "preview",
    "render_plan",
    "resolve_config",
]
