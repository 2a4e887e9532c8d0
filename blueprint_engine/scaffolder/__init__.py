"""Blueprint scaffolder -- renders generation plans and materialises them.

Takes a loaded ``Blueprint`` plus a resolved ``ProjectConfig``, renders the
conditional file list into a ``GenerationPlan``, and writes the plan to disk
or to an in-memory tree with all-or-nothing semantics.

Quick usage::

    from blueprint_engine.scaffolder import DiskTarget, PlanRenderer, ProjectGenerator

    plan = PlanRenderer().render(blueprint, config)
    result = ProjectGenerator(DiskTarget("/tmp/output/my-app")).execute(plan)
"""

from blueprint_engine.scaffolder.templates import TemplateRenderer
from blueprint_engine.scaffolder.planner import (
    GenerationPlan,
    PlannedFile,
    PlanRenderer,
    detect_conflicts,
    normalize_destination,
)
from blueprint_engine.scaffolder.targets import DiskTarget, FileSnapshot, MemoryTarget, WriteTarget
from blueprint_engine.scaffolder.generator import (
    GenerationResult,
    GenerationState,
    GenerationTransaction,
    ProjectGenerator,
)

__all__ = [
    "DiskTarget",
    "FileSnapshot",
    "GenerationPlan",
    "GenerationResult",
    "GenerationState",
    "GenerationTransaction",
    "MemoryTarget",
    "PlanRenderer",
    "PlannedFile",
    "ProjectGenerator",
    "TemplateRenderer",
    "WriteTarget",
    "detect_conflicts",
    "normalize_destination",
]
