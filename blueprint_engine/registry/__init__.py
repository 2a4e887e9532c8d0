"""Blueprint registry -- manifests, sources, loading and variant lookup.

Loads blueprint manifests (YAML) and their Jinja2 templates from a backing
store, validates them once, and serves them read-only to any number of
concurrent generation requests.
"""

from blueprint_engine.registry.conditions import (
    ALWAYS,
    And,
    Condition,
    ConditionSyntaxError,
    Const,
    Eq,
    Exists,
    In,
    Not,
    Or,
    UnresolvedReference,
    parse_condition,
)
from blueprint_engine.registry.models import (
    Blueprint,
    BlueprintManifest,
    ComplexityLevel,
    DependencySpec,
    FileSpec,
    HookSpec,
    VariableDef,
    VariableKind,
    Visibility,
)
from blueprint_engine.registry.sources import BlueprintSource, DirectorySource, InMemorySource, PackageSource
from blueprint_engine.registry.loader import load_blueprint, parse_manifest
from blueprint_engine.registry.registry import BlueprintRegistry, get_default_registry, reset_default_registry

__all__ = [
    "ALWAYS",
    "And",
    "Blueprint",
    "BlueprintManifest",
    "BlueprintRegistry",
    "BlueprintSource",
    "ComplexityLevel",
    "Condition",
    "ConditionSyntaxError",
    "Const",
    "DependencySpec",
    "DirectorySource",
    "Eq",
    "Exists",
    "FileSpec",
    "HookSpec",
    "In",
    "InMemorySource",
    "Not",
    "Or",
    "PackageSource",
    "UnresolvedReference",
    "VariableDef",
    "VariableKind",
    "Visibility",
    "get_default_registry",
    "load_blueprint",
    "parse_condition",
    "parse_manifest",
    "reset_default_registry",
]
