"""Pydantic v2 models for blueprint manifests.

Defines the immutable data model loaded from each blueprint's
``template.yaml``: variable definitions, conditional file specs, dependency
declarations and (opaque) post-generation hooks.  Structural invariants are
enforced by validators so that a malformed manifest is rejected when the
registry loads it, never in the middle of a generation.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .conditions import ALWAYS, Condition, parse_condition


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class VariableKind(str, Enum):
    """Value type of a blueprint variable."""
    STRING = "string"
    BOOL = "bool"
    ENUM = "enum"
    INT = "int"


class Visibility(str, Enum):
    """Which disclosure mode surfaces a variable to interactive callers."""
    BASIC = "basic"
    ADVANCED = "advanced"


class ComplexityLevel(str, Enum):
    """Ordered complexity tier: Simple < Standard < Advanced < Expert."""
    SIMPLE = "simple"
    STANDARD = "standard"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return _COMPLEXITY_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ComplexityLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ComplexityLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ComplexityLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ComplexityLevel):
            return NotImplemented
        return self.rank >= other.rank


_COMPLEXITY_ORDER = (
    ComplexityLevel.SIMPLE,
    ComplexityLevel.STANDARD,
    ComplexityLevel.ADVANCED,
    ComplexityLevel.EXPERT,
)


# Named validators understood by the resolver (see resolver.validators).
KNOWN_FORMATS = frozenset({"project_name", "module_path", "email", "semver", "go_version", "author"})

# Template context keys the planner injects; variables may not shadow them.
RESERVED_NAMES = frozenset({"blueprint", "dependencies"})

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
_DICT_ATTRIBUTES = frozenset(dir(dict))


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------

class VariableDef(BaseModel):
    """A configurable blueprint variable.

    A variable without ``default`` is required.  ``derive`` is a Jinja2
    expression (e.g. ``"github.com/username/{{ name }}"``) the resolver may use
    to synthesize a placeholder for a required variable in batch mode.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., description="Variable name, dotted segments allowed")
    kind: VariableKind = Field(default=VariableKind.STRING)
    description: str = Field(default="")
    default: Optional[Any] = Field(default=None, description="Default value; absent means required")
    allowed_values: tuple[str, ...] = Field(default=(), description="Choices for enum variables")
    visibility: Visibility = Field(default=Visibility.BASIC)
    validation: Optional[str] = Field(default=None, description="Regular expression the value must fully match")
    format: Optional[str] = Field(default=None, description="Named validator")
    minimum: Optional[int] = Field(default=None)
    maximum: Optional[int] = Field(default=None)
    derive: Optional[str] = Field(default=None, description="Placeholder template for batch resolution")

    @property
    def required(self) -> bool:
        return self.default is None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not _NAME_RE.match(value):
            raise ValueError(f"invalid variable name '{value}'")
        segments = value.split(".")
        if len(segments) > 1 and any(seg in _DICT_ATTRIBUTES for seg in segments[1:]):
            raise ValueError(f"variable name '{value}' shadows a mapping attribute")
        if segments[0] in RESERVED_NAMES:
            raise ValueError(f"variable name '{value}' is reserved")
        return value

    @field_validator("validation")
    @classmethod
    def _check_pattern(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"invalid validation pattern {value!r}: {exc}") from exc
        return value

    @field_validator("format")
    @classmethod
    def _check_format(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in KNOWN_FORMATS:
            raise ValueError(f"unknown format '{value}' (known: {', '.join(sorted(KNOWN_FORMATS))})")
        return value

    @model_validator(mode="after")
    def _check_kind_constraints(self) -> "VariableDef":
        if self.kind is VariableKind.ENUM:
            if not self.allowed_values:
                raise ValueError(f"enum variable '{self.name}' needs a non-empty allowed_values")
            if self.default is not None and self.default not in self.allowed_values:
                raise ValueError(
                    f"default {self.default!r} of '{self.name}' is not one of {list(self.allowed_values)}"
                )
        elif self.allowed_values:
            raise ValueError(f"allowed_values is only valid for enum variables ('{self.name}')")

        if (self.minimum is not None or self.maximum is not None) and self.kind is not VariableKind.INT:
            raise ValueError(f"minimum/maximum are only valid for int variables ('{self.name}')")
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ValueError(f"minimum exceeds maximum for '{self.name}'")

        if self.default is not None:
            expected = {
                VariableKind.STRING: str,
                VariableKind.ENUM: str,
                VariableKind.BOOL: bool,
                VariableKind.INT: int,
            }[self.kind]
            wrong_int = self.kind is VariableKind.INT and isinstance(self.default, bool)
            if not isinstance(self.default, expected) or wrong_int:
                raise ValueError(
                    f"default of '{self.name}' must be {self.kind.value}, got {type(self.default).__name__}"
                )
        return self


# ---------------------------------------------------------------------------
# Files, dependencies, hooks
# ---------------------------------------------------------------------------

class FileSpec(BaseModel):
    """One conditional output file."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    source: str = Field(..., min_length=1, description="Template path inside the blueprint")
    destination: str = Field(..., description="Destination path template")
    condition: Condition = Field(default=ALWAYS)
    executable: bool = Field(default=False)

    @field_validator("destination")
    @classmethod
    def _check_destination(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("destination must not be empty")
        return value

    @field_validator("condition", mode="before")
    @classmethod
    def _parse_condition(cls, value: Any) -> Condition:
        return parse_condition(value)


class DependencySpec(BaseModel):
    """An external module the generated project depends on."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    module: str = Field(..., min_length=1)
    version: str = Field(default="")
    condition: Condition = Field(default=ALWAYS)

    @field_validator("condition", mode="before")
    @classmethod
    def _parse_condition(cls, value: Any) -> Condition:
        return parse_condition(value)

    def requirement(self) -> str:
        """Return ``module@version`` (or just ``module`` when unpinned)."""
        return f"{self.module}@{self.version}" if self.version else self.module


class HookSpec(BaseModel):
    """Post-generation command.  Never executed by the engine."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    command: str
    args: tuple[str, ...] = Field(default=())
    work_dir: str = Field(default="")


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------

class BlueprintManifest(BaseModel):
    """The structured description of one blueprint."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1)
    name: str = Field(default="")
    description: str = Field(default="")
    type: str = Field(..., min_length=1, description="Blueprint type, e.g. 'cli' or 'web-api'")
    architecture: str = Field(default="standard")
    version: str = Field(default="1.0.0")
    complexity: tuple[ComplexityLevel, ...] = Field(
        default=(),
        description="Complexity levels for which this manifest is the specialised variant of its type",
    )
    tags: tuple[str, ...] = Field(default=())
    variables: tuple[VariableDef, ...] = Field(default=())
    files: tuple[FileSpec, ...] = Field(default=())
    dependencies: tuple[DependencySpec, ...] = Field(default=())
    hooks: tuple[HookSpec, ...] = Field(default=())

    @model_validator(mode="after")
    def _check_variables(self) -> "BlueprintManifest":
        seen: set[str] = set()
        for var in self.variables:
            if var.name in seen:
                raise ValueError(f"duplicate variable name '{var.name}'")
            seen.add(var.name)
        for name in seen:
            prefix = name + "."
            clash = next((other for other in seen if other.startswith(prefix)), None)
            if clash is not None:
                raise ValueError(f"variable '{name}' conflicts with nested variable '{clash}'")
        if self.id == self.type and self.complexity:
            raise ValueError("the canonical blueprint of a type cannot declare complexity variants")

        undeclared = [
            f"{where}.{index}.condition references undeclared variable(s): {', '.join(sorted(names))}"
            for where, specs in (("files", self.files), ("dependencies", self.dependencies))
            for index, spec in enumerate(specs)
            if (names := spec.condition.mentions() - seen)
        ]
        if undeclared:
            raise ValueError("; ".join(undeclared))
        return self

    @property
    def is_canonical(self) -> bool:
        return self.id == self.type

    def variable(self, name: str) -> Optional[VariableDef]:
        return next((var for var in self.variables if var.name == name), None)

    def variable_names(self) -> tuple[str, ...]:
        return tuple(var.name for var in self.variables)


# ---------------------------------------------------------------------------
# Loaded blueprint
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Blueprint:
    """A validated manifest plus its template texts (read-only)."""

    manifest: BlueprintManifest
    templates: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "templates", MappingProxyType(dict(self.templates)))

    @property
    def id(self) -> str:
        return self.manifest.id

    @property
    def type(self) -> str:
        return self.manifest.type

    def template(self, source: str) -> str:
        return self.templates[source]
