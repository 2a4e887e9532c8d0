"""Variable/configuration resolution.

Turns raw, possibly incomplete user input into an immutable, fully typed
``ProjectConfig``:

1. Pick the blueprint serving ``(type, complexity)`` (or honour an explicit
   ``blueprint_id``)
2. Coerce every supplied value to its variable kind and validate it
3. Fill omitted values from the user profile, then from manifest defaults
4. Synthesize required values from their ``derive`` expression, but only
   when the caller declared a non-interactive resolution (or the variable is
   advanced and a basic prompt would never have asked for it)

Resolution either fully succeeds or raises ``VariableValidationError``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Optional, Union

from jinja2 import TemplateError

from ..errors import VariableValidationError
from ..registry import Blueprint, BlueprintManifest, BlueprintRegistry, ComplexityLevel, get_default_registry
from ..registry.models import VariableDef, VariableKind, Visibility
from ..scaffolder.templates import TemplateRenderer
from .complexity import DisclosureMode, OutputMode, parse_complexity, parse_disclosure_mode
from .validators import check_format

logger = logging.getLogger(__name__)

_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})

# Raw key that selects a blueprint explicitly instead of by complexity.
BLUEPRINT_ID_KEY = "blueprint_id"


# ---------------------------------------------------------------------------
# ProjectConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectConfig:
    """Resolved, validated input for one generation request."""

    blueprint_id: str
    blueprint_type: str
    complexity: ComplexityLevel
    disclosure_mode: DisclosureMode
    output_mode: OutputMode
    variables: Mapping[str, Any] = field(default_factory=dict)
    defaulted: frozenset[str] = frozenset()
    synthesized: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))

    def __getitem__(self, name: str) -> Any:
        return self.variables[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.variables.get(name, default)

    @property
    def supplied(self) -> frozenset[str]:
        """Names whose value came from the caller."""
        return frozenset(self.variables) - self.defaulted - self.synthesized

    def context(self) -> dict[str, Any]:
        """Template context: dotted names become nested mappings.

        ``{"database.driver": "postgres"}`` is exposed as
        ``{"database": {"driver": "postgres"}}``.  A fresh dict is returned
        on every call.
        """
        return nest_variables(self.variables)


def nest_variables(variables: Mapping[str, Any]) -> dict[str, Any]:
    nested: dict[str, Any] = {}
    for name, value in variables.items():
        *parents, leaf = name.split(".")
        node = nested
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value
    return nested


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class ConfigResolver:
    """Resolves raw input against the blueprints of one registry.

    Args:
        registry: Blueprint registry; defaults to the bundled blueprints.
        profile: User-level defaults (author, email, license, ...) applied
            before manifest defaults.
        non_interactive: Default for ``resolve(non_interactive=...)``.
    """

    def __init__(
        self,
        registry: Optional[BlueprintRegistry] = None,
        *,
        profile: Optional[Mapping[str, Any]] = None,
        non_interactive: bool = False,
        renderer: Optional[TemplateRenderer] = None,
    ) -> None:
        self.registry = registry if registry is not None else get_default_registry()
        self.profile = MappingProxyType(dict(profile or {}))
        self.non_interactive = non_interactive
        self.renderer = renderer or TemplateRenderer()

    # -- Variant selection -------------------------------------------------

    def select_blueprint(
        self,
        blueprint_type: str,
        complexity: Union[str, ComplexityLevel],
    ) -> Blueprint:
        """Return the blueprint serving ``(blueprint_type, complexity)``."""
        blueprint_id = self.registry.variant_for(blueprint_type, parse_complexity(complexity))
        return self.registry.get(blueprint_id)

    # -- Resolution --------------------------------------------------------

    def resolve(
        self,
        blueprint_type: str,
        complexity: Union[str, ComplexityLevel],
        disclosure_mode: Union[str, DisclosureMode],
        raw_values: Optional[Mapping[str, Any]] = None,
        *,
        non_interactive: Optional[bool] = None,
        output_mode: Union[str, OutputMode] = OutputMode.DISK,
    ) -> ProjectConfig:
        """Resolve *raw_values* into a ``ProjectConfig``.

        Raises:
            VariableValidationError: A value is missing, malformed or unknown.
            BlueprintNotFoundError: No blueprint serves *blueprint_type*.
        """
        level = _parse_setting("complexity", parse_complexity, complexity)
        mode = _parse_setting("disclosure_mode", parse_disclosure_mode, disclosure_mode)
        output = _parse_setting("output_mode", OutputMode, output_mode)
        batch = self.non_interactive if non_interactive is None else non_interactive

        raw = flatten_values(raw_values or {})
        blueprint = self._pick_blueprint(blueprint_type, level, raw.pop(BLUEPRINT_ID_KEY, None))
        manifest = blueprint.manifest

        known = set(manifest.variable_names())
        for name in sorted(raw):
            if name not in known:
                raise VariableValidationError(
                    name, "unknown variable", blueprint_id=manifest.id, value=raw[name]
                )

        resolved: dict[str, Any] = {}
        defaulted: set[str] = set()
        pending: list[VariableDef] = []

        for var in manifest.variables:
            if var.name in raw:
                resolved[var.name] = self._accept(manifest, var, raw[var.name])
            elif var.name in self.profile:
                resolved[var.name] = self._accept(manifest, var, self.profile[var.name])
                defaulted.add(var.name)
            elif var.default is not None:
                resolved[var.name] = self._accept(manifest, var, var.default)
                defaulted.add(var.name)
            elif var.derive is not None and _may_synthesize(var, mode, batch):
                pending.append(var)
            else:
                raise VariableValidationError(
                    var.name, "a value is required", blueprint_id=manifest.id
                )

        for var in pending:
            resolved[var.name] = self._synthesize(manifest, var, resolved)

        config = ProjectConfig(
            blueprint_id=manifest.id,
            blueprint_type=manifest.type,
            complexity=level,
            disclosure_mode=mode,
            output_mode=output,
            variables={var.name: resolved[var.name] for var in manifest.variables},
            defaulted=frozenset(defaulted),
            synthesized=frozenset(var.name for var in pending),
        )
        logger.debug(
            "Resolved %s (%s/%s): %d supplied, %d defaulted, %d synthesized",
            config.blueprint_id, level.value, mode.value,
            len(config.supplied), len(config.defaulted), len(config.synthesized),
        )
        return config

    # -- Internal helpers --------------------------------------------------

    def _pick_blueprint(
        self,
        blueprint_type: str,
        level: ComplexityLevel,
        override: Any,
    ) -> Blueprint:
        if override is None:
            return self.select_blueprint(blueprint_type, level)
        blueprint = self.registry.get(str(override))
        if blueprint.type != blueprint_type:
            raise VariableValidationError(
                BLUEPRINT_ID_KEY,
                f"blueprint '{blueprint.id}' is of type '{blueprint.type}', not '{blueprint_type}'",
                value=override,
            )
        return blueprint

    def _accept(self, manifest: BlueprintManifest, var: VariableDef, value: Any) -> Any:
        try:
            typed = coerce_value(var, value)
            validate_value(var, typed)
        except ValueError as exc:
            raise VariableValidationError(
                var.name, str(exc), blueprint_id=manifest.id, value=value
            ) from exc
        return typed

    def _synthesize(
        self,
        manifest: BlueprintManifest,
        var: VariableDef,
        resolved: Mapping[str, Any],
    ) -> Any:
        assert var.derive is not None
        try:
            text = self.renderer.render_string(var.derive, nest_variables(resolved))
        except TemplateError as exc:
            raise VariableValidationError(
                var.name, f"cannot synthesize a value: {exc}", blueprint_id=manifest.id
            ) from exc
        value = self._accept(manifest, var, text.strip())
        logger.info("Synthesized %s=%r for %s", var.name, value, manifest.id)
        return value


# ---------------------------------------------------------------------------
# Coercion and validation
# ---------------------------------------------------------------------------


def coerce_value(var: VariableDef, value: Any) -> Any:
    """Convert a raw value to *var*'s kind; raises ``ValueError``."""
    if var.kind is VariableKind.BOOL:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            word = value.strip().lower()
            if word in _TRUE_WORDS:
                return True
            if word in _FALSE_WORDS:
                return False
        raise ValueError(f"expected a boolean, got {value!r}")

    if var.kind is VariableKind.INT:
        if isinstance(value, bool):
            raise ValueError(f"expected an integer, got {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip(), 10)
            except ValueError:
                pass
        raise ValueError(f"expected an integer, got {value!r}")

    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {type(value).__name__}")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ValueError(f"not valid UTF-8 text (offset {exc.start})") from None
    return value


def validate_value(var: VariableDef, value: Any) -> None:
    """Check a typed value against *var*'s constraints; raises ``ValueError``."""
    if var.kind is VariableKind.ENUM:
        if value not in var.allowed_values:
            raise ValueError(f"'{value}' is not one of: {', '.join(var.allowed_values)}")
        return

    if var.kind is VariableKind.INT:
        if var.minimum is not None and value < var.minimum:
            raise ValueError(f"{value} is below the minimum of {var.minimum}")
        if var.maximum is not None and value > var.maximum:
            raise ValueError(f"{value} is above the maximum of {var.maximum}")
        return

    if var.kind is VariableKind.STRING:
        if var.validation is not None and re.fullmatch(var.validation, value) is None:
            raise ValueError(f"'{value}' does not match pattern {var.validation}")
        if var.format is not None:
            check_format(var.format, value)


def variables_for_disclosure(
    manifest: BlueprintManifest,
    mode: Union[str, DisclosureMode],
) -> list[VariableDef]:
    """Variables a prompt layer should show in *mode* (advisory only)."""
    if parse_disclosure_mode(mode) is DisclosureMode.ADVANCED:
        return list(manifest.variables)
    return [var for var in manifest.variables if var.visibility is Visibility.BASIC]


def flatten_values(raw: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted names (``database.driver``)."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(flatten_values(value, name + "."))
        else:
            flat[name] = value
    return flat


def _may_synthesize(var: VariableDef, mode: DisclosureMode, non_interactive: bool) -> bool:
    if non_interactive:
        return True
    return var.visibility is Visibility.ADVANCED and mode is DisclosureMode.BASIC


def _parse_setting(name: str, parse: Any, value: Any) -> Any:
    try:
        return parse(value)
    except ValueError as exc:
        raise VariableValidationError(name, str(exc), value=value) from exc
