"""Configuration resolver -- variant selection, smart defaults and validation.

Turns raw user input plus a complexity/disclosure setting into an immutable
``ProjectConfig`` ready for rendering.
"""

from blueprint_engine.resolver.complexity import (
    DisclosureMode,
    OutputMode,
    describe_complexity,
    determine_disclosure_mode,
    parse_complexity,
    parse_disclosure_mode,
    recommended_complexity,
)
from blueprint_engine.resolver.resolver import (
    ConfigResolver,
    ProjectConfig,
    coerce_value,
    flatten_values,
    nest_variables,
    validate_value,
    variables_for_disclosure,
)
from blueprint_engine.resolver.validators import FORMAT_VALIDATORS, check_format
from blueprint_engine.registry.models import ComplexityLevel

__all__ = [
    "ComplexityLevel",
    "ConfigResolver",
    "DisclosureMode",
    "FORMAT_VALIDATORS",
    "OutputMode",
    "ProjectConfig",
    "check_format",
    "coerce_value",
    "describe_complexity",
    "determine_disclosure_mode",
    "flatten_values",
    "nest_variables",
    "parse_complexity",
    "parse_disclosure_mode",
    "recommended_complexity",
    "validate_value",
    "variables_for_disclosure",
]
