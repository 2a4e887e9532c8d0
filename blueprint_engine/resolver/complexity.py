"""Progressive disclosure: complexity levels and disclosure modes.

Helpers an outer CLI or prompt layer uses to pick a complexity level and a
disclosure mode from user flags and experience indicators.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from ..registry.models import ComplexityLevel


class DisclosureMode(str, Enum):
    """Which variables an interactive caller is shown."""
    BASIC = "basic"
    ADVANCED = "advanced"


class OutputMode(str, Enum):
    """Where a generation writes its files."""
    DISK = "disk"
    MEMORY = "memory"


_DESCRIPTIONS: dict[ComplexityLevel, str] = {
    ComplexityLevel.SIMPLE: "Simple - Minimal structure for quick prototypes and learning",
    ComplexityLevel.STANDARD: "Standard - Balanced structure for most production applications",
    ComplexityLevel.ADVANCED: "Advanced - Comprehensive structure with enterprise patterns",
    ComplexityLevel.EXPERT: "Expert - Full-featured structure with all advanced options",
}

_SIZE_TO_COMPLEXITY: dict[str, ComplexityLevel] = {
    "small": ComplexityLevel.SIMPLE,
    "prototype": ComplexityLevel.SIMPLE,
    "medium": ComplexityLevel.STANDARD,
    "production": ComplexityLevel.STANDARD,
    "large": ComplexityLevel.ADVANCED,
    "enterprise": ComplexityLevel.ADVANCED,
}


def parse_complexity(value: Union[str, ComplexityLevel]) -> ComplexityLevel:
    """Parse a complexity name (case-insensitive).

    Raises:
        ValueError: *value* names no complexity level.
    """
    if isinstance(value, ComplexityLevel):
        return value
    try:
        return ComplexityLevel(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(level.value for level in ComplexityLevel)
        raise ValueError(f"invalid complexity level: {value} (valid options: {valid})") from None


def parse_disclosure_mode(value: Union[str, DisclosureMode]) -> DisclosureMode:
    """Parse a disclosure mode name (case-insensitive)."""
    if isinstance(value, DisclosureMode):
        return value
    try:
        return DisclosureMode(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"invalid disclosure mode: {value} (valid options: basic, advanced)") from None


def determine_disclosure_mode(
    basic: bool = False,
    advanced: bool = False,
    complexity: Optional[str] = None,
) -> DisclosureMode:
    """Pick a disclosure mode from command-line style flags.

    ``advanced`` wins over ``basic``; otherwise an Advanced or Expert
    complexity implies the advanced mode.  Unparseable complexities and the
    no-flag case fall back to basic.
    """
    if advanced:
        return DisclosureMode.ADVANCED
    if basic:
        return DisclosureMode.BASIC
    if complexity:
        try:
            level = parse_complexity(complexity)
        except ValueError:
            return DisclosureMode.BASIC
        if level >= ComplexityLevel.ADVANCED:
            return DisclosureMode.ADVANCED
    return DisclosureMode.BASIC


def recommended_complexity(first_time: bool, experienced: bool, size: str = "") -> ComplexityLevel:
    """Suggest a complexity level from experience indicators and project size."""
    if first_time or not experienced:
        return ComplexityLevel.SIMPLE
    return _SIZE_TO_COMPLEXITY.get(size.lower(), ComplexityLevel.STANDARD)


def describe_complexity(level: Union[str, ComplexityLevel]) -> str:
    """One-line, user-facing description of a complexity level."""
    try:
        return _DESCRIPTIONS[parse_complexity(level)]
    except ValueError:
        return "Unknown complexity level"
