"""Jinja2 template rendering for blueprint files.

Provides the TemplateRenderer class which compiles blueprint templates,
destination paths and ``derive`` expressions in a sandboxed Jinja2
environment and renders them against a resolved variable context.  Undefined
names are errors (``StrictUndefined``) so a typo in a blueprint never renders
as an empty string.

Rendering is pure: the environment carries no global state besides the fixed
filter library below, and one renderer may be shared by any number of
concurrent generation requests.
"""

from __future__ import annotations

import re
from typing import Any

from jinja2 import StrictUndefined, Template
from jinja2.sandbox import ImmutableSandboxedEnvironment


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Compiles and renders blueprint templates.

    Besides Jinja's built-in filters (``replace``, ``trim``, ``upper``,
    ``lower``, ``default``...), templates may use the case-conversion helpers
    ``slugify``, ``pascal_case``, ``snake_case``, ``camel_case``,
    ``kebab_case`` and ``default_if_empty``.
    """

    def __init__(self) -> None:
        self.env = ImmutableSandboxedEnvironment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        # Register custom filters
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["camel_case"] = _camel_case_filter
        self.env.filters["kebab_case"] = _kebab_case_filter
        self.env.filters["default_if_empty"] = _default_if_empty_filter

    # -- Compilation -------------------------------------------------------

    def compile(self, template_string: str) -> Template:
        """Compile *template_string*; raises ``jinja2.TemplateSyntaxError``."""
        return self.env.from_string(template_string)

    # -- Rendering ---------------------------------------------------------

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        return self.render(self.compile(template_string), context)

    def render(self, template: Template, context: dict[str, Any]) -> str:
        """Render an already compiled template."""
        return template.render(**context)


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

_WORD_SPLIT_RE = re.compile(r"[-_.\s/]+")


def _slugify_filter(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", str(value).lower().strip())
    return slug.strip("-")


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = _WORD_SPLIT_RE.split(str(value))
    return "".join(word[:1].upper() + word[1:] for word in parts if word)


def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", str(value))
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-.\s]+", "_", s2).lower()


def _camel_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``."""
    pascal = _pascal_case_filter(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


def _kebab_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some_thing`` to ``some-thing``."""
    return _snake_case_filter(value).replace("_", "-")


def _default_if_empty_filter(value: Any, fallback: Any = "") -> Any:
    """Return *fallback* when *value* is ``None`` or an empty string."""
    if value is None or value == "":
        return fallback
    return value
