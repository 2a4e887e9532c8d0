"""Blueprint engine configuration.

Centralised, typed configuration for the engine. All settings use Pydantic v2
models so they can be validated at construction time and serialised to/from
JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from blueprint_engine.registry import BlueprintRegistry, DirectorySource, PackageSource
from blueprint_engine.registry.models import ComplexityLevel
from blueprint_engine.resolver.complexity import DisclosureMode

_TRUTHY = {"1", "true", "yes", "on"}

# Environment variables copied into ``EngineConfig.profile``.
PROFILE_ENV: dict[str, str] = {
    "BLUEPRINT_AUTHOR": "author",
    "BLUEPRINT_EMAIL": "email",
    "BLUEPRINT_LICENSE": "license",
}


class EngineConfig(BaseModel):
    """Global blueprint engine configuration.

    Instances are typically created once by the CLI entry point (or by
    ``EngineConfig.from_env()``) and handed to ``BlueprintEngine``.
    """

    blueprints_dir: Optional[Path] = Field(
        default=None, description="Directory of blueprints; None uses the bundled ones"
    )
    strict_manifests: bool = Field(
        default=False, description="Fail the whole registry load on any malformed manifest"
    )
    non_interactive: bool = Field(
        default=False, description="Allow synthesizing required values (batch mode)"
    )
    overwrite: bool = Field(default=False, description="Allow replacing existing files on disk")
    log_level: str = Field(
        default="WARNING",
        description="Package log level; applied by BlueprintEngine only when set explicitly",
    )
    default_complexity: ComplexityLevel = Field(default=ComplexityLevel.STANDARD)
    default_disclosure: DisclosureMode = Field(default=DisclosureMode.BASIC)
    profile: dict[str, str] = Field(
        default_factory=dict,
        description="User defaults (author, email, license...) applied before manifest defaults",
    )

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{value}'")
        return value

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def build_registry(self) -> BlueprintRegistry:
        """Create (but do not load) the registry this configuration describes."""
        if self.blueprints_dir is None:
            return BlueprintRegistry(PackageSource(), strict=self.strict_manifests)
        return BlueprintRegistry(DirectorySource(self.blueprints_dir), strict=self.strict_manifests)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "EngineConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    def load_profile(self, path: Path) -> "EngineConfig":
        """Return a copy whose profile is extended with a YAML profile file.

        The file is a flat mapping, e.g.::

            author: Jane Doe
            email: jane@example.com
            license: MIT

        Keys already present in ``profile`` keep their value.
        """
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"profile file {path} must contain a mapping")
        merged = {str(key): str(value) for key, value in data.items() if value is not None}
        merged.update(self.profile)
        return self.model_copy(update={"profile": merged})

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build an ``EngineConfig`` from environment variables.

        Recognised variables (all optional):
            BLUEPRINT_DIR, BLUEPRINT_STRICT, BLUEPRINT_NON_INTERACTIVE,
            BLUEPRINT_OVERWRITE, BLUEPRINT_LOG_LEVEL, BLUEPRINT_COMPLEXITY,
            BLUEPRINT_DISCLOSURE, BLUEPRINT_AUTHOR, BLUEPRINT_EMAIL,
            BLUEPRINT_LICENSE.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("BLUEPRINT_DIR"):
            kwargs["blueprints_dir"] = Path(os.environ["BLUEPRINT_DIR"])
        if os.environ.get("BLUEPRINT_STRICT"):
            kwargs["strict_manifests"] = _flag("BLUEPRINT_STRICT")
        if os.environ.get("BLUEPRINT_NON_INTERACTIVE"):
            kwargs["non_interactive"] = _flag("BLUEPRINT_NON_INTERACTIVE")
        if os.environ.get("BLUEPRINT_OVERWRITE"):
            kwargs["overwrite"] = _flag("BLUEPRINT_OVERWRITE")
        if os.environ.get("BLUEPRINT_LOG_LEVEL"):
            kwargs["log_level"] = os.environ["BLUEPRINT_LOG_LEVEL"]
        if os.environ.get("BLUEPRINT_COMPLEXITY"):
            kwargs["default_complexity"] = os.environ["BLUEPRINT_COMPLEXITY"].lower()
        if os.environ.get("BLUEPRINT_DISCLOSURE"):
            kwargs["default_disclosure"] = os.environ["BLUEPRINT_DISCLOSURE"].lower()

        profile = {
            key: os.environ[env_name]
            for env_name, key in PROFILE_ENV.items()
            if os.environ.get(env_name)
        }
        return cls(profile=profile, **kwargs)


def _flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY
