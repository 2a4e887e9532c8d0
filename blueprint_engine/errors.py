"""Error taxonomy for the blueprint engine.

Every failure the engine can surface derives from ``BlueprintEngineError`` and
carries a stable error code plus enough identity (blueprint id, variable name,
file path) to be actionable without re-running in verbose mode.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

ERR_MANIFEST = "MANIFEST_ERROR"
ERR_NOT_FOUND = "TEMPLATE_NOT_FOUND"
ERR_VALIDATION = "VALIDATION_ERROR"
ERR_RENDER = "RENDER_ERROR"
ERR_CONFLICT = "CONFLICT"
ERR_FILESYSTEM = "FILESYSTEM_ERROR"
ERR_ROLLBACK = "ROLLBACK_FAILED"


class BlueprintEngineError(Exception):
    """Base class for all engine errors."""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"[{self.code}] {message}")


# ---------------------------------------------------------------------------
# Registry errors
# ---------------------------------------------------------------------------


class ManifestError(BlueprintEngineError):
    """Raised at load time when a blueprint manifest is malformed."""

    code = ERR_MANIFEST

    def __init__(self, blueprint_id: str, problems: Sequence[str]) -> None:
        self.blueprint_id = blueprint_id
        self.problems = tuple(problems)
        detail = "; ".join(self.problems) or "unknown problem"
        super().__init__(f"blueprint '{blueprint_id}' is invalid: {detail}")


class BlueprintNotFoundError(BlueprintEngineError):
    """Raised when a blueprint id (or type) is not registered."""

    code = ERR_NOT_FOUND

    def __init__(self, blueprint_id: str, available: Sequence[str] = ()) -> None:
        self.blueprint_id = blueprint_id
        self.available = tuple(available)
        message = f"template '{blueprint_id}' not found"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Resolution / rendering errors
# ---------------------------------------------------------------------------


class VariableValidationError(BlueprintEngineError):
    """A raw value is missing, of the wrong kind, or violates its constraint."""

    code = ERR_VALIDATION

    def __init__(
        self,
        variable: str,
        reason: str,
        *,
        blueprint_id: str = "",
        value: Any = None,
    ) -> None:
        self.variable = variable
        self.reason = reason
        self.blueprint_id = blueprint_id
        self.value = value
        where = f" in blueprint '{blueprint_id}'" if blueprint_id else ""
        super().__init__(f"variable '{variable}'{where}: {reason}")


class TemplateRenderError(BlueprintEngineError):
    """A condition, destination or content template could not be rendered."""

    code = ERR_RENDER

    def __init__(self, blueprint_id: str, source: str, detail: str) -> None:
        self.blueprint_id = blueprint_id
        self.source = source
        self.detail = detail
        super().__init__(f"blueprint '{blueprint_id}', file '{source}': {detail}")


class ConflictError(BlueprintEngineError):
    """Two planned files collide, or a planned path already exists on the target."""

    code = ERR_CONFLICT

    def __init__(self, path: str, sources: Sequence[str], reason: str) -> None:
        self.path = path
        self.sources = tuple(sources)
        self.reason = reason
        super().__init__(f"{path}: {reason}")


# ---------------------------------------------------------------------------
# Materialisation errors
# ---------------------------------------------------------------------------


class WriteError(BlueprintEngineError):
    """An I/O failure interrupted generation; every change was rolled back."""

    code = ERR_FILESYSTEM

    def __init__(
        self,
        path: str,
        cause: BaseException,
        rolled_back: Sequence[str] = (),
    ) -> None:
        self.path = path
        self.cause = cause
        self.rolled_back = tuple(rolled_back)
        super().__init__(
            f"failed to write {path}: {cause} "
            f"(rolled back {len(self.rolled_back)} change(s))"
        )


class RollbackError(BlueprintEngineError):
    """Undo could not restore the pre-generation state.

    ``indeterminate`` lists every path that may still hold this run's output.
    """

    code = ERR_ROLLBACK

    def __init__(
        self,
        indeterminate: Sequence[str],
        failures: Sequence[str],
        original: BaseException | None = None,
    ) -> None:
        self.indeterminate = tuple(indeterminate)
        self.failures = tuple(failures)
        self.original = original
        cause = f" after: {original}" if original is not None else ""
        super().__init__(
            f"rollback left {len(self.indeterminate)} path(s) in an indeterminate "
            f"state{cause}: {', '.join(self.indeterminate)}"
        )
