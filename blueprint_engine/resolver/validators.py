"""Named value validators referenced by ``VariableDef.format``.

Each validator raises ``ValueError`` with a user-facing message; the
resolver wraps it into a ``VariableValidationError`` naming the variable.
"""

from __future__ import annotations

import re
from collections.abc import Callable


_PROJECT_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
_MODULE_PATH_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9\-]*[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]*[a-zA-Z0-9])?)*"
    r"(/[a-zA-Z0-9]([a-zA-Z0-9\-_]*[a-zA-Z0-9])?)*$"
)
_EMAIL_RE = re.compile(r"^[^@\s<>]+@[^@\s<>]+\.[^@\s<>.]+$")
_SEMVER_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)
_GO_VERSION_RE = re.compile(r"^1\.(\d+)(\.\d+)?$")

# Device names Windows refuses as file names.
RESERVED_PROJECT_NAMES = frozenset(
    {"con", "prn", "aux", "nul"}
    | {f"com{i}" for i in range(1, 10)}
    | {f"lpt{i}" for i in range(1, 10)}
)

MAX_PROJECT_NAME = 214
MAX_MODULE_PATH = 500
MAX_AUTHOR = 100
MIN_GO_MINOR = 18


def validate_project_name(value: str) -> None:
    if not value:
        raise ValueError("project name cannot be empty")
    if len(value) > MAX_PROJECT_NAME:
        raise ValueError(f"project name too long (max {MAX_PROJECT_NAME} characters)")
    if not _PROJECT_NAME_RE.match(value):
        raise ValueError("project name can only contain letters, numbers, hyphens, and underscores")
    if value[0] in "-_" or value[-1] in "-_":
        raise ValueError("project name cannot start or end with hyphen or underscore")
    if value.lower() in RESERVED_PROJECT_NAMES:
        raise ValueError(f"project name '{value}' is reserved")


def validate_module_path(value: str) -> None:
    if not value:
        raise ValueError("module path cannot be empty")
    if len(value) > MAX_MODULE_PATH:
        raise ValueError(f"module path too long (max {MAX_MODULE_PATH} characters)")
    if not _MODULE_PATH_RE.match(value):
        raise ValueError("invalid module path format")
    parts = value.split("/")
    if len(parts) < 2:
        raise ValueError("module path should contain at least domain and path (e.g., github.com/user/repo)")
    if "." not in parts[0]:
        raise ValueError("module path should start with a domain (e.g., github.com, gitlab.com)")


def validate_email(value: str) -> None:
    """E-mail is optional: the empty string passes."""
    if value and not _EMAIL_RE.match(value):
        raise ValueError(f"invalid email address: {value}")


def validate_semver(value: str) -> None:
    if not _SEMVER_RE.match(value):
        raise ValueError(f"invalid semantic version '{value}' (expected MAJOR.MINOR.PATCH)")


def validate_go_version(value: str) -> None:
    match = _GO_VERSION_RE.match(value)
    if not match:
        raise ValueError("invalid Go version format (expected format: 1.xx or 1.xx.x)")
    if int(match.group(1)) < MIN_GO_MINOR:
        raise ValueError(f"unsupported Go version (minimum supported: 1.{MIN_GO_MINOR})")


def validate_author(value: str) -> None:
    """Author is optional; control characters are rejected."""
    if len(value) > MAX_AUTHOR:
        raise ValueError(f"author name too long (max {MAX_AUTHOR} characters)")
    if any(ord(char) < 32 or ord(char) == 127 for char in value):
        raise ValueError("author name contains invalid characters")


FORMAT_VALIDATORS: dict[str, Callable[[str], None]] = {
    "project_name": validate_project_name,
    "module_path": validate_module_path,
    "email": validate_email,
    "semver": validate_semver,
    "go_version": validate_go_version,
    "author": validate_author,
}


def check_format(format_name: str, value: str) -> None:
    """Run the named validator; raises ``KeyError`` for an unknown name."""
    FORMAT_VALIDATORS[format_name](value)
