"""Tests for the named value validators."""

from __future__ import annotations

import pytest

from blueprint_engine.resolver.validators import (
    FORMAT_VALIDATORS,
    check_format,
    validate_author,
    validate_email,
    validate_go_version,
    validate_module_path,
    validate_project_name,
    validate_semver,
)
from blueprint_engine.registry.models import KNOWN_FORMATS

pytestmark = pytest.mark.unit


def test_every_known_format_has_a_validator():
    assert set(FORMAT_VALIDATORS) == set(KNOWN_FORMATS)


def test_check_format_unknown_name():
    with pytest.raises(KeyError):
        check_format("zipcode", "12345")


class TestProjectName:
    @pytest.mark.parametrize("value", ["my-app", "app_2", "A1", "x"])
    def test_valid(self, value):
        validate_project_name(value)

    @pytest.mark.parametrize(
        "value, message",
        [
            ("", "cannot be empty"),
            ("a" * 215, "too long"),
            ("my app", "can only contain"),
            ("my.app", "can only contain"),
            ("-app", "cannot start or end"),
            ("app_", "cannot start or end"),
            ("CON", "is reserved"),
            ("com1", "is reserved"),
        ],
    )
    def test_invalid(self, value, message):
        with pytest.raises(ValueError, match=message):
            validate_project_name(value)


class TestModulePath:
    @pytest.mark.parametrize(
        "value",
        ["github.com/user/repo", "example.com/acme/app", "gitlab.com/group/sub/my_repo", "go.dev/x"],
    )
    def test_valid(self, value):
        validate_module_path(value)

    @pytest.mark.parametrize(
        "value, message",
        [
            ("", "cannot be empty"),
            ("github.com//repo", "invalid module path format"),
            ("-bad.com/x", "invalid module path format"),
            ("github.com", "at least domain and path"),
            ("myapp/pkg", "start with a domain"),
        ],
    )
    def test_invalid(self, value, message):
        with pytest.raises(ValueError, match=message):
            validate_module_path(value)


class TestEmail:
    @pytest.mark.parametrize("value", ["", "jane@example.com", "j.doe+go@mail.example.org"])
    def test_valid(self, value):
        validate_email(value)

    @pytest.mark.parametrize("value", ["jane", "jane@example", "a b@x.com", "@example.com"])
    def test_invalid(self, value):
        with pytest.raises(ValueError, match="invalid email address"):
            validate_email(value)


class TestSemver:
    @pytest.mark.parametrize("value", ["1.2.3", "v0.1.0", "1.0.0-rc.1", "1.0.0+build.5"])
    def test_valid(self, value):
        validate_semver(value)

    @pytest.mark.parametrize("value", ["1.2", "01.2.3", "latest", ""])
    def test_invalid(self, value):
        with pytest.raises(ValueError, match="invalid semantic version"):
            validate_semver(value)


class TestGoVersion:
    @pytest.mark.parametrize("value", ["1.18", "1.22", "1.21.5"])
    def test_valid(self, value):
        validate_go_version(value)

    @pytest.mark.parametrize("value", ["2.0", "go1.22", "1", "1.22.x"])
    def test_bad_format(self, value):
        with pytest.raises(ValueError, match="invalid Go version format"):
            validate_go_version(value)

    def test_too_old(self):
        with pytest.raises(ValueError, match=r"minimum supported: 1\.18"):
            validate_go_version("1.17")


class TestAuthor:
    @pytest.mark.parametrize("value", ["", "Jane Doe", "Zoë O'Brien <zoe@example.com>"])
    def test_valid(self, value):
        validate_author(value)

    def test_too_long(self):
        with pytest.raises(ValueError, match="too long"):
            validate_author("x" * 101)

    @pytest.mark.parametrize("value", ["a\tb", "line\nbreak", "del\x7f"])
    def test_control_characters(self, value):
        with pytest.raises(ValueError, match="invalid characters"):
            validate_author(value)
