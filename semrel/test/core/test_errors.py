"""Tests for semrel.core.errors module."""

from __future__ import annotations

from semrel.core.errors import (
    ConfigurationError,
    ErrorCode,
    GitAuthError,
    InvalidVersionError,
    PluginError,
    exit_code_for,
)
from semrel.git.repository import GitError


class TestErrorCode:
    """Tests for exit codes."""

    def test_values_stable(self) -> None:
        assert int(ErrorCode.OK) == 0
        assert int(ErrorCode.CONFIG_ERROR) == 1
        assert int(ErrorCode.RELEASE_ERROR) == 3
        assert int(ErrorCode.PLUGIN_ERROR) == 5

    def test_str(self) -> None:
        assert str(ErrorCode.CONFIG_ERROR) == "config error"


class TestVariants:
    """Each variant renders its own message."""

    def test_git_auth_error(self) -> None:
        error = GitAuthError(repository_url="https://git.example.com/r.git", branch="master")
        assert error.code == "EGITNOPERMISSION"
        assert "https://git.example.com/r.git" in error.message
        assert "master" in error.details

    def test_invalid_next_version(self) -> None:
        error = InvalidVersionError(code="EINVALIDNEXTVERSION", version="2.0.0", branch="1.x", range=">=1.0.0 <2.0.0")
        assert "2.0.0" in error.message
        assert ">=1.0.0 <2.0.0" in error.details

    def test_invalid_merge(self) -> None:
        error = InvalidVersionError(code="EINVALIDMAINTENANCEMERGE", version="1.2.0", branch="1.1.x", range=">=1.1.0 <1.2.0")
        assert "merged into the maintenance branch 1.1.x" in error.message


class TestExitCodeFor:
    """Tests for mapping errors to exit codes."""

    def test_no_errors(self) -> None:
        assert exit_code_for(()) == ErrorCode.OK

    def test_first_error_wins(self) -> None:
        errors = (
            ConfigurationError(code="ERELEASEBRANCHES", message="x"),
            PluginError(code="EPLUGIN", message="y", plugin="p", step="prepare"),
        )
        assert exit_code_for(errors) == ErrorCode.CONFIG_ERROR

    def test_git_error(self) -> None:
        assert exit_code_for((GitError(command="fetch", message="offline"),)) == ErrorCode.GIT_ERROR
