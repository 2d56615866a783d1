"""Exit codes and domain error variants.

Every domain error carries a stable ``code`` (``E``-prefixed, upper case)
and a human readable ``message``. Optional ``details`` hold a longer
explanation rendered below the message.

Errors without a domain variant (a failing git invocation, a crashing
plugin) are reported separately as unexpected errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

__all__ = [
    "ConfigurationError",
    "ErrorCode",
    "GitAuthError",
    "InvalidVersionError",
    "PluginError",
    "SemrelError",
    "exit_code_for",
]


class ErrorCode(IntEnum):
    """Process exit codes for the CLI.

    These values are used as process exit codes and should remain stable:
    - 0: Success (including runs that publish nothing)
    - 1: Configuration error (branches, tag format, plugins)
    - 2: Environment error (not a git repository, missing remote)
    - 3: Release error (computed version outside the branch range)
    - 4: Git error (permission denied, failed git command)
    - 5: Plugin error (a lifecycle step failed)
    """

    OK = 0
    CONFIG_ERROR = 1
    ENV_ERROR = 2
    RELEASE_ERROR = 3
    GIT_ERROR = 4
    PLUGIN_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")


@dataclass(frozen=True, slots=True)
class ConfigurationError:
    """Invalid branch, tag format or plugin declaration.

    Attributes:
        code: Stable error code (e.g. ``EMAINTENANCEBRANCHES``)
        message: One-line explanation
        details: Longer explanation, if any
        branches: Names of the offending branches, if any
    """

    code: str
    message: str
    details: str | None = None
    branches: tuple[str, ...] = ()

    @property
    def exit_code(self) -> ErrorCode:
        return ErrorCode.CONFIG_ERROR


@dataclass(frozen=True, slots=True)
class GitAuthError:
    """Push permission probe failed on a branch that is not merely stale."""

    repository_url: str
    branch: str
    stderr: str = ""

    @property
    def code(self) -> str:
        return "EGITNOPERMISSION"

    @property
    def message(self) -> str:
        return f"Cannot push to the Git repository {self.repository_url}."

    @property
    def details(self) -> str:
        return (
            f"semrel cannot push the version tag to the branch {self.branch} on the remote "
            "repository. Make sure the credentials configured in the CI environment grant "
            "write access to the repository."
        )

    @property
    def exit_code(self) -> ErrorCode:
        return ErrorCode.GIT_ERROR


@dataclass(frozen=True, slots=True)
class InvalidVersionError:
    """A version falls outside the range accepted by a maintenance branch.

    ``code`` is ``EINVALIDNEXTVERSION`` for a new release and
    ``EINVALIDMAINTENANCEMERGE`` for a version merged into the branch.
    """

    code: str
    version: str
    branch: str
    range: str

    @property
    def message(self) -> str:
        if self.code == "EINVALIDMAINTENANCEMERGE":
            return (
                f"The release {self.version} merged into the maintenance branch "
                f"{self.branch} is out of range."
            )
        return f"The release {self.version} on branch {self.branch} cannot be published as it is out of range."

    @property
    def details(self) -> str:
        return f"Only releases within the range {self.range} can be published from branch {self.branch}."

    @property
    def exit_code(self) -> ErrorCode:
        return ErrorCode.RELEASE_ERROR


@dataclass(frozen=True, slots=True)
class PluginError:
    """A lifecycle step implementation failed.

    Attributes:
        code: Code reported by the plugin, ``EPLUGIN`` by default
        message: Failure message
        plugin: Name of the failing plugin
        step: Lifecycle step being run
        details: Longer explanation, if any
        unexpected: True when the plugin raised something other than StepFailure
    """

    code: str
    message: str
    plugin: str
    step: str
    details: str | None = None
    unexpected: bool = False

    @property
    def exit_code(self) -> ErrorCode:
        return ErrorCode.PLUGIN_ERROR


type SemrelError = ConfigurationError | GitAuthError | InvalidVersionError | PluginError


def exit_code_for(errors: tuple[object, ...]) -> ErrorCode:
    """Pick the exit code of the first error that maps to one."""
    for error in errors:
        code = getattr(error, "exit_code", None)
        if isinstance(code, ErrorCode):
            return code
    return ErrorCode.GIT_ERROR if errors else ErrorCode.OK
