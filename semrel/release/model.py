from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from semrel.git.repository import Commit


BranchType = Literal["release", "maintenance", "prerelease"]
ReleaseType = Literal["patch", "minor", "major"]

# Ordered from smallest to largest bump.
RELEASE_TYPES: tuple[ReleaseType, ...] = ("patch", "minor", "major")

DEFAULT_FIRST_RELEASE = "1.0.0"
DEFAULT_PRERELEASE_IDENTIFIER_BASE = "1"
DEFAULT_TAG_FORMAT = "v${version}"


@dataclass(frozen=True, slots=True)
class Tag:
    """A release tag found on a branch.

    ``channels`` lists every channel the version was published to; ``None``
    is the default channel.
    """

    git_tag: str
    version: str
    channels: tuple[str | None, ...] = (None,)
    git_head: str | None = None


@dataclass(frozen=True, slots=True)
class BranchSpec:
    """A branch as declared in the configuration (possibly a glob).

    ``channel=False`` pins the default channel; ``None`` means "not set".
    ``range=False`` / ``prerelease=False`` explicitly opt out of the
    maintenance / prerelease policies.
    """

    name: str
    channel: str | Literal[False] | None = None
    range: str | Literal[False] | None = None
    prerelease: str | bool | None = None
    tags: tuple[Tag, ...] = ()


@dataclass(slots=True)
class Branch:
    """A concrete, classified branch.

    Everything but ``tags`` is fixed once branches are resolved; the
    pipeline appends to ``tags`` after adding a channel to a release.
    """

    name: str
    type: BranchType
    channel: str | None = None
    # Maintenance branches only: effective range for new releases and the
    # declared range versions merged into the branch must satisfy.
    range: str | None = None
    merge_range: str | None = None
    # Prerelease branches only: the identifier (e.g. "beta").
    prerelease: str | None = None
    main: bool = False
    tags: list[Tag] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class LastRelease:
    """A version already released, as recovered from tags."""

    version: str
    git_tag: str
    git_head: str
    channels: tuple[str | None, ...] = (None,)
    name: str = ""
    type: ReleaseType | None = None


@dataclass(slots=True)
class NextRelease:
    """The release being built.

    Filled in stage by stage (type, version, tag, notes); fields are set
    once and never rewritten.
    """

    type: ReleaseType
    channel: str | None
    git_head: str
    version: str = ""
    git_tag: str = ""
    name: str = ""
    notes: str = ""


@dataclass(frozen=True, slots=True)
class PublishedRelease:
    """A release reported by a publish or add-channel plugin."""

    plugin_name: str
    version: str
    git_tag: str
    git_head: str
    channel: str | None
    name: str | None = None
    url: str | None = None
    notes: str = ""


@dataclass(frozen=True, slots=True)
class RunResult:
    """Outcome of a run that published something.

    Only ``releases`` is set when the run just added channels to existing
    releases and no new version was due.
    """

    releases: tuple[PublishedRelease, ...] = ()
    last_release: LastRelease | None = None
    commits: tuple[Commit, ...] = ()
    next_release: NextRelease | None = None
