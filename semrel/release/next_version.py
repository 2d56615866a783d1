"""Next version computation.

Rules, in order:
1. While the major version is 0, ``major`` bumps as ``minor`` and ``minor``
   as ``patch`` (ordinary feature commits never reach 1.0.0 on their own).
2. Without a previous release, the first release version is used, with
   ``-<identifier>.<base>`` appended on prerelease branches.
3. Release and maintenance branches increment the last release.
4. Prerelease branches continue the prerelease counter of the last release
   when it was published to the same channel, unless bumping the highest
   version found on the branch yields a greater version. Otherwise a fresh
   prerelease of the bumped last release starts at ``<base>``.
"""

from __future__ import annotations

from semrel.core.config import ReleaseOptions
from semrel.output.console import ConsoleProtocol
from semrel.release.branches.normalize import tags_to_versions
from semrel.release.model import Branch, LastRelease, ReleaseType
from semrel.release.semver import get_latest_version, highest, is_prerelease, parse
from semrel.release.semver import inc as semver_inc

_MAJOR_ZERO_BUMPS: dict[str, str] = {"major": "minor", "minor": "patch", "patch": "patch"}


def inc(version: str, release: str) -> str:
    """Increment ``version``, dampening bumps while the major version is 0."""
    parsed = parse(version)
    if parsed is None:
        raise ValueError(f"invalid version: {version}")
    if parsed.major == 0:
        release = _MAJOR_ZERO_BUMPS.get(release, release)
    return semver_inc(version, release)


def is_same_channel(a: str | None, b: str | None) -> bool:
    return a == b or (not a and not b)


def first_release_version(
    options: ReleaseOptions, package_version: str | None
) -> str:
    if options.respect_package_version and package_version:
        return package_version
    return options.first_release


def get_next_version(
    *,
    branch: Branch,
    bump: ReleaseType,
    channel: str | None,
    last_release: LastRelease | None,
    options: ReleaseOptions,
    package_version: str | None,
    console: ConsoleProtocol,
) -> str:
    base = options.prerelease_identifier_base

    if last_release is None:
        first = first_release_version(options, package_version)
        version = f"{first}-{branch.prerelease}.{base}" if branch.type == "prerelease" else first
        console.info(f"There is no previous release, the next release version is {version}")
        return version

    if branch.type != "prerelease":
        version = inc(last_release.version, bump)
    elif is_prerelease(last_release.version) and any(
        is_same_channel(c, channel) for c in last_release.channels
    ):
        continuation = inc(last_release.version, "prerelease")
        latest = get_latest_version(tags_to_versions(branch.tags), with_prerelease=True)
        fresh = f"{inc(latest or last_release.version, bump)}-{branch.prerelease}.{base}"
        version = highest(continuation, fresh) or continuation
    else:
        parsed = parse(last_release.version)
        triplet = str(parsed.triplet) if parsed is not None else last_release.version
        version = f"{inc(triplet, bump)}-{branch.prerelease}.{base}"

    console.info(f"The next release version is {version}")
    return version
