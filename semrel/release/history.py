"""Release history lookups on the resolved branches."""

from __future__ import annotations

from dataclasses import dataclass

from semrel.release.branches.normalize import tags_to_versions
from semrel.release.context import Context
from semrel.release.model import Branch, LastRelease, NextRelease, Tag
from semrel.release.next_version import is_same_channel
from semrel.release.semver import (
    diff,
    get_latest_version,
    get_lower_bound,
    gt,
    gte,
    is_prerelease,
    lt,
    sort_versions,
)
from semrel.release.tags import make_tag


@dataclass(frozen=True, slots=True)
class ReleaseToAdd:
    """A released version to publish on the current branch's channel.

    ``git_head`` of both releases holds the tag name until the pipeline
    resolves it to a commit hash.
    """

    last_release: LastRelease | None
    current_release: LastRelease
    next_release: NextRelease


def get_last_release(branch: Branch, tag_format: str, *, before: str | None = None) -> LastRelease | None:
    """Highest release of the branch (below ``before`` if given).

    Prereleases only count on prerelease branches, and only when they were
    published to the branch's channel.
    """

    def eligible(tag: Tag) -> bool:
        if before is not None and not lt(tag.version, before):
            return False
        if not is_prerelease(tag.version):
            return True
        return branch.type == "prerelease" and any(
            is_same_channel(branch.channel, c) for c in tag.channels
        )

    candidates = [t for t in branch.tags if eligible(t)]
    if not candidates:
        return None
    by_version = {t.version: t for t in candidates}
    tag = by_version[sort_versions(by_version, reverse=True)[0]]
    return LastRelease(
        version=tag.version,
        git_tag=tag.git_tag,
        git_head=tag.git_tag,
        channels=tag.channels,
        name=make_tag(tag_format, tag.version),
    )


def get_release_to_add(context: Context) -> ReleaseToAdd | None:
    """Find a version merged from a higher branch but missing our channel.

    Only versions already published on a channel of a higher (non
    prerelease) branch qualify, and only if nothing newer was released on
    the current branch.
    """
    branch = context.require_branch()
    tag_format = context.options.tag_format
    idx = next(i for i, b in enumerate(context.branches) if b.name == branch.name)
    higher_channels = {b.channel for b in context.branches[idx + 1 :] if b.type != "prerelease"}
    lower_bound = (
        get_lower_bound(branch.merge_range)
        if branch.type == "maintenance" and branch.merge_range
        else None
    )

    candidates: dict[str, Tag] = {}
    for tag in branch.tags:
        if branch.channel in tag.channels:
            continue
        if not higher_channels.intersection(tag.channels):
            continue
        if lower_bound is not None and not gte(tag.version, lower_bound):
            continue
        candidates.setdefault(tag.version, tag)
    if not candidates:
        return None

    version = sort_versions(candidates, reverse=True)[0]
    tag = candidates[version]
    latest = get_latest_version(tags_to_versions(branch.tags), with_prerelease=True)
    if latest is not None and gt(latest, version):
        return None

    last_release = get_last_release(branch, tag_format, before=version)
    bump = diff(last_release.version, version) if last_release is not None else "major"
    return ReleaseToAdd(
        last_release=last_release,
        current_release=LastRelease(
            version=version,
            git_tag=tag.git_tag,
            git_head=tag.git_tag,
            channels=tag.channels,
            name=tag.git_tag,
            type=bump,
        ),
        next_release=NextRelease(
            type=bump,
            channel=branch.channel,
            git_head=tag.git_tag,
            version=version,
            git_tag=make_tag(tag_format, version),
            name=tag.git_tag,
        ),
    )
