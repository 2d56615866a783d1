from __future__ import annotations

from collections.abc import Sequence

from semrel.release.branches.definitions import declared_range, prerelease_identifier
from semrel.release.model import Branch, BranchSpec, Tag
from semrel.release.semver import (
    SemVer,
    format_range,
    get_earliest_version,
    get_latest_version,
    gt,
    highest,
    is_prerelease,
    lowest,
    maintenance_range,
)


def tags_to_versions(tags: Sequence[Tag]) -> list[str]:
    return [t.version for t in tags]


def _channel_or_name(spec: BranchSpec) -> str | None:
    if spec.channel is None:
        return spec.name
    return spec.channel or None


def normalize_maintenance(
    maintenance: Sequence[BranchSpec], release: Sequence[BranchSpec]
) -> list[Branch]:
    """Maintenance branches sorted by range, with their effective ranges.

    New releases on a maintenance branch must stay above its latest release
    and below the first version the main release branch already published
    past it (and below the declared range's upper bound).
    """
    main_versions = (
        [v for v in tags_to_versions(release[0].tags) if not is_prerelease(v)] if release else []
    )

    def lower_bound(spec: BranchSpec) -> SemVer:
        rng = maintenance_range(declared_range(spec))
        return rng.lower if rng is not None and rng.lower is not None else SemVer(0, 0, 0)

    out: list[Branch] = []
    for spec in sorted(maintenance, key=lower_bound):
        declared = declared_range(spec)
        rng = maintenance_range(declared)
        branch = Branch(
            name=spec.name,
            type="maintenance",
            channel=_channel_or_name(spec),
            tags=list(spec.tags),
        )
        if rng is None or rng.lower is None or rng.upper is None:
            # Rejected by the validators; keep the declared text for messages.
            branch.range = branch.merge_range = declared
            out.append(branch)
            continue

        lower, upper = str(rng.lower), str(rng.upper)
        versions = tags_to_versions(spec.tags)
        minimum = highest(lower, get_latest_version(versions)) or lower
        on_branch = set(versions)
        published_past = [v for v in main_versions if v not in on_branch and gt(v, minimum)]
        maximum = lowest(upper, get_earliest_version(published_past))

        branch.range = format_range(minimum, maximum)
        branch.merge_range = format_range(lower, upper)
        out.append(branch)
    return out


def normalize_release(release: Sequence[BranchSpec]) -> list[Branch]:
    """The first release branch is the main one and publishes to the
    declared channel (default channel unless set); the others default to a
    channel named after the branch."""
    out: list[Branch] = []
    for idx, spec in enumerate(release):
        channel = (spec.channel or None) if idx == 0 else _channel_or_name(spec)
        out.append(
            Branch(
                name=spec.name,
                type="release",
                channel=channel,
                main=idx == 0,
                tags=list(spec.tags),
            )
        )
    return out


def normalize_prerelease(prerelease: Sequence[BranchSpec]) -> list[Branch]:
    return [
        Branch(
            name=spec.name,
            type="prerelease",
            channel=_channel_or_name(spec),
            prerelease=prerelease_identifier(spec),
            tags=list(spec.tags),
        )
        for spec in prerelease
    ]
