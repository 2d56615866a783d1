"""Branch classification rules and configuration validators.

A branch is, in priority order:
- maintenance: it declares a range, or its name is shaped ``N.x``/``N.N.x``
- prerelease: it declares a prerelease identifier
- release: anything else
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from semrel.core.errors import ConfigurationError
from semrel.release.model import BranchSpec
from semrel.release.semver import is_maintenance_range, maintenance_range, valid

MAX_RELEASE_BRANCHES = 3


def is_maintenance(branch: BranchSpec) -> bool:
    return (branch.range is not None and branch.range is not False) or is_maintenance_range(branch.name)


def is_prerelease(branch: BranchSpec) -> bool:
    return branch.prerelease is not None and branch.prerelease is not False


def is_release(branch: BranchSpec) -> bool:
    return not is_maintenance(branch) and not is_prerelease(branch)


def declared_range(branch: BranchSpec) -> str:
    return branch.range if isinstance(branch.range, str) else branch.name


def prerelease_identifier(branch: BranchSpec) -> str:
    if branch.prerelease is True:
        return branch.name
    return branch.prerelease if isinstance(branch.prerelease, str) else ""


def partition(
    branches: Sequence[BranchSpec],
) -> tuple[list[BranchSpec], list[BranchSpec], list[BranchSpec]]:
    """Split into (maintenance, release, prerelease), keeping order."""
    maintenance = [b for b in branches if is_maintenance(b)]
    prerelease = [b for b in branches if not is_maintenance(b) and is_prerelease(b)]
    release = [b for b in branches if is_release(b)]
    return maintenance, release, prerelease


def _range_key(branch: BranchSpec) -> str:
    rng = maintenance_range(declared_range(branch))
    return str(rng) if rng is not None else declared_range(branch)


def _names(branches: Sequence[BranchSpec]) -> tuple[str, ...]:
    return tuple(b.name for b in branches)


def validate_maintenance(branches: Sequence[BranchSpec]) -> list[ConfigurationError]:
    errors: list[ConfigurationError] = []
    for branch in branches:
        if isinstance(branch.range, str) and not is_maintenance_range(branch.range):
            errors.append(
                ConfigurationError(
                    code="EMAINTENANCEBRANCH",
                    message=f"The maintenance branch {branch.name} has an invalid range {branch.range!r}.",
                    details="A maintenance range must be shaped N.x or N.N.x (e.g. 1.x or 1.2.x).",
                    branches=(branch.name,),
                )
            )

    ranges = Counter(_range_key(b) for b in branches)
    if any(count > 1 for count in ranges.values()):
        clashing = [b for b in branches if ranges[_range_key(b)] > 1]
        errors.append(
            ConfigurationError(
                code="EMAINTENANCEBRANCHES",
                message="The maintenance branches are invalid: each must have a distinct range.",
                details="Conflicting branches: "
                + ", ".join(f"{b.name} ({declared_range(b)})" for b in clashing),
                branches=_names(clashing),
            )
        )
    return errors


def validate_prerelease(
    branches: Sequence[BranchSpec],
    *,
    first_release: str,
    prerelease_identifier_base: str,
) -> list[ConfigurationError]:
    errors: list[ConfigurationError] = []
    for branch in branches:
        identifier = prerelease_identifier(branch)
        candidate = f"{first_release}-{identifier}.{prerelease_identifier_base}"
        if not identifier or valid(candidate) is None:
            errors.append(
                ConfigurationError(
                    code="EPRERELEASEBRANCH",
                    message=f"The prerelease branch {branch.name} has an invalid prerelease identifier.",
                    details=f"{candidate!r} is not a valid semantic version.",
                    branches=(branch.name,),
                )
            )

    identifiers = Counter(prerelease_identifier(b) for b in branches)
    clashing = [b for b in branches if identifiers[prerelease_identifier(b)] > 1]
    if clashing:
        errors.append(
            ConfigurationError(
                code="EPRERELEASEBRANCHES",
                message="The prerelease branches are invalid: each must have a distinct prerelease identifier.",
                details="Conflicting branches: "
                + ", ".join(f"{b.name} ({prerelease_identifier(b)})" for b in clashing),
                branches=_names(clashing),
            )
        )
    return errors


def validate_release(branches: Sequence[BranchSpec]) -> list[ConfigurationError]:
    if 0 < len(branches) <= MAX_RELEASE_BRANCHES:
        return []
    return [
        ConfigurationError(
            code="ERELEASEBRANCHES",
            message=(
                f"A minimum of 1 and a maximum of {MAX_RELEASE_BRANCHES} release branches are required; "
                f"found {len(branches)}."
            ),
            details="Release branches: " + (", ".join(_names(branches)) or "(none)"),
            branches=_names(branches),
        )
    ]


def validate_names(branches: Sequence[BranchSpec]) -> list[ConfigurationError]:
    counts = Counter(b.name for b in branches)
    duplicates = sorted(name for name, count in counts.items() if count > 1)
    if not duplicates:
        return []
    return [
        ConfigurationError(
            code="EDUPLICATEBRANCHES",
            message="The branches configuration has duplicate branches: " + ", ".join(duplicates),
            branches=tuple(duplicates),
        )
    ]
