"""Semantic version parsing, precedence and increments.

Increments follow the reference semver tooling: bumping a prerelease
version by the smallest non-zero field only drops its suffix
(``inc("1.0.1-beta.1", "patch") == "1.0.1"``).

Ranges are limited to what release branches use: maintenance shapes
(``1.x``, ``1.2.x``), comparator pairs (``>=1.2.0 <1.3.0``), a lone
comparator, and exact versions.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import total_ordering

from semrel.release.model import ReleaseType

_IDENT = r"(?:0|[1-9][0-9]*|[0-9]*[a-zA-Z-][0-9a-zA-Z-]*)"
_SEMVER_RE = re.compile(
    r"^(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)"
    rf"(?:-({_IDENT}(?:\.{_IDENT})*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)
_MAINTENANCE_RE = re.compile(r"^([0-9]+)\.(?:([0-9]+)\.)?x$")
_COMPARATOR_RE = re.compile(r"^(>=|<=|>|<|=)?\s*v?(\S+)$")


@total_ordering
@dataclass(frozen=True, slots=True, eq=False)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            return f"{core}-{'.'.join(self.prerelease)}"
        return core

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def triplet(self) -> SemVer:
        """The version without prerelease and build metadata."""
        return SemVer(self.major, self.minor, self.patch)

    def compare(self, other: SemVer) -> int:
        """Semver precedence: -1, 0 or 1. Build metadata is ignored."""
        left = (self.major, self.minor, self.patch)
        right = (other.major, other.minor, other.patch)
        if left != right:
            return -1 if left < right else 1
        return _compare_prerelease(self.prerelease, other.prerelease)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: SemVer) -> bool:
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease))

    def inc(self, release: str) -> SemVer:
        """Increment by ``major``, ``minor``, ``patch`` or ``prerelease``."""
        match release:
            case "major":
                if self.minor != 0 or self.patch != 0 or not self.prerelease:
                    return SemVer(self.major + 1, 0, 0)
                return self.triplet
            case "minor":
                if self.patch != 0 or not self.prerelease:
                    return SemVer(self.major, self.minor + 1, 0)
                return self.triplet
            case "patch":
                if not self.prerelease:
                    return SemVer(self.major, self.minor, self.patch + 1)
                return self.triplet
            case "prerelease":
                if not self.prerelease:
                    return SemVer(self.major, self.minor, self.patch + 1, ("0",))
                ids = list(self.prerelease)
                for idx in range(len(ids) - 1, -1, -1):
                    if ids[idx].isdigit():
                        ids[idx] = str(int(ids[idx]) + 1)
                        return SemVer(self.major, self.minor, self.patch, tuple(ids))
                return SemVer(self.major, self.minor, self.patch, (*ids, "0"))
            case _:
                raise AssertionError(f"unexpected release type: {release}")


def _compare_identifier(a: str, b: str) -> int:
    a_num, b_num = a.isdigit(), b.isdigit()
    if a_num and b_num:
        ai, bi = int(a), int(b)
        return (ai > bi) - (ai < bi)
    if a_num:
        return -1
    if b_num:
        return 1
    return (a > b) - (a < b)


def _compare_prerelease(a: tuple[str, ...], b: tuple[str, ...]) -> int:
    # A version without prerelease has higher precedence.
    if not a and not b:
        return 0
    if not a:
        return 1
    if not b:
        return -1
    for x, y in zip(a, b):
        c = _compare_identifier(x, y)
        if c:
            return c
    return (len(a) > len(b)) - (len(a) < len(b))


def parse(version: str) -> SemVer | None:
    """Parse a strict semver string (no leading ``v``)."""
    m = _SEMVER_RE.match(version)
    if m is None:
        return None
    pre = tuple(m.group(4).split(".")) if m.group(4) else ()
    build = tuple(m.group(5).split(".")) if m.group(5) else ()
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)), pre, build)


def valid(version: str) -> str | None:
    """Normalized version string if ``version`` is valid semver."""
    parsed = parse(version)
    return str(parsed) if parsed is not None else None


def clean(version: str) -> str | None:
    """Strip whitespace and a leading ``=``/``v`` then validate."""
    return valid(re.sub(r"^[=v]+", "", version.strip()))


def _require(version: str) -> SemVer:
    parsed = parse(version)
    if parsed is None:
        raise ValueError(f"invalid version: {version}")
    return parsed


def compare(a: str, b: str) -> int:
    return _require(a).compare(_require(b))


def gt(a: str, b: str) -> bool:
    return compare(a, b) > 0


def gte(a: str, b: str) -> bool:
    return compare(a, b) >= 0


def lt(a: str, b: str) -> bool:
    return compare(a, b) < 0


def is_prerelease(version: str) -> bool:
    return _require(version).is_prerelease


def inc(version: str, release: str) -> str:
    return str(_require(version).inc(release))


def diff(a: str, b: str) -> ReleaseType:
    """Largest triplet field that differs between two versions."""
    va, vb = _require(a), _require(b)
    if va.major != vb.major:
        return "major"
    if va.minor != vb.minor:
        return "minor"
    return "patch"


def highest(a: str | None, b: str | None) -> str | None:
    if a and b:
        return a if gt(a, b) else b
    return a or b


def lowest(a: str | None, b: str | None) -> str | None:
    if a and b:
        return a if lt(a, b) else b
    return a or b


def sort_versions(versions: Iterable[str], *, reverse: bool = False) -> list[str]:
    return sorted(versions, key=_require, reverse=reverse)


def get_latest_version(versions: Iterable[str], *, with_prerelease: bool = False) -> str | None:
    candidates = [v for v in versions if with_prerelease or not is_prerelease(v)]
    ordered = sort_versions(candidates, reverse=True)
    return ordered[0] if ordered else None


def get_earliest_version(versions: Iterable[str], *, with_prerelease: bool = False) -> str | None:
    candidates = [v for v in versions if with_prerelease or not is_prerelease(v)]
    ordered = sort_versions(candidates)
    return ordered[0] if ordered else None


def is_maintenance_range(text: str) -> bool:
    """True for ``N.x`` and ``N.N.x``."""
    return _MAINTENANCE_RE.match(text) is not None


@dataclass(frozen=True, slots=True)
class VersionRange:
    """Half-open interval ``>=lower <upper`` with optional ends.

    ``inclusive_upper`` turns the upper end into ``<=`` (exact versions).
    """

    lower: SemVer | None = None
    upper: SemVer | None = None
    inclusive_upper: bool = False
    exclusive_lower: bool = False

    def __str__(self) -> str:
        parts: list[str] = []
        if self.lower is not None:
            parts.append(f"{'>' if self.exclusive_lower else '>='}{self.lower}")
        if self.upper is not None:
            parts.append(f"{'<=' if self.inclusive_upper else '<'}{self.upper}")
        return " ".join(parts) or "*"

    def contains(self, version: SemVer) -> bool:
        if self.lower is not None:
            c = version.compare(self.lower)
            if c < 0 or (c == 0 and self.exclusive_lower):
                return False
        if self.upper is not None:
            c = version.compare(self.upper)
            if c > 0 or (c == 0 and not self.inclusive_upper):
                return False
        if version.is_prerelease:
            # A prerelease only satisfies a range whose bound opts in to
            # prereleases of the same triplet.
            bounds = [b for b in (self.lower, self.upper) if b is not None and b.is_prerelease]
            return any(b.triplet == version.triplet for b in bounds)
        return True


def maintenance_range(text: str) -> VersionRange | None:
    """Range described by a maintenance shape (``1.x`` ⇒ ``>=1.0.0 <2.0.0``)."""
    m = _MAINTENANCE_RE.match(text)
    if m is None:
        return None
    major = int(m.group(1))
    if m.group(2) is None:
        return VersionRange(SemVer(major, 0, 0), SemVer(major + 1, 0, 0))
    minor = int(m.group(2))
    return VersionRange(SemVer(major, minor, 0), SemVer(major, minor + 1, 0))


def valid_range(text: str) -> VersionRange | None:
    """Parse a range expression, None if unsupported or invalid."""
    text = text.strip()
    shaped = maintenance_range(text)
    if shaped is not None:
        return shaped

    lower: SemVer | None = None
    upper: SemVer | None = None
    inclusive_upper = False
    exclusive_lower = False
    for token in text.split():
        m = _COMPARATOR_RE.match(token)
        if m is None:
            return None
        op, version = m.group(1) or "=", parse(m.group(2))
        if version is None:
            return None
        match op:
            case ">=" | ">":
                if lower is not None:
                    return None
                lower, exclusive_lower = version, op == ">"
            case "<" | "<=":
                if upper is not None:
                    return None
                upper, inclusive_upper = version, op == "<="
            case _:
                if lower is not None or upper is not None:
                    return None
                lower, upper, inclusive_upper = version, version, True
    if lower is None and upper is None:
        return None
    return VersionRange(lower, upper, inclusive_upper, exclusive_lower)


def satisfies(version: str, range_text: str) -> bool:
    parsed = parse(version)
    rng = valid_range(range_text)
    if parsed is None or rng is None:
        return False
    return rng.contains(parsed)


def get_lower_bound(range_text: str) -> str | None:
    rng = valid_range(range_text)
    return str(rng.lower) if rng is not None and rng.lower is not None else None


def format_range(lower: str, upper: str | None) -> str:
    return f">={lower} <{upper}" if upper else f">={lower}"
