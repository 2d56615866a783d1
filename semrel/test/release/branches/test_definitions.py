"""Tests for release/branches/definitions.py."""

from __future__ import annotations

from semrel.release.branches.definitions import (
    is_maintenance,
    is_prerelease,
    is_release,
    partition,
    validate_maintenance,
    validate_names,
    validate_prerelease,
    validate_release,
)
from semrel.release.model import BranchSpec


class TestClassification:
    """Maintenance wins over prerelease, which wins over release."""

    def test_maintenance_by_name(self) -> None:
        assert is_maintenance(BranchSpec(name="1.x"))
        assert is_maintenance(BranchSpec(name="1.2.x"))

    def test_maintenance_by_range(self) -> None:
        branch = BranchSpec(name="legacy", range="1.x", prerelease=True)
        assert is_maintenance(branch)
        assert not is_release(branch)

    def test_range_false_opts_out(self) -> None:
        assert not is_maintenance(BranchSpec(name="legacy", range=False))

    def test_prerelease(self) -> None:
        assert is_prerelease(BranchSpec(name="beta", prerelease=True))
        assert is_prerelease(BranchSpec(name="next", prerelease="rc"))
        assert not is_prerelease(BranchSpec(name="beta", prerelease=False))

    def test_partition(self) -> None:
        branches = [
            BranchSpec(name="master"),
            BranchSpec(name="beta", prerelease=True),
            BranchSpec(name="1.x"),
            BranchSpec(name="legacy", range="2.x", prerelease=True),
        ]
        maintenance, release, prerelease = partition(branches)
        assert [b.name for b in maintenance] == ["1.x", "legacy"]
        assert [b.name for b in release] == ["master"]
        assert [b.name for b in prerelease] == ["beta"]


class TestValidators:
    """Tests for configuration validation."""

    def test_duplicate_maintenance_ranges(self) -> None:
        errors = validate_maintenance([BranchSpec(name="1.x"), BranchSpec(name="legacy", range="1.x")])
        assert [e.code for e in errors] == ["EMAINTENANCEBRANCHES"]
        assert errors[0].branches == ("1.x", "legacy")

    def test_invalid_maintenance_range(self) -> None:
        errors = validate_maintenance([BranchSpec(name="legacy", range="latest")])
        assert [e.code for e in errors] == ["EMAINTENANCEBRANCH"]

    def test_distinct_maintenance_ranges(self) -> None:
        assert validate_maintenance([BranchSpec(name="1.x"), BranchSpec(name="1.1.x")]) == []

    def test_release_count(self) -> None:
        assert validate_release([BranchSpec(name="master")]) == []
        assert validate_release([BranchSpec(name=n) for n in ("a", "b", "c")]) == []
        four = validate_release([BranchSpec(name=n) for n in ("a", "b", "c", "d")])
        assert [e.code for e in four] == ["ERELEASEBRANCHES"]
        assert [e.code for e in validate_release([])] == ["ERELEASEBRANCHES"]

    def test_prerelease_identifier(self) -> None:
        ok = validate_prerelease(
            [BranchSpec(name="beta", prerelease=True)], first_release="1.0.0", prerelease_identifier_base="1"
        )
        assert ok == []
        bad = validate_prerelease(
            [BranchSpec(name="feat_x", prerelease=True)], first_release="1.0.0", prerelease_identifier_base="1"
        )
        assert [e.code for e in bad] == ["EPRERELEASEBRANCH"]

    def test_duplicate_prerelease_identifiers(self) -> None:
        errors = validate_prerelease(
            [BranchSpec(name="beta", prerelease=True), BranchSpec(name="next", prerelease="beta")],
            first_release="1.0.0",
            prerelease_identifier_base="1",
        )
        assert [e.code for e in errors] == ["EPRERELEASEBRANCHES"]

    def test_duplicate_names(self) -> None:
        errors = validate_names([BranchSpec(name="master"), BranchSpec(name="master", channel="x")])
        assert [e.code for e in errors] == ["EDUPLICATEBRANCHES"]
