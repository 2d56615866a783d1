"""Tests for release/branches/expand.py."""

from __future__ import annotations

from semrel.core.config import DEFAULT_BRANCHES
from semrel.release.branches.expand import expand_branches, match_patterns
from semrel.release.model import BranchSpec
from semrel.test.fakes import REMOTE_URL, FakeRepository


class TestMatchPatterns:
    """Tests for glob matching against remote branch names."""

    def test_glob_matches_in_pool_order(self) -> None:
        specs = match_patterns(["1.x", "master", "2.x"], [BranchSpec(name="[0-9]*.x")])
        assert [s.name for s in specs] == ["1.x", "2.x"]

    def test_name_claimed_once(self) -> None:
        specs = match_patterns(
            ["beta", "alpha"],
            [BranchSpec(name="beta", prerelease=True), BranchSpec(name="*", channel="other")],
        )
        assert [(s.name, s.channel) for s in specs] == [("beta", None), ("alpha", "other")]

    def test_unmatched_pattern_contributes_nothing(self) -> None:
        assert match_patterns(["master"], [BranchSpec(name="release/*")]) == []

    def test_name_rendered_in_fields(self) -> None:
        specs = match_patterns(
            ["feature-x"],
            [BranchSpec(name="feature-*", channel="ch-${name}", prerelease="${name}")],
        )
        assert specs[0].channel == "ch-feature-x"
        assert specs[0].prerelease == "feature-x"

    def test_false_fields_kept(self) -> None:
        specs = match_patterns(["master"], [BranchSpec(name="master", channel=False)])
        assert specs[0].channel is False

    def test_case_sensitive(self) -> None:
        assert match_patterns(["Master"], [BranchSpec(name="master")]) == []

    def test_default_patterns(self) -> None:
        pool = ["1.x", "1.2.x", "master", "next", "beta", "feature"]
        names = [s.name for s in match_patterns(pool, DEFAULT_BRANCHES)]
        assert names == ["1.x", "1.2.x", "master", "next", "beta"]

    def test_default_maintenance_globs_skip_stray_names(self) -> None:
        pool = ["1.x", "2-wip.x", "3.fix.x", "1/feature.x", "master"]
        names = [s.name for s in match_patterns(pool, DEFAULT_BRANCHES)]
        assert names == ["1.x", "master"]

    def test_maintenance_glob_with_declared_range_claims_any_match(self) -> None:
        specs = match_patterns(["legacy-1.x"], [BranchSpec(name="legacy-*.x", range="1.x")])
        assert [s.name for s in specs] == ["legacy-1.x"]


class TestExpandBranches:
    """Tests for expansion against the remote."""

    def test_remote_branches(self) -> None:
        repo = FakeRepository(remote=["master", "next"])
        result = expand_branches(
            repo=repo,
            repository_url=REMOTE_URL,
            ci_branch="master",
            publish_on_pr=False,
            patterns=DEFAULT_BRANCHES,
        )
        assert [s.name for s in result.unwrap()] == ["master", "next"]

    def test_pull_request_branch_added_when_publishing_on_pr(self) -> None:
        repo = FakeRepository(remote=["master"])
        patterns = (BranchSpec(name="master"), BranchSpec(name="refs/pull/*", prerelease="pr"))
        result = expand_branches(
            repo=repo,
            repository_url=REMOTE_URL,
            ci_branch="refs/pull/7/merge",
            publish_on_pr=True,
            patterns=patterns,
        )
        assert [s.name for s in result.unwrap()] == ["master", "refs/pull/7/merge"]

    def test_pull_request_branch_ignored_otherwise(self) -> None:
        repo = FakeRepository(remote=["master"])
        patterns = (BranchSpec(name="master"), BranchSpec(name="refs/pull/*", prerelease="pr"))
        result = expand_branches(
            repo=repo,
            repository_url=REMOTE_URL,
            ci_branch="refs/pull/7/merge",
            publish_on_pr=False,
            patterns=patterns,
        )
        assert [s.name for s in result.unwrap()] == ["master"]
