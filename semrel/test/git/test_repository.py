"""Tests for semrel.git.repository module."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from semrel.core.result import Err, Ok, Result
from semrel.git import repository as repository_module
from semrel.git.repository import Commit, Repository
from semrel.platform.process import ProcessError

type Responder = Callable[[list[str]], Result[str, ProcessError]]


class GitRecorder:
    """Stands in for run_process; answers each git call through a responder."""

    def __init__(self, responder: Responder) -> None:
        self.responder = responder
        self.calls: list[list[str]] = []

    def __call__(self, cmd: list[str], cwd: Path, env: object = None, *, timeout: float | None = None):
        args = cmd[3:]
        self.calls.append(args)
        return self.responder(args)


def _fail(args: list[str], returncode: int = 1, stderr: str = "fatal: boom") -> Err[ProcessError]:
    return Err(ProcessError(command=("git", "-C", "/repo", *args), returncode=returncode, stdout="", stderr=stderr))


@pytest.fixture
def repo(tmp_path: Path) -> Repository:
    return Repository(tmp_path, {"GIT_TERMINAL_PROMPT": "0"})


def _install(monkeypatch: pytest.MonkeyPatch, responder: Responder) -> GitRecorder:
    recorder = GitRecorder(responder)
    monkeypatch.setattr(repository_module, "run_process", recorder)
    return recorder


class TestBranchesAndTags:
    def test_remote_branches_parses_heads(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        output = "abc123\trefs/heads/master\ndef456\trefs/heads/1.x\n789abc\trefs/heads/feature/nested\n"
        _install(monkeypatch, lambda args: Ok(output))

        result = repo.remote_branches("https://example.com/r.git")

        assert isinstance(result, Ok)
        assert result.value == ["master", "1.x", "feature/nested"]

    def test_remote_branches_error(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, lambda args: _fail(args, 128, "fatal: repository not found"))

        result = repo.remote_branches("https://example.com/r.git")

        assert isinstance(result, Err)
        assert result.error.returncode == 128
        assert "repository not found" in result.error.message
        assert result.error.code == "EGITCOMMAND"

    def test_tags_merged_skips_blank_lines(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        recorder = _install(monkeypatch, lambda args: Ok("v1.0.0\n\nv1.1.0\n"))

        result = repo.tags_merged("master")

        assert result == Ok(["v1.0.0", "v1.1.0"])
        assert recorder.calls == [["tag", "--merged", "master"]]

    def test_tag_head_strips_output(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, lambda args: Ok("abc123\n"))
        assert repo.tag_head("v1.0.0") == Ok("abc123")

    def test_current_branch_detached(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, lambda args: Ok("HEAD\n"))
        assert repo.current_branch() is None
        assert repo.is_detached_head() is True

    def test_remote_url_missing(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, lambda args: _fail(args))
        assert repo.remote_url() is None


class TestNotes:
    def test_read_note_missing_is_empty(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, lambda args: _fail(args, 1, "error: no note found"))

        assert repo.read_note("v1.0.0", notes_ref="semantic-release-v1.0.0") == Ok({})

    def test_read_note_other_failure(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, lambda args: _fail(args, 128))

        result = repo.read_note("v1.0.0", notes_ref="semantic-release-v1.0.0")

        assert isinstance(result, Err)
        assert result.error.returncode == 128

    def test_read_note_parses_json(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        recorder = _install(monkeypatch, lambda args: Ok('{"channels":[null,"next"]}\n'))

        result = repo.read_note("v1.0.0", notes_ref="semantic-release-v1.0.0")

        assert result == Ok({"channels": [None, "next"]})
        assert recorder.calls == [["notes", "--ref", "semantic-release-v1.0.0", "show", "v1.0.0"]]

    def test_read_note_invalid_json(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, lambda args: Ok("not json"))

        result = repo.read_note("v1.0.0", notes_ref="semantic-release-v1.0.0")

        assert isinstance(result, Err)
        assert "invalid JSON" in result.error.message

    def test_read_note_not_an_object(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, lambda args: Ok("[1, 2]"))

        result = repo.read_note("v1.0.0", notes_ref="semantic-release-v1.0.0")

        assert isinstance(result, Err)

    def test_write_note_args(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        recorder = _install(monkeypatch, lambda args: Ok(""))

        result = repo.write_note({"channels": ["next"]}, "v2.0.0", notes_ref="semantic-release-v2.0.0")

        assert result == Ok(None)
        args = recorder.calls[0]
        assert args[:5] == ["notes", "--ref", "semantic-release-v2.0.0", "add", "-f"]
        assert json.loads(args[6]) == {"channels": ["next"]}
        assert args[-1] == "v2.0.0"


class TestPush:
    def test_verify_auth_dry_run_push(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        recorder = _install(monkeypatch, lambda args: Ok(""))

        assert repo.verify_auth("https://example.com/r.git", "master") == Ok(None)
        assert recorder.calls == [["push", "--dry-run", "--no-verify", "https://example.com/r.git", "HEAD:master"]]

    def test_push_notes_refspec(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        recorder = _install(monkeypatch, lambda args: Ok(""))

        repo.push_notes("https://example.com/r.git", "semantic-release-v1.0.0")

        assert recorder.calls == [["push", "https://example.com/r.git", "refs/notes/semantic-release-v1.0.0"]]

    def test_is_branch_up_to_date(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        def responder(args: list[str]) -> Result[str, ProcessError]:
            if args[0] == "rev-parse":
                return Ok("abc123\n")
            return Ok("abc123\trefs/heads/master\n")

        _install(monkeypatch, responder)

        assert repo.is_branch_up_to_date("https://example.com/r.git", "master") == Ok(True)

    def test_is_branch_behind(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        def responder(args: list[str]) -> Result[str, ProcessError]:
            if args[0] == "rev-parse":
                return Ok("abc123\n")
            return Ok("fff999\trefs/heads/master\n")

        _install(monkeypatch, responder)

        assert repo.is_branch_up_to_date("https://example.com/r.git", "master") == Ok(False)


class TestFetch:
    def test_fetch_ci_branch_without_refspec(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        def responder(args: list[str]) -> Result[str, ProcessError]:
            return Ok("master\n") if args[0] == "rev-parse" else Ok("")

        recorder = _install(monkeypatch, responder)

        assert repo.fetch("https://example.com/r.git", "master", "master") == Ok(None)
        assert recorder.calls[-1] == ["fetch", "--unshallow", "--tags", "https://example.com/r.git"]

    def test_fetch_falls_back_when_not_shallow(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        def responder(args: list[str]) -> Result[str, ProcessError]:
            if "--unshallow" in args:
                return _fail(args, 128, "fatal: --unshallow on a complete repository does not make sense")
            return Ok("")

        recorder = _install(monkeypatch, responder)

        assert repo.fetch("https://example.com/r.git", "next", "master") == Ok(None)
        assert recorder.calls[-1] == [
            "fetch",
            "--tags",
            "--update-head-ok",
            "https://example.com/r.git",
            "+refs/heads/next:refs/heads/next",
        ]

    def test_fetch_notes_tolerates_missing_notes(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, lambda args: _fail(args, 128, "fatal: couldn't find remote ref"))

        assert repo.fetch_notes("https://example.com/r.git") == Ok(None)


class TestLog:
    def test_parses_records(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        fs, rs = "\x1f", "\x1e"
        output = (
            f"{'a' * 40}{fs}Ann{fs}ann@example.com{fs}2026-01-02T00:00:00+00:00{fs}feat: add x\n\nbody{rs}\n"
            f"{'b' * 40}{fs}Bob{fs}bob@example.com{fs}2026-01-01T00:00:00+00:00{fs}fix: y\n{rs}\n"
        )
        recorder = _install(monkeypatch, lambda args: Ok(output))

        result = repo.log("v1.0.0", "HEAD")

        assert isinstance(result, Ok)
        assert [c.hash for c in result.value] == ["a" * 40, "b" * 40]
        first: Commit = result.value[0]
        assert first.message == "feat: add x\n\nbody"
        assert recorder.calls[0][-1] == "v1.0.0..HEAD"

    def test_without_from_ref(self, repo: Repository, monkeypatch: pytest.MonkeyPatch) -> None:
        recorder = _install(monkeypatch, lambda args: Ok(""))

        assert repo.log(None, "HEAD") == Ok([])
        assert recorder.calls[0][-1] == "HEAD"
