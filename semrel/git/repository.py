"""Git repository abstraction.

This module provides the Repository class: the only place where the git
binary is invoked. It exposes exactly the read/write operations the
release pipeline needs (branches, tags, notes, pushes). All operations
return Result types.

The GitBackend protocol describes the same surface so tests can substitute
an in-memory repository.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.tags_merged("main"):
        case Ok(tags):
            print(", ".join(tags))
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from semrel.core.result import Err, Ok, Result
from semrel.core.structured import StrDict, as_str_dict
from semrel.platform.process import ProcessError
from semrel.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

# Field and record separators for `git log --format`.
_FS = "\x1f"
_RS = "\x1e"
_LOG_FORMAT = _FS.join(["%H", "%an", "%ae", "%cI", "%B"]) + _RS

_HEADS_RE = re.compile(r"^.+refs/heads/(?P<branch>.+)$")

__all__ = [
    "Commit",
    "GitBackend",
    "GitError",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1

    @property
    def code(self) -> str:
        return "EGITCOMMAND"


@dataclass(frozen=True, slots=True)
class Commit:
    """A commit listed between two release heads.

    Attributes:
        hash: Full commit hash
        message: Full commit message (subject and body)
        author_name: Author name
        author_email: Author email
        committer_date: ISO 8601 committer date
    """

    hash: str
    message: str
    author_name: str = ""
    author_email: str = ""
    committer_date: str = ""


class GitBackend(Protocol):
    """Version-control operations used by the release pipeline."""

    def remote_branches(self, repository_url: str) -> Result[list[str], GitError]: ...

    def tags_merged(self, ref: str) -> Result[list[str], GitError]: ...

    def tag_head(self, tag: str) -> Result[str, GitError]: ...

    def head(self) -> Result[str, GitError]: ...

    def is_detached_head(self) -> bool: ...

    def current_branch(self) -> str | None: ...

    def remote_url(self) -> str | None: ...

    def check_ref_format(self, ref: str) -> bool: ...

    def read_note(self, ref: str, *, notes_ref: str) -> Result[StrDict, GitError]: ...

    def write_note(self, note: Mapping[str, object], ref: str, *, notes_ref: str) -> Result[None, GitError]: ...

    def tag(self, name: str, ref: str) -> Result[None, GitError]: ...

    def push_tags(self, repository_url: str) -> Result[None, GitError]: ...

    def push_notes(self, repository_url: str, notes_ref: str) -> Result[None, GitError]: ...

    def verify_auth(self, repository_url: str, branch: str) -> Result[None, GitError]: ...

    def is_branch_up_to_date(self, repository_url: str, branch: str) -> Result[bool, GitError]: ...

    def fetch(self, repository_url: str, branch: str, ci_branch: str | None) -> Result[None, GitError]: ...

    def fetch_notes(self, repository_url: str) -> Result[None, GitError]: ...

    def log(self, from_ref: str | None, to_ref: str) -> Result[list[Commit], GitError]: ...


class Repository:
    """Subprocess-backed git repository.

    Attributes:
        path: Path to the working tree
        env: Environment passed to every git invocation (shared, not copied)
    """

    def __init__(self, path: Path, env: dict[str, str] | None = None) -> None:
        self.path = path
        self.env = env

    def remote_branches(self, repository_url: str) -> Result[list[str], GitError]:
        """List branch names on the remote (`git ls-remote --heads`)."""
        result = self._git(["ls-remote", "--heads", repository_url])
        if isinstance(result, Err):
            return result
        branches: list[str] = []
        for line in result.value.splitlines():
            m = _HEADS_RE.match(line.strip())
            if m is not None:
                branches.append(m.group("branch"))
        return Ok(branches)

    def tags_merged(self, ref: str) -> Result[list[str], GitError]:
        """List tags reachable from ``ref``."""
        result = self._git(["tag", "--merged", ref])
        if isinstance(result, Err):
            return result
        return Ok([t.strip() for t in result.value.splitlines() if t.strip()])

    def tag_head(self, tag: str) -> Result[str, GitError]:
        """Resolve a tag (or any ref) to its commit hash."""
        return self._git(["rev-list", "-1", tag]).map(str.strip)

    def head(self) -> Result[str, GitError]:
        return self._git(["rev-parse", "HEAD"]).map(str.strip)

    def is_detached_head(self) -> bool:
        result = self._git(["rev-parse", "--abbrev-ref", "HEAD"])
        return isinstance(result, Ok) and result.value.strip() == "HEAD"

    def current_branch(self) -> str | None:
        """Current branch name, None on detached HEAD or error."""
        result = self._git(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def remote_url(self) -> str | None:
        result = self._git(["config", "--get", "remote.origin.url"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def check_ref_format(self, ref: str) -> bool:
        return isinstance(self._git(["check-ref-format", ref]), Ok)

    def read_note(self, ref: str, *, notes_ref: str) -> Result[StrDict, GitError]:
        """Read the JSON note attached to ``ref`` under ``refs/notes/<notes_ref>``.

        A missing note (git exits with 1) is an empty object, not an error.
        """
        result = self._run(["notes", "--ref", notes_ref, "show", ref])
        if isinstance(result, Err):
            if result.error.returncode == 1:
                return Ok({})
            return Err(self._error(result.error))
        try:
            parsed: object = json.loads(result.value)
        except json.JSONDecodeError as e:
            return Err(GitError(command="notes show", message=f"invalid JSON note on {ref}: {e}"))
        note = as_str_dict(parsed)
        if note is None:
            return Err(GitError(command="notes show", message=f"note on {ref} is not a JSON object"))
        return Ok(note)

    def write_note(self, note: Mapping[str, object], ref: str, *, notes_ref: str) -> Result[None, GitError]:
        """Write (or overwrite) the JSON note of ``ref``."""
        payload = json.dumps(dict(note), separators=(",", ":"))
        return self._git(["notes", "--ref", notes_ref, "add", "-f", "-m", payload, ref]).map(lambda _: None)

    def tag(self, name: str, ref: str) -> Result[None, GitError]:
        """Create a lightweight tag."""
        return self._git(["tag", name, ref]).map(lambda _: None)

    def push_tags(self, repository_url: str) -> Result[None, GitError]:
        return self._git(["push", "--tags", repository_url]).map(lambda _: None)

    def push_notes(self, repository_url: str, notes_ref: str) -> Result[None, GitError]:
        return self._git(["push", repository_url, f"refs/notes/{notes_ref}"]).map(lambda _: None)

    def verify_auth(self, repository_url: str, branch: str) -> Result[None, GitError]:
        """Probe push permission with a dry-run push of HEAD."""
        return self._git(
            ["push", "--dry-run", "--no-verify", repository_url, f"HEAD:{branch}"]
        ).map(lambda _: None)

    def is_branch_up_to_date(self, repository_url: str, branch: str) -> Result[bool, GitError]:
        """True if local HEAD matches the head of ``branch`` on the remote."""
        head = self.head()
        if isinstance(head, Err):
            return head
        remote = self._git(["ls-remote", "--heads", repository_url, branch])
        if isinstance(remote, Err):
            return remote
        m = re.match(r"^(\w+)?", remote.value)
        remote_head = m.group(1) if m is not None else None
        return Ok(head.value == remote_head)

    def fetch(self, repository_url: str, branch: str, ci_branch: str | None) -> Result[None, GitError]:
        """Fetch tags and ``branch`` from the remote, unshallowing if needed.

        The branch that triggered the run is fetched without a refspec so the
        head set up by the CI is left untouched (unless HEAD is detached).
        """
        if branch == ci_branch and not self.is_detached_head():
            target = [repository_url]
        else:
            target = ["--update-head-ok", repository_url, f"+refs/heads/{branch}:refs/heads/{branch}"]

        result = self._git(["fetch", "--unshallow", "--tags", *target])
        if isinstance(result, Ok):
            return Ok(None)
        return self._git(["fetch", "--tags", *target]).map(lambda _: None)

    def fetch_notes(self, repository_url: str) -> Result[None, GitError]:
        result = self._git(["fetch", "--unshallow", repository_url, "+refs/notes/*:refs/notes/*"])
        if isinstance(result, Ok):
            return Ok(None)
        # A remote without any notes ref is fine.
        self._run(["fetch", repository_url, "+refs/notes/*:refs/notes/*"])
        return Ok(None)

    def log(self, from_ref: str | None, to_ref: str) -> Result[list[Commit], GitError]:
        """List commits reachable from ``to_ref`` but not from ``from_ref``."""
        rev_range = f"{from_ref}..{to_ref}" if from_ref else to_ref
        result = self._git(["log", f"--format={_LOG_FORMAT}", rev_range])
        if isinstance(result, Err):
            return result
        return Ok(self._parse_log(result.value))

    def _parse_log(self, output: str) -> list[Commit]:
        commits: list[Commit] = []
        for record in output.split(_RS):
            record = record.strip("\n")
            if not record:
                continue
            fields = record.split(_FS)
            if len(fields) < 5:
                continue
            sha, name, email, date, message = fields[:5]
            commits.append(
                Commit(
                    hash=sha.strip(),
                    message=message.strip(),
                    author_name=name,
                    author_email=email,
                    committer_date=date,
                )
            )
        return commits

    def _git(self, args: list[str]) -> Result[str, GitError]:
        result = self._run(args)
        if isinstance(result, Err):
            return Err(self._error(result.error))
        return result

    def _error(self, e: ProcessError) -> GitError:
        command = " ".join(e.command[3:5]) if len(e.command) > 3 else "git"
        return GitError(
            command=command,
            message=e.stderr.strip() or e.stdout.strip() or f"git {command} failed",
            returncode=e.returncode,
        )

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "push", "ls-remote"}
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(
            ["git", "-C", str(self.path), *args],
            cwd=self.path,
            env=self.env,
            timeout=timeout,
        )
