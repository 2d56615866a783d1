"""Channel membership notes.

Channels a version was published to are stored as JSON notes,
``{"channels": ["beta", null]}``, attached to the release tag under
``refs/notes/semantic-release-<tag>``. Notes written by older releases
live under the shared ``refs/notes/semantic-release`` ref and are still
read; the per-tag note wins on conflicts.
"""

from __future__ import annotations

from collections.abc import Sequence

from semrel.core.result import Err, Ok, Result
from semrel.core.structured import StrDict, as_obj_list, as_str_dict, deep_merge
from semrel.git.repository import GitBackend, GitError

GIT_NOTE_REF = "semantic-release"


def tag_notes_ref(git_tag: str) -> str:
    return f"{GIT_NOTE_REF}-{git_tag}"


def get_note(repo: GitBackend, git_tag: str) -> Result[StrDict, GitError]:
    legacy = repo.read_note(git_tag, notes_ref=GIT_NOTE_REF)
    if isinstance(legacy, Err):
        return legacy
    current = repo.read_note(git_tag, notes_ref=tag_notes_ref(git_tag))
    if isinstance(current, Err):
        return current
    merged = as_str_dict(deep_merge(legacy.value, current.value))
    return Ok(merged if merged is not None else {})


def note_channels(note: StrDict) -> tuple[str | None, ...]:
    """Channels recorded in a note, ``(None,)`` when absent."""
    raw = as_obj_list(note.get("channels"))
    if raw is None:
        return (None,)
    return tuple(c if isinstance(c, str) else None for c in raw)


def add_channels_note(
    repo: GitBackend, git_tag: str, channels: Sequence[str | None]
) -> Result[None, GitError]:
    return repo.write_note({"channels": list(channels)}, git_tag, notes_ref=tag_notes_ref(git_tag))
