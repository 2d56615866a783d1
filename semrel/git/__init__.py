"""Git operations module.

Usage:
    from semrel.git import Repository

    repo = Repository(Path("."))
    head = repo.head()
"""

from semrel.git.repository import (
    Commit,
    GitBackend,
    GitError,
    Repository,
)

__all__ = [
    "Commit",
    "GitBackend",
    "GitError",
    "Repository",
]
