"""Git operations module.

Usage:
    from mrel.git import Repository

    repo = Repository(Path("/path/to/workspace"))
    match await repo.tags_merged("main"):
        case Ok(tags):
            print(tags)
        case Err(e):
            print(e.message)
"""

from mrel.git.repository import (
    Commit,
    GitError,
    Repository,
)

__all__ = [
    "Commit",
    "GitError",
    "Repository",
]
