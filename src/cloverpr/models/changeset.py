"""Change-set model: the files a pull request touches."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChangeSet:
    """Files created or modified by the change under review."""

    created_files: tuple[str, ...] = ()
    """Repository-relative paths of added files."""

    modified_files: tuple[str, ...] = ()
    """Repository-relative paths of modified files."""

    commits: tuple[str, ...] = ()
    """Commit SHAs in the change, oldest first."""

    @property
    def changed_files(self) -> frozenset[str]:
        """Return the union of created and modified paths."""
        return frozenset(self.created_files) | frozenset(self.modified_files)

    @property
    def head_sha(self) -> str | None:
        """Return the most recent commit SHA, if any."""
        if not self.commits:
            return None
        return self.commits[-1]
