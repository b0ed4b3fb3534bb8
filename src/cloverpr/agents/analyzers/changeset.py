"""Restrict a coverage document to the files a change touches.

Report paths may be absolute (rooted at the project directory the tests ran
in) while change-set paths are always repository-relative. Paths are compared
exactly after stripping the project root; there is no case folding or fuzzy
matching.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from cloverpr.models.changeset import ChangeSet
    from cloverpr.models.coverage import CoverageDocument, FileRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterResult:
    """Records selected for review."""

    records: tuple[FileRecord, ...]
    """Matching records in document order."""

    total: int
    """Number of covered files that are part of the change."""

    @property
    def is_empty(self) -> bool:
        return self.total == 0


def normalize_path(path: str, root: str | Path) -> str:
    """Return ``path`` relative to ``root`` when it is rooted there.

    Relative paths, and absolute paths outside ``root``, are returned unchanged.
    """
    prefix = str(root).rstrip("/") + "/"
    if path.startswith(prefix):
        return path[len(prefix) :]
    return path


def filter_records(
    document: CoverageDocument,
    change_set: ChangeSet,
    *,
    root: str | Path,
    show_all_files: bool = False,
) -> FilterResult:
    """Select the records whose normalized path is in the change-set.

    Args:
        document: Parsed coverage report.
        change_set: Created and modified paths of the change.
        root: Project root used to relativize absolute report paths.
        show_all_files: Skip change-set filtering and keep every record.

    Returns:
        A ``FilterResult`` preserving document order.
    """
    if show_all_files:
        records = tuple(document.files)
    else:
        changed = change_set.changed_files
        records = tuple(
            record for record in document.files if normalize_path(record.path, root) in changed
        )

    logger.debug(
        "Selected %d of %d covered file(s) (show_all_files=%s)",
        len(records),
        len(document),
        show_all_files,
    )
    return FilterResult(records=records, total=len(records))
