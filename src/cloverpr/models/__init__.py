"""Data models for cloverpr."""

from cloverpr.models.changeset import ChangeSet
from cloverpr.models.coverage import CoverageDocument, FileMetrics, FileRecord, LineRecord

__all__ = [
    "ChangeSet",
    "CoverageDocument",
    "FileMetrics",
    "FileRecord",
    "LineRecord",
]
