"""Clover XML coverage adapter.

Clover is the XML format written by Istanbul/nyc (``--reporter=clover``),
Jest, PHPUnit and OpenClover. Files sit under ``<project>`` or ``<package>``
groups; both are read the same way and flattened into one sequence.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from defusedxml import DefusedXmlException, ElementTree
from defusedxml.ElementTree import ParseError as DefusedParseError

from cloverpr.adapters.coverage.base import CoverageAdapter, MalformedReportError
from cloverpr.models.coverage import CoverageDocument, FileMetrics, FileRecord, LineRecord

if TYPE_CHECKING:
    from collections.abc import Iterator
    from xml.etree.ElementTree import Element as XmlElement

logger = logging.getLogger(__name__)

DEFAULT_CLOVER_PATH = "coverage/clover.xml"

_ROOT_TAG = "coverage"
_GROUP_TAGS = frozenset({"project", "package"})


def _int_attr(element: XmlElement, key: str, default: int = 0) -> int:
    value = element.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise MalformedReportError(
            f"<{element.tag}> attribute {key}={value!r} is not an integer"
        ) from exc


def _parse_metrics(file_elem: XmlElement) -> FileMetrics:
    metrics = file_elem.find("metrics")
    if metrics is None:
        return FileMetrics()
    return FileMetrics(
        statements=_int_attr(metrics, "statements"),
        covered_statements=_int_attr(metrics, "coveredstatements"),
        conditionals=_int_attr(metrics, "conditionals"),
        covered_conditionals=_int_attr(metrics, "coveredconditionals"),
        methods=_int_attr(metrics, "methods"),
        covered_methods=_int_attr(metrics, "coveredmethods"),
    )


def _parse_file(file_elem: XmlElement) -> FileRecord:
    name = file_elem.get("name", "")
    path = file_elem.get("path") or name
    if not path:
        raise MalformedReportError("<file> element has neither a path nor a name")

    lines = tuple(
        LineRecord(
            number=_int_attr(line_elem, "num"),
            count=_int_attr(line_elem, "count"),
            kind=line_elem.get("type", ""),
        )
        for line_elem in file_elem.findall("line")
    )
    return FileRecord(path=path, name=name, metrics=_parse_metrics(file_elem), lines=lines)


def _iter_file_elements(group: XmlElement) -> Iterator[XmlElement]:
    """Yield ``<file>`` elements of a group and its nested groups in document order."""
    for child in group:
        if child.tag == "file":
            yield child
        elif child.tag in _GROUP_TAGS:
            yield from _iter_file_elements(child)


def parse_clover_xml(data: bytes | str) -> CoverageDocument:
    """Parse a Clover XML report into a ``CoverageDocument``.

    Raises:
        MalformedReportError: If the document is not well-formed XML, its root
            is not ``<coverage>``, or a numeric attribute is not an integer.
    """
    if isinstance(data, bytes):
        # Reports are often written with indentation before the XML declaration.
        data = data.lstrip()
    else:
        data = data.lstrip().encode("utf-8")

    try:
        root = ElementTree.fromstring(data)
    except (DefusedParseError, DefusedXmlException) as e:
        raise MalformedReportError(f"Failed to parse Clover XML: {e}") from e

    if root.tag != _ROOT_TAG:
        raise MalformedReportError(f"Clover XML root is not <{_ROOT_TAG}>: <{root.tag}>")

    files: list[FileRecord] = []
    for group in root:
        if group.tag not in _GROUP_TAGS:
            continue
        files.extend(_parse_file(file_elem) for file_elem in _iter_file_elements(group))

    logger.debug("Parsed %d file(s) from Clover report", len(files))
    return CoverageDocument(files=tuple(files))


class CloverAdapter(CoverageAdapter):
    """Clover XML coverage adapter."""

    def __init__(self, report_path: str = DEFAULT_CLOVER_PATH) -> None:
        self._report_path = report_path

    @property
    def name(self) -> str:
        return "clover"

    @property
    def default_report_path(self) -> str:
        return self._report_path

    def parse_report(self, data: bytes) -> CoverageDocument:
        """Parse Clover XML bytes into a ``CoverageDocument``."""
        return parse_clover_xml(data)
