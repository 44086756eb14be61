"""Base class for institution transcript normalizers.

A transcript normalizer turns one institution's XML export into
NormalizedStudentData rows. Each concrete normalizer is tagged with a
TranscriptDialect and declares which XML tags repeat, so that an element
occurring once or many times always parses to the same list shape.

normalize() never raises for bad input. It reports one of three failures:
- PARSING_ERROR: the XML parser rejected the document
- INVALID_XML: the document parsed but lacks the dialect's root/list chain
- MISSING_REQUIRED_FIELDS: the structure is valid but no complete student
  could be extracted
"""

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Union

from gradecheck.config.models import TranscriptDialect
from gradecheck.domain.models import NormalizedStudentData
from gradecheck.logging import get_logger

from .exceptions import ERROR_MESSAGES, NormalizationErrorCode

logger = get_logger(__name__, component="normalizer")

XmlContent = Union[str, bytes]


@dataclass
class TranscriptNormalizationResult:
    """Outcome of running a normalizer on one document.

    Attributes:
        success: True when at least one student was extracted
        data: Extracted students (empty on failure)
        error: Failure reason when success is False
        error_message: Human-readable failure detail
    """

    success: bool
    data: List[NormalizedStudentData] = field(default_factory=list)
    error: Optional[NormalizationErrorCode] = None
    error_message: Optional[str] = None

    @classmethod
    def failure(
        cls, error: NormalizationErrorCode, detail: Optional[str] = None
    ) -> "TranscriptNormalizationResult":
        message = ERROR_MESSAGES[error]
        if detail:
            message = f"{message}: {detail}"
        return cls(success=False, error=error, error_message=message)


def _local_name(tag: str) -> str:
    # "{urn:ns}TAG" -> "TAG"
    return tag.rsplit("}", 1)[-1]


def element_to_dict(element: ET.Element, array_tags: FrozenSet[str]) -> Any:
    """Convert an element tree into nested dicts, lists and strings.

    Children whose tag is in array_tags always become lists. Other tags
    become a single value, or a list when they repeat. Leaf elements become
    their stripped text; an empty leaf that is a list tag becomes {} so it
    still reads as a container. Attributes are ignored.
    """
    children = list(element)
    if not children:
        if _local_name(element.tag) in array_tags:
            return {}
        return (element.text or "").strip()

    result: Dict[str, Any] = {}
    for child in children:
        tag = _local_name(child.tag)
        value = element_to_dict(child, array_tags)

        if tag in array_tags:
            result.setdefault(tag, []).append(value)
        elif tag in result:
            if not isinstance(result[tag], list):
                result[tag] = [result[tag]]
            result[tag].append(value)
        else:
            result[tag] = value

    return result


def dig(tree: Any, *path: Union[str, int]) -> Any:
    """Follow a path of keys and list indexes, returning None on any miss.

    Example:
        >>> dig({"A": [{"B": "x"}]}, "A", 0, "B")
        'x'
    """
    current = tree
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, dict) or step not in current:
                return None
            current = current[step]
    return current


def as_list(value: Any) -> List[Any]:
    """Wrap a single value in a list; None becomes []."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


class BaseTranscriptNormalizer(ABC):
    """Base class for all transcript normalizers.

    Subclasses set DIALECT, INSTITUTION_NAME and ARRAY_TAGS, and implement
    accepts(), is_valid_structure() and extract_students().
    """

    DIALECT: TranscriptDialect
    INSTITUTION_NAME: str = ""
    ARRAY_TAGS: FrozenSet[str] = frozenset()

    @property
    def dialect(self) -> TranscriptDialect:
        return self.DIALECT

    def array_tags(self) -> FrozenSet[str]:
        """Tags that must always parse as ordered lists."""
        return self.ARRAY_TAGS

    def parse(self, content: XmlContent) -> Dict[str, Any]:
        """Parse XML into a dict keyed by the root tag.

        Raises:
            xml.etree.ElementTree.ParseError: If the XML is malformed
        """
        root = ET.fromstring(content)
        return {_local_name(root.tag): element_to_dict(root, self.array_tags())}

    def can_normalize(self, content: XmlContent) -> bool:
        """Whether this normalizer recognises the document's dialect.

        Malformed XML is never recognised.
        """
        try:
            tree = self.parse(content)
        except ET.ParseError:
            return False
        return self.accepts(tree)

    def normalize(self, content: XmlContent) -> TranscriptNormalizationResult:
        """Extract students from a transcript document.

        Args:
            content: Raw XML (bytes keep the document's declared encoding)

        Returns:
            TranscriptNormalizationResult, successful when at least one
            complete student was extracted
        """
        try:
            tree = self.parse(content)
        except ET.ParseError as e:
            logger.warning(
                "Transcript could not be parsed",
                extra={
                    "event": "normalizer.transcript.parse_failed",
                    "dialect": self.dialect.value,
                    "error": str(e),
                },
            )
            return TranscriptNormalizationResult.failure(NormalizationErrorCode.PARSING_ERROR, str(e))

        if not self.is_valid_structure(tree):
            logger.warning(
                "Transcript structure is invalid",
                extra={"event": "normalizer.transcript.invalid_structure", "dialect": self.dialect.value},
            )
            return TranscriptNormalizationResult.failure(NormalizationErrorCode.INVALID_XML)

        students = self.extract_students(tree)
        if not students:
            return TranscriptNormalizationResult.failure(NormalizationErrorCode.MISSING_REQUIRED_FIELDS)

        logger.debug(
            f"Extracted {len(students)} students",
            extra={
                "event": "normalizer.transcript.extracted",
                "dialect": self.dialect.value,
                "student_count": len(students),
            },
        )
        return TranscriptNormalizationResult(success=True, data=students)

    @abstractmethod
    def accepts(self, tree: Dict[str, Any]) -> bool:
        """Whether a parsed document belongs to this dialect."""

    @abstractmethod
    def is_valid_structure(self, tree: Dict[str, Any]) -> bool:
        """Whether the root-to-student-list chain is present."""

    @abstractmethod
    def extract_students(self, tree: Dict[str, Any]) -> List[NormalizedStudentData]:
        """Extract every complete student; incomplete ones are dropped."""
