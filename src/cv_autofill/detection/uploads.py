"""File-upload classifier and CV compatibility checks."""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from cv_autofill.core.models import CVRecord, FileUploadMapping, FileUploadType
from cv_autofill.detection.identifiers import field_identifiers, nearby_text
from cv_autofill.detection.tables import ClassifierTables
from cv_autofill.dom.snapshot import DocumentSnapshot, DomNode
from cv_autofill.utils.logging import get_logger

logger = get_logger(__name__)

_SIZE_TEXT_RE = re.compile(r"(?:max|maximum|up to|limit)\s*:?\s*(\d+)\s*(mb|kb|gb)", re.IGNORECASE)
_SIZE_UNITS = {"kb": 1024, "mb": 1024 ** 2, "gb": 1024 ** 3}
_MAX_SIZE_ATTRIBUTES = ("data-max-size", "data-maxsize", "max-size")

INCOMPATIBLE_TYPE = "type"
INCOMPATIBLE_SIZE = "size"


@dataclass(frozen=True)
class CompatibilityResult:
    """Outcome of matching a CV against an upload field's constraints."""
    compatible: bool
    reason: str = ""
    kind: Optional[str] = None

    def __bool__(self) -> bool:
        return self.compatible


def format_size(size: int) -> str:
    if size >= 1024 ** 2:
        return f"{size / 1024 ** 2:.1f} MB"
    if size >= 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size} bytes"


def parse_accept(value: str) -> Tuple[str, ...]:
    """Split an ``accept`` attribute into trimmed, lower-cased entries."""
    if not value:
        return ()
    return tuple(entry.strip().lower() for entry in value.split(",") if entry.strip())


class FileUploadClassifier:
    """Infers the purpose and constraints of ``input[type=file]`` elements."""

    def __init__(self, tables: ClassifierTables, min_upload_confidence: float = 0.5):
        self.tables = tables
        self.min_upload_confidence = min_upload_confidence
        self.logger = logger.bind(component="file_upload_classifier")

    def match_purpose(self, identifiers: Sequence[str]) -> Optional[FileUploadType]:
        """Purpose whose matched keywords have the largest weighted total length."""
        text = " ".join(identifiers)
        best: Optional[FileUploadType] = None
        best_score = 0.0
        for purpose, rule in self.tables.upload_purposes.items():
            score = sum(len(keyword) for keyword in rule.keywords if keyword in text) * rule.weight
            if score > best_score:
                best, best_score = purpose, score
        return best

    def extract_max_size(self, node: DomNode) -> Optional[int]:
        """Declared byte limit from size attributes, else from "max 5MB"-style nearby text."""
        for attribute in _MAX_SIZE_ATTRIBUTES:
            raw = node.get(attribute).strip()
            if raw:
                digits = re.match(r"\d+", raw)
                if digits:
                    return int(digits.group())

        match = _SIZE_TEXT_RE.search(nearby_text(node))
        if match:
            return int(match.group(1)) * _SIZE_UNITS[match.group(2).lower()]
        return None

    def score(
        self,
        identifiers: Sequence[str],
        purpose: FileUploadType,
        accepted_types: Sequence[str],
    ) -> float:
        """Heuristic confidence that the field really serves ``purpose``."""
        tables = self.tables
        text = " ".join(identifiers)
        confidence = tables.upload_base_confidence

        rule = tables.upload_purposes.get(purpose)
        exact_score = 0.0
        for keyword in (rule.exact_keywords if rule else []):
            if keyword in text:
                compound = " " in keyword or "_" in keyword
                exact_score += len(keyword) * (1.5 if compound else 1.0)
        if exact_score > 0:
            confidence += min(0.5, exact_score / 20)

        is_cv = purpose == FileUploadType.CV_RESUME
        if is_cv and any(phrase in text for phrase in tables.upload_phrases):
            confidence += 0.3

        if accepted_types and _any_contains(accepted_types, tables.document_accept_types):
            confidence += 0.2

        if len(identifiers) > 2:
            confidence += 0.1

        only_generic = all(
            any(term in identifier for term in tables.generic_upload_terms)
            for identifier in identifiers
        )
        if only_generic and purpose == FileUploadType.OTHER:
            confidence -= 0.2

        if is_cv and accepted_types and _any_contains(accepted_types, tables.cv_accept_types):
            confidence += 0.2

        if is_cv and any(term in text for term in tables.cv_specific_terms):
            confidence += 0.15

        return max(0.0, min(1.0, confidence))

    def classify(self, node: DomNode, snapshot: DocumentSnapshot) -> Optional[FileUploadMapping]:
        identifiers = field_identifiers(node, snapshot)
        purpose = self.match_purpose(identifiers)
        if purpose is None:
            return None

        accepted = parse_accept(node.get("accept"))
        return FileUploadMapping(
            ref=node.ref,
            purpose=purpose,
            confidence=self.score(identifiers, purpose, accepted),
            accepted_types=accepted,
            max_size=self.extract_max_size(node),
        )

    def classify_all(self, nodes: Iterable[DomNode], snapshot: DocumentSnapshot) -> List[FileUploadMapping]:
        """Mappings for every recognisable upload field, highest confidence first."""
        mappings = [m for m in (self.classify(node, snapshot) for node in nodes) if m is not None]
        mappings.sort(key=lambda m: m.confidence, reverse=True)
        self.logger.debug(
            "Upload fields classified",
            count=len(mappings),
            purposes=[m.purpose.value for m in mappings],
        )
        return mappings

    def check_compatibility(self, mapping: FileUploadMapping, cv: CVRecord) -> CompatibilityResult:
        """
        Check a CV against the field's accepted types and size limit.

        Returns:
            CompatibilityResult whose reason names the accepted types or both sizes
        """
        if mapping.accepted_types and not any(
            self._type_accepted(accepted, cv.mime_type) for accepted in mapping.accepted_types
        ):
            return CompatibilityResult(
                compatible=False,
                reason=(
                    f"{cv.file_name} ({cv.mime_type}) is not an accepted file type; "
                    f"the field accepts {', '.join(mapping.accepted_types)}"
                ),
                kind=INCOMPATIBLE_TYPE,
            )

        if mapping.max_size is not None and cv.file_size > mapping.max_size:
            return CompatibilityResult(
                compatible=False,
                reason=(
                    f"{cv.file_name} is too large ({format_size(cv.file_size)}); "
                    f"the field allows at most {format_size(mapping.max_size)}"
                ),
                kind=INCOMPATIBLE_SIZE,
            )

        return CompatibilityResult(compatible=True)

    def eligible(self, mappings: Iterable[FileUploadMapping]) -> List[FileUploadMapping]:
        """Mappings confident enough to receive a file."""
        return [m for m in mappings if m.confidence >= self.min_upload_confidence]

    def upload_order(self, mappings: Iterable[FileUploadMapping]) -> List[FileUploadMapping]:
        """CV/resume fields first, then by confidence descending."""
        return sorted(
            mappings,
            key=lambda m: (m.purpose != FileUploadType.CV_RESUME, -m.confidence),
        )

    def _type_accepted(self, accepted: str, mime_type: str) -> bool:
        if "/" in accepted:
            return accepted == mime_type.lower()
        if accepted.startswith("."):
            return self.tables.extension_mime_types.get(accepted) == mime_type.lower()
        return False


def _any_contains(values: Iterable[str], needles: Iterable[str]) -> bool:
    needles = list(needles)
    return any(needle in value for value in values for needle in needles)
