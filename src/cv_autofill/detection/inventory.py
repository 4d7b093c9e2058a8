"""Element inventory: finds every element that could plausibly be a form field."""

from typing import Iterable, List

from cv_autofill.detection.fillability import (
    DISALLOWED_INPUT_TYPES,
    FILLABLE_TAGS,
    is_file_input,
    is_fillable,
    is_rendered_and_enabled,
)
from cv_autofill.detection.identifiers import associated_label_text, nearby_text
from cv_autofill.detection.tables import ClassifierTables
from cv_autofill.dom.snapshot import DocumentSnapshot, DomNode
from cv_autofill.utils.logging import get_logger

logger = get_logger(__name__)


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


class ElementInventory:
    """
    Union of three independent discovery strategies, deduplicated by identity.

    The strategies are a tag/type allow-list, form-container context and
    attribute name patterns. Only the last two are gated by
    :meth:`is_likely_form_field`.
    """

    def __init__(self, tables: ClassifierTables):
        self.tables = tables
        self.logger = logger.bind(component="element_inventory")

    def discover(self, snapshot: DocumentSnapshot) -> List[DomNode]:
        """All candidate elements, first occurrence order, no duplicates."""
        by_type = self.by_type_allow_list(snapshot)
        by_context = self.by_container_context(snapshot)
        by_attribute = self.by_attribute_pattern(snapshot)

        seen = set()
        candidates: List[DomNode] = []
        for node in [*by_type, *by_context, *by_attribute]:
            if id(node) in seen:
                continue
            seen.add(id(node))
            candidates.append(node)

        self.logger.debug(
            "Candidates discovered",
            by_type=len(by_type),
            by_context=len(by_context),
            by_attribute=len(by_attribute),
            unique=len(candidates),
        )
        return candidates

    def fillable_elements(self, snapshot: DocumentSnapshot) -> List[DomNode]:
        """Discovered candidates that pass the fillability filter."""
        return [node for node in self.discover(snapshot) if is_fillable(node)]

    def file_inputs(self, snapshot: DocumentSnapshot) -> List[DomNode]:
        """Rendered, enabled ``input[type=file]`` elements."""
        return snapshot.find_all(lambda n: is_file_input(n) and is_rendered_and_enabled(n))

    def by_type_allow_list(self, snapshot: DocumentSnapshot) -> List[DomNode]:
        allowed = set(self.tables.allowed_input_types)
        found: List[DomNode] = []
        for node in snapshot.elements():
            if node.tag in ("textarea", "select"):
                found.append(node)
            elif node.tag == "input":
                if not node.has("type") or node.get("type").lower() in allowed:
                    found.append(node)
        return found

    def by_container_context(self, snapshot: DocumentSnapshot) -> List[DomNode]:
        found: List[DomNode] = []
        for container in snapshot.find_all(self._is_form_container):
            for node in container.iter_descendants():
                if node.tag in FILLABLE_TAGS and self.is_likely_form_field(node, snapshot):
                    found.append(node)

        for node in snapshot.find_all(lambda n: n.has("placeholder") or n.has("aria-label")):
            if self.is_likely_form_field(node, snapshot):
                found.append(node)
        return found

    def by_attribute_pattern(self, snapshot: DocumentSnapshot) -> List[DomNode]:
        return [
            node for node in snapshot.elements()
            if self._matches_attribute_pattern(node) and self.is_likely_form_field(node, snapshot)
        ]

    def is_likely_form_field(self, node: DomNode, snapshot: DocumentSnapshot) -> bool:
        """Fillable and carrying form-related attributes or textual context."""
        if node.tag not in FILLABLE_TAGS:
            return False
        if node.tag == "input" and node.input_type in DISALLOWED_INPUT_TYPES:
            return False
        if not is_rendered_and_enabled(node):
            return False
        return self._has_relevant_attributes(node) or self._has_relevant_context(node, snapshot)

    def _has_relevant_attributes(self, node: DomNode) -> bool:
        values = [
            node.get(name)
            for name in ("name", "id", "class", "placeholder", "aria-label", "data-field", "data-input")
        ]
        text = " ".join(value for value in values if value).lower()
        return bool(text) and _contains_any(text, self.tables.form_attribute_keywords)

    def _has_relevant_context(self, node: DomNode, snapshot: DocumentSnapshot) -> bool:
        label = associated_label_text(node, snapshot).lower()
        if label and _contains_any(label, self.tables.form_label_keywords):
            return True
        nearby = nearby_text(node).lower()
        return bool(nearby) and _contains_any(nearby, self.tables.form_nearby_keywords)

    def _matches_attribute_pattern(self, node: DomNode) -> bool:
        if _contains_any(node.get("name"), self.tables.discovery_name_patterns):
            return True
        if _contains_any(node.get("id"), self.tables.discovery_id_patterns):
            return True
        if _contains_any(node.get("class"), self.tables.discovery_class_patterns):
            return True
        return any(node.has(attribute) for attribute in self.tables.discovery_data_attributes)

    @staticmethod
    def _is_form_container(node: DomNode) -> bool:
        return node.tag == "form" or "form" in node.get("class") or "form" in node.get("id")
