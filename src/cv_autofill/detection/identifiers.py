"""Reads the static signals an element exposes: identifiers, labels and context."""

from typing import List, Optional

from cv_autofill.core.models import CandidateElement
from cv_autofill.detection.fillability import is_fillable
from cv_autofill.detection.tables import ClassifierTables
from cv_autofill.dom.snapshot import DocumentSnapshot, DomNode


def associated_label_text(node: DomNode, snapshot: DocumentSnapshot) -> str:
    """Text of ``label[for=id]``, else of the enclosing label."""
    element_id = node.get("id")
    if element_id:
        label = snapshot.label_for(element_id)
        if label is not None:
            return label.text_content().strip()

    parent_label = node.closest(lambda n: n.tag == "label")
    if parent_label is not None:
        return parent_label.text_content().strip()
    return ""


def nearby_text(node: DomNode) -> str:
    """The parent's own text nodes."""
    if node.parent is None:
        return ""
    return node.parent.direct_text()


def field_identifiers(node: DomNode, snapshot: DocumentSnapshot) -> List[str]:
    """Lower-cased name, id, class, placeholder, aria-label, label text and nearby text."""
    identifiers: List[str] = []
    for attribute in ("name", "id", "class", "placeholder", "aria-label"):
        value = node.get(attribute)
        if value:
            identifiers.append(value.lower())

    label = associated_label_text(node, snapshot)
    if label:
        identifiers.append(label.lower())

    nearby = nearby_text(node)
    if nearby:
        identifiers.append(nearby.lower())
    return identifiers


def context_clues(node: DomNode, tables: ClassifierTables) -> List[str]:
    """Short ancestor texts followed by short preceding-sibling texts."""
    clues: List[str] = []

    for depth, ancestor in enumerate(node.ancestors()):
        if depth >= tables.context_ancestor_levels:
            break
        text = ancestor.text_content().strip()
        if text and len(text) < tables.context_ancestor_max_length:
            clues.append(text)

    for count, sibling in enumerate(node.previous_element_siblings()):
        if count >= tables.context_sibling_count:
            break
        text = sibling.text_content().strip()
        if text and len(text) < tables.context_sibling_max_length:
            clues.append(text)

    return clues


def form_position(node: DomNode, snapshot: DocumentSnapshot) -> Optional[int]:
    """Index among the fillable elements of the enclosing form, or of the document."""
    container = node.closest(lambda n: n.tag == "form") or snapshot.body()
    fillable = [n for n in container.iter_descendants() if is_fillable(n)]
    for index, candidate in enumerate(fillable):
        if candidate is node:
            return index
    return None


def build_candidate(
    node: DomNode,
    snapshot: DocumentSnapshot,
    tables: ClassifierTables,
) -> CandidateElement:
    return CandidateElement(
        ref=node.ref,
        tag=node.tag,
        input_type=node.input_type,
        identifiers=tuple(field_identifiers(node, snapshot)),
        label_text=associated_label_text(node, snapshot),
        nearby_text=nearby_text(node),
        context_clues=tuple(context_clues(node, tables)),
        position=form_position(node, snapshot),
    )
