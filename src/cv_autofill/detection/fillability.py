"""Decides whether an element is currently interactive."""

from cv_autofill.dom.snapshot import DomNode

FILLABLE_TAGS = frozenset({"input", "textarea", "select"})

DISALLOWED_INPUT_TYPES = frozenset({
    "hidden", "submit", "button", "reset", "file", "image", "checkbox", "radio",
})


def _is_transparent(opacity: str) -> bool:
    try:
        return float(opacity or "1") == 0
    except ValueError:
        return False


def is_rendered_and_enabled(node: DomNode) -> bool:
    """Visible, enabled and writable, regardless of element kind."""
    if node.display.strip().lower() == "none":
        return False
    if node.visibility.strip().lower() == "hidden":
        return False
    if _is_transparent(node.opacity):
        return False
    return not (node.disabled or node.readonly)


def is_fillable(node: DomNode) -> bool:
    """True for text-like inputs, textareas and selects that can take a value now."""
    if node.tag not in FILLABLE_TAGS:
        return False
    if node.tag == "input" and node.input_type in DISALLOWED_INPUT_TYPES:
        return False
    return is_rendered_and_enabled(node)


def is_file_input(node: DomNode) -> bool:
    return node.tag == "input" and node.input_type == "file"
