"""In-process snapshot of a page's element tree.

A snapshot is produced either by the injected page agent (a JSON tree with
computed styles) or by parsing saved HTML with BeautifulSoup (inline styles
only). Detection and classification only ever read snapshots, so they run
without a browser.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

REF_ATTRIBUTE = "data-autofill-ref"

_SKIPPED_TAGS = {"script", "style", "noscript", "template"}


@dataclass(eq=False)
class DomNode:
    """One element. Equality and hashing are by identity."""

    tag: str
    attrs: Dict[str, str] = field(default_factory=dict)
    children: List[Union["DomNode", str]] = field(default_factory=list)
    value: str = ""
    display: str = ""
    visibility: str = ""
    opacity: str = "1"
    disabled: bool = False
    readonly: bool = False
    ref: str = ""
    parent: Optional["DomNode"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.tag = self.tag.lower()
        for child in self.children:
            if isinstance(child, DomNode):
                child.parent = self

    def get(self, name: str, default: str = "") -> str:
        value = self.attrs.get(name)
        return default if value is None else value

    def has(self, name: str) -> bool:
        return name in self.attrs

    @property
    def input_type(self) -> str:
        """Mirror of the DOM ``type`` property."""
        if self.tag == "input":
            return (self.get("type") or "text").strip().lower()
        if self.tag == "textarea":
            return "textarea"
        if self.tag == "select":
            return "select-multiple" if self.has("multiple") else "select-one"
        return ""

    @property
    def element_children(self) -> List["DomNode"]:
        return [child for child in self.children if isinstance(child, DomNode)]

    def iter_descendants(self) -> Iterator["DomNode"]:
        """All descendant elements in document order."""
        for child in self.element_children:
            yield child
            yield from child.iter_descendants()

    def ancestors(self) -> Iterator["DomNode"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def closest(self, predicate: Callable[["DomNode"], bool]) -> Optional["DomNode"]:
        """Nearest inclusive ancestor matching ``predicate``."""
        if predicate(self):
            return self
        for ancestor in self.ancestors():
            if predicate(ancestor):
                return ancestor
        return None

    def previous_element_siblings(self) -> Iterator["DomNode"]:
        """Preceding sibling elements, nearest first."""
        if self.parent is None:
            return
        siblings = self.parent.element_children
        index = next(i for i, sibling in enumerate(siblings) if sibling is self)
        for sibling in reversed(siblings[:index]):
            yield sibling

    def text_content(self) -> str:
        parts: List[str] = []
        for child in self.children:
            if isinstance(child, DomNode):
                parts.append(child.text_content())
            else:
                parts.append(child)
        return "".join(parts)

    def direct_text(self) -> str:
        """Own non-empty text nodes, trimmed and space-joined."""
        texts = [child.strip() for child in self.children if isinstance(child, str)]
        return " ".join(text for text in texts if text)

    def class_names(self) -> str:
        return self.get("class")


class DocumentSnapshot:
    """A document's element tree with lookup helpers."""

    def __init__(self, root: DomNode, url: str = ""):
        self.root = root
        self.url = url
        self._elements: List[DomNode] = [root, *root.iter_descendants()]
        self._by_ref: Dict[str, DomNode] = {}
        for index, node in enumerate(self._elements):
            if not node.ref:
                node.ref = node.get(REF_ATTRIBUTE) or f"n{index}"
            self._by_ref[node.ref] = node

    def elements(self) -> List[DomNode]:
        """Every element in document order."""
        return list(self._elements)

    def find_all(self, predicate: Callable[[DomNode], bool]) -> List[DomNode]:
        return [node for node in self._elements if predicate(node)]

    def by_ref(self, ref: str) -> Optional[DomNode]:
        return self._by_ref.get(ref)

    def label_for(self, element_id: str) -> Optional[DomNode]:
        for node in self._elements:
            if node.tag == "label" and node.get("for") == element_id:
                return node
        return None

    def body(self) -> DomNode:
        for node in self._elements:
            if node.tag == "body":
                return node
        return self.root

    def __len__(self) -> int:
        return len(self._elements)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], url: str = "") -> "DocumentSnapshot":
        """Build from the JSON tree returned by the page agent."""
        return cls(_node_from_payload(payload), url=url or payload.get("url", ""))

    @classmethod
    def from_html(cls, html: str, url: str = "") -> "DocumentSnapshot":
        """Build from raw HTML; visibility comes from inline styles and attributes."""
        soup = BeautifulSoup(html, "html.parser")
        root = DomNode(tag="#document", children=_convert_children(soup))
        return cls(root, url=url)


def _node_from_payload(payload: Dict[str, Any]) -> DomNode:
    style = payload.get("style") or {}
    children: List[Union[DomNode, str]] = []
    for child in payload.get("children") or []:
        if isinstance(child, str):
            children.append(child)
        else:
            children.append(_node_from_payload(child))
    attrs = {str(k): "" if v is None else str(v) for k, v in (payload.get("attrs") or {}).items()}
    return DomNode(
        tag=payload.get("tag", "div"),
        attrs=attrs,
        children=children,
        value=payload.get("value") or "",
        display=style.get("display", ""),
        visibility=style.get("visibility", ""),
        opacity=str(style.get("opacity", "1")),
        disabled=bool(payload.get("disabled", False)),
        readonly=bool(payload.get("readOnly", False)),
        ref=payload.get("ref") or attrs.get(REF_ATTRIBUTE, ""),
    )


def _parse_inline_style(style: str) -> Dict[str, str]:
    declarations: Dict[str, str] = {}
    for declaration in style.split(";"):
        if ":" not in declaration:
            continue
        name, _, value = declaration.partition(":")
        declarations[name.strip().lower()] = value.replace("!important", "").strip().lower()
    return declarations


def _convert_children(
    tag: Tag, hidden: bool = False, visibility: str = ""
) -> List[Union[DomNode, str]]:
    children: List[Union[DomNode, str]] = []
    for child in tag.children:
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, NavigableString):
            children.append(str(child))
        elif isinstance(child, Tag) and child.name not in _SKIPPED_TAGS:
            children.append(_convert_tag(child, hidden, visibility))
    return children


def _convert_tag(tag: Tag, hidden: bool, visibility: str) -> DomNode:
    attrs: Dict[str, str] = {}
    for name, value in tag.attrs.items():
        attrs[name] = " ".join(value) if isinstance(value, list) else str(value)
    style = _parse_inline_style(attrs.get("style", ""))
    # display:none removes the whole subtree from rendering; visibility inherits
    hidden = hidden or style.get("display") == "none" or "hidden" in attrs
    visibility = style.get("visibility", visibility)
    value = attrs.get("value", "")
    if tag.name == "textarea":
        value = tag.get_text()
    return DomNode(
        tag=tag.name,
        attrs=attrs,
        children=[] if tag.name == "textarea" else _convert_children(tag, hidden, visibility),
        value=value,
        display="none" if hidden else style.get("display", ""),
        visibility=visibility,
        opacity=style.get("opacity", "1"),
        disabled="disabled" in attrs,
        readonly="readonly" in attrs,
        ref=attrs.get(REF_ATTRIBUTE, ""),
    )
