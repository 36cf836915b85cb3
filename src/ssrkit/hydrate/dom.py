"""
BeautifulSoup-backed DOM helpers for the client side of hydration.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from ..render import DEFAULT_MAX_DEPTH, ResolvedNode, evaluate
from ..tree import ClientEnvironment, NodeKind

PARSER = "html.parser"


def parse_document(markup: str) -> BeautifulSoup:
    """
    Parse delivered HTML the way the hydrator expects.

    Attributes stay single-valued strings so ``class="a b"`` compares verbatim.
    """
    return BeautifulSoup(markup or "", PARSER, multi_valued_attributes=None)


def new_fragment() -> BeautifulSoup:
    return parse_document("")


def build_node(node: ResolvedNode, soup: BeautifulSoup, *, top_level: bool = False) -> PageElement:
    """Create the DOM node a client-only render would produce for ``node``."""
    if node.kind is NodeKind.TEXT:
        return NavigableString(node.value)
    element = soup.new_tag(node.tag, attrs=node.attribute_map(top_level=top_level))
    for child in node.children:
        element.append(build_node(child, soup, top_level=False))
    return element


def render_client(tree: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> BeautifulSoup:
    """
    Render ``tree`` straight into a fresh DOM fragment, with no server markup involved.

    The fragment has the interactive-mode shape, so a successfully hydrated
    root has the same contents.
    """
    nodes = evaluate(tree, environment=ClientEnvironment(), max_depth=max_depth)
    soup = new_fragment()
    for node in nodes:
        soup.append(build_node(node, soup, top_level=True))
    return soup


def dom_children(
    parent: Tag, *, top_level: bool = False, expected: Sequence[ResolvedNode] = ()
) -> List[PageElement]:
    """
    Children that take part in reconciliation.

    Comments (including text separators) are skipped. Whitespace-only text
    directly under the root usually comes from the shell's formatting and is
    skipped too, unless ``expected`` holds the same text at that position.
    """
    children: List[PageElement] = []
    for child in parent.contents:
        if isinstance(child, PreformattedString):
            continue
        if top_level and isinstance(child, NavigableString) and not child.strip():
            position = len(children)
            wanted = expected[position] if position < len(expected) else None
            if wanted is None or wanted.kind is not NodeKind.TEXT or wanted.value != str(child):
                continue
        children.append(child)
    return children


def attribute_map(element: Tag) -> Dict[str, str]:
    return {
        name.lower(): " ".join(value) if isinstance(value, (list, tuple)) else str(value)
        for name, value in element.attrs.items()
    }


def describe(node: Union[PageElement, ResolvedNode, None], attributes: Optional[Mapping[str, str]] = None) -> str:
    """
    Short human-readable description used in mismatch messages.

    ``attributes`` are spelled out inside an element's tag when given.
    """
    if node is None:
        return "nothing"
    if isinstance(node, NavigableString):
        return f"text {_clip(str(node))!r}"
    if not isinstance(node, Tag) and node.kind is NodeKind.TEXT:
        return f"text {_clip(node.value)!r}"
    name = node.name if isinstance(node, Tag) else node.tag
    if not attributes:
        return f"<{name}>"
    spelled = " ".join(f'{key}="{_clip(value)}"' for key, value in sorted(attributes.items()))
    return f"<{name} {spelled}>"


def attribute_difference(
    expected: Mapping[str, str], found: Mapping[str, str]
) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Attributes that differ between two elements, as seen from each side."""
    names = {key for key in set(expected) | set(found) if expected.get(key) != found.get(key)}
    return (
        {key: expected[key] for key in names if key in expected},
        {key: found[key] for key in names if key in found},
    )


def _clip(value: str, limit: int = 40) -> str:
    return value if len(value) <= limit else value[: limit - 3] + "..."


def find_root(document: BeautifulSoup, root_id: str) -> Optional[Tag]:
    found = document.find(id=root_id)
    return found if isinstance(found, Tag) else None


def inner_html(element: Tag) -> str:
    return element.decode_contents()
