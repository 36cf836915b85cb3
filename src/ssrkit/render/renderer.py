"""
Evaluate component trees and serialise them to HTML.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import html
import logging
import re
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Tuple, Union

from ..errors import MissingCapabilityError, RenderError
from ..tree.hooks import HOOK_CAPABILITIES, RenderEnvironment, ServerEnvironment, hook_frame
from ..tree.nodes import Composite, Intrinsic, Node, NodeKind, Text, to_nodes

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 200
TEXT_SEPARATOR = "<!-- -->"
HYDRATION_ROOT_ATTR = "data-ssr-root"
VOID_ELEMENTS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
)
ATTRIBUTE_ALIASES = {"className": "class", "class_": "class", "htmlFor": "for", "for_": "for"}

_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9:_.-]*$")
_CAMEL_PATTERN = re.compile(r"(?<!^)(?=[A-Z])")


class RenderMode(str, Enum):
    STATIC = "static"
    INTERACTIVE = "interactive"


@dataclass(frozen=True)
class ResolvedText:
    value: str
    kind: ClassVar[NodeKind] = NodeKind.TEXT


@dataclass(frozen=True)
class ResolvedElement:
    """
    An element with every composite above it already evaluated.

    ``attrs`` holds serialisable attributes (``True`` for bare boolean ones);
    ``handlers`` holds the event callbacks stripped from the markup.
    """
    tag: str
    attrs: Tuple[Tuple[str, Union[str, bool]], ...]
    children: Tuple["ResolvedNode", ...]
    handlers: Tuple[Tuple[str, Callable[..., Any]], ...] = ()
    kind: ClassVar[NodeKind] = NodeKind.INTRINSIC

    def attribute_map(self, *, top_level: bool = False) -> Dict[str, str]:
        """Attributes as the DOM sees them, including the hydration root flag."""
        mapping = {name: ("" if value is True else str(value)) for name, value in self.attrs}
        if top_level:
            mapping[HYDRATION_ROOT_ATTR] = ""
        return mapping


ResolvedNode = Union[ResolvedElement, ResolvedText]


def evaluate(
    tree: Any,
    *,
    environment: Optional[RenderEnvironment] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Tuple[ResolvedNode, ...]:
    """
    Resolve every composite in ``tree`` down to elements and text.

    Raises:
        RenderError: If a component fails, uses a missing capability, returns
            something that is not a node, or the tree nests deeper than ``max_depth``.
    """
    try:
        roots = list(to_nodes(tree))
    except TypeError as exc:
        raise RenderError(f"Invalid component tree: {exc}") from exc

    evaluator = _Evaluator(environment or ServerEnvironment(), max_depth)
    resolved: List[ResolvedNode] = []
    try:
        for index, node in enumerate(roots):
            resolved.extend(evaluator.resolve(node, (str(index),), 0))
    except RecursionError as exc:
        raise RenderError("Tree nesting exhausted the interpreter recursion limit") from exc
    return tuple(resolved)


def render(
    tree: Any,
    mode: Union[RenderMode, str] = RenderMode.STATIC,
    *,
    environment: Optional[RenderEnvironment] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """
    Render ``tree`` to an HTML fragment.

    Output depends only on the tree and the mode. Each call gets a fresh server
    environment unless one is supplied, so nothing carries over between calls.
    """
    try:
        resolved_mode = RenderMode(mode)
    except ValueError as exc:
        raise RenderError(f"Unknown render mode: {mode!r}") from exc
    nodes = evaluate(tree, environment=environment, max_depth=max_depth)
    markup = serialize(nodes, resolved_mode)
    logger.debug("Rendered %d characters in %s mode", len(markup), resolved_mode.value)
    return markup


def serialize(nodes: Tuple[ResolvedNode, ...], mode: RenderMode) -> str:
    parts: List[str] = []
    _write_children(nodes, parts, mode, top_level=True)
    return "".join(parts)


class _Evaluator:
    def __init__(self, environment: RenderEnvironment, max_depth: int) -> None:
        self.environment = environment
        self.max_depth = max_depth
        self._dispatch: Dict[NodeKind, Callable[[Any, Tuple[str, ...], int], List[ResolvedNode]]] = {
            NodeKind.TEXT: self._resolve_text,
            NodeKind.INTRINSIC: self._resolve_intrinsic,
            NodeKind.COMPOSITE: self._resolve_composite,
        }

    def resolve(self, node: Node, path: Tuple[str, ...], depth: int) -> List[ResolvedNode]:
        if depth > self.max_depth:
            raise RenderError(f"Tree exceeds the maximum depth of {self.max_depth} at {_format_path(path)}")
        return self._dispatch[node.kind](node, path, depth)

    def _resolve_text(self, node: Text, path: Tuple[str, ...], depth: int) -> List[ResolvedNode]:
        return [ResolvedText(node.value)]

    def _resolve_intrinsic(self, node: Intrinsic, path: Tuple[str, ...], depth: int) -> List[ResolvedNode]:
        if not _NAME_PATTERN.match(node.tag):
            raise RenderError(f"Invalid tag name {node.tag!r} at {_format_path(path)}")
        attrs, handlers = _split_attributes(node.tag, node.attrs)
        tag = node.tag.lower()
        if tag in VOID_ELEMENTS and node.children:
            raise RenderError(f"Void element <{tag}> cannot have children ({_format_path(path)})")

        children: List[ResolvedNode] = []
        for index, child in enumerate(node.children):
            children.extend(self.resolve(child, path + (f"{tag}.{index}",), depth + 1))
        return [ResolvedElement(tag=tag, attrs=attrs, children=tuple(children), handlers=handlers)]

    def _resolve_composite(self, node: Composite, path: Tuple[str, ...], depth: int) -> List[ResolvedNode]:
        definition = node.component
        own_path = path + (definition.name,)
        with hook_frame(definition, own_path, self.environment):
            try:
                output = definition.render(node.props)
            except RenderError:
                raise
            except NameError as exc:
                capability = HOOK_CAPABILITIES.get(getattr(exc, "name", None) or "")
                if capability is not None:
                    raise MissingCapabilityError(
                        capability,
                        definition.name,
                        f"hook '{exc.name}' is referenced but was never imported",
                    ) from exc
                raise RenderError(f"Component '{definition.name}' at {_format_path(own_path)} failed: {exc}") from exc
            except Exception as exc:
                raise RenderError(
                    f"Component '{definition.name}' at {_format_path(own_path)} failed: {exc!r}"
                ) from exc

        try:
            children = list(to_nodes(output))
        except TypeError as exc:
            raise RenderError(f"Component '{definition.name}' returned an invalid value: {exc}") from exc

        resolved: List[ResolvedNode] = []
        for index, child in enumerate(children):
            resolved.extend(self.resolve(child, own_path + (str(index),), depth + 1))
        return resolved


def _split_attributes(
    tag: str, attrs: Mapping[str, Any]
) -> Tuple[Tuple[Tuple[str, Union[str, bool]], ...], Tuple[Tuple[str, Callable[..., Any]], ...]]:
    rendered: List[Tuple[str, Union[str, bool]]] = []
    handlers: List[Tuple[str, Callable[..., Any]]] = []
    seen = set()
    for raw_name, value in attrs.items():
        if raw_name in ("key", "children"):
            continue
        if raw_name.startswith("on") and callable(value):
            handlers.append((raw_name, value))
            continue
        # HTML attribute names are case-insensitive; parsers report them lowercased.
        name = ATTRIBUTE_ALIASES.get(raw_name, raw_name).lower()
        if not _NAME_PATTERN.match(name):
            raise RenderError(f"Invalid attribute name {raw_name!r} on <{tag}>")
        if name in seen:
            raise RenderError(f"Attribute {name!r} is set more than once on <{tag}>")
        seen.add(name)
        if value is None or value is False:
            continue
        if value is True:
            rendered.append((name, True))
        elif name == "style" and isinstance(value, Mapping):
            rendered.append((name, _style_text(value)))
        elif isinstance(value, (str, int, float)):
            rendered.append((name, str(value)))
        else:
            raise RenderError(f"Attribute {raw_name!r} on <{tag}> has unrenderable value {type(value).__name__}")
    return tuple(rendered), tuple(handlers)


def _style_text(style: Mapping[str, Any]) -> str:
    return ";".join(f"{_CAMEL_PATTERN.sub('-', key).lower()}:{value}" for key, value in style.items())


def _write_children(children: Tuple[ResolvedNode, ...], out: List[str], mode: RenderMode, *, top_level: bool) -> None:
    previous_text = False
    for child in children:
        if child.kind is NodeKind.TEXT:
            # Adjacent text nodes would merge in the DOM without a separator.
            if previous_text and mode is RenderMode.INTERACTIVE:
                out.append(TEXT_SEPARATOR)
            out.append(html.escape(child.value, quote=False))
            previous_text = True
        else:
            _write_element(child, out, mode, top_level=top_level)
            previous_text = False


def _write_element(element: ResolvedElement, out: List[str], mode: RenderMode, *, top_level: bool) -> None:
    out.append(f"<{element.tag}")
    for name, value in element.attrs:
        if value is True:
            out.append(f' {name}=""')
        else:
            out.append(f' {name}="{html.escape(value, quote=True)}"')
    if top_level and mode is RenderMode.INTERACTIVE:
        out.append(f' {HYDRATION_ROOT_ATTR}=""')
    out.append(">")
    if element.tag in VOID_ELEMENTS:
        return
    _write_children(element.children, out, mode, top_level=False)
    out.append(f"</{element.tag}>")


def _format_path(path: Tuple[str, ...]) -> str:
    return " > ".join(path) or "<root>"
