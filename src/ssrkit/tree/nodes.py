"""
Immutable component tree nodes and the element factory used to build them.

A tree is made of three node kinds:

* ``Intrinsic`` - a plain HTML element (tag, attributes, children).
* ``Composite`` - a component reference plus props, resolved when evaluated.
* ``Text`` - a run of character data.

Every node class carries a ``kind`` tag so evaluators dispatch on it instead of
inspecting Python types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, ClassVar, Iterable, Iterator, Mapping, Optional, Tuple, Union


class NodeKind(str, Enum):
    INTRINSIC = "intrinsic"
    COMPOSITE = "composite"
    TEXT = "text"


@dataclass(frozen=True)
class Component:
    """
    A component definition.

    Attributes:
        name: Display name used in diagnostics.
        render: Callable receiving the props mapping and returning child nodes.
        uses: Capabilities (e.g. ``"state"``) the component declares it needs.
    """
    name: str
    render: Callable[[Mapping[str, Any]], Any]
    uses: frozenset[str] = frozenset()

    def __call__(self, props: Optional[Mapping[str, Any]] = None, *children: Any) -> "Composite":
        return h(self, props, *children)


@dataclass(frozen=True)
class Text:
    value: str
    kind: ClassVar[NodeKind] = NodeKind.TEXT


@dataclass(frozen=True)
class Intrinsic:
    tag: str
    attrs: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    children: Tuple["Node", ...] = ()
    kind: ClassVar[NodeKind] = NodeKind.INTRINSIC


@dataclass(frozen=True)
class Composite:
    component: Component
    props: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    kind: ClassVar[NodeKind] = NodeKind.COMPOSITE


Node = Union[Intrinsic, Composite, Text]
_NODE_TYPES = (Intrinsic, Composite, Text)


def component(fn: Optional[Callable] = None, *, uses: Iterable[str] = (), name: Optional[str] = None):
    """
    Turn a render function into a ``Component``.

    Usable bare (``@component``) or with options (``@component(uses=("state",))``).
    Hooks called by the function must be listed in ``uses``.
    """

    def wrap(func: Callable) -> Component:
        return Component(
            name=name or getattr(func, "__name__", "Anonymous"),
            render=func,
            uses=frozenset(uses),
        )

    if fn is not None:
        return wrap(fn)
    return wrap


def as_component(value: Union[Component, Callable]) -> Component:
    """Coerce a bare render function into a component with no declared capabilities."""
    if isinstance(value, Component):
        return value
    if callable(value):
        return Component(name=getattr(value, "__name__", "Anonymous"), render=value)
    raise TypeError(f"Expected a component or callable, got {type(value).__name__}")


def h(type_: Union[str, Component, Callable], props: Optional[Mapping[str, Any]] = None, *children: Any) -> Node:
    """
    Create a tree node, mirroring ``createElement``.

    A string ``type_`` yields an ``Intrinsic`` node; anything else is treated as
    a component and yields a ``Composite`` whose children travel in
    ``props["children"]``.
    """
    merged = dict(props or {})
    passed = children or merged.pop("children", ())
    merged.pop("children", None)
    flat = tuple(to_nodes(passed))

    if isinstance(type_, str):
        return Intrinsic(tag=type_, attrs=MappingProxyType(merged), children=flat)

    if flat:
        merged["children"] = flat
    return Composite(component=as_component(type_), props=MappingProxyType(merged))


def to_nodes(value: Any) -> Iterator[Node]:
    """
    Normalize component output or child arguments into a flat node stream.

    ``None``, booleans and empty strings render nothing; strings and numbers
    become ``Text``; lists and tuples are flattened.
    """
    if value is None or isinstance(value, bool):
        return
    if isinstance(value, _NODE_TYPES):
        yield value
        return
    if isinstance(value, str):
        if value:
            yield Text(value)
        return
    if isinstance(value, (int, float)):
        yield Text(str(value))
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            yield from to_nodes(item)
        return
    raise TypeError(f"Cannot use {type(value).__name__} as a tree node")
