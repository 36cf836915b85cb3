"""
Component tree model and hooks.
"""

from .hooks import ClientEnvironment, RenderEnvironment, ServerEnvironment, use_effect, use_state
from .nodes import Component, Composite, Intrinsic, Node, NodeKind, Text, as_component, component, h, to_nodes

__all__ = [
    "ClientEnvironment",
    "Component",
    "Composite",
    "Intrinsic",
    "Node",
    "NodeKind",
    "RenderEnvironment",
    "ServerEnvironment",
    "Text",
    "as_component",
    "component",
    "h",
    "to_nodes",
    "use_effect",
    "use_state",
]
