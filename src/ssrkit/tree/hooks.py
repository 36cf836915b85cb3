"""
Stateful primitives available to components and the environments that supply them.

Hooks find the component currently being evaluated through a context variable,
so concurrent renders on different threads or tasks never share frames.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence, Tuple

from ..errors import MissingCapabilityError, RenderError
from .nodes import Component

logger = logging.getLogger(__name__)

STATE = "state"
EFFECT = "effect"
HOOK_CAPABILITIES = {"use_state": STATE, "use_effect": EFFECT}

SlotKey = Tuple[Tuple[str, ...], int]


@dataclass
class HookFrame:
    component: Component
    path: Tuple[str, ...]
    environment: "RenderEnvironment"
    cursor: int = 0

    def next_key(self) -> SlotKey:
        key = (self.path, self.cursor)
        self.cursor += 1
        return key


_active_frame: ContextVar[Optional[HookFrame]] = ContextVar("ssrkit_hook_frame", default=None)


class RenderEnvironment:
    """
    Supplies the capabilities hooks draw on during one evaluation.

    Subclasses decide what state means (initial-only on the server, persistent
    on the client) and whether effects run.
    """

    name = "base"

    def __init__(self, capabilities: Iterable[str] = (STATE, EFFECT)) -> None:
        self.capabilities = frozenset(capabilities)

    def state_slot(self, key: SlotKey, initial: Any) -> Tuple[Any, Callable[[Any], None]]:
        raise NotImplementedError

    def effect_slot(self, key: SlotKey, callback: Callable[[], Any], deps: Optional[Sequence[Any]]) -> None:
        raise NotImplementedError


class ServerEnvironment(RenderEnvironment):
    """
    Server-side environment: state is frozen at its initial value and effects never run.
    """

    name = "server"

    def state_slot(self, key: SlotKey, initial: Any) -> Tuple[Any, Callable[[Any], None]]:
        value = initial() if callable(initial) else initial
        path = "/".join(key[0])

        def set_state(_value: Any) -> None:
            raise RenderError(f"State at {path} cannot change during a server render")

        return value, set_state

    def effect_slot(self, key: SlotKey, callback: Callable[[], Any], deps: Optional[Sequence[Any]]) -> None:
        logger.debug("Skipping effect at %s during server render", "/".join(key[0]))


@contextmanager
def hook_frame(component: Component, path: Tuple[str, ...], environment: RenderEnvironment) -> Iterator[HookFrame]:
    """Make ``component`` the target of hook calls for the duration of the block."""
    frame = HookFrame(component=component, path=path, environment=environment)
    token = _active_frame.set(frame)
    try:
        yield frame
    finally:
        _active_frame.reset(token)


def _require(capability: str) -> HookFrame:
    frame = _active_frame.get()
    if frame is None:
        raise RenderError(f"Hook for '{capability}' called outside of a component render")
    if capability not in frame.environment.capabilities:
        raise MissingCapabilityError(
            capability,
            frame.component.name,
            f"not supplied by the {frame.environment.name} environment",
        )
    if capability not in frame.component.uses:
        raise MissingCapabilityError(
            capability,
            frame.component.name,
            "not declared; add it to @component(uses=...)",
        )
    return frame


def use_state(initial: Any) -> Tuple[Any, Callable[[Any], None]]:
    """
    Return ``(value, setter)`` for a piece of component state.

    ``initial`` may be a zero-argument callable evaluated on first use.
    """
    frame = _require(STATE)
    return frame.environment.state_slot(frame.next_key(), initial)


def use_effect(callback: Callable[[], Any], deps: Optional[Sequence[Any]] = None) -> None:
    """
    Register a side effect to run after the tree is attached on the client.

    With ``deps`` the effect re-runs only when they change; a callable returned
    by ``callback`` is used as its cleanup.
    """
    frame = _require(EFFECT)
    frame.environment.effect_slot(frame.next_key(), callback, None if deps is None else tuple(deps))


@dataclass
class _EffectRecord:
    deps: Optional[Tuple[Any, ...]]
    cleanup: Optional[Callable[[], Any]] = None


class ClientEnvironment(RenderEnvironment):
    """
    Client-side environment: state persists across renders and effects are queued.

    Setters record the new value and invoke ``on_change`` so the owner can
    schedule a re-render.
    """

    name = "client"

    def __init__(
        self,
        on_change: Optional[Callable[[], None]] = None,
        capabilities: Iterable[str] = (STATE, EFFECT),
    ) -> None:
        super().__init__(capabilities)
        self.on_change = on_change
        self.states: dict[SlotKey, Any] = {}
        self.effects: dict[SlotKey, _EffectRecord] = {}
        self.pending: list[tuple[SlotKey, Callable[[], Any], Optional[Tuple[Any, ...]]]] = []

    def state_slot(self, key: SlotKey, initial: Any) -> Tuple[Any, Callable[[Any], None]]:
        if key not in self.states:
            self.states[key] = initial() if callable(initial) else initial

        def set_state(value: Any) -> None:
            current = self.states[key]
            updated = value(current) if callable(value) else value
            if updated == current:
                return
            self.states[key] = updated
            if self.on_change is not None:
                self.on_change()

        return self.states[key], set_state

    def effect_slot(self, key: SlotKey, callback: Callable[[], Any], deps: Optional[Sequence[Any]]) -> None:
        record = self.effects.get(key)
        if record is not None and deps is not None and record.deps == deps:
            return
        self.pending.append((key, callback, deps))

    def flush_effects(self) -> int:
        """
        Run queued effects in registration order; returns how many ran.

        Raises:
            RenderError: If an effect or its previous cleanup raises.
        """
        ran = 0
        queue, self.pending = self.pending, []
        for key, callback, deps in queue:
            record = self.effects.get(key)
            try:
                if record is not None and record.cleanup is not None:
                    record.cleanup()
                result = callback()
            except RenderError:
                raise
            except Exception as exc:
                raise RenderError(f"Effect {key[1]} of {' > '.join(key[0])} failed: {exc!r}") from exc
            self.effects[key] = _EffectRecord(deps=deps, cleanup=result if callable(result) else None)
            ran += 1
        return ran
