"""
Attach a component tree to server-delivered markup without repainting it.

The hydrator evaluates the tree with a client environment and walks the
expected shape against the existing DOM node by node. Matching nodes are kept
and get their event handlers bound; divergent nodes are replaced by a client
render of the expected node and reported as ``HydrationMismatchWarning``.
"""

from __future__ import annotations

from dataclasses import dataclass
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
import warnings

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, Tag

from ..config import ConfigError, ProjectConfig
from ..errors import HydrationError, HydrationMismatchWarning, RenderError
from ..render import DEFAULT_MAX_DEPTH, ResolvedNode, evaluate
from ..tree import ClientEnvironment, NodeKind
from ..util import ImportStringError, TreeFactory, call_tree_factory, load_tree_factory
from .dom import (
    attribute_difference,
    attribute_map,
    build_node,
    describe,
    dom_children,
    find_root,
    inner_html,
    new_fragment,
    parse_document,
)

logger = logging.getLogger(__name__)

MAX_UPDATE_PASSES = 50

Handler = Callable[..., Any]


@dataclass(frozen=True)
class HydrationMismatch:
    path: str
    expected: str
    found: str
    action: str

    def message(self) -> str:
        return f"Hydration mismatch at {self.path}: expected {self.expected}, found {self.found}; {self.action}"


@dataclass(frozen=True)
class DomEvent:
    type: str
    target: Tag
    payload: Any = None


class HydratedRoot:
    """
    A live root: the reconciled DOM plus the state and handlers behind it.

    Attributes:
        root: Host element whose contents are managed.
        mismatches: Divergences found while attaching (empty on a clean hydrate).
        commits: Number of reconciliations applied so far.
    """

    def __init__(self, tree: Any, root: Tag, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.tree = tree
        self.root = root
        self.max_depth = max_depth
        self.environment = ClientEnvironment(on_change=self._schedule)
        self.mismatches: List[HydrationMismatch] = []
        self.commits = 0
        self._bindings: Dict[int, Tuple[Tag, Tuple[Tuple[str, Handler], ...]]] = {}
        self._dirty = False

    def _schedule(self) -> None:
        self._dirty = True

    def html(self) -> str:
        return inner_html(self.root)

    def query(self, selector: str) -> Optional[Tag]:
        return self.root.select_one(selector)

    def handlers_for(self, element: Tag) -> Tuple[Tuple[str, Handler], ...]:
        entry = self._bindings.get(id(element))
        if entry is None or entry[0] is not element:
            return ()
        return entry[1]

    def dispatch(self, element: Union[Tag, str], event: str, payload: Any = None) -> None:
        """
        Fire ``event`` (e.g. ``"click"``) at ``element`` and apply resulting state changes.

        ``element`` may be a CSS selector evaluated inside the root.

        Raises:
            HydrationError: If the target is missing or has no handler for the event.
        """
        target = self.query(element) if isinstance(element, str) else element
        if target is None:
            raise HydrationError(f"No element matches {element!r}")
        handler = _find_handler(self.handlers_for(target), event)
        if handler is None:
            raise HydrationError(f"No '{event}' handler bound to {describe(target)}")
        _call_handler(handler, DomEvent(type=event, target=target, payload=payload))
        self._flush()

    def _commit(self, *, warn: bool) -> None:
        self._dirty = False
        nodes = evaluate(self.tree, environment=self.environment, max_depth=self.max_depth)
        self._bindings = {}
        _Reconciler(self, warn=warn).reconcile(self.root, nodes, "#root", top_level=True)
        self.commits += 1
        ran = self.environment.flush_effects()
        logger.debug("Commit %d applied (%d effects ran)", self.commits, ran)

    def _flush(self) -> None:
        passes = 0
        while self._dirty:
            passes += 1
            if passes > MAX_UPDATE_PASSES:
                raise RenderError(f"State kept changing after {MAX_UPDATE_PASSES} re-renders")
            self._commit(warn=False)

    def bind(self, element: Tag, handlers: Tuple[Tuple[str, Handler], ...]) -> None:
        if handlers:
            self._bindings[id(element)] = (element, handlers)


class _Reconciler:
    def __init__(self, owner: HydratedRoot, *, warn: bool) -> None:
        self.owner = owner
        self.warn = warn
        self.soup: BeautifulSoup = new_fragment()

    def reconcile(self, parent: Tag, expected: Sequence[ResolvedNode], path: str, *, top_level: bool) -> None:
        actual = dom_children(parent, top_level=top_level, expected=expected)
        for index, node in enumerate(expected):
            child_path = f"{path} > {describe(node)}[{index}]"
            if index >= len(actual):
                replacement = build_node(node, self.soup, top_level=top_level)
                parent.append(replacement)
                self._bind_tree(replacement, node)
                self._report(child_path, node, None, "inserted the missing node")
                continue

            current = actual[index]
            if self._same_shape(current, node, top_level=top_level):
                if node.kind is NodeKind.INTRINSIC:
                    self.owner.bind(current, node.handlers)
                    self.reconcile(current, node.children, child_path, top_level=False)
                continue

            replacement = build_node(node, self.soup, top_level=top_level)
            current.replace_with(replacement)
            self._bind_tree(replacement, node)
            self._report(child_path, node, current, "replaced with a client render", top_level=top_level)

        for index, extra in enumerate(actual[len(expected):], start=len(expected)):
            extra.extract()
            self._report(f"{path} > {describe(extra)}[{index}]", None, extra, "removed the unexpected node")

    def _same_shape(self, current: PageElement, node: ResolvedNode, *, top_level: bool) -> bool:
        if node.kind is NodeKind.TEXT:
            return isinstance(current, NavigableString) and str(current) == node.value
        return (
            isinstance(current, Tag)
            and current.name == node.tag
            and attribute_map(current) == node.attribute_map(top_level=top_level)
        )

    def _bind_tree(self, element: PageElement, node: ResolvedNode) -> None:
        if node.kind is not NodeKind.INTRINSIC or not isinstance(element, Tag):
            return
        self.owner.bind(element, node.handlers)
        for child_element, child_node in zip(element.contents, node.children):
            self._bind_tree(child_element, child_node)

    def _report(
        self,
        path: str,
        expected: Optional[ResolvedNode],
        found: Optional[PageElement],
        action: str,
        *,
        top_level: bool = False,
    ) -> None:
        if not self.warn:
            return
        expected_text, found_text = describe(expected), describe(found)
        if (
            expected is not None
            and expected.kind is NodeKind.INTRINSIC
            and isinstance(found, Tag)
            and found.name == expected.tag
        ):
            wanted, actual = attribute_difference(expected.attribute_map(top_level=top_level), attribute_map(found))
            expected_text, found_text = describe(expected, wanted), describe(found, actual)
        mismatch = HydrationMismatch(path=path, expected=expected_text, found=found_text, action=action)
        self.owner.mismatches.append(mismatch)
        logger.warning("%s", mismatch.message())
        warnings.warn(mismatch.message(), HydrationMismatchWarning, stacklevel=2)


def attach(tree: Any, root_node: Tag, *, max_depth: int = DEFAULT_MAX_DEPTH) -> HydratedRoot:
    """
    Hydrate ``root_node`` with ``tree``.

    ``root_node`` should hold the interactive-mode render of the same tree.
    Divergences are corrected in place and reported as warnings; they never
    raise.

    Raises:
        RenderError: If the tree itself cannot be evaluated.
    """
    hydrated = HydratedRoot(tree, root_node, max_depth=max_depth)
    hydrated._commit(warn=True)
    hydrated._flush()
    if hydrated.mismatches:
        logger.info("Hydrated with %d mismatch(es) corrected", len(hydrated.mismatches))
    else:
        logger.debug("Hydrated cleanly")
    return hydrated


def hydrate_document(
    document: Union[str, BeautifulSoup],
    tree: Any,
    *,
    root_id: str = "root",
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> HydratedRoot:
    """
    Client entry-point: locate ``#root_id`` in the delivered document and attach ``tree``.

    Raises:
        HydrationError: If the document has no element with ``root_id``.
    """
    soup = parse_document(document) if isinstance(document, str) else document
    root = find_root(soup, root_id)
    if root is None:
        raise HydrationError(f"Document has no element with id {root_id!r}")
    return attach(tree, root, max_depth=max_depth)


def hydrate_project(
    document: Union[str, BeautifulSoup],
    config: ProjectConfig,
    *,
    tree_factory: Optional[TreeFactory] = None,
) -> HydratedRoot:
    """
    Hydrate ``document`` with the tree a project config names.

    Uses the config's ``root_id`` and ``max_depth``; ``tree_factory``
    overrides the import string in ``config.tree_factory``.

    Raises:
        ConfigError: If the tree factory cannot be imported.
        HydrationError: If the document has no element with ``config.root_id``.
    """
    if tree_factory is None:
        try:
            tree_factory = load_tree_factory(config.tree_factory, app_dir=config.base_dir)
        except ImportStringError as exc:
            raise ConfigError(str(exc)) from exc
    return hydrate_document(
        document,
        call_tree_factory(tree_factory),
        root_id=config.root_id,
        max_depth=config.max_depth,
    )


def _normalize_event_name(name: str) -> str:
    return name.replace("_", "").lower()


def _find_handler(handlers: Sequence[Tuple[str, Handler]], event: str) -> Optional[Handler]:
    wanted = "on" + _normalize_event_name(event)
    for name, handler in handlers:
        if _normalize_event_name(name) == wanted:
            return handler
    return None


def _call_handler(handler: Handler, event: DomEvent) -> Any:
    try:
        parameters = inspect.signature(handler).parameters
    except (TypeError, ValueError):
        return handler(event)
    if not parameters:
        return handler()
    return handler(event)
