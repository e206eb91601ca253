"""Detect client-only subtrees and swap them for stable placeholders.

A single pre-pass walks the component tree. Every :class:`ClientComponent`
is replaced by an empty container element carrying a deterministic id, and a
:class:`ClientComponentInfo` record is produced for the bundler. The input
tree is never mutated; a copy with placeholders is returned instead.
"""

from __future__ import annotations

import copy
import dataclasses as dc
import hashlib
import typing as typ

from pagemint._constants import CLIENT_ATTR, PLACEHOLDER_ID_TEMPLATE
from pagemint.tree import ClientComponent, Element, Node, NodePath, Text

_ID_LENGTH = 12


@dc.dataclass(frozen=True, slots=True)
class ClientComponentInfo:
    """One client-only subtree found during detection.

    Attributes
    ----------
    id : str
        Stable identifier derived from the node position and identity.
    source : str
        Module path the component is implemented in.
    export : str
        Export exposing ``mount(container, props)``.
    props : dict[str, Any]
        Snapshot of the props at detection time.
    path : tuple[int, ...]
        Position of the node in the original tree.
    """

    id: str
    source: str
    export: str
    props: dict[str, typ.Any]
    path: NodePath

    @property
    def identity(self) -> str:
        return f"{self.source}#{self.export}"

    @property
    def container_id(self) -> str:
        """Return the DOM id of the placeholder the component mounts into."""
        return PLACEHOLDER_ID_TEMPLATE.format(id=self.id)


@dc.dataclass(slots=True)
class DetectionResult:
    """Tree with placeholders plus the detected client components."""

    tree: Node
    components: list[ClientComponentInfo]

    @property
    def has_client(self) -> bool:
        return bool(self.components)


def component_id(path: NodePath, component: ClientComponent) -> str:
    """Return the stable id for ``component`` found at ``path``.

    Keyed components hash their key instead of their position, so they keep
    the same id when siblings move around them.

    Examples
    --------
    >>> chart = ClientComponent("charts.js", "BarChart")
    >>> component_id((0, 2), chart) == component_id((0, 2), chart)
    True
    >>> component_id((0, 2), chart) == component_id((0, 3), chart)
    False
    """
    anchor = f"key:{component.key}" if component.key is not None else "path:" + ".".join(map(str, path))
    digest = hashlib.sha1(f"{anchor}|{component.identity}".encode(), usedforsecurity=False)
    return "c" + digest.hexdigest()[:_ID_LENGTH]


def detect_client_components(root: Node) -> DetectionResult:
    """Replace client components in ``root`` with placeholders.

    Returns
    -------
    DetectionResult
        The rewritten tree and one :class:`ClientComponentInfo` per client
        node, in document order.
    """
    found: list[ClientComponentInfo] = []
    seen: set[str] = set()
    tree = _rewrite(root, (), found, seen)
    return DetectionResult(tree=tree, components=found)


def _rewrite(
    node: Node,
    path: NodePath,
    found: list[ClientComponentInfo],
    seen: set[str],
) -> Node:
    match node:
        case ClientComponent():
            identifier = component_id(path, node)
            if identifier in seen:
                # Duplicate keys fall back to a position-qualified id.
                identifier = component_id(path, dc.replace(node, key=None))
            seen.add(identifier)
            info = ClientComponentInfo(
                id=identifier,
                source=node.source,
                export=node.export,
                props=copy.deepcopy(node.props),
                path=path,
            )
            found.append(info)
            return placeholder_for(info, tag=node.tag, classes=node.classes)
        case Element():
            children = [
                _rewrite(child, (*path, index), found, seen)
                for index, child in enumerate(node.children)
            ]
            return Element(node.tag, dict(node.attrs), children, key=node.key)
        case Text():
            return node
        case _:
            msg = f"Unsupported node type: {type(node).__name__}"
            raise TypeError(msg)


def placeholder_for(info: ClientComponentInfo, *, tag: str = "div", classes: str = "") -> Element:
    """Return the empty container element a client component mounts into."""
    return Element(
        tag,
        {
            "id": info.container_id,
            CLIENT_ATTR: info.id,
            "class": classes or None,
        },
    )


__all__ = [
    "ClientComponentInfo",
    "DetectionResult",
    "component_id",
    "detect_client_components",
    "placeholder_for",
]
