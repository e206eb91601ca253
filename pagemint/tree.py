r"""Declarative component tree and the server-side markup renderer.

A document body is a tree of three node variants:

* :class:`Element` and :class:`Text` are server-renderable and turn into
  static markup via :func:`render_markup`.
* :class:`ClientComponent` is client-only: it names a JavaScript module that
  must mount inside a real DOM. The client detector replaces each one with a
  placeholder :class:`Element` before server rendering runs, so
  :func:`render_markup` refuses to see them.

Node identity for client components is the ``source#export`` pair; node
position is the tuple of child indexes from the root (see :func:`walk`).

Examples
--------
>>> from pagemint.tree import Element, Text, render_markup
>>> tree = Element("p", {"class": "text-sm"}, [Text("Hello & welcome")])
>>> render_markup(tree)
'<p class="text-sm">Hello &amp; welcome</p>'
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ
from pathlib import Path

from markupsafe import escape

from ._constants import (
    AVOID_BREAK_ATTR,
    KEEP_ATTR,
    PAGE_BREAK_ATTR,
    PAGE_NUMBER_ATTR,
    REPEAT_HEADER_ATTR,
    TOTAL_PAGES_ATTR,
)

VOID_ELEMENTS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "wbr"}
)

AttrValue = str | int | float | bool | None | cabc.Mapping[str, str]
NodePath = tuple[int, ...]


@dc.dataclass(slots=True)
class Text:
    """A text node; ``raw`` text is emitted without escaping."""

    value: str
    raw: bool = False


@dc.dataclass(slots=True)
class Element:
    """A server-renderable element.

    Attributes
    ----------
    tag : str
        HTML tag name.
    attrs : dict[str, AttrValue]
        Attributes. ``True`` renders a bare attribute, ``False``/``None`` drop
        it, and a mapping under ``style`` becomes an inline declaration list.
    children : list[Node]
        Child nodes in document order.
    key : str or None
        Optional author-supplied identity, used to keep ids stable when
        siblings are reordered.
    """

    tag: str
    attrs: dict[str, AttrValue] = dc.field(default_factory=dict)
    children: list[Node] = dc.field(default_factory=list)
    key: str | None = None


@dc.dataclass(slots=True)
class ClientComponent:
    """A client-only subtree that must execute inside a real DOM.

    Attributes
    ----------
    source : str
        Path to the JavaScript module implementing the component.
    export : str
        Name of the module export exposing ``mount(container, props)``.
    props : dict[str, Any]
        JSON-serialisable props handed to the component when it mounts.
    key : str or None
        Optional author-supplied identity.
    tag : str
        Tag used for the placeholder container.
    classes : str
        Utility classes placed on the placeholder container.
    """

    source: str
    export: str = "default"
    props: dict[str, typ.Any] = dc.field(default_factory=dict)
    key: str | None = None
    tag: str = "div"
    classes: str = ""

    @property
    def identity(self) -> str:
        """Return the component identity shared by all its occurrences."""
        return f"{self.source}#{self.export}"


Node = Element | Text | ClientComponent


def walk(node: Node, path: NodePath = ()) -> cabc.Iterator[tuple[NodePath, Node]]:
    """Yield ``(path, node)`` pairs depth-first in document order."""
    yield path, node
    if isinstance(node, Element):
        for index, child in enumerate(node.children):
            yield from walk(child, (*path, index))


def render_markup(node: Node) -> str:
    """Render a server-renderable tree to an HTML fragment.

    Raises
    ------
    TypeError
        If a :class:`ClientComponent` is still present; client subtrees must
        be replaced with placeholders before server rendering.
    """
    parts: list[str] = []
    _render_into(node, parts)
    return "".join(parts)


def _render_into(node: Node, parts: list[str]) -> None:
    match node:
        case Text(value=value, raw=True):
            parts.append(value)
        case Text(value=value):
            parts.append(str(escape(value)))
        case Element():
            parts.append(f"<{node.tag}{_render_attrs(node.attrs)}>")
            if node.tag in VOID_ELEMENTS:
                return
            for child in node.children:
                _render_into(child, parts)
            parts.append(f"</{node.tag}>")
        case ClientComponent():
            msg = f"Client component '{node.identity}' must be replaced before rendering."
            raise TypeError(msg)
        case _:
            msg = f"Unsupported node type: {type(node).__name__}"
            raise TypeError(msg)


def _render_attrs(attrs: cabc.Mapping[str, AttrValue]) -> str:
    rendered: list[str] = []
    for name, value in attrs.items():
        match value:
            case None | False:
                continue
            case True:
                rendered.append(f" {name}")
            case cabc.Mapping():
                declarations = "; ".join(f"{prop}: {val}" for prop, val in value.items())
                rendered.append(f' {name}="{escape(declarations)}"')
            case _:
                rendered.append(f' {name}="{escape(str(value))}"')
    return "".join(rendered)


def page_number(classes: str = "") -> Element:
    """Return a span the page-number counter fills in."""
    return Element("span", {PAGE_NUMBER_ATTR: True, "class": classes or None})


def total_pages(classes: str = "") -> Element:
    """Return a span that receives the resolved total page count."""
    return Element("span", {TOTAL_PAGES_ATTR: True, "class": classes or None})


def page_break() -> Element:
    """Return an explicit page break marker."""
    return Element("div", {PAGE_BREAK_ATTR: True})


def avoid_break(*children: Node, classes: str = "") -> Element:
    """Wrap ``children`` in a block the paginator keeps on one page."""
    return Element("div", {AVOID_BREAK_ATTR: True, "class": classes or None}, list(children))


def repeat_header(*rows: Node, classes: str = "") -> Element:
    """Return a ``<thead>`` repeated at the top of every page the table spans."""
    return Element("thead", {REPEAT_HEADER_ATTR: True, "class": classes or None}, list(rows))


def keep_row(*cells: Node, classes: str = "") -> Element:
    """Return a table row that is never split across pages."""
    return Element("tr", {KEEP_ATTR: True, "class": classes or None}, list(cells))


_CONTAINER_COMPONENTS: dict[str, cabc.Callable[..., Element]] = {
    "avoid-break": avoid_break,
    "repeat-header": repeat_header,
    "keep": keep_row,
}


_BUILTIN_COMPONENTS: dict[str, cabc.Callable[..., Element]] = {
    "page-number": page_number,
    "total-pages": total_pages,
    "page-break": page_break,
}


def node_from_mapping(payload: object, *, base_dir: Path | None = None) -> Node:
    """Build a tree node from a YAML-style payload.

    Accepted shapes are a bare string (text), ``{"text": ...}``,
    ``{"html": ...}`` (raw markup), ``{"component": "page-number" |
    "total-pages" | "page-break"}``, ``{"component": "avoid-break" |
    "repeat-header" | "keep", "children": [...]}``, ``{"client": {...}}``
    and ``{"tag": ..., "class": ..., "attrs": ..., "style": ...,
    "children": [...]}``. Relative client sources resolve against
    ``base_dir``.

    Raises
    ------
    ValueError
        If the payload does not match any accepted shape.
    """
    match payload:
        case str() as text:
            return Text(text)
        case {"text": str() as text}:
            return Text(text)
        case {"html": str() as html}:
            return Text(html, raw=True)
        case {"client": cabc.Mapping() as client}:
            return _client_from_mapping(client, base_dir=base_dir)
        case {"component": str() as name, **rest} if name in _CONTAINER_COMPONENTS:
            children = [node_from_mapping(child, base_dir=base_dir) for child in rest.get("children") or []]
            return _CONTAINER_COMPONENTS[name](*children, classes=str(rest.get("class", "")))
        case {"component": str() as name, **rest}:
            factory = _BUILTIN_COMPONENTS.get(name)
            if factory is None:
                msg = f"Unknown built-in component '{name}'."
                raise ValueError(msg)
            if name == "page-break":
                return factory()
            return factory(str(rest.get("class", "")))
        case {"tag": str() as tag, **rest}:
            return _element_from_mapping(tag, rest, base_dir=base_dir)
        case _:
            msg = f"Cannot build a tree node from {payload!r}."
            raise ValueError(msg)


def _element_from_mapping(
    tag: str, payload: cabc.Mapping[str, typ.Any], *, base_dir: Path | None
) -> Element:
    attrs: dict[str, AttrValue] = dict(payload.get("attrs") or {})
    if classes := payload.get("class"):
        attrs["class"] = " ".join(classes) if isinstance(classes, list) else str(classes)
    if style := payload.get("style"):
        attrs["style"] = style if isinstance(style, cabc.Mapping) else str(style)
    children = [node_from_mapping(child, base_dir=base_dir) for child in payload.get("children") or []]
    key = payload.get("key")
    return Element(tag, attrs, children, key=str(key) if key is not None else None)


def _client_from_mapping(
    payload: cabc.Mapping[str, typ.Any], *, base_dir: Path | None
) -> ClientComponent:
    source = payload.get("source")
    if not isinstance(source, str) or not source.strip():
        msg = "Client components require a 'source' module path."
        raise ValueError(msg)
    source_path = Path(source)
    if base_dir is not None and not source_path.is_absolute():
        source = str(base_dir / source_path)
    key = payload.get("key")
    return ClientComponent(
        source=source,
        export=str(payload.get("export", "default")),
        props=dict(payload.get("props") or {}),
        key=str(key) if key is not None else None,
        tag=str(payload.get("tag", "div")),
        classes=str(payload.get("class", "")),
    )


__all__ = [
    "VOID_ELEMENTS",
    "ClientComponent",
    "Element",
    "Node",
    "NodePath",
    "Text",
    "avoid_break",
    "keep_row",
    "node_from_mapping",
    "page_break",
    "page_number",
    "render_markup",
    "repeat_header",
    "total_pages",
    "walk",
]
