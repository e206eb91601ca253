"""Compose server markup, styles, and page CSS into one HTML document.

The assembler is pure string composition: it renders the placeholder tree
produced by the client detector, places the page geometry CSS ahead of the
base print stylesheet and every author stylesheet (so authored rules can
override page size and margins), and records the client bundles the
pagination orchestrator must attach. Nothing here touches the filesystem
beyond loading the package templates once.

Example
-------
>>> from pagemint.assembler import DocumentAssembler, build_page_tree
>>> from pagemint.models import DocumentSpec
>>> from pagemint.tree import Element, Text
>>> spec = DocumentSpec(Element("p", children=[Text("Hi")]))
>>> assembled = DocumentAssembler().assemble(spec, build_page_tree(spec))
>>> "@page" in assembled.html
True
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from pagemint._constants import (
    CLIENT_ATTR,
    CONTENT_ATTR,
    FOOTER_ATTR,
    HEADER_ATTR,
    PAGE_ATTR,
    PAGE_COUNT_ATTR,
    TOTAL_PAGES_ATTR,
)
from pagemint.client.bundle import ClientBundleSet
from pagemint.fonts import FontAssets
from pagemint.geometry import PageGeometry, page_css
from pagemint.models import DocumentSpec
from pagemint.styles.resolver import StyleBundle
from pagemint.tree import Element, Node, render_markup, walk

DEBUG_OPTIONS = ("grid", "margins", "headers", "breaks")


@dc.dataclass(frozen=True, slots=True)
class AssembledDocument:
    """A self-contained HTML document awaiting pagination.

    Attributes
    ----------
    html : str
        Complete document markup with client placeholders still empty and
        total-page references unresolved.
    page_geometry_css : str
        The ``@page`` rules embedded ahead of every other stylesheet.
    total_pages_placeholders : int
        Number of elements that will receive the resolved page count.
    bundles : ClientBundleSet
        Client bundles the orchestrator attaches after loading.
    geometry : PageGeometry
        Resolved page geometry, reused by the conversion backends.
    """

    html: str
    page_geometry_css: str
    total_pages_placeholders: int
    bundles: ClientBundleSet
    geometry: PageGeometry

    @property
    def placeholder_ids(self) -> tuple[str, ...]:
        """Return the container ids the bundled components mount into."""
        return tuple(entry.container_id for entry in self.bundles.entries.values())


def build_page_tree(spec: DocumentSpec) -> Element:
    """Wrap the document body with its running header and footer.

    Running elements precede the content so the pagination polyfill picks
    them up from the first page onwards.
    """
    children: list[Node] = []
    if spec.header is not None:
        children.append(Element("header", {HEADER_ATTR: True}, [spec.header]))
    if spec.footer is not None:
        children.append(Element("footer", {FOOTER_ATTR: True}, [spec.footer]))
    children.append(Element("main", {CONTENT_ATTR: True}, [spec.tree]))
    return Element("div", {PAGE_ATTR: True}, children)


def debug_flags(debug: bool | cabc.Mapping[str, bool]) -> dict[str, bool] | None:
    """Normalise the ``debug`` setting to a mapping of enabled overlays.

    Examples
    --------
    >>> debug_flags(False) is None
    True
    >>> debug_flags({"grid": True})
    {'grid': True, 'margins': False, 'headers': False, 'breaks': False}
    """
    if isinstance(debug, cabc.Mapping):
        flags = {option: bool(debug.get(option, False)) for option in DEBUG_OPTIONS}
    else:
        flags = dict.fromkeys(DEBUG_OPTIONS, bool(debug))
    return flags if any(flags.values()) else None


class DocumentAssembler:
    """Render the document template around a placeholder tree."""

    def __init__(self, *, templates_dir: Path | None = None) -> None:
        """Create the Jinja environment.

        Parameters
        ----------
        templates_dir : Path, optional
            Directory containing ``document.jinja``; defaults to the package
            templates.
        """
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.template = self.env.get_template("document.jinja")

    def assemble(
        self,
        spec: DocumentSpec,
        tree: Node,
        *,
        styles: StyleBundle | None = None,
        bundles: ClientBundleSet | None = None,
        fonts: FontAssets | None = None,
    ) -> AssembledDocument:
        """Compose the final document for ``spec``.

        Parameters
        ----------
        spec : DocumentSpec
            Document metadata, geometry, and debug settings.
        tree : Node
            Page tree with client components already replaced by
            placeholders (see :func:`build_page_tree` and
            :func:`pagemint.client.detect.detect_client_components`).
        styles : StyleBundle, optional
            Resolved document styles.
        bundles : ClientBundleSet, optional
            Client bundles to attach during pagination.
        fonts : FontAssets, optional
            Font links and ``@font-face`` rules.
        """
        styles = styles or StyleBundle()
        bundles = bundles or ClientBundleSet()
        fonts = fonts or FontAssets()
        geometry = spec.geometry
        geometry_css = page_css(geometry, margin=spec.margin, watermark=spec.watermark)
        html = self.template.render(
            title=spec.title,
            language=spec.language,
            author=spec.author,
            subject=spec.subject,
            keywords=list(spec.keywords),
            markers=styles.marker_attributes,
            page_count_attr=PAGE_COUNT_ATTR,
            font_links=fonts.links,
            page_css=_style_text(geometry_css),
            debug=debug_flags(spec.debug),
            font_css=_style_text(fonts.css),
            css=_style_text(styles.css),
            body=render_markup(tree),
        )
        return AssembledDocument(
            html=html,
            page_geometry_css=geometry_css,
            total_pages_placeholders=count_marked(tree, TOTAL_PAGES_ATTR),
            bundles=bundles,
            geometry=geometry,
        )


def count_marked(tree: Node, attribute: str) -> int:
    """Count elements in ``tree`` carrying ``attribute``."""
    return sum(
        1
        for _, node in walk(tree)
        if isinstance(node, Element) and node.attrs.get(attribute) not in (None, False)
    )


def count_placeholders(tree: Node) -> int:
    """Count client placeholders left in ``tree``."""
    return count_marked(tree, CLIENT_ATTR)


def _style_text(css: str) -> str:
    # Keep stylesheet text from closing its <style> element early.
    return css.replace("</", "<\\/").strip()


__all__ = [
    "DEBUG_OPTIONS",
    "AssembledDocument",
    "DocumentAssembler",
    "build_page_tree",
    "count_marked",
    "count_placeholders",
    "debug_flags",
]
