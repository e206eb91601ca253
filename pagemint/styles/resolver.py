"""Resolve a document's styling into a single precompiled CSS blob.

:class:`StyleResolver` normalises the document's styling mode, compiles the
utility classes referenced anywhere in the tree (client module sources
included) through a :class:`~pagemint.styles.compiler.UtilityCompiler`, and
appends any embedded or external author stylesheet. The compiled utility CSS
is cached per class-set fingerprint in the shared
:class:`~pagemint.styles.cache.StyleCache`, so repeated renders of an
unchanged document never recompile.

Example
-------
>>> from pagemint.models import DocumentSpec, StylingMode
>>> from pagemint.tree import Element
>>> resolver = StyleResolver(compiler=None)
>>> spec = DocumentSpec(Element("p"), styling_mode=StylingMode.EMBEDDED, css="p { color: red; }")
>>> resolver.resolve(spec).css
'p { color: red; }\\n'
"""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ

from pagemint.errors import StyleResolutionError
from pagemint.models import DocumentSpec, StylingMode
from pagemint.styles.cache import StyleCache, fingerprint, get_style_cache
from pagemint.styles.extract import extract_tree_classes

if typ.TYPE_CHECKING:
    from pagemint.styles.compiler import UtilityCompiler

logger = logging.getLogger(__name__)

STYLING_ATTR = "data-pagemint-styling"


@dc.dataclass(frozen=True, slots=True)
class StyleBundle:
    """Every style rule the assembled markup needs, computed ahead of time.

    Attributes
    ----------
    precompiled_css : str
        Utility CSS compiled for :attr:`classes` (empty outside utility mode).
    author_css : str
        Embedded and external author stylesheets, in that order.
    marker_attributes : dict[str, str]
        Attributes the assembler places on the ``<html>`` element.
    classes : frozenset[str]
        Utility classes the precompiled CSS covers.
    from_cache : bool
        Whether :attr:`precompiled_css` was served from the style cache.
    """

    precompiled_css: str = ""
    author_css: str = ""
    marker_attributes: dict[str, str] = dc.field(default_factory=dict)
    classes: frozenset[str] = frozenset()
    from_cache: bool = False

    @property
    def css(self) -> str:
        """Return the composed CSS: utilities first, author rules after."""
        return "".join(part for part in (self.precompiled_css, self.author_css) if part)


class StyleResolver:
    """Produce a :class:`StyleBundle` for a document."""

    def __init__(
        self,
        compiler: UtilityCompiler | None,
        *,
        cache: StyleCache | None = None,
    ) -> None:
        """Bind the resolver to a compiler and cache.

        Parameters
        ----------
        compiler : UtilityCompiler or None
            Compiler used in utility mode. ``None`` makes utility-mode
            documents fail with :class:`StyleResolutionError`.
        cache : StyleCache, optional
            Cache for compiled CSS; defaults to the process-wide cache.
        """
        self.compiler = compiler
        self.cache = cache if cache is not None else get_style_cache()

    def resolve(self, spec: DocumentSpec) -> StyleBundle:
        """Resolve the styling of ``spec``.

        Raises
        ------
        StyleResolutionError
            If the styling combination is contradictory, a required stylesheet
            is missing or empty, or the utility compiler fails.
        """
        mode = StylingMode(spec.styling_mode)
        self._validate(spec, mode)
        author_css = self._author_css(spec)
        markers = {STYLING_ATTR: mode.value}
        if mode is not StylingMode.UTILITY:
            return StyleBundle(author_css=author_css, marker_attributes=markers)

        classes = frozenset(extract_tree_classes(spec.tree))
        for running in (spec.header, spec.footer):
            if running is not None:
                classes |= extract_tree_classes(running)
        key = fingerprint(classes, spec.theme_css)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Style cache hit for %d classes", len(classes))
            return StyleBundle(cached, author_css, markers, classes, from_cache=True)
        css = self._compile(classes, spec.theme_css)
        self.cache.put(key, css)
        return StyleBundle(css, author_css, markers, classes, from_cache=False)

    def _compile(self, classes: frozenset[str], theme_css: str | None) -> str:
        if not classes:
            return ""
        if self.compiler is None:
            msg = "Utility styling requires a configured utility compiler."
            raise StyleResolutionError(msg)
        return self.compiler.compile(classes, theme_css)

    @staticmethod
    def _validate(spec: DocumentSpec, mode: StylingMode) -> None:
        if spec.theme_css and mode is not StylingMode.UTILITY:
            msg = f"A utility theme cannot be combined with '{mode.value}' styling."
            raise StyleResolutionError(msg)
        if mode is StylingMode.EMBEDDED and not (spec.css or "").strip():
            msg = "Embedded styling requires a non-empty stylesheet string."
            raise StyleResolutionError(msg)
        if mode is StylingMode.EXTERNAL and not spec.stylesheet:
            msg = "External styling requires a stylesheet path."
            raise StyleResolutionError(msg)

    @staticmethod
    def _author_css(spec: DocumentSpec) -> str:
        parts: list[str] = []
        if spec.css and spec.css.strip():
            parts.append(spec.css.strip() + "\n")
        if spec.stylesheet:
            path = spec.resolve_path(spec.stylesheet)
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                msg = f"Stylesheet '{path}' could not be read."
                raise StyleResolutionError(msg, path=str(path)) from exc
            if not text.strip():
                msg = f"Stylesheet '{path}' is empty."
                raise StyleResolutionError(msg, path=str(path))
            parts.append(text.strip() + "\n")
        return "".join(parts)


__all__ = ["STYLING_ATTR", "StyleBundle", "StyleResolver"]
