"""Authored document definitions shared by every pipeline stage."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
from pathlib import Path

from pagemint.geometry import PageGeometry, PageSize, Watermark, resolve_page_geometry
from pagemint.tree import Node


class StylingMode(enum.StrEnum):
    """Closed set of ways a document expresses its styling."""

    UTILITY = "utility"
    INLINE = "inline"
    EMBEDDED = "embedded"
    EXTERNAL = "external"


@dc.dataclass(frozen=True, slots=True)
class FontSpec:
    """A font to make available to the document.

    Google fonts carry only ``family`` (and optional ``weights``); local fonts
    set ``src`` to a font file that is embedded as a data URI.
    """

    family: str
    src: str | None = None
    weights: tuple[int, ...] = (400, 500, 600, 700)
    weight: int = 400
    style: str = "normal"

    @property
    def is_local(self) -> bool:
        return self.src is not None and not self.src.startswith(("http://", "https://", "//", "data:"))


@dc.dataclass(slots=True)
class DocumentSpec:
    """The authored unit handed to the rendering pipeline.

    Attributes
    ----------
    tree : Node
        Component tree for the page body.
    page_size : str or tuple, optional
        Named page size or ``(width, height)`` CSS lengths.
    orientation : str
        ``"portrait"`` or ``"landscape"``.
    styling_mode : StylingMode
        Primary styling mode. ``css`` and ``stylesheet`` may be supplied on
        top of it; ``theme_css`` is only meaningful in utility mode.
    header, footer : Node or None
        Running elements repeated on every page.
    base_dir : Path or None
        Directory that relative stylesheet and font paths resolve against.
    debug : bool or Mapping[str, bool]
        ``True`` enables every debug overlay; a mapping enables a subset of
        ``grid``, ``margins``, ``headers`` and ``breaks``.
    """

    tree: Node
    title: str = "Document"
    page_size: PageSize | None = "A4"
    orientation: str = "portrait"
    styling_mode: StylingMode = StylingMode.INLINE
    margin: str | cabc.Mapping[str, str] | None = None
    watermark: Watermark | None = None
    header: Node | None = None
    footer: Node | None = None
    css: str | None = None
    stylesheet: str | None = None
    theme_css: str | None = None
    fonts: tuple[FontSpec, ...] = ()
    language: str = "en"
    author: str | None = None
    subject: str | None = None
    keywords: tuple[str, ...] = ()
    base_dir: Path | None = None
    debug: bool | cabc.Mapping[str, bool] = False

    @property
    def geometry(self) -> PageGeometry:
        """Resolve the page geometry for this document."""
        return resolve_page_geometry(self.page_size, self.orientation)

    def resolve_path(self, value: str) -> Path:
        """Resolve ``value`` against :attr:`base_dir` when it is relative."""
        path = Path(value)
        if path.is_absolute() or self.base_dir is None:
            return path
        return self.base_dir / path


__all__ = ["DocumentSpec", "FontSpec", "StylingMode"]
