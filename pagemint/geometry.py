r"""Resolve page sizes to point geometry and emit ``@page`` CSS.

Page sizes are either a known name (``"A4"``, ``"Letter"`` ...) or a custom
``(width, height)`` pair of CSS lengths. Everything is normalised to PDF
points (72 per inch) so orientation swaps are exact. Unknown names and
unparseable custom dimensions fall back to A4 portrait instead of failing,
because half-typed page sizes are common while a document is being authored.

Examples
--------
>>> from pagemint.geometry import resolve_page_geometry
>>> resolve_page_geometry("Letter", "landscape")
PageGeometry(width_pt=792.0, height_pt=612.0)
>>> resolve_page_geometry("Folio")
PageGeometry(width_pt=595.28, height_pt=841.89)
>>> resolve_page_geometry(("210mm", "99mm")).width_pt
595.28
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import re
import typing as typ

from ._constants import DEFAULT_MARGIN

logger = logging.getLogger(__name__)

PAGE_SIZES: dict[str, tuple[float, float]] = {
    "Letter": (612.0, 792.0),
    "Legal": (612.0, 1008.0),
    "Tabloid": (792.0, 1224.0),
    "A3": (841.89, 1190.55),
    "A4": (595.28, 841.89),
    "A5": (419.53, 595.28),
    "B4": (708.66, 1000.63),
    "B5": (498.9, 708.66),
}
DEFAULT_PAGE_SIZE = "A4"

_SIZE_LOOKUP = {name.lower(): name for name in PAGE_SIZES}
_DIMENSION_PATTERN = re.compile(r"^\s*([\d.]+)\s*(pt|in|mm|cm|px)?\s*$", re.IGNORECASE)
_POINTS_PER_UNIT: dict[str, float] = {
    "pt": 1.0,
    "in": 72.0,
    "mm": 72.0 / 25.4,
    "cm": 72.0 / 2.54,
    "px": 72.0 / 96.0,
}
_MARGIN_SIDES = ("top", "right", "bottom", "left")

Orientation = typ.Literal["portrait", "landscape"]
PageSize = str | tuple[str | float, str | float]


@dc.dataclass(frozen=True, slots=True)
class PageGeometry:
    """Immutable page dimensions in PDF points."""

    width_pt: float
    height_pt: float

    def swapped(self) -> PageGeometry:
        """Return the geometry with width and height exchanged."""
        return PageGeometry(width_pt=self.height_pt, height_pt=self.width_pt)

    @property
    def css_size(self) -> str:
        """Return the geometry as a CSS ``size`` value, e.g. ``595.28pt 841.89pt``."""
        return f"{_format_points(self.width_pt)}pt {_format_points(self.height_pt)}pt"

    @property
    def width_in(self) -> float:
        return self.width_pt / 72.0

    @property
    def height_in(self) -> float:
        return self.height_pt / 72.0


@dc.dataclass(frozen=True, slots=True)
class Watermark:
    """Text repeated diagonally across every paginated page."""

    text: str
    opacity: float = 0.1
    rotation: float = -35.0

    @property
    def alpha(self) -> float:
        """Return the colour alpha used for the watermark glyphs."""
        return min(self.opacity * 1.5, 0.3)


DEFAULT_GEOMETRY = PageGeometry(*PAGE_SIZES[DEFAULT_PAGE_SIZE])


def resolve_page_geometry(
    size: PageSize | None = None, orientation: str = "portrait"
) -> PageGeometry:
    """Map a page size and orientation to point dimensions.

    Parameters
    ----------
    size : str or tuple, optional
        Known page-size name (case-insensitive) or a ``(width, height)`` pair
        of CSS lengths such as ``("8.5in", "11in")``. ``None`` selects A4.
    orientation : str, optional
        ``"portrait"`` (default) or ``"landscape"``. Landscape swaps width and
        height exactly.

    Returns
    -------
    PageGeometry
        The resolved geometry. Unknown names and unparseable dimensions
        resolve to A4 portrait geometry before the orientation is applied.
    """
    match size:
        case None:
            geometry = DEFAULT_GEOMETRY
        case str() as name:
            geometry = _named_geometry(name)
        case (width, height):
            geometry = _custom_geometry(width, height)
        case _:
            logger.debug("Unrecognised page size %r; using %s", size, DEFAULT_PAGE_SIZE)
            geometry = DEFAULT_GEOMETRY
    if orientation == "landscape":
        return geometry.swapped()
    return geometry


def parse_dimension(value: str | float) -> float:
    """Convert a CSS length (``"210mm"``, ``"8.5in"``, ``72``) to points.

    Raises
    ------
    ValueError
        If ``value`` is not a positive number with an optional
        ``pt``/``in``/``mm``/``cm``/``px`` unit.
    """
    if isinstance(value, int | float):
        points = float(value)
    elif match := _DIMENSION_PATTERN.match(value):
        number, unit = match.groups()
        points = float(number) * _POINTS_PER_UNIT[(unit or "pt").lower()]
    else:
        msg = f"Invalid dimension '{value}'. Use a format like '210mm', '8.5in', or '72pt'."
        raise ValueError(msg)
    if points <= 0:
        msg = f"Dimension '{value}' must be greater than zero."
        raise ValueError(msg)
    return points


def margin_css(margin: str | cabc.Mapping[str, str] | None) -> str:
    """Return a CSS ``margin`` shorthand for a single value or per-side mapping."""
    if margin is None:
        return DEFAULT_MARGIN
    if isinstance(margin, str):
        return margin.strip() or DEFAULT_MARGIN
    return " ".join(str(margin.get(side, "0")) for side in _MARGIN_SIDES)


def page_css(
    geometry: PageGeometry,
    *,
    margin: str | cabc.Mapping[str, str] | None = None,
    watermark: Watermark | None = None,
) -> str:
    """Generate the ``@page`` rules for a resolved geometry.

    The watermark is attached to every page box produced by the pagination
    polyfill so it repeats on pages created during re-flow.
    """
    rules = [
        "@page {",
        f"  size: {geometry.css_size};",
        f"  margin: {margin_css(margin)};",
        "}",
    ]
    if watermark and watermark.text:
        text = watermark.text.replace("\\", "\\\\").replace('"', '\\"')
        rules.extend(
            [
                "",
                ".pagedjs_page {",
                "  position: relative;",
                "}",
                "",
                ".pagedjs_page > .pagedjs_sheet::before {",
                f'  content: "{text}";',
                "  position: absolute;",
                "  top: 50%;",
                "  left: 50%;",
                f"  transform: translate(-50%, -50%) rotate({watermark.rotation:g}deg);",
                "  font-size: 5rem;",
                "  font-weight: 900;",
                f"  color: rgba(156, 163, 175, {watermark.alpha:g});",
                "  text-transform: uppercase;",
                "  letter-spacing: 0.1em;",
                "  white-space: nowrap;",
                "  pointer-events: none;",
                "  z-index: 9999;",
                "}",
            ]
        )
    return "\n".join(rules) + "\n"


def _named_geometry(name: str) -> PageGeometry:
    canonical = _SIZE_LOOKUP.get(name.strip().lower())
    if canonical is None:
        logger.debug("Unknown page size '%s'; using %s", name, DEFAULT_PAGE_SIZE)
        return DEFAULT_GEOMETRY
    return PageGeometry(*PAGE_SIZES[canonical])


def _custom_geometry(width: str | float, height: str | float) -> PageGeometry:
    try:
        return PageGeometry(
            width_pt=round(parse_dimension(width), 2),
            height_pt=round(parse_dimension(height), 2),
        )
    except ValueError:
        logger.debug("Unparseable custom size %r x %r; using %s", width, height, DEFAULT_PAGE_SIZE)
        return DEFAULT_GEOMETRY


def _format_points(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return text or "0"


__all__ = [
    "DEFAULT_GEOMETRY",
    "DEFAULT_PAGE_SIZE",
    "PAGE_SIZES",
    "Orientation",
    "PageGeometry",
    "PageSize",
    "Watermark",
    "margin_css",
    "page_css",
    "parse_dimension",
    "resolve_page_geometry",
]
