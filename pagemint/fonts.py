"""Turn a document's font list into stylesheet links and ``@font-face`` rules.

Google fonts become a single ``css2`` stylesheet link. Local font files are
read and embedded as base64 data URIs so the rendering engine never needs
filesystem access; missing or unreadable files are logged and skipped.
"""

from __future__ import annotations

import base64
import collections.abc as cabc
import dataclasses as dc
import logging
import urllib.parse
from pathlib import Path

from pagemint.models import FontSpec

logger = logging.getLogger(__name__)

GOOGLE_FONTS_URL = "https://fonts.googleapis.com/css2"

FONT_MIME_TYPES = {
    ".woff2": "font/woff2",
    ".woff": "font/woff",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".eot": "application/vnd.ms-fontobject",
}


@dc.dataclass(frozen=True, slots=True)
class FontAssets:
    """Stylesheet links and inline rules that make a document's fonts load."""

    links: tuple[str, ...] = ()
    css: str = ""


def google_fonts_url(fonts: cabc.Iterable[FontSpec]) -> str | None:
    """Return one Google Fonts stylesheet URL covering every remote family.

    Examples
    --------
    >>> google_fonts_url([FontSpec("Inter", weights=(400, 700))])
    'https://fonts.googleapis.com/css2?family=Inter:wght@400;700&display=swap'
    """
    families = [
        f"family={urllib.parse.quote_plus(font.family)}:wght@{';'.join(map(str, sorted(font.weights)))}"
        for font in fonts
        if font.src is None
    ]
    if not families:
        return None
    return f"{GOOGLE_FONTS_URL}?{'&'.join(families)}&display=swap"


def font_face(font: FontSpec, url: str) -> str:
    """Return an ``@font-face`` rule for ``font`` served from ``url``."""
    family = font.family.replace("'", "\\'")
    return (
        "@font-face {\n"
        f"  font-family: '{family}';\n"
        f"  src: url('{url}');\n"
        f"  font-weight: {font.weight};\n"
        f"  font-style: {font.style};\n"
        "  font-display: swap;\n"
        "}\n"
    )


def load_fonts(fonts: cabc.Iterable[FontSpec], *, base_dir: Path | None = None) -> FontAssets:
    """Resolve ``fonts`` into :class:`FontAssets`.

    Parameters
    ----------
    fonts : Iterable[FontSpec]
        Fonts declared by the document.
    base_dir : Path, optional
        Directory relative local font paths resolve against. Defaults to the
        current working directory.
    """
    fonts = list(fonts)
    links: list[str] = []
    if url := google_fonts_url(fonts):
        links.append(url)
    rules: list[str] = []
    for font in fonts:
        if font.src is None:
            continue
        if not font.is_local:
            rules.append(font_face(font, font.src))
            continue
        data_uri = _data_uri(_resolve(font.src, base_dir))
        if data_uri is not None:
            rules.append(font_face(font, data_uri))
    return FontAssets(links=tuple(links), css="".join(rules))


def _resolve(src: str, base_dir: Path | None) -> Path:
    path = Path(src)
    if path.is_absolute():
        return path
    return (base_dir or Path.cwd()) / path


def _data_uri(path: Path) -> str | None:
    try:
        payload = path.read_bytes()
    except OSError as exc:
        logger.warning("Skipping font %s: %s", path, exc)
        return None
    mime = FONT_MIME_TYPES.get(path.suffix.lower(), "application/octet-stream")
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


__all__ = ["FontAssets", "font_face", "google_fonts_url", "load_fonts"]
