"""Embed local images as base64 data URIs.

Assembled documents are loaded into the rendering engine without a base URL
and the remote backend only ever receives ``index.html``, so relative image
paths would not resolve in either place. :func:`embed_images` rewrites the
``src`` of every ``<img>`` in a page tree, including ``<img>`` tags inside raw
markup, to a data URI read from disk. Remote URLs, protocol-relative URLs and
existing data URIs are left alone; missing or unreadable files are logged and
keep their original ``src``.
"""

from __future__ import annotations

import base64
import dataclasses as dc
import logging
import re
from pathlib import Path

from pagemint.tree import Element, Node, Text

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".bmp": "image/bmp",
    ".avif": "image/avif",
}

_REMOTE_PREFIXES = ("http://", "https://", "//", "data:")
_IMG_SRC_PATTERN = re.compile(r"""(<img\b[^>]*?\bsrc=)(["'])([^"']+)\2""", re.IGNORECASE)


def is_local_source(src: str) -> bool:
    """Return whether ``src`` names a file that should be embedded.

    Examples
    --------
    >>> is_local_source("images/logo.png")
    True
    >>> is_local_source("https://example.com/logo.png")
    False
    """
    return bool(src.strip()) and not src.startswith(_REMOTE_PREFIXES)


def embed_images(tree: Node, *, base_dir: Path | None = None) -> Node:
    """Return a copy of ``tree`` with local ``<img>`` sources embedded.

    Parameters
    ----------
    tree : Node
        Server-renderable page tree.
    base_dir : Path, optional
        Directory relative image paths resolve against. Defaults to the
        current working directory.
    """
    return _Embedder(base_dir or Path.cwd()).visit(tree)


class _Embedder:
    def __init__(self, base_dir: Path) -> None:
        self.base_dir = base_dir
        self._seen: dict[Path, str | None] = {}

    def visit(self, node: Node) -> Node:
        match node:
            case Element(tag="img", attrs=attrs) if isinstance(attrs.get("src"), str):
                src = str(attrs["src"])
                return dc.replace(node, attrs={**attrs, "src": self.data_uri(src) or src})
            case Element(children=children) if children:
                return dc.replace(node, children=[self.visit(child) for child in children])
            case Text(value=markup, raw=True) if "<img" in markup.lower():
                return Text(_IMG_SRC_PATTERN.sub(self._substitute, markup), raw=True)
            case _:
                return node

    def data_uri(self, src: str) -> str | None:
        if not is_local_source(src):
            return None
        path = Path(src)
        if not path.is_absolute():
            path = self.base_dir / path
        if path not in self._seen:
            self._seen[path] = _read_data_uri(path)
        return self._seen[path]

    def _substitute(self, match: re.Match[str]) -> str:
        prefix, quote, src = match.groups()
        return f"{prefix}{quote}{self.data_uri(src) or src}{quote}"


def _read_data_uri(path: Path) -> str | None:
    try:
        payload = path.read_bytes()
    except OSError as exc:
        logger.warning("Skipping image %s: %s", path, exc)
        return None
    mime = IMAGE_MIME_TYPES.get(path.suffix.lower(), "application/octet-stream")
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


__all__ = ["IMAGE_MIME_TYPES", "embed_images", "is_local_source"]
