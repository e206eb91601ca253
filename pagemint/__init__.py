"""Document assembly and pagination engine.

pagemint turns a declarative component tree plus page metadata into a
paginated PDF: it compiles the utility CSS the tree needs, bundles
client-only components so they mount inside a real DOM, assembles one HTML
document, paginates it in a headless browser to resolve page counts, and
hands the result to a local or remote conversion backend.

Exports
-------
- ``DocumentPipeline`` / ``RenderResult``: end-to-end render requests.
- ``DocumentSpec`` / ``StylingMode`` / ``FontSpec``: document definitions.
- ``app`` / ``main``: the ``pagemint`` console script.

Examples
--------
>>> from pagemint import resolve_page_geometry
>>> resolve_page_geometry("A4", "landscape")
PageGeometry(width_pt=841.89, height_pt=595.28)
"""

from __future__ import annotations

from .cli import app, main
from .geometry import PageGeometry, Watermark, resolve_page_geometry
from .models import DocumentSpec, FontSpec, StylingMode
from .pipeline import DocumentPipeline, RenderResult

__all__ = [
    "DocumentPipeline",
    "DocumentSpec",
    "FontSpec",
    "PageGeometry",
    "RenderResult",
    "StylingMode",
    "Watermark",
    "app",
    "main",
    "resolve_page_geometry",
]
