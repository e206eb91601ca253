"""Style resolution: class extraction, utility compilation, and caching."""

from .cache import StyleCache, configure_style_cache, fingerprint, get_style_cache
from .compiler import TailwindCompiler, UtilityCompiler
from .extract import extract_classes_from_content, extract_tree_classes
from .resolver import StyleBundle, StyleResolver

__all__ = [
    "StyleBundle",
    "StyleCache",
    "StyleResolver",
    "TailwindCompiler",
    "UtilityCompiler",
    "configure_style_cache",
    "extract_classes_from_content",
    "extract_tree_classes",
    "fingerprint",
    "get_style_cache",
]
