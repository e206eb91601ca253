"""Static utility-class extraction over component trees and module sources.

The scan is purely textual: class attributes on tree elements are split on
whitespace, while raw markup fragments and client module sources are searched
for ``class=``/``className=`` attributes, template literals, and
``cn``/``clsx``/``cx`` calls. Dynamic expressions (``${...}``) are skipped,
so classes assembled at runtime inside a client module are not discovered.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pagemint.tree import ClientComponent, Element, Node, Text, walk

logger = logging.getLogger(__name__)

CLASS_ATTR_PATTERN = re.compile(r"""(?:className|class)=["']([^"']+)["']""")
TEMPLATE_LITERAL_PATTERN = re.compile(r"className=\{`([^`]+)`\}")
TEMPLATE_EXPRESSION_PATTERN = re.compile(r"\$\{[^}]+\}")
CLASS_HELPER_PATTERN = re.compile(r"(?:\bcn|\bclsx|\bcx)\s*\(\s*([^)]+)\)")
STRING_LITERAL_PATTERN = re.compile(r"""["']([^"']+)["']""")
CLASS_LIST_PATTERN = re.compile(r"""\.classList\.add\(([^)]+)\)""")


def extract_classes_from_content(content: str) -> set[str]:
    """Return every static utility class referenced in source ``content``.

    Examples
    --------
    >>> sorted(extract_classes_from_content('<div class="p-4 text-sm">'))
    ['p-4', 'text-sm']
    >>> sorted(extract_classes_from_content('cn("flex", ok && "gap-2")'))
    ['flex', 'gap-2']
    """
    classes: set[str] = set()
    for match in CLASS_ATTR_PATTERN.finditer(content):
        classes.update(
            token
            for token in match.group(1).split()
            if "${" not in token and not token.startswith("{")
        )
    for match in TEMPLATE_LITERAL_PATTERN.finditer(content):
        static_parts = TEMPLATE_EXPRESSION_PATTERN.sub(" ", match.group(1))
        classes.update(static_parts.split())
    for pattern in (CLASS_HELPER_PATTERN, CLASS_LIST_PATTERN):
        for match in pattern.finditer(content):
            for literal in STRING_LITERAL_PATTERN.finditer(match.group(1)):
                classes.update(literal.group(1).split())
    return classes


def extract_tree_classes(root: Node) -> set[str]:
    """Collect classes from tree attributes, raw markup and client module sources."""
    classes: set[str] = set()
    scanned: set[str] = set()
    for _path, node in walk(root):
        match node:
            case Element(attrs=attrs):
                value = attrs.get("class")
                if isinstance(value, str):
                    classes.update(value.split())
            case Text(value=markup, raw=True):
                classes.update(extract_classes_from_content(markup))
            case ClientComponent():
                classes.update(node.classes.split())
                if node.source not in scanned:
                    scanned.add(node.source)
                    classes.update(_scan_source(node.source))
    return classes


def _scan_source(source: str) -> set[str]:
    path = Path(source)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        # Unresolvable modules are reported by the bundler.
        logger.debug("Skipping class scan for unreadable module %s", source)
        return set()
    return extract_classes_from_content(content)


__all__ = [
    "extract_classes_from_content",
    "extract_tree_classes",
]
