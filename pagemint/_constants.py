"""Common literal values used across pagemint.

Marker attribute names and script globals live here so the assembler, the
pagination orchestrator, the client bundler, and tests all agree on the same
spelling. Intended for internal use within the pagemint package.

Examples
--------
>>> from pagemint import _constants
>>> _constants.CLIENT_ATTR
'data-pagemint-client'
>>> _constants.PLACEHOLDER_ID_TEMPLATE.format(id="c1a2b3")
'pagemint-client-c1a2b3'
"""

ATTR_PREFIX = "data-pagemint"

CLIENT_ATTR = f"{ATTR_PREFIX}-client"
MOUNTED_ATTR = f"{ATTR_PREFIX}-mounted"
TOTAL_PAGES_ATTR = f"{ATTR_PREFIX}-total-pages"
PAGE_NUMBER_ATTR = f"{ATTR_PREFIX}-page-number"
PAGE_COUNT_ATTR = f"{ATTR_PREFIX}-page-count"
PAGE_BREAK_ATTR = f"{ATTR_PREFIX}-page-break"
AVOID_BREAK_ATTR = f"{ATTR_PREFIX}-avoid-break"
REPEAT_HEADER_ATTR = f"{ATTR_PREFIX}-repeat-header"
KEEP_ATTR = f"{ATTR_PREFIX}-keep"
HEADER_ATTR = f"{ATTR_PREFIX}-header"
FOOTER_ATTR = f"{ATTR_PREFIX}-footer"
CONTENT_ATTR = f"{ATTR_PREFIX}-content"
PAGE_ATTR = f"{ATTR_PREFIX}-page"

PLACEHOLDER_ID_TEMPLATE = "pagemint-client-{id}"
MODULE_REGISTRY_GLOBAL = "__pagemintModules"
CLIENT_ERRORS_GLOBAL = "__pagemintClientErrors"

PAGED_JS_CDN = "https://unpkg.com/pagedjs/dist/paged.polyfill.js"
DEFAULT_MARGIN = "1in"
