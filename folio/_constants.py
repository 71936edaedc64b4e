"""Common literal values used across folio.

These constants keep file-naming conventions and well-known template names in
one place so the content source, page graph, orchestrator, and tests agree on
them.

Examples
--------
>>> from folio import _constants
>>> _constants.FEED_TEMPLATE
'rss.xml'
>>> _constants.INDEX_MARKER
'index'
"""

INDEX_MARKER = "index"
BRANCH_MARKER = "_index"
CONTENT_EXTENSIONS = frozenset({"md", "markdown", "html"})
FEED_TEMPLATE = "rss.xml"
THEME_PREFIX = "theme/"
INTERNAL_PREFIX = "_internal/"
XML_HEADER = '<?xml version="1.0" encoding="utf-8" standalone="yes" ?>\n'
HOME_PAGE_LIMIT = 9
