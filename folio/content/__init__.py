"""Content discovery, front matter, and markdown rendering."""

from .frontmatter import FrontMatterFormat, parse_front_matter, split_front_matter
from .links import ContentLinkExtension
from .renderer import MarkdownRenderer
from .source import (
    ContentSource,
    FilesystemContentSource,
    MemoryContentSource,
    SourceFile,
    detect_language,
)

__all__ = [
    "ContentLinkExtension",
    "ContentSource",
    "FilesystemContentSource",
    "FrontMatterFormat",
    "MarkdownRenderer",
    "MemoryContentSource",
    "SourceFile",
    "detect_language",
    "parse_front_matter",
    "split_front_matter",
]
