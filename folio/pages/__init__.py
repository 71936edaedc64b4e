"""Page model, page collections, and the reference index."""

from .collections import PageCollections, join_path
from .models import Page, PageKind, Resource, sort_pages
from .refindex import AMBIGUOUS, Ambiguity, LazyIndex, ReferenceIndex
from .resources import ResourceCache

__all__ = [
    "AMBIGUOUS",
    "Ambiguity",
    "LazyIndex",
    "Page",
    "PageCollections",
    "PageKind",
    "ReferenceIndex",
    "Resource",
    "ResourceCache",
    "join_path",
    "sort_pages",
]
