"""Template registry, parameter normalisation, and template helpers."""

from .context import PageContext, SiteContext, SiteInfo, template_context
from .funcs import TemplateFuncs
from .registry import (
    FilesystemTemplateSource,
    MemoryTemplateSource,
    TemplateRegistry,
    TemplateSource,
)
from .transformers import PARAMS_PATHS, ParamsKeysToLower, apply_template_transformers

__all__ = [
    "PARAMS_PATHS",
    "FilesystemTemplateSource",
    "MemoryTemplateSource",
    "PageContext",
    "ParamsKeysToLower",
    "SiteContext",
    "SiteInfo",
    "TemplateFuncs",
    "TemplateRegistry",
    "TemplateSource",
    "apply_template_transformers",
    "template_context",
]
