"""Load and validate site configuration YAML for folio builds.

This subpackage parses the project's ``config.yaml``, resolves content,
layout, theme and publish directories against the config file location, and
produces a :class:`SiteConfig` that the build orchestrator consumes. The
primary entry point is :func:`load_site_config`.

Examples
--------
>>> from pathlib import Path
>>> from folio.config import load_site_config
>>> site = load_site_config(Path("config.yaml"))  # doctest: +SKIP
>>> site.base_url  # doctest: +SKIP
'https://example.org/'
"""

from .helpers import lower_keys
from .loader import build_site_config, load_site_config
from .models import LanguageConfig, SiteConfig, SiteConfigError

__all__ = [
    "LanguageConfig",
    "SiteConfig",
    "SiteConfigError",
    "build_site_config",
    "load_site_config",
    "lower_keys",
]
