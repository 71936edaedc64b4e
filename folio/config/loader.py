"""Load site configuration YAML into typed dataclasses."""

from __future__ import annotations

import collections.abc as cabc
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from .helpers import (
    _build_languages,
    _build_taxonomies,
    _optional_str,
    _resolve_dir,
    lower_keys,
)
from .models import DEFAULT_TAXONOMIES, SiteConfig, SiteConfigError


def load_site_config(path: Path) -> SiteConfig:
    """Load the YAML configuration describing a folio site.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML configuration file (for example,
        ``config.yaml``). Relative directories inside the file resolve
        against this file's parent directory.

    Returns
    -------
    SiteConfig
        Parsed site configuration with directories, taxonomies, parameters,
        and languages resolved.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    SiteConfigError
        If the top-level structure is not a mapping or a section is invalid.

    Examples
    --------
    >>> from pathlib import Path
    >>> from folio.config import load_site_config
    >>> config = load_site_config(Path("config.yaml"))  # doctest: +SKIP
    >>> config.taxonomies  # doctest: +SKIP
    {'tag': 'tags', 'category': 'categories'}
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise SiteConfigError(msg)
    return build_site_config(loaded, root=path.resolve().parent)


def build_site_config(
    raw: typ.Mapping[str, typ.Any], *, root: Path | None = None
) -> SiteConfig:
    """Build a :class:`SiteConfig` from an already decoded mapping."""
    root = root or Path.cwd()
    taxonomies = _build_taxonomies(raw.get("taxonomies"))
    params = raw.get("params") or {}
    if not isinstance(params, cabc.Mapping):
        msg = "'params' must be a mapping."
        raise SiteConfigError(msg)

    base_url = _optional_str(raw.get("base_url")) or "/"
    if not base_url.endswith("/"):
        base_url += "/"

    default_language = (_optional_str(raw.get("default_language")) or "en").lower()
    languages = _build_languages(raw.get("languages"))
    if languages and default_language not in languages:
        msg = f"Default language {default_language!r} is not among the languages."
        raise SiteConfigError(msg)

    return SiteConfig(
        root=root,
        base_url=base_url,
        title=_optional_str(raw.get("title")) or "",
        content_dir=_resolve_dir(root, raw.get("content_dir"), "content"),
        layout_dir=_resolve_dir(root, raw.get("layout_dir"), "layouts"),
        publish_dir=_resolve_dir(root, raw.get("publish_dir"), "public"),
        themes_dir=_resolve_dir(root, raw.get("themes_dir"), "themes"),
        theme=_optional_str(raw.get("theme")),
        build_drafts=bool(raw.get("build_drafts", False)),
        ugly_urls=bool(raw.get("ugly_urls", False)),
        pygments_style=_optional_str(raw.get("pygments_style")) or "monokai",
        taxonomies=taxonomies if taxonomies is not None else dict(DEFAULT_TAXONOMIES),
        params=lower_keys(params),
        default_language=default_language,
        languages=languages,
    )


__all__ = ["build_site_config", "load_site_config"]
