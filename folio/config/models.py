"""Typed dataclasses describing folio site configuration structures."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

DEFAULT_TAXONOMIES: dict[str, str] = {"tag": "tags", "category": "categories"}


class SiteConfigError(ValueError):
    """Raised when the site configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class LanguageConfig:
    """Per-language settings layered over the site defaults."""

    lang: str
    title: str | None = None
    weight: int = 0
    params: dict[str, typ.Any] = dc.field(default_factory=dict)


@dc.dataclass(slots=True)
class SiteConfig:
    """A fully resolved site definition sourced from YAML config."""

    root: Path = Path()
    base_url: str = "/"
    title: str = ""
    content_dir: Path = Path("content")
    layout_dir: Path = Path("layouts")
    publish_dir: Path = Path("public")
    themes_dir: Path = Path("themes")
    theme: str | None = None
    build_drafts: bool = False
    ugly_urls: bool = False
    pygments_style: str = "monokai"
    taxonomies: dict[str, str] = dc.field(
        default_factory=lambda: dict(DEFAULT_TAXONOMIES)
    )
    params: dict[str, typ.Any] = dc.field(default_factory=dict)
    default_language: str = "en"
    languages: dict[str, LanguageConfig] = dc.field(default_factory=dict)

    @property
    def has_theme(self) -> bool:
        """Return ``True`` when a theme is configured."""
        return bool(self.theme)

    @property
    def theme_layout_dir(self) -> Path | None:
        """Return the theme's layout directory, or ``None`` without a theme."""
        if not self.theme:
            return None
        return self.themes_dir / self.theme / "layouts"

    def language_codes(self) -> list[str]:
        """Return configured language codes, default language first when unweighted."""
        if not self.languages:
            return [self.default_language]
        return [
            lang.lang
            for lang in sorted(
                self.languages.values(),
                key=lambda lang: (
                    lang.weight == 0,
                    lang.weight,
                    lang.lang != self.default_language,
                    lang.lang,
                ),
            )
        ]

    def language(self, code: str) -> LanguageConfig:
        """Return the configuration for ``code``, synthesising a bare entry."""
        return self.languages.get(code) or LanguageConfig(lang=code)


__all__ = ["DEFAULT_TAXONOMIES", "LanguageConfig", "SiteConfig", "SiteConfigError"]
