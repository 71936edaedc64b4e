"""Unit tests for site configuration loading."""

from __future__ import annotations

import typing as typ
from textwrap import dedent

import pytest

from folio.config import SiteConfigError, build_site_config, load_site_config

if typ.TYPE_CHECKING:
    from pathlib import Path


def test_load_site_config_resolves_directories(tmp_path: Path) -> None:
    """Relative directories resolve against the config file's folder."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        dedent(
            """
            base_url: https://example.org
            title: Example
            theme: plain
            publish_dir: dist
            params:
              Author: Ada
            taxonomies:
              Tag: Tags
            languages:
              en:
                weight: 1
              fr:
                title: Exemple
                weight: 2
                params:
                  Greeting: Bonjour
            """
        ).strip()
        + "\n",
        encoding="utf-8",
    )
    config = load_site_config(config_path)
    assert config.base_url == "https://example.org/"
    assert config.content_dir == tmp_path / "content"
    assert config.publish_dir == tmp_path / "dist"
    assert config.theme_layout_dir == tmp_path / "themes" / "plain" / "layouts"
    assert config.params == {"author": "Ada"}
    assert config.taxonomies == {"tag": "tags"}
    assert config.language_codes() == ["en", "fr"]
    assert config.language("fr").params == {"greeting": "Bonjour"}
    assert config.language("fr").title == "Exemple"


def test_defaults() -> None:
    """An empty mapping yields a single-language site with default taxonomies."""
    config = build_site_config({})
    assert config.base_url == "/"
    assert config.language_codes() == ["en"]
    assert config.taxonomies == {"tag": "tags", "category": "categories"}
    assert not config.has_theme
    assert config.theme_layout_dir is None


def test_missing_config_file(tmp_path: Path) -> None:
    """A missing file is reported as such."""
    with pytest.raises(FileNotFoundError, match="not found"):
        load_site_config(tmp_path / "nope.yaml")


def test_default_language_must_be_configured() -> None:
    """The default language has to be one of the declared languages."""
    with pytest.raises(SiteConfigError, match="Default language"):
        build_site_config({"default_language": "de", "languages": {"en": {}}})


@pytest.mark.parametrize(
    "raw",
    [
        {"params": ["not", "a", "mapping"]},
        {"taxonomies": ["tags"]},
        {"taxonomies": {"tag": ""}},
        {"languages": {"en": "English"}},
    ],
)
def test_invalid_sections_are_rejected(raw: dict[str, typ.Any]) -> None:
    """Malformed sections raise :class:`SiteConfigError`."""
    with pytest.raises(SiteConfigError):
        build_site_config(raw)


def test_top_level_must_be_mapping(tmp_path: Path) -> None:
    """A YAML list at the top level is rejected."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(SiteConfigError, match="mapping"):
        load_site_config(config_path)
