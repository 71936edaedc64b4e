"""Utility helpers shared by the folio configuration loader."""

from __future__ import annotations

import collections.abc as cabc
import datetime as dt
import typing as typ
from pathlib import Path

from .models import LanguageConfig, SiteConfigError


def lower_keys(value: typ.Any) -> typ.Any:
    """Return ``value`` with mapping keys lower-cased, nested mappings included.

    Template parameter lookups are normalised to lower case when templates
    are compiled, so parameter data must be stored the same way. Items of
    lists are left alone; loop variables are never rewritten in templates.
    """
    if isinstance(value, cabc.Mapping):
        return {str(key).lower(): lower_keys(item) for key, item in value.items()}
    return value


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _resolve_dir(root: Path, value: object | None, default: str) -> Path:
    """Resolve a configured directory against the config file's directory."""
    path = Path(str(value)) if value else Path(default)
    if path.is_absolute():
        return path
    return root / path


def _build_taxonomies(payload: object | None) -> dict[str, str] | None:
    """Validate the singular-to-plural taxonomy mapping."""
    if payload is None:
        return None
    if not isinstance(payload, cabc.Mapping):
        msg = "'taxonomies' must map singular names to plural names."
        raise SiteConfigError(msg)
    taxonomies: dict[str, str] = {}
    for singular, plural in payload.items():
        singular_name = _optional_str(singular)
        plural_name = _optional_str(plural)
        if not singular_name or not plural_name:
            msg = f"Taxonomy entry {singular!r}: {plural!r} is incomplete."
            raise SiteConfigError(msg)
        taxonomies[singular_name.lower()] = plural_name.lower()
    return taxonomies


def _build_languages(payload: object | None) -> dict[str, LanguageConfig]:
    """Build language configs from the ``languages`` mapping."""
    if not payload:
        return {}
    if not isinstance(payload, cabc.Mapping):
        msg = "'languages' must be a mapping of language codes."
        raise SiteConfigError(msg)
    languages: dict[str, LanguageConfig] = {}
    for code, entry in payload.items():
        lang = str(code).lower()
        match entry:
            case dict():
                languages[lang] = LanguageConfig(
                    lang=lang,
                    title=_optional_str(entry.get("title")),
                    weight=int(entry.get("weight", 0) or 0),
                    params=lower_keys(entry.get("params") or {}),
                )
            case None:
                languages[lang] = LanguageConfig(lang=lang)
            case _:
                msg = f"Language {code!r} must be a mapping."
                raise SiteConfigError(msg)
    return languages


def _parse_timestamp(value: dt.datetime | dt.date | str | None) -> dt.datetime | None:
    """Return a timezone-aware UTC datetime parsed from ``value``, or None."""
    match value:
        case dt.datetime():
            parsed = value
        case dt.date():
            parsed = dt.datetime(value.year, value.month, value.day)
        case str() as text:
            sanitized = text.strip()
            if not sanitized:
                return None
            if sanitized.endswith("Z"):
                sanitized = sanitized[:-1] + "+00:00"
            try:
                parsed = dt.datetime.fromisoformat(sanitized)
            except ValueError:
                return None
        case _:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC)


__all__ = [
    "_build_languages",
    "_build_taxonomies",
    "_optional_str",
    "_parse_timestamp",
    "_resolve_dir",
    "lower_keys",
]
