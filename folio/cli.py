"""Cyclopts CLI entrypoint for building folio sites.

The ``folio`` console script builds a site from its ``config.yaml`` and can
print the layout cascade tried for a given kind of page, which helps when a
build fails with a missing template.

Examples
--------
Build the site described by ``config.yaml`` in the current directory:

>>> from folio.cli import main
>>> main()  # doctest: +SKIP

Show the templates tried for a page in the ``post`` section:

>>> from folio.cli import app
>>> app.run(["layouts", "page", "--type", "post"])  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .config import load_site_config
from .diagnostics import unwrap_file_error
from .errors import FolioError
from .layouts import HTML_FORMAT, RSS_FORMAT, LayoutDescriptor, LayoutHandler
from .site import Site

DEFAULT_CONFIG = Path("config.yaml")

app = App(name="folio", config=cyclopts.config.Env("FOLIO_", command=False))  # type: ignore[unknown-argument]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _configure_logging(verbose: bool) -> None:  # noqa: FBT001
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command(help="Build the site into its publish directory.")
def build(
    *,
    config: typ.Annotated[
        Path, Parameter(help="Path to site config", env_var="FOLIO_CONFIG")
    ] = DEFAULT_CONFIG,
    drafts: typ.Annotated[
        bool, Parameter(help="Include pages marked as drafts")
    ] = False,
    output_dir: typ.Annotated[
        Path | None, Parameter(help="Override the publish directory")
    ] = None,
    base_url: typ.Annotated[
        str | None, Parameter(help="Override the configured base URL")
    ] = None,
    verbose: typ.Annotated[bool, Parameter(help="Log debug output")] = False,
) -> int:
    """Build the site described by ``config``.

    Parameters
    ----------
    config : Path, optional
        Path to the ``config.yaml`` file (overridable via ``FOLIO_CONFIG``).
    drafts : bool, optional
        Render draft pages as well.
    output_dir : Path or None, optional
        Publish directory to use instead of the configured one.
    base_url : str or None, optional
        Base URL to use instead of the configured one.
    verbose : bool, optional
        Enable debug logging.

    Returns
    -------
    int
        ``0`` on success, ``1`` when the build fails.
    """
    _configure_logging(verbose)
    site_config = load_site_config(config)
    if drafts:
        site_config.build_drafts = True
    if output_dir is not None:
        site_config.publish_dir = output_dir
    if base_url:
        site_config.base_url = base_url if base_url.endswith("/") else base_url + "/"

    site = Site(site_config)
    try:
        stats = site.build()
    except FolioError as exc:
        print(f"error: {exc}")
        return 1
    except Exception as exc:
        file_error = unwrap_file_error(exc)
        if file_error is None:
            raise
        print(f"error: {file_error}")
        print(file_error.snippet())
        return 1

    print(
        f"{stats.pages} pages, {stats.index_pages} list pages, "
        f"{stats.resources} resources"
    )
    print(site.timer.summary())
    print(f"wrote {stats.artifacts} files to {_format_path(site_config.publish_dir)}")
    return 0


@app.command(help="Print the template cascade for a kind of page.")
def layouts(
    kind: typ.Annotated[str, Parameter(help="home, section, taxonomy, taxonomyTerm, or page")],
    *,
    type_: typ.Annotated[str, Parameter(name="--type", help="Content type path")] = "",
    section: typ.Annotated[str, Parameter(help="Section name")] = "",
    layout: typ.Annotated[str, Parameter(help="Explicit layout name")] = "",
    theme: typ.Annotated[bool, Parameter(help="Include theme candidates")] = False,
    rss: typ.Annotated[bool, Parameter(help="Use the RSS output format")] = False,
) -> None:
    """Print each candidate template name, most specific first."""
    handler = LayoutHandler(has_theme=theme)
    descriptor = LayoutDescriptor(
        type=type_ or section, section=section, kind=kind, layout=layout
    )
    for name in handler.for_(descriptor, "", RSS_FORMAT if rss else HTML_FORMAT):
        print(name)


def main() -> None:
    """Invoke the Cyclopts application that powers the ``folio`` command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    raise SystemExit(app())


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
