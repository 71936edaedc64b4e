"""Static site build engine.

folio turns a tree of markdown content and Jinja layouts into a published
site. The build runs in ordered phases (see :mod:`folio.site`): pages are
materialised and indexed for path-like references, layouts are chosen from a
cascade of candidate templates, and parameter lookups in templates are
normalised to the lower-cased keys stored in front matter.

Exports
-------
- ``Site``: one build of a site.
- ``app``: Cyclopts application behind the ``folio`` command.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from folio import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main
from .site import Site

__all__ = ["Site", "app", "main"]
