"""Exception hierarchy shared by the folio build pipeline."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class FolioError(Exception):
    """Base class for build errors raised by folio."""


class AmbiguousReferenceError(FolioError):
    """Raised when a lookup key matches more than one distinct page."""

    def __init__(self, ref: str) -> None:
        self.ref = ref
        super().__init__(f"page reference {ref!r} is ambiguous")


class UnresolvedReferenceError(FolioError):
    """Raised when no page matches a reference."""

    def __init__(self, ref: str, context_ref: str | None = None) -> None:
        self.ref = ref
        self.context_ref = context_ref
        if context_ref is not None:
            msg = f"failed to resolve page {ref!r} relative to page {context_ref!r}"
        else:
            msg = f"failed to resolve page {ref!r}"
        super().__init__(msg)


class NoContentFoundError(FolioError):
    """Raised when materialization produced zero pages."""

    def __init__(self, content_dir: str) -> None:
        self.content_dir = content_dir
        super().__init__(
            f"Unable to build site metadata, no pages found in directory {content_dir}"
        )


class TemplateMissingError(FolioError):
    """Raised when no layout candidate resolves to a registered template."""

    def __init__(self, unit: str, candidates: cabc.Sequence[str]) -> None:
        self.unit = unit
        self.candidates = list(candidates)
        tried = ", ".join(self.candidates) or "<none>"
        super().__init__(f"no template found for {unit!r}; tried: {tried}")


class RenderExecutionError(FolioError):
    """Raised when a template fails while rendering a content unit."""

    def __init__(self, unit: str, template: str, cause: BaseException) -> None:
        self.unit = unit
        self.template = template
        super().__init__(f"failed to render {unit!r} with {template!r}: {cause}")


class ShortcodeError(FolioError):
    """Raised when shortcode markup in a page cannot be parsed."""


class BuildPhaseError(FolioError):
    """Raised when the orchestrator is asked to move backwards through phases."""


__all__ = [
    "AmbiguousReferenceError",
    "BuildPhaseError",
    "FolioError",
    "NoContentFoundError",
    "RenderExecutionError",
    "ShortcodeError",
    "TemplateMissingError",
    "UnresolvedReferenceError",
]
