"""Drive a site build through its ordered phases.

:class:`Site` owns one build. Phases run strictly in :class:`BuildPhase`
order; each completes before the next starts and is timed and logged through
:class:`~folio.timing.PhaseTimer`:

``initialize`` discovers content and template files, ``prepare_templates``
parses and normalises every template, ``create_pages`` materialises one page
per content file and language, ``setup_prev_next`` links neighbours,
``build_site_meta`` gathers taxonomies, sections and the reference index,
``process_shortcodes`` and ``absolute_urls`` post-process content, the four
render phases select layouts and execute templates, and ``write`` hands the
artifacts to the publish sink.

Typical usage:

>>> from pathlib import Path
>>> from folio.config import load_site_config
>>> site = Site(load_site_config(Path("config.yaml")))  # doctest: +SKIP
>>> stats = site.build()  # doctest: +SKIP
"""

from __future__ import annotations

import contextlib
import dataclasses as dc
import enum
import logging
import posixpath
import re
import typing as typ
from collections import defaultdict
from urllib.parse import urlsplit

from folio._constants import FEED_TEMPLATE, HOME_PAGE_LIMIT, THEME_PREFIX, XML_HEADER
from folio.config.helpers import _parse_timestamp
from folio.content.frontmatter import parse_front_matter
from folio.content.links import ContentLinkExtension
from folio.content.renderer import MarkdownRenderer
from folio.content.source import FilesystemContentSource
from folio.errors import BuildPhaseError, NoContentFoundError, TemplateMissingError
from folio.layouts import HTML_FORMAT, RSS_FORMAT, LayoutHandler
from folio.pages import Page, PageCollections, PageKind, Resource, sort_pages
from folio.publish import FilesystemSink
from folio.shortcodes import ShortcodeExpander
from folio.timing import PhaseTimer
from folio.tpl.context import PageContext, SiteContext, SiteInfo, template_context
from folio.tpl.funcs import TemplateFuncs
from folio.tpl.registry import FilesystemTemplateSource, TemplateRegistry

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from folio.config import SiteConfig
    from folio.content.source import ContentSource, SourceFile
    from folio.publish import PublishSink
    from folio.tpl.registry import TemplateSource

logger = logging.getLogger(__name__)

ROOT_RELATIVE_ATTR = re.compile(r"""( (?:src|href)=["'])/(?!/)""")


class BuildPhase(enum.IntEnum):
    """Build phases in execution order."""

    NEW = 0
    INITIALIZE = 1
    TEMPLATE_PREPARE = 2
    PAGE_MATERIALIZE = 3
    LINK_PAGES = 4
    BUILD_METADATA = 5
    SHORTCODE_EXPAND = 6
    ABSOLUTE_URL_REWRITE = 7
    RENDER_INDEXES = 8
    RENDER_LISTS = 9
    RENDER_PAGES = 10
    RENDER_HOME = 11
    WRITE = 12


@dc.dataclass(slots=True)
class BuildStats:
    """Counts reported at the end of a build."""

    pages: int = 0
    index_pages: int = 0
    artifacts: int = 0
    resources: int = 0
    times: dict[str, float] = dc.field(default_factory=dict)


def _join(*parts: str) -> str:
    return "/".join(part.strip("/") for part in parts if part.strip("/"))


def _terms(value: typ.Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list | tuple):
        return [str(item) for item in value if str(item).strip()]
    return [str(value)]


def _term_title(page: Page, plural: str, key: str) -> str:
    for term in _terms(page.params.get(plural)):
        if TemplateFuncs.urlize(term) == key:
            return term
    return key


def _feed_path(out_file: str) -> str:
    if out_file.endswith(".html"):
        return out_file.removesuffix(".html") + ".xml"
    return _join(out_file, "index.xml")


class Site:
    """One build of a site.

    Parameters
    ----------
    config : SiteConfig
        Resolved site configuration.
    content_source : ContentSource, optional
        Supplies content files; defaults to the configured content directory.
    template_source : TemplateSource, optional
        Supplies templates; defaults to the layout and theme directories.
    sink : PublishSink, optional
        Receives rendered output; defaults to the publish directory.
    """

    def __init__(
        self,
        config: SiteConfig,
        *,
        content_source: ContentSource | None = None,
        template_source: TemplateSource | None = None,
        sink: PublishSink | None = None,
    ) -> None:
        self.config = config
        self.languages = config.language_codes()
        self.content_source = content_source or FilesystemContentSource(
            config.content_dir,
            languages=self.languages,
            default_language=config.default_language,
        )
        self.template_source = template_source or FilesystemTemplateSource(
            config.layout_dir, config.theme_layout_dir
        )
        self.sink = sink or FilesystemSink(config.publish_dir)
        self.base_path = urlsplit(config.base_url).path.rstrip("/")

        self.phase = BuildPhase.NEW
        self.timer = PhaseTimer()
        self.layouts = LayoutHandler(has_theme=config.has_theme)
        self.renderer = MarkdownRenderer(config.pygments_style)
        self.collections = PageCollections(language=config.default_language)
        self.templates = TemplateRegistry()
        self.funcs = TemplateFuncs(
            config.base_url, self.collections, self.renderer, self.page_context
        )
        self.funcs.install(self.templates.env)
        self.shortcodes = ShortcodeExpander(
            self.templates, self.collections, self.page_context
        )

        self.files: list[SourceFile] = []
        self.template_files: list[tuple[str, str]] = []
        self.taxonomies: dict[str, dict[str, dict[str, list[Page]]]] = {}
        self.sections: dict[str, dict[str, list[Page]]] = {}
        self.site_contexts: dict[str, SiteContext] = {}
        self.artifacts: dict[str, bytes] = {}

    # -- orchestration -------------------------------------------------

    @contextlib.contextmanager
    def _phase(self, phase: BuildPhase) -> cabc.Iterator[None]:
        if phase <= self.phase:
            msg = f"cannot enter {phase.name} after {self.phase.name}"
            raise BuildPhaseError(msg)
        with self.timer.start(phase.name.lower()):
            yield
        self.phase = phase

    def build(self) -> BuildStats:
        """Run every phase and return the build statistics."""
        self.process()
        self.render()
        self.write()
        return self.stats()

    def process(self) -> None:
        """Run the phases that read input and assemble the page graph."""
        self.initialize()
        self.prepare_templates()
        self.create_pages()
        self.setup_prev_next()
        self.build_site_meta()

    def render(self) -> None:
        """Run the post-processing and rendering phases."""
        self.process_shortcodes()
        self.absolute_urls()
        self.render_indexes()
        self.render_lists()
        self.render_pages()
        self.render_home()

    def page_context(self, page: Page) -> PageContext:
        """Wrap ``page`` with its language's site view for templates."""
        return PageContext(page, self.site_contexts[page.lang])

    # -- input phases --------------------------------------------------

    def initialize(self) -> None:
        """Discover content and template files."""
        with self._phase(BuildPhase.INITIALIZE):
            self.files = self.content_source.files()
            self.template_files = self.template_source.templates()
            logger.info(
                "found %d content files and %d templates",
                len(self.files),
                len(self.template_files),
            )

    def prepare_templates(self) -> None:
        """Parse every template, normalise parameter lookups, and compile."""
        with self._phase(BuildPhase.TEMPLATE_PREPARE):
            for name, text in self.template_files:
                self.templates.add(name, text)
            self.templates.prepare()

    def create_pages(self) -> None:
        """Materialise pages from content files and attach bundle resources."""
        with self._phase(BuildPhase.PAGE_MATERIALIZE):
            for source in self.files:
                if not source.is_content:
                    continue
                page = self._new_page(source)
                if page.draft and not self.config.build_drafts:
                    logger.debug("skipping draft %s", page.ref_name)
                    continue
                self._set_out_file(page)
                self.collections.add_page(page)
            self._attach_resources()
            self.collections.sort()
            self.collections.refresh_page_caches()

    def _new_page(self, source: SourceFile) -> Page:
        meta, body = parse_front_matter(source.text(), source.filename or source.rel_path)
        kind = PageKind.PAGE
        if source.is_branch_index:
            kind = PageKind.SECTION if source.sections else PageKind.HOME
        return Page(
            kind=kind,
            lang=source.lang,
            source=source,
            sections=source.sections,
            title=str(meta.get("title") or ""),
            date=_parse_timestamp(meta.get("date")),
            draft=bool(meta.get("draft", False)),
            headless=source.is_leaf_index and bool(meta.get("headless", False)),
            weight=int(meta.get("weight") or 0),
            slug=str(meta.get("slug") or ""),
            url=str(meta.get("url") or ""),
            layout=str(meta.get("layout") or ""),
            content_type=str(meta.get("type") or ""),
            description=str(meta.get("description") or ""),
            params=meta,
            raw_content=body,
        )

    def _language_dir(self, lang: str) -> str:
        return "" if lang == self.config.default_language else lang

    def _set_out_file(self, page: Page) -> None:
        """Assign the output path and the permalinks derived from it."""
        prefix = self._language_dir(page.lang)
        ugly = self.config.ugly_urls
        match page.kind:
            case PageKind.HOME:
                out_file = _join(prefix, "index.html")
            case PageKind.SECTION | PageKind.TAXONOMY_TERM:
                out_file = _join(prefix, *page.sections, "index.html")
            case PageKind.TAXONOMY:
                plural, term = page.sections
                if ugly:
                    out_file = _join(prefix, plural, f"{term}.html")
                else:
                    out_file = _join(prefix, plural, term, "index.html")
            case _:
                out_file = self._regular_out_file(page, prefix, ugly=ugly)
        page.out_file = out_file
        url_path = out_file.removesuffix("index.html")
        page.rel_permalink = f"{self.base_path}/{url_path}"
        page.permalink = self.config.base_url + url_path
        page.language_prefix = self.base_path + (f"/{prefix}" if prefix else "")
        if page.kind.is_index:
            page.rss_link = self.config.base_url + _feed_path(out_file)

    def _regular_out_file(self, page: Page, prefix: str, *, ugly: bool) -> str:
        source = typ.cast("SourceFile", page.source)
        if page.url.strip("/"):
            path = page.url.strip("/")
            if page.url.endswith("/") or not posixpath.splitext(path)[1]:
                path = _join(path, "index.html")
            return _join(prefix, path)
        if source.is_leaf_index:
            return _join(prefix, source.dir, "index.html")
        base = page.slug or source.translation_base_name
        if ugly:
            return _join(prefix, source.dir, f"{base}.html")
        return _join(prefix, source.dir, base, "index.html")

    def _attach_resources(self) -> None:
        bundles: dict[str, list[Page]] = defaultdict(list)
        for page in self.collections.raw_all_pages:
            if page.source is not None and page.source.is_leaf_index and page.source.dir:
                bundles[page.source.dir].append(page)
        for source in self.files:
            if source.is_content:
                continue
            directory = source.dir
            while directory and directory not in bundles:
                directory = posixpath.dirname(directory)
            if not directory:
                logger.debug("%s is not part of a page bundle", source.rel_path)
                continue
            name = posixpath.relpath(source.rel_path, directory)
            for owner in bundles[directory]:
                out_file = _join(posixpath.dirname(owner.out_file), name)
                owner.resources.append(
                    Resource(
                        name=name,
                        rel_permalink=f"{self.base_path}/{out_file}",
                        source=source,
                        out_file=out_file,
                    )
                )

    def setup_prev_next(self) -> None:
        """Link each regular page to its neighbours in sorted order."""
        with self._phase(BuildPhase.LINK_PAGES):
            for lang in self.languages:
                self.collections.activate_language(lang)
                pages = self.collections.regular_pages
                for position, page in enumerate(pages):
                    page.prev = pages[position - 1] if position > 0 else None
                    page.next = pages[position + 1] if position < len(pages) - 1 else None

    def build_site_meta(self) -> None:
        """Group pages into taxonomies and sections and build the index.

        Raises
        ------
        NoContentFoundError
            If no pages were materialised.
        """
        with self._phase(BuildPhase.BUILD_METADATA):
            if not self.collections.raw_all_pages:
                raise NoContentFoundError(str(self.config.content_dir))
            for lang in self.languages:
                self.collections.activate_language(lang)
                regular = list(self.collections.regular_pages)
                self.taxonomies[lang] = self._assemble_taxonomies(regular)
                self.sections[lang] = self._assemble_sections(regular)
                for page in self._synthesize_index_pages(lang):
                    self._set_out_file(page)
                    self.collections.add_page(page)
            self.collections.sort()
            for lang in self.languages:
                self.collections.activate_language(lang)
                self._populate_index_pages()
                self.site_contexts[lang] = SiteContext(self._site_info(lang))
                index = self.collections.page_index
                logger.debug("reference index for %s holds %d keys", lang, len(index))
            self.collections.activate_language(self.config.default_language)

    def _assemble_taxonomies(self, regular: list[Page]) -> dict[str, dict[str, list[Page]]]:
        taxonomies: dict[str, dict[str, list[Page]]] = {}
        for plural in self.config.taxonomies.values():
            grouped: dict[str, list[Page]] = defaultdict(list)
            for page in regular:
                for term in _terms(page.params.get(plural)):
                    grouped[TemplateFuncs.urlize(term)].append(page)
            taxonomies[plural] = {
                term: sort_pages(pages) for term, pages in sorted(grouped.items())
            }
        return taxonomies

    @staticmethod
    def _assemble_sections(regular: list[Page]) -> dict[str, list[Page]]:
        grouped: dict[str, list[Page]] = defaultdict(list)
        for page in regular:
            if page.section:
                grouped[page.section].append(page)
        return {name: sort_pages(pages) for name, pages in sorted(grouped.items())}

    def _synthesize_index_pages(self, lang: str) -> list[Page]:
        """Create list pages that have no backing ``_index`` file."""
        created: list[Page] = []
        title = self.config.language(lang).title or self.config.title
        if self.collections.get_page(PageKind.HOME) is None:
            created.append(Page(kind=PageKind.HOME, lang=lang, title=title))
        for name in self.sections[lang]:
            if self.collections.get_page(PageKind.SECTION, name) is None:
                created.append(
                    Page(
                        kind=PageKind.SECTION,
                        lang=lang,
                        sections=(name,),
                        title=name.replace("-", " ").title(),
                    )
                )
        for singular, plural in self.config.taxonomies.items():
            terms = self.taxonomies[lang][plural]
            for term, pages in terms.items():
                created.append(
                    Page(
                        kind=PageKind.TAXONOMY,
                        lang=lang,
                        sections=(plural, term),
                        title=_term_title(pages[0], plural, term),
                        pages=pages,
                        data={
                            "singular": singular,
                            "plural": plural,
                            "term": term,
                            singular: pages,
                            "Pages": pages,
                        },
                    )
                )
            created.append(
                Page(
                    kind=PageKind.TAXONOMY_TERM,
                    lang=lang,
                    sections=(plural,),
                    title=plural.title(),
                    data={"singular": singular, "plural": plural, "Terms": terms},
                )
            )
        return created

    def _populate_index_pages(self) -> None:
        regular = self.collections.regular_pages
        for page in self.collections.index_pages:
            match page.kind:
                case PageKind.HOME:
                    page.pages = list(regular)
                    page.data["Pages"] = regular[:HOME_PAGE_LIMIT]
                case PageKind.SECTION:
                    depth = len(page.sections)
                    page.pages = [
                        child for child in regular if child.sections[:depth] == page.sections
                    ]
                    page.data["Pages"] = page.pages
            dates = [child.date for child in page.pages if child.date is not None]
            if page.date is None and dates:
                page.date = max(dates)

    def _site_info(self, lang: str) -> SiteInfo:
        regular = list(self.collections.regular_pages)
        dates = [page.date for page in regular if page.date is not None]
        language = self.config.language(lang)
        return SiteInfo(
            title=language.title or self.config.title,
            base_url=self.config.base_url,
            lang=lang,
            params=self.config.params,
            language=language,
            taxonomies=self.taxonomies[lang],
            sections=self.sections[lang],
            pages=list(self.collections.pages),
            regular_pages=regular,
            home=self.collections.get_page(PageKind.HOME),
            last_change=max(dates) if dates else None,
        )

    # -- content phases ------------------------------------------------

    def process_shortcodes(self) -> None:
        """Expand shortcodes and render markdown for every sourced page."""
        with self._phase(BuildPhase.SHORTCODE_EXPAND):
            for lang in self.languages:
                self.collections.activate_language(lang)
                for page in self.collections.raw_all_pages:
                    if page.lang != lang or page.source is None:
                        continue
                    text, placeholders = self.shortcodes.extract(page, page.raw_content)
                    if page.source.ext == "html":
                        html = text
                    else:
                        extension = ContentLinkExtension(page, self.collections)
                        html = self.renderer.render(text, [extension])
                    page.content = self.shortcodes.restore(html, placeholders)

    def absolute_urls(self) -> None:
        """Point root-relative ``src`` and ``href`` attributes at the base URL."""
        with self._phase(BuildPhase.ABSOLUTE_URL_REWRITE):
            base_url = self.config.base_url
            if not urlsplit(base_url).scheme:
                return
            base = base_url.rstrip("/")
            origin = base[: len(base) - len(self.base_path)]
            mounted = self.base_path.lstrip("/") + "/"

            def _absolutize(match: re.Match[str]) -> str:
                # Links that already carry the base path only need the origin.
                if self.base_path and match.string.startswith(mounted, match.end()):
                    return f"{match[1]}{origin}/"
                return f"{match[1]}{base_url}"

            for page in self.collections.raw_all_pages:
                if not page.content:
                    continue
                content = ROOT_RELATIVE_ATTR.sub(_absolutize, page.content)
                page.content = content.replace(base + "//", base + "/")

    # -- render phases -------------------------------------------------

    def render_indexes(self) -> None:
        """Render taxonomy term pages and the taxonomy term lists."""
        with self._phase(BuildPhase.RENDER_INDEXES):
            for lang in self.languages:
                self.collections.activate_language(lang)
                for page in self.collections.find_pages_by_kind(PageKind.TAXONOMY):
                    self._render_unit(page)
                    self._render_feed(page)
                for page in self.collections.find_pages_by_kind(PageKind.TAXONOMY_TERM):
                    self._render_unit(page, required=False)

    def render_lists(self) -> None:
        """Render section list pages."""
        with self._phase(BuildPhase.RENDER_LISTS):
            for lang in self.languages:
                self.collections.activate_language(lang)
                for page in self.collections.find_pages_by_kind(PageKind.SECTION):
                    self._render_unit(page)
                    self._render_feed(page)

    def render_pages(self) -> None:
        """Render every regular page."""
        with self._phase(BuildPhase.RENDER_PAGES):
            for lang in self.languages:
                self.collections.activate_language(lang)
                for page in self.collections.regular_pages:
                    self._render_unit(page)

    def render_home(self) -> None:
        """Render the home page and its feed."""
        with self._phase(BuildPhase.RENDER_HOME):
            for lang in self.languages:
                self.collections.activate_language(lang)
                home = self.collections.get_page(PageKind.HOME)
                if home is not None:
                    self._render_unit(home)
                    self._render_feed(home)

    def _render_unit(self, page: Page, *, required: bool = True) -> None:
        candidates = self.layouts.for_(page.layout_descriptor, "", HTML_FORMAT)
        match = self.templates.first_match(candidates)
        if match is None:
            if required:
                raise TemplateMissingError(page.ref_name, candidates)
            logger.debug("no template for %s, skipping", page.ref_name)
            return
        name, _ = match
        context = template_context(page, self.site_contexts[page.lang])
        html = self.templates.execute(name, context, unit=page.ref_name)
        self._emit(page.out_file, html.encode("utf-8"))

    def _render_feed(self, page: Page) -> None:
        candidates = [FEED_TEMPLATE]
        if self.config.has_theme:
            candidates.append(THEME_PREFIX + FEED_TEMPLATE)
        candidates.extend(
            self.layouts.for_(page.layout_descriptor, "", RSS_FORMAT)
        )
        match = self.templates.first_match(candidates)
        if match is None:
            return
        name, _ = match
        context = template_context(page, self.site_contexts[page.lang])
        xml = self.templates.execute(name, context, unit=page.ref_name)
        self._emit(_feed_path(page.out_file), (XML_HEADER + xml).encode("utf-8"))

    def _emit(self, path: str, payload: bytes) -> None:
        if path in self.artifacts:
            logger.warning("%s is rendered more than once; keeping the last", path)
        self.artifacts[path] = payload

    # -- output ----------------------------------------------------------

    def write(self) -> None:
        """Publish rendered artifacts and bundle resources."""
        with self._phase(BuildPhase.WRITE):
            for path, payload in self.artifacts.items():
                self.sink.write(path, payload)
            cache = self.collections.resource_cache
            for page in self.collections.raw_all_pages:
                for resource in page.resources:
                    key = resource.rel_permalink.removeprefix(page.language_prefix)
                    data = cache.get_or_create(key, lambda res=resource: res.source.data)
                    self.sink.write(resource.out_file, data)

    def stats(self) -> BuildStats:
        """Summarise the build."""
        pages = self.collections.raw_all_pages
        return BuildStats(
            pages=sum(1 for page in pages if page.kind is PageKind.PAGE),
            index_pages=sum(1 for page in pages if page.kind.is_index),
            artifacts=len(self.artifacts),
            resources=sum(len(page.resources) for page in pages),
            times=self.timer.times(),
        )


__all__ = ["BuildPhase", "BuildStats", "Site"]
