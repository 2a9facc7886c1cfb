import asyncio
import logging
import time
from functools import partial
from pathlib import Path
from types import MappingProxyType
from typing import Awaitable, Callable, List, Mapping, Optional, Tuple

import httpx

from backend.arriendos import browser
from backend.arriendos.client import fetch_html, new_client
from backend.arriendos.errors import SourceExtractionFailure
from backend.arriendos.location import build_scraper_url
from backend.arriendos.parsing import build_property, mine_anchors, mine_payload, parse_cards
from backend.arriendos.rate_limiter import RateLimiter
from backend.arriendos.settings import MAX_PAGES_PER_SOURCE, SCRAPER_DEBUG, SCRAPER_USE_BROWSER
from backend.arriendos.sources import SOURCES, get_profile
from backend.py_models.location import LocationInfo
from backend.py_models.property import Property
from backend.py_models.search import SearchCriteria
from backend.py_models.source import SourceProfile

log = logging.getLogger("arriendos.adapter")

FetchFn = Callable[[str], Awaitable[str]]
RenderFn = Callable[[str, SourceProfile, Optional[asyncio.Event]], Awaitable[str]]


def _dump_html(source_id: str, page: int, tier: str, html: str) -> None:
    path = Path("/tmp") / f"arriendos_{source_id}_p{page}_{tier}.html"
    try:
        path.write_text(html, encoding="utf-8")
        log.debug("[%s] dumped %s HTML to %s", source_id, tier, path)
    except OSError as e:
        log.debug("[%s] could not dump HTML: %s", source_id, e)


class SourceAdapter:
    """
    One site's scrape contract, driven entirely by its SourceProfile.

    For each page: take a rate slot, build the URL, then
      A. fetch over HTTP and parse listing cards
      B. if A found nothing, render in a headless browser and parse cards again
      C. if still nothing, mine embedded JSON payloads, then detail anchors
    A page with no records ends pagination. An exception on a page ends
    pagination too, but pages already collected are returned.

    `fetch` and `render` default to httpx and Playwright; tests pass fakes.
    """

    def __init__(
        self,
        profile: SourceProfile,
        rate_limiter: Optional[RateLimiter] = None,
        fetch: Optional[FetchFn] = None,
        render: Optional[RenderFn] = None,
        use_browser: Optional[bool] = None,
    ):
        self.profile = profile
        self.rate_limiter = rate_limiter or RateLimiter(profile.rate_limit, source_id=profile.id)
        self._fetch = fetch
        self._render = render or browser.render
        if use_browser is None:
            use_browser = SCRAPER_USE_BROWSER and profile.use_browser
        self.use_browser = use_browser

    @property
    def source_id(self) -> str:
        return self.profile.id

    def __repr__(self) -> str:
        return f"SourceAdapter({self.profile.id!r})"

    # --- extraction tiers -----------------------------------------------------

    def extract_structured(self, html: str) -> List[dict]:
        return parse_cards(html, self.profile)

    def extract_heuristic(self, html: str) -> List[dict]:
        # embedded payloads carry real fields; anchors are the last resort
        rows = mine_payload(html, self.profile)
        if rows:
            return rows
        return mine_anchors(html, self.profile)

    def to_properties(self, rows: List[dict], location: Optional[LocationInfo]) -> List[Property]:
        out: List[Property] = []
        for raw in rows:
            try:
                out.append(build_property(raw, self.profile, location))
            except Exception as e:
                log.debug("[%s] dropped raw listing: %s", self.profile.id, e)
        return out

    async def scrape_page(
        self,
        url: str,
        fetch: FetchFn,
        page: int = 1,
        location: Optional[LocationInfo] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Tuple[List[Property], str]:
        """Run the tiers against one results URL. Returns (properties, tier used)."""
        pid = self.profile.id
        fetched: Optional[str] = None
        rendered: Optional[str] = None

        try:
            fetched = await fetch(url)
        except httpx.HTTPError as e:
            log.info("[%s] fetch failed for %s: %s", pid, url, e)
        if fetched:
            if SCRAPER_DEBUG:
                _dump_html(pid, page, "fetch", fetched)
            rows = self.extract_structured(fetched)
            if rows:
                return self.to_properties(rows, location), "A"

        if self.use_browser and not (cancel and cancel.is_set()):
            try:
                rendered = await self._render(url, self.profile, cancel)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.info("[%s] render failed for %s: %s", pid, url, e)
            if rendered:
                if SCRAPER_DEBUG:
                    _dump_html(pid, page, "render", rendered)
                rows = self.extract_structured(rendered)
                if rows:
                    return self.to_properties(rows, location), "B"

        if not (rendered or fetched):
            raise SourceExtractionFailure(pid, f"no HTML for {url}")
        for html in (rendered, fetched):
            rows = self.extract_heuristic(html) if html else []
            if rows:
                return self.to_properties(rows, location), "C"
        return [], "C"

    # --- page loop ------------------------------------------------------------

    async def scrape(
        self,
        criteria: SearchCriteria,
        max_pages: int = MAX_PAGES_PER_SOURCE,
        location: Optional[LocationInfo] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> List[Property]:
        if self._fetch is not None:
            return await self._scrape_pages(criteria, max_pages, location, cancel, self._fetch)
        async with new_client() as client:
            return await self._scrape_pages(criteria, max_pages, location, cancel, partial(fetch_html, client=client))

    async def _scrape_pages(
        self,
        criteria: SearchCriteria,
        max_pages: int,
        location: Optional[LocationInfo],
        cancel: Optional[asyncio.Event],
        fetch: FetchFn,
    ) -> List[Property]:
        pid = self.profile.id
        collected: List[Property] = []
        started = time.perf_counter()

        for page in range(1, max(1, max_pages) + 1):
            if cancel is not None and cancel.is_set():
                log.info("[%s] cancelled before page %d", pid, page)
                break
            await self.rate_limiter.acquire()
            url = build_scraper_url(self.profile, criteria, location, page)
            try:
                props, tier = await self.scrape_page(url, fetch, page, location, cancel)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.warning("[%s] page %d failed (%s); keeping %d listings", pid, page, e, len(collected))
                break
            log.info("[%s] page %d: %d listings (tier %s) %s", pid, page, len(props), tier, url)
            if not props:
                break
            collected.extend(props)

        log.info("[%s] done: %d listings in %.1fs", pid, len(collected), time.perf_counter() - started)
        return collected


# Static registry: every known source maps to a SourceAdapter bound to its profile.
ADAPTER_FACTORIES: Mapping[str, Callable[..., SourceAdapter]] = MappingProxyType(
    {sid: partial(SourceAdapter, profile) for sid, profile in SOURCES.items()}
)


def create_adapter(source_id: str, **kwargs) -> Optional[SourceAdapter]:
    """Build the adapter for a source id, or None (logged) when the id is unknown."""
    profile = get_profile(source_id)
    factory = ADAPTER_FACTORIES.get(profile.id) if profile else None
    if factory is None:
        log.warning("Unknown source %r, skipping", source_id)
        return None
    return factory(**kwargs)
