"""
Tests for the generic SourceAdapter: tier fallback, pagination stop rules,
failure isolation, cancellation and the static factory.
"""

import asyncio

import httpx
import pytest

from backend.arriendos.adapter import ADAPTER_FACTORIES, SourceAdapter, create_adapter
from backend.arriendos.sources import DEFAULT_SOURCE_IDS, SOURCES, get_profile
from backend.py_models.search import HardRequirements, LocationCriteria, SearchCriteria

FINCARAIZ = get_profile("fincaraiz")
PAGE_1 = "https://www.fincaraiz.com.co/arriendo/apartamento/bogota/usaquen"
PAGE_2 = PAGE_1 + "?page=2"
PAGE_3 = PAGE_1 + "?page=3"
EMPTY = "<html><body><div id='app'></div></body></html>"

CRITERIA = SearchCriteria(
    hard_requirements=HardRequirements(location=LocationCriteria(city="Bogotá", neighborhoods=["Usaquén"]))
)


class FakeFetch:
    def __init__(self, pages: dict):
        self.pages = pages
        self.calls = []

    async def __call__(self, url: str) -> str:
        self.calls.append(url)
        page = self.pages.get(url, EMPTY)
        if isinstance(page, Exception):
            raise page
        return page


class FakeRender:
    def __init__(self, html: str = EMPTY):
        self.html = html
        self.calls = []

    async def __call__(self, url, profile, cancel=None) -> str:
        self.calls.append(url)
        return self.html


def _adapter(fetch, limiter, render=None, use_browser=False):
    return SourceAdapter(FINCARAIZ, rate_limiter=limiter, fetch=fetch, render=render or FakeRender(), use_browser=use_browser)


class TestTiers:

    async def test_tier_a_cards(self, fixture_html, fast_limiter, bogota_usaquen):
        fetch = FakeFetch({PAGE_1: fixture_html("fincaraiz_cards.html")})
        props = await _adapter(fetch, fast_limiter).scrape(CRITERIA, max_pages=1, location=bogota_usaquen)
        assert len(props) == 2
        assert {p.source for p in props} == {"fincaraiz"}
        assert props[0].total_price == 3_150_000

    async def test_tier_b_render_when_fetch_has_no_cards(self, fixture_html, fast_limiter, bogota_usaquen):
        fetch = FakeFetch({PAGE_1: EMPTY})
        render = FakeRender(fixture_html("fincaraiz_cards.html"))
        adapter = _adapter(fetch, fast_limiter, render=render, use_browser=True)
        props, tier = await adapter.scrape_page(PAGE_1, fetch, location=bogota_usaquen)
        assert tier == "B"
        assert len(props) == 2
        assert render.calls == [PAGE_1]

    async def test_tier_c_payload_when_no_cards(self, fixture_html, fast_limiter, bogota_usaquen):
        fetch = FakeFetch({PAGE_1: fixture_html("next_data.html")})
        adapter = _adapter(fetch, fast_limiter, use_browser=True)
        props, tier = await adapter.scrape_page(PAGE_1, fetch, location=bogota_usaquen)
        assert tier == "C"
        assert [p.price for p in props] == [3_200_000, 4_500_000]

    async def test_http_error_falls_through_to_render(self, fixture_html, fast_limiter):
        fetch = FakeFetch({PAGE_1: httpx.ConnectError("refused")})
        render = FakeRender(fixture_html("fincaraiz_cards.html"))
        adapter = _adapter(fetch, fast_limiter, render=render, use_browser=True)
        props, tier = await adapter.scrape_page(PAGE_1, fetch)
        assert tier == "B"
        assert len(props) == 2

    async def test_browser_disabled_skips_render(self, fast_limiter):
        fetch = FakeFetch({PAGE_1: EMPTY})
        render = FakeRender()
        adapter = _adapter(fetch, fast_limiter, render=render, use_browser=False)
        props, _tier = await adapter.scrape_page(PAGE_1, fetch)
        assert props == []
        assert render.calls == []


class TestPagination:

    async def test_stops_at_first_empty_page(self, fixture_html, fast_limiter, bogota_usaquen):
        cards = fixture_html("fincaraiz_cards.html")
        fetch = FakeFetch({PAGE_1: cards, PAGE_2: EMPTY, PAGE_3: cards})
        props = await _adapter(fetch, fast_limiter).scrape(CRITERIA, max_pages=5, location=bogota_usaquen)
        assert len(props) == 2
        assert fetch.calls == [PAGE_1, PAGE_2]

    async def test_respects_max_pages(self, fixture_html, fast_limiter, bogota_usaquen):
        cards = fixture_html("fincaraiz_cards.html")
        fetch = FakeFetch({PAGE_1: cards, PAGE_2: cards, PAGE_3: cards})
        props = await _adapter(fetch, fast_limiter).scrape(CRITERIA, max_pages=2, location=bogota_usaquen)
        assert len(props) == 4
        assert fetch.calls == [PAGE_1, PAGE_2]

    async def test_page_failure_keeps_collected_pages(self, fixture_html, fast_limiter, bogota_usaquen):
        fetch = FakeFetch({PAGE_1: fixture_html("fincaraiz_cards.html"), PAGE_2: RuntimeError("parser blew up")})
        props = await _adapter(fetch, fast_limiter).scrape(CRITERIA, max_pages=5, location=bogota_usaquen)
        assert len(props) == 2
        assert fetch.calls == [PAGE_1, PAGE_2]

    async def test_cancel_event_stops_before_next_page(self, fixture_html, fast_limiter, bogota_usaquen):
        cancel = asyncio.Event()
        cancel.set()
        fetch = FakeFetch({PAGE_1: fixture_html("fincaraiz_cards.html")})
        props = await _adapter(fetch, fast_limiter).scrape(CRITERIA, max_pages=3, location=bogota_usaquen, cancel=cancel)
        assert props == []
        assert fetch.calls == []

    async def test_every_page_takes_a_rate_slot(self, fixture_html, fast_limiter, bogota_usaquen):
        cards = fixture_html("fincaraiz_cards.html")
        fetch = FakeFetch({PAGE_1: cards, PAGE_2: cards})
        await _adapter(fetch, fast_limiter).scrape(CRITERIA, max_pages=2, location=bogota_usaquen)
        assert fast_limiter.stats()["requests_last_minute"] == 2


class TestFactory:

    def test_registry_covers_every_source(self):
        assert set(ADAPTER_FACTORIES) == set(SOURCES)
        assert set(DEFAULT_SOURCE_IDS) < set(SOURCES)
        assert "arriendo" not in DEFAULT_SOURCE_IDS

    @pytest.mark.parametrize("source_id", ["fincaraiz", "Mercadolibre", " trovit "])
    def test_create_adapter(self, source_id):
        adapter = create_adapter(source_id)
        assert isinstance(adapter, SourceAdapter)
        assert adapter.source_id == source_id.strip().lower()
        assert adapter.rate_limiter.config == adapter.profile.rate_limit

    def test_unknown_source(self):
        assert create_adapter("craigslist") is None

    def test_arriendo_never_renders(self):
        assert create_adapter("arriendo").use_browser is False
