"""
Live smoke tests against the real listing sites. Skipped unless
--run-integration is given; results depend on the sites' current markup.
"""

import pytest

from backend.arriendos.adapter import create_adapter
from backend.arriendos.orchestrator import SearchOrchestrator
from backend.py_models.search import HardRequirements, LocationCriteria, SearchCriteria

pytestmark = pytest.mark.integration

CRITERIA = SearchCriteria(
    hard_requirements=HardRequirements(location=LocationCriteria(city="Bogotá", neighborhoods=["Usaquén"]))
)


@pytest.mark.parametrize("source_id", ["fincaraiz", "metrocuadrado"])
async def test_first_page_has_listings(source_id):
    adapter = create_adapter(source_id, use_browser=False)
    props = await adapter.scrape(CRITERIA, max_pages=1)
    for p in props:
        assert p.source == source_id
        assert p.url and p.url.startswith("http")


async def test_search_returns_a_result():
    orch = SearchOrchestrator(max_pages=1, timeout_ms=60_000)
    result = await orch.search(CRITERIA, limit=10, sources=["fincaraiz", "ciencuadras"])
    assert result.summary.total_found >= result.summary.hard_matches >= result.total
