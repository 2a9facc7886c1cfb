from pathlib import Path

import pytest

from backend.arriendos.rate_limiter import RateLimiter
from backend.py_models.location import LocationInfo
from backend.py_models.source import RateLimitConfig

FIXTURES = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


@pytest.fixture
def fast_limiter():
    """A limiter that never waits, for adapter tests."""
    cfg = RateLimitConfig(requests_per_minute=1000, delay_between_requests=0, max_concurrent_requests=10)
    return RateLimiter(cfg, source_id="test")


@pytest.fixture
def bogota_usaquen():
    return LocationInfo(city="bogotá", city_code="11001", neighborhood="usaquén", confidence=1.0)


@pytest.fixture
def fixture_html():
    return load_fixture
