"""
Tests for location detection, fuzzy search, table lookups and URL building.
"""

import pytest

from backend.arriendos.errors import LocationUnresolved
from backend.arriendos.location import (
    build_scraper_url,
    detect_location,
    extract_location_from_text,
    get_city_by_code,
    get_department_for_city,
    get_neighborhoods_by_city,
    is_wildcard_neighborhood,
    neighborhood_variations,
    real_neighborhoods,
    resolve_search_location,
    smart_location_search,
)
from backend.arriendos.sources import get_profile
from backend.py_models.location import LocationInfo
from backend.py_models.search import HardRequirements, LocationCriteria, SearchCriteria


def _criteria(city=None, neighborhoods=None) -> SearchCriteria:
    return SearchCriteria(
        hard_requirements=HardRequirements(
            location=LocationCriteria(city=city, neighborhoods=neighborhoods or []),
        )
    )


BOGOTA_USAQUEN = LocationInfo(city="bogotá", city_code="11001", neighborhood="usaquén", confidence=1.0)
BOGOTA = LocationInfo(city="bogotá", city_code="11001", confidence=1.0)


class TestDetectLocation:

    def test_exact_city(self):
        info = detect_location("Bogotá")
        assert info.city == "bogotá"
        assert info.city_code == "11001"
        assert info.confidence == 1.0
        assert info.neighborhood is None

    def test_alias_city(self):
        info = detect_location("Curramba")
        assert info.city == "barranquilla"
        assert info.confidence == 0.9

    def test_unknown_place_falls_back(self):
        info = detect_location("xyz-unknown-place")
        assert info.city == "bogotá"
        assert info.confidence <= 0.3

    def test_neighborhood_overrides_guessed_city(self):
        info = detect_location("El Poblado")
        assert info.city == "medellín"
        assert info.neighborhood == "el poblado"
        assert info.confidence >= 0.8

    def test_neighborhood_with_city(self):
        info = detect_location("Chapinero, Bogotá")
        assert info.city == "bogotá"
        assert info.neighborhood == "chapinero"
        assert info.confidence == 1.0


class TestSmartSearch:

    def test_neighborhood_best_match(self):
        result = smart_location_search("Usaquén")
        assert result.best_match is not None
        assert result.best_match.type == "neighborhood"
        assert result.best_match.name == "usaquén"
        assert result.best_match.confidence == 1.0

    def test_city_best_match(self):
        result = smart_location_search("medellin")
        assert result.best_match.type == "city"
        assert result.best_match.name == "medellín"

    def test_nothing_found(self):
        result = smart_location_search("Narnia")
        assert result.best_match is None
        assert result.cities == []

    def test_empty_text(self):
        assert smart_location_search("").best_match is None


class TestResolveSearchLocation:

    def test_neighborhood_first(self):
        info = resolve_search_location(_criteria("Bogotá", ["Usaquén"]))
        assert info.city == "bogotá"
        assert info.neighborhood == "usaquén"

    def test_wildcards_fall_back_to_city(self):
        info = resolve_search_location(_criteria("Medellín", ["*"]))
        assert info.city == "medellín"
        assert info.neighborhood is None

    def test_unresolvable_location_raises(self):
        with pytest.raises(LocationUnresolved) as exc:
            resolve_search_location(_criteria("Narnia"))
        assert exc.value.text == "Narnia"


class TestTables:

    def test_lookups(self):
        assert get_city_by_code("05001") == "medellín"
        assert get_city_by_code("99999") is None
        assert get_department_for_city("Cali") == "Valle del Cauca"
        assert get_department_for_city("Atlantis") == "Colombia"
        assert "usaquén" in get_neighborhoods_by_city("bogota")
        assert get_neighborhoods_by_city("Atlantis") == []

    def test_wildcards(self):
        for token in ("*", ".", "?", "", "  ", "***", "#!"):
            assert is_wildcard_neighborhood(token)
        assert not is_wildcard_neighborhood("Usaquén")
        assert real_neighborhoods(["*", "Chicó", "."]) == ["Chicó"]

    def test_variations(self):
        variations = neighborhood_variations("Usaquén")
        assert variations[0] == "usaquen"
        assert "cedritos" in variations
        assert "santa barbara" in variations
        assert neighborhood_variations("Niza") == ["niza"]

    @pytest.mark.parametrize("text,expected", [
        ("Apartamento en Chicó, Bogotá", {"city": "bogotá", "neighborhood": "Chicó"}),
        ("Laureles, Medellín", {"city": "medellín", "neighborhood": "Laureles"}),
    ])
    def test_extract_location_from_text(self, text, expected):
        assert extract_location_from_text(text) == expected

    def test_extract_location_without_city(self):
        assert extract_location_from_text("Apartamento amplio") is None


class TestBuildScraperUrl:

    def test_city_and_neighborhood(self):
        url = build_scraper_url(get_profile("fincaraiz"), _criteria(), BOGOTA_USAQUEN)
        assert url == "https://www.fincaraiz.com.co/arriendo/apartamento/bogota/usaquen"

    def test_city_only(self):
        url = build_scraper_url(get_profile("fincaraiz"), _criteria(), BOGOTA)
        assert url == "https://www.fincaraiz.com.co/arriendo/apartamento/bogota"

    def test_query_page_param(self):
        url = build_scraper_url(get_profile("fincaraiz"), _criteria(), BOGOTA_USAQUEN, page=2)
        assert url == "https://www.fincaraiz.com.co/arriendo/apartamento/bogota/usaquen?page=2"

    def test_site_specific_slugs_and_offset_paging(self):
        medellin = LocationInfo(city="medellín", city_code="05001", confidence=1.0)
        url = build_scraper_url(get_profile("mercadolibre"), _criteria(), medellin, page=3)
        assert url == "https://inmuebles.mercadolibre.com.co/apartamentos/arriendo/antioquia/medellin_Desde_101"

    def test_trovit_neighborhood_replaces_url(self):
        url = build_scraper_url(get_profile("trovit"), _criteria(), BOGOTA_USAQUEN)
        assert url == "https://casas.trovit.com.co/arriendo-apartamento-usaquen-bogota"

    def test_neighborhood_without_slug_is_ignored(self):
        niza = LocationInfo(city="bogotá", city_code="11001", neighborhood="niza", confidence=1.0)
        url = build_scraper_url(get_profile("fincaraiz"), _criteria(), niza)
        assert url == "https://www.fincaraiz.com.co/arriendo/apartamento/bogota"

    def test_location_detected_from_criteria(self):
        url = build_scraper_url(get_profile("fincaraiz"), _criteria("Bogotá", ["Chapinero"]))
        assert url.endswith("/bogota/chapinero")
