"""
Tests for deduplication, the hard filter stage and the optional filter stage.
"""

from backend.arriendos.pipeline import (
    apply_hard_filters,
    apply_optional_filters,
    canonical_key,
    deduplicate,
    hard_predicates,
)
from backend.py_models.search import HardRequirements, LocationCriteria, OptionalFilters, PriceRange
from factories import make_property


class TestDeduplicate:

    def test_same_url_keeps_first(self):
        a = make_property(url="https://www.fincaraiz.com.co/inmueble/1", title="Primero en lista")
        b = make_property(url="https://WWW.FINCARAIZ.com.co/inmueble/1#fotos", title="Segundo en lista")
        out = deduplicate([a, b])
        assert out == [a]

    def test_title_and_price_fallback(self):
        a = make_property(url=None, title="Apartamento Cedritos", price=2_000_000)
        b = make_property(url="", title="  apartamento cedritos ", price=2_000_000)
        c = make_property(url=None, title="Apartamento Cedritos", price=2_100_000)
        assert deduplicate([a, b, c]) == [a, c]
        assert canonical_key(a) == "apartamento cedritos|2000000"

    def test_relative_url_uses_fallback(self):
        p = make_property(url="/inmueble/9", title="Casa grande", price=1_000_000)
        assert canonical_key(p) == "casa grande|1000000"

    def test_idempotent(self):
        props = [make_property(), make_property(), make_property()]
        props.append(props[0])
        once = deduplicate(props)
        assert len(once) == 3
        assert deduplicate(once) == once


class TestHardFilters:

    def test_no_bounds_no_predicates(self):
        assert hard_predicates(HardRequirements()) == []

    def test_room_bounds_are_inclusive(self):
        props = [make_property(rooms=r) for r in (2, 3, 4, 5)] + [make_property(rooms=None)]
        out = apply_hard_filters(props, HardRequirements(min_rooms=3, max_rooms=4))
        assert [p.rooms for p in out] == [3, 4]

    def test_missing_bathrooms_and_parking_count_as_zero(self):
        props = [make_property(bathrooms=None, parking=None), make_property(bathrooms=2, parking=1)]
        assert len(apply_hard_filters(props, HardRequirements(max_bathrooms=1))) == 1
        assert len(apply_hard_filters(props, HardRequirements(min_parking=1))) == 1
        assert apply_hard_filters(props, HardRequirements(min_parking=0)) == props

    def test_area_required_when_bounded(self):
        props = [make_property(area=None), make_property(area=70), make_property(area=110), make_property(area=111)]
        out = apply_hard_filters(props, HardRequirements(min_area=70, max_area=110))
        assert [p.area for p in out] == [70, 110]

    def test_price_uses_total(self):
        cheap = make_property(price=3_000_000, admin_fee=400_000)
        pricey = make_property(price=3_300_000, admin_fee=400_000)
        out = apply_hard_filters([cheap, pricey], HardRequirements(max_total_price=3_500_000))
        assert out == [cheap]

    def test_unknown_stratum_passes(self):
        props = [make_property(stratum=0), make_property(stratum=3), make_property(stratum=5)]
        out = apply_hard_filters(props, HardRequirements(min_stratum=4))
        assert [p.stratum for p in out] == [0, 5]

    def test_property_type_matches_title(self):
        apto = make_property(title="Apartamento amplio")
        casa = make_property(title="Casa campestre")
        out = apply_hard_filters([apto, casa], HardRequirements(property_types=["apartamento"]))
        assert out == [apto]

    def test_neighborhood_variations(self):
        req = HardRequirements(location=LocationCriteria(city="Bogotá", neighborhoods=["Usaquén"]))
        usaquen = make_property(neighborhood="Usaquen")
        cedritos = make_property(neighborhood="Cedritos")
        in_address = make_property(neighborhood=None, address="Cra 19 # 134, Santa Bárbara, Bogotá")
        kennedy = make_property(neighborhood="Kennedy", address="Av 1 de mayo")
        out = apply_hard_filters([usaquen, cedritos, in_address, kennedy], req)
        assert out == [usaquen, cedritos, in_address]

    def test_wildcard_neighborhood_is_ignored(self):
        req = HardRequirements(location=LocationCriteria(city="Bogotá", neighborhoods=["*"]))
        props = [make_property(neighborhood="Kennedy"), make_property(neighborhood="Suba")]
        assert apply_hard_filters(props, req) == props

    def test_adding_predicates_never_grows_result(self):
        props = [make_property(rooms=r, area=a) for r in (1, 3, 5) for a in (40, 80, 150)]
        loose = apply_hard_filters(props, HardRequirements(min_rooms=2))
        tight = apply_hard_filters(props, HardRequirements(min_rooms=2, max_area=100))
        assert len(tight) <= len(loose) <= len(props)
        assert all(p in loose for p in tight)


class TestOptionalFilters:

    def test_none_is_passthrough(self):
        props = [make_property()]
        assert apply_optional_filters(props, None) == props
        assert apply_optional_filters(props, OptionalFilters()) == props

    def test_sources_by_id_or_name(self):
        fr = make_property(source="fincaraiz")
        m2 = make_property(source="metrocuadrado")
        assert apply_optional_filters([fr, m2], OptionalFilters(sources=["Metrocuadrado"])) == [m2]
        assert apply_optional_filters([fr, m2], OptionalFilters(sources=["finca"])) == [fr]

    def test_price_range(self):
        props = [make_property(price=p) for p in (1_500_000, 2_500_000, 3_500_000)]
        out = apply_optional_filters(props, OptionalFilters(price_range=PriceRange(min=2_000_000, max=3_000_000)))
        assert [p.total_price for p in out] == [2_500_000]

    def test_furnished_toggle(self):
        furnished = make_property(description="Apartamento amoblado con balcón")
        bare = make_property(description="Sin muebles")
        assert apply_optional_filters([furnished, bare], OptionalFilters(furnished=True)) == [furnished]
        assert apply_optional_filters([furnished, bare], OptionalFilters(furnished=False)) == [bare]

    def test_pets_toggle(self):
        pets = make_property(title="Apartamento pet friendly, se aceptan mascotas")
        other = make_property()
        assert apply_optional_filters([pets, other], OptionalFilters(pets=True)) == [pets]

    def test_parking_toggle(self):
        with_parking = make_property(parking=1)
        without = make_property(parking=None)
        assert apply_optional_filters([with_parking, without], OptionalFilters(parking=True)) == [with_parking]
        assert apply_optional_filters([with_parking, without], OptionalFilters(parking=False)) == [without]

    def test_neighborhoods(self):
        chico = make_property(neighborhood="Chicó Norte")
        suba = make_property(neighborhood="Suba")
        assert apply_optional_filters([chico, suba], OptionalFilters(neighborhoods=["chico"])) == [chico]
