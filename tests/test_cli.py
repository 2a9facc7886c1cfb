"""
Tests for the command-line entry point.
"""

from backend.arriendos.run_search import criteria_from_args, main, parse_args


class TestCriteriaFromArgs:

    def test_neighborhood_and_city(self):
        args = parse_args(["Usaquén, Bogotá", "--min-rooms", "3", "--max-price", "3500000",
                           "--sources", "fincaraiz, trovit"])
        c = criteria_from_args(args)
        assert c.hard_requirements.location.city == "Bogotá"
        assert c.hard_requirements.location.neighborhoods == ["Usaquén"]
        assert c.hard_requirements.min_rooms == 3
        assert c.hard_requirements.max_total_price == 3_500_000
        assert c.optional_filters.sources == ["fincaraiz", "trovit"]

    def test_city_only(self):
        c = criteria_from_args(parse_args(["Medellín"]))
        assert c.hard_requirements.location.city == "Medellín"
        assert c.hard_requirements.location.neighborhoods == []

    def test_neighborhood_only(self):
        c = criteria_from_args(parse_args(["El Poblado"]))
        assert c.hard_requirements.location.city == "medellín"
        assert c.hard_requirements.location.neighborhoods == ["El Poblado"]

    def test_defaults(self):
        args = parse_args(["Cali"])
        assert args.page == 1
        assert args.output is None
        assert criteria_from_args(args).optional_filters.sources == []


class TestMain:

    async def test_unresolvable_location_exits_2(self, capsys):
        assert await main(["xyz-unknown-place"]) == 2
        assert "Could not resolve location" in capsys.readouterr().err

    async def test_invalid_criteria_exits_2(self, capsys):
        assert await main(["Bogotá", "--min-rooms", "4", "--max-rooms", "2"]) == 2
        assert "Invalid search" in capsys.readouterr().err
