"""
Tests for result export to JSON and CSV files.
"""

import csv
import json

import pytest

from backend.arriendos.exporter import CSV_FIELDS, ResultExporter, property_row, save_properties
from backend.py_models.search import SearchResult, SearchSummary
from factories import make_property


class TestSaveProperties:

    def test_json(self, tmp_path):
        props = [make_property(title="Apartamento Chicó"), make_property()]
        path = save_properties(tmp_path / "out.json", props)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert len(data) == 2
        assert data[0]["title"] == "Apartamento Chicó"
        assert data[0]["location"]["city"] == "bogotá"

    def test_csv(self, tmp_path):
        props = [make_property(neighborhood="Cedritos", price=2_000_000, admin_fee=300_000)]
        path = save_properties(tmp_path / "out.CSV", props)
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert list(rows[0].keys()) == CSV_FIELDS
        assert rows[0]["neighborhood"] == "Cedritos"
        assert float(rows[0]["total_price"]) == 2_300_000

    def test_unknown_extension(self, tmp_path):
        with pytest.raises(ValueError):
            save_properties(tmp_path / "out.xlsx", [])

    def test_row_without_location(self):
        row = property_row(make_property(location=None))
        assert row["city"] is None and row["neighborhood"] is None


class TestResultExporter:

    def test_writes_all_artifacts(self, tmp_path):
        props = [make_property(source="fincaraiz"), make_property(source="metrocuadrado")]
        result = SearchResult(
            properties=props, total=2, page=1, limit=50,
            summary=SearchSummary(total_found=5, hard_matches=2), execution_time_ms=1234,
        )
        written = ResultExporter(tmp_path / "exports").export(result, stamp="20250101_120000")

        names = sorted(p.name for p in written)
        assert names == [
            "20250101_120000_fincaraiz.json",
            "20250101_120000_metrocuadrado.json",
            "20250101_120000_properties.csv",
            "20250101_120000_properties.json",
            "20250101_120000_summary.json",
        ]
        summary = json.loads((tmp_path / "exports" / "20250101_120000_summary.json").read_text(encoding="utf-8"))
        assert summary["total_found"] == 5
        assert summary["execution_time_ms"] == 1234
