import csv
import json
import logging
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from backend.arriendos.settings import EXPORT_DIR
from backend.py_models.property import Property
from backend.py_models.search import SearchResult

log = logging.getLogger("arriendos.exporter")

CSV_FIELDS = [
    "id", "source", "title", "price", "admin_fee", "total_price", "area", "rooms",
    "bathrooms", "parking", "stratum", "neighborhood", "city", "address",
    "price_per_m2", "score", "url",
]


def property_row(p: Property) -> Dict[str, object]:
    """Flat row for CSV and tabular output."""
    loc = p.location
    return {
        "id": p.id,
        "source": p.source,
        "title": p.title,
        "price": p.price,
        "admin_fee": p.admin_fee,
        "total_price": p.total_price,
        "area": p.area,
        "rooms": p.rooms,
        "bathrooms": p.bathrooms,
        "parking": p.parking,
        "stratum": p.stratum,
        "neighborhood": loc.neighborhood if loc else None,
        "city": loc.city if loc else None,
        "address": loc.address if loc else None,
        "price_per_m2": p.price_per_m2,
        "score": p.score,
        "url": p.url,
    }


def write_json(path: Path | str, rows) -> Path:
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(rows, f, indent=2, ensure_ascii=False, default=str)
    return path


def write_csv(path: Path | str, props: List[Property]) -> Path:
    path = Path(path)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for p in props:
            writer.writerow(property_row(p))
    return path


def save_properties(path: Path | str, props: List[Property]) -> Path:
    """Write properties to .json or .csv depending on the extension."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        return write_json(path, [p.model_dump(mode="json") for p in props])
    if suffix == ".csv":
        return write_csv(path, props)
    raise ValueError(f"Unknown output format for '{path}'. Use .json or .csv")


class ResultExporter:
    """
    Writes one search's artifacts into a directory:
      <stamp>_summary.json, <stamp>_properties.json, <stamp>_properties.csv,
      <stamp>_<source>.json per source.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def export(self, result: SearchResult, stamp: Optional[str] = None) -> List[Path]:
        stamp = stamp or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.directory.mkdir(parents=True, exist_ok=True)
        base = self.directory / stamp

        summary = result.summary.model_dump(mode="json")
        summary.update(
            total=result.total, page=result.page, limit=result.limit,
            execution_time_ms=result.execution_time_ms,
        )
        written = [
            write_json(f"{base}_summary.json", summary),
            write_json(f"{base}_properties.json", [p.model_dump(mode="json") for p in result.properties]),
            write_csv(f"{base}_properties.csv", result.properties),
        ]

        by_source: Dict[str, List[dict]] = defaultdict(list)
        for p in result.properties:
            by_source[p.source or "unknown"].append(p.model_dump(mode="json"))
        for source, rows in by_source.items():
            written.append(write_json(f"{base}_{source}.json", rows))

        log.info("Exported %d properties to %s (%d files)", len(result.properties), self.directory, len(written))
        return written


def default_exporter() -> Optional[ResultExporter]:
    return ResultExporter(EXPORT_DIR) if EXPORT_DIR else None
