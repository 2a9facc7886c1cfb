import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from backend.arriendos.errors import CriteriaValidationError, LocationUnresolved
from backend.arriendos.exporter import save_properties
from backend.arriendos.location import detect_location
from backend.arriendos.orchestrator import SearchOrchestrator
from backend.arriendos.settings import DEFAULT_LIMIT, MAX_PAGES_PER_SOURCE, SCRAPER_DEBUG, TIMEOUT_PER_SOURCE_MS
from backend.py_models.search import HardRequirements, LocationCriteria, OptionalFilters, SearchCriteria


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(description="Search rental listings across Colombian real-estate sites")
    p.add_argument("location", help='Neighborhood and/or city, e.g. "Usaquén, Bogotá" or "Medellín"')
    p.add_argument("--min-rooms", type=int)
    p.add_argument("--max-rooms", type=int)
    p.add_argument("--min-area", type=float)
    p.add_argument("--max-area", type=float)
    p.add_argument("--max-price", type=int, help="Max total monthly price (rent + admin) in COP")
    p.add_argument("--sources", help="Comma-separated source ids, e.g. fincaraiz,metrocuadrado")
    p.add_argument("--pages", type=int, default=MAX_PAGES_PER_SOURCE)
    p.add_argument("--timeout-ms", type=int, default=TIMEOUT_PER_SOURCE_MS)
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--limit", type=int, default=DEFAULT_LIMIT)
    p.add_argument("--output", help="Optional path to save results as .json or .csv")
    p.add_argument("--print-details", action="store_true", help="Print each property row to stdout")
    p.add_argument("--verbose", action="store_true", help="Enable verbose logging for the scrapers")
    return p.parse_args(argv)


def _split(value: Optional[str]) -> List[str]:
    return [s.strip() for s in (value or "").split(",") if s.strip()]


def criteria_from_args(args) -> SearchCriteria:
    parts = _split(args.location)
    if len(parts) >= 2:
        location = LocationCriteria(city=parts[-1], neighborhoods=[parts[0]])
    else:
        text = parts[0] if parts else ""
        info = detect_location(text) if text else None
        if info is not None and info.neighborhood:
            location = LocationCriteria(city=info.city, neighborhoods=[text])
        else:
            location = LocationCriteria(city=text or None)

    return SearchCriteria(
        hard_requirements=HardRequirements(
            min_rooms=args.min_rooms,
            max_rooms=args.max_rooms,
            min_area=args.min_area,
            max_area=args.max_area,
            max_total_price=args.max_price,
            location=location,
        ),
        optional_filters=OptionalFilters(sources=_split(args.sources)),
    )


def _print_details(props) -> None:
    for p in props:
        loc = p.location
        where = ", ".join(filter(None, [loc.neighborhood if loc else None, loc.city if loc else None]))
        price = f"${int(p.total_price):,}" if p.total_price else "N/A"
        rooms = f"{p.rooms} hab" if p.rooms is not None else "--"
        baths = f"{p.bathrooms} baños" if p.bathrooms is not None else "--"
        area = f"{int(p.area)} m²" if p.area else "--"
        print(f"- [{p.score:.2f}] {p.title} | {where} | {price} | {rooms} / {baths} | {area} | {p.source} | {p.url}")


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
    if args.verbose or SCRAPER_DEBUG:
        logging.getLogger("arriendos").setLevel(logging.DEBUG)

    criteria = criteria_from_args(args)
    orchestrator = SearchOrchestrator.from_env(max_pages=args.pages, timeout_ms=args.timeout_ms)

    print(f"\n🔍 Searching rentals in {args.location} ...")
    try:
        result = await orchestrator.search(criteria, page=args.page, limit=args.limit)
    except CriteriaValidationError as e:
        print(f"❌ Invalid search: {e}", file=sys.stderr)
        return 2
    except LocationUnresolved as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2

    if args.print_details:
        _print_details(result.properties)

    if args.output:
        try:
            path = save_properties(args.output, result.properties)
            print(f"Saved {len(result.properties)} properties to {path}")
        except ValueError as e:
            print(f"[warn] {e}")

    s = result.summary
    print(
        f"\n✅ {result.total} matches (page {result.page}, showing {len(result.properties)}) | "
        f"found={s.total_found} hard={s.hard_matches} avg=${s.average_price:,} | {result.execution_time_ms}ms"
    )
    for name, count in sorted(s.source_breakdown.items(), key=lambda kv: -kv[1]):
        print(f"   {name}: {count}")
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
