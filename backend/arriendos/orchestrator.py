import asyncio
import logging
import time
from collections import Counter
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from backend.arriendos.adapter import create_adapter
from backend.arriendos.errors import AggregateSearchFailure, SourceTimeout
from backend.arriendos.exporter import ResultExporter, default_exporter
from backend.arriendos.location import resolve_search_location
from backend.arriendos.pipeline import apply_hard_filters, apply_optional_filters, deduplicate
from backend.arriendos.scorer import rank
from backend.arriendos.settings import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_PAGES_PER_SOURCE, TIMEOUT_PER_SOURCE_MS
from backend.arriendos.sources import DEFAULT_SOURCE_IDS, get_profile, select_profiles
from backend.arriendos.store import PropertyStore, default_store
from backend.arriendos.validator import filter_valid, validate_criteria
from backend.py_models.location import LocationInfo
from backend.py_models.property import Property
from backend.py_models.search import PriceBucket, SearchCriteria, SearchResult, SearchSummary

log = logging.getLogger("arriendos.orchestrator")

UNKNOWN_NEIGHBORHOOD = "Sin especificar"

# (label, lower bound inclusive, upper bound exclusive) on total price
PRICE_BUCKETS = (
    ("Menos de $2M", 0, 2_000_000),
    ("$2M - $3M", 2_000_000, 3_000_000),
    ("$3M - $4M", 3_000_000, 4_000_000),
    ("$4M - $5M", 4_000_000, 5_000_000),
    ("Más de $5M", 5_000_000, float("inf")),
)


def _mean(values: Iterable[float]) -> int:
    vals = [v for v in values if v]
    return round(sum(vals) / len(vals)) if vals else 0


def price_distribution(props: Sequence[Property]) -> List[PriceBucket]:
    if not props:
        return []
    out = []
    for label, lo, hi in PRICE_BUCKETS:
        count = sum(1 for p in props if lo <= (p.total_price or 0) < hi)
        if count:
            out.append(PriceBucket(range=label, count=count, percentage=round(count * 100 / len(props))))
    return out


def build_summary(total_found: int, hard_matches: int, ranked: Sequence[Property]) -> SearchSummary:
    neighborhoods = Counter(
        (p.location.neighborhood if p.location and p.location.neighborhood else UNKNOWN_NEIGHBORHOOD)
        for p in ranked
    )
    return SearchSummary(
        total_found=total_found,
        hard_matches=hard_matches,
        average_price=_mean(p.total_price for p in ranked),
        average_price_per_m2=_mean(p.price_per_m2 for p in ranked),
        average_area=_mean(p.area or 0 for p in ranked),
        source_breakdown=dict(Counter(p.source or "unknown" for p in ranked)),
        neighborhood_breakdown=dict(neighborhoods),
        price_distribution=price_distribution(ranked),
    )


STAT_FIELDS = ("price", "area", "rooms", "bathrooms", "parking", "stratum", "neighborhood", "images")


def _has_field(p: Property, name: str) -> bool:
    if name == "neighborhood":
        return bool(p.location and p.location.neighborhood)
    value = getattr(p, name)
    return value is not None and value != 0 and value != []


def field_stats(props: Sequence[Property]) -> Dict[str, object]:
    """How often each field was extracted, and the mean share of fields present per listing."""
    found = {f: sum(1 for p in props if _has_field(p, f)) for f in STAT_FIELDS}
    complete = [sum(_has_field(p, f) for f in STAT_FIELDS) / len(STAT_FIELDS) for p in props]
    return {
        "found": found,
        "missing": {f: len(props) - n for f, n in found.items()},
        "completeness": round(sum(complete) / len(complete), 2) if complete else 0.0,
    }


def paginate(items: Sequence[Property], page: int, limit: int) -> List[Property]:
    start = (page - 1) * limit
    return list(items[start:start + limit])


class SearchOrchestrator:
    """
    Runs one search end to end:
      validate -> resolve location -> fan out sources -> dedup -> validate
      -> hard filters -> optional filters -> score -> paginate + summarize

    Sources run concurrently, each under its own timeout. A source that times
    out is cancelled (its task is cancelled and its cancel event is set so any
    browser render it started is torn down) and contributes nothing. A source
    that raises contributes nothing. Neither affects the others.
    """

    def __init__(
        self,
        adapter_factory: Callable[[str], object] = create_adapter,
        max_pages: int = MAX_PAGES_PER_SOURCE,
        timeout_ms: int = TIMEOUT_PER_SOURCE_MS,
        exporter: Optional[ResultExporter] = None,
        store: Optional[PropertyStore] = None,
    ):
        self.adapter_factory = adapter_factory
        self.max_pages = max_pages
        self.timeout_ms = timeout_ms
        self.exporter = exporter
        self.store = store

    @classmethod
    def from_env(cls, **kwargs) -> "SearchOrchestrator":
        kwargs.setdefault("exporter", default_exporter())
        kwargs.setdefault("store", default_store())
        return cls(**kwargs)

    # --- fan-out ----------------------------------------------------------------

    def source_ids(self, criteria: SearchCriteria, sources: Optional[Iterable[str]] = None) -> List[str]:
        requested = [s.strip() for s in (sources or criteria.optional_filters.sources or []) if s and s.strip()]
        if not requested:
            return list(DEFAULT_SOURCE_IDS)
        ids = []
        for s in requested:
            # display names ("Finca Raíz") map onto their ids
            profile = get_profile(s) or next(iter(select_profiles([s])), None)
            ids.append(profile.id if profile else s)
        return list(dict.fromkeys(ids))

    async def _run_source(self, adapter, criteria: SearchCriteria, location: LocationInfo) -> List[Property]:
        sid = getattr(adapter, "source_id", repr(adapter))
        cancel = asyncio.Event()
        started = time.perf_counter()
        props: List[Property] = []
        try:
            props = await asyncio.wait_for(
                adapter.scrape(criteria, self.max_pages, location=location, cancel=cancel),
                timeout=self.timeout_ms / 1000.0,
            )
        except asyncio.TimeoutError:
            cancel.set()
            log.warning("%s", SourceTimeout(sid, f"no result after {self.timeout_ms}ms, cancelled"))
        except Exception as e:
            log.warning("[%s] source failed: %s", sid, e)
        elapsed = time.perf_counter() - started
        limiter = getattr(adapter, "rate_limiter", None)
        log.info(
            "[%s] %d listings in %.1fs | limiter=%s",
            sid, len(props or []), elapsed, limiter.stats() if limiter is not None else "-",
        )
        if props:
            log.info("[%s] field stats: %s", sid, field_stats(props))
        return list(props or [])

    async def collect(
        self,
        criteria: SearchCriteria,
        location: LocationInfo,
        sources: Optional[Iterable[str]] = None,
    ) -> List[Property]:
        adapters = []
        for sid in self.source_ids(criteria, sources):
            adapter = self.adapter_factory(sid)
            if adapter is None:
                continue
            adapters.append(adapter)
        if not adapters:
            log.warning("No sources to search")
            return []
        log.info("Searching %d sources: %s", len(adapters), ", ".join(getattr(a, "source_id", "?") for a in adapters))
        batches = await asyncio.gather(*(self._run_source(a, criteria, location) for a in adapters))
        return [p for batch in batches for p in batch]

    # --- pipeline -----------------------------------------------------------------

    def process(self, raw: List[Property], criteria: SearchCriteria, page: int, limit: int) -> SearchResult:
        unique = deduplicate(raw)
        valid = filter_valid(unique)
        hard = apply_hard_filters(valid, criteria.hard_requirements)
        optional = apply_optional_filters(hard, criteria.optional_filters)
        ranked = rank(optional, criteria.preferences)
        log.info(
            "Pipeline: raw=%d unique=%d valid=%d hard=%d optional=%d",
            len(raw), len(unique), len(valid), len(hard), len(optional),
        )
        return SearchResult(
            properties=paginate(ranked, page, limit),
            total=len(ranked),
            page=page,
            limit=limit,
            summary=build_summary(len(raw), len(hard), ranked),
        )

    def salvage(self, raw: List[Property], page: int, limit: int) -> SearchResult:
        """Result made of whatever was collected, with a zeroed summary."""
        return SearchResult(
            properties=paginate(raw, page, limit),
            total=len(raw),
            page=page,
            limit=limit,
            summary=SearchSummary(total_found=len(raw), hard_matches=len(raw)),
        )

    def publish(self, result: SearchResult) -> None:
        if self.exporter is not None:
            try:
                self.exporter.export(result)
            except Exception as e:
                log.warning("Export failed: %s", e)
        if self.store is not None:
            try:
                self.store.upsert(result.properties)
            except Exception as e:
                log.warning("Mongo upsert failed: %s", e)

    async def search(
        self,
        criteria: SearchCriteria,
        page: int = DEFAULT_PAGE,
        limit: Optional[int] = None,
        sources: Optional[Iterable[str]] = None,
    ) -> SearchResult:
        """
        Raises CriteriaValidationError or LocationUnresolved before scraping.
        Anything that goes wrong after that yields a (possibly salvaged) result.
        """
        started = time.perf_counter()
        limit = DEFAULT_LIMIT if limit is None else limit
        validate_criteria(criteria, page, limit)
        location = resolve_search_location(criteria)

        raw: List[Property] = []
        try:
            raw = await self.collect(criteria, location, sources)
            result = self.process(raw, criteria, page, limit)
        except Exception as e:
            log.exception("%s", AggregateSearchFailure(f"search failed after collecting {len(raw)} listings: {e}"))
            result = self.salvage(raw, page, limit)

        result.execution_time_ms = round((time.perf_counter() - started) * 1000)
        log.info(
            "Search done: %d results (%d raw, %d hard) in %dms",
            result.total, result.summary.total_found, result.summary.hard_matches, result.execution_time_ms,
        )
        self.publish(result)
        return result
