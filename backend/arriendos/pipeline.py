import logging
from typing import Callable, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

from backend.arriendos.extraction import fold
from backend.arriendos.location import neighborhood_variations, real_neighborhoods
from backend.arriendos.location_tables import normalize_text
from backend.arriendos.sources import get_profile
from backend.py_models.property import Property
from backend.py_models.search import HardRequirements, OptionalFilters

log = logging.getLogger("arriendos.pipeline")

Predicate = Callable[[Property], bool]

FURNISHED_KEYWORDS = ("amoblado", "amueblado")
PET_KEYWORDS = ("mascota", "perro", "gato")


# --- dedup -------------------------------------------------------------------

def canonical_key(prop: Property) -> str:
    """Absolute http(s) URL when the record has one, else 'title|totalPrice'."""
    url = (prop.url or "").strip()
    if url:
        parts = urlsplit(url)
        if parts.scheme in ("http", "https") and parts.netloc:
            return urlunsplit((parts.scheme, parts.netloc.lower(), parts.path, parts.query, ""))
    return f"{(prop.title or '').strip().lower()}|{prop.total_price or 0:.0f}"


def deduplicate(props: Iterable[Property]) -> List[Property]:
    """Keep the first record per canonical key, in input order."""
    seen: set[str] = set()
    out: List[Property] = []
    for p in props:
        key = canonical_key(p)
        if key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out


# --- shared matchers -----------------------------------------------------------

def _in_range(value, lo, hi) -> bool:
    if lo is not None and value < lo:
        return False
    if hi is not None and value > hi:
        return False
    return True


def _neighborhood_terms(names: Iterable[str]) -> List[str]:
    terms: List[str] = []
    for name in real_neighborhoods(list(names)):
        terms.extend(neighborhood_variations(name))
    return list(dict.fromkeys(t for t in terms if t))


def matches_neighborhood(prop: Property, terms: List[str]) -> bool:
    """Bidirectional containment between any term and the neighborhood/address fields."""
    if prop.location is None:
        return False
    fields = [normalize_text(prop.location.neighborhood), normalize_text(prop.location.address)]
    fields = [f for f in fields if len(f) > 2]
    return any(t in f or f in t for t in terms for f in fields)


def _text_blob(prop: Property) -> str:
    return fold(f"{prop.title or ''} {prop.description or ''}")


# --- hard stage ----------------------------------------------------------------

def hard_predicates(req: HardRequirements) -> List[Tuple[str, Predicate]]:
    """Only the predicates whose bounds are set; an absent bound is not a filter."""
    preds: List[Tuple[str, Predicate]] = []

    if req.min_rooms is not None or req.max_rooms is not None:
        preds.append(("rooms", lambda p: p.rooms is not None and _in_range(p.rooms, req.min_rooms, req.max_rooms)))
    if req.min_bathrooms is not None or req.max_bathrooms is not None:
        preds.append(("bathrooms", lambda p: _in_range(p.bathrooms or 0, req.min_bathrooms, req.max_bathrooms)))
    if req.min_area is not None or req.max_area is not None:
        preds.append(("area", lambda p: bool(p.area) and _in_range(p.area, req.min_area, req.max_area)))
    if req.min_total_price is not None or req.max_total_price is not None:
        preds.append((
            "price",
            lambda p: _in_range(p.total_price or p.price or 0, req.min_total_price, req.max_total_price),
        ))
    if req.min_parking is not None or req.max_parking is not None:
        preds.append(("parking", lambda p: _in_range(p.parking or 0, req.min_parking, req.max_parking)))
    if req.min_stratum is not None or req.max_stratum is not None:
        # unknown stratum is never out of range
        preds.append(("stratum", lambda p: p.stratum == 0 or _in_range(p.stratum, req.min_stratum, req.max_stratum)))

    types = [fold(t) for t in req.property_types if t and t.strip()]
    if types:
        preds.append(("property_type", lambda p: any(t in _text_blob(p) for t in types)))

    terms = _neighborhood_terms(req.location.neighborhoods)
    if terms:
        preds.append(("neighborhood", lambda p: matches_neighborhood(p, terms)))

    return preds


def apply_hard_filters(props: List[Property], req: HardRequirements) -> List[Property]:
    out = list(props)
    for name, pred in hard_predicates(req):
        before = len(out)
        out = [p for p in out if pred(p)]
        log.debug("hard filter %-13s %d -> %d", name, before, len(out))
    return out


# --- optional stage --------------------------------------------------------------

def _source_matches(prop: Property, wanted: List[str]) -> bool:
    src = (prop.source or "").lower()
    if not src:
        return False
    profile = get_profile(src)
    names = {src, profile.name.lower()} if profile else {src}
    return any(w in n or n in w for w in wanted for n in names)


def _keyword_toggle(flag: Optional[bool], keywords: Tuple[str, ...]) -> Optional[Predicate]:
    if flag is None:
        return None
    return lambda p: any(k in _text_blob(p) for k in keywords) == flag


def optional_predicates(opts: Optional[OptionalFilters]) -> List[Tuple[str, Predicate]]:
    if opts is None:
        return []
    preds: List[Tuple[str, Predicate]] = []

    wanted = [s.strip().lower() for s in opts.sources if s and s.strip()]
    if wanted:
        preds.append(("sources", lambda p: _source_matches(p, wanted)))

    terms = _neighborhood_terms(opts.neighborhoods)
    if terms:
        preds.append(("neighborhoods", lambda p: matches_neighborhood(p, terms)))

    band = opts.price_range
    if band is not None and (band.min is not None or band.max is not None):
        preds.append(("price_range", lambda p: _in_range(p.total_price or p.price or 0, band.min, band.max)))

    furnished = _keyword_toggle(opts.furnished, FURNISHED_KEYWORDS)
    if furnished:
        preds.append(("furnished", furnished))
    pets = _keyword_toggle(opts.pets, PET_KEYWORDS)
    if pets:
        preds.append(("pets", pets))

    if opts.parking is not None:
        preds.append(("parking", lambda p: ((p.parking or 0) > 0) == opts.parking))

    return preds


def apply_optional_filters(props: List[Property], opts: Optional[OptionalFilters]) -> List[Property]:
    out = list(props)
    for name, pred in optional_predicates(opts):
        before = len(out)
        out = [p for p in out if pred(p)]
        log.debug("optional filter %-13s %d -> %d", name, before, len(out))
    return out
