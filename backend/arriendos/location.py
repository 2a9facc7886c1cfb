import logging
import re
from typing import Dict, List, Mapping, Optional, Tuple

from backend.arriendos.errors import LocationUnresolved
from backend.arriendos.location_tables import (
    CITIES,
    CITY_URL_MAPPINGS,
    DEPARTMENTS,
    FALLBACK_CITY,
    NEIGHBORHOOD_URL_MAPPINGS,
    NEIGHBORHOOD_VARIATIONS,
    NEIGHBORHOODS,
    WILDCARD_TOKENS,
    normalize_text,
)
from backend.arriendos.settings import LOCATION_MIN_CONFIDENCE
from backend.py_models.location import LocationCandidate, LocationInfo, LocationSearchResult
from backend.py_models.search import SearchCriteria
from backend.py_models.source import SourceProfile, UrlTemplate

log = logging.getLogger("arriendos.location")

EXACT_CITY_CONFIDENCE = 1.0
ALIAS_CITY_CONFIDENCE = 0.9
FALLBACK_CITY_CONFIDENCE = 0.3
PARTIAL_NEIGHBORHOOD_CONFIDENCE = 0.8
NO_NEIGHBORHOOD_CONFIDENCE = 0.5

_STOPWORDS = frozenset({"de", "del", "la", "las", "el", "los", "y", "en"})


def _phrase_in(text: str, phrase: str) -> bool:
    """Whole-word containment on normalized strings."""
    if not phrase or not text:
        return False
    return re.search(rf"(?<![a-z0-9]){re.escape(phrase)}(?![a-z0-9])", text) is not None


def _normalized_lookup(mapping: Mapping[str, str], key: str | None) -> Optional[str]:
    if not key:
        return None
    if key in mapping:
        return mapping[key]
    nk = normalize_text(key)
    for k, v in mapping.items():
        if normalize_text(k) == nk:
            return v
    return None


def canonical_city(name: str | None) -> Optional[str]:
    n = normalize_text(name)
    if not n:
        return None
    for city, (_code, aliases) in CITIES.items():
        if n == normalize_text(city) or n in {normalize_text(a) for a in aliases}:
            return city
    return None


# --- detection ---------------------------------------------------------------

def _detect_city(text: str) -> Tuple[str, Optional[str], float, str]:
    """Return (city, code, confidence, matched phrase) for normalized text."""
    for city, (code, aliases) in CITIES.items():
        canon = normalize_text(city)
        if _phrase_in(text, canon):
            return city, code, EXACT_CITY_CONFIDENCE, canon
        for alias in aliases:
            a = normalize_text(alias)
            if a != canon and _phrase_in(text, a):
                return city, code, ALIAS_CITY_CONFIDENCE, a
    return FALLBACK_CITY, CITIES[FALLBACK_CITY][0], FALLBACK_CITY_CONFIDENCE, ""


def _detect_neighborhood(text: str, city: str, city_phrase: str) -> Tuple[Optional[str], float, Optional[str]]:
    """Return (neighborhood, confidence, owning city when it differs from `city`)."""
    best: Tuple[int, Optional[str], Optional[str]] = (0, None, None)
    for owner, names in NEIGHBORHOODS.items():
        for name in names:
            n = normalize_text(name)
            if len(n) > best[0] and _phrase_in(text, n):
                best = (len(n), name, owner)
    if best[1]:
        owner = best[2]
        return best[1], 1.0, (owner if owner != city else None)

    rest = text
    if city_phrase:
        rest = re.sub(rf"(?<![a-z0-9]){re.escape(city_phrase)}(?![a-z0-9])", " ", rest)
    rest = re.sub(r"\s+", " ", rest).strip()
    if len(rest) < 4:
        return None, NO_NEIGHBORHOOD_CONFIDENCE, None
    for name in NEIGHBORHOODS.get(city) or NEIGHBORHOODS[FALLBACK_CITY]:
        n = normalize_text(name)
        if rest in n or n in rest:
            return name, PARTIAL_NEIGHBORHOOD_CONFIDENCE, None
    return None, NO_NEIGHBORHOOD_CONFIDENCE, None


def detect_location(text: str) -> LocationInfo:
    """
    Free text -> {city, neighborhood, confidence}.
    Exact city = 1.0, alias = 0.9, nothing = fallback city at 0.3. A known
    neighborhood that belongs to another city moves the result to that city.
    """
    norm = normalize_text(text)
    city, code, city_conf, phrase = _detect_city(norm)
    neighborhood, nb_conf, nb_city = _detect_neighborhood(norm, city, phrase)

    final_city, final_code, final_conf = city, code, city_conf
    if nb_city:
        final_city, final_code, final_conf = nb_city, CITIES[nb_city][0], nb_conf

    confidence = final_conf
    if neighborhood:
        confidence = max(final_conf, nb_conf)
        # a strong neighborhood rescues a guessed city, but never reaches "exact"
        if city_conf <= FALLBACK_CITY_CONFIDENCE and nb_conf >= PARTIAL_NEIGHBORHOOD_CONFIDENCE:
            confidence = PARTIAL_NEIGHBORHOOD_CONFIDENCE

    return LocationInfo(
        city=final_city,
        city_code=final_code,
        neighborhood=neighborhood,
        original_text=text or "",
        confidence=confidence,
    )


# --- fuzzy search ------------------------------------------------------------

def _similarity(query: str, name: str) -> float:
    if not query or not name:
        return 0.0
    if query == name:
        return 1.0
    if (len(query) >= 3 and query in name) or _phrase_in(query, name):
        return 0.9
    qw = set(query.split()) - _STOPWORDS
    nw = set(name.split()) - _STOPWORDS
    common = qw & nw
    if not common:
        return 0.0
    return round(min(0.85, len(common) / max(len(qw), len(nw))), 2)


def smart_location_search(text: str, limit: int = 10) -> LocationSearchResult:
    """Ranked city and neighborhood candidates for free text, plus the single best match."""
    q = normalize_text(text)
    if not q:
        return LocationSearchResult()

    cities: List[LocationCandidate] = []
    for city, (_code, aliases) in CITIES.items():
        score = max(_similarity(q, normalize_text(n)) for n in (city, *aliases))
        if score > 0:
            cities.append(LocationCandidate(type="city", name=city, city=city, confidence=score))

    neighborhoods: List[LocationCandidate] = []
    seen: set[str] = set()
    for owner, names in NEIGHBORHOODS.items():
        for name in names:
            key = normalize_text(name)
            if key in seen:
                continue
            score = _similarity(q, key)
            if score > 0:
                seen.add(key)
                neighborhoods.append(LocationCandidate(type="neighborhood", name=name, city=owner, confidence=score))

    cities.sort(key=lambda c: -c.confidence)
    neighborhoods.sort(key=lambda c: -c.confidence)

    best = None
    top_city = cities[0] if cities else None
    top_nb = neighborhoods[0] if neighborhoods else None
    if top_city and top_nb:
        best = top_nb if top_nb.confidence >= top_city.confidence else top_city
    else:
        best = top_city or top_nb

    return LocationSearchResult(cities=cities[:limit], neighborhoods=neighborhoods[:limit], best_match=best)


# --- neighborhoods -----------------------------------------------------------

def is_wildcard_neighborhood(value: str | None) -> bool:
    """'*', '.', '?' or any punctuation-only entry means "any neighborhood"."""
    cleaned = (value or "").strip()
    return len(cleaned) <= 1 or cleaned in WILDCARD_TOKENS or re.fullmatch(r"[^\w\s]+", cleaned) is not None


def real_neighborhoods(values: List[str] | None) -> List[str]:
    return [v.strip() for v in (values or []) if not is_wildcard_neighborhood(v)]


def neighborhood_variations(name: str) -> List[str]:
    """The name, its accent-free spelling and its sub-neighborhoods, normalized and de-duplicated."""
    base = normalize_text(name)
    if not base:
        return []
    out = [base]
    for key, subs in NEIGHBORHOOD_VARIATIONS.items():
        if normalize_text(key) == base:
            out.extend(normalize_text(s) for s in subs)
    return list(dict.fromkeys(out))


def get_neighborhoods_by_city(city: str) -> List[str]:
    canon = canonical_city(city)
    return list(NEIGHBORHOODS.get(canon, ())) if canon else []


def get_city_by_code(code: str) -> Optional[str]:
    for city, (c, _aliases) in CITIES.items():
        if c == code:
            return city
    return None


def get_department_for_city(city: str | None) -> str:
    canon = canonical_city(city)
    return DEPARTMENTS.get(canon, "Colombia") if canon else "Colombia"


_MAIN_CITIES = "bogot[aá]|medell[ií]n|cali|barranquilla|bucaramanga|cartagena"
LOCATION_EXTRACTION_PATTERNS = (
    re.compile(rf"en\s+([^,\n]+?),?\s*({_MAIN_CITIES})", re.I),
    re.compile(rf"arriendo\s+([^,\n]+?),?\s*({_MAIN_CITIES})", re.I),
    re.compile(rf"([a-záéíóúñ\s]+),\s*({_MAIN_CITIES})", re.I),
    re.compile(rf"({_MAIN_CITIES})[,\s]+([^,\n]+)", re.I),
)
_CITY_CLEANUP = re.compile(rf"[,\s]*({_MAIN_CITIES})", re.I)


def extract_location_from_text(text: str | None) -> Optional[Dict[str, str]]:
    """Pull {neighborhood, city} out of strings like 'Apartamento en Chicó, Bogotá'."""
    if not text:
        return None
    for i, pattern in enumerate(LOCATION_EXTRACTION_PATTERNS):
        m = pattern.search(text)
        if not m:
            continue
        if i == len(LOCATION_EXTRACTION_PATTERNS) - 1:
            city, hood = m.group(1), m.group(2)
        else:
            hood, city = m.group(1), m.group(2)
        hood = _CITY_CLEANUP.sub("", hood).strip(" ,-")
        out = {"city": canonical_city(city) or city.lower()}
        if hood:
            out["neighborhood"] = hood
        return out
    return None


# --- criteria -> location ----------------------------------------------------

def search_text(criteria: SearchCriteria) -> str:
    loc = criteria.hard_requirements.location
    hoods = real_neighborhoods(loc.neighborhoods)
    return hoods[0] if hoods else (loc.city or "").strip()


def _info_from_candidate(best: LocationCandidate, text: str) -> LocationInfo:
    return LocationInfo(
        city=best.city,
        city_code=CITIES[best.city][0] if best.city in CITIES else None,
        neighborhood=best.name if best.type == "neighborhood" else None,
        original_text=text,
        confidence=best.confidence,
    )


def resolve_search_location(criteria: SearchCriteria) -> LocationInfo:
    """
    Resolve the location of a search once, before any scraping.
    Tries the first real neighborhood, then the city. Raises LocationUnresolved
    instead of searching a guessed city.
    """
    loc = criteria.hard_requirements.location
    attempts = [t for t in (search_text(criteria), (loc.city or "").strip()) if t]
    best_seen: Optional[LocationCandidate] = None
    for text in dict.fromkeys(attempts):
        found = smart_location_search(text)
        best = found.best_match
        if best and best.confidence >= LOCATION_MIN_CONFIDENCE:
            info = _info_from_candidate(best, text)
            log.info("Location %r -> %s / %s (%.2f)", text, info.city, info.neighborhood, info.confidence)
            return info
        if best and (best_seen is None or best.confidence > best_seen.confidence):
            best_seen = best
        log.warning("No confident location for %r (best=%s)", text, best.name if best else None)
    raise LocationUnresolved(
        attempts[0] if attempts else "",
        best_seen.confidence if best_seen else 0.0,
        best_seen.name if best_seen else None,
    )


# --- URL building ------------------------------------------------------------

def city_slug(city: str | None, mapping: str = "standard") -> str:
    table = CITY_URL_MAPPINGS.get(mapping) or CITY_URL_MAPPINGS["standard"]
    slug = _normalized_lookup(table, canonical_city(city) or city)
    return slug or table[FALLBACK_CITY]


def neighborhood_slug(neighborhood: str | None, mapping: str = "standard", city_url: str = "") -> Optional[str]:
    table = NEIGHBORHOOD_URL_MAPPINGS.get(mapping) or NEIGHBORHOOD_URL_MAPPINGS["standard"]
    slug = _normalized_lookup(table, neighborhood)
    if slug and mapping == "trovit":
        return f"{slug}-{city_url}"
    return slug


def page_url(url: str, template: UrlTemplate, page: int) -> str:
    if page <= 1 or not template.page_param:
        return url
    offset = (page - 1) * template.results_per_page + 1
    part = template.page_param.format(page=page, offset=offset)
    if part.startswith(("_", "/")):
        return url.rstrip("/") + part if part.startswith("/") else url + part
    return url + ("&" if "?" in url else "?") + part


def build_scraper_url(
    profile: SourceProfile,
    criteria: SearchCriteria,
    location: Optional[LocationInfo] = None,
    page: int = 1,
) -> str:
    """
    Build the listing URL for one site. City and neighborhood go through that
    site's own slug tables; the neighborhood part is added only when the site
    has a slug for it.
    """
    tmpl = profile.url_template
    if location is None:
        location = detect_location(search_text(criteria))

    c_slug = city_slug(location.city, tmpl.city_mapping)
    url = tmpl.base.replace("{city}", c_slug)

    if location.neighborhood and tmpl.neighborhood:
        n_slug = neighborhood_slug(location.neighborhood, tmpl.neighborhood_mapping, c_slug)
        if n_slug:
            if tmpl.neighborhood.startswith("http"):
                url = tmpl.neighborhood.replace("{neighborhood}", n_slug)
            else:
                url += tmpl.neighborhood.replace("{neighborhood}", n_slug)

    return page_url(url, tmpl, page)
