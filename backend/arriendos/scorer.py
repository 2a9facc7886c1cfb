"""
Preference ranking.

    score = round(sum(weight_d * match_d), 4)

over the dimensions wet_areas, sports, amenities, location and price_per_m2.
For the three list dimensions match_d is the share of preferred terms found in
the property's amenities, title or description (accent and case insensitive).
An empty preference list scores 1.0 so that not asking never costs points.

location: 1.0 when the neighborhood, address or title mentions any preferred
neighborhood (variation-expanded), else 0.0.

price_per_m2 against `max_price_per_m2`: 1.0 at or below target, target/actual
above it, 0.5 when the property's price per m² is unknown.

Preferences only rank; they never exclude.
"""
from typing import Dict, List

from backend.arriendos.extraction import fold
from backend.arriendos.location import neighborhood_variations, real_neighborhoods
from backend.arriendos.location_tables import normalize_text
from backend.py_models.property import Property
from backend.py_models.search import Preferences

UNKNOWN_PRICE_PER_M2_MATCH = 0.5


def _attributes(prop: Property) -> str:
    parts = list(prop.amenities) + [prop.title or "", prop.description or ""]
    return " | ".join(fold(p) for p in parts if p)


def list_match(preferred: List[str], attributes: str) -> float:
    terms = [fold(t) for t in preferred if t and t.strip()]
    if not terms:
        return 1.0
    hits = sum(1 for t in terms if t in attributes)
    return hits / len(terms)


def location_match(prop: Property, preferred: List[str]) -> float:
    names = real_neighborhoods(preferred)
    if not names:
        return 1.0
    terms = [v for n in names for v in neighborhood_variations(n)]
    loc = prop.location
    fields = [normalize_text(prop.title)]
    if loc is not None:
        fields += [normalize_text(loc.neighborhood), normalize_text(loc.address)]
    return 1.0 if any(t in f for t in terms for f in fields if f) else 0.0


def price_per_m2_match(prop: Property, target) -> float:
    if not target:
        return 1.0
    if not prop.price_per_m2:
        return UNKNOWN_PRICE_PER_M2_MATCH
    if prop.price_per_m2 <= target:
        return 1.0
    return target / prop.price_per_m2


def breakdown(prop: Property, prefs: Preferences) -> Dict[str, float]:
    """Per-dimension match fractions, before weighting."""
    attrs = _attributes(prop)
    return {
        "wet_areas": list_match(prefs.wet_areas, attrs),
        "sports": list_match(prefs.sports, attrs),
        "amenities": list_match(prefs.amenities, attrs),
        "location": location_match(prop, prefs.location),
        "price_per_m2": price_per_m2_match(prop, prefs.max_price_per_m2),
    }


def score(prop: Property, prefs: Preferences) -> float:
    weights = prefs.weights.model_dump()
    return round(sum(weights[d] * m for d, m in breakdown(prop, prefs).items()), 4)


def rank(props: List[Property], prefs: Preferences) -> List[Property]:
    """Score copies of the records and sort them by descending score (stable)."""
    scored = [p.model_copy(update={"score": score(p, prefs)}) for p in props]
    return sorted(scored, key=lambda p: p.score, reverse=True)
