import re
from typing import List

from backend.arriendos.errors import CriteriaValidationError
from backend.arriendos.location import real_neighborhoods
from backend.arriendos.settings import (
    MAX_VALID_AREA,
    MAX_VALID_PRICE,
    MAX_VALID_ROOMS,
    MIN_SEARCH_PRICE,
    MIN_TITLE_LENGTH,
    MIN_VALID_PRICE,
)
from backend.py_models.property import Property
from backend.py_models.search import SearchCriteria


def get_validation_errors(prop: Property) -> List[str]:
    """Every reason this record is not fit to show. Empty list means valid."""
    errors: List[str] = []

    if not prop.id:
        errors.append("Missing ID")
    if not prop.title:
        errors.append("Missing title")
    if not prop.source:
        errors.append("Missing source")
    if prop.location is None:
        errors.append("Missing location")

    price = prop.total_price or prop.price
    if not price or price <= 0:
        errors.append("Invalid price")
    elif not (MIN_VALID_PRICE <= price <= MAX_VALID_PRICE):
        errors.append("Price out of range")

    # area is optional; only a stated value is checked
    if prop.area is not None and prop.area != 0 and not (0 < prop.area <= MAX_VALID_AREA):
        errors.append("Invalid area")

    if prop.rooms is not None and not (0 <= prop.rooms <= MAX_VALID_ROOMS):
        errors.append("Invalid rooms count")

    if prop.title and len(re.sub(r"[\W_]", "", prop.title)) < MIN_TITLE_LENGTH:
        errors.append("Invalid title")

    return errors


def is_valid(prop: Property) -> bool:
    return not get_validation_errors(prop)


def filter_valid(props: List[Property]) -> List[Property]:
    return [p for p in props if is_valid(p)]


# --- search criteria ---------------------------------------------------------

_BOUNDED = (
    ("rooms", "min_rooms", "max_rooms"),
    ("bathrooms", "min_bathrooms", "max_bathrooms"),
    ("parking", "min_parking", "max_parking"),
    ("area", "min_area", "max_area"),
    ("total price", "min_total_price", "max_total_price"),
    ("stratum", "min_stratum", "max_stratum"),
)


def get_criteria_errors(criteria: SearchCriteria, page: int = 1, limit: int = 1) -> List[str]:
    """Reasons a search must be refused before any scraping."""
    req = criteria.hard_requirements
    errors: List[str] = []

    if not (req.location.city or "").strip() and not real_neighborhoods(req.location.neighborhoods):
        errors.append("A city or neighborhood is required")

    for label, lo_name, hi_name in _BOUNDED:
        lo, hi = getattr(req, lo_name), getattr(req, hi_name)
        if (lo is not None and lo < 0) or (hi is not None and hi < 0):
            errors.append(f"{label} bounds must be non-negative")
        if lo is not None and hi is not None and lo > hi:
            errors.append(f"min {label} must not exceed max {label}")

    for value in (req.min_stratum, req.max_stratum):
        if value is not None and not (0 <= value <= 6):
            errors.append("stratum must be between 0 and 6")
            break

    if req.max_total_price is not None and req.max_total_price < MIN_SEARCH_PRICE:
        errors.append(f"max total price must be at least {MIN_SEARCH_PRICE:,}")

    if page < 1:
        errors.append("page must be >= 1")
    if limit < 1:
        errors.append("limit must be >= 1")
    return errors


def validate_criteria(criteria: SearchCriteria, page: int = 1, limit: int = 1) -> None:
    errors = get_criteria_errors(criteria, page, limit)
    if errors:
        raise CriteriaValidationError(errors)
