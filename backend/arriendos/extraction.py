"""
Shared text mining for listing fields.

Every tier ends up here when a value is only available as free text. Rules:

- price: all candidates from PRICE_PATTERNS (in order: "$ 2.500.000",
  "$2500000", "2.500.000", bare 7-10 digit runs, "2,5 millones") are kept only
  inside [MIN_MINED_PRICE; MAX_MINED_PRICE]; the LARGEST survivor wins, since
  admin fees and partial figures are smaller than the headline rent.
- area: first "<n> m²/m2/mts/metros" figure, (0; MAX_VALID_AREA].
- rooms / bathrooms / parking: first "<n> <keyword>" figure; parking falls back
  to 1 when a parking keyword appears without a count.
- stratum: "estrato <1-6>", 0 when absent or out of range.
"""
import re
import unicodedata
from typing import Iterable, List, Optional
from urllib.parse import urljoin

from backend.arriendos.settings import MAX_MINED_PRICE, MAX_VALID_AREA, MIN_MINED_PRICE

__all__ = [
    "fold",
    "coerce_float",
    "parse_cop",
    "price_candidates",
    "pick_price",
    "extract_admin_fee",
    "extract_area",
    "extract_rooms",
    "extract_bathrooms",
    "extract_parking",
    "extract_stratum",
    "split_amenities",
    "make_absolute",
    "normalize_image_url",
]


def fold(text: str | None) -> str:
    """Lowercase and drop diacritics, keeping punctuation and currency symbols."""
    if not text:
        return ""
    t = unicodedata.normalize("NFD", str(text).lower())
    t = "".join(ch for ch in t if unicodedata.category(ch) != "Mn")
    return re.sub(r"\s+", " ", t).strip()


# --- numbers -----------------------------------------------------------------

def coerce_float(x) -> Optional[float]:
    """Best-effort float from JSON-ish values: 2500000, "2500000", "72.5", "72,5"."""
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        return float(x)
    s = re.sub(r"[^0-9.,]", "", str(x))
    if not s:
        return None
    if re.fullmatch(r"\d{1,3}(?:[.,]\d{3})+", s):
        s = re.sub(r"[.,]", "", s)
    else:
        s = s.replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return None


def parse_cop(text: str | None) -> Optional[float]:
    """Peso amount from a price label; thousands separators may be '.' or ','."""
    if not text:
        return None
    t = fold(text)
    m = re.search(r"(\d+(?:[.,]\d+)?)\s*(?:millones|millon|mill|m)\b", t)
    if m and not re.search(r"\d[.,]\d{3}", t):
        return float(m.group(1).replace(",", ".")) * 1_000_000
    m = re.search(r"\d{1,3}(?:[.,]\d{3})+|\d+", t)
    if not m:
        return None
    return float(re.sub(r"[.,]", "", m.group(0)))


# Ordered by how much structure the match carries.
PRICE_PATTERNS = (
    re.compile(r"\$\s*\d{1,3}(?:[.,]\d{3})+"),
    re.compile(r"\$\s*\d{7,10}"),
    re.compile(r"(?<![\d.,])\d{1,3}(?:\.\d{3}){2,}(?![\d.,])"),
    re.compile(r"(?<!\d)\d{7,10}(?!\d)"),
    re.compile(r"\d+(?:[.,]\d+)?\s*millones", re.I),
)


def price_candidates(text: str | None) -> List[float]:
    """All plausible COP amounts in the text, in match order."""
    if not text:
        return []
    t = fold(text)
    out: List[float] = []
    for pattern in PRICE_PATTERNS:
        for m in pattern.finditer(t):
            val = parse_cop(m.group(0))
            if val is not None and MIN_MINED_PRICE <= val <= MAX_MINED_PRICE:
                out.append(val)
    return out


def pick_price(text: str | None) -> Optional[float]:
    cands = price_candidates(text)
    return max(cands) if cands else None


_ADMIN_RE = re.compile(
    r"\b(?:administracion|admon|admin|adm)\b\.?\s*(incluid[ao]s?|:)?\s*\$?\s*(\d{1,3}(?:[.,]\d{3})+|\d{5,8})?"
)


def extract_admin_fee(text: str | None, price: float | None = None) -> float:
    """
    Monthly admin fee stated in free text, 0 when absent or included in the rent.
    A figure not below `price` is the rent itself, not the fee.
    """
    for m in _ADMIN_RE.finditer(fold(text)):
        if m.group(1) and m.group(1).startswith("incluid"):
            return 0.0
        if not m.group(2):
            continue
        fee = parse_cop(m.group(2)) or 0.0
        if price and fee >= price:
            return 0.0
        return fee
    return 0.0


# --- facts -------------------------------------------------------------------

_AREA_RE = re.compile(r"(\d{1,4}(?:[.,]\d{1,2})?)\s*(?:m²|m2|mt2|mts2?|mts|metros(?:\s+cuadrados)?)(?![a-z])")
_ROOMS_RE = re.compile(r"(\d{1,2})\s*(?:habitacion(?:es)?|habs?\.?|alcobas?|cuartos?|dormitorios?|bedrooms?|beds?)(?![a-z])")
_BATHS_RE = re.compile(r"(\d{1,2})\s*(?:banos?|bathrooms?|baths?)(?![a-z])")
_PARKING_RE = re.compile(r"(\d{1,2})\s*(?:parqueaderos?|garajes?|garages?|parking|estacionamientos?)(?![a-z])")
_PARKING_WORD_RE = re.compile(r"\b(?:parqueadero|garaje|garage|parking|estacionamiento)s?\b")
_STRATUM_RE = re.compile(r"estrato\s*:?\s*(\d)\b")


def extract_area(text: str | None) -> Optional[float]:
    m = _AREA_RE.search(fold(text))
    if not m:
        return None
    val = float(m.group(1).replace(",", "."))
    return val if 0 < val <= MAX_VALID_AREA else None


def _first_int(pattern: re.Pattern, text: str | None) -> Optional[int]:
    m = pattern.search(fold(text))
    return int(m.group(1)) if m else None


def extract_rooms(text: str | None) -> Optional[int]:
    return _first_int(_ROOMS_RE, text)


def extract_bathrooms(text: str | None) -> Optional[int]:
    return _first_int(_BATHS_RE, text)


def extract_parking(text: str | None) -> Optional[int]:
    n = _first_int(_PARKING_RE, text)
    if n is not None:
        return n
    if _PARKING_WORD_RE.search(fold(text)):
        return 1
    return None


def extract_stratum(text: str | None) -> int:
    n = _first_int(_STRATUM_RE, text)
    return n if n is not None and 1 <= n <= 6 else 0


def split_amenities(value: str | Iterable[str] | None) -> List[str]:
    """Amenity labels from a comma/bullet/newline separated string or a list."""
    if not value:
        return []
    if isinstance(value, str):
        parts = re.split(r"[,\n•·|;]+", value)
    else:
        parts = []
        for v in value:
            if isinstance(v, dict):
                v = v.get("name") or v.get("label") or ""
            parts.extend(re.split(r"[,\n•·|;]+", str(v)))
    out = [re.sub(r"\s+", " ", p).strip() for p in parts]
    return list(dict.fromkeys(p for p in out if 1 < len(p) <= 60))


# --- urls / images -------------------------------------------------------------

def make_absolute(base: str, href: str | None) -> Optional[str]:
    """Return absolute URL for href, given base URL."""
    if not href:
        return None
    href = href.strip()
    if href.startswith(("javascript:", "mailto:", "tel:", "#")):
        return None
    return urljoin(base if base.endswith("/") else base + "/", href)


# (pattern, replacement) pairs that turn a thumbnail URL into the full-size one
THUMBNAIL_REWRITES = (
    (re.compile(r"th\.outside\d+x\d+\."), ""),
    (re.compile(r"/fit-in/\d+x\d+/"), "/"),
    (re.compile(r"/(?:thumbs?|thumbnails?)/"), "/"),
)

_SKIP_IMAGE_TOKENS = ("logo", "icon", "google", "apple", "sprite", "placeholder", "avatar", "badge")


def normalize_image_url(base: str, src: str | None) -> Optional[str]:
    """Absolute, full-resolution image URL, or None for data URIs and brand images."""
    if not src or src.startswith("data:"):
        return None
    low = src.lower()
    if any(tok in low for tok in _SKIP_IMAGE_TOKENS):
        return None
    url = make_absolute(base, src)
    if not url:
        return None
    for pattern, repl in THUMBNAIL_REWRITES:
        url = pattern.sub(repl, url)
    return url.rstrip("?&")
