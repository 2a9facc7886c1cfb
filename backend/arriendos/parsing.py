# backend/arriendos/parsing.py
import hashlib
import json
import logging
import re
import time
from typing import Iterator, List, Optional

from bs4 import BeautifulSoup, Tag

from backend.arriendos.extraction import (
    coerce_float,
    extract_admin_fee,
    extract_area,
    extract_bathrooms,
    extract_parking,
    extract_rooms,
    extract_stratum,
    make_absolute,
    normalize_image_url,
    pick_price,
    split_amenities,
)
from backend.arriendos.location import canonical_city, extract_location_from_text
from backend.arriendos.location_tables import FALLBACK_CITY
from backend.arriendos.settings import MAX_MINED_PRICE, MIN_MINED_PRICE
from backend.py_models.location import LocationInfo
from backend.py_models.property import Property, PropertyLocation
from backend.py_models.source import SourceProfile

__all__ = [
    "select_cards",
    "parse_card",
    "parse_cards",
    "mine_payload",
    "mine_anchors",
    "build_property",
]

log = logging.getLogger("arriendos.parsing")


# --- tiny utils -------------------------------------------------------------

def _text(el) -> Optional[str]:
    if not el:
        return None
    try:
        txt = el.get_text(" ", strip=True)
        return re.sub(r"\s+", " ", txt) or None
    except Exception:
        return None


def _pick(card: Tag, selector: Optional[str]):
    if not selector:
        return None
    try:
        return card.select_one(selector)
    except Exception:
        return None


def _count(el_text: Optional[str], extractor) -> Optional[int]:
    """Count from a labelled fact ("3 habitaciones") or a bare number ("3")."""
    if not el_text:
        return None
    n = extractor(el_text)
    if n is not None:
        return n
    m = re.fullmatch(r"\s*(\d{1,2})\s*", el_text)
    return int(m.group(1)) if m else None


def _matches_detail(href: str, profile: SourceProfile) -> bool:
    return any(re.search(p, href) for p in profile.detail_link_patterns)


def _card_href(card: Tag, profile: SourceProfile) -> Optional[str]:
    anchors = [card] if card.name == "a" and card.get("href") else []
    try:
        anchors += card.select(profile.selectors.link or "a")
    except Exception:
        anchors += card.select("a")
    hrefs = [a.get("href") for a in anchors if isinstance(a, Tag) and a.get("href")]
    for href in hrefs:
        if _matches_detail(href, profile):
            return make_absolute(profile.base_url, href)
    for href in hrefs:
        absolute = make_absolute(profile.base_url, href)
        if absolute:
            return absolute
    return None


def _card_images(card: Tag, profile: SourceProfile) -> List[str]:
    out: List[str] = []
    try:
        imgs = card.select(profile.selectors.images or "img")
    except Exception:
        imgs = card.select("img")
    for img in imgs:
        src = img.get("data-src") or img.get("data-lazy") or img.get("src")
        if not src and img.get("srcset"):
            src = img["srcset"].split(",")[0].strip().split(" ")[0]
        url = normalize_image_url(profile.base_url, src)
        if url and url not in out:
            out.append(url)
    return out


def _is_probable_card(el: Tag) -> bool:
    """Heuristic to confirm an element is a listing card: a link plus a plausible price."""
    try:
        has_link = (el.name == "a" and el.get("href")) or el.select_one("a[href]") is not None
        return bool(has_link) and pick_price(el.get_text(" ", strip=True)) is not None
    except Exception:
        return False


# --- tier A: structured cards ------------------------------------------------

def select_cards(root: Tag, profile: SourceProfile) -> List[Tag]:
    """
    Listing card nodes for a site. Containers that wrap several cards and
    fragments nested inside an already selected card are dropped.
    """
    if not isinstance(root, Tag):
        return []
    try:
        found = root.select(profile.selectors.property_card)
    except Exception as e:
        log.debug("[%s] bad card selector: %s", profile.id, e)
        return []

    candidates = [el for el in found if isinstance(el, Tag) and _is_probable_card(el)]
    cand_ids = {id(el) for el in candidates}

    kept: List[Tag] = []
    kept_ids: set[int] = set()
    for el in candidates:
        inner = sum(1 for d in el.find_all(True) if id(d) in cand_ids)
        if inner >= 2:
            continue
        if any(id(p) in kept_ids for p in el.parents):
            continue
        kept.append(el)
        kept_ids.add(id(el))
    return kept


def parse_card(card: Tag, profile: SourceProfile) -> dict:
    """
    Parse one listing card into a raw dict:
    {title, price, admin_fee, area, rooms, bathrooms, parking, stratum,
     location, amenities, images, href, description}
    Labelled elements win; the card's full text backs up every field.
    """
    sel = profile.selectors
    blob = _text(card) or ""
    out: dict = {}

    out["title"] = _text(_pick(card, sel.title))

    price_txt = _text(_pick(card, sel.price))
    out["price"] = pick_price(price_txt) or pick_price(blob)
    out["admin_fee"] = extract_admin_fee(blob, out["price"])

    out["area"] = extract_area(_text(_pick(card, sel.area))) or extract_area(blob)
    out["rooms"] = _count(_text(_pick(card, sel.rooms)), extract_rooms)
    if out["rooms"] is None:
        out["rooms"] = extract_rooms(blob)
    out["bathrooms"] = _count(_text(_pick(card, sel.bathrooms)), extract_bathrooms)
    if out["bathrooms"] is None:
        out["bathrooms"] = extract_bathrooms(blob)
    out["parking"] = extract_parking(blob)
    out["stratum"] = extract_stratum(blob)

    out["location"] = _text(_pick(card, sel.location))
    out["amenities"] = split_amenities(_text(_pick(card, sel.amenities)))
    out["images"] = _card_images(card, profile)
    out["href"] = _card_href(card, profile)
    out["description"] = blob[:500] or None
    return out


def parse_cards(html: str, profile: SourceProfile) -> List[dict]:
    """Convenience for a full page: select and parse cards, keeping those with a price."""
    soup = BeautifulSoup(html, "lxml")
    rows = []
    for card in select_cards(soup, profile):
        try:
            row = parse_card(card, profile)
        except Exception as e:
            log.debug("[%s] card parse failed: %s", profile.id, e)
            continue
        if row.get("price"):
            rows.append(row)
    return rows


# --- tier C (1): embedded payloads --------------------------------------------

def _flatten_dicts(obj) -> Iterator[dict]:
    if isinstance(obj, dict):
        yield obj
        for v in obj.values():
            yield from _flatten_dicts(v)
    elif isinstance(obj, list):
        for it in obj:
            yield from _flatten_dicts(it)


def _json_candidates(html: str) -> List[object]:
    """Parsed JSON blobs from <script> tags (Next.js data, JSON-LD, window.__STATE__=...)."""
    soup = BeautifulSoup(html, "lxml")
    blobs = []
    for s in soup.find_all("script"):
        typ = (s.get("type") or "").lower()
        txt = s.string or s.get_text() or ""
        if typ not in ("application/json", "application/ld+json") and not (typ in ("", "text/javascript") and "{" in txt):
            continue
        if "{" not in txt and "[" not in txt:
            continue
        try:
            if typ in ("application/json", "application/ld+json"):
                blobs.append(json.loads(txt))
                continue
            # strip assignment prefixes, then trim trailing JS by matching braces
            start = txt.find("{")
            candidate = txt[start:]
            stack = []
            end = None
            in_str = False
            esc = False
            for i, ch in enumerate(candidate):
                if in_str:
                    if esc:
                        esc = False
                    elif ch == "\\":
                        esc = True
                    elif ch == '"':
                        in_str = False
                    continue
                if ch == '"':
                    in_str = True
                elif ch in "{[":
                    stack.append(ch)
                elif ch in "}]":
                    if stack:
                        stack.pop()
                    if not stack:
                        end = i
                        break
            if end is not None:
                candidate = candidate[: end + 1]
            blobs.append(json.loads(candidate))
        except Exception:
            continue
    return blobs


def _dig(node: dict, *paths: str):
    """First non-empty value among dotted paths, e.g. 'price.amount'."""
    for path in paths:
        cur = node
        for part in path.split("."):
            if isinstance(cur, dict):
                cur = cur.get(part)
            elif isinstance(cur, list) and part.isdigit() and int(part) < len(cur):
                cur = cur[int(part)]
            else:
                cur = None
                break
        if cur not in (None, "", [], {}):
            return cur
    return None


def _payload_price(node: dict) -> Optional[float]:
    raw = _dig(node, "price.amount", "price.value", "price", "canon", "rent", "precio", "offers.price", "salePrice")
    if isinstance(raw, dict):
        raw = raw.get("amount") or raw.get("value")
    val = coerce_float(raw)
    if val is None or not (MIN_MINED_PRICE <= val <= MAX_MINED_PRICE):
        return None
    return val


def _payload_images(node: dict, profile: SourceProfile) -> List[str]:
    raw = _dig(node, "images", "img", "image", "photos", "pictures")
    items = raw if isinstance(raw, list) else [raw] if raw else []
    out = []
    for it in items:
        src = it
        if isinstance(it, dict):
            src = it.get("image") or it.get("url") or it.get("src") or it.get("secure_url")
        url = normalize_image_url(profile.base_url, src if isinstance(src, str) else None)
        if url and url not in out:
            out.append(url)
    return out


def _payload_listing(node: dict, profile: SourceProfile) -> Optional[dict]:
    price = _payload_price(node)
    if price is None:
        return None
    title = _dig(node, "title", "name", "nombre")
    href = _dig(node, "link", "url", "permalink", "detailUrl", "seo.url")
    area = coerce_float(_dig(node, "m2", "area", "builtArea", "area_built", "floorSize.value", "surface", "m2Built"))
    rooms = coerce_float(_dig(node, "bedrooms", "rooms", "habitaciones", "numberOfRooms", "alcobas"))
    # a bare {"price": ...} fragment is not a listing
    if not (title or href) or (area is None and rooms is None and not _dig(node, "address", "locations", "location")):
        return None

    admin = coerce_float(_dig(node, "commonExpenses.amount", "admin", "administracion", "adminFee"))
    if _dig(node, "price.admin_included") is True:
        admin = 0.0
    address = _dig(node, "address", "address.streetAddress", "direccion")
    if isinstance(address, dict):
        address = address.get("streetAddress") or address.get("name")
    neighborhood = _dig(
        node, "locations.location_main.name", "neighborhood", "barrio",
        "location.neighborhood", "address.addressLocality",
    )
    city = _dig(node, "locations.city.0.name", "locations.city.name", "city", "ciudad", "location.city")
    lat = coerce_float(_dig(node, "latitude", "lat", "geo.latitude", "location.lat"))
    lng = coerce_float(_dig(node, "longitude", "lng", "lon", "geo.longitude", "location.lng"))
    facilities = _dig(node, "facilities", "amenities", "caracteristicas", "features")

    return {
        "id": _dig(node, "id", "code", "propertyId"),
        "title": str(title) if title else None,
        "price": price,
        "admin_fee": admin or 0.0,
        "area": area if area and area > 0 else None,
        "rooms": int(rooms) if rooms is not None else None,
        "bathrooms": int(coerce_float(_dig(node, "bathrooms", "banos", "numberOfBathroomsTotal")) or 0) or None,
        "parking": int(coerce_float(_dig(node, "garage", "garages", "parking", "parqueaderos")) or 0) or None,
        "stratum": int(coerce_float(_dig(node, "stratum", "estrato")) or 0),
        "location": str(address) if address else None,
        "neighborhood": str(neighborhood) if isinstance(neighborhood, str) else None,
        "city": str(city) if isinstance(city, str) else None,
        "coordinates": (lat, lng) if lat is not None and lng is not None else None,
        "amenities": split_amenities(facilities) if isinstance(facilities, (list, str)) else [],
        "images": _payload_images(node, profile),
        "href": make_absolute(profile.base_url, href) if isinstance(href, str) else None,
        "description": _dig(node, "description", "descripcion"),
    }


def mine_payload(html: str, profile: SourceProfile) -> List[dict]:
    """Walk every embedded JSON tree and pull out listing-like objects."""
    out: List[dict] = []
    seen: set = set()
    for blob in _json_candidates(html):
        for node in _flatten_dicts(blob):
            try:
                listing = _payload_listing(node, profile)
            except Exception:
                continue
            if not listing:
                continue
            key = listing.get("href") or (listing.get("title"), listing.get("price"))
            if key in seen:
                continue
            seen.add(key)
            out.append(listing)
    return out


# --- tier C (2): anchors + surrounding text -----------------------------------

_CONTAINER_HINT = re.compile(r"card|listing|property|item|result|inmueble|posting", re.I)


def _anchor_container(a: Tag) -> Tag:
    node = a
    for parent in list(a.parents)[:6]:
        if not isinstance(parent, Tag) or parent.name in ("body", "html"):
            break
        node = parent
        cls = " ".join(parent.get("class", []))
        if parent.name in ("article", "li") or _CONTAINER_HINT.search(cls):
            return parent
    return node


def mine_anchors(html: str, profile: SourceProfile) -> List[dict]:
    """
    Last resort: detail-page anchors and the text around them. A record is kept
    only when the surrounding text carries a plausible price.
    """
    soup = BeautifulSoup(html, "lxml")
    out: List[dict] = []
    seen: set[str] = set()
    for a in soup.select("a[href]"):
        href = a.get("href") or ""
        if not _matches_detail(href, profile):
            continue
        url = make_absolute(profile.base_url, href)
        if not url or url in seen:
            continue
        box = _anchor_container(a)
        text = _text(box) or ""
        price = pick_price(text)
        if price is None:
            continue
        seen.add(url)
        loc = extract_location_from_text(text) or {}
        title = a.get("title") or _text(a) or None
        if title and len(title) > 140:
            title = title[:140]
        out.append({
            "title": title,
            "price": price,
            "admin_fee": extract_admin_fee(text, price),
            "area": extract_area(text),
            "rooms": extract_rooms(text),
            "bathrooms": extract_bathrooms(text),
            "parking": extract_parking(text),
            "stratum": extract_stratum(text),
            "location": loc.get("neighborhood"),
            "neighborhood": loc.get("neighborhood"),
            "city": loc.get("city"),
            "images": _card_images(box, profile),
            "href": url,
            "description": text[:500],
        })
    return out


# --- raw dict -> Property ------------------------------------------------------

def _make_id(source: str, url: Optional[str], title: Optional[str], price) -> str:
    digest = hashlib.sha1(f"{url}|{title}|{price}".encode("utf-8")).hexdigest()[:8]
    return f"{source}_{int(time.time() * 1000)}_{digest}"


def build_property(raw: dict, profile: SourceProfile, location: Optional[LocationInfo] = None) -> Property:
    """Normalize a raw extraction from any tier into a Property."""
    url = make_absolute(profile.base_url, raw.get("href")) if raw.get("href") else None
    title = re.sub(r"\s+", " ", raw["title"]).strip() if raw.get("title") else None
    price = coerce_float(raw.get("price"))
    admin_fee = coerce_float(raw.get("admin_fee")) or 0.0
    total = (price or 0.0) + admin_fee
    area = coerce_float(raw.get("area"))
    stratum = int(raw.get("stratum") or 0)

    address = (raw.get("location") or raw.get("address") or "").strip()
    neighborhood = raw.get("neighborhood")
    if not neighborhood and address:
        found = extract_location_from_text(address)
        if found and found.get("neighborhood"):
            neighborhood = found["neighborhood"]
        elif "," in address:
            neighborhood = address.split(",")[1].strip() or None
        else:
            neighborhood = address
    city = canonical_city(raw.get("city")) or (location.city if location else None) or FALLBACK_CITY

    coords = raw.get("coordinates") or (0.0, 0.0)
    images = [u for u in (normalize_image_url(profile.base_url, i) for i in raw.get("images") or []) if u]

    prop = Property(
        id=_make_id(profile.id, url, title, price),
        title=title,
        description=raw.get("description"),
        price=price,
        admin_fee=admin_fee,
        total_price=total,
        area=area,
        rooms=raw.get("rooms"),
        bathrooms=raw.get("bathrooms"),
        parking=raw.get("parking"),
        stratum=stratum if 1 <= stratum <= 6 else 0,
        location=PropertyLocation(
            address=address,
            neighborhood=neighborhood,
            city=city,
            coordinates=(float(coords[0] or 0.0), float(coords[1] or 0.0)),
        ),
        amenities=list(raw.get("amenities") or []),
        images=list(dict.fromkeys(images)),
        url=url,
        source=profile.id,
        price_per_m2=round(total / area) if area and area > 0 else 0,
    )
    log.debug(
        "SCRAPE ✔ [%s] %s | $%s | rooms=%s baths=%s area=%s | %s",
        profile.id, prop.title, prop.total_price, prop.rooms, prop.bathrooms, prop.area, prop.url,
    )
    return prop
