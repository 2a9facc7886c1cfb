import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import MongoClient, UpdateOne

from backend.arriendos.settings import MONGO_DB, MONGO_URI
from backend.py_models.property import Property

log = logging.getLogger("arriendos.store")

SIMILAR_ROOMS_DELTA = 1
SIMILAR_AREA_RATIO = 0.2
SIMILAR_PRICE_RATIO = 1.3


def to_document(p: Property) -> Dict[str, Any]:
    """Mongo document for a scored property, keyed for upsert on url (or id)."""
    loc = p.location
    return {
        "externalId": p.id,
        "title": p.title,
        "description": p.description,
        "price": p.price,
        "adminFee": p.admin_fee,
        "totalPrice": p.total_price,
        "area": p.area,
        "rooms": p.rooms,
        "bathrooms": p.bathrooms,
        "parking": p.parking,
        "stratum": p.stratum,
        "location": {
            "address": loc.address if loc else "",
            "neighborhood": loc.neighborhood if loc else None,
            "city": loc.city if loc else "",
            "coordinates": list(loc.coordinates) if loc else [0.0, 0.0],
        },
        "amenities": p.amenities,
        "images": p.images,
        "url": p.url,
        "source": p.source,
        "scrapedDate": p.scraped_date,
        "pricePerM2": p.price_per_m2,
        "score": p.score,
        "isActive": p.is_active,
        "updatedAt": datetime.now(timezone.utc),
    }


def similar_query(p: Property) -> Dict[str, Any]:
    """Listings like `p`: rooms ±1, area ±20%, total price up to 1.3x, same city."""
    query: Dict[str, Any] = {"isActive": True}
    if p.url:
        query["url"] = {"$ne": p.url}
    if p.rooms is not None:
        query["rooms"] = {"$gte": p.rooms - SIMILAR_ROOMS_DELTA, "$lte": p.rooms + SIMILAR_ROOMS_DELTA}
    if p.area:
        query["area"] = {"$gte": p.area * (1 - SIMILAR_AREA_RATIO), "$lte": p.area * (1 + SIMILAR_AREA_RATIO)}
    if p.total_price:
        query["totalPrice"] = {"$lte": p.total_price * SIMILAR_PRICE_RATIO}
    if p.location and p.location.city:
        query["location.city"] = p.location.city
    return query


class PropertyStore:
    """
    Best-effort sink for ranked properties. Pass `collection` directly (tests)
    or let it connect from MONGO_URI.
    """

    def __init__(self, collection=None, uri: str = MONGO_URI, db: str = MONGO_DB, name: str = "properties"):
        self._client = None
        if collection is None:
            self._client = MongoClient(uri)
            collection = self._client[db][name]
        self.collection = collection

    def upsert(self, props: List[Property]) -> int:
        ops = []
        for p in props:
            doc = to_document(p)
            key = {"url": p.url} if p.url else {"externalId": p.id}
            ops.append(UpdateOne(key, {"$set": doc}, upsert=True))
        if not ops:
            return 0
        res = self.collection.bulk_write(ops, ordered=False)
        log.info(
            "DB UPSERT BULK | ops=%d upserted=%d modified=%d matched=%d",
            len(ops),
            getattr(res, "upserted_count", 0),
            getattr(res, "modified_count", 0),
            getattr(res, "matched_count", 0),
        )
        return len(ops)

    def find_similar(self, p: Property, limit: int = 10) -> List[Dict[str, Any]]:
        cursor = self.collection.find(similar_query(p)).sort("score", -1).limit(limit)
        return list(cursor)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


def default_store() -> Optional[PropertyStore]:
    if not MONGO_URI:
        return None
    return PropertyStore()
