"""
Tests for the Mongo property sink, against an in-memory collection double.
"""

import pytest

from backend.arriendos.store import PropertyStore, similar_query, to_document
from factories import make_property


class _Result:
    upserted_count = 2
    modified_count = 0
    matched_count = 0


class _Cursor:
    def __init__(self, docs):
        self.docs = docs
        self.sorted_by = None
        self.limited_to = None

    def sort(self, key, direction):
        self.sorted_by = (key, direction)
        return self

    def limit(self, n):
        self.limited_to = n
        return self

    def __iter__(self):
        return iter(self.docs[: self.limited_to])


class FakeCollection:
    def __init__(self, docs=None):
        self.docs = docs or []
        self.bulk_calls = []
        self.queries = []
        self.cursor = None

    def bulk_write(self, ops, ordered=True):
        self.bulk_calls.append((ops, ordered))
        return _Result()

    def find(self, query):
        self.queries.append(query)
        self.cursor = _Cursor(self.docs)
        return self.cursor


class TestDocuments:

    def test_camel_case_fields(self):
        doc = to_document(make_property(price=2_000_000, admin_fee=250_000))
        assert doc["totalPrice"] == 2_250_000
        assert doc["adminFee"] == 250_000
        assert doc["location"]["city"] == "bogotá"
        assert "updatedAt" in doc

    def test_similar_query(self):
        p = make_property(rooms=3, area=100, price=3_000_000, url="https://x.co/1")
        q = similar_query(p)
        assert q["isActive"] is True
        assert q["url"] == {"$ne": "https://x.co/1"}
        assert q["rooms"] == {"$gte": 2, "$lte": 4}
        assert q["area"]["$gte"] == pytest.approx(80)
        assert q["area"]["$lte"] == pytest.approx(120)
        assert q["totalPrice"]["$lte"] == pytest.approx(3_900_000)
        assert q["location.city"] == "bogotá"

    def test_similar_query_skips_unknowns(self):
        q = similar_query(make_property(rooms=None, area=None, url=None, location=None))
        assert set(q) == {"isActive", "totalPrice"}


class TestPropertyStore:

    def test_upsert_keys_on_url_then_id(self):
        coll = FakeCollection()
        store = PropertyStore(collection=coll)
        props = [make_property(url="https://x.co/1"), make_property(url=None, id="pads_1")]
        assert store.upsert(props) == 2

        ops, ordered = coll.bulk_calls[0]
        assert ordered is False
        assert ops[0]._filter == {"url": "https://x.co/1"}
        assert ops[1]._filter == {"externalId": "pads_1"}

    def test_upsert_nothing(self):
        coll = FakeCollection()
        assert PropertyStore(collection=coll).upsert([]) == 0
        assert coll.bulk_calls == []

    def test_find_similar(self):
        coll = FakeCollection(docs=[{"n": i} for i in range(20)])
        found = PropertyStore(collection=coll).find_similar(make_property(), limit=5)
        assert len(found) == 5
        assert coll.cursor.sorted_by == ("score", -1)
        assert coll.queries[0]["isActive"] is True
