from itertools import count

from backend.py_models.property import Property, PropertyLocation

_ids = count(1)


def make_property(**overrides) -> Property:
    """A valid Bogotá listing; override any field (location fields by name)."""
    n = next(_ids)
    loc = {
        "address": overrides.pop("address", "Calle 140 # 12-30"),
        "neighborhood": overrides.pop("neighborhood", "Usaquén"),
        "city": overrides.pop("city", "bogotá"),
    }
    price = overrides.pop("price", 2_500_000)
    admin_fee = overrides.pop("admin_fee", 0)
    area = overrides.pop("area", 80)
    fields = {
        "id": f"fincaraiz_{n}",
        "title": f"Apartamento en arriendo {n}",
        "source": "fincaraiz",
        "price": price,
        "admin_fee": admin_fee,
        "total_price": price + admin_fee,
        "area": area,
        "rooms": 3,
        "bathrooms": 2,
        "url": f"https://www.fincaraiz.com.co/apartamento-en-arriendo/{n}",
        "location": PropertyLocation(**loc),
        "price_per_m2": round((price + admin_fee) / area) if area else 0,
    }
    fields.update(overrides)
    return Property(**fields)
