"""
Static Colombian location data: cities, neighborhoods and the per-site URL slug tables.

Everything here is built once at import and exposed read-only
(MappingProxyType / tuples). Keys are lowercase and keep their accents;
lookups normalize both sides with `normalize_text`.
"""
import re
import unicodedata
from types import MappingProxyType
from typing import Mapping, Tuple


def normalize_text(text: str | None) -> str:
    """Lowercase, strip diacritics, keep only [a-z0-9 ] and collapse spaces."""
    if not text:
        return ""
    t = unicodedata.normalize("NFD", str(text).lower())
    t = "".join(ch for ch in t if unicodedata.category(ch) != "Mn")
    t = re.sub(r"[^a-z0-9\s]", " ", t)
    return re.sub(r"\s+", " ", t).strip()


def _frozen(d: dict) -> Mapping:
    return MappingProxyType(dict(d))


# --- cities ------------------------------------------------------------------
# canonical name -> (DANE code, aliases)
CITIES: Mapping[str, Tuple[str, Tuple[str, ...]]] = _frozen({
    "bogotá": ("11001", ("bogota", "santafe de bogota", "distrito capital", "bogota dc")),
    "medellín": ("05001", ("medellin", "ciudad de la eterna primavera")),
    "cali": ("76001", ("santiago de cali", "sucursal del cielo")),
    "barranquilla": ("08001", ("curramba", "puerta de oro")),
    "cartagena": ("13001", ("cartagena de indias", "ciudad heroica")),
    "bucaramanga": ("68001", ("ciudad bonita", "ciudad de los parques")),
    "pereira": ("66001", ("ciudad sin puertas", "perla del otún")),
    "ibagué": ("73001", ("ibague", "ciudad musical")),
    "manizales": ("17001", ("ciudad de las puertas abiertas",)),
    "villavicencio": ("50001", ("villavo", "puerta del llano")),
    "pasto": ("52001", ("ciudad sorpresa",)),
    "montería": ("23001", ("monteria", "perla del sinú")),
    "valledupar": ("20001", ("ciudad de los santos reyes",)),
    "neiva": ("41001", ("capital del huila",)),
    "soledad": ("08756", ()),
    "armenia": ("63001", ("ciudad milagro",)),
    "soacha": ("25754", ()),
    "popayán": ("19001", ("popayan", "ciudad blanca")),
})

FALLBACK_CITY = "bogotá"

DEPARTMENTS: Mapping[str, str] = _frozen({
    "bogotá": "Bogotá D.C.",
    "medellín": "Antioquia",
    "cali": "Valle del Cauca",
    "barranquilla": "Atlántico",
    "cartagena": "Bolívar",
    "bucaramanga": "Santander",
    "pereira": "Risaralda",
    "ibagué": "Tolima",
    "manizales": "Caldas",
    "villavicencio": "Meta",
    "pasto": "Nariño",
    "montería": "Córdoba",
    "valledupar": "Cesar",
    "neiva": "Huila",
    "soledad": "Atlántico",
    "armenia": "Quindío",
    "soacha": "Cundinamarca",
    "popayán": "Cauca",
})

# --- neighborhoods -----------------------------------------------------------
NEIGHBORHOODS: Mapping[str, Tuple[str, ...]] = _frozen({
    "bogotá": (
        # localidades
        "usaquén", "chapinero", "santa fe", "san cristóbal", "tunjuelito", "bosa",
        "kennedy", "fontibón", "engativá", "suba", "barrios unidos", "teusaquillo",
        "los mártires", "antonio nariño", "puente aranda", "la candelaria",
        "rafael uribe uribe", "ciudad bolívar", "sumapaz",
        # barrios
        "zona rosa", "chicó", "rosales", "el nogal", "la macarena", "centro",
        "cedritos", "santa bárbara", "el virrey", "la cabrera", "el retiro",
        "las aguas", "egipto", "san felipe", "niza", "alhambra", "lisboa",
        "santa cecilia", "bilbao", "suba centro", "gratamira", "san patricio",
        "cedro narváez", "country club", "quinta camacho", "chapinero alto",
        "galerías", "la soledad", "palermo", "modelia", "hayuelos", "salitre",
    ),
    "medellín": (
        "el poblado", "laureles", "estadio", "la candelaria medellín", "buenos aires",
        "la américa", "san javier", "el dorado", "manrique", "aranjuez", "castilla",
        "doce de octubre", "robledo", "villa hermosa", "belén", "guayabal",
        "envigado", "sabaneta", "itagüí", "bello", "copacabana", "girardota",
        "barbosa", "zona rosa medellín", "manila", "patio bonito", "conquistadores",
        "los balsos", "alejandría", "el tesoro", "san lucas", "loma de los bernal",
        "provenza", "golden mile", "oviedo",
    ),
    "cali": (
        "granada", "san fernando", "el peñón", "ciudad jardín", "santa mónica",
        "el ingenio", "pance", "la flora", "normandía", "santa rita", "san antonio",
        "el refugio", "chipichape", "centenario", "versalles", "santa teresita",
        "el lido", "juanambú", "la base", "los andes", "la merced",
    ),
    "barranquilla": (
        "el prado", "alto prado", "ciudad jardín barranquilla", "el golf",
        "villa country", "villa santos", "riomar", "el limón", "las flores",
        "boston", "el recreo", "la concepción",
    ),
    "bucaramanga": (
        "cabecera", "la flora bucaramanga", "san alonso", "provenza bucaramanga",
        "álamos", "sotomayor", "mutis", "garcía rovira",
    ),
})

# A locality or popular area name expands to the sub-neighborhoods listings
# usually print instead of it.
NEIGHBORHOOD_VARIATIONS: Mapping[str, Tuple[str, ...]] = _frozen({
    "usaquén": ("cedritos", "santa bárbara", "country club", "san patricio", "santa barbara alta", "el contador", "toberín"),
    "chapinero": ("chicó", "rosales", "zona rosa", "quinta camacho", "la cabrera", "el nogal", "el retiro", "el virrey", "chapinero alto", "zona g"),
    "suba": ("niza", "gratamira", "suba centro", "alhambra", "colina campestre", "mazurén"),
    "teusaquillo": ("galerías", "la soledad", "palermo", "park way", "la esmeralda"),
    "la candelaria": ("candelaria", "las aguas", "egipto", "centro histórico"),
    "santa fe": ("la macarena", "las nieves", "la perseverancia"),
    "engativá": ("normandía bogotá", "bochica", "las ferias", "boyacá real"),
    "fontibón": ("modelia", "hayuelos", "salitre", "ciudad salitre"),
    "kennedy": ("castilla bogotá", "timiza", "américas"),
    "el poblado": ("poblado", "manila", "provenza", "los balsos", "el tesoro", "golden mile", "oviedo", "alejandría", "patio bonito", "san lucas"),
    "laureles": ("estadio", "conquistadores", "la américa"),
})

# --- URL slug tables per site family ------------------------------------------
CITY_URL_MAPPINGS: Mapping[str, Mapping[str, str]] = _frozen({
    "standard": _frozen({
        "bogotá": "bogota", "medellín": "medellin", "cali": "cali",
        "barranquilla": "barranquilla", "cartagena": "cartagena",
        "bucaramanga": "bucaramanga", "pereira": "pereira", "ibagué": "ibague",
    }),
    "properati": _frozen({
        "bogotá": "bogota-d-c-colombia",
        "medellín": "medellin-antioquia-colombia",
        "cali": "cali-valle-del-cauca-colombia",
        "barranquilla": "barranquilla-atlantico-colombia",
        "cartagena": "cartagena-bolivar-colombia",
        "bucaramanga": "bucaramanga-santander-colombia",
        "pereira": "pereira-risaralda-colombia",
        "ibagué": "ibague-tolima-colombia",
    }),
    "mercadolibre": _frozen({
        "bogotá": "bogota",
        "medellín": "antioquia/medellin",
        "cali": "valle-del-cauca/cali",
        "barranquilla": "atlantico/barranquilla",
        "cartagena": "bolivar/cartagena",
        "bucaramanga": "santander/bucaramanga",
        "pereira": "risaralda/pereira",
        "ibagué": "tolima/ibague",
    }),
})

_STANDARD_NEIGHBORHOOD_SLUGS = {
    "usaquén": "usaquen", "chapinero": "chapinero", "zona rosa": "zona-rosa",
    "chicó": "chico", "rosales": "rosales", "cedritos": "cedritos",
    "santa bárbara": "santa-barbara", "suba": "suba", "kennedy": "kennedy",
    "engativá": "engativa", "fontibón": "fontibon", "centro": "centro",
    "la candelaria": "la-candelaria", "el poblado": "el-poblado",
    "laureles": "laureles", "granada": "granada",
}

NEIGHBORHOOD_URL_MAPPINGS: Mapping[str, Mapping[str, str]] = _frozen({
    "standard": _frozen(_STANDARD_NEIGHBORHOOD_SLUGS),
    "pads": _frozen({
        "usaquén": "usaquen", "chapinero": "chapinero", "zona rosa": "chapinero/zona-rosa",
        "chicó": "chapinero/chico", "rosales": "chapinero/rosales", "cedritos": "cedritos",
        "santa bárbara": "santa-barbara", "suba": "suba", "centro": "centro",
        "la candelaria": "centro/la-candelaria", "el poblado": "el-poblado",
        "laureles": "laureles", "granada": "granada",
    }),
    "mercadolibre": _frozen({
        **{k: v for k, v in _STANDARD_NEIGHBORHOOD_SLUGS.items()
           if k not in ("el poblado", "laureles", "granada")},
        "la candelaria": "candelaria",
    }),
    # trovit slugs are `{standard}-{city slug}`, built in location.py
    "trovit": _frozen(_STANDARD_NEIGHBORHOOD_SLUGS),
    "rentola": _frozen({
        "suba": "bogota-localidad-suba",
        "usaquén": "bogota-localidad-usaquen",
        "cedritos": "bogota-localidad-usaquen",
        "chapinero": "bogota-localidad-chapinero",
        "zona rosa": "bogota-localidad-chapinero",
        "kennedy": "bogota-localidad-kennedy",
        "engativá": "bogota-localidad-engativa",
        "fontibón": "bogota-localidad-fontibon",
    }),
})

# Tokens that mean "any neighborhood" when typed alone.
WILDCARD_TOKENS = frozenset({"*", ".", "?", "+", "!", "@", "#", "$", "%", "^", "&"})
