"""
Per-site capability records. One immutable SourceProfile per listing site;
the generic SourceAdapter reads everything site-specific from here.
"""
from types import MappingProxyType
from typing import Iterable, List, Mapping

from backend.py_models.source import RateLimitConfig, SourceProfile, SourceSelectors, UrlTemplate

_NEXT = ".pagination .next, [aria-label='Next'], .siguiente"

_PROFILES = (
    SourceProfile(
        id="fincaraiz",
        name="Fincaraiz",
        base_url="https://www.fincaraiz.com.co",
        priority=1,
        rate_limit=RateLimitConfig(requests_per_minute=30, delay_between_requests=2000, max_concurrent_requests=2),
        selectors=SourceSelectors(
            property_card="[class*='property'], .property-item, [data-testid='property-card'], .listing-card",
            title="h3, h4, .property-title, [data-testid='property-title'], .listing-title",
            price=".price, .precio, [data-testid='property-price'], .listing-price",
            area=".area, .superficie, .m2, [data-testid='property-area'], .property-area",
            rooms=".rooms, .habitaciones, .alcobas, [data-testid='property-rooms'], .bedrooms",
            bathrooms=".bathrooms, .banos, [data-testid='property-bathrooms']",
            location=".location, .ubicacion, .direccion, [data-testid='property-location'], .address",
            amenities=".amenities, .caracteristicas, .features",
            images="img, .property-image img, .listing-image img",
            link="a, .property-link, .listing-link",
            next_page=_NEXT,
        ),
        url_template=UrlTemplate(
            base="https://www.fincaraiz.com.co/arriendo/apartamento/{city}",
            neighborhood="/{neighborhood}",
        ),
        detail_link_patterns=(r"/apartamento-en-arriendo", r"/casa-en-arriendo", r"/inmueble/", r"\d{8,}"),
    ),
    SourceProfile(
        id="metrocuadrado",
        name="Metrocuadrado",
        base_url="https://www.metrocuadrado.com",
        priority=2,
        rate_limit=RateLimitConfig(requests_per_minute=25, delay_between_requests=2500, max_concurrent_requests=2),
        selectors=SourceSelectors(
            property_card="[class*='property'], [class*='result'], .result-item, .listing-card, .property-item",
            title=".listing-title, .property-title, .inmueble-titulo, .title",
            price=".price, .listing-price, .precio, .valor, .property-price",
            area=".area, .surface, .superficie, .metros, .m2",
            rooms=".rooms, .bedrooms, .habitaciones, .alcobas",
            bathrooms=".bathrooms, .banos",
            location=".location, .address, .ubicacion, .direccion, .barrio",
            amenities=".amenities, .features, .caracteristicas, .servicios",
            images=".listing-image img, .property-image img, .foto img, img",
            link="a, .listing-link, .property-link",
            next_page=".pagination .next, .pager .next, .siguiente",
        ),
        url_template=UrlTemplate(
            base="https://www.metrocuadrado.com/inmuebles/arriendo/apartamento/{city}/",
            neighborhood="{neighborhood}/",
        ),
        detail_link_patterns=(r"/inmueble/", r"/arriendo/apartamento/.+-\d+"),
    ),
    SourceProfile(
        id="trovit",
        name="Trovit",
        base_url="https://casas.trovit.com.co",
        priority=3,
        rate_limit=RateLimitConfig(requests_per_minute=20, delay_between_requests=3000, max_concurrent_requests=1),
        selectors=SourceSelectors(
            property_card="article, [class*='listing'], .js-item-list-element, .item",
            title=".item_title, .js-item-title, h3, h4",
            price=".item_price, .price",
            area=".item_surface, .surface",
            rooms=".item_rooms, .rooms",
            bathrooms=".item_bathrooms, .bathrooms",
            location=".item_location, .location",
            amenities=".item_features, .features",
            images=".item_image img, img",
            link=".item_link, a",
            next_page=".pagination .next, .js-pagination-next",
        ),
        url_template=UrlTemplate(
            base="https://casas.trovit.com.co/arriendo-apartamento-{city}",
            neighborhood="https://casas.trovit.com.co/arriendo-apartamento-{neighborhood}",
            neighborhood_mapping="trovit",
        ),
        detail_link_patterns=(r"/listing/", r"rd\?", r"trovit\.com\.co/.+\d{6,}"),
    ),
    SourceProfile(
        id="arriendo",
        name="Arriendo",
        base_url="https://www.arriendo.com",
        priority=6,
        rate_limit=RateLimitConfig(requests_per_minute=25, delay_between_requests=2500, max_concurrent_requests=2),
        selectors=SourceSelectors(
            property_card="[class*='listing'], .listing, .property-item, [class*='property'], .inmueble",
            title=".property-title, .title, h3, h4, [class*='title']",
            price=".property-price, .price, .precio, [class*='price']",
            area=".property-area, .area, .superficie, [class*='area']",
            rooms=".property-rooms, .rooms, .habitaciones, [class*='room']",
            location=".property-location, .location, .ubicacion, [class*='location']",
            amenities=".property-features, .features, .amenities",
            images=".property-image img, img",
            next_page=".pagination .next",
        ),
        url_template=UrlTemplate(base="https://www.arriendo.com/buscar"),
        detail_link_patterns=(r"/inmueble/", r"/arriendo/.+\d{4,}"),
        use_browser=False,
    ),
    SourceProfile(
        id="ciencuadras",
        name="Ciencuadras",
        base_url="https://www.ciencuadras.com",
        priority=7,
        rate_limit=RateLimitConfig(requests_per_minute=20, delay_between_requests=3000, max_concurrent_requests=1),
        selectors=SourceSelectors(
            property_card="article, .property-card, .inmueble, [class*='property'], [class*='card']",
            title=".property-title, .titulo, h3, h4, .title, [class*='title']",
            price=".property-price, .precio, .price, [class*='price'], [class*='precio']",
            area=".property-area, .area, .superficie, [class*='area']",
            rooms=".property-rooms, .habitaciones, .rooms, [class*='room']",
            location=".property-location, .ubicacion, .location, [class*='location']",
            amenities=".property-amenities, .caracteristicas, .amenities",
            images=".property-image img, img",
            next_page=".pagination .next",
        ),
        url_template=UrlTemplate(
            base="https://www.ciencuadras.com/arriendo/apartamento/{city}",
            neighborhood="/{neighborhood}",
        ),
        detail_link_patterns=(r"/inmueble/", r"/arriendo/apartamento/.+\d{4,}"),
    ),
    SourceProfile(
        id="mercadolibre",
        name="MercadoLibre",
        base_url="https://inmuebles.mercadolibre.com.co",
        priority=8,
        rate_limit=RateLimitConfig(requests_per_minute=20, delay_between_requests=3000, max_concurrent_requests=1),
        selectors=SourceSelectors(
            property_card=".ui-search-result, .ui-search-layout__item, .item",
            title=".ui-search-item__title, .poly-component__title, .item-title, h2, h3",
            price=".andes-money-amount__fraction, .price-tag-fraction, .item-price, [class*='price']",
            area=".ui-search-card-attributes__attribute, .poly-attributes-list__item, .item-attribute",
            rooms=".ui-search-card-attributes__attribute, .poly-attributes-list__item, .item-attribute",
            bathrooms=".ui-search-card-attributes__attribute, .poly-attributes-list__item",
            location=".ui-search-item__location, .poly-component__location, .item-location",
            images=".ui-search-result-image__element, .poly-component__picture, img",
            next_page=".andes-pagination__button--next a",
        ),
        url_template=UrlTemplate(
            base="https://inmuebles.mercadolibre.com.co/apartamentos/arriendo/{city}",
            neighborhood="/{neighborhood}",
            city_mapping="mercadolibre",
            neighborhood_mapping="mercadolibre",
            page_param="_Desde_{offset}",
            results_per_page=50,
        ),
        detail_link_patterns=(r"MCO-?\d+", r"articulo\.mercadolibre"),
    ),
    SourceProfile(
        id="properati",
        name="Properati",
        base_url="https://www.properati.com.co",
        priority=10,
        rate_limit=RateLimitConfig(requests_per_minute=30, delay_between_requests=2000, max_concurrent_requests=2),
        selectors=SourceSelectors(
            property_card=".listing-card, .property-item, [data-qa='posting PROPERTY'], .posting-card, .result-item",
            title="[data-qa='POSTING_TITLE'], .posting-title, .listing-title, h3, h4",
            price="[data-qa='POSTING_PRICE'], .posting-price, .price, [class*='price']",
            area="[data-qa='POSTING_FEATURES'], .posting-features, .features, .property-features",
            rooms="[data-qa='POSTING_FEATURES'], .posting-features, .features, .property-features",
            bathrooms="[data-qa='POSTING_FEATURES'], .posting-features, .features, .property-features",
            location="[data-qa='POSTING_LOCATION'], .posting-location, .location, [class*='location']",
            amenities="[data-qa='POSTING_FEATURES'], .posting-features, .features, .property-features",
            images=".posting-image img, .listing-image img, img",
            next_page=_NEXT,
        ),
        url_template=UrlTemplate(
            base="https://www.properati.com.co/s/{city}/apartamento/arriendo",
            neighborhood="?q={neighborhood}",
            city_mapping="properati",
        ),
        detail_link_patterns=(r"/detalle/", r"/propiedad/"),
    ),
    SourceProfile(
        id="pads",
        name="PADS",
        base_url="https://pads.com.co",
        priority=11,
        rate_limit=RateLimitConfig(requests_per_minute=20, delay_between_requests=3000, max_concurrent_requests=1),
        selectors=SourceSelectors(
            property_card=".property-listing, .listing-card, .apartment-card, [data-testid='property-card'], .search-result-item",
            title=".property-name, .listing-title, h3, h4, [data-testid='property-name']",
            price=".rent-price, .price, [data-testid='rent-price'], .listing-price",
            area=".square-feet, .sqft, [data-testid='square-feet'], .area",
            rooms=".bedrooms, [data-testid='bedrooms'], .bed-count",
            bathrooms=".bathrooms, [data-testid='bathrooms'], .bath-count",
            location=".property-address, .address, [data-testid='property-address'], .location",
            amenities=".amenities, .features, [data-testid='amenities'], .property-features",
            images=".property-image img, img, [data-testid='property-image'] img",
            link="a, .property-link",
            next_page=_NEXT,
        ),
        url_template=UrlTemplate(
            base="https://pads.com.co/inmuebles-en-arriendo/{city}",
            neighborhood="/{neighborhood}",
            neighborhood_mapping="pads",
        ),
        detail_link_patterns=(r"/inmueble/", r"/propiedad/", r"/apartamento-"),
    ),
    SourceProfile(
        id="rentola",
        name="Rentola",
        base_url="https://rentola.com",
        priority=12,
        rate_limit=RateLimitConfig(requests_per_minute=15, delay_between_requests=4000, max_concurrent_requests=1),
        selectors=SourceSelectors(
            property_card=".listing-card, .property-item, .rental-listing, [data-testid='listing'], .search-result, .listing, .property, .card, article",
            title=".listing-title, .property-title, h3, h4, h2, [data-testid='listing-title'], .title, .name",
            price=".listing-price, .price, .rent-price, [data-testid='listing-price'], .cost, .amount, .value",
            area=".listing-area, .area, .size, [data-testid='listing-area'], .square-meters, .m2, .sqm",
            rooms=".listing-rooms, .bedrooms, .rooms, [data-testid='bedrooms'], .bed-count, .beds, .habitaciones",
            bathrooms=".listing-bathrooms, .bathrooms, [data-testid='bathrooms'], .bath-count, .baths",
            location=".listing-location, .location, .address, [data-testid='listing-location'], .neighborhood, .area-name",
            amenities=".listing-amenities, .amenities, .features, [data-testid='amenities']",
            images=".listing-image img, .property-image img, img, [data-testid='listing-image'] img",
            link="a, .listing-link, .property-link",
            next_page=".pagination .next, [aria-label='Next'], .siguiente, .pager-next",
        ),
        url_template=UrlTemplate(
            base="https://rentola.com/for-rent/co/{city}",
            neighborhood="https://rentola.com/for-rent/co/{neighborhood}",
            neighborhood_mapping="rentola",
        ),
        detail_link_patterns=(r"/listings/", r"/for-rent/.+\d{4,}"),
    ),
)

SOURCES: Mapping[str, SourceProfile] = MappingProxyType({p.id: p for p in _PROFILES})

# arriendo.com is registered but left out of the default fan-out
DEFAULT_SOURCE_IDS = (
    "ciencuadras", "metrocuadrado", "fincaraiz", "mercadolibre",
    "properati", "trovit", "pads", "rentola",
)


def get_profile(source_id: str) -> SourceProfile | None:
    return SOURCES.get((source_id or "").strip().lower())


def select_profiles(requested: Iterable[str] | None = None) -> List[SourceProfile]:
    """Profiles for the requested ids (unknown ids dropped), or the default set."""
    ids = [s.strip().lower() for s in (requested or []) if s and s.strip()]
    if not ids:
        ids = list(DEFAULT_SOURCE_IDS)
    out: List[SourceProfile] = []
    for sid in dict.fromkeys(ids):
        prof = SOURCES.get(sid)
        if prof is None:
            # allow display names ("MercadoLibre") as well as ids
            prof = next((p for p in _PROFILES if p.name.lower() == sid), None)
        if prof is not None and prof not in out:
            out.append(prof)
    return out
