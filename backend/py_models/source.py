from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Tuple


class RateLimitConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    requests_per_minute: int = Field(20, gt=0)
    delay_between_requests: int = Field(3000, ge=0, description="Milliseconds between requests")
    max_concurrent_requests: int = Field(1, gt=0)


class SourceSelectors(BaseModel):
    """CSS selector groups. Each string may hold several comma-joined selectors."""
    model_config = ConfigDict(frozen=True)

    property_card: str
    title: str = "h2, h3, h4, [class*='title']"
    price: str = "[class*='price'], .precio"
    area: str = "[class*='area'], .m2"
    rooms: str = "[class*='room'], .habitaciones"
    bathrooms: str = ".bathrooms, .banos"
    location: str = "[class*='location'], .address"
    amenities: str = ".amenities, .features"
    images: str = "img"
    link: str = "a"
    next_page: Optional[str] = None


class UrlTemplate(BaseModel):
    """How one site spells a search URL.

    `base` must contain `{city}`. `neighborhood` is either a suffix appended to
    the base URL or, when it starts with http, a full replacement URL. The two
    mapping names select slug tables from the location tables.
    """
    model_config = ConfigDict(frozen=True)

    base: str
    neighborhood: str = ""
    city_mapping: str = "standard"
    neighborhood_mapping: str = "standard"
    page_param: str = Field("page={page}", description="Query pair, or a path suffix when it starts with _ or /")
    results_per_page: int = Field(0, description="Used to compute {offset} for offset-paginated sites")


class SourceProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    base_url: str
    priority: int = 99
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    selectors: SourceSelectors
    url_template: UrlTemplate
    detail_link_patterns: Tuple[str, ...] = Field(
        (), description="Regexes that identify listing detail links for anchor mining"
    )
    use_browser: bool = Field(True, description="Whether a headless render is worth trying")
