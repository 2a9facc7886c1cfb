from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from backend.py_models.property import Property


class LocationCriteria(BaseModel):
    city: Optional[str] = None
    neighborhoods: List[str] = Field(default_factory=list)
    zones: List[str] = Field(default_factory=list)


class HardRequirements(BaseModel):
    """Non-negotiable bounds. Any bound left as None is not enforced."""
    operation: str = "arriendo"
    property_types: List[str] = Field(default_factory=list)
    min_rooms: Optional[int] = None
    max_rooms: Optional[int] = None
    min_bathrooms: Optional[int] = None
    max_bathrooms: Optional[int] = None
    min_parking: Optional[int] = None
    max_parking: Optional[int] = None
    min_area: Optional[float] = None
    max_area: Optional[float] = None
    min_total_price: Optional[float] = None
    max_total_price: Optional[float] = None
    min_stratum: Optional[int] = None
    max_stratum: Optional[int] = None
    location: LocationCriteria = Field(default_factory=LocationCriteria)


class PreferenceWeights(BaseModel):
    wet_areas: float = 1.0
    sports: float = 1.0
    amenities: float = 0.8
    location: float = 0.6
    price_per_m2: float = 0.4


class Preferences(BaseModel):
    wet_areas: List[str] = Field(default_factory=list, description="e.g. jacuzzi, sauna, turco")
    sports: List[str] = Field(default_factory=list, description="e.g. gimnasio, piscina, squash")
    amenities: List[str] = Field(default_factory=list)
    location: List[str] = Field(default_factory=list, description="Preferred neighborhoods")
    max_price_per_m2: Optional[float] = Field(None, description="Target COP per m²")
    weights: PreferenceWeights = Field(default_factory=PreferenceWeights)


class PriceRange(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None


class OptionalFilters(BaseModel):
    sources: List[str] = Field(default_factory=list)
    neighborhoods: List[str] = Field(default_factory=list)
    price_range: Optional[PriceRange] = None
    furnished: Optional[bool] = None
    parking: Optional[bool] = None
    pets: Optional[bool] = None


class SearchCriteria(BaseModel):
    hard_requirements: HardRequirements = Field(default_factory=HardRequirements)
    preferences: Preferences = Field(default_factory=Preferences)
    optional_filters: OptionalFilters = Field(default_factory=OptionalFilters)


class PriceBucket(BaseModel):
    range: str
    count: int
    percentage: int


class SearchSummary(BaseModel):
    total_found: int = 0
    hard_matches: int = 0
    average_price: int = 0
    average_price_per_m2: int = 0
    average_area: int = 0
    source_breakdown: Dict[str, int] = Field(default_factory=dict)
    neighborhood_breakdown: Dict[str, int] = Field(default_factory=dict)
    price_distribution: List[PriceBucket] = Field(default_factory=list)


class SearchResult(BaseModel):
    properties: List[Property] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 50
    summary: SearchSummary = Field(default_factory=SearchSummary)
    execution_time_ms: int = 0
