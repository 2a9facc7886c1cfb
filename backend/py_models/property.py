from datetime import datetime, timezone
from pydantic import BaseModel, Field
from typing import List, Optional, Tuple


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PropertyLocation(BaseModel):
    address: str = ""
    neighborhood: Optional[str] = None
    city: str = ""
    coordinates: Tuple[float, float] = Field((0.0, 0.0), description="(lat, lng); (0, 0) when unknown")


class Property(BaseModel):
    # id/title/source/location stay optional so the validator can reject broken records
    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, description="Monthly rent in COP")
    admin_fee: float = Field(0, description="Monthly administration fee in COP")
    total_price: float = Field(0, description="price + admin_fee")
    area: Optional[float] = Field(None, description="Built area in m²")
    rooms: Optional[int] = None
    bathrooms: Optional[int] = None
    parking: Optional[int] = None
    stratum: int = Field(0, description="Socioeconomic stratum 1-6, 0 when unknown")
    location: Optional[PropertyLocation] = None
    amenities: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    url: Optional[str] = None
    source: Optional[str] = None
    scraped_date: datetime = Field(default_factory=_utcnow)
    price_per_m2: int = Field(0, description="round(total_price / area), 0 when area is unknown")
    score: float = 0.0
    is_active: bool = True
